"""
Motor de Cálculo de Stock
=========================

El stock de un lote o de un inventario NUNCA se lee de una columna: se
reconstruye desde el ledger de movimientos PROCESADO.

    stock_lote = entradas - salidas (DetalleSalida) + ajustes   (piso 0)

Un lote sin movimientos ("virgen") usa su cantidad_inicial, siempre que ya
hubiera ingresado a la fecha de corte.

    stock_inventario = Σ stock_lote (lotes con saldo > 0) - salidas lote 0 + ajustes sin lote   (piso 0)
    costo_promedio   = Σ (stock_lote × costo_lote) / Σ stock_lote

Solo los resultados sin fecha de corte pasan por el StockCache.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple, Union
import logging

from ..domain.enums import MetodoValoracion
from ..domain.numeros import CERO, a_cantidad, a_costo, a_decimal, piso_cero, fin_de_dia, solo_fecha
from ..infrastructure.stock_cache import StockCache
from ..infrastructure.unit_of_work import UnitOfWork
from .exceptions_inventario import (
    InventarioNoEncontradoError, LoteNoEncontradoError, StockInsuficienteError,
)
from .schemas_stock import LoteStock, InventarioStock, LoteDisponible, ConsumoLote

logger = logging.getLogger(__name__)

FechaCorte = Optional[Union[date, datetime]]


def _corte(fecha_hasta: FechaCorte) -> Optional[datetime]:
    return fin_de_dia(fecha_hasta) if fecha_hasta is not None else None


class LotesFifoTemporales:
    """
    Conjunto de trabajo de lotes disponibles para una sola operación
    (un comprobante con varias líneas o una generación de Kardex).

    Se muta en el lugar a medida que se registran entradas y salidas;
    nunca toca el caché ni la base de datos.
    """

    def __init__(self, lotes: Iterable[LoteDisponible] = ()):
        # lote_id -> [cantidad, costo_unitario, fecha_ingreso]
        self._lotes: Dict[int, list] = {}
        for l in lotes:
            self._lotes[l.lote_id] = [l.cantidad_disponible, l.costo_unitario, l.fecha_ingreso]

    def __contains__(self, lote_id: int) -> bool:
        return lote_id in self._lotes

    def cantidad(self, lote_id: int) -> Decimal:
        entrada = self._lotes.get(lote_id)
        return entrada[0] if entrada else CERO

    def disponible_total(self) -> Decimal:
        return sum((e[0] for e in self._lotes.values() if e[0] > 0), CERO)

    def agregar(self, lote_id: int, cantidad: Decimal, costo_unitario: Decimal, fecha_ingreso: date) -> None:
        entrada = self._lotes.get(lote_id)
        if entrada is None:
            self._lotes[lote_id] = [cantidad, costo_unitario, fecha_ingreso]
        else:
            entrada[0] += cantidad

    def ordenados(self) -> List[LoteDisponible]:
        """Lotes con saldo > 0 en orden FIFO (fecha de ingreso, id)"""
        items = sorted(self._lotes.items(), key=lambda kv: (kv[1][2], kv[0]))
        return [
            LoteDisponible(lote_id=lid, cantidad_disponible=e[0], costo_unitario=e[1], fecha_ingreso=e[2])
            for lid, e in items
            if e[0] > 0
        ]

    def consumir(self, cantidad: Decimal, lote_id: Optional[int] = None) -> Tuple[List[ConsumoLote], Decimal]:
        """
        Consume en orden FIFO (o solo del lote indicado).

        Returns:
            (consumos por lote, cantidad que no se pudo asignar)
        """
        if lote_id is not None:
            candidatos = [l for l in self.ordenados() if l.lote_id == lote_id]
        else:
            candidatos = self.ordenados()

        restante = cantidad
        consumos: List[ConsumoLote] = []
        for lote in candidatos:
            if restante <= 0:
                break
            tomar = min(restante, lote.cantidad_disponible)
            self._lotes[lote.lote_id][0] -= tomar
            restante -= tomar
            consumos.append(ConsumoLote(lote_id=lote.lote_id, cantidad=tomar, costo_unitario=lote.costo_unitario))
        return consumos, piso_cero(restante)

    def consumir_completo(self, inventario_id: int, cantidad: Decimal) -> List[ConsumoLote]:
        """Como consumir(), pero falla sin tocar el conjunto si no alcanza"""
        disponible = self.disponible_total()
        if disponible < cantidad:
            raise StockInsuficienteError(inventario_id, cantidad, disponible)
        consumos, _ = self.consumir(cantidad)
        return consumos


class CalculoStockService:
    """
    Servicio de cálculo de stock y costos a partir del ledger.

    Args:
        uow: UnitOfWork con la sesión de lectura
        cache: StockCache compartido por el proceso
    """

    def __init__(self, uow: UnitOfWork, cache: StockCache):
        self.uow = uow
        self.cache = cache

    # ===== LOTES =====

    def calcular_stock_lote(self, lote_id: int, fecha_hasta: FechaCorte = None) -> LoteStock:
        """
        Stock de un lote a la fecha de corte (o actual si no se indica).

        Raises:
            LoteNoEncontradoError: si el lote no existe
        """
        corte = _corte(fecha_hasta)
        if corte is None:
            cacheado = self.cache.get_lote(lote_id)
            if cacheado is not None:
                return cacheado

        lote = self.uow.lotes.get(lote_id)
        if not lote:
            raise LoteNoEncontradoError(lote_id)

        entradas, salidas, ajustes = self.uow.movimientos.sumas_lote(lote_id, corte)
        if entradas == 0 and salidas == 0 and ajustes == 0:
            cantidad = self._cantidad_lote_virgen(lote, corte)
        else:
            cantidad = entradas - salidas + ajustes

        resultado = LoteStock(
            lote_id=lote.id,
            inventario_id=lote.inventario_id,
            cantidad_actual=piso_cero(a_cantidad(cantidad)),
            cantidad_inicial=a_cantidad(lote.cantidad_inicial),
            costo_unitario=a_costo(lote.costo_unitario),
            fecha_ingreso=lote.fecha_ingreso,
            numero_lote=lote.numero_lote,
        )
        logger.debug(
            f"[STOCK-TRACE] lote={lote_id} corte={corte} entradas={entradas} salidas={salidas} "
            f"ajustes={ajustes} -> {resultado.cantidad_actual}"
        )
        if corte is None:
            self.cache.set_lote(resultado)
        return resultado

    def _cantidad_lote_virgen(self, lote, corte: Optional[datetime]) -> Decimal:
        if corte is None:
            return a_decimal(lote.cantidad_inicial)
        mov_init = self.uow.movimientos.movimiento_inv_init_de_lote(lote.id)
        if mov_init is not None:
            ingreso = solo_fecha(mov_init.fecha)
        else:
            ingreso = lote.fecha_ingreso
        if ingreso <= corte.date():
            return a_decimal(lote.cantidad_inicial)
        return CERO

    # ===== INVENTARIOS =====

    def calcular_stock_inventario(self, inventario_id: int, fecha_hasta: FechaCorte = None) -> InventarioStock:
        """
        Stock y costo promedio ponderado de un inventario.

        Raises:
            InventarioNoEncontradoError: si el inventario no existe
        """
        corte = _corte(fecha_hasta)
        if corte is None:
            cacheado = self.cache.get_inventario(inventario_id)
            if cacheado is not None:
                return cacheado

        if not self.uow.inventarios.get(inventario_id):
            raise InventarioNoEncontradoError(inventario_id)

        lotes: List[LoteStock] = []
        cantidad_total = CERO
        valor_total = CERO
        for lote in self.uow.lotes.listar_por_inventario(inventario_id):
            stock_lote = self.calcular_stock_lote(lote.id, corte)
            if stock_lote.cantidad_actual > 0:
                lotes.append(stock_lote)
                cantidad_total += stock_lote.cantidad_actual
                valor_total += stock_lote.cantidad_actual * stock_lote.costo_unitario

        costo_promedio = a_costo(valor_total / cantidad_total) if cantidad_total > 0 else CERO

        salidas_cero = self.uow.movimientos.salidas_lote_cero(inventario_id, corte)
        ajustes_sin_lote = self.uow.movimientos.ajustes_sin_lote(inventario_id, corte)
        if salidas_cero > 0 or ajustes_sin_lote != 0:
            logger.debug(
                f"[STOCK-TRACE] inventario={inventario_id} salidas sin lote={salidas_cero} "
                f"ajustes sin lote={ajustes_sin_lote}"
            )
            # Sin lote no hay costo propio: se valorizan al promedio de los lotes
            cantidad_total = piso_cero(cantidad_total - salidas_cero + ajustes_sin_lote)
            valor_total = cantidad_total * costo_promedio

        resultado = InventarioStock(
            inventario_id=inventario_id,
            stock_actual=a_cantidad(cantidad_total),
            costo_promedio_actual=costo_promedio,
            valor_total=a_costo(valor_total),
            lotes=tuple(lotes),
        )
        if corte is None:
            self.cache.set_inventario(resultado)
        return resultado

    def calcular_costo_promedio(self, inventario_id: int, fecha_hasta: FechaCorte = None) -> Decimal:
        return self.calcular_stock_inventario(inventario_id, fecha_hasta).costo_promedio_actual

    def verificar_stock_suficiente(self, inventario_id: int, cantidad: Decimal, fecha_hasta: FechaCorte = None) -> bool:
        return self.calcular_stock_inventario(inventario_id, fecha_hasta).stock_actual >= a_decimal(cantidad)

    # ===== FIFO =====

    def obtener_lotes_disponibles_fifo(self, inventario_id: int, fecha_hasta: FechaCorte = None) -> List[LoteDisponible]:
        """Lotes con saldo > 0 ordenados por fecha de ingreso y luego id"""
        return self._disponibles(self.calcular_stock_inventario(inventario_id, fecha_hasta))

    @staticmethod
    def _disponibles(stock: InventarioStock) -> List[LoteDisponible]:
        disponibles = [
            LoteDisponible(
                lote_id=l.lote_id,
                cantidad_disponible=l.cantidad_actual,
                costo_unitario=l.costo_unitario,
                fecha_ingreso=l.fecha_ingreso,
            )
            for l in stock.lotes
            if l.cantidad_actual > 0
        ]
        disponibles.sort(key=lambda l: (l.fecha_ingreso, l.lote_id))
        return disponibles

    def conjunto_fifo(self, inventario_id: int, fecha_hasta: FechaCorte = None) -> LotesFifoTemporales:
        """
        Conjunto de trabajo FIFO cuadrado contra el stock del inventario.

        Las salidas del lote 0 y los ajustes negativos sin lote bajan el total
        sin bajar ningún lote; ese exceso se descuenta de los lotes en orden FIFO.
        """
        stock = self.calcular_stock_inventario(inventario_id, fecha_hasta)
        trabajo = LotesFifoTemporales(self._disponibles(stock))
        exceso = trabajo.disponible_total() - stock.stock_actual
        if exceso > 0:
            logger.debug(f"[STOCK-TRACE] inventario={inventario_id} descuenta {exceso} sin lote del conjunto FIFO")
            trabajo.consumir(exceso)
        return trabajo

    def calcular_consumo_fifo(self, inventario_id: int, cantidad: Decimal, fecha_hasta: FechaCorte = None) -> List[ConsumoLote]:
        """
        Simula el consumo FIFO de una cantidad. No modifica nada.

        Raises:
            StockInsuficienteError: si la suma disponible no cubre la cantidad
        """
        cantidad = a_decimal(cantidad)
        return self.conjunto_fifo(inventario_id, fecha_hasta).consumir_completo(inventario_id, cantidad)

    def calcular_costo_unitario_venta(
        self,
        inventario_id: int,
        cantidad: Decimal,
        metodo: MetodoValoracion,
        fecha_hasta: FechaCorte = None,
    ) -> Decimal:
        """
        Costo unitario que se reporta para una salida.

        PROMEDIO: costo promedio del inventario.
        FIFO: promedio ponderado de los lotes que se consumirían (simulación).
        """
        if MetodoValoracion(metodo) == MetodoValoracion.FIFO:
            consumos = self.calcular_consumo_fifo(inventario_id, cantidad, fecha_hasta)
            total_cantidad = sum((c.cantidad for c in consumos), CERO)
            if total_cantidad == 0:
                return CERO
            return a_costo(sum((c.costo_total for c in consumos), CERO) / total_cantidad)
        return self.calcular_costo_promedio(inventario_id, fecha_hasta)

    # ===== CACHÉ =====

    def invalidar(self, inventario_ids: Iterable[int] = (), lote_ids: Iterable[int] = ()) -> None:
        for lote_id in set(lote_ids):
            self.cache.invalidar_lote(lote_id)
        for inventario_id in set(inventario_ids):
            self.cache.invalidar_inventario(inventario_id)
