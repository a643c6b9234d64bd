"""
Generación de Kardex
====================

Reproduce una ventana [desde, hasta] del ledger de un inventario y construye
el libro de existencias con saldo corrido:

    INICIO -> SALDO INICIAL -> REPRODUCIR FILAS (fecha, movimiento, detalle) -> CIERRE

- Entradas: costo del lote referenciado (0 si no hay lote).
- Salidas PROMEDIO: costo promedio del saldo justo antes de la salida.
- Salidas FIFO: se consumen los lotes del conjunto de trabajo en orden de
  ingreso y se emite una fila por cada lote tocado.
- Ajustes: el signo decide. Positivo es entrada, negativo es salida del valor absoluto.

Nada de lo calculado aquí se persiste ni pasa por el caché.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from ..config import settings
from ..domain.enums import TipoMovimiento, MetodoValoracion
from ..domain.numeros import CERO, a_cantidad, a_costo, piso_cero, fin_de_dia, inicio_de_dia
from ..infrastructure.stock_cache import StockCache
from ..infrastructure.unit_of_work import UnitOfWork
from .exceptions_inventario import InventarioNoEncontradoError
from .schemas_stock import (
    FilaKardex, SaldoKardex, DetalleSalidaCalculado, MovimientoKardex, ProductoKardex, AlmacenKardex,
    KardexResultado, ResumenStock, KardexReporte, KardexReporteMovimiento, KardexReporteDetalleSalida,
)
from .services_periodo import PeriodoService
from .services_stock import CalculoStockService, LotesFifoTemporales, FechaCorte

logger = logging.getLogger(__name__)


def _saldo(cantidad: Decimal, valor: Decimal) -> SaldoKardex:
    cantidad = a_cantidad(piso_cero(cantidad))
    valor = a_costo(piso_cero(valor))
    costo = a_costo(valor / cantidad) if cantidad > 0 else CERO
    return SaldoKardex(cantidad=cantidad, costo_unitario=costo, valor_total=valor)


class KardexCalculationService:
    def __init__(self, uow: UnitOfWork, cache: StockCache):
        self.uow = uow
        self.stock = CalculoStockService(uow, cache)
        self._lotes: Dict[int, object] = {}

    def _lote(self, lote_id: Optional[int]):
        if not lote_id:
            return None
        if lote_id not in self._lotes:
            self._lotes[lote_id] = self.uow.lotes.get(lote_id)
        return self._lotes[lote_id]

    def _saldo_inicial(self, inventario_id: int, corte: datetime) -> SaldoKardex:
        apertura = self.stock.calcular_stock_inventario(inventario_id, corte)
        if apertura is None or apertura.stock_actual <= 0:
            return SaldoKardex()
        return SaldoKardex(
            cantidad=apertura.stock_actual,
            costo_unitario=apertura.costo_promedio_actual,
            valor_total=apertura.valor_total,
        )

    def generar_kardex(
        self,
        inventario_id: int,
        fecha_desde: date,
        fecha_hasta: date,
        metodo: MetodoValoracion,
    ) -> KardexResultado:
        """
        Genera el Kardex de un inventario.

        Args:
            inventario_id: ID del inventario
            fecha_desde: Inicio de la ventana (inclusive)
            fecha_hasta: Fin de la ventana (inclusive, hasta el fin del día)
            metodo: PROMEDIO o FIFO

        Returns:
            KardexResultado con saldo inicial, filas y saldo final

        Raises:
            InventarioNoEncontradoError: si el inventario no existe
        """
        metodo = MetodoValoracion(metodo)
        inventario = self.uow.inventarios.get_con_maestros(inventario_id)
        if not inventario:
            raise InventarioNoEncontradoError(inventario_id)

        corte_apertura = fin_de_dia(fecha_desde - timedelta(days=1))
        saldo_inicial = self._saldo_inicial(inventario_id, corte_apertura)
        filas = self.uow.movimientos.filas_kardex(inventario_id, inicio_de_dia(fecha_desde), fin_de_dia(fecha_hasta))
        logger.info(
            f"[KARDEX-TRACE] inventario={inventario_id} desde={fecha_desde} hasta={fecha_hasta} "
            f"metodo={metodo.value} filas={len(filas)} saldo_inicial={saldo_inicial.cantidad}"
        )

        trabajo = None
        if metodo == MetodoValoracion.FIFO:
            trabajo = self.stock.conjunto_fifo(inventario_id, corte_apertura)

        saldo = saldo_inicial
        movimientos: List[MovimientoKardex] = []
        for fila in filas:
            es_entrada, cantidad = self._clasificar(fila)
            if cantidad == 0:
                logger.debug(f"[KARDEX-TRACE] detalle={fila.movimiento_detalle_id} con cantidad 0, se omite")
                continue
            if es_entrada:
                nuevos = [self._entrada(fila, cantidad, saldo, trabajo)]
            elif trabajo is None:
                nuevos = [self._salida_promedio(fila, cantidad, saldo)]
            else:
                nuevos = self._salida_fifo(fila, cantidad, saldo, trabajo)
            movimientos.extend(nuevos)
            saldo = nuevos[-1].saldo

        producto = inventario.producto
        return KardexResultado(
            inventario_id=inventario_id,
            producto=ProductoKardex(
                id=producto.id, codigo=producto.codigo, nombre=producto.nombre, unidad_medida=producto.unidad_medida
            ),
            almacen=AlmacenKardex(id=inventario.almacen.id, nombre=inventario.almacen.nombre),
            saldo_inicial=saldo_inicial,
            movimientos=tuple(movimientos),
            stock_final=saldo.cantidad,
            costo_unitario_final=saldo.costo_unitario,
            valor_total_final=saldo.valor_total,
        )

    @staticmethod
    def _clasificar(fila: FilaKardex) -> Tuple[bool, Decimal]:
        """(es_entrada, cantidad absoluta) según tipo y, en ajustes, según signo"""
        if fila.tipo_movimiento == TipoMovimiento.ENTRADA:
            return True, abs(fila.cantidad)
        if fila.tipo_movimiento == TipoMovimiento.SALIDA:
            return False, abs(fila.cantidad)
        return fila.cantidad > 0, abs(fila.cantidad)

    def _fila(self, fila: FilaKardex, es_entrada: bool, cantidad: Decimal, costo: Decimal,
              saldo: SaldoKardex, detalles: Sequence[DetalleSalidaCalculado] = ()) -> MovimientoKardex:
        return MovimientoKardex(
            fecha=fila.fecha,
            tipo_movimiento=fila.tipo_movimiento,
            es_entrada=es_entrada,
            tipo_operacion=fila.tipo_operacion,
            tipo_operacion_codigo=fila.codigo_tabla12,
            tipo_comprobante=fila.tipo_comprobante,
            tipo_comprobante_codigo=fila.codigo_tabla10,
            numero_comprobante=fila.numero_documento,
            cantidad=cantidad,
            costo_unitario=a_costo(costo),
            costo_total=a_costo(cantidad * costo),
            cantidad_saldo=saldo.cantidad,
            costo_unitario_saldo=saldo.costo_unitario,
            valor_total_saldo=saldo.valor_total,
            inventario_id=fila.inventario_id,
            movimiento_id=fila.movimiento_id,
            movimiento_detalle_id=fila.movimiento_detalle_id,
            detalles_salida=tuple(detalles),
        )

    def _entrada(self, fila: FilaKardex, cantidad: Decimal, saldo: SaldoKardex,
                 trabajo: Optional[LotesFifoTemporales]) -> MovimientoKardex:
        lote = self._lote(fila.lote_id)
        if lote is not None:
            costo = a_costo(lote.costo_unitario)
        elif fila.lote_id:
            logger.warning(
                f"[KARDEX-TRACE] detalle={fila.movimiento_detalle_id} referencia lote {fila.lote_id} inexistente, costo 0"
            )
            costo = CERO
        elif fila.tipo_movimiento == TipoMovimiento.AJUSTE:
            costo = saldo.costo_unitario
        else:
            costo = CERO

        nuevo = _saldo(saldo.cantidad + cantidad, saldo.valor_total + cantidad * costo)
        if trabajo is not None and lote is not None:
            trabajo.agregar(lote.id, cantidad, costo, lote.fecha_ingreso)
        return self._fila(fila, True, cantidad, costo, nuevo)

    def _salida_promedio(self, fila: FilaKardex, cantidad: Decimal, saldo: SaldoKardex) -> MovimientoKardex:
        costo = saldo.costo_unitario
        nuevo = _saldo(saldo.cantidad - cantidad, saldo.valor_total - cantidad * costo)
        return self._fila(fila, False, cantidad, costo, nuevo)

    def _salida_fifo(self, fila: FilaKardex, cantidad: Decimal, saldo: SaldoKardex,
                     trabajo: LotesFifoTemporales) -> List[MovimientoKardex]:
        """Una fila por lote consumido; el faltante sin lote sale a costo 0 (lote 0)"""
        lote_preferido = fila.lote_id if fila.tipo_movimiento == TipoMovimiento.AJUSTE else None
        consumos, faltante = trabajo.consumir(cantidad, lote_preferido)

        filas: List[MovimientoKardex] = []
        for c in consumos:
            saldo = _saldo(saldo.cantidad - c.cantidad, saldo.valor_total - c.costo_total)
            detalle = DetalleSalidaCalculado(
                lote_id=c.lote_id,
                cantidad=c.cantidad,
                costo_unitario_de_lote=c.costo_unitario,
                costo_total=a_costo(c.costo_total),
            )
            filas.append(self._fila(fila, False, c.cantidad, c.costo_unitario, saldo, (detalle,)))

        if faltante > 0:
            logger.warning(
                f"[KARDEX-TRACE] detalle={fila.movimiento_detalle_id} sin lotes para {faltante} unidades, costo 0"
            )
            saldo = _saldo(saldo.cantidad - faltante, saldo.valor_total)
            detalle = DetalleSalidaCalculado(lote_id=0, cantidad=faltante, costo_unitario_de_lote=CERO, costo_total=CERO)
            filas.append(self._fila(fila, False, faltante, CERO, saldo, (detalle,)))
        return filas

    def generar_kardex_multiple(
        self,
        inventario_ids: Sequence[int],
        fecha_desde: date,
        fecha_hasta: date,
        metodo: MetodoValoracion,
    ) -> List[KardexResultado]:
        """Kardex de varios inventarios; los que no existen se omiten"""
        resultados = []
        for inventario_id in inventario_ids:
            try:
                resultados.append(self.generar_kardex(inventario_id, fecha_desde, fecha_hasta, metodo))
            except InventarioNoEncontradoError:
                logger.warning(f"[KARDEX-TRACE] inventario={inventario_id} no existe, se omite")
        return resultados

    def obtener_resumen_stock(self, inventario_ids: Sequence[int], fecha_hasta: FechaCorte = None) -> List[ResumenStock]:
        resumen = []
        for inventario_id in inventario_ids:
            try:
                stock = self.stock.calcular_stock_inventario(inventario_id, fecha_hasta)
            except InventarioNoEncontradoError:
                logger.warning(f"[STOCK-TRACE] inventario={inventario_id} no existe, se omite del resumen")
                continue
            resumen.append(ResumenStock(
                inventario_id=inventario_id,
                stock_actual=stock.stock_actual,
                costo_unitario=stock.costo_promedio_actual,
                valor_total=stock.valor_total,
            ))
        return resumen


# ===== REPORTE =====

Q4 = Decimal("0.0001")
Q8 = Decimal("0.00000001")


def _f4(valor: Decimal) -> str:
    return str(Decimal(valor).quantize(Q4, rounding=ROUND_HALF_UP))


def _f8(valor: Decimal) -> str:
    return str(Decimal(valor).quantize(Q8, rounding=ROUND_HALF_UP))


def formatear_fecha(fecha) -> str:
    return fecha.strftime("%d - %m - %Y")


class KardexService:
    """Reporte Kardex listo para el cliente (textos con decimales fijos)"""

    def __init__(self, uow: UnitOfWork, cache: StockCache):
        self.uow = uow
        self.calculo = KardexCalculationService(uow, cache)
        self.periodos = PeriodoService(uow)

    def generar_reporte_kardex(
        self,
        company_id: int,
        inventario_id: int,
        fecha_inicio: Optional[date] = None,
        fecha_fin: Optional[date] = None,
    ) -> KardexReporte:
        inventario = self.uow.inventarios.get(inventario_id)
        if not inventario or inventario.company_id != company_id:
            raise InventarioNoEncontradoError(inventario_id)

        metodo = self.periodos.obtener_metodo_valoracion_o_defecto(company_id)
        desde = fecha_inicio or date.fromisoformat(settings.kardex_fecha_inicio_defecto)
        hasta = fecha_fin or date.today()
        resultado = self.calculo.generar_kardex(inventario_id, desde, hasta, metodo)

        movimientos = tuple(self._formatear_movimiento(m) for m in resultado.movimientos)

        if resultado.movimientos:
            primero = resultado.movimientos[0]
            signo = -1 if primero.es_entrada else 1
            cantidad_inicial = primero.cantidad_saldo + signo * primero.cantidad
            valor_inicial = primero.valor_total_saldo + signo * primero.costo_total
        else:
            cantidad_inicial = resultado.saldo_inicial.cantidad
            valor_inicial = resultado.saldo_inicial.valor_total

        return KardexReporte(
            producto=resultado.producto.nombre,
            almacen=resultado.almacen.nombre,
            metodo_valoracion=metodo.value,
            inventario_inicial_cantidad=_f4(cantidad_inicial),
            inventario_inicial_costo_total=_f8(valor_inicial),
            movimientos=movimientos,
            cantidad_actual=_f4(resultado.stock_final),
            saldo_actual=_f8(resultado.valor_total_final),
            costo_final=_f4(resultado.costo_unitario_final),
        )

    @staticmethod
    def _formatear_movimiento(m: MovimientoKardex) -> KardexReporteMovimiento:
        detalles = None
        if m.detalles_salida:
            detalles = tuple(
                KardexReporteDetalleSalida(
                    id=d.lote_id,
                    lote_id=d.lote_id,
                    costo_unitario_de_lote=_f4(d.costo_unitario_de_lote),
                    cantidad=_f4(d.cantidad),
                )
                for d in m.detalles_salida
            )
        return KardexReporteMovimiento(
            fecha=formatear_fecha(m.fecha),
            tipo="Entrada" if m.es_entrada else "Salida",
            t_comprob=m.tipo_comprobante_codigo or m.tipo_comprobante or "",
            t_operacion=m.tipo_operacion_codigo or m.tipo_operacion or "",
            n_comprobante=m.numero_comprobante or "",
            cantidad=_f4(m.cantidad),
            saldo=_f4(m.cantidad_saldo),
            costo_unitario=_f4(m.costo_unitario),
            costo_total=_f8(m.costo_total),
            detalles_salida=detalles,
        )
