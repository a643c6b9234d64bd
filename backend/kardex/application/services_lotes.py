"""
Creación de Lotes y Movimientos
===============================

Traduce las líneas de un comprobante a lotes y movimientos del ledger:

- COMPRA: un lote nuevo por línea (cantidad_inicial 0, costo = precio unitario);
  la cantidad entra por el detalle del movimiento ENTRADA.
- Otras operaciones: costo reportado según el método de valoración y consumo
  físico SIEMPRE FIFO por lote, registrado como DetalleSalida.

Todo el comprobante se registra en una sola transacción; si falta stock se
revierte completo. Después del commit se invalida el caché de los inventarios
y lotes afectados.
"""
from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
import logging

from ..domain.enums import (
    TipoMovimiento, EstadoMovimiento, MetodoValoracion, NUMERO_DOCUMENTO_INV_INIT, TIPO_OPERACION_COMPRA,
)
from ..domain.models_inventario import InventarioLote, Movimiento, MovimientoDetalle, DetalleSalida
from ..domain.numeros import CERO, a_costo, a_decimal, fin_de_dia
from ..infrastructure.stock_cache import StockCache
from ..infrastructure.unit_of_work import UnitOfWork
from .exceptions_inventario import (
    DatosInventarioInvalidosError, InventarioNoEncontradoError, ReferenciaInconsistenteError,
)
from .schemas_stock import LineaComprobante, LoteUsado, ResultadoLotesComprobante
from .services_periodo import PeriodoService
from .services_stock import CalculoStockService, LotesFifoTemporales

logger = logging.getLogger(__name__)


def es_compra(tipo_operacion: str) -> bool:
    return (tipo_operacion or "").strip().upper() == TIPO_OPERACION_COMPRA


class CreacionLotesService:
    def __init__(self, uow: UnitOfWork, cache: StockCache):
        self.uow = uow
        self.cache = cache
        self.stock = CalculoStockService(uow, cache)

    def crear_lote_y_movimiento_entrada(
        self,
        inventario_id: int,
        cantidad: Decimal,
        costo_unitario: Decimal,
        fecha_ingreso: date,
        numero_lote: Optional[str] = None,
    ) -> InventarioLote:
        """
        Siembra el saldo inicial de un inventario: lote con cantidad_inicial
        y movimiento ENTRADA marcado INV-INIT con su detalle.

        Raises:
            DatosInventarioInvalidosError: cantidad <= 0 o costo negativo
            InventarioNoEncontradoError: si el inventario no existe
        """
        cantidad = a_decimal(cantidad)
        costo_unitario = a_decimal(costo_unitario)
        if cantidad <= 0:
            raise DatosInventarioInvalidosError("La cantidad del saldo inicial debe ser mayor a 0")
        if costo_unitario < 0:
            raise DatosInventarioInvalidosError("El costo unitario no puede ser negativo")

        inventario = self.uow.inventarios.get(inventario_id)
        if not inventario:
            raise InventarioNoEncontradoError(inventario_id)

        lote = self.uow.lotes.add(InventarioLote(
            inventario_id=inventario_id,
            numero_lote=numero_lote or NUMERO_DOCUMENTO_INV_INIT,
            cantidad_inicial=cantidad,
            costo_unitario=costo_unitario,
            fecha_ingreso=fecha_ingreso,
            observaciones="Saldo inicial",
        ))
        movimiento = Movimiento(
            company_id=inventario.company_id,
            tipo=TipoMovimiento.ENTRADA.value,
            fecha=datetime.combine(fecha_ingreso, time.min),
            numero_documento=NUMERO_DOCUMENTO_INV_INIT,
            codigo_tabla12="16",  # Saldo inicial (Tabla 12 SUNAT)
            tipo_operacion="SALDO INICIAL",
            estado=EstadoMovimiento.PROCESADO.value,
            observaciones="Inventario inicial",
        )
        movimiento.detalles.append(MovimientoDetalle(inventario_id=inventario_id, lote_id=lote.id, cantidad=cantidad))
        self.uow.movimientos.add(movimiento)

        self.stock.invalidar([inventario_id], [lote.id])
        logger.info(f"Saldo inicial inventario={inventario_id} lote={lote.id} cantidad={cantidad} costo={costo_unitario}")
        return lote

    def procesar_lotes_comprobante(
        self,
        lineas: Sequence[LineaComprobante],
        tipo_operacion: str,
        metodo: MetodoValoracion,
        fecha_documento: date,
    ) -> ResultadoLotesComprobante:
        """
        Crea lotes (compras) o calcula el consumo FIFO (resto de operaciones)
        de cada línea.

        Las salidas se calculan contra el stock al cierre de la fecha del
        comprobante. Las líneas de un mismo inventario comparten un conjunto
        de trabajo FIFO, así dos líneas no pueden asignar el mismo saldo.

        Raises:
            StockInsuficienteError: si alguna salida no puede cubrirse
        """
        metodo = MetodoValoracion(metodo)
        compra = es_compra(tipo_operacion)
        costos: List[Decimal] = []
        usados: List[LoteUsado] = []
        trabajo: Dict[int, LotesFifoTemporales] = {}

        corte = fin_de_dia(fecha_documento)

        for indice, linea in enumerate(lineas):
            if not self.uow.inventarios.get(linea.inventario_id):
                raise InventarioNoEncontradoError(linea.inventario_id)

            if compra:
                lote = self.uow.lotes.add(InventarioLote(
                    inventario_id=linea.inventario_id,
                    cantidad_inicial=CERO,
                    costo_unitario=linea.precio_unitario,
                    fecha_ingreso=fecha_documento,
                ))
                costos.append(a_costo(linea.precio_unitario))
                usados.append(LoteUsado(
                    indice_linea=indice,
                    inventario_id=linea.inventario_id,
                    lote_id=lote.id,
                    costo_unitario_de_lote=a_costo(linea.precio_unitario),
                    cantidad=linea.cantidad,
                ))
                continue

            if linea.inventario_id not in trabajo:
                trabajo[linea.inventario_id] = self.stock.conjunto_fifo(linea.inventario_id, corte)
            consumos = trabajo[linea.inventario_id].consumir_completo(linea.inventario_id, linea.cantidad)
            if metodo == MetodoValoracion.FIFO:
                costo = a_costo(sum((c.costo_total for c in consumos), CERO) / linea.cantidad)
            else:
                costo = self.stock.calcular_costo_unitario_venta(linea.inventario_id, linea.cantidad, metodo, corte)

            costos.append(costo)
            for c in consumos:
                usados.append(LoteUsado(
                    indice_linea=indice,
                    inventario_id=linea.inventario_id,
                    lote_id=c.lote_id,
                    costo_unitario_de_lote=c.costo_unitario,
                    cantidad=c.cantidad,
                ))
            logger.debug(f"Línea {indice} inventario={linea.inventario_id} costo={costo} lotes={[c.lote_id for c in consumos]}")

        self.stock.invalidar(
            {l.inventario_id for l in lineas},
            {u.lote_id for u in usados},
        )
        return ResultadoLotesComprobante(costos_unitarios=tuple(costos), lotes_usados=tuple(usados))

    def construir_movimiento_comprobante(
        self,
        company_id: int,
        lineas: Sequence[LineaComprobante],
        tipo_operacion: str,
        fecha_documento: date,
        resultado: ResultadoLotesComprobante,
        numero_documento: Optional[str] = None,
        tipo_comprobante: Optional[str] = None,
        codigo_tabla12: Optional[str] = None,
        codigo_tabla10: Optional[str] = None,
        comprobante_id: Optional[int] = None,
    ) -> Movimiento:
        """
        Arma (sin persistir) el movimiento PROCESADO del comprobante:
        un detalle por línea; las entradas llevan su lote y las salidas sus
        DetalleSalida por lote.

        Raises:
            ReferenciaInconsistenteError: si un lote usado ya no existe
        """
        compra = es_compra(tipo_operacion)
        movimiento = Movimiento(
            company_id=company_id,
            tipo=(TipoMovimiento.ENTRADA if compra else TipoMovimiento.SALIDA).value,
            fecha=datetime.combine(fecha_documento, datetime.now().time()),
            numero_documento=numero_documento,
            codigo_tabla12=codigo_tabla12 or ("02" if compra else "01"),  # Compra / Venta
            codigo_tabla10=codigo_tabla10,
            tipo_operacion=tipo_operacion,
            tipo_comprobante=tipo_comprobante,
            estado=EstadoMovimiento.PROCESADO.value,
            comprobante_id=comprobante_id,
        )

        for indice, linea in enumerate(lineas):
            lotes = resultado.lotes_de_linea(indice)
            for usado in lotes:
                if not self.uow.lotes.get(usado.lote_id):
                    raise ReferenciaInconsistenteError(f"Lote {usado.lote_id} de la línea {indice} no existe")

            if compra:
                if len(lotes) != 1:
                    raise ReferenciaInconsistenteError(f"La línea {indice} de compra debe tener exactamente un lote")
                movimiento.detalles.append(MovimientoDetalle(
                    inventario_id=linea.inventario_id,
                    lote_id=lotes[0].lote_id,
                    cantidad=linea.cantidad,
                ))
            else:
                detalle = MovimientoDetalle(inventario_id=linea.inventario_id, lote_id=None, cantidad=linea.cantidad)
                for usado in lotes:
                    detalle.detalles_salida.append(DetalleSalida(
                        lote_id=usado.lote_id,
                        costo_unitario_de_lote=usado.costo_unitario_de_lote,
                        cantidad=usado.cantidad,
                    ))
                movimiento.detalles.append(detalle)
        return movimiento

    def registrar_comprobante(
        self,
        company_id: int,
        lineas: Sequence[LineaComprobante],
        tipo_operacion: str,
        fecha_documento: date,
        metodo: Optional[MetodoValoracion] = None,
        **datos_documento,
    ) -> Movimiento:
        """
        Registra el comprobante completo en una transacción y luego invalida el caché.

        Args:
            datos_documento: numero_documento, tipo_comprobante, codigo_tabla12,
                codigo_tabla10, comprobante_id

        Raises:
            StockInsuficienteError: la transacción se revierte y no queda nada persistido
        """
        if metodo is None:
            metodo = PeriodoService(self.uow).obtener_metodo_valoracion_o_defecto(company_id)

        try:
            with self.uow.transaction():
                resultado = self.procesar_lotes_comprobante(lineas, tipo_operacion, metodo, fecha_documento)
                movimiento = self.construir_movimiento_comprobante(
                    company_id, lineas, tipo_operacion, fecha_documento, resultado, **datos_documento
                )
                self.uow.movimientos.add(movimiento)
        finally:
            # También tras un rollback: los lotes creados en la transacción pudieron leerse
            self.stock.invalidar({l.inventario_id for l in lineas})

        self.stock.invalidar(
            {l.inventario_id for l in lineas},
            {u.lote_id for u in resultado.lotes_usados},
        )
        logger.info(
            f"Comprobante registrado movimiento={movimiento.id} tipo={movimiento.tipo} "
            f"lineas={len(lineas)} metodo={metodo.value}"
        )
        return movimiento
