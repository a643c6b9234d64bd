"""
API de Inventarios - Stock y Kardex
===================================

Capa delgada: valida la entrada, llama a los servicios y traduce errores.
"""
from fastapi import APIRouter, HTTPException, Query, Depends
from pydantic import BaseModel, ConfigDict, Field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from ...dependencies import get_uow, get_stock_cache
from ...infrastructure.logging_config import get_logger
from ...infrastructure.stock_cache import StockCache
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.exceptions_inventario import (
    InventarioError, RecursoNoEncontradoError, StockInsuficienteError, DatosInventarioInvalidosError,
)
from ...application.schemas_stock import InventarioStock, LoteDisponible, KardexReporte, LineaComprobante
from ...application.services_inventario import InventarioService
from ...application.services_kardex import KardexService
from ...application.services_lotes import CreacionLotesService
from ...application.services_stock import CalculoStockService
from ...domain.enums import MetodoValoracion

logger = get_logger("api.inventarios")

router = APIRouter(prefix="/inventarios", tags=["inventarios"])


def _http_error(e: InventarioError) -> HTTPException:
    if isinstance(e, RecursoNoEncontradoError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, StockInsuficienteError):
        return HTTPException(status_code=409, detail=str(e))
    if not isinstance(e, DatosInventarioInvalidosError):
        logger.warning(f"Error de inventario: {e}")
    return HTTPException(status_code=400, detail=str(e))


# ===== INVENTARIOS =====

class InventarioIn(BaseModel):
    company_id: int
    producto_id: int
    almacen_id: int
    stock_inicial: Decimal | None = None
    precio_unitario: Decimal | None = None

class InventarioOut(BaseModel):
    id: int
    company_id: int
    producto_id: int
    almacen_id: int

    model_config = ConfigDict(from_attributes=True)

@router.post("", response_model=InventarioOut)
def create_inventario(
    payload: InventarioIn,
    uow: UnitOfWork = Depends(get_uow),
    cache: StockCache = Depends(get_stock_cache),
):
    """Registra la posición producto x almacén y, opcionalmente, su saldo inicial."""
    try:
        inv = InventarioService(uow, cache).registrar_inventario(
            payload.company_id, payload.producto_id, payload.almacen_id,
            payload.stock_inicial, payload.precio_unitario,
        )
        return InventarioOut.model_validate(inv)
    except InventarioError as e:
        raise _http_error(e)

@router.get("/{inventario_id}/stock", response_model=InventarioStock)
def get_stock(
    inventario_id: int,
    company_id: int = Query(...),
    uow: UnitOfWork = Depends(get_uow),
    cache: StockCache = Depends(get_stock_cache),
):
    try:
        return InventarioService(uow, cache).obtener_stock(company_id, inventario_id)
    except InventarioError as e:
        raise _http_error(e)

@router.get("/{inventario_id}/lotes-fifo", response_model=List[LoteDisponible])
def get_lotes_fifo(
    inventario_id: int,
    fecha_hasta: Optional[date] = Query(None),
    uow: UnitOfWork = Depends(get_uow),
    cache: StockCache = Depends(get_stock_cache),
):
    """Lotes con saldo en el orden en que se consumirían."""
    try:
        return CalculoStockService(uow, cache).obtener_lotes_disponibles_fifo(inventario_id, fecha_hasta)
    except InventarioError as e:
        raise _http_error(e)

@router.get("/{inventario_id}/kardex", response_model=KardexReporte)
def get_kardex(
    inventario_id: int,
    company_id: int = Query(...),
    fecha_inicio: Optional[date] = Query(None),
    fecha_fin: Optional[date] = Query(None),
    uow: UnitOfWork = Depends(get_uow),
    cache: StockCache = Depends(get_stock_cache),
):
    if fecha_inicio and fecha_fin and fecha_inicio > fecha_fin:
        raise HTTPException(status_code=400, detail="fecha_inicio no puede ser posterior a fecha_fin")
    try:
        return KardexService(uow, cache).generar_reporte_kardex(company_id, inventario_id, fecha_inicio, fecha_fin)
    except InventarioError as e:
        raise _http_error(e)

# ===== SALDO INICIAL =====

class InventarioInicialOut(BaseModel):
    inventario_id: int
    lote_id: int
    movimiento_id: int
    cantidad: Decimal
    costo_unitario: Decimal
    fecha_ingreso: date

class InventarioInicialUpdate(BaseModel):
    cantidad: Decimal | None = None
    costo_unitario: Decimal | None = None

@router.get("/{inventario_id}/inventario-inicial", response_model=InventarioInicialOut)
def get_inventario_inicial(
    inventario_id: int,
    uow: UnitOfWork = Depends(get_uow),
    cache: StockCache = Depends(get_stock_cache),
):
    try:
        return InventarioService(uow, cache).obtener_inventario_inicial(inventario_id)
    except InventarioError as e:
        raise _http_error(e)

@router.patch("/{inventario_id}/inventario-inicial", response_model=InventarioInicialOut)
def update_inventario_inicial(
    inventario_id: int,
    payload: InventarioInicialUpdate,
    uow: UnitOfWork = Depends(get_uow),
    cache: StockCache = Depends(get_stock_cache),
):
    """Corrige cantidad y/o costo del saldo inicial (lote INV-INIT)."""
    if payload.cantidad is None and payload.costo_unitario is None:
        raise HTTPException(status_code=400, detail="Debe indicar cantidad o costo_unitario")
    try:
        return InventarioService(uow, cache).actualizar_inventario_inicial(
            inventario_id, payload.cantidad, payload.costo_unitario
        )
    except InventarioError as e:
        raise _http_error(e)

# ===== COMPROBANTES =====

class ComprobanteIn(BaseModel):
    company_id: int
    tipo_operacion: str = Field(..., description="COMPRA, VENTA, ...")
    fecha: date
    numero_documento: str | None = None
    tipo_comprobante: str | None = None
    codigo_tabla10: str | None = None
    metodo_valoracion: MetodoValoracion | None = None
    lineas: List[LineaComprobante] = Field(..., min_length=1)

class ComprobanteOut(BaseModel):
    movimiento_id: int
    tipo: str
    fecha: date
    lineas: int

@router.post("/comprobantes", response_model=ComprobanteOut)
def registrar_comprobante(
    payload: ComprobanteIn,
    uow: UnitOfWork = Depends(get_uow),
    cache: StockCache = Depends(get_stock_cache),
):
    """Registra el movimiento de stock de un comprobante (compra crea lotes, el resto consume FIFO)."""
    try:
        mov = CreacionLotesService(uow, cache).registrar_comprobante(
            payload.company_id,
            payload.lineas,
            payload.tipo_operacion,
            payload.fecha,
            payload.metodo_valoracion,
            numero_documento=payload.numero_documento,
            tipo_comprobante=payload.tipo_comprobante,
            codigo_tabla10=payload.codigo_tabla10,
        )
    except InventarioError as e:
        raise _http_error(e)
    return ComprobanteOut(movimiento_id=mov.id, tipo=mov.tipo, fecha=mov.fecha.date(), lineas=len(mov.detalles))
