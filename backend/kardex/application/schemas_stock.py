"""
Registros tipados del motor de stock y Kardex.

Cada consulta del ledger se convierte en uno de estos modelos en el borde del
repositorio; extra="forbid" rechaza filas con campos inesperados.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..domain.enums import TipoMovimiento


class _Registro(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


# ===== STOCK =====

class LoteStock(_Registro):
    lote_id: int
    inventario_id: int
    cantidad_actual: Decimal = Field(ge=0)
    cantidad_inicial: Decimal
    costo_unitario: Decimal
    fecha_ingreso: date
    numero_lote: Optional[str] = None


class InventarioStock(_Registro):
    inventario_id: int
    stock_actual: Decimal = Field(ge=0)
    costo_promedio_actual: Decimal
    valor_total: Decimal
    lotes: Tuple[LoteStock, ...] = ()


class LoteDisponible(_Registro):
    lote_id: int
    cantidad_disponible: Decimal = Field(gt=0)
    costo_unitario: Decimal
    fecha_ingreso: date


class ConsumoLote(_Registro):
    lote_id: int
    cantidad: Decimal = Field(gt=0)
    costo_unitario: Decimal

    @property
    def costo_total(self) -> Decimal:
        return self.cantidad * self.costo_unitario


class ResumenStock(_Registro):
    inventario_id: int
    stock_actual: Decimal
    costo_unitario: Decimal
    valor_total: Decimal


# ===== COMPROBANTES =====

class LineaComprobante(_Registro):
    """Línea de un comprobante tal como la entrega el registro de documentos"""
    inventario_id: int
    cantidad: Decimal = Field(gt=0)
    precio_unitario: Decimal = Field(ge=0)
    descripcion: Optional[str] = None


class LoteUsado(_Registro):
    indice_linea: int
    inventario_id: int
    lote_id: int
    costo_unitario_de_lote: Decimal
    cantidad: Decimal


class ResultadoLotesComprobante(_Registro):
    costos_unitarios: Tuple[Decimal, ...]
    lotes_usados: Tuple[LoteUsado, ...]

    def lotes_de_linea(self, indice_linea: int) -> Tuple[LoteUsado, ...]:
        return tuple(l for l in self.lotes_usados if l.indice_linea == indice_linea)


# ===== KARDEX =====

class FilaKardex(_Registro):
    """Fila del ledger (detalle de movimiento PROCESADO) leída para el Kardex"""
    movimiento_detalle_id: int
    movimiento_id: int
    inventario_id: int
    lote_id: Optional[int] = None
    cantidad: Decimal
    tipo_movimiento: TipoMovimiento
    fecha: datetime
    numero_documento: Optional[str] = None
    tipo_operacion: Optional[str] = None
    codigo_tabla12: Optional[str] = None
    tipo_comprobante: Optional[str] = None
    codigo_tabla10: Optional[str] = None


class SaldoKardex(_Registro):
    cantidad: Decimal = Decimal("0")
    costo_unitario: Decimal = Decimal("0")
    valor_total: Decimal = Decimal("0")


class DetalleSalidaCalculado(_Registro):
    lote_id: int
    cantidad: Decimal
    costo_unitario_de_lote: Decimal
    costo_total: Decimal


class MovimientoKardex(_Registro):
    fecha: datetime
    tipo_movimiento: TipoMovimiento
    es_entrada: bool
    tipo_operacion: Optional[str] = None
    tipo_operacion_codigo: Optional[str] = None
    tipo_comprobante: Optional[str] = None
    tipo_comprobante_codigo: Optional[str] = None
    numero_comprobante: Optional[str] = None
    cantidad: Decimal
    costo_unitario: Decimal
    costo_total: Decimal
    cantidad_saldo: Decimal
    costo_unitario_saldo: Decimal
    valor_total_saldo: Decimal
    inventario_id: int
    movimiento_id: int
    movimiento_detalle_id: int
    detalles_salida: Tuple[DetalleSalidaCalculado, ...] = ()

    @property
    def saldo(self) -> SaldoKardex:
        return SaldoKardex(
            cantidad=self.cantidad_saldo,
            costo_unitario=self.costo_unitario_saldo,
            valor_total=self.valor_total_saldo,
        )


class ProductoKardex(_Registro):
    id: int
    codigo: str
    nombre: str
    unidad_medida: str


class AlmacenKardex(_Registro):
    id: int
    nombre: str


class KardexResultado(_Registro):
    inventario_id: int
    producto: ProductoKardex
    almacen: AlmacenKardex
    saldo_inicial: SaldoKardex
    movimientos: Tuple[MovimientoKardex, ...]
    stock_final: Decimal
    costo_unitario_final: Decimal
    valor_total_final: Decimal


# ===== REPORTE (formato de salida) =====

class KardexReporteDetalleSalida(_Registro):
    id: int
    lote_id: int
    costo_unitario_de_lote: str
    cantidad: str


class KardexReporteMovimiento(_Registro):
    fecha: str
    tipo: str  # "Entrada" / "Salida"
    t_comprob: str
    t_operacion: str
    n_comprobante: str
    cantidad: str
    saldo: str
    costo_unitario: str
    costo_total: str
    detalles_salida: Optional[Tuple[KardexReporteDetalleSalida, ...]] = None


class KardexReporte(_Registro):
    producto: str
    almacen: str
    metodo_valoracion: str
    inventario_inicial_cantidad: str
    inventario_inicial_costo_total: str
    movimientos: Tuple[KardexReporteMovimiento, ...]
    cantidad_actual: str
    saldo_actual: str
    costo_final: str
