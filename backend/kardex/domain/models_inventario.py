"""
Modelos del Dominio de Inventario
==================================

Entidades del libro de existencias (Kardex):
- Producto y Almacén (datos maestros mínimos)
- Inventario (producto x almacén, sin cantidad almacenada)
- InventarioLote (lote con costo unitario y fecha de ingreso)
- Movimiento / MovimientoDetalle / DetalleSalida (ledger append-only)
- PeriodoContable y ConfiguracionInventario (configuración leída por el motor)

La cantidad y el costo de un inventario NUNCA se guardan: se derivan del ledger.
"""
from sqlalchemy import Integer, String, Boolean, ForeignKey, Numeric, Date, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import datetime, date
from decimal import Decimal
from ..db import Base
from .enums import EstadoMovimiento, MetodoValoracion


class Producto(Base):
    __tablename__ = "productos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(Integer, index=True)
    codigo: Mapped[str] = mapped_column(String(50), index=True)
    nombre: Mapped[str] = mapped_column(String(200))
    unidad_medida: Mapped[str] = mapped_column(String(10), default="NIU")
    activo: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (UniqueConstraint('company_id', 'codigo', name='uq_producto_company_codigo'),)


class Almacen(Base):
    """
    Almacén/Depósito
    Permite manejar múltiples ubicaciones de inventario
    """
    __tablename__ = "almacenes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(Integer, index=True)
    codigo: Mapped[str] = mapped_column(String(50), index=True)
    nombre: Mapped[str] = mapped_column(String(200))
    activo: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    __table_args__ = (UniqueConstraint('company_id', 'codigo', name='uq_almacen_company_codigo'),)

    inventarios = relationship("Inventario", back_populates="almacen")


class Inventario(Base):
    """
    Posición de inventario: un producto en un almacén.
    No tiene campo de cantidad: el stock se calcula desde los movimientos.
    """
    __tablename__ = "inventarios"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(Integer, index=True)
    producto_id: Mapped[int] = mapped_column(ForeignKey("productos.id"), index=True)
    almacen_id: Mapped[int] = mapped_column(ForeignKey("almacenes.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    __table_args__ = (UniqueConstraint('producto_id', 'almacen_id', name='uq_inventario_producto_almacen'),)

    producto = relationship("Producto")
    almacen = relationship("Almacen", back_populates="inventarios")
    lotes = relationship("InventarioLote", back_populates="inventario", order_by="InventarioLote.id")


class InventarioLote(Base):
    """
    Lote de stock con costo unitario y fecha de ingreso propios.
    cantidad_inicial solo es distinta de 0 en el lote de saldo inicial (INV-INIT);
    los lotes de compras se crean en 0 y su cantidad llega por el movimiento ENTRADA.
    """
    __tablename__ = "inventario_lotes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    inventario_id: Mapped[int] = mapped_column(ForeignKey("inventarios.id"), index=True)
    numero_lote: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cantidad_inicial: Mapped[Decimal] = mapped_column(Numeric(14, 4), default=0)
    costo_unitario: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=0)
    fecha_ingreso: Mapped[date] = mapped_column(Date, index=True)
    observaciones: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    inventario = relationship("Inventario", back_populates="lotes")


class Movimiento(Base):
    """
    Evento del ledger: ENTRADA, SALIDA o AJUSTE.
    Solo los movimientos PROCESADO cuentan para el stock.
    """
    __tablename__ = "movimientos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(Integer, index=True)
    tipo: Mapped[str] = mapped_column(String(10), index=True)  # TipoMovimiento
    fecha: Mapped[datetime] = mapped_column(DateTime, index=True)
    numero_documento: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    codigo_tabla12: Mapped[str | None] = mapped_column(String(10), nullable=True)  # Tipo de operación SUNAT
    codigo_tabla10: Mapped[str | None] = mapped_column(String(10), nullable=True)  # Tipo de comprobante SUNAT
    tipo_operacion: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tipo_comprobante: Mapped[str | None] = mapped_column(String(100), nullable=True)
    observaciones: Mapped[str | None] = mapped_column(Text, nullable=True)
    estado: Mapped[str] = mapped_column(String(15), default=EstadoMovimiento.PROCESADO.value, index=True)
    comprobante_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)  # Documento externo
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    detalles = relationship(
        "MovimientoDetalle",
        back_populates="movimiento",
        cascade="all, delete-orphan",
        order_by="MovimientoDetalle.id",
    )


class MovimientoDetalle(Base):
    __tablename__ = "movimiento_detalles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    movimiento_id: Mapped[int] = mapped_column(ForeignKey("movimientos.id", ondelete="CASCADE"), index=True)
    inventario_id: Mapped[int] = mapped_column(ForeignKey("inventarios.id"), index=True)
    lote_id: Mapped[int | None] = mapped_column(ForeignKey("inventario_lotes.id"), nullable=True, index=True)
    cantidad: Mapped[Decimal] = mapped_column(Numeric(14, 4))  # En AJUSTE el signo indica sobrante/faltante

    movimiento = relationship("Movimiento", back_populates="detalles")
    detalles_salida = relationship(
        "DetalleSalida",
        back_populates="movimiento_detalle",
        cascade="all, delete-orphan",
        order_by="DetalleSalida.id",
    )


class DetalleSalida(Base):
    """
    Asignación de una salida a un lote concreto (consumo FIFO por lote).
    lote_id = 0 identifica salidas históricas sin lote asignado, por eso no es FK.
    """
    __tablename__ = "detalles_salida"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    movimiento_detalle_id: Mapped[int] = mapped_column(ForeignKey("movimiento_detalles.id", ondelete="CASCADE"), index=True)
    lote_id: Mapped[int] = mapped_column(Integer, index=True)
    costo_unitario_de_lote: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=0)
    cantidad: Mapped[Decimal] = mapped_column(Numeric(14, 4))

    movimiento_detalle = relationship("MovimientoDetalle", back_populates="detalles_salida")


class PeriodoContable(Base):
    """Período contable activo por empresa (solo lectura para el motor)"""
    __tablename__ = "periodos_contables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(Integer, index=True)
    fecha_inicio: Mapped[date] = mapped_column(Date)
    fecha_fin: Mapped[date] = mapped_column(Date)
    activo: Mapped[bool] = mapped_column(Boolean, default=True)


class ConfiguracionInventario(Base):
    """Método de valoración configurado por empresa"""
    __tablename__ = "configuracion_inventario"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(Integer, unique=True, index=True)
    metodo_valoracion: Mapped[str] = mapped_column(String(10), default=MetodoValoracion.PROMEDIO.value)
