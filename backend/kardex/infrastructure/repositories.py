from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ..domain.models_inventario import (
    Producto, Almacen, Inventario, InventarioLote, Movimiento, MovimientoDetalle, DetalleSalida,
    PeriodoContable, ConfiguracionInventario,
)
from ..domain.enums import TipoMovimiento, EstadoMovimiento, NUMERO_DOCUMENTO_INV_INIT
from ..domain.numeros import a_cantidad
from ..application.schemas_stock import FilaKardex


class ProductoRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, p: Producto): self.db.add(p); self.db.flush(); return p
    def get(self, id: int): return self.db.get(Producto, id)


class AlmacenRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, a: Almacen): self.db.add(a); self.db.flush(); return a
    def get(self, id: int): return self.db.get(Almacen, id)


class InventarioRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, inv: Inventario): self.db.add(inv); self.db.flush(); return inv
    def get(self, id: int): return self.db.get(Inventario, id)

    def get_con_maestros(self, id: int) -> Optional[Inventario]:
        return (
            self.db.query(Inventario)
            .options(joinedload(Inventario.producto), joinedload(Inventario.almacen))
            .filter(Inventario.id == id)
            .first()
        )

    def by_producto_almacen(self, producto_id: int, almacen_id: int):
        return self.db.query(Inventario).filter_by(producto_id=producto_id, almacen_id=almacen_id).first()


class LoteRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, lote: InventarioLote): self.db.add(lote); self.db.flush(); return lote
    def get(self, id: int): return self.db.get(InventarioLote, id)

    def listar_por_inventario(self, inventario_id: int) -> List[InventarioLote]:
        """Lotes del inventario en orden FIFO: fecha de ingreso y luego id"""
        return (
            self.db.query(InventarioLote)
            .filter(InventarioLote.inventario_id == inventario_id)
            .order_by(InventarioLote.fecha_ingreso.asc(), InventarioLote.id.asc())
            .all()
        )


class MovimientoRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, m: Movimiento): self.db.add(m); self.db.flush(); return m
    def get(self, id: int): return self.db.get(Movimiento, id)

    def _procesados(self, q, tipo: TipoMovimiento, fecha_hasta: Optional[datetime]):
        q = q.filter(Movimiento.estado == EstadoMovimiento.PROCESADO.value, Movimiento.tipo == tipo.value)
        if fecha_hasta is not None:
            q = q.filter(Movimiento.fecha <= fecha_hasta)
        return q

    def sumas_lote(self, lote_id: int, fecha_hasta: Optional[datetime] = None) -> Tuple[Decimal, Decimal, Decimal]:
        """(entradas, salidas, ajustes) de un lote, con corte opcional"""
        base_detalle = (
            self.db.query(func.coalesce(func.sum(MovimientoDetalle.cantidad), 0))
            .join(Movimiento, Movimiento.id == MovimientoDetalle.movimiento_id)
            .filter(MovimientoDetalle.lote_id == lote_id)
        )
        entradas = self._procesados(base_detalle, TipoMovimiento.ENTRADA, fecha_hasta).scalar()
        ajustes = self._procesados(base_detalle, TipoMovimiento.AJUSTE, fecha_hasta).scalar()

        base_salida = (
            self.db.query(func.coalesce(func.sum(DetalleSalida.cantidad), 0))
            .join(MovimientoDetalle, MovimientoDetalle.id == DetalleSalida.movimiento_detalle_id)
            .join(Movimiento, Movimiento.id == MovimientoDetalle.movimiento_id)
            .filter(DetalleSalida.lote_id == lote_id)
        )
        salidas = self._procesados(base_salida, TipoMovimiento.SALIDA, fecha_hasta).scalar()
        return a_cantidad(entradas), a_cantidad(salidas), a_cantidad(ajustes)

    def salidas_lote_cero(self, inventario_id: int, fecha_hasta: Optional[datetime] = None) -> Decimal:
        """Salidas históricas sin lote asignado (lote_id = 0) del inventario"""
        q = (
            self.db.query(func.coalesce(func.sum(DetalleSalida.cantidad), 0))
            .join(MovimientoDetalle, MovimientoDetalle.id == DetalleSalida.movimiento_detalle_id)
            .join(Movimiento, Movimiento.id == MovimientoDetalle.movimiento_id)
            .filter(DetalleSalida.lote_id == 0, MovimientoDetalle.inventario_id == inventario_id)
        )
        return a_cantidad(self._procesados(q, TipoMovimiento.SALIDA, fecha_hasta).scalar())

    def ajustes_sin_lote(self, inventario_id: int, fecha_hasta: Optional[datetime] = None) -> Decimal:
        """Suma con signo de los ajustes del inventario que no referencian lote"""
        q = (
            self.db.query(func.coalesce(func.sum(MovimientoDetalle.cantidad), 0))
            .join(Movimiento, Movimiento.id == MovimientoDetalle.movimiento_id)
            .filter(
                MovimientoDetalle.inventario_id == inventario_id,
                or_(MovimientoDetalle.lote_id.is_(None), MovimientoDetalle.lote_id == 0),
            )
        )
        return a_cantidad(self._procesados(q, TipoMovimiento.AJUSTE, fecha_hasta).scalar())

    def movimiento_inv_init_de_lote(self, lote_id: int) -> Optional[Movimiento]:
        """Movimiento de saldo inicial que referencia al lote (sin límite de fecha)"""
        return (
            self.db.query(Movimiento)
            .join(MovimientoDetalle, MovimientoDetalle.movimiento_id == Movimiento.id)
            .filter(
                MovimientoDetalle.lote_id == lote_id,
                Movimiento.numero_documento == NUMERO_DOCUMENTO_INV_INIT,
            )
            .order_by(Movimiento.id.asc())
            .first()
        )

    def detalle_inv_init(self, inventario_id: int) -> Optional[MovimientoDetalle]:
        """Detalle ENTRADA del saldo inicial de un inventario"""
        return (
            self.db.query(MovimientoDetalle)
            .join(Movimiento, Movimiento.id == MovimientoDetalle.movimiento_id)
            .filter(
                MovimientoDetalle.inventario_id == inventario_id,
                Movimiento.numero_documento == NUMERO_DOCUMENTO_INV_INIT,
                Movimiento.tipo == TipoMovimiento.ENTRADA.value,
            )
            .order_by(Movimiento.id.asc(), MovimientoDetalle.id.asc())
            .first()
        )

    def filas_kardex(self, inventario_id: int, desde: datetime, hasta: datetime) -> List[FilaKardex]:
        """Detalles PROCESADO del inventario en [desde, hasta], orden (fecha, movimiento, detalle)"""
        rows = (
            self.db.query(MovimientoDetalle, Movimiento)
            .join(Movimiento, Movimiento.id == MovimientoDetalle.movimiento_id)
            .filter(
                MovimientoDetalle.inventario_id == inventario_id,
                Movimiento.estado == EstadoMovimiento.PROCESADO.value,
                Movimiento.fecha >= desde,
                Movimiento.fecha <= hasta,
            )
            .order_by(Movimiento.fecha.asc(), Movimiento.id.asc(), MovimientoDetalle.id.asc())
            .all()
        )
        return [
            FilaKardex(
                movimiento_detalle_id=det.id,
                movimiento_id=mov.id,
                inventario_id=det.inventario_id,
                lote_id=det.lote_id,
                cantidad=a_cantidad(det.cantidad),
                tipo_movimiento=TipoMovimiento(mov.tipo),
                fecha=mov.fecha,
                numero_documento=mov.numero_documento,
                tipo_operacion=mov.tipo_operacion,
                codigo_tabla12=mov.codigo_tabla12,
                tipo_comprobante=mov.tipo_comprobante,
                codigo_tabla10=mov.codigo_tabla10,
            )
            for det, mov in rows
        ]


class PeriodoRepository:
    def __init__(self, db: Session): self.db = db

    def activo(self, company_id: int) -> Optional[PeriodoContable]:
        return (
            self.db.query(PeriodoContable)
            .filter(PeriodoContable.company_id == company_id, PeriodoContable.activo == True)
            .order_by(PeriodoContable.fecha_inicio.desc())
            .first()
        )

    def configuracion(self, company_id: int) -> Optional[ConfiguracionInventario]:
        return self.db.query(ConfiguracionInventario).filter_by(company_id=company_id).first()
