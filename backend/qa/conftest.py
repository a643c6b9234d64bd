"""
Configuración global de pytest para tests del motor de stock y Kardex
"""
import pytest
import sys
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path

# Agregar el directorio raíz al path para imports
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kardex.db import Base, _import_all_models
from kardex.domain.enums import TipoMovimiento, EstadoMovimiento, MetodoValoracion
from kardex.domain.models_inventario import (
    Producto, Almacen, Inventario, InventarioLote, Movimiento, MovimientoDetalle, DetalleSalida,
    PeriodoContable, ConfiguracionInventario,
)
from kardex.infrastructure.stock_cache import StockCache
from kardex.infrastructure.unit_of_work import UnitOfWork
from kardex.application.schemas_stock import LineaComprobante
from kardex.application.services_lotes import CreacionLotesService


@pytest.fixture
def engine():
    """SQLite en memoria compartido por todas las sesiones del test"""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    _import_all_models()
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def uow(db):
    return UnitOfWork(db)


@pytest.fixture
def cache():
    return StockCache(ttl_seconds=0)


class LedgerBuilder:
    """Arma datos de prueba: posiciones, saldos iniciales, compras, ventas y filas crudas"""

    def __init__(self, uow: UnitOfWork, cache: StockCache, company_id: int = 1):
        self.uow = uow
        self.cache = cache
        self.company_id = company_id
        self.lotes = CreacionLotesService(uow, cache)
        self._n = 0

    def inventario(self, nombre: str = "Producto A") -> Inventario:
        self._n += 1
        db = self.uow.db
        producto = Producto(company_id=self.company_id, codigo=f"P{self._n:03d}", nombre=nombre)
        almacen = Almacen(company_id=self.company_id, codigo=f"A{self._n:03d}", nombre="Almacén Principal")
        db.add_all([producto, almacen])
        db.flush()
        inv = Inventario(company_id=self.company_id, producto_id=producto.id, almacen_id=almacen.id)
        db.add(inv)
        db.commit()
        return inv

    def saldo_inicial(self, inv: Inventario, fecha: date, cantidad, costo) -> InventarioLote:
        lote = self.lotes.crear_lote_y_movimiento_entrada(inv.id, Decimal(str(cantidad)), Decimal(str(costo)), fecha)
        self.uow.commit()
        return lote

    def compra(self, inv: Inventario, fecha: date, cantidad, costo, numero: str = "F001-1") -> Movimiento:
        return self.lotes.registrar_comprobante(
            self.company_id,
            [LineaComprobante(inventario_id=inv.id, cantidad=Decimal(str(cantidad)), precio_unitario=Decimal(str(costo)))],
            "COMPRA",
            fecha,
            MetodoValoracion.PROMEDIO,
            numero_documento=numero,
            codigo_tabla10="01",
        )

    def venta(self, inv: Inventario, fecha: date, cantidad, metodo=MetodoValoracion.FIFO, numero: str = "B001-1") -> Movimiento:
        return self.lotes.registrar_comprobante(
            self.company_id,
            [LineaComprobante(inventario_id=inv.id, cantidad=Decimal(str(cantidad)), precio_unitario=Decimal("20"))],
            "VENTA",
            fecha,
            metodo,
            numero_documento=numero,
            codigo_tabla10="03",
        )

    def movimiento_crudo(self, inv: Inventario, tipo: TipoMovimiento, fecha: date, cantidad,
                         lote_id=None, asignaciones=(), estado=EstadoMovimiento.PROCESADO) -> Movimiento:
        """Escribe directo al ledger (sin pasar por los servicios ni invalidar el caché)"""
        mov = Movimiento(
            company_id=self.company_id,
            tipo=tipo.value,
            fecha=datetime.combine(fecha, time(12, 0)),
            numero_documento="X-1",
            estado=estado.value,
        )
        detalle = MovimientoDetalle(inventario_id=inv.id, lote_id=lote_id, cantidad=Decimal(str(cantidad)))
        for lid, cant, costo in asignaciones:
            detalle.detalles_salida.append(
                DetalleSalida(lote_id=lid, cantidad=Decimal(str(cant)), costo_unitario_de_lote=Decimal(str(costo)))
            )
        mov.detalles.append(detalle)
        self.uow.db.add(mov)
        self.uow.db.commit()
        return mov

    def periodo(self, fecha_inicio: date, fecha_fin: date) -> PeriodoContable:
        p = PeriodoContable(company_id=self.company_id, fecha_inicio=fecha_inicio, fecha_fin=fecha_fin, activo=True)
        self.uow.db.add(p)
        self.uow.db.commit()
        return p

    def metodo(self, metodo: str) -> ConfiguracionInventario:
        c = ConfiguracionInventario(company_id=self.company_id, metodo_valoracion=metodo)
        self.uow.db.add(c)
        self.uow.db.commit()
        return c


@pytest.fixture
def ledger(uow, cache):
    return LedgerBuilder(uow, cache)


@pytest.fixture
def escenario_ab(ledger):
    """
    Lote A: 2025-01-01, 10 u. a 5 (saldo inicial)
    Lote B: 2025-01-10, 10 u. a 8 (compra)
    """
    inv = ledger.inventario()
    lote_a = ledger.saldo_inicial(inv, date(2025, 1, 1), 10, 5)
    ledger.compra(inv, date(2025, 1, 10), 10, 8, numero="F001-100")
    lote_b = [l for l in ledger.uow.lotes.listar_por_inventario(inv.id) if l.id != lote_a.id][0]
    return inv, lote_a, lote_b
