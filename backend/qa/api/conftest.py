"""
Fixtures para tests de integración API.
Usa TestClient de FastAPI contra la app real, con la BD y el caché
reemplazados por SQLite en memoria y un StockCache nuevo por test.
"""
import pytest
import sys
from pathlib import Path

# Asegurar que el path permita imports de kardex
root_dir = Path(__file__).parent.parent.parent
sys.path.insert(0, str(root_dir))

from fastapi.testclient import TestClient

# Import app después de path
from kardex.main import app
from kardex.dependencies import get_db, get_uow, get_stock_cache
from kardex.domain.models_inventario import Producto, Almacen
from kardex.infrastructure.stock_cache import StockCache
from kardex.infrastructure.unit_of_work import UnitOfWork


@pytest.fixture
def client(session_factory):
    """Cliente HTTP con dependencias apuntando a la BD de prueba."""
    cache = StockCache(ttl_seconds=0)

    def _db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def _uow():
        uow = UnitOfWork(session_factory())
        try:
            yield uow
        finally:
            uow.close()

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_uow] = _uow
    app.dependency_overrides[get_stock_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def maestros(db):
    """Producto y almacén de la empresa 1"""
    producto = Producto(company_id=1, codigo="P001", nombre="Producto A")
    almacen = Almacen(company_id=1, codigo="A001", nombre="Almacén Principal")
    db.add_all([producto, almacen])
    db.commit()
    return producto.id, almacen.id
