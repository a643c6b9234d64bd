from .config import settings
from .db import SessionLocal
from .infrastructure.stock_cache import StockCache
from .infrastructure.unit_of_work import UnitOfWork

# Una instancia por proceso; los servicios la reciben inyectada
_stock_cache = StockCache(ttl_seconds=settings.stock_cache_ttl_seconds)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_stock_cache() -> StockCache:
    return _stock_cache


def get_uow():
    uow = UnitOfWork()
    try:
        yield uow
    finally:
        uow.close()
