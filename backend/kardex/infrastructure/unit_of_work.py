from contextlib import contextmanager
from sqlalchemy.orm import Session
from ..db import SessionLocal
from .repositories import (
    ProductoRepository, AlmacenRepository, InventarioRepository, LoteRepository,
    MovimientoRepository, PeriodoRepository,
)

class UnitOfWork:
    def __init__(self, db: Session = None):
        self.db: Session = db if db is not None else SessionLocal()
        self.productos = ProductoRepository(self.db)
        self.almacenes = AlmacenRepository(self.db)
        self.inventarios = InventarioRepository(self.db)
        self.lotes = LoteRepository(self.db)
        self.movimientos = MovimientoRepository(self.db)
        self.periodos = PeriodoRepository(self.db)

    def commit(self): self.db.commit()
    def rollback(self): self.db.rollback()
    def close(self): self.db.close()

    @contextmanager
    def transaction(self):
        """Commit al salir; rollback y re-raise ante cualquier excepción. La sesión sigue abierta."""
        try:
            yield self
            self.commit()
        except Exception:
            self.rollback()
            raise
