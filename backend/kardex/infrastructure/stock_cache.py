"""
Caché en memoria de resultados de stock
=======================================

Guarda los resultados de stock calculados SIN fecha de corte, por lote y por
inventario. La coherencia se logra invalidando explícitamente después de cada
escritura al ledger (invalidate-on-write); el TTL solo acota la antigüedad.

La instancia se inyecta en los servicios; su vida útil es la del proceso.
"""
import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from ..application.schemas_stock import LoteStock, InventarioStock

logger = logging.getLogger(__name__)


class StockCache:
    def __init__(self, ttl_seconds: int = 0, reloj: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._reloj = reloj
        self._lock = threading.RLock()
        self._lotes: Dict[int, Tuple[float, LoteStock]] = {}
        self._inventarios: Dict[int, Tuple[float, InventarioStock]] = {}

    def _vigente(self, guardado_en: float) -> bool:
        if not self.ttl_seconds:
            return True
        return (self._reloj() - guardado_en) < self.ttl_seconds

    # ===== LOTES =====

    def get_lote(self, lote_id: int) -> Optional[LoteStock]:
        with self._lock:
            entrada = self._lotes.get(lote_id)
            if entrada is None:
                return None
            guardado_en, valor = entrada
            if not self._vigente(guardado_en):
                del self._lotes[lote_id]
                return None
            logger.debug(f"[STOCK-CACHE] Hit lote={lote_id}")
            return valor

    def set_lote(self, valor: LoteStock) -> None:
        with self._lock:
            self._lotes[valor.lote_id] = (self._reloj(), valor)

    def invalidar_lote(self, lote_id: int) -> None:
        with self._lock:
            self._lotes.pop(lote_id, None)
        logger.debug(f"[STOCK-CACHE] Invalidado lote={lote_id}")

    # ===== INVENTARIOS =====

    def get_inventario(self, inventario_id: int) -> Optional[InventarioStock]:
        with self._lock:
            entrada = self._inventarios.get(inventario_id)
            if entrada is None:
                return None
            guardado_en, valor = entrada
            if not self._vigente(guardado_en):
                del self._inventarios[inventario_id]
                return None
            logger.debug(f"[STOCK-CACHE] Hit inventario={inventario_id}")
            return valor

    def set_inventario(self, valor: InventarioStock) -> None:
        with self._lock:
            self._inventarios[valor.inventario_id] = (self._reloj(), valor)

    def invalidar_inventario(self, inventario_id: int) -> None:
        """Invalida el inventario y todos los lotes cacheados que le pertenecen"""
        with self._lock:
            self._inventarios.pop(inventario_id, None)
            lotes = [lid for lid, (_, v) in self._lotes.items() if v.inventario_id == inventario_id]
            for lote_id in lotes:
                del self._lotes[lote_id]
        logger.debug(f"[STOCK-CACHE] Invalidado inventario={inventario_id} lotes={len(lotes)}")

    def limpiar(self) -> None:
        with self._lock:
            self._lotes.clear()
            self._inventarios.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._lotes) + len(self._inventarios)
