"""
Excepciones del motor de stock y Kardex.

Jerarquía:
- InventarioError
  - RecursoNoEncontradoError (404)
    - InventarioNoEncontradoError
    - LoteNoEncontradoError
  - StockInsuficienteError (409, aborta la transacción del comprobante)
  - ConfiguracionNoDisponibleError (se recupera localmente, nunca llega al cliente)
  - ReferenciaInconsistenteError (fatal en escritura, degradada a costo 0 en reportes)
  - DatosInventarioInvalidosError (400)
"""
from decimal import Decimal


class InventarioError(Exception):
    """Excepción base para errores del módulo de inventario"""
    pass


class RecursoNoEncontradoError(InventarioError):
    pass


class InventarioNoEncontradoError(RecursoNoEncontradoError):
    def __init__(self, inventario_id: int):
        self.inventario_id = inventario_id
        super().__init__(f"Inventario {inventario_id} no encontrado")


class LoteNoEncontradoError(RecursoNoEncontradoError):
    def __init__(self, lote_id: int):
        self.lote_id = lote_id
        super().__init__(f"Lote {lote_id} no encontrado")


class StockInsuficienteError(InventarioError):
    """Error cuando el consumo FIFO no puede cubrir la cantidad solicitada"""

    def __init__(self, inventario_id: int, solicitado: Decimal, disponible: Decimal):
        self.inventario_id = inventario_id
        self.solicitado = solicitado
        self.disponible = disponible
        self.faltante = solicitado - disponible
        super().__init__(
            f"Stock insuficiente en inventario {inventario_id}. "
            f"Disponible: {disponible}, Solicitado: {solicitado}, Faltante: {self.faltante}"
        )


class ConfiguracionNoDisponibleError(InventarioError):
    """No se pudo obtener período activo o método de valoración"""
    pass


class ReferenciaInconsistenteError(InventarioError):
    """Una fila del ledger referencia un lote que ya no existe"""
    pass


class DatosInventarioInvalidosError(InventarioError):
    pass
