"""
Servicios de Inventario
=======================

Alta de posiciones de inventario (producto x almacén), siembra y corrección
del saldo inicial, y consulta de stock a la fecha de corte del período.

El saldo inicial es el único registro del ledger que se corrige en el lugar:
se actualizan el lote INV-INIT y la cantidad de su detalle, y nada más.
"""
from decimal import Decimal
from typing import Optional
import logging

from ..domain.models_inventario import Inventario
from ..domain.numeros import a_cantidad, a_costo, a_decimal
from ..infrastructure.stock_cache import StockCache
from ..infrastructure.unit_of_work import UnitOfWork
from .exceptions_inventario import (
    DatosInventarioInvalidosError, InventarioNoEncontradoError, RecursoNoEncontradoError,
)
from .schemas_stock import InventarioStock
from .services_lotes import CreacionLotesService
from .services_periodo import PeriodoService
from .services_stock import CalculoStockService

logger = logging.getLogger(__name__)


class InventarioService:
    """
    Servicio principal del módulo de inventario.

    Args:
        uow: UnitOfWork
        cache: StockCache del proceso
    """

    def __init__(self, uow: UnitOfWork, cache: StockCache):
        self.uow = uow
        self.stock = CalculoStockService(uow, cache)
        self.lotes = CreacionLotesService(uow, cache)
        self.periodos = PeriodoService(uow)

    def _inventario(self, inventario_id: int, company_id: Optional[int] = None) -> Inventario:
        inventario = self.uow.inventarios.get(inventario_id)
        if not inventario or (company_id is not None and inventario.company_id != company_id):
            raise InventarioNoEncontradoError(inventario_id)
        return inventario

    def registrar_inventario(
        self,
        company_id: int,
        producto_id: int,
        almacen_id: int,
        stock_inicial: Optional[Decimal] = None,
        precio_unitario: Optional[Decimal] = None,
    ) -> Inventario:
        """
        Crea la posición de inventario y, si stock y precio son positivos,
        siembra el saldo inicial al 1 de enero del año del período activo.

        Raises:
            RecursoNoEncontradoError: producto o almacén inexistente
            DatosInventarioInvalidosError: la posición ya existe
        """
        if not self.uow.productos.get(producto_id):
            raise RecursoNoEncontradoError(f"Producto {producto_id} no encontrado")
        if not self.uow.almacenes.get(almacen_id):
            raise RecursoNoEncontradoError(f"Almacén {almacen_id} no encontrado")
        if self.uow.inventarios.by_producto_almacen(producto_id, almacen_id):
            raise DatosInventarioInvalidosError(
                f"Ya existe inventario para el producto {producto_id} en el almacén {almacen_id}"
            )

        stock_inicial = a_decimal(stock_inicial)
        precio_unitario = a_decimal(precio_unitario)
        with self.uow.transaction():
            inventario = self.uow.inventarios.add(Inventario(
                company_id=company_id, producto_id=producto_id, almacen_id=almacen_id,
            ))
            if stock_inicial > 0 and precio_unitario > 0:
                fecha = self.periodos.obtener_fecha_saldo_inicial(company_id)
                self.lotes.crear_lote_y_movimiento_entrada(inventario.id, stock_inicial, precio_unitario, fecha)

        self.stock.invalidar([inventario.id])
        logger.info(f"Inventario {inventario.id} registrado (producto={producto_id}, almacén={almacen_id})")
        return inventario

    def obtener_inventario_inicial(self, inventario_id: int) -> dict:
        """
        Saldo inicial (lote INV-INIT) del inventario.

        Raises:
            RecursoNoEncontradoError: si el inventario no tiene saldo inicial
        """
        self._inventario(inventario_id)
        detalle = self.uow.movimientos.detalle_inv_init(inventario_id)
        if not detalle or not detalle.lote_id:
            raise RecursoNoEncontradoError(f"Inventario {inventario_id} sin saldo inicial")
        lote = self.uow.lotes.get(detalle.lote_id)
        return {
            "inventario_id": inventario_id,
            "lote_id": lote.id,
            "movimiento_id": detalle.movimiento_id,
            "cantidad": a_cantidad(lote.cantidad_inicial),
            "costo_unitario": a_costo(lote.costo_unitario),
            "fecha_ingreso": lote.fecha_ingreso,
        }

    def actualizar_inventario_inicial(
        self,
        inventario_id: int,
        cantidad: Optional[Decimal] = None,
        costo_unitario: Optional[Decimal] = None,
    ) -> dict:
        """
        Corrige el saldo inicial: campos del lote indicados y, si cambia la
        cantidad, la cantidad del detalle del movimiento INV-INIT.

        Raises:
            RecursoNoEncontradoError: si el inventario no tiene saldo inicial
            DatosInventarioInvalidosError: cantidad <= 0 o costo negativo
        """
        if cantidad is not None and a_decimal(cantidad) <= 0:
            raise DatosInventarioInvalidosError("La cantidad del saldo inicial debe ser mayor a 0")
        if costo_unitario is not None and a_decimal(costo_unitario) < 0:
            raise DatosInventarioInvalidosError("El costo unitario no puede ser negativo")

        self._inventario(inventario_id)
        with self.uow.transaction():
            detalle = self.uow.movimientos.detalle_inv_init(inventario_id)
            if not detalle or not detalle.lote_id:
                raise RecursoNoEncontradoError(f"Inventario {inventario_id} sin saldo inicial")
            lote = self.uow.lotes.get(detalle.lote_id)
            if cantidad is not None:
                lote.cantidad_inicial = a_decimal(cantidad)
                detalle.cantidad = a_decimal(cantidad)
            if costo_unitario is not None:
                lote.costo_unitario = a_decimal(costo_unitario)
            lote_id = lote.id

        self.stock.invalidar([inventario_id], [lote_id])
        logger.info(f"Saldo inicial del inventario {inventario_id} corregido (cantidad={cantidad}, costo={costo_unitario})")
        return self.obtener_inventario_inicial(inventario_id)

    def obtener_stock(self, company_id: int, inventario_id: int) -> InventarioStock:
        """Stock a la fecha de corte del período activo (hoy si no hay período)"""
        self._inventario(inventario_id, company_id)
        corte = self.periodos.obtener_fecha_corte(company_id)
        return self.stock.calcular_stock_inventario(inventario_id, corte)
