"""
Tests de registro de inventarios y corrección del saldo inicial
"""
import pytest
from datetime import date
from decimal import Decimal

from kardex.application.exceptions_inventario import (
    DatosInventarioInvalidosError, InventarioNoEncontradoError, RecursoNoEncontradoError,
)
from kardex.application.services_inventario import InventarioService
from kardex.domain.models_inventario import Producto, Almacen, MovimientoDetalle


@pytest.fixture
def servicio(uow, cache):
    return InventarioService(uow, cache)


@pytest.fixture
def maestros(db):
    producto = Producto(company_id=1, codigo="P900", nombre="Tornillo")
    almacen = Almacen(company_id=1, codigo="A900", nombre="Central")
    db.add_all([producto, almacen])
    db.commit()
    return producto, almacen


class TestRegistrarInventario:

    def test_con_saldo_inicial_al_inicio_del_anio(self, servicio, maestros, ledger):
        producto, almacen = maestros
        ledger.periodo(date(2025, 6, 1), date(2025, 6, 30))
        inv = servicio.registrar_inventario(1, producto.id, almacen.id, Decimal("10"), Decimal("5"))

        inicial = servicio.obtener_inventario_inicial(inv.id)
        assert inicial["cantidad"] == Decimal("10")
        assert inicial["costo_unitario"] == Decimal("5")
        assert inicial["fecha_ingreso"] == date(2025, 1, 1)
        assert servicio.stock.calcular_stock_inventario(inv.id).stock_actual == Decimal("10")

    def test_sin_saldo_inicial(self, servicio, maestros):
        producto, almacen = maestros
        inv = servicio.registrar_inventario(1, producto.id, almacen.id)
        with pytest.raises(RecursoNoEncontradoError):
            servicio.obtener_inventario_inicial(inv.id)

    def test_duplicado(self, servicio, maestros):
        producto, almacen = maestros
        servicio.registrar_inventario(1, producto.id, almacen.id)
        with pytest.raises(DatosInventarioInvalidosError):
            servicio.registrar_inventario(1, producto.id, almacen.id)

    def test_producto_inexistente(self, servicio, maestros):
        _, almacen = maestros
        with pytest.raises(RecursoNoEncontradoError):
            servicio.registrar_inventario(1, 9999, almacen.id)


class TestCorreccionSaldoInicial:

    def test_corrige_cantidad_en_lote_y_detalle(self, servicio, ledger, db):
        inv = ledger.inventario()
        lote = ledger.saldo_inicial(inv, date(2025, 1, 1), 10, 5)
        assert servicio.stock.calcular_stock_inventario(inv.id).stock_actual == Decimal("10")

        resultado = servicio.actualizar_inventario_inicial(inv.id, cantidad=Decimal("12"))

        assert resultado["cantidad"] == Decimal("12")
        detalle = db.query(MovimientoDetalle).filter_by(lote_id=lote.id).one()
        assert detalle.cantidad == Decimal("12")
        assert servicio.stock.calcular_stock_inventario(inv.id).stock_actual == Decimal("12")

    def test_corrige_costo(self, servicio, ledger):
        inv = ledger.inventario()
        ledger.saldo_inicial(inv, date(2025, 1, 1), 10, 5)
        assert servicio.stock.calcular_costo_promedio(inv.id) == Decimal("5")

        servicio.actualizar_inventario_inicial(inv.id, costo_unitario=Decimal("6"))
        assert servicio.stock.calcular_costo_promedio(inv.id) == Decimal("6")

    def test_sin_saldo_inicial(self, servicio, ledger):
        inv = ledger.inventario()
        with pytest.raises(RecursoNoEncontradoError):
            servicio.actualizar_inventario_inicial(inv.id, cantidad=Decimal("1"))

    def test_inventario_inexistente(self, servicio):
        with pytest.raises(InventarioNoEncontradoError):
            servicio.actualizar_inventario_inicial(9999, cantidad=Decimal("1"))

    def test_cantidad_invalida(self, servicio, ledger):
        inv = ledger.inventario()
        ledger.saldo_inicial(inv, date(2025, 1, 1), 10, 5)
        with pytest.raises(DatosInventarioInvalidosError):
            servicio.actualizar_inventario_inicial(inv.id, cantidad=Decimal("0"))


class TestObtenerStock:

    def test_corte_del_periodo(self, servicio, ledger):
        inv = ledger.inventario()
        ledger.saldo_inicial(inv, date(2025, 1, 1), 10, 5)
        ledger.compra(inv, date(2025, 2, 10), 4, 5)
        ledger.periodo(date(2025, 1, 1), date(2025, 1, 31))
        assert servicio.obtener_stock(1, inv.id).stock_actual == Decimal("10")

    def test_otra_empresa(self, servicio, ledger):
        inv = ledger.inventario()
        with pytest.raises(InventarioNoEncontradoError):
            servicio.obtener_stock(2, inv.id)
