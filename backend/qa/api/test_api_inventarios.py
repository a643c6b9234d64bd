"""
Tests de API - Inventarios, comprobantes, stock y Kardex
"""
import pytest
from datetime import date
from decimal import Decimal

from kardex.domain.models_inventario import PeriodoContable, ConfiguracionInventario


@pytest.fixture
def periodo_2025(db):
    db.add(PeriodoContable(company_id=1, fecha_inicio=date(2025, 1, 1), fecha_fin=date(2025, 12, 31), activo=True))
    db.commit()


@pytest.fixture
def inventario_id(client, maestros, periodo_2025):
    """Inventario con saldo inicial 10 u. a 5 (al 01/01/2025) y compra de 10 u. a 8 (10/01/2025)"""
    producto_id, almacen_id = maestros
    r = client.post("/inventarios", json={
        "company_id": 1, "producto_id": producto_id, "almacen_id": almacen_id,
        "stock_inicial": "10", "precio_unitario": "5",
    })
    assert r.status_code == 200, r.text
    inv_id = r.json()["id"]
    r = client.post("/inventarios/comprobantes", json={
        "company_id": 1, "tipo_operacion": "COMPRA", "fecha": "2025-01-10",
        "numero_documento": "F001-100", "codigo_tabla10": "01",
        "lineas": [{"inventario_id": inv_id, "cantidad": "10", "precio_unitario": "8"}],
    })
    assert r.status_code == 200, r.text
    return inv_id


def _venta(client, inv_id, cantidad, metodo="FIFO"):
    return client.post("/inventarios/comprobantes", json={
        "company_id": 1, "tipo_operacion": "VENTA", "fecha": "2025-01-15",
        "numero_documento": "B001-1", "codigo_tabla10": "03", "metodo_valoracion": metodo,
        "lineas": [{"inventario_id": inv_id, "cantidad": str(cantidad), "precio_unitario": "20"}],
    })


class TestInventariosAPI:

    def test_stock(self, client, inventario_id):
        r = client.get(f"/inventarios/{inventario_id}/stock", params={"company_id": 1})
        assert r.status_code == 200
        data = r.json()
        assert Decimal(data["stock_actual"]) == Decimal("20")
        assert Decimal(data["costo_promedio_actual"]) == Decimal("6.5")
        assert len(data["lotes"]) == 2

    def test_inventario_duplicado(self, client, inventario_id, maestros):
        producto_id, almacen_id = maestros
        r = client.post("/inventarios", json={"company_id": 1, "producto_id": producto_id, "almacen_id": almacen_id})
        assert r.status_code == 400

    def test_venta_y_lotes_fifo(self, client, inventario_id):
        r = _venta(client, inventario_id, 15)
        assert r.status_code == 200, r.text
        assert r.json()["tipo"] == "SALIDA"

        r = client.get(f"/inventarios/{inventario_id}/lotes-fifo")
        assert r.status_code == 200
        lotes = r.json()
        assert len(lotes) == 1
        assert Decimal(lotes[0]["cantidad_disponible"]) == Decimal("5")
        assert Decimal(lotes[0]["costo_unitario"]) == Decimal("8")

    def test_stock_insuficiente_409(self, client, inventario_id):
        r = _venta(client, inventario_id, 25)
        assert r.status_code == 409
        assert "Stock insuficiente" in r.json()["detail"]

        r = client.get(f"/inventarios/{inventario_id}/stock", params={"company_id": 1})
        assert Decimal(r.json()["stock_actual"]) == Decimal("20")

    def test_kardex(self, client, inventario_id, db):
        db.add(ConfiguracionInventario(company_id=1, metodo_valoracion="PROMEDIO"))
        db.commit()
        _venta(client, inventario_id, 15, metodo="PROMEDIO")

        r = client.get(f"/inventarios/{inventario_id}/kardex", params={
            "company_id": 1, "fecha_inicio": "2025-01-01", "fecha_fin": "2025-01-31",
        })
        assert r.status_code == 200, r.text
        data = r.json()
        assert data["metodo_valoracion"] == "PROMEDIO"
        assert len(data["movimientos"]) == 3
        assert data["movimientos"][2]["costo_unitario"] == "6.5000"
        assert data["cantidad_actual"] == "5.0000"
        assert data["saldo_actual"] == "32.50000000"

    def test_kardex_rango_invertido(self, client, inventario_id):
        r = client.get(f"/inventarios/{inventario_id}/kardex", params={
            "company_id": 1, "fecha_inicio": "2025-02-01", "fecha_fin": "2025-01-01",
        })
        assert r.status_code == 400

    def test_kardex_inventario_inexistente(self, client):
        r = client.get("/inventarios/9999/kardex", params={"company_id": 1})
        assert r.status_code == 404


class TestInventarioInicialAPI:

    def test_get(self, client, inventario_id):
        r = client.get(f"/inventarios/{inventario_id}/inventario-inicial")
        assert r.status_code == 200
        data = r.json()
        assert Decimal(data["cantidad"]) == Decimal("10")
        assert data["fecha_ingreso"] == "2025-01-01"

    def test_patch_actualiza_stock(self, client, inventario_id):
        client.get(f"/inventarios/{inventario_id}/stock", params={"company_id": 1})

        r = client.patch(f"/inventarios/{inventario_id}/inventario-inicial", json={"cantidad": "12"})
        assert r.status_code == 200, r.text
        assert Decimal(r.json()["cantidad"]) == Decimal("12")

        r = client.get(f"/inventarios/{inventario_id}/stock", params={"company_id": 1})
        assert Decimal(r.json()["stock_actual"]) == Decimal("22")

    def test_patch_sin_campos(self, client, inventario_id):
        r = client.patch(f"/inventarios/{inventario_id}/inventario-inicial", json={})
        assert r.status_code == 400

    def test_patch_inventario_inexistente(self, client):
        r = client.patch("/inventarios/9999/inventario-inicial", json={"cantidad": "1"})
        assert r.status_code == 404
