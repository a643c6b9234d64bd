"""
Tests de API - Health y disponibilidad
"""


class TestHealthAPI:
    """Tests de endpoints de health"""

    def test_health_ready_returns_200(self, client):
        """GET /health/ready debe retornar 200"""
        r = client.get("/health/ready")
        assert r.status_code == 200

    def test_health_ready_response_body(self, client):
        """GET /health/ready debe retornar status ok"""
        r = client.get("/health/ready")
        assert r.json().get("status") == "ok"

    def test_health_db(self, client):
        """GET /health/db ejecuta una consulta contra la BD"""
        r = client.get("/health/db")
        assert r.status_code == 200
        assert r.json() == {"status": "ok", "database": "ok"}
