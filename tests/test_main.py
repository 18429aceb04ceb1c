class TestServiceEndpoints:

    def test_health_reaches_database(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"] == "ok"
        assert "X-Process-Time" in response.headers

    def test_api_info(self, client):
        data = client.get("/api/v1/info").json()

        assert data["slot_conflicts_enforced"] is False
        assert data["endpoints"]["appointments"] == "/api/v1/appointments"

    def test_unknown_route_uses_json_404(self, client):
        response = client.get("/api/v1/nothing-here")

        assert response.status_code == 404
        assert response.json()["path"] == "/api/v1/nothing-here"
