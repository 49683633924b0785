import pytest


@pytest.mark.utility
class TestAppRoutes:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.get_json()["success"] is True

    def test_api_test(self, client):
        assert client.get("/api/test").status_code == 200

    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.get_json()["success"] is False

    def test_non_json_body_is_rejected(self, client, db):
        response = client.post("/api/products", data="name=x", content_type="text/plain")
        assert response.status_code == 400

    def test_swagger_spec_is_served(self, client):
        response = client.get("/apispec.json")
        assert response.status_code == 200
        assert "/api/invoices" in response.get_json()["paths"]
