import pytest


@pytest.mark.products
class TestProducts:
    def test_create_and_list_sorted_by_name(self, client, db):
        for name, sku in (("Ice Pack", "IP-1"), ("Foam Roller", "FR-1")):
            response = client.post(
                "/api/products",
                json={"name": name, "sku": sku, "category": "Equipment", "unit_price": "9.99", "stock_level": 4},
            )
            assert response.status_code == 201

        data = client.get("/api/products").get_json()["data"]
        assert [p["name"] for p in data] == ["Foam Roller", "Ice Pack"]
        assert data[0]["unit_price"] == 9.99
        assert data[0]["stock_level"] == 4

    def test_name_required(self, client, db):
        assert client.post("/api/products", json={"sku": "X-1"}).status_code == 400

    def test_duplicate_sku(self, client, sample_product):
        response = client.post("/api/products", json={"name": "Copy", "sku": "RB-001"})
        assert response.status_code == 400

    def test_get_update_delete(self, client, sample_product):
        assert client.get(f"/api/products/{sample_product}").get_json()["data"]["sku"] == "RB-001"

        response = client.patch(f"/api/products/{sample_product}", json={"stock_level": 25})
        assert response.status_code == 200
        assert response.get_json()["data"]["stock_level"] == 25
        assert response.get_json()["data"]["name"] == "Resistance Band"

        assert client.delete(f"/api/products/{sample_product}").status_code == 200
        assert client.get(f"/api/products/{sample_product}").status_code == 404

    def test_missing_product(self, client, db):
        assert client.get("/api/products/9999").status_code == 404
        assert client.patch("/api/products/9999", json={"name": "x"}).status_code == 404
        assert client.delete("/api/products/9999").status_code == 404
