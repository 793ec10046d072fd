import pytest
from fastapi.testclient import TestClient

import poolcatalog.main as main

POOL = {"code": "BAZ-OBD-SK-3-6-1.2", "name": "Bazén 3 x 6 x 1,2 m", "category": "bazeny", "unit_price": 150000}
LIGHT = {"code": "SVET-LED", "name": "Světlo LED", "category": "osvetleni", "unit_price": 4500}
ROOF = {
    "code": "ZASTRE-PRACTIC",
    "name": "Zastřešení Practic",
    "category": "zastreseni",
    "price_type": "coefficient",
    "coefficient": 650,
    "coefficient_unit": "m2",
}
CONFIGURATION = {
    "id": "cfg-1",
    "pool_shape": "rectangle_rounded",
    "pool_type": "skimmer",
    "dimensions": {"width": 3, "length": 6, "depth": 1.2},
    "lighting": "led",
    "roofing": "with_roofing",
}


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("POOLCATALOG_DB_URL", f"sqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setenv("QUOTE_DELIVERY_LINE", "0")
    with TestClient(main.app) as test_client:
        yield test_client


def _seed(client):
    for product in (POOL, LIGHT, ROOF):
        response = client.post("/api/catalog/products", json=product)
        assert response.status_code == 200, response.text


def test_health(client):
    health = client.get("/api/health").json()
    assert health["ok"] is True
    assert health["time"].endswith("+00:00")
    assert client.get("/").json()["service"] == "poolcatalog-backend"


def test_parse_pool_code(client):
    body = client.get("/api/catalog/pool-code/BAZ-KRU-PR-3.5-1.2").json()
    assert body["pool"] == {"shape": "circle", "type": "overflow", "diameter": 3.5, "depth": 1.2}
    assert body["perimeter"] == pytest.approx(11.0, abs=0.01)

    assert client.get("/api/catalog/pool-code/SCHOD-STD").json() == {"code": "SCHOD-STD", "pool": None}


def test_product_endpoints(client):
    _seed(client)
    products = client.get("/api/catalog/products").json()["products"]
    assert [product["code"] for product in products] == ["BAZ-OBD-SK-3-6-1.2", "SVET-LED", "ZASTRE-PRACTIC"]

    assert client.delete("/api/catalog/products/SVET-LED").json() == {"ok": True, "code": "SVET-LED"}
    assert len(client.get("/api/catalog/products").json()["products"]) == 2
    assert len(client.get("/api/catalog/products", params={"include_inactive": True}).json()["products"]) == 3
    assert client.delete("/api/catalog/products/NEEXISTUJE").status_code == 404


def test_invalid_product_is_rejected(client):
    response = client.post(
        "/api/catalog/products",
        json={
            "code": "SLUZ-MONTAZ",
            "name": "Montáž",
            "price_type": "percentage",
            "reference_product_id": "NEEXISTUJE",
            "percentage": 10,
        },
    )
    assert response.status_code == 422
    assert "NEEXISTUJE" in response.json()["detail"]


def test_generate_items_from_stored_configuration(client):
    _seed(client)
    assert client.post("/api/configurations", json=CONFIGURATION).status_code == 200
    assert client.get("/api/configurations/cfg-1").json()["lighting"] == "led"

    response = client.post("/api/quotes/generate-items", json={"configuration_id": "cfg-1", "variant_key": "A"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [item["product_id"] for item in body["items"]] == ["BAZ-OBD-SK-3-6-1.2", "SVET-LED", "ZASTRE-PRACTIC"]
    assert body["subtotal"] == 180240
    assert body["unmatched"] == []
    assert body["prerequisites"] == []
    assert body["message"] is None

    again = client.post(
        "/api/quotes/generate-items",
        json={"configuration_id": "cfg-1", "variant_key": "A", "existing_items": body["items"]},
    ).json()
    assert again["added"] == 0
    assert again["items"] == body["items"]


def test_generate_items_with_inline_configuration(client):
    _seed(client)
    configuration = dict(CONFIGURATION, stairs="roman")
    configuration.pop("id")
    body = client.post(
        "/api/quotes/generate-items",
        json={"configuration_id": "draft", "configuration": configuration},
    ).json()
    assert body["unmatched"] == ["stairs=roman"]
    assert "Schodiště: roman" in body["message"]


def test_generate_items_errors(client):
    response = client.post("/api/quotes/generate-items", json={"configuration_id": "missing"})
    assert response.status_code == 404
    assert "neexistuje" in response.json()["detail"]

    client.post("/api/catalog/products", json=ROOF)
    configuration = dict(CONFIGURATION, dimensions={"width": 3, "length": 6})
    response = client.post(
        "/api/quotes/generate-items",
        json={"configuration_id": "draft", "configuration": configuration},
    )
    assert response.status_code == 422
    assert "beze změny" in response.json()["detail"]
    assert client.get("/api/configurations/nope").status_code == 404
