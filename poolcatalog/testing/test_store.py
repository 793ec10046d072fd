from datetime import timezone

import pytest

import poolcatalog.store.catalog_store as catalog_store


@pytest.fixture()
def store(tmp_path, monkeypatch):
    monkeypatch.setenv("POOLCATALOG_DB_URL", f"sqlite:///{tmp_path / 'test.db'}")
    catalog_store.init_db()
    return catalog_store


def test_product_crud(store):
    result = store.upsert_product(
        {"code": "BAZ-OBD-SK-3-6-1.2", "name": "Bazén 3 x 6 x 1,2 m", "category": "bazeny", "unit_price": 150000}
    )
    assert result["code"] == "BAZ-OBD-SK-3-6-1.2"
    assert result["price_type"] == "fixed"
    assert result["active"] is True

    products = store.list_products()
    assert len(products) == 1
    assert products[0]["unit_price"] == 150000

    assert store.delete_product("BAZ-OBD-SK-3-6-1.2") is True
    assert store.list_products() == []
    assert store.list_products(include_inactive=True)[0]["active"] is False
    assert store.delete_product("NEEXISTUJE") is False


def test_upsert_updates_existing_code(store):
    store.upsert_product({"code": "SVET-LED", "name": "Světlo LED", "unit_price": 4500})
    store.delete_product("SVET-LED")
    store.upsert_product({"code": "SVET-LED", "name": "Světlo LED RGB", "unit_price": 5200, "active": True})
    products = store.get_active_products()
    assert [(p["name"], p["unit_price"]) for p in products] == [("Světlo LED RGB", 5200)]


def test_load_catalog_returns_items_keyed_by_code(store):
    store.upsert_product(
        {
            "code": "SVET-LED",
            "name": "Světlo LED",
            "unit_price": 4500,
            "required_surcharge_ids": ["SLUZ-MONTAZ-SVET", "TRAFO-50"],
            "tags": "led;osvetleni",
        }
    )
    store.upsert_product(
        {
            "code": "SLUZ-MONTAZ-SVET",
            "name": "Montáž světel",
            "price_type": "percentage",
            "reference_product_id": "SVET-LED",
            "percentage": 10,
            "active": False,
        }
    )
    catalog = {item.code: item for item in store.load_catalog()}
    assert catalog["SVET-LED"].id == "SVET-LED"
    assert catalog["SVET-LED"].required_surcharge_ids == ("SLUZ-MONTAZ-SVET", "TRAFO-50")
    assert catalog["SVET-LED"].tags == ("led", "osvetleni")
    assert catalog["SLUZ-MONTAZ-SVET"].active is False
    assert catalog["SLUZ-MONTAZ-SVET"].percentage == 10
    assert [item.code for item in store.load_catalog(include_inactive=False)] == ["SVET-LED"]


def test_filter_codes(store):
    for code in ("A-1", "B-1", "C-1"):
        store.upsert_product({"code": code, "name": f"Produkt {code}", "unit_price": 1})
    assert [p["code"] for p in store.list_products(filter_codes=["C-1", "A-1"])] == ["A-1", "C-1"]


def test_upsert_requires_code_and_name(store):
    with pytest.raises(ValueError):
        store.upsert_product({"code": "", "name": "Bez kódu"})


def test_configuration_roundtrip(store):
    payload = {"pool_shape": "circle", "pool_type": "skimmer", "dimensions": {"diameter": 3.5, "depth": 1.2}}
    store.save_configuration("cfg-1", payload)
    store.save_configuration("cfg-1", {**payload, "lighting": "led"})
    loaded = store.get_configuration("cfg-1")
    assert loaded["id"] == "cfg-1"
    assert loaded["lighting"] == "led"
    assert loaded["dimensions"] == {"diameter": 3.5, "depth": 1.2}
    assert store.get_configuration("missing") is None


def test_prerequisites_are_stored(store):
    store.upsert_product(
        {
            "code": "MAT-PP-8",
            "name": "Materiál 8 mm",
            "unit_price": 12000,
            "prerequisite_product_ids": ["MOD-OSTRE-ROHY"],
            "prerequisite_pool_shapes": "circle",
        }
    )
    (item,) = store.load_catalog()
    assert item.prerequisite_product_ids == ("MOD-OSTRE-ROHY",)
    assert item.prerequisite_pool_shapes == ("circle",)
    assert store.list_products()[0]["prerequisite_product_ids"] == "MOD-OSTRE-ROHY"


def test_timestamps_use_aware_utc(store):
    assert store._utcnow().tzinfo is timezone.utc
    store.upsert_product({"code": "A-1", "name": "Produkt A", "unit_price": 1})
    store.delete_product("A-1")
    store.save_configuration("cfg-1", {"pool_shape": "circle"})
    store.save_configuration("cfg-1", {"pool_shape": "rectangle"})
    assert store.get_configuration("cfg-1")["pool_shape"] == "rectangle"
