import logging

import pytest

from poolcatalog.app.errors import CatalogValidationError
from poolcatalog.app.models import CatalogItem, GeneratedQuoteItem
from poolcatalog.app.prerequisites import check_prerequisites, prerequisite_items, skips_prerequisites
from poolcatalog.app.pricing import validate_catalog
from poolcatalog.app.services.quote_service import SelectionRule, resolve_quote

POOL = CatalogItem(id="BAZ-OBD-SK-3-6-1.2", code="BAZ-OBD-SK-3-6-1.2", name="Bazén 3 x 6 x 1,2 m", category="bazeny", unit_price=150000.0)
CIRCLE_POOL = CatalogItem(id="BAZ-KRU-SK-3-1.2", code="BAZ-KRU-SK-3-1.2", name="Bazén kruh 3 x 1,2 m", category="bazeny", unit_price=90000.0)
CORNERS = CatalogItem(id="MOD-OSTRE-ROHY", code="MOD-OSTRE-ROHY", name="Ostré rohy", category="prislusenstvi", unit_price=8000.0)
MATERIAL = CatalogItem(
    id="MAT-PP-8",
    code="MAT-PP-8",
    name="Materiál 8 mm",
    category="material",
    unit_price=12000.0,
    prerequisite_product_ids=("MOD-OSTRE-ROHY",),
    prerequisite_pool_shapes=("circle",),
)
CATALOG = [POOL, CIRCLE_POOL, CORNERS, MATERIAL]


def _line(product_id):
    return GeneratedQuoteItem(
        product_id=product_id, name=product_id, category="", quantity=1, unit="ks", unit_price=1, total_price=1
    )


def test_without_prerequisites_can_add():
    check = check_prerequisites(CORNERS, [], "rectangle_sharp", CATALOG)
    assert check.can_add is True
    assert check.missing == []


def test_missing_prerequisite_is_reported():
    check = check_prerequisites(MATERIAL, [_line(POOL.id)], "rectangle_sharp", CATALOG)
    assert check.can_add is False
    assert check.missing == [CORNERS]
    assert check.message == 'Pro přidání "Materiál 8 mm" je nutné nejprve přidat: Ostré rohy'


def test_present_prerequisite_allows_adding():
    check = check_prerequisites(MATERIAL, [_line(CORNERS.id)], "rectangle_sharp", CATALOG)
    assert check.can_add is True


def test_circle_pool_skips_prerequisites():
    check = check_prerequisites(MATERIAL, [], "circle", CATALOG)
    assert check.can_add is True
    assert check.skipped_due_to_shape is True
    assert skips_prerequisites(MATERIAL, None) is False


def test_prerequisite_outside_catalog_gets_generic_message():
    check = check_prerequisites(MATERIAL, [], "rectangle_sharp", [MATERIAL])
    assert check.can_add is False
    assert check.missing_ids == ["MOD-OSTRE-ROHY"]
    assert check.message == 'Pro přidání "Materiál 8 mm" chybí požadované produkty'


def test_prerequisite_items():
    assert prerequisite_items(MATERIAL, CATALOG) == [CORNERS]
    assert prerequisite_items(CORNERS, CATALOG) == []


RULES = [SelectionRule(field="technology", value="pp8", category="material", product_code="MAT-PP-8")]


def test_quote_reports_unmet_prerequisites(caplog):
    configuration = {
        "id": "cfg-8",
        "pool_shape": "rectangle_sharp",
        "pool_type": "skimmer",
        "dimensions": {"width": 3, "length": 6, "depth": 1.2},
        "technology": ["pp8"],
    }
    with caplog.at_level(logging.WARNING):
        resolution = resolve_quote(configuration, CATALOG, [], rules=RULES)
    assert [item.product_id for item in resolution.items] == ["BAZ-OBD-SK-3-6-1.2", "MAT-PP-8"]
    assert resolution.prerequisite_messages == ['Pro přidání "Materiál 8 mm" je nutné nejprve přidat: Ostré rohy']
    assert "quote.prerequisites_unmet product=MAT-PP-8" in caplog.text

    satisfied = resolve_quote(configuration, CATALOG, [_line(CORNERS.id)], rules=RULES)
    assert satisfied.unmet_prerequisites == []


def test_quote_on_circle_pool_has_no_prerequisite_notes():
    configuration = {
        "id": "cfg-9",
        "pool_shape": "circle",
        "pool_type": "skimmer",
        "dimensions": {"diameter": 3, "depth": 1.2},
        "technology": ["pp8"],
    }
    resolution = resolve_quote(configuration, CATALOG, [], rules=RULES)
    assert [item.product_id for item in resolution.items] == ["BAZ-KRU-SK-3-1.2", "MAT-PP-8"]
    assert resolution.unmet_prerequisites == []


def test_validation_checks_prerequisite_fields():
    broken = CatalogItem(
        id="MAT-X",
        code="MAT-X",
        name="Materiál X",
        unit_price=1.0,
        prerequisite_product_ids=("MAT-X", "NIC"),
        prerequisite_pool_shapes=("ovál",),
    )
    with pytest.raises(CatalogValidationError) as exc:
        validate_catalog(CATALOG + [broken])
    assert exc.value.problems == [
        "MAT-X: vyžaduje sám sebe jako předpoklad",
        "MAT-X: neznámý předpoklad 'NIC'",
        "MAT-X: neznámý tvar bazénu 'ovál'",
    ]
