import pytest

from poolcatalog.shared.dimensions import KINDS, extract, extract_one


def test_extracts_three_dimensions_with_decimal_comma():
    assert extract("Bazén Rentmil 3 x 6 x 1,2 m", "dimensions") == ("3", "6", "1.2")


def test_extracts_pair_with_unicode_times():
    assert extract("Bazén kruhový ø 3,5×1,2 m", "pair") == ("3.5", "1.2")


@pytest.mark.parametrize(
    "text, kind, expected",
    [
        ("PP deska 8 mm dezén", "mm", "8"),
        ("Chlornan sodný 25 kg", "kg", "25"),
        ("Tepelné čerpadlo 9,5 kW", "kw", "9.5"),
        ("LED světlo 35W", "w", "35"),
        ("Úhel 45° 50 mm", "deg", "45"),
        ("Protiproud 60 m3/hod", "m3h", "60"),
        ("Filtrace písková 0,5 m³", "m3", "0.5"),
        ("Skimmer 17,5 l", "l", "17.5"),
        ("Lepidlo PVC 250 ml", "ml", "250"),
        ("Změna hloubky na 1,5", "depth", "1.5"),
    ],
)
def test_single_value_kinds(text, kind, expected):
    assert extract_one(text, kind) == expected


def test_not_found_is_none():
    assert extract("Skimmer bez rozměru", "mm") is None
    assert extract_one("", "kg") is None


def test_flow_rate_is_not_a_volume():
    assert extract_one("Protiproud 60 m3/hod", "m3") is None


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        extract("Bazén", "inch")
    assert "dimensions" in KINDS
