"""Unit price resolution for fixed, percentage and coefficient catalog items."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Union

from poolcatalog.app.errors import CatalogValidationError, MissingMeasurementError, PriceReferenceError
from poolcatalog.app.models import CONFIG_SHAPES, CatalogItem, Measurement

Catalog = Union[Mapping[str, CatalogItem], Iterable[CatalogItem]]

_MEASUREMENT_UNITS = {"m2": "m²", "bm": "bm"}


@dataclass(frozen=True)
class PriceBreakdown:
    price: float
    price_type: str
    reference_price: Optional[float] = None
    percentage: Optional[float] = None
    minimum_applied: bool = False
    coefficient: Optional[float] = None
    coefficient_unit: Optional[str] = None
    measurement_used: Optional[float] = None


def index_catalog(catalog: Catalog) -> Dict[str, CatalogItem]:
    if isinstance(catalog, Mapping):
        return dict(catalog)
    return {item.id: item for item in catalog}


def _reference(item: CatalogItem, catalog: Dict[str, CatalogItem]) -> CatalogItem:
    ref_id = item.reference_product_id
    if not ref_id:
        raise PriceReferenceError(item.code, ref_id, "není vyplněn")
    if ref_id == item.id:
        raise PriceReferenceError(item.code, ref_id, "odkazuje sám na sebe")
    reference = catalog.get(ref_id)
    if reference is None:
        raise PriceReferenceError(item.code, ref_id, "v katalogu neexistuje")
    if reference.price_type != "fixed" or reference.unit_price is None:
        raise PriceReferenceError(item.code, ref_id, "nemá pevnou cenu")
    return reference


def _check_fields(item: CatalogItem) -> None:
    problems = item.price_field_problems()
    if problems:
        raise CatalogValidationError([f"{item.code}: {problem}" for problem in problems])


def resolve_price_breakdown(
    item: CatalogItem,
    catalog: Catalog,
    measurement: Optional[Measurement] = None,
) -> PriceBreakdown:
    if item.price_type == "fixed":
        _check_fields(item)
        return PriceBreakdown(price=item.unit_price, price_type="fixed")

    if item.price_type == "percentage":
        reference = _reference(item, index_catalog(catalog))
        _check_fields(item)
        raw = reference.unit_price * item.percentage / 100
        if item.minimum_price is not None and raw < item.minimum_price:
            return PriceBreakdown(
                price=item.minimum_price,
                price_type="percentage",
                reference_price=reference.unit_price,
                percentage=item.percentage,
                minimum_applied=True,
            )
        return PriceBreakdown(
            price=raw,
            price_type="percentage",
            reference_price=reference.unit_price,
            percentage=item.percentage,
        )

    if item.price_type == "coefficient":
        if measurement is None:
            raise MissingMeasurementError(item.code)
        _check_fields(item)
        if item.coefficient_unit == "m2":
            value = measurement.area
        else:
            value = measurement.perimeter
        return PriceBreakdown(
            price=item.coefficient * value,
            price_type="coefficient",
            coefficient=item.coefficient,
            coefficient_unit=item.coefficient_unit,
            measurement_used=value,
        )

    raise CatalogValidationError([f"{item.code}: neznámý typ ceny '{item.price_type}'"])


def resolve_price(item: CatalogItem, catalog: Catalog, measurement: Optional[Measurement] = None) -> float:
    """Unit price of *item*; not rounded so repeated resolution stays stable."""
    return resolve_price_breakdown(item, catalog, measurement).price


def round_price(value: float, granularity: float = 1) -> float:
    """Round half up to the currency granularity (whole crowns by default)."""
    step = Decimal(str(granularity))
    units = (Decimal(str(value)) / step).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(units * step)


def format_money(value: float, currency: str = "Kč") -> str:
    whole = f"{round_price(value):,.0f}".replace(",", " ")
    return f"{whole} {currency}"


def describe_price(breakdown: PriceBreakdown) -> str:
    if breakdown.price_type == "percentage":
        text = f"{breakdown.percentage:g}% z {format_money(breakdown.reference_price)}"
        if breakdown.minimum_applied:
            text += " (použito minimum)"
        return text
    if breakdown.price_type == "coefficient":
        unit = _MEASUREMENT_UNITS.get(breakdown.coefficient_unit, breakdown.coefficient_unit)
        return f"{round(breakdown.measurement_used, 2):g} {unit} × {format_money(breakdown.coefficient)}"
    return "Fixní cena"


def validate_catalog(items: Iterable[CatalogItem]) -> None:
    """Reject catalogs whose price fields or references are inconsistent.

    Percentage references must point at an existing fixed-price item, so
    chains longer than one hop and self references are refused here rather
    than discovered during quoting.
    """

    catalog = list(items)
    by_id = {item.id: item for item in catalog}
    problems: List[str] = []
    seen_codes: Dict[str, str] = {}

    for item in catalog:
        label = item.code or item.id
        if item.code in seen_codes:
            problems.append(f"{label}: duplicitní kód (také {seen_codes[item.code]})")
        seen_codes.setdefault(item.code, item.id)

        problems.extend(f"{label}: {problem}" for problem in item.price_field_problems())
        if item.price_type == "fixed" and item.unit_price is not None and item.unit_price < 0:
            problems.append(f"{label}: záporná cena")
        if item.price_type == "percentage":
            if item.percentage is not None and item.percentage <= 0:
                problems.append(f"{label}: procento musí být kladné")
            ref_id = item.reference_product_id
            reference = by_id.get(ref_id) if ref_id else None
            if ref_id == item.id:
                problems.append(f"{label}: odkazuje sám na sebe")
            elif ref_id and reference is None:
                problems.append(f"{label}: referenční produkt '{ref_id}' neexistuje")
            elif reference is not None and reference.price_type == "percentage":
                problems.append(f"{label}: řetězení procentních cen přes '{reference.code}' není povoleno")
            elif reference is not None and reference.price_type != "fixed":
                problems.append(f"{label}: referenční produkt '{reference.code}' nemá pevnou cenu")
        if item.price_type == "coefficient":
            if item.coefficient is not None and item.coefficient <= 0:
                problems.append(f"{label}: koeficient musí být kladný")
        for surcharge_id in item.required_surcharge_ids:
            if surcharge_id == item.id:
                problems.append(f"{label}: vyžaduje sám sebe jako příplatek")
            elif surcharge_id not in by_id:
                problems.append(f"{label}: neznámý povinný příplatek '{surcharge_id}'")
        for prerequisite_id in item.prerequisite_product_ids:
            if prerequisite_id == item.id:
                problems.append(f"{label}: vyžaduje sám sebe jako předpoklad")
            elif prerequisite_id not in by_id:
                problems.append(f"{label}: neznámý předpoklad '{prerequisite_id}'")
        for shape in item.prerequisite_pool_shapes:
            if shape not in CONFIG_SHAPES:
                problems.append(f"{label}: neznámý tvar bazénu '{shape}'")

    if problems:
        raise CatalogValidationError(problems)
