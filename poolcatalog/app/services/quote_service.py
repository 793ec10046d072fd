from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

import yaml

from poolcatalog.app.errors import ServiceError, SurchargeCycleError, SurchargeNotFoundError
from poolcatalog.app.models import CatalogItem, GeneratedQuoteItem, Measurement, PoolConfiguration, PoolDimensions
from poolcatalog.app.pool_code import parse_pool_code, same_pool
from poolcatalog.app.pool_geometry import measure
from poolcatalog.app.prerequisites import PrerequisiteCheck, check_prerequisites
from poolcatalog.app.pricing import Catalog, describe_price, index_catalog, resolve_price_breakdown, round_price
from poolcatalog.app.uom_convert import is_measured_unit
from poolcatalog.shared.normalize.text import name_key, normalize_query

__all__ = [
    "OPTION_FIELDS",
    "PrerequisiteCheck",
    "QuoteResolution",
    "SelectionRule",
    "ServiceError",
    "check_prerequisites",
    "find_pool_item",
    "load_selection_rules",
    "merge_quote_items",
    "quote_subtotal",
    "resolve_quote",
    "resolve_quote_items",
]

logger = logging.getLogger(__name__)

POOL_CATEGORY = "bazeny"
DELIVERY_CATEGORY = "doprava"
SKIP_VALUES = {"none", ""}
OPTION_FIELDS = ("stairs", "technology", "lighting", "counterflow", "water_treatment", "heating", "roofing")

QuoteItemInput = Union[GeneratedQuoteItem, Mapping[str, Any]]


@dataclass(frozen=True)
class SelectionRule:
    """Maps one wizard option value to the catalog rows it selects."""

    field: str
    value: str
    category: str
    subcategory: Optional[str] = None
    name: Optional[str] = None
    pool_shapes: Tuple[str, ...] = ()
    pool_types: Tuple[str, ...] = ()
    quantity: Optional[float] = None
    product_code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SelectionRule":
        missing = [key for key in ("field", "value", "category") if not data.get(key)]
        if missing:
            raise ValueError(f"Selection rule missing keys: {', '.join(missing)}")
        quantity = data.get("quantity")
        return cls(
            field=str(data["field"]),
            value=str(data["value"]),
            category=str(data["category"]),
            subcategory=data.get("subcategory"),
            name=data.get("name"),
            pool_shapes=tuple(data.get("pool_shapes") or ()),
            pool_types=tuple(data.get("pool_types") or ()),
            quantity=float(quantity) if quantity is not None else None,
            product_code=data.get("product_code"),
        )

    @property
    def label(self) -> str:
        return f"{self.field}={self.value}"

    def applies_to(self, configuration: PoolConfiguration) -> bool:
        if self.value not in configuration.option_values(self.field):
            return False
        if self.pool_shapes and configuration.pool_shape not in self.pool_shapes:
            return False
        if self.pool_types and configuration.pool_type not in self.pool_types:
            return False
        return True

    def matches(self, item: CatalogItem) -> bool:
        if self.product_code:
            return item.code == self.product_code
        if item.category != self.category:
            return False
        if self.subcategory and item.subcategory != self.subcategory:
            return False
        if self.name and normalize_query(self.name) not in normalize_query(item.name):
            return False
        return True


def load_selection_rules(path: Union[str, Path]) -> List[SelectionRule]:
    loaded = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or []
    if not isinstance(loaded, list):
        raise ValueError("selection rules YAML must define a list")
    rules = [SelectionRule.from_dict(entry) for entry in loaded]
    unknown = sorted({rule.field for rule in rules} - set(OPTION_FIELDS))
    if unknown:
        raise ValueError(f"Unknown configuration fields in selection rules: {', '.join(unknown)}")
    return rules


@dataclass
class QuoteResolution:
    items: List[GeneratedQuoteItem]
    added: List[GeneratedQuoteItem] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)
    unmet_prerequisites: List[PrerequisiteCheck] = field(default_factory=list)

    @property
    def prerequisite_messages(self) -> List[str]:
        return [check.message for check in self.unmet_prerequisites if check.message]

    @property
    def subtotal(self) -> float:
        return quote_subtotal(self.items)


def quote_subtotal(items: Iterable[GeneratedQuoteItem], granularity: float = 1) -> float:
    return round_price(sum(item.total_price for item in items), granularity)


def find_pool_item(dims: Optional[PoolDimensions], catalog: Iterable[CatalogItem]) -> Optional[CatalogItem]:
    """Active pool row whose code parses to exactly *dims*; lowest code wins."""

    if dims is None:
        return None
    matches = [
        item
        for item in catalog
        if item.active and item.category == POOL_CATEGORY and same_pool(parse_pool_code(item.code), dims)
    ]
    return min(matches, key=lambda item: item.code) if matches else None


def _select(rule: SelectionRule, catalog: Iterable[CatalogItem]) -> Optional[CatalogItem]:
    candidates = [item for item in catalog if item.active and rule.matches(item)]
    return min(candidates, key=lambda item: item.code) if candidates else None


class _LineBuilder:
    """Prices selected rows and expands their required surcharges depth first."""

    def __init__(self, catalog: Dict[str, CatalogItem], measurement: Optional[Measurement], granularity: float):
        self.catalog = catalog
        self.measurement = measurement
        self.granularity = granularity
        self.lines: List[GeneratedQuoteItem] = []
        self._seen: Set[str] = set()

    def add(self, item: CatalogItem, source: str, quantity: Optional[float] = None, path: Tuple[str, ...] = ()) -> None:
        if item.id in path:
            codes = [self.catalog[item_id].code for item_id in path] + [item.code]
            raise SurchargeCycleError(codes[codes.index(item.code):])
        if item.id in self._seen:
            return
        self._seen.add(item.id)
        self.lines.append(self._line(item, source, quantity))
        for surcharge_id in item.required_surcharge_ids:
            surcharge = self.catalog.get(surcharge_id)
            if surcharge is None or not surcharge.active:
                raise SurchargeNotFoundError(item.code, surcharge_id)
            self.add(surcharge, "required_surcharge", path=path + (item.id,))

    def _default_quantity(self, item: CatalogItem) -> float:
        measured = is_measured_unit(item.unit)
        if item.price_type == "coefficient" or measured is None or self.measurement is None:
            return 1.0
        value = self.measurement.area if measured == "m2" else self.measurement.perimeter
        return round(value, 2)

    def _line(self, item: CatalogItem, source: str, quantity: Optional[float]) -> GeneratedQuoteItem:
        breakdown = resolve_price_breakdown(item, self.catalog, self.measurement)
        unit_price = round_price(breakdown.price, self.granularity)
        qty = quantity if quantity is not None else self._default_quantity(item)
        return GeneratedQuoteItem(
            product_id=item.id,
            name=item.name,
            category=item.category,
            quantity=qty,
            unit=item.unit,
            unit_price=unit_price,
            total_price=round_price(qty * unit_price, self.granularity),
            description=describe_price(breakdown),
            source=source,
            sort_order=len(self.lines),
        )


def _as_quote_item(entry: QuoteItemInput) -> GeneratedQuoteItem:
    if isinstance(entry, GeneratedQuoteItem):
        return replace(entry, variant_keys=list(entry.variant_keys))
    return GeneratedQuoteItem.from_dict(entry)


def _unmet_prerequisites(
    generated: Sequence[GeneratedQuoteItem],
    merged: Sequence[GeneratedQuoteItem],
    pool_shape: Optional[str],
    catalog: Dict[str, CatalogItem],
) -> List[PrerequisiteCheck]:
    unmet: List[PrerequisiteCheck] = []
    for line in generated:
        item = catalog.get(line.product_id) if line.product_id else None
        if item is None:
            continue
        check = check_prerequisites(item, merged, pool_shape, catalog)
        if not check.can_add:
            logger.warning(
                "quote.prerequisites_unmet product=%s missing=%s",
                item.code,
                ",".join(check.missing_ids),
            )
            unmet.append(check)
    return unmet


def merge_quote_items(
    existing: Sequence[QuoteItemInput],
    generated: Sequence[GeneratedQuoteItem],
    variant_key: Optional[str] = None,
) -> Tuple[List[GeneratedQuoteItem], List[GeneratedQuoteItem]]:
    """Merge *generated* lines into copies of *existing* ones.

    A line already present (same product id, else same name when one side is
    freehand) only gains *variant_key*; user edits to price and quantity stay.
    Returns ``(merged, added)``.
    """

    merged = [_as_quote_item(entry) for entry in existing]
    by_product: Dict[str, int] = {}
    by_name: Dict[str, int] = {}

    def _register(idx: int, entry: GeneratedQuoteItem) -> None:
        if entry.product_id:
            by_product.setdefault(entry.product_id, idx)
        key = name_key(entry.name)
        if key:
            by_name.setdefault(key, idx)

    for idx, entry in enumerate(merged):
        _register(idx, entry)

    next_order = max((entry.sort_order for entry in merged), default=-1) + 1
    added: List[GeneratedQuoteItem] = []
    for line in generated:
        idx = by_product.get(line.product_id) if line.product_id else None
        if idx is None:
            candidate = by_name.get(name_key(line.name))
            if candidate is not None and (merged[candidate].product_id is None or line.product_id is None):
                idx = candidate
        if idx is not None:
            entry = merged[idx]
            if variant_key and variant_key not in entry.variant_keys:
                entry.variant_keys.append(variant_key)
            continue
        new_entry = replace(line, sort_order=next_order, variant_keys=[variant_key] if variant_key else [])
        next_order += 1
        merged.append(new_entry)
        added.append(new_entry)
        _register(len(merged) - 1, new_entry)
    return merged, added


def resolve_quote(
    configuration: Union[PoolConfiguration, Mapping[str, Any]],
    catalog: Catalog,
    existing_items: Optional[Sequence[QuoteItemInput]] = None,
    *,
    rules: Sequence[SelectionRule],
    variant_key: Optional[str] = None,
    granularity: float = 1,
    include_delivery: bool = False,
    delivery_name: str = "Doprava",
) -> QuoteResolution:
    """Turn a wizard configuration into priced quote lines merged into *existing_items*.

    Pricing errors (dangling reference, missing measurement, surcharge cycle)
    propagate as :class:`ServiceError` before anything is merged, so the
    caller's list is never modified.
    """

    if not isinstance(configuration, PoolConfiguration):
        configuration = PoolConfiguration.from_dict(configuration)
    by_id = index_catalog(catalog)
    items = list(by_id.values())
    dims = configuration.pool_dimensions()
    measurement = measure(dims) if dims is not None else None
    builder = _LineBuilder(by_id, measurement, granularity)
    unmatched: List[str] = []

    pool_item = find_pool_item(dims, items)
    if pool_item is not None:
        builder.add(pool_item, "pool")
    else:
        unmatched.append("pool")
        logger.warning(
            "quote.pool_unmatched configuration=%s shape=%s type=%s dimensions=%s",
            configuration.id,
            configuration.pool_shape,
            configuration.pool_type,
            configuration.dimensions,
        )

    for rule in rules:
        if rule.value in SKIP_VALUES or not rule.applies_to(configuration):
            continue
        selected = _select(rule, items)
        if selected is None:
            unmatched.append(rule.label)
            logger.warning("quote.selection_unmatched configuration=%s selection=%s", configuration.id, rule.label)
            continue
        builder.add(selected, "selection", quantity=rule.quantity)

    generated = list(builder.lines)
    existing = list(existing_items or [])
    if include_delivery:
        present = generated + [_as_quote_item(entry) for entry in existing]
        if not any(entry.category == DELIVERY_CATEGORY for entry in present):
            generated.append(
                GeneratedQuoteItem(
                    product_id=None,
                    name=delivery_name,
                    category=DELIVERY_CATEGORY,
                    quantity=1.0,
                    unit="ks",
                    unit_price=0.0,
                    total_price=0.0,
                    source="delivery",
                    sort_order=len(generated),
                )
            )

    merged, added = merge_quote_items(existing, generated, variant_key)
    unmet = _unmet_prerequisites(generated, merged, configuration.pool_shape, by_id)
    logger.info(
        "quote.resolve configuration=%s generated=%d added=%d unmatched=%d",
        configuration.id,
        len(generated),
        len(added),
        len(unmatched),
    )
    return QuoteResolution(items=merged, added=added, unmatched=unmatched, unmet_prerequisites=unmet)


def resolve_quote_items(
    configuration: Union[PoolConfiguration, Mapping[str, Any]],
    catalog: Catalog,
    existing_items: Optional[Sequence[QuoteItemInput]] = None,
    **kwargs: Any,
) -> List[GeneratedQuoteItem]:
    return resolve_quote(configuration, catalog, existing_items, **kwargs).items
