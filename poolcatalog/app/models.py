"""Domain records shared by the code generator, price resolver and quote resolver."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

PRODUCT_TYPES = ("core", "addon", "material", "service")
PRICE_TYPES = ("fixed", "percentage", "coefficient")
COEFFICIENT_UNITS = ("m2", "bm")

POOL_SHAPES = ("circle", "rectangle")
POOL_TYPES = ("skimmer", "overflow")

# wizard shape -> geometric shape
CONFIG_SHAPES = {
    "circle": "circle",
    "rectangle": "rectangle",
    "rectangle_rounded": "rectangle",
    "rectangle_sharp": "rectangle",
}

_PRICE_FIELDS = {
    "fixed": ("unit_price",),
    "percentage": ("reference_product_id", "percentage", "minimum_price"),
    "coefficient": ("coefficient", "coefficient_unit"),
}
_ALL_PRICE_FIELDS = tuple(name for names in _PRICE_FIELDS.values() for name in names)


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _opt_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = value.replace(" ", "").replace(",", ".")
    return float(value)


def _split_set(value: Any) -> Tuple[str, ...]:
    if value is None or value == "":
        return ()
    if isinstance(value, str):
        parts: Iterable[Any] = value.split(";")
    else:
        parts = value
    return tuple(str(part).strip() for part in parts if str(part).strip())


@dataclass
class CatalogItem:
    id: str
    code: str
    name: str
    category: str = ""
    subcategory: str = ""
    product_type: str = "core"
    brand: Optional[str] = None
    unit: str = "ks"
    price_type: str = "fixed"
    unit_price: Optional[float] = None
    reference_product_id: Optional[str] = None
    percentage: Optional[float] = None
    minimum_price: Optional[float] = None
    coefficient: Optional[float] = None
    coefficient_unit: Optional[str] = None
    required_surcharge_ids: Tuple[str, ...] = ()
    prerequisite_product_ids: Tuple[str, ...] = ()
    prerequisite_pool_shapes: Tuple[str, ...] = ()
    active: bool = True
    tags: Tuple[str, ...] = ()
    old_code: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CatalogItem":
        code = str(_pick(data, "code", "product_code", default="")).strip()
        item_id = _pick(data, "id", default=None)
        active = _pick(data, "active", "is_active", default=True)
        if isinstance(active, str):
            active = active.strip().lower() in {"1", "true", "yes", "y", "on"}
        return cls(
            id=str(item_id) if item_id is not None else code,
            code=code,
            name=str(_pick(data, "name", "product_name", default="")).strip(),
            category=str(_pick(data, "category", default="")),
            subcategory=str(_pick(data, "subcategory", default="")),
            product_type=str(_pick(data, "product_type", "productType", default="core")),
            brand=_pick(data, "brand"),
            unit=str(_pick(data, "unit", default="ks")),
            price_type=str(_pick(data, "price_type", "priceType", default="fixed")),
            unit_price=_opt_float(_pick(data, "unit_price", "unitPrice", "base_price")),
            reference_product_id=_pick(data, "reference_product_id", "referenceProductId"),
            percentage=_opt_float(_pick(data, "percentage")),
            minimum_price=_opt_float(_pick(data, "minimum_price", "minimumPrice")),
            coefficient=_opt_float(_pick(data, "coefficient")),
            coefficient_unit=_pick(data, "coefficient_unit", "coefficientUnit"),
            required_surcharge_ids=_split_set(_pick(data, "required_surcharge_ids", "requiredSurchargeIds")),
            prerequisite_product_ids=_split_set(_pick(data, "prerequisite_product_ids", "prerequisiteProductIds")),
            prerequisite_pool_shapes=_split_set(_pick(data, "prerequisite_pool_shapes", "prerequisitePoolShapes")),
            active=bool(active),
            tags=_split_set(_pick(data, "tags")),
            old_code=_pick(data, "old_code", "oldCode"),
            description=_pick(data, "description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["required_surcharge_ids"] = list(self.required_surcharge_ids)
        data["prerequisite_product_ids"] = list(self.prerequisite_product_ids)
        data["prerequisite_pool_shapes"] = list(self.prerequisite_pool_shapes)
        data["tags"] = list(self.tags)
        return data

    def price_field_problems(self) -> List[str]:
        """Return the price fields that contradict ``price_type``."""

        expected = _PRICE_FIELDS.get(self.price_type)
        if expected is None:
            return [f"neznámý typ ceny '{self.price_type}'"]
        problems = []
        for name in _ALL_PRICE_FIELDS:
            value = getattr(self, name)
            if name in expected:
                if value is None and name != "minimum_price":
                    problems.append(f"chybí pole {name}")
                elif name == "coefficient_unit" and value not in COEFFICIENT_UNITS:
                    problems.append(f"neznámá jednotka koeficientu '{value}'")
            elif value is not None:
                problems.append(f"pole {name} nepatří k typu {self.price_type}")
        return problems


@dataclass
class RawCatalogRecord:
    name: str
    price: Optional[float] = None
    unit: Optional[str] = None
    code: Optional[str] = None
    category: str = ""
    subcategory: str = ""
    product_type: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    source: Optional[str] = None
    line_number: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawCatalogRecord":
        line = _pick(data, "line_number", "lineNumber")
        return cls(
            name=str(_pick(data, "name", default="")).strip(),
            price=_opt_float(_pick(data, "price")),
            unit=_pick(data, "unit"),
            code=_pick(data, "code"),
            category=str(_pick(data, "category", default="")).strip(),
            subcategory=str(_pick(data, "subcategory", default="")).strip(),
            product_type=_pick(data, "product_type", "productType"),
            brand=_pick(data, "brand"),
            description=_pick(data, "description"),
            source=_pick(data, "source"),
            line_number=int(line) if line is not None else None,
        )

    @property
    def source_note(self) -> str:
        if self.source and self.line_number is not None:
            return f"{self.source}:{self.line_number}"
        return self.source or ""


@dataclass(frozen=True)
class PoolDimensions:
    shape: str
    type: str
    depth: float
    diameter: Optional[float] = None
    width: Optional[float] = None
    length: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class Measurement:
    area: float
    perimeter: float


@dataclass
class PoolConfiguration:
    id: Optional[str]
    pool_shape: str
    pool_type: str
    dimensions: Dict[str, float]
    color: Optional[str] = None
    stairs: Optional[str] = None
    technology: List[str] = field(default_factory=list)
    lighting: Optional[str] = None
    counterflow: Optional[str] = None
    water_treatment: Optional[str] = None
    heating: Optional[str] = None
    roofing: Optional[str] = None
    contact: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PoolConfiguration":
        technology = _pick(data, "technology", default=[])
        if isinstance(technology, str):
            technology = [technology]
        dims = _pick(data, "dimensions", default={}) or {}
        return cls(
            id=_pick(data, "id"),
            pool_shape=str(_pick(data, "pool_shape", "poolShape", default="")),
            pool_type=str(_pick(data, "pool_type", "poolType", default="")),
            dimensions={key: float(value) for key, value in dims.items() if value is not None},
            color=_pick(data, "color"),
            stairs=_pick(data, "stairs"),
            technology=[str(value) for value in technology],
            lighting=_pick(data, "lighting"),
            counterflow=_pick(data, "counterflow"),
            water_treatment=_pick(data, "water_treatment", "waterTreatment"),
            heating=_pick(data, "heating"),
            roofing=_pick(data, "roofing"),
            contact=dict(_pick(data, "contact", default={}) or {}),
        )

    def option_values(self, config_field: str) -> List[str]:
        value = getattr(self, config_field, None)
        if value is None:
            return []
        if isinstance(value, list):
            return list(value)
        return [str(value)]

    def pool_dimensions(self) -> Optional[PoolDimensions]:
        """Geometric view of the configured pool, or ``None`` when incomplete."""

        shape = CONFIG_SHAPES.get(self.pool_shape)
        if shape is None or self.pool_type not in POOL_TYPES:
            return None
        dims = self.dimensions
        depth = dims.get("depth")
        if not depth:
            return None
        if shape == "circle":
            diameter = dims.get("diameter")
            if not diameter:
                return None
            return PoolDimensions(shape=shape, type=self.pool_type, diameter=diameter, depth=depth)
        width, length = dims.get("width"), dims.get("length")
        if not width or not length:
            return None
        return PoolDimensions(shape=shape, type=self.pool_type, width=width, length=length, depth=depth)


@dataclass
class GeneratedQuoteItem:
    product_id: Optional[str]
    name: str
    category: str
    quantity: float
    unit: str
    unit_price: float
    total_price: float
    description: Optional[str] = None
    source: str = "selection"
    sort_order: int = 0
    variant_keys: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GeneratedQuoteItem":
        product_id = _pick(data, "product_id", "productId")
        quantity = float(_pick(data, "quantity", default=1))
        unit_price = float(_pick(data, "unit_price", "unitPrice", default=0))
        total = _pick(data, "total_price", "totalPrice")
        return cls(
            product_id=str(product_id) if product_id is not None else None,
            name=str(_pick(data, "name", default="")),
            category=str(_pick(data, "category", default="")),
            quantity=quantity,
            unit=str(_pick(data, "unit", default="ks")),
            unit_price=unit_price,
            total_price=float(total) if total is not None else quantity * unit_price,
            description=_pick(data, "description"),
            source=str(_pick(data, "source", default="manual")),
            sort_order=int(_pick(data, "sort_order", "sortOrder", default=0)),
            variant_keys=list(_pick(data, "variant_keys", "variantKeys", default=[]) or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
