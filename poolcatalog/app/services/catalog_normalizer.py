"""Batch normalization of a raw price-list export into the product catalog.

The run removes boilerplate lines, reclassifies unrecognized categories,
assigns unique product codes with one fresh :class:`CodeCounter`, and flags
questionable records for review instead of failing. Results are written as
semicolon CSV, a code mapping table, JSON and a Markdown report.
"""

from __future__ import annotations

import csv
import json
import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from poolcatalog.app.code_generator import CodeCounter, assign_code
from poolcatalog.app.code_rules import CATEGORIES
from poolcatalog.app.errors import ServiceError
from poolcatalog.app.models import CatalogItem, RawCatalogRecord
from poolcatalog.app.settings import DEFAULT_SYNONYMS
from poolcatalog.app.uom_convert import determine_unit
from poolcatalog.shared.normalize.text import normalize_name, synonym_rules

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

DENYLIST = frozenset(
    {
        "Platnost nabídky: 1 měsíc od vypracování",
        "Nadstandardní výbava celkem",
        "Standard a nadstandard celkem",
    }
)

REASON_MISSING_PRICE = "Chybí cena"
REASON_UNRECOGNIZED = "Nerozpoznaná kategorie"
REASON_SHORT_NAME = "Krátký název"
REASON_FORMULA = "Obsahuje formule/chyby"

FALLBACK_CATEGORY = ("material", "armatury", "material")
_FORMULA_MARKERS = ("?", "IFERROR", "KDYŽ")
_PRODUCT_TYPES = {
    "bazeny": "core",
    "sety": "core",
    "sluzby": "service",
    "doprava": "service",
    "material": "material",
    "chemie": "material",
}

CSV_HEADERS = [
    "product_code",
    "old_code",
    "product_name",
    "category",
    "subcategory",
    "product_type",
    "brand",
    "description",
    "unit",
    "base_price",
    "currency",
    "active",
    "source_notes",
    "needs_review",
    "review_reason",
]
MAPPING_HEADERS = ["old_code", "old_name", "new_code", "new_name", "action"]

OUTPUT_FILES = {
    "catalog_csv": "produkty-katalog-final.csv",
    "mapping_csv": "produkty-mapping.csv",
    "catalog_json": "produkty-katalog-final.json",
    "report": "produkty-normalizace-log.md",
}


@dataclass
class NormalizedProduct:
    product_code: str
    old_code: str
    product_name: str
    category: str
    subcategory: str
    product_type: str
    brand: str
    description: str
    unit: str
    base_price: float
    currency: str
    active: bool
    source_notes: str
    needs_review: bool
    review_reason: str

    def to_row(self) -> List[str]:
        values = []
        for header in CSV_HEADERS:
            value = getattr(self, header)
            if isinstance(value, bool):
                values.append("true" if value else "false")
            elif isinstance(value, float):
                values.append(_format_price(value))
            else:
                values.append(str(value))
        return values

    def to_catalog_dict(self) -> Dict[str, Any]:
        item = CatalogItem(
            id=self.product_code,
            code=self.product_code,
            name=self.product_name,
            category=self.category,
            subcategory=self.subcategory,
            product_type=self.product_type,
            brand=self.brand,
            unit=self.unit,
            price_type="fixed",
            unit_price=self.base_price,
            active=self.active,
            old_code=self.old_code or None,
            description=self.description or None,
        )
        data = item.to_dict()
        data.update(
            currency=self.currency,
            source_notes=self.source_notes,
            needs_review=self.needs_review,
            review_reason=self.review_reason,
        )
        return data


@dataclass
class MappingEntry:
    old_code: str
    old_name: str
    new_code: str
    new_name: str
    action: str = "mapped"


@dataclass
class SkippedRecord:
    line_number: Optional[int]
    name: str
    error: str


@dataclass
class NormalizationResult:
    products: List[NormalizedProduct] = field(default_factory=list)
    mapping: List[MappingEntry] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)
    removed: int = 0
    reclassified: int = 0
    missing_price: int = 0

    @property
    def flagged(self) -> List[NormalizedProduct]:
        return [product for product in self.products if product.needs_review]

    @property
    def priced_count(self) -> int:
        return sum(1 for product in self.products if product.base_price)

    def category_counts(self) -> List[Tuple[str, int]]:
        counts = Counter(product.category for product in self.products)
        return sorted(counts.items(), key=lambda pair: (-pair[1], pair[0]))

    def reason_counts(self) -> Dict[str, int]:
        counts: Counter = Counter()
        for product in self.flagged:
            counts.update(reason for reason in product.review_reason.split("; ") if reason)
        return dict(counts)


def _format_price(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def is_recognized_category(category: str) -> bool:
    return (category or "").strip().lower() in CATEGORIES


def review_reasons(record: RawCatalogRecord) -> List[str]:
    reasons: List[str] = []
    if not record.price:
        reasons.append(REASON_MISSING_PRICE)
    if not is_recognized_category(record.category):
        reasons.append(REASON_UNRECOGNIZED)
    if len(record.name) < 5:
        reasons.append(REASON_SHORT_NAME)
    if any(marker in record.name for marker in _FORMULA_MARKERS):
        reasons.append(REASON_FORMULA)
    return reasons


def _product_type(record: RawCatalogRecord) -> str:
    if record.product_type:
        return record.product_type
    return _PRODUCT_TYPES.get(record.category, "addon")


def _coerce(entry: Union[RawCatalogRecord, Mapping[str, Any]]) -> RawCatalogRecord:
    if isinstance(entry, RawCatalogRecord):
        return entry
    return RawCatalogRecord.from_dict(entry)


def normalize_records(
    records: Iterable[Union[RawCatalogRecord, Mapping[str, Any]]],
    *,
    default_brand: str = "RENTMIL",
    currency: str = "CZK",
    synonyms_path: Union[str, Path] = DEFAULT_SYNONYMS,
) -> NormalizationResult:
    """Run one normalization pass; every call starts with a fresh code counter."""

    rules = synonym_rules(str(synonyms_path))
    counter = CodeCounter()
    result = NormalizationResult()

    for position, entry in enumerate(records, start=1):
        try:
            record = _coerce(entry)
        except (TypeError, ValueError) as exc:
            name = str(entry.get("name", "")) if isinstance(entry, Mapping) else ""
            result.skipped.append(SkippedRecord(position, name, str(exc)))
            logger.warning("normalize.skip position=%s error=%s", position, exc)
            continue
        if not record.name:
            result.skipped.append(SkippedRecord(record.line_number or position, "", "chybí název"))
            continue
        if record.name in DENYLIST:
            result.removed += 1
            continue

        reasons = review_reasons(record)
        if not is_recognized_category(record.category):
            category, subcategory, product_type = FALLBACK_CATEGORY
            record = replace(record, category=category, subcategory=subcategory, product_type=product_type)
            result.reclassified += 1
        if record.price is None:
            result.missing_price += 1

        assignment = assign_code(record, counter)
        if not assignment.recognized and REASON_UNRECOGNIZED not in reasons:
            reasons.append(REASON_UNRECOGNIZED)

        product = NormalizedProduct(
            product_code=assignment.code,
            old_code=record.code or "",
            product_name=normalize_name(record.name, rules),
            category=record.category,
            subcategory=record.subcategory,
            product_type=_product_type(record),
            brand=record.brand or default_brand,
            description=record.description or "",
            unit=determine_unit(record.name, record.unit),
            base_price=float(record.price or 0),
            currency=currency,
            active=True,
            source_notes=record.source_note,
            needs_review=bool(reasons),
            review_reason="; ".join(reasons),
        )
        result.products.append(product)
        if reasons:
            logger.debug("normalize.review code=%s reasons=%s", product.product_code, product.review_reason)
        if record.code:
            result.mapping.append(
                MappingEntry(
                    old_code=record.code,
                    old_name=record.name,
                    new_code=product.product_code,
                    new_name=product.product_name,
                )
            )

    logger.info(
        "normalize.done products=%d flagged=%d removed=%d reclassified=%d skipped=%d",
        len(result.products),
        len(result.flagged),
        result.removed,
        result.reclassified,
        len(result.skipped),
    )
    return result


def load_raw_records(path: Union[str, Path]) -> List[Dict[str, Any]]:
    path = Path(path)
    if not path.exists():
        raise ServiceError(f"Soubor {path} neexistuje.", status_code=404)
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ServiceError("Vstupní JSON musí obsahovat pole záznamů.")
    return data


def write_catalog_csv(path: Path, products: Iterable[NormalizedProduct]) -> None:
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(";".join(CSV_HEADERS) + "\n")
        writer = csv.writer(handle, delimiter=";", quoting=csv.QUOTE_ALL, lineterminator="\n")
        for product in products:
            writer.writerow(product.to_row())


def write_mapping_csv(path: Path, mapping: Iterable[MappingEntry]) -> None:
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(";".join(MAPPING_HEADERS) + "\n")
        writer = csv.writer(handle, delimiter=";", quoting=csv.QUOTE_ALL, lineterminator="\n")
        for entry in mapping:
            writer.writerow([getattr(entry, header) for header in MAPPING_HEADERS])


def write_catalog_json(path: Path, products: Iterable[NormalizedProduct]) -> None:
    payload = [product.to_catalog_dict() for product in products]
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def _report_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False, default=False),
        keep_trailing_newline=True,
    )


def render_report(
    result: NormalizationResult,
    *,
    brand: str = "Rentmil",
    generated_at: Optional[datetime] = None,
    mapping_limit: int = 50,
) -> str:
    template = _report_env().get_template("normalization_report.md.j2")
    return template.render(
        result=result,
        brand=brand,
        generated_at=(generated_at or datetime.now(timezone.utc)).isoformat(timespec="seconds"),
        mapping_limit=mapping_limit,
    )


def write_outputs(result: NormalizationResult, output_dir: Union[str, Path], **report_kwargs: Any) -> Dict[str, Path]:
    target = Path(output_dir)
    target.mkdir(parents=True, exist_ok=True)
    paths = {key: target / filename for key, filename in OUTPUT_FILES.items()}
    write_catalog_csv(paths["catalog_csv"], result.products)
    write_mapping_csv(paths["mapping_csv"], result.mapping)
    write_catalog_json(paths["catalog_json"], result.products)
    paths["report"].write_text(render_report(result, **report_kwargs), encoding="utf-8")
    return paths
