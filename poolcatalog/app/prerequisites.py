"""Product prerequisites: rows that must already be on a quote before another one.

A product lists ``prerequisite_product_ids``; the check is skipped when the
configured pool shape is one of its ``prerequisite_pool_shapes`` (8 mm material
needs the sharp-corners row, except on circular pools).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from poolcatalog.app.models import CatalogItem, GeneratedQuoteItem
from poolcatalog.app.pricing import Catalog, index_catalog


@dataclass
class PrerequisiteCheck:
    product_id: str
    can_add: bool
    missing: List[CatalogItem] = field(default_factory=list)
    missing_ids: List[str] = field(default_factory=list)
    message: Optional[str] = None
    skipped_due_to_shape: bool = False


def skips_prerequisites(item: CatalogItem, pool_shape: Optional[str]) -> bool:
    return bool(pool_shape) and pool_shape in item.prerequisite_pool_shapes


def prerequisite_items(item: CatalogItem, catalog: Catalog) -> List[CatalogItem]:
    by_id = index_catalog(catalog)
    return [by_id[item_id] for item_id in item.prerequisite_product_ids if item_id in by_id]


def check_prerequisites(
    item: CatalogItem,
    items: Iterable[GeneratedQuoteItem],
    pool_shape: Optional[str],
    catalog: Catalog,
) -> PrerequisiteCheck:
    if not item.prerequisite_product_ids:
        return PrerequisiteCheck(product_id=item.id, can_add=True)
    if skips_prerequisites(item, pool_shape):
        return PrerequisiteCheck(product_id=item.id, can_add=True, skipped_due_to_shape=True)

    present = {entry.product_id for entry in items if entry.product_id}
    missing_ids = [item_id for item_id in item.prerequisite_product_ids if item_id not in present]
    if not missing_ids:
        return PrerequisiteCheck(product_id=item.id, can_add=True)

    by_id = index_catalog(catalog)
    missing = [by_id[item_id] for item_id in missing_ids if item_id in by_id]
    if missing:
        names = ", ".join(row.name for row in missing)
        message = f'Pro přidání "{item.name}" je nutné nejprve přidat: {names}'
    else:
        message = f'Pro přidání "{item.name}" chybí požadované produkty'
    return PrerequisiteCheck(
        product_id=item.id,
        can_add=False,
        missing=missing,
        missing_ids=missing_ids,
        message=message,
    )
