from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from poolcatalog.app.error_messages import quote_prerequisites_message, quote_unmatched_message, review_summary_message
from poolcatalog.app.errors import ServiceError
from poolcatalog.app.models import CatalogItem
from poolcatalog.app.pool_code import parse_pool_code
from poolcatalog.app.pool_geometry import pool_perimeter, pool_surface, pool_volume
from poolcatalog.app.pricing import validate_catalog
from poolcatalog.app.services import catalog_normalizer
from poolcatalog.app.services.quote_service import load_selection_rules, resolve_quote
from poolcatalog.app.settings import load_settings
from poolcatalog.store import catalog_store

logger = logging.getLogger(__name__)

PRODUCT_HEADERS = [
    "code",
    "old_code",
    "name",
    "category",
    "subcategory",
    "product_type",
    "brand",
    "unit",
    "price_type",
    "unit_price",
    "reference_product_id",
    "percentage",
    "minimum_price",
    "coefficient",
    "coefficient_unit",
    "required_surcharge_ids",
    "prerequisite_product_ids",
    "prerequisite_pool_shapes",
    "tags",
    "active",
    "description",
]


class CLIError(Exception):
    """Raised when user input is invalid."""


def _resolve_format(path: Path, explicit: Optional[str], allowed: Iterable[str]) -> str:
    if explicit:
        fmt = explicit.lower()
        if fmt not in allowed:
            raise CLIError(f"Unsupported format '{explicit}'. Allowed: {', '.join(sorted(allowed))}")
        return fmt
    suffix = path.suffix.lower()
    if suffix == ".csv" and "csv" in allowed:
        return "csv"
    if suffix == ".json" and "json" in allowed:
        return "json"
    raise CLIError("Unable to infer format from file extension. Please pass --format.")


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise CLIError(f"File not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CLIError(f"Invalid JSON in {path}: {exc}") from exc


def _read_products_from_csv(path: Path) -> List[Dict[str, object]]:
    if not path.exists():
        raise CLIError(f"File not found: {path}")
    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle, delimiter=";")
        if reader.fieldnames is None:
            return []
        if "code" not in reader.fieldnames and "product_code" not in reader.fieldnames:
            raise CLIError("CSV missing required header: code (or product_code)")
        return [{key: value for key, value in row.items() if value != ""} for row in reader]


def _read_products_from_json(path: Path) -> List[Dict[str, object]]:
    data = _read_json(path)
    if not isinstance(data, list):
        raise CLIError("JSON payload must be a list of products.")
    return data


def _catalog_items(rows: List[Dict[str, object]]) -> List[CatalogItem]:
    items = []
    for line_no, row in enumerate(rows, start=1):
        try:
            item = CatalogItem.from_dict(row)
        except (TypeError, ValueError) as exc:
            raise CLIError(f"Product #{line_no} is invalid: {exc}") from exc
        if not item.code or not item.name:
            raise CLIError(f"Product #{line_no} must have 'code' and 'name'.")
        items.append(item)
    return items


def _product_to_row(product: Dict[str, object]) -> Dict[str, object]:
    row = {}
    for header in PRODUCT_HEADERS:
        value = product.get(header)
        if isinstance(value, bool):
            value = "true" if value else "false"
        row[header] = "" if value is None else value
    return row


def _write_products_csv(path: Path, products: List[Dict[str, object]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=PRODUCT_HEADERS, delimiter=";", extrasaction="ignore")
        writer.writeheader()
        for product in products:
            writer.writerow(_product_to_row(product))


def _write_products_json(path: Path, products: List[Dict[str, object]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [{key: value for key, value in product.items() if key != "updated_at"} for product in products]
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def cmd_normalize(args: argparse.Namespace) -> None:
    settings = load_settings()
    records = catalog_normalizer.load_raw_records(Path(args.input))
    result = catalog_normalizer.normalize_records(
        records,
        default_brand=settings.default_brand,
        currency=settings.currency,
        synonyms_path=settings.synonyms_path,
    )
    output_dir = Path(args.output_dir) if args.output_dir else settings.output_dir
    paths = catalog_normalizer.write_outputs(result, output_dir)
    print(
        f"Normalized {len(result.products)} products "
        f"(flagged={len(result.flagged)} removed={result.removed} "
        f"reclassified={result.reclassified} skipped={len(result.skipped)})."
    )
    for key, path in paths.items():
        print(f"- {key}: {path}")
    print(review_summary_message(result.reason_counts()))


def cmd_import_products(args: argparse.Namespace) -> None:
    path = Path(args.path)
    fmt = _resolve_format(path, args.format, {"csv", "json"})
    rows = _read_products_from_csv(path) if fmt == "csv" else _read_products_from_json(path)
    incoming = _catalog_items(rows)
    by_code = {item.code: item for item in catalog_store.load_catalog()}
    existing = set(by_code)
    for item in incoming:
        by_code[item.code] = item
    validate_catalog(by_code.values())

    inserted = updated = 0
    for item in incoming:
        if item.code in existing:
            updated += 1
        else:
            inserted += 1
            existing.add(item.code)
        catalog_store.upsert_product(item.to_dict())
    logger.info("store.import path=%s inserted=%d updated=%d", path, inserted, updated)
    print(f"Imported {len(incoming)} products (inserted={inserted} updated={updated}).")


def cmd_export_products(args: argparse.Namespace) -> None:
    path = Path(args.path)
    fmt = _resolve_format(path, args.format, {"csv", "json"})
    products = catalog_store.list_products(include_inactive=args.include_inactive)
    if fmt == "csv":
        _write_products_csv(path, products)
    else:
        _write_products_json(path, products)
    print(f"Exported {len(products)} products to {path}.")


def cmd_parse_code(args: argparse.Namespace) -> None:
    dims = parse_pool_code(args.code)
    if dims is None:
        raise CLIError(f"'{args.code}' is not a pool code.")
    payload = dims.to_dict()
    payload.update(
        surface=round(pool_surface(dims), 2),
        perimeter=round(pool_perimeter(dims), 2),
        volume=round(pool_volume(dims), 2),
    )
    print(json.dumps(payload, ensure_ascii=False))


def cmd_resolve_quote(args: argparse.Namespace) -> None:
    settings = load_settings()
    configuration = _read_json(Path(args.configuration))
    if not isinstance(configuration, dict):
        raise CLIError("Configuration JSON must be an object.")
    existing = _read_json(Path(args.existing)) if args.existing else []
    if not isinstance(existing, list):
        raise CLIError("Existing items JSON must be a list.")
    resolution = resolve_quote(
        configuration,
        catalog_store.load_catalog(),
        existing,
        rules=load_selection_rules(settings.selection_rules_path),
        variant_key=args.variant,
        granularity=settings.price_granularity,
        include_delivery=settings.include_delivery,
        delivery_name=settings.delivery_name,
    )
    print(json.dumps([item.to_dict() for item in resolution.items], ensure_ascii=False, indent=2))
    if resolution.unmatched:
        print(quote_unmatched_message(resolution.unmatched), file=sys.stderr)
    if resolution.unmet_prerequisites:
        print(quote_prerequisites_message(resolution.prerequisite_messages), file=sys.stderr)


def cmd_stats(args: argparse.Namespace) -> None:
    active = len(catalog_store.get_active_products())
    total = len(catalog_store.list_products(include_inactive=True))
    print(f"Catalog stats:\n- products: active={active} total={total}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pool catalog maintenance and quoting tools.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    normalize = subparsers.add_parser("normalize", help="Normalize a raw price-list export (JSON).")
    normalize.add_argument("--input", required=True)
    normalize.add_argument("--output-dir", default=None)
    normalize.set_defaults(func=cmd_normalize)

    import_products = subparsers.add_parser("import-products", help="Validate and import products from CSV/JSON.")
    import_products.add_argument("--path", required=True)
    import_products.add_argument("--format", choices=("csv", "json"), default=None)
    import_products.set_defaults(func=cmd_import_products)

    export_products = subparsers.add_parser("export-products", help="Export products.")
    export_products.add_argument("--path", required=True)
    export_products.add_argument("--format", choices=("csv", "json"), default=None)
    export_products.add_argument("--include-inactive", action="store_true")
    export_products.set_defaults(func=cmd_export_products)

    parse_code = subparsers.add_parser("parse-code", help="Show the dimensions encoded in a pool code.")
    parse_code.add_argument("code")
    parse_code.set_defaults(func=cmd_parse_code)

    resolve = subparsers.add_parser("resolve-quote", help="Generate quote items for a configuration.")
    resolve.add_argument("--configuration", required=True)
    resolve.add_argument("--existing", default=None)
    resolve.add_argument("--variant", default=None)
    resolve.set_defaults(func=cmd_resolve_quote)

    stats = subparsers.add_parser("stats", help="Show store stats.")
    stats.set_defaults(func=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    catalog_store.init_db()
    try:
        args.func(args)
    except CLIError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except ServiceError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
