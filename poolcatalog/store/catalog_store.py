from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from sqlmodel import Field, Session, SQLModel, UniqueConstraint, create_engine, select

from poolcatalog.app.models import CatalogItem
from poolcatalog.app.settings import load_settings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

_engine = None
_engine_url = None


class Product(SQLModel, table=True):
    __tablename__ = "products"
    __table_args__ = (UniqueConstraint("code", name="uq_product_code"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True)
    old_code: Optional[str] = Field(default=None, index=True)
    name: str
    description: Optional[str] = None

    # Classification
    category: Optional[str] = Field(default=None, index=True)
    subcategory: Optional[str] = Field(default=None)
    product_type: str = Field(default="core")
    brand: Optional[str] = None
    unit: str = Field(default="ks")

    # Pricing
    price_type: str = Field(default="fixed")
    unit_price: Optional[float] = None
    reference_product_id: Optional[str] = None
    percentage: Optional[float] = None
    minimum_price: Optional[float] = None
    coefficient: Optional[float] = None
    coefficient_unit: Optional[str] = None
    required_surcharge_ids: Optional[str] = None  # Semicolon-separated product codes
    prerequisite_product_ids: Optional[str] = None
    prerequisite_pool_shapes: Optional[str] = None

    tags: Optional[str] = None  # Semicolon-separated tags
    is_active: bool = Field(default=True, index=True)
    updated_at: datetime = Field(default_factory=_utcnow, index=True)


class Configuration(SQLModel, table=True):
    __tablename__ = "configurations"

    id: str = Field(primary_key=True)
    payload: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow, index=True)


def _ensure_sqlite_dir(url: str) -> None:
    if not url.startswith("sqlite:///"):
        return
    filename = url.replace("sqlite:///", "", 1)
    if filename != ":memory:":
        Path(filename).parent.mkdir(parents=True, exist_ok=True)


def _get_engine():
    global _engine, _engine_url
    db_url = load_settings().db_url
    if _engine is None or _engine_url != db_url:
        _ensure_sqlite_dir(db_url)
        connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
        _engine = create_engine(db_url, echo=False, connect_args=connect_args)
        _engine_url = db_url
    return _engine


def _session() -> Session:
    return Session(_get_engine())


def init_db() -> None:
    SQLModel.metadata.create_all(_get_engine())


def _join(values: Iterable[str]) -> Optional[str]:
    joined = ";".join(value for value in values if value)
    return joined or None


def _product_dict(product: Product) -> Dict[str, object]:
    data = product.model_dump(exclude={"id"})
    data["active"] = data.pop("is_active")
    return data


def _to_catalog_item(product: Product) -> CatalogItem:
    data = _product_dict(product)
    data["id"] = product.code
    return CatalogItem.from_dict(data)


def upsert_product(product_dict: Dict[str, Any]) -> Dict[str, object]:
    """Insert or update a product keyed by its code.

    Catalog items are identified by code: ``reference_product_id``,
    ``required_surcharge_ids`` and ``prerequisite_product_ids`` hold product
    codes.
    """

    item = CatalogItem.from_dict(product_dict)
    if not item.code or not item.name:
        raise ValueError("Product 'code' and 'name' must be non-empty.")

    with _session() as session:
        stmt = select(Product).where(Product.code == item.code)
        product = session.exec(stmt).one_or_none()
        if product is None:
            product = Product(code=item.code, name=item.name)
            session.add(product)
        product.old_code = item.old_code
        product.name = item.name
        product.description = item.description
        product.category = item.category or None
        product.subcategory = item.subcategory or None
        product.product_type = item.product_type
        product.brand = item.brand
        product.unit = item.unit
        product.price_type = item.price_type
        product.unit_price = item.unit_price
        product.reference_product_id = item.reference_product_id
        product.percentage = item.percentage
        product.minimum_price = item.minimum_price
        product.coefficient = item.coefficient
        product.coefficient_unit = item.coefficient_unit
        product.required_surcharge_ids = _join(item.required_surcharge_ids)
        product.prerequisite_product_ids = _join(item.prerequisite_product_ids)
        product.prerequisite_pool_shapes = _join(item.prerequisite_pool_shapes)
        product.tags = _join(item.tags)
        product.is_active = item.active
        product.updated_at = _utcnow()
        session.commit()
        session.refresh(product)
        return _product_dict(product)


def list_products(include_inactive: bool = False, filter_codes: Optional[List[str]] = None) -> List[Dict[str, object]]:
    with _session() as session:
        stmt = select(Product)
        if not include_inactive:
            stmt = stmt.where(Product.is_active.is_(True))
        if filter_codes:
            stmt = stmt.where(Product.code.in_(filter_codes))
        stmt = stmt.order_by(Product.code)
        return [_product_dict(product) for product in session.exec(stmt).all()]


def get_active_products() -> List[Dict[str, object]]:
    return list_products(include_inactive=False)


def load_catalog(include_inactive: bool = True) -> List[CatalogItem]:
    """Catalog items keyed by code; inactive rows are kept so references still resolve."""

    with _session() as session:
        stmt = select(Product).order_by(Product.code)
        if not include_inactive:
            stmt = stmt.where(Product.is_active.is_(True))
        return [_to_catalog_item(product) for product in session.exec(stmt).all()]


def delete_product(code: str) -> bool:
    with _session() as session:
        product = session.exec(select(Product).where(Product.code == code)).one_or_none()
        if product is None:
            return False
        product.is_active = False
        product.updated_at = _utcnow()
        session.add(product)
        session.commit()
        return True


def save_configuration(configuration_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    if not configuration_id:
        raise ValueError("Configuration id must be non-empty.")
    body = json.dumps(payload, ensure_ascii=False)
    with _session() as session:
        row = session.get(Configuration, configuration_id)
        if row is None:
            row = Configuration(id=configuration_id, payload=body)
            session.add(row)
        else:
            row.payload = body
            row.updated_at = _utcnow()
            session.add(row)
        session.commit()
    logger.info("store.configuration_saved id=%s", configuration_id)
    return {"id": configuration_id, **payload}


def get_configuration(configuration_id: str) -> Optional[Dict[str, Any]]:
    with _session() as session:
        row = session.get(Configuration, configuration_id)
        if row is None:
            return None
        data = json.loads(row.payload)
        data["id"] = configuration_id
        return data
