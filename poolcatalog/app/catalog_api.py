"""
Catalog API - Produkty, kódy bazénů a uložené konfigurace
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, HTTPException, Query
from pydantic import BaseModel, Field

from poolcatalog.app.errors import ServiceError
from poolcatalog.app.models import CatalogItem
from poolcatalog.app.pool_code import parse_pool_code
from poolcatalog.app.pool_geometry import pool_perimeter, pool_surface, pool_volume
from poolcatalog.app.pricing import validate_catalog
from poolcatalog.store import catalog_store

router = APIRouter(prefix="/api", tags=["catalog"])


# --- Models ---

class ProductIn(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    old_code: Optional[str] = None
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
    required_surcharge_ids: List[str] = Field(default_factory=list)
    prerequisite_product_ids: List[str] = Field(default_factory=list)
    prerequisite_pool_shapes: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    active: bool = True
    description: Optional[str] = None


class ConfigurationIn(BaseModel):
    id: str = Field(..., min_length=1)
    pool_shape: str
    pool_type: str
    dimensions: Dict[str, float]
    color: Optional[str] = None
    stairs: Optional[str] = None
    technology: List[str] = Field(default_factory=list)
    lighting: Optional[str] = None
    counterflow: Optional[str] = None
    water_treatment: Optional[str] = None
    heating: Optional[str] = None
    roofing: Optional[str] = None
    contact: Dict[str, Any] = Field(default_factory=dict)


# --- Endpoints ---

@router.get("/catalog/pool-code/{code}")
def api_parse_pool_code(code: str):
    dims = parse_pool_code(code)
    if dims is None:
        return {"code": code, "pool": None}
    return {
        "code": code,
        "pool": dims.to_dict(),
        "surface": round(pool_surface(dims), 2),
        "perimeter": round(pool_perimeter(dims), 2),
        "volume": round(pool_volume(dims), 2),
    }


@router.get("/catalog/products")
def api_list_products(include_inactive: bool = Query(False)):
    return {"products": catalog_store.list_products(include_inactive=include_inactive)}


@router.post("/catalog/products")
def api_upsert_product(payload: ProductIn = Body(...)):
    item = CatalogItem.from_dict(payload.model_dump())
    by_code = {existing.code: existing for existing in catalog_store.load_catalog()}
    by_code[item.code] = item
    try:
        validate_catalog(by_code.values())
    except ServiceError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
    return catalog_store.upsert_product(item.to_dict())


@router.delete("/catalog/products/{code}")
def api_delete_product(code: str):
    if not catalog_store.delete_product(code):
        raise HTTPException(status_code=404, detail=f"Produkt '{code}' neexistuje.")
    return {"ok": True, "code": code}


@router.post("/configurations")
def api_save_configuration(payload: ConfigurationIn = Body(...)):
    data = payload.model_dump()
    configuration_id = data.pop("id")
    return catalog_store.save_configuration(configuration_id, data)


@router.get("/configurations/{configuration_id}")
def api_get_configuration(configuration_id: str):
    configuration = catalog_store.get_configuration(configuration_id)
    if configuration is None:
        raise HTTPException(status_code=404, detail=f"Konfigurace '{configuration_id}' neexistuje.")
    return configuration
