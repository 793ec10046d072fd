"""
Quotes API - Generování položek nabídky z konfigurace bazénu
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel, Field

from poolcatalog.app.error_messages import quote_failed_message, quote_prerequisites_message, quote_unmatched_message
from poolcatalog.app.errors import ConfigurationNotFoundError, ServiceError
from poolcatalog.app.services.quote_service import load_selection_rules, resolve_quote
from poolcatalog.app.settings import load_settings
from poolcatalog.store import catalog_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quotes", tags=["quotes"])


class GenerateItemsRequest(BaseModel):
    configuration_id: str = Field(..., min_length=1)
    configuration: Optional[Dict[str, Any]] = None
    existing_items: List[Dict[str, Any]] = Field(default_factory=list)
    variant_key: Optional[str] = None


def _load_configuration(request: GenerateItemsRequest) -> Dict[str, Any]:
    if request.configuration is not None:
        return {**request.configuration, "id": request.configuration_id}
    configuration = catalog_store.get_configuration(request.configuration_id)
    if configuration is None:
        raise ConfigurationNotFoundError(request.configuration_id)
    return configuration


def _notice(unmatched: List[str], prerequisites: List[str]) -> Optional[str]:
    parts = [quote_unmatched_message(unmatched), quote_prerequisites_message(prerequisites)]
    return "\n\n".join(part for part in parts if part) or None


@router.post("/generate-items")
def api_generate_items(payload: GenerateItemsRequest = Body(...)):
    settings = load_settings()
    try:
        configuration = _load_configuration(payload)
        resolution = resolve_quote(
            configuration,
            catalog_store.load_catalog(),
            payload.existing_items,
            rules=load_selection_rules(settings.selection_rules_path),
            variant_key=payload.variant_key,
            granularity=settings.price_granularity,
            include_delivery=settings.include_delivery,
            delivery_name=settings.delivery_name,
        )
    except ServiceError as exc:
        logger.warning("quote.failed configuration=%s error=%s", payload.configuration_id, exc.message)
        raise HTTPException(status_code=exc.status_code, detail=quote_failed_message(exc.message)) from exc
    return {
        "success": True,
        "configuration_id": payload.configuration_id,
        "items": [item.to_dict() for item in resolution.items],
        "added": len(resolution.added),
        "subtotal": resolution.subtotal,
        "unmatched": resolution.unmatched,
        "prerequisites": resolution.prerequisite_messages,
        "message": _notice(resolution.unmatched, resolution.prerequisite_messages),
    }
