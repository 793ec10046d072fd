# main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from poolcatalog.app import catalog_api, quotes_api
from poolcatalog.app.settings import load_settings
from poolcatalog.store import catalog_store

SETTINGS = load_settings()

# ---------- Logging ----------
logger = logging.getLogger("poolcatalog")
if not logger.handlers:
    logging.basicConfig(level=logging.DEBUG if SETTINGS.debug else logging.INFO)


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    catalog_store.init_db()
    logger.info(
        "startup db=%s currency=%s delivery_line=%s origins=%s",
        SETTINGS.db_url,
        SETTINGS.currency,
        SETTINGS.include_delivery,
        ",".join(SETTINGS.allowed_origins),
    )
    yield


app = FastAPI(title="Pool Catalog Backend", lifespan=_lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.allowed_origins),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(catalog_api.router)
app.include_router(quotes_api.router)


# Root (Health)
@app.get("/")
def root():
    return {"ok": True, "service": "poolcatalog-backend", "health": "/api/health", "docs": "/docs"}


@app.get("/api/health")
def api_health():
    return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("poolcatalog.main:app", host="0.0.0.0", port=8000, reload=SETTINGS.debug)
