from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

PACKAGE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_SELECTION_RULES = PACKAGE_DIR / "app" / "data" / "selection_rules.yaml"
DEFAULT_SYNONYMS = PACKAGE_DIR / "shared" / "normalize" / "synonyms.yaml"

load_dotenv(PACKAGE_DIR / ".env")


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value.replace(",", "."))
    except ValueError:
        return default


def _origins(value: str) -> Tuple[str, ...]:
    return tuple(origin.strip() for origin in value.split(",") if origin.strip())


@dataclass(frozen=True)
class Settings:
    db_url: str
    output_dir: Path
    currency: str = "CZK"
    default_brand: str = "RENTMIL"
    price_granularity: float = 1.0
    include_delivery: bool = True
    delivery_name: str = "Doprava"
    selection_rules_path: Path = DEFAULT_SELECTION_RULES
    synonyms_path: Path = DEFAULT_SYNONYMS
    allowed_origins: Tuple[str, ...] = ("http://localhost:5173", "http://127.0.0.1:5173")
    debug: bool = False


def load_settings() -> Settings:
    """Read settings from the environment; call again after changing env vars."""

    db_url = (
        os.getenv("POOLCATALOG_DB_URL")
        or os.getenv("DB_URL")
        or f"sqlite:///{PACKAGE_DIR / 'var' / 'poolcatalog.db'}"
    )
    rules_path: Optional[str] = os.getenv("SELECTION_RULES_PATH")
    synonyms_path: Optional[str] = os.getenv("SYNONYMS_PATH")
    origins = _origins(os.getenv("FRONTEND_ORIGINS", ""))
    defaults = Settings(db_url=db_url, output_dir=PACKAGE_DIR / "var" / "outputs")
    return Settings(
        db_url=db_url,
        output_dir=Path(os.getenv("OUTPUT_DIR", str(defaults.output_dir))),
        currency=os.getenv("CURRENCY", defaults.currency),
        default_brand=os.getenv("DEFAULT_BRAND", defaults.default_brand),
        price_granularity=_to_float("PRICE_GRANULARITY", defaults.price_granularity),
        include_delivery=_flag("QUOTE_DELIVERY_LINE", defaults.include_delivery),
        delivery_name=os.getenv("DELIVERY_NAME", defaults.delivery_name),
        selection_rules_path=Path(rules_path) if rules_path else DEFAULT_SELECTION_RULES,
        synonyms_path=Path(synonyms_path) if synonyms_path else DEFAULT_SYNONYMS,
        allowed_origins=origins or defaults.allowed_origins,
        debug=_flag("DEBUG", False),
    )
