from __future__ import annotations

from typing import Optional

DEFAULT_UNIT = "ks"

_UOM_ALIASES = {
    "ks": "ks",
    "kus": "ks",
    "kusy": "ks",
    "pcs": "ks",
    "m": "m",
    "bm": "m",
    "m2": "m²",
    "m^2": "m²",
    "m²": "m²",
    "m3": "m³",
    "m^3": "m³",
    "m³": "m³",
    "kg": "kg",
    "hod": "hod",
    "h": "hod",
    "km": "km",
    "kč/km": "km",
    "l": "l",
    "ml": "ml",
    "set": "set",
    "sada": "set",
    "bal": "bal",
    "balení": "bal",
}

# checked in order; first hit wins
_NAME_HINTS = (
    (("m2", "m²"), "m²"),
    (("m3", "m³"), "m³"),
    (("kg",), "kg"),
    (("kč/km", "/km"), "km"),
    (("/m", "bm"), "m"),
    (("hod",), "hod"),
)


def normalize_uom(u: Optional[str]) -> str:
    if not u:
        return ""
    value = u.strip()
    if not value:
        return ""
    return _UOM_ALIASES.get(value.lower(), value)


def determine_unit(name: str, raw_unit: Optional[str] = None) -> str:
    """Unit for a catalog row: hints in the name first, then the exported unit."""

    lowered = (name or "").lower()
    for tokens, unit in _NAME_HINTS:
        if any(token in lowered for token in tokens):
            return unit
    normalized = normalize_uom(raw_unit)
    if normalized and normalized.lower() in _UOM_ALIASES.values():
        return normalized
    return DEFAULT_UNIT


def is_measured_unit(unit: Optional[str]) -> Optional[str]:
    """Return ``"m2"``/``"bm"`` when *unit* is priced per pool area or rim length."""

    normalized = normalize_uom(unit)
    if normalized == "m²":
        return "m2"
    if normalized == "m" or (unit or "").strip().lower() == "bm":
        return "bm"
    return None
