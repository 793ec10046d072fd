"""Regex based extraction of measurements embedded in free-text product names."""

from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

_NUM = r"(\d+(?:[.,]\d+)?)"
_X = r"\s*[x×]\s*"

# kind -> compiled pattern; each group is one numeric value
_PATTERNS: Dict[str, re.Pattern[str]] = {
    "dimensions": re.compile(_NUM + _X + _NUM + _X + _NUM, re.IGNORECASE),
    "pair": re.compile(_NUM + _X + _NUM, re.IGNORECASE),
    "mm": re.compile(_NUM + r"\s*mm\b", re.IGNORECASE),
    "kg": re.compile(_NUM + r"\s*kg\b", re.IGNORECASE),
    "w": re.compile(_NUM + r"\s*w\b", re.IGNORECASE),
    "kw": re.compile(_NUM + r"\s*kw\b", re.IGNORECASE),
    "deg": re.compile(_NUM + r"\s*°"),
    "m3h": re.compile(_NUM + r"\s*m(?:3|³)\s*/\s*(?:hod|h)\b", re.IGNORECASE),
    "m3": re.compile(_NUM + r"\s*m(?:3|³)(?!\s*/)", re.IGNORECASE),
    "l": re.compile(_NUM + r"\s*l\b", re.IGNORECASE),
    "ml": re.compile(_NUM + r"\s*ml\b", re.IGNORECASE),
    "depth": re.compile(r"hloubk\w*\s*(?:na\s*)?" + _NUM, re.IGNORECASE),
}

KINDS = tuple(_PATTERNS)


def _clean(value: str) -> str:
    return value.replace(",", ".")


def extract(text: str, kind: str) -> Optional[Tuple[str, ...]]:
    """Return the first group of numbers of *kind* found in *text*.

    Numbers are returned as strings with ``.`` as decimal separator so callers
    can embed them verbatim. ``None`` means the text carries no such value.
    """

    pattern = _PATTERNS.get(kind)
    if pattern is None:
        raise ValueError(f"Unknown measurement kind '{kind}'. Allowed: {', '.join(KINDS)}")
    if not text:
        return None
    match = pattern.search(text)
    if not match:
        return None
    return tuple(_clean(group) for group in match.groups())


def extract_one(text: str, kind: str) -> Optional[str]:
    values = extract(text, kind)
    return values[0] if values else None
