"""Normalization primitives for catalog product names."""

from __future__ import annotations

import re
import unicodedata
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Tuple

import yaml

_RE_WHITESPACE = re.compile(r"\s+")
_RE_NON_ALNUM = re.compile(r"[^a-z0-9]+")

SynonymRules = Tuple[Tuple[re.Pattern, str], ...]


def normalize_query(text: str) -> str:
    """Return a deterministic, ASCII-friendly representation of *text* for matching.

    Lowercases, strips Czech diacritics, turns non alpha-numeric characters
    into spaces and collapses whitespace. Empty input yields an empty string.
    """

    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text.strip().lower())
    ascii_text = "".join(char for char in decomposed if not unicodedata.combining(char))
    normalized = _RE_NON_ALNUM.sub(" ", ascii_text)
    return _RE_WHITESPACE.sub(" ", normalized).strip()


def name_key(text: str) -> str:
    """Case-insensitive exact key: casefolded with collapsed whitespace."""

    if not text:
        return ""
    return _RE_WHITESPACE.sub(" ", text.strip()).casefold()


def load_synonyms(path: str | Path) -> Dict[str, List[str]]:
    """Load a ``{canonical: [variant, ...]}`` mapping from YAML."""

    loaded = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        raise ValueError("synonyms YAML must define a mapping")
    entries: Dict[str, List[str]] = {}
    for key, value in loaded.items():
        if value is None:
            continue
        values = value if isinstance(value, list) else [value]
        collected = [str(item).strip() for item in values if str(item).strip()]
        if collected:
            entries[str(key)] = collected
    return entries


def compile_synonyms(synonyms: Dict[str, List[str]]) -> SynonymRules:
    pairs = [(variant, canon) for canon, variants in synonyms.items() for variant in variants]
    # longest variant first across all entries
    pairs.sort(key=lambda pair: len(pair[0]), reverse=True)
    return tuple(
        (re.compile(rf"(?<![^\W\d_]){re.escape(variant)}(?!\w)", re.IGNORECASE), canon)
        for variant, canon in pairs
    )


@lru_cache(maxsize=8)
def synonym_rules(path: str) -> SynonymRules:
    return compile_synonyms(load_synonyms(path))


def capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:] if text else text


def normalize_name(name: str, rules: SynonymRules) -> str:
    """Apply whole-word synonym substitutions and capitalise the first letter."""

    normalized = _RE_WHITESPACE.sub(" ", (name or "").strip())
    for pattern, canon in rules:
        normalized = pattern.sub(canon, normalized)
    return capitalize_first(normalized)
