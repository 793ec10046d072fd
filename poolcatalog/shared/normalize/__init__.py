"""Utility helpers for product name normalization and synonym handling."""

from .text import (
    capitalize_first,
    load_synonyms,
    name_key,
    normalize_name,
    normalize_query,
    synonym_rules,
)

__all__ = [
    "capitalize_first",
    "load_synonyms",
    "name_key",
    "normalize_name",
    "normalize_query",
    "synonym_rules",
]
