"""Friendly Czech plain-text messages for quoting and catalog problems.

The HTTP responses and the CLI share these helpers so sales staff always see
the same wording.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping

FIELD_LABELS = {
    "pool": "Bazén (skelet)",
    "stairs": "Schodiště",
    "technology": "Technologie",
    "lighting": "Osvětlení",
    "counterflow": "Protiproud",
    "water_treatment": "Úprava vody",
    "heating": "Ohřev",
    "roofing": "Zastřešení",
}


def _bullet_list(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def _selection_label(selection: str) -> str:
    field, _, value = selection.partition("=")
    label = FIELD_LABELS.get(field, field)
    return f"{label}: {value}" if value else label


def quote_unmatched_message(unmatched: Iterable[str]) -> str:
    """Note attached to a quote when some selections have no catalog row."""
    cleaned = [item.strip() for item in unmatched if item and item.strip()]
    if not cleaned:
        return ""
    bullets = _bullet_list(_selection_label(item) for item in cleaned)
    return (
        "Upozornění k nabídce\n\n"
        "Pro tyto volby jsme v katalogu nenašli odpovídající položku:\n"
        f"{bullets}\n\n"
        "Doplňte prosím položky ručně nebo požádejte o doplnění katalogu."
    )


def quote_failed_message(detail: str) -> str:
    return (
        "Nabídku nelze vygenerovat\n\n"
        f"{detail.strip()}\n\n"
        "Stávající položky nabídky zůstaly beze změny."
    )


def review_summary_message(reason_counts: Mapping[str, int]) -> str:
    """Summary printed after a normalization run."""
    if not reason_counts:
        return "Všechny položky katalogu jsou v pořádku."
    ordered: Dict[str, int] = dict(sorted(reason_counts.items(), key=lambda pair: (-pair[1], pair[0])))
    bullets = _bullet_list(f"{reason}: {count}" for reason, count in ordered.items())
    return "Položky ke kontrole\n\n" f"{bullets}"


def quote_prerequisites_message(messages: Iterable[str]) -> str:
    cleaned = [message.strip() for message in messages if message and message.strip()]
    if not cleaned:
        return ""
    return "Chybějící návazné položky\n\n" f"{_bullet_list(cleaned)}"
