from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from poolcatalog.app.code_rules import resolve_code_parts
from poolcatalog.app.models import RawCatalogRecord

logger = logging.getLogger(__name__)


@dataclass
class CodeCounter:
    """Collision counter for one generation run.

    The first occurrence of a base code keeps it unchanged, later ones get
    ``-2``, ``-3`` ... in the order they are assigned. Not thread safe: a
    batch is assigned sequentially in input order.
    """

    counts: Dict[str, int] = field(default_factory=dict)
    assigned: Set[str] = field(default_factory=set)

    def assign(self, base_code: str) -> str:
        count = self.counts.get(base_code, 0) + 1
        code = base_code if count == 1 else f"{base_code}-{count}"
        # a literal base code may already look like an earlier "-n" assignment
        while code in self.assigned:
            count += 1
            code = f"{base_code}-{count}"
        self.counts[base_code] = count
        self.assigned.add(code)
        if count > 1:
            logger.debug("code.collision base=%s assigned=%s", base_code, code)
        return code

    def reset(self) -> None:
        self.counts.clear()
        self.assigned.clear()


@dataclass(frozen=True)
class CodeAssignment:
    base_code: str
    code: str
    recognized: bool


def assign_code(record: RawCatalogRecord, counter: CodeCounter) -> CodeAssignment:
    parts = resolve_code_parts(record)
    base = parts.base_code
    return CodeAssignment(base_code=base, code=counter.assign(base), recognized=parts.recognized)


def generate_product_code(record: RawCatalogRecord, counter: Optional[CodeCounter] = None) -> str:
    """Return the unique code for *record*; pass the run's *counter* for batches."""
    return assign_code(record, counter if counter is not None else CodeCounter()).code


def generate_codes(records: Iterable[RawCatalogRecord]) -> List[CodeAssignment]:
    counter = CodeCounter()
    return [assign_code(record, counter) for record in records]
