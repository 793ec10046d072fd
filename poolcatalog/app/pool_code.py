"""Pool code grammar: ``BAZ-{SHAPE}-{TYPE}-{dims...}``.

Both the code generator and the parser go through this module so that the
suffix written for a pool skeleton is always readable back into dimensions.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from poolcatalog.app.models import PoolDimensions

POOL_PREFIX = "BAZ"
SET_MARKER = "SET"

SHAPE_CODES = {"circle": "KRU", "rectangle": "OBD"}
TYPE_CODES = {"skimmer": "SK", "overflow": "PR"}
SHAPES_BY_CODE = {code: shape for shape, code in SHAPE_CODES.items()}
TYPES_BY_CODE = {code: kind for kind, code in TYPE_CODES.items()}

_DIM_COUNT = {"circle": 2, "rectangle": 3}
_DECIMAL = re.compile(r"^\d+(?:\.\d+)?$")


def format_dimension(value: float) -> str:
    text = f"{float(value):.3f}".rstrip("0").rstrip(".")
    return text or "0"


def dimension_values(dims: PoolDimensions) -> List[float]:
    if dims.shape == "circle":
        return [dims.diameter, dims.depth]
    return [dims.width, dims.length, dims.depth]


def format_pool_code(dims: PoolDimensions, *, marker: Optional[str] = None) -> str:
    """Build the canonical code for *dims*; *marker* appends a trailing token (``SET``)."""

    parts = [POOL_PREFIX, SHAPE_CODES[dims.shape], TYPE_CODES[dims.type]]
    parts.extend(format_dimension(value) for value in dimension_values(dims))
    if marker:
        parts.append(marker)
    return "-".join(parts)


def dimensions_from_values(shape: str, pool_type: str, values: Sequence[str]) -> Optional[PoolDimensions]:
    """Build PoolDimensions from textual numbers (``,`` or ``.`` decimals)."""

    needed = _DIM_COUNT.get(shape)
    if needed is None or pool_type not in TYPE_CODES or len(values) < needed:
        return None
    numbers: List[float] = []
    for raw in values[:needed]:
        token = str(raw).strip().replace(",", ".")
        if not _DECIMAL.match(token):
            return None
        number = float(token)
        if number <= 0:
            return None
        numbers.append(number)
    if shape == "circle":
        return PoolDimensions(shape=shape, type=pool_type, diameter=numbers[0], depth=numbers[1])
    return PoolDimensions(shape=shape, type=pool_type, width=numbers[0], length=numbers[1], depth=numbers[2])


def parse_pool_code(code: Optional[str]) -> Optional[PoolDimensions]:
    """Recover shape, type and dimensions from a pool code.

    Anything that is not a well formed pool code yields ``None``; callers
    treat that as "not a pool item". Trailing tokens after the dimensions
    (set marker, uniqueness suffix) are ignored.
    """

    if not code:
        return None
    text = code.strip().upper()
    if not text.startswith(POOL_PREFIX + "-"):
        return None
    segments = text.split("-")
    if len(segments) < 4:
        return None
    shape = SHAPES_BY_CODE.get(segments[1])
    pool_type = TYPES_BY_CODE.get(segments[2])
    if shape is None or pool_type is None:
        return None
    return dimensions_from_values(shape, pool_type, segments[3:])


def same_pool(left: Optional[PoolDimensions], right: Optional[PoolDimensions]) -> bool:
    """Exact structural equality; dimensions compare numerically."""

    if left is None or right is None:
        return False
    if left.shape != right.shape or left.type != right.type:
        return False
    return all(a == b for a, b in zip(dimension_values(left), dimension_values(right)))
