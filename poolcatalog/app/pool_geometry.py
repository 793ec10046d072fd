from __future__ import annotations

import math

from poolcatalog.app.models import Measurement, PoolDimensions


def pool_surface(dims: PoolDimensions) -> float:
    """Inner surface in m²: walls plus floor."""
    if dims.shape == "circle":
        return math.pi * dims.diameter * dims.depth + math.pi * (dims.diameter / 2) ** 2
    return 2 * dims.width * dims.depth + 2 * dims.length * dims.depth + dims.width * dims.length


def pool_perimeter(dims: PoolDimensions) -> float:
    """Rim length in running metres (bm)."""
    if dims.shape == "circle":
        return math.pi * dims.diameter
    return 2 * (dims.width + dims.length)


def pool_volume(dims: PoolDimensions) -> float:
    if dims.shape == "circle":
        return math.pi * (dims.diameter / 2) ** 2 * dims.depth
    return dims.width * dims.length * dims.depth


def measure(dims: PoolDimensions) -> Measurement:
    return Measurement(area=pool_surface(dims), perimeter=pool_perimeter(dims))
