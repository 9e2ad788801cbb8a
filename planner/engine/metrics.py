"""Distance-to-Hell-Gates metrics shown on castles.

Distances are Euclidean, centre to centre, in cells.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from .types import Building, BuildingType


def center(building: Building) -> tuple[float, float]:
    return (
        building.x + building.width / 2,
        building.y + building.height / 2,
    )


def distance(a: Building, b: Building) -> float:
    ax, ay = center(a)
    bx, by = center(b)
    return math.hypot(ax - bx, ay - by)


def find_hellgates(buildings: Iterable[Building]) -> Building | None:
    for b in buildings:
        if b.type is BuildingType.HELLGATES:
            return b
    return None


def castle_distances(buildings: Iterable[Building]) -> dict[str, float]:
    """Map castle id -> distance to the hell gates.

    Empty when no hell gates are placed.
    """
    buildings = list(buildings)
    gates = find_hellgates(buildings)
    if gates is None:
        return {}
    return {
        b.id: distance(b, gates)
        for b in buildings
        if b.type is BuildingType.CASTLE
    }


def average_castle_distance(buildings: Iterable[Building]) -> float | None:
    distances = castle_distances(buildings)
    if not distances:
        return None
    return sum(distances.values()) / len(distances)
