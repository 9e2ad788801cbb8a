"""Data types for the grid planner: building types and placed buildings.

``BuildingType`` is the closed set of things that can be placed. Each member
resolves to a static ``BuildingSpec`` (footprint, area of effect, count
limit, capabilities, persistence code) through ``BuildingType.spec``, so
capability checks never go through string-keyed dict lookups.

``Building`` is the mutable record held by ``registry.BuildingRegistry``.
Its ``to_dict``/``from_dict`` pair uses the full-key schema of the legacy
share format (``type``, ``x``, ``y``, ``playerName``, ``width``,
``height``); the compact share format lives in ``frontend/layout_io.py``.

The exception hierarchy used across the engine is defined here as well.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from typing import NamedTuple


class PlannerError(Exception):
    """Base class for errors raised by the planner engine."""


class PlacementError(PlannerError, ValueError):
    """A rectangle overlaps another building or leaves the grid."""


class LimitReachedError(PlacementError):
    """The maximum number of buildings of a type is already placed."""


class CapabilityError(PlannerError, ValueError):
    """Resize/rename on a building type that does not support it."""


class InvalidGridSizeError(PlannerError, ValueError):
    pass


class ShiftOutOfBoundsError(PlannerError, ValueError):
    pass


class LayoutLoadError(PlannerError, ValueError):
    """No persistence format could decode the given locator."""


class Rect(NamedTuple):
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


@dataclass(frozen=True)
class BuildingSpec:
    footprint: int
    area_size: int
    max_count: int | None
    short_code: str
    category: str
    resizable: bool = False
    nameable: bool = False
    default_name: str = ""


class BuildingType(enum.Enum):
    FORTRESS = "fortress"
    OUTPOST = "outpost"
    HELLGATES = "hellgates"
    HOSPITAL = "hospital"
    FARM = "farm"
    WAREHOUSE = "warehouse"
    CASTLE = "castle"
    DEADZONE = "deadzone"

    @property
    def spec(self) -> BuildingSpec:
        return BUILDING_SPECS[self]

    @staticmethod
    def from_code(code: str) -> BuildingType | None:
        """Resolve a short persistence code or a full type name.

        Returns None for anything unknown.
        """
        t = _TYPES_BY_CODE.get(code)
        if t is not None:
            return t
        try:
            return BuildingType(code)
        except ValueError:
            return None


# 'h' and 'w' are taken by height/width in the compact format, hence the
# two-letter codes.
BUILDING_SPECS: dict[BuildingType, BuildingSpec] = {
    BuildingType.FORTRESS: BuildingSpec(
        footprint=3, area_size=15, max_count=1, short_code="f",
        category="alliance",
    ),
    BuildingType.OUTPOST: BuildingSpec(
        footprint=2, area_size=10, max_count=5, short_code="o",
        category="alliance",
    ),
    BuildingType.HELLGATES: BuildingSpec(
        footprint=3, area_size=0, max_count=1, short_code="hg",
        category="alliance",
    ),
    BuildingType.HOSPITAL: BuildingSpec(
        footprint=2, area_size=0, max_count=1, short_code="hp",
        category="alliance",
    ),
    BuildingType.FARM: BuildingSpec(
        footprint=2, area_size=0, max_count=1, short_code="fm",
        category="alliance",
    ),
    BuildingType.WAREHOUSE: BuildingSpec(
        footprint=2, area_size=0, max_count=1, short_code="wh",
        category="alliance",
    ),
    BuildingType.CASTLE: BuildingSpec(
        footprint=2, area_size=0, max_count=None, short_code="c",
        category="player", nameable=True, default_name="Castle {n}",
    ),
    BuildingType.DEADZONE: BuildingSpec(
        footprint=1, area_size=0, max_count=None, short_code="d",
        category="special", resizable=True, nameable=True,
    ),
}

_TYPES_BY_CODE: dict[str, BuildingType] = {
    spec.short_code: t for t, spec in BUILDING_SPECS.items()
}


def new_building_id() -> str:
    """Session-local unique id. Ids are never persisted."""
    return uuid.uuid4().hex[:12]


@dataclass
class Building:
    id: str
    type: BuildingType
    x: int
    y: int
    width: int
    height: int
    name: str = ""

    @staticmethod
    def create(
        building_type: BuildingType,
        x: int,
        y: int,
        name: str = "",
        width: int | None = None,
        height: int | None = None,
    ) -> Building:
        """Build a record with a fresh id and the type's default extent.

        Custom extents are only honoured for resizable types and names only
        for nameable ones.
        """
        spec = building_type.spec
        w = h = spec.footprint
        if spec.resizable:
            w = width if width is not None else spec.footprint
            h = height if height is not None else spec.footprint
        return Building(
            id=new_building_id(),
            type=building_type,
            x=x,
            y=y,
            width=w,
            height=h,
            name=name.strip() if spec.nameable else "",
        )

    @property
    def spec(self) -> BuildingSpec:
        return self.type.spec

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def key(self) -> tuple:
        """Identity-free value used to compare layouts across save/load."""
        return (
            self.type.value,
            self.x,
            self.y,
            self.name,
            self.width,
            self.height,
        )

    @staticmethod
    def from_dict(d: dict) -> Building:
        """Parse a full-key record. Raises ValueError/KeyError/TypeError."""
        building_type = BuildingType(d["type"])
        x, y = d["x"], d["y"]
        if not isinstance(x, int) or not isinstance(y, int):
            raise ValueError(f"non-integer coordinates: {x!r}, {y!r}")
        name = d.get("playerName") or ""
        if not isinstance(name, str):
            raise ValueError(f"playerName must be a string, got {name!r}")
        # Legacy records may carry width/height = 0 or null for fixed types;
        # treat falsy as "use the footprint".
        fp = building_type.spec.footprint
        width = d.get("width") or fp
        height = d.get("height") or fp
        if not all(
            isinstance(v, int) and not isinstance(v, bool) and v >= 1
            for v in (width, height)
        ):
            raise ValueError(f"bad extent {width!r}x{height!r}")
        return Building.create(
            building_type,
            x,
            y,
            name=name,
            width=width,
            height=height,
        )

    def to_dict(self) -> dict:
        d: dict = {
            "type": self.type.value,
            "x": self.x,
            "y": self.y,
            "playerName": self.name,
        }
        if self.spec.resizable:
            d["width"] = self.width
            d["height"] = self.height
        return d

