"""The building registry: the single authoritative set of placed buildings.

All mutation goes through the commit methods below. Each one validates
first (count limits, capabilities, ``collision.can_place``) and only then
mutates, so a rejected commit raises before any state change and the
registry is never left overlapping or out of bounds. There are seven
commits:

  * **add** / **delete**: create or remove one building.
  * **move** / **resize** / **rename**: change one building in place.
  * **shift_all**: translate every building by the same delta,
    all-or-nothing.
  * **replace_all**: swap in a whole loaded layout, skipping (and
    reporting) incoming buildings that do not fit.

``set_grid_size`` is the one configuration change that needs the registry:
shrinking the grid is refused while any building would fall off it.

Every successful commit emits a ``LayoutEvent`` to subscribers. The GUI
subscribes to re-render; tests subscribe to assert what happened.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field

from . import collision
from .grid import DEFAULT_GRID_SIZE, validate_grid_size
from .types import (
    Building,
    BuildingType,
    CapabilityError,
    InvalidGridSizeError,
    LimitReachedError,
    PlacementError,
    Rect,
    ShiftOutOfBoundsError,
)

logger = logging.getLogger(__name__)


class EventKind(enum.Enum):
    BUILDING_CREATED = "building_created"
    BUILDING_MOVED = "building_moved"
    BUILDING_RESIZED = "building_resized"
    BUILDING_RENAMED = "building_renamed"
    BUILDING_DELETED = "building_deleted"
    LAYOUT_SHIFTED = "layout_shifted"
    LAYOUT_REPLACED = "layout_replaced"
    GRID_RESIZED = "grid_resized"


@dataclass(frozen=True)
class LayoutEvent:
    kind: EventKind
    building: Building | None = None
    delta: tuple[int, int] = (0, 0)
    skipped: tuple[Building, ...] = field(default=())


LayoutListener = Callable[[LayoutEvent], None]


class BuildingRegistry:
    def __init__(self, grid_size: int = DEFAULT_GRID_SIZE):
        self._grid_size = validate_grid_size(grid_size)
        self._buildings: list[Building] = []
        self._listeners: list[LayoutListener] = []

    # -- read access --

    @property
    def grid_size(self) -> int:
        return self._grid_size

    @property
    def buildings(self) -> tuple[Building, ...]:
        """Snapshot of the placed buildings, in placement order."""
        return tuple(self._buildings)

    def __iter__(self) -> Iterator[Building]:
        return iter(tuple(self._buildings))

    def __len__(self) -> int:
        return len(self._buildings)

    def __contains__(self, building_id: object) -> bool:
        return any(b.id == building_id for b in self._buildings)

    def get(self, building_id: str) -> Building:
        for b in self._buildings:
            if b.id == building_id:
                return b
        raise KeyError(building_id)

    def count(self, building_type: BuildingType) -> int:
        return sum(1 for b in self._buildings if b.type is building_type)

    def can_add(self, building_type: BuildingType) -> bool:
        limit = building_type.spec.max_count
        return limit is None or self.count(building_type) < limit

    def can_place(self, rect: Rect, exclude_id: str | None = None) -> bool:
        return collision.can_place(
            rect, self._buildings, self._grid_size, exclude_id
        )

    def default_name(self, building_type: BuildingType) -> str:
        """Name given to a freshly placed building, e.g. ``Castle 3``."""
        template = building_type.spec.default_name
        if not template:
            return ""
        return template.format(n=self.count(building_type) + 1)

    # -- subscribers --

    def subscribe(self, listener: LayoutListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: LayoutEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    # -- commits --

    def add(
        self,
        building_type: BuildingType,
        x: int,
        y: int,
        name: str = "",
        width: int | None = None,
        height: int | None = None,
    ) -> Building:
        if not self.can_add(building_type):
            raise LimitReachedError(
                f"{building_type.value}: limit of "
                f"{building_type.spec.max_count} reached"
            )
        building = Building.create(
            building_type, x, y, name=name, width=width, height=height
        )
        if not self.can_place(building.rect):
            raise PlacementError(
                f"Cannot place {building_type.value} at ({x}, {y}): "
                "overlaps another building or leaves the grid"
            )
        self._buildings.append(building)
        logger.debug("created %s %s at (%d, %d)", building_type.value,
                     building.id, x, y)
        self._emit(LayoutEvent(EventKind.BUILDING_CREATED, building))
        return building

    def move(self, building_id: str, x: int, y: int) -> Building:
        building = self.get(building_id)
        target = Rect(x, y, building.width, building.height)
        if not self.can_place(target, exclude_id=building_id):
            raise PlacementError(
                f"Cannot move {building.type.value} to ({x}, {y})"
            )
        building.x, building.y = x, y
        self._emit(LayoutEvent(EventKind.BUILDING_MOVED, building))
        return building

    def resize(self, building_id: str, width: int, height: int) -> Building:
        building = self.get(building_id)
        if not building.spec.resizable:
            raise CapabilityError(f"{building.type.value} is not resizable")
        target = Rect(building.x, building.y, width, height)
        if not self.can_place(target, exclude_id=building_id):
            raise PlacementError(
                f"Cannot resize {building.type.value} to {width}x{height}"
            )
        building.width, building.height = width, height
        self._emit(LayoutEvent(EventKind.BUILDING_RESIZED, building))
        return building

    def rename(self, building_id: str, name: str) -> Building:
        building = self.get(building_id)
        if not building.spec.nameable:
            raise CapabilityError(f"{building.type.value} cannot be named")
        building.name = name.strip()
        self._emit(LayoutEvent(EventKind.BUILDING_RENAMED, building))
        return building

    def delete(self, building_id: str) -> Building:
        building = self.get(building_id)
        self._buildings.remove(building)
        self._emit(LayoutEvent(EventKind.BUILDING_DELETED, building))
        return building

    def shift_all(self, dx: int, dy: int) -> None:
        if not collision.can_shift_all(
            dx, dy, self._buildings, self._grid_size
        ):
            raise ShiftOutOfBoundsError(
                "Cannot shift buildings further."
            )
        for b in self._buildings:
            b.x += dx
            b.y += dy
        self._emit(LayoutEvent(EventKind.LAYOUT_SHIFTED, delta=(dx, dy)))

    def set_grid_size(self, grid_size: int) -> None:
        validate_grid_size(grid_size)
        misfits = [
            b for b in self._buildings
            if not collision.rect_in_bounds(b.rect, grid_size)
        ]
        if misfits:
            raise InvalidGridSizeError(
                f"{len(misfits)} building(s) would not fit on a "
                f"{grid_size}x{grid_size} grid"
            )
        self._grid_size = grid_size
        self._emit(LayoutEvent(EventKind.GRID_RESIZED))

    def replace_all(self, incoming: Iterable[Building]) -> list[Building]:
        """Replace the whole layout with ``incoming`` in one step.

        Each incoming building is gated against count limits, the grid and
        the buildings accepted before it. Returns the skipped ones.
        """
        accepted: list[Building] = []
        skipped: list[Building] = []
        counts: dict[BuildingType, int] = {}
        for b in incoming:
            limit = b.spec.max_count
            n = counts.get(b.type, 0)
            if limit is not None and n >= limit:
                logger.warning(
                    "Skipping %s at (%d, %d): limit of %d reached",
                    b.type.value, b.x, b.y, limit,
                )
                skipped.append(b)
                continue
            if not collision.can_place(b.rect, accepted, self._grid_size):
                logger.warning(
                    "Skipping %s at (%d, %d): overlaps or off the %dx%d grid",
                    b.type.value, b.x, b.y, self._grid_size, self._grid_size,
                )
                skipped.append(b)
                continue
            counts[b.type] = n + 1
            accepted.append(b)
        self._buildings = accepted
        self._emit(
            LayoutEvent(EventKind.LAYOUT_REPLACED, skipped=tuple(skipped))
        )
        return skipped

    def clear(self) -> None:
        self.replace_all([])
