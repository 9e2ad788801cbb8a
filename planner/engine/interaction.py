"""Pointer-driven move / resize / place gestures and their ghost preview.

``InteractionController`` owns at most one ``DragSession`` at a time and
turns a stream of grid-local pointer positions into registry commits:

  * **MOVE** (pointer-down on a building): the candidate cell is the
    session's origin cell plus the accumulated pointer delta converted with
    ``grid.delta_to_cells`` (round half up), clamped to the grid. A valid
    candidate becomes ``last_valid_cell``; an invalid one leaves the ghost
    where it was, flagged invalid. Release commits ``last_valid_cell``.
  * **RESIZE** (pointer-down on the resize handle of a resizable
    building): same delta rule applied to the extent, top-left anchor
    fixed, clamped to 1x1 .. grid edge with ``grid.clamp_extent``.
  * **PLACE_NEW** (toolbar drag, or tool selection followed by a tap): the
    candidate is the cell under the pointer (``grid.pixel_to_cell``,
    floor), clamped so the footprint fits. The ghost follows the pointer
    and is flagged invalid on overlap or when the type's count limit is
    reached. Release on a valid cell creates the building; anything else
    cancels and reports a ``Rejection``.

Sessions are scoped resources: ``DragSession.open`` registers the input
hooks the session needs with the host's ``InputBinder`` and ``close``
removes every one of them. The controller always closes the previous
session before opening a new one, so hooks never pile up. Starting the
same gesture on the same target twice toggles it off instead.

Nothing here raises for an invalid position. Validity is reported through
``GhostPreview.is_valid`` and commits are refused. The ghost is recomputed
on every move and cleared on every way a session can end.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from . import grid
from .grid import GridConfig
from .registry import BuildingRegistry
from .types import (
    Building,
    BuildingType,
    CapabilityError,
    PlacementError,
    Rect,
)

logger = logging.getLogger(__name__)

Cell = tuple[int, int]


class SessionKind(enum.Enum):
    MOVE = "move"
    RESIZE = "resize"
    PLACE_NEW = "place_new"


class PlacementPathway(enum.Enum):
    DRAG = "drag"  # desktop drag-and-drop from the toolbar
    TAP = "tap"  # tool selected, then tap on the grid


class Rejection(enum.Enum):
    OVERLAP = "overlap"
    LIMIT = "limit"
    OUTSIDE = "outside"


# Hook names a session can ask the host to bind.
HOOK_MOTION = "motion"  # handler(px, py)
HOOK_RELEASE = "release"  # handler(px, py)
HOOK_CANCEL = "cancel"  # handler()
HOOK_LEAVE = "leave"  # handler()


class InputBinder(Protocol):
    def bind(self, hook: str, handler: Callable[..., None]) -> Any: ...

    def unbind(self, token: Any) -> None: ...


class NullBinder:
    """Binder for hosts that forward pointer events to the controller."""

    def bind(self, hook: str, handler: Callable[..., None]) -> Any:
        return hook

    def unbind(self, token: Any) -> None:
        pass


@dataclass(frozen=True)
class GhostPreview:
    type: BuildingType
    x: int
    y: int
    width: int
    height: int
    is_valid: bool
    subject_id: str | None = None

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def area(self) -> Rect | None:
        spec = self.type.spec
        return grid.area_rect(self.x, self.y, spec.footprint, spec.area_size)


@dataclass
class DragSession:
    kind: SessionKind
    subject_id: str | None = None
    pending_type: BuildingType | None = None
    pathway: PlacementPathway | None = None
    start_pointer: tuple[float, float] = (0.0, 0.0)
    origin_cell: Cell = (0, 0)
    origin_extent: Cell = (1, 1)
    last_valid_cell: Cell | None = None
    last_valid_extent: Cell = (1, 1)
    is_valid: bool = True
    _binder: InputBinder | None = field(default=None, repr=False)
    _tokens: list[Any] = field(default_factory=list, repr=False)

    @property
    def is_open(self) -> bool:
        return self._binder is not None

    def open(
        self, binder: InputBinder, hooks: dict[str, Callable[..., None]]
    ) -> None:
        self._binder = binder
        for hook, handler in hooks.items():
            self._tokens.append(binder.bind(hook, handler))

    def close(self) -> None:
        """Tear down every hook registered by ``open``. Idempotent."""
        binder, self._binder = self._binder, None
        tokens, self._tokens = self._tokens, []
        if binder is None:
            return
        for token in tokens:
            binder.unbind(token)

    def targets(
        self,
        kind: SessionKind,
        subject_id: str | None = None,
        pending_type: BuildingType | None = None,
    ) -> bool:
        return (
            self.kind is kind
            and self.subject_id == subject_id
            and self.pending_type is pending_type
        )


class InteractionController:
    """State machine for the one active gesture.

    Pointer coordinates are grid-local pixels: (0, 0) is the top-left corner
    of the grid at the current cell size.
    """

    def __init__(
        self,
        registry: BuildingRegistry,
        config: GridConfig,
        binder: InputBinder | None = None,
        on_ghost: Callable[[GhostPreview | None], None] | None = None,
        on_reject: Callable[[Rejection], None] | None = None,
        on_end: Callable[[DragSession], None] | None = None,
    ):
        self.registry = registry
        self.config = config
        self.binder: InputBinder = binder or NullBinder()
        self._on_ghost = on_ghost
        self._on_reject = on_reject
        self._on_end = on_end
        self._session: DragSession | None = None
        self._ghost: GhostPreview | None = None

    @property
    def session(self) -> DragSession | None:
        return self._session

    @property
    def ghost(self) -> GhostPreview | None:
        return self._ghost

    @property
    def is_idle(self) -> bool:
        return self._session is None

    # -- session start --

    def start_move(
        self, building_id: str, px: float, py: float
    ) -> DragSession | None:
        building = self.registry.get(building_id)
        if self._toggle_off(SessionKind.MOVE, subject_id=building_id):
            return None
        session = DragSession(
            kind=SessionKind.MOVE,
            subject_id=building_id,
            start_pointer=(px, py),
            origin_cell=(building.x, building.y),
            origin_extent=(building.width, building.height),
            last_valid_cell=(building.x, building.y),
            last_valid_extent=(building.width, building.height),
        )
        self._begin(session, self._drag_hooks())
        self._set_ghost(self._subject_ghost(building, session, True))
        return session

    def start_resize(
        self, building_id: str, px: float, py: float
    ) -> DragSession | None:
        building = self.registry.get(building_id)
        if not building.spec.resizable:
            raise CapabilityError(f"{building.type.value} is not resizable")
        if self._toggle_off(SessionKind.RESIZE, subject_id=building_id):
            return None
        session = DragSession(
            kind=SessionKind.RESIZE,
            subject_id=building_id,
            start_pointer=(px, py),
            origin_cell=(building.x, building.y),
            origin_extent=(building.width, building.height),
            last_valid_cell=(building.x, building.y),
            last_valid_extent=(building.width, building.height),
        )
        self._begin(session, self._drag_hooks())
        self._set_ghost(self._subject_ghost(building, session, True))
        return session

    def start_placement(
        self,
        building_type: BuildingType,
        pathway: PlacementPathway = PlacementPathway.TAP,
    ) -> DragSession | None:
        """Select a placement tool. Selecting the active tool again
        deselects it."""
        if self._toggle_off(SessionKind.PLACE_NEW, pending_type=building_type):
            return None
        footprint = building_type.spec.footprint
        session = DragSession(
            kind=SessionKind.PLACE_NEW,
            pending_type=building_type,
            pathway=pathway,
            origin_extent=(footprint, footprint),
            last_valid_cell=None,
            last_valid_extent=(footprint, footprint),
            is_valid=False,
        )
        hooks = self._drag_hooks()
        hooks[HOOK_LEAVE] = self.pointer_leave
        self._begin(session, hooks)
        # No ghost until the pointer is over the grid.
        self._set_ghost(None)
        return session

    def _drag_hooks(self) -> dict[str, Callable[..., None]]:
        return {
            HOOK_MOTION: self.pointer_move,
            HOOK_RELEASE: self.pointer_up,
            HOOK_CANCEL: self.cancel,
        }

    def _toggle_off(
        self,
        kind: SessionKind,
        subject_id: str | None = None,
        pending_type: BuildingType | None = None,
    ) -> bool:
        s = self._session
        if s is not None and s.targets(kind, subject_id, pending_type):
            logger.debug("toggling off active %s session", kind.value)
            self._end()
            return True
        return False

    def _begin(
        self, session: DragSession, hooks: dict[str, Callable[..., None]]
    ) -> None:
        # Tear down any stale session (hooks and ghost) before opening.
        if self._session is not None:
            logger.debug(
                "replacing active %s session", self._session.kind.value
            )
            self._end()
        session.open(self.binder, hooks)
        self._session = session
        logger.debug(
            "started %s session (subject=%s, type=%s)",
            session.kind.value,
            session.subject_id,
            session.pending_type.value if session.pending_type else None,
        )

    # -- pointer events --

    def pointer_move(self, px: float, py: float) -> None:
        s = self._session
        if s is None:
            return
        if s.kind is SessionKind.PLACE_NEW:
            self._update_placement(s, px, py)
            return
        building = self._subject(s)
        if building is None:
            return
        dx, dy = grid.delta_to_cells(
            px - s.start_pointer[0],
            py - s.start_pointer[1],
            self.config.cell_size,
        )
        gs = self.registry.grid_size
        if s.kind is SessionKind.MOVE:
            w, h = s.origin_extent
            cx, cy = grid.clamp_footprint(
                s.origin_cell[0] + dx, s.origin_cell[1] + dy, w, h, gs
            )
            valid = self.registry.can_place(
                Rect(cx, cy, w, h), exclude_id=s.subject_id
            )
            if valid:
                s.last_valid_cell = (cx, cy)
        else:
            x, y = s.origin_cell
            w, h = grid.clamp_extent(
                x, y, s.origin_extent[0] + dx, s.origin_extent[1] + dy, gs
            )
            valid = self.registry.can_place(
                Rect(x, y, w, h), exclude_id=s.subject_id
            )
            if valid:
                s.last_valid_extent = (w, h)
        s.is_valid = valid
        self._set_ghost(self._subject_ghost(building, s, valid))

    def pointer_up(self, px: float, py: float) -> Building | None:
        """Finish the gesture. Returns the committed building, if any."""
        s = self._session
        if s is None:
            return None
        if s.kind is SessionKind.PLACE_NEW:
            return self._commit_placement(s, px, py)
        building = self._subject(s)
        if building is None:
            return None
        if (
            s.last_valid_cell == s.origin_cell
            and s.last_valid_extent == s.origin_extent
        ):
            # Nothing moved; a plain click only selects.
            logger.debug("%s session ended without change", s.kind.value)
            self._end()
            return None
        try:
            if s.kind is SessionKind.MOVE:
                assert s.last_valid_cell is not None
                result = self.registry.move(s.subject_id, *s.last_valid_cell)
            else:
                result = self.registry.resize(
                    s.subject_id, *s.last_valid_extent
                )
        except PlacementError:
            # The registry changed under the gesture; drop it.
            logger.warning("commit of %s session refused", s.kind.value)
            self._end()
            self._reject(Rejection.OVERLAP)
            return None
        logger.debug("committed %s session for %s", s.kind.value, result.id)
        self._end()
        return result

    def pointer_leave(self) -> None:
        s = self._session
        if s is None or s.kind is not SessionKind.PLACE_NEW:
            return
        if s.pathway is PlacementPathway.TAP:
            self.cancel()
        else:
            s.last_valid_cell = None
            s.is_valid = False
            self._set_ghost(None)

    def cancel(self) -> bool:
        """Discard the active session without touching the registry.

        Returns False when there was nothing to cancel.
        """
        if self._session is None:
            return False
        logger.debug("cancelled %s session", self._session.kind.value)
        self._end()
        return True

    def mode_switch(self) -> None:
        """An unrelated global mode is starting; drop any gesture first."""
        self.cancel()

    # -- helpers --

    def _placement_candidate(
        self, s: DragSession, px: float, py: float
    ) -> tuple[Cell | None, bool]:
        """(clamped top-left or None if off-grid, is_valid)."""
        assert s.pending_type is not None
        gs = self.registry.grid_size
        cx, cy = grid.pixel_to_cell(px, py, self.config.cell_size)
        if not grid.in_grid(cx, cy, gs):
            return None, False
        fp = s.pending_type.spec.footprint
        x, y = grid.clamp_footprint(cx, cy, fp, fp, gs)
        valid = self.registry.can_add(s.pending_type) and (
            self.registry.can_place(Rect(x, y, fp, fp))
        )
        return (x, y), valid

    def _update_placement(self, s: DragSession, px: float, py: float) -> None:
        cell, valid = self._placement_candidate(s, px, py)
        s.is_valid = valid
        s.last_valid_cell = cell if valid else None
        if cell is None:
            self._set_ghost(None)
            return
        assert s.pending_type is not None
        fp = s.pending_type.spec.footprint
        self._set_ghost(
            GhostPreview(s.pending_type, cell[0], cell[1], fp, fp, valid)
        )

    def _commit_placement(
        self, s: DragSession, px: float, py: float
    ) -> Building | None:
        building_type = s.pending_type
        assert building_type is not None
        cell, valid = self._placement_candidate(s, px, py)
        self._end()
        if cell is None:
            self._reject(Rejection.OUTSIDE)
            return None
        if not self.registry.can_add(building_type):
            self._reject(Rejection.LIMIT)
            return None
        if not valid:
            self._reject(Rejection.OVERLAP)
            return None
        try:
            building = self.registry.add(
                building_type,
                cell[0],
                cell[1],
                name=self.registry.default_name(building_type),
            )
        except PlacementError:
            self._reject(Rejection.OVERLAP)
            return None
        logger.debug("placed %s at %s", building_type.value, cell)
        return building

    def _subject(self, s: DragSession) -> Building | None:
        try:
            return self.registry.get(s.subject_id)  # type: ignore[arg-type]
        except KeyError:
            # Deleted while being dragged.
            self._end()
            return None

    def _subject_ghost(
        self, building: Building, s: DragSession, valid: bool
    ) -> GhostPreview:
        x, y = s.last_valid_cell or s.origin_cell
        w, h = s.last_valid_extent
        return GhostPreview(
            building.type, x, y, w, h, valid, subject_id=building.id
        )

    def _end(self) -> None:
        s, self._session = self._session, None
        if s is not None:
            s.close()
        self._set_ghost(None)
        if s is not None and self._on_end is not None:
            self._on_end(s)

    def _set_ghost(self, ghost: GhostPreview | None) -> None:
        if ghost == self._ghost:
            return
        self._ghost = ghost
        if self._on_ghost is not None:
            self._on_ghost(ghost)

    def _reject(self, reason: Rejection) -> None:
        logger.info("placement rejected: %s", reason.value)
        if self._on_reject is not None:
            self._on_reject(reason)
