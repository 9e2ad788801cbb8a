"""Tests for the move / resize / place gesture state machine."""

import pytest

from planner.engine.grid import GridConfig
from planner.engine.interaction import (
    HOOK_CANCEL,
    HOOK_LEAVE,
    HOOK_MOTION,
    HOOK_RELEASE,
    InteractionController,
    PlacementPathway,
    Rejection,
    SessionKind,
)
from planner.engine.registry import BuildingRegistry, EventKind
from planner.engine.types import BuildingType, CapabilityError, Rect

CELL = 24.0


class RecordingBinder:
    """Keeps the live bindings so tests can fire them and check teardown."""

    def __init__(self):
        self.active = {}
        self._next = 0

    def bind(self, hook, handler):
        self._next += 1
        self.active[self._next] = (hook, handler)
        return self._next

    def unbind(self, token):
        del self.active[token]  # KeyError on double unbind

    def hooks(self):
        return sorted(hook for hook, _ in self.active.values())

    def fire(self, hook, *args):
        for h, handler in list(self.active.values()):
            if h == hook:
                handler(*args)


class Harness:
    def __init__(self, grid_size=50, cell_size=CELL):
        self.registry = BuildingRegistry(grid_size)
        self.binder = RecordingBinder()
        self.ghosts = []
        self.rejections = []
        self.ended = []
        self.events = []
        self.registry.subscribe(self.events.append)
        self.controller = InteractionController(
            self.registry,
            GridConfig(grid_size, cell_size),
            binder=self.binder,
            on_ghost=self.ghosts.append,
            on_reject=self.rejections.append,
            on_end=self.ended.append,
        )

    def px(self, cell):
        """Pixel a little inside the given cell."""
        return cell * CELL + 3


@pytest.fixture
def h():
    return Harness()


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


class TestPlacement:
    def test_tap_places_with_default_name(self, h):
        h.controller.start_placement(BuildingType.CASTLE)
        h.controller.pointer_move(h.px(10), h.px(10))
        assert h.controller.ghost.rect == Rect(10, 10, 2, 2)
        assert h.controller.ghost.is_valid
        b = h.controller.pointer_up(h.px(10), h.px(10))
        assert (b.x, b.y, b.name) == (10, 10, "Castle 1")
        assert h.controller.session is None
        assert h.controller.ghost is None
        assert h.events[-1].kind is EventKind.BUILDING_CREATED

    def test_overlapping_placement_rejected(self, h):
        """2x2 at (10,10), then 2x2 at (11,11): rejected, registry intact."""
        first = h.registry.add(BuildingType.CASTLE, 10, 10)
        h.controller.start_placement(BuildingType.CASTLE)
        h.controller.pointer_move(h.px(11), h.px(11))
        assert not h.controller.ghost.is_valid
        assert h.controller.ghost.rect == Rect(11, 11, 2, 2)
        assert h.controller.pointer_up(h.px(11), h.px(11)) is None
        assert h.rejections == [Rejection.OVERLAP]
        assert h.registry.buildings == (first,)
        assert (first.x, first.y) == (10, 10)

    def test_drop_point_decides(self, h):
        """Release position, not the last hover, picks the cell."""
        h.controller.start_placement(
            BuildingType.FARM, PlacementPathway.DRAG
        )
        h.controller.pointer_move(h.px(3), h.px(3))
        b = h.controller.pointer_up(h.px(7), h.px(8))
        assert (b.x, b.y) == (7, 8)

    def test_footprint_clamped_at_edge(self, h):
        h.controller.start_placement(BuildingType.FORTRESS)
        h.controller.pointer_move(h.px(49), h.px(49))
        assert h.controller.ghost.rect == Rect(47, 47, 3, 3)
        assert h.controller.ghost.area == Rect(41, 41, 15, 15)

    def test_limit_reached(self, h):
        h.registry.add(BuildingType.FORTRESS, 0, 0)
        h.controller.start_placement(BuildingType.FORTRESS)
        h.controller.pointer_move(h.px(20), h.px(20))
        assert not h.controller.ghost.is_valid
        assert h.controller.pointer_up(h.px(20), h.px(20)) is None
        assert h.rejections == [Rejection.LIMIT]
        assert h.registry.count(BuildingType.FORTRESS) == 1

    def test_drop_outside_grid(self, h):
        h.controller.start_placement(
            BuildingType.CASTLE, PlacementPathway.DRAG
        )
        h.controller.pointer_move(h.px(2), h.px(2))
        h.controller.pointer_move(-40.0, 10.0)
        assert h.controller.ghost is None
        assert h.controller.session is not None
        assert h.controller.pointer_up(-40.0, 10.0) is None
        assert h.rejections == [Rejection.OUTSIDE]
        assert len(h.registry) == 0

    def test_drag_leave_keeps_session(self, h):
        h.controller.start_placement(
            BuildingType.CASTLE, PlacementPathway.DRAG
        )
        h.controller.pointer_move(h.px(2), h.px(2))
        h.controller.pointer_leave()
        assert h.controller.ghost is None
        assert h.controller.session is not None

    def test_tap_leave_cancels(self, h):
        h.controller.start_placement(BuildingType.CASTLE)
        h.controller.pointer_move(h.px(2), h.px(2))
        h.controller.pointer_leave()
        assert h.controller.session is None
        assert h.controller.ghost is None
        assert h.binder.active == {}
        assert h.rejections == []

    def test_placement_hooks(self, h):
        h.controller.start_placement(BuildingType.CASTLE)
        assert h.binder.hooks() == sorted(
            [HOOK_CANCEL, HOOK_LEAVE, HOOK_MOTION, HOOK_RELEASE]
        )

    def test_second_release_is_noop(self, h):
        """A duplicate release after the commit does not place twice."""
        h.controller.start_placement(BuildingType.CASTLE)
        h.controller.pointer_up(h.px(1), h.px(1))
        assert h.controller.pointer_up(h.px(5), h.px(5)) is None
        assert len(h.registry) == 1


# ---------------------------------------------------------------------------
# Move
# ---------------------------------------------------------------------------


class TestMove:
    def test_one_cell_right(self, h):
        a = h.registry.add(BuildingType.CASTLE, 0, 0)
        h.controller.start_move(a.id, 30.0, 30.0)
        h.controller.pointer_move(30.0 + CELL, 30.0)
        ghost = h.controller.ghost
        assert (ghost.x, ghost.y, ghost.is_valid) == (1, 0, True)
        assert ghost.subject_id == a.id
        h.controller.pointer_up(30.0 + CELL, 30.0)
        assert (a.x, a.y) == (1, 0)
        assert h.events[-1].kind is EventKind.BUILDING_MOVED
        assert h.binder.active == {}

    def test_sub_half_cell_stays(self, h):
        a = h.registry.add(BuildingType.CASTLE, 4, 4)
        h.controller.start_move(a.id, 100.0, 100.0)
        h.controller.pointer_move(100.0 + 11, 100.0 - 11)
        assert h.controller.ghost.rect == Rect(4, 4, 2, 2)

    def test_click_without_motion_commits_nothing(self, h):
        a = h.registry.add(BuildingType.CASTLE, 4, 4)
        n_events = len(h.events)
        h.controller.start_move(a.id, 100.0, 100.0)
        assert h.controller.pointer_up(100.0, 100.0) is None
        assert (a.x, a.y) == (4, 4)
        assert len(h.events) == n_events
        assert h.controller.session is None
        assert len(h.ended) == 1

    def test_moved_back_to_origin_commits_nothing(self, h):
        a = h.registry.add(BuildingType.CASTLE, 4, 4)
        n_events = len(h.events)
        h.controller.start_move(a.id, 100.0, 100.0)
        h.controller.pointer_move(100.0 + CELL * 2, 100.0)
        h.controller.pointer_move(100.0, 100.0)
        h.controller.pointer_up(100.0, 100.0)
        assert len(h.events) == n_events

    def test_invalid_keeps_last_valid(self, h):
        a = h.registry.add(BuildingType.CASTLE, 0, 0)
        h.registry.add(BuildingType.CASTLE, 4, 0)
        h.controller.start_move(a.id, 0.0, 0.0)
        h.controller.pointer_move(CELL * 2, 0.0)  # (2,0): valid
        h.controller.pointer_move(CELL * 3, 0.0)  # (3,0): overlaps
        ghost = h.controller.ghost
        assert (ghost.x, ghost.y, ghost.is_valid) == (2, 0, False)
        h.controller.pointer_up(CELL * 3, 0.0)
        assert (a.x, a.y) == (2, 0)

    def test_clamped_to_grid(self, h):
        a = h.registry.add(BuildingType.CASTLE, 47, 0)
        h.controller.start_move(a.id, 0.0, 0.0)
        h.controller.pointer_move(CELL * 10, -CELL * 10)
        assert h.controller.ghost.rect == Rect(48, 0, 2, 2)

    def test_cancel_restores(self, h):
        a = h.registry.add(BuildingType.CASTLE, 5, 5)
        h.controller.start_move(a.id, 0.0, 0.0)
        h.controller.pointer_move(CELL * 3, CELL * 3)
        n_events = len(h.events)
        assert h.controller.cancel() is True
        assert (a.x, a.y) == (5, 5)
        assert h.controller.ghost is None
        assert h.binder.active == {}
        assert len(h.events) == n_events

    def test_repeated_cancel_is_noop(self, h):
        a = h.registry.add(BuildingType.CASTLE, 5, 5)
        h.controller.start_move(a.id, 0.0, 0.0)
        assert h.controller.cancel() is True
        assert h.controller.cancel() is False
        assert len(h.ended) == 1

    def test_subject_deleted_mid_drag(self, h):
        a = h.registry.add(BuildingType.CASTLE, 5, 5)
        h.controller.start_move(a.id, 0.0, 0.0)
        h.registry.delete(a.id)
        h.controller.pointer_move(CELL, 0.0)
        assert h.controller.session is None
        assert h.binder.active == {}

    def test_driven_through_binder(self, h):
        a = h.registry.add(BuildingType.CASTLE, 0, 0)
        h.controller.start_move(a.id, 0.0, 0.0)
        assert h.binder.hooks() == sorted(
            [HOOK_CANCEL, HOOK_MOTION, HOOK_RELEASE]
        )
        h.binder.fire(HOOK_MOTION, CELL * 2, CELL * 3)
        h.binder.fire(HOOK_RELEASE, CELL * 2, CELL * 3)
        assert (a.x, a.y) == (2, 3)
        assert h.binder.active == {}


# ---------------------------------------------------------------------------
# Resize
# ---------------------------------------------------------------------------


class TestResize:
    def test_clamped_at_grid_edge(self):
        """1x1 at (8,5) on a 10 grid, +3 cells each way -> 2x4."""
        h = Harness(grid_size=10)
        d = h.registry.add(BuildingType.DEADZONE, 8, 5)
        h.controller.start_resize(d.id, 9 * CELL - 2, 6 * CELL - 2)
        h.controller.pointer_move(12 * CELL - 2, 9 * CELL - 2)
        ghost = h.controller.ghost
        assert (ghost.x, ghost.y, ghost.width, ghost.height) == (8, 5, 2, 4)
        h.controller.pointer_up(12 * CELL - 2, 9 * CELL - 2)
        assert d.rect == Rect(8, 5, 2, 4)
        assert h.events[-1].kind is EventKind.BUILDING_RESIZED

    def test_never_below_one_cell(self, h):
        d = h.registry.add(BuildingType.DEADZONE, 5, 5, width=3, height=3)
        h.controller.start_resize(d.id, 0.0, 0.0)
        h.controller.pointer_move(-CELL * 10, -CELL * 10)
        assert h.controller.ghost.rect == Rect(5, 5, 1, 1)

    def test_blocked_growth_keeps_last_valid_extent(self, h):
        d = h.registry.add(BuildingType.DEADZONE, 0, 0)
        h.registry.add(BuildingType.CASTLE, 3, 0)
        h.controller.start_resize(d.id, 0.0, 0.0)
        h.controller.pointer_move(CELL * 2, 0.0)  # 3x1: fits
        h.controller.pointer_move(CELL * 4, 0.0)  # 5x1: hits the castle
        assert not h.controller.ghost.is_valid
        h.controller.pointer_up(CELL * 4, 0.0)
        assert (d.width, d.height) == (3, 1)

    def test_release_at_original_extent_commits_nothing(self, h):
        d = h.registry.add(BuildingType.DEADZONE, 5, 5, width=2, height=2)
        n_events = len(h.events)
        h.controller.start_resize(d.id, 0.0, 0.0)
        h.controller.pointer_move(CELL * 0.3, 0.0)
        assert h.controller.pointer_up(CELL * 0.3, 0.0) is None
        assert d.rect == Rect(5, 5, 2, 2)
        assert len(h.events) == n_events

    def test_not_resizable(self, h):
        c = h.registry.add(BuildingType.CASTLE, 0, 0)
        with pytest.raises(CapabilityError):
            h.controller.start_resize(c.id, 0.0, 0.0)
        assert h.controller.session is None


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------


class TestSessionLifecycle:
    def test_same_tool_toggles_off(self, h):
        assert h.controller.start_placement(BuildingType.CASTLE) is not None
        assert h.controller.start_placement(BuildingType.CASTLE) is None
        assert h.controller.session is None
        assert h.binder.active == {}

    def test_same_building_toggles_off(self, h):
        a = h.registry.add(BuildingType.CASTLE, 0, 0)
        h.controller.start_move(a.id, 0.0, 0.0)
        assert h.controller.start_move(a.id, 0.0, 0.0) is None
        assert h.controller.session is None

    def test_new_session_tears_down_previous(self, h):
        a = h.registry.add(BuildingType.CASTLE, 0, 0)
        h.controller.start_placement(BuildingType.FARM)
        h.controller.pointer_move(h.px(10), h.px(10))
        session = h.controller.start_move(a.id, 0.0, 0.0)
        assert h.controller.session is session
        assert session.kind is SessionKind.MOVE
        assert h.binder.hooks() == sorted(
            [HOOK_CANCEL, HOOK_MOTION, HOOK_RELEASE]
        )
        assert h.controller.ghost.subject_id == a.id
        assert [s.kind for s in h.ended] == [SessionKind.PLACE_NEW]

    def test_other_tool_replaces(self, h):
        h.controller.start_placement(BuildingType.FARM)
        session = h.controller.start_placement(BuildingType.HOSPITAL)
        assert session.pending_type is BuildingType.HOSPITAL
        assert len(h.binder.active) == 4

    def test_mode_switch_cancels(self, h):
        a = h.registry.add(BuildingType.CASTLE, 5, 5)
        h.controller.start_move(a.id, 0.0, 0.0)
        h.controller.pointer_move(CELL, CELL)
        h.controller.mode_switch()
        assert h.controller.is_idle
        assert (a.x, a.y) == (5, 5)
        assert h.ghosts[-1] is None

    def test_cancel_hook_through_binder(self, h):
        h.controller.start_placement(BuildingType.CASTLE)
        h.binder.fire(HOOK_CANCEL)
        assert h.controller.session is None
        assert h.binder.active == {}

    def test_events_without_session_ignored(self, h):
        h.controller.pointer_move(10.0, 10.0)
        h.controller.pointer_leave()
        assert h.controller.pointer_up(10.0, 10.0) is None
        assert h.ghosts == []
