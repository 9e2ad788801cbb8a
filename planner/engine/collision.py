"""Overlap, bounds and bulk-shift checks for buildings on the grid.

The central question this module answers: "can this rectangle go here?"
Every commit in ``registry.py`` and every pointer move in
``interaction.py`` goes through ``can_place``. The check enforces:

  * **No overlap**: the candidate must not intersect any other building.
    Rectangles are half-open, so buildings that share an edge or a corner
    do not overlap.
  * **Grid bounds**: the whole rectangle lies in ``[0, grid_size)``.

Overlap is tested against the whole registry at once with numpy; the
subject of a move/resize is excluded by id rather than removed from the
registry, so a building never collides with its own pre-move rectangle.

``can_shift_all`` is the feasibility check for translating the whole
layout. It only checks bounds: a uniform translation keeps relative
positions, so it can never introduce an overlap.

Also provides ``building_at`` (cell hit-test for the GUI) and
``layout_is_valid`` (both global invariants at once).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

from .types import Building, Rect


def rects_overlap(a: Rect, b: Rect) -> bool:
    """True if the interiors of two rectangles intersect.

    Touching (shared edge or corner) is NOT counted as overlap.
    """
    return (
        a.x < b.x + b.width
        and a.x + a.width > b.x
        and a.y < b.y + b.height
        and a.y + a.height > b.y
    )


def rect_in_bounds(rect: Rect, grid_size: int) -> bool:
    return (
        rect.width >= 1
        and rect.height >= 1
        and rect.x >= 0
        and rect.y >= 0
        and rect.x + rect.width <= grid_size
        and rect.y + rect.height <= grid_size
    )


def _rect_arrays(
    buildings: Iterable[Building], exclude_id: str | None = None
) -> np.ndarray:
    """(N, 4) int array of x, y, width, height, minus the excluded id."""
    rows = [b.rect for b in buildings if b.id != exclude_id]
    if not rows:
        return np.empty((0, 4), dtype=np.int64)
    return np.array(rows, dtype=np.int64)


def overlap_mask(
    candidate: Rect, rects: np.ndarray
) -> np.ndarray:
    """Boolean mask of which rows of ``rects`` intersect ``candidate``."""
    bx, by, bw, bh = rects[:, 0], rects[:, 1], rects[:, 2], rects[:, 3]
    return (
        (candidate.x < bx + bw)
        & (candidate.x + candidate.width > bx)
        & (candidate.y < by + bh)
        & (candidate.y + candidate.height > by)
    )


def overlaps(
    candidate: Rect,
    buildings: Iterable[Building],
    exclude_id: str | None = None,
) -> bool:
    """True if ``candidate`` intersects any building other than exclude_id."""
    rects = _rect_arrays(buildings, exclude_id)
    if len(rects) == 0:
        return False
    return bool(np.any(overlap_mask(candidate, rects)))


def can_place(
    candidate: Rect,
    buildings: Iterable[Building],
    grid_size: int,
    exclude_id: str | None = None,
) -> bool:
    if not rect_in_bounds(candidate, grid_size):
        return False
    return not overlaps(candidate, buildings, exclude_id)


def can_shift_all(
    dx: int, dy: int, buildings: Iterable[Building], grid_size: int
) -> bool:
    """True if translating every building by (dx, dy) stays on the grid.

    An empty layout has nothing to shift and reports False.
    """
    rects = _rect_arrays(buildings)
    if len(rects) == 0:
        return False
    xs = rects[:, 0] + dx
    ys = rects[:, 1] + dy
    return bool(
        np.all(xs >= 0)
        and np.all(ys >= 0)
        and np.all(xs + rects[:, 2] <= grid_size)
        and np.all(ys + rects[:, 3] <= grid_size)
    )


def building_at(
    cx: int, cy: int, buildings: Sequence[Building]
) -> Building | None:
    """Return the building covering cell (cx, cy), or None.

    Later buildings are drawn on top, so they win the hit-test.
    """
    for b in reversed(buildings):
        if b.x <= cx < b.x + b.width and b.y <= cy < b.y + b.height:
            return b
    return None


def layout_is_valid(buildings: Sequence[Building], grid_size: int) -> bool:
    """True if every building is in bounds and no two overlap."""
    rects = _rect_arrays(buildings)
    for i, b in enumerate(buildings):
        if not rect_in_bounds(b.rect, grid_size):
            return False
        # Only compare against later rows; each pair is checked once.
        rest = rects[i + 1 :]
        if len(rest) and np.any(overlap_mask(b.rect, rest)):
            return False
    return True
