"""Pixel <-> cell transforms and bounds clamping for the square grid.

Pure functions, no state. Two quantization policies coexist on purpose:

  * **Absolute** positions (a drop point, a tap, a hover over the grid) are
    floored with ``pixel_to_cell`` so the cell under the pointer is the one
    that gets picked.
  * **Relative** gestures (dragging an already placed building, dragging a
    resize handle) convert the accumulated pointer delta with
    ``delta_to_cells``, which rounds half up so the subject snaps to the
    nearest cell instead of lagging one cell behind in the negative
    direction.

``GridConfig`` holds the grid size (in cells) and cell size (in pixels).
Changing the cell size only affects pixel transforms; cell coordinates of
placed buildings never change.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .types import InvalidGridSizeError, Rect

DEFAULT_GRID_SIZE = 50
MIN_GRID_SIZE = 10
MAX_GRID_SIZE = 100

DEFAULT_CELL_SIZE = 24.0
MIN_CELL_SIZE = 10.0
MAX_CELL_SIZE = 60.0


@dataclass
class GridConfig:
    grid_size: int = DEFAULT_GRID_SIZE
    cell_size: float = DEFAULT_CELL_SIZE

    @property
    def pixel_extent(self) -> float:
        """Width (== height) of the grid in pixels."""
        return self.grid_size * self.cell_size


def validate_grid_size(grid_size: int) -> int:
    if not isinstance(grid_size, int) or isinstance(grid_size, bool):
        raise InvalidGridSizeError(
            f"Grid size must be an integer, got {grid_size!r}"
        )
    if not MIN_GRID_SIZE <= grid_size <= MAX_GRID_SIZE:
        raise InvalidGridSizeError(
            f"Grid size must be between {MIN_GRID_SIZE} and "
            f"{MAX_GRID_SIZE}, got {grid_size}"
        )
    return grid_size


def clamp_cell_size(cell_size: float) -> float:
    return max(MIN_CELL_SIZE, min(MAX_CELL_SIZE, cell_size))


def pixel_to_cell(px: float, py: float, cell_size: float) -> tuple[int, int]:
    return math.floor(px / cell_size), math.floor(py / cell_size)


def cell_to_pixel(cx: int, cy: int, cell_size: float) -> tuple[float, float]:
    return cx * cell_size, cy * cell_size


def _round_half_up(value: float) -> int:
    # round() is banker's rounding; gestures need 0.5 -> 1 and -0.5 -> 0.
    return math.floor(value + 0.5)


def delta_to_cells(
    dpx: float, dpy: float, cell_size: float
) -> tuple[int, int]:
    """Convert a pointer delta in pixels to a whole-cell delta."""
    return (
        _round_half_up(dpx / cell_size),
        _round_half_up(dpy / cell_size),
    )


def in_grid(cx: int, cy: int, grid_size: int) -> bool:
    return 0 <= cx < grid_size and 0 <= cy < grid_size


def clamp_footprint(
    x: int, y: int, w: int, h: int, grid_size: int
) -> tuple[int, int]:
    """Clamp a top-left corner so a w x h rectangle stays on the grid."""
    return (
        max(0, min(grid_size - w, x)),
        max(0, min(grid_size - h, y)),
    )


def clamp_extent(
    x: int, y: int, w: int, h: int, grid_size: int
) -> tuple[int, int]:
    """Clamp a resize extent: at least 1x1, at most up to the grid edge.

    The top-left corner (x, y) is the fixed anchor.
    """
    w = min(max(1, w), grid_size - x)
    h = min(max(1, h), grid_size - y)
    return w, h


def area_rect(x: int, y: int, footprint: int, area_size: int) -> Rect | None:
    """Area-of-effect square centred on a footprint, or None if it has none.

    May extend past the grid edges; it is a visual aid, not a collision
    shape.
    """
    if area_size <= 0:
        return None
    offset = (area_size - footprint) // 2
    return Rect(x - offset, y - offset, area_size, area_size)
