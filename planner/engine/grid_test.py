"""Tests for pixel/cell transforms and bounds clamping."""

import pytest

from planner.engine.grid import (
    GridConfig,
    area_rect,
    clamp_cell_size,
    clamp_extent,
    clamp_footprint,
    delta_to_cells,
    in_grid,
    pixel_to_cell,
    validate_grid_size,
)
from planner.engine.types import InvalidGridSizeError, Rect


class TestPixelToCell:
    def test_floors_inside_cell(self):
        assert pixel_to_cell(47.9, 0.0, 24) == (1, 0)

    def test_exact_boundary_is_next_cell(self):
        assert pixel_to_cell(48.0, 24.0, 24) == (2, 1)

    def test_negative_floors_away_from_zero(self):
        """Just left of the grid is column -1, not 0."""
        assert pixel_to_cell(-0.5, -24.1, 24) == (-1, -2)


class TestDeltaToCells:
    def test_rounds_to_nearest(self):
        assert delta_to_cells(35.0, 13.0, 24) == (1, 1)
        assert delta_to_cells(11.0, 0.0, 24) == (0, 0)

    def test_half_rounds_up(self):
        assert delta_to_cells(12.0, 36.0, 24) == (1, 2)

    def test_negative_half_rounds_toward_zero(self):
        """-0.5 cell rounds up to 0, not away from zero."""
        assert delta_to_cells(-12.0, -13.0, 24) == (0, -1)

    def test_scenario_move_delta(self):
        """+2 cells, -1 cell at 20 px per cell."""
        assert delta_to_cells(40.0, -20.0, 20) == (2, -1)


class TestClamping:
    def test_clamp_footprint_right_edge(self):
        assert clamp_footprint(49, 10, 3, 3, 50) == (47, 10)

    def test_clamp_footprint_negative(self):
        assert clamp_footprint(-4, -1, 2, 2, 50) == (0, 0)

    def test_clamp_extent_minimum(self):
        assert clamp_extent(3, 3, 0, -5, 10) == (1, 1)

    def test_clamp_extent_grid_edge(self):
        assert clamp_extent(8, 5, 4, 4, 10) == (2, 4)

    def test_in_grid(self):
        assert in_grid(0, 0, 10)
        assert in_grid(9, 9, 10)
        assert not in_grid(10, 0, 10)
        assert not in_grid(0, -1, 10)


class TestGridSize:
    @pytest.mark.parametrize("size", [10, 50, 100])
    def test_valid(self, size):
        assert validate_grid_size(size) == size

    @pytest.mark.parametrize("size", [9, 101, 0, -5])
    def test_out_of_range(self, size):
        with pytest.raises(InvalidGridSizeError):
            validate_grid_size(size)

    def test_non_integer(self):
        with pytest.raises(InvalidGridSizeError):
            validate_grid_size(20.5)  # type: ignore[arg-type]

    def test_cell_size_clamped(self):
        assert clamp_cell_size(4) == 10
        assert clamp_cell_size(75) == 60
        assert clamp_cell_size(30) == 30

    def test_pixel_extent(self):
        assert GridConfig(grid_size=20, cell_size=15).pixel_extent == 300


class TestAreaRect:
    def test_fortress_area_centred(self):
        # 15x15 around a 3x3 footprint: 6 cells on each side.
        assert area_rect(20, 20, 3, 15) == Rect(14, 14, 15, 15)

    def test_outpost_area_centred(self):
        assert area_rect(10, 10, 2, 10) == Rect(6, 6, 10, 10)

    def test_no_area(self):
        assert area_rect(5, 5, 2, 0) is None
