"""Unit tests for the headless helpers in frontend/app.py."""

import pytest

pytest.importorskip("tkinter")

from ..engine.interaction import Rejection  # noqa: E402
from ..engine.types import (  # noqa: E402
    Building,
    BuildingType,
    LayoutLoadError,
)
from .app import (  # noqa: E402
    distance_summary,
    parse_args,
    read_layout_source,
    rejection_message,
)
from .layout_io import encode_layout, save_layout_json  # noqa: E402

# ---------------------------------------------------------------------------
# parse_args
# ---------------------------------------------------------------------------


class TestParseArgs:
    def test_defaults(self):
        args = parse_args([])
        assert args.grid_size == 50
        assert args.cell_size == 24
        assert args.load is None
        assert args.log_level == "INFO"

    def test_cell_size_clamped(self):
        assert parse_args(["--cell-size", "200"]).cell_size == 60

    def test_grid_size_out_of_range(self):
        with pytest.raises(SystemExit):
            parse_args(["--grid-size", "5"])


# ---------------------------------------------------------------------------
# Status text
# ---------------------------------------------------------------------------


class TestStatusText:
    def test_limit_message_names_the_type(self):
        msg = rejection_message(Rejection.LIMIT, BuildingType.OUTPOST)
        assert "5" in msg and "Outpost" in msg

    def test_overlap_message(self):
        assert rejection_message(Rejection.OVERLAP) == (
            "That spot is taken or off the grid."
        )

    def test_distance_summary_needs_gates(self):
        castle = Building.create(BuildingType.CASTLE, 0, 0)
        assert "Hell Gates first" in distance_summary([castle])

    def test_distance_summary_average(self):
        gates = Building.create(BuildingType.HELLGATES, 0, 0)
        castle = Building.create(BuildingType.CASTLE, 4, 0)  # ~3.54 away
        castle2 = Building.create(BuildingType.CASTLE, 0, 4)  # ~3.54 away
        assert distance_summary([gates, castle, castle2]).endswith("3.5")

    def test_distance_summary_no_castles(self):
        gates = Building.create(BuildingType.HELLGATES, 0, 0)
        assert "no castles" in distance_summary([gates])


# ---------------------------------------------------------------------------
# read_layout_source
# ---------------------------------------------------------------------------


class TestReadLayoutSource:
    def test_locator(self):
        castle = Building.create(BuildingType.CASTLE, 3, 3)
        (loaded,) = read_layout_source(encode_layout([castle]))
        assert loaded.key() == castle.key()

    def test_file(self, tmp_path):
        castle = Building.create(BuildingType.CASTLE, 3, 3)
        path = str(tmp_path / "layout.json")
        save_layout_json([castle], path)
        (loaded,) = read_layout_source(path)
        assert loaded.key() == castle.key()

    def test_neither(self, tmp_path):
        with pytest.raises(LayoutLoadError):
            read_layout_source(str(tmp_path / "missing.png"))
