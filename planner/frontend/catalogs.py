"""Toolbar catalog: what the placement toolbar offers and how it looks.

Pure data module with no UI dependencies (no tkinter), so it can be imported
by the headless renderer and its tests as well as the GUI.

Provides:
  - TOOLBAR: ordered list of ``ToolbarEntry`` (alliance buildings first,
    then player castles, then special zones).
  - STYLES: dict mapping ``BuildingType`` -> ``BuildingStyle`` (label,
    glyph, fill/outline colors, area-of-effect tint).
"""

from __future__ import annotations

from dataclasses import dataclass

from ..engine.types import BuildingType


@dataclass(frozen=True)
class BuildingStyle:
    label: str
    glyph: str  # short text drawn on the building
    fill: str
    outline: str
    area_fill: str | None = None  # RGBA hex, drawn under buildings


@dataclass(frozen=True)
class ToolbarEntry:
    building_type: BuildingType
    style: BuildingStyle

    @property
    def limit_text(self) -> str:
        limit = self.building_type.spec.max_count
        return "unlimited" if limit is None else f"max {limit}"


STYLES: dict[BuildingType, BuildingStyle] = {
    BuildingType.FORTRESS: BuildingStyle(
        "Fortress", "F", "#8e6c3e", "#3d2b12", area_fill="#f0c04040"
    ),
    BuildingType.OUTPOST: BuildingStyle(
        "Outpost", "O", "#c0392b", "#5c1a13", area_fill="#e74c3c33"
    ),
    BuildingType.HELLGATES: BuildingStyle(
        "Hell Gates", "HG", "#6c2a7a", "#2e0f35"
    ),
    BuildingType.HOSPITAL: BuildingStyle(
        "Hospital", "H", "#e8e8e8", "#7a7a7a"
    ),
    BuildingType.FARM: BuildingStyle("Farm", "Fm", "#d4b13f", "#6b5812"),
    BuildingType.WAREHOUSE: BuildingStyle(
        "Warehouse", "W", "#7f8c8d", "#34393a"
    ),
    BuildingType.CASTLE: BuildingStyle("Castle", "C", "#2e86c1", "#123d5c"),
    # Light green, half transparent.
    BuildingType.DEADZONE: BuildingStyle(
        "Dead Zone", "!", "#90ee9080", "#3f7f3f"
    ),
}

_CATEGORY_ORDER = ("alliance", "player", "special")

TOOLBAR: list[ToolbarEntry] = [
    ToolbarEntry(t, STYLES[t])
    for category in _CATEGORY_ORDER
    for t in BuildingType
    if t.spec.category == category
]
