"""Pillow renderer for the planner grid.

Draws, in order: background, grid lines, area-of-effect squares, buildings
(fill, outline, glyph, name or distance label), the selection highlight
with its resize handle, the ghost preview, and the grid border. The result
is a plain ``PIL.Image`` so the same code feeds the Tk canvas and the PNG
export.

While a move/resize ghost is shown, its subject is drawn at the ghost's
position instead of its committed one, so the user never sees two copies.
The optional 45 degree view rotates the finished image; it is a view only
and never changes cell coordinates.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from PIL import Image, ImageDraw, ImageFont

from ..engine import metrics
from ..engine.grid import area_rect
from ..engine.interaction import GhostPreview
from ..engine.types import Building, Rect
from .catalogs import STYLES

# -- Visual constants --

GRID_BG = "#f4f1e8"
GRID_LINE = "#d6d0bf"
GRID_MAJOR_LINE = "#b9b09a"  # every MAJOR_EVERY cells
GRID_BORDER = "#333333"
CANVAS_BG = "#1e1e1e"
HIGHLIGHT_COLOR = "#FFD700"  # gold highlight for the selected building
GHOST_VALID_OUTLINE = "#00FF00"
GHOST_INVALID_OUTLINE = "#FF4444"
GHOST_FILL_ALPHA = "99"
LABEL_COLOR = "#111111"
DISTANCE_COLOR = "#7a0000"

MAJOR_EVERY = 5
RESIZE_HANDLE_CELLS = 0.4
ROTATION_DEG = 45


class GridRenderer:
    """Renders a building layout to a Pillow image."""

    def __init__(self, grid_size, cell_size, line_scale=1):
        self.grid_size = grid_size
        self.cell_size = cell_size
        self.line_scale = line_scale
        self._font = ImageFont.load_default()

    @property
    def pixel_size(self) -> int:
        return int(round(self.grid_size * self.cell_size))

    def _lw(self, base_width):
        """Scale a pixel width by the supersample factor."""
        return max(1, round(base_width * self.line_scale))

    def _box(self, rect: Rect) -> list[float]:
        cs = self.cell_size
        return [
            rect.x * cs,
            rect.y * cs,
            (rect.x + rect.width) * cs - 1,
            (rect.y + rect.height) * cs - 1,
        ]

    def resize_handle_box(self, rect: Rect) -> list[float]:
        """Pixel box of the resize handle (bottom-right corner)."""
        cs = self.cell_size
        size = max(4.0, RESIZE_HANDLE_CELLS * cs)
        right = (rect.x + rect.width) * cs
        bottom = (rect.y + rect.height) * cs
        return [right - size, bottom - size, right - 1, bottom - 1]

    def hits_resize_handle(
        self, building: Building, px: float, py: float
    ) -> bool:
        if not building.spec.resizable:
            return False
        x0, y0, x1, y1 = self.resize_handle_box(building.rect)
        return x0 <= px <= x1 + 1 and y0 <= py <= y1 + 1

    def unrotate(self, px: float, py: float, view_size: float):
        """Map a point on the rotated view back to grid-local pixels.

        ``view_size`` is the side of the rotated (expanded) image; its
        centre is the grid's centre.
        """
        theta = math.radians(ROTATION_DEG)
        c, s = math.cos(theta), math.sin(theta)
        dx = px - view_size / 2
        dy = py - view_size / 2
        half = self.pixel_size / 2
        return half + dx * c - dy * s, half + dx * s + dy * c

    def render(
        self,
        buildings: Iterable[Building],
        ghost: GhostPreview | None = None,
        selected_id: str | None = None,
        show_distances: bool = False,
        rotated: bool = False,
    ) -> Image.Image:
        buildings = list(buildings)
        size = self.pixel_size

        # 1. Background
        img = Image.new("RGB", (size, size), GRID_BG)
        draw = ImageDraw.Draw(img, "RGBA")

        # 2. Grid lines
        self._draw_grid(draw, size)

        # Buildings as they should appear: the ghost's subject follows it.
        shown: list[tuple[Building, Rect]] = []
        for b in buildings:
            if ghost is not None and ghost.subject_id == b.id:
                shown.append((b, ghost.rect))
            else:
                shown.append((b, b.rect))

        # 3. Area of effect, under every building
        for b, rect in shown:
            self._draw_area(draw, b, rect)
        if ghost is not None and ghost.subject_id is None:
            area = ghost.area
            style = STYLES[ghost.type]
            if area is not None and style.area_fill:
                draw.rectangle(self._box(area), fill=style.area_fill)

        # 4. Buildings
        distances = metrics.castle_distances(buildings) if show_distances else {}
        for b, rect in shown:
            is_subject = ghost is not None and ghost.subject_id == b.id
            self._draw_building(draw, b, rect, translucent=is_subject)
            if b.id in distances:
                self._draw_label(
                    draw, rect, f"{distances[b.id]:.1f}", DISTANCE_COLOR
                )
            else:
                label = b.name or STYLES[b.type].glyph
                self._draw_label(draw, rect, label, LABEL_COLOR)

        # 5. Selection highlight
        for b, rect in shown:
            if b.id == selected_id:
                draw.rectangle(
                    self._box(rect), outline=HIGHLIGHT_COLOR,
                    width=self._lw(3),
                )
                if b.spec.resizable:
                    draw.rectangle(
                        self.resize_handle_box(rect),
                        fill=HIGHLIGHT_COLOR,
                    )

        # 6. Ghost preview
        if ghost is not None:
            self._draw_ghost(draw, ghost)

        # 7. Border
        draw.rectangle(
            [0, 0, size - 1, size - 1], outline=GRID_BORDER, width=self._lw(2)
        )

        if rotated:
            img = img.rotate(
                ROTATION_DEG,
                resample=Image.Resampling.BICUBIC,
                expand=True,
                fillcolor=CANVAS_BG,
            )
        return img

    def _draw_grid(self, draw, size):
        glw = self._lw(1)
        for i in range(1, self.grid_size):
            p = int(i * self.cell_size)
            color = GRID_MAJOR_LINE if i % MAJOR_EVERY == 0 else GRID_LINE
            draw.line([(p, 0), (p, size - 1)], fill=color, width=glw)
            draw.line([(0, p), (size - 1, p)], fill=color, width=glw)

    def _draw_area(self, draw, building, rect):
        style = STYLES[building.type]
        if not style.area_fill:
            return
        area = area_rect(
            rect.x, rect.y, building.spec.footprint, building.spec.area_size
        )
        if area is not None:
            draw.rectangle(self._box(area), fill=style.area_fill)

    def _draw_building(self, draw, building, rect, translucent=False):
        style = STYLES[building.type]
        fill = style.fill
        if translucent and len(fill) == 7:
            fill += GHOST_FILL_ALPHA
        draw.rectangle(
            self._box(rect),
            fill=fill,
            outline=style.outline,
            width=self._lw(2),
        )

    def _draw_label(self, draw, rect, text, color):
        x0, y0, x1, y1 = self._box(rect)
        left, top, right, bottom = draw.textbbox((0, 0), text, font=self._font)
        tx = (x0 + x1 - (right - left)) / 2 - left
        ty = (y0 + y1 - (bottom - top)) / 2 - top
        draw.text((tx, ty), text, fill=color, font=self._font)

    def _draw_ghost(self, draw, ghost: GhostPreview):
        style = STYLES[ghost.type]
        fill = style.fill if len(style.fill) != 7 else style.fill + GHOST_FILL_ALPHA
        outline = (
            GHOST_VALID_OUTLINE if ghost.is_valid else GHOST_INVALID_OUTLINE
        )
        draw.rectangle(
            self._box(ghost.rect), fill=fill, outline=outline,
            width=self._lw(2),
        )
