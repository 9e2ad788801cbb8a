"""Tkinter GUI for the alliance grid planner.

This is the main application file: it wires the building registry, the
interaction controller and the persistence codec into a desktop tool. The
major pieces are:

  * ``TkBinder``: the ``InputBinder`` the interaction controller uses to
    register a gesture's motion/release/cancel/leave hooks as Tk bindings,
    translating event coordinates to grid-local pixels. Each session's
    bindings are removed when the session closes.
  * ``Toolbar``: the left sidebar with one tile per building type. A short
    click on a tile selects it as the tap-placement tool; pressing and
    dragging a tile onto the grid is drag-and-drop placement.
  * ``App``: the top-level window. Owns the canvas (rendered with
    ``render.GridRenderer``), the selection and its Rename/Delete actions,
    the shift buttons, grid size, rotation/distance/zoom view options, and
    Share/Load/Save.

All layout changes go through ``BuildingRegistry`` commits; the App
subscribes to registry events and re-renders on each one. Errors raised by
commits and loads are shown with a message box and never leave the registry
half-changed.
"""

from __future__ import annotations

import argparse
import logging
import os
import time
import tkinter as tk
from tkinter import filedialog, messagebox, simpledialog, ttk

from PIL import Image, ImageTk

from ..engine import collision, metrics
from ..engine.grid import (
    DEFAULT_CELL_SIZE,
    DEFAULT_GRID_SIZE,
    MAX_GRID_SIZE,
    MIN_GRID_SIZE,
    GridConfig,
    clamp_cell_size,
    pixel_to_cell,
)
from ..engine.interaction import (
    HOOK_CANCEL,
    HOOK_LEAVE,
    HOOK_MOTION,
    HOOK_RELEASE,
    GhostPreview,
    InteractionController,
    PlacementPathway,
    Rejection,
    SessionKind,
)
from ..engine.registry import BuildingRegistry, EventKind, LayoutEvent
from ..engine.types import Building, BuildingType, PlannerError
from .catalogs import STYLES, TOOLBAR
from .layout_io import (
    decode_layout,
    load_layout,
    save_layout_json,
    save_layout_png,
    share_url,
)
from .render import CANVAS_BG, GridRenderer

logger = logging.getLogger(__name__)

CANVAS_MARGIN = 10
ZOOM_STEP = 2.0
DRAG_THRESHOLD_PX = 5
EXPORT_CELL_SIZE = 24
SUPERSAMPLE = 2

REJECTION_MESSAGES = {
    Rejection.OVERLAP: "That spot is taken or off the grid.",
    Rejection.LIMIT: "Limit reached for this building type.",
    Rejection.OUTSIDE: "Dropped outside the grid.",
}


def rejection_message(reason: Rejection, building_type=None) -> str:
    if reason is Rejection.LIMIT and building_type is not None:
        limit = building_type.spec.max_count
        return (
            f"Only {limit} {STYLES[building_type].label} "
            f"building(s) can be placed."
        )
    return REJECTION_MESSAGES[reason]


def distance_summary(buildings) -> str:
    """Status-bar text for the distance-to-Hell-Gates view."""
    buildings = list(buildings)
    if metrics.find_hellgates(buildings) is None:
        return "Distances: place the Hell Gates first"
    avg = metrics.average_castle_distance(buildings)
    if avg is None:
        return "Distances: no castles placed"
    return f"Average castle distance to Hell Gates: {avg:.1f}"


def read_layout_source(source: str) -> list[Building]:
    """Load buildings from a file path, a share URL or a bare locator."""
    if os.path.isfile(source):
        return load_layout(source)
    return decode_layout(source)


# ---------------------------------------------------------------------------
# Tooltip helper
# ---------------------------------------------------------------------------


class Tooltip:
    """Hover tooltip for toolbar tiles and buttons."""

    _DELAY_MS = 400

    def __init__(self, widget, text):
        self.widget = widget
        self.text = text
        self._tip_window = None
        self._after_id = None
        widget.bind("<Enter>", self._schedule, add="+")
        widget.bind("<Leave>", self._cancel, add="+")
        widget.bind("<ButtonPress>", self._cancel, add="+")

    def _schedule(self, _event=None):
        self._cancel()
        self._after_id = self.widget.after(self._DELAY_MS, self._show)

    def _cancel(self, _event=None):
        if self._after_id:
            self.widget.after_cancel(self._after_id)
            self._after_id = None
        if self._tip_window:
            self._tip_window.destroy()
            self._tip_window = None

    def _show(self):
        if self._tip_window:
            return
        x = self.widget.winfo_rootx() + self.widget.winfo_width() + 4
        y = self.widget.winfo_rooty()
        tw = tk.Toplevel(self.widget)
        tw.wm_overrideredirect(True)
        tw.wm_geometry(f"+{x}+{y}")
        tk.Label(
            tw,
            text=self.text,
            background="#ffffe0",
            relief="solid",
            borderwidth=1,
            padx=4,
            pady=2,
        ).pack()
        self._tip_window = tw


# ---------------------------------------------------------------------------
# Input binding
# ---------------------------------------------------------------------------


def _unbind_one(widget, seq, funcid):
    """Remove one handler from a sequence, keeping the others.

    ``widget.unbind(seq, funcid)`` drops every handler on the sequence on
    Python < 3.13, which would strip the toolbar tiles of their own bindings.
    """
    script = widget.bind(seq)
    kept = "\n".join(
        line for line in script.split("\n") if funcid not in line
    )
    widget.tk.call("bind", widget._w, seq, kept)
    widget.deletecommand(funcid)


class TkBinder:
    """Registers gesture hooks as Tk bindings.

    Pointer hooks are bound on ``source``: the canvas for gestures that start
    on the grid, or the toolbar tile for drag-and-drop (Tk delivers motion
    and release to the widget that got the press). Coordinates are taken
    from the root-relative event position, so both cases map onto the grid
    the same way.
    """

    def __init__(self, app: App):
        self.app = app
        self.source: tk.Widget = app.canvas

    def _pointer(self, handler):
        def on_event(event):
            handler(*self.app.root_to_grid(event.x_root, event.y_root))

        return on_event

    def bind(self, hook, handler):
        canvas, root = self.app.canvas, self.app.root
        if hook == HOOK_MOTION:
            seq = "<Motion>" if self.source is canvas else "<B1-Motion>"
            pairs = [(self.source, seq, self._pointer(handler))]
        elif hook == HOOK_RELEASE:
            pairs = [
                (self.source, "<ButtonRelease-1>", self._pointer(handler))
            ]
        elif hook == HOOK_CANCEL:
            pairs = [
                (root, "<Escape>", lambda e: handler()),
                (canvas, "<Button-3>", lambda e: handler()),
            ]
        elif hook == HOOK_LEAVE:
            pairs = [(canvas, "<Leave>", lambda e: handler())]
        else:
            raise ValueError(f"unknown input hook {hook!r}")
        return [
            (widget, seq, widget.bind(seq, callback, add="+"))
            for widget, seq, callback in pairs
        ]

    def unbind(self, token):
        for widget, seq, funcid in token:
            _unbind_one(widget, seq, funcid)


# ---------------------------------------------------------------------------
# Toolbar
# ---------------------------------------------------------------------------


class Toolbar(ttk.Frame):
    """Building tiles: click for the tap tool, press-and-drag to drop."""

    def __init__(self, parent, on_tap, on_drag_start, on_drag_motion):
        super().__init__(parent, padding=5)
        self._on_tap = on_tap
        self._on_drag_start = on_drag_start
        self._on_drag_motion = on_drag_motion
        self._press: tuple[int, int] | None = None
        self._dragging = False
        self.tiles: dict[BuildingType, tk.Label] = {}
        self._count_labels: dict[BuildingType, ttk.Label] = {}
        self._build()

    def _build(self):
        ttk.Label(
            self, text="Buildings", font=("TkDefaultFont", 10, "bold")
        ).pack(anchor="w", pady=(0, 4))
        for entry in TOOLBAR:
            t = entry.building_type
            row = ttk.Frame(self)
            row.pack(fill=tk.X, pady=2)
            fill = entry.style.fill[:7]
            tile = tk.Label(
                row,
                text=f"{entry.style.glyph}  {entry.style.label}",
                bg=fill,
                relief="raised",
                borderwidth=2,
                width=14,
                anchor="w",
                padx=4,
            )
            tile.pack(side=tk.LEFT)
            count = ttk.Label(row, text="", width=6)
            count.pack(side=tk.LEFT, padx=(4, 0))
            tile.bind("<ButtonPress-1>", self._on_press)
            tile.bind("<B1-Motion>", lambda e, t=t: self._on_motion(t, e))
            tile.bind("<ButtonRelease-1>", lambda e, t=t: self._on_release(t))
            Tooltip(
                tile,
                f"{entry.style.label}: {t.spec.footprint}x{t.spec.footprint}"
                f", {entry.limit_text}. Click to select, drag to place.",
            )
            self.tiles[t] = tile
            self._count_labels[t] = count

    def _on_press(self, event):
        self._press = (event.x_root, event.y_root)
        self._dragging = False

    def _on_motion(self, building_type, event):
        if self._press is None or self._dragging:
            return
        dx = event.x_root - self._press[0]
        dy = event.y_root - self._press[1]
        if abs(dx) + abs(dy) < DRAG_THRESHOLD_PX:
            return
        self._dragging = True
        self._on_drag_start(building_type, self.tiles[building_type])
        self._on_drag_motion(event)

    def _on_release(self, building_type):
        # The drag session's own release binding commits the drop.
        if not self._dragging:
            self._on_tap(building_type)
        self._press = None
        self._dragging = False

    def set_active(self, building_type):
        for t, tile in self.tiles.items():
            tile.config(relief="sunken" if t is building_type else "raised")

    def update_counts(self, registry: BuildingRegistry):
        for t, label in self._count_labels.items():
            limit = t.spec.max_count
            n = registry.count(t)
            label.config(text=f"{n}" if limit is None else f"{n}/{limit}")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


class App:
    def __init__(
        self,
        config: GridConfig | None = None,
        registry: BuildingRegistry | None = None,
        base_url: str = "",
    ):
        self.config = config or GridConfig()
        self.registry = registry or BuildingRegistry(self.config.grid_size)
        self.config.grid_size = self.registry.grid_size
        self.base_url = base_url

        self.root = tk.Tk()
        self.root.title("Alliance Grid Planner")
        self.root.geometry("1280x860")
        self.root.configure(bg=CANVAS_BG)

        style = ttk.Style()
        style.theme_use("clam")

        self._photo = None  # prevent GC
        self._selected_id: str | None = None
        self._rotated = False
        self._ghost: GhostPreview | None = None
        self._last_tool: BuildingType | None = None

        self.toolbar = Toolbar(
            self.root,
            on_tap=self._on_tool_tap,
            on_drag_start=self._on_tool_drag_start,
            on_drag_motion=self._on_tool_drag_motion,
        )
        self.toolbar.pack(side=tk.LEFT, fill=tk.Y)

        self.right_panel = ttk.Frame(self.root, padding=5)
        self.right_panel.pack(side=tk.RIGHT, fill=tk.Y)
        self._build_controls(self.right_panel)

        center = ttk.Frame(self.root)
        center.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=5, pady=5)
        self.status_label = ttk.Label(center, text="", anchor="w")
        self.status_label.pack(side=tk.BOTTOM, fill=tk.X)
        self.canvas = tk.Canvas(center, bg=CANVAS_BG, highlightthickness=0)
        xscroll = ttk.Scrollbar(
            center, orient=tk.HORIZONTAL, command=self.canvas.xview
        )
        yscroll = ttk.Scrollbar(
            center, orient=tk.VERTICAL, command=self.canvas.yview
        )
        self.canvas.configure(
            xscrollcommand=xscroll.set, yscrollcommand=yscroll.set
        )
        xscroll.pack(side=tk.BOTTOM, fill=tk.X)
        yscroll.pack(side=tk.RIGHT, fill=tk.Y)
        self.canvas.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)

        self.binder = TkBinder(self)
        self.controller = InteractionController(
            self.registry,
            self.config,
            binder=self.binder,
            on_ghost=self._on_ghost,
            on_reject=self._on_reject,
            on_end=lambda session: self._on_session_end(),
        )
        self._unsubscribe = self.registry.subscribe(self._on_layout_event)

        self.canvas.bind("<ButtonPress-1>", self._on_canvas_press)
        self.canvas.bind("<Control-MouseWheel>", self._on_zoom_wheel)
        self.canvas.bind("<Control-Button-4>", lambda e: self._zoom(+1))
        self.canvas.bind("<Control-Button-5>", lambda e: self._zoom(-1))
        self.root.bind("<Delete>", lambda e: self._on_delete_selected())
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

        self.toolbar.update_counts(self.registry)
        self.root.after(50, self._render)

    # -- control panel --

    def _build_controls(self, parent):
        row = 0

        def section(title):
            nonlocal row
            ttk.Label(
                parent, text=title, font=("TkDefaultFont", 10, "bold")
            ).grid(row=row, column=0, columnspan=3, sticky="w", pady=(8, 2))
            row += 1

        section("Grid")
        self.grid_size_var = tk.IntVar(value=self.config.grid_size)
        ttk.Label(parent, text="Size").grid(row=row, column=0, sticky="w")
        ttk.Spinbox(
            parent,
            from_=MIN_GRID_SIZE,
            to=MAX_GRID_SIZE,
            textvariable=self.grid_size_var,
            width=6,
        ).grid(row=row, column=1, sticky="w")
        ttk.Button(parent, text="Apply", command=self._on_apply_grid_size).grid(
            row=row, column=2, sticky="w"
        )
        row += 1

        section("Shift all")
        shift = ttk.Frame(parent)
        shift.grid(row=row, column=0, columnspan=3)
        row += 1
        for label, (dx, dy), (r, c) in (
            ("↑", (0, -1), (0, 1)),
            ("←", (-1, 0), (1, 0)),
            ("→", (1, 0), (1, 2)),
            ("↓", (0, 1), (2, 1)),
        ):
            ttk.Button(
                shift,
                text=label,
                width=3,
                command=lambda dx=dx, dy=dy: self._on_shift(dx, dy),
            ).grid(row=r, column=c)

        section("View")
        self.distances_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(
            parent,
            text="Distance to Hell Gates",
            variable=self.distances_var,
            command=self._on_toggle_distances,
        ).grid(row=row, column=0, columnspan=3, sticky="w")
        row += 1
        ttk.Button(parent, text="Rotate 45°", command=self._on_rotate).grid(
            row=row, column=0, columnspan=3, sticky="we"
        )
        row += 1

        section("Selected")
        self.rename_btn = ttk.Button(
            parent, text="Rename", command=self._on_rename_selected
        )
        self.rename_btn.grid(row=row, column=0, columnspan=3, sticky="we")
        row += 1
        self.delete_btn = ttk.Button(
            parent, text="Delete", command=self._on_delete_selected
        )
        self.delete_btn.grid(row=row, column=0, columnspan=3, sticky="we")
        row += 1

        section("Layout")
        for text, command in (
            ("Copy share link", self._on_share),
            ("Load link...", self._on_load_link),
            ("Load file...", self._on_load_file),
            ("Save...", self._on_save),
            ("Clear", self._on_clear),
        ):
            ttk.Button(parent, text=text, command=command).grid(
                row=row, column=0, columnspan=3, sticky="we", pady=1
            )
            row += 1
        self._update_selection_buttons()

    # -- coordinates --

    def root_to_grid(self, x_root, y_root):
        """Screen coordinates -> grid-local pixels."""
        wx = x_root - self.canvas.winfo_rootx()
        wy = y_root - self.canvas.winfo_rooty()
        return (
            self.canvas.canvasx(wx) - CANVAS_MARGIN,
            self.canvas.canvasy(wy) - CANVAS_MARGIN,
        )

    # -- rendering --

    def _renderer(self, cell_size, line_scale=1):
        return GridRenderer(self.registry.grid_size, cell_size, line_scale)

    def _render(self):
        renderer = self._renderer(
            self.config.cell_size * SUPERSAMPLE, line_scale=SUPERSAMPLE
        )
        img = renderer.render(
            self.registry,
            ghost=self._ghost,
            selected_id=self._selected_id,
            show_distances=self.distances_var.get(),
            rotated=self._rotated,
        )
        img = img.resize(
            (img.width // SUPERSAMPLE, img.height // SUPERSAMPLE),
            Image.Resampling.LANCZOS,
        )
        self._photo = ImageTk.PhotoImage(img)
        self.canvas.delete("all")
        self.canvas.create_image(
            CANVAS_MARGIN, CANVAS_MARGIN, image=self._photo, anchor="nw"
        )
        self.canvas.configure(
            scrollregion=(
                0, 0, img.width + 2 * CANVAS_MARGIN,
                img.height + 2 * CANVAS_MARGIN,
            )
        )
        self._update_status()

    def _update_status(self, message=None):
        if message is None:
            if self.distances_var.get():
                message = distance_summary(self.registry)
            else:
                message = (
                    f"{len(self.registry)} building(s) on a "
                    f"{self.registry.grid_size}x{self.registry.grid_size} grid"
                )
        self.status_label.config(text=message)

    # -- controller / registry callbacks --

    def _on_ghost(self, ghost):
        self._ghost = ghost
        self._render()

    def _on_reject(self, reason):
        self._update_status(rejection_message(reason, self._last_tool))

    def _on_layout_event(self, event: LayoutEvent):
        if event.kind is EventKind.BUILDING_DELETED and (
            event.building is not None and event.building.id == self._selected_id
        ):
            self._selected_id = None
        if event.kind is EventKind.LAYOUT_REPLACED:
            self._selected_id = None
        if event.kind is EventKind.BUILDING_CREATED and event.building:
            self._selected_id = event.building.id
        self.config.grid_size = self.registry.grid_size
        self.toolbar.update_counts(self.registry)
        self._update_selection_buttons()
        self._render()

    def _on_session_end(self):
        self.binder.source = self.canvas
        self.toolbar.set_active(None)

    def _update_selection_buttons(self):
        b = self._selected()
        self.rename_btn.state(
            ["!disabled"] if b is not None and b.spec.nameable else ["disabled"]
        )
        self.delete_btn.state(["!disabled"] if b is not None else ["disabled"])

    def _selected(self) -> Building | None:
        if self._selected_id is None or self._selected_id not in self.registry:
            return None
        return self.registry.get(self._selected_id)

    # -- pointer gestures on the grid --

    def _on_canvas_press(self, event):
        session = self.controller.session
        if session is not None and session.kind is SessionKind.PLACE_NEW:
            # Tap placement: the session's release binding commits.
            return
        renderer = self._renderer(self.config.cell_size)
        px, py = self.root_to_grid(event.x_root, event.y_root)
        if self._rotated:
            # Any gesture leaves the rotated view first; the press still
            # picks up what was under it.
            px, py = renderer.unrotate(px, py, self._photo.width())
            self._rotated = False
            self._render()
        cx, cy = pixel_to_cell(px, py, self.config.cell_size)
        hit = collision.building_at(cx, cy, self.registry.buildings)
        if hit is None:
            self._select(None)
            return
        self._select(hit.id)
        self.binder.source = self.canvas
        # Motion arrives in unrotated view coordinates from here on.
        pointer = self.root_to_grid(event.x_root, event.y_root)
        try:
            if renderer.hits_resize_handle(hit, px, py):
                self.controller.start_resize(hit.id, *pointer)
            else:
                self.controller.start_move(hit.id, *pointer)
        except PlannerError as e:
            messagebox.showerror("Error", str(e))

    def _select(self, building_id):
        if building_id != self._selected_id:
            self._selected_id = building_id
            self._update_selection_buttons()
            self._render()

    # -- toolbar placement --

    def _on_tool_tap(self, building_type):
        self._rotated = False
        self.binder.source = self.canvas
        self._last_tool = building_type
        session = self.controller.start_placement(
            building_type, PlacementPathway.TAP
        )
        self.toolbar.set_active(building_type if session else None)
        if session is not None:
            self._update_status(
                f"Tap the grid to place a {STYLES[building_type].label}. "
                "Esc cancels."
            )
        else:
            self._update_status()

    def _on_tool_drag_start(self, building_type, tile):
        self._rotated = False
        self._last_tool = building_type
        # Drop any tap tool first so the drag starts from a clean session.
        self.controller.cancel()
        self.binder.source = tile
        self.controller.start_placement(building_type, PlacementPathway.DRAG)
        self.toolbar.set_active(building_type)

    def _on_tool_drag_motion(self, event):
        self.controller.pointer_move(
            *self.root_to_grid(event.x_root, event.y_root)
        )

    # -- zoom --

    def _on_zoom_wheel(self, event):
        self._zoom(1 if event.delta > 0 else -1)

    def _zoom(self, direction):
        new_size = clamp_cell_size(self.config.cell_size + direction * ZOOM_STEP)
        if new_size == self.config.cell_size:
            return
        self.controller.mode_switch()
        self.config.cell_size = new_size
        self._render()

    # -- actions --

    def _run_action(self, title, action):
        """Run a registry action; surface planner errors to the user."""
        self.controller.mode_switch()
        try:
            action()
        except PlannerError as e:
            logger.info("%s refused: %s", title, e)
            messagebox.showerror(title, str(e))
            return False
        return True

    def _on_apply_grid_size(self):
        try:
            size = self.grid_size_var.get()
        except tk.TclError:
            messagebox.showerror("Grid Size", "Grid size must be a number.")
            return
        if self._run_action(
            "Grid Size", lambda: self.registry.set_grid_size(size)
        ):
            self.config.grid_size = size
        else:
            self.grid_size_var.set(self.registry.grid_size)

    def _on_shift(self, dx, dy):
        self._rotated = False
        self._run_action("Shift", lambda: self.registry.shift_all(dx, dy))

    def _on_rotate(self):
        self.controller.mode_switch()
        self._rotated = not self._rotated
        self._render()

    def _on_toggle_distances(self):
        self._render()

    def _on_rename_selected(self):
        b = self._selected()
        if b is None or not b.spec.nameable:
            return
        name = simpledialog.askstring(
            "Rename", "Name:", initialvalue=b.name, parent=self.root
        )
        if name is None:
            return
        self._run_action("Rename", lambda: self.registry.rename(b.id, name))

    def _on_delete_selected(self):
        b = self._selected()
        if b is None:
            return
        self._run_action("Delete", lambda: self.registry.delete(b.id))

    def _on_clear(self):
        if len(self.registry) and not messagebox.askyesno(
            "Clear", "Remove every building from the grid?"
        ):
            return
        self._run_action("Clear", self.registry.clear)

    def _on_share(self):
        url = share_url(self.registry, self.base_url)
        self.root.clipboard_clear()
        self.root.clipboard_append(url)
        logger.info("Share link copied (%d chars)", len(url))
        self._update_status("Share link copied to the clipboard.")

    def _apply_loaded(self, buildings):
        skipped = self.registry.replace_all(buildings)
        if skipped:
            messagebox.showwarning(
                "Load",
                f"{len(skipped)} building(s) did not fit on the grid "
                "and were skipped.",
            )

    def _on_load_link(self):
        text = simpledialog.askstring(
            "Load link", "Paste a share link:", parent=self.root
        )
        if not text:
            return
        self.load_from(text)

    def _on_load_file(self):
        path = filedialog.askopenfilename(
            filetypes=[
                ("Layout files", "*.png *.json *.txt"),
                ("PNG files", "*.png"),
                ("JSON files", "*.json"),
                ("Share link text", "*.txt"),
            ],
        )
        if not path:
            return
        self.load_from(path)

    def load_from(self, source):
        """Load a file path, share URL or locator into the registry."""
        self.controller.mode_switch()
        try:
            buildings = read_layout_source(source)
        except (PlannerError, OSError) as e:
            messagebox.showerror("Load Error", str(e))
            return
        self._apply_loaded(buildings)

    def _on_save(self):
        path = filedialog.asksaveasfilename(
            defaultextension=".png",
            filetypes=[("PNG files", "*.png"), ("JSON files", "*.json")],
            initialfile=f"layout_{time.strftime('%Y-%m-%d_%H-%M-%S')}.png",
        )
        if not path:
            return
        if path.lower().endswith(".json"):
            save_layout_json(self.registry, path)
            return
        renderer = self._renderer(
            EXPORT_CELL_SIZE * SUPERSAMPLE, line_scale=SUPERSAMPLE
        )
        img = renderer.render(
            self.registry, show_distances=self.distances_var.get()
        )
        img = img.resize(
            (img.width // SUPERSAMPLE, img.height // SUPERSAMPLE),
            Image.Resampling.LANCZOS,
        )
        save_layout_png(img, self.registry, path)

    def _on_close(self):
        self.controller.cancel()
        self._unsubscribe()
        self.root.destroy()

    def run(self):
        self.root.mainloop()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Plan alliance building layouts on a square grid."
    )
    parser.add_argument(
        "--grid-size",
        type=int,
        default=DEFAULT_GRID_SIZE,
        help=f"grid size in cells ({MIN_GRID_SIZE}-{MAX_GRID_SIZE})",
    )
    parser.add_argument(
        "--cell-size",
        type=float,
        default=DEFAULT_CELL_SIZE,
        help="initial cell size in pixels",
    )
    parser.add_argument(
        "--load", metavar="SOURCE", help="share link, locator or layout file"
    )
    parser.add_argument(
        "--base-url", default="", help="URL prefix for copied share links"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args(argv)
    if not MIN_GRID_SIZE <= args.grid_size <= MAX_GRID_SIZE:
        parser.error(
            f"--grid-size must be between {MIN_GRID_SIZE} and {MAX_GRID_SIZE}"
        )
    args.cell_size = clamp_cell_size(args.cell_size)
    return args


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = GridConfig(grid_size=args.grid_size, cell_size=args.cell_size)
    app = App(config, BuildingRegistry(args.grid_size), base_url=args.base_url)
    if args.load:
        app.load_from(args.load)
    app.run()


if __name__ == "__main__":
    main()
