"""
canvas/interaction.py

Pointer gestures on the map canvas: select, drag, resize, draw.

At most one gesture is in progress at a time, held in
``CanvasInteraction.interaction`` as one of the variants below. Pointer-up
and pointer-leave always return it to ``IDLE``.

Each gesture is one undo step: its first change is committed to the
history, later changes of the same gesture replace the present silently.
Selection changes are never undo steps.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Union

from canvas.geometry import (
    DEFAULT_TOLERANCES,
    HitTarget,
    HitTolerances,
    TextMeasurer,
    Viewport,
    apply_resize,
    distance,
    find_resize_handle,
    hit_test,
    selected_resizable,
)
from debug_trace import trace
from history import HistoryManager
from models import (
    KIND_COMPONENT,
    KIND_SHAPE,
    KIND_TEXT,
    CircleShape,
    DrawingPath,
    IconOverlay,
    ImageOverlay,
    LineShape,
    RectangleShape,
    TextOverlay,
    TriangleShape,
    WardleyMap,
)
import overlay_store
from settings import OverlayDefaults

# Tools
TOOL_MOVE = "move"
TOOL_TEXT = "text"
TOOL_ICON = "icon"
TOOL_LINE = "line"
TOOL_RECTANGLE = "rectangle"
TOOL_CIRCLE = "circle"
TOOL_TRIANGLE = "triangle"
TOOL_PEN = "pen"

SHAPE_TOOLS = {
    TOOL_LINE: LineShape,
    TOOL_RECTANGLE: RectangleShape,
    TOOL_CIRCLE: CircleShape,
    TOOL_TRIANGLE: TriangleShape,
}
TOOLS = (TOOL_MOVE, TOOL_TEXT, TOOL_ICON, TOOL_PEN) + tuple(SHAPE_TOOLS)

# Cursor hints returned by cursor_hint()
CURSOR_DEFAULT = "default"
CURSOR_GRAB = "grab"
CURSOR_GRABBING = "grabbing"
CURSOR_RESIZE = "resize"
CURSOR_CROSSHAIR = "crosshair"
CURSOR_POINTER = "pointer"


# ─────────────────────────────────────────────────────────
# Active interaction variants
# ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    """Moving an entity; *offset* is pointer minus anchor, in pixels.

    *origin* is the overlay as it was at press time (None for components);
    every move is computed from it.
    """
    target: HitTarget
    offset: Tuple[float, float]
    origin: Any = None


@dataclass(frozen=True)
class Resizing:
    target: HitTarget
    handle: str


@dataclass(frozen=True)
class DrawingShape:
    """Rubber-banding a new shape from *start* (pixels)."""
    shape_id: str
    start: Tuple[float, float]


@dataclass(frozen=True)
class DrawingStroke:
    """Collecting points of a freehand pen path."""
    path_id: str


ActiveInteraction = Union[Idle, Dragging, Resizing, DrawingShape, DrawingStroke]
IDLE = Idle()


# ─────────────────────────────────────────────────────────
# Controller
# ─────────────────────────────────────────────────────────

class CanvasInteraction:
    """Turns pointer events into map snapshots committed to *history*.

    Args:
        history: History manager holding the current map.
        viewport: Canvas size and margin.
        tolerances: Hit-test tolerances.
        defaults: Styles for new overlays.
        measure: Text width measurer from the rendering surface.
    """

    def __init__(self, history: HistoryManager, viewport: Viewport,
                 tolerances: HitTolerances = DEFAULT_TOLERANCES,
                 defaults: Optional[OverlayDefaults] = None,
                 measure: Optional[TextMeasurer] = None):
        self.history = history
        self.viewport = viewport
        self.tolerances = tolerances
        self.defaults = defaults or OverlayDefaults()
        self.measure = measure
        self._tool = TOOL_MOVE
        self._interaction: ActiveInteraction = IDLE
        self._gesture_committed = False
        self._on_component_moved: Optional[Callable[[str, float, float], None]] = None

    # ----------------------------
    # Configuration
    # ----------------------------

    def set_component_moved_callback(self, cb: Optional[Callable[[str, float, float], None]]) -> None:
        """Called with (name, x, y) whenever a component is dragged."""
        self._on_component_moved = cb

    def set_viewport(self, viewport: Viewport) -> None:
        self.viewport = viewport

    @property
    def tool(self) -> str:
        return self._tool

    def set_tool(self, tool: str) -> None:
        if tool not in TOOLS:
            raise ValueError(f"Unknown tool: {tool!r}")
        self._tool = tool
        self._reset()

    @property
    def interaction(self) -> ActiveInteraction:
        return self._interaction

    @property
    def map(self) -> WardleyMap:
        return self.history.present

    # ----------------------------
    # Snapshot helpers
    # ----------------------------

    def _apply(self, new_map: WardleyMap) -> None:
        if new_map is self.history.present:
            return
        if self._gesture_committed:
            self.history.commit_silent(new_map)
        else:
            self.history.commit(new_map)
            self._gesture_committed = True

    def _apply_overlays(self, overlays) -> None:
        self._apply(self.map.with_overlays(overlays))

    def _select(self, kind: Optional[str] = None, overlay_id: Optional[str] = None) -> None:
        overlays = overlay_store.select(self.map.overlays, kind, overlay_id)
        if overlays is not self.map.overlays:
            self.history.commit_silent(self.map.with_overlays(overlays))

    def _reset(self) -> None:
        self._interaction = IDLE
        self._gesture_committed = False

    def _anchor(self, target: HitTarget) -> Optional[Tuple[float, float]]:
        """Pixel position that follows the pointer while dragging *target*."""
        if target.kind == KIND_COMPONENT:
            comp = self.map.component(target.id)
            return self.viewport.to_pixel(comp.x, comp.y) if comp else None
        item = overlay_store.find(self.map.overlays, target.kind, target.id)
        if item is None:
            return None
        return self.viewport.to_pixel(item.x, item.y)

    # ----------------------------
    # Pointer events
    # ----------------------------

    def press(self, px: float, py: float) -> None:
        self._reset()
        if self._tool == TOOL_MOVE:
            self._press_move_tool(px, py)
        elif self._tool in SHAPE_TOOLS:
            self._start_shape(px, py)
        elif self._tool == TOOL_PEN:
            self._start_stroke(px, py)

    def _press_move_tool(self, px: float, py: float) -> None:
        vp, tol = self.viewport, self.tolerances
        for item in selected_resizable(self.map):
            handle = find_resize_handle(item, vp, px, py, tol, self.measure)
            if handle is not None:
                kind = KIND_TEXT if isinstance(item, TextOverlay) else KIND_SHAPE
                self._interaction = Resizing(HitTarget(kind, item.id), handle)
                trace(f"resize {kind} {item.id} via {handle}", "CANVAS")
                return

        target = hit_test(self.map, vp, px, py, tol, self.measure)
        if target is None:
            self._select()
            return

        if target.kind in (KIND_SHAPE, KIND_TEXT):
            self._select(target.kind, target.id)
        else:
            self._select()

        anchor = self._anchor(target)
        if anchor is None:
            return
        origin = None
        if target.kind != KIND_COMPONENT:
            origin = overlay_store.find(self.map.overlays, target.kind, target.id)
        self._interaction = Dragging(target, (px - anchor[0], py - anchor[1]), origin)

    def _start_shape(self, px: float, py: float) -> None:
        x, y = self.viewport.to_normalized(px, py)
        style = self.defaults.shape
        shape_cls = SHAPE_TOOLS[self._tool]
        kwargs = dict(
            id=overlay_store.new_overlay_id("shape"),
            x=x,
            y=y,
            stroke_color=style.stroke_color,
            fill_color=style.fill_color,
            stroke_width=style.stroke_width,
            opacity=style.opacity,
            filled=False if shape_cls is LineShape else style.filled,
        )
        if shape_cls is LineShape:
            kwargs.update(end_x=x, end_y=y)
        shape = shape_cls(**kwargs)
        self._apply_overlays(overlay_store.add(self.map.overlays, shape))
        self._interaction = DrawingShape(shape.id, (px, py))

    def _start_stroke(self, px: float, py: float) -> None:
        style = self.defaults.drawing
        path = DrawingPath(
            id=overlay_store.new_overlay_id("path"),
            points=(self.viewport.to_normalized(px, py),),
            stroke_color=style.stroke_color,
            stroke_width=style.stroke_width,
            opacity=style.opacity,
        )
        self._apply_overlays(overlay_store.add(self.map.overlays, path))
        self._interaction = DrawingStroke(path.id)

    def move(self, px: float, py: float) -> None:
        act = self._interaction
        if isinstance(act, Resizing):
            self._move_resize(act, px, py)
        elif isinstance(act, DrawingShape):
            self._move_draw_shape(act, px, py)
        elif isinstance(act, DrawingStroke):
            x, y = self.viewport.to_normalized(px, py)
            self._apply_overlays(overlay_store.append_path_point(self.map.overlays, act.path_id, x, y))
        elif isinstance(act, Dragging):
            self._move_drag(act, px, py)

    def _move_resize(self, act: Resizing, px: float, py: float) -> None:
        item = overlay_store.find(self.map.overlays, act.target.kind, act.target.id)
        if item is None:
            return
        changes = apply_resize(item, act.handle, self.viewport, px, py, self.measure)
        if changes:
            self._apply_overlays(overlay_store.patch(self.map.overlays, act.target.kind, item.id, **changes))

    def _move_draw_shape(self, act: DrawingShape, px: float, py: float) -> None:
        shape = overlay_store.find(self.map.overlays, KIND_SHAPE, act.shape_id)
        if shape is None:
            return
        vp = self.viewport
        sx, sy = act.start
        if isinstance(shape, LineShape):
            end_x, end_y = vp.to_normalized(px, py)
            changes = {"end_x": end_x, "end_y": end_y}
        elif isinstance(shape, CircleShape):
            changes = {"radius": distance(sx, sy, px, py) / vp.inner_min}
        else:
            x, y, w, h = vp.normalized_box(sx, sy, px, py)
            changes = {"x": x, "y": y, "width": w, "height": h}
        self._apply_overlays(overlay_store.patch(self.map.overlays, KIND_SHAPE, shape.id, **changes))

    def _move_drag(self, act: Dragging, px: float, py: float) -> None:
        x, y = self.viewport.to_normalized(px - act.offset[0], py - act.offset[1])
        target = act.target
        if target.kind == KIND_COMPONENT:
            new_map = self.map.move_component(target.id, x, y)
            self._apply(new_map)
            if self._on_component_moved is not None:
                self._on_component_moved(target.id, x, y)
        else:
            self._apply_overlays(
                overlay_store.move(self.map.overlays, target.kind, target.id, x, y, origin=act.origin)
            )

    def release(self) -> None:
        act = self._interaction
        if isinstance(act, DrawingShape):
            self._finish_shape(act)
        self._reset()

    def leave(self) -> None:
        """Pointer left the canvas; ends the gesture like a release."""
        self.release()

    def _finish_shape(self, act: DrawingShape) -> None:
        """Give a shape created by a plain click its default size."""
        shape = overlay_store.find(self.map.overlays, KIND_SHAPE, act.shape_id)
        if shape is None or isinstance(shape, LineShape):
            return
        vp, style = self.viewport, self.defaults.shape
        if isinstance(shape, CircleShape):
            if shape.radius:
                return
            changes = {"radius": style.default_radius / vp.inner_min}
        else:
            if shape.width or shape.height:
                return
            changes = {"width": style.default_width / vp.inner_width,
                       "height": style.default_height / vp.inner_height}
        self._apply_overlays(overlay_store.patch(self.map.overlays, KIND_SHAPE, shape.id, **changes))

    # ----------------------------
    # Click-created overlays
    # ----------------------------

    def click(self, px: float, py: float, value: str) -> Optional[str]:
        """Place a text or icon overlay with the active tool.

        Args:
            px, py: Click position in pixels.
            value: Text content (text tool) or icon glyph (icon tool).

        Returns:
            Id of the new overlay, or None if the tool places nothing.
        """
        if self._tool == TOOL_TEXT:
            return self.add_text(px, py, value)
        if self._tool == TOOL_ICON:
            return self.add_icon(px, py, value)
        return None

    def add_text(self, px: float, py: float, text: str) -> Optional[str]:
        """Place a text overlay at a pixel point; blank text is ignored."""
        if not text.strip():
            return None
        x, y = self.viewport.to_normalized(px, py)
        style = self.defaults.text
        overlay = TextOverlay(
            id=overlay_store.new_overlay_id("text"),
            text=text,
            x=x,
            y=y,
            font_size=style.font_size,
            color=style.color,
            font_weight=style.font_weight,
            opacity=style.opacity,
        )
        self._commit_single(overlay_store.add(self.map.overlays, overlay))
        return overlay.id

    def add_icon(self, px: float, py: float, icon: str, size: Optional[float] = None) -> Optional[str]:
        if not icon.strip():
            return None
        x, y = self.viewport.to_normalized(px, py)
        overlay = IconOverlay(
            id=overlay_store.new_overlay_id("icon"),
            icon=icon.strip(),
            x=x,
            y=y,
            size=size if size is not None else self.defaults.drawing.icon_size,
        )
        self._commit_single(overlay_store.add(self.map.overlays, overlay))
        return overlay.id

    def add_image(self, px: float, py: float, src: str, width: float, height: float) -> str:
        x, y = self.viewport.to_normalized(px, py)
        overlay = ImageOverlay(
            id=overlay_store.new_overlay_id("image"), src=src, x=x, y=y, width=width, height=height,
        )
        self._commit_single(overlay_store.add(self.map.overlays, overlay))
        return overlay.id

    def _commit_single(self, overlays) -> None:
        self.history.commit(self.map.with_overlays(overlays))

    # ----------------------------
    # Deletion
    # ----------------------------

    def delete_at(self, px: float, py: float) -> Optional[HitTarget]:
        """Delete the overlay under the point. Components cannot be deleted.

        Returns:
            The deleted target, or None.
        """
        target = hit_test(self.map, self.viewport, px, py, self.tolerances, self.measure)
        if target is None or target.kind == KIND_COMPONENT:
            return None
        self._commit_single(overlay_store.delete(self.map.overlays, target.kind, target.id))
        return target

    def delete_selected(self) -> Optional[HitTarget]:
        sel = overlay_store.selected(self.map.overlays)
        if sel is None:
            return None
        kind, item = sel
        self._commit_single(overlay_store.delete(self.map.overlays, kind, item.id))
        return HitTarget(kind, item.id)

    # ----------------------------
    # Hover feedback
    # ----------------------------

    def cursor_hint(self, px: float, py: float) -> str:
        """Cursor the view should show over (px, py) when no gesture runs."""
        if not isinstance(self._interaction, Idle):
            return CURSOR_GRABBING if isinstance(self._interaction, Dragging) else CURSOR_CROSSHAIR
        if self._tool == TOOL_MOVE:
            for item in selected_resizable(self.map):
                if find_resize_handle(item, self.viewport, px, py, self.tolerances, self.measure):
                    return CURSOR_RESIZE
            hit = hit_test(self.map, self.viewport, px, py, self.tolerances, self.measure)
            return CURSOR_GRAB if hit else CURSOR_DEFAULT
        if self._tool in (TOOL_TEXT, TOOL_ICON):
            hit = hit_test(self.map, self.viewport, px, py, self.tolerances, self.measure)
            return CURSOR_POINTER if hit and hit.kind != KIND_COMPONENT else CURSOR_CROSSHAIR
        return CURSOR_CROSSHAIR

    def hovered_deletable(self, px: float, py: float) -> bool:
        hit = hit_test(self.map, self.viewport, px, py, self.tolerances, self.measure)
        return hit is not None and hit.kind != KIND_COMPONENT
