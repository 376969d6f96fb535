"""
canvas/geometry.py

Diagram-space <-> pixel-space transforms, hit-testing, and resize handles.

Diagram space is the unit square: x is evolution (left to right), y is
value-chain visibility (bottom to top). Pixel space has its origin at the
top-left of the canvas with y growing downwards, and a fixed margin on
every side.

Everything here is pure and Qt-free. Text width is the only measurement
that needs a rendering surface; callers pass a ``measure`` callable
(see ``canvas.renderer.QtTextMeasurer``).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from models import (
    KIND_COMPONENT,
    KIND_CONNECTION,
    KIND_DRAWING,
    KIND_ICON,
    KIND_IMAGE,
    KIND_SHAPE,
    KIND_TEXT,
    CircleShape,
    DrawingPath,
    IconOverlay,
    ImageOverlay,
    LineShape,
    RectangleShape,
    ShapeOverlay,
    TextOverlay,
    TriangleShape,
    WardleyMap,
)

Point = Tuple[float, float]
TextMeasurer = Callable[[TextOverlay], float]

# Text box used when no measurement is available
TEXT_FALLBACK_HALF_WIDTH = 50.0
TEXT_FALLBACK_HALF_HEIGHT = 20.0

# Font size range reachable through the text "se" handle
MIN_FONT_SIZE = 8
MAX_FONT_SIZE = 72
FONT_RESIZE_DIVISOR = 5.0

# Smallest text box width reachable through the text "e" handle
MIN_TEXT_WIDTH = 10.0

# Handle names
HANDLE_NW = "nw"
HANDLE_NE = "ne"
HANDLE_SW = "sw"
HANDLE_SE = "se"
HANDLE_N = "n"
HANDLE_E = "e"
HANDLE_S = "s"
HANDLE_W = "w"
HANDLE_START = "start"
HANDLE_END = "end"


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def clamp01(v: float) -> float:
    return clamp(v, 0.0, 1.0)


# ─────────────────────────────────────────────────────────
# Viewport
# ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Viewport:
    """Canvas pixel size plus margin; owns the coordinate transforms."""
    width: float
    height: float
    margin: float = 50.0

    @property
    def inner_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def inner_height(self) -> float:
        return self.height - 2 * self.margin

    @property
    def inner_min(self) -> float:
        return min(self.inner_width, self.inner_height)

    def to_pixel(self, x: float, y: float) -> Point:
        """Diagram point to pixel point (y inverted)."""
        m = self.margin
        return (m + x * self.inner_width, m + (1.0 - y) * self.inner_height)

    def to_normalized(self, px: float, py: float) -> Point:
        """Pixel point to diagram point, clamped into the unit square."""
        m = self.margin
        return (
            clamp01((px - m) / self.inner_width),
            clamp01(1.0 - (py - m) / self.inner_height),
        )

    def normalized_box(self, px0: float, py0: float, px1: float, py1: float) -> Tuple[float, float, float, float]:
        """Box spanned by two pixel corners as (x, y, width, height).

        (x, y) is the top-left corner in diagram space; width and height
        are fractions of the inner extent. Negative drags are normalised and
        both corners are clamped to the inner area first.
        """
        m = self.margin
        px0, px1 = (clamp(v, m, self.width - m) for v in (px0, px1))
        py0, py1 = (clamp(v, m, self.height - m) for v in (py0, py1))
        x, y = self.to_normalized(min(px0, px1), min(py0, py1))
        return (x, y, abs(px1 - px0) / self.inner_width, abs(py1 - py0) / self.inner_height)


@dataclass(frozen=True)
class HitTolerances:
    """Pixel tolerances for hit-testing.

    Defaults:
        line: 5.0 (lines and path segments)
        component: 12.0
        handle: 8.0
        text_padding: 5.0
        sequence_component: 20.0
        sequence_connection: 10.0
    """
    line: float = 5.0
    component: float = 12.0
    handle: float = 8.0
    text_padding: float = 5.0
    sequence_component: float = 20.0
    sequence_connection: float = 10.0

    @classmethod
    def from_settings(cls, hit_test) -> "HitTolerances":
        """Build from a ``settings.HitTestSettings``."""
        return cls(
            line=hit_test.line_tolerance,
            component=hit_test.component_radius,
            handle=hit_test.handle_size,
            text_padding=hit_test.text_padding,
            sequence_component=hit_test.sequence_component_radius,
            sequence_connection=hit_test.sequence_connection_tolerance,
        )


DEFAULT_TOLERANCES = HitTolerances()


@dataclass(frozen=True)
class HitTarget:
    """What a pixel point resolved to: an entity kind plus its id.

    Components are identified by name, connections by ``"from->to"``.
    """
    kind: str
    id: str


# ─────────────────────────────────────────────────────────
# Primitive tests
# ─────────────────────────────────────────────────────────

def distance(ax: float, ay: float, bx: float, by: float) -> float:
    return math.hypot(bx - ax, by - ay)


def point_segment_distance(px: float, py: float, ax: float, ay: float, bx: float, by: float) -> float:
    """Distance from P to segment AB (projection clamped to the segment)."""
    dx, dy = bx - ax, by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return distance(px, py, ax, ay)
    t = clamp(((px - ax) * dx + (py - ay) * dy) / length_sq, 0.0, 1.0)
    return distance(px, py, ax + t * dx, ay + t * dy)


def point_in_triangle(p: Point, a: Point, b: Point, c: Point) -> bool:
    """Sign test: inside (or on an edge) iff the three edge signs agree."""
    def sign(p1: Point, p2: Point, p3: Point) -> float:
        return (p1[0] - p3[0]) * (p2[1] - p3[1]) - (p2[0] - p3[0]) * (p1[1] - p3[1])

    d1 = sign(p, a, b)
    d2 = sign(p, b, c)
    d3 = sign(p, c, a)
    has_neg = d1 < 0 or d2 < 0 or d3 < 0
    has_pos = d1 > 0 or d2 > 0 or d3 > 0
    return not (has_neg and has_pos)


def point_in_box(px: float, py: float, left: float, top: float, width: float, height: float) -> bool:
    return left <= px <= left + width and top <= py <= top + height


# ─────────────────────────────────────────────────────────
# Pixel geometry of overlays
# ─────────────────────────────────────────────────────────

def box_pixels(shape: ShapeOverlay, vp: Viewport) -> Tuple[float, float, float, float]:
    """(left, top, width, height) in pixels for rectangles and triangles."""
    if not isinstance(shape, (RectangleShape, TriangleShape)):
        raise TypeError(f"{type(shape).__name__} has no box geometry")
    left, top = vp.to_pixel(shape.x, shape.y)
    return left, top, shape.width * vp.inner_width, shape.height * vp.inner_height


def triangle_vertices(shape: TriangleShape, vp: Viewport) -> Tuple[Point, Point, Point]:
    left, top, w, h = box_pixels(shape, vp)
    return (left + w / 2, top), (left, top + h), (left + w, top + h)


def circle_pixels(shape: CircleShape, vp: Viewport) -> Tuple[float, float, float]:
    """(cx, cy, r) in pixels."""
    cx, cy = vp.to_pixel(shape.x, shape.y)
    return cx, cy, shape.radius * vp.inner_min


def path_pixels(path: DrawingPath, vp: Viewport) -> List[Point]:
    return [vp.to_pixel(x, y) for x, y in path.points]


def text_width(text: TextOverlay, measure: Optional[TextMeasurer]) -> Optional[float]:
    """Pixel width of a text box: explicit width, else measured, else None."""
    if text.width:
        return float(text.width)
    if measure is not None:
        return float(measure(text))
    return None


def estimate_text_width(text: TextOverlay) -> float:
    """Rough width used to place handles when nothing can measure."""
    return 0.6 * text.font_size * max(1, len(text.text))


# ─────────────────────────────────────────────────────────
# Per-kind hit tests
# ─────────────────────────────────────────────────────────

def hit_shape(shape: ShapeOverlay, vp: Viewport, px: float, py: float,
              tol: HitTolerances = DEFAULT_TOLERANCES) -> bool:
    if isinstance(shape, LineShape):
        ax, ay = vp.to_pixel(shape.x, shape.y)
        bx, by = vp.to_pixel(shape.end_x, shape.end_y)
        return point_segment_distance(px, py, ax, ay, bx, by) < tol.line
    if isinstance(shape, RectangleShape):
        return point_in_box(px, py, *box_pixels(shape, vp))
    if isinstance(shape, CircleShape):
        cx, cy, r = circle_pixels(shape, vp)
        return distance(px, py, cx, cy) <= r
    if isinstance(shape, TriangleShape):
        return point_in_triangle((px, py), *triangle_vertices(shape, vp))
    raise TypeError(f"Unknown shape type: {type(shape).__name__}")


def hit_path(path: DrawingPath, vp: Viewport, px: float, py: float,
             tol: HitTolerances = DEFAULT_TOLERANCES) -> bool:
    pts = path_pixels(path, vp)
    if len(pts) == 1:
        return distance(px, py, *pts[0]) < tol.line
    for (ax, ay), (bx, by) in zip(pts, pts[1:]):
        if point_segment_distance(px, py, ax, ay, bx, by) < tol.line:
            return True
    return False


def hit_text(text: TextOverlay, vp: Viewport, px: float, py: float,
             tol: HitTolerances = DEFAULT_TOLERANCES,
             measure: Optional[TextMeasurer] = None) -> bool:
    """Text anchor is the baseline start; the box extends up by font size."""
    tx, ty = vp.to_pixel(text.x, text.y)
    w = text_width(text, measure)
    if w is None:
        return abs(px - tx) < TEXT_FALLBACK_HALF_WIDTH and abs(py - ty) < TEXT_FALLBACK_HALF_HEIGHT
    pad = tol.text_padding
    h = text.font_size
    return tx - pad <= px <= tx + w + pad and ty - h - pad <= py <= ty + pad


def hit_icon(icon: IconOverlay, vp: Viewport, px: float, py: float) -> bool:
    ix, iy = vp.to_pixel(icon.x, icon.y)
    return abs(px - ix) < icon.size and abs(py - iy) < icon.size


def hit_image(image: ImageOverlay, vp: Viewport, px: float, py: float) -> bool:
    left, top = vp.to_pixel(image.x, image.y)
    return point_in_box(px, py, left, top, image.width, image.height)


# ─────────────────────────────────────────────────────────
# Map-level hit testing
# ─────────────────────────────────────────────────────────

def hit_test(wmap: WardleyMap, vp: Viewport, px: float, py: float,
             tol: HitTolerances = DEFAULT_TOLERANCES,
             measure: Optional[TextMeasurer] = None) -> Optional[HitTarget]:
    """Resolve the entity under a pixel point.

    Precedence: shapes, paths, texts, icons, images, components. Within
    a kind the most recently added item wins.

    Args:
        wmap: Map snapshot.
        vp: Current viewport.
        px, py: Pointer position in pixels.
        tol: Pixel tolerances.
        measure: Text width measurer supplied by the rendering surface.

    Returns:
        HitTarget, or None if nothing is under the point.
    """
    ov = wmap.overlays
    for shape in reversed(ov.shapes):
        if hit_shape(shape, vp, px, py, tol):
            return HitTarget(KIND_SHAPE, shape.id)
    for path in reversed(ov.paths):
        if hit_path(path, vp, px, py, tol):
            return HitTarget(KIND_DRAWING, path.id)
    for text in reversed(ov.texts):
        if hit_text(text, vp, px, py, tol, measure):
            return HitTarget(KIND_TEXT, text.id)
    for icon in reversed(ov.icons):
        if hit_icon(icon, vp, px, py):
            return HitTarget(KIND_ICON, icon.id)
    for image in reversed(ov.images):
        if hit_image(image, vp, px, py):
            return HitTarget(KIND_IMAGE, image.id)
    comp = component_at(wmap, vp, px, py, tol.component)
    if comp is not None:
        return HitTarget(KIND_COMPONENT, comp)
    return None


def component_at(wmap: WardleyMap, vp: Viewport, px: float, py: float, radius: float) -> Optional[str]:
    """Name of the most recently defined component within *radius* px."""
    for comp in reversed(wmap.components):
        cx, cy = vp.to_pixel(comp.x, comp.y)
        if distance(px, py, cx, cy) <= radius:
            return comp.name
    return None


def hit_test_sequence_target(wmap: WardleyMap, vp: Viewport, px: float, py: float,
                             tol: HitTolerances = DEFAULT_TOLERANCES) -> Optional[HitTarget]:
    """Resolve a click while recording a reveal sequence.

    Only components and connections can be recorded. Components are checked
    first with a generous radius; connections whose endpoints do not resolve
    are skipped.
    """
    name = component_at(wmap, vp, px, py, tol.sequence_component)
    if name is not None:
        return HitTarget(KIND_COMPONENT, name)
    for conn in wmap.connections:
        ends = wmap.resolve(conn)
        if ends is None:
            continue
        a, b = ends
        ax, ay = vp.to_pixel(a.x, a.y)
        bx, by = vp.to_pixel(b.x, b.y)
        if point_segment_distance(px, py, ax, ay, bx, by) < tol.sequence_connection:
            return HitTarget(KIND_CONNECTION, conn.key)
    return None


# ─────────────────────────────────────────────────────────
# Resize handles
# ─────────────────────────────────────────────────────────

def handle_points(item: Any, vp: Viewport, measure: Optional[TextMeasurer] = None) -> Dict[str, Point]:
    """Named handle positions in pixels for a resizable overlay."""
    if isinstance(item, (RectangleShape, TriangleShape)):
        left, top, w, h = box_pixels(item, vp)
        return {
            HANDLE_NW: (left, top),
            HANDLE_NE: (left + w, top),
            HANDLE_SW: (left, top + h),
            HANDLE_SE: (left + w, top + h),
        }
    if isinstance(item, CircleShape):
        cx, cy, r = circle_pixels(item, vp)
        return {
            HANDLE_E: (cx + r, cy),
            HANDLE_S: (cx, cy + r),
            HANDLE_W: (cx - r, cy),
            HANDLE_N: (cx, cy - r),
        }
    if isinstance(item, LineShape):
        return {
            HANDLE_START: vp.to_pixel(item.x, item.y),
            HANDLE_END: vp.to_pixel(item.end_x, item.end_y),
        }
    if isinstance(item, TextOverlay):
        tx, ty = vp.to_pixel(item.x, item.y)
        w = text_width(item, measure)
        if w is None:
            w = estimate_text_width(item)
        return {
            HANDLE_SE: (tx + w, ty),
            HANDLE_E: (tx + w, ty - item.font_size / 2),
        }
    return {}


def find_resize_handle(item: Any, vp: Viewport, px: float, py: float,
                       tol: HitTolerances = DEFAULT_TOLERANCES,
                       measure: Optional[TextMeasurer] = None) -> Optional[str]:
    """Name of the handle within the handle square around (px, py), or None."""
    for name, (hx, hy) in handle_points(item, vp, measure).items():
        if abs(px - hx) <= tol.handle and abs(py - hy) <= tol.handle:
            return name
    return None


def apply_resize(item: Any, handle: str, vp: Viewport, px: float, py: float,
                 measure: Optional[TextMeasurer] = None) -> Dict[str, Any]:
    """Attribute patch produced by dragging *handle* of *item* to (px, py).

    Box corners keep the opposite corner fixed. Circle handles set the
    radius to the pointer distance from the center. Line handles move one
    endpoint. Text "se" scales the font size, text "e" sets the box width.

    Returns:
        Dict of changed attributes, empty if the handle does not apply.
    """
    if isinstance(item, (RectangleShape, TriangleShape)):
        left, top, w, h = box_pixels(item, vp)
        right, bottom = left + w, top + h
        iw, ih = vp.inner_width, vp.inner_height
        # Position and size both come from this pointer, held inside the
        # inner area and on the moving side of the fixed corner
        cx = clamp(px, vp.margin, vp.width - vp.margin)
        cy = clamp(py, vp.margin, vp.height - vp.margin)
        if handle == HANDLE_NW:
            cx, cy = min(cx, right), min(cy, bottom)
            nx, ny = vp.to_normalized(cx, cy)
            return {"x": nx, "y": ny, "width": (right - cx) / iw, "height": (bottom - cy) / ih}
        if handle == HANDLE_NE:
            cx, cy = max(cx, left), min(cy, bottom)
            _, ny = vp.to_normalized(cx, cy)
            return {"y": ny, "width": (cx - left) / iw, "height": (bottom - cy) / ih}
        if handle == HANDLE_SW:
            cx, cy = min(cx, right), max(cy, top)
            nx, _ = vp.to_normalized(cx, cy)
            return {"x": nx, "width": (right - cx) / iw, "height": (cy - top) / ih}
        if handle == HANDLE_SE:
            cx, cy = max(cx, left), max(cy, top)
            return {"width": (cx - left) / iw, "height": (cy - top) / ih}
        return {}
    if isinstance(item, CircleShape):
        if handle not in (HANDLE_N, HANDLE_E, HANDLE_S, HANDLE_W):
            return {}
        cx, cy, _r = circle_pixels(item, vp)
        return {"radius": distance(px, py, cx, cy) / vp.inner_min}
    if isinstance(item, LineShape):
        nx, ny = vp.to_normalized(px, py)
        if handle == HANDLE_START:
            return {"x": nx, "y": ny}
        if handle == HANDLE_END:
            return {"end_x": nx, "end_y": ny}
        return {}
    if isinstance(item, TextOverlay):
        tx, ty = vp.to_pixel(item.x, item.y)
        if handle == HANDLE_SE:
            size = round(distance(px, py, tx, ty) / FONT_RESIZE_DIVISOR)
            return {"font_size": int(clamp(size, MIN_FONT_SIZE, MAX_FONT_SIZE))}
        if handle == HANDLE_E:
            return {"width": max(MIN_TEXT_WIDTH, px - tx)}
        return {}
    return {}


def selected_resizable(wmap: WardleyMap) -> Iterable[Any]:
    """Selected shapes and texts, most recent first."""
    for shape in reversed(wmap.overlays.shapes):
        if shape.selected:
            yield shape
    for text in reversed(wmap.overlays.texts):
        if text.selected:
            yield text
