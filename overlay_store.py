"""
overlay_store.py

Copy-on-write mutations for user overlays (texts, icons, images, shapes,
freehand paths).

Every function takes an ``Overlays`` value and returns a new one; the input
is never modified, so a snapshot already handed to the renderer or the
history manager stays valid. Operations on an unknown id return the
collection unchanged.
"""

from __future__ import annotations

import uuid
from dataclasses import fields, replace
from typing import Any, Iterable, Optional, Tuple

from canvas.geometry import clamp01
from models import (
    KIND_DRAWING,
    KIND_ICON,
    KIND_IMAGE,
    KIND_SHAPE,
    KIND_TEXT,
    OVERLAY_KINDS,
    DrawingPath,
    IconOverlay,
    ImageOverlay,
    LineShape,
    Overlays,
    ShapeOverlay,
    TextOverlay,
)

# Attributes that hold diagram-space coordinates and get clamped on write
_COORD_ATTRS = ("x", "y", "end_x", "end_y")


class OverlayError(ValueError):
    """Raised for invalid overlay mutations (duplicate id, unknown attribute)."""


def new_overlay_id(prefix: str = "ov") -> str:
    """Return a fresh opaque overlay id."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def kind_of(item: Any) -> str:
    """Overlay kind tag for an overlay instance."""
    if isinstance(item, TextOverlay):
        return KIND_TEXT
    if isinstance(item, IconOverlay):
        return KIND_ICON
    if isinstance(item, ImageOverlay):
        return KIND_IMAGE
    if isinstance(item, ShapeOverlay):
        return KIND_SHAPE
    if isinstance(item, DrawingPath):
        return KIND_DRAWING
    raise OverlayError(f"Not an overlay: {type(item).__name__}")


def _check_kind(kind: str) -> None:
    if kind not in OVERLAY_KINDS:
        raise OverlayError(f"Unknown overlay kind: {kind!r}")


def find(overlays: Overlays, kind: str, overlay_id: str) -> Optional[Any]:
    _check_kind(kind)
    for item in overlays.of_kind(kind):
        if item.id == overlay_id:
            return item
    return None


def _map_one(overlays: Overlays, kind: str, overlay_id: str, fn) -> Overlays:
    items = overlays.of_kind(kind)
    if not any(item.id == overlay_id for item in items):
        return overlays
    return overlays.with_kind(kind, (fn(item) if item.id == overlay_id else item for item in items))


# ─────────────────────────────────────────────────────────
# add / delete
# ─────────────────────────────────────────────────────────

def add(overlays: Overlays, item: Any) -> Overlays:
    """Append an overlay. Its id must not exist in any kind.

    Raises:
        OverlayError: if the id is already used.
    """
    kind = kind_of(item)
    if item.id in set(overlays.all_ids()):
        raise OverlayError(f"Duplicate overlay id: {item.id!r}")
    return overlays.with_kind(kind, overlays.of_kind(kind) + (item,))


def delete(overlays: Overlays, kind: str, overlay_id: str) -> Overlays:
    _check_kind(kind)
    items = overlays.of_kind(kind)
    kept = tuple(item for item in items if item.id != overlay_id)
    if len(kept) == len(items):
        return overlays
    return overlays.with_kind(kind, kept)


# ─────────────────────────────────────────────────────────
# move
# ─────────────────────────────────────────────────────────

def _fit_delta(values: Iterable[float], delta: float) -> float:
    """Largest part of *delta* that keeps every value inside [0, 1]."""
    values = list(values)
    return max(-min(values), min(delta, 1.0 - max(values)))


def translate_points(points: Iterable[Tuple[float, float]], dx: float, dy: float) -> Tuple[Tuple[float, float], ...]:
    """Shift all points by one delta, shortened so none leaves the unit square."""
    points = tuple(points)
    if not points:
        return points
    dx = _fit_delta((px for px, _ in points), dx)
    dy = _fit_delta((py for _, py in points), dy)
    return tuple((clamp01(px + dx), clamp01(py + dy)) for px, py in points)


def _moved(item: Any, x: float, y: float) -> Any:
    if isinstance(item, DrawingPath):
        if not item.points:
            return item
        first_x, first_y = item.points[0]
        return replace(item, points=translate_points(item.points, x - first_x, y - first_y))
    if isinstance(item, LineShape):
        (x, y), (end_x, end_y) = translate_points(
            ((item.x, item.y), (item.end_x, item.end_y)), x - item.x, y - item.y
        )
        return replace(item, x=x, y=y, end_x=end_x, end_y=end_y)
    return replace(item, x=x, y=y)


def move(overlays: Overlays, kind: str, overlay_id: str, x: float, y: float,
         origin: Optional[Any] = None) -> Overlays:
    """Move an overlay's anchor to (x, y), clamped to the unit square.

    A drawing path is translated so its first point lands on (x, y); a
    line shape carries its end point along. Both move rigidly: near an
    edge the translation stops short instead of flattening points.

    Args:
        origin: The overlay as it was when the drag started. The new
            geometry is derived from it rather than from the current item,
            so a drag that touches an edge and comes back restores the shape.
    """
    _check_kind(kind)
    x, y = clamp01(x), clamp01(y)
    return _map_one(overlays, kind, overlay_id, lambda item: _moved(origin or item, x, y))


# ─────────────────────────────────────────────────────────
# patch
# ─────────────────────────────────────────────────────────

def _patched(item: Any, changes: dict) -> Any:
    valid = {f.name for f in fields(item)}
    unknown = set(changes) - valid
    if unknown:
        raise OverlayError(
            f"{type(item).__name__} has no attribute(s): {', '.join(sorted(unknown))}"
        )
    clean = {}
    for key, value in changes.items():
        if key in _COORD_ATTRS:
            value = clamp01(value)
        elif key == "points":
            value = tuple((clamp01(px), clamp01(py)) for px, py in value)
        clean[key] = value
    return replace(item, **clean)


def patch(overlays: Overlays, kind: str, overlay_id: str, **changes: Any) -> Overlays:
    """Change attributes of one overlay (resize, restyle, edit text).

    Attributes are checked against the concrete overlay type, so e.g.
    ``radius`` cannot be set on a rectangle.

    Raises:
        OverlayError: if an attribute does not exist on that overlay.
    """
    _check_kind(kind)
    if not changes:
        return overlays
    return _map_one(overlays, kind, overlay_id, lambda item: _patched(item, changes))


def set_path_points(overlays: Overlays, path_id: str, points: Iterable[Tuple[float, float]]) -> Overlays:
    return patch(overlays, KIND_DRAWING, path_id, points=tuple(points))


def append_path_point(overlays: Overlays, path_id: str, x: float, y: float) -> Overlays:
    path = find(overlays, KIND_DRAWING, path_id)
    if path is None:
        return overlays
    return set_path_points(overlays, path_id, path.points + ((x, y),))


# ─────────────────────────────────────────────────────────
# selection
# ─────────────────────────────────────────────────────────

def select(overlays: Overlays, kind: Optional[str] = None, overlay_id: Optional[str] = None) -> Overlays:
    """Select one text or shape overlay and deselect all others.

    ``select(overlays)`` (or any kind other than text/shape) clears the
    selection. Only items whose flag actually changes are replaced.
    """
    def flagged(items, item_kind):
        out = []
        for item in items:
            want = item_kind == kind and item.id == overlay_id
            out.append(item if item.selected == want else replace(item, selected=want))
        return out

    texts = flagged(overlays.texts, KIND_TEXT)
    shapes = flagged(overlays.shapes, KIND_SHAPE)
    if all(a is b for a, b in zip(texts, overlays.texts)) and all(
        a is b for a, b in zip(shapes, overlays.shapes)
    ):
        return overlays
    return replace(overlays, texts=tuple(texts), shapes=tuple(shapes))


def selected(overlays: Overlays) -> Optional[Tuple[str, Any]]:
    """The (kind, item) currently selected, if any."""
    for shape in overlays.shapes:
        if shape.selected:
            return KIND_SHAPE, shape
    for text in overlays.texts:
        if text.selected:
            return KIND_TEXT, text
    return None
