"""
properties/overlay_style.py

Style edits coming from the properties panel.

The panel edits three sections of ``OverlayDefaults``: text, shape and pen.
A change always updates the defaults used for new overlays. When a text or
shape of the matching section is selected it is restyled too, as one undo
step. Selecting a text or shape loads its style back into the defaults.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from canvas.geometry import MAX_FONT_SIZE, MIN_FONT_SIZE, clamp
from debug_trace import trace
from history import HistoryManager
from models import KIND_SHAPE, KIND_TEXT, LineShape, WardleyMap
import overlay_store
from settings import OverlayDefaults

SECTION_TEXT = "text"
SECTION_SHAPE = "shape"
SECTION_DRAWING = "drawing"

MIN_STROKE_WIDTH = 1
MAX_STROKE_WIDTH = 10
FONT_WEIGHTS = ("normal", "bold")

# Editable attributes per section; defaults and overlays share the names
SECTION_FIELDS = {
    SECTION_TEXT: ("color", "font_size", "font_weight", "opacity"),
    SECTION_SHAPE: ("stroke_color", "fill_color", "stroke_width", "opacity", "filled"),
    SECTION_DRAWING: ("stroke_color", "stroke_width", "opacity"),
}

# Overlay kind restyled by each section (pen paths cannot be selected)
_SECTION_KIND = {SECTION_TEXT: KIND_TEXT, SECTION_SHAPE: KIND_SHAPE}

_HEX_COLOR = re.compile(r"#[0-9A-Fa-f]{6}(?:[0-9A-Fa-f]{2})?")


class StyleError(ValueError):
    """Raised for an unknown section, attribute or an unusable value."""


def _clean_value(key: str, value: Any) -> Any:
    if key in ("color", "stroke_color", "fill_color"):
        if not isinstance(value, str) or not _HEX_COLOR.fullmatch(value):
            raise StyleError(f"Not a hex color: {value!r}")
        return value.upper()
    if key == "opacity":
        return int(clamp(int(value), 0, 100))
    if key == "stroke_width":
        return float(clamp(float(value), MIN_STROKE_WIDTH, MAX_STROKE_WIDTH))
    if key == "font_size":
        return int(clamp(int(value), MIN_FONT_SIZE, MAX_FONT_SIZE))
    if key == "font_weight":
        if value not in FONT_WEIGHTS:
            raise StyleError(f"Font weight must be one of {', '.join(FONT_WEIGHTS)}")
        return value
    if key == "filled":
        return bool(value)
    return value


def normalize(section: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and clamp a style change for *section*.

    Raises:
        StyleError: for an unknown section or attribute, a malformed color
            or an unknown font weight.
    """
    if section not in SECTION_FIELDS:
        raise StyleError(f"Unknown style section: {section!r}")
    unknown = set(changes) - set(SECTION_FIELDS[section])
    if unknown:
        raise StyleError(f"{section} style has no attribute(s): {', '.join(sorted(unknown))}")
    return {key: _clean_value(key, value) for key, value in changes.items()}


def update_defaults(defaults: OverlayDefaults, section: str, changes: Dict[str, Any]) -> None:
    target = getattr(defaults, section)
    for key, value in changes.items():
        setattr(target, key, value)


def restyle_selected(wmap: WardleyMap, section: str, changes: Dict[str, Any]) -> WardleyMap:
    """Apply *changes* to the selected overlay if it belongs to *section*.

    Returns *wmap* itself when nothing is selected, the selection is of
    another kind, or no attribute actually changes.
    """
    sel = overlay_store.selected(wmap.overlays)
    if sel is None or _SECTION_KIND.get(section) != sel[0]:
        return wmap
    kind, item = sel
    if isinstance(item, LineShape):
        changes = {k: v for k, v in changes.items() if k != "filled"}
    changes = {k: v for k, v in changes.items() if getattr(item, k) != v}
    if not changes:
        return wmap
    return wmap.with_overlays(overlay_store.patch(wmap.overlays, kind, item.id, **changes))


def apply_style_change(defaults: OverlayDefaults, history: HistoryManager,
                       section: str, changes: Dict[str, Any]) -> bool:
    """Update the defaults and restyle the selection through *history*.

    Returns:
        True if the selected overlay was restyled (one undo step).
    """
    clean = normalize(section, changes)
    update_defaults(defaults, section, clean)
    new_map = restyle_selected(history.present, section, clean)
    if new_map is history.present:
        return False
    trace(f"restyle selected {section}: {clean}", "PROPS")
    history.commit(new_map)
    return True


def load_selection_style(defaults: OverlayDefaults, wmap: WardleyMap) -> Optional[str]:
    """Copy the selected text's or shape's style into *defaults*.

    Returns:
        The section that was loaded, or None without a selection.
    """
    sel = overlay_store.selected(wmap.overlays)
    if sel is None:
        return None
    kind, item = sel
    section = SECTION_TEXT if kind == KIND_TEXT else SECTION_SHAPE
    keys = SECTION_FIELDS[section]
    if isinstance(item, LineShape):
        keys = tuple(k for k in keys if k != "filled")
    update_defaults(defaults, section, {k: getattr(item, k) for k in keys})
    return section
