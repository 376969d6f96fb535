"""
properties package

Style panel for texts, shapes and pen paths, plus the Qt-free style logic
behind it.
"""

from properties.dock import PropertiesDock, PropertiesPanel
from properties.overlay_style import StyleError, apply_style_change, load_selection_style

__all__ = ["PropertiesDock", "PropertiesPanel", "StyleError", "apply_style_change", "load_selection_style"]
