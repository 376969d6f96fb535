"""
canvas package

Geometry and hit-testing, pointer interaction, QPainter rendering, and the
interactive canvas widget.
"""

from canvas.geometry import HitTarget, HitTolerances, Viewport, hit_test
from canvas.interaction import CanvasInteraction
from canvas.renderer import MapRenderer, QtTextMeasurer
from canvas.view import MapCanvasWidget

__all__ = [
    "HitTarget",
    "HitTolerances",
    "Viewport",
    "hit_test",
    "CanvasInteraction",
    "MapRenderer",
    "QtTextMeasurer",
    "MapCanvasWidget",
]
