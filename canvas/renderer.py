"""
canvas/renderer.py

QPainter rendering of a WardleyMap snapshot.

One renderer serves the interactive canvas, the presenter window and PNG
export. It never mutates the map; what to hide or fade while presenting
comes in as a ``RevealPlan``.
"""

from __future__ import annotations

import base64
import math
from typing import Dict, Optional

from PyQt6.QtCore import QPointF, QRectF, Qt
from PyQt6.QtGui import QBrush, QColor, QFont, QFontMetricsF, QImage, QPainter, QPainterPath, QPen, QPolygonF

from canvas.geometry import (
    TextMeasurer,
    Viewport,
    box_pixels,
    circle_pixels,
    estimate_text_width,
    handle_points,
    path_pixels,
    text_width,
    triangle_vertices,
)
from debug_trace import trace
from models import (
    KIND_COMPONENT,
    KIND_CONNECTION,
    CircleShape,
    Component,
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
from presentation.sequencer import RevealPlan
from settings import CanvasSettings, PresentationSettings
from utils import hex_to_qcolor

FONT_FAMILY = "Arial"

AXIS_COLOR = QColor("#666666")
CONNECTION_COLOR = QColor("#999999")
NOTE_COLOR = QColor("#333333")
TITLE_COLOR = QColor("#000000")
SELECTION_COLOR = QColor("#2196F3")
HANDLE_FILL = QColor("#FFFFFF")

COMPONENT_RADIUS = 8.0
DEFAULT_LABEL_DX = 12.0
DEFAULT_LABEL_DY = -12.0
ARROW_LENGTH = 8.0
INERTIA_OFFSET = 14.0
INERTIA_HEIGHT = 20.0


def overlay_font(text: TextOverlay) -> QFont:
    font = QFont(FONT_FAMILY)
    font.setPixelSize(max(1, int(round(text.font_size))))
    font.setBold(text.font_weight == "bold")
    return font


class QtTextMeasurer:
    """Text width measurer backed by QFontMetricsF.

    Pass an instance wherever ``canvas.geometry`` accepts ``measure``.
    Requires a QGuiApplication.
    """

    def __call__(self, text: TextOverlay) -> float:
        return QFontMetricsF(overlay_font(text)).horizontalAdvance(text.text)


def _alpha(opacity: float) -> float:
    """Overlay opacity (0..100) as a painter opacity (0..1)."""
    return max(0.0, min(1.0, opacity / 100.0))


def _decode_image(src: str) -> Optional[QImage]:
    """Image from a ``data:`` URL or a file path; None if unreadable."""
    image = QImage()
    if src.startswith("data:"):
        _, _, payload = src.partition(",")
        try:
            data = base64.b64decode(payload)
        except ValueError:
            return None
        if not image.loadFromData(data):
            return None
        return image
    if not image.load(src):
        return None
    return image


class MapRenderer:
    """Draws maps onto any QPainter device.

    Args:
        viewport: Pixel size and margin of the target surface.
        canvas: Colors for background and grid.
        presentation: Highlight color used while recording.
    """

    def __init__(self, viewport: Viewport,
                 canvas: Optional[CanvasSettings] = None,
                 presentation: Optional[PresentationSettings] = None):
        self.viewport = viewport
        self.canvas = canvas or CanvasSettings()
        self.presentation = presentation or PresentationSettings()
        self._images: Dict[str, Optional[QImage]] = {}

    def set_viewport(self, viewport: Viewport) -> None:
        self.viewport = viewport

    # ═══════════════════════════════════════════════════════════
    # Entry point
    # ═══════════════════════════════════════════════════════════

    def render(self, painter: QPainter, wmap: WardleyMap,
               plan: Optional[RevealPlan] = None,
               recording: bool = False,
               show_handles: bool = True,
               measure: Optional[TextMeasurer] = None) -> None:
        """Paint the whole map.

        Args:
            painter: Active painter on the target device.
            wmap: Snapshot to draw.
            plan: Reveal plan while presenting; None draws everything.
            recording: Highlight recorded components/connections with their order.
            show_handles: Draw selection outlines and resize handles.
            measure: Text width measurer for selection boxes.
        """
        trace(f"render {len(wmap.components)} components, plan={plan is not None}", "PAINT")
        painter.save()
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.setRenderHint(QPainter.RenderHint.TextAntialiasing, True)

        self._draw_background(painter)
        self._draw_grid(painter, wmap)
        self._draw_axes(painter, wmap)
        self._draw_title(painter, wmap)

        self._draw_connections(painter, wmap, plan, recording)
        self._draw_components(painter, wmap, plan, recording)
        self._draw_notes(painter, wmap, plan)

        self._draw_overlays(painter, wmap, show_handles, measure)
        painter.restore()

    # ═══════════════════════════════════════════════════════════
    # Frame
    # ═══════════════════════════════════════════════════════════

    def _draw_background(self, painter: QPainter) -> None:
        vp = self.viewport
        painter.fillRect(QRectF(0, 0, vp.width, vp.height), QColor(self.canvas.background_color))

    def _draw_grid(self, painter: QPainter, wmap: WardleyMap) -> None:
        """Dashed separators between evolution stages."""
        vp = self.viewport
        stages = wmap.evolution_stages()
        if len(stages) < 2:
            return
        pen = QPen(QColor(self.canvas.grid_color), 1, Qt.PenStyle.DashLine)
        painter.setPen(pen)
        step = vp.inner_width / (len(stages) - 1)
        for i in range(1, len(stages) - 1):
            x = vp.margin + i * step
            painter.drawLine(QPointF(x, vp.margin), QPointF(x, vp.height - vp.margin))

    def _draw_axes(self, painter: QPainter, wmap: WardleyMap) -> None:
        vp = self.viewport
        m = vp.margin
        painter.setPen(QPen(AXIS_COLOR, 1))
        painter.drawLine(QPointF(m, vp.height - m), QPointF(vp.width - m, vp.height - m))
        painter.drawLine(QPointF(m, m), QPointF(m, vp.height - m))

        font = QFont(FONT_FAMILY)
        font.setPixelSize(16)
        painter.setFont(font)
        fm = QFontMetricsF(font)

        stages = wmap.evolution_stages()
        step = vp.inner_width / max(1, len(stages) - 1)
        for i, stage in enumerate(stages):
            x = m + i * step
            painter.drawLine(QPointF(x, vp.height - m), QPointF(x, vp.height - m + 5))
            w = fm.horizontalAdvance(stage)
            painter.drawText(QPointF(x - w / 2, vp.height - m / 2), stage)

        label = "Evolution"
        painter.drawText(QPointF(vp.width / 2 - fm.horizontalAdvance(label) / 2, vp.height - 5), label)

        for text, y in (("Visible", m + 20), ("Invisible", vp.height - m - 10)):
            painter.drawText(QPointF(m / 2 - fm.horizontalAdvance(text) / 2, y), text)

        painter.save()
        painter.translate(m / 2, vp.height / 2)
        painter.rotate(-90)
        label = "Value Chain"
        painter.drawText(QPointF(-fm.horizontalAdvance(label) / 2, 0), label)
        painter.restore()

    def _draw_title(self, painter: QPainter, wmap: WardleyMap) -> None:
        if not wmap.title:
            return
        font = QFont(FONT_FAMILY)
        font.setPixelSize(24)
        font.setBold(True)
        painter.setFont(font)
        painter.setPen(TITLE_COLOR)
        w = QFontMetricsF(font).horizontalAdvance(wmap.title)
        painter.drawText(QPointF(self.viewport.width / 2 - w / 2, 35), wmap.title)

    # ═══════════════════════════════════════════════════════════
    # Map content
    # ═══════════════════════════════════════════════════════════

    def _record_order(self, wmap: WardleyMap, kind: str, target_id: str) -> Optional[int]:
        index = wmap.sequence.index_of(kind, target_id)
        return None if index < 0 else wmap.sequence.items[index].order

    def _draw_connections(self, painter: QPainter, wmap: WardleyMap,
                          plan: Optional[RevealPlan], recording: bool) -> None:
        vp = self.viewport
        highlight = QColor(self.presentation.record_highlight_color)
        for conn in wmap.connections:
            ends = wmap.resolve(conn)
            if ends is None:
                continue
            opacity = 1.0
            if plan is not None:
                opacity = plan.connection_opacity(conn.key)
                if opacity is None:
                    continue
            a, b = ends
            ax, ay = vp.to_pixel(a.x, a.y)
            bx, by = vp.to_pixel(b.x, b.y)

            order = self._record_order(wmap, KIND_CONNECTION, conn.key) if recording else None
            color = highlight if order is not None else CONNECTION_COLOR
            painter.save()
            painter.setOpacity(opacity)
            painter.setPen(QPen(color, 3 if order is not None else 1))
            painter.drawLine(QPointF(ax, ay), QPointF(bx, by))

            angle = math.atan2(by - ay, bx - ax)
            for sign in (-1, 1):
                tip = angle + sign * math.pi / 6
                painter.drawLine(
                    QPointF(bx, by),
                    QPointF(bx - ARROW_LENGTH * math.cos(tip), by - ARROW_LENGTH * math.sin(tip)),
                )
            if order is not None:
                self._draw_order_badge(painter, (ax + bx) / 2, (ay + by) / 2, order)
            painter.restore()

    def _draw_components(self, painter: QPainter, wmap: WardleyMap,
                         plan: Optional[RevealPlan], recording: bool) -> None:
        for comp in wmap.components:
            opacity = 1.0
            if plan is not None:
                opacity = plan.component_opacity(comp.name)
                if opacity is None:
                    continue
            order = self._record_order(wmap, KIND_COMPONENT, comp.name) if recording else None
            painter.save()
            painter.setOpacity(opacity)
            self._draw_component(painter, comp, order)
            painter.restore()

    def _draw_component(self, painter: QPainter, comp: Component, order: Optional[int]) -> None:
        x, y = self.viewport.to_pixel(comp.x, comp.y)
        color = QColor(comp.display_color)

        painter.setPen(QPen(color, 2))
        painter.setBrush(QBrush(color))
        painter.drawEllipse(QPointF(x, y), COMPONENT_RADIUS, COMPONENT_RADIUS)

        if comp.inertia:
            painter.setPen(QPen(color, 4))
            painter.drawLine(QPointF(x + INERTIA_OFFSET, y - INERTIA_HEIGHT / 2),
                             QPointF(x + INERTIA_OFFSET, y + INERTIA_HEIGHT / 2))

        if order is not None:
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.setPen(QPen(QColor(self.presentation.record_highlight_color), 3))
            painter.drawEllipse(QPointF(x, y), COMPONENT_RADIUS + 6, COMPONENT_RADIUS + 6)
            self._draw_order_badge(painter, x - COMPONENT_RADIUS - 10, y - COMPONENT_RADIUS - 10, order)

        font = QFont(FONT_FAMILY)
        font.setPixelSize(14)
        painter.setFont(font)
        painter.setPen(color)
        dx = comp.label_dx if comp.label_dx is not None else DEFAULT_LABEL_DX
        dy = comp.label_dy if comp.label_dy is not None else DEFAULT_LABEL_DY
        painter.drawText(QPointF(x + dx, y + dy), comp.name)

    def _draw_order_badge(self, painter: QPainter, x: float, y: float, order: int) -> None:
        color = QColor(self.presentation.record_highlight_color)
        painter.save()
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QBrush(color))
        painter.drawEllipse(QPointF(x, y), 9, 9)
        font = QFont(FONT_FAMILY)
        font.setPixelSize(11)
        font.setBold(True)
        painter.setFont(font)
        painter.setPen(QColor("#FFFFFF"))
        painter.drawText(QRectF(x - 9, y - 9, 18, 18), Qt.AlignmentFlag.AlignCenter, str(order))
        painter.restore()

    def _draw_notes(self, painter: QPainter, wmap: WardleyMap, plan: Optional[RevealPlan]) -> None:
        notes = wmap.notes if plan is None else plan.notes
        font = QFont(FONT_FAMILY)
        font.setPixelSize(11)
        painter.setFont(font)
        painter.setPen(NOTE_COLOR)
        for note in notes:
            x, y = self.viewport.to_pixel(note.x, note.y)
            painter.drawText(QPointF(x, y), note.text)

    # ═══════════════════════════════════════════════════════════
    # Overlays
    # ═══════════════════════════════════════════════════════════

    def _draw_overlays(self, painter: QPainter, wmap: WardleyMap,
                       show_handles: bool, measure: Optional[TextMeasurer]) -> None:
        ov = wmap.overlays
        self._prune_images(ov.images)
        for image in ov.images:
            self._draw_image(painter, image)
        for path in ov.paths:
            self._draw_path(painter, path)
        for shape in ov.shapes:
            self._draw_shape(painter, shape)
        for icon in ov.icons:
            self._draw_icon(painter, icon)
        for text in ov.texts:
            self._draw_text(painter, text)

        if not show_handles:
            return
        for shape in ov.shapes:
            if shape.selected:
                self._draw_handles(painter, shape, measure)
        for text in ov.texts:
            if text.selected:
                self._draw_text_selection(painter, text, measure)
                self._draw_handles(painter, text, measure)

    def _stroke_pen(self, color: str, width: float) -> QPen:
        pen = QPen(hex_to_qcolor(color, QColor("#000000")), width)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        return pen

    def _draw_shape(self, painter: QPainter, shape: ShapeOverlay) -> None:
        painter.save()
        painter.setOpacity(_alpha(shape.opacity))
        painter.setPen(self._stroke_pen(shape.stroke_color, shape.stroke_width))
        if shape.filled:
            painter.setBrush(QBrush(hex_to_qcolor(shape.fill_color, QColor("#000000"))))
        else:
            painter.setBrush(Qt.BrushStyle.NoBrush)

        vp = self.viewport
        if isinstance(shape, LineShape):
            ax, ay = vp.to_pixel(shape.x, shape.y)
            bx, by = vp.to_pixel(shape.end_x, shape.end_y)
            painter.drawLine(QPointF(ax, ay), QPointF(bx, by))
        elif isinstance(shape, RectangleShape):
            painter.drawRect(QRectF(*box_pixels(shape, vp)))
        elif isinstance(shape, CircleShape):
            cx, cy, r = circle_pixels(shape, vp)
            painter.drawEllipse(QPointF(cx, cy), r, r)
        elif isinstance(shape, TriangleShape):
            painter.drawPolygon(QPolygonF([QPointF(x, y) for x, y in triangle_vertices(shape, vp)]))
        painter.restore()

    def _draw_path(self, painter: QPainter, path: DrawingPath) -> None:
        points = path_pixels(path, self.viewport)
        if not points:
            return
        qpath = QPainterPath(QPointF(*points[0]))
        for x, y in points[1:]:
            qpath.lineTo(x, y)
        painter.save()
        painter.setOpacity(_alpha(path.opacity))
        painter.setPen(self._stroke_pen(path.stroke_color, path.stroke_width))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        if len(points) == 1:
            painter.drawPoint(QPointF(*points[0]))
        else:
            painter.drawPath(qpath)
        painter.restore()

    def _draw_text(self, painter: QPainter, text: TextOverlay) -> None:
        x, y = self.viewport.to_pixel(text.x, text.y)
        painter.save()
        painter.setOpacity(_alpha(text.opacity))
        painter.setFont(overlay_font(text))
        painter.setPen(hex_to_qcolor(text.color, QColor("#000000")))
        if text.width:
            # Wrapped box; the anchor is the first baseline
            rect = QRectF(x, y - text.font_size, text.width, self.viewport.height)
            painter.drawText(rect, Qt.TextFlag.TextWordWrap.value, text.text)
        else:
            painter.drawText(QPointF(x, y), text.text)
        painter.restore()

    def _draw_icon(self, painter: QPainter, icon: IconOverlay) -> None:
        x, y = self.viewport.to_pixel(icon.x, icon.y)
        half = icon.size / 2
        font = QFont(FONT_FAMILY)
        font.setPixelSize(max(1, int(icon.size)))
        painter.setFont(font)
        painter.setPen(TITLE_COLOR)
        painter.drawText(QRectF(x - half, y - half, icon.size, icon.size),
                         Qt.AlignmentFlag.AlignCenter, icon.icon)

    def _prune_images(self, images) -> None:
        """Forget decoded images no overlay refers to any more."""
        live = {image.src for image in images}
        for src in [s for s in self._images if s not in live]:
            del self._images[src]

    def _draw_image(self, painter: QPainter, image: ImageOverlay) -> None:
        if image.src not in self._images:
            decoded = _decode_image(image.src)
            if decoded is None:
                trace(f"Cannot decode image overlay {image.id}", "ERROR")
            self._images[image.src] = decoded
        qimage = self._images[image.src]
        if qimage is None:
            return
        x, y = self.viewport.to_pixel(image.x, image.y)
        painter.drawImage(QRectF(x, y, image.width, image.height), qimage)

    # ----------------------------
    # Selection
    # ----------------------------

    def _draw_text_selection(self, painter: QPainter, text: TextOverlay,
                             measure: Optional[TextMeasurer]) -> None:
        x, y = self.viewport.to_pixel(text.x, text.y)
        w = text_width(text, measure)
        if w is None:
            w = estimate_text_width(text)
        painter.save()
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.setPen(QPen(SELECTION_COLOR, 1, Qt.PenStyle.DashLine))
        painter.drawRect(QRectF(x - 2, y - text.font_size, w + 4, text.font_size + 4))
        painter.restore()

    def _draw_handles(self, painter: QPainter, item, measure: Optional[TextMeasurer]) -> None:
        painter.save()
        painter.setPen(QPen(SELECTION_COLOR, 1))
        painter.setBrush(QBrush(HANDLE_FILL))
        half = 4.0
        for hx, hy in handle_points(item, self.viewport, measure).values():
            painter.drawRect(QRectF(hx - half, hy - half, 2 * half, 2 * half))
        painter.restore()
