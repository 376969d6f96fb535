"""
canvas/view.py

Interactive map canvas widget: paints the current snapshot and forwards
pointer input to the interaction controller or, while recording, to the
sequencer.
"""

from __future__ import annotations

from typing import Callable, Optional

from PyQt6.QtCore import QPointF, Qt
from PyQt6.QtGui import QAction, QCursor, QPainter
from PyQt6.QtWidgets import QMenu, QWidget

from canvas.geometry import HitTolerances, Viewport, hit_test, hit_test_sequence_target
from canvas.interaction import (
    CURSOR_CROSSHAIR,
    CURSOR_DEFAULT,
    CURSOR_GRAB,
    CURSOR_GRABBING,
    CURSOR_POINTER,
    CURSOR_RESIZE,
    TOOL_ICON,
    TOOL_TEXT,
    CanvasInteraction,
)
from canvas.renderer import MapRenderer, QtTextMeasurer
from debug_trace import trace
from history import HistoryManager
from models import KIND_TEXT
import overlay_store
from presentation.sequencer import Sequencer
from settings import AppSettings

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp")

_CURSORS = {
    CURSOR_DEFAULT: Qt.CursorShape.ArrowCursor,
    CURSOR_GRAB: Qt.CursorShape.OpenHandCursor,
    CURSOR_GRABBING: Qt.CursorShape.ClosedHandCursor,
    CURSOR_RESIZE: Qt.CursorShape.SizeFDiagCursor,
    CURSOR_CROSSHAIR: Qt.CursorShape.CrossCursor,
    CURSOR_POINTER: Qt.CursorShape.PointingHandCursor,
}

# Asks the user for a string; (title, initial) -> text or None if cancelled
TextPrompt = Callable[[str, str], Optional[str]]


class MapCanvasWidget(QWidget):
    """
    Fixed-size canvas showing the present map snapshot.

    Input behavior:
    - Move tool: click selects, drag moves, handles resize
    - Shape tools / pen: press-drag-release draws
    - Text / icon tools: click places, via the text prompt callback
    - Right-click: context menu to delete the overlay under the pointer
    - Delete / Backspace: delete the selected overlay
    - While recording: clicks toggle components/connections in the sequence
    - Image files dropped on the canvas become image overlays
    """

    def __init__(self, history: HistoryManager, sequencer: Sequencer,
                 settings: AppSettings, parent=None):
        super().__init__(parent)
        self.history = history
        self.sequencer = sequencer
        self.settings = settings

        self.viewport = Viewport(settings.canvas.width, settings.canvas.height, settings.canvas.margin)
        self.measure = QtTextMeasurer()
        self.renderer = MapRenderer(self.viewport, settings.canvas, settings.presentation)
        self.interaction = CanvasInteraction(
            history,
            self.viewport,
            tolerances=HitTolerances.from_settings(settings.hit_test),
            defaults=settings.defaults,
            measure=self.measure,
        )

        self._prompt_text: Optional[TextPrompt] = None
        self._on_drop_image: Optional[Callable[[str, float, float], None]] = None

        self.setFixedSize(int(self.viewport.width), int(self.viewport.height))
        self.setMouseTracking(True)
        self.setAcceptDrops(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    # ----------------------------
    # Wiring
    # ----------------------------

    def set_text_prompt(self, cb: Optional[TextPrompt]) -> None:
        self._prompt_text = cb

    def set_drop_image_callback(self, cb: Optional[Callable[[str, float, float], None]]) -> None:
        """Called with (path, px, py) when an image file is dropped."""
        self._on_drop_image = cb

    def set_tool(self, tool: str) -> None:
        self.interaction.set_tool(tool)
        self.setCursor(QCursor(_CURSORS[CURSOR_DEFAULT]))

    def refresh(self) -> None:
        self.update()

    # ----------------------------
    # Painting
    # ----------------------------

    def paintEvent(self, event):
        painter = QPainter(self)
        try:
            presenting = self.sequencer.is_presenting
            self.renderer.render(
                painter,
                self.history.present,
                plan=self.sequencer.current_plan(
                    self.settings.presentation.reveal_opacity,
                    self.settings.presentation.note_reveal_distance,
                ),
                recording=self.sequencer.is_recording,
                show_handles=not presenting,
                measure=self.measure,
            )
        finally:
            painter.end()

    # ----------------------------
    # Mouse
    # ----------------------------

    def mousePressEvent(self, event):
        pos = event.position()
        px, py = pos.x(), pos.y()

        if event.button() == Qt.MouseButton.RightButton:
            self._show_context_menu(px, py, event.globalPosition())
            event.accept()
            return
        if event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return

        if self.sequencer.is_recording:
            target = hit_test_sequence_target(self.history.present, self.viewport, px, py,
                                              self.interaction.tolerances)
            if target is not None:
                self.sequencer.item_clicked(target.kind, target.id)
            event.accept()
            return

        if self.sequencer.is_presenting:
            self.sequencer.advance_or_finish()
            event.accept()
            return

        tool = self.interaction.tool
        if tool in (TOOL_TEXT, TOOL_ICON):
            value = self._prompt("Add text" if tool == TOOL_TEXT else "Add icon", "")
            if value:
                self.interaction.click(px, py, value)
        else:
            self.interaction.press(px, py)
        event.accept()

    def mouseMoveEvent(self, event):
        pos = event.position()
        px, py = pos.x(), pos.y()
        if event.buttons() & Qt.MouseButton.LeftButton:
            self.interaction.move(px, py)
        if not self.sequencer.is_recording and not self.sequencer.is_presenting:
            self.setCursor(QCursor(_CURSORS[self.interaction.cursor_hint(px, py)]))
        event.accept()

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.interaction.release()
        event.accept()

    def mouseDoubleClickEvent(self, event):
        """Double-click a text overlay to edit its text."""
        pos = event.position()
        wmap = self.history.present
        target = hit_test(wmap, self.viewport, pos.x(), pos.y(),
                          self.interaction.tolerances, self.measure)
        busy = self.sequencer.is_recording or self.sequencer.is_presenting
        if target is None or target.kind != KIND_TEXT or busy:
            super().mouseDoubleClickEvent(event)
            return
        item = overlay_store.find(wmap.overlays, KIND_TEXT, target.id)
        text = self._prompt("Edit text", item.text)
        if text:
            overlays = overlay_store.patch(wmap.overlays, KIND_TEXT, item.id, text=text)
            self.history.commit(wmap.with_overlays(overlays))
        event.accept()

    def leaveEvent(self, event):
        self.interaction.leave()
        super().leaveEvent(event)

    def keyPressEvent(self, event):
        if event.key() in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            if self.interaction.delete_selected() is not None:
                event.accept()
                return
        super().keyPressEvent(event)

    def _prompt(self, title: str, initial: str) -> Optional[str]:
        if self._prompt_text is None:
            return None
        # The prompt is modal; end any gesture before it steals the mouse
        self.interaction.leave()
        return self._prompt_text(title, initial)

    def _show_context_menu(self, px: float, py: float, global_pos: QPointF) -> None:
        if self.sequencer.is_presenting or not self.interaction.hovered_deletable(px, py):
            return
        menu = QMenu(self)
        act_delete = QAction("Delete", menu)
        menu.addAction(act_delete)
        chosen = menu.exec(global_pos.toPoint())
        if chosen is act_delete:
            target = self.interaction.delete_at(px, py)
            trace(f"Deleted {target}", "CANVAS")

    # ----------------------------
    # Drag & drop
    # ----------------------------

    def dragEnterEvent(self, event):
        """Accept image file drops."""
        if event.mimeData().hasUrls():
            for u in event.mimeData().urls():
                if u.toLocalFile().lower().endswith(IMAGE_SUFFIXES):
                    event.acceptProposedAction()
                    return
        event.ignore()

    def dragMoveEvent(self, event):
        event.acceptProposedAction()

    def dropEvent(self, event):
        if self._on_drop_image is None or not event.mimeData().hasUrls():
            event.ignore()
            return
        pos = event.position()
        for u in event.mimeData().urls():
            path = u.toLocalFile()
            if path.lower().endswith(IMAGE_SUFFIXES):
                self._on_drop_image(path, pos.x(), pos.y())
                event.acceptProposedAction()
                return
        event.ignore()
