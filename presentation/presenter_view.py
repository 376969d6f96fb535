"""
presentation/presenter_view.py

Presenter window: a second display that mirrors the editor's playback.

The window holds no sequencer of its own. It renders whatever state the
editor last published and sends play/pause/next/previous commands back.
On opening it announces itself with ``presenter-ready`` so the editor
re-sends its current state.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QPainter
from PyQt6.QtWidgets import QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget

from canvas.geometry import Viewport
from canvas.renderer import MapRenderer
from debug_trace import trace
from models import WardleyMap
from presentation.channel import (
    MSG_PRESENTER_COMMAND,
    MSG_PRESENTER_READY,
    MSG_PRESENTER_UPDATE,
    Channel,
    Message,
)
from presentation.sequencer import (
    COMMAND_NEXT,
    COMMAND_PAUSE,
    COMMAND_PLAY,
    COMMAND_PREVIOUS,
    RevealPlan,
    reveal_plan,
)
from settings import AppSettings


class PresenterClient:
    """Channel-side state of the presenter window (no Qt widgets).

    Args:
        channel: The presenter's endpoint.
        reveal_opacity: Opacity of the most recently revealed item.
        note_distance: Note reveal distance in diagram units.
    """

    def __init__(self, channel: Channel, reveal_opacity: float = 0.7, note_distance: float = 0.1):
        self.channel = channel
        self.reveal_opacity = reveal_opacity
        self.note_distance = note_distance
        self.map = WardleyMap()
        self.current_step = 0
        self.is_playing = False
        self.is_presenting = False
        self._on_change: Optional[Callable[[], None]] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.attach()

    def set_change_callback(self, cb: Optional[Callable[[], None]]) -> None:
        self._on_change = cb

    def announce(self) -> None:
        """Ask the editor for its current state."""
        self.channel.publish({"type": MSG_PRESENTER_READY})

    def send_command(self, command: str) -> None:
        self.channel.publish({"type": MSG_PRESENTER_COMMAND, "command": command})

    def toggle_play(self) -> None:
        self.send_command(COMMAND_PAUSE if self.is_playing else COMMAND_PLAY)

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self) -> None:
        """Listen on the channel again after close(); no-op while attached."""
        if self._unsubscribe is None:
            self._unsubscribe = self.channel.subscribe(self._handle)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def plan(self) -> Optional[RevealPlan]:
        if not self.is_presenting:
            return None
        return reveal_plan(self.map, self.current_step, self.reveal_opacity, self.note_distance)

    def _handle(self, message: Message) -> None:
        if message.get("type") != MSG_PRESENTER_UPDATE:
            return
        state: Dict[str, Any] = message.get("state") or {}
        try:
            self.map = WardleyMap.from_dict(state.get("map") or {})
        except (KeyError, TypeError, ValueError) as e:
            trace(f"Presenter got an unreadable map: {e}", "ERROR")
            return
        self.current_step = int(state.get("currentStep", 0))
        self.is_playing = bool(state.get("isPlaying", False))
        self.is_presenting = bool(state.get("isPresenting", False))
        if self._on_change is not None:
            self._on_change()


class _PresenterCanvas(QWidget):
    """Scales the rendered map to fit the widget, keeping its aspect ratio."""

    def __init__(self, client: PresenterClient, settings: AppSettings, parent=None):
        super().__init__(parent)
        self.client = client
        self.viewport = Viewport(settings.canvas.width, settings.canvas.height, settings.canvas.margin)
        self.renderer = MapRenderer(self.viewport, settings.canvas, settings.presentation)
        self.setMinimumSize(400, 300)

    def paintEvent(self, event):
        painter = QPainter(self)
        try:
            painter.fillRect(self.rect(), Qt.GlobalColor.black)
            scale = min(self.width() / self.viewport.width, self.height() / self.viewport.height)
            painter.translate((self.width() - self.viewport.width * scale) / 2,
                              (self.height() - self.viewport.height * scale) / 2)
            painter.scale(scale, scale)
            self.renderer.render(painter, self.client.map, plan=self.client.plan(), show_handles=False)
        finally:
            painter.end()


class PresenterWindow(QWidget):
    """Top-level presenter window with playback controls."""

    def __init__(self, channel: Channel, settings: AppSettings, parent=None):
        super().__init__(parent)
        self.setWindowTitle("WardleySync Presenter")
        self.setWindowFlag(Qt.WindowType.Window, True)

        self.client = PresenterClient(
            channel,
            reveal_opacity=settings.presentation.reveal_opacity,
            note_distance=settings.presentation.note_reveal_distance,
        )
        self.client.set_change_callback(self._refresh)

        self.canvas = _PresenterCanvas(self.client, settings, self)

        self.btn_prev = QPushButton("Previous")
        self.btn_play = QPushButton("Play")
        self.btn_next = QPushButton("Next")
        self.lbl_step = QLabel()
        self.btn_prev.clicked.connect(lambda: self.client.send_command(COMMAND_PREVIOUS))
        self.btn_play.clicked.connect(self.client.toggle_play)
        self.btn_next.clicked.connect(lambda: self.client.send_command(COMMAND_NEXT))

        controls = QHBoxLayout()
        controls.addWidget(self.btn_prev)
        controls.addWidget(self.btn_play)
        controls.addWidget(self.btn_next)
        controls.addStretch(1)
        controls.addWidget(self.lbl_step)

        layout = QVBoxLayout(self)
        layout.addWidget(self.canvas, 1)
        layout.addLayout(controls)

        self.resize(1200, 900)
        self._refresh()

    def showEvent(self, event):
        super().showEvent(event)
        # Re-subscribe if an earlier close() detached the client
        self.client.attach()
        self.client.announce()

    def closeEvent(self, event):
        self.client.close()
        super().closeEvent(event)

    def keyPressEvent(self, event):
        key = event.key()
        if key == Qt.Key.Key_Space:
            self.client.toggle_play()
        elif key in (Qt.Key.Key_Right, Qt.Key.Key_PageDown):
            self.client.send_command(COMMAND_NEXT)
        elif key in (Qt.Key.Key_Left, Qt.Key.Key_PageUp):
            self.client.send_command(COMMAND_PREVIOUS)
        elif key == Qt.Key.Key_F11:
            self.showNormal() if self.isFullScreen() else self.showFullScreen()
        else:
            super().keyPressEvent(event)
            return
        event.accept()

    def _refresh(self) -> None:
        c = self.client
        total = len(c.map.sequence.items)
        self.btn_play.setText("Pause" if c.is_playing else "Play")
        self.lbl_step.setText(f"Step {c.current_step} / {total}" if c.is_presenting else "Not presenting")
        self.canvas.update()
