"""
presentation/timer.py

One-shot scheduling for sequencer auto-advance.

``Scheduler.call_later(seconds, callback)`` returns a handle whose
``cancel()`` is safe to call at any time, including after the callback
already ran.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from PyQt6.QtCore import QObject, QTimer


class TimerHandle:
    def cancel(self) -> None:
        raise NotImplementedError

    @property
    def active(self) -> bool:
        raise NotImplementedError


class Scheduler:
    def call_later(self, seconds: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError


# ─────────────────────────────────────────────────────────
# Qt
# ─────────────────────────────────────────────────────────

class _QtTimerHandle(TimerHandle):
    def __init__(self, timer: QTimer, callback: Callable[[], None]):
        self._timer = timer
        self._callback = callback
        self._active = True
        timer.timeout.connect(self._fire)

    def _fire(self) -> None:
        if not self._active:
            return
        self._active = False
        self._timer.deleteLater()
        self._callback()

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._timer.stop()
            self._timer.deleteLater()

    @property
    def active(self) -> bool:
        return self._active


class QtScheduler(Scheduler):
    """Single-shot QTimer per call, parented to *parent*."""

    def __init__(self, parent: Optional[QObject] = None):
        self._parent = parent

    def call_later(self, seconds: float, callback: Callable[[], None]) -> TimerHandle:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        handle = _QtTimerHandle(timer, callback)
        timer.start(max(0, int(seconds * 1000)))
        return handle


# ─────────────────────────────────────────────────────────
# Manual clock
# ─────────────────────────────────────────────────────────

class _ManualHandle(TimerHandle):
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self._active = True

    def cancel(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active


class ManualScheduler(Scheduler):
    """Deterministic scheduler driven by :meth:`advance`; used in tests."""

    def __init__(self):
        self.now = 0.0
        self._handles: List[_ManualHandle] = []

    def call_later(self, seconds: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualHandle(self.now + seconds, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if h.active)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due callbacks in order."""
        target = self.now + seconds
        while True:
            due = [h for h in self._handles if h.active and h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self.now = handle.due
            handle.cancel()
            handle.callback()
        self.now = target
        self._handles = [h for h in self._handles if h.active]
