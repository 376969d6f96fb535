"""
presentation/channel.py

Duplex message channel between the editor window and the presenter
window.

A channel endpoint can ``publish`` a JSON-like dict and ``subscribe`` a
handler; ``subscribe`` returns a callable that removes the handler again.
An endpoint never receives its own messages. Delivery is fire-and-forget:
nobody may be listening, and publishers must not wait for an answer.

Two implementations:

- :class:`LocalChannel` pairs, delivering synchronously (tests, headless use)
- :class:`QtChannelBus` endpoints, delivering through queued Qt signals so
  handlers run on a later event-loop turn
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Optional, Tuple

from PyQt6.QtCore import QObject, Qt, pyqtSignal

from debug_trace import trace

Message = Dict[str, Any]
Handler = Callable[[Message], None]
Unsubscribe = Callable[[], None]

# Message types exchanged with the presenter window
MSG_PRESENTER_UPDATE = "presenter-update"
MSG_PRESENTER_READY = "presenter-ready"
MSG_PRESENTER_COMMAND = "presenter-command"

CHANNEL_NAME = "wardley-presenter"


class Channel:
    """Interface of one channel endpoint."""

    def publish(self, message: Message) -> None:
        raise NotImplementedError

    def subscribe(self, handler: Handler) -> Unsubscribe:
        raise NotImplementedError


# ─────────────────────────────────────────────────────────
# In-memory pair
# ─────────────────────────────────────────────────────────

class LocalChannel(Channel):
    """One end of an in-memory channel pair. Use :func:`make_channel_pair`."""

    def __init__(self):
        self._handlers: List[Handler] = []
        self._peer: Optional["LocalChannel"] = None
        self.sent: List[Message] = []

    def publish(self, message: Message) -> None:
        self.sent.append(message)
        if self._peer is None:
            return
        for handler in list(self._peer._handlers):
            # Receivers get their own copy, as with a structured clone
            handler(copy.deepcopy(message))

    def subscribe(self, handler: Handler) -> Unsubscribe:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def disconnect(self) -> None:
        """Detach from the peer; later messages go nowhere."""
        if self._peer is not None:
            self._peer._peer = None
            self._peer = None


def make_channel_pair() -> Tuple[LocalChannel, LocalChannel]:
    a, b = LocalChannel(), LocalChannel()
    a._peer, b._peer = b, a
    return a, b


# ─────────────────────────────────────────────────────────
# Qt signal bus
# ─────────────────────────────────────────────────────────

class QtChannelBus(QObject):
    """Process-local broadcast bus; every window gets its own endpoint.

    Signals:
        message(str, object): sender endpoint name and message dict.
    """

    message = pyqtSignal(str, object)

    def __init__(self, name: str = CHANNEL_NAME, parent=None):
        super().__init__(parent)
        self.name = name

    def endpoint(self, endpoint_name: str) -> "QtChannelEndpoint":
        return QtChannelEndpoint(self, endpoint_name)


class QtChannelEndpoint(Channel):
    def __init__(self, bus: QtChannelBus, name: str):
        self._bus = bus
        self._name = name

    def publish(self, message: Message) -> None:
        trace(f"{self._name} -> {message.get('type')}", "CHANNEL")
        self._bus.message.emit(self._name, copy.deepcopy(message))

    def subscribe(self, handler: Handler) -> Unsubscribe:
        name = self._name

        def slot(sender: str, message: Message) -> None:
            if sender != name:
                handler(message)

        self._bus.message.connect(slot, Qt.ConnectionType.QueuedConnection)

        def unsubscribe() -> None:
            try:
                self._bus.message.disconnect(slot)
            except TypeError:
                # already disconnected
                pass

        return unsubscribe
