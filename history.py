"""
history.py

Bounded linear undo/redo over full map snapshots.

Snapshots are immutable ``WardleyMap`` values, so the stacks hold
references rather than copies. A commit after an undo drops the redo
branch for good.
"""

from __future__ import annotations

from typing import Callable, Generic, List, Optional, TypeVar

from debug_trace import trace

T = TypeVar("T")

DEFAULT_CAPACITY = 50


class HistoryManager(Generic[T]):
    """Undo/redo stacks around a single present snapshot.

    Args:
        initial: Starting snapshot.
        capacity: Maximum number of undo steps kept; the oldest is dropped.
    """

    def __init__(self, initial: T, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self.capacity = capacity
        self._past: List[T] = []
        self._present: T = initial
        self._future: List[T] = []
        self._on_change: Optional[Callable[[T], None]] = None

    def set_change_callback(self, cb: Optional[Callable[[T], None]]) -> None:
        """Called with the new present after every change."""
        self._on_change = cb

    @property
    def present(self) -> T:
        return self._present

    @property
    def past(self) -> List[T]:
        return list(self._past)

    @property
    def future(self) -> List[T]:
        return list(self._future)

    def can_undo(self) -> bool:
        return bool(self._past)

    def can_redo(self) -> bool:
        return bool(self._future)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self._present)

    def _push_past(self, snapshot: T) -> None:
        self._past.append(snapshot)
        if len(self._past) > self.capacity:
            del self._past[: len(self._past) - self.capacity]

    def commit(self, snapshot: T) -> None:
        """Make *snapshot* the present as a new undo step."""
        self._push_past(self._present)
        self._present = snapshot
        self._future.clear()
        self._notify()

    def commit_silent(self, snapshot: T) -> None:
        """Replace the present without creating an undo step."""
        self._present = snapshot
        self._notify()

    def undo(self) -> bool:
        """Step back. Returns False (no-op) when there is nothing to undo."""
        if not self._past:
            return False
        self._future.insert(0, self._present)
        self._present = self._past.pop()
        trace(f"undo: {len(self._past)} past / {len(self._future)} future", "HISTORY")
        self._notify()
        return True

    def redo(self) -> bool:
        """Step forward. Returns False (no-op) when there is nothing to redo."""
        if not self._future:
            return False
        self._push_past(self._present)
        self._present = self._future.pop(0)
        trace(f"redo: {len(self._past)} past / {len(self._future)} future", "HISTORY")
        self._notify()
        return True

    def reset(self, snapshot: T) -> None:
        """Start a fresh history at *snapshot* (used when loading a project)."""
        self._past.clear()
        self._future.clear()
        self._present = snapshot
        self._notify()
