"""
presentation/sequencer.py

Recording and playback of the step-by-step reveal sequence.

State machine::

    IDLE --start_recording--> RECORDING --stop_recording--> READY (or IDLE if empty)
    READY --play--> PLAYING --tick past the last step--> READY (step 0)
    PLAYING --pause / next / previous--> SCRUBBING (step > 0) or READY (step 0)
    READY/SCRUBBING --next / previous--> SCRUBBING or READY
    any --clear--> IDLE

The recorded items live in the map snapshot and change through the history
manager, so recording edits are undoable. The current step and the
playing flag belong to the sequencer. Every change is published over the
presenter channel; the presenter window may ask for a resend and may send
play/pause/next/previous commands, which take the same path as local input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from debug_trace import trace
from history import HistoryManager
from models import (
    KIND_COMPONENT,
    KIND_CONNECTION,
    AnimationSequence,
    Note,
    SequenceItem,
    WardleyMap,
)
from presentation.channel import (
    MSG_PRESENTER_COMMAND,
    MSG_PRESENTER_READY,
    MSG_PRESENTER_UPDATE,
    Channel,
    Message,
)
from presentation.timer import Scheduler, TimerHandle

DEFAULT_DELAY = 2.0
REVEAL_OPACITY = 0.7
NOTE_REVEAL_DISTANCE = 0.1

COMMAND_PLAY = "play"
COMMAND_PAUSE = "pause"
COMMAND_NEXT = "next"
COMMAND_PREVIOUS = "previous"


class SequencerState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    READY = "ready"
    PLAYING = "playing"
    SCRUBBING = "scrubbing"


# ═══════════════════════════════════════════════════════════
# Pure helpers
# ═══════════════════════════════════════════════════════════

def toggle_item(sequence: AnimationSequence, kind: str, target_id: str) -> AnimationSequence:
    """Add (kind, id) at the end, or remove it and renumber 1..N.

    Relative order of the remaining items is preserved.
    """
    idx = sequence.index_of(kind, target_id)
    if idx >= 0:
        rest = sequence.items[:idx] + sequence.items[idx + 1:]
        items = tuple(
            SequenceItem(item.kind, item.target_id, order)
            for order, item in enumerate(rest, start=1)
        )
    else:
        items = sequence.items + (SequenceItem(kind, target_id, len(sequence.items) + 1),)
    return AnimationSequence(items=items, recording=sequence.recording)


@dataclass(frozen=True)
class RevealPlan:
    """What a presenting surface draws at a given step.

    Attributes:
        step: Current step.
        opacities: (kind, id) -> opacity for every revealed component or
            connection. Anything missing is hidden.
        notes: Notes shown because a revealed component is near them.
    """
    step: int
    opacities: Dict[Tuple[str, str], float] = field(default_factory=dict)
    notes: Tuple[Note, ...] = ()

    def opacity(self, kind: str, target_id: str) -> Optional[float]:
        return self.opacities.get((kind, target_id))

    def component_opacity(self, name: str) -> Optional[float]:
        return self.opacity(KIND_COMPONENT, name)

    def connection_opacity(self, key: str) -> Optional[float]:
        return self.opacity(KIND_CONNECTION, key)


def reveal_plan(wmap: WardleyMap, step: int,
                reveal_opacity: float = REVEAL_OPACITY,
                note_distance: float = NOTE_REVEAL_DISTANCE) -> RevealPlan:
    """Visible components/connections for the first *step* sequence entries.

    The entry at ``step - 1`` is the one just revealed and gets
    *reveal_opacity*; earlier entries are fully opaque.
    """
    items = wmap.sequence.items
    step = max(0, min(step, len(items)))
    opacities: Dict[Tuple[str, str], float] = {}
    for index, item in enumerate(items[:step]):
        if item.kind not in (KIND_COMPONENT, KIND_CONNECTION):
            continue
        opacities[(item.kind, item.target_id)] = reveal_opacity if index == step - 1 else 1.0

    notes = []
    for note in wmap.notes:
        # A note belongs to the first component near it, revealed or not
        owner = next(
            (c for c in wmap.components
             if abs(c.x - note.x) < note_distance and abs(c.y - note.y) < note_distance),
            None,
        )
        if owner is not None and (KIND_COMPONENT, owner.name) in opacities:
            notes.append(note)
    return RevealPlan(step=step, opacities=opacities, notes=tuple(notes))


# ═══════════════════════════════════════════════════════════
# Sequencer
# ═══════════════════════════════════════════════════════════

class Sequencer:
    """Drives recording and playback of a map's reveal sequence.

    Args:
        history: History manager owning the map snapshots.
        scheduler: One-shot timer source for auto-advance.
        channel: Optional presenter channel endpoint.
        delay: Seconds between auto-advance ticks.
    """

    def __init__(self, history: HistoryManager, scheduler: Scheduler,
                 channel: Optional[Channel] = None, delay: float = DEFAULT_DELAY):
        self._history = history
        self._scheduler = scheduler
        self._channel = channel
        self._delay = DEFAULT_DELAY
        self.set_delay(delay)
        self._timer: Optional[TimerHandle] = None
        self._step = 0
        self._state = SequencerState.RECORDING if history.present.sequence.recording else (
            SequencerState.READY if history.present.sequence.items else SequencerState.IDLE
        )
        self._on_change: Optional[Callable[["Sequencer"], None]] = None
        self._unsubscribe = channel.subscribe(self.handle_message) if channel is not None else None

    # ----------------------------
    # Properties
    # ----------------------------

    @property
    def state(self) -> SequencerState:
        return self._state

    @property
    def step(self) -> int:
        return self._step

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def is_playing(self) -> bool:
        return self._state is SequencerState.PLAYING

    @property
    def is_recording(self) -> bool:
        return self._state is SequencerState.RECORDING

    @property
    def is_presenting(self) -> bool:
        """True while the reveal plan applies (playing or scrubbing)."""
        return self._state in (SequencerState.PLAYING, SequencerState.SCRUBBING)

    @property
    def sequence(self) -> AnimationSequence:
        return self._history.present.sequence

    @property
    def item_count(self) -> int:
        return len(self.sequence.items)

    def set_change_callback(self, cb: Optional[Callable[["Sequencer"], None]]) -> None:
        self._on_change = cb

    def current_plan(self, reveal_opacity: float = REVEAL_OPACITY,
                     note_distance: float = NOTE_REVEAL_DISTANCE) -> Optional[RevealPlan]:
        """Reveal plan while presenting, None when everything is drawn."""
        if not self.is_presenting:
            return None
        return reveal_plan(self._history.present, self._step, reveal_opacity, note_distance)

    # ----------------------------
    # Internals
    # ----------------------------

    def _commit_sequence(self, sequence: AnimationSequence) -> None:
        self._history.commit(self._history.present.with_sequence(sequence))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_tick(self) -> None:
        self._cancel_timer()
        self._timer = self._scheduler.call_later(self._delay, self._tick)

    def _rest_state(self) -> SequencerState:
        if self.item_count == 0:
            return SequencerState.IDLE
        return SequencerState.SCRUBBING if self._step > 0 else SequencerState.READY

    def _changed(self) -> None:
        trace(f"sequencer {self._state.value} step={self._step}/{self.item_count}", "SEQUENCE")
        self.publish_state()
        if self._on_change is not None:
            self._on_change(self)

    def _tick(self) -> None:
        self._timer = None
        if self._state is not SequencerState.PLAYING:
            return
        if self._step >= self.item_count:
            self._step = 0
            self._state = self._rest_state()
        else:
            self._step += 1
            self._schedule_tick()
        self._changed()

    # ----------------------------
    # Recording
    # ----------------------------

    def start_recording(self) -> None:
        """Begin a new recording; any existing items are discarded."""
        self._cancel_timer()
        self._step = 0
        self._state = SequencerState.RECORDING
        self._commit_sequence(AnimationSequence(items=(), recording=True))
        self._changed()

    def item_clicked(self, kind: str, target_id: str) -> bool:
        """Toggle (kind, id) in the sequence. Ignored unless recording."""
        if self._state is not SequencerState.RECORDING:
            return False
        self._commit_sequence(toggle_item(self.sequence, kind, target_id))
        self._changed()
        return True

    def stop_recording(self) -> None:
        if self._state is not SequencerState.RECORDING:
            return
        self._commit_sequence(AnimationSequence(items=self.sequence.items, recording=False))
        self._step = 0
        self._state = self._rest_state()
        self._changed()

    def toggle_recording(self) -> None:
        if self.is_recording:
            self.stop_recording()
        else:
            self.start_recording()

    # ----------------------------
    # Playback
    # ----------------------------

    def play(self) -> bool:
        """Start auto-advance. Restarts from step 0 when already at the end."""
        if self._state not in (SequencerState.READY, SequencerState.SCRUBBING) or self.item_count == 0:
            return False
        if self._step >= self.item_count:
            self._step = 0
        self._state = SequencerState.PLAYING
        self._schedule_tick()
        self._changed()
        return True

    def pause(self) -> bool:
        if self._state is not SequencerState.PLAYING:
            return False
        self._cancel_timer()
        self._state = self._rest_state()
        self._changed()
        return True

    def toggle_play(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def _go_to(self, step: int) -> bool:
        if self._state in (SequencerState.IDLE, SequencerState.RECORDING):
            return False
        self._cancel_timer()
        self._step = max(0, min(step, self.item_count))
        self._state = self._rest_state()
        self._changed()
        return True

    def next(self) -> bool:
        return self._go_to(self._step + 1)

    def previous(self) -> bool:
        return self._go_to(self._step - 1)

    def advance_or_finish(self) -> None:
        """Presentation click: next step, or leave the presentation at the end."""
        if self._step < self.item_count:
            self.next()
        else:
            self.exit_presentation()

    def exit_presentation(self) -> None:
        if self._state is SequencerState.RECORDING:
            return
        self._cancel_timer()
        self._step = 0
        self._state = self._rest_state()
        self._changed()

    def clear(self) -> None:
        """Empty the sequence from any state."""
        self._cancel_timer()
        if self.sequence.items or self.sequence.recording:
            self._commit_sequence(AnimationSequence())
        self._step = 0
        self._state = SequencerState.IDLE
        self._changed()

    def set_delay(self, seconds: float) -> None:
        """Change the auto-advance delay; applies from the next tick."""
        if seconds <= 0:
            raise ValueError("Delay must be positive")
        self._delay = float(seconds)

    def sync_with_history(self) -> None:
        """Re-derive state after the map changed underneath (undo, load)."""
        recording = self.sequence.recording
        if recording and self._state is not SequencerState.RECORDING:
            self._cancel_timer()
            self._step = 0
            self._state = SequencerState.RECORDING
        elif not recording and self._state is SequencerState.RECORDING:
            self._step = 0
            self._state = self._rest_state()
        elif not recording:
            if self._step > self.item_count:
                self._step = self.item_count
            if self.item_count == 0:
                self._cancel_timer()
                self._step = 0
                self._state = SequencerState.IDLE
            elif self._state is SequencerState.IDLE:
                self._state = SequencerState.READY
        else:
            return
        self._changed()

    def dispose(self) -> None:
        """Cancel any pending tick and detach from the channel."""
        self._cancel_timer()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ----------------------------
    # Presenter channel
    # ----------------------------

    def state_message(self) -> Message:
        return {
            "type": MSG_PRESENTER_UPDATE,
            "state": {
                "currentStep": self._step,
                "isPlaying": self.is_playing,
                "isPresenting": self.is_presenting,
                "map": self._history.present.to_dict(),
            },
        }

    def publish_state(self) -> None:
        if self._channel is not None:
            self._channel.publish(self.state_message())

    def handle_message(self, message: Message) -> None:
        """React to a message from the presenter window."""
        msg_type = message.get("type")
        if msg_type == MSG_PRESENTER_READY:
            self.publish_state()
        elif msg_type == MSG_PRESENTER_COMMAND:
            command = message.get("command")
            handler = {
                COMMAND_PLAY: self.play,
                COMMAND_PAUSE: self.pause,
                COMMAND_NEXT: self.next,
                COMMAND_PREVIOUS: self.previous,
            }.get(command)
            if handler is None:
                trace(f"Ignoring unknown presenter command: {command!r}", "SEQUENCE")
                return
            handler()
