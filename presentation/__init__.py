"""
presentation package

Reveal-sequence recording and playback, the presenter channel, and the
timer abstraction used for auto-advance.
"""

from presentation.channel import (
    Channel,
    LocalChannel,
    QtChannelBus,
    make_channel_pair,
)
from presentation.sequencer import (
    RevealPlan,
    Sequencer,
    SequencerState,
    reveal_plan,
    toggle_item,
)
from presentation.timer import ManualScheduler, QtScheduler, Scheduler

__all__ = [
    "Channel",
    "LocalChannel",
    "QtChannelBus",
    "make_channel_pair",
    "RevealPlan",
    "Sequencer",
    "SequencerState",
    "reveal_plan",
    "toggle_item",
    "ManualScheduler",
    "QtScheduler",
    "Scheduler",
]
