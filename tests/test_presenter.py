"""Tests for the presenter side of the channel (presentation/presenter_view.py)."""
from __future__ import annotations

from history import HistoryManager
from models import KIND_COMPONENT
from notation import parse_map
from presentation import ManualScheduler, Sequencer, make_channel_pair
from presentation.channel import MSG_PRESENTER_COMMAND, MSG_PRESENTER_READY, QtChannelBus
from presentation.presenter_view import PresenterClient, PresenterWindow
from presentation.sequencer import COMMAND_PAUSE, COMMAND_PLAY
from settings import AppSettings


def _wired():
    editor, presenter = make_channel_pair()
    history = HistoryManager(parse_map("component A [0.5, 0.5]\ncomponent B [0.2, 0.2]\nA -> B"))
    clock = ManualScheduler()
    seq = Sequencer(history, clock, channel=editor)
    client = PresenterClient(presenter)
    return seq, clock, client, presenter


class TestPresenterClient:
    def test_announce_pulls_current_state(self):
        seq, _c, client, presenter = _wired()
        seq.start_recording()
        seq.item_clicked(KIND_COMPONENT, "A")
        seq.stop_recording()

        fresh = PresenterClient(presenter)
        fresh.announce()
        assert presenter.sent[-1] == {"type": MSG_PRESENTER_READY}
        assert len(fresh.map.sequence.items) == 1
        assert fresh.current_step == 0
        assert fresh.plan() is None

    def test_mirrors_playback(self):
        seq, clock, client, _p = _wired()
        seq.start_recording()
        seq.item_clicked(KIND_COMPONENT, "A")
        seq.item_clicked(KIND_COMPONENT, "B")
        seq.stop_recording()

        changes = []
        client.set_change_callback(lambda: changes.append(client.current_step))
        client.toggle_play()
        assert seq.is_playing
        assert client.is_playing

        clock.advance(2.0)
        assert client.current_step == 1
        plan = client.plan()
        assert plan.component_opacity("A") == 0.7
        assert plan.component_opacity("B") is None
        assert changes[-1] == 1

    def test_toggle_play_sends_pause_while_playing(self):
        seq, _c, client, presenter = _wired()
        seq.start_recording()
        seq.item_clicked(KIND_COMPONENT, "A")
        seq.stop_recording()
        client.toggle_play()
        client.toggle_play()
        commands = [m["command"] for m in presenter.sent if m["type"] == MSG_PRESENTER_COMMAND]
        assert commands == [COMMAND_PLAY, COMMAND_PAUSE]
        assert not seq.is_playing

    def test_unreadable_map_is_ignored(self):
        editor, presenter = make_channel_pair()
        client = PresenterClient(presenter)
        editor.publish({"type": "presenter-update", "state": {"map": {"components": [{"x": 1}]}}})
        assert client.map.components == ()

    def test_close_stops_updates(self):
        seq, _c, client, _p = _wired()
        client.close()
        seq.start_recording()
        assert client.map.sequence.recording is False

    def test_attach_after_close_resumes_updates(self):
        seq, _c, client, _p = _wired()
        client.close()
        assert not client.attached
        client.attach()
        client.attach()
        seq.start_recording()
        assert client.map.sequence.recording is True


def _pump(qapp, rounds=3):
    # Replies to queued messages are queued again
    for _ in range(rounds):
        qapp.processEvents()


class TestPresenterWindow:
    def test_reopened_window_receives_updates(self, qapp):
        bus = QtChannelBus()
        history = HistoryManager(parse_map("component A [0.5, 0.5]\ncomponent B [0.2, 0.2]"))
        seq = Sequencer(history, ManualScheduler(), channel=bus.endpoint("editor"))
        seq.start_recording()
        seq.item_clicked(KIND_COMPONENT, "A")
        seq.item_clicked(KIND_COMPONENT, "B")
        seq.stop_recording()

        window = PresenterWindow(bus.endpoint("presenter"), AppSettings())
        window.show()
        _pump(qapp)
        seq.next()
        _pump(qapp)
        assert window.client.current_step == 1

        window.close()
        _pump(qapp)
        window.show()
        _pump(qapp)
        seq.next()
        _pump(qapp)
        assert window.client.current_step == 2
        assert window.lbl_step.text() == "Step 2 / 2"

        window.close()
        seq.dispose()
        window.deleteLater()
