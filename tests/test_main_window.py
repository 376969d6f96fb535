"""End-to-end checks of the main window wiring (editor, canvas, sequencer, projects)."""
from __future__ import annotations

import pytest

import overlay_store
from models import KIND_COMPONENT, KIND_TEXT
from settings import SettingsManager


@pytest.fixture
def window(qapp, tmp_path):
    from main import MainWindow

    mgr = SettingsManager(settings_dir=tmp_path / "config")
    mgr.settings.storage.projects_dir = str(tmp_path / "projects")
    mgr.settings.storage.export_dir = str(tmp_path / "exports")
    (tmp_path / "exports").mkdir()
    w = MainWindow(mgr)
    yield w
    w.close()
    w.deleteLater()


class TestMainWindow:
    def test_starts_with_example_map(self, window):
        wmap = window.history.present
        assert wmap.title == "Tea Shop"
        assert wmap.component("Kettle").inertia
        assert not window.undo_act.isEnabled()

    def test_editor_edit_reparses(self, window):
        window.editor.setPlainText("title Edited\ncomponent Solo [0.5, 0.5]")
        window._apply_editor_text()
        assert window.history.present.title == "Edited"
        assert [c.name for c in window.history.present.components] == ["Solo"]

    def test_component_drag_patches_editor(self, window):
        window.editor.setPlainText("component A [0.50, 0.50]")
        window._apply_editor_text()
        ctl = window.canvas.interaction
        px, py = window.canvas.viewport.to_pixel(0.5, 0.5)
        ctl.press(px, py)
        nx, ny = window.canvas.viewport.to_pixel(0.25, 0.75)
        ctl.move(nx, ny)
        ctl.release()
        assert window.editor.toPlainText() == "component A [0.75, 0.25]"
        assert window.undo_act.isEnabled()

    def test_undo_restores_sequence_state(self, window):
        window.sequencer.start_recording()
        window.sequencer.item_clicked(KIND_COMPONENT, "Tea")
        window.sequencer.stop_recording()
        assert window.play_act.isEnabled()
        window.undo()
        assert window.sequencer.is_recording
        assert not window.play_act.isEnabled()

    def test_save_and_reload_project(self, window):
        window.canvas.interaction.add_text(100, 100, "remember me")
        window._save_as("Tea")
        window.new_project()
        assert window.history.present.overlays.texts == ()

        window._load_record(window.projects.load_project("Tea"))
        assert window.history.present.overlays.texts[0].text == "remember me"
        assert window.current_project == "Tea"
        assert not window.history.can_undo()

    def test_export_png_to_selected_folder(self, window, tmp_path):
        window.export_png()
        assert (tmp_path / "exports" / "Tea-Shop.png").read_bytes().startswith(b"\x89PNG")

    def test_style_panel_follows_and_restyles_selection(self, window):
        tid = window.canvas.interaction.add_text(100, 100, "styled")
        wmap = window.history.present
        wmap = wmap.with_overlays(overlay_store.patch(wmap.overlays, KIND_TEXT, tid, font_size=40))
        window.history.commit(wmap.with_overlays(overlay_store.select(wmap.overlays, KIND_TEXT, tid)))
        panel = window.properties.panel
        assert panel.text_size.value() == 40

        panel.text_size.setValue(28)
        assert window.history.present.overlays.texts[0].font_size == 28
        window.undo()
        assert window.history.present.overlays.texts[0].font_size == 40
        assert panel.text_size.value() == 40
