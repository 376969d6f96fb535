"""Tests for TOML settings persistence in settings.py."""
from __future__ import annotations

from pathlib import Path

import pytest

from settings import AppSettings, CanvasSettings, SettingsManager


class TestSettingsManager:
    def test_defaults_without_file(self, tmp_path):
        mgr = SettingsManager(settings_dir=tmp_path)
        assert mgr.settings == AppSettings()
        assert not mgr.get_settings_path().exists()

    def test_ensure_file_complete_writes_once(self, tmp_path):
        mgr = SettingsManager(settings_dir=tmp_path)
        mgr.ensure_file_complete()
        path = mgr.get_settings_path()
        assert path.exists()
        assert "[presentation]" in path.read_text(encoding="utf-8")

    def test_round_trip(self, tmp_path):
        mgr = SettingsManager(settings_dir=tmp_path)
        mgr.settings.theme = "Dark"
        mgr.settings.presentation.autoplay_delay = 3.5
        mgr.settings.hit_test.component_radius = 15.0
        mgr.settings.defaults.shape.filled = True
        mgr.settings.history.capacity = 10
        mgr.save()

        reloaded = SettingsManager(settings_dir=tmp_path).settings
        assert reloaded.theme == "Dark"
        assert reloaded.presentation.autoplay_delay == 3.5
        assert reloaded.hit_test.component_radius == 15.0
        assert reloaded.defaults.shape.filled is True
        assert reloaded.history.capacity == 10

    def test_corrupted_file_falls_back_to_defaults(self, tmp_path):
        (tmp_path / "settings.toml").write_text("[canvas\nwidth = = 3", encoding="utf-8")
        assert SettingsManager(settings_dir=tmp_path).settings == AppSettings()

    def test_wrong_section_type_falls_back_to_defaults(self, tmp_path):
        (tmp_path / "settings.toml").write_text("canvas = 5\n", encoding="utf-8")
        assert SettingsManager(settings_dir=tmp_path).settings == AppSettings()

    def test_partial_file_keeps_other_defaults(self, tmp_path):
        (tmp_path / "settings.toml").write_text(
            "[canvas]\nwidth = 800\nunknown_key = 1\n", encoding="utf-8"
        )
        settings = SettingsManager(settings_dir=tmp_path).settings
        assert settings.canvas.width == 800
        assert settings.canvas.height == 1000
        assert not hasattr(settings.canvas, "unknown_key")

    def test_directories(self, tmp_path):
        mgr = SettingsManager(settings_dir=tmp_path)
        assert mgr.get_export_dir() is None
        assert mgr.get_projects_dir().name == "projects"
        mgr.settings.storage.export_dir = str(tmp_path / "out")
        mgr.settings.storage.projects_dir = str(tmp_path / "maps")
        assert mgr.get_export_dir() == tmp_path / "out"
        assert mgr.get_projects_dir() == Path(tmp_path / "maps")

    def test_to_toml_has_every_section(self, tmp_path):
        text = SettingsManager(settings_dir=tmp_path).to_toml()
        for section in ("[general]", "[canvas]", "[hit_test]", "[defaults.shape]",
                        "[defaults.text]", "[defaults.drawing]", "[presentation]",
                        "[history]", "[storage]", "[debug]"):
            assert section in text


class TestSettingsValidation:
    def _load(self, tmp_path, text):
        (tmp_path / "settings.toml").write_text(text, encoding="utf-8")
        return SettingsManager(settings_dir=tmp_path).settings

    @pytest.mark.parametrize("canvas", [
        "width = 80\nmargin = 50",
        "height = 100\nmargin = 50",
        "margin = -1",
    ])
    def test_canvas_without_drawing_area_uses_defaults(self, tmp_path, canvas):
        settings = self._load(tmp_path, f"[canvas]\n{canvas}\n")
        assert settings.canvas == CanvasSettings()

    def test_small_but_usable_canvas_is_kept(self, tmp_path):
        settings = self._load(tmp_path, "[canvas]\nwidth = 120\nheight = 120\nmargin = 50\n")
        assert (settings.canvas.width, settings.canvas.height) == (120, 120)

    @pytest.mark.parametrize("delay", ["0", "-2.5"])
    def test_non_positive_autoplay_delay_uses_default(self, tmp_path, delay):
        settings = self._load(tmp_path, f"[presentation]\nautoplay_delay = {delay}\n")
        assert settings.presentation.autoplay_delay == 2.0

    def test_zero_history_capacity_uses_default(self, tmp_path):
        settings = self._load(tmp_path, "[history]\ncapacity = 0\n")
        assert settings.history.capacity == 50
