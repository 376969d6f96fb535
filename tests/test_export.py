"""Tests for PNG rendering and file export (export.py)."""
from __future__ import annotations

import pytest

from export import (
    DEFAULT_PNG_NAME,
    ExportError,
    ExportTarget,
    render_png,
    suggest_png_filename,
    suggest_project_filename,
)
from models import Overlays, RectangleShape, TextOverlay
from notation import parse_map

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class TestFilenames:
    def test_title_non_alphanumerics_become_dashes(self):
        assert suggest_png_filename("Tea Shop: v2") == "Tea-Shop--v2.png"

    def test_empty_title(self):
        assert suggest_png_filename("") == DEFAULT_PNG_NAME

    def test_project_filename(self):
        assert suggest_project_filename("WardleyMap_2024-05-01 x") == "WardleyMap_2024-05-01-x.json"


class TestExportTarget:
    def test_writes_to_selected_directory(self, tmp_path):
        target = ExportTarget(tmp_path, fallback=lambda: tmp_path / "downloads")
        path = target.save_bytes("a.png", b"data")
        assert path == tmp_path / "a.png"
        assert path.read_bytes() == b"data"

    def test_no_selection_uses_fallback(self, tmp_path):
        downloads = tmp_path / "downloads"
        target = ExportTarget(None, fallback=lambda: downloads)
        path = target.save_text("m.json", "{}")
        assert path == downloads / "m.json"
        assert path.read_text(encoding="utf-8") == "{}"

    def test_unwritable_selection_falls_back(self, tmp_path):
        not_a_dir = tmp_path / "file.txt"
        not_a_dir.write_text("x", encoding="utf-8")
        downloads = tmp_path / "downloads"
        target = ExportTarget(not_a_dir, fallback=lambda: downloads)
        path = target.save_bytes("a.png", b"data")
        assert path == downloads / "a.png"

    def test_fallback_failure_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")
        target = ExportTarget(None, fallback=lambda: blocker / "sub")
        with pytest.raises(ExportError):
            target.save_bytes("a.png", b"data")

    def test_select_and_clear(self, tmp_path):
        target = ExportTarget(fallback=lambda: tmp_path)
        target.select_directory(tmp_path / "x")
        assert target.directory == tmp_path / "x"
        target.clear_directory()
        assert target.directory is None


class TestRenderPng:
    def test_png_bytes(self, qapp):
        wmap = parse_map("title Tea\ncomponent A [0.5, 0.5] (build)\ncomponent B [0.2, 0.2]\nA -> B\nnote n [0.3, 0.3]")
        wmap = wmap.with_overlays(Overlays(
            texts=(TextOverlay(id="t", text="hello", x=0.1, y=0.9),),
            shapes=(RectangleShape(id="r", x=0.6, y=0.4, width=0.1, height=0.1, filled=True),),
        ))
        data = render_png(wmap, 400, 300)
        assert data.startswith(PNG_SIGNATURE)

    def test_dimensions(self, qapp):
        from PyQt6.QtGui import QImage

        data = render_png(parse_map(""), 320, 240)
        image = QImage.fromData(data, "PNG")
        assert (image.width(), image.height()) == (320, 240)
