"""Tests for overlay styling: properties/overlay_style.py and properties/dock.py."""
from __future__ import annotations

import pytest

from history import HistoryManager
from models import CircleShape, LineShape, Overlays, TextOverlay
from notation import parse_map
from properties.overlay_style import (
    SECTION_DRAWING,
    SECTION_SHAPE,
    SECTION_TEXT,
    StyleError,
    apply_style_change,
    load_selection_style,
    normalize,
    restyle_selected,
)
from settings import OverlayDefaults


def _history(**kinds):
    return HistoryManager(parse_map("component A [0.5, 0.5]").with_overlays(Overlays(**kinds)))


# ─────────────────────────────────────────────────────────
# Style logic
# ─────────────────────────────────────────────────────────


class TestNormalize:
    def test_values_are_clamped(self):
        clean = normalize(SECTION_SHAPE, {"stroke_width": 40, "opacity": -5})
        assert clean == {"stroke_width": 10.0, "opacity": 0}
        assert normalize(SECTION_TEXT, {"font_size": 200}) == {"font_size": 72}

    def test_colors_are_upper_cased(self):
        assert normalize(SECTION_DRAWING, {"stroke_color": "#ff8800"}) == {"stroke_color": "#FF8800"}

    @pytest.mark.parametrize("section, changes", [
        ("sticker", {"opacity": 1}),
        (SECTION_DRAWING, {"filled": True}),
        (SECTION_TEXT, {"color": "red"}),
        (SECTION_TEXT, {"font_weight": "heavy"}),
    ])
    def test_rejected(self, section, changes):
        with pytest.raises(StyleError):
            normalize(section, changes)


class TestApplyStyleChange:
    def test_defaults_change_without_selection(self):
        defaults = OverlayDefaults()
        history = _history()
        assert not apply_style_change(defaults, history, SECTION_SHAPE, {"fill_color": "#00FF00"})
        assert defaults.shape.fill_color == "#00FF00"
        assert not history.can_undo()

    def test_selected_text_is_restyled_as_one_undo_step(self):
        defaults = OverlayDefaults()
        history = _history(texts=(TextOverlay(id="t", text="hi", x=0.2, y=0.2, selected=True),))
        assert apply_style_change(defaults, history, SECTION_TEXT, {"font_size": 30, "font_weight": "bold"})
        text = history.present.overlays.texts[0]
        assert (text.font_size, text.font_weight) == (30, "bold")
        assert defaults.text.font_size == 30
        history.undo()
        assert history.present.overlays.texts[0].font_size == 16

    def test_other_section_leaves_selection_alone(self):
        history = _history(texts=(TextOverlay(id="t", text="hi", x=0.2, y=0.2, selected=True),))
        assert not apply_style_change(OverlayDefaults(), history, SECTION_SHAPE, {"opacity": 40})
        assert history.present.overlays.texts[0].opacity == 100

    def test_unchanged_value_commits_nothing(self):
        history = _history(shapes=(CircleShape(id="c", x=0.5, y=0.5, radius=0.1, selected=True),))
        assert not apply_style_change(OverlayDefaults(), history, SECTION_SHAPE, {"opacity": 100})
        assert not history.can_undo()

    def test_line_ignores_filled(self):
        wmap = parse_map("").with_overlays(
            Overlays(shapes=(LineShape(id="l", x=0.1, y=0.1, end_x=0.2, end_y=0.2, selected=True),))
        )
        restyled = restyle_selected(wmap, SECTION_SHAPE, {"filled": True, "stroke_color": "#FF0000"})
        line = restyled.overlays.shapes[0]
        assert line.stroke_color == "#FF0000"
        assert line.filled is False


class TestLoadSelectionStyle:
    def test_selected_text_fills_text_defaults(self):
        defaults = OverlayDefaults()
        wmap = parse_map("").with_overlays(Overlays(texts=(
            TextOverlay(id="t", text="hi", x=0.2, y=0.2, color="#123456", font_size=24, opacity=50, selected=True),
        )))
        assert load_selection_style(defaults, wmap) == SECTION_TEXT
        assert (defaults.text.color, defaults.text.font_size, defaults.text.opacity) == ("#123456", 24, 50)

    def test_nothing_selected(self):
        defaults = OverlayDefaults()
        assert load_selection_style(defaults, parse_map("")) is None
        assert defaults == OverlayDefaults()


# ─────────────────────────────────────────────────────────
# Panel
# ─────────────────────────────────────────────────────────


class TestPropertiesPanel:
    @pytest.fixture
    def panel(self, qapp):
        from properties.dock import PropertiesPanel

        defaults = OverlayDefaults()
        defaults.text.font_size = 20
        p = PropertiesPanel(defaults)
        changes = []
        p.set_style_changed_callback(lambda section, c: changes.append((section, c)))
        yield p, changes
        p.deleteLater()

    def test_load_shows_defaults_silently(self, panel):
        p, changes = panel
        assert p.text_size.value() == 20
        assert not p.shape_fill.isEnabled()
        defaults = OverlayDefaults()
        defaults.shape.filled = True
        p.load(defaults)
        assert p.shape_filled.isChecked()
        assert changes == []

    def test_widgets_report_changes(self, panel):
        p, changes = panel
        p.text_size.setValue(32)
        p.shape_filled.setChecked(True)
        p.pen_opacity.setValue(40)
        p.set_color(SECTION_SHAPE, "stroke_color", "#FF0000")
        assert changes == [
            (SECTION_TEXT, {"font_size": 32}),
            (SECTION_SHAPE, {"filled": True}),
            (SECTION_DRAWING, {"opacity": 40}),
            (SECTION_SHAPE, {"stroke_color": "#FF0000"}),
        ]
        assert p.shape_fill.isEnabled()
