"""Tests for pointer gestures in canvas/interaction.py (no Qt needed)."""
from __future__ import annotations

import pytest

from canvas.geometry import HitTarget, Viewport
from canvas.interaction import (
    CURSOR_DEFAULT,
    CURSOR_GRAB,
    CURSOR_GRABBING,
    CURSOR_RESIZE,
    IDLE,
    TOOL_CIRCLE,
    TOOL_ICON,
    TOOL_LINE,
    TOOL_MOVE,
    TOOL_PEN,
    TOOL_RECTANGLE,
    TOOL_TEXT,
    CanvasInteraction,
    Dragging,
    DrawingShape,
    Resizing,
)
from history import HistoryManager
from models import (
    KIND_COMPONENT,
    KIND_SHAPE,
    KIND_TEXT,
    CircleShape,
    DrawingPath,
    LineShape,
    Overlays,
    RectangleShape,
    TextOverlay,
)
from notation import parse_map

VP = Viewport(1200, 800, 50)  # inner 1100 x 700


def _controller(text="component A [0.5, 0.5]", overlays=None):
    wmap = parse_map(text)
    if overlays is not None:
        wmap = wmap.with_overlays(overlays)
    history = HistoryManager(wmap)
    return history, CanvasInteraction(history, VP)


# ─────────────────────────────────────────────────────────
# Dragging
# ─────────────────────────────────────────────────────────


class TestDragComponent:
    def test_drag_moves_component_and_reports(self):
        history, ctl = _controller()
        moves = []
        ctl.set_component_moved_callback(lambda name, x, y: moves.append((name, x, y)))

        ctl.press(603, 402)  # 3px right, 2px below A at (600, 400)
        assert isinstance(ctl.interaction, Dragging)
        ctl.move(713, 332)
        ctl.release()

        comp = history.present.component("A")
        assert comp.x == pytest.approx(0.6)
        assert comp.y == pytest.approx(0.6)
        assert moves[-1][0] == "A"
        assert ctl.interaction is IDLE

    def test_one_gesture_is_one_undo_step(self):
        history, ctl = _controller()
        ctl.press(600, 400)
        for step in range(1, 6):
            ctl.move(600 + step * 10, 400)
        ctl.release()
        assert len(history.past) == 1
        history.undo()
        assert history.present.component("A").x == 0.5

    def test_click_without_move_commits_nothing(self):
        history, ctl = _controller()
        ctl.press(600, 400)
        ctl.release()
        assert not history.can_undo()

    def test_drag_is_clamped_to_canvas(self):
        history, ctl = _controller()
        ctl.press(600, 400)
        ctl.move(-300, -300)
        comp = history.present.component("A")
        assert (comp.x, comp.y) == (0.0, 1.0)

    def test_leave_ends_gesture(self):
        _h, ctl = _controller()
        ctl.press(600, 400)
        ctl.leave()
        assert ctl.interaction is IDLE


class TestSelection:
    def test_click_shape_selects_silently(self):
        rect = RectangleShape(id="r", x=0.4, y=0.6, width=0.2, height=0.2)
        history, ctl = _controller("", Overlays(shapes=(rect,)))
        ctl.press(600, 400)
        ctl.release()
        assert history.present.overlays.shapes[0].selected
        assert not history.can_undo()

    def test_click_empty_space_deselects(self):
        rect = RectangleShape(id="r", x=0.4, y=0.6, width=0.2, height=0.2, selected=True)
        history, ctl = _controller("", Overlays(shapes=(rect,)))
        ctl.press(100, 700)
        assert not history.present.overlays.shapes[0].selected

    def test_drag_shape(self):
        rect = RectangleShape(id="r", x=0.4, y=0.6, width=0.2, height=0.2)
        history, ctl = _controller("", Overlays(shapes=(rect,)))
        ctl.press(500, 340)  # 10px inside the top-left corner (490, 330)
        ctl.move(610, 410)
        ctl.release()
        moved = history.present.overlays.shapes[0]
        assert moved.x == pytest.approx(0.5)
        assert moved.y == pytest.approx(0.5)
        assert moved.width == 0.2


class TestDragNearEdge:
    def test_path_keeps_its_shape_after_touching_edge(self):
        path = DrawingPath(id="p", points=((0.5, 0.5), (0.7, 0.5)))
        history, ctl = _controller("", Overlays(paths=(path,)))
        ctl.press(600, 400)
        ctl.move(1040, 400)
        assert history.present.overlays.paths[0].points == pytest.approx(((0.8, 0.5), (1.0, 0.5)))
        ctl.move(600, 400)
        ctl.release()
        assert history.present.overlays.paths[0].points == pytest.approx(((0.5, 0.5), (0.7, 0.5)))
        assert len(history.past) == 1

    def test_line_keeps_its_length_after_touching_edge(self):
        line = LineShape(id="l", x=0.5, y=0.5, end_x=0.7, end_y=0.5)
        history, ctl = _controller("", Overlays(shapes=(line,)))
        ctl.press(600, 400)
        ctl.move(1040, 400)
        moved = history.present.overlays.shapes[0]
        assert (moved.x, moved.end_x) == pytest.approx((0.8, 1.0))
        ctl.move(600, 400)
        ctl.release()
        back = history.present.overlays.shapes[0]
        assert (back.x, back.y, back.end_x, back.end_y) == pytest.approx((0.5, 0.5, 0.7, 0.5))


class TestResize:
    def test_handle_of_selected_shape_wins_over_hit(self):
        rect = RectangleShape(id="r", x=0.4, y=0.6, width=0.2, height=0.2, selected=True)
        history, ctl = _controller("", Overlays(shapes=(rect,)))
        ctl.press(710, 470)  # se corner
        assert ctl.interaction == Resizing(HitTarget(KIND_SHAPE, "r"), "se")
        ctl.move(820, 540)
        ctl.release()
        resized = history.present.overlays.shapes[0]
        assert resized.width == pytest.approx(0.3)
        assert resized.height == pytest.approx(0.3)
        assert len(history.past) == 1

    def test_unselected_shape_has_no_handles(self):
        rect = RectangleShape(id="r", x=0.4, y=0.6, width=0.2, height=0.2)
        _h, ctl = _controller("", Overlays(shapes=(rect,)))
        ctl.press(710, 470)
        assert isinstance(ctl.interaction, Dragging)

    def test_cursor_over_handle(self):
        rect = RectangleShape(id="r", x=0.4, y=0.6, width=0.2, height=0.2, selected=True)
        _h, ctl = _controller("", Overlays(shapes=(rect,)))
        assert ctl.cursor_hint(710, 470) == CURSOR_RESIZE
        assert ctl.cursor_hint(600, 400) == CURSOR_GRAB
        assert ctl.cursor_hint(100, 100) == CURSOR_DEFAULT


# ─────────────────────────────────────────────────────────
# Drawing
# ─────────────────────────────────────────────────────────


class TestDrawing:
    def test_rectangle_rubber_band(self):
        history, ctl = _controller("")
        ctl.set_tool(TOOL_RECTANGLE)
        ctl.press(710, 470)
        assert isinstance(ctl.interaction, DrawingShape)
        ctl.move(490, 330)
        ctl.release()
        (rect,) = history.present.overlays.shapes
        assert isinstance(rect, RectangleShape)
        assert rect.x == pytest.approx(0.4)
        assert rect.y == pytest.approx(0.6)
        assert rect.width == pytest.approx(0.2)
        assert rect.height == pytest.approx(0.2)
        assert len(history.past) == 1

    def test_click_gives_default_size(self):
        history, ctl = _controller("")
        ctl.set_tool(TOOL_RECTANGLE)
        ctl.press(600, 400)
        ctl.release()
        rect = history.present.overlays.shapes[0]
        assert rect.width == pytest.approx(100 / 1100)
        assert rect.height == pytest.approx(80 / 700)

    def test_circle_radius_from_drag(self):
        history, ctl = _controller("")
        ctl.set_tool(TOOL_CIRCLE)
        ctl.press(600, 400)
        ctl.move(670, 400)
        ctl.release()
        circle = history.present.overlays.shapes[0]
        assert isinstance(circle, CircleShape)
        assert circle.radius == pytest.approx(0.1)

    def test_line_end_follows_pointer(self):
        history, ctl = _controller("")
        ctl.set_tool(TOOL_LINE)
        ctl.press(50, 750)
        ctl.move(1150, 50)
        ctl.release()
        line = history.present.overlays.shapes[0]
        assert isinstance(line, LineShape)
        assert (line.x, line.y, line.end_x, line.end_y) == (0.0, 0.0, 1.0, 1.0)

    def test_pen_collects_points(self):
        history, ctl = _controller("")
        ctl.set_tool(TOOL_PEN)
        ctl.press(600, 400)
        ctl.move(610, 400)
        ctl.move(620, 410)
        ctl.release()
        (path,) = history.present.overlays.paths
        assert len(path.points) == 3
        assert len(history.past) == 1

    def test_unknown_tool(self):
        _h, ctl = _controller()
        with pytest.raises(ValueError):
            ctl.set_tool("eraser")

    def test_tool_switch_resets_gesture(self):
        _h, ctl = _controller()
        ctl.press(600, 400)
        ctl.set_tool(TOOL_MOVE)
        assert ctl.interaction is IDLE
        assert ctl.cursor_hint(0, 0) == CURSOR_DEFAULT


# ─────────────────────────────────────────────────────────
# Click-created overlays and deletion
# ─────────────────────────────────────────────────────────


class TestPlaceAndDelete:
    def test_text_tool_click(self):
        history, ctl = _controller("")
        ctl.set_tool(TOOL_TEXT)
        new_id = ctl.click(600, 400, "Hello")
        (text,) = history.present.overlays.texts
        assert text.id == new_id
        assert (text.x, text.y) == (0.5, 0.5)
        assert text.font_size == 16

    def test_blank_text_ignored(self):
        history, ctl = _controller("")
        assert ctl.add_text(600, 400, "   ") is None
        assert history.present.overlays.texts == ()

    def test_icon_tool_click(self):
        history, ctl = _controller("")
        ctl.set_tool(TOOL_ICON)
        ctl.click(600, 400, " ★ ")
        (icon,) = history.present.overlays.icons
        assert icon.icon == "★"
        assert icon.size == 24.0

    def test_move_tool_click_places_nothing(self):
        _h, ctl = _controller("")
        assert ctl.click(600, 400, "x") is None

    def test_add_image(self):
        history, ctl = _controller("")
        ctl.add_image(600, 400, "data:image/png;base64,AAAA", 40, 30)
        (image,) = history.present.overlays.images
        assert (image.width, image.height) == (40, 30)

    def test_delete_at_overlay(self):
        text = TextOverlay(id="t", text="Hello", x=0.5, y=0.5)
        history, ctl = _controller("", Overlays(texts=(text,)))
        assert ctl.hovered_deletable(600, 400)
        assert ctl.delete_at(600, 400) == HitTarget(KIND_TEXT, "t")
        assert history.present.overlays.texts == ()
        history.undo()
        assert len(history.present.overlays.texts) == 1

    def test_components_are_not_deletable(self):
        history, ctl = _controller()
        assert not ctl.hovered_deletable(600, 400)
        assert ctl.delete_at(600, 400) is None
        assert history.present.component("A") is not None

    def test_delete_selected(self):
        rect = RectangleShape(id="r", x=0.4, y=0.6, width=0.2, height=0.2, selected=True)
        history, ctl = _controller("", Overlays(shapes=(rect,)))
        assert ctl.delete_selected() == HitTarget(KIND_SHAPE, "r")
        assert history.present.overlays.shapes == ()
        assert ctl.delete_selected() is None

    def test_dragging_cursor(self):
        _h, ctl = _controller()
        ctl.press(600, 400)
        assert ctl.interaction.target == HitTarget(KIND_COMPONENT, "A")
        assert ctl.cursor_hint(600, 400) == CURSOR_GRABBING
