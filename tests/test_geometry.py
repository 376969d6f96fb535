"""Tests for canvas/geometry.py: transforms, hit-testing and resize handles."""
from __future__ import annotations

from dataclasses import replace

import pytest

from canvas.geometry import (
    HANDLE_E,
    HANDLE_END,
    HANDLE_NE,
    HANDLE_NW,
    HANDLE_SE,
    HANDLE_SW,
    MAX_FONT_SIZE,
    MIN_FONT_SIZE,
    HitTarget,
    HitTolerances,
    Viewport,
    apply_resize,
    box_pixels,
    find_resize_handle,
    hit_test,
    hit_test_sequence_target,
    point_in_triangle,
    point_segment_distance,
    selected_resizable,
)
from models import (
    KIND_COMPONENT,
    KIND_CONNECTION,
    KIND_DRAWING,
    KIND_ICON,
    KIND_IMAGE,
    KIND_SHAPE,
    KIND_TEXT,
    CircleShape,
    DrawingPath,
    IconOverlay,
    ImageOverlay,
    LineShape,
    Overlays,
    RectangleShape,
    TextOverlay,
    TriangleShape,
)
from notation import parse_map


VP = Viewport(1200, 800, 50)  # inner 1100 x 700


def _with(wmap, **kinds):
    return wmap.with_overlays(Overlays(**kinds))


# ─────────────────────────────────────────────────────────
# Viewport transforms
# ─────────────────────────────────────────────────────────


class TestViewport:
    def test_corners(self):
        assert VP.to_pixel(0.0, 0.0) == (50.0, 750.0)
        assert VP.to_pixel(1.0, 1.0) == (1150.0, 50.0)

    @pytest.mark.parametrize("x, y", [(0.0, 0.0), (0.25, 0.75), (0.5, 0.5), (1.0, 1.0), (0.13, 0.87)])
    def test_round_trip_inside_unit_square(self, x, y):
        nx, ny = VP.to_normalized(*VP.to_pixel(x, y))
        assert nx == pytest.approx(x)
        assert ny == pytest.approx(y)

    @pytest.mark.parametrize("px, py, expected", [
        (0, 0, (0.0, 1.0)),
        (-500, 2000, (0.0, 0.0)),
        (5000, -5000, (1.0, 1.0)),
        (1150, 900, (1.0, 0.0)),
    ])
    def test_to_normalized_clamps(self, px, py, expected):
        assert VP.to_normalized(px, py) == expected

    def test_normalized_box_handles_reverse_drag(self):
        forward = VP.normalized_box(160, 120, 380, 260)
        backward = VP.normalized_box(380, 260, 160, 120)
        assert forward == backward
        x, y, w, h = forward
        assert x == pytest.approx(0.1)
        assert y == pytest.approx(0.9)
        assert w == pytest.approx(0.2)
        assert h == pytest.approx(0.2)

    def test_normalized_box_clamps_both_corners(self):
        x, y, w, h = VP.normalized_box(160, 120, 1190, 790)
        assert (x, y) == pytest.approx((0.1, 0.9))
        assert w == pytest.approx(0.9)
        assert h == pytest.approx(0.9)


class TestPrimitives:
    def test_segment_distance_projection_clamped(self):
        assert point_segment_distance(5, 3, 0, 0, 10, 0) == pytest.approx(3)
        assert point_segment_distance(14, 3, 0, 0, 10, 0) == pytest.approx(5)

    def test_segment_of_zero_length(self):
        assert point_segment_distance(3, 4, 0, 0, 0, 0) == pytest.approx(5)

    def test_triangle_inside_and_edge(self):
        a, b, c = (5, 0), (0, 10), (10, 10)
        assert point_in_triangle((5, 5), a, b, c)
        assert point_in_triangle((5, 10), a, b, c)
        assert not point_in_triangle((0, 0), a, b, c)


# ─────────────────────────────────────────────────────────
# hit_test
# ─────────────────────────────────────────────────────────


class TestHitTest:
    def test_component_within_radius(self):
        wmap = parse_map("component A [0.5, 0.5]\ncomponent B [0.2, 0.2]\nA -> B")
        # A sits at pixel (600, 400)
        assert hit_test(wmap, VP, 608, 405) == HitTarget(KIND_COMPONENT, "A")
        assert hit_test(wmap, VP, 600, 413) is None

    def test_empty_space(self):
        assert hit_test(parse_map(""), VP, 600, 400) is None

    def test_overlays_take_precedence_over_components(self):
        wmap = _with(
            parse_map("component A [0.5, 0.5]"),
            shapes=(CircleShape(id="c1", x=0.5, y=0.5, radius=0.05),),
        )
        assert hit_test(wmap, VP, 600, 400) == HitTarget(KIND_SHAPE, "c1")

    def test_kind_precedence_order(self):
        wmap = _with(
            parse_map(""),
            paths=(DrawingPath(id="p1", points=((0.5, 0.5), (0.6, 0.5))),),
            icons=(IconOverlay(id="i1", icon="*", x=0.5, y=0.5),),
            images=(ImageOverlay(id="m1", src="", x=0.45, y=0.55, width=200, height=200),),
        )
        assert hit_test(wmap, VP, 600, 400).kind == KIND_DRAWING
        assert hit_test(wmap, VP, 600, 415).kind == KIND_ICON
        assert hit_test(wmap, VP, 600, 450).kind == KIND_IMAGE

    def test_most_recent_wins_within_kind(self):
        wmap = _with(parse_map(""), shapes=(
            RectangleShape(id="old", x=0.4, y=0.6, width=0.2, height=0.2),
            RectangleShape(id="new", x=0.45, y=0.55, width=0.1, height=0.1),
        ))
        assert hit_test(wmap, VP, 600, 400).id == "new"

    def test_line_tolerance(self):
        wmap = _with(parse_map(""), shapes=(LineShape(id="l", x=0.0, y=0.5, end_x=1.0, end_y=0.5),))
        assert hit_test(wmap, VP, 600, 404) is not None
        assert hit_test(wmap, VP, 600, 406) is None

    def test_triangle(self):
        tri = TriangleShape(id="t", x=0.4, y=0.6, width=0.2, height=0.2)
        wmap = _with(parse_map(""), shapes=(tri,))
        # box is (490, 330) to (710, 470); apex at (600, 330)
        assert hit_test(wmap, VP, 600, 460) == HitTarget(KIND_SHAPE, "t")
        assert hit_test(wmap, VP, 495, 335) is None

    def test_text_fallback_box_without_measure(self):
        text = TextOverlay(id="t", text="Hello", x=0.5, y=0.5)
        wmap = _with(parse_map(""), texts=(text,))
        assert hit_test(wmap, VP, 640, 410) == HitTarget(KIND_TEXT, "t")
        assert hit_test(wmap, VP, 660, 400) is None

    def test_text_uses_measured_width(self):
        text = TextOverlay(id="t", text="Hello", x=0.5, y=0.5, font_size=16)
        wmap = _with(parse_map(""), texts=(text,))
        measure = lambda _t: 200.0  # noqa: E731
        assert hit_test(wmap, VP, 795, 395, measure=measure) == HitTarget(KIND_TEXT, "t")
        assert hit_test(wmap, VP, 600, 425, measure=measure) is None

    def test_custom_tolerances(self):
        wmap = parse_map("component A [0.5, 0.5]")
        tight = HitTolerances(component=2.0)
        assert hit_test(wmap, VP, 605, 400, tight) is None


class TestSequenceTarget:
    def test_component_generous_radius(self):
        wmap = parse_map("component A [0.5, 0.5]")
        assert hit_test_sequence_target(wmap, VP, 615, 410) == HitTarget(KIND_COMPONENT, "A")

    def test_connection_between_components(self):
        wmap = parse_map("component A [0.5, 0.2]\ncomponent B [0.5, 0.8]\nA -> B")
        # horizontal link at py = 400 from px 270 to 930
        assert hit_test_sequence_target(wmap, VP, 600, 405) == HitTarget(KIND_CONNECTION, "A->B")

    def test_unresolved_connection_is_skipped(self):
        wmap = parse_map("component A [0.5, 0.2]\nA -> Ghost")
        assert hit_test_sequence_target(wmap, VP, 600, 400) is None


# ─────────────────────────────────────────────────────────
# Resize handles
# ─────────────────────────────────────────────────────────


class TestResize:
    RECT = RectangleShape(id="r", x=0.1, y=0.9, width=0.2, height=0.2, selected=True)
    # pixel box: left 160, top 120, 220 x 140

    def test_find_corner_handle(self):
        assert find_resize_handle(self.RECT, VP, 378, 262) == HANDLE_SE
        assert find_resize_handle(self.RECT, VP, 162, 118) == HANDLE_NW
        assert find_resize_handle(self.RECT, VP, 270, 190) is None

    def test_se_keeps_top_left(self):
        changes = apply_resize(self.RECT, HANDLE_SE, VP, 490, 330)
        assert set(changes) == {"width", "height"}
        assert changes["width"] == pytest.approx(0.3)
        assert changes["height"] == pytest.approx(0.3)

    def test_nw_keeps_bottom_right(self):
        changes = apply_resize(self.RECT, HANDLE_NW, VP, 270, 190)
        assert changes["x"] == pytest.approx(0.2)
        assert changes["y"] == pytest.approx(0.8)
        assert changes["width"] == pytest.approx(0.1)
        assert changes["height"] == pytest.approx(0.1)

    def _corners(self, changes):
        left, top, w, h = box_pixels(replace(self.RECT, **changes), VP)
        return (left, top), (left + w, top + h)

    def test_nw_in_margin_keeps_se_corner(self):
        (left, top), se = self._corners(apply_resize(self.RECT, HANDLE_NW, VP, 10, 10))
        assert (left, top) == pytest.approx((50, 50))
        assert se == pytest.approx((380, 260))

    def test_nw_past_opposite_corner_collapses_onto_it(self):
        (left, top), se = self._corners(apply_resize(self.RECT, HANDLE_NW, VP, 700, 600))
        assert (left, top) == pytest.approx((380, 260))
        assert se == pytest.approx((380, 260))

    def test_ne_and_sw_keep_their_opposite_corner(self):
        (left, _top), (_r, bottom) = self._corners(apply_resize(self.RECT, HANDLE_NE, VP, 1190, 5))
        assert (left, bottom) == pytest.approx((160, 260))
        (_l, top), (right, _b) = self._corners(apply_resize(self.RECT, HANDLE_SW, VP, 5, 790))
        assert (top, right) == pytest.approx((120, 380))

    def test_size_never_negative(self):
        changes = apply_resize(self.RECT, HANDLE_SE, VP, 100, 100)
        assert changes["width"] == 0.0
        assert changes["height"] == 0.0

    def test_circle_radius_follows_pointer(self):
        circle = CircleShape(id="c", x=0.5, y=0.5, radius=0.1)
        changes = apply_resize(circle, HANDLE_E, VP, 740, 400)
        assert set(changes) == {"radius"}
        assert changes["radius"] == pytest.approx(0.2)

    def test_line_end_handle(self):
        line = LineShape(id="l", x=0.1, y=0.1, end_x=0.2, end_y=0.2)
        changes = apply_resize(line, HANDLE_END, VP, 600, 400)
        assert changes["end_x"] == pytest.approx(0.5)
        assert changes["end_y"] == pytest.approx(0.5)

    def test_text_font_size_is_clamped(self):
        text = TextOverlay(id="t", text="x", x=0.5, y=0.5)
        assert apply_resize(text, HANDLE_SE, VP, 601, 400) == {"font_size": MIN_FONT_SIZE}
        assert apply_resize(text, HANDLE_SE, VP, 1150, 50) == {"font_size": MAX_FONT_SIZE}

    def test_text_e_sets_pixel_width(self):
        text = TextOverlay(id="t", text="x", x=0.5, y=0.5)
        assert apply_resize(text, HANDLE_E, VP, 720, 400) == {"width": 120}

    def test_unknown_handle_is_ignored(self):
        assert apply_resize(self.RECT, HANDLE_END, VP, 0, 0) == {}

    def test_selected_resizable_most_recent_first(self):
        wmap = _with(parse_map(""),
                     shapes=(self.RECT, CircleShape(id="c", x=0.5, y=0.5, radius=0.1)),
                     texts=(TextOverlay(id="t", text="x", x=0.5, y=0.5, selected=True),))
        assert [i.id for i in selected_resizable(wmap)] == ["r", "t"]
