"""Tests for writing dragged positions back into notation text."""
from __future__ import annotations

from notation import parse_map, patch_component_position
from notation.patcher import format_position


SOURCE = """title Tea Shop
component Cup of Tea [0.79, 0.61] label [19, -4]
component Tea [0.63, 0.81]
// component Tea [0.10, 0.10]
Cup of Tea -> Tea
"""


class TestPatchComponentPosition:
    def test_value_chain_is_written_first(self):
        assert format_position(x=0.25, y=0.5) == "0.50, 0.25"

    def test_only_the_bracket_changes(self):
        patched = patch_component_position(SOURCE, "Tea", x=0.9, y=0.12345)
        assert "component Tea [0.12, 0.90]" in patched
        # everything else untouched
        assert patched.replace("[0.12, 0.90]", "[0.63, 0.81]") == SOURCE

    def test_modifiers_after_bracket_survive(self):
        patched = patch_component_position(SOURCE, "Cup of Tea", x=0.5, y=0.5)
        assert "component Cup of Tea [0.50, 0.50] label [19, -4]" in patched

    def test_patched_text_parses_to_new_position(self):
        patched = patch_component_position(SOURCE, "Cup of Tea", x=0.33, y=0.44)
        comp = parse_map(patched).component("Cup of Tea")
        assert (comp.x, comp.y) == (0.33, 0.44)

    def test_unknown_name_returns_text_unchanged(self):
        assert patch_component_position(SOURCE, "Kettle", 0.1, 0.1) == SOURCE

    def test_name_must_be_followed_by_bracket(self):
        text = "component A B [0.1, 0.1]\ncomponent A [0.2, 0.2]"
        patched = patch_component_position(text, "A", x=0.7, y=0.8)
        assert patched == "component A B [0.1, 0.1]\ncomponent A [0.80, 0.70]"

    def test_regex_characters_in_name_are_escaped(self):
        text = "component C++ (core) [0.3, 0.3]"
        patched = patch_component_position(text, "C++ (core)", x=0.6, y=0.4)
        assert patched == "component C++ (core) [0.40, 0.60]"

    def test_duplicate_name_patches_first_line_only(self):
        text = "component A [0.1, 0.1]\ncomponent A [0.2, 0.2]"
        patched = patch_component_position(text, "A", x=0.5, y=0.5)
        assert patched == "component A [0.50, 0.50]\ncomponent A [0.2, 0.2]"
        # the parser keeps the later definition, so the model does not move
        assert parse_map(patched).component("A").x == 0.2
