"""
notation/patcher.py

Write a dragged component's new position back into the notation source.

Only the bracket of the first matching ``component`` line is rewritten;
the rest of the text is left byte-for-byte alone. The name must be followed
directly by the bracket, so ``A`` never matches ``component A B [..]``.
A name defined twice is where text and model drift apart: the first line is
patched but the parser keeps the later definition.
"""

from __future__ import annotations

import re


def component_pattern(name: str) -> "re.Pattern[str]":
    """Regex matching ``component <name> [`` and the bracket body after it."""
    return re.compile(r"(component\s+" + re.escape(name) + r"\s*\[)[^\]]+")


def format_position(x: float, y: float) -> str:
    """Bracket body for a position, value chain first: ``"0.50, 0.25"``."""
    return f"{y:.2f}, {x:.2f}"


def patch_component_position(text: str, name: str, x: float, y: float) -> str:
    """Rewrite the ``[y, x]`` bracket of component *name*.

    Args:
        text: Notation source.
        name: Component name as parsed (trimmed).
        x: New evolution position.
        y: New value-chain position.

    Returns:
        The patched text, or *text* unchanged if no line matches.
    """
    body = format_position(x, y)
    return component_pattern(name).sub(lambda m: m.group(1) + body, text, count=1)
