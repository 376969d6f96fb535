"""
notation/parser.py

Parse the line-oriented map notation into a :class:`models.WardleyMap`.

Recognised lines (after trimming; blank lines and ``//`` comments ignored)::

    title <text>
    component <name> [<y>, <x>] label [<dx>, <dy>] (build|buy|outsource) inertia color(<c>)
    note <text> [<y>, <x>]
    evolution <stage> -> <stage> -> ...
    style <name>
    <from> -> <to>

Bracket order is value chain (y) first, evolution (x) second.

The parser is lenient: a line it cannot use is skipped, never raised on.
:func:`parse_map_with_diagnostics` reports what was skipped so callers (and
tests) can see it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from models import (
    CATEGORIES,
    DEFAULT_STYLE,
    Component,
    Connection,
    Note,
    WardleyMap,
)


# ═══════════════════════════════════════════════════════════
# Patterns
# ═══════════════════════════════════════════════════════════

_COMPONENT_RE = re.compile(r"component\s+([^\[]+)\s*\[([^,]+),\s*([^\]]+)\](.*)$")
_LABEL_RE = re.compile(r"label\s*\[([^,]+),\s*([^\]]+)\]")
_COLOR_RE = re.compile(r"color\(([^)]+)\)")
_CONNECTION_RE = re.compile(r"^(.+?)\s*->\s*(.+)$")
_NOTE_RE = re.compile(r"note\s+(.+?)\s*\[([^,]+),\s*([^\]]+)\]")

# Leading float, tolerant of trailing junk ("0.5abc" -> 0.5)
_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

COMMENT_PREFIX = "//"


@dataclass
class SkippedLine:
    """A source line the parser could not use.

    Attributes:
        line_no: 1-based line number in the source text.
        text: The trimmed line.
        reason: Short human-readable explanation.
    """
    line_no: int
    text: str
    reason: str


@dataclass
class ParseResult:
    map: WardleyMap
    skipped: List[SkippedLine] = field(default_factory=list)


def _parse_float(s: str) -> Optional[float]:
    m = _FLOAT_RE.match(s)
    if not m:
        return None
    return float(m.group(1))


# ═══════════════════════════════════════════════════════════
# Line parsers
# ═══════════════════════════════════════════════════════════

def parse_component_line(line: str) -> Optional[Component]:
    """Parse one ``component`` line, or return None if it is malformed."""
    m = _COMPONENT_RE.search(line)
    if not m:
        return None

    name = m.group(1).strip()
    y = _parse_float(m.group(2))  # first value: value chain
    x = _parse_float(m.group(3))  # second value: evolution
    if not name or x is None or y is None:
        return None
    rest = m.group(4)

    label_dx = label_dy = None
    label = _LABEL_RE.search(rest)
    if label:
        label_dx = _parse_float(label.group(1))
        label_dy = _parse_float(label.group(2))
        if label_dx is None or label_dy is None:
            label_dx = label_dy = None

    category = None
    for cat in CATEGORIES:
        if f"({cat})" in rest:
            category = cat
            break

    color = None
    color_m = _COLOR_RE.search(rest)
    if color_m:
        color = color_m.group(1).strip()

    return Component(
        name=name,
        x=x,
        y=y,
        label_dx=label_dx,
        label_dy=label_dy,
        category=category,
        inertia="inertia" in rest,
        color=color,
    )


def parse_note_line(line: str) -> Optional[Note]:
    """Parse one ``note`` line, or return None if it is malformed."""
    m = _NOTE_RE.search(line)
    if not m:
        return None
    y = _parse_float(m.group(2))
    x = _parse_float(m.group(3))
    if x is None or y is None:
        return None
    return Note(text=m.group(1).strip(), x=x, y=y)


def parse_connection_line(line: str) -> Optional[Connection]:
    m = _CONNECTION_RE.match(line)
    if not m:
        return None
    source, target = m.group(1).strip(), m.group(2).strip()
    if not source or not target:
        return None
    return Connection(source=source, target=target)


def parse_evolution_line(rest: str) -> Tuple[str, ...]:
    return tuple(s.strip() for s in rest.split("->") if s.strip())


# ═══════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════

def parse_map_with_diagnostics(text: str) -> ParseResult:
    """Parse notation text and report skipped lines.

    Keyword forms are matched by prefix before the infix ``->`` connection
    form. A component name that appears twice keeps its first position and
    the later definition.

    Args:
        text: Notation source.

    Returns:
        ParseResult with the map and a list of SkippedLine entries.
    """
    title = ""
    style = DEFAULT_STYLE
    evolution: Tuple[str, ...] = ()
    components: List[Component] = []
    index_by_name = {}
    connections: List[Connection] = []
    notes: List[Note] = []
    skipped: List[SkippedLine] = []

    for line_no, raw in enumerate((text or "").splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            continue

        if line.startswith("title "):
            title = line[len("title "):].strip()
        elif line.startswith("component "):
            comp = parse_component_line(line)
            if comp is None:
                skipped.append(SkippedLine(line_no, line, "malformed component"))
            elif comp.name in index_by_name:
                components[index_by_name[comp.name]] = comp
            else:
                index_by_name[comp.name] = len(components)
                components.append(comp)
        elif line.startswith("note "):
            note = parse_note_line(line)
            if note is None:
                skipped.append(SkippedLine(line_no, line, "malformed note"))
            else:
                notes.append(note)
        elif line.startswith("evolution "):
            evolution = parse_evolution_line(line[len("evolution "):])
        elif line.startswith("style "):
            style = line[len("style "):].strip() or DEFAULT_STYLE
        elif " -> " in line:
            conn = parse_connection_line(line)
            if conn is None:
                skipped.append(SkippedLine(line_no, line, "malformed connection"))
            else:
                connections.append(conn)
        else:
            skipped.append(SkippedLine(line_no, line, "unrecognised line"))

    wmap = WardleyMap(
        title=title,
        components=tuple(components),
        connections=tuple(connections),
        notes=tuple(notes),
        evolution=evolution,
        style=style,
    )
    return ParseResult(map=wmap, skipped=skipped)


def parse_map(text: str) -> WardleyMap:
    """Parse notation text into a map. Never raises on malformed content."""
    return parse_map_with_diagnostics(text).map


def reparse_into(current: WardleyMap, text: str) -> WardleyMap:
    """Re-parse *text* and carry the overlays and sequence of *current* over."""
    return current.merge_parsed(parse_map(text))

