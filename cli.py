"""
cli.py

Command-line PNG generator.

    wardley-png generate map.txt -o map.png -w 1400 -H 1000

Renders offscreen; no display is needed.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, Optional

from debug_trace import trace
from export import DEFAULT_PNG_NAME, ensure_gui_app, render_png
from notation import parse_map_with_diagnostics


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from None
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return n


def _cmd_generate(args: argparse.Namespace) -> int:
    source = Path(args.input)
    print(f"Reading Wardley map from: {source}")
    text = source.read_text(encoding="utf-8")

    print("Parsing...")
    result = parse_map_with_diagnostics(text)
    for skipped in result.skipped:
        trace(f"line {skipped.line_no}: {skipped.reason}: {skipped.text!r}", "PARSER")
    wmap = result.map

    print(f"Rendering PNG ({args.width}x{args.height})...")
    ensure_gui_app(offscreen=True)
    data = render_png(wmap, args.width, args.height)

    output = Path(args.output)
    print(f"Saving to: {output}")
    output.write_bytes(data)

    print("PNG created successfully")
    print(f"Map: {wmap.title!r}")
    print(f"Components: {len(wmap.components)}")
    print(f"Connections: {len(wmap.connections)}")
    if result.skipped:
        print(f"Skipped lines: {len(result.skipped)}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wardley-png", description="Generate PNG images from Wardley map files")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a PNG from a Wardley map file")
    gen.add_argument("input", help="Input Wardley map file (.txt)")
    gen.add_argument("-o", "--output", default=DEFAULT_PNG_NAME, help="Output PNG file")
    gen.add_argument("-w", "--width", type=_positive_int, default=1400, help="Canvas width")
    gen.add_argument("-H", "--height", type=_positive_int, default=1000, help="Canvas height")
    gen.set_defaults(func=_cmd_generate)

    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(None if argv is None else list(argv))
    try:
        return args.func(args)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
