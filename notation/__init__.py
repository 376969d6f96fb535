"""
notation package

Text notation for maps: parsing and targeted position patching.
"""

from notation.parser import (
    ParseResult,
    SkippedLine,
    parse_map,
    parse_map_with_diagnostics,
    reparse_into,
)
from notation.patcher import patch_component_position

__all__ = [
    "ParseResult",
    "SkippedLine",
    "parse_map",
    "parse_map_with_diagnostics",
    "reparse_into",
    "patch_component_position",
]
