"""
utils.py

Color conversion and image helpers shared by the canvas, the presenter
window and export.
"""

from __future__ import annotations

import base64
import io
from typing import Optional, Tuple

from PIL import Image
from PyQt6.QtGui import QColor

# Largest edge of an image embedded as an overlay, in pixels
MAX_EMBED_SIZE = 400


def qcolor_to_hex(c: QColor, include_alpha: bool = False) -> str:
    """
    Convert a QColor to a hex string.

    Args:
        c: The QColor to convert
        include_alpha: If True, include alpha channel as 4th byte

    Returns:
        Hex string like "#RRGGBB" or "#RRGGBBAA"
    """
    if include_alpha:
        return "#{:02X}{:02X}{:02X}{:02X}".format(c.red(), c.green(), c.blue(), c.alpha())
    return "#{:02X}{:02X}{:02X}".format(c.red(), c.green(), c.blue())


def hex_to_qcolor(s: str, fallback: QColor) -> QColor:
    """
    Parse a hex string to a QColor.

    Args:
        s: Hex string like "#RRGGBB" or "#RRGGBBAA"
        fallback: Color to return if parsing fails

    Returns:
        Parsed QColor or fallback
    """
    if not s:
        return QColor(fallback)
    s = s.strip().lstrip("#")
    try:
        if len(s) == 6:
            return QColor(int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))
        if len(s) == 8:
            return QColor(int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16), int(s[6:8], 16))
    except ValueError:
        pass
    return QColor(fallback)


def image_to_data_url(path: str, max_size: Optional[int] = MAX_EMBED_SIZE) -> Tuple[str, int, int]:
    """
    Load an image file and encode it as a PNG data URL.

    Large images are scaled down so the longer edge is at most *max_size*,
    keeping the aspect ratio. Project files embed the result, so they stay
    self-contained when exported.

    Args:
        path: Image file path
        max_size: Longest edge in pixels, or None to keep the original size

    Returns:
        (data_url, width, height) of the encoded image

    Raises:
        OSError: if the file cannot be read or is not an image
    """
    with Image.open(path) as img:
        img.load()
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA")
        if max_size is not None:
            img.thumbnail((max_size, max_size))
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        width, height = img.size
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}", width, height
