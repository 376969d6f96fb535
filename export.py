"""
export.py

PNG rendering and file export.

Files go to the directory the user selected for exports. If none is
selected, or writing there fails, they land in the platform download
directory instead.
"""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from typing import Callable, Optional

import platformdirs
from PyQt6.QtCore import QBuffer, QIODevice
from PyQt6.QtGui import QGuiApplication, QImage, QPainter

from canvas.geometry import Viewport
from canvas.renderer import MapRenderer
from debug_trace import trace
from models import WardleyMap
from settings import CanvasSettings

DEFAULT_PNG_NAME = "wardley-map.png"


class ExportError(OSError):
    """Raised when a file could not be written anywhere."""


def suggest_png_filename(title: str) -> str:
    """File name for a PNG export: the title with non-alphanumerics as dashes."""
    if not title:
        return DEFAULT_PNG_NAME
    return re.sub(r"[^a-zA-Z0-9]", "-", title) + ".png"


def suggest_project_filename(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]", "-", name or "project") + ".json"


def ensure_gui_app(offscreen: bool = False) -> QGuiApplication:
    """Return the running Qt application, creating a GUI one if needed.

    Args:
        offscreen: Use the offscreen platform plugin (no display required).
            Only honored when no application exists yet.
    """
    app = QGuiApplication.instance()
    if app is None:
        if offscreen:
            os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
        app = QGuiApplication(sys.argv[:1])
    return app


def render_image(wmap: WardleyMap, width: int, height: int,
                 canvas: Optional[CanvasSettings] = None) -> QImage:
    """Render *wmap* onto a new image without selection handles."""
    canvas = canvas or CanvasSettings()
    image = QImage(width, height, QImage.Format.Format_ARGB32)
    viewport = Viewport(width, height, canvas.margin)
    painter = QPainter(image)
    try:
        MapRenderer(viewport, canvas).render(painter, wmap, show_handles=False)
    finally:
        painter.end()
    return image


def encode_png(image: QImage) -> bytes:
    buffer = QBuffer()
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    try:
        if not image.save(buffer, "PNG"):
            raise ExportError("PNG encoding failed")
        return bytes(buffer.data())
    finally:
        buffer.close()


def render_png(wmap: WardleyMap, width: int = 1400, height: int = 1000,
               canvas: Optional[CanvasSettings] = None) -> bytes:
    """PNG bytes of *wmap* rendered at width x height pixels.

    Requires a Qt GUI application (see :func:`ensure_gui_app`).
    """
    return encode_png(render_image(wmap, width, height, canvas))


# ═══════════════════════════════════════════════════════════
# Export target
# ═══════════════════════════════════════════════════════════

def default_download_dir() -> Path:
    return Path(platformdirs.user_downloads_dir())


class ExportTarget:
    """Where exported files are written.

    Args:
        directory: Directory selected by the user, or None.
        fallback: Returns the fallback directory; injectable for tests.
    """

    def __init__(self, directory: Optional[Path] = None,
                 fallback: Callable[[], Path] = default_download_dir):
        self._directory = Path(directory) if directory else None
        self._fallback = fallback

    @property
    def directory(self) -> Optional[Path]:
        return self._directory

    def select_directory(self, directory: Optional[Path]) -> None:
        self._directory = Path(directory) if directory else None
        trace(f"Export directory: {self._directory}", "EXPORT")

    def clear_directory(self) -> None:
        self.select_directory(None)

    def save_bytes(self, filename: str, data: bytes) -> Path:
        """Write *data* and return the path it ended up at.

        Raises:
            ExportError: if the fallback directory cannot be written either.
        """
        if self._directory is not None:
            target = self._directory / filename
            try:
                target.write_bytes(data)
                trace(f"Exported {target}", "EXPORT")
                return target
            except OSError as e:
                trace(f"Cannot write {target}: {e}; falling back to downloads", "ERROR")

        fallback_dir = self._fallback()
        target = fallback_dir / filename
        try:
            fallback_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise ExportError(f"Cannot write {target}: {e}") from e
        trace(f"Exported {target} (download directory)", "EXPORT")
        return target

    def save_text(self, filename: str, text: str) -> Path:
        return self.save_bytes(filename, text.encode("utf-8"))
