"""
settings.py

Persistent settings management for WardleySync.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/wardleysync/settings.toml
    - macOS: ~/Library/Application Support/wardleysync/settings.toml
    - Linux: ~/.config/wardleysync/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.

The core modules (parser, geometry, overlay store, history, sequencer) never
read the global settings directly; the application passes the relevant
values in when it builds them.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from debug_trace import trace

APP_NAME = "wardleysync"

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


# =============================================================================
# Canvas Settings
# =============================================================================

@dataclass
class CanvasSettings:
    """Canvas geometry settings.

    Defaults:
        width: 1400
        height: 1000
        margin: 50.0
        grid_color: "#E0E0E0"
        background_color: "#FFFFFF"
    """
    width: int = 1400                    # Default: 1400 pixels
    height: int = 1000                   # Default: 1000 pixels
    margin: float = 50.0                 # Default: 50.0 pixels on every side
    grid_color: str = "#E0E0E0"          # Default: light gray
    background_color: str = "#FFFFFF"    # Default: white


@dataclass
class HitTestSettings:
    """Pointer tolerances used by hit-testing and resize handles.

    Defaults:
        line_tolerance: 5.0
        component_radius: 12.0
        handle_size: 8.0
        text_padding: 5.0
        sequence_component_radius: 20.0
        sequence_connection_tolerance: 10.0
    """
    line_tolerance: float = 5.0                  # Default: 5.0 pixels
    component_radius: float = 12.0               # Default: 12.0 pixels
    handle_size: float = 8.0                     # Default: 8.0 pixels
    text_padding: float = 5.0                    # Default: 5.0 pixels
    sequence_component_radius: float = 20.0      # Default: 20.0 pixels
    sequence_connection_tolerance: float = 10.0  # Default: 10.0 pixels


# =============================================================================
# Overlay Defaults
# =============================================================================

@dataclass
class ShapeDefaults:
    """Style applied to newly drawn shapes.

    Defaults:
        stroke_color: "#000000"
        fill_color: "#000000"
        stroke_width: 2.0
        opacity: 100
        filled: False
        default_width: 100.0
        default_height: 80.0
        default_radius: 50.0
    """
    stroke_color: str = "#000000"   # Default: black
    fill_color: str = "#000000"     # Default: black
    stroke_width: float = 2.0       # Default: 2.0 pixels
    opacity: int = 100              # Default: 100%
    filled: bool = False            # Default: outline only
    default_width: float = 100.0    # Default: 100 px when released without dragging
    default_height: float = 80.0    # Default: 80 px when released without dragging
    default_radius: float = 50.0    # Default: 50 px when released without dragging


@dataclass
class TextDefaults:
    """Style applied to new text overlays.

    Defaults:
        color: "#000000"
        font_size: 16
        font_weight: "normal"
        opacity: 100
    """
    color: str = "#000000"          # Default: black
    font_size: int = 16             # Default: 16 pixels
    font_weight: str = "normal"     # Default: normal | bold
    opacity: int = 100              # Default: 100%


@dataclass
class DrawingDefaults:
    """Style applied to freehand pen paths.

    Defaults:
        stroke_color: "#000000"
        stroke_width: 2.0
        opacity: 100
        icon_size: 24.0
    """
    stroke_color: str = "#000000"   # Default: black
    stroke_width: float = 2.0       # Default: 2.0 pixels
    opacity: int = 100              # Default: 100%
    icon_size: float = 24.0         # Default: 24 px for placed icons


@dataclass
class OverlayDefaults:
    """All defaults used when creating overlays."""
    shape: ShapeDefaults = field(default_factory=ShapeDefaults)
    text: TextDefaults = field(default_factory=TextDefaults)
    drawing: DrawingDefaults = field(default_factory=DrawingDefaults)


# =============================================================================
# Presentation / History / Storage
# =============================================================================

@dataclass
class PresentationSettings:
    """Playback settings.

    Defaults:
        autoplay_delay: 2.0
        reveal_opacity: 0.7
        note_reveal_distance: 0.1
        record_highlight_color: "#F44336"
    """
    autoplay_delay: float = 2.0               # Default: 2.0 seconds per step
    reveal_opacity: float = 0.7               # Default: 0.7 for the just-revealed item
    note_reveal_distance: float = 0.1         # Default: 0.1 in diagram space
    record_highlight_color: str = "#F44336"   # Default: red


@dataclass
class HistorySettings:
    """Undo history settings.

    Defaults:
        capacity: 50
    """
    capacity: int = 50  # Default: 50 undo steps


@dataclass
class StorageSettings:
    """Project storage and export locations.

    Defaults:
        projects_dir: "" (platform user data dir)
        export_dir: "" (no preselected directory)
    """
    projects_dir: str = ""   # Default: "" -> platformdirs.user_data_dir/projects
    export_dir: str = ""     # Default: "" -> ask, then fall back to Downloads


@dataclass
class DebugSettings:
    """Trace output settings.

    Defaults:
        trace: False
        trace_paint: False
    """
    trace: bool = False         # Default: False
    trace_paint: bool = False   # Default: False (very verbose)


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        theme: The UI theme name (must match a key in styles.STYLES).
        canvas: Canvas geometry settings.
        hit_test: Pointer tolerances.
        defaults: Overlay creation defaults.
        presentation: Playback settings.
        history: Undo history settings.
        storage: Project and export locations.
        debug: Trace output settings.
    """
    # UI Settings
    theme: str = "Light"  # Default: "Light"

    # Nested settings categories
    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    hit_test: HitTestSettings = field(default_factory=HitTestSettings)
    defaults: OverlayDefaults = field(default_factory=OverlayDefaults)
    presentation: PresentationSettings = field(default_factory=PresentationSettings)
    history: HistorySettings = field(default_factory=HistorySettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    debug: DebugSettings = field(default_factory=DebugSettings)


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        settings_dir: Optional override of the config directory (tests).
    """

    def __init__(self, app_name: str = APP_NAME, settings_dir: Optional[Path] = None):
        self.app_name = app_name
        self.settings_dir = Path(settings_dir) if settings_dir else Path(platformdirs.user_config_dir(app_name))
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()  # Save if file didn't exist

    def ensure_file_complete(self) -> None:
        """Ensure settings file exists with all sections. Call once at startup."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except (OSError, tomllib.TOMLDecodeError, TypeError, AttributeError):
            # If file is corrupted or invalid, return defaults
            return AppSettings()

    @staticmethod
    def _apply_section(target: Any, section: Dict[str, Any]) -> None:
        """Copy known keys of a TOML table onto a settings dataclass."""
        for key, value in section.items():
            if hasattr(target, key) and not isinstance(value, dict):
                setattr(target, key, value)

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into an AppSettings instance.

        Unknown keys are ignored and missing keys keep their defaults.
        """
        settings = AppSettings()

        general = data.get("general", {})
        settings.theme = general.get("theme", settings.theme)

        self._apply_section(settings.canvas, data.get("canvas", {}))
        self._apply_section(settings.hit_test, data.get("hit_test", {}))

        defaults = data.get("defaults", {})
        self._apply_section(settings.defaults.shape, defaults.get("shape", {}))
        self._apply_section(settings.defaults.text, defaults.get("text", {}))
        self._apply_section(settings.defaults.drawing, defaults.get("drawing", {}))

        self._apply_section(settings.presentation, data.get("presentation", {}))
        self._apply_section(settings.history, data.get("history", {}))
        self._apply_section(settings.storage, data.get("storage", {}))
        self._apply_section(settings.debug, data.get("debug", {}))

        self._validate(settings)
        return settings

    @staticmethod
    def _validate(settings: AppSettings) -> None:
        """Reset values the application cannot run with to their defaults."""
        canvas = settings.canvas
        if canvas.margin < 0 or canvas.width <= 2 * canvas.margin or canvas.height <= 2 * canvas.margin:
            trace(f"Canvas {canvas.width}x{canvas.height} with margin {canvas.margin} has no drawing area; "
                  "using default size", "SETTINGS")
            fallback = CanvasSettings()
            canvas.width, canvas.height, canvas.margin = fallback.width, fallback.height, fallback.margin
        if settings.presentation.autoplay_delay <= 0:
            trace(f"autoplay_delay must be positive, got {settings.presentation.autoplay_delay}", "SETTINGS")
            settings.presentation.autoplay_delay = PresentationSettings().autoplay_delay
        if settings.history.capacity < 1:
            trace(f"history capacity must be at least 1, got {settings.history.capacity}", "SETTINGS")
            settings.history.capacity = HistorySettings().capacity

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        # Ensure directory exists
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        # Convert settings to TOML structure
        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "general": {
                "theme": s.theme,
            },
            "canvas": {
                "width": s.canvas.width,
                "height": s.canvas.height,
                "margin": s.canvas.margin,
                "grid_color": s.canvas.grid_color,
                "background_color": s.canvas.background_color,
            },
            "hit_test": {
                "line_tolerance": s.hit_test.line_tolerance,
                "component_radius": s.hit_test.component_radius,
                "handle_size": s.hit_test.handle_size,
                "text_padding": s.hit_test.text_padding,
                "sequence_component_radius": s.hit_test.sequence_component_radius,
                "sequence_connection_tolerance": s.hit_test.sequence_connection_tolerance,
            },
            "defaults": {
                "shape": {
                    "stroke_color": s.defaults.shape.stroke_color,
                    "fill_color": s.defaults.shape.fill_color,
                    "stroke_width": s.defaults.shape.stroke_width,
                    "opacity": s.defaults.shape.opacity,
                    "filled": s.defaults.shape.filled,
                    "default_width": s.defaults.shape.default_width,
                    "default_height": s.defaults.shape.default_height,
                    "default_radius": s.defaults.shape.default_radius,
                },
                "text": {
                    "color": s.defaults.text.color,
                    "font_size": s.defaults.text.font_size,
                    "font_weight": s.defaults.text.font_weight,
                    "opacity": s.defaults.text.opacity,
                },
                "drawing": {
                    "stroke_color": s.defaults.drawing.stroke_color,
                    "stroke_width": s.defaults.drawing.stroke_width,
                    "opacity": s.defaults.drawing.opacity,
                    "icon_size": s.defaults.drawing.icon_size,
                },
            },
            "presentation": {
                "autoplay_delay": s.presentation.autoplay_delay,
                "reveal_opacity": s.presentation.reveal_opacity,
                "note_reveal_distance": s.presentation.note_reveal_distance,
                "record_highlight_color": s.presentation.record_highlight_color,
            },
            "history": {
                "capacity": s.history.capacity,
            },
            "storage": {
                "projects_dir": s.storage.projects_dir,
                "export_dir": s.storage.export_dir,
            },
            "debug": {
                "trace": s.debug.trace,
                "trace_paint": s.debug.trace_paint,
            },
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string.

        Returns:
            TOML representation of the current settings.
        """
        data = self._to_toml_dict()
        return tomli_w.dumps(data)

    def get_projects_dir(self) -> Path:
        """Get the resolved project storage directory.

        Returns:
            Path to the projects directory. Falls back to the platform user
            data directory if projects_dir setting is empty.
        """
        if self.settings.storage.projects_dir:
            return Path(self.settings.storage.projects_dir)
        return Path(platformdirs.user_data_dir(self.app_name)) / "projects"

    def get_export_dir(self) -> Optional[Path]:
        """Get the preselected export directory, or None when unset."""
        if self.settings.storage.export_dir:
            return Path(self.settings.storage.export_dir)
        return None

    def get_settings_path(self) -> Path:
        """Get the path to the settings file.

        Returns:
            Path object pointing to the settings file location.
        """
        return self.settings_file
