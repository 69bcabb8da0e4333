"""
settings.py

Persistent settings management for SlideKit.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/slidekit/settings.toml
    - macOS: ~/Library/Application Support/slidekit/settings.toml
    - Linux: ~/.config/slidekit/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "slidekit"

log = logging.getLogger(__name__)

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Only the application edge should call this; engine components receive
    an ``AppSettings`` instance through their constructors.

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
    """Fixed canvas geometry and background settings.

    Defaults:
        width: 1600
        height: 900
        background_color: "#ffffff"
        fallback_background_color: "#e5e5e5"
        background_image: "background.png"
        selection_color: "#0078D7"
    """
    width: int = 1600                             # Default: 1600 logical units
    height: int = 900                             # Default: 900 logical units
    background_color: str = "#ffffff"             # Default: white
    fallback_background_color: str = "#e5e5e5"    # Default: neutral gray
    background_image: str = "background.png"      # Default: "background.png" (empty = none)
    selection_color: str = "#0078D7"              # Default: blue


# =============================================================================
# Object Settings
# =============================================================================

@dataclass
class ImageSettings:
    """Image upload settings.

    Defaults:
        max_dimension: 4096
        max_canvas_fraction: 0.5
        max_initial_scale: 0.5
        default_stroke_color: "#000000"
        max_decode_pixels: 1_000_000_000
    """
    max_dimension: int = 4096              # Default: 4096 pixels per side
    max_canvas_fraction: float = 0.5       # Default: 50% of canvas width/height
    max_initial_scale: float = 0.5         # Default: 50% native scale
    default_stroke_color: str = "#000000"  # Default: black
    max_decode_pixels: int = 1_000_000_000  # Default: 1 gigapixel before downsizing


@dataclass
class TextDefaults:
    """Default formatting for newly created text objects.

    Defaults:
        text: "Enter text"
        font_family: "Arial, sans-serif"
        font_size: 48
        fill: "#000000"
        font_weight: "normal"
        text_align: "left"
        width: 200.0
        height: 50.0
    """
    text: str = "Enter text"                # Default: "Enter text"
    font_family: str = "Arial, sans-serif"  # Default: Arial
    font_size: int = 48                     # Default: 48 px
    fill: str = "#000000"                   # Default: black
    font_weight: str = "normal"             # Default: "normal"
    text_align: str = "left"                # Default: "left"
    width: float = 200.0                    # Default: 200 units
    height: float = 50.0                    # Default: 50 units


# =============================================================================
# Editing State Settings
# =============================================================================

@dataclass
class HistorySettings:
    """Undo history settings.

    Defaults:
        max_entries: 50
    """
    max_entries: int = 50  # Default: 50 snapshots


@dataclass
class SlideSettings:
    """Slide collection settings.

    Defaults:
        autosave_interval_ms: 2000
        thumbnail_scale: 0.1
    """
    autosave_interval_ms: int = 2000  # Default: 2 seconds
    thumbnail_scale: float = 0.1      # Default: 10% linear scale


@dataclass
class ExportSettings:
    """Raster export settings.

    Defaults:
        format: "png"
        base_name_prefix: "SlideKit"
        jpeg_quality: 95
    """
    format: str = "png"                # Default: "png"
    base_name_prefix: str = "SlideKit" # Default: "SlideKit"
    jpeg_quality: int = 95             # Default: 95


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        workspace_dir: Default directory for saving/loading decks.
        canvas: Canvas geometry and background settings.
        images: Image upload settings.
        text: Defaults for new text objects.
        history: Undo history settings.
        slides: Slide collection settings.
        export: Raster export settings.
    """
    # Workspace directory for deck save/load (empty = ~/Documents/SlideKit)
    workspace_dir: str = ""

    # Nested settings categories
    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    images: ImageSettings = field(default_factory=ImageSettings)
    text: TextDefaults = field(default_factory=TextDefaults)
    history: HistorySettings = field(default_factory=HistorySettings)
    slides: SlideSettings = field(default_factory=SlideSettings)
    export: ExportSettings = field(default_factory=ExportSettings)


def resolve_workspace_dir(settings: AppSettings) -> Path:
    """Directory for deck files; ~/Documents/SlideKit when unset."""
    if settings.workspace_dir:
        return Path(settings.workspace_dir)
    return Path.home() / "Documents" / "SlideKit"


def _merge_section(target: Any, data: Dict[str, Any]) -> None:
    """Copy known keys from a TOML table onto a settings dataclass."""
    for f in fields(target):
        if f.name not in data:
            continue
        current = getattr(target, f.name)
        value = data[f.name]
        if is_dataclass(current):
            if isinstance(value, dict):
                _merge_section(current, value)
        elif type(value) is type(current) or (isinstance(current, float) and isinstance(value, int)):
            setattr(target, f.name, type(current)(value))
        else:
            log.warning("Ignoring setting %s=%r (expected %s)", f.name, value, type(current).__name__)


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
        settings_dir: Override for the config directory (tests, portable installs).
    """

    def __init__(self, app_name: str = APP_NAME, settings_dir: Optional[Path] = None):
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
        except (OSError, tomllib.TOMLDecodeError) as e:
            # If file is corrupted or invalid, return defaults
            log.warning("Could not read %s (%s); using defaults", self.settings_file, e)
            return AppSettings()

        return self._parse_toml(data)

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        general = data.get("general", {})
        settings.workspace_dir = general.get("workspace_dir", settings.workspace_dir)

        for section in ("canvas", "images", "text", "history", "slides", "export"):
            table = data.get(section, {})
            if isinstance(table, dict):
                _merge_section(getattr(settings, section), table)

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        self.settings_dir.mkdir(parents=True, exist_ok=True)

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
                "workspace_dir": s.workspace_dir,
            },
            "canvas": {
                "width": s.canvas.width,
                "height": s.canvas.height,
                "background_color": s.canvas.background_color,
                "fallback_background_color": s.canvas.fallback_background_color,
                "background_image": s.canvas.background_image,
                "selection_color": s.canvas.selection_color,
            },
            "images": {
                "max_dimension": s.images.max_dimension,
                "max_canvas_fraction": s.images.max_canvas_fraction,
                "max_initial_scale": s.images.max_initial_scale,
                "default_stroke_color": s.images.default_stroke_color,
                "max_decode_pixels": s.images.max_decode_pixels,
            },
            "text": {
                "text": s.text.text,
                "font_family": s.text.font_family,
                "font_size": s.text.font_size,
                "fill": s.text.fill,
                "font_weight": s.text.font_weight,
                "text_align": s.text.text_align,
                "width": s.text.width,
                "height": s.text.height,
            },
            "history": {
                "max_entries": s.history.max_entries,
            },
            "slides": {
                "autosave_interval_ms": s.slides.autosave_interval_ms,
                "thumbnail_scale": s.slides.thumbnail_scale,
            },
            "export": {
                "format": s.export.format,
                "base_name_prefix": s.export.base_name_prefix,
                "jpeg_quality": s.export.jpeg_quality,
            },
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string.

        Returns:
            TOML representation of the current settings.
        """
        data = self._to_toml_dict()
        return tomli_w.dumps(data)

    def get_workspace_dir(self) -> Path:
        """Get the resolved workspace directory path.

        Returns:
            Path to workspace directory. Falls back to ~/Documents/SlideKit
            if workspace_dir setting is empty.
        """
        return resolve_workspace_dir(self.settings)

    def get_settings_path(self) -> Path:
        """Get the path to the settings file.

        Returns:
            Path object pointing to the settings file location.
        """
        return self.settings_file
