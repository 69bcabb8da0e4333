"""
persistence.py

Snapshot codec: captures the live scene as a slide record (snapshot plus
thumbnail) and restores a slide record into the live scene. Also reads and
writes local deck files.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Optional, Union

from PIL import Image
from PyQt6.QtCore import QTimer

from canvas.surface import BackgroundLayer, SceneSurface
from debug_trace import trace, trace_call, trace_exception
from history import HistoryManager
from models import NO_SELECTION, AssetMissing, SlideCapture
from settings import AppSettings, CanvasSettings
from slides import SlideCollection
from utils import to_data_url

log = logging.getLogger(__name__)

DECK_FORMAT_VERSION = 1


def _qt_schedule(fn: Callable[[], None]) -> None:
    QTimer.singleShot(0, fn)


class BackgroundLoader:
    """
    Loads the default background asset, with a flat-color fallback.

    Args:
        settings: Canvas settings naming the asset and colors.
        base_dir: Directory a relative asset path is resolved against.
    """

    def __init__(self, settings: CanvasSettings, base_dir: Optional[Union[str, Path]] = None):
        self.settings = settings
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()

    def asset_path(self) -> Optional[Path]:
        if not self.settings.background_image:
            return None
        path = Path(self.settings.background_image)
        return path if path.is_absolute() else self.base_dir / path

    def load(self) -> BackgroundLayer:
        """Decode the asset.

        Raises:
            AssetMissing: If the asset is absent, unreadable or zero-sized.
        """
        path = self.asset_path()
        if path is None or not path.is_file():
            raise AssetMissing(f"background asset not found: {path}")
        try:
            with Image.open(path) as im:
                im.load()
                image = im.convert("RGBA")
        except (OSError, ValueError) as e:
            raise AssetMissing(f"background asset unreadable: {path}") from e
        if not image.width or not image.height:
            raise AssetMissing(f"background asset has zero size: {path}")
        return BackgroundLayer(self.settings.background_color, image, str(path))

    def fallback(self) -> BackgroundLayer:
        return BackgroundLayer(self.settings.fallback_background_color)


class SnapshotCodec:
    """
    Moves scene state between the live surface and slide records.

    Args:
        surface: The live scene.
        history: Undo history, reset after every restore.
        settings: Application settings.
        background_loader: Source of the default background layer.
        schedule: Runs a callable later on the event loop; background
            loading goes through it. Defaults to ``QTimer.singleShot(0, ...)``.
    """

    def __init__(self, surface: SceneSurface, history: HistoryManager, settings: AppSettings,
                 background_loader: Optional[BackgroundLoader] = None,
                 schedule: Optional[Callable[[Callable[[], None]], None]] = None):
        self.surface = surface
        self.history = history
        self.settings = settings
        self.background_loader = background_loader or BackgroundLoader(settings.canvas)
        self._schedule = schedule or _qt_schedule
        self._background_pending = False

    @property
    def background_pending(self) -> bool:
        return self._background_pending

    # ---- Capture ----

    def capture_snapshot(self) -> SlideCapture:
        """
        Serialize the live scene and render its thumbnail.

        The selection is hidden while the thumbnail renders and then put back
        exactly as it was, without any selection events. A text object that
        is mid-edit keeps its selection (and caret) so the edit survives.
        """
        selection = self.surface.get_active_selection()
        hide = selection != NO_SELECTION and self.surface.editing_object() is None
        if hide:
            self.surface.set_active_selection(NO_SELECTION, notify=False)
        try:
            snapshot = self.surface.serialize_all()
            thumbnail = self.surface.to_raster("png", self.settings.slides.thumbnail_scale)
        finally:
            if hide:
                self.surface.set_active_selection(selection, notify=False)
        return SlideCapture(snapshot, to_data_url(thumbnail, "image/png"))

    # ---- Restore ----

    @trace_call("RESTORE")
    def restore_snapshot(self, snapshot: str) -> None:
        """
        Replace the live scene with *snapshot* ("" gives an empty scene).

        The background layer is kept when one is already loaded; otherwise
        the default asset is loaded asynchronously. History is reset to the
        restored state and the selection cleared.

        Raises:
            ValueError: If the snapshot cannot be parsed; the scene is
                left untouched.
        """
        with self.history.suppressed():
            self.surface.deserialize_all(snapshot, on_complete=self._after_restore)

    def _after_restore(self) -> None:
        if not self.surface.background.has_image:
            self._request_background()
        self.history.reset()
        self.surface.set_active_selection(NO_SELECTION)

    def _request_background(self) -> None:
        if self._background_pending:
            return
        self._background_pending = True
        self._schedule(self._load_background)

    def _load_background(self) -> None:
        self._background_pending = False
        if self.surface.background.has_image:
            return
        try:
            layer = self.background_loader.load()
        except AssetMissing as e:
            log.info("Using flat background: %s", e)
            trace_exception("Background asset unavailable")
            layer = self.background_loader.fallback()
        self.surface.set_background(layer)
        trace(f"Background applied ({layer.source or layer.color})", "RESTORE")


# ---------------------------------------------------------------------------
# Deck files
# ---------------------------------------------------------------------------

def save_deck(path: Union[str, Path], slides: SlideCollection) -> None:
    """Write every slide record to a JSON deck file."""
    data = {"version": DECK_FORMAT_VERSION, **slides.to_dict()}
    Path(path).write_text(json.dumps(data, indent=2), encoding="utf-8")


def load_deck(path: Union[str, Path]) -> SlideCollection:
    """Read a JSON deck file.

    Raises:
        ValueError: If the file is not a valid deck.
        OSError: If the file cannot be read.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("deck file must contain a JSON object")
    version = data.get("version")
    if version != DECK_FORMAT_VERSION:
        raise ValueError(f"unsupported deck version: {version!r}")
    return SlideCollection.from_dict(data)
