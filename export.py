"""
export.py

Export slides to raster images.

Each slide snapshot is rendered on an offscreen surface that shares the
live background, so exports never disturb the scene being edited. A whole
deck goes into a ZIP archive with one image per slide.
"""

from __future__ import annotations

import datetime as _dt
import logging
import zipfile
from pathlib import Path
from typing import Iterable, List, Optional, Union

from canvas.surface import RASTER_FORMATS, BackgroundLayer, SceneSurface
from debug_trace import trace
from models import Slide
from settings import AppSettings
from utils import slide_file_name

log = logging.getLogger(__name__)

# File extension for each raster format
EXTENSIONS = {"png": "png", "jpeg": "jpg"}


def default_base_name(prefix: str, count: int, today: Optional[_dt.date] = None) -> str:
    """Base file name ``<prefix>_<YYYYMMDD>_<count>``."""
    today = today or _dt.date.today()
    return f"{prefix}_{today:%Y%m%d}_{count}"


def render_snapshot(
    snapshot: str,
    settings: AppSettings,
    background: Optional[BackgroundLayer] = None,
    fmt: Optional[str] = None,
    multiplier: float = 1.0,
) -> bytes:
    """
    Render one scene snapshot to encoded image bytes.

    Args:
        snapshot: Serialized scene ("" renders just the background).
        settings: Application settings (canvas size, export quality).
        background: Background layer to draw under the objects.
        fmt: "png" or "jpeg"; defaults to ``export.format``.
        multiplier: Output scale relative to the canvas size.

    Raises:
        ValueError: If the snapshot or format is invalid.
    """
    fmt = fmt or settings.export.format
    if fmt not in RASTER_FORMATS:
        raise ValueError(f"unsupported export format: {fmt!r}")

    offscreen = SceneSurface(settings.canvas)
    if background is not None:
        offscreen.set_background(background)
    offscreen.deserialize_all(snapshot)
    return offscreen.to_raster(fmt, multiplier, quality=settings.export.jpeg_quality)


class SlideExporter:
    """
    Writes slide images to disk.

    Args:
        settings: Application settings.
        background: Background layer shared with the live scene.
    """

    def __init__(self, settings: AppSettings, background: Optional[BackgroundLayer] = None):
        self.settings = settings
        self.background = background

    @property
    def format(self) -> str:
        return self.settings.export.format

    @property
    def extension(self) -> str:
        return EXTENSIONS.get(self.format, self.format)

    def render(self, slide: Slide) -> bytes:
        return render_snapshot(slide.snapshot, self.settings, self.background, self.format)

    def export_slide(self, slide: Slide, index: int, directory: Union[str, Path],
                     base_name: str) -> Path:
        """Write one slide as ``<base>_<NNN>.<ext>`` inside *directory*."""
        path = Path(directory) / slide_file_name(base_name, index, self.extension)
        path.write_bytes(self.render(slide))
        trace(f"Exported slide {index + 1} to {path}", "EXPORT")
        return path

    def export_all(self, slides: Iterable[Slide], zip_path: Union[str, Path],
                   base_name: Optional[str] = None) -> List[str]:
        """
        Write every slide into one ZIP archive.

        Returns:
            The archive member names, in slide order.
        """
        slides = list(slides)
        base_name = base_name or default_base_name(self.settings.export.base_name_prefix, len(slides))
        names = []
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for index, slide in enumerate(slides):
                name = slide_file_name(base_name, index, self.extension)
                zf.writestr(name, self.render(slide))
                names.append(name)
        log.info("Exported %d slides to %s", len(names), zip_path)
        return names
