"""
canvas/factory.py

Creates text and image objects with normalized default geometry and applies
validated property edits coming from the property panel.
"""

from __future__ import annotations

import io
import logging
import math
import mimetypes
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional

from PIL import Image

from canvas.items import ImageObject, SceneObject, TextObject
from canvas.surface import SceneSurface
from models import (
    AVAILABLE_FONTS,
    FONT_WEIGHTS,
    TEXT_ALIGNMENTS,
    DecodeFailure,
    Frame,
    ImageStyle,
    InvalidFileType,
    InvalidProperty,
    Kind,
    TextStyle,
    make_selection,
    require_finite,
)
from settings import AppSettings
from utils import normalize_hex_color, sniff_image_mime, to_data_url

log = logging.getLogger(__name__)

_FONT_VALUES = frozenset(value for value, _label in AVAILABLE_FONTS)

# PNG cannot store these modes directly
_PNG_CONVERT_MODES = {"CMYK": "RGB", "YCbCr": "RGB", "LAB": "RGB", "HSV": "RGB", "F": "L"}


# ---------------------------------------------------------------------------
# Value validators
# ---------------------------------------------------------------------------

def _int_in_range(name: str, lo: int, hi: int) -> Callable[[Any], int]:
    def check(value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidProperty(f"{name} must be an integer, got {value!r}")
        if isinstance(value, float) and not value.is_integer():
            raise InvalidProperty(f"{name} must be an integer, got {value!r}")
        value = int(value)
        if not lo <= value <= hi:
            raise InvalidProperty(f"{name} must be between {lo} and {hi}, got {value}")
        return value
    return check


def _number_in_range(name: str, lo: float, hi: float) -> Callable[[Any], float]:
    def check(value: Any) -> float:
        value = require_finite(name, value)
        if not lo <= value <= hi:
            raise InvalidProperty(f"{name} must be between {lo} and {hi}, got {value}")
        return value
    return check


def _one_of(name: str, choices) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        if value not in choices:
            raise InvalidProperty(f"{name} must be one of {sorted(choices)}, got {value!r}")
        return value
    return check


def _color(name: str) -> Callable[[Any], str]:
    def check(value: Any) -> str:
        color = normalize_hex_color(value)
        if color is None:
            raise InvalidProperty(f"{name} must be a #RRGGBB color, got {value!r}")
        return color
    return check


def _text(value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidProperty(f"text must be a string, got {value!r}")
    return value


TEXT_VALIDATORS: Dict[str, Callable[[Any], Any]] = {
    "text": _text,
    "font_family": _one_of("font_family", _FONT_VALUES),
    "font_size": _int_in_range("font_size", 12, 200),
    "fill": _color("fill"),
    "font_weight": _one_of("font_weight", FONT_WEIGHTS),
    "text_align": _one_of("text_align", TEXT_ALIGNMENTS),
}

# Opacity is edited as an integer percentage
IMAGE_VALIDATORS: Dict[str, Callable[[Any], Any]] = {
    "opacity": _int_in_range("opacity", 0, 100),
    "angle": _number_in_range("angle", 0, 360),
    "stroke_width": _number_in_range("stroke_width", 0, 50),
    "stroke": _color("stroke"),
}


@contextmanager
def _pixel_limit(limit: int):
    """Raise Pillow's decompression-bomb threshold to *limit* pixels."""
    saved = Image.MAX_IMAGE_PIXELS
    Image.MAX_IMAGE_PIXELS = limit
    try:
        yield
    finally:
        Image.MAX_IMAGE_PIXELS = saved


def _resolve_mime(raw: bytes, mime_type: Optional[str], filename: Optional[str]) -> Optional[str]:
    if mime_type:
        return mime_type
    if filename:
        guessed, _enc = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return sniff_image_mime(raw)


class ObjectFactory:
    """
    Builds scene objects and edits their properties.

    Args:
        surface: The live scene the objects are inserted into.
        settings: Application settings (canvas size, defaults, image limits).
    """

    def __init__(self, surface: SceneSurface, settings: AppSettings):
        self.surface = surface
        self.settings = settings

    # ---- Creation ----

    def create_text(self) -> TextObject:
        """Insert a default text box at the canvas center and select it."""
        d = self.settings.text
        frame = Frame(
            left=self.surface.width / 2 - d.width / 2,
            top=self.surface.height / 2 - d.height / 2,
            width=d.width,
            height=d.height,
        )
        style = TextStyle(
            font_family=d.font_family,
            font_size=d.font_size,
            fill=d.fill,
            font_weight=d.font_weight,
            text_align=d.text_align,
        )
        obj = TextObject(frame, d.text, style)
        self._insert(obj)
        return obj

    def create_image(self, raw: bytes, mime_type: Optional[str] = None,
                     filename: Optional[str] = None) -> ImageObject:
        """
        Decode, normalize and insert an uploaded image, then select it.

        Images larger than ``images.max_dimension`` on either side are
        downsized (aspect ratio kept) and re-encoded as PNG. The object is
        scaled to fit half the canvas, never above half its native size,
        and centered.

        Args:
            raw: The uploaded file content.
            mime_type: Declared content type, if the caller knows it.
            filename: Original file name, used to guess the type.

        Raises:
            InvalidFileType: If the content is not an image.
            DecodeFailure: If the image cannot be decoded.
        """
        mime = _resolve_mime(raw, mime_type, filename)
        if not mime or not mime.startswith("image/"):
            raise InvalidFileType(f"not an image file (type {mime or 'unknown'})")

        src, width, height = self._normalize_image(raw, mime)

        cw, ch = self.surface.width, self.surface.height
        limits = self.settings.images
        scale = min(
            cw * limits.max_canvas_fraction / width,
            ch * limits.max_canvas_fraction / height,
            limits.max_initial_scale,
        )
        frame = Frame(
            left=cw / 2 - width * scale / 2,
            top=ch / 2 - height * scale / 2,
            width=width,
            height=height,
            scale_x=scale,
            scale_y=scale,
        )
        obj = ImageObject(frame, src, ImageStyle())
        self._insert(obj)
        return obj

    def _normalize_image(self, raw: bytes, mime: str):
        """Return (data URL, width, height), downsizing oversized images."""
        max_dim = self.settings.images.max_dimension
        max_pixels = self.settings.images.max_decode_pixels
        try:
            with _pixel_limit(max_pixels), Image.open(io.BytesIO(raw)) as im:
                width, height = im.size
                if not width or not height:
                    raise DecodeFailure("image has zero size")
                if width * height > max_pixels:
                    raise DecodeFailure(f"image of {width}x{height} exceeds {max_pixels} pixels")
                im.load()
                if width <= max_dim and height <= max_dim:
                    return to_data_url(raw, mime), width, height

                scale = min(max_dim / width, max_dim / height)
                new_size = (max(1, math.floor(width * scale)), max(1, math.floor(height * scale)))
                log.debug("Downsizing %dx%d image to %dx%d", width, height, *new_size)
                resized = im.resize(new_size, Image.Resampling.LANCZOS)
        except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
            raise DecodeFailure(f"image could not be decoded: {e}") from e

        if resized.mode in _PNG_CONVERT_MODES:
            resized = resized.convert(_PNG_CONVERT_MODES[resized.mode])
        buf = io.BytesIO()
        resized.save(buf, format="PNG")
        return to_data_url(buf.getvalue(), "image/png"), new_size[0], new_size[1]

    def _insert(self, obj: SceneObject) -> None:
        self.surface.add_object(obj)
        self.surface.set_active_selection(make_selection([obj.id]))

    # ---- Property edits ----

    def set_text_property(self, obj: SceneObject, name: str, value: Any) -> None:
        """Validate and apply one text attribute, then report the change."""
        if obj.kind != Kind.TEXT:
            raise InvalidProperty(f"{obj.id} is not a text object")
        validator = TEXT_VALIDATORS.get(name)
        if validator is None:
            raise InvalidProperty(f"unknown text property {name!r}")
        value = validator(value)

        if name == "text":
            if obj.text == value:
                return
            obj.text = value
            obj.caret = min(obj.caret, len(value))
        else:
            if getattr(obj.style, name) == value:
                return
            setattr(obj.style, name, value)
        self.surface.notify_modified([obj])

    def set_image_property(self, obj: SceneObject, name: str, value: Any) -> None:
        """
        Validate and apply one image attribute, then report the change.

        ``opacity`` takes a 0–100 percentage. A positive ``stroke_width``
        on an image without a stroke color applies the default color; a
        zero width leaves the stored color in place.
        """
        if obj.kind != Kind.IMAGE:
            raise InvalidProperty(f"{obj.id} is not an image object")
        validator = IMAGE_VALIDATORS.get(name)
        if validator is None:
            raise InvalidProperty(f"unknown image property {name!r}")
        value = validator(value)

        style = obj.style
        if name == "opacity":
            fraction = value / 100
            if style.opacity == fraction:
                return
            style.opacity = fraction
        elif name == "angle":
            if obj.frame.angle == value:
                return
            obj.frame.angle = value
        elif name == "stroke_width":
            if style.stroke_width == value and (value == 0 or style.stroke):
                return
            style.stroke_width = value
            if value > 0 and not style.stroke:
                style.stroke = self.settings.images.default_stroke_color
        elif name == "stroke":
            if style.stroke == value:
                return
            style.stroke = value
        self.surface.notify_modified([obj])

    # ---- Editor-facing views ----

    @staticmethod
    def text_properties(obj: TextObject) -> Dict[str, Any]:
        """Current text attributes as the property panel shows them."""
        return {
            "text": obj.text,
            "font_family": obj.style.font_family,
            "font_size": obj.style.font_size,
            "fill": obj.style.fill,
            "font_weight": obj.style.font_weight,
            "text_align": obj.style.text_align,
        }

    def image_properties(self, obj: ImageObject) -> Dict[str, Any]:
        """Current image attributes as the property panel shows them.

        ``stroke_enabled`` is False while the stroke width is zero; the
        color control must be disabled then.
        """
        return {
            "opacity": round(obj.style.opacity * 100),
            "angle": round(obj.frame.angle),
            "stroke_width": obj.style.stroke_width,
            "stroke": obj.style.stroke or self.settings.images.default_stroke_color,
            "stroke_enabled": obj.style.stroke_width > 0,
        }
