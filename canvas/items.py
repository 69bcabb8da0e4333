"""
canvas/items.py

Scene objects for slide editing: text and image items, their geometry and
their snapshot records.
"""

from __future__ import annotations

import io
import math
import uuid
from typing import Any, Dict, Optional, Tuple

from PIL import Image

from models import (
    DecodeFailure,
    Frame,
    ImageStyle,
    Kind,
    Rect,
    TextStyle,
)
from utils import parse_data_url


def new_object_id() -> str:
    """Generate a new scene object id."""
    return f"o{uuid.uuid4().hex[:12]}"


def rotated_bounds(left: float, top: float, width: float, height: float, angle: float) -> Rect:
    """Axis-aligned bounds of a box rotated by *angle* degrees about (left, top)."""
    if angle % 360 == 0:
        return Rect(left, top, width, height)
    rad = math.radians(angle)
    c, s = math.cos(rad), math.sin(rad)
    xs = []
    ys = []
    for px, py in ((0.0, 0.0), (width, 0.0), (width, height), (0.0, height)):
        xs.append(left + px * c - py * s)
        ys.append(top + px * s + py * c)
    return Rect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


class SceneObject:
    """Base for placed objects. Subclasses set ``KIND`` and a ``style``."""

    KIND = "unknown"

    def __init__(self, frame: Frame, object_id: Optional[str] = None):
        self.id = object_id or new_object_id()
        self.frame = frame

    @property
    def kind(self) -> str:
        return self.KIND

    def outer_size(self) -> Tuple[float, float]:
        """Unrotated size including scale (and stroke, for images)."""
        return (self.frame.width * self.frame.scale_x, self.frame.height * self.frame.scale_y)

    def bounding_rect(self) -> Rect:
        """Axis-aligned bounding box computed from the current geometry."""
        w, h = self.outer_size()
        return rotated_bounds(self.frame.left, self.frame.top, w, h, self.frame.angle)

    def translate(self, dx: float, dy: float) -> None:
        self.frame.left += dx
        self.frame.top += dy

    def to_record(self) -> Dict[str, Any]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class TextObject(SceneObject):
    """Editable text box.

    ``editing`` and ``caret`` describe an in-progress inline edit and are
    never serialized.
    """

    KIND = Kind.TEXT

    def __init__(self, frame: Frame, text: str, style: Optional[TextStyle] = None,
                 object_id: Optional[str] = None):
        super().__init__(frame, object_id)
        self.text = text
        self.style = style or TextStyle()
        self.editing = False
        self.caret = len(text)
        self.text_before_edit: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.KIND,
            "geom": self.frame.to_dict(),
            "style": self.style.to_dict(),
            "text": self.text,
        }


class ImageObject(SceneObject):
    """Raster image. ``src`` holds the (PNG) data URL of the pixels."""

    KIND = Kind.IMAGE

    def __init__(self, frame: Frame, src: str, style: Optional[ImageStyle] = None,
                 object_id: Optional[str] = None, pixels: Optional[Image.Image] = None):
        super().__init__(frame, object_id)
        self.src = src
        self.style = style or ImageStyle()
        self._pixels = pixels

    def outer_size(self) -> Tuple[float, float]:
        w, h = super().outer_size()
        if self.style.stroke_width > 0:
            return (w + self.style.stroke_width, h + self.style.stroke_width)
        return (w, h)

    def pixels(self) -> Image.Image:
        """Decoded RGBA pixels, decoded from ``src`` on first use."""
        if self._pixels is None:
            try:
                _mime, data = parse_data_url(self.src)
                with Image.open(io.BytesIO(data)) as im:
                    self._pixels = im.convert("RGBA")
            except (ValueError, OSError) as e:
                raise DecodeFailure(f"image {self.id} has undecodable source") from e
        return self._pixels

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.KIND,
            "geom": self.frame.to_dict(),
            "style": self.style.to_dict(),
            "src": self.src,
        }


def object_from_record(rec: Dict[str, Any]) -> SceneObject:
    """Rebuild a scene object from its snapshot record.

    Raises:
        ValueError: If the record's kind is unknown or its geometry invalid.
    """
    kind = rec.get("kind")
    frame = Frame.from_dict(rec.get("geom", {}))
    object_id = rec.get("id") or None
    if kind == Kind.TEXT:
        return TextObject(frame, str(rec.get("text", "")), TextStyle.from_dict(rec.get("style", {})), object_id)
    if kind == Kind.IMAGE:
        return ImageObject(frame, str(rec.get("src", "")), ImageStyle.from_dict(rec.get("style", {})), object_id)
    raise ValueError(f"unknown scene object kind: {kind!r}")
