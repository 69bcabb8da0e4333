"""
models.py

Data models, constants and the error taxonomy for SlideKit.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Tuple, Union


# ----------------------------
# Error taxonomy
# ----------------------------

class SlideKitError(Exception):
    """Base class for errors surfaced to the editor's caller."""


class InvalidFileType(SlideKitError):
    """An upload was not image data."""


class DecodeFailure(SlideKitError):
    """Image bytes could not be rasterized (corrupt or unsupported file)."""


class InvalidProperty(SlideKitError, ValueError):
    """A property edit named an unknown attribute or carried an invalid value."""


class AssetMissing(SlideKitError):
    """The background asset is absent or has zero intrinsic dimensions.

    Always recovered with a flat fill; never shown to the user.
    """


# ----------------------------
# Object kinds
# ----------------------------

class Kind:
    """Scene object kind discriminants."""
    TEXT = "text"
    IMAGE = "image"


# Font families offered by the property editor (value, label)
AVAILABLE_FONTS: List[Tuple[str, str]] = [
    ("Arial, sans-serif", "Arial"),
    ("LightNovelPOP, sans-serif", "LightNovelPOP"),
    ('"Hiragino Sans", sans-serif', "Hiragino Sans"),
    ('"Yu Gothic", sans-serif', "Yu Gothic"),
    ('"MS Gothic", sans-serif', "MS Gothic"),
    ("serif", "Serif"),
]

FONT_WEIGHTS = ("normal", "bold")
TEXT_ALIGNMENTS = ("left", "center", "right")


def require_finite(name: str, value: Any) -> float:
    """Return *value* as a float, rejecting booleans, NaN and infinities."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidProperty(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidProperty(f"{name} must be finite, got {value!r}")
    return float(value)


# ----------------------------
# Geometry
# ----------------------------

class Rect(NamedTuple):
    """Axis-aligned rectangle in canvas coordinates."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center_x(self) -> float:
        return self.left + self.width / 2

    @property
    def center_y(self) -> float:
        return self.top + self.height / 2

    @staticmethod
    def union(rects: Iterable["Rect"]) -> "Rect":
        """Smallest rectangle containing every rect in *rects*."""
        rects = list(rects)
        if not rects:
            raise ValueError("union of no rectangles")
        left = min(r.left for r in rects)
        top = min(r.top for r in rects)
        right = max(r.right for r in rects)
        bottom = max(r.bottom for r in rects)
        return Rect(left, top, right - left, bottom - top)


@dataclass
class Frame:
    """Geometric frame of a scene object.

    ``left``/``top`` locate the unrotated top-left corner, which is also the
    rotation pivot. ``angle`` is in degrees, clockwise.
    """
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    angle: float = 0.0

    def __post_init__(self):
        for f in fields(self):
            setattr(self, f.name, require_finite(f.name, getattr(self, f.name)))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Frame":
        return cls(
            left=d.get("x", 0.0),
            top=d.get("y", 0.0),
            width=d.get("w", 0.0),
            height=d.get("h", 0.0),
            scale_x=d.get("sx", 1.0),
            scale_y=d.get("sy", 1.0),
            angle=d.get("angle", 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self.left,
            "y": self.top,
            "w": self.width,
            "h": self.height,
            "sx": self.scale_x,
            "sy": self.scale_y,
            "angle": self.angle,
        }


# ----------------------------
# Style models
# ----------------------------

@dataclass
class TextStyle:
    """Styling attributes of a text object.

    Unknown keys found in a snapshot are kept in ``extras`` so they survive
    the snapshot → scene → snapshot round-trip.
    """
    font_family: str = "Arial, sans-serif"
    font_size: int = 48
    fill: str = "#000000"
    font_weight: str = "normal"    # normal | bold
    text_align: str = "left"       # left | center | right
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TextStyle":
        return _style_from_dict(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return _style_to_dict(self)


@dataclass
class ImageStyle:
    """Styling attributes of an image object.

    ``opacity`` is stored as a 0–1 fraction. ``stroke`` is only meaningful
    while ``stroke_width`` is positive; a zero width leaves it in place.
    """
    opacity: float = 1.0
    stroke: Optional[str] = None
    stroke_width: float = 0.0
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def stroke_enabled(self) -> bool:
        return self.stroke_width > 0 and bool(self.stroke)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ImageStyle":
        return _style_from_dict(cls, d)

    def to_dict(self) -> Dict[str, Any]:
        return _style_to_dict(self)


def _style_from_dict(cls, d: Dict[str, Any]):
    if not isinstance(d, dict):
        return cls()
    known_names = {f.name for f in fields(cls) if f.name != "extras"}
    known = {}
    extras = {}
    for k, v in d.items():
        if k in known_names:
            known[k] = v
        else:
            extras[k] = v
    return cls(**known, extras=extras)


def _style_to_dict(style) -> Dict[str, Any]:
    d = {f.name: getattr(style, f.name) for f in fields(style) if f.name != "extras"}
    d.update(style.extras)
    return d


# ----------------------------
# Selection
# ----------------------------

@dataclass(frozen=True)
class NoSelection:
    """Nothing selected."""

    @property
    def ids(self) -> Tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class SingleSelection:
    """Exactly one selected object."""
    object_id: str

    @property
    def ids(self) -> Tuple[str, ...]:
        return (self.object_id,)


@dataclass(frozen=True)
class GroupSelection:
    """Two or more selected objects, in selection order."""
    object_ids: Tuple[str, ...]

    def __post_init__(self):
        if len(self.object_ids) < 2:
            raise ValueError("a group selection needs at least two members")

    @property
    def ids(self) -> Tuple[str, ...]:
        return self.object_ids


Selection = Union[NoSelection, SingleSelection, GroupSelection]

NO_SELECTION = NoSelection()


def make_selection(object_ids: Iterable[str]) -> Selection:
    """Build the selection variant for a set of object ids.

    Duplicates are dropped (first occurrence wins); one id degenerates to
    ``SingleSelection`` and none to ``NoSelection``.
    """
    unique: List[str] = []
    for oid in object_ids:
        if oid not in unique:
            unique.append(oid)
    if not unique:
        return NO_SELECTION
    if len(unique) == 1:
        return SingleSelection(unique[0])
    return GroupSelection(tuple(unique))


# ----------------------------
# Slides
# ----------------------------

@dataclass
class Slide:
    """One slide record.

    An empty ``snapshot`` means "blank / not yet populated"; an empty
    ``thumbnail`` means "not yet rendered".
    """
    id: str
    snapshot: str = ""
    thumbnail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "snapshot": self.snapshot, "thumbnail": self.thumbnail}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Slide":
        return cls(
            id=str(d["id"]),
            snapshot=str(d.get("snapshot", "")),
            thumbnail=str(d.get("thumbnail", "")),
        )


class SlideCapture(NamedTuple):
    """Serialized scene plus its thumbnail data URL."""
    snapshot: str
    thumbnail: str
