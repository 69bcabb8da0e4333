"""
canvas/surface.py

The live scene: ordered object list, active selection, background layer,
serialization and rasterization. Every change is published on the scene's
EventBus.
"""

from __future__ import annotations

import io
import json
import logging
from functools import lru_cache
from typing import Callable, Iterable, List, Optional

from PIL import Image, ImageDraw, ImageFont

from canvas.events import EventBus, ObjectAdded, ObjectModified, ObjectRemoved, SelectionChanged
from canvas.items import ImageObject, SceneObject, TextObject, object_from_record
from models import NO_SELECTION, DecodeFailure, Kind, Rect, Selection, make_selection
from settings import CanvasSettings
from utils import hex_to_rgb

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

RASTER_FORMATS = {"png": "PNG", "jpeg": "JPEG"}

_TEXT_ANCHORS = {"left": "la", "center": "ma", "right": "ra"}


@lru_cache(maxsize=64)
def _load_font(family: str, weight: str, size: int):
    """Resolve a CSS-like font family list to a Pillow font of *size* px."""
    for name in family.split(","):
        name = name.strip().strip('"').strip("'")
        if not name or name in ("serif", "sans-serif"):
            continue
        candidates = [f"{name}.ttf", f"{name.lower().replace(' ', '')}.ttf"]
        if weight == "bold":
            candidates.insert(0, f"{name} Bold.ttf")
        for candidate in candidates:
            try:
                return ImageFont.truetype(candidate, size)
            except OSError:
                continue
    return ImageFont.load_default(size=size)


class BackgroundLayer:
    """Canvas background: a flat color, optionally covered by an image."""

    def __init__(self, color: str, image: Optional[Image.Image] = None, source: str = ""):
        self.color = color
        self.image = image
        self.source = source

    @property
    def has_image(self) -> bool:
        return self.image is not None

    def to_record(self) -> dict:
        return {"color": self.color, "image": self.source or None}


class SceneSurface:
    """
    Live scene for one canvas.

    Holds the z-ordered object list (index 0 is the back) and the active
    selection as a pure id set. Components receive the surface explicitly
    and observe it through ``bus``.

    Args:
        settings: Canvas geometry and background settings.
        bus: Event bus to publish on; a new one is created when omitted.
    """

    def __init__(self, settings: CanvasSettings, bus: Optional[EventBus] = None):
        self.settings = settings
        self.width = settings.width
        self.height = settings.height
        self.bus = bus or EventBus()
        self._objects: List[SceneObject] = []
        self._selection: Selection = NO_SELECTION
        self.background = BackgroundLayer(settings.background_color)
        self._restoring = False

    # ---- Object list ----

    @property
    def is_restoring(self) -> bool:
        """True while a snapshot is being applied; mutations must wait."""
        return self._restoring

    def list_objects(self) -> List[SceneObject]:
        """Objects in z-order, back to front."""
        return list(self._objects)

    def get_object(self, object_id: str) -> Optional[SceneObject]:
        for obj in self._objects:
            if obj.id == object_id:
                return obj
        return None

    def z_index(self, obj: SceneObject) -> int:
        return self._objects.index(obj)

    def add_object(self, obj: SceneObject) -> None:
        """Append *obj* on top of the z-order."""
        if self.get_object(obj.id) is not None:
            raise ValueError(f"duplicate object id {obj.id}")
        self._objects.append(obj)
        self.bus.publish(ObjectAdded((obj.id,)))

    def remove_object(self, obj: SceneObject) -> None:
        self.remove_objects([obj])

    def remove_objects(self, objects: Iterable[SceneObject]) -> None:
        """Remove several objects with a single ObjectRemoved event."""
        ids = tuple(o.id for o in objects if o in self._objects)
        if not ids:
            return
        self._objects = [o for o in self._objects if o.id not in ids]
        remaining = [oid for oid in self._selection.ids if oid not in ids]
        if len(remaining) != len(self._selection.ids):
            self._selection = make_selection(remaining)
            self.bus.publish(SelectionChanged(self._selection))
        self.bus.publish(ObjectRemoved(ids))

    def move_to_front(self, objects: Iterable[SceneObject]) -> None:
        self._restack(objects, front=True)

    def move_to_back(self, objects: Iterable[SceneObject]) -> None:
        self._restack(objects, front=False)

    def _restack(self, objects: Iterable[SceneObject], front: bool) -> None:
        ids = {o.id for o in objects}
        moved = [o for o in self._objects if o.id in ids]
        if not moved:
            return
        rest = [o for o in self._objects if o.id not in ids]
        order = rest + moved if front else moved + rest
        if [o.id for o in order] == [o.id for o in self._objects]:
            return
        self._objects = order
        self.bus.publish(ObjectModified(tuple(o.id for o in moved)))

    def notify_modified(self, objects: Iterable[SceneObject]) -> None:
        """Publish one ObjectModified for objects changed in place."""
        ids = tuple(o.id for o in objects)
        if ids:
            self.bus.publish(ObjectModified(ids))

    # ---- Selection ----

    def get_active_selection(self) -> Selection:
        return self._selection

    def set_active_selection(self, selection: Selection, notify: bool = True) -> None:
        """Replace the active selection. Ids not in the scene are dropped.

        Leaving a text object that is mid-edit finishes the edit first.
        """
        selection = make_selection(oid for oid in selection.ids if self.get_object(oid) is not None)
        if selection == self._selection:
            return
        editing = self.editing_object()
        if editing is not None and selection.ids != (editing.id,):
            self.end_text_editing()
        self._selection = selection
        if notify:
            self.bus.publish(SelectionChanged(selection))

    def selected_objects(self) -> List[SceneObject]:
        """Selected objects in selection order."""
        out = []
        for oid in self._selection.ids:
            obj = self.get_object(oid)
            if obj is not None:
                out.append(obj)
        return out

    # ---- Inline text editing ----

    def editing_object(self) -> Optional[TextObject]:
        """The text object currently in live editing mode, if any."""
        for obj in self._objects:
            if isinstance(obj, TextObject) and obj.editing:
                return obj
        return None

    def begin_text_editing(self, obj: TextObject) -> None:
        """Select *obj* and enter inline editing with the caret at the end."""
        if obj.kind != Kind.TEXT or obj not in self._objects:
            raise ValueError("only a text object in this scene can be edited")
        self.set_active_selection(make_selection([obj.id]))
        obj.editing = True
        obj.caret = len(obj.text)
        obj.text_before_edit = obj.text

    def update_editing_text(self, text: str, caret: Optional[int] = None) -> None:
        """Live keystroke update; the mutation is reported when editing ends."""
        obj = self.editing_object()
        if obj is None:
            return
        obj.text = text
        obj.caret = len(text) if caret is None else max(0, min(caret, len(text)))

    def end_text_editing(self) -> None:
        obj = self.editing_object()
        if obj is None:
            return
        obj.editing = False
        before = obj.text_before_edit
        obj.text_before_edit = None
        if before is not None and obj.text != before:
            self.notify_modified([obj])

    # ---- Serialization ----

    def serialize_all(self) -> str:
        """Serialize every object plus the background reference."""
        data = {
            "version": SNAPSHOT_VERSION,
            "objects": [o.to_record() for o in self._objects],
            "background": self.background.to_record(),
        }
        return json.dumps(data, sort_keys=True, separators=(",", ":"))

    def deserialize_all(self, snapshot: str, on_complete: Optional[Callable[[], None]] = None) -> None:
        """Replace all objects with those in *snapshot*.

        The snapshot is fully parsed before the scene is touched, so a bad
        snapshot leaves the scene unchanged. The background layer is kept.
        An empty string yields an empty scene. *on_complete* runs before
        the restoring flag is cleared.

        Raises:
            ValueError: If the snapshot cannot be parsed.
        """
        if self._restoring:
            raise RuntimeError("a restore is already in progress")
        objects = self.parse_snapshot(snapshot)

        self._restoring = True
        try:
            editing = self.editing_object()
            if editing is not None:
                editing.editing = False
            old_ids = tuple(o.id for o in self._objects)
            self._objects = []
            if self._selection != NO_SELECTION:
                self._selection = NO_SELECTION
                self.bus.publish(SelectionChanged(NO_SELECTION))
            if old_ids:
                self.bus.publish(ObjectRemoved(old_ids))
            self._objects = objects
            if objects:
                self.bus.publish(ObjectAdded(tuple(o.id for o in objects)))
            if on_complete is not None:
                on_complete()
        finally:
            self._restoring = False

    @staticmethod
    def parse_snapshot(snapshot: str) -> List[SceneObject]:
        """Build the objects of *snapshot* without touching any scene.

        Image sources are decoded here, so a snapshot that parses can
        always be rendered.

        Raises:
            ValueError: If the snapshot cannot be parsed.
        """
        if not snapshot:
            return []
        try:
            data = json.loads(snapshot)
            records = data["objects"]
            if not isinstance(records, list):
                raise TypeError("objects must be a list")
            objects = [object_from_record(rec) for rec in records]
        except (ValueError, TypeError, KeyError) as e:
            raise ValueError(f"invalid scene snapshot: {e}") from e
        if len({o.id for o in objects}) != len(objects):
            raise ValueError("invalid scene snapshot: duplicate object ids")
        for obj in objects:
            if isinstance(obj, ImageObject):
                try:
                    obj.pixels()
                except DecodeFailure as e:
                    raise ValueError(f"invalid scene snapshot: {e}") from e
        return objects

    def set_background(self, layer: BackgroundLayer) -> None:
        self.background = layer

    # ---- Rendering ----

    def render_frame(self, multiplier: float = 1.0, decorations: bool = True) -> Image.Image:
        """Rasterize the scene to an RGBA image.

        Args:
            multiplier: Linear scale of the output relative to the canvas.
            decorations: Draw selection outlines and the text caret.
        """
        w = max(1, round(self.width * multiplier))
        h = max(1, round(self.height * multiplier))
        frame = Image.new("RGBA", (w, h), hex_to_rgb(self.background.color) or (255, 255, 255))
        if self.background.image is not None:
            bg = self.background.image.convert("RGBA").resize((w, h))
            frame.alpha_composite(bg)

        for obj in self._objects:
            self._draw_object(frame, obj, multiplier)

        if decorations:
            self._draw_decorations(frame, multiplier)
        return frame

    def to_raster(self, fmt: str = "png", multiplier: float = 1.0, quality: int = 95) -> bytes:
        """Encode the current frame as PNG or JPEG bytes."""
        if fmt not in RASTER_FORMATS:
            raise ValueError(f"unsupported raster format: {fmt!r}")
        image = self.render_frame(multiplier).convert("RGB")
        buf = io.BytesIO()
        if fmt == "jpeg":
            image.save(buf, format=RASTER_FORMATS[fmt], quality=quality)
        else:
            image.save(buf, format=RASTER_FORMATS[fmt])
        return buf.getvalue()

    def _draw_object(self, frame: Image.Image, obj: SceneObject, m: float) -> None:
        w, h = obj.outer_size()
        tw = max(1, round(w * m))
        th = max(1, round(h * m))
        if obj.kind == Kind.TEXT:
            tile = self._text_tile(obj, tw, th, m)
        elif obj.kind == Kind.IMAGE:
            tile = self._image_tile(obj, tw, th, m)
        else:
            raise ValueError(f"unknown scene object kind: {obj.kind!r}")

        if obj.frame.angle % 360:
            tile = tile.rotate(-obj.frame.angle, resample=Image.Resampling.BICUBIC, expand=True)
        box = obj.bounding_rect()
        frame.paste(tile, (round(box.left * m), round(box.top * m)), tile)

    @staticmethod
    def _text_tile(obj: TextObject, tw: int, th: int, m: float) -> Image.Image:
        tile = Image.new("RGBA", (tw, th), (0, 0, 0, 0))
        style = obj.style
        size = max(1, round(style.font_size * m * obj.frame.scale_y))
        font = _load_font(style.font_family, style.font_weight, size)
        fill = hex_to_rgb(style.fill) or (0, 0, 0)
        draw = ImageDraw.Draw(tile)
        if isinstance(font, ImageFont.FreeTypeFont):
            anchor = _TEXT_ANCHORS.get(style.text_align, "la")
            x = {"la": 0, "ma": tw / 2, "ra": tw}[anchor]
            draw.multiline_text(
                (x, 0), obj.text, fill=fill, font=font, anchor=anchor, align=style.text_align,
                stroke_width=1 if style.font_weight == "bold" else 0, stroke_fill=fill,
            )
        else:
            # Bitmap fallback font: no anchors or strokes
            draw.multiline_text((0, 0), obj.text, fill=fill, font=font, align=style.text_align)
        return tile

    @staticmethod
    def _image_tile(obj: ImageObject, tw: int, th: int, m: float) -> Image.Image:
        style = obj.style
        sw = round(style.stroke_width * m) if style.stroke_width > 0 else 0
        iw = max(1, tw - sw)
        ih = max(1, th - sw)
        pixels = obj.pixels().resize((iw, ih))
        if style.opacity < 1:
            alpha = pixels.getchannel("A").point(lambda a: round(a * style.opacity))
            pixels.putalpha(alpha)
        tile = Image.new("RGBA", (tw, th), (0, 0, 0, 0))
        tile.paste(pixels, (sw // 2, sw // 2), pixels)
        if style.stroke_enabled and sw > 0:
            draw = ImageDraw.Draw(tile)
            draw.rectangle((0, 0, tw - 1, th - 1), outline=hex_to_rgb(style.stroke), width=sw)
        return tile

    def _draw_decorations(self, frame: Image.Image, m: float) -> None:
        selected = self.selected_objects()
        if not selected:
            return
        draw = ImageDraw.Draw(frame)
        color = hex_to_rgb(self.settings.selection_color) or (0, 120, 215)
        rects = [o.bounding_rect() for o in selected]
        for r in rects:
            draw.rectangle(_scaled_box(r, m), outline=color, width=1)
        if len(rects) > 1:
            draw.rectangle(_scaled_box(Rect.union(rects), m), outline=color, width=2)

        editing = self.editing_object()
        if editing is not None:
            size = max(1, round(editing.style.font_size * m))
            font = _load_font(editing.style.font_family, editing.style.font_weight, size)
            line = editing.text[:editing.caret].split("\n")
            x = (editing.frame.left * m) + font.getlength(line[-1])
            y = (editing.frame.top * m) + size * (len(line) - 1)
            draw.line((x, y, x, y + size), fill=hex_to_rgb(editing.style.fill) or (0, 0, 0), width=1)


def _scaled_box(r: Rect, m: float):
    return (r.left * m, r.top * m, max(r.left, r.right - 1) * m, max(r.top, r.bottom - 1) * m)
