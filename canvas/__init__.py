"""
canvas package

Live scene model for slide editing: scene objects, the scene surface, the
object factory and the selection engine.
"""

from canvas.events import (
    EventBus,
    ObjectAdded,
    ObjectModified,
    ObjectRemoved,
    SelectionChanged,
)
from canvas.items import ImageObject, SceneObject, TextObject, object_from_record
from canvas.surface import BackgroundLayer, SceneSurface
from canvas.factory import ObjectFactory
from canvas.selection import SelectionEngine

__all__ = [
    "EventBus",
    "ObjectAdded",
    "ObjectModified",
    "ObjectRemoved",
    "SelectionChanged",
    "SceneObject",
    "TextObject",
    "ImageObject",
    "object_from_record",
    "BackgroundLayer",
    "SceneSurface",
    "ObjectFactory",
    "SelectionEngine",
]
