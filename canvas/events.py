"""
canvas/events.py

Typed scene events and the publish/subscribe bus that carries them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple, Union

from PyQt6.QtCore import QObject, pyqtSignal

from models import Selection


@dataclass(frozen=True)
class ObjectAdded:
    object_ids: Tuple[str, ...]


@dataclass(frozen=True)
class ObjectRemoved:
    object_ids: Tuple[str, ...]


@dataclass(frozen=True)
class ObjectModified:
    object_ids: Tuple[str, ...]


@dataclass(frozen=True)
class SelectionChanged:
    selection: Selection


SceneEvent = Union[ObjectAdded, ObjectRemoved, ObjectModified, SelectionChanged]

# Events that change scene content (as opposed to selection state)
MUTATION_EVENTS = (ObjectAdded, ObjectRemoved, ObjectModified)


def is_mutation(event: SceneEvent) -> bool:
    """True for events that change which objects exist or how they look."""
    return isinstance(event, MUTATION_EVENTS)


class EventBus(QObject):
    """Synchronous event bus for one scene.

    Subscribers are plain callables receiving the event instance. Delivery
    happens in the emitting thread, in subscription order.
    """

    event = pyqtSignal(object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._subscribers = []

    def subscribe(self, callback: Callable[[SceneEvent], None]) -> None:
        """Register *callback* for every published event."""
        self._subscribers.append(callback)
        self.event.connect(callback)

    def unsubscribe(self, callback: Callable[[SceneEvent], None]) -> None:
        """Remove a previously registered callback; unknown callbacks are ignored."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)
            self.event.disconnect(callback)

    def publish(self, event: SceneEvent) -> None:
        self.event.emit(event)
