"""
history.py

Snapshot-based linear undo/redo for the live scene.

Every completed mutation records a serialized snapshot of the whole scene.
Undo and redo replay a recorded snapshot; the events that replay produces
are not recorded again.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Tuple

from canvas.events import SceneEvent, is_mutation
from canvas.surface import SceneSurface
from debug_trace import trace
from models import NO_SELECTION

log = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 50


class HistoryManager:
    """
    Bounded undo/redo log over scene snapshots.

    Subscribes to the surface's event bus on construction. The cursor points
    at the entry matching the live scene, or is -1 before anything has been
    recorded.

    Args:
        surface: The live scene to snapshot and replay into.
        max_entries: Log length cap; the oldest entry is evicted beyond it.
    """

    def __init__(self, surface: SceneSurface, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.surface = surface
        self.max_entries = max_entries
        self._entries: List[str] = []
        self._cursor = -1
        self._replaying = False
        surface.bus.subscribe(self._on_scene_event)

    # ---- State ----

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> Tuple[str, ...]:
        return tuple(self._entries)

    @property
    def is_replaying(self) -> bool:
        return self._replaying

    def can_undo(self) -> bool:
        """Check if undo is available"""
        return not self._replaying and self._cursor > 0

    def can_redo(self) -> bool:
        """Check if redo is available"""
        return not self._replaying and self._cursor < len(self._entries) - 1

    def get_history_info(self) -> Dict[str, Any]:
        """Get information about current history state"""
        return {
            "entries": len(self._entries),
            "cursor": self._cursor,
            "can_undo": self.can_undo(),
            "can_redo": self.can_redo(),
        }

    # ---- Recording ----

    def _on_scene_event(self, event: SceneEvent) -> None:
        if is_mutation(event):
            self.record_if_not_replaying()

    def record_if_not_replaying(self) -> bool:
        """Record the current scene unless a replay is in progress.

        Returns:
            True if an entry was appended.
        """
        if self._replaying:
            return False

        snapshot = self.surface.serialize_all()
        del self._entries[self._cursor + 1:]
        self._entries.append(snapshot)
        self._cursor = len(self._entries) - 1

        while len(self._entries) > self.max_entries:
            self._entries.pop(0)
            self._cursor -= 1
            log.debug("History full; evicted oldest entry")
        return True

    def reset(self) -> None:
        """Discard the log; it becomes one entry holding the current scene."""
        self._entries = [self.surface.serialize_all()]
        self._cursor = 0
        trace("History reset", "HISTORY")

    @contextmanager
    def suppressed(self):
        """Ignore mutation events for the duration of the block."""
        previous = self._replaying
        self._replaying = True
        try:
            yield
        finally:
            self._replaying = previous

    # ---- Replay ----

    def undo(self) -> bool:
        """Step back one entry. Returns False when there is nothing to undo."""
        if not self.can_undo():
            return False
        self._replay(self._cursor - 1)
        return True

    def redo(self) -> bool:
        """Step forward one entry. Returns False when there is nothing to redo."""
        if not self.can_redo():
            return False
        self._replay(self._cursor + 1)
        return True

    def _replay(self, index: int) -> None:
        trace(f"Replaying history entry {index} of {len(self._entries)}", "HISTORY")

        def finished():
            self._cursor = index
            self.surface.set_active_selection(NO_SELECTION)
            self._replaying = False

        self._replaying = True
        try:
            self.surface.deserialize_all(self._entries[index], on_complete=finished)
        finally:
            self._replaying = False
