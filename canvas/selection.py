"""
canvas/selection.py

Selection & transform engine: deletion, z-order and alignment for the
active selection.

A single selected object aligns against the canvas; a group aligns its
members against the union of their bounding boxes. Every operation reports
one mutation event, however many objects it touches.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from canvas.items import SceneObject
from canvas.surface import SceneSurface
from models import NO_SELECTION, Rect, Selection, make_selection

log = logging.getLogger(__name__)

# (axis, anchor) for each alignment operation
_START, _CENTER, _END = "start", "center", "end"


def _edge(rect: Rect, axis: str, anchor: str) -> float:
    if axis == "x":
        return {_START: rect.left, _CENTER: rect.center_x, _END: rect.right}[anchor]
    return {_START: rect.top, _CENTER: rect.center_y, _END: rect.bottom}[anchor]


class SelectionEngine:
    """
    Owns mutation of the live scene on behalf of the UI.

    Args:
        surface: The live scene.
    """

    def __init__(self, surface: SceneSurface):
        self.surface = surface

    # ---- Queries ----

    def current_selection(self) -> Selection:
        return self.surface.get_active_selection()

    def selection_count(self) -> int:
        return len(self.surface.get_active_selection().ids)

    def selected_objects(self) -> List[SceneObject]:
        return self.surface.selected_objects()

    # ---- Selection changes ----

    def select(self, objects: Iterable[SceneObject]) -> Selection:
        """Select *objects*; two or more become a group selection."""
        self.surface.set_active_selection(make_selection(o.id for o in objects))
        return self.current_selection()

    def clear(self) -> None:
        self.surface.set_active_selection(NO_SELECTION)

    def _targets(self) -> List[SceneObject]:
        """Selected objects, or nothing while a restore is applying."""
        if self.surface.is_restoring:
            log.debug("Ignoring edit while a snapshot is being restored")
            return []
        return self.surface.selected_objects()

    # ---- Mutations ----

    def delete(self) -> int:
        """Remove every selected object and clear the selection.

        Returns:
            Number of objects removed.
        """
        objects = self._targets()
        if not objects:
            return 0
        self.surface.remove_objects(objects)
        self.surface.set_active_selection(NO_SELECTION)
        return len(objects)

    def bring_to_front(self) -> None:
        """Move the selection to the top, keeping its internal stacking order."""
        objects = self._targets()
        if objects:
            self.surface.move_to_front(objects)

    def send_to_back(self) -> None:
        """Move the selection to the bottom, keeping its internal stacking order."""
        objects = self._targets()
        if objects:
            self.surface.move_to_back(objects)

    def align_left(self) -> None:
        self._align("x", _START)

    def align_center_h(self) -> None:
        self._align("x", _CENTER)

    def align_right(self) -> None:
        self._align("x", _END)

    def align_top(self) -> None:
        self._align("y", _START)

    def align_center_v(self) -> None:
        self._align("y", _CENTER)

    def align_bottom(self) -> None:
        self._align("y", _END)

    def _align(self, axis: str, anchor: str) -> None:
        objects = self._targets()
        if not objects:
            return

        # Member boxes are absolute canvas coordinates: selection never
        # re-parents objects.
        rects = [o.bounding_rect() for o in objects]
        if len(objects) == 1:
            reference = Rect(0, 0, self.surface.width, self.surface.height)
        else:
            reference = Rect.union(rects)
        target = _edge(reference, axis, anchor)

        moved = []
        for obj, rect in zip(objects, rects):
            delta = target - _edge(rect, axis, anchor)
            if delta == 0:
                continue
            if axis == "x":
                obj.translate(delta, 0)
            else:
                obj.translate(0, delta)
            moved.append(obj)

        if moved:
            self.surface.notify_modified(moved)
