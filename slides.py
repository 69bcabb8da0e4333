"""
slides.py

Ordered slide records with a current-slide cursor.

The store only manages records and the cursor. Flushing the live scene
into the current record before the cursor moves is the caller's job.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from models import Slide

log = logging.getLogger(__name__)


class SlideCollection:
    """
    Slides plus the index of the slide being edited.

    Invariants: at least one slide exists and ``current_index`` is always in
    ``[0, len(slides))``. Operations that cannot apply are silent no-ops.

    Args:
        make_id: Generator for new slide ids (defaults to a counter).
    """

    def __init__(self, make_id: Optional[Callable[[], str]] = None):
        self._id_counter = 1
        self._make_id = make_id or self._next_id
        self._slides: List[Slide] = [Slide(self._make_id())]
        self._current = 0

    def _next_id(self) -> str:
        s = f"s{self._id_counter:06d}"
        self._id_counter += 1
        return s

    # ---- Queries ----

    @property
    def slides(self) -> List[Slide]:
        return list(self._slides)

    @property
    def current_index(self) -> int:
        return self._current

    @property
    def current_slide(self) -> Slide:
        return self._slides[self._current]

    def __len__(self) -> int:
        return len(self._slides)

    def __getitem__(self, index: int) -> Slide:
        return self._slides[index]

    def _in_range(self, index: int) -> bool:
        return 0 <= index < len(self._slides)

    # ---- Operations ----

    def add(self) -> List[Slide]:
        """Insert a blank slide after the current one and make it current."""
        self._slides.insert(self._current + 1, Slide(self._make_id()))
        self._current += 1
        return self.slides

    def delete(self, index: int) -> List[Slide]:
        """Remove the slide at *index*; the last remaining slide is kept.

        The cursor keeps pointing at the same slide when that slide
        survives; when the current slide itself is removed it moves to
        ``min(index, new_length - 1)``.
        """
        if len(self._slides) <= 1 or not self._in_range(index):
            log.debug("Slide delete %d ignored (%d slides)", index, len(self._slides))
            return self.slides

        del self._slides[index]
        if index < self._current:
            self._current -= 1
        elif index == self._current:
            self._current = min(index, len(self._slides) - 1)
        return self.slides

    def duplicate(self, index: int) -> List[Slide]:
        """Copy slide *index* (snapshot and thumbnail verbatim) right after it."""
        if not self._in_range(index):
            return self.slides
        source = self._slides[index]
        copy = Slide(self._make_id(), snapshot=source.snapshot, thumbnail=source.thumbnail)
        self._slides.insert(index + 1, copy)
        self._current = index + 1
        return self.slides

    def switch(self, index: int) -> List[Slide]:
        """Move the cursor to *index*. No-op when already there or out of range."""
        if index != self._current and self._in_range(index):
            self._current = index
        return self.slides

    def update_record(self, index: int, snapshot: str, thumbnail: str) -> List[Slide]:
        """Overwrite the stored snapshot and thumbnail of one slide."""
        if self._in_range(index):
            slide = self._slides[index]
            slide.snapshot = snapshot
            slide.thumbnail = thumbnail
        return self.slides

    # ---- Deck files ----

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_index": self._current,
            "slides": [s.to_dict() for s in self._slides],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SlideCollection":
        """Rebuild a collection; raises ValueError for an empty or malformed deck."""
        records = data.get("slides")
        if not isinstance(records, list) or not records:
            raise ValueError("a deck needs at least one slide")
        collection = cls()
        try:
            collection._slides = [Slide.from_dict(r) for r in records]
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed slide record: {e}") from e
        current = data.get("current_index", 0)
        collection._current = current if isinstance(current, int) and collection._in_range(current) else 0
        numbers = [int(s.id[1:]) for s in collection._slides if s.id[:1] == "s" and s.id[1:].isdigit()]
        collection._id_counter = max(numbers, default=0) + 1
        return collection
