"""
session.py

EditorSession wires the live scene to the slide deck: it owns the event bus,
scene surface, object factory, selection engine, undo history, snapshot
codec and slide collection, and implements the slide handlers, autosave
and keyboard shortcuts on top of them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

from PyQt6.QtCore import QCoreApplication, QObject, Qt, QTimer, pyqtSignal

from canvas.events import EventBus
from canvas.factory import ObjectFactory
from canvas.selection import SelectionEngine
from canvas.surface import SceneSurface
from debug_trace import trace
from export import SlideExporter, default_base_name
from history import HistoryManager
from models import Slide
from persistence import BackgroundLoader, SnapshotCodec, load_deck, save_deck
from settings import AppSettings, get_settings, resolve_workspace_dir
from slides import SlideCollection

log = logging.getLogger(__name__)

_SHORTCUT_MODIFIERS = (Qt.KeyboardModifier.ControlModifier, Qt.KeyboardModifier.MetaModifier)


class EditorSession(QObject):
    """
    One open slide deck and its live editing scene.

    The live scene always shows the current slide. Before the cursor moves
    to another slide the scene is flushed into the current record; after it
    moves, the new current record is restored into the scene.

    Autosave starts right away when a QCoreApplication exists; without
    one, call `start_autosave()` once the application is up.

    Args:
        settings: Application settings; the user's saved settings are used
            when omitted.
        background_loader: Source of the default background layer.
        schedule: Deferred-call hook for background loading (see SnapshotCodec).
    """

    # Emitted with the slide list whenever records or the cursor change
    slides_changed = pyqtSignal(object)

    def __init__(self, settings: Optional[AppSettings] = None,
                 background_loader: Optional[BackgroundLoader] = None,
                 schedule: Optional[Callable[[Callable[[], None]], None]] = None,
                 parent=None):
        super().__init__(parent)
        self.settings = settings or get_settings().settings
        self.bus = EventBus(self)
        self.surface = SceneSurface(self.settings.canvas, self.bus)
        self.factory = ObjectFactory(self.surface, self.settings)
        self.engine = SelectionEngine(self.surface)
        self.history = HistoryManager(self.surface, self.settings.history.max_entries)
        self.codec = SnapshotCodec(self.surface, self.history, self.settings,
                                   background_loader=background_loader, schedule=schedule)
        self.slides = SlideCollection()
        self._autosave_timer: Optional[QTimer] = None

        self.codec.restore_snapshot(self.slides.current_slide.snapshot)
        if QCoreApplication.instance() is not None:
            self.start_autosave()

    # ---- State ----

    @property
    def busy(self) -> bool:
        """True while a snapshot restore is being applied."""
        return self.surface.is_restoring

    @property
    def text_editing(self) -> bool:
        return self.surface.editing_object() is not None

    def _changed(self) -> List[Slide]:
        slides = self.slides.slides
        self.slides_changed.emit(slides)
        return slides

    # ---- Flush / restore ----

    def flush_current(self) -> bool:
        """Write the live scene into the current slide record.

        Returns:
            False if skipped because a restore is in progress.
        """
        if self.busy:
            return False
        capture = self.codec.capture_snapshot()
        self.slides.update_record(self.slides.current_index, capture.snapshot, capture.thumbnail)
        return True

    def _restore_current(self) -> None:
        self.codec.restore_snapshot(self.slides.current_slide.snapshot)

    # ---- Slide handlers ----

    def switch_slide(self, index: int) -> List[Slide]:
        if self.busy or index == self.slides.current_index or not 0 <= index < len(self.slides):
            return self.slides.slides
        trace(f"Switching slide {self.slides.current_index} -> {index}", "SLIDE")
        self.flush_current()
        self.slides.switch(index)
        self._restore_current()
        return self._changed()

    def add_slide(self) -> List[Slide]:
        if self.busy:
            return self.slides.slides
        self.flush_current()
        self.slides.add()
        trace(f"Added slide at {self.slides.current_index}", "SLIDE")
        self._restore_current()
        return self._changed()

    def delete_slide(self, index: int) -> List[Slide]:
        """Delete slide *index*; the live scene follows if the current slide went away."""
        if self.busy or len(self.slides) <= 1 or not 0 <= index < len(self.slides):
            return self.slides.slides
        if index != self.slides.current_index:
            self.flush_current()
        live_id = self.slides.current_slide.id
        self.slides.delete(index)
        trace(f"Deleted slide {index}; current is {self.slides.current_index}", "SLIDE")
        if self.slides.current_slide.id != live_id:
            self._restore_current()
        return self._changed()

    def duplicate_slide(self, index: int) -> List[Slide]:
        if self.busy or not 0 <= index < len(self.slides):
            return self.slides.slides
        self.flush_current()
        self.slides.duplicate(index)
        trace(f"Duplicated slide {index}", "SLIDE")
        self._restore_current()
        return self._changed()

    # ---- Autosave ----

    def autosave_tick(self) -> None:
        if self.flush_current():
            self._changed()

    def start_autosave(self) -> None:
        if self._autosave_timer is None:
            self._autosave_timer = QTimer(self)
            self._autosave_timer.setInterval(self.settings.slides.autosave_interval_ms)
            self._autosave_timer.timeout.connect(self.autosave_tick)
        self._autosave_timer.start()

    def stop_autosave(self) -> None:
        if self._autosave_timer is not None:
            self._autosave_timer.stop()

    @property
    def autosave_active(self) -> bool:
        return self._autosave_timer is not None and self._autosave_timer.isActive()

    # ---- Undo / redo ----

    def undo(self) -> bool:
        if self.busy or self.text_editing:
            return False
        return self.history.undo()

    def redo(self) -> bool:
        if self.busy or self.text_editing:
            return False
        return self.history.redo()

    # ---- Keyboard ----

    def handle_key(self, key: Qt.Key, modifiers: Qt.KeyboardModifier) -> bool:
        """
        Apply an editor shortcut.

        Delete removes the selection; Ctrl/Cmd+Z undoes; Ctrl/Cmd+Y and
        Ctrl/Cmd+Shift+Z redo. Nothing fires while a text object is being
        edited, so those keys reach the text instead.

        Returns:
            True if the key was consumed.
        """
        if self.text_editing:
            return False

        if key == Qt.Key.Key_Delete:
            self.engine.delete()
            return True

        if not any(modifiers & m for m in _SHORTCUT_MODIFIERS):
            return False
        shift = bool(modifiers & Qt.KeyboardModifier.ShiftModifier)
        if key == Qt.Key.Key_Z:
            if shift:
                self.redo()
            else:
                self.undo()
            return True
        if key == Qt.Key.Key_Y:
            self.redo()
            return True
        return False

    # ---- Deck files and export ----

    def deck_path(self, path: Union[str, Path]) -> Path:
        """Resolve a relative deck path against the workspace directory."""
        path = Path(path)
        if path.is_absolute():
            return path
        return resolve_workspace_dir(self.settings) / path

    def save_deck(self, path: Union[str, Path]) -> Path:
        self.flush_current()
        path = self.deck_path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        save_deck(path, self.slides)
        log.info("Saved %d slides to %s", len(self.slides), path)
        return path

    def load_deck(self, path: Union[str, Path]) -> List[Slide]:
        """Replace the deck with one read from *path*.

        Every slide is checked before anything changes, so a deck that
        loads can be switched through and exported.

        Raises:
            ValueError: If the file is not a valid deck; the open deck is kept.
        """
        collection = load_deck(self.deck_path(path))
        for number, slide in enumerate(collection.slides, start=1):
            try:
                self.surface.parse_snapshot(slide.snapshot)
            except ValueError as e:
                raise ValueError(f"slide {number}: {e}") from e
        self.codec.restore_snapshot(collection.current_slide.snapshot)
        self.slides = collection
        return self._changed()

    def exporter(self) -> SlideExporter:
        return SlideExporter(self.settings, self.surface.background)

    def export_current(self, directory: Union[str, Path], base_name: Optional[str] = None) -> Path:
        self.flush_current()
        exporter = self.exporter()
        index = self.slides.current_index
        base_name = base_name or self._default_base_name()
        return exporter.export_slide(self.slides.current_slide, index, directory, base_name)

    def export_all(self, zip_path: Union[str, Path], base_name: Optional[str] = None) -> List[str]:
        self.flush_current()
        return self.exporter().export_all(self.slides.slides, zip_path, base_name)

    def _default_base_name(self) -> str:
        return default_base_name(self.settings.export.base_name_prefix, len(self.slides))
