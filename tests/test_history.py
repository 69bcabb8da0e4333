"""Tests for HistoryManager: bounded snapshot log with undo/redo replay."""
from __future__ import annotations

import pytest

from history import HistoryManager

from conftest import png_bytes


# ─────────────────────────────────────────────────────────
# Recording
# ─────────────────────────────────────────────────────────


class TestRecording:
    def test_mutations_are_recorded(self, surface, history, factory):
        history.reset()
        factory.create_text()
        assert len(history.entries) == 2
        assert history.cursor == 1
        assert history.entries[-1] == surface.serialize_all()

    def test_selection_changes_are_not_recorded(self, surface, history, factory, engine):
        history.reset()
        obj = factory.create_text()
        engine.clear()
        engine.select([obj])
        assert len(history.entries) == 2

    def test_bounded_to_max_entries(self, history, factory):
        history.reset()
        for _ in range(60):
            factory.create_text()
        assert len(history.entries) == 50
        assert history.cursor == 49

    def test_fifty_undos_never_fail(self, history, factory):
        history.reset()
        for _ in range(60):
            factory.create_text()
        results = [history.undo() for _ in range(50)]
        assert results[:49] == [True] * 49
        assert results[49] is False
        assert history.cursor == 0

    def test_new_edit_truncates_redo_tail(self, history, factory):
        history.reset()
        factory.create_text()
        factory.create_text()
        history.undo()
        assert history.can_redo()
        factory.create_text()
        assert not history.can_redo()
        assert len(history.entries) == 3

    def test_invalid_cap(self, surface):
        with pytest.raises(ValueError):
            HistoryManager(surface, 0)

    def test_info(self, history, factory):
        history.reset()
        factory.create_text()
        info = history.get_history_info()
        assert info == {"entries": 2, "cursor": 1, "can_undo": True, "can_redo": False}


# ─────────────────────────────────────────────────────────
# Undo / redo
# ─────────────────────────────────────────────────────────


class TestReplay:
    def test_undo_then_redo_is_identity(self, surface, history, factory, engine):
        history.reset()
        factory.create_text()
        second = factory.create_text()
        factory.set_text_property(second, "font_size", 96)
        engine.align_left()
        before = surface.serialize_all()

        assert history.undo()
        assert surface.serialize_all() != before
        assert history.redo()

        assert surface.serialize_all() == before

    def test_undo_restores_previous_state(self, surface, history, factory):
        history.reset()
        empty = surface.serialize_all()
        factory.create_text()
        history.undo()
        assert surface.serialize_all() == empty
        assert surface.list_objects() == []

    def test_replay_does_not_record(self, history, factory):
        history.reset()
        factory.create_text()
        factory.create_text()
        entries = history.entries
        history.undo()
        history.redo()
        history.undo()
        assert history.entries == entries
        assert not history.is_replaying

    def test_replay_clears_selection(self, surface, history, factory):
        history.reset()
        factory.create_text()
        factory.create_text()
        history.undo()
        assert surface.get_active_selection().ids == ()

    def test_nothing_to_undo(self, history):
        history.reset()
        assert not history.can_undo()
        assert history.undo() is False
        assert history.redo() is False

    def test_suppressed_block(self, history, factory):
        history.reset()
        with history.suppressed():
            factory.create_text()
        assert len(history.entries) == 1

    def test_undo_all_then_redo_all(self, surface, history, factory, engine):
        history.reset()
        a = factory.create_text()
        b = factory.create_image(png_bytes(), "image/png")
        factory.set_image_property(b, "opacity", 30)
        engine.select([a, b])
        engine.align_bottom()
        engine.bring_to_front()
        engine.send_to_back()
        final = surface.serialize_all()
        k = history.cursor

        for _ in range(k):
            assert history.undo()
        for _ in range(k):
            assert history.redo()

        assert surface.serialize_all() == final

    def test_z_order_noop_records_nothing(self, surface, history, factory, engine):
        history.reset()
        factory.create_text()
        top = factory.create_text()
        entries = history.entries
        engine.select([top])
        engine.bring_to_front()
        assert history.entries == entries
        assert history.undo()
        assert len(surface.list_objects()) == 1
