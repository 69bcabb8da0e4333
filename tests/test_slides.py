"""Tests for SlideCollection: ordering, cursor adjustment and deck round-trip."""
from __future__ import annotations

import random

import pytest

from slides import SlideCollection


def _deck(n):
    deck = SlideCollection()
    for _ in range(n - 1):
        deck.add()
    for i in range(n):
        deck.update_record(i, f"snap-{i}", f"thumb-{i}")
    return deck


def _check_invariants(deck):
    assert len(deck) >= 1
    assert 0 <= deck.current_index < len(deck)
    ids = [s.id for s in deck.slides]
    assert len(set(ids)) == len(ids)


# ─────────────────────────────────────────────────────────
# Basic operations
# ─────────────────────────────────────────────────────────


class TestOperations:
    def test_starts_with_one_blank_slide(self):
        deck = SlideCollection()
        assert len(deck) == 1
        assert deck.current_index == 0
        assert deck.current_slide.snapshot == ""
        assert deck.current_slide.thumbnail == ""

    def test_add_inserts_after_current(self):
        deck = _deck(3)
        deck.switch(0)
        deck.add()
        assert deck.current_index == 1
        assert deck[1].snapshot == ""
        assert [s.snapshot for s in deck.slides] == ["snap-0", "", "snap-1", "snap-2"]

    def test_duplicate_copies_record(self):
        deck = _deck(2)
        deck.duplicate(0)
        assert len(deck) == 3
        assert deck.current_index == 1
        assert deck[1].snapshot == "snap-0"
        assert deck[1].thumbnail == "thumb-0"
        assert deck[1].id != deck[0].id

    def test_duplicate_out_of_range(self):
        deck = _deck(2)
        deck.duplicate(5)
        assert len(deck) == 2

    def test_switch(self):
        deck = _deck(3)
        deck.switch(1)
        assert deck.current_index == 1
        deck.switch(9)
        assert deck.current_index == 1

    def test_update_record(self):
        deck = _deck(2)
        deck.update_record(1, "new", "img")
        assert (deck[1].snapshot, deck[1].thumbnail) == ("new", "img")


# ─────────────────────────────────────────────────────────
# Deletion and cursor adjustment
# ─────────────────────────────────────────────────────────


class TestDelete:
    def test_last_slide_is_kept(self):
        deck = SlideCollection()
        deck.delete(0)
        assert len(deck) == 1

    def test_out_of_range_is_noop(self):
        deck = _deck(3)
        deck.delete(3)
        deck.delete(-1)
        assert len(deck) == 3

    def test_before_current_keeps_same_slide(self):
        deck = _deck(4)
        deck.switch(2)
        live = deck.current_slide.id
        deck.delete(0)
        assert deck.current_index == 1
        assert deck.current_slide.id == live

    def test_after_current_keeps_index(self):
        deck = _deck(4)
        deck.switch(1)
        deck.delete(3)
        assert deck.current_index == 1

    def test_current_moves_to_next(self):
        deck = _deck(4)
        deck.switch(1)
        deck.delete(1)
        assert deck.current_index == 1
        assert deck.current_slide.snapshot == "snap-2"

    def test_current_last_moves_back(self):
        deck = _deck(3)
        deck.switch(2)
        deck.delete(2)
        assert deck.current_index == 1
        assert deck.current_slide.snapshot == "snap-1"

    def test_random_operations_keep_invariants(self):
        rng = random.Random(1234)
        deck = SlideCollection()
        for _ in range(500):
            op = rng.choice(["add", "delete", "duplicate", "switch"])
            index = rng.randrange(-1, len(deck) + 1)
            if op == "add":
                deck.add()
            elif op == "delete":
                deck.delete(index)
            elif op == "duplicate":
                deck.duplicate(index)
            else:
                deck.switch(index)
            _check_invariants(deck)


# ─────────────────────────────────────────────────────────
# Deck dictionaries
# ─────────────────────────────────────────────────────────


class TestDeckDict:
    def test_round_trip(self):
        deck = _deck(3)
        deck.switch(2)
        restored = SlideCollection.from_dict(deck.to_dict())
        assert [s.to_dict() for s in restored.slides] == [s.to_dict() for s in deck.slides]
        assert restored.current_index == 2

    def test_new_ids_do_not_collide(self):
        deck = _deck(3)
        restored = SlideCollection.from_dict(deck.to_dict())
        restored.add()
        ids = [s.id for s in restored.slides]
        assert len(set(ids)) == len(ids)

    def test_bad_cursor_falls_back_to_zero(self):
        data = _deck(2).to_dict()
        data["current_index"] = 7
        assert SlideCollection.from_dict(data).current_index == 0

    @pytest.mark.parametrize("data", [{}, {"slides": []}, {"slides": [{"snapshot": ""}]}])
    def test_invalid(self, data):
        with pytest.raises(ValueError):
            SlideCollection.from_dict(data)
