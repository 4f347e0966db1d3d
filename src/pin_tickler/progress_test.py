import random

import pytest

from pin_tickler.progress import EXHAUSTED, ProgressStore


class TestProgressStore:
    """Test suite for ProgressStore"""

    def test_get_or_create_generates_once(self):
        """Repeated calls return the same state instance"""
        store = ProgressStore(random.Random(1))
        first = store.get_or_create(1, 5)
        second = store.get_or_create(1, 5)
        assert first is second
        assert first.total == 5
        assert first.cursor == 0

    def test_reuse_keeps_cursor(self):
        """Reuse never resets the cursor or regenerates the keyspace"""
        store = ProgressStore(random.Random(1))
        state = store.get_or_create(1, 5)
        keyspace = state.keyspace
        store.next()
        store.next()
        again = store.get_or_create(1, 5)
        assert again.cursor == 2
        assert again.keyspace is keyspace

    def test_different_range_is_ignored(self):
        """A different range on reuse keeps the existing keyspace"""
        store = ProgressStore(random.Random(1))
        store.get_or_create(1, 5)
        state = store.get_or_create(1, 500)
        assert state.total == 5

    def test_next_walks_keyspace_then_exhausts(self):
        """next() yields each value once then EXHAUSTED"""
        store = ProgressStore(random.Random(2))
        state = store.get_or_create(1, 5)
        values = [store.next() for _ in range(5)]
        assert values == list(state.keyspace)
        assert store.next() is EXHAUSTED
        assert store.next() is EXHAUSTED
        assert state.cursor == 5

    def test_peek_remaining(self):
        """peek_remaining counts values not yet handed out"""
        store = ProgressStore()
        store.get_or_create(10, 19)
        assert store.peek_remaining() == 10
        store.next()
        assert store.peek_remaining() == 9

    def test_use_before_create(self):
        """next() and peek_remaining() need a keyspace"""
        store = ProgressStore()
        assert store.state is None
        with pytest.raises(RuntimeError, match="before get_or_create"):
            store.next()
        with pytest.raises(RuntimeError, match="before get_or_create"):
            store.peek_remaining()
