"""
Unit tests for evoibs.run.id_allocator module.
"""

from evoibs.run.id_allocator import IdAllocator


class TestIdAllocator:
    """Test IdAllocator class."""

    def test_consecutive_ids(self):
        """Test that ids are handed out consecutively."""
        ids = IdAllocator()
        assert [ids.next_id() for _ in range(3)] == [0, 1, 2]
        assert ids.issued == 3

    def test_start(self):
        """Test that allocators can start at any id."""
        assert IdAllocator(10).next_id() == 10

    def test_reset(self):
        """Test that reset restarts the count."""
        ids = IdAllocator()
        ids.next_id()
        ids.reset(5)
        assert ids.next_id() == 5

    def test_independent_allocators(self):
        """Test that allocators do not share state."""
        first, second = IdAllocator(), IdAllocator()
        first.next_id()
        assert second.next_id() == 0
