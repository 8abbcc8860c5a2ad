"""
Id Allocator Module

Classes:
    IdAllocator: Source of unique lineage tags
"""

class IdAllocator:
    """
    Hands out consecutive integer ids. Each population (or each group of
    populations that must share lineages) owns its own allocator.

    Public Methods:
        next_id():    Return the next unused id
        reset(start): Restart the count
    """

    def __init__(self, start: int = 0):
        self._next: int = start

    def next_id(self) -> int:
        current     = self._next
        self._next += 1
        return current

    def reset(self, start: int = 0):
        self._next = start

    @property
    def issued(self) -> int:
        """Next id to be issued."""
        return self._next
