"""
Rolling ratio history - the last N order-flow ratio values.

Fixed-capacity circular storage: pushes are O(1) and never allocate once
the window is full.
"""

from typing import Iterator, List, Optional

HISTORY_CAPACITY = 50


class RollingHistory:
    """
    Strict FIFO window of ratio values, oldest first.

    Once `capacity` values are held, every push evicts exactly one value,
    the oldest, and hands it back to the caller.

    Example:
        history = RollingHistory(capacity=3)
        for ratio in (0.1, 0.2, 0.3, 0.4):
            history.push(ratio)
        list(history)  # [0.2, 0.3, 0.4]
    """

    __slots__ = ("_slots", "_next", "_count")

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._slots: List[float] = [0.0] * capacity
        self._next = 0
        self._count = 0

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def push(self, value: float) -> Optional[float]:
        """Store a ratio value. Returns the evicted value once full."""
        evicted = self._slots[self._next] if self._count == self.capacity else None
        self._slots[self._next] = value
        self._next = (self._next + 1) % self.capacity
        self._count = min(self._count + 1, self.capacity)
        return evicted

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[float]:
        first = (self._next - self._count) % self.capacity
        for offset in range(self._count):
            yield self._slots[(first + offset) % self.capacity]
