"""
Fixed-length FIFO buffer over the last N actions, observations or encoded inputs.
"""

from typing import Any, Iterator, List


class SlidingFrameBuffer:
    """
    Ring buffer of constant length.

    Every push evicts the single oldest slot and writes the new value at
    the end, so the length never changes. Slots that were never written
    hold None. Index 0 is the oldest slot and index size-1 the newest.
    """

    def __init__(self, size: int):
        if size < 1:
            raise ValueError(f"size must be >= 1, got {size}")
        self.size = size
        self._slots: List[Any] = [None] * size
        self._head = 0  # physical index of the oldest slot

    def push(self, value: Any):
        """Evict the oldest entry and append value as the newest."""
        self._slots[self._head] = value
        self._head = (self._head + 1) % self.size

    def __getitem__(self, index: int) -> Any:
        if index < 0:
            index += self.size
        if not 0 <= index < self.size:
            raise IndexError(f"index out of range for buffer of size {self.size}")
        return self._slots[(self._head + index) % self.size]

    def last(self) -> Any:
        """Most recently pushed value."""
        return self[self.size - 1]

    def from_end(self, k: int) -> Any:
        """
        Value pushed k steps ago, counting the newest as k=1.

        from_end(2) is the entry "two observations ago".
        """
        if k < 1:
            raise IndexError(f"k must be >= 1, got {k}")
        return self[self.size - k]

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[Any]:
        for i in range(self.size):
            yield self[i]

    def __repr__(self) -> str:
        return f"SlidingFrameBuffer(size={self.size}, values={list(self)!r})"
