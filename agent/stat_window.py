"""
Bounded running-statistics window for reward and loss tracking.
"""

from collections import deque
from typing import List, Optional


class BoundedStatWindow:
    """
    Fixed-capacity running average over a numeric stream.

    Holds the most recent max_size samples (oldest evicted first). The
    average is only reported once at least min_size samples are held;
    below that threshold average() returns None so callers can tell
    "no data yet" apart from a measured average of zero.
    """

    def __init__(self, max_size: int = 1000, min_size: int = 10):
        """
        Args:
            max_size: Maximum number of samples kept
            min_size: Minimum number of samples before an average is reported
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        if min_size > max_size:
            raise ValueError(f"min_size ({min_size}) cannot exceed max_size ({max_size})")

        self.max_size = max_size
        self.min_size = min_size
        self.samples = deque(maxlen=max_size)
        self._sum = 0.0

    def add(self, value: float):
        """Append a sample, evicting the oldest one when full."""
        if len(self.samples) == self.max_size:
            self._sum -= self.samples[0]
        self.samples.append(value)
        self._sum += value

    def average(self) -> Optional[float]:
        """Mean of held samples, or None while below min_size."""
        if len(self.samples) < self.min_size or not self.samples:
            return None
        return self._sum / len(self.samples)

    def values(self) -> List[float]:
        return list(self.samples)

    def clear(self):
        self.samples.clear()
        self._sum = 0.0

    def __len__(self) -> int:
        return len(self.samples)
