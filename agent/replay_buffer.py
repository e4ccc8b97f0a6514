"""
Experience replay memory for the TD agent.
"""

import random
from collections import deque
from dataclasses import dataclass
from typing import Any, List


@dataclass(frozen=True)
class Memento:
    """
    A single stored transition.

    state / next_state are encoded model inputs as produced by the agent.
    """
    action: int
    reward: float
    state: Any
    next_state: Any
    done: bool = False


class ReplayBuffer:
    """
    Fixed-capacity uniform replay memory.

    Once full, remembering a new memento evicts the oldest one.
    """

    def __init__(self, capacity: int = 100000):
        """
        Args:
            capacity: Maximum number of mementos to store
        """
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self.buffer = deque(maxlen=capacity)

    def remember(self, memento: Memento):
        """Store a memento; ownership passes to the buffer."""
        self.buffer.append(memento)

    def sample(self, batch_size: int) -> List[Memento]:
        """
        Sample mementos uniformly without replacement.

        Args:
            batch_size: Number of mementos requested

        Returns:
            List of min(batch_size, len(self)) mementos
        """
        if batch_size < 0:
            raise ValueError(f"batch_size must be >= 0, got {batch_size}")
        return random.sample(self.buffer, min(batch_size, len(self.buffer)))

    def __len__(self) -> int:
        """Return current buffer size."""
        return len(self.buffer)

    def clear(self):
        """Clear all experiences from the buffer."""
        self.buffer.clear()
