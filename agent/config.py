"""
Typed configuration and tracking records for the TD agent.
"""

from dataclasses import dataclass, field
from typing import Optional

MEM_WINDOW_MIN_SIZE = 2
HIST_WINDOW_SIZE = 1000
HIST_WINDOW_MIN_SIZE = 10


@dataclass(frozen=True)
class LearningConfig:
    gamma: float = 0.9
    epsilon: float = 1.0            # initial value; the live one belongs to EpsilonSchedule
    epsilon_decay: float = 0.99
    epsilon_min: float = 0.05
    learning_rate: float = 0.001
    learning_time: int = 100000
    learning_steps_random: int = 1000


@dataclass(frozen=True)
class AgentConfig:
    memory_size: int
    batch_size: int
    temporal_window: int
    learning_config: Optional[LearningConfig] = None

    @property
    def net_input_window_size(self) -> int:
        return max(self.temporal_window, MEM_WINDOW_MIN_SIZE)

    def validate(self):
        """Raise ValueError on configurations the agent cannot run with."""
        if self.learning_config is None:
            raise ValueError("AgentConfig.learning_config must be set")
        if self.temporal_window < 0:
            raise ValueError(f"temporal_window must be >= 0, got {self.temporal_window}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be > 0, got {self.batch_size}")
        if self.memory_size <= 0:
            raise ValueError(f"memory_size must be > 0, got {self.memory_size}")


@dataclass
class TrackingInformation:
    age: int = 0
    forward_passes: int = 0
    learning: bool = True
    # None until the matching stat window holds enough samples
    average_loss: Optional[float] = None
    average_reward: Optional[float] = None
    fits_dispatched: int = 0
    fits_completed: int = 0
