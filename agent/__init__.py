"""
Agent components for temporal-difference reinforcement learning.

- TDAgent: forward/backward step loop with experience replay
- EpsilonSchedule: multiplicative epsilon decay
- FrameEncoder: temporal window encoding of observations
- SlidingFrameBuffer / BoundedStatWindow: fixed-size containers
- ReplayBuffer / Memento: uniform experience memory
"""

from .config import (
    AgentConfig,
    LearningConfig,
    TrackingInformation,
    MEM_WINDOW_MIN_SIZE,
    HIST_WINDOW_SIZE,
    HIST_WINDOW_MIN_SIZE,
)
from .stat_window import BoundedStatWindow
from .frame_buffer import SlidingFrameBuffer
from .exploration import EpsilonSchedule
from .encoder import FrameEncoder
from .replay_buffer import ReplayBuffer, Memento
from .td_agent import TDAgent, TrainingError

__all__ = [
    # Configuration
    'AgentConfig',
    'LearningConfig',
    'TrackingInformation',
    'MEM_WINDOW_MIN_SIZE',
    'HIST_WINDOW_SIZE',
    'HIST_WINDOW_MIN_SIZE',
    # Containers
    'BoundedStatWindow',
    'SlidingFrameBuffer',
    # Replay memory
    'ReplayBuffer',
    'Memento',
    # Agent
    'EpsilonSchedule',
    'FrameEncoder',
    'TDAgent',
    'TrainingError',
]
