"""Training loops for the TD agent."""

from .train_td import train_agent, run_episode, observation_to_tensor

__all__ = ["train_agent", "run_episode", "observation_to_tensor"]
