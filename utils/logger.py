"""
TensorBoard logger for agent metrics.
"""

import os
from datetime import datetime
from pathlib import Path

from torch.utils.tensorboard import SummaryWriter


class Logger:
    """
    Writes scalars to TensorBoard and episode summaries to the console.
    """

    def __init__(self, log_dir: str = "runs", experiment_name: str = None):
        """
        Args:
            log_dir: Base directory for logs.
            experiment_name: Name for this experiment. If None, uses timestamp.
        """
        if experiment_name is None:
            experiment_name = datetime.now().strftime("%Y%m%d_%H%M%S")

        self.log_path = Path(log_dir) / experiment_name
        os.makedirs(self.log_path, exist_ok=True)

        self.writer = SummaryWriter(log_dir=str(self.log_path))
        print(f"TensorBoard logging to: {self.log_path}")

        self.step = 0
        self.episode = 0

    def log_scalar(self, tag: str, value: float, step: int = None):
        """
        Log a scalar value. None values are skipped.

        Args:
            tag: Name of the metric (e.g., "train/loss").
            value: The value to log.
            step: Global step. If None, uses internal counter.
        """
        if value is None:
            return
        if step is None:
            step = self.step
        self.writer.add_scalar(tag, value, step)

    def log_episode(self, episode_reward: float, episode_length: int, epsilon: float = None):
        """
        Log end-of-episode metrics.

        Args:
            episode_reward: Total episode reward.
            episode_length: Number of steps in episode.
            epsilon: Current exploration rate.
        """
        self.episode += 1

        self.log_scalar("episode/reward", episode_reward, self.episode)
        self.log_scalar("episode/length", episode_length, self.episode)
        self.log_scalar("episode/epsilon", epsilon, self.episode)

        print(f"Episode {self.episode}: reward={episode_reward:.2f}, length={episode_length}"
              + (f", epsilon={epsilon:.3f}" if epsilon is not None else ""))

    def log_agent_stats(self, stats: dict, step: int = None):
        """
        Log the running averages and counters reported by TDAgent.get_stats().

        Args:
            stats: Dict from the agent.
            step: Global step. If None, uses internal counter.
        """
        self.log_scalar("stats/average_reward", stats.get('average_reward'), step)
        self.log_scalar("stats/average_loss", stats.get('average_loss'), step)
        self.log_scalar("train/epsilon", stats.get('epsilon'), step)
        self.log_scalar("train/memory_size", stats.get('memory_size'), step)
        self.log_scalar("train/fits_completed", stats.get('fits_completed'), step)

    def set_step(self, step: int):
        """Set the global step counter."""
        self.step = step

    def close(self):
        """Close the logger and flush any pending writes."""
        self.writer.close()
