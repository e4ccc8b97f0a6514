"""
Configuration loader for the TD agent.
Simple YAML-based config with sensible defaults.
"""

import os
import yaml
import torch
from pathlib import Path

from agent.config import AgentConfig, LearningConfig


def load_config(config_path: str = None) -> dict:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default config/config.yaml.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If the file does not exist
        KeyError: If the agent or agent.learning section is missing a field
        ValueError: If agent values are out of range
    """
    if config_path is None:
        # Default to config/config.yaml relative to project root
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config" / "config.yaml"

    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    # Fail on a malformed agent section before anything is created
    build_agent_config(config)

    # Resolve device
    config['device'] = get_device(config.get('device', 'auto'))

    log_dir = config.get('training', {}).get('log_dir')
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    return config


def get_device(device_str: str = "auto") -> str:
    """
    Determine the best available device.

    Args:
        device_str: One of "auto", "cpu", "cuda", "mps".

    Returns:
        Device string for PyTorch.
    """
    if device_str == "auto":
        if torch.cuda.is_available():
            return "cuda"
        elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
            return "mps"
        else:
            return "cpu"
    return device_str


def build_agent_config(config: dict) -> AgentConfig:
    """
    Build the typed agent configuration from the 'agent' section.

    The 'learning' subsection is required; a missing one raises KeyError
    rather than falling back to defaults.
    """
    agent_section = config['agent']
    learning_section = agent_section['learning']

    learning_config = LearningConfig(
        gamma=float(learning_section['gamma']),
        epsilon=float(learning_section['epsilon']),
        epsilon_decay=float(learning_section['epsilon_decay']),
        epsilon_min=float(learning_section['epsilon_min']),
        learning_rate=float(learning_section['learning_rate']),
        learning_time=int(learning_section['learning_time']),
        learning_steps_random=int(learning_section['learning_steps_random']),
    )

    agent_config = AgentConfig(
        memory_size=int(agent_section['memory_size']),
        batch_size=int(agent_section['batch_size']),
        temporal_window=int(agent_section['temporal_window']),
        learning_config=learning_config,
    )
    agent_config.validate()
    return agent_config
