"""Utilities for the TD agent."""

from .config import load_config, get_device, build_agent_config

__all__ = ["load_config", "get_device", "build_agent_config"]
