"""
Agent factory for creating and configuring TD agents.

This module handles:
- Q-network and model adapter instantiation from config
- Replay memory sizing
- Agent construction
"""

from agent.replay_buffer import ReplayBuffer
from agent.encoder import FrameEncoder
from agent.td_agent import TDAgent
from networks.q_network import QNetwork
from networks.model import QModel
from utils.config import build_agent_config


def create_model(config: dict, observation_size: int, num_actions: int) -> QModel:
    """
    Create the Q-network model adapter sized for the encoded input.

    Args:
        config: Full configuration dictionary
        observation_size: Width of a single (1, F) observation
        num_actions: Number of discrete actions

    Returns:
        Configured QModel instance
    """
    agent_config = build_agent_config(config)
    network_config = config.get('network', {})

    input_dim = FrameEncoder(agent_config.temporal_window, num_actions).encoded_size(observation_size)
    hidden_dim = network_config.get('hidden_dim', 128)
    num_layers = network_config.get('num_layers', 2)

    print(f"Q-network: input_dim={input_dim}, hidden_dim={hidden_dim}, layers={num_layers}")

    network = QNetwork(
        input_dim=input_dim,
        num_actions=num_actions,
        hidden_dim=hidden_dim,
        num_layers=num_layers
    )

    return QModel(
        network,
        num_actions=num_actions,
        learning_rate=agent_config.learning_config.learning_rate,
        max_grad_norm=network_config.get('gradient_clip', 10.0),
        device=config.get('device', 'cpu'),
        max_workers=network_config.get('fit_workers', 1)
    )


def create_agent(config: dict, observation_size: int, num_actions: int) -> TDAgent:
    """
    Create a TD agent from configuration.

    Args:
        config: Full configuration dictionary
        observation_size: Width of a single (1, F) observation
        num_actions: Number of discrete actions in the environment

    Returns:
        Configured TDAgent instance
    """
    agent_config = build_agent_config(config)
    model = create_model(config, observation_size, num_actions)
    memory = ReplayBuffer(capacity=agent_config.memory_size)

    learning = agent_config.learning_config
    print(f"TD agent: temporal_window={agent_config.temporal_window}, "
          f"memory={agent_config.memory_size}, batch={agent_config.batch_size}")
    print(f"Exploration: epsilon={learning.epsilon}, decay={learning.epsilon_decay}, "
          f"min={learning.epsilon_min}, random steps={learning.learning_steps_random}, "
          f"learning time={learning.learning_time}")

    return TDAgent(model, agent_config, memory=memory)
