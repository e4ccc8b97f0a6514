#!/usr/bin/env python3
"""
TD agent training loop.

Drives the forward / reward / backward contract over a gym-style
environment: reset() -> obs, step(action) -> (obs, reward, done, info).
"""

import numpy as np
import torch


def observation_to_tensor(obs, device: str = 'cpu') -> torch.Tensor:
    """Flatten an observation into a (1, features) float tensor."""
    if isinstance(obs, torch.Tensor):
        tensor = obs.detach().to(device=device, dtype=torch.float32)
    else:
        tensor = torch.tensor(np.asarray(obs, dtype=np.float32), device=device)
    return tensor.reshape(1, -1)


def run_episode(env, agent, max_steps: int, device: str = 'cpu') -> dict:
    """
    Run one episode through the agent.

    Args:
        env: Gym-style environment
        agent: TDAgent
        max_steps: Step limit for the episode
        device: Device for observation tensors

    Returns:
        dict with episode reward and length
    """
    obs = env.reset()
    episode_reward = 0.0
    steps = 0
    agent.set_done(False)

    while steps < max_steps:
        action = agent.forward(observation_to_tensor(obs, device))
        obs, reward, done, info = env.step(action)

        agent.add_reward(reward)
        agent.set_done(bool(done))
        agent.backward()

        episode_reward += reward
        steps += 1

        if done:
            break

    return {'reward': episode_reward, 'length': steps}


def train_agent(config: dict, env, agent, logger=None):
    """
    Train the agent for the configured number of episodes.

    Args:
        config: Configuration dict ('training' section)
        env: Gym-style environment
        agent: TDAgent
        logger: Optional TensorBoard Logger

    Returns:
        List of per-episode stats dicts
    """
    training_config = config['training']
    num_episodes = training_config['num_episodes']
    max_steps = training_config.get('max_steps_per_episode', 500)
    log_freq = training_config.get('log_freq', 10)
    device = config.get('device', 'cpu')

    history = []
    global_step = 0

    for episode in range(1, num_episodes + 1):
        stats = run_episode(env, agent, max_steps, device)
        global_step += stats['length']
        history.append(stats)

        if logger is not None:
            logger.set_step(global_step)
            logger.log_episode(stats['reward'], stats['length'], epsilon=agent.epsilon)
            logger.log_agent_stats(agent.get_stats(), step=global_step)

        if episode % log_freq == 0:
            agent_stats = agent.get_stats()
            avg_reward = agent_stats['average_reward']
            avg_loss = agent_stats['average_loss']
            print(f"Episode {episode}/{num_episodes} | steps={global_step} | "
                  f"epsilon={agent_stats['epsilon']:.3f} | "
                  f"avg_reward={'n/a' if avg_reward is None else f'{avg_reward:.3f}'} | "
                  f"avg_loss={'n/a' if avg_loss is None else f'{avg_loss:.4f}'}")

    agent.wait_for_training()
    return history
