"""
Temporal frame encoder.

Builds a single model input by concatenating, along the feature axis:

    [obs, s[-1], onehot(a[-1]), s[-2], onehot(a[-2]), ..., s[-T], onehot(a[-T])]

where T is the temporal window and s[-k] / a[-k] are the observation and
action pushed k steps ago.
"""

import torch

from .frame_buffer import SlidingFrameBuffer


class FrameEncoder:
    """Concatenates an observation with its recent history and one-hot past actions."""

    def __init__(self, temporal_window: int, num_actions: int):
        """
        Args:
            temporal_window: Number of past steps appended to the observation
            num_actions: Width of the one-hot action vectors
        """
        if temporal_window < 0:
            raise ValueError(f"temporal_window must be >= 0, got {temporal_window}")
        self.temporal_window = temporal_window
        self.num_actions = num_actions

    def encoded_size(self, observation_size: int) -> int:
        """Feature width of an encoded input for a given observation width."""
        return observation_size + self.temporal_window * (observation_size + self.num_actions)

    def one_hot(self, action: int, dtype=torch.float32, device=None) -> torch.Tensor:
        """(1, num_actions) tensor with 1.0 at the action index."""
        if not 0 <= action < self.num_actions:
            raise ValueError(f"action {action} outside [0, {self.num_actions})")
        vector = torch.zeros((1, self.num_actions), dtype=dtype, device=device)
        vector[0, action] = 1.0
        return vector

    def encode(
        self,
        observation: torch.Tensor,
        states: SlidingFrameBuffer,
        actions: SlidingFrameBuffer
    ) -> torch.Tensor:
        """
        Args:
            observation: (batch, features) current observation; left untouched
            states: Buffer of past observations, newest last
            actions: Buffer of past actions, aligned with states

        Returns:
            (batch, encoded_size) tensor
        """
        if observation.dim() != 2:
            raise ValueError(f"observation must be 2-D (batch, features), got shape {tuple(observation.shape)}")
        if self.temporal_window > len(states) or self.temporal_window > len(actions):
            raise ValueError(
                f"temporal_window {self.temporal_window} exceeds buffer sizes "
                f"({len(states)}, {len(actions)})"
            )

        pieces = [observation.clone()]
        batch = observation.shape[0]

        for i in range(self.temporal_window):
            past_state = states.from_end(i + 1)
            past_action = actions.from_end(i + 1)

            if past_state is None or past_action is None:
                raise ValueError(f"no history recorded {i + 1} step(s) back")
            if past_state.dim() != 2 or past_state.shape[0] != batch:
                raise ValueError(
                    f"history state {i + 1} step(s) back has shape {tuple(past_state.shape)}, "
                    f"expected ({batch}, *)"
                )

            pieces.append(past_state.to(dtype=observation.dtype, device=observation.device))
            pieces.append(
                self.one_hot(int(past_action), dtype=observation.dtype, device=observation.device)
                .expand(batch, -1)
            )

        return torch.cat(pieces, dim=1)
