"""
Fully-connected Q-network over encoded temporal inputs.
"""

import torch
import torch.nn as nn


class QNetwork(nn.Module):
    """
    MLP mapping an encoded input to one Q-value per action.

    Architecture:
        Encoded input (input_dim,) -> [Linear -> ReLU] x num_layers
            -> Linear -> Q-values (num_actions,)
    """

    def __init__(self, input_dim: int, num_actions: int, hidden_dim: int = 128, num_layers: int = 2):
        """
        Args:
            input_dim: Width of the encoded input
            num_actions: Number of discrete actions
            hidden_dim: Width of each hidden layer
            num_layers: Number of hidden layers
        """
        super().__init__()

        if input_dim < 1:
            raise ValueError(f"input_dim must be >= 1, got {input_dim}")
        if num_actions < 1:
            raise ValueError(f"num_actions must be >= 1, got {num_actions}")

        self.input_dim = input_dim
        self.num_actions = num_actions

        layers = []
        in_dim = input_dim
        for _ in range(num_layers):
            layers.append(nn.Linear(in_dim, hidden_dim))
            layers.append(nn.ReLU())
            in_dim = hidden_dim
        self.trunk = nn.Sequential(*layers)
        self.head = nn.Linear(in_dim, num_actions)

        self._initialize_weights()

    def _initialize_weights(self):
        """He init for hidden layers, small uniform output so early Q-values stay near zero."""
        for module in self.trunk:
            if isinstance(module, nn.Linear):
                nn.init.kaiming_normal_(module.weight, nonlinearity='relu')
                nn.init.constant_(module.bias, 0)
        nn.init.uniform_(self.head.weight, -3e-3, 3e-3)
        nn.init.constant_(self.head.bias, 0)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: (batch, input_dim) tensor

        Returns:
            q_values: (batch, num_actions) tensor
        """
        return self.head(self.trunk(x))
