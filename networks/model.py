"""
Model adapter exposing a Q-network through predict / fit / random_output.

fit() is non-blocking: the optimizer step runs on a bounded worker pool and
the caller gets a concurrent.futures.Future back.
"""

import random
import threading
from concurrent.futures import Future, ThreadPoolExecutor

import numpy as np
import torch
import torch.nn as nn
import torch.optim as optim


class QValues:
    """Predicted action values for a single input."""

    def __init__(self, values):
        self._values = np.asarray(values, dtype=np.float32).reshape(-1)

    def highest_value_action(self) -> int:
        """Index of the best action (argmax)."""
        return int(np.argmax(self._values))

    def as_array(self) -> np.ndarray:
        """Copy of the full value vector."""
        return self._values.copy()

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"QValues({self._values.tolist()})"


class QModel:
    """
    Action-value estimator backed by a torch network.

    Training runs on a ThreadPoolExecutor so fit() returns immediately.
    With max_workers=1 concurrent fits are queued in dispatch order.
    """

    def __init__(
        self,
        network: nn.Module,
        num_actions: int,
        learning_rate: float = 1e-3,
        max_grad_norm: float = 10.0,
        device: str = 'cpu',
        max_workers: int = 1
    ):
        """
        Args:
            network: Module mapping (batch, features) to (batch, num_actions)
            num_actions: Size of the action space
            learning_rate: Adam learning rate
            max_grad_norm: Gradient clipping norm
            device: Torch device string
            max_workers: Worker threads available to fit()
        """
        self.device = torch.device(device)
        self.network = network.to(self.device)
        self.num_actions = num_actions
        self.learning_rate = learning_rate
        self.max_grad_norm = max_grad_norm

        self.optimizer = optim.Adam(self.network.parameters(), lr=learning_rate)
        self.loss_fn = nn.MSELoss()
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="qmodel-fit")
        # predict() never sees the weights mid optimizer step
        self._network_lock = threading.Lock()

        self.train_count = 0

    @property
    def output_size(self) -> int:
        return self.num_actions

    def predict(self, x: torch.Tensor) -> QValues:
        """
        Args:
            x: (1, features) encoded input

        Returns:
            QValues for the first row of x
        """
        x = x.to(self.device, dtype=torch.float32)
        with self._network_lock, torch.no_grad():
            q_values = self.network(x)
        return QValues(q_values[0].cpu().numpy())

    def random_output(self) -> int:
        """Uniformly random action."""
        return random.randrange(self.num_actions)

    def fit(self, x: torch.Tensor, y: torch.Tensor, epochs: int = 1, steps_per_epoch: int = 1) -> Future:
        """
        Dispatch training on (x, y) without waiting for it.

        Returns:
            Future resolving to {"history": {"loss": [loss per epoch]}}
        """
        x = x.detach().clone()
        y = y.detach().clone()
        return self.executor.submit(self._train, x, y, epochs, steps_per_epoch)

    def _train(self, x: torch.Tensor, y: torch.Tensor, epochs: int, steps_per_epoch: int) -> dict:
        x = x.to(self.device, dtype=torch.float32)
        y = y.to(self.device, dtype=torch.float32)
        if x.shape[0] != y.shape[0]:
            raise ValueError(f"x and y batch sizes differ: {x.shape[0]} != {y.shape[0]}")

        losses = []
        for _ in range(epochs):
            epoch_loss = 0.0
            for _ in range(steps_per_epoch):
                with self._network_lock:
                    self.network.train()
                    loss = self.loss_fn(self.network(x), y)

                    self.optimizer.zero_grad()
                    loss.backward()
                    torch.nn.utils.clip_grad_norm_(self.network.parameters(), max_norm=self.max_grad_norm)
                    self.optimizer.step()
                    self.network.eval()

                epoch_loss += loss.item()
            losses.append(epoch_loss / steps_per_epoch)

        with self._network_lock:
            self.train_count += 1
        return {"history": {"loss": losses}}

    def close(self, wait: bool = True):
        """Shut down the training worker pool."""
        self.executor.shutdown(wait=wait)
