"""
Temporal-difference Q-learning agent with temporal input windows and experience replay.
"""

import random
import threading
from concurrent.futures import Future
from typing import Optional, Tuple

import torch

from .config import (
    AgentConfig,
    TrackingInformation,
    MEM_WINDOW_MIN_SIZE,
    HIST_WINDOW_SIZE,
    HIST_WINDOW_MIN_SIZE,
)
from .encoder import FrameEncoder
from .exploration import EpsilonSchedule
from .frame_buffer import SlidingFrameBuffer
from .replay_buffer import Memento, ReplayBuffer
from .stat_window import BoundedStatWindow


class TrainingError(RuntimeError):
    """Raised when an asynchronous fit on the model failed."""


class TDAgent:
    """
    Epsilon-greedy TD agent driven by a forward/backward step contract.

    Each step the caller:
        action = agent.forward(observation)
        agent.add_reward(r)          # or set_reward
        agent.backward()

    forward() encodes the observation together with the last temporal_window
    observations and one-hot actions, then acts epsilon-greedily. backward()
    records the reward, stores the transition from two steps ago paired with
    the newest encoded input, and replays a batch into the model once the
    memory holds more than learning_steps_random mementos.

    The model must provide predict(x), random_output(), output_size and a
    non-blocking fit(x, y, epochs, steps_per_epoch) returning a Future that
    resolves to {"history": {"loss": [...]}}.
    """

    def __init__(self, model, config: AgentConfig, memory=None, rng: random.Random = None):
        """
        Args:
            model: Action-value estimator (see class docstring)
            config: Agent configuration; learning_config is required
            memory: Experience store with remember/sample/__len__ (default: ReplayBuffer)
            rng: Random source for exploration draws (default: module-level random)
        """
        config.validate()

        self.model = model
        self.config = config
        self.learning_config = config.learning_config
        self.memory = memory if memory is not None else ReplayBuffer(capacity=config.memory_size)
        self.rng = rng

        self.done = False
        self.track = TrackingInformation()
        self.current_reward = 0.0

        self.schedule = EpsilonSchedule.from_learning_config(self.learning_config)
        self.encoder = FrameEncoder(config.temporal_window, model.output_size)

        self.rewards_history = BoundedStatWindow(HIST_WINDOW_SIZE, HIST_WINDOW_MIN_SIZE)
        self.losses_history = BoundedStatWindow(HIST_WINDOW_SIZE, HIST_WINDOW_MIN_SIZE)

        self.net_input_window_size = config.net_input_window_size
        self.actions_buffer = SlidingFrameBuffer(self.net_input_window_size)
        self.states_buffer = SlidingFrameBuffer(self.net_input_window_size)
        self.inputs_buffer = SlidingFrameBuffer(self.net_input_window_size)

        # Written from the model's worker thread
        self._fit_state = threading.Condition()
        self._fits_resolved = 0
        self._training_error: Optional[TrainingError] = None

    # ---------- properties ----------

    @property
    def epsilon(self) -> float:
        return self.schedule.epsilon

    @property
    def tracking(self) -> TrackingInformation:
        return self.track

    @property
    def learning(self) -> bool:
        return self.track.learning

    def set_learning(self, learning: bool):
        """Freeze or resume learning; acting continues either way."""
        self.track.learning = learning

    # ---------- step contract ----------

    def forward(self, observation: torch.Tensor) -> int:
        """
        Choose an action for the observation.

        Args:
            observation: (1, features) tensor

        Returns:
            Selected action index
        """
        self._raise_pending_error()
        self.track.forward_passes += 1

        self.schedule.step(self.track.age)

        if self.track.forward_passes > self.config.temporal_window:
            net_input = self.encoder.encode(observation, self.states_buffer, self.actions_buffer)

            if self.schedule.should_explore(self.rng):
                action = self.model.random_output()
            else:
                action = self.policy(net_input)
        else:
            # Not enough history for a temporal frame yet
            action = self.model.random_output()
            net_input = torch.empty(0)

        self.actions_buffer.push(action)
        self.states_buffer.push(observation)
        self.inputs_buffer.push(net_input)

        return action

    def backward(self):
        """Close the current step: record reward, store experience, maybe replay."""
        self._raise_pending_error()

        self.rewards_history.add(self.current_reward)
        self.track.average_reward = self.rewards_history.average()

        self.track.age += 1

        if not self.track.learning or self.track.forward_passes <= self.config.temporal_window + 1:
            return

        self.memory.remember(Memento(
            action=self.actions_buffer.from_end(MEM_WINDOW_MIN_SIZE),
            reward=self.current_reward,
            state=self.inputs_buffer.from_end(MEM_WINDOW_MIN_SIZE),
            next_state=self.inputs_buffer.last(),
            done=self.done,
        ))

        if len(self.memory) <= self.learning_config.learning_steps_random:
            return
        self.replay()

    def policy(self, net_input: torch.Tensor) -> int:
        """Greedy action under the model's current estimates."""
        return self.model.predict(net_input).highest_value_action()

    # ---------- learning ----------

    def replay(self) -> Future:
        """
        Sample a batch from memory and dispatch one fit on the model.

        The fit is not awaited. The reward accumulator is reset right after
        dispatch, before the fit resolves.

        Returns:
            The model's fit future
        """
        self._raise_pending_error()

        batch = self.memory.sample(self.config.batch_size)
        pairs = [self.create_in_out_from_memento(memento) for memento in batch]
        x = torch.cat([pair[0] for pair in pairs], dim=0)
        y = torch.cat([pair[1] for pair in pairs], dim=0)

        future = self.model.fit(x, y, epochs=1, steps_per_epoch=1)
        with self._fit_state:
            self.track.fits_dispatched += 1
        future.add_done_callback(self._on_fit_done)

        self.set_reward(0.0)
        return future

    def create_in_out_from_memento(self, memento: Memento) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Build the (x, y) training pair for one transition.

        y is the model's current estimate for memento.state with only the
        taken action's entry replaced by the Bellman target.
        """
        target = memento.reward
        if not memento.done:
            next_values = self.model.predict(memento.next_state).as_array()
            target = memento.reward + self.learning_config.gamma * float(next_values.max())

        future_target = self.model.predict(memento.state).as_array().copy()
        future_target[memento.action] = target

        y = torch.tensor(future_target, dtype=torch.float32).reshape(1, self.model.output_size)
        return memento.state, y

    def _on_fit_done(self, future: Future):
        with self._fit_state:
            try:
                if future.cancelled():
                    self._record_failure(TrainingError("Fit was cancelled before it ran"))
                elif future.exception() is not None:
                    failure = TrainingError("Unable to realize fit correctly")
                    failure.__cause__ = future.exception()
                    self._record_failure(failure)
                else:
                    self.losses_history.add(float(future.result()["history"]["loss"][0]))
                    self.track.average_loss = self.losses_history.average()
                    self.track.fits_completed += 1
            finally:
                self._fits_resolved += 1
                self._fit_state.notify_all()

    def _record_failure(self, failure: TrainingError):
        # First failure wins; caller holds _fit_state
        if self._training_error is None:
            self._training_error = failure

    def _raise_pending_error(self):
        with self._fit_state:
            error = self._training_error
        if error is not None:
            raise error

    def wait_for_training(self, timeout: float = None) -> bool:
        """
        Block until every dispatched fit has resolved, then surface any failure.

        Returns:
            False if the timeout expired first
        """
        with self._fit_state:
            finished = self._fit_state.wait_for(
                lambda: self._fits_resolved >= self.track.fits_dispatched, timeout=timeout
            )
        self._raise_pending_error()
        return finished

    # ---------- reward bookkeeping ----------

    def add_reward(self, value: float):
        self.current_reward += value

    def set_reward(self, value: float):
        self.current_reward = value

    def set_done(self, done: bool):
        """Flag the episode end; mementos stored while set use the terminal target."""
        self.done = done

    def get_stats(self) -> dict:
        """Snapshot of counters and running averages for logging."""
        with self._fit_state:
            average_loss = self.track.average_loss
            fits_dispatched = self.track.fits_dispatched
            fits_completed = self.track.fits_completed
        return {
            'age': self.track.age,
            'forward_passes': self.track.forward_passes,
            'learning': self.track.learning,
            'epsilon': self.epsilon,
            'average_reward': self.rewards_history.average(),
            'average_loss': average_loss,
            'memory_size': len(self.memory),
            'fits_dispatched': fits_dispatched,
            'fits_completed': fits_completed,
        }
