"""
Tests for the TD agent's forward/backward loop.

The model is replaced by a fake exposing predict / random_output /
output_size / fit so the step contract can be checked without training.

Run with: pytest tests/test_agent.py -v
"""

import pytest
import torch
import numpy as np
import random
import sys
import os
from concurrent.futures import Future

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from agent.config import AgentConfig, LearningConfig
from agent.replay_buffer import ReplayBuffer, Memento
from agent.td_agent import TDAgent, TrainingError


class FakeValues:
    def __init__(self, values):
        self.values = np.asarray(values, dtype=np.float32)

    def highest_value_action(self):
        return int(np.argmax(self.values))

    def as_array(self):
        return self.values.copy()


class FakeModel:
    """Deterministic stand-in for the Q-model."""

    def __init__(self, output_size=3, random_actions=None, value_fn=None, fit_error=None, loss=0.25):
        self.output_size = output_size
        self.random_actions = list(random_actions) if random_actions is not None else None
        self.random_calls = 0
        self.value_fn = value_fn or (lambda x: [0.0] * output_size)
        self.fit_error = fit_error
        self.loss = loss
        self.fit_calls = []

    def predict(self, x):
        return FakeValues(self.value_fn(x))

    def random_output(self):
        self.random_calls += 1
        if self.random_actions:
            return self.random_actions[(self.random_calls - 1) % len(self.random_actions)]
        return self.output_size - 1

    def fit(self, x, y, epochs=1, steps_per_epoch=1):
        self.fit_calls.append((x, y, epochs, steps_per_epoch))
        future = Future()
        if self.fit_error is not None:
            future.set_exception(self.fit_error)
        else:
            future.set_result({"history": {"loss": [self.loss]}})
        return future


class PendingFitModel(FakeModel):
    """Fake whose fits stay pending until the test resolves them."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.futures = []

    def fit(self, x, y, epochs=1, steps_per_epoch=1):
        self.fit_calls.append((x, y, epochs, steps_per_epoch))
        future = Future()
        self.futures.append(future)
        return future


class SpyMemory(ReplayBuffer):
    """Replay buffer that records remember/sample calls."""

    def __init__(self, capacity):
        super().__init__(capacity)
        self.remembered = []
        self.sample_sizes = []

    def remember(self, memento):
        self.remembered.append(memento)
        super().remember(memento)

    def sample(self, batch_size):
        batch = super().sample(batch_size)
        self.sample_sizes.append((batch_size, len(batch)))
        return batch


def make_config(temporal_window=0, memory_size=100, batch_size=4, **learning):
    learning_defaults = dict(
        gamma=0.9,
        epsilon=1.0,
        epsilon_decay=0.99,
        epsilon_min=0.1,
        learning_rate=0.001,
        learning_time=1000,
        learning_steps_random=5,
    )
    learning_defaults.update(learning)
    return AgentConfig(
        memory_size=memory_size,
        batch_size=batch_size,
        temporal_window=temporal_window,
        learning_config=LearningConfig(**learning_defaults),
    )


def obs(value, width=2):
    return torch.full((1, width), float(value))


class TestAgentConstruction:
    """Tests for configuration checks at construction."""

    def test_missing_learning_config(self):
        """A config without learning_config should fail fast."""
        config = AgentConfig(memory_size=10, batch_size=2, temporal_window=1)

        with pytest.raises(ValueError, match="learning_config"):
            TDAgent(FakeModel(), config)

    def test_negative_temporal_window(self):
        with pytest.raises(ValueError):
            TDAgent(FakeModel(), make_config(temporal_window=-1))

    def test_window_size_minimum(self):
        """Buffers should hold at least two entries."""
        for temporal_window, expected in [(0, 2), (1, 2), (2, 2), (5, 5)]:
            agent = TDAgent(FakeModel(), make_config(temporal_window=temporal_window))
            assert agent.net_input_window_size == expected
            assert len(agent.actions_buffer) == expected

    def test_initial_tracking(self):
        agent = TDAgent(FakeModel(), make_config())

        assert agent.tracking.age == 0
        assert agent.tracking.forward_passes == 0
        assert agent.tracking.learning is True
        assert agent.tracking.average_reward is None
        assert agent.tracking.average_loss is None


class TestForward:
    """Tests for action selection."""

    def test_buffers_keep_fixed_size(self):
        """Every buffer should hold exactly net_input_window_size slots."""
        agent = TDAgent(FakeModel(), make_config(temporal_window=3))

        for i in range(20):
            agent.forward(obs(i))
            for buffer in (agent.actions_buffer, agent.states_buffer, agent.inputs_buffer):
                assert len(buffer) == 3

    def test_warm_up_is_random(self):
        """While forward_passes <= temporal_window actions are random and inputs empty."""
        model = FakeModel(random_actions=[2], value_fn=lambda x: [1.0, 0.0, 0.0])
        agent = TDAgent(model, make_config(temporal_window=3, epsilon=0.0))

        for i in range(3):
            assert agent.forward(obs(i)) == 2
            assert agent.inputs_buffer.last().numel() == 0
        assert model.random_calls == 3

        # History is now long enough: greedy policy takes over
        assert agent.forward(obs(3)) == 0
        assert agent.inputs_buffer.last().shape == (1, 2 + 3 * (2 + 3))

    def test_greedy_when_epsilon_zero(self):
        model = FakeModel(value_fn=lambda x: [0.0, 5.0, 1.0])
        agent = TDAgent(model, make_config(temporal_window=0, epsilon=0.0))

        actions = [agent.forward(obs(i)) for i in range(10)]

        assert actions == [1] * 10
        assert model.random_calls == 0

    def test_explores_when_epsilon_one(self):
        model = FakeModel(random_actions=[0, 2], value_fn=lambda x: [0.0, 5.0, 1.0])
        agent = TDAgent(model, make_config(temporal_window=0, epsilon=1.0), rng=random.Random(0))

        actions = [agent.forward(obs(i)) for i in range(4)]

        assert actions == [0, 2, 0, 2]

    def test_observation_stored(self):
        agent = TDAgent(FakeModel(), make_config(temporal_window=0))
        observation = obs(7)

        agent.forward(observation)

        assert agent.states_buffer.last() is observation
        assert torch.equal(agent.inputs_buffer.last(), observation)

    def test_forward_passes_increase(self):
        agent = TDAgent(FakeModel(), make_config())
        for i in range(5):
            agent.forward(obs(i))

        assert agent.tracking.forward_passes == 5


class TestEpsilonDecay:
    """Tests for epsilon decay driven through forward()."""

    def test_decay_example(self):
        """After age 6 one forward multiplies epsilon by the decay once."""
        agent = TDAgent(FakeModel(), make_config(epsilon=1.0, epsilon_decay=0.99, epsilon_min=0.1,
                                                 learning_steps_random=5, learning_time=1000))
        agent.track.age = 6
        agent.forward(obs(0))

        assert agent.epsilon == pytest.approx(0.99)

        agent.track.age = 1000
        before = agent.epsilon
        for i in range(5):
            agent.forward(obs(i))

        assert agent.epsilon == before
        assert agent.epsilon > 0.1

    def test_no_decay_in_random_phase(self):
        agent = TDAgent(FakeModel(), make_config(learning_steps_random=5))
        for i in range(6):
            agent.forward(obs(i))
            agent.backward()

        # Ages seen by forward were 0..5
        assert agent.epsilon == 1.0

    def test_config_not_mutated(self):
        """The live epsilon belongs to the schedule, not the config."""
        config = make_config(learning_steps_random=0)
        agent = TDAgent(FakeModel(), config)
        agent.track.age = 1
        agent.forward(obs(0))

        assert agent.epsilon < 1.0
        assert config.learning_config.epsilon == 1.0


class TestBackward:
    """Tests for experience storage and replay triggering."""

    def test_reward_recorded_and_age_incremented(self):
        agent = TDAgent(FakeModel(), make_config())
        for i in range(10):
            agent.forward(obs(i))
            agent.set_reward(2.0)
            agent.backward()

        assert agent.tracking.age == 10
        assert agent.tracking.average_reward == pytest.approx(2.0)

    def test_no_memory_while_history_short(self):
        """Nothing is stored while forward_passes <= temporal_window + 1."""
        memory = SpyMemory(100)
        agent = TDAgent(FakeModel(), make_config(temporal_window=2), memory=memory)

        for i in range(3):
            agent.forward(obs(i))
            agent.backward()
        assert memory.remembered == []

        agent.forward(obs(3))
        agent.backward()
        assert len(memory.remembered) == 1

    def test_memento_contents(self):
        """The memento pairs the previous step's input with the newest one."""
        memory = SpyMemory(100)
        model = FakeModel(random_actions=[0, 1])
        agent = TDAgent(model, make_config(temporal_window=0), memory=memory)

        first, second = obs(1), obs(2)
        agent.forward(first)
        agent.backward()
        agent.forward(second)
        agent.add_reward(0.25)
        agent.add_reward(0.25)
        agent.backward()

        memento = memory.remembered[0]
        assert memento.action == 0
        assert memento.reward == 0.5
        assert torch.equal(memento.state, first)
        assert torch.equal(memento.next_state, second)
        assert memento.done is False

    def test_learning_disabled(self):
        """With learning off nothing is remembered or replayed."""
        memory = SpyMemory(100)
        model = FakeModel()
        agent = TDAgent(model, make_config(temporal_window=0, learning_steps_random=0), memory=memory)
        agent.set_learning(False)

        for i in range(50):
            agent.forward(obs(i))
            agent.add_reward(1.0)
            agent.backward()

        assert memory.remembered == []
        assert memory.sample_sizes == []
        assert model.fit_calls == []
        assert agent.tracking.age == 50

    def test_replay_triggered_once_store_exceeds_threshold(self):
        """The first replay happens when the store grows past learning_steps_random."""
        memory = SpyMemory(4)
        model = FakeModel()
        agent = TDAgent(model, make_config(temporal_window=0, memory_size=4, batch_size=3,
                                           learning_steps_random=2), memory=memory)

        # backward #1 stores nothing, #2 and #3 fill the store to 2
        for i in range(3):
            agent.forward(obs(i))
            agent.backward()
        assert len(memory) == 2
        assert model.fit_calls == []

        agent.forward(obs(3))
        agent.backward()

        assert memory.sample_sizes == [(3, 3)]
        assert len(model.fit_calls) == 1
        x, y, epochs, steps = model.fit_calls[0]
        assert x.shape == (3, 2)
        assert y.shape == (3, 3)
        assert (epochs, steps) == (1, 1)

    def test_replay_after_memory_full(self):
        """With a full store, each backward replays exactly once."""
        memory = SpyMemory(4)
        model = FakeModel()
        agent = TDAgent(model, make_config(temporal_window=0, memory_size=4, batch_size=2,
                                           learning_steps_random=2), memory=memory)
        for i in range(5):
            agent.forward(obs(i))
            agent.backward()
        assert len(memory) == 4
        calls_before = len(model.fit_calls)

        agent.forward(obs(5))
        agent.backward()

        assert len(memory) == 4
        assert len(model.fit_calls) == calls_before + 1
        assert memory.sample_sizes[-1] == (2, 2)

    def test_reward_reset_after_replay(self):
        model = FakeModel()
        agent = TDAgent(model, make_config(temporal_window=0, learning_steps_random=0))
        agent.forward(obs(0))
        agent.backward()
        agent.forward(obs(1))
        agent.set_reward(3.0)
        agent.backward()

        assert len(model.fit_calls) == 1
        assert agent.current_reward == 0.0

    def test_loss_recorded(self):
        model = FakeModel(loss=0.5)
        agent = TDAgent(model, make_config(temporal_window=0, learning_steps_random=0))
        for i in range(12):
            agent.forward(obs(i))
            agent.backward()

        assert agent.losses_history.values() == [0.5] * 11
        assert agent.tracking.average_loss == pytest.approx(0.5)
        assert agent.tracking.fits_completed == agent.tracking.fits_dispatched == 11

    def test_failed_fit_is_fatal(self):
        """A rejected fit should surface on the next call and keep surfacing."""
        model = FakeModel(fit_error=RuntimeError("boom"))
        agent = TDAgent(model, make_config(temporal_window=0, learning_steps_random=0))
        agent.forward(obs(0))
        agent.backward()
        agent.forward(obs(1))
        agent.backward()

        with pytest.raises(TrainingError) as excinfo:
            agent.forward(obs(2))
        assert isinstance(excinfo.value.__cause__, RuntimeError)

        with pytest.raises(TrainingError):
            agent.backward()
        assert len(model.fit_calls) == 1


class TestPendingFits:
    """Tests for fits that resolve after backward() has returned."""

    @staticmethod
    def run_steps(agent, count, reward=0.0):
        for i in range(count):
            agent.forward(obs(i))
            agent.set_reward(reward)
            agent.backward()

    def test_state_before_fits_resolve(self):
        """Reward resets on dispatch while losses wait for the fits to finish."""
        model = PendingFitModel()
        agent = TDAgent(model, make_config(temporal_window=0, learning_steps_random=0))

        self.run_steps(agent, 3, reward=4.0)

        assert len(model.futures) == 2
        assert not any(future.done() for future in model.futures)
        assert agent.current_reward == 0.0
        assert agent.losses_history.values() == []
        assert agent.tracking.average_loss is None
        assert agent.tracking.fits_dispatched == 2
        assert agent.tracking.fits_completed == 0
        assert agent.wait_for_training(timeout=0.05) is False

        for loss, future in zip([0.3, 0.5], model.futures):
            future.set_result({"history": {"loss": [loss]}})

        assert agent.wait_for_training(timeout=1.0) is True
        assert agent.losses_history.values() == [0.3, 0.5]
        assert agent.tracking.fits_completed == 2

    def test_cancelled_fit_releases_waiters(self):
        """A fit cancelled before running still counts as resolved and is reported."""
        model = PendingFitModel()
        agent = TDAgent(model, make_config(temporal_window=0, learning_steps_random=0))
        self.run_steps(agent, 2)

        assert model.futures[0].cancel()

        with pytest.raises(TrainingError, match="cancelled"):
            agent.wait_for_training(timeout=1.0)
        assert agent._fits_resolved == agent.tracking.fits_dispatched == 1
        assert agent.tracking.fits_completed == 0

        with pytest.raises(TrainingError):
            agent.forward(obs(5))

    def test_stats_follow_resolved_fits(self):
        model = PendingFitModel()
        agent = TDAgent(model, make_config(temporal_window=0, learning_steps_random=0))
        self.run_steps(agent, 2)

        stats = agent.get_stats()
        assert stats['fits_dispatched'] == 1
        assert stats['fits_completed'] == 0
        assert stats['average_loss'] is None

        model.futures[0].set_result({"history": {"loss": [0.4]}})

        stats = agent.get_stats()
        assert stats['fits_completed'] == 1
        assert stats['memory_size'] == 1
        assert stats['average_loss'] is None  # below the window's min size

        for _ in range(9):
            self.run_steps(agent, 1)
            model.futures[-1].set_result({"history": {"loss": [0.4]}})

        assert agent.get_stats()['average_loss'] == pytest.approx(0.4)


class TestBellmanTarget:
    """Tests for create_in_out_from_memento."""

    @staticmethod
    def value_fn(x):
        if float(x[0, 0]) == 2.0:
            return [0.2, 0.5, 0.1]
        return [0.3, 0.7, -0.4]

    def test_target_example(self):
        """reward 1.0, gamma 0.9, max next value 0.5 -> target 1.45."""
        agent = TDAgent(FakeModel(value_fn=self.value_fn), make_config(gamma=0.9))
        state, next_state = obs(1), obs(2)
        memento = Memento(action=2, reward=1.0, state=state, next_state=next_state)

        x, y = agent.create_in_out_from_memento(memento)

        assert x is state
        assert y.shape == (1, 3)
        assert y[0, 2].item() == pytest.approx(1.45)
        assert y[0, 0].item() == pytest.approx(0.3)
        assert y[0, 1].item() == pytest.approx(0.7)

    def test_done_target_is_reward(self):
        """Terminal transitions use the reward alone."""
        agent = TDAgent(FakeModel(value_fn=self.value_fn), make_config(gamma=0.9))
        memento = Memento(action=0, reward=2.0, state=obs(1), next_state=obs(2), done=True)

        _, y = agent.create_in_out_from_memento(memento)

        assert y[0, 0].item() == 2.0
        assert y[0, 1].item() == pytest.approx(0.7)
        assert y[0, 2].item() == pytest.approx(-0.4)

    def test_action_space_from_model(self):
        """The label width follows the model's output size."""
        model = FakeModel(output_size=5, value_fn=lambda x: [0.0, 1.0, 2.0, 3.0, 4.0])
        agent = TDAgent(model, make_config())
        memento = Memento(action=4, reward=0.0, state=obs(1), next_state=obs(2))

        _, y = agent.create_in_out_from_memento(memento)

        assert y.shape == (1, 5)
        assert y[0, 4].item() == pytest.approx(0.9 * 4.0)

    def test_done_flag_stored(self):
        """set_done marks mementos stored afterwards as terminal."""
        memory = SpyMemory(100)
        agent = TDAgent(FakeModel(), make_config(temporal_window=0), memory=memory)
        agent.forward(obs(0))
        agent.backward()
        agent.forward(obs(1))
        agent.set_done(True)
        agent.backward()

        assert memory.remembered[-1].done is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
