"""
Epsilon-greedy exploration schedule with multiplicative decay.
"""

import random


class EpsilonSchedule:
    """
    Multiplicative epsilon decay keyed off the agent's age.

    Epsilon decays by epsilon_decay once per step while
    learning_steps_random < age < learning_time and epsilon is still
    above epsilon_min. Outside that window it stays where it is, which
    freezes it for good once age reaches learning_time.
    """

    def __init__(
        self,
        epsilon: float = 1.0,
        epsilon_decay: float = 0.99,
        epsilon_min: float = 0.05,
        learning_steps_random: int = 0,
        learning_time: int = 100000
    ):
        """
        Args:
            epsilon: Initial exploration rate (typically 1.0)
            epsilon_decay: Factor applied to epsilon on each decaying step
            epsilon_min: Epsilon stops decaying once it is at or below this value
            learning_steps_random: Age after which decay may start
            learning_time: Age at which decay stops permanently
        """
        self.epsilon = epsilon
        self.epsilon_decay = epsilon_decay
        self.epsilon_min = epsilon_min
        self.learning_steps_random = learning_steps_random
        self.learning_time = learning_time

    @classmethod
    def from_learning_config(cls, learning_config) -> "EpsilonSchedule":
        return cls(
            epsilon=learning_config.epsilon,
            epsilon_decay=learning_config.epsilon_decay,
            epsilon_min=learning_config.epsilon_min,
            learning_steps_random=learning_config.learning_steps_random,
            learning_time=learning_config.learning_time,
        )

    def is_active(self, age: int) -> bool:
        """Whether the schedule is still in its learning phase."""
        return age < self.learning_time

    def step(self, age: int) -> float:
        """
        Apply the decay rule once for the given age.

        Args:
            age: Number of completed backward steps

        Returns:
            Epsilon after the update
        """
        if self.is_active(age):
            if age > self.learning_steps_random and self.epsilon > self.epsilon_min:
                self.epsilon *= self.epsilon_decay
        return self.epsilon

    def should_explore(self, rng: random.Random = None) -> bool:
        """Draw uniformly from [0, 1) and compare against epsilon."""
        draw = rng.random() if rng is not None else random.random()
        return draw < self.epsilon
