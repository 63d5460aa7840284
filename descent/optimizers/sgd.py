"""Implements the stochastic gradient descent optimizer."""

from typing import Any, Mapping, Optional

import numpy as np

from descent.errors import ConfigurationError
from descent.loss.base import LossIndex
from descent.optimizers.base import Optimizer
from descent.optimizers.results import IterationState
from descent.optimizers.stopping import StoppingCriteriaConfig
from descent.utils.math import is_finite


class StochasticGradientDescent(Optimizer):
    """Implements first-order stochastic gradient descent with momentum over mini-batches.

    For every mini-batch gradient g, with learning rate eta and momentum m:

        v <- m * v - eta * g
        p <- p + v                      (classical momentum)
        p <- p + m * v - eta * g        (Nesterov momentum)

    The learning rate decays per epoch as eta_0 / (1 + initial_decay * epoch). There is no line
    search; with momentum 0 and a single full batch, each epoch is one exact gradient descent step.
    """

    def __init__(
        self,
        loss_index: Optional[LossIndex] = None,
        *,
        initial_learning_rate: float = 0.01,
        initial_decay: float = 0.0,
        momentum: float = 0.0,
        nesterov: bool = False,
        batch_size: int = 1000,
        shuffle: bool = True,
        stopping_criteria: Optional[StoppingCriteriaConfig] = None,
        display: bool = True,
        display_period: int = 10,
    ) -> None:
        """Initialize the optimizer."""
        super().__init__(
            loss_index,
            stopping_criteria=stopping_criteria,
            display=display,
            display_period=display_period,
        )
        self.initial_learning_rate = initial_learning_rate
        self.initial_decay = initial_decay
        self.momentum = momentum
        self.nesterov = nesterov
        self.batch_size = batch_size
        self.shuffle = shuffle

    def set_learning_rate(self, lr: float) -> None:
        """Update the initial learning rate."""
        self.initial_learning_rate = lr

    def get_learning_rate(self, epoch: int) -> float:
        """The learning rate used during `epoch` (counting from 0)."""
        return self.initial_learning_rate / (1 + self.initial_decay * epoch)

    def check_hyperparameters(self) -> None:
        """Raise ConfigurationError if a hyperparameter is out of range."""
        if not (np.isfinite(self.initial_learning_rate) and self.initial_learning_rate > 0):
            raise ConfigurationError(f"initial_learning_rate must be positive, got {self.initial_learning_rate}")
        if not (np.isfinite(self.initial_decay) and self.initial_decay >= 0):
            raise ConfigurationError(f"initial_decay must be non-negative, got {self.initial_decay}")
        if not 0 <= self.momentum < 1:
            raise ConfigurationError(f"momentum must be in [0, 1), got {self.momentum}")
        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int) or self.batch_size < 1:
            raise ConfigurationError(f"batch_size must be a positive integer, got {self.batch_size!r}")

    def get_hyperparameters(self) -> dict[str, Any]:
        """Return the tunable hyperparameters as a JSON-compatible dict."""
        return {
            "initial_learning_rate": self.initial_learning_rate,
            "initial_decay": self.initial_decay,
            "momentum": self.momentum,
            "nesterov": self.nesterov,
            "batch_size": self.batch_size,
            "shuffle": self.shuffle,
        }

    def set_hyperparameters(self, hyperparameters: Mapping[str, Any]) -> None:
        """Update hyperparameters from a dict produced by `get_hyperparameters()`.

        A rejected update raises ConfigurationError and leaves every hyperparameter unchanged.
        """
        unknown = set(hyperparameters) - set(self.get_hyperparameters())
        if unknown:
            raise ConfigurationError(f"Unknown {type(self).__name__} hyperparameters: {sorted(unknown)}")
        previous = self.get_hyperparameters()
        try:
            for name, value in hyperparameters.items():
                setattr(self, name, value)
            self.check_hyperparameters()
        except (TypeError, ValueError) as e:
            for name, value in previous.items():
                setattr(self, name, value)
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid {type(self).__name__} hyperparameters: {e}") from e

    def initialize_state(self, state: IterationState, loss_index: LossIndex) -> None:
        """Start with zero velocity."""
        state.extras["velocity"] = np.zeros_like(state.parameters)

    def update_parameters(self, state: IterationState, loss_index: LossIndex) -> None:
        """Take one step per mini-batch of the epoch."""
        learning_rate = self.get_learning_rate(state.epoch)
        velocity = state.extras["velocity"]
        parameters = np.copy(state.parameters)

        for batch in loss_index.get_training_batches(batch_size=self.batch_size, shuffle=self.shuffle):
            if state.stop_requested():
                break
            loss, gradient = loss_index.evaluate(batch)
            state.evaluations += 1
            if not is_finite(loss, gradient):
                state.numeric_failure = True
                break

            velocity = self.momentum * velocity - learning_rate * gradient
            if self.nesterov:
                parameters = parameters + self.momentum * velocity - learning_rate * gradient
            else:
                parameters = parameters + velocity
            loss_index.set_parameters(parameters)

        state.extras["velocity"] = velocity
        state.direction = parameters - state.parameters
        state.learning_rate = learning_rate
