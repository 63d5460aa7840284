"""Shared plumbing for optimizers that pick a direction and then search along it for a step size."""

from typing import Any, Mapping, Optional

import numpy as np

from descent.errors import ConfigurationError
from descent.loss.base import LossIndex
from descent.optimizers.base import Optimizer
from descent.optimizers.line_search import LearningRateAlgorithm, LineSearchResult
from descent.optimizers.results import IterationState
from descent.optimizers.stopping import StoppingCriteriaConfig


class DirectionalOptimizer(Optimizer):
    """Base class for line search optimizers.

    The line search of each epoch is seeded with the learning rate chosen in the previous epoch, or
    with `first_learning_rate` when there is none.
    """

    def __init__(
        self,
        loss_index: Optional[LossIndex] = None,
        *,
        first_learning_rate: float = 0.01,
        learning_rate_algorithm: Optional[LearningRateAlgorithm] = None,
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
        self.first_learning_rate = first_learning_rate
        self.learning_rate_algorithm = (
            learning_rate_algorithm if learning_rate_algorithm is not None else LearningRateAlgorithm()
        )

    def check_hyperparameters(self) -> None:
        """Raise ConfigurationError if a hyperparameter is out of range."""
        if not (np.isfinite(self.first_learning_rate) and self.first_learning_rate > 0):
            raise ConfigurationError(f"first_learning_rate must be positive, got {self.first_learning_rate}")
        self.learning_rate_algorithm.check()

    def get_hyperparameters(self) -> dict[str, Any]:
        """Return the tunable hyperparameters as a JSON-compatible dict."""
        return {
            "first_learning_rate": self.first_learning_rate,
            "learning_rate_algorithm": self.learning_rate_algorithm.get_hyperparameters(),
        }

    def set_hyperparameters(self, hyperparameters: Mapping[str, Any]) -> None:
        """Update hyperparameters from a dict produced by `get_hyperparameters()`.

        A rejected update raises ConfigurationError and leaves every hyperparameter unchanged,
        including those of the learning rate algorithm.
        """
        unknown = set(hyperparameters) - set(self.get_hyperparameters())
        if unknown:
            raise ConfigurationError(f"Unknown {type(self).__name__} hyperparameters: {sorted(unknown)}")
        nested = hyperparameters.get("learning_rate_algorithm", {})
        if not isinstance(nested, Mapping):
            raise ConfigurationError(f"learning_rate_algorithm must be a mapping, got {nested!r}")

        previous = self.get_hyperparameters()
        try:
            self.learning_rate_algorithm.set_hyperparameters(nested)
            self._assign(hyperparameters)
            self.check_hyperparameters()
        except (TypeError, ValueError) as e:
            self.learning_rate_algorithm.set_hyperparameters(previous["learning_rate_algorithm"])
            self._assign(previous)
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid {type(self).__name__} hyperparameters: {e}") from e

    def _assign(self, hyperparameters: Mapping[str, Any]) -> None:
        for name, value in hyperparameters.items():
            if name != "learning_rate_algorithm":
                self._set_hyperparameter(name, value)

    def _set_hyperparameter(self, name: str, value: Any) -> None:
        setattr(self, name, value)

    def step_along(self, state: IterationState, loss_index: LossIndex, direction: np.ndarray) -> LineSearchResult:
        """Search along `direction` from the current point and move there if the loss decreased."""
        initial_learning_rate = state.learning_rate if state.learning_rate > 0 else self.first_learning_rate
        result = self.learning_rate_algorithm.calculate_directional_point(
            loss_index,
            state.parameters,
            state.loss,
            direction,
            initial_learning_rate,
            stop_requested=state.stop_requested,
        )
        state.evaluations += result.evaluations
        state.direction = direction
        state.learning_rate = result.learning_rate
        if result.moved:
            loss_index.set_parameters(state.parameters + result.learning_rate * direction)
        return result
