"""Implements the conjugate gradient optimizer."""

from typing import Any, Optional, Union

from descent.errors import ConfigurationError
from descent.loss.base import LossIndex
from descent.optimizers.conjugate_direction import ConjugateDirectionUpdater, TrainingDirectionMethod
from descent.optimizers.directional import DirectionalOptimizer
from descent.optimizers.line_search import LearningRateAlgorithm
from descent.optimizers.results import IterationState
from descent.optimizers.stopping import StoppingCriteriaConfig


class ConjugateGradient(DirectionalOptimizer):
    """Conjugate gradient descent with Polak-Ribiere or Fletcher-Reeves directions.

    The first epoch moves along the steepest descent direction. Later epochs combine the new
    gradient with the previous direction, restarting to steepest descent every `restart_period`
    updates (the number of parameters by default), after `maximum_clamped_updates` consecutive
    clamped betas, and after a line search that could not decrease the loss.
    """

    def __init__(
        self,
        loss_index: Optional[LossIndex] = None,
        *,
        training_direction_method: Union[str, TrainingDirectionMethod] = TrainingDirectionMethod.PR,
        first_learning_rate: float = 0.01,
        restart_period: Optional[int] = None,
        maximum_clamped_updates: int = 2,
        learning_rate_algorithm: Optional[LearningRateAlgorithm] = None,
        stopping_criteria: Optional[StoppingCriteriaConfig] = None,
        display: bool = True,
        display_period: int = 10,
    ) -> None:
        """Initialize the optimizer."""
        super().__init__(
            loss_index,
            first_learning_rate=first_learning_rate,
            learning_rate_algorithm=learning_rate_algorithm,
            stopping_criteria=stopping_criteria,
            display=display,
            display_period=display_period,
        )
        self.training_direction_method = TrainingDirectionMethod.parse(training_direction_method)
        self.restart_period = restart_period
        self.maximum_clamped_updates = maximum_clamped_updates

    def set_training_direction_method(self, method: Union[str, TrainingDirectionMethod]) -> None:
        """Choose between the Polak-Ribiere ("PR") and Fletcher-Reeves ("FR") parameters."""
        self.training_direction_method = TrainingDirectionMethod.parse(method)

    def check_hyperparameters(self) -> None:
        """Raise ConfigurationError if a hyperparameter is out of range."""
        super().check_hyperparameters()
        if self.restart_period is not None and (
            isinstance(self.restart_period, bool) or not isinstance(self.restart_period, int) or self.restart_period < 1
        ):
            raise ConfigurationError(f"restart_period must be a positive integer or None, got {self.restart_period!r}")
        if (
            isinstance(self.maximum_clamped_updates, bool)
            or not isinstance(self.maximum_clamped_updates, int)
            or self.maximum_clamped_updates < 1
        ):
            raise ConfigurationError(
                f"maximum_clamped_updates must be a positive integer, got {self.maximum_clamped_updates!r}"
            )

    def get_hyperparameters(self) -> dict[str, Any]:
        """Return the tunable hyperparameters as a JSON-compatible dict."""
        return {
            "training_direction_method": self.training_direction_method.value,
            "restart_period": self.restart_period,
            "maximum_clamped_updates": self.maximum_clamped_updates,
            **super().get_hyperparameters(),
        }

    def _set_hyperparameter(self, name: str, value: Any) -> None:
        if name == "training_direction_method":
            self.set_training_direction_method(value)
        else:
            setattr(self, name, value)

    def initialize_state(self, state: IterationState, loss_index: LossIndex) -> None:
        """Create the direction updater for this run."""
        restart_period = self.restart_period if self.restart_period is not None else loss_index.parameters_count()
        state.extras["updater"] = ConjugateDirectionUpdater(
            method=self.training_direction_method,
            restart_period=restart_period,
            maximum_clamped_updates=self.maximum_clamped_updates,
        )
        state.extras["restart"] = True

    def update_parameters(self, state: IterationState, loss_index: LossIndex) -> None:
        """Search along the next conjugate direction."""
        updater: ConjugateDirectionUpdater = state.extras["updater"]
        if state.extras["restart"]:
            direction = updater.calculate_direction(None, state.gradient, None)
        else:
            direction = updater.calculate_direction(state.old_gradient, state.gradient, state.direction)

        result = self.step_along(state, loss_index, direction)
        state.extras["restart"] = not result.moved
