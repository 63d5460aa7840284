"""Stopping criteria shared by all optimizers."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
import enum
import math
from typing import Any, Mapping, Optional

from descent.errors import ConfigurationError


class StoppingReason(enum.Enum):
    """Why a training run ended."""

    LOSS_GOAL_REACHED = "LossGoalReached"
    MINIMUM_LOSS_DECREASE = "MinimumLossDecrease"
    GRADIENT_NORM_GOAL = "GradientNormGoal"
    MAXIMUM_EPOCHS_REACHED = "MaximumEpochsReached"
    MAXIMUM_TIME_REACHED = "MaximumTimeReached"
    MAXIMUM_SELECTION_FAILURES = "MaximumSelectionFailures"
    USER_STOP = "UserStop"
    NON_FINITE_VALUES = "NonFiniteValues"

    @property
    def is_fatal(self) -> bool:
        """Whether the run was aborted because its numeric state became unusable."""
        return self is StoppingReason.NON_FINITE_VALUES

    @property
    def description(self) -> str:
        """A human readable description of the reason."""
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    StoppingReason.LOSS_GOAL_REACHED: "Loss goal reached",
    StoppingReason.MINIMUM_LOSS_DECREASE: "Loss decrease below minimum",
    StoppingReason.GRADIENT_NORM_GOAL: "Gradient norm goal reached",
    StoppingReason.MAXIMUM_EPOCHS_REACHED: "Maximum number of epochs reached",
    StoppingReason.MAXIMUM_TIME_REACHED: "Maximum training time reached",
    StoppingReason.MAXIMUM_SELECTION_FAILURES: "Maximum selection error increases reached",
    StoppingReason.USER_STOP: "Stopped by the caller",
    StoppingReason.NON_FINITE_VALUES: "Loss or gradient is not finite",
}


@dataclass(frozen=True)
class StoppingCriteriaConfig:
    """Thresholds that end a training run. Immutable for the duration of a run.

    Attributes:
        loss_goal: stop once the training loss is at or below this value.
        minimum_loss_decrease: stop once an epoch decreases the loss by less than this.
        gradient_norm_goal: stop once the gradient norm is at or below this value.
        maximum_epochs: stop after this many epochs.
        maximum_time: stop after this many seconds of wall-clock time.
        maximum_selection_failures: stop after this many consecutive selection loss increases.
    """

    loss_goal: float = 0.0
    minimum_loss_decrease: float = 0.0
    gradient_norm_goal: float = 0.0
    maximum_epochs: int = 1000
    maximum_time: float = 3600.0
    maximum_selection_failures: int = 100

    @classmethod
    def permissive(cls) -> StoppingCriteriaConfig:
        """A config in which no criterion can ever fire."""
        return cls(
            loss_goal=-math.inf,
            minimum_loss_decrease=-math.inf,
            gradient_norm_goal=-math.inf,
            maximum_epochs=2**62,
            maximum_time=math.inf,
            maximum_selection_failures=2**62,
        )

    def replace(self, **changes: Any) -> StoppingCriteriaConfig:
        """Return a copy with some fields changed."""
        return dataclasses.replace(self, **changes)

    def validate(self) -> None:
        """Raise ConfigurationError if the criteria are malformed or contradictory."""
        for name in ("loss_goal", "minimum_loss_decrease", "gradient_norm_goal", "maximum_time"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
            if math.isnan(value):
                raise ConfigurationError(f"{name} is NaN, so the criterion can never be evaluated")
        for name in ("maximum_epochs", "maximum_selection_failures"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise ConfigurationError(f"{name} must be non-negative, got {value}")
        if self.maximum_time < 0:
            raise ConfigurationError(f"maximum_time must be non-negative, got {self.maximum_time}")
        if self.loss_goal == math.inf:
            raise ConfigurationError("loss_goal=inf would stop every run before its first epoch")

    def to_dict(self) -> dict[str, Any]:
        """Serialize every field into a plain dict."""
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, document: Mapping[str, Any]) -> StoppingCriteriaConfig:
        """Build a validated config from a dict produced by `to_dict()`. Missing fields keep their defaults."""
        known = {field.name for field in dataclasses.fields(cls)}
        unknown = set(document) - known
        if unknown:
            raise ConfigurationError(f"Unknown stopping criteria: {sorted(unknown)}")
        config = cls(**document)
        config.validate()
        return config


def evaluate_stopping_criteria(
    loss: float,
    previous_loss: float,
    gradient_norm: float,
    epoch: int,
    elapsed_time: float,
    selection_failures: int,
    config: StoppingCriteriaConfig,
) -> Optional[StoppingReason]:
    """Return the first stopping criterion that fires, or None if training should continue.

    Criteria are checked in priority order: loss goal, minimum loss decrease (only after the first
    epoch), gradient norm goal, maximum epochs, maximum time, maximum selection failures.
    """
    if loss <= config.loss_goal:
        return StoppingReason.LOSS_GOAL_REACHED
    if epoch > 0 and (previous_loss - loss) < config.minimum_loss_decrease:
        return StoppingReason.MINIMUM_LOSS_DECREASE
    if gradient_norm <= config.gradient_norm_goal:
        return StoppingReason.GRADIENT_NORM_GOAL
    if epoch >= config.maximum_epochs:
        return StoppingReason.MAXIMUM_EPOCHS_REACHED
    if elapsed_time >= config.maximum_time:
        return StoppingReason.MAXIMUM_TIME_REACHED
    if selection_failures >= config.maximum_selection_failures:
        return StoppingReason.MAXIMUM_SELECTION_FAILURES
    return None
