"""Conjugate training directions for the conjugate gradient optimizer.

The Polak-Ribiere and Fletcher-Reeves parameters are clamped into [0, 1]. Raw values outside that
range (common with noisy gradients) would otherwise produce wild directions. A beta of 0 turns the
update into steepest descent.
"""

from __future__ import annotations

import enum
from typing import Optional, Union

import numpy as np

from descent.errors import ConfigurationError
from descent.utils.math import is_descent_direction


class TrainingDirectionMethod(enum.Enum):
    """Formula for the conjugate parameter beta."""

    PR = "PR"
    FR = "FR"

    @classmethod
    def parse(cls, value: Union[str, TrainingDirectionMethod]) -> TrainingDirectionMethod:
        """Accept a member, "PR" / "FR", or "PolakRibiere" / "FletcherReeves"."""
        if isinstance(value, cls):
            return value
        aliases = {"PR": cls.PR, "POLAKRIBIERE": cls.PR, "FR": cls.FR, "FLETCHERREEVES": cls.FR}
        if isinstance(value, str):
            key = value.upper().replace("-", "").replace("_", "")
            if key in aliases:
                return aliases[key]
        raise ConfigurationError(f"Unknown training direction method {value!r}. Choose one of ['PR', 'FR']")


def _pr_ratio(old_gradient: np.ndarray, gradient: np.ndarray) -> float:
    denominator = float(np.dot(old_gradient, old_gradient))
    if denominator == 0:
        return float("nan")
    return float(np.dot(gradient, gradient - old_gradient)) / denominator


def _fr_ratio(old_gradient: np.ndarray, gradient: np.ndarray) -> float:
    denominator = float(np.dot(old_gradient, old_gradient))
    if denominator == 0:
        return float("nan")
    return float(np.dot(gradient, gradient)) / denominator


def _clamp(value: float) -> float:
    if not np.isfinite(value):
        return 0.0
    return min(max(value, 0.0), 1.0)


def calculate_pr_parameter(old_gradient: np.ndarray, gradient: np.ndarray) -> float:
    """Polak-Ribiere parameter g.(g - g0) / g0.g0, clamped into [0, 1]. Zero when g0 is zero."""
    return _clamp(_pr_ratio(old_gradient, gradient))


def calculate_fr_parameter(old_gradient: np.ndarray, gradient: np.ndarray) -> float:
    """Fletcher-Reeves parameter g.g / g0.g0, clamped into [0, 1]. Zero when g0 is zero."""
    return _clamp(_fr_ratio(old_gradient, gradient))


class ConjugateDirectionUpdater:
    """Forms conjugate directions d = -g + beta * d0 and decides when to restart.

    The updater restarts to steepest descent (d = -g):
        - every `restart_period` conjugate updates, if given;
        - after `maximum_clamped_updates` consecutive updates whose raw beta fell outside [0, 1];
        - whenever the conjugate direction is not a descent direction.
    """

    def __init__(
        self,
        method: Union[str, TrainingDirectionMethod] = TrainingDirectionMethod.PR,
        restart_period: Optional[int] = None,
        maximum_clamped_updates: int = 2,
    ) -> None:
        """Initialize the updater."""
        self.method = TrainingDirectionMethod.parse(method)
        self.restart_period = restart_period
        self.maximum_clamped_updates = maximum_clamped_updates
        self.updates_since_restart = 0
        self.consecutive_clamps = 0
        self.restarts = 0
        self.last_parameter = 0.0

    def restart(self) -> None:
        """Forget the conjugacy history; the next direction is steepest descent."""
        self.updates_since_restart = 0
        self.consecutive_clamps = 0
        self.last_parameter = 0.0
        self.restarts += 1

    def calculate_parameter(self, old_gradient: np.ndarray, gradient: np.ndarray) -> float:
        """Return the clamped beta for the configured method, tracking consecutive clamps."""
        if self.method is TrainingDirectionMethod.PR:
            raw = _pr_ratio(old_gradient, gradient)
        else:
            raw = _fr_ratio(old_gradient, gradient)
        parameter = _clamp(raw)
        if parameter != raw:
            self.consecutive_clamps += 1
        else:
            self.consecutive_clamps = 0
        return parameter

    def calculate_direction(
        self,
        old_gradient: Optional[np.ndarray],
        gradient: np.ndarray,
        old_direction: Optional[np.ndarray],
    ) -> np.ndarray:
        """Return the next training direction."""
        steepest_descent = -gradient
        if old_gradient is None or old_direction is None:
            self.restart()
            return steepest_descent

        self.updates_since_restart += 1
        if self.restart_period is not None and self.updates_since_restart >= self.restart_period:
            self.restart()
            return steepest_descent

        parameter = self.calculate_parameter(old_gradient, gradient)
        if self.consecutive_clamps >= self.maximum_clamped_updates:
            self.restart()
            return steepest_descent

        direction = steepest_descent + parameter * old_direction
        if not is_descent_direction(gradient, direction):
            self.restart()
            return steepest_descent

        self.last_parameter = parameter
        return direction
