"""Inverse Hessian approximations for quasi-Newton training.

Both updates use the secant pair dp = p - p0 and dg = g - g0 and keep the approximation symmetric
positive definite as long as the curvature dp.dg is positive. When it isn't, the approximator
restarts from the identity matrix instead of dividing by a near-zero curvature.
"""

from __future__ import annotations

import enum
from typing import Optional, Union

import numpy as np

from descent.errors import ConfigurationError
from descent.utils.math import is_descent_direction, is_finite, symmetrize


class InverseHessianApproximationMethod(enum.Enum):
    """Update rule for the inverse Hessian approximation."""

    DFP = "DFP"
    BFGS = "BFGS"

    @classmethod
    def parse(cls, value: Union[str, InverseHessianApproximationMethod]) -> InverseHessianApproximationMethod:
        """Accept a member or its name, case-insensitively."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if value.upper() == member.value:
                    return member
        raise ConfigurationError(
            f"Unknown inverse Hessian approximation method {value!r}. Choose one of {[m.value for m in cls]}"
        )


def calculate_dfp_inverse_hessian(
    inverse_hessian: np.ndarray,
    parameters_difference: np.ndarray,
    gradient_difference: np.ndarray,
) -> np.ndarray:
    """Davidon-Fletcher-Powell update.

    H' = H + (dp dp^T) / (dp.dg) - (H dg)(H dg)^T / (dg.H.dg)

    Requires dp.dg != 0 and dg.H.dg != 0. Returns a new, symmetrized matrix.
    """
    dp, dg = parameters_difference, gradient_difference
    h_dg = inverse_hessian @ dg
    updated = inverse_hessian + np.outer(dp, dp) / np.dot(dp, dg) - np.outer(h_dg, h_dg) / np.dot(dg, h_dg)
    return symmetrize(updated)


def calculate_bfgs_inverse_hessian(
    inverse_hessian: np.ndarray,
    parameters_difference: np.ndarray,
    gradient_difference: np.ndarray,
) -> np.ndarray:
    """Broyden-Fletcher-Goldfarb-Shanno update.

    H' = H + (1 + dg.H.dg / dp.dg) (dp dp^T) / (dp.dg) - (dp (H dg)^T + (H dg) dp^T) / (dp.dg)

    Requires dp.dg != 0. Returns a new, symmetrized matrix.
    """
    dp, dg = parameters_difference, gradient_difference
    h_dg = inverse_hessian @ dg
    curvature = np.dot(dp, dg)
    updated = (
        inverse_hessian
        + (1 + np.dot(dg, h_dg) / curvature) * np.outer(dp, dp) / curvature
        - (np.outer(dp, h_dg) + np.outer(h_dg, dp)) / curvature
    )
    return symmetrize(updated)


class InverseHessianApproximator:
    """Maintains the inverse Hessian approximation H for a single training run.

    Args:
        method: DFP or BFGS update rule.
        curvature_tolerance: an update is skipped, and H reset to the identity, unless
            dp.dg > curvature_tolerance * |dp| * |dg|. DFP additionally needs
            dg.H.dg > curvature_tolerance * |dg|^2.
    """

    def __init__(
        self,
        method: Union[str, InverseHessianApproximationMethod] = InverseHessianApproximationMethod.BFGS,
        curvature_tolerance: float = 1e-10,
    ) -> None:
        """Initialize the approximator. `initialize()` must be called before use."""
        self.method = InverseHessianApproximationMethod.parse(method)
        self.curvature_tolerance = curvature_tolerance
        self.inverse_hessian: Optional[np.ndarray] = None
        self.old_parameters: Optional[np.ndarray] = None
        self.old_gradient: Optional[np.ndarray] = None
        self.restarts = 0

    @property
    def is_initialized(self) -> bool:
        """Whether `initialize()` has been called."""
        return self.inverse_hessian is not None

    def initialize(self, parameters: np.ndarray, gradient: np.ndarray) -> None:
        """Start from H = I at the given point."""
        self.inverse_hessian = np.eye(parameters.size, dtype=parameters.dtype)
        self.old_parameters = np.copy(parameters)
        self.old_gradient = np.copy(gradient)

    def reset(self) -> None:
        """Restart from the identity matrix, keeping the last point."""
        assert self.inverse_hessian is not None, "initialize() must be called first"
        self.inverse_hessian = np.eye(self.inverse_hessian.shape[0], dtype=self.inverse_hessian.dtype)
        self.restarts += 1

    def update(self, parameters: np.ndarray, gradient: np.ndarray) -> bool:
        """Fold the step from the last point to (`parameters`, `gradient`) into H.

        Returns False if the update was skipped and H restarted from the identity.
        """
        assert self.inverse_hessian is not None, "initialize() must be called first"
        assert self.old_parameters is not None and self.old_gradient is not None

        if parameters.shape != self.old_parameters.shape:
            self.initialize(parameters, gradient)
            self.restarts += 1
            return False

        parameters_difference = parameters - self.old_parameters
        gradient_difference = gradient - self.old_gradient
        self.old_parameters = np.copy(parameters)
        self.old_gradient = np.copy(gradient)

        curvature = float(np.dot(parameters_difference, gradient_difference))
        floor = self.curvature_tolerance * float(
            np.linalg.norm(parameters_difference) * np.linalg.norm(gradient_difference)
        )
        if not is_finite(curvature) or curvature <= floor:
            self.reset()
            return False

        if self.method is InverseHessianApproximationMethod.DFP:
            dg_h_dg = float(gradient_difference @ self.inverse_hessian @ gradient_difference)
            if not is_finite(dg_h_dg) or dg_h_dg <= self.curvature_tolerance * float(
                np.dot(gradient_difference, gradient_difference)
            ):
                self.reset()
                return False
            updated = calculate_dfp_inverse_hessian(self.inverse_hessian, parameters_difference, gradient_difference)
        else:
            updated = calculate_bfgs_inverse_hessian(self.inverse_hessian, parameters_difference, gradient_difference)

        if not is_finite(updated):
            self.reset()
            return False

        self.inverse_hessian = updated
        return True

    def calculate_direction(self, gradient: np.ndarray) -> np.ndarray:
        """Return -H g, or the steepest descent direction -g if -H g isn't a descent direction."""
        assert self.inverse_hessian is not None, "initialize() must be called first"
        direction = -(self.inverse_hessian @ gradient)
        if not is_descent_direction(gradient, direction):
            return -gradient
        return direction
