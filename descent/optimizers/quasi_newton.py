"""Implements the quasi-Newton optimizer."""

from typing import Any, Optional, Union

import numpy as np

from descent.errors import ConfigurationError
from descent.loss.base import LossIndex
from descent.optimizers.directional import DirectionalOptimizer
from descent.optimizers.inverse_hessian import InverseHessianApproximationMethod, InverseHessianApproximator
from descent.optimizers.line_search import LearningRateAlgorithm
from descent.optimizers.results import IterationState
from descent.optimizers.stopping import StoppingCriteriaConfig


class QuasiNewtonMethod(DirectionalOptimizer):
    """Quasi-Newton descent with a DFP or BFGS inverse Hessian approximation.

    Each epoch folds the last step into the approximation H, moves along -H g with a line search,
    and falls back to steepest descent whenever -H g is not a descent direction. H is held in the
    run's iteration state, so the memory cost is quadratic in the number of parameters.
    """

    def __init__(
        self,
        loss_index: Optional[LossIndex] = None,
        *,
        inverse_hessian_approximation_method: Union[
            str, InverseHessianApproximationMethod
        ] = InverseHessianApproximationMethod.BFGS,
        first_learning_rate: float = 0.01,
        curvature_tolerance: float = 1e-10,
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
        self.inverse_hessian_approximation_method = InverseHessianApproximationMethod.parse(
            inverse_hessian_approximation_method
        )
        self.curvature_tolerance = curvature_tolerance

    def set_inverse_hessian_approximation_method(self, method: Union[str, InverseHessianApproximationMethod]) -> None:
        """Choose between the "DFP" and "BFGS" update rules."""
        self.inverse_hessian_approximation_method = InverseHessianApproximationMethod.parse(method)

    def check_hyperparameters(self) -> None:
        """Raise ConfigurationError if a hyperparameter is out of range."""
        super().check_hyperparameters()
        if not (np.isfinite(self.curvature_tolerance) and 0 <= self.curvature_tolerance < 1):
            raise ConfigurationError(f"curvature_tolerance must be in [0, 1), got {self.curvature_tolerance}")

    def get_hyperparameters(self) -> dict[str, Any]:
        """Return the tunable hyperparameters as a JSON-compatible dict."""
        return {
            "inverse_hessian_approximation_method": self.inverse_hessian_approximation_method.value,
            "curvature_tolerance": self.curvature_tolerance,
            **super().get_hyperparameters(),
        }

    def _set_hyperparameter(self, name: str, value: Any) -> None:
        if name == "inverse_hessian_approximation_method":
            self.set_inverse_hessian_approximation_method(value)
        else:
            setattr(self, name, value)

    def initialize_state(self, state: IterationState, loss_index: LossIndex) -> None:
        """Start the approximation from the identity matrix at the initial point."""
        approximator = InverseHessianApproximator(
            method=self.inverse_hessian_approximation_method,
            curvature_tolerance=self.curvature_tolerance,
        )
        approximator.initialize(state.parameters, state.gradient)
        state.extras["approximator"] = approximator
        state.extras["restart"] = True

    def update_parameters(self, state: IterationState, loss_index: LossIndex) -> None:
        """Update H with the last step, then search along -H g."""
        approximator: InverseHessianApproximator = state.extras["approximator"]
        # After a zero step H is already the identity and there is no secant pair to fold in
        if not state.extras["restart"]:
            approximator.update(state.parameters, state.gradient)

        result = self.step_along(state, loss_index, approximator.calculate_direction(state.gradient))
        if not result.moved:
            approximator.reset()
        state.extras["restart"] = not result.moved
