"""A loss index over an explicit function of the parameter vector."""

from typing import Any, Callable, Optional

import numpy as np

from descent.constants import DEFAULT_DTYPE, GradientVector, ParameterVector
from descent.loss.base import LossIndex


LossFunction = Callable[[np.ndarray], tuple[float, np.ndarray]]


class FunctionLoss(LossIndex):
    """Wraps a callable `function(parameters) -> (loss, gradient)` as a loss index.

    Useful for analytic objectives, e.g. `FunctionLoss(lambda p: (p @ p, 2 * p), [5.0])`.
    An optional `selection_function(parameters) -> loss` provides a held-out loss.
    """

    def __init__(
        self,
        function: LossFunction,
        initial_parameters: ParameterVector,
        selection_function: Optional[Callable[[np.ndarray], float]] = None,
    ) -> None:
        """Initialize the loss index."""
        self.function = function
        self.selection_function = selection_function
        self.parameters = np.array(initial_parameters, dtype=DEFAULT_DTYPE).reshape(-1)
        self.n_evaluations = 0

    def parameters_count(self) -> int:
        """The number of trainable parameters."""
        return self.parameters.size

    def get_parameters(self) -> ParameterVector:
        """Return a copy of the current parameter vector."""
        return self.parameters.copy()

    def set_parameters(self, parameters: ParameterVector) -> None:
        """Overwrite the parameters with the values in `parameters`."""
        parameters = np.asarray(parameters, dtype=DEFAULT_DTYPE)
        if parameters.shape != self.parameters.shape:
            raise ValueError(f"Expected parameters of shape {self.parameters.shape}, got {parameters.shape}")
        self.parameters[:] = parameters

    def evaluate(self, batch: Optional[Any] = None) -> tuple[float, GradientVector]:
        """Compute the loss and gradient at the current parameters. The batch is ignored."""
        self.n_evaluations += 1
        loss, gradient = self.function(self.parameters.copy())
        return float(loss), np.asarray(gradient, dtype=DEFAULT_DTYPE).reshape(-1)

    def calculate_selection_loss(self) -> Optional[float]:
        """Compute the selection loss, if a selection function was given."""
        if self.selection_function is None:
            return None
        return float(self.selection_function(self.parameters.copy()))
