"""Implementation of squared-error loss functions for regression outputs."""

import numpy as np

from descent.loss.base import ErrorTerm


class SumSquaredError(ErrorTerm):
    """Implements the sum of squared errors, sum((y - t)^2)."""

    def _errors(self, outputs: np.ndarray, targets: np.ndarray) -> np.ndarray:
        targets = targets.reshape(outputs.shape)
        errors = outputs - targets
        if self.enable_grad:
            self.cache["errors"] = errors
        return errors

    def forward(self, outputs: np.ndarray, targets: np.ndarray) -> float:
        """Compute the loss for a set of outputs and targets."""
        return float(np.sum(np.square(self._errors(outputs, targets))))

    def backward(self) -> np.ndarray:
        """Compute the gradient of the loss with respect to the outputs."""
        assert self.enable_grad, "Cannot compute the backward pass with enable_grad=False"
        return 2 * self.cache["errors"]


class MeanSquaredError(SumSquaredError):
    """Implements the mean squared error over samples, sum((y - t)^2) / n_samples."""

    def forward(self, outputs: np.ndarray, targets: np.ndarray) -> float:
        """Compute the loss for a set of outputs and targets."""
        errors = self._errors(outputs, targets)
        return float(np.sum(np.square(errors)) / errors.shape[0])

    def backward(self) -> np.ndarray:
        """Compute the gradient of the loss with respect to the outputs."""
        assert self.enable_grad, "Cannot compute the backward pass with enable_grad=False"
        errors = self.cache["errors"]
        return 2 * errors / errors.shape[0]
