"""Interfaces between the optimizers and whatever computes the loss.

`ErrorTerm` is a loss head on model outputs (forward computes the error, backward its gradient with
respect to the outputs). `LossIndex` is the narrow contract the optimizers train against: a flat
parameter vector, and the loss and gradient at those parameters.
"""

import abc
from typing import Any, Iterator, Optional

import numpy as np

from descent.constants import GradientVector, ParameterVector


class ErrorTerm(abc.ABC):
    """Abstract base class for an error measured between model outputs and targets."""

    def __init__(self, enable_grad: bool = True) -> None:
        """Initialize the error term."""
        self.enable_grad = enable_grad
        self.cache: dict[str, np.ndarray] = {}

    @abc.abstractmethod
    def forward(self, outputs: np.ndarray, targets: np.ndarray) -> float:
        """Compute the error for a set of outputs and targets."""
        raise NotImplementedError

    @abc.abstractmethod
    def backward(self) -> np.ndarray:
        """Compute the gradient of the error with respect to the outputs of the last forward pass."""
        raise NotImplementedError


class LossIndex(abc.ABC):
    """Abstract base class for a trainable loss over a flat parameter vector.

    Implementations own the parameters. Optimizers read them with `get_parameters()` and write them
    back with `set_parameters()`, and never keep references to the arrays they are handed. A
    gradient returned by `evaluate()` is only valid until the next evaluation.
    """

    @abc.abstractmethod
    def parameters_count(self) -> int:
        """The number of trainable parameters."""
        raise NotImplementedError

    @abc.abstractmethod
    def get_parameters(self) -> ParameterVector:
        """Return a copy of the current parameter vector."""
        raise NotImplementedError

    @abc.abstractmethod
    def set_parameters(self, parameters: ParameterVector) -> None:
        """Overwrite the parameters with the values in `parameters`."""
        raise NotImplementedError

    @abc.abstractmethod
    def evaluate(self, batch: Optional[Any] = None) -> tuple[float, GradientVector]:
        """Compute the loss and its gradient at the current parameters.

        Args:
            batch: a mini-batch as yielded by `get_training_batches()`, or None for all training data.
        """
        raise NotImplementedError

    def calculate_loss_at(self, parameters: ParameterVector, batch: Optional[Any] = None) -> float:
        """Compute the loss at candidate `parameters`, leaving the current parameters untouched."""
        current = self.get_parameters()
        self.set_parameters(parameters)
        try:
            loss, _ = self.evaluate(batch)
        finally:
            self.set_parameters(current)
        return float(loss)

    def get_training_batches(self, batch_size: int, shuffle: bool = True) -> Iterator[Optional[Any]]:
        """Yield the mini-batches of one training epoch. By default there is a single, full batch."""
        yield None

    def calculate_selection_loss(self) -> Optional[float]:
        """Compute the loss on held-out selection data, or None if there is no such data."""
        return None
