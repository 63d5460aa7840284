"""A loss index that trains a model on a data set."""

from typing import Iterator, Optional

import numpy as np

from descent.constants import GradientVector, ParameterVector
from descent.data.dataset import Batch, Dataset
from descent.layers.base import Layer
from descent.loss.base import ErrorTerm, LossIndex
from descent.utils.parameters import flatten_parameters, unflatten_parameters


class ModelLoss(LossIndex):
    """Loss of a model's outputs against the targets of a data set, with optional L2 regularization.

    The loss is `error(model(x), t) + 0.5 * regularization_weight * ||p||^2`. The flat parameter
    vector follows the insertion order of `model.get_parameters()`.
    """

    def __init__(
        self,
        model: Layer,
        error_term: ErrorTerm,
        dataset: Dataset,
        regularization_weight: float = 0.0,
    ) -> None:
        """Initialize the loss index."""
        if regularization_weight < 0:
            raise ValueError(f"regularization_weight must be non-negative, got {regularization_weight}")
        if not model.enable_grad:
            raise ValueError("Cannot train a model with enable_grad=False")
        self.model = model
        self.error_term = error_term
        self.dataset = dataset
        self.regularization_weight = regularization_weight

    def parameters_count(self) -> int:
        """The number of trainable parameters."""
        return self.model.n_params

    def get_parameters(self) -> ParameterVector:
        """Return a copy of the current parameter vector."""
        return flatten_parameters(self.model.get_parameters(), dtype=self.model.dtype)

    def set_parameters(self, parameters: ParameterVector) -> None:
        """Overwrite the model parameters with the values in `parameters`."""
        self.model.load_parameters(unflatten_parameters(np.asarray(parameters), self.model.get_parameters()))

    def _regularization(self, parameters: ParameterVector) -> float:
        return 0.5 * self.regularization_weight * float(np.dot(parameters, parameters))

    def evaluate(self, batch: Optional[Batch] = None) -> tuple[float, GradientVector]:
        """Compute the loss and gradient on a mini-batch, or on all training data if `batch` is None."""
        inputs, targets = self.dataset.training_data if batch is None else batch

        outputs = self.model.forward(inputs)
        loss = self.error_term.forward(outputs, targets)
        self.model.backward(self.error_term.backward())
        gradient = flatten_parameters(self.model.get_gradients(), dtype=self.model.dtype)

        if self.regularization_weight > 0:
            parameters = self.get_parameters()
            loss += self._regularization(parameters)
            gradient += self.regularization_weight * parameters

        return float(loss), gradient

    def get_training_batches(self, batch_size: int, shuffle: bool = True) -> Iterator[Batch]:
        """Yield the mini-batches of one training epoch."""
        yield from self.dataset.training_batches(batch_size=batch_size, shuffle=shuffle)

    def calculate_selection_loss(self) -> Optional[float]:
        """Compute the unregularized error on the held-out selection samples."""
        if not self.dataset.has_selection:
            return None
        inputs, targets = self.dataset.selection_data
        return self.error_term.forward(self.model.forward(inputs), targets)
