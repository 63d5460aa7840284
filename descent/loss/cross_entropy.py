"""Implementation of a cross-entropy loss function."""

import numpy as np

from descent.loss.base import ErrorTerm
from descent.utils.math import log_softmax, softmax


class CrossEntropyLoss(ErrorTerm):
    """Implements the cross-entropy, or negative loglikelihood, loss on logits and class indices."""

    def forward(self, outputs: np.ndarray, targets: np.ndarray) -> float:
        """Compute the loss for a set of logits and integer class targets."""
        # Targets loaded from a file arrive as a (N, 1) column of floats
        if targets.ndim == outputs.ndim and targets.shape[-1] == 1:
            targets = targets[..., 0]
        targets = targets.astype(np.int64)
        assert outputs.ndim >= 2 and targets.ndim == outputs.ndim - 1
        assert outputs.shape[:-1] == targets.shape

        n_classes = outputs.shape[-1]
        n_predictions = targets.size

        log_probabilities = log_softmax(outputs.reshape(n_predictions, n_classes))
        loss_elems = log_probabilities[np.arange(n_predictions), targets.reshape(n_predictions)]
        loss = -np.mean(loss_elems)

        if self.enable_grad:
            self.cache["logits"] = outputs
            self.cache["targets"] = targets

        return float(loss)

    def backward(self) -> np.ndarray:
        """Compute the gradient of the loss with respect to the logits."""
        assert self.enable_grad, "Cannot compute the backward pass with enable_grad=False"
        logits = self.cache["logits"]
        targets = self.cache["targets"]

        n_classes = logits.shape[-1]
        n_predictions = targets.size

        logits_stacked = logits.reshape(n_predictions, n_classes)

        I_target = np.zeros_like(logits_stacked)
        I_target[np.arange(n_predictions), targets.reshape(n_predictions)] = 1
        dlogits = (1 / n_predictions) * (softmax(logits_stacked) - I_target)

        return dlogits.reshape(logits.shape)
