"""In-memory data set with a training / selection split and mini-batch iteration."""

from typing import Iterator, Optional

import numpy as np


Batch = tuple[np.ndarray, np.ndarray]


class Dataset:
    """Pairs of input rows and targets, split into training and selection samples.

    The selection samples are held out from training. They are only used to compute the
    selection loss, which drives the early-stopping criterion on selection failures.
    """

    def __init__(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        selection_fraction: float = 0.0,
        seed: Optional[int] = None,
    ) -> None:
        """Initialize the data set and draw the selection split."""
        if inputs.ndim != 2:
            raise ValueError(f"Inputs must be a 2-D array of shape (samples, features), got {inputs.shape}")
        if targets.shape[0] != inputs.shape[0]:
            raise ValueError(f"Got {inputs.shape[0]} input rows but {targets.shape[0]} targets")
        if not 0.0 <= selection_fraction < 1.0:
            raise ValueError(f"selection_fraction must be in [0, 1), got {selection_fraction}")

        self.inputs = inputs
        self.targets = targets
        self.rng = np.random.default_rng(seed)

        n_samples = inputs.shape[0]
        n_selection = int(round(selection_fraction * n_samples))
        permutation = self.rng.permutation(n_samples)
        self.selection_indices = np.sort(permutation[:n_selection])
        self.training_indices = np.sort(permutation[n_selection:])
        if self.training_indices.size == 0:
            raise ValueError("The selection split leaves no training samples")

    @property
    def n_samples(self) -> int:
        """Total number of samples."""
        return self.inputs.shape[0]

    @property
    def n_training(self) -> int:
        """Number of training samples."""
        return self.training_indices.size

    @property
    def n_selection(self) -> int:
        """Number of held-out selection samples."""
        return self.selection_indices.size

    @property
    def has_selection(self) -> bool:
        """Whether any samples are held out for selection."""
        return self.n_selection > 0

    @property
    def training_data(self) -> Batch:
        """All training samples as a single batch."""
        return self.inputs[self.training_indices], self.targets[self.training_indices]

    @property
    def selection_data(self) -> Batch:
        """All selection samples as a single batch."""
        return self.inputs[self.selection_indices], self.targets[self.selection_indices]

    def training_batches(self, batch_size: int, shuffle: bool = True) -> Iterator[Batch]:
        """Yield the training samples in mini-batches of at most `batch_size` rows."""
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        indices = self.rng.permutation(self.training_indices) if shuffle else self.training_indices
        for start in range(0, indices.size, batch_size):
            batch_indices = indices[start : start + batch_size]
            yield self.inputs[batch_indices], self.targets[batch_indices]
