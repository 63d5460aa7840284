"""Helpers for data loading."""

from os import PathLike

import numpy as np


def load_csv_dataset(
    file_path: PathLike,
    n_targets: int = 1,
    delimiter: str = ",",
    skip_header: int = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """Load a numeric CSV file whose last `n_targets` columns are the targets.

    Returns:
        inputs: array of shape (samples, columns - n_targets)
        targets: array of shape (samples, n_targets)
    """
    data = np.loadtxt(file_path, delimiter=delimiter, skiprows=skip_header, ndmin=2)
    if not 0 < n_targets < data.shape[1]:
        raise ValueError(f"Cannot take {n_targets} target columns from a file with {data.shape[1]} columns")
    return data[:, :-n_targets], data[:, -n_targets:]


def write_csv_dataset(
    file_path: PathLike,
    inputs: np.ndarray,
    targets: np.ndarray,
    delimiter: str = ",",
) -> None:
    """Write inputs and targets as the columns of a numeric CSV file."""
    targets_2d = targets.reshape(targets.shape[0], -1)
    np.savetxt(file_path, np.hstack([inputs, targets_2d]), delimiter=delimiter)
