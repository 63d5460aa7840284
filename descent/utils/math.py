"""Mathematical utilities."""

import numpy as np


def relu(x: np.ndarray) -> np.ndarray:
    """Compute the element-wise recitified linear unit."""
    return np.maximum(0, x)


def logistic(x: np.ndarray) -> np.ndarray:
    """Compute the element-wise logistic sigmoid, 1 / (1 + e^-x)."""
    # NOTE: expressed through tanh so large negative inputs don't overflow np.exp
    return 0.5 * (1.0 + np.tanh(0.5 * x))


def log_sum_exp(x: np.ndarray) -> np.ndarray:
    """Compute the log of the sum of exponentials of `x` along the last dimension.

    Args:
        x: Real-valued array of dimension (*, N)

    Returns:
        y: Real-valued array of dimension (*, 1)
    """
    dims = x.ndim
    # NOTE: for numerical stability, we shift the input by its maximum. This makes all exponents <=0.
    # For a vector x: LSE(x) = LSE(x - m) + m
    x_max = np.max(x, axis=dims - 1, keepdims=True)
    lse_shifted = np.log(np.sum(np.exp(x - x_max), axis=dims - 1, keepdims=True))
    return lse_shifted + x_max


def log_softmax(x: np.ndarray) -> np.ndarray:
    """Compute the log of the softmax of `x` along the last dimension."""
    return x - log_sum_exp(x)


def softmax(x: np.ndarray) -> np.ndarray:
    """Compute the softmax of `x` along the last dimension.

    Args:
        x: Real-valued array of dimension (*, N)

    Returns:
        y: Collection of probability distributions of dimension (*, N)
    """
    dims = x.ndim
    # Softmax is translation-invariant, so shifting by the maximum keeps all exponents <=0
    exp_x_shifted = np.exp(x - np.max(x, axis=dims - 1, keepdims=True))
    return exp_x_shifted / np.sum(exp_x_shifted, axis=dims - 1, keepdims=True)


def is_finite(*values: float | np.ndarray) -> bool:
    """Return True if every scalar or array element in `values` is finite (no NaN or Inf)."""
    return all(bool(np.all(np.isfinite(value))) for value in values)


def is_descent_direction(gradient: np.ndarray, direction: np.ndarray) -> bool:
    """Return True if moving along `direction` decreases the loss to first order, i.e. d.g < 0."""
    slope = float(np.dot(gradient, direction))
    return np.isfinite(slope) and slope < 0


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    """Return the symmetric part of a square matrix, (M + M^T) / 2."""
    assert matrix.ndim == 2 and matrix.shape[0] == matrix.shape[1]
    return 0.5 * (matrix + matrix.T)
