"""Abstract base class for all neural network layer implementations."""

import abc

import numpy as np

from descent.constants import DType, DEFAULT_DTYPE, Parameters


class Layer(abc.ABC):
    """Abstract base class for all neural network layer implementations.

    Layers don't update themselves. After `backward()`, `get_gradients()` returns a map with the
    same structure as `get_parameters()`, which the loss index flattens for the optimizers.
    """

    def __init__(
        self,
        *,
        dtype: DType = DEFAULT_DTYPE,
        enable_grad: bool = True,
    ) -> None:
        """Initialize the layer."""
        self.dtype = dtype
        self.enable_grad = enable_grad
        self.cache: dict[str, np.ndarray] = {}

    @property
    @abc.abstractmethod
    def n_params(self) -> int:
        """The number of parameters in the layer."""
        raise NotImplementedError

    @abc.abstractmethod
    def get_parameters(self) -> Parameters:
        """Return the parameter map for the layer."""
        raise NotImplementedError

    @abc.abstractmethod
    def load_parameters(self, params: Parameters) -> None:
        """Set the parameters."""
        raise NotImplementedError

    @abc.abstractmethod
    def get_gradients(self) -> Parameters:
        """Return the gradient map computed by the last backward pass."""
        raise NotImplementedError

    @abc.abstractmethod
    def forward(self, x: np.ndarray) -> np.ndarray:
        """Compute the layer output for a given input."""
        raise NotImplementedError

    @abc.abstractmethod
    def backward(self, dout: np.ndarray) -> None:
        """Compute the layer gradients given the upstream gradient."""
        raise NotImplementedError
