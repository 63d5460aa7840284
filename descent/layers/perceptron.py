"""Implementation of a perceptron layer: a linear combination followed by an activation function."""

from typing import Callable, Optional

import numpy as np

from descent.constants import DType, DEFAULT_DTYPE, Parameters
from descent.layers.base import Layer
from descent.layers.linear import Linear
from descent.utils.math import logistic, relu


# Each entry maps a name to (activation(h), derivative expressed through h and a = activation(h))
_ACTIVATIONS: dict[str, tuple[Callable[[np.ndarray], np.ndarray], Callable[[np.ndarray, np.ndarray], np.ndarray]]] = {
    "linear": (lambda h: h, lambda h, a: np.ones_like(h)),
    "logistic": (logistic, lambda h, a: a * (1 - a)),
    "hyperbolic_tangent": (np.tanh, lambda h, a: 1 - np.square(a)),
    "rectified_linear": (relu, lambda h, a: (h > 0).astype(h.dtype)),
}

ACTIVATION_FUNCTIONS = tuple(_ACTIVATIONS)


class Perceptron(Layer):
    """A layer of perceptrons: `activation(x @ w + b)`."""

    def __init__(
        self,
        n_input: int,
        n_output: int,
        activation: str = "hyperbolic_tangent",
        dtype: DType = DEFAULT_DTYPE,
        enable_grad: bool = True,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        """Initialize the layer."""
        super().__init__(dtype=dtype, enable_grad=enable_grad)
        if activation not in _ACTIVATIONS:
            raise ValueError(f"Unknown activation function '{activation}'. Choose one of {ACTIVATION_FUNCTIONS}")
        self.n_input = n_input
        self.n_output = n_output
        self.activation = activation
        self.combination = Linear(
            n_input=n_input,
            n_output=n_output,
            dtype=dtype,
            enable_grad=enable_grad,
            rng=rng,
        )

    @property
    def n_params(self) -> int:
        """The number of parameters in the layer."""
        return self.combination.n_params

    def set_parameters_random(self, rng: Optional[np.random.Generator] = None) -> None:
        """Re-draw the weights and biases."""
        self.combination.set_parameters_random(rng=rng)

    def set_parameters_constant(self, value: float) -> None:
        """Set every weight and bias to `value`."""
        self.combination.set_parameters_constant(value)

    def get_parameters(self) -> Parameters:
        """Return the parameter map for the layer."""
        return self.combination.get_parameters()

    def load_parameters(self, params: Parameters) -> None:
        """Set the parameters."""
        self.combination.load_parameters(params)

    def get_gradients(self) -> Parameters:
        """Return the gradient map computed by the last backward pass."""
        return self.combination.get_gradients()

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Compute the layer output for a given input."""
        activation_fn, _ = _ACTIVATIONS[self.activation]
        h = self.combination.forward(x)
        a = activation_fn(h)

        if self.enable_grad:
            self.cache["h"] = h
            self.cache["a"] = a

        return a

    def backward(self, dout: np.ndarray) -> None:
        """Compute the layer gradients given the upstream gradient."""
        assert self.enable_grad, "Cannot compute the backward pass with enable_grad=False"
        _, derivative_fn = _ACTIVATIONS[self.activation]
        h = self.cache["h"]
        a = self.cache["a"]
        assert dout.shape == a.shape

        self.combination.backward(dout * derivative_fn(h, a))
        self.cache["dx"] = self.combination.cache["dx"]
