"""Implementation of a multilayer perceptron (a stack of fully-connected perceptron layers)."""

from typing import Any, Optional, Sequence

import numpy as np

from descent.constants import DType, DEFAULT_DTYPE, BaseParameter, Parameters
from descent.layers.perceptron import Perceptron
from descent.models.base import Model


class MultilayerPerceptron(Model):
    """A feed-forward network of perceptron layers.

    `layer_sizes` lists the input width followed by the width of every layer, e.g. (2, 8, 1) is a
    network with 2 inputs, one hidden layer of 8 perceptrons and a single output. Hidden layers
    default to a hyperbolic tangent activation and the output layer to a linear one.
    """

    def __init__(
        self,
        layer_sizes: Sequence[int],
        activations: Optional[Sequence[str]] = None,
        dtype: DType = DEFAULT_DTYPE,
        enable_grad: bool = True,
        seed: Optional[int] = None,
    ) -> None:
        """Initialize the model."""
        super().__init__(dtype=dtype, enable_grad=enable_grad)
        if len(layer_sizes) < 2:
            raise ValueError("A multilayer perceptron needs an input size and at least one layer size")
        n_layers = len(layer_sizes) - 1
        if activations is None:
            activations = ["hyperbolic_tangent"] * (n_layers - 1) + ["linear"]
        if len(activations) != n_layers:
            raise ValueError(f"Expected {n_layers} activation functions, got {len(activations)}")

        self.layer_sizes = tuple(int(size) for size in layer_sizes)
        self.activations = tuple(activations)
        self.seed = seed

        rng = np.random.default_rng(seed)
        self.layers = [
            Perceptron(
                n_input=self.layer_sizes[i],
                n_output=self.layer_sizes[i + 1],
                activation=self.activations[i],
                dtype=dtype,
                enable_grad=enable_grad,
                rng=rng,
            )
            for i in range(n_layers)
        ]

    @property
    def n_inputs(self) -> int:
        """The number of input features."""
        return self.layer_sizes[0]

    @property
    def n_outputs(self) -> int:
        """The number of outputs."""
        return self.layer_sizes[-1]

    @property
    def n_params(self) -> int:
        """The number of parameters in the model."""
        return sum(layer.n_params for layer in self.layers)

    def set_parameters_random(self, seed: Optional[int] = None) -> None:
        """Re-draw every layer's parameters."""
        rng = np.random.default_rng(seed)
        for layer in self.layers:
            layer.set_parameters_random(rng=rng)

    def set_parameters_constant(self, value: float) -> None:
        """Set every parameter of the model to `value`."""
        for layer in self.layers:
            layer.set_parameters_constant(value)

    def get_parameters(self) -> Parameters:
        """Return the parameter map for the model."""
        return {f"layer_{i}": layer.get_parameters() for i, layer in enumerate(self.layers)}

    def load_parameters(self, params: Parameters) -> None:
        """Set the parameters."""
        for i, layer in enumerate(self.layers):
            name = f"layer_{i}"
            if name not in params:
                raise ValueError("Missing parameters")
            if isinstance(params[name], BaseParameter):
                raise ValueError("Invalid shape for parameters map")
            layer.load_parameters(params[name])

    def get_gradients(self) -> Parameters:
        """Return the gradient map computed by the last backward pass."""
        return {f"layer_{i}": layer.get_gradients() for i, layer in enumerate(self.layers)}

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Compute the model output for a given input."""
        assert x.ndim >= 2 and x.shape[-1] == self.n_inputs

        out = x
        for layer in self.layers:
            out = layer.forward(out)

        return out

    def backward(self, dout: np.ndarray) -> None:
        """Compute the model gradients given the upstream gradient."""
        assert self.enable_grad, "Cannot compute the backward pass with enable_grad=False"

        for layer in reversed(self.layers):
            layer.backward(dout)
            dout = layer.cache["dx"]

        self.cache["dx"] = dout

    def constructor_args(self) -> dict[str, Any]:
        """The keyword arguments that rebuild this architecture, excluding `enable_grad`."""
        return {
            "layer_sizes": self.layer_sizes,
            "activations": self.activations,
            "dtype": self.dtype,
        }
