"""Implementation of a linear layer."""

from typing import Optional

import numpy as np

from descent.constants import DType, DEFAULT_DTYPE, BaseParameter, Parameters
from descent.layers.base import Layer


class Linear(Layer):
    """Implements a single linear layer with a weight matrix and bias."""

    def __init__(
        self,
        n_input: int,
        n_output: int,
        dtype: DType = DEFAULT_DTYPE,
        enable_grad: bool = True,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        """Initialize the layer with weights drawn uniformly from [-1/sqrt(n_input), 1/sqrt(n_input)]."""
        super().__init__(dtype=dtype, enable_grad=enable_grad)
        if n_input <= 0 or n_output <= 0:
            raise ValueError(f"Invalid layer size n_input={n_input}, n_output={n_output}")
        self.n_input = n_input
        self.n_output = n_output

        self.w = np.zeros((n_input, n_output), dtype=dtype)
        self.b = np.zeros((1, n_output), dtype=dtype)
        self.set_parameters_random(rng=rng)

    @property
    def n_params(self) -> int:
        """The number of parameters in the layer."""
        return self.w.size + self.b.size

    def set_parameters_random(self, rng: Optional[np.random.Generator] = None) -> None:
        """Re-draw the weights and biases from the default initialization distribution."""
        rng = rng if rng is not None else np.random.default_rng()
        spread = np.sqrt(1 / self.n_input)
        self.w[:] = rng.uniform(low=-spread, high=spread, size=self.w.shape)
        self.b[:] = rng.uniform(low=-spread, high=spread, size=self.b.shape)

    def set_parameters_constant(self, value: float) -> None:
        """Set every weight and bias to `value`."""
        self.w.fill(value)
        self.b.fill(value)

    def get_parameters(self) -> Parameters:
        """Return the parameter map for the layer."""
        return {
            "w": self.w,
            "b": self.b,
        }

    def load_parameters(self, params: Parameters) -> None:
        """Set the parameters."""
        if "w" not in params or "b" not in params:
            raise ValueError("Missing parameters")
        w, b = params["w"], params["b"]
        if not isinstance(w, BaseParameter) or not isinstance(b, BaseParameter):
            raise ValueError("Invalid shape for parameters map")
        if w.shape != self.w.shape or b.shape != self.b.shape:
            raise ValueError(f"Expected shapes {self.w.shape} and {self.b.shape}, got {w.shape} and {b.shape}")
        self.w[:] = w
        self.b[:] = b

    def get_gradients(self) -> Parameters:
        """Return the gradient map computed by the last backward pass."""
        assert "dw" in self.cache and "db" in self.cache, "backward() must run before get_gradients()"
        return {
            "w": self.cache["dw"],
            "b": self.cache["db"],
        }

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Compute the layer output for a given input."""
        assert x.ndim >= 2 and x.shape[-1] == self.n_input  # shape = (D_0, ..., D_k, n_input)

        out = np.matmul(x, self.w) + self.b  # shape = (D_0, ..., D_k, n_output)

        if self.enable_grad:
            self.cache["x"] = x

        return out

    def backward(self, dout: np.ndarray) -> None:
        """Compute the layer gradients given the upstream gradient."""
        assert self.enable_grad, "Cannot compute the backward pass with enable_grad=False"
        x = self.cache["x"]
        assert dout.shape == (*x.shape[:-1], self.n_output)  # shape = (D_0, ..., D_k, n_output)

        batch_axes = tuple(np.arange(x.ndim - 1))  # (0, 1, .., k)
        non_matmul_axes = batch_axes[:-1]  # (0, 1, .., k-1). Empty for x.ndim == 2.

        x_t = np.transpose(x, axes=(*non_matmul_axes, -1, -2))  # shape = (D_0, ..., D_k-1, n_input, D_k)
        dw = np.sum(np.matmul(x_t, dout), axis=non_matmul_axes)  # shape = (n_input, n_output)

        self.cache["dx"] = np.matmul(dout, np.transpose(self.w))  # shape = (D_0, ..., D_k, n_input)
        self.cache["dw"] = dw
        self.cache["db"] = np.sum(dout, axis=batch_axes, keepdims=True).reshape(1, -1)
