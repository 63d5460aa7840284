"""Unit tests for linear.py."""

import unittest

import numpy as np

from descent.layers.linear import Linear
from descent.constants import DEFAULT_DTYPE


class TestLinear(unittest.TestCase):
    """Unit tests for Linear."""

    def setUp(self) -> None:
        self.data = np.array(  # shape = (4, 3)
            [
                [-0.80672381, -0.08818247, 0.002],
                [0.63413982, 1.32233656, 0.332],
                [0.1814214, -0.50674539, -0.0223],
                [1.16085551, -0.15033837, -0.332],
            ]
        )
        self.targets = np.array([[0.5, -1.0], [0.0, 0.2], [1.5, 0.3], [-0.4, 0.9]])

    def half_squared_error(self, model: Linear) -> float:
        """Forward pass followed by 0.5 * ||out - targets||^2, leaving the upstream gradient in the cache."""
        residual = model.forward(self.data) - self.targets
        model.backward(residual)
        return 0.5 * float(np.sum(np.square(residual)))

    def test_n_params(self) -> None:
        """Test the layer reports the correct number of parameters."""
        self.assertEqual(Linear(n_input=3, n_output=5).n_params, 3 * 5 + 5)
        self.assertEqual(Linear(n_input=50, n_output=1).n_params, 50 + 1)

    def test_invalid_size(self) -> None:
        """Test that empty layers are rejected."""
        with self.assertRaises(ValueError):
            Linear(n_input=0, n_output=5)

    def test_seeded_initialization(self) -> None:
        """Test that layers drawn from identically seeded generators are identical and bounded."""
        model1 = Linear(n_input=3, n_output=5, rng=np.random.default_rng(7))
        model2 = Linear(n_input=3, n_output=5, rng=np.random.default_rng(7))
        np.testing.assert_array_equal(model1.w, model2.w)
        np.testing.assert_array_equal(model1.b, model2.b)
        self.assertTrue(np.all(np.abs(model1.w) <= np.sqrt(1 / 3)))
        self.assertEqual(model1.w.dtype, DEFAULT_DTYPE)

    def test_set_parameters_constant(self) -> None:
        """Test setting every parameter to the same value."""
        model = Linear(n_input=3, n_output=2)
        model.set_parameters_constant(0.5)
        expected = np.repeat(0.5 * self.data.sum(axis=1, keepdims=True) + 0.5, 2, axis=1)
        np.testing.assert_array_almost_equal(model.forward(self.data), expected)

    def test_load_parameters(self) -> None:
        """Test loading a parameter map, which copies values into the existing arrays."""
        model = Linear(n_input=3, n_output=2)
        w = np.arange(6, dtype=DEFAULT_DTYPE).reshape(3, 2)
        b = np.array([[1.0, -1.0]])
        model.load_parameters({"w": w, "b": b})
        np.testing.assert_array_almost_equal(model.forward(self.data), self.data @ w + b)

        w[0, 0] = 100.0
        self.assertEqual(model.w[0, 0], 0.0)

    def test_load_parameters_wrong_shape(self) -> None:
        """Test that parameters of the wrong shape are rejected."""
        model = Linear(n_input=3, n_output=5)
        with self.assertRaises(ValueError):
            model.load_parameters({"w": np.zeros((5, 3)), "b": np.zeros((1, 5))})
        with self.assertRaises(ValueError):
            model.load_parameters({"w": np.zeros((3, 5))})

    def test_get_gradients_before_backward(self) -> None:
        """Test that gradients are unavailable until a backward pass has run."""
        model = Linear(n_input=3, n_output=2)
        model.forward(self.data)
        with self.assertRaises(AssertionError):
            model.get_gradients()

    def test_gradients_closed_form(self) -> None:
        """Test dw, db and dx against their closed forms for a squared error."""
        model = Linear(n_input=3, n_output=2, rng=np.random.default_rng(0))
        residual = model.forward(self.data) - self.targets
        model.backward(residual)

        gradients = model.get_gradients()
        np.testing.assert_array_almost_equal(gradients["w"], self.data.T @ residual)
        np.testing.assert_array_almost_equal(gradients["b"], residual.sum(axis=0, keepdims=True))
        np.testing.assert_array_almost_equal(model.cache["dx"], residual @ model.w.T)

    def test_gradients_random_step(self) -> None:
        """Test the parameter gradients against the change in loss for a small random step."""
        rng = np.random.default_rng(1)
        model = Linear(n_input=3, n_output=2, rng=rng)
        loss = self.half_squared_error(model)
        gradients = model.get_gradients()

        step_w = 1e-6 * rng.standard_normal(size=model.w.shape)
        step_b = 1e-6 * rng.standard_normal(size=model.b.shape)
        expected_change = np.sum(step_w * gradients["w"]) + np.sum(step_b * gradients["b"])
        model.w += step_w
        model.b += step_b
        actual_change = self.half_squared_error(model) - loss
        self.assertAlmostEqual(actual_change, expected_change, places=10)

    def test_backward_at_zero(self) -> None:
        """Test the backward pass with upstream gradient being 0."""
        model = Linear(n_input=3, n_output=9)
        out = model.forward(self.data)
        model.backward(np.zeros_like(out))

        gradients = model.get_gradients()
        self.assertEqual(model.cache["dx"].shape, (4, 3))
        self.assertEqual(gradients["w"].shape, (3, 9))
        self.assertEqual(gradients["b"].shape, (1, 9))
        self.assertTrue(np.all(model.cache["dx"] == 0))
        self.assertTrue(np.all(gradients["w"] == 0))
        self.assertTrue(np.all(gradients["b"] == 0))
