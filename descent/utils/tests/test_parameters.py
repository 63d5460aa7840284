"""Unit tests for parameters.py."""

import unittest

import numpy as np

from descent.utils.parameters import count_parameters, flatten_parameters, unflatten_parameters


class TestParameters(unittest.TestCase):
    """Unit tests for flattening and unflattening parameter maps."""

    def setUp(self) -> None:
        self.params = {
            "layer_0": {
                "w": np.arange(6, dtype=np.float64).reshape(2, 3),
                "b": np.array([[10.0, 11.0, 12.0]]),
            },
            "layer_1": {
                "w": np.array([[20.0], [21.0], [22.0]]),
                "b": np.array([[30.0]]),
            },
        }

    def test_count_parameters(self) -> None:
        """Test counting nested parameters."""
        self.assertEqual(count_parameters(self.params), 6 + 3 + 3 + 1)
        self.assertEqual(count_parameters({}), 0)

    def test_flatten_order(self) -> None:
        """Test that flattening follows insertion order and row-major layout."""
        vector = flatten_parameters(self.params)
        expected = [0, 1, 2, 3, 4, 5, 10, 11, 12, 20, 21, 22, 30]
        np.testing.assert_array_equal(vector, expected)
        self.assertEqual(vector.ndim, 1)

    def test_flatten_is_a_copy(self) -> None:
        """Test that writing to the flat vector leaves the parameter map untouched."""
        vector = flatten_parameters(self.params)
        vector[:] = -1
        self.assertEqual(self.params["layer_0"]["w"][0, 0], 0)

    def test_unflatten(self) -> None:
        """Test that unflattening restores shapes and values."""
        vector = flatten_parameters(self.params)
        params = unflatten_parameters(vector * 2, self.params)
        self.assertEqual(params["layer_0"]["w"].shape, (2, 3))
        self.assertEqual(params["layer_1"]["b"].shape, (1, 1))
        np.testing.assert_array_equal(params["layer_0"]["w"], 2 * self.params["layer_0"]["w"])
        np.testing.assert_array_equal(params["layer_1"]["w"], 2 * self.params["layer_1"]["w"])

    def test_unflatten_wrong_size(self) -> None:
        """Test that a vector of the wrong size is rejected."""
        with self.assertRaises(ValueError):
            unflatten_parameters(np.zeros(5), self.params)
        with self.assertRaises(ValueError):
            unflatten_parameters(np.zeros((13, 1)), self.params)
