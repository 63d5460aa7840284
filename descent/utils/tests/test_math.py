"""Unit tests for math.py."""

import unittest

import numpy as np

from descent.utils.math import (
    relu,
    logistic,
    log_sum_exp,
    log_softmax,
    softmax,
    is_finite,
    is_descent_direction,
    symmetrize,
)


class TestReLU(unittest.TestCase):
    """Unit tests for relu()."""

    def test_positive_values_are_identity(self) -> None:
        """Test that an all-positive input is mapped as an indentity method."""
        x = np.random.random(size=(2, 3, 5))
        a = relu(x)
        np.testing.assert_equal(a, x)

    def test_random(self) -> None:
        """Test behavior on a random input."""
        x = np.random.standard_normal(size=(2, 3, 5))
        a = relu(x)
        expected = np.copy(x)
        expected[expected < 0] = 0
        np.testing.assert_equal(a, expected)


class TestLogistic(unittest.TestCase):
    """Unit tests for logistic()."""

    def test_known_values(self) -> None:
        """Test the sigmoid at a few points."""
        x = np.array([0.0, np.log(3.0), -np.log(3.0)])
        np.testing.assert_almost_equal(logistic(x), [0.5, 0.75, 0.25])

    def test_large_values(self) -> None:
        """Test numerical stability on large input values."""
        y = logistic(np.array([-1000.0, 1000.0]))
        self.assertTrue(np.all(np.isfinite(y)))
        np.testing.assert_almost_equal(y, [0.0, 1.0])


class TestLogSumExp(unittest.TestCase):
    """Unit tests for log_sum_exp()."""

    def test_two_dimensions(self) -> None:
        """Test a two-dimensional input."""
        x = np.array(
            [
                [0, 0],
                [1, 1],
            ]
        )
        y = log_sum_exp(x)
        self.assertEqual(y.shape, (2, 1))
        self.assertAlmostEqual(y[0][0], np.log(2))  # log(e^0 + e^0)
        self.assertAlmostEqual(y[1][0], np.log(2) + 1)  # log(e^1 + e^1) = log(2*e) = log(2) + 1

    def test_large_values(self) -> None:
        """Test numerical stability on large input values."""
        x = np.array(
            [
                [-0.5, 100.0],
                [-1.3, 900.0],
            ]
        )
        y = log_sum_exp(x)
        self.assertEqual(y[0][0], 100)
        self.assertEqual(y[1][0], 900)


class TestLogSoftmax(unittest.TestCase):
    """Unit tests for log_softmax()."""

    def test_uniform(self) -> None:
        """Test a two-dimensional input with equal logits."""
        x = np.zeros((2, 3))
        y = log_softmax(x)
        expected = np.array([-np.log(3)] * 6).reshape(2, 3)
        np.testing.assert_almost_equal(y, expected)


class TestSoftmax(unittest.TestCase):
    """Unit tests for softmax()."""

    def test_large_values(self) -> None:
        """Test numerical stability on large input values."""
        x = np.array(
            [
                [-0.5, 100.0],
                [900.0, -1.3],
            ]
        )
        y = softmax(x)
        expected = np.array(
            [
                [0, 1],
                [1, 0],
            ]
        )
        np.testing.assert_almost_equal(y, expected)

    def test_random_values(self) -> None:
        """Test behavior on a random input."""
        x = np.random.standard_normal(size=(5, 9))
        y = softmax(x)
        # all values of y should be positive and sum to 1
        self.assertTrue(np.all(y > 0))
        np.testing.assert_almost_equal(np.sum(y, axis=-1), np.ones(shape=(5,)))


class TestIsFinite(unittest.TestCase):
    """Unit tests for is_finite()."""

    def test_scalars_and_arrays(self) -> None:
        """Test mixed scalar and array arguments."""
        self.assertTrue(is_finite(1.0, np.zeros(3)))
        self.assertFalse(is_finite(1.0, np.array([0.0, np.nan])))
        self.assertFalse(is_finite(np.inf, np.zeros(3)))
        self.assertFalse(is_finite(-np.inf))

    def test_no_values(self) -> None:
        """Test that an empty argument list is trivially finite."""
        self.assertTrue(is_finite())


class TestIsDescentDirection(unittest.TestCase):
    """Unit tests for is_descent_direction()."""

    def test_directions(self) -> None:
        """Test steepest descent, ascent, orthogonal and non-finite directions."""
        g = np.array([1.0, -2.0])
        self.assertTrue(is_descent_direction(g, -g))
        self.assertFalse(is_descent_direction(g, g))
        self.assertFalse(is_descent_direction(g, np.array([2.0, 1.0])))
        self.assertFalse(is_descent_direction(g, np.array([np.nan, 0.0])))


class TestSymmetrize(unittest.TestCase):
    """Unit tests for symmetrize()."""

    def test_random(self) -> None:
        """Test that the result is symmetric and equals the input for symmetric matrices."""
        m = np.random.standard_normal(size=(4, 4))
        s = symmetrize(m)
        np.testing.assert_array_equal(s, s.T)
        np.testing.assert_almost_equal(symmetrize(s), s)
