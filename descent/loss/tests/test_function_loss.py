"""Unit tests for function_loss.py."""

import unittest

import numpy as np

from descent.loss.function_loss import FunctionLoss


def quadratic(p: np.ndarray) -> tuple[float, np.ndarray]:
    return float(p @ p), 2 * p


class TestFunctionLoss(unittest.TestCase):
    """Unit tests for FunctionLoss."""

    def test_evaluate(self) -> None:
        """Test evaluating the loss and gradient at the current parameters."""
        loss_index = FunctionLoss(quadratic, [3.0, -4.0])
        self.assertEqual(loss_index.parameters_count(), 2)

        loss, gradient = loss_index.evaluate()
        self.assertAlmostEqual(loss, 25.0)
        np.testing.assert_array_equal(gradient, [6.0, -8.0])
        self.assertEqual(loss_index.n_evaluations, 1)

    def test_parameters_are_copied(self) -> None:
        """Test that callers can't alias the parameter vector."""
        loss_index = FunctionLoss(quadratic, [1.0])
        parameters = loss_index.get_parameters()
        parameters[0] = 7.0
        np.testing.assert_array_equal(loss_index.get_parameters(), [1.0])

        loss_index.set_parameters(parameters)
        parameters[0] = 9.0
        np.testing.assert_array_equal(loss_index.get_parameters(), [7.0])

    def test_set_parameters_wrong_shape(self) -> None:
        """Test that a vector of the wrong size is rejected."""
        loss_index = FunctionLoss(quadratic, [1.0, 2.0])
        with self.assertRaises(ValueError):
            loss_index.set_parameters(np.zeros(3))

    def test_calculate_loss_at(self) -> None:
        """Test evaluating a candidate point leaves the parameters untouched."""
        loss_index = FunctionLoss(quadratic, [5.0])
        self.assertAlmostEqual(loss_index.calculate_loss_at(np.array([2.0])), 4.0)
        np.testing.assert_array_equal(loss_index.get_parameters(), [5.0])

    def test_calculate_loss_at_restores_on_error(self) -> None:
        """Test that the parameters are restored when the function raises."""

        def failing(p: np.ndarray) -> tuple[float, np.ndarray]:
            if p[0] < 0:
                raise ArithmeticError("negative")
            return float(p[0]), np.ones(1)

        loss_index = FunctionLoss(failing, [5.0])
        with self.assertRaises(ArithmeticError):
            loss_index.calculate_loss_at(np.array([-1.0]))
        np.testing.assert_array_equal(loss_index.get_parameters(), [5.0])

    def test_batches_and_selection(self) -> None:
        """Test the default single batch and the optional selection loss."""
        loss_index = FunctionLoss(quadratic, [1.0])
        self.assertEqual(list(loss_index.get_training_batches(batch_size=10)), [None])
        self.assertIsNone(loss_index.calculate_selection_loss())

        loss_index = FunctionLoss(quadratic, [1.0], selection_function=lambda p: float((p[0] - 2) ** 2))
        self.assertAlmostEqual(loss_index.calculate_selection_loss(), 1.0)
