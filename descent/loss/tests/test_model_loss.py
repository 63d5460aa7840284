"""Unit tests for model_loss.py."""

import unittest

import numpy as np

from descent.data.dataset import Dataset
from descent.loss.cross_entropy import CrossEntropyLoss
from descent.loss.model_loss import ModelLoss
from descent.loss.squared_error import MeanSquaredError
from descent.models.multilayer_perceptron import MultilayerPerceptron


class TestModelLoss(unittest.TestCase):
    """Unit tests for ModelLoss."""

    def setUp(self) -> None:
        rng = np.random.default_rng(0)
        self.inputs = rng.standard_normal(size=(12, 2))
        self.targets = np.sin(self.inputs[:, :1]) + self.inputs[:, 1:]
        self.dataset = Dataset(self.inputs, self.targets)

    def _check_gradient(self, loss_index: ModelLoss) -> None:
        parameters = loss_index.get_parameters()
        loss, gradient = loss_index.evaluate()
        self.assertEqual(gradient.shape, parameters.shape)

        step = 1e-6 * np.random.standard_normal(size=parameters.shape)
        actual_change = loss_index.calculate_loss_at(parameters + step) - loss
        self.assertAlmostEqual(actual_change, float(np.dot(step, gradient)), places=9)

    def test_parameters_roundtrip(self) -> None:
        """Test that the flat parameter vector maps back onto the model."""
        model = MultilayerPerceptron(layer_sizes=(2, 3, 1), seed=0)
        loss_index = ModelLoss(model, MeanSquaredError(), self.dataset)
        self.assertEqual(loss_index.parameters_count(), model.n_params)

        parameters = np.arange(model.n_params, dtype=np.float64)
        loss_index.set_parameters(parameters)
        np.testing.assert_array_equal(loss_index.get_parameters(), parameters)
        np.testing.assert_array_equal(model.layers[0].combination.w.ravel(), parameters[:6])

    def test_gradient_squared_error(self) -> None:
        """Test the gradient against a random step for a regression loss."""
        model = MultilayerPerceptron(layer_sizes=(2, 4, 1), seed=1)
        self._check_gradient(ModelLoss(model, MeanSquaredError(), self.dataset))

    def test_gradient_cross_entropy(self) -> None:
        """Test the gradient against a random step for a classification loss."""
        targets = (self.inputs[:, :1] > 0).astype(np.float64)
        model = MultilayerPerceptron(layer_sizes=(2, 4, 2), seed=2)
        self._check_gradient(ModelLoss(model, CrossEntropyLoss(), Dataset(self.inputs, targets)))

    def test_regularization(self) -> None:
        """Test that L2 regularization adds 0.5 * w * |p|^2 to the loss and w * p to the gradient."""
        model = MultilayerPerceptron(layer_sizes=(2, 3, 1), seed=3)
        plain = ModelLoss(model, MeanSquaredError(), self.dataset)
        regularized = ModelLoss(model, MeanSquaredError(), self.dataset, regularization_weight=0.1)

        parameters = plain.get_parameters()
        loss, gradient = plain.evaluate()
        regularized_loss, regularized_gradient = regularized.evaluate()

        self.assertAlmostEqual(regularized_loss, loss + 0.05 * float(parameters @ parameters))
        np.testing.assert_array_almost_equal(regularized_gradient, gradient + 0.1 * parameters)
        self._check_gradient(regularized)

    def test_invalid(self) -> None:
        """Test that untrainable configurations are rejected."""
        model = MultilayerPerceptron(layer_sizes=(2, 3, 1))
        with self.assertRaises(ValueError):
            ModelLoss(model, MeanSquaredError(), self.dataset, regularization_weight=-1.0)
        with self.assertRaises(ValueError):
            ModelLoss(MultilayerPerceptron(layer_sizes=(2, 3, 1), enable_grad=False), MeanSquaredError(), self.dataset)

    def test_batches_and_selection(self) -> None:
        """Test mini-batches and the selection loss."""
        model = MultilayerPerceptron(layer_sizes=(2, 3, 1), seed=4)
        loss_index = ModelLoss(model, MeanSquaredError(), self.dataset)
        batches = list(loss_index.get_training_batches(batch_size=5, shuffle=False))
        self.assertEqual(len(batches), 3)
        self.assertIsNone(loss_index.calculate_selection_loss())

        dataset = Dataset(self.inputs, self.targets, selection_fraction=0.25, seed=0)
        loss_index = ModelLoss(model, MeanSquaredError(), dataset, regularization_weight=1.0)
        inputs, targets = dataset.selection_data
        expected = MeanSquaredError().forward(model.forward(inputs), targets)
        self.assertAlmostEqual(loss_index.calculate_selection_loss(), expected)
