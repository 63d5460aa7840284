"""Library implementation of model architectures."""

from .base import Model
from .multilayer_perceptron import MultilayerPerceptron
