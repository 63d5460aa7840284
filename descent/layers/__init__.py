"""Library implementation of model layers."""

from .base import Layer
from .linear import Linear
from .perceptron import ACTIVATION_FUNCTIONS, Perceptron
