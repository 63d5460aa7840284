"""Loss functions and the loss index interface consumed by the optimizers."""

from .base import ErrorTerm, LossIndex
from .cross_entropy import CrossEntropyLoss
from .function_loss import FunctionLoss
from .model_loss import ModelLoss
from .squared_error import MeanSquaredError, SumSquaredError
