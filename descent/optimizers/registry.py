"""Registry of the optimizers that can be restored from a saved configuration."""

import json
from os import PathLike
from typing import Any, Mapping, Optional

from descent.errors import ConfigurationError
from descent.loss.base import LossIndex
from descent.optimizers.base import Optimizer
from descent.optimizers.conjugate_gradient import ConjugateGradient
from descent.optimizers.quasi_newton import QuasiNewtonMethod
from descent.optimizers.sgd import StochasticGradientDescent


OPTIMIZERS: dict[str, type[Optimizer]] = {
    cls.__name__: cls for cls in (StochasticGradientDescent, ConjugateGradient, QuasiNewtonMethod)
}


def optimizer_from_dict(document: Mapping[str, Any], loss_index: Optional[LossIndex] = None) -> Optimizer:
    """Create whichever optimizer a document produced by `Optimizer.to_dict()` describes."""
    name = document.get("optimizer")
    if name not in OPTIMIZERS:
        raise ConfigurationError(f"Unknown optimizer {name!r}. Choose one of {sorted(OPTIMIZERS)}")
    return OPTIMIZERS[name].from_dict(document, loss_index=loss_index)


def load_optimizer(file_path: PathLike, loss_index: Optional[LossIndex] = None) -> Optimizer:
    """Create whichever optimizer a JSON file written by `Optimizer.save()` describes."""
    with open(file_path, mode="r", encoding="utf-8") as f:
        try:
            document = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Malformed optimizer file {file_path}: {e}") from e
    if not isinstance(document, dict):
        raise ConfigurationError(f"Malformed optimizer file {file_path}: expected a JSON object")
    return optimizer_from_dict(document, loss_index=loss_index)
