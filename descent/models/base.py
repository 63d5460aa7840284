"""Base class for trainable models, with pickle checkpoints shared by every architecture."""

from __future__ import annotations

import abc
from os import PathLike
from pathlib import Path
import pickle
from typing import Any

from descent.constants import DType, DEFAULT_DTYPE, Parameters
from descent.layers import Layer


class Model(Layer):
    """A layer that can be checkpointed to disk and rebuilt from the checkpoint.

    A checkpoint is a pickled list `[constructor_args, parameters]`. Subclasses only describe how
    they are constructed (`constructor_args()`); rebuilding calls the constructor with those
    arguments and then loads the parameter map.
    """

    def __init__(
        self,
        *,
        dtype: DType = DEFAULT_DTYPE,
        enable_grad: bool = True,
    ) -> None:
        """Initialize the model."""
        super().__init__(dtype=dtype, enable_grad=enable_grad)

    @abc.abstractmethod
    def constructor_args(self) -> dict[str, Any]:
        """The keyword arguments that rebuild this architecture, excluding `enable_grad`."""
        raise NotImplementedError

    def save(self, model_file: PathLike) -> None:
        """Checkpoint the current model state to disk."""
        model_path = Path(model_file)
        model_path.parent.mkdir(parents=False, exist_ok=True)
        model_definition = [self.constructor_args(), self.get_parameters()]
        with open(model_path, "wb") as f:
            pickle.dump(model_definition, f)

    @staticmethod
    def read_checkpoint(model_file: PathLike) -> tuple[dict[str, Any], Parameters]:
        """Return the constructor arguments and parameter map stored in a checkpoint."""
        with open(model_file, "rb") as f:
            model_definition = pickle.load(f)
        if not isinstance(model_definition, list) or len(model_definition) != 2:
            raise ValueError(f"Invalid model file {model_file}")
        constructor_args, params = model_definition
        if not isinstance(constructor_args, dict):
            raise ValueError(f"Invalid model file {model_file}")
        return constructor_args, params

    def load(self, model_file: PathLike) -> None:
        """Load model parameters from a checkpoint file on disk."""
        _, params = self.read_checkpoint(model_file)
        self.load_parameters(params)

    @classmethod
    def load_for_training(cls, model_file: PathLike) -> Model:
        """Initialize a model from a checkpoint file on disk, ready for gradient computation."""
        constructor_args, params = cls.read_checkpoint(model_file)
        model = cls(**constructor_args, enable_grad=True)
        model.load_parameters(params)
        return model

    @classmethod
    def load_for_eval(cls, model_file: PathLike) -> Model:
        """Initialize a model from a checkpoint file on disk in evaluation mode."""
        constructor_args, params = cls.read_checkpoint(model_file)
        model = cls(**constructor_args, enable_grad=False)
        model.load_parameters(params)
        return model
