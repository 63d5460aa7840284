"""Interface for implementing optimizers, and the epoch loop they all share.

An optimizer only decides how to move the parameters within one epoch (`update_parameters`).
Everything else, including evaluating the loss, tracking selection failures, checking the stopping
criteria, reporting progress and building the results, happens once in `run_training`.
"""

from __future__ import annotations

import abc
import json
from os import PathLike
from typing import Any, Callable, Mapping, Optional

import numpy as np

from descent.errors import ConfigurationError
from descent.loss.base import LossIndex
from descent.optimizers.results import IterationState, TrainingResults, TrainingState
from descent.optimizers.stopping import StoppingCriteriaConfig, StoppingReason, evaluate_stopping_criteria
from descent.utils.math import is_finite
from descent.utils.profile import Profile


StopCallback = Callable[[], bool]


class Optimizer(abc.ABC):
    """Abstract base class for an optimization algorithm that trains a loss index.

    An optimizer instance and the state of a run are owned by a single caller; they must not be
    shared between concurrent training runs.
    """

    def __init__(
        self,
        loss_index: Optional[LossIndex] = None,
        *,
        stopping_criteria: Optional[StoppingCriteriaConfig] = None,
        display: bool = True,
        display_period: int = 10,
    ) -> None:
        """Initialize the optimizer."""
        self.loss_index = loss_index
        self.stopping_criteria = stopping_criteria if stopping_criteria is not None else StoppingCriteriaConfig()
        self.display = display
        self.display_period = display_period
        self.stop_callback: Optional[StopCallback] = None

    # Configuration

    def set_loss_index(self, loss_index: LossIndex) -> None:
        """Set the loss index to train."""
        self.loss_index = loss_index

    def has_loss_index(self) -> bool:
        """Whether a loss index is set."""
        return self.loss_index is not None

    def set_stopping_criteria(self, stopping_criteria: StoppingCriteriaConfig) -> None:
        """Replace the stopping criteria. Raises ConfigurationError if they are malformed."""
        stopping_criteria.validate()
        self.stopping_criteria = stopping_criteria

    def get_stopping_criteria(self) -> StoppingCriteriaConfig:
        """Return the stopping criteria."""
        return self.stopping_criteria

    def set_display(self, display: bool) -> None:
        """Enable or disable progress reporting. This has no effect on the algorithm."""
        self.display = display

    def set_display_period(self, display_period: int) -> None:
        """Report progress every `display_period` epochs."""
        if display_period < 1:
            raise ValueError(f"display_period must be positive, got {display_period}")
        self.display_period = display_period

    def set_stop_callback(self, stop_callback: Optional[StopCallback]) -> None:
        """Set a callable polled at every epoch boundary and line search trial; returning True stops training."""
        self.stop_callback = stop_callback

    def check(self) -> None:
        """Raise ConfigurationError if training cannot start."""
        if self.loss_index is None:
            raise ConfigurationError("No loss index is set")
        parameters_count = self.loss_index.parameters_count()
        if parameters_count <= 0:
            raise ConfigurationError(f"The loss index has {parameters_count} parameters")
        self.stopping_criteria.validate()
        if not isinstance(self.display_period, int) or self.display_period < 1:
            raise ConfigurationError(f"display_period must be a positive integer, got {self.display_period!r}")
        self.check_hyperparameters()

    # Hooks implemented by each optimizer

    @abc.abstractmethod
    def check_hyperparameters(self) -> None:
        """Raise ConfigurationError if a hyperparameter is out of range."""
        raise NotImplementedError

    @abc.abstractmethod
    def get_hyperparameters(self) -> dict[str, Any]:
        """Return the tunable hyperparameters as a JSON-compatible dict."""
        raise NotImplementedError

    @abc.abstractmethod
    def set_hyperparameters(self, hyperparameters: Mapping[str, Any]) -> None:
        """Update hyperparameters from a dict produced by `get_hyperparameters()`."""
        raise NotImplementedError

    @abc.abstractmethod
    def initialize_state(self, state: IterationState, loss_index: LossIndex) -> None:
        """Set up optimizer-specific state in `state.extras` before the first epoch."""
        raise NotImplementedError

    @abc.abstractmethod
    def update_parameters(self, state: IterationState, loss_index: LossIndex) -> None:
        """Perform one epoch's parameter update and write the new parameters to the loss index.

        Implementations set `state.direction` and `state.learning_rate` and add the evaluations
        they spend to `state.evaluations`. The loop re-evaluates loss and gradient afterwards.
        """
        raise NotImplementedError

    # Training

    def stop_requested(self) -> bool:
        """Poll the stop callback, if any."""
        return self.stop_callback is not None and bool(self.stop_callback())

    def perform_training(self) -> TrainingResults:
        """Train the loss index until a stopping criterion fires."""
        return run_training(self)

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        """Externalize the optimizer configuration (not the state of any run)."""
        return {
            "optimizer": type(self).__name__,
            "stopping_criteria": self.stopping_criteria.to_dict(),
            "display": self.display,
            "display_period": self.display_period,
            "hyperparameters": self.get_hyperparameters(),
        }

    def load_dict(self, document: Mapping[str, Any]) -> None:
        """Apply a configuration produced by `to_dict()`. Missing sections keep their current values.

        Every section is validated before any is applied, so a rejected document raises
        ConfigurationError and leaves the optimizer unchanged.
        """
        unknown = set(document) - {"optimizer", "stopping_criteria", "display", "display_period", "hyperparameters"}
        if unknown:
            raise ConfigurationError(f"Unknown optimizer document keys: {sorted(unknown)}")
        name = document.get("optimizer", type(self).__name__)
        if name != type(self).__name__:
            raise ConfigurationError(f"Document describes a {name}, not a {type(self).__name__}")

        stopping_criteria = self.stopping_criteria
        display_period = document.get("display_period", self.display_period)
        try:
            if "stopping_criteria" in document:
                stopping_criteria = StoppingCriteriaConfig.from_dict(document["stopping_criteria"])
            if isinstance(display_period, bool) or not isinstance(display_period, int) or display_period < 1:
                raise ConfigurationError(f"display_period must be a positive integer, got {display_period!r}")
            if "hyperparameters" in document:
                if not isinstance(document["hyperparameters"], Mapping):
                    raise ConfigurationError(f"hyperparameters must be a mapping, got {document['hyperparameters']!r}")
                self.set_hyperparameters(document["hyperparameters"])
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid optimizer document: {e}") from e

        self.stopping_criteria = stopping_criteria
        self.display_period = display_period
        if "display" in document:
            self.display = bool(document["display"])

    @classmethod
    def from_dict(cls, document: Mapping[str, Any], loss_index: Optional[LossIndex] = None) -> Optimizer:
        """Create an optimizer from a configuration produced by `to_dict()`."""
        optimizer = cls(loss_index)
        optimizer.load_dict(document)
        return optimizer

    def save(self, file_path: PathLike) -> None:
        """Write the configuration to a JSON file."""
        with open(file_path, mode="w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write("\n")

    @classmethod
    def load(cls, file_path: PathLike, loss_index: Optional[LossIndex] = None) -> Optimizer:
        """Create an optimizer from a JSON file written by `save()`."""
        with open(file_path, mode="r", encoding="utf-8") as f:
            try:
                document = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Malformed optimizer file {file_path}: {e}") from e
        if not isinstance(document, dict):
            raise ConfigurationError(f"Malformed optimizer file {file_path}: expected a JSON object")
        return cls.from_dict(document, loss_index=loss_index)


def _update_selection_failures(state: IterationState, selection_loss: Optional[float]) -> None:
    state.old_selection_loss = state.selection_loss
    state.selection_loss = selection_loss
    if selection_loss is None or state.old_selection_loss is None:
        return
    if not np.isfinite(selection_loss) or selection_loss > state.old_selection_loss:
        state.selection_failures += 1
    else:
        state.selection_failures = 0


def _print_epoch(state: IterationState) -> None:
    selection_str = f"  selection_loss={state.selection_loss:.6e}" if state.selection_loss is not None else ""
    print(
        f"  epoch {state.epoch:6}: loss={state.loss:.6e}  gradient_norm={state.gradient_norm:.3e}"
        f"  learning_rate={state.learning_rate:.3e}{selection_str}"
    )


def run_training(optimizer: Optimizer) -> TrainingResults:
    """Run the epoch loop of `optimizer` on its loss index and return the results.

    Raises ConfigurationError before any epoch runs if the optimizer is misconfigured. Non-finite
    loss or gradient values never raise; they end the run with `StoppingReason.NON_FINITE_VALUES`,
    restoring the last finite parameters.
    """
    optimizer.check()
    loss_index = optimizer.loss_index
    assert loss_index is not None
    criteria = optimizer.stopping_criteria

    if optimizer.display:
        print(f"-- Training with {type(optimizer).__name__} " + "-" * 40)

    with Profile() as profile:

        def stop_requested() -> bool:
            return optimizer.stop_requested() or profile.elapsed >= criteria.maximum_time

        parameters = np.array(loss_index.get_parameters(), copy=True)
        loss, gradient = loss_index.evaluate()
        gradient = np.array(gradient, copy=True)
        if gradient.shape != parameters.shape:
            raise ConfigurationError(
                f"Gradient has shape {gradient.shape} but the parameter vector has shape {parameters.shape}"
            )

        state = IterationState(
            parameters=parameters,
            gradient=gradient,
            loss=float(loss),
            evaluations=1,
            stop_requested=stop_requested,
        )
        state.selection_loss = loss_index.calculate_selection_loss()
        loss_history = [state.loss]
        selection_loss_history = [state.selection_loss] if state.selection_loss is not None else []

        reason: Optional[StoppingReason]
        if not is_finite(state.loss, state.gradient):
            reason = StoppingReason.NON_FINITE_VALUES
        else:
            optimizer.initialize_state(state, loss_index)
            reason = evaluate_stopping_criteria(
                loss=state.loss,
                previous_loss=state.loss,
                gradient_norm=state.gradient_norm,
                epoch=0,
                elapsed_time=profile.elapsed,
                selection_failures=0,
                config=criteria,
            )

        while reason is None:
            optimizer.update_parameters(state, loss_index)
            if state.numeric_failure:
                loss_index.set_parameters(state.parameters)
                reason = StoppingReason.NON_FINITE_VALUES
                break
            state.epoch += 1

            loss, gradient = loss_index.evaluate()
            state.evaluations += 1
            state.advance(
                parameters=np.array(loss_index.get_parameters(), copy=True),
                loss=float(loss),
                gradient=np.array(gradient, copy=True),
            )
            if not is_finite(state.loss, state.gradient):
                state.rollback()
                state.epoch -= 1
                loss_index.set_parameters(state.parameters)
                reason = StoppingReason.NON_FINITE_VALUES
                break

            _update_selection_failures(state, loss_index.calculate_selection_loss())
            loss_history.append(state.loss)
            if state.selection_loss is not None:
                selection_loss_history.append(state.selection_loss)

            if optimizer.stop_requested():
                reason = StoppingReason.USER_STOP
            else:
                reason = evaluate_stopping_criteria(
                    loss=state.loss,
                    previous_loss=state.old_loss if state.old_loss is not None else state.loss,
                    gradient_norm=state.gradient_norm,
                    epoch=state.epoch,
                    elapsed_time=profile.elapsed,
                    selection_failures=state.selection_failures,
                    config=criteria,
                )

            if optimizer.display and (reason is not None or state.epoch % optimizer.display_period == 0):
                _print_epoch(state)

    results = TrainingResults(
        final_loss=state.loss,
        final_gradient_norm=state.gradient_norm,
        final_selection_loss=state.selection_loss,
        epochs=state.epoch,
        elapsed_time=profile.seconds,
        evaluations=state.evaluations,
        stopping_reason=reason,
        state=TrainingState.from_stopping_reason(reason),
        parameters=np.copy(state.parameters),
        loss_history=tuple(loss_history),
        selection_loss_history=tuple(selection_loss_history),
    )

    if optimizer.display:
        print(results.summary())

    return results
