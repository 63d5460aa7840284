"""Per-run iteration state and the results of a training run."""

from __future__ import annotations

from dataclasses import dataclass, field
import enum
from typing import Any, Callable, Optional

import numpy as np

from descent.optimizers.stopping import StoppingReason


class TrainingState(enum.Enum):
    """Lifecycle of a training run."""

    INITIALIZED = "Initialized"
    RUNNING = "Running"
    CONVERGED = "Converged"
    EXHAUSTED = "Exhausted"
    FAILED = "Failed"

    @classmethod
    def from_stopping_reason(cls, reason: StoppingReason) -> TrainingState:
        """Map the reason a run stopped to its terminal state."""
        if reason.is_fatal:
            return cls.FAILED
        if reason in (
            StoppingReason.LOSS_GOAL_REACHED,
            StoppingReason.MINIMUM_LOSS_DECREASE,
            StoppingReason.GRADIENT_NORM_GOAL,
        ):
            return cls.CONVERGED
        return cls.EXHAUSTED


def _never() -> bool:
    return False


@dataclass
class IterationState:
    """Mutable snapshot of one training run, owned by the epoch loop.

    At the start of `update_parameters()` for epoch k >= 1, `parameters`, `gradient` and `loss`
    describe the current point and the `old_*` fields the point before the previous update.
    `direction` and `learning_rate` hold the previous epoch's values until the optimizer
    overwrites them. An optimizer sets `numeric_failure` when an evaluation it made
    returned non-finite values, which ends the run.
    `extras` carries optimizer-specific state such as a momentum velocity.
    """

    parameters: np.ndarray
    gradient: np.ndarray
    loss: float
    old_parameters: Optional[np.ndarray] = None
    old_gradient: Optional[np.ndarray] = None
    old_loss: Optional[float] = None
    direction: Optional[np.ndarray] = None
    learning_rate: float = 0.0
    epoch: int = 0
    selection_loss: Optional[float] = None
    old_selection_loss: Optional[float] = None
    selection_failures: int = 0
    evaluations: int = 0
    numeric_failure: bool = False
    stop_requested: Callable[[], bool] = _never
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def gradient_norm(self) -> float:
        """The Euclidean norm of the current gradient."""
        return float(np.linalg.norm(self.gradient))

    def advance(self, parameters: np.ndarray, loss: float, gradient: np.ndarray) -> None:
        """Move the current point into the `old_*` fields and record a new current point."""
        self.old_parameters = self.parameters
        self.old_gradient = self.gradient
        self.old_loss = self.loss
        self.parameters = parameters
        self.gradient = gradient
        self.loss = loss

    def rollback(self) -> None:
        """Return to the previous point, discarding the current one."""
        assert self.old_parameters is not None and self.old_gradient is not None and self.old_loss is not None
        self.parameters = self.old_parameters
        self.gradient = self.old_gradient
        self.loss = self.old_loss


@dataclass(frozen=True)
class TrainingResults:
    """Outcome of a single call to `perform_training()`."""

    final_loss: float
    final_gradient_norm: float
    final_selection_loss: Optional[float]
    epochs: int
    elapsed_time: float
    evaluations: int
    stopping_reason: StoppingReason
    state: TrainingState
    parameters: np.ndarray
    loss_history: tuple[float, ...]
    selection_loss_history: tuple[float, ...]

    @property
    def converged(self) -> bool:
        """Whether the run ended by meeting a convergence criterion."""
        return self.state is TrainingState.CONVERGED

    @property
    def failed(self) -> bool:
        """Whether the run was aborted because of non-finite values."""
        return self.state is TrainingState.FAILED

    def summary(self) -> str:
        """Format the results as a short multi-line report."""
        lines = [
            f"Stopping reason: {self.stopping_reason.description} ({self.state.value})",
            f"  epochs={self.epochs:,}  elapsed_time={self.elapsed_time:.3f}s  evaluations={self.evaluations:,}",
            f"  final_loss={self.final_loss:.6e}  final_gradient_norm={self.final_gradient_norm:.3e}",
        ]
        if self.final_selection_loss is not None:
            lines.append(f"  final_selection_loss={self.final_selection_loss:.6e}")
        return "\n".join(lines)
