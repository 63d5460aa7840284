"""Learning-rate algorithms: one-dimensional searches for a step size along a training direction.

The search brackets a minimum of `loss(p + eta * d)` for eta > 0, then shrinks the bracket with
golden-section steps or with Brent's parabolic interpolation (falling back to golden-section
steps when interpolation stops making progress).

The result never has a higher loss than the starting point: when no trial step decreases the loss,
the returned learning rate is 0.
"""

from __future__ import annotations

from dataclasses import dataclass
import enum
import math
from typing import Any, Callable, Mapping, Optional, Union

import numpy as np

from descent.errors import ConfigurationError
from descent.loss.base import LossIndex


GOLDEN_RATIO = (1 + math.sqrt(5)) / 2
GOLDEN_SECTION = 2 - GOLDEN_RATIO  # ~0.382, the fraction of an interval probed by a golden-section step


class LearningRateMethod(enum.Enum):
    """How the bracket around the minimum is shrunk."""

    GOLDEN_SECTION = "GoldenSection"
    BRENT_METHOD = "BrentMethod"

    @classmethod
    def parse(cls, value: Union[str, LearningRateMethod]) -> LearningRateMethod:
        """Accept a member, its value ("BrentMethod") or its name ("BRENT_METHOD")."""
        if isinstance(value, cls):
            return value
        for member in cls:
            if value in (member.value, member.name):
                return member
        raise ConfigurationError(f"Unknown learning rate method {value!r}. Choose one of {[m.value for m in cls]}")


@dataclass(frozen=True)
class LinePoint:
    """A trial step along the direction and the loss it produces."""

    learning_rate: float
    loss: float


@dataclass(frozen=True)
class LineSearchResult:
    """The chosen step size, the loss at that step, and the number of loss evaluations spent."""

    learning_rate: float
    loss: float
    evaluations: int

    @property
    def moved(self) -> bool:
        """Whether the search found a step that decreases the loss."""
        return self.learning_rate > 0


Triplet = tuple[LinePoint, LinePoint, LinePoint]


class _Ray:
    """Evaluates the loss along `parameters + eta * direction` and remembers the best point."""

    def __init__(
        self,
        loss_index: LossIndex,
        parameters: np.ndarray,
        direction: np.ndarray,
        loss: float,
        stop_requested: Optional[Callable[[], bool]],
    ) -> None:
        self.loss_index = loss_index
        self.parameters = parameters
        self.direction = direction
        self.origin = LinePoint(learning_rate=0.0, loss=loss)
        self.best = self.origin
        self.evaluations = 0
        self.stop_requested = stop_requested
        self.stopped = False

    def evaluate(self, learning_rate: float) -> LinePoint:
        loss = self.loss_index.calculate_loss_at(self.parameters + learning_rate * self.direction)
        self.evaluations += 1
        # A non-finite trial is treated as an infinitely bad step
        point = LinePoint(learning_rate=learning_rate, loss=loss if np.isfinite(loss) else math.inf)
        if point.loss < self.best.loss:
            self.best = point
        return point

    def should_stop(self) -> bool:
        if not self.stopped and self.stop_requested is not None and self.stop_requested():
            self.stopped = True
        return self.stopped


class LearningRateAlgorithm:
    """Finds a step size that approximately minimizes the loss along a descent direction.

    Args:
        method: bracket refinement strategy.
        learning_rate_tolerance: refinement stops once the bracket is narrower than this fraction
            of the initial learning rate.
        maximum_iterations: cap on refinement iterations.
        maximum_expansions: cap on bracket expansions (or contractions, when the initial step
            already increases the loss).
    """

    def __init__(
        self,
        method: Union[str, LearningRateMethod] = LearningRateMethod.BRENT_METHOD,
        learning_rate_tolerance: float = 1e-6,
        maximum_iterations: int = 100,
        maximum_expansions: int = 50,
    ) -> None:
        """Initialize the algorithm."""
        self.method = LearningRateMethod.parse(method)
        self.learning_rate_tolerance = learning_rate_tolerance
        self.maximum_iterations = maximum_iterations
        self.maximum_expansions = maximum_expansions

    def check(self) -> None:
        """Raise ConfigurationError if a hyperparameter is out of range."""
        if not (np.isfinite(self.learning_rate_tolerance) and 0 < self.learning_rate_tolerance < 1):
            raise ConfigurationError(f"learning_rate_tolerance must be in (0, 1), got {self.learning_rate_tolerance}")
        for name in ("maximum_iterations", "maximum_expansions"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

    def get_hyperparameters(self) -> dict[str, Any]:
        """Return the tunable hyperparameters as a plain dict."""
        return {
            "method": self.method.value,
            "learning_rate_tolerance": self.learning_rate_tolerance,
            "maximum_iterations": self.maximum_iterations,
            "maximum_expansions": self.maximum_expansions,
        }

    def set_hyperparameters(self, hyperparameters: Mapping[str, Any]) -> None:
        """Update hyperparameters from a dict produced by `get_hyperparameters()`.

        A rejected update raises ConfigurationError and leaves every hyperparameter unchanged.
        """
        unknown = set(hyperparameters) - set(self.get_hyperparameters())
        if unknown:
            raise ConfigurationError(f"Unknown learning rate algorithm hyperparameters: {sorted(unknown)}")
        previous = self.get_hyperparameters()
        try:
            self._assign(hyperparameters)
            self.check()
        except (TypeError, ValueError) as e:
            self._assign(previous)
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid learning rate algorithm hyperparameters: {e}") from e

    def _assign(self, hyperparameters: Mapping[str, Any]) -> None:
        for name, value in hyperparameters.items():
            setattr(self, name, LearningRateMethod.parse(value) if name == "method" else value)

    def calculate_directional_point(
        self,
        loss_index: LossIndex,
        parameters: np.ndarray,
        loss: float,
        direction: np.ndarray,
        initial_learning_rate: float,
        stop_requested: Optional[Callable[[], bool]] = None,
    ) -> LineSearchResult:
        """Search along `direction` from `parameters`, whose loss is `loss`.

        `direction` should be a descent direction. The loss index's current parameters are left
        untouched; the caller applies the returned step. `stop_requested` is polled before every
        trial evaluation and ends the search early, keeping the best point found so far.
        """
        if not (np.isfinite(initial_learning_rate) and initial_learning_rate > 0):
            raise ValueError(f"initial_learning_rate must be positive and finite, got {initial_learning_rate}")

        ray = _Ray(loss_index, parameters, direction, loss, stop_requested)
        triplet = self._bracket_minimum(ray, initial_learning_rate)
        if triplet is not None:
            self._refine(ray, triplet, tolerance=self.learning_rate_tolerance * initial_learning_rate)

        return LineSearchResult(
            learning_rate=ray.best.learning_rate,
            loss=ray.best.loss,
            evaluations=ray.evaluations,
        )

    def _bracket_minimum(self, ray: _Ray, initial_learning_rate: float) -> Optional[Triplet]:
        """Find a < u < b with loss(u) < loss(a) and loss(u) <= loss(b), or None."""
        if ray.should_stop():
            return None
        a = ray.origin
        b = ray.evaluate(initial_learning_rate)

        if b.loss < a.loss:
            # Downhill: walk outwards with golden-ratio growth until the loss turns up
            u = b
            for _ in range(self.maximum_expansions):
                if ray.should_stop():
                    return None
                b = ray.evaluate(u.learning_rate + GOLDEN_RATIO * (u.learning_rate - a.learning_rate))
                if b.loss >= u.loss:
                    return a, u, b
                a, u = u, b
            return None

        # The first trial overshot: contract towards the origin until the loss drops below it
        minimum_learning_rate = self.learning_rate_tolerance * initial_learning_rate
        for _ in range(self.maximum_expansions):
            if ray.should_stop() or b.learning_rate < minimum_learning_rate:
                return None
            u = ray.evaluate(GOLDEN_SECTION * b.learning_rate)
            if u.loss < a.loss:
                return a, u, b
            b = u
        return None

    def _refine(self, ray: _Ray, triplet: Triplet, tolerance: float) -> None:
        a, u, b = triplet
        width_last = width_before_last = math.inf

        for _ in range(self.maximum_iterations):
            width = b.learning_rate - a.learning_rate
            if width <= tolerance or ray.should_stop():
                break

            learning_rate = None
            # Interpolate only while the bracket keeps halving every other iteration
            if self.method is LearningRateMethod.BRENT_METHOD and width <= 0.5 * width_before_last:
                learning_rate = _parabola_minimum(a, u, b)
                if learning_rate is not None and (
                    not a.learning_rate < learning_rate < b.learning_rate
                    or abs(learning_rate - u.learning_rate) < 0.5 * tolerance
                ):
                    learning_rate = None
            if learning_rate is None:
                if u.learning_rate - a.learning_rate > b.learning_rate - u.learning_rate:
                    learning_rate = u.learning_rate - GOLDEN_SECTION * (u.learning_rate - a.learning_rate)
                else:
                    learning_rate = u.learning_rate + GOLDEN_SECTION * (b.learning_rate - u.learning_rate)

            a, u, b = _shrink(a, u, b, ray.evaluate(learning_rate))
            width_before_last, width_last = width_last, width


def _parabola_minimum(a: LinePoint, u: LinePoint, b: LinePoint) -> Optional[float]:
    """Vertex of the parabola through three points, or None if they are collinear."""
    p = (u.learning_rate - a.learning_rate) * (u.loss - b.loss)
    q = (u.learning_rate - b.learning_rate) * (u.loss - a.loss)
    numerator = (u.learning_rate - a.learning_rate) * p - (u.learning_rate - b.learning_rate) * q
    denominator = p - q
    if denominator == 0 or not np.isfinite(numerator) or not np.isfinite(denominator):
        return None
    return u.learning_rate - 0.5 * numerator / denominator


def _shrink(a: LinePoint, u: LinePoint, b: LinePoint, v: LinePoint) -> Triplet:
    """Replace one end of the bracket using a new interior point `v`."""
    if v.loss < u.loss:
        if v.learning_rate < u.learning_rate:
            return a, v, u
        return u, v, b
    if v.learning_rate < u.learning_rate:
        return v, u, b
    return a, u, v
