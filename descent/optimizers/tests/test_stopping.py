"""Unit tests for stopping.py."""

import math
import unittest

from descent.errors import ConfigurationError
from descent.optimizers.stopping import StoppingCriteriaConfig, StoppingReason, evaluate_stopping_criteria


def _evaluate(config: StoppingCriteriaConfig, **overrides) -> StoppingReason:
    kwargs = dict(
        loss=1.0,
        previous_loss=2.0,
        gradient_norm=1.0,
        epoch=1,
        elapsed_time=0.0,
        selection_failures=0,
        config=config,
    )
    kwargs.update(overrides)
    return evaluate_stopping_criteria(**kwargs)


class TestEvaluateStoppingCriteria(unittest.TestCase):
    """Unit tests for evaluate_stopping_criteria()."""

    def setUp(self) -> None:
        self.permissive = StoppingCriteriaConfig.permissive()

    def test_permissive_never_fires(self) -> None:
        """Test that no criterion fires when every threshold is at its most permissive."""
        self.assertIsNone(_evaluate(self.permissive))
        self.assertIsNone(_evaluate(self.permissive, loss=-1e300, previous_loss=-1e300, gradient_norm=0.0))
        self.assertIsNone(_evaluate(self.permissive, epoch=10**9, elapsed_time=1e9, selection_failures=10**9))

    def test_loss_goal_wins(self) -> None:
        """Test that the loss goal fires whenever loss <= goal, regardless of the other fields."""
        config = StoppingCriteriaConfig(
            loss_goal=0.5,
            minimum_loss_decrease=10.0,
            gradient_norm_goal=10.0,
            maximum_epochs=0,
            maximum_time=0.0,
            maximum_selection_failures=0,
        )
        for loss in (0.5, 0.0, -3.0):
            self.assertIs(_evaluate(config, loss=loss, previous_loss=loss), StoppingReason.LOSS_GOAL_REACHED)
        self.assertIsNot(_evaluate(config, loss=0.51), StoppingReason.LOSS_GOAL_REACHED)

    def test_priority_order(self) -> None:
        """Test that the first matching criterion wins."""
        config = self.permissive.replace(
            minimum_loss_decrease=0.5,
            gradient_norm_goal=0.1,
            maximum_epochs=5,
            maximum_time=10.0,
            maximum_selection_failures=3,
        )
        everything = dict(
            previous_loss=1.2, gradient_norm=0.01, epoch=5, elapsed_time=11.0, selection_failures=3
        )
        self.assertIs(_evaluate(config, **everything), StoppingReason.MINIMUM_LOSS_DECREASE)
        everything["previous_loss"] = 2.0
        self.assertIs(_evaluate(config, **everything), StoppingReason.GRADIENT_NORM_GOAL)
        everything["gradient_norm"] = 1.0
        self.assertIs(_evaluate(config, **everything), StoppingReason.MAXIMUM_EPOCHS_REACHED)
        everything["epoch"] = 4
        self.assertIs(_evaluate(config, **everything), StoppingReason.MAXIMUM_TIME_REACHED)
        everything["elapsed_time"] = 1.0
        self.assertIs(_evaluate(config, **everything), StoppingReason.MAXIMUM_SELECTION_FAILURES)
        everything["selection_failures"] = 2
        self.assertIsNone(_evaluate(config, **everything))

    def test_minimum_loss_decrease_skips_first_epoch(self) -> None:
        """Test that the minimum loss decrease is only checked after the first epoch."""
        config = self.permissive.replace(minimum_loss_decrease=1.0)
        self.assertIsNone(_evaluate(config, loss=1.0, previous_loss=1.0, epoch=0))
        self.assertIs(_evaluate(config, loss=1.0, previous_loss=1.0, epoch=1), StoppingReason.MINIMUM_LOSS_DECREASE)

    def test_maximum_epochs_zero(self) -> None:
        """Test that maximum_epochs=0 fires before the first epoch."""
        config = self.permissive.replace(maximum_epochs=0)
        self.assertIs(_evaluate(config, epoch=0), StoppingReason.MAXIMUM_EPOCHS_REACHED)


class TestStoppingCriteriaConfig(unittest.TestCase):
    """Unit tests for StoppingCriteriaConfig."""

    def test_defaults_are_valid(self) -> None:
        """Test that the default and permissive configs validate."""
        StoppingCriteriaConfig().validate()
        StoppingCriteriaConfig.permissive().validate()
        self.assertEqual(StoppingCriteriaConfig().loss_goal, 0.0)

    def test_immutable(self) -> None:
        """Test that a config can't be mutated, only replaced."""
        config = StoppingCriteriaConfig()
        with self.assertRaises(AttributeError):
            config.maximum_epochs = 3  # type: ignore[misc]
        self.assertEqual(config.replace(maximum_epochs=3).maximum_epochs, 3)
        self.assertEqual(config.maximum_epochs, 1000)

    def test_validate_rejects_malformed(self) -> None:
        """Test that malformed or contradictory criteria are rejected."""
        malformed = [
            dict(loss_goal=math.nan),
            dict(loss_goal=math.inf),
            dict(gradient_norm_goal="small"),
            dict(maximum_epochs=-1),
            dict(maximum_epochs=1.5),
            dict(maximum_epochs=True),
            dict(maximum_time=-1.0),
            dict(maximum_selection_failures=-2),
        ]
        for changes in malformed:
            with self.assertRaises(ConfigurationError, msg=str(changes)):
                StoppingCriteriaConfig(**changes).validate()

    def test_dict_roundtrip(self) -> None:
        """Test that every field survives to_dict() and from_dict()."""
        config = StoppingCriteriaConfig(
            loss_goal=1e-3,
            minimum_loss_decrease=1e-9,
            gradient_norm_goal=1e-4,
            maximum_epochs=77,
            maximum_time=12.5,
            maximum_selection_failures=4,
        )
        self.assertEqual(StoppingCriteriaConfig.from_dict(config.to_dict()), config)

    def test_from_dict_partial_and_unknown(self) -> None:
        """Test that missing fields keep their defaults and unknown fields are rejected."""
        config = StoppingCriteriaConfig.from_dict({"maximum_epochs": 5})
        self.assertEqual(config, StoppingCriteriaConfig(maximum_epochs=5))
        with self.assertRaises(ConfigurationError):
            StoppingCriteriaConfig.from_dict({"maximum_epoch": 5})
        with self.assertRaises(ConfigurationError):
            StoppingCriteriaConfig.from_dict({"maximum_time": -5.0})


class TestStoppingReason(unittest.TestCase):
    """Unit tests for StoppingReason."""

    def test_fatal(self) -> None:
        """Test that only non-finite values are fatal, and that every reason is described."""
        for reason in StoppingReason:
            self.assertEqual(reason.is_fatal, reason is StoppingReason.NON_FINITE_VALUES)
            self.assertTrue(reason.description)
