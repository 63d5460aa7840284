"""Exceptions raised by the optimization core."""


class ConfigurationError(ValueError):
    """An optimizer was configured in a way that prevents training from starting.

    Raised before any epoch runs: a missing loss index, an empty parameter vector, malformed
    stopping criteria or hyperparameters, or a hyperparameter document that cannot be parsed.
    """
