"""Optimizers, and the line search, inverse Hessian and conjugate direction machinery they use."""

from .stopping import StoppingCriteriaConfig, StoppingReason, evaluate_stopping_criteria
from .results import IterationState, TrainingResults, TrainingState
from .line_search import LearningRateAlgorithm, LearningRateMethod, LineSearchResult
from .inverse_hessian import (
    InverseHessianApproximationMethod,
    InverseHessianApproximator,
    calculate_bfgs_inverse_hessian,
    calculate_dfp_inverse_hessian,
)
from .conjugate_direction import (
    ConjugateDirectionUpdater,
    TrainingDirectionMethod,
    calculate_fr_parameter,
    calculate_pr_parameter,
)
from .base import Optimizer, run_training
from .sgd import StochasticGradientDescent
from .conjugate_gradient import ConjugateGradient
from .quasi_newton import QuasiNewtonMethod
from .registry import OPTIMIZERS, load_optimizer, optimizer_from_dict
