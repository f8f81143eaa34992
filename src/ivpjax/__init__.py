"""
ivpjax is a small library of initial-value problem integrators implemented in JAX.
"""

from .config import set_dtype, get_dtype

from .integrators import (
    AdaptiveConfig,
    Trajectory,
    Rk23Step,
    euler,
    improved_euler,
    ie2,
    rk4,
    rk23,
    ab4,
    am2,
)

from .nonlinear import (
    ConvergenceError,
    RootFinder,
    levenberg,
)
