"""Numerical integrators for initial-value problems.

Provides fixed-step one-step methods, an adaptive embedded Runge-Kutta pair,
and linear multistep methods, all implemented in JAX.

Available integrators:

- :func:`euler` -- Forward Euler (fixed step, order 1)
- :func:`improved_euler` / :func:`ie2` -- Improved Euler (fixed step, order 2)
- :func:`rk4` -- Classic 4th-order Runge-Kutta (fixed step)
- :func:`rk23` -- Embedded Runge-Kutta 2(3) (adaptive step)
- :func:`ab4` -- Adams-Bashforth 4 (explicit multistep)
- :func:`am2` -- Adams-Moulton 2 (implicit trapezoid)

All integrators share a common interface::

    times, states = method(rate, u0, tspan, params, n)   # or tol for rk23

where ``rate(u, p, t) -> du/dt`` defines the ODE right-hand side and the
result is a :class:`Trajectory` named tuple. The one-step formulas are also
available as single steps (``euler_step``, ``improved_euler_step``,
``rk4_step``, ``rk23_step``).
"""

from ivpjax.integrators._fixed import time_grid
from ivpjax.integrators._state import as_state, inf_norm
from ivpjax.integrators._types import (
    AdaptiveConfig,
    RateFunction,
    Rk23Step,
    Trajectory,
)
from ivpjax.integrators.ab4 import ab4
from ivpjax.integrators.am2 import am2
from ivpjax.integrators.euler import euler, euler_step
from ivpjax.integrators.ie2 import ie2, improved_euler, improved_euler_step
from ivpjax.integrators.rk4 import rk4, rk4_step
from ivpjax.integrators.rk23 import rk23, rk23_step

__all__ = [
    "AdaptiveConfig",
    "RateFunction",
    "Rk23Step",
    "Trajectory",
    "as_state",
    "inf_norm",
    "time_grid",
    "euler",
    "euler_step",
    "improved_euler",
    "improved_euler_step",
    "ie2",
    "rk4",
    "rk4_step",
    "rk23",
    "rk23_step",
    "ab4",
    "am2",
]
