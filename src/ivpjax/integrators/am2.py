"""Adams-Moulton 2nd-order integrator (AM2, implicit trapezoid rule).

.. math::

    u_{i+1} = u_i + \\frac{h}{2}\\left(f(u_i, p, t_i)
        + f(u_{i+1}, p, t_{i+1})\\right)

The new value appears on both sides, so every step solves the nonlinear
equation

.. math::

    F(z) = z - \\frac{h}{2} f(z, p, t_{i+1}) - \\left(u_i
        + \\frac{h}{2} f(u_i, p, t_i)\\right) = 0

with a root finder seeded at the known part. The global error is
:math:`O(h^2)`. The method runs a Python loop because each step calls the
root finder, so it is not ``jax.jit``-compatible as a whole.
"""

from __future__ import annotations

from typing import Any

import jax.numpy as jnp
from jax.typing import ArrayLike

from ivpjax.integrators._fixed import time_grid
from ivpjax.integrators._state import as_state
from ivpjax.integrators._types import RateFunction, Trajectory
from ivpjax.nonlinear import RootFinder, levenberg


def am2(
    rate: RateFunction,
    u0: ArrayLike,
    tspan,
    params: Any,
    n: int,
    solver: RootFinder = levenberg,
) -> Trajectory:
    """Solve an IVP with the Adams-Moulton 2 method on ``n`` uniform steps.

    Args:
        rate: ODE right-hand side ``f(u, p, t) -> du/dt``. Must be
            differentiable with ``jax.jacfwd`` when the default solver is
            used.
        u0: Initial state (scalar or vector).
        tspan: Pair ``(t0, tf)`` with ``t0 < tf``.
        params: Parameters passed unchanged to ``rate``.
        n: Number of steps.
        solver: Root finder called as ``solver(F, guess)``. It may return
            its iterates stacked along a leading axis, in which case the
            last one is taken, or just the final solution.

    Returns:
        Trajectory: ``n + 1`` uniformly spaced times and the states there.

    Raises:
        ValueError: If ``tspan`` is degenerate or ``n < 1``.
        ConvergenceError: If the default solver fails on some step. Errors
            raised by a custom ``solver`` propagate unchanged.

    Examples:
        ```python
        from ivpjax.integrators import am2
        t, u = am2(lambda u, p, t: p * u, 1.0, (0.0, 1.0), -1.0, 50)
        u[-1]  # ~exp(-1)
        ```
    """
    times, h = time_grid(tspan, n)
    half_h = 0.5 * h
    u = as_state(u0)
    states = [u]

    for i in range(len(times) - 1):
        known = u + half_h * rate(u, params, times[i])
        t_next = times[i + 1]

        def residual(z):
            return z - half_h * rate(z, params, t_next) - known

        root = jnp.asarray(solver(residual, known), dtype=u.dtype)
        u = root if root.ndim == known.ndim else root[-1]
        states.append(u)

    return Trajectory(times=times, states=jnp.stack(states))
