"""Improved Euler integrator (explicit midpoint / RK2).

A two-stage, 2nd-order method. A half step with the Euler slope predicts the
midpoint state, and the slope evaluated there advances the full step:

.. math::

    \\tilde u = u_i + \\tfrac{h}{2} f(u_i, p, t_i), \\qquad
    u_{i+1} = u_i + h f(\\tilde u, p, t_i + \\tfrac{h}{2})

The global error is :math:`O(h^2)`.
"""

from __future__ import annotations

from typing import Any

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from ivpjax.config import get_dtype
from ivpjax.integrators._fixed import integrate_fixed
from ivpjax.integrators._types import RateFunction, Trajectory


def improved_euler_step(
    rate: RateFunction,
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
    params: Any = None,
) -> Array:
    """Perform a single Improved Euler step.

    Args:
        rate: ODE right-hand side ``f(u, p, t) -> du/dt``.
        t: Current time.
        state: Current state (scalar or vector).
        dt: Timestep to take.
        params: Parameters passed unchanged to ``rate``.

    Returns:
        jax.Array: State at ``t + dt``.
    """
    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    u_half = state + 0.5 * dt * rate(state, params, t)
    return state + dt * rate(u_half, params, t + 0.5 * dt)


def improved_euler(
    rate: RateFunction,
    u0: ArrayLike,
    tspan,
    params: Any,
    n: int,
) -> Trajectory:
    """Solve an IVP with the Improved Euler method on ``n`` uniform steps.

    Args:
        rate: ODE right-hand side ``f(u, p, t) -> du/dt``.
        u0: Initial state (scalar or vector).
        tspan: Pair ``(t0, tf)`` with ``t0 < tf``.
        params: Parameters passed unchanged to ``rate``.
        n: Number of steps.

    Returns:
        Trajectory: ``n + 1`` uniformly spaced times and the states there.

    Raises:
        ValueError: If ``tspan`` is degenerate or ``n < 1``.
    """
    return integrate_fixed(improved_euler_step, rate, u0, tspan, params, n)


ie2 = improved_euler
