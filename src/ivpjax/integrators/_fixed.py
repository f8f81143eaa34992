"""Shared time discretization for fixed-step integrators.

Every fixed-step method (Euler, Improved Euler, RK4, AB4, AM2) works on the
same uniform grid ``t_i = t0 + i*h`` with ``h = (tf - t0)/n``. This module
builds that grid, validates the interval and step count, and marches a
one-step formula across the grid with ``jax.lax.scan``.
"""

from __future__ import annotations

import operator
from collections.abc import Callable
from typing import Any

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from ivpjax.config import get_dtype
from ivpjax.integrators._state import as_state
from ivpjax.integrators._types import RateFunction, Trajectory

StepFunction = Callable[[RateFunction, ArrayLike, ArrayLike, ArrayLike, Any], Array]


def check_tspan(tspan) -> tuple[float, float]:
    """Unpack ``(t0, tf)`` and check that the interval is non-degenerate.

    Args:
        tspan: Pair ``(t0, tf)``. Both ends must be concrete numbers.

    Returns:
        tuple[float, float]: ``(t0, tf)`` as Python floats.

    Raises:
        ValueError: If ``tspan`` is not a pair or ``tf <= t0``.
    """
    try:
        t0, tf = tspan
    except (TypeError, ValueError) as exc:
        raise ValueError(f"tspan must be a pair (t0, tf), got {tspan!r}") from exc
    t0, tf = float(t0), float(tf)
    if not tf > t0:
        raise ValueError(f"tspan must satisfy t0 < tf, got ({t0}, {tf})")
    return t0, tf


def check_steps(n, minimum: int = 1) -> int:
    """Check that the step count is an integer no smaller than ``minimum``.

    Raises:
        ValueError: If ``n`` is not an integer or is below ``minimum``.
    """
    try:
        n = operator.index(n)
    except TypeError as exc:
        raise ValueError(f"Number of steps must be an integer, got {n!r}") from exc
    if n < minimum:
        raise ValueError(f"Number of steps must be at least {minimum}, got {n}")
    return n


def time_grid(tspan, n: int) -> tuple[Array, Array]:
    """Build the uniform time grid for ``n`` steps over ``tspan``.

    Args:
        tspan: Pair ``(t0, tf)`` with ``t0 < tf``.
        n: Number of steps (positive integer).

    Returns:
        tuple[jax.Array, jax.Array]: ``(times, h)`` where ``times`` has
        ``n + 1`` entries ``t0 + i*h`` and ``h = (tf - t0)/n``.

    Raises:
        ValueError: If the interval is degenerate or ``n < 1``.

    Examples:
        ```python
        from ivpjax.integrators import time_grid
        t, h = time_grid((0.0, 1.0), 4)
        t  # [0.0, 0.25, 0.5, 0.75, 1.0]
        ```
    """
    t0, tf = check_tspan(tspan)
    n = check_steps(n)
    dtype = get_dtype()

    h = jnp.asarray((tf - t0) / n, dtype=dtype)
    times = jnp.asarray(t0, dtype=dtype) + jnp.arange(n + 1, dtype=dtype) * h
    return times, h


def integrate_fixed(
    step: StepFunction,
    rate: RateFunction,
    u0: ArrayLike,
    tspan,
    params: Any,
    n: int,
) -> Trajectory:
    """March a one-step formula across the uniform grid.

    Args:
        step: Step function ``step(rate, t, state, dt, params) -> new_state``.
        rate: ODE right-hand side ``f(u, p, t) -> du/dt``.
        u0: Initial state (scalar or vector).
        tspan: Pair ``(t0, tf)``.
        params: Parameters passed unchanged to ``rate``.
        n: Number of steps.

    Returns:
        Trajectory: ``n + 1`` times and states.
    """
    times, h = time_grid(tspan, n)
    u0 = as_state(u0)

    def body(u, t):
        u_next = step(rate, t, u, h, params).astype(u.dtype)
        return u_next, u_next

    _, states = jax.lax.scan(body, u0, times[:-1])
    return Trajectory(times=times, states=jnp.concatenate([u0[None], states]))
