"""Forward Euler integrator.

The simplest explicit one-step method:

.. math::

    u_{i+1} = u_i + h f(u_i, p, t_i)

It is 1st-order accurate: the local truncation error is :math:`O(h^2)` and
the global error is :math:`O(h)`.
"""

from __future__ import annotations

from typing import Any

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from ivpjax.config import get_dtype
from ivpjax.integrators._fixed import integrate_fixed
from ivpjax.integrators._types import RateFunction, Trajectory


def euler_step(
    rate: RateFunction,
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
    params: Any = None,
) -> Array:
    """Perform a single forward Euler step.

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

    return state + dt * rate(state, params, t)


def euler(
    rate: RateFunction,
    u0: ArrayLike,
    tspan,
    params: Any,
    n: int,
) -> Trajectory:
    """Solve an IVP with Euler's method on ``n`` uniform steps.

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

    Examples:
        ```python
        import jax.numpy as jnp
        from ivpjax.integrators import euler
        t, u = euler(lambda u, p, t: -u, 1.0, (0.0, 1.0), None, 100)
        u[-1]  # ~exp(-1)
        ```
    """
    return integrate_fixed(euler_step, rate, u0, tspan, params, n)
