"""Classic 4th-order Runge-Kutta integrator (RK4).

Implements the standard four-stage, 4th-order explicit Runge-Kutta method
for numerical integration of ordinary differential equations. This is a
fixed-step method with no adaptive step-size control.

The Butcher tableau for RK4 is:

.. math::

    \\begin{array}{c|cccc}
    0   &     &     &     &   \\\\
    1/2 & 1/2 &     &     &   \\\\
    1/2 &  0  & 1/2 &     &   \\\\
    1   &  0  &  0  &  1  &   \\\\
    \\hline
        & 1/6 & 1/3 & 1/3 & 1/6
    \\end{array}

The method achieves 4th-order accuracy, meaning the local truncation error
is :math:`O(h^5)` and the global error is :math:`O(h^4)`.
"""

from __future__ import annotations

from typing import Any

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from ivpjax.config import get_dtype
from ivpjax.integrators._fixed import integrate_fixed
from ivpjax.integrators._types import RateFunction, Trajectory


def rk4_step(
    rate: RateFunction,
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
    params: Any = None,
) -> Array:
    """Perform a single RK4 integration step.

    Advances the state from time ``t`` to ``t + dt`` using the classic
    4th-order Runge-Kutta method. Compatible with ``jax.jit`` and
    ``jax.vmap``.

    Args:
        rate: ODE right-hand side ``f(u, p, t) -> du/dt``.
        t: Current time.
        state: Current state (scalar or vector).
        dt: Timestep to take. May be negative for backward integration.
        params: Parameters passed unchanged to ``rate``.

    Returns:
        jax.Array: State at ``t + dt``.

    Examples:
        ```python
        import jax.numpy as jnp
        from ivpjax.integrators import rk4_step
        def harmonic(u, p, t):
            return jnp.array([u[1], -u[0]])
        rk4_step(harmonic, 0.0, jnp.array([1.0, 0.0]), 0.01)  # ~[cos(0.01), -sin(0.01)]
        ```
    """
    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    k1 = rate(state, params, t)
    k2 = rate(state + 0.5 * dt * k1, params, t + 0.5 * dt)
    k3 = rate(state + 0.5 * dt * k2, params, t + 0.5 * dt)
    k4 = rate(state + dt * k3, params, t + dt)

    return state + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


def rk4(
    rate: RateFunction,
    u0: ArrayLike,
    tspan,
    params: Any,
    n: int,
) -> Trajectory:
    """Solve an IVP with classical RK4 on ``n`` uniform steps.

    Compatible with ``jax.jit`` when ``tspan`` and ``n`` are static.

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
        from ivpjax.integrators import rk4
        def harmonic(u, p, t):
            return jnp.array([u[1], -p * u[0]])
        t, u = rk4(harmonic, [1.0, 0.0], (0.0, 10.0), 1.0, 1000)
        u[-1]  # ~[cos(10), -sin(10)]
        ```
    """
    return integrate_fixed(rk4_step, rate, u0, tspan, params, n)
