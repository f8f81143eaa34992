"""Adams-Bashforth 4-step integrator (AB4).

An explicit linear multistep method that reuses the rate evaluated at the
four most recent grid points:

.. math::

    u_{i+1} = u_i + \\frac{h}{24}\\left(55 f_i - 59 f_{i-1}
        + 37 f_{i-2} - 9 f_{i-3}\\right)

Only one new rate evaluation is needed per step. The method is not
self-starting: the first three steps are taken with :func:`rk4` on the same
grid spacing, which keeps the starting values 4th-order accurate. The
global error is :math:`O(h^4)`.
"""

from __future__ import annotations

from typing import Any

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from ivpjax.integrators._fixed import check_steps, check_tspan, time_grid
from ivpjax.integrators._types import RateFunction, Trajectory
from ivpjax.integrators.rk4 import rk4

# Number of steps in the method
_K = 4

# Weights for f_i, f_{i-1}, f_{i-2}, f_{i-3} (newest first)
_SIGMA = (55.0 / 24.0, -59.0 / 24.0, 37.0 / 24.0, -9.0 / 24.0)


def ab4(
    rate: RateFunction,
    u0: ArrayLike,
    tspan,
    params: Any,
    n: int,
) -> Trajectory:
    """Solve an IVP with the Adams-Bashforth 4 method on ``n`` uniform steps.

    Compatible with ``jax.jit`` when ``tspan`` and ``n`` are static.

    Args:
        rate: ODE right-hand side ``f(u, p, t) -> du/dt``.
        u0: Initial state (scalar or vector).
        tspan: Pair ``(t0, tf)`` with ``t0 < tf``.
        params: Parameters passed unchanged to ``rate``.
        n: Number of steps. At least 3, the number of RK4 starting steps.

    Returns:
        Trajectory: ``n + 1`` uniformly spaced times and the states there.
        The first four states are exactly those of ``rk4`` over
        ``(t0, t0 + 3h)`` with 3 steps.

    Raises:
        ValueError: If ``tspan`` is degenerate or ``n < 3``.
    """
    t0, tf = check_tspan(tspan)
    n = check_steps(n, minimum=_K - 1)
    times, h = time_grid((t0, tf), n)
    dtype = times.dtype

    # Starting values from RK4 over the first k-1 steps.
    t_start = t0 + (_K - 1) * (tf - t0) / n
    _, u_start = rk4(rate, u0, (t0, t_start), params, _K - 1)

    # Rates at u[k-2], ..., u[0], newest first, plus a trailing slot that is
    # dropped before it is ever weighted.
    history = jnp.stack(
        [jnp.asarray(rate(u_start[i], params, times[i]), dtype=dtype) for i in range(_K - 2, -1, -1)]
    )
    history = jnp.concatenate([history, jnp.zeros_like(history[:1])])
    sigma = jnp.asarray(_SIGMA, dtype=dtype)

    def body(carry, t):
        u, history = carry
        f_new = jnp.asarray(rate(u, params, t), dtype=dtype)
        history = jnp.concatenate([f_new[None], history[:-1]])
        u_next = (u + h * jnp.tensordot(sigma, history, axes=1)).astype(dtype)
        return (u_next, history), u_next

    _, u_rest = jax.lax.scan(body, (u_start[-1], history), times[_K - 1 : -1])
    return Trajectory(times=times, states=jnp.concatenate([u_start, u_rest]))
