"""Adaptive embedded Runge-Kutta 2(3) integrator (RK23).

Implements a three-stage embedded pair with a 2nd-order solution for
propagation and a 3rd-order companion used only for the local error
estimate. A fourth stage, evaluated at the accepted 2nd-order state, both
closes the error estimate and becomes the first stage of the next step
(First-Same-As-Last, FSAL), so an accepted step costs three new rate
evaluations.

Stages for a step of size *h* from ``(t, u)``:

.. math::

    s_2 &= f(u + \\tfrac{h}{2} s_1,\\ t + \\tfrac{h}{2}) \\\\
    s_3 &= f(u + \\tfrac{3h}{4} s_2,\\ t + \\tfrac{3h}{4}) \\\\
    u^{(2)} &= u + \\tfrac{h}{9}(2 s_1 + 3 s_2 + 4 s_3) \\\\
    s_4 &= f(u^{(2)},\\ t + h) \\\\
    e &= h\\left(-\\tfrac{5}{72} s_1 + \\tfrac{1}{12} s_2
        + \\tfrac{1}{9} s_3 - \\tfrac{1}{8} s_4\\right)

A step is accepted when :math:`\\|e\\|_\\infty < \\text{tol}(1 + \\|u\\|_\\infty)`.
Whether accepted or not, the next trial step is scaled by
:math:`q = \\min(0.8\\,(\\text{maxerr}/E)^{1/3},\\ 4)` and clipped so it never
steps past the end of the interval.

The whole-interval driver :func:`rk23` runs a Python loop because the number
of output points depends on the data. The single attempt :func:`rk23_step`
is pure and may be used under ``jax.jit``.
"""

from __future__ import annotations

import logging
from typing import Any

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from ivpjax.config import get_dtype
from ivpjax.integrators._fixed import check_tspan
from ivpjax.integrators._state import as_state, inf_norm
from ivpjax.integrators._types import AdaptiveConfig, RateFunction, Rk23Step, Trajectory

logger = logging.getLogger(__name__)

# Order of the propagated solution; step ratios use the exponent 1/(p+1).
_ORDER = 2.0

# Stage nodes
_C2 = 1.0 / 2.0
_C3 = 3.0 / 4.0

# 2nd-order weights (propagated solution)
_B = (2.0 / 9.0, 3.0 / 9.0, 4.0 / 9.0)

# Error weights: difference between the 2nd- and 3rd-order solutions
_E = (-5.0 / 72.0, 1.0 / 12.0, 1.0 / 9.0, -1.0 / 8.0)


def compute_step_scale(
    error: ArrayLike,
    max_error: ArrayLike,
    safety_factor: float,
    max_scale_factor: float,
) -> Array:
    """Compute the ratio between the next and the current trial step.

    .. math::

        q = \\min\\left(S \\left(\\frac{\\text{maxerr}}{E}\\right)^{1/(p+1)},
            q_{\\max}\\right)

    A zero error estimate yields ``max_scale_factor``.

    Args:
        error: Infinity norm of the local error estimate.
        max_error: Acceptance threshold.
        safety_factor: Multiplicative safety factor *S*.
        max_scale_factor: Growth cap :math:`q_{\\max}`.

    Returns:
        jax.Array: Scalar step ratio.
    """
    error = jnp.asarray(error, dtype=get_dtype())
    max_error = jnp.asarray(max_error, dtype=get_dtype())

    exponent = 1.0 / (_ORDER + 1.0)
    safe_error = jnp.where(error > 0.0, error, 1.0)
    raw_scale = jnp.where(
        error > 0.0,
        safety_factor * jnp.power(max_error / safe_error, exponent),
        max_scale_factor,
    )
    return jnp.minimum(raw_scale, max_scale_factor)


def rk23_step(
    rate: RateFunction,
    t: ArrayLike,
    state: ArrayLike,
    dt: ArrayLike,
    params: Any,
    s1: ArrayLike,
    tol: float,
    config: AdaptiveConfig | None = None,
) -> Rk23Step:
    """Attempt one step of the embedded 2(3) pair.

    Args:
        rate: ODE right-hand side ``f(u, p, t) -> du/dt``.
        t: Current time.
        state: Current state (scalar or vector).
        dt: Trial step size.
        params: Parameters passed unchanged to ``rate``.
        s1: Rate at ``(state, t)``. For every step after the first this is
            the ``derivative`` of the previously accepted step.
        tol: Error tolerance.
        config: Controller constants. Uses default :class:`AdaptiveConfig`
            if ``None``.

    Returns:
        Rk23Step: Candidate state, error estimate, acceptance decision,
        proposed next step and the FSAL stage.

    Examples:
        ```python
        from ivpjax.integrators import rk23_step
        rate = lambda u, p, t: -u
        step = rk23_step(rate, 0.0, 1.0, 0.1, None, rate(1.0, None, 0.0), 1e-4)
        bool(step.accepted)  # True
        ```
    """
    if config is None:
        config = AdaptiveConfig()

    dtype = get_dtype()
    t = jnp.asarray(t, dtype=dtype)
    state = jnp.asarray(state, dtype=dtype)
    h = jnp.asarray(dt, dtype=dtype)
    s1 = jnp.asarray(s1, dtype=dtype)

    s2 = rate(state + _C2 * h * s1, params, t + _C2 * h)
    s3 = rate(state + _C3 * h * s2, params, t + _C3 * h)
    state_new = state + h * (_B[0] * s1 + _B[1] * s2 + _B[2] * s3)
    s4 = rate(state_new, params, t + h)

    error_vec = h * (_E[0] * s1 + _E[1] * s2 + _E[2] * s3 + _E[3] * s4)
    error = inf_norm(error_vec)
    max_error = tol * (1.0 + inf_norm(state))

    scale = compute_step_scale(error, max_error, config.safety_factor, config.max_scale_factor)

    return Rk23Step(
        state=state_new.astype(dtype),
        dt_used=h,
        error_estimate=error,
        dt_next=scale * h,
        accepted=error < max_error,
        derivative=jnp.asarray(s4, dtype=dtype),
        max_error=max_error,
    )


def rk23(
    rate: RateFunction,
    u0: ArrayLike,
    tspan,
    params: Any,
    tol: float,
    config: AdaptiveConfig | None = None,
) -> Trajectory:
    """Solve an IVP with the adaptive embedded RK 2(3) method.

    Steps are accepted or rejected based on a mixed absolute/relative error
    test and resized after every attempt. If the trial step becomes too
    small to advance the time in floating point, a warning is logged and
    the trajectory computed so far is returned.

    Args:
        rate: ODE right-hand side ``f(u, p, t) -> du/dt``.
        u0: Initial state (scalar or vector).
        tspan: Pair ``(t0, tf)`` with ``t0 < tf``.
        params: Parameters passed unchanged to ``rate``.
        tol: Error tolerance, must be positive.
        config: Controller constants. Uses default :class:`AdaptiveConfig`
            if ``None``.

    Returns:
        Trajectory: Non-uniformly spaced times and the states there. The
        last time equals ``tf`` unless integration stopped early.

    Raises:
        ValueError: If ``tspan`` is degenerate or ``tol`` is not positive.

    Examples:
        ```python
        import jax.numpy as jnp
        from ivpjax.integrators import rk23
        t, u = rk23(lambda u, p, t: p * u, 1.0, (0.0, 1.0), -2.0, 1e-6)
        u[-1]  # ~exp(-2)
        ```
    """
    t0, tf = check_tspan(tspan)
    if not tol > 0.0:
        raise ValueError(f"Tolerance must be positive, got {tol}")
    if config is None:
        config = AdaptiveConfig()

    dtype = get_dtype()
    t = jnp.asarray(t0, dtype=dtype)
    t_end = jnp.asarray(tf, dtype=dtype)
    u = as_state(u0)
    h = jnp.minimum(
        jnp.asarray(config.initial_step_factor * tol ** (1.0 / 3.0), dtype=dtype),
        t_end - t,
    )
    s1 = rate(u, params, t)

    times = [t]
    states = [u]
    rejected = 0

    while t < t_end:
        if t + h == t:
            logger.warning("Stepsize too small near t=%s", float(t))
            break

        step = rk23_step(rate, t, u, h, params, s1, tol, config)

        if step.accepted:
            t = t + h
            u = step.state
            s1 = step.derivative
            times.append(t)
            states.append(u)
        else:
            rejected += 1

        h = jnp.minimum(step.dt_next, t_end - t)

    logger.debug(
        "rk23 finished at t=%s: %d accepted steps, %d rejected",
        float(t),
        len(times) - 1,
        rejected,
    )
    return Trajectory(times=jnp.stack(times), states=jnp.stack(states))
