"""Type definitions for numerical integrators.

Provides the core data types used across all integrator implementations:

- :class:`Trajectory`: Output of every whole-interval integrator, holding the
  time points and the state at each of them.
- :class:`Rk23Step`: Output of a single adaptive ``rk23`` attempt, which also
  reports the acceptance decision and the FSAL stage for the next step.
- :class:`AdaptiveConfig`: Step-size controller constants for ``rk23``.

All types are :class:`~typing.NamedTuple` instances, which JAX treats as
pytrees automatically. This means they work seamlessly with ``jax.jit``,
``jax.vmap``, and ``jax.lax`` control flow primitives.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, NamedTuple

from jax import Array
from jax.typing import ArrayLike

RateFunction = Callable[[ArrayLike, Any, ArrayLike], Array]
"""ODE right-hand side ``f(state, params, t) -> du/dt``."""


class Trajectory(NamedTuple):
    """Time points and states produced by an integrator.

    Unpacks like a pair, so ``t, u = rk4(...)`` works.

    Attributes:
        times: Time points, shape ``(m,)``, strictly increasing, with
            ``times[0] == t0``.
        states: States at each time point, shape ``(m, *u0.shape)``, with
            ``states[0] == u0``.
    """

    times: Array
    states: Array


class Rk23Step(NamedTuple):
    """Result of one trial step of the embedded 2(3) pair.

    Attributes:
        state: Second-order candidate state at ``t + dt_used``.
        dt_used: Trial step size ``h``.
        error_estimate: Infinity norm of the local error estimate.
        dt_next: Controller's proposal ``q * h`` for the next trial step,
            before it is clipped to the end of the interval.
        accepted: ``True`` if ``error_estimate < max_error``.
        derivative: Rate at the candidate state. Becomes the first stage of
            the next step when this one is accepted.
        max_error: Acceptance threshold ``tol * (1 + ||u||_inf)``.
    """

    state: Array
    dt_used: Array
    error_estimate: Array
    dt_next: Array
    accepted: Array
    derivative: Array
    max_error: Array


class AdaptiveConfig(NamedTuple):
    """Step-size controller constants for ``rk23``.

    The defaults reproduce the classic controller for the 2(3) pair.

    Attributes:
        safety_factor: Multiplier applied to the optimal step ratio
            ``(max_error / error) ** (1/3)``.
        max_scale_factor: Largest allowed growth ratio ``dt_next / dt_used``.
        initial_step_factor: The first trial step is
            ``initial_step_factor * tol ** (1/3)``.
    """

    safety_factor: float = 0.8
    max_scale_factor: float = 4.0
    initial_step_factor: float = 0.5
