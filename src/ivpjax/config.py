"""Float precision shared by all integrators.

Every array an integrator creates (grids, states, step sizes) uses the
dtype returned by ``get_dtype``. It starts as ``jnp.float32``. Passing
``jnp.float64`` to ``set_dtype`` also switches on ``jax_enable_x64``, since
JAX silently truncates to 32 bits otherwise.

The dtype is read while a function is traced, so a jitted integrator keeps
the precision that was active when it was first compiled. Pick the dtype
at startup.

Tolerances near machine epsilon, such as ``rk23`` with ``tol`` below about
``1e-6`` or the default ``levenberg`` tolerance, need ``float64``.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

_VALID_DTYPES = (jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64)

_dtype = jnp.float32


def set_dtype(dtype) -> None:
    """Choose the float dtype used by every integrator.

    Eager calls pick up the new dtype on their next run. Already compiled
    functions do not. Choosing ``jnp.float64`` turns on ``jax_enable_x64``.

    Args:
        dtype: One of ``jnp.float16``, ``jnp.bfloat16``, ``jnp.float32``,
            or ``jnp.float64``.

    Raises:
        ValueError: If *dtype* is not a supported float type.
    """
    global _dtype
    if dtype not in _VALID_DTYPES:
        raise ValueError(
            f"Unsupported dtype {dtype}. Must be one of: "
            f"jnp.float16, jnp.bfloat16, jnp.float32, jnp.float64"
        )
    if dtype == jnp.float64:
        jax.config.update("jax_enable_x64", True)
    _dtype = dtype


def get_dtype():
    """Return the float dtype integrators currently build arrays with."""
    return _dtype
