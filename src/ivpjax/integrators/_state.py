"""State-vector helpers shared by every integrator.

Scalar and vector states share one representation: a ``jax.Array`` of the
module-wide float dtype. Scalars are 0-d arrays, so ``+``, scalar ``*`` and
:func:`inf_norm` work identically for both.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from ivpjax.config import get_dtype


def as_state(u: ArrayLike) -> Array:
    """Cast a scalar or vector state to an array of the configured dtype.

    Args:
        u: Scalar, sequence or array. Integer inputs are promoted.

    Returns:
        jax.Array: The state with dtype ``get_dtype()``.
    """
    return jnp.asarray(u, dtype=get_dtype())


def inf_norm(x: ArrayLike) -> Array:
    """Infinity norm of a state: max absolute component.

    For a 0-d (scalar) state this is the absolute value.

    Args:
        x: Scalar or array.

    Returns:
        jax.Array: Scalar norm.
    """
    return jnp.max(jnp.abs(jnp.asarray(x)))
