"""Nonlinear root finding for implicit integrators.

Provides :func:`levenberg`, a Levenberg-Marquardt iteration with Broyden
Jacobian updates, and the :class:`RootFinder` interface that implicit
methods such as :func:`~ivpjax.integrators.am2` accept.

The iteration solves :math:`F(x) = 0` by taking damped Gauss-Newton steps

.. math::

    s = -\\left(A^T A + \\lambda I\\right)^{-1} A^T F(x)

A step is kept only if it reduces :math:`\\|F\\|`. Accepted steps shrink
:math:`\\lambda` towards Newton's method and update :math:`A` with a rank-one
Broyden correction; rejected steps grow :math:`\\lambda` towards gradient
descent and refresh a stale :math:`A` with ``jax.jacfwd``.

Unknowns may be scalars or arrays of any shape. They are flattened
internally so every case shares one linear-algebra path.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from ivpjax.config import get_dtype

logger = logging.getLogger(__name__)

# Residual norm above which the final iterate is not considered a root.
_FAILURE_RESIDUAL = 1e-3


class ConvergenceError(RuntimeError):
    """Raised when a root finder stops without reaching a root.

    Attributes:
        iterations: Number of iterates produced, including the initial guess.
        residual_norm: 2-norm of the residual at the last iterate.
    """

    def __init__(self, iterations: int, residual_norm: float):
        super().__init__(
            f"Iteration did not find a root: residual norm {residual_norm:.3e} "
            f"after {iterations} iterates"
        )
        self.iterations = iterations
        self.residual_norm = residual_norm


class RootFinder(Protocol):
    """Interface of a nonlinear solver usable by implicit integrators.

    A root finder takes a residual function ``F`` and an initial guess. It
    returns either the stacked iterates, shape ``(k, *x0.shape)``, whose last
    row is the solution, or the solution alone with the shape of ``x0``.
    Failure is signalled by raising.
    """

    def __call__(self, residual: Callable[[Array], Array], x0: ArrayLike) -> Array: ...


def levenberg(
    residual: Callable[[Array], Array],
    x0: ArrayLike,
    tol: float = 1e-12,
    maxiter: int = 40,
) -> Array:
    """Find a root of ``residual`` with the Levenberg-Marquardt method.

    Iteration stops when the last proposed step or the residual has 2-norm
    at most ``tol``, or after ``maxiter`` iterates.

    Args:
        residual: Function ``F(x)`` returning an array of the same shape as
            ``x``.
        x0: Initial guess (scalar or array).
        tol: Stopping tolerance for both the step and the residual norm.
        maxiter: Maximum number of iterates, including ``x0``.

    Returns:
        jax.Array: Iterates stacked along a new leading axis, starting with
        ``x0``. The last row is the root.

    Raises:
        ConvergenceError: If the final residual norm exceeds ``1e-3``.

    Examples:
        ```python
        import jax.numpy as jnp
        from ivpjax.nonlinear import levenberg
        x = levenberg(lambda x: x**2 - 2.0, 1.0)
        x[-1]  # ~sqrt(2)
        ```
    """
    dtype = get_dtype()
    x0 = jnp.asarray(x0, dtype=dtype)
    shape = x0.shape

    def f(x):
        return jnp.ravel(jnp.asarray(residual(x.reshape(shape)), dtype=dtype))

    jacobian = jax.jacfwd(f)

    x = jnp.ravel(x0)
    iterates = [x]
    fk = f(x)
    fk_norm = float(jnp.linalg.norm(fk))
    a = jacobian(x)
    jac_is_new = True
    lam = 10.0
    eye = jnp.eye(x.size, dtype=dtype)
    s_norm = float("inf")

    while s_norm > tol and fk_norm > tol and len(iterates) < maxiter:
        s = -jnp.linalg.solve(a.T @ a + lam * eye, a.T @ fk)
        s_norm = float(jnp.linalg.norm(s))
        x_new = x + s
        f_new = f(x_new)
        f_new_norm = float(jnp.linalg.norm(f_new))

        if f_new_norm < fk_norm:
            y = f_new - fk
            x, fk, fk_norm = x_new, f_new, f_new_norm
            iterates.append(x)
            lam = lam / 10.0
            a = a + jnp.outer(y - a @ s, s) / jnp.dot(s, s)
            jac_is_new = False
        else:
            lam = lam * 4.0
            if not jac_is_new:
                a = jacobian(x)
                jac_is_new = True

    if fk_norm > _FAILURE_RESIDUAL:
        raise ConvergenceError(len(iterates), fk_norm)

    logger.debug("levenberg: %d iterates, residual norm %.3e", len(iterates), fk_norm)
    return jnp.stack(iterates).reshape((len(iterates), *shape))
