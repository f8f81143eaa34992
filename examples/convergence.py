# /// script
# requires-python = ">=3.11"
# dependencies = ["typer>=0.9.0", "ivpjax"]
#
# [tool.uv.sources]
# ivpjax = { path = ".." }
# ///
"""Compare the accuracy of the ivpjax integrators on a linear test problem.

Solves ``u' = lam * u``, ``u(0) = 1`` over ``[0, T]`` with each fixed-step
method for a sequence of step counts, printing the endpoint error against
the exact solution ``exp(lam * T)`` and the observed convergence order.
Then runs the adaptive ``rk23`` method for a sequence of tolerances and
reports the number of accepted steps.

Requires ivpjax to be installed (``uv pip install -e .`` from the repo root).

Usage:
    uv run examples/convergence.py [OPTIONS]

Examples:
    # Default problem (lam = -1, T = 1)
    uv run examples/convergence.py

    # Faster decay, more refinements
    uv run examples/convergence.py --lam -4 --refinements 6

    # Print rk23 step-size diagnostics
    uv run examples/convergence.py --verbose
"""

import logging
import math
import time
from typing import Annotated

import jax.numpy as jnp
import typer

from ivpjax import ab4, am2, euler, improved_euler, rk4, rk23, set_dtype

METHODS = {
    "euler": euler,
    "ie2": improved_euler,
    "rk4": rk4,
    "ab4": ab4,
    "am2": am2,
}


def linear(u, p, t):
    return p * u


def main(
    lam: Annotated[float, typer.Option(help="Decay rate in u' = lam * u")] = -1.0,
    final_time: Annotated[float, typer.Option(help="End of the time interval")] = 1.0,
    steps: Annotated[int, typer.Option(help="Step count of the coarsest grid")] = 10,
    refinements: Annotated[int, typer.Option(help="Number of step-count doublings")] = 4,
    verbose: Annotated[bool, typer.Option(help="Log rk23 diagnostics")] = False,
):
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    set_dtype(jnp.float64)

    exact = math.exp(lam * final_time)
    tspan = (0.0, final_time)
    print(f"Problem: u' = {lam} u, u(0) = 1 on {tspan}, exact u(T) = {exact:.12f}\n")

    print(f"{'method':>8} {'n':>6} {'error':>12} {'order':>7}")
    for name, method in METHODS.items():
        prev_error = None
        for k in range(refinements + 1):
            n = steps * 2**k
            _, u = method(linear, 1.0, tspan, lam, n)
            error = abs(float(u[-1]) - exact)
            order = "" if prev_error is None or error == 0.0 else f"{math.log2(prev_error / error):7.2f}"
            print(f"{name:>8} {n:>6} {error:12.3e} {order:>7}")
            prev_error = error
        print()

    print(f"{'tol':>8} {'steps':>6} {'error':>12} {'time':>8}")
    for tol in (1e-2, 1e-4, 1e-6, 1e-8):
        t_start = time.perf_counter()
        t, u = rk23(linear, 1.0, tspan, lam, tol)
        elapsed = time.perf_counter() - t_start
        error = abs(float(u[-1]) - exact)
        print(f"{tol:8.0e} {t.shape[0] - 1:>6} {error:12.3e} {elapsed:7.2f}s")

    print("\nDone.")


if __name__ == "__main__":
    typer.run(main)
