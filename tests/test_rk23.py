"""Tests for the adaptive embedded RK 2(3) integrator."""

import importlib
import logging

import jax.numpy as jnp
import pytest

from ivpjax.integrators import AdaptiveConfig, Rk23Step, rk23, rk23_step
from ivpjax.integrators.rk23 import compute_step_scale

rk23_module = importlib.import_module("ivpjax.integrators.rk23")

_TOL = 1e-8


def _linear_growth(u, p, t):
    """du/dt = p*u. Solution: u(t) = u0 * exp(p*t)."""
    return p * u


def _harmonic_oscillator(u, p, t):
    return jnp.array([u[1], -u[0]])


def _blowup(u, p, t):
    """du/dt = u^2. Solution 1/(1 - t) for u(0) = 1, singular at t = 1."""
    return u**2


# ──────────────────────────────────────────────
# Single attempt
# ──────────────────────────────────────────────

class TestRk23Step:
    def test_constant_rate_has_zero_error(self):
        """The 2nd- and 3rd-order solutions agree for a constant rate."""
        step = rk23_step(lambda u, p, t: jnp.ones_like(u), 0.0, 1.0, 0.1, None, 1.0, 1e-6)
        assert isinstance(step, Rk23Step)
        assert float(step.state) == pytest.approx(1.1)
        assert float(step.error_estimate) == pytest.approx(0.0, abs=1e-15)
        assert bool(step.accepted)

    def test_zero_error_grows_step_by_cap(self):
        step = rk23_step(lambda u, p, t: jnp.zeros_like(u), 0.0, 1.0, 0.1, None, 0.0, 1e-6)
        assert float(step.dt_next) == pytest.approx(0.4)

    def test_threshold_is_mixed_tolerance(self):
        """max_error = tol * (1 + ||u||_inf)."""
        u = jnp.array([3.0, -5.0])
        s1 = _harmonic_oscillator(u, None, 0.0)
        step = rk23_step(_harmonic_oscillator, 0.0, u, 0.1, None, s1, 1e-4)
        assert float(step.max_error) == pytest.approx(1e-4 * 6.0)

    def test_derivative_is_rate_at_new_state(self):
        """The last stage is the rate at the candidate state (FSAL)."""
        step = rk23_step(_linear_growth, 0.0, 1.0, 0.1, -2.0, -2.0, 1e-6)
        assert float(step.derivative) == pytest.approx(-2.0 * float(step.state))

    def test_large_step_rejected(self):
        """A step far too large for the tolerance is rejected and shrunk."""
        step = rk23_step(_linear_growth, 0.0, 1.0, 1.0, -5.0, -5.0, 1e-8)
        assert not bool(step.accepted)
        assert float(step.error_estimate) >= float(step.max_error)
        assert float(step.dt_next) < 1.0

    def test_custom_config(self):
        """AdaptiveConfig overrides the growth cap."""
        config = AdaptiveConfig(max_scale_factor=2.0)
        step = rk23_step(lambda u, p, t: 0.0 * u, 0.0, 1.0, 0.1, None, 0.0, 1e-6, config)
        assert float(step.dt_next) == pytest.approx(0.2)


class TestStepScale:
    def test_optimal_ratio(self):
        """q = 0.8 * (maxerr/E)^(1/3) below the cap."""
        q = compute_step_scale(8.0, 1.0, 0.8, 4.0)
        assert float(q) == pytest.approx(0.4)

    def test_growth_capped(self):
        q = compute_step_scale(1e-12, 1.0, 0.8, 4.0)
        assert float(q) == pytest.approx(4.0)

    def test_zero_error(self):
        q = compute_step_scale(0.0, 1.0, 0.8, 4.0)
        assert float(q) == pytest.approx(4.0)


# ──────────────────────────────────────────────
# Whole-interval integration
# ──────────────────────────────────────────────

class TestRk23:
    def test_exponential_decay(self):
        """rk23 reaches tf and matches the exact solution."""
        t, u = rk23(_linear_growth, 1.0, (0.0, 1.0), -1.0, _TOL)
        assert float(t[-1]) == pytest.approx(1.0, abs=1e-14)
        assert jnp.allclose(u, jnp.exp(-t), atol=1e-5)

    def test_harmonic_oscillator(self):
        t, u = rk23(_harmonic_oscillator, [1.0, 0.0], (0.0, 6.0), None, 1e-6)
        assert float(t[-1]) == pytest.approx(6.0, abs=1e-14)
        expected = jnp.stack([jnp.cos(t), -jnp.sin(t)], axis=1)
        assert jnp.allclose(u, expected, atol=1e-3)

    def test_times_strictly_increasing_and_nonuniform(self):
        t, u = rk23(_harmonic_oscillator, [1.0, 0.0], (0.0, 6.0), None, 1e-6)
        dt = jnp.diff(t)
        assert bool(jnp.all(dt > 0.0))
        assert float(jnp.max(dt) - jnp.min(dt)) > 1e-3
        assert t.shape[0] == u.shape[0]
        assert u.shape[1:] == (2,)

    def test_starts_at_initial_condition(self):
        t, u = rk23(_linear_growth, 3, (0.5, 1.0), 1.0, 1e-6)
        assert float(t[0]) == 0.5
        assert float(u[0]) == 3.0

    def test_tighter_tolerance_takes_more_steps(self):
        t_loose, u_loose = rk23(_linear_growth, 1.0, (0.0, 1.0), -1.0, 1e-4)
        t_tight, u_tight = rk23(_linear_growth, 1.0, (0.0, 1.0), -1.0, 1e-8)
        assert t_tight.shape[0] > t_loose.shape[0]
        err_loose = abs(float(u_loose[-1]) - float(jnp.exp(-1.0)))
        err_tight = abs(float(u_tight[-1]) - float(jnp.exp(-1.0)))
        assert err_tight < err_loose

    def test_accepted_steps_meet_threshold(self, monkeypatch):
        """Every accepted step had an error estimate below its threshold."""
        attempts = []

        def spy(*args, **kwargs):
            step = rk23_step(*args, **kwargs)
            attempts.append(step)
            return step

        monkeypatch.setattr(rk23_module, "rk23_step", spy)
        t, u = rk23(_harmonic_oscillator, [1.0, 0.0], (0.0, 3.0), None, 1e-5)

        accepted = [s for s in attempts if bool(s.accepted)]
        assert len(accepted) == t.shape[0] - 1
        for step in accepted:
            assert float(step.error_estimate) < float(step.max_error)
        for step, u_next in zip(accepted, u[1:]):
            assert jnp.array_equal(step.state, u_next)

    def test_rejected_steps_are_retried(self, monkeypatch):
        """A too-large initial step is rejected before any point is appended."""
        attempts = []

        def spy(*args, **kwargs):
            step = rk23_step(*args, **kwargs)
            attempts.append(step)
            return step

        monkeypatch.setattr(rk23_module, "rk23_step", spy)
        # With tol = 1 the initial trial step 0.5 * tol^(1/3) = 0.5 is far too large.
        t, _ = rk23(_linear_growth, 1.0, (0.0, 1.0), -20.0, 1.0)
        assert not bool(attempts[0].accepted)
        assert len(attempts) > t.shape[0] - 1

    def test_fsal_reuses_last_stage(self):
        """Each accepted step costs three rate evaluations after the first."""
        calls = []

        def rate(u, p, t):
            calls.append(t)
            return jnp.ones_like(u)

        t, u = rk23(rate, 0.0, (0.0, 2.0), None, 1e-6)
        # Constant rate: zero error, so every attempt is accepted.
        assert len(calls) == 1 + 3 * (t.shape[0] - 1)
        assert jnp.allclose(u, t, atol=1e-12)

    def test_never_steps_past_end(self):
        t, _ = rk23(lambda u, p, t: jnp.ones_like(u), 0.0, (0.0, 0.3), None, 1e-3)
        assert float(jnp.max(t)) == pytest.approx(0.3, abs=1e-15)

    def test_first_step_clipped_to_short_interval(self):
        """An interval shorter than the default first step is not overshot."""
        t, u = rk23(_linear_growth, 1.0, (0.0, 1e-3), -1.0, 1e-4)
        assert float(t[-1]) == pytest.approx(1e-3, abs=1e-15)
        assert float(jnp.max(t)) <= 1e-3
        assert float(u[-1]) == pytest.approx(float(jnp.exp(-1e-3)), rel=1e-6)

    def test_single_step_lands_on_end(self):
        """With a loose tolerance one clipped step covers the whole interval."""
        t, u = rk23(lambda u, p, t: jnp.ones_like(u), 0.0, (0.0, 0.3), None, 1.0)
        assert t.shape == (2,)
        assert float(t[-1]) == pytest.approx(0.3, abs=1e-15)
        assert float(u[-1]) == pytest.approx(0.3, abs=1e-15)

    def test_underflow_returns_partial_trajectory(self, caplog):
        """Near a finite-time singularity the step underflows and rk23 stops early."""
        with caplog.at_level(logging.WARNING, logger="ivpjax.integrators.rk23"):
            t, u = rk23(_blowup, 1.0, (0.0, 2.0), None, 1e-3)

        assert "Stepsize too small" in caplog.text
        assert 0.9 < float(t[-1]) < 1.1
        assert t.shape[0] == u.shape[0]
        assert bool(jnp.all(jnp.diff(t) > 0.0))
        assert float(u[-1]) > 1e6

    def test_no_warning_on_smooth_problem(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ivpjax.integrators.rk23"):
            rk23(_linear_growth, 1.0, (0.0, 1.0), -1.0, 1e-6)
        assert "Stepsize too small" not in caplog.text

    @pytest.mark.parametrize("tol", [0.0, -1e-6])
    def test_nonpositive_tolerance_raises(self, tol):
        with pytest.raises(ValueError, match="Tolerance must be positive"):
            rk23(_linear_growth, 1.0, (0.0, 1.0), -1.0, tol)

    def test_degenerate_interval_raises(self):
        with pytest.raises(ValueError, match="t0 < tf"):
            rk23(_linear_growth, 1.0, (1.0, 1.0), -1.0, 1e-6)

    def test_adaptive_config_defaults(self):
        config = AdaptiveConfig()
        assert config.safety_factor == 0.8
        assert config.max_scale_factor == 4.0
        assert config.initial_step_factor == 0.5

    def test_custom_initial_step(self):
        """A custom initial step factor changes the first trial step."""
        attempts_default = rk23(lambda u, p, t: jnp.ones_like(u), 0.0, (0.0, 1.0), None, 1e-6)
        config = AdaptiveConfig(initial_step_factor=0.05)
        attempts_small = rk23(lambda u, p, t: jnp.ones_like(u), 0.0, (0.0, 1.0), None, 1e-6, config)
        assert float(attempts_small.times[1]) == pytest.approx(0.1 * float(attempts_default.times[1]))
