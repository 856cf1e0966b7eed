"""
Tests for global time step selection.
"""

import numpy as np
import pytest

from aqsim.grid import BoxMeteorology, build_box_domain
from aqsim.solvers.time_stepping import (
    TimeStepConfig, compute_domain_stability_bounds, compute_global_timestep,
    compute_stability_bounds, set_timestep,
)

UNCLIPPED = TimeStepConfig()


def _box(dx=1000.0, dy=1000.0, dz=100.0, **met):
    return build_box_domain(2, 2, 2, dx, dy, dz, met=BoxMeteorology(**met))


class TestStabilityBounds:
    """Individual limits."""

    def test_advection_limit(self):
        domain = _box(u_avg=5.0)
        dt = compute_global_timestep(domain, UNCLIPPED)
        assert dt == pytest.approx(1.0 / np.sqrt(3.0) / (5.0 / 1000.0))

    def test_deviation_counts_twice(self):
        domain = _box(u_deviation=1.0)
        dt = compute_global_timestep(domain, UNCLIPPED)
        assert dt == pytest.approx(1000.0 / (2.0 * np.sqrt(3.0)))

    def test_vertical_diffusion_limit(self):
        domain = _box(kzz=10.0)
        dt = compute_global_timestep(domain, UNCLIPPED)
        assert dt == pytest.approx(100.0**2 / (2.0 * 10.0))

    def test_horizontal_diffusion_uses_smaller_extent(self):
        domain = _box(dx=1000.0, dy=500.0, kxxyy=100.0)
        dt = compute_global_timestep(domain, UNCLIPPED)
        assert dt == pytest.approx(500.0**2 / (2.0 * 100.0))

    def test_courant_scales_linearly(self):
        domain = _box(u_avg=3.0, kzz=1.0)
        dt1 = compute_global_timestep(domain, TimeStepConfig(courant=1.0))
        dt_half = compute_global_timestep(domain, TimeStepConfig(courant=0.5))
        assert dt_half == pytest.approx(0.5 * dt1)

    def test_bounds_arrays(self):
        domain = _box(u_avg=1.0)
        bounds = compute_domain_stability_bounds(domain)
        assert bounds.advection.shape == (len(domain),)
        assert np.all(np.isinf(bounds.vertical_diffusion))
        assert np.all(np.isinf(bounds.diffusion_x))


class TestDegenerateInputs:
    """Zero or negative inputs never produce a zero or undefined step."""

    def test_zero_diffusivity_ignored(self):
        domain = _box(u_avg=1.0, kxxyy=0.0, kzz=0.0)
        dt = compute_global_timestep(domain, UNCLIPPED)
        assert np.isfinite(dt)
        assert dt > 0

    def test_negative_diffusivity_ignored(self):
        domain = _box(u_avg=1.0, kzz=-5.0)
        dt = compute_global_timestep(domain, UNCLIPPED)
        assert dt == pytest.approx(1000.0 / np.sqrt(3.0))

    def test_still_air_uses_fallback_dt(self):
        domain = _box()
        assert compute_global_timestep(domain) == pytest.approx(3600.0)

    def test_zero_extent_cell(self):
        bounds = compute_stability_bounds(
            *(np.array([0.0, 1000.0]) for _ in range(3)),
            np.ones(2), np.ones(2), np.ones(2),
            np.zeros(2), np.zeros(2), np.zeros(2),
            np.ones(2), np.ones(2),
        )
        dt = np.min(bounds.cell_minimum())
        assert np.isfinite(dt)
        assert dt > 0

    def test_empty_domain(self):
        domain = build_box_domain(1, 1, 1, 1.0, 1.0, 1.0)
        domain.cells = []
        assert compute_global_timestep(domain, TimeStepConfig(fallback_dt=60.0)) == 60.0


class TestMonotonicity:
    """Doubling every extent never decreases the step."""

    @pytest.mark.parametrize("met", [
        dict(u_avg=5.0),
        dict(kxxyy=50.0, kzz=5.0),
        dict(u_avg=2.0, v_avg=-1.0, w_avg=0.01, kxxyy=50.0, kzz=5.0,
             u_deviation=0.5, v_deviation=0.5),
    ])
    def test_doubling_extents(self, met):
        small = compute_global_timestep(_box(1000.0, 1000.0, 100.0, **met), UNCLIPPED)
        large = compute_global_timestep(_box(2000.0, 2000.0, 200.0, **met), UNCLIPPED)
        assert large >= small
        assert small > 0


class TestClipping:
    """min_dt / max_dt clip and the no-limit fallback."""

    def test_large_stable_step_not_capped(self):
        domain = build_box_domain(2, 2, 1, 36000.0, 36000.0, 100.0,
                                  met=BoxMeteorology(u_avg=1.0))
        assert compute_global_timestep(domain) == pytest.approx(36000.0 / np.sqrt(3.0))

    def test_fallback_only_without_finite_limit(self):
        still = _box()
        windy = _box(u_avg=0.001)
        cfg = TimeStepConfig(fallback_dt=100.0)

        assert compute_global_timestep(still, cfg) == 100.0
        assert compute_global_timestep(windy, cfg) == pytest.approx(1.0e6 / np.sqrt(3.0))

    def test_opt_in_max_dt(self):
        domain = _box(u_avg=0.001)
        assert compute_global_timestep(domain, TimeStepConfig(max_dt=100.0)) == 100.0

    def test_min_dt(self):
        domain = _box(u_avg=1000.0)
        assert compute_global_timestep(domain, TimeStepConfig(min_dt=10.0)) == 10.0

    def test_set_timestep(self):
        domain = _box(kzz=10.0)
        dt = set_timestep(domain)
        assert domain.dt == dt == pytest.approx(500.0)
