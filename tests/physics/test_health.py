"""
Tests for the PM2.5 concentration-response functions.
"""

import math

import pytest

from aqsim.physics import deaths, rr_pm25_linear


class TestRelativeRisk:

    def test_zero_concentration(self):
        assert rr_pm25_linear(0.0) == 1.0

    def test_six_percent_per_ten(self):
        assert rr_pm25_linear(10.0) == pytest.approx(1.06)
        assert rr_pm25_linear(20.0) == pytest.approx(1.06**2)

    def test_increasing(self):
        assert rr_pm25_linear(5.0) < rr_pm25_linear(5.1)


class TestDeaths:

    def test_no_excess_risk(self):
        assert deaths(1.0, 1.0e6, 800.0) == 0.0

    def test_formula(self):
        rr = 1.25
        expected = (rr - 1.0) / rr * 50000.0 * 800.0 / 100000.0
        assert deaths(rr, 50000.0, 800.0) == pytest.approx(expected)

    def test_combined(self):
        rr = rr_pm25_linear(10.0)
        value = deaths(rr, 100000.0, 1000.0)
        assert value == pytest.approx(0.06 / 1.06 * 1000.0)
        assert math.isfinite(value)
