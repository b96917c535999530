"""
Tests for color temperature and tint multipliers.
"""
import pytest

from hdrgamma.settings import TemperatureAlgorithm
from hdrgamma.warmth import (
    accurate_multipliers,
    blue_reduction_multipliers,
    kelvin_to_temperature,
    planckian_xy,
    standard_multipliers,
    temperature_multipliers,
    temperature_to_kelvin,
    tint_multipliers,
)

ALL_ALGORITHMS = list(TemperatureAlgorithm)


class TestSliderMapping:

    def test_neutral(self):
        assert temperature_to_kelvin(0) == 6500.0
        assert kelvin_to_temperature(6500) == 0.0

    def test_extremes(self):
        assert temperature_to_kelvin(-50) == 3000.0
        assert temperature_to_kelvin(50) == 10000.0

    def test_inverse(self):
        for k in (1900, 2700, 4600, 6500):
            assert temperature_to_kelvin(kelvin_to_temperature(k)) == pytest.approx(k)


class TestTemperatureMultipliers:
    """Neutral point and warm ordering across algorithms"""

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_zero_is_neutral(self, algorithm):
        for channel in temperature_multipliers(0, algorithm):
            assert channel == pytest.approx(1.0, abs=0.05), f"{algorithm.name}: {channel}"

    @pytest.mark.parametrize("algorithm", ALL_ALGORITHMS)
    def test_warmer_raises_red_over_blue(self, algorithm):
        r, _g, b = temperature_multipliers(-30, algorithm)
        assert r > b, f"{algorithm.name}: r={r} b={b}"

    def test_standard_warm_ordering(self):
        r, g, b = temperature_multipliers(-50, TemperatureAlgorithm.STANDARD)
        assert r >= g > b

    def test_standard_cool_reduces_red(self):
        r, _g, b = temperature_multipliers(50, TemperatureAlgorithm.STANDARD)
        assert r < 1.0
        assert b > r

    def test_blue_decreases_monotonically_when_warming(self):
        for algorithm in ALL_ALGORITHMS:
            blues = [temperature_multipliers(t, algorithm)[2] for t in (0, -10, -25, -40, -50)]
            for a, b in zip(blues, blues[1:]):
                assert a >= b, f"{algorithm.name}: blue rose {a} -> {b}"

    def test_input_clamped(self):
        assert temperature_multipliers(-500) == temperature_multipliers(-50)


class TestAlgorithms:

    def test_standard_identity_at_6500(self):
        assert standard_multipliers(6500) == pytest.approx((1.0, 1.0, 1.0))

    def test_accurate_identity_at_6500(self):
        assert accurate_multipliers(6500) == pytest.approx((1.0, 1.0, 1.0))

    def test_blue_reduction_shape(self):
        assert blue_reduction_multipliers(6500) == (1.0, 1.0, 1.0)
        r, g, b = blue_reduction_multipliers(1900)
        assert (r, g, b) == pytest.approx((1.0, 0.7, 0.1))

    def test_blue_reduction_saturates(self):
        assert blue_reduction_multipliers(1000) == blue_reduction_multipliers(1900)
        assert blue_reduction_multipliers(9000) == (1.0, 1.0, 1.0)

    def test_planckian_known_points(self):
        known = {2700: (0.460, 0.411), 4000: (0.380, 0.377), 6500: (0.313, 0.324)}
        for cct, (ex, ey) in known.items():
            x, y = planckian_xy(cct)
            assert abs(x - ex) < 0.01, f"x mismatch at {cct}K: {x}"
            assert abs(y - ey) < 0.01, f"y mismatch at {cct}K: {y}"


class TestTint:

    def test_zero_is_neutral(self):
        assert tint_multipliers(0) == (1.0, 1.0, 1.0)

    def test_green(self):
        r, g, b = tint_multipliers(-50)
        assert g > 1.0 > r
        assert r == pytest.approx(b)

    def test_magenta(self):
        r, g, b = tint_multipliers(50)
        assert r > 1.0 > g
        assert r == pytest.approx(b)

    def test_clamped(self):
        assert tint_multipliers(80) == tint_multipliers(50)
