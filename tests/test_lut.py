"""
Tests for LUT generation and the LUT cache.
"""
import math
import threading

import numpy as np
import pytest

from hdrgamma.lut import (
    DEFAULT_SDR_WHITE,
    LUT_SIZE,
    X_AXIS,
    LutCache,
    cache_key,
    cached_lut,
    generate_grey_lut,
    generate_lut,
    identity_lut,
)
from hdrgamma.settings import CalibrationSettings, GammaMode
from hdrgamma.transfer import pq_eotf, pq_inverse_eotf

EXPECTED_IDENTITY = np.arange(LUT_SIZE) / (LUT_SIZE - 1)


class TestIdentity:

    @pytest.mark.parametrize("white", [80.0, 200.0, 480.0])
    @pytest.mark.parametrize("is_hdr", [True, False])
    def test_windows_default_is_identity(self, white, is_hdr):
        lut = generate_lut(GammaMode.WINDOWS_DEFAULT, white, CalibrationSettings(), is_hdr)
        for channel in lut:
            np.testing.assert_array_equal(channel, EXPECTED_IDENTITY)

    def test_identity_is_writable_copy(self):
        lut = identity_lut()
        lut.r[0] = 0.5
        assert X_AXIS[0] == 0.0

    def test_axis_read_only(self):
        with pytest.raises(ValueError):
            X_AXIS[0] = 1.0


class TestHdrGamma:

    def test_shape_and_range(self):
        lut = generate_lut(GammaMode.GAMMA_22, 200.0)
        for channel in lut:
            assert channel.shape == (LUT_SIZE,)
            assert channel.min() >= 0.0
            assert channel.max() <= 1.0

    def test_gamma24_monotonic(self):
        lut = generate_lut(GammaMode.GAMMA_24, 200.0, CalibrationSettings(), True)
        assert np.all(np.diff(lut.grey) >= 0.0)
        assert np.all(np.diff(lut.r) >= 0.0)

    @pytest.mark.parametrize("white", [1.0, 80.0, 200.0, 480.0, 1000.0, 9999.0, 20000.0])
    def test_peak_passthrough(self, white):
        for mode in (GammaMode.GAMMA_22, GammaMode.GAMMA_24):
            lut = generate_lut(mode, white)
            assert lut.grey[LUT_SIZE - 1] == 1.0, f"{mode.name} @ {white}"

    def test_darkens_shadows(self):
        """Gamma 2.2 decode sits below the piecewise sRGB curve near black"""
        lut = generate_lut(GammaMode.GAMMA_22, 200.0)
        shadows = slice(1, 200)
        assert np.all(lut.grey[shadows] <= X_AXIS[shadows])

    def test_gamma24_darker_than_22(self):
        g22 = generate_lut(GammaMode.GAMMA_22, 200.0).grey
        g24 = generate_lut(GammaMode.GAMMA_24, 200.0).grey
        below_white = X_AXIS < pq_inverse_eotf(200.0)
        assert np.all(g24[below_white] <= g22[below_white] + 1e-12)

    def test_sdr_white_is_preserved(self):
        white = 200.0
        lut = generate_lut(GammaMode.GAMMA_22, white)
        i = int(np.searchsorted(pq_eotf(X_AXIS), white))
        # just above SDR white the output is corrected white, barely blended
        assert pq_eotf(lut.grey[i]) == pytest.approx(white, rel=0.02)

    def test_grey_matches_channels_without_calibration(self):
        lut = generate_lut(GammaMode.GAMMA_24, 120.0)
        np.testing.assert_allclose(lut.grey, lut.r)
        np.testing.assert_allclose(lut.r, lut.b)

    def test_grey_lut(self):
        grey = generate_grey_lut(GammaMode.GAMMA_22, 80.0)
        np.testing.assert_array_equal(grey, generate_lut(GammaMode.GAMMA_22, 80.0).grey)


class TestCalibratedLut:

    def test_dimming_never_brightens(self):
        full = generate_lut(GammaMode.GAMMA_22, 80.0, CalibrationSettings(brightness=100), True)
        half = generate_lut(GammaMode.GAMMA_22, 80.0, CalibrationSettings(brightness=50), True)
        for dimmed, ref in zip(half, full):
            assert np.all(dimmed <= ref + 1e-12)
        assert half.grey[512] < full.grey[512]

    def test_warm_channels_split(self):
        lut = generate_lut(GammaMode.GAMMA_22, 200.0, CalibrationSettings(temperature=-40))
        mid = 400
        assert lut.b[mid] < lut.r[mid]
        assert lut.r[LUT_SIZE - 1] == 1.0
        assert lut.b[LUT_SIZE - 1] == 1.0

    def test_windows_default_with_adjustments_is_not_identity(self):
        lut = generate_lut(GammaMode.WINDOWS_DEFAULT, 200.0, CalibrationSettings(brightness=60))
        assert not np.array_equal(lut.grey, EXPECTED_IDENTITY)

    def test_sdr_ramp(self):
        lut = generate_lut(GammaMode.GAMMA_22, 200.0, CalibrationSettings(brightness=50), False)
        assert lut.grey[0] == 0.0
        assert lut.grey[LUT_SIZE - 1] < 1.0
        assert np.all(np.diff(lut.grey) >= 0.0)

    def test_sdr_default_is_identity_ramp(self):
        lut = generate_lut(GammaMode.GAMMA_22, 200.0, CalibrationSettings(), False)
        np.testing.assert_allclose(lut.grey, EXPECTED_IDENTITY, atol=1e-12)


class TestLutCache:

    def test_hit_returns_equal_independent_copies(self):
        cache = LutCache()
        settings = CalibrationSettings(brightness=70)
        first = cache.get_or_create(GammaMode.GAMMA_22, 200.0, settings)
        second = cache.get_or_create(GammaMode.GAMMA_22, 200.0, settings)

        np.testing.assert_array_equal(first.grey, second.grey)
        assert first.grey is not second.grey

        first.grey[:] = 0.0
        third = cache.get_or_create(GammaMode.GAMMA_22, 200.0, settings)
        np.testing.assert_array_equal(third.grey, second.grey)
        assert third.grey[LUT_SIZE - 1] == 1.0
        assert (cache.hits, cache.misses) == (2, 1)

    def test_white_level_rounds_to_ten(self):
        cache = LutCache()
        cache.get_or_create(GammaMode.GAMMA_24, 201.0)
        cache.get_or_create(GammaMode.GAMMA_24, 198.0)
        assert len(cache) == 1
        assert cache.hits == 1

    def test_white_level_clamped_before_keying(self):
        c = CalibrationSettings()
        assert cache_key(GammaMode.GAMMA_22, 20000, c, True) == cache_key(GammaMode.GAMMA_22, 30000, c, True)
        cache = LutCache()
        cache.get_or_create(GammaMode.GAMMA_22, 20000.0)
        cache.get_or_create(GammaMode.GAMMA_22, 30000.0)
        assert len(cache) == 1

    def test_non_finite_white_level(self):
        cache = LutCache()
        huge = cache.get_or_create(GammaMode.GAMMA_22, math.inf)
        np.testing.assert_array_equal(huge.grey, generate_lut(GammaMode.GAMMA_22, 9999.0).grey)
        missing = cache.get_or_create(GammaMode.GAMMA_22, math.nan)
        np.testing.assert_array_equal(missing.grey, generate_lut(GammaMode.GAMMA_22, DEFAULT_SDR_WHITE).grey)
        tiny = cache.get_or_create(GammaMode.GAMMA_24, -math.inf)
        assert tiny.grey[LUT_SIZE - 1] == 1.0

    def test_non_finite_calibration(self):
        cache = LutCache()
        lut = cache.get_or_create(GammaMode.GAMMA_22, 200.0, CalibrationSettings(tint=math.nan))
        np.testing.assert_array_equal(lut.grey, generate_lut(GammaMode.GAMMA_22, 200.0).grey)

    def test_key_distinguishes_hdr(self):
        c = CalibrationSettings()
        assert cache_key(GammaMode.GAMMA_22, 80, c, True) != cache_key(GammaMode.GAMMA_22, 80, c, False)

    def test_bulk_eviction(self):
        cache = LutCache(capacity=10)
        for white in range(10, 120, 10):   # 11 distinct keys
            cache.get_or_create(GammaMode.GAMMA_22, float(white))
        assert len(cache) == 6
        # the oldest went first
        cache.get_or_create(GammaMode.GAMMA_22, 10.0)
        assert cache.misses == 12

    def test_default_cache(self):
        first = cached_lut(GammaMode.GAMMA_22, 160.0)
        first.grey[:] = 0.0
        second = cached_lut(GammaMode.GAMMA_22, 160.0)
        assert second.grey[LUT_SIZE - 1] == 1.0

    def test_clear(self):
        cache = LutCache()
        cache.get_or_create(GammaMode.GAMMA_22, 80.0)
        cache.clear()
        assert len(cache) == 0

    def test_concurrent_access(self):
        cache = LutCache(capacity=8)
        errors = []

        def worker(offset):
            try:
                for n in range(30):
                    white = 80.0 + 10.0 * ((n + offset) % 12)
                    lut = cache.get_or_create(GammaMode.GAMMA_24, white)
                    if lut.grey[LUT_SIZE - 1] != 1.0:
                        errors.append(white)
                    lut.grey[:] = 0.0
            except Exception as exc:  # surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(cache) <= 8
