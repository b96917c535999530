# hdrgamma/adjust.py
"""
Per-pixel calibration: dimming, temperature, tint, then gain/offset.

Values are normalized linear light in 0..1; floats and numpy arrays are both
accepted so the LUT builder can push a whole ramp through at once.
"""
from __future__ import annotations

import numpy as np

from hdrgamma.settings import CalibrationSettings
from hdrgamma.transfer import _result
from hdrgamma.warmth import temperature_multipliers, tint_multipliers


def apply_dimming(value, brightness_percent: float, linear: bool = False):
    """
    Dim `value` to `brightness_percent` (10..100).

    Perceptual mode lifts the curve with a small gamma boost before scaling,
    so shadows keep more detail than a plain multiply.
    """
    if brightness_percent >= 100.0:
        return value
    if brightness_percent <= 0.0:
        return _result(np.zeros_like(np.asarray(value, dtype=np.float64)))

    b = max(10.0, min(100.0, float(brightness_percent))) / 100.0
    v = np.maximum(np.asarray(value, dtype=np.float64), 0.0)
    if linear:
        return _result(v * b)

    boost = 1.0 + (1.0 - b) * 0.3   # 1.0 at 100%, 1.27 at 10%
    # the lift must not push near-black values above the undimmed input
    return _result(np.minimum(np.power(v, 1.0 / boost) * b, v))


def apply_calibration(r, g, b, settings: CalibrationSettings):
    """
    Apply a calibration snapshot to an RGB triplet.

    Order: dimming, temperature, tint, gains, offsets, clamp. Creative
    adjustments see the dimmed signal; gain/offset trim the panel last.
    """
    r = np.asarray(r, dtype=np.float64)
    g = np.asarray(g, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    if settings.brightness < 100.0:
        lin = settings.use_linear_brightness
        r = apply_dimming(r, settings.brightness, lin)
        g = apply_dimming(g, settings.brightness, lin)
        b = apply_dimming(b, settings.brightness, lin)

    temperature = settings.effective_temperature
    if abs(temperature) > 0.01:
        tr, tg, tb = temperature_multipliers(temperature, settings.algorithm)
        r, g, b = r * tr, g * tg, b * tb

    if abs(settings.tint) > 0.01:
        nr, ng, nb = tint_multipliers(settings.tint)
        r, g, b = r * nr, g * ng, b * nb

    r = r * settings.red_gain + settings.red_offset
    g = g * settings.green_gain + settings.green_offset
    b = b * settings.blue_gain + settings.blue_offset

    return (
        _result(np.clip(r, 0.0, 1.0)),
        _result(np.clip(g, 0.0, 1.0)),
        _result(np.clip(b, 0.0, 1.0)),
    )
