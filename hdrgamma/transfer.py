# hdrgamma/transfer.py
"""
ST.2084 (PQ) and piecewise sRGB transfer functions.

Every function accepts a float or a numpy array and clamps its input to the
valid domain instead of rejecting it.
"""
from __future__ import annotations

import numpy as np

# --------------------------------------------------------------------
# ST.2084 constants (exact SMPTE values)
# --------------------------------------------------------------------
PQ_M1 = 2610.0 / 16384.0
PQ_M2 = 2523.0 / 32.0
PQ_C1 = 3424.0 / 4096.0
PQ_C2 = 2413.0 / 128.0
PQ_C3 = 2392.0 / 128.0

PQ_PEAK_NITS = 10000.0

# sRGB (IEC 61966-2-1) piecewise break points
SRGB_LINEAR_CUTOFF = 0.0031308
SRGB_SIGNAL_CUTOFF = 0.04045


def _result(x):
    """Return a plain float for 0-d input, the array otherwise."""
    return float(x) if np.ndim(x) == 0 else x


# --------------------------------------------------------------------
# PQ
# --------------------------------------------------------------------
def pq_eotf(signal):
    """PQ signal [0,1] -> absolute luminance in nits [0,10000]."""
    s = np.clip(np.asarray(signal, dtype=np.float64), 0.0, 1.0)
    n = np.power(s, 1.0 / PQ_M2)
    num = np.maximum(n - PQ_C1, 0.0)
    den = PQ_C2 - PQ_C3 * n

    # den <= 0 only at the very top of the range: saturate
    safe = den > 0.0
    ratio = np.divide(num, den, out=np.zeros_like(n), where=safe)
    nits = np.where(safe, np.power(ratio, 1.0 / PQ_M1) * PQ_PEAK_NITS, PQ_PEAK_NITS)
    return _result(nits)


def pq_inverse_eotf(nits):
    """Absolute luminance in nits [0,10000] -> PQ signal [0,1]."""
    lum = np.clip(np.asarray(nits, dtype=np.float64), 0.0, PQ_PEAK_NITS) / PQ_PEAK_NITS
    lm1 = np.power(lum, PQ_M1)
    n = np.power((PQ_C1 + PQ_C2 * lm1) / (1.0 + PQ_C3 * lm1), PQ_M2)
    return _result(n)


# --------------------------------------------------------------------
# sRGB
# --------------------------------------------------------------------
def srgb_inverse_eotf(linear_nits, white_level: float, black_level: float = 0.0):
    """
    Linear light in nits -> sRGB signal [0,1].

    Light is first normalized against [black_level, white_level]; a white
    level at or below the black level yields 0.
    """
    if white_level <= black_level:
        return _result(np.zeros_like(np.asarray(linear_nits, dtype=np.float64)))

    linear = (np.asarray(linear_nits, dtype=np.float64) - black_level) / (white_level - black_level)
    linear = np.clip(linear, 0.0, 1.0)
    signal = np.where(
        linear <= SRGB_LINEAR_CUTOFF,
        12.92 * linear,
        1.055 * np.power(linear, 1.0 / 2.4) - 0.055,
    )
    return _result(signal)


def srgb_eotf(signal, white_level: float, black_level: float = 0.0):
    """sRGB signal [0,1] -> linear light in nits between black and white level."""
    s = np.clip(np.asarray(signal, dtype=np.float64), 0.0, 1.0)
    linear = np.where(
        s <= SRGB_SIGNAL_CUTOFF,
        s / 12.92,
        np.power((s + 0.055) / 1.055, 2.4),
    )
    span = max(0.0, white_level - black_level)
    return _result(black_level + linear * span)
