# hdrgamma/lut.py
from __future__ import annotations

import logging
import math
import threading
from typing import Dict, Hashable, NamedTuple, Optional, Tuple

import numpy as np

from hdrgamma.adjust import apply_calibration
from hdrgamma.settings import DEFAULT_CALIBRATION, CalibrationSettings, GammaMode
from hdrgamma.transfer import PQ_PEAK_NITS, pq_eotf, pq_inverse_eotf, srgb_inverse_eotf

logger = logging.getLogger(__name__)

LUT_SIZE = 1024
SDR_GAMMA = 2.2
DEFAULT_CACHE_CAPACITY = 50
DEFAULT_SDR_WHITE = 80.0   # nits, compositor default SDR white

# Shared input axis: index i is signal i / 1023
X_AXIS = np.arange(LUT_SIZE, dtype=np.float64) / (LUT_SIZE - 1)
X_AXIS.setflags(write=False)


class Lut(NamedTuple):
    """Per-channel 1D LUT plus a grey reference, each LUT_SIZE floats in 0..1."""
    r: np.ndarray
    g: np.ndarray
    b: np.ndarray
    grey: np.ndarray

    def copy(self) -> "Lut":
        return Lut(self.r.copy(), self.g.copy(), self.b.copy(), self.grey.copy())


# --------------------------------------------------------------------
# Builders
# --------------------------------------------------------------------
def _white_level(sdr_white_level: float) -> float:
    """SDR white clamped to [1, 9999] nits; NaN falls back to the default."""
    white = float(sdr_white_level)
    if math.isnan(white):
        return DEFAULT_SDR_WHITE
    return max(1.0, min(PQ_PEAK_NITS - 1.0, white))


def identity_lut() -> Lut:
    return Lut(X_AXIS.copy(), X_AXIS.copy(), X_AXIS.copy(), X_AXIS.copy())


def _build_sdr(calibration: CalibrationSettings) -> Lut:
    # gamma 2.2 decode -> calibrate in linear light -> gamma 2.2 encode
    linear = np.power(X_AXIS, SDR_GAMMA)
    r, g, b = apply_calibration(linear, linear, linear, calibration)
    r = np.power(r, 1.0 / SDR_GAMMA)
    g = np.power(g, 1.0 / SDR_GAMMA)
    b = np.power(b, 1.0 / SDR_GAMMA)
    return Lut(r, g, b, (r + g + b) / 3.0)


def _build_hdr(mode: GammaMode, white: float, calibration: CalibrationSettings) -> Lut:
    x = X_AXIS
    linear = pq_eotf(x)

    if mode is GammaMode.WINDOWS_DEFAULT:
        out = linear.copy()
    else:
        # what the compositor's sRGB curve made of the signal, re-decoded with the target gamma
        signal = srgb_inverse_eotf(linear, white, 0.0)
        out = white * np.power(signal, mode.gamma)

    if calibration.has_adjustments:
        norm = np.clip(out / white, 0.0, 1.0)
        r, g, b = apply_calibration(norm, norm, norm, calibration)
        r, g, b = r * white, g * white, b * white
    else:
        r = g = b = out

    corrected = (
        pq_inverse_eotf(r),
        pq_inverse_eotf(g),
        pq_inverse_eotf(b),
        pq_inverse_eotf((r + g + b) / 3.0),
    )

    # Headroom: fade from fully corrected at the SDR white level to
    # passthrough at 10,000 nits.
    blend = np.clip((linear - white) / (PQ_PEAK_NITS - white), 0.0, 1.0)
    blend = np.where(linear <= white, 0.0, blend)
    channels = [np.where(blend >= 1.0, x, c + (x - c) * blend) for c in corrected]
    return Lut(*channels)


def generate_lut(
    mode: GammaMode,
    sdr_white_level: float,
    calibration: Optional[CalibrationSettings] = None,
    is_hdr: bool = True,
) -> Lut:
    """
    Build the R, G, B and grey LUTs for one monitor.

    mode             target gamma (WINDOWS_DEFAULT = no gamma correction)
    sdr_white_level  nits at which SDR white is composited (HDR only)
    calibration      brightness/temperature/tint/gain/offset snapshot
    is_hdr           False builds a plain gamma 2.2 calibration ramp, no PQ
    """
    calibration = DEFAULT_CALIBRATION if calibration is None else calibration

    if mode is GammaMode.WINDOWS_DEFAULT and not calibration.has_adjustments:
        return identity_lut()

    if not is_hdr:
        lut = _build_sdr(calibration)
    else:
        lut = _build_hdr(mode, _white_level(sdr_white_level), calibration)

    logger.debug(
        "Built LUT: mode=%s white=%.0f hdr=%s adjusted=%s",
        mode.name, sdr_white_level, is_hdr, calibration.has_adjustments,
    )
    return lut


def generate_grey_lut(mode: GammaMode, sdr_white_level: float, is_hdr: bool = True) -> np.ndarray:
    """Single-channel LUT without calibration."""
    return generate_lut(mode, sdr_white_level, DEFAULT_CALIBRATION, is_hdr).grey


# --------------------------------------------------------------------
# Cache
# --------------------------------------------------------------------
def cache_key(
    mode: GammaMode, sdr_white_level: float, calibration: CalibrationSettings, is_hdr: bool
) -> Tuple[Hashable, ...]:
    return (mode, int(round(_white_level(sdr_white_level) / 10.0)) * 10, calibration.cache_key(), bool(is_hdr))


class LutCache:
    """
    Bounded, thread-safe LUT cache.

    Callers always get their own copy. When the entry count passes
    `capacity` the oldest half (insertion order) is dropped in one go.
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY):
        self.capacity = max(1, int(capacity))
        self._entries: Dict[Tuple[Hashable, ...], Lut] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_create(
        self,
        mode: GammaMode,
        sdr_white_level: float,
        calibration: Optional[CalibrationSettings] = None,
        is_hdr: bool = True,
    ) -> Lut:
        calibration = DEFAULT_CALIBRATION if calibration is None else calibration
        key = cache_key(mode, sdr_white_level, calibration, is_hdr)

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self.hits += 1
                return cached.copy()
            self.misses += 1

        # built outside the lock; a concurrent miss on the same key just
        # computes the same values twice
        lut = generate_lut(mode, sdr_white_level, calibration, is_hdr)

        with self._lock:
            self._entries[key] = lut.copy()
            if len(self._entries) > self.capacity:
                self._evict()
        return lut

    def _evict(self) -> None:
        drop = len(self._entries) // 2
        for key in list(self._entries)[:drop]:
            del self._entries[key]
        logger.info("LUT cache full, evicted %d entries (%d left)", drop, len(self._entries))


_default_cache = LutCache()


def cached_lut(
    mode: GammaMode,
    sdr_white_level: float,
    calibration: Optional[CalibrationSettings] = None,
    is_hdr: bool = True,
) -> Lut:
    """generate_lut() through the process-wide default cache."""
    return _default_cache.get_or_create(mode, sdr_white_level, calibration, is_hdr)
