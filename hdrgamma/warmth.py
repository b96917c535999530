# hdrgamma/warmth.py
from __future__ import annotations

import math
from typing import Callable, Dict, Tuple

from hdrgamma.settings import NEUTRAL_KELVIN, MIN_KELVIN, TemperatureAlgorithm

RGB = Tuple[float, float, float]

KELVIN_PER_STEP = 70.0   # one temperature slider step in Kelvin
KELVIN_FLOOR = 1000.0
KELVIN_CEIL = 40000.0

# --------------------------------------------------------------------
# Slider <-> Kelvin
# --------------------------------------------------------------------
def temperature_to_kelvin(temperature: float) -> float:
    """Slider value (-50..50, negative = warmer) to Kelvin; 0 maps to 6500K."""
    return NEUTRAL_KELVIN + float(temperature) * KELVIN_PER_STEP

def kelvin_to_temperature(kelvin: float) -> float:
    return (float(kelvin) - NEUTRAL_KELVIN) / KELVIN_PER_STEP

def _clamp_kelvin(k: float) -> float:
    return KELVIN_FLOOR if k < KELVIN_FLOOR else KELVIN_CEIL if k > KELVIN_CEIL else float(k)

# --------------------------------------------------------------------
# Standard: Tanner Helland blackbody fit
# --------------------------------------------------------------------
def _kelvin_to_rgb_channels(k: float) -> RGB:
    """Return (R,G,B) in 0..1 for a given white point in Kelvin."""
    k = _clamp_kelvin(k) / 100.0
    # Red
    if k <= 66:
        r = 255.0
    else:
        r = 329.698727446 * ((k - 60.0) ** -0.1332047592)
        r = max(0.0, min(255.0, r))
    # Green
    if k <= 66:
        g = 99.4708025861 * math.log(k) - 161.1195681661
    else:
        g = 288.1221695283 * ((k - 60.0) ** -0.0755148492)
    g = max(0.0, min(255.0, g))
    # Blue
    if k >= 66:
        b = 255.0
    elif k <= 19:
        b = 0.0
    else:
        b = 138.5177312231 * math.log(k - 10.0) - 305.0447927307
        b = max(0.0, min(255.0, b))
    return (r / 255.0, g / 255.0, b / 255.0)

def standard_multipliers(kelvin: float) -> RGB:
    """Channel gains that move D65 (6500K) white to `kelvin`."""
    ref = _kelvin_to_rgb_channels(NEUTRAL_KELVIN)
    tgt = _kelvin_to_rgb_channels(kelvin)
    return (tgt[0] / max(1e-6, ref[0]),
            tgt[1] / max(1e-6, ref[1]),
            tgt[2] / max(1e-6, ref[2]))

# --------------------------------------------------------------------
# Accurate: Planckian locus in CIE 1931 xy (Krystek / Kim polynomials)
# --------------------------------------------------------------------
def planckian_xy(kelvin: float) -> Tuple[float, float]:
    t = max(1000.0, min(25000.0, float(kelvin)))
    inv = 1000.0 / t

    if t <= 4000:
        x = -0.2661239 * inv**3 - 0.2343589 * inv**2 + 0.8776956 * inv + 0.179910
    else:
        x = -3.0258469 * inv**3 + 2.1070379 * inv**2 + 0.2226347 * inv + 0.240390

    if t <= 2222:
        y = -1.1063814 * x**3 - 1.34811020 * x**2 + 2.18555832 * x - 0.20219683
    elif t <= 4000:
        y = -0.9549476 * x**3 - 1.37418593 * x**2 + 2.09137015 * x - 0.16748867
    else:
        y = 3.0817580 * x**3 - 5.87338670 * x**2 + 3.75112997 * x - 0.37001483
    return x, y

def _kelvin_to_display_rgb(kelvin: float) -> RGB:
    x, y = planckian_xy(kelvin)
    # xyY with Y = 1 -> XYZ
    X = x / y
    Y = 1.0
    Z = (1.0 - x - y) / y
    # XYZ -> linear sRGB (D65)
    r = 3.2404542 * X - 1.5371385 * Y - 0.4985314 * Z
    g = -0.9692660 * X + 1.8760108 * Y + 0.0415560 * Z
    b = 0.0556434 * X - 0.2040259 * Y + 1.0572252 * Z
    r, g, b = (max(0.0, c) ** (1.0 / 2.2) for c in (r, g, b))
    m = max(r, g, b, 1e-6)
    return (r / m, g / m, b / m)

def accurate_multipliers(kelvin: float) -> RGB:
    # The 6500K locus point sits slightly off D65, so divide it out.
    ref = _kelvin_to_display_rgb(NEUTRAL_KELVIN)
    tgt = _kelvin_to_display_rgb(kelvin)
    return (tgt[0] / max(1e-6, ref[0]),
            tgt[1] / max(1e-6, ref[1]),
            tgt[2] / max(1e-6, ref[2]))

# --------------------------------------------------------------------
# Blue reduction: linear cut toward MIN_KELVIN
# --------------------------------------------------------------------
def blue_reduction_multipliers(kelvin: float) -> RGB:
    f = (NEUTRAL_KELVIN - float(kelvin)) / (NEUTRAL_KELVIN - MIN_KELVIN)
    f = 0.0 if f < 0.0 else 1.0 if f > 1.0 else f
    return (1.0, 1.0 - 0.3 * f, 1.0 - 0.9 * f)

_ALGORITHMS: Dict[TemperatureAlgorithm, Callable[[float], RGB]] = {
    TemperatureAlgorithm.STANDARD: standard_multipliers,
    TemperatureAlgorithm.ACCURATE_CIE1931: accurate_multipliers,
    TemperatureAlgorithm.BLUE_REDUCTION: blue_reduction_multipliers,
}

def temperature_multipliers(
    temperature: float,
    algorithm: TemperatureAlgorithm = TemperatureAlgorithm.STANDARD,
) -> RGB:
    """RGB multipliers for a slider temperature (-50..50)."""
    t = max(-50.0, min(50.0, float(temperature)))
    kelvin = _clamp_kelvin(temperature_to_kelvin(t))
    return _ALGORITHMS[algorithm](kelvin)

# --------------------------------------------------------------------
# Tint (green <-> magenta)
# --------------------------------------------------------------------
def tint_multipliers(tint: float) -> RGB:
    if abs(tint) < 0.01:
        return (1.0, 1.0, 1.0)
    t = max(-50.0, min(50.0, float(tint))) / 50.0
    if t < 0:
        a = -t
        return (1.0 - 0.08 * a, 1.0 + 0.10 * a, 1.0 - 0.08 * a)
    return (1.0 + 0.08 * t, 1.0 - 0.12 * t, 1.0 + 0.08 * t)
