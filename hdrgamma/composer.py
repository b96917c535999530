# hdrgamma/composer.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from hdrgamma.lut import Lut, LutCache
from hdrgamma.nightmode import blended_calibration
from hdrgamma.settings import (
    DEFAULT_CALIBRATION,
    NEUTRAL_KELVIN,
    CalibrationSettings,
    GammaMode,
    NightModeSettings,
    TemperatureAlgorithm,
)

logger = logging.getLogger(__name__)

LutSink = Callable[[Lut], None]


class CalibrationOrchestrator:
    """
    Joins a monitor's calibration with the night-mode Kelvin and turns the
    result into a LUT.

    The orchestrator owns its LutCache. Getting the LUT onto a display is the
    job of `sink`, e.g. a calibration-file writer or an ICC profile patcher.
    While a night shift is active the temperature algorithm saved in
    `night_settings` replaces the monitor's own.
    """

    def __init__(
        self,
        sink: Optional[LutSink] = None,
        cache: Optional[LutCache] = None,
        night_settings: Optional[NightModeSettings] = None,
    ):
        self.sink = sink
        self.cache = LutCache() if cache is None else cache
        self.night_settings = night_settings

    @property
    def night_algorithm(self) -> Optional[TemperatureAlgorithm]:
        return None if self.night_settings is None else self.night_settings.algorithm

    def effective_calibration(
        self, base: Optional[CalibrationSettings], kelvin: int = NEUTRAL_KELVIN
    ) -> CalibrationSettings:
        base = DEFAULT_CALIBRATION if base is None else base
        return blended_calibration(base, kelvin, self.night_algorithm)

    def build(
        self,
        mode: GammaMode,
        sdr_white_level: float,
        base: Optional[CalibrationSettings] = None,
        kelvin: int = NEUTRAL_KELVIN,
        is_hdr: bool = True,
    ) -> Lut:
        calibration = self.effective_calibration(base, kelvin)
        return self.cache.get_or_create(mode, sdr_white_level, calibration, is_hdr)

    def apply(
        self,
        mode: GammaMode,
        sdr_white_level: float,
        base: Optional[CalibrationSettings] = None,
        kelvin: int = NEUTRAL_KELVIN,
        is_hdr: bool = True,
    ) -> Lut:
        """Build the LUT and hand it to the sink."""
        lut = self.build(mode, sdr_white_level, base, kelvin, is_hdr)
        if self.sink is not None:
            self.sink(lut)
            logger.info(
                "Applied LUT: mode=%s white=%.0f kelvin=%d hdr=%s",
                mode.name, sdr_white_level, kelvin, is_hdr,
            )
        else:
            logger.debug("No LUT sink configured, LUT not applied")
        return lut
