# hdrgamma/settings.py
"""
Value types shared by the LUT pipeline and the night-mode scheduler.

Numeric fields are clamped into their valid range on construction, never
rejected. Both settings objects round-trip through plain dicts so a
persistence layer can store them as JSON.
"""
from __future__ import annotations

import datetime
import json
import logging
import math
from dataclasses import dataclass, field, fields, replace as _dc_replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------
# Limits
# --------------------------------------------------------------------
NEUTRAL_KELVIN = 6500
MIN_KELVIN = 1900
MAX_KELVIN = 6500
MAX_FADE_MINUTES = 120
MAX_SCHEDULE_POINTS = 12

BRIGHTNESS_RANGE = (10.0, 100.0)
SHIFT_RANGE = (-50.0, 50.0)       # temperature, temperature offset, tint
GAIN_RANGE = (0.5, 1.5)
OFFSET_RANGE = (-0.5, 0.5)


class SettingsError(ValueError):
    """Raised by the string parsers when a value cannot be understood."""


def _clamp(v: float, lo: float, hi: float) -> float:
    v = float(v)
    return lo if v < lo else hi if v > hi else v


def _num(value: Any, default: float) -> float:
    """Coerce a loosely-typed value from a settings dict to a finite float."""
    if isinstance(value, bool) or value is None:
        return float(default)
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric setting %r, using %s", value, default)
        return float(default)
    if not math.isfinite(number):
        logger.warning("Ignoring non-finite setting %r, using %s", value, default)
        return float(default)
    return number


def _coordinate(value: Any, limit: float) -> Optional[float]:
    """Clamped latitude or longitude; None when missing or not a finite number."""
    if value is None:
        return None
    number = _num(value, math.nan)
    return _clamp(number, -limit, limit) if math.isfinite(number) else None


# --------------------------------------------------------------------
# Enumerations
# --------------------------------------------------------------------
class GammaMode(Enum):
    GAMMA_22 = "gamma22"                # general PC use
    GAMMA_24 = "gamma24"                # BT.1886 dark room
    WINDOWS_DEFAULT = "windows_default"  # identity / bypass

    @property
    def gamma(self) -> float:
        return {GammaMode.GAMMA_22: 2.2, GammaMode.GAMMA_24: 2.4}.get(self, 1.0)

    @classmethod
    def parse(cls, text: str) -> "GammaMode":
        """Accepts enum names/values plus the short forms 2.2, 2.4, default, srgb."""
        key = str(text).strip().lower()
        aliases = {
            "2.2": cls.GAMMA_22,
            "2.4": cls.GAMMA_24,
            "default": cls.WINDOWS_DEFAULT,
            "srgb": cls.WINDOWS_DEFAULT,
        }
        if key in aliases:
            return aliases[key]
        for mode in cls:
            if key in (mode.value, mode.name.lower()):
                return mode
        raise SettingsError(f"unknown gamma mode: {text!r}")


class TemperatureAlgorithm(Enum):
    STANDARD = "standard"                 # Tanner Helland polynomial fit
    ACCURATE_CIE1931 = "accurate_cie1931"  # blackbody locus via CIE xy
    BLUE_REDUCTION = "blue_reduction"     # circadian-targeted blue cut

    @classmethod
    def parse(cls, text: str) -> "TemperatureAlgorithm":
        key = str(text).strip().lower()
        for algo in cls:
            if key in (algo.value, algo.name.lower()):
                return algo
        raise SettingsError(f"unknown temperature algorithm: {text!r}")


class ScheduleTrigger(Enum):
    FIXED_TIME = "fixed_time"
    SUNRISE = "sunrise"
    SUNSET = "sunset"

    @classmethod
    def parse(cls, text: str) -> "ScheduleTrigger":
        key = str(text).strip().lower()
        for trig in cls:
            if key in (trig.value, trig.name.lower()):
                return trig
        raise SettingsError(f"unknown schedule trigger: {text!r}")


def _parse_enum(enum_cls, value: Any, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls.parse(value)
    except SettingsError:
        logger.warning("Unknown %s %r, using %s", enum_cls.__name__, value, default.name)
        return default


# --------------------------------------------------------------------
# Time of day helpers ("HH:MM")
# --------------------------------------------------------------------
def parse_time(text: str) -> datetime.time:
    try:
        hh, mm = str(text).strip().split(":")[:2]
        return datetime.time(int(hh), int(mm))
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"invalid time of day: {text!r}") from exc


def format_time(t: datetime.time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def _time_or(value: Any, default: datetime.time) -> datetime.time:
    if isinstance(value, datetime.time):
        return value
    try:
        return parse_time(value)
    except SettingsError:
        logger.warning("Invalid time %r, using %s", value, format_time(default))
        return default


# --------------------------------------------------------------------
# Calibration snapshot
# --------------------------------------------------------------------
@dataclass(frozen=True)
class CalibrationSettings:
    """
    Per-monitor calibration applied on top of the gamma correction.

    brightness          10..100 %, perceptual dimming unless use_linear_brightness
    temperature         -50..50, negative = warmer (kelvin = 6500 + t*70)
    temperature_offset  -50..50, per-monitor trim added to temperature
    tint                -50..50, negative = green, positive = magenta
    *_gain              0.5..1.5 channel multipliers
    *_offset            -0.5..0.5 channel lift
    """
    brightness: float = 100.0
    temperature: float = 0.0
    temperature_offset: float = 0.0
    tint: float = 0.0
    red_gain: float = 1.0
    green_gain: float = 1.0
    blue_gain: float = 1.0
    red_offset: float = 0.0
    green_offset: float = 0.0
    blue_offset: float = 0.0
    use_linear_brightness: bool = False
    algorithm: TemperatureAlgorithm = TemperatureAlgorithm.STANDARD

    def __post_init__(self) -> None:
        ranges = {
            "brightness": BRIGHTNESS_RANGE,
            "temperature": SHIFT_RANGE,
            "temperature_offset": SHIFT_RANGE,
            "tint": SHIFT_RANGE,
            "red_gain": GAIN_RANGE,
            "green_gain": GAIN_RANGE,
            "blue_gain": GAIN_RANGE,
            "red_offset": OFFSET_RANGE,
            "green_offset": OFFSET_RANGE,
            "blue_offset": OFFSET_RANGE,
        }
        defaults = {f.name: f.default for f in fields(self)}
        for name, (lo, hi) in ranges.items():
            value = _num(getattr(self, name), defaults[name])
            object.__setattr__(self, name, _clamp(value, lo, hi))
        object.__setattr__(self, "use_linear_brightness", bool(self.use_linear_brightness))
        object.__setattr__(
            self, "algorithm",
            _parse_enum(TemperatureAlgorithm, self.algorithm, TemperatureAlgorithm.STANDARD),
        )

    @property
    def effective_temperature(self) -> float:
        return _clamp(self.temperature + self.temperature_offset, *SHIFT_RANGE)

    @property
    def has_adjustments(self) -> bool:
        return (
            abs(self.brightness - 100.0) > 0.01
            or abs(self.temperature) > 0.01
            or abs(self.temperature_offset) > 0.01
            or abs(self.tint) > 0.01
            or abs(self.red_gain - 1.0) > 0.001
            or abs(self.green_gain - 1.0) > 0.001
            or abs(self.blue_gain - 1.0) > 0.001
            or abs(self.red_offset) > 0.001
            or abs(self.green_offset) > 0.001
            or abs(self.blue_offset) > 0.001
        )

    def cache_key(self) -> Tuple:
        # rounded so nearly identical snapshots share a cache slot
        return (
            round(self.brightness),
            round(self.temperature * 10),
            round(self.temperature_offset * 10),
            round(self.tint * 10),
            round(self.red_gain * 100),
            round(self.green_gain * 100),
            round(self.blue_gain * 100),
            round(self.red_offset * 1000),
            round(self.green_offset * 1000),
            round(self.blue_offset * 1000),
            self.algorithm,
            self.use_linear_brightness,
        )

    def replace(self, **changes) -> "CalibrationSettings":
        return _dc_replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        d = {f.name: getattr(self, f.name) for f in fields(self)}
        d["algorithm"] = self.algorithm.name
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalibrationSettings":
        defaults = cls()
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name == "algorithm":
                kwargs[f.name] = _parse_enum(TemperatureAlgorithm, value, defaults.algorithm)
            elif f.name == "use_linear_brightness":
                kwargs[f.name] = bool(value)
            else:
                kwargs[f.name] = _num(value, getattr(defaults, f.name))
        return cls(**kwargs)


DEFAULT_CALIBRATION = CalibrationSettings()


# --------------------------------------------------------------------
# Night mode schedule
# --------------------------------------------------------------------
@dataclass
class NightModeSchedulePoint:
    """
    One step of the night-mode schedule.

    `time` is used for FIXED_TIME triggers only; `offset_minutes` only for
    sun triggers (-30 means half an hour before sunset). At the trigger the
    color temperature fades from the previous point's target to this one's
    over `fade_minutes`.
    """
    trigger: ScheduleTrigger = ScheduleTrigger.FIXED_TIME
    time: datetime.time = datetime.time(0, 0)
    offset_minutes: float = 0.0
    target_kelvin: int = NEUTRAL_KELVIN
    fade_minutes: float = 30.0

    def __post_init__(self) -> None:
        self.trigger = _parse_enum(ScheduleTrigger, self.trigger, ScheduleTrigger.FIXED_TIME)
        self.time = _time_or(self.time, datetime.time(0, 0))
        self.offset_minutes = _num(self.offset_minutes, 0.0)
        self.target_kelvin = int(round(_clamp(_num(self.target_kelvin, NEUTRAL_KELVIN), MIN_KELVIN, MAX_KELVIN)))
        self.fade_minutes = _clamp(_num(self.fade_minutes, 30.0), 0.0, MAX_FADE_MINUTES)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trigger": self.trigger.name,
            "time": format_time(self.time),
            "offset_minutes": self.offset_minutes,
            "target_kelvin": self.target_kelvin,
            "fade_minutes": self.fade_minutes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NightModeSchedulePoint":
        return cls(
            trigger=data.get("trigger", ScheduleTrigger.FIXED_TIME),
            time=data.get("time", datetime.time(0, 0)),
            offset_minutes=data.get("offset_minutes", 0.0),
            target_kelvin=data.get("target_kelvin", NEUTRAL_KELVIN),
            fade_minutes=data.get("fade_minutes", 30.0),
        )


@dataclass
class NightModeSettings:
    """
    Night-mode configuration.

    start_time / end_time / temperature_kelvin / fade_minutes describe the
    legacy two-point schedule; ensure_schedule() turns them into schedule
    points when the list is empty.
    """
    enabled: bool = False
    use_auto_schedule: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    schedule: List[NightModeSchedulePoint] = field(default_factory=list)
    start_time: datetime.time = datetime.time(21, 0)
    end_time: datetime.time = datetime.time(7, 0)
    temperature_kelvin: int = 2700
    fade_minutes: float = 30.0
    algorithm: TemperatureAlgorithm = TemperatureAlgorithm.STANDARD

    def __post_init__(self) -> None:
        self.validate()

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def validate(self) -> "NightModeSettings":
        """Clamp every field into range in place."""
        self.enabled = bool(self.enabled)
        self.use_auto_schedule = bool(self.use_auto_schedule)
        self.latitude = _coordinate(self.latitude, 90.0)
        self.longitude = _coordinate(self.longitude, 180.0)
        self.start_time = _time_or(self.start_time, datetime.time(21, 0))
        self.end_time = _time_or(self.end_time, datetime.time(7, 0))
        self.temperature_kelvin = int(round(_clamp(_num(self.temperature_kelvin, 2700), MIN_KELVIN, MAX_KELVIN)))
        self.fade_minutes = _clamp(_num(self.fade_minutes, 30.0), 0.0, MAX_FADE_MINUTES)
        self.algorithm = _parse_enum(TemperatureAlgorithm, self.algorithm, TemperatureAlgorithm.STANDARD)
        self.schedule = [
            p if isinstance(p, NightModeSchedulePoint) else NightModeSchedulePoint.from_dict(p)
            for p in (self.schedule or [])
        ]
        return self

    def ensure_schedule(self) -> List[NightModeSchedulePoint]:
        """Populate an empty schedule with dusk->night and dawn->day points."""
        if self.schedule:
            return self.schedule

        auto = self.use_auto_schedule
        self.schedule = [
            NightModeSchedulePoint(
                trigger=ScheduleTrigger.SUNSET if auto else ScheduleTrigger.FIXED_TIME,
                time=self.start_time,
                target_kelvin=self.temperature_kelvin,
                fade_minutes=self.fade_minutes,
            ),
            NightModeSchedulePoint(
                trigger=ScheduleTrigger.SUNRISE if auto else ScheduleTrigger.FIXED_TIME,
                time=self.end_time,
                target_kelvin=NEUTRAL_KELVIN,
                fade_minutes=self.fade_minutes,
            ),
        ]
        logger.debug("Populated default schedule (%s)", "sun" if auto else "fixed")
        return self.schedule

    def add_point(self, point: NightModeSchedulePoint) -> None:
        """Append a schedule point for an editor; the resolver itself takes any count."""
        if len(self.schedule) >= MAX_SCHEDULE_POINTS:
            raise SettingsError(f"schedule is limited to {MAX_SCHEDULE_POINTS} points")
        self.schedule.append(point)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "use_auto_schedule": self.use_auto_schedule,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "schedule": [p.to_dict() for p in self.schedule],
            "start_time": format_time(self.start_time),
            "end_time": format_time(self.end_time),
            "temperature_kelvin": self.temperature_kelvin,
            "fade_minutes": self.fade_minutes,
            "algorithm": self.algorithm.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NightModeSettings":
        defaults = cls()
        schedule = data.get("schedule") or []
        if not isinstance(schedule, list):
            logger.warning("Ignoring malformed schedule %r", schedule)
            schedule = []
        return cls(
            enabled=data.get("enabled", defaults.enabled),
            use_auto_schedule=data.get("use_auto_schedule", defaults.use_auto_schedule),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            schedule=[p for p in schedule if isinstance(p, (dict, NightModeSchedulePoint))],
            start_time=data.get("start_time", defaults.start_time),
            end_time=data.get("end_time", defaults.end_time),
            temperature_kelvin=data.get("temperature_kelvin", defaults.temperature_kelvin),
            fade_minutes=data.get("fade_minutes", defaults.fade_minutes),
            algorithm=data.get("algorithm", defaults.algorithm),
        )


def load_night_mode(path) -> NightModeSettings:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    settings = NightModeSettings.from_dict(data if isinstance(data, dict) else {})
    logger.info("Loaded night mode settings (%d schedule points)", len(settings.schedule))
    return settings


def save_night_mode(settings: NightModeSettings, path) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2)
    logger.info("Saved night mode settings (%d schedule points)", len(settings.schedule))
