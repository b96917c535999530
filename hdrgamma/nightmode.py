# hdrgamma/nightmode.py
"""
Night-mode schedule resolution.

`tick()` is a pure function of (settings, wall clock, last emitted Kelvin);
`NightModeScheduler` is the thin timer loop that calls it and publishes the
result. Schedule points are placed on today's 24h clock, sorted, and the
latest point at or before "now" decides the target. Before the first point
of the day the last point is treated as yesterday's trigger.
"""
from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from hdrgamma import sun
from hdrgamma.settings import (
    MAX_FADE_MINUTES,
    MAX_KELVIN,
    MIN_KELVIN,
    NEUTRAL_KELVIN,
    CalibrationSettings,
    NightModeSchedulePoint,
    NightModeSettings,
    ScheduleTrigger,
    TemperatureAlgorithm,
)
from hdrgamma.warmth import kelvin_to_temperature

logger = logging.getLogger(__name__)

KELVIN_CHANGE_THRESHOLD = 5
ACTIVE_BELOW_KELVIN = 6450
FAST_TICK_SECONDS = 4.0
SLOW_TICK_SECONDS = 30.0

MINUTES_PER_DAY = 1440.0
FALLBACK_SUNRISE = dt.timedelta(hours=7)
FALLBACK_SUNSET = dt.timedelta(hours=19)

Resolved = Tuple[float, NightModeSchedulePoint]  # (minutes from midnight, point)

# --------------------------------------------------------------------
# Point resolution
# --------------------------------------------------------------------
def _minutes_of(now: dt.datetime) -> float:
    return now.hour * 60.0 + now.minute + now.second / 60.0 + now.microsecond / 60e6


def _sun_times(settings: NightModeSettings, today: dt.date, utc_offset: float) -> Optional[sun.SunTimes]:
    if not settings.has_location:
        return None
    return sun.calculate(settings.latitude, settings.longitude, today, utc_offset)


def _point_minutes(point: NightModeSchedulePoint, times: Optional[sun.SunTimes]) -> float:
    if point.trigger is ScheduleTrigger.FIXED_TIME:
        t = point.time
        return t.hour * 60.0 + t.minute + t.second / 60.0

    if times is None:
        base = FALLBACK_SUNRISE if point.trigger is ScheduleTrigger.SUNRISE else FALLBACK_SUNSET
    else:
        base = times.sunrise if point.trigger is ScheduleTrigger.SUNRISE else times.sunset
    return (base.total_seconds() / 60.0 + point.offset_minutes) % MINUTES_PER_DAY


def resolve_point_time(
    point: NightModeSchedulePoint,
    latitude: Optional[float],
    longitude: Optional[float],
    today: dt.date,
    utc_offset: float,
) -> dt.timedelta:
    """Time of day at which `point` triggers on `today`."""
    times = None
    if point.trigger is not ScheduleTrigger.FIXED_TIME and latitude is not None and longitude is not None:
        times = sun.calculate(latitude, longitude, today, utc_offset)
    return dt.timedelta(minutes=_point_minutes(point, times))


def _resolve_schedule(settings: NightModeSettings, now: dt.datetime) -> List[Resolved]:
    points = settings.schedule or []
    times = None
    if any(p.trigger is not ScheduleTrigger.FIXED_TIME for p in points):
        times = _sun_times(settings, now.date(), sun.local_utc_offset(now))
    resolved = [(_point_minutes(p, times), p) for p in points]
    resolved.sort(key=lambda rp: rp[0])
    return resolved


def _fade_of(point: NightModeSchedulePoint) -> float:
    return max(0.0, min(float(MAX_FADE_MINUTES), float(point.fade_minutes)))


def _kelvin_of(point: NightModeSchedulePoint) -> int:
    return int(max(MIN_KELVIN, min(MAX_KELVIN, point.target_kelvin)))


# --------------------------------------------------------------------
# Kelvin at a point in time
# --------------------------------------------------------------------
def _current_and_previous(resolved: List[Resolved], minutes: float) -> Tuple[Resolved, Resolved]:
    index = -1
    for i, (t, _p) in enumerate(resolved):
        if t <= minutes:
            index = i

    last = resolved[-1]
    if index == -1:
        # before today's first point: yesterday's last point is in charge
        current = (last[0] - MINUTES_PER_DAY, last[1])
        if len(resolved) > 1:
            prev = resolved[-2]
            previous = (prev[0] - MINUTES_PER_DAY, prev[1])
        else:
            previous = (last[0] - 2 * MINUTES_PER_DAY, last[1])
    else:
        current = resolved[index]
        if index > 0:
            previous = resolved[index - 1]
        else:
            previous = (last[0] - MINUTES_PER_DAY, last[1])
    return current, previous


def _elapsed(minutes: float, trigger: float) -> float:
    elapsed = minutes - trigger
    return elapsed + MINUTES_PER_DAY if elapsed < 0 else elapsed


def _evaluate(settings: NightModeSettings, now: dt.datetime) -> Tuple[int, bool]:
    """(kelvin, inside a fade window) for an enabled schedule."""
    resolved = _resolve_schedule(settings, now)
    if not resolved:
        return NEUTRAL_KELVIN, False

    minutes = _minutes_of(now)
    (trigger, point), (_pt, prev_point) = _current_and_previous(resolved, minutes)

    start = _kelvin_of(prev_point)
    end = _kelvin_of(point)
    fade = _fade_of(point)
    elapsed = _elapsed(minutes, trigger)

    in_fade = any(_elapsed(minutes, t) < _fade_of(p) for t, p in resolved)
    if fade > 0 and elapsed < fade:
        progress = max(0.0, min(1.0, elapsed / fade))
        return int(start + (end - start) * progress), in_fade
    return end, in_fade


def resolve_current_kelvin(settings: NightModeSettings, now: Optional[dt.datetime] = None) -> int:
    """Target color temperature for `now`; 6500K when disabled or unscheduled."""
    if not settings.enabled:
        return NEUTRAL_KELVIN
    now = dt.datetime.now().astimezone() if now is None else now
    return _evaluate(settings, now)[0]


def blended_calibration(
    base: CalibrationSettings,
    kelvin: int,
    algorithm: Optional[TemperatureAlgorithm] = None,
) -> CalibrationSettings:
    """
    Merge a night-mode Kelvin into a monitor's calibration.

    The night shift is added to the monitor's own temperature; 6500K
    returns `base` untouched.
    """
    if int(kelvin) == NEUTRAL_KELVIN:
        return base
    shift = kelvin_to_temperature(max(MIN_KELVIN, min(MAX_KELVIN, int(kelvin))))
    changes = {"temperature": base.temperature + shift}
    if algorithm is not None:
        changes["algorithm"] = algorithm
    return base.replace(**changes)


def night_calibration(
    settings: NightModeSettings,
    base: CalibrationSettings,
    now: Optional[dt.datetime] = None,
) -> CalibrationSettings:
    """`base` shifted to the current night-mode Kelvin with the saved night algorithm."""
    return blended_calibration(base, resolve_current_kelvin(settings, now), settings.algorithm)


# --------------------------------------------------------------------
# Pure tick
# --------------------------------------------------------------------
@dataclass(frozen=True)
class SchedulerState:
    kelvin: int
    changed: bool
    paused: bool = False
    in_fade: bool = False
    next_interval: float = SLOW_TICK_SECONDS


def tick(
    settings: NightModeSettings,
    now: dt.datetime,
    last_kelvin: int,
    paused_until: Optional[dt.datetime] = None,
) -> SchedulerState:
    paused = settings.enabled and paused_until is not None and now < paused_until
    if not settings.enabled or paused:
        kelvin, in_fade = NEUTRAL_KELVIN, False
    else:
        kelvin, in_fade = _evaluate(settings, now)

    # small drifts are skipped, but a settled value always lands exactly
    delta = abs(kelvin - last_kelvin)
    changed = delta > KELVIN_CHANGE_THRESHOLD or (delta > 0 and not in_fade)
    return SchedulerState(
        kelvin=kelvin,
        changed=changed,
        paused=paused,
        in_fade=in_fade,
        next_interval=FAST_TICK_SECONDS if in_fade else SLOW_TICK_SECONDS,
    )


# --------------------------------------------------------------------
# Timer host
# --------------------------------------------------------------------
class NightModeScheduler:
    """
    Re-evaluates the schedule on a one-shot timer that is re-armed after
    every tick: every few seconds during a fade, every half minute otherwise.
    """

    def __init__(
        self,
        settings: NightModeSettings,
        on_kelvin: Optional[Callable[[int], None]] = None,
        clock: Optional[Callable[[], dt.datetime]] = None,
    ):
        self._settings = settings
        self._on_kelvin = on_kelvin
        self._clock = clock or (lambda: dt.datetime.now().astimezone())
        self._lock = threading.Lock()
        # serializes tick + publish; reentrant so on_kelvin may call back in
        self._state_lock = threading.RLock()
        self._timer: Optional[threading.Timer] = None
        self._running = False
        self._paused_until: Optional[dt.datetime] = None
        self.current_kelvin = NEUTRAL_KELVIN
        self.last_state: Optional[SchedulerState] = None

    @property
    def settings(self) -> NightModeSettings:
        return self._settings

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_active(self) -> bool:
        return self.current_kelvin < ACTIVE_BELOW_KELVIN

    @property
    def paused_until(self) -> Optional[dt.datetime]:
        return self._paused_until

    # -- control -------------------------------------------------------
    def start(self) -> None:
        if not self._settings.enabled:
            logger.debug("Night mode disabled, scheduler not started")
            return
        self._running = True
        logger.info("Night mode scheduler started")
        state = self.evaluate()
        self._arm(state.next_interval)

    def stop(self) -> None:
        with self._lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        logger.info("Night mode scheduler stopped")

    def update_settings(self, settings: NightModeSettings) -> SchedulerState:
        with self._state_lock:
            was_enabled = self._settings.enabled
            self._settings = settings
            if settings.enabled and not was_enabled:
                self.start()
                return self.last_state
            state = self.evaluate()
        if not settings.enabled:
            self.stop()
        elif self._running:
            self._arm(state.next_interval)
        return state

    def pause_until(self, until: dt.datetime) -> SchedulerState:
        with self._state_lock:
            self._paused_until = until
            logger.info("Night mode paused until %s", until.isoformat(timespec="minutes"))
            return self.evaluate()

    def resume(self) -> SchedulerState:
        with self._state_lock:
            self._paused_until = None
            logger.info("Night mode resumed")
            return self.evaluate()

    # -- evaluation ----------------------------------------------------
    def evaluate(self, now: Optional[dt.datetime] = None) -> SchedulerState:
        now = self._clock() if now is None else now
        with self._state_lock:
            if self._settings.enabled:
                self._settings.ensure_schedule()
            if self._paused_until is not None and now >= self._paused_until:
                logger.info("Night mode pause elapsed")
                self._paused_until = None

            state = tick(self._settings, now, self.current_kelvin, self._paused_until)
            self.last_state = state
            if state.changed:
                logger.info("Night mode %dK -> %dK%s", self.current_kelvin, state.kelvin,
                            " (paused)" if state.paused else "")
                self.current_kelvin = state.kelvin
                if self._on_kelvin is not None:
                    self._on_kelvin(state.kelvin)
            else:
                logger.debug("Night mode tick: %dK, next in %.0fs", state.kelvin, state.next_interval)
        return state

    def _arm(self, interval: float) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not self._running:
                return
            self._timer = threading.Timer(interval, self._on_timer)
            self._timer.daemon = True
            self._timer.start()

    def _on_timer(self) -> None:
        interval = SLOW_TICK_SECONDS
        try:
            interval = self.evaluate().next_interval
        except Exception:
            logger.exception("Night mode tick failed")
        self._arm(interval)
