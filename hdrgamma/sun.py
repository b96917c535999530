# hdrgamma/sun.py
"""
Sunrise / sunset for schedule points, via astral.

Times are returned as offsets from local midnight. Days on which the sun
never crosses the horizon come back as the POLAR_NIGHT / MIDNIGHT_SUN
sentinels instead of raising.
"""
from __future__ import annotations

import datetime as dt
from typing import NamedTuple, Optional

from astral import Observer, sun as astral_sun


class SunTimes(NamedTuple):
    sunrise: dt.timedelta
    sunset: dt.timedelta

    @property
    def is_polar_night(self) -> bool:
        return self.sunrise == dt.timedelta(0) and self.sunset == dt.timedelta(0)

    @property
    def is_midnight_sun(self) -> bool:
        return self.sunset == dt.timedelta(hours=24)

    @property
    def day_length(self) -> dt.timedelta:
        return self.sunset - self.sunrise


POLAR_NIGHT = SunTimes(dt.timedelta(0), dt.timedelta(0))
MIDNIGHT_SUN = SunTimes(dt.timedelta(0), dt.timedelta(hours=24))


def _since_midnight(when: dt.datetime) -> dt.timedelta:
    return dt.timedelta(
        hours=when.hour, minutes=when.minute, seconds=when.second, microseconds=when.microsecond
    )


def calculate(latitude: float, longitude: float, date: dt.date, utc_offset_hours: float) -> SunTimes:
    """Sunrise and sunset for `date` at a location, in local time (UTC + offset)."""
    observer = Observer(
        latitude=max(-90.0, min(90.0, float(latitude))),
        longitude=max(-180.0, min(180.0, float(longitude))),
    )
    tz = dt.timezone(dt.timedelta(hours=utc_offset_hours))
    try:
        rise = astral_sun.sunrise(observer, date=date, tzinfo=tz)
        dusk = astral_sun.sunset(observer, date=date, tzinfo=tz)
    except ValueError:
        # sun never reaches the horizon today: decide by where it is at noon
        if astral_sun.elevation(observer, astral_sun.noon(observer, date=date, tzinfo=tz)) > 0.0:
            return MIDNIGHT_SUN
        return POLAR_NIGHT
    return SunTimes(_since_midnight(rise), _since_midnight(dusk))


def local_utc_offset(now: Optional[dt.datetime] = None) -> float:
    """UTC offset in hours of the local zone (DST included) at `now`."""
    now = dt.datetime.now().astimezone() if now is None else now
    if now.tzinfo is None:
        now = now.astimezone()
    return now.utcoffset().total_seconds() / 3600.0


def calculate_today(latitude: float, longitude: float, now: Optional[dt.datetime] = None) -> SunTimes:
    now = dt.datetime.now().astimezone() if now is None else now
    return calculate(latitude, longitude, now.date(), local_utc_offset(now))
