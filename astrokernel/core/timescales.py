# astrokernel/core/timescales.py
"""
Calendar ⇄ Julian Day and civil-time ⇄ dynamical-time conversions.

Highlights
- Proleptic Gregorian by default (Julian calendar on request), floor-based so
  negative astronomical years behave.
- UTC ↔ TT through the ERFA chain (dtf2d → utctai → taitt) from 1972 on;
  earlier dates treat UTC as UT and add ΔT.
- Sidereal time as GMST (erfa.gmst06) + equation of the equinoxes built from
  the same nutation/obliquity the position model uses, so
  ``sidereal_time(t) == sidereal_time0(t, ε_true, Δψ)`` holds exactly.
"""
from __future__ import annotations

from typing import Tuple
import logging
import math

import erfa
import numpy as np

from .constants import GREG_CAL, JUL_CAL
from .deltat import delta_at, delta_t
from .errors import InvalidArgument, InvalidDate
from .frames import nutation, split_jd, true_obliquity

log = logging.getLogger(__name__)

__all__ = [
    "julian_day",
    "to_julian_day",
    "reverse_julian_day",
    "from_julian_day",
    "utc_to_jd",
    "jd_to_utc",
    "jd_et_to_utc",
    "delta_t",
    "day_of_week",
    "sidereal_time",
    "sidereal_time0",
    "days_in_month",
    "UTC_LEAP_ERA_JD",
]

# 1972-01-01 00:00 UTC: start of the integer-leap-second era
UTC_LEAP_ERA_JD = 2441317.5


# ─────────────────────────────────────────────────────────────────────────────
# Calendar
# ─────────────────────────────────────────────────────────────────────────────
def _check_calendar(calendar: int) -> None:
    if calendar not in (GREG_CAL, JUL_CAL):
        raise InvalidArgument("calendar must be GREG_CAL (1) or JUL_CAL (0)", calendar=calendar)


def _is_leap(year: int, calendar: int) -> bool:
    if calendar == JUL_CAL:
        return year % 4 == 0
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def days_in_month(year: int, month: int, calendar: int = GREG_CAL) -> int:
    if month == 2:
        return 29 if _is_leap(year, calendar) else 28
    return 30 if month in (4, 6, 9, 11) else 31


def _validate_date(year: int, month: int, day: int, calendar: int) -> None:
    if int(month) != month or not 1 <= month <= 12:
        raise InvalidDate("month must be 1..12", year=year, month=month, day=day)
    if int(day) != day or not 1 <= day <= days_in_month(int(year), int(month), calendar):
        raise InvalidDate("day out of range for month", year=year, month=month, day=day)


def julian_day(year: int, month: int, day: int, hour: float = 0.0,
               calendar: int = GREG_CAL) -> float:
    """
    Julian Day for a calendar date and fractional hour (Meeus ch. 7).

    Raises InvalidDate for month/day/hour out of range.
    """
    _check_calendar(calendar)
    if int(year) != year:
        raise InvalidDate("year must be an integer", year=year)
    _validate_date(year, month, day, calendar)
    if not math.isfinite(hour) or not 0.0 <= hour <= 24.0:
        raise InvalidDate("hour must be within [0, 24]", hour=hour)

    y, m = int(year), int(month)
    if m <= 2:
        y -= 1
        m += 12
    if calendar == GREG_CAL:
        a = math.floor(y / 100)
        b = 2 - a + math.floor(a / 4)
    else:
        b = 0
    jd = (math.floor(365.25 * (y + 4716)) + math.floor(30.6001 * (m + 1))
          + int(day) + b - 1524.5)
    return float(jd + hour / 24.0)


to_julian_day = julian_day


def reverse_julian_day(jd: float, calendar: int = GREG_CAL) -> Tuple[int, int, int, float]:
    """Inverse of :func:`julian_day` → (year, month, day, hour)."""
    _check_calendar(calendar)
    if not math.isfinite(jd):
        raise InvalidArgument("jd must be finite", jd=jd)
    z = math.floor(jd + 0.5)
    f = jd + 0.5 - z
    if calendar == GREG_CAL:
        alpha = math.floor((z - 1867216.25) / 36524.25)
        a = z + 1 + alpha - math.floor(alpha / 4)
    else:
        a = z
    b = a + 1524
    c = math.floor((b - 122.1) / 365.25)
    d = math.floor(365.25 * c)
    e = math.floor((b - d) / 30.6001)
    day = b - d - math.floor(30.6001 * e)
    month = e - 1 if e < 14 else e - 13
    year = c - 4716 if month > 2 else c - 4715
    return int(year), int(month), int(day), float(f * 24.0)


from_julian_day = reverse_julian_day


def day_of_week(jd: float) -> int:
    """0 = Monday … 6 = Sunday."""
    return int(math.floor(jd - 2433282 - 1.5)) % 7


# ─────────────────────────────────────────────────────────────────────────────
# UTC ⇄ (ET, UT)
# ─────────────────────────────────────────────────────────────────────────────
def _is_leap_second_day(jd0: float) -> bool:
    today = delta_at(jd0 - 2400000.5).delta_at
    tomorrow = delta_at(jd0 + 1.0 - 2400000.5).delta_at
    return tomorrow > today


def _ut_from_et(jd_et: float) -> float:
    jd_ut = jd_et - delta_t(jd_et)
    return jd_et - delta_t(jd_ut)


def utc_to_jd(year: int, month: int, day: int, hour: int, minute: int, second: float,
              calendar: int = GREG_CAL) -> Tuple[float, float]:
    """
    Civil UTC → (jd_et, jd_ut).

    A 60.x second is accepted only on a leap-second day (ERFA validates).
    """
    _check_calendar(calendar)
    _validate_date(year, month, day, calendar)
    if int(hour) != hour or not 0 <= hour <= 23:
        raise InvalidDate("hour must be 0..23", hour=hour)
    if int(minute) != minute or not 0 <= minute <= 59:
        raise InvalidDate("minute must be 0..59", minute=minute)
    if not math.isfinite(second) or not 0.0 <= second < 61.0:
        raise InvalidDate("second must be within [0, 61)", second=second)

    jd0 = julian_day(year, month, day, 0.0, calendar)
    if calendar == GREG_CAL and jd0 >= UTC_LEAP_ERA_JD:
        if second >= 60.0 and not _is_leap_second_day(jd0):
            raise InvalidDate("no leap second at the end of this day",
                              year=year, month=month, day=day, second=second)
        try:
            u1, u2 = erfa.dtf2d("UTC", int(year), int(month), int(day),
                                int(hour), int(minute), float(second))
        except erfa.ErfaError as e:
            raise InvalidDate(f"invalid UTC instant: {e}", year=year, month=month,
                              day=day, second=second) from e
        a1, a2 = erfa.utctai(u1, u2)
        t1, t2 = erfa.taitt(a1, a2)
        jd_et = float(t1) + float(t2)
        return jd_et, _ut_from_et(jd_et)

    if second >= 60.0:
        raise InvalidDate("leap seconds only exist from 1972 on", second=second)
    jd_ut = jd0 + (hour + minute / 60.0 + second / 3600.0) / 24.0
    return jd_ut + delta_t(jd_ut), jd_ut


def _hms(hour: float) -> Tuple[int, int, float]:
    h = int(hour)
    rem = (hour - h) * 60.0
    mi = int(rem)
    sec = (rem - mi) * 60.0
    return h, mi, sec


def jd_to_utc(jd_ut: float, calendar: int = GREG_CAL) -> Tuple[int, int, int, int, int, float]:
    """UT Julian Day → civil UTC (y, m, d, h, mi, s)."""
    _check_calendar(calendar)
    if not math.isfinite(jd_ut):
        raise InvalidArgument("jd_ut must be finite", jd=jd_ut)
    if calendar == GREG_CAL and jd_ut >= UTC_LEAP_ERA_JD:
        return _tt_to_utc(jd_ut + delta_t(jd_ut))
    y, m, d, hour = reverse_julian_day(jd_ut, calendar)
    h, mi, sec = _hms(hour)
    return y, m, d, h, mi, sec


def jd_et_to_utc(jd_et: float, calendar: int = GREG_CAL) -> Tuple[int, int, int, int, int, float]:
    """ET (TT) Julian Day → civil UTC."""
    _check_calendar(calendar)
    if calendar == GREG_CAL and jd_et >= UTC_LEAP_ERA_JD:
        return _tt_to_utc(jd_et)
    return jd_to_utc(_ut_from_et(jd_et), calendar)


def _tt_to_utc(jd_tt: float) -> Tuple[int, int, int, int, int, float]:
    t1, t2 = split_jd(jd_tt)
    a1, a2 = erfa.tttai(t1, t2)
    u1, u2 = erfa.taiutc(a1, a2)
    iy, im, iday, ihmsf = erfa.d2dtf("UTC", 6, u1, u2)
    h, mi, sec, frac = (int(v) for v in np.asarray(ihmsf).tolist())
    return int(iy), int(im), int(iday), h, mi, sec + frac / 1e6


# ─────────────────────────────────────────────────────────────────────────────
# Sidereal time
# ─────────────────────────────────────────────────────────────────────────────
def _gmst_hours(jd_ut: float) -> float:
    u1, u2 = split_jd(jd_ut)
    t1, t2 = split_jd(jd_ut + delta_t(jd_ut))
    return math.degrees(float(erfa.gmst06(u1, u2, t1, t2))) / 15.0


def sidereal_time0(jd_ut: float, obliquity: float, nutation_lon: float) -> float:
    """
    Greenwich sidereal time (hours) from explicit ε and Δψ (degrees):
    GMST + Δψ·cos ε.  Pass Δψ = 0 for mean sidereal time.
    """
    gst = _gmst_hours(jd_ut) + nutation_lon * math.cos(math.radians(obliquity)) / 15.0
    gst %= 24.0
    return 0.0 if gst >= 24.0 else gst


def sidereal_time(jd_ut: float) -> float:
    """Greenwich apparent sidereal time in hours, [0, 24)."""
    jd_tt = jd_ut + delta_t(jd_ut)
    dpsi, _deps = nutation(jd_tt)
    return sidereal_time0(jd_ut, true_obliquity(jd_tt), dpsi)
