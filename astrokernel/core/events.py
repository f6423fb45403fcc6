# astrokernel/core/events.py
"""
Rise, set and meridian transits.

The event function is sampled in fixed steps (1 h, 20 min for the Moon) over
a bounded window until it changes sign in the wanted direction, then the
bracket is bisected to 1e-8 day.

  rise / set      f(t) = true altitude(t) − target altitude(t)
  upper transit   f(t) = hour angle folded into [−180°, 180°)
  lower transit   f(t) = (hour angle − 180°) folded the same way

The target altitude of the disc centre is

  horizon_height − refraction(horizon_height) ∓ semidiameter

with the upper limb by default and the modifier bits switching to the disc
centre, the lower limb or no refraction.  The true-horizon variant first
lowers horizon_height by the dip of the horizon seen from the observer height.  BIT_GEOCTR_NO_ECL_LAT uses the
geocentric position with its ecliptic latitude zeroed.
"""
from __future__ import annotations

from typing import Callable, Optional, Tuple, Union
import logging
import math
import os

from .constants import (
    BIT_DISC_BOTTOM,
    BIT_DISC_CENTER,
    BIT_GEOCTR_NO_ECL_LAT,
    BIT_NO_REFRACTION,
    CALC_ITRANSIT,
    CALC_MTRANSIT,
    CALC_RISE,
    CALC_SET,
    EPHE_MASK,
    FLG_EQUATORIAL,
    FLG_NOABERR,
    FLG_NOGDEFL,
    FLG_TOPOCTR,
    FLG_TRUEPOS,
    MOON,
)
from .context import DEFAULT_CONTEXT, EngineContext
from .coordinates import (
    cotrans,
    difference_degrees,
    horizon_dip,
    horizon_from_equatorial,
    horizon_refraction,
    pressure_at_altitude,
)
from .deltat import delta_t
from .ephemeris import position, validate_body
from .errors import InvalidArgument
from .fixstars import fixed_star
from .frames import true_obliquity
from .phenomena import semidiameter
from .solvers import EventResult, Status, bisect, bracket_forward
from .timescales import sidereal_time

log = logging.getLogger(__name__)

__all__ = ["rise_transit", "rise_transit_true_horizon", "RISE_SEARCH_DAYS"]

RISE_SEARCH_DAYS = float(os.getenv("ASTRO_RISE_SEARCH_DAYS", "2.0"))
RISE_TOL_DAYS = 1e-8

_STEP_DEFAULT = 1.0 / 24.0
_STEP_MOON = 1.0 / 72.0
_EVENT_MASK = CALC_RISE | CALC_SET | CALC_MTRANSIT | CALC_ITRANSIT
_PASSTHROUGH = EPHE_MASK | FLG_TRUEPOS | FLG_NOABERR | FLG_NOGDEFL

Target = Union[int, str]


def _equatorial_source(target: Target, flags: int, rsmi: int,
                       octx: EngineContext) -> Callable[[float], Tuple[float, float, float]]:
    """t_ut → (ra, dec, dist) of the target as seen from the observer."""
    base = flags & _PASSTHROUGH
    geo_no_lat = bool(rsmi & BIT_GEOCTR_NO_ECL_LAT)

    def fetch(t_ut: float, fl: int) -> Tuple[float, float, float]:
        if isinstance(target, str):
            pos, _label = fixed_star(target, t_ut, fl, octx)
        else:
            pos = position(t_ut, target, fl, octx)
        return pos.lon, pos.lat, pos.dist

    if geo_no_lat:
        def ecliptic(t_ut: float) -> Tuple[float, float, float]:
            lon, _lat, dist = fetch(t_ut, base)
            eps = true_obliquity(t_ut + delta_t(t_ut))
            return cotrans(lon, 0.0, dist, -eps)
        return ecliptic

    def equatorial(t_ut: float) -> Tuple[float, float, float]:
        return fetch(t_ut, base | FLG_EQUATORIAL | FLG_TOPOCTR)
    return equatorial


def _find_crossing(f: Callable[[float], float], start: float, step: float, span: float,
                   rising: bool, kind: int) -> EventResult:
    """First sign change of f in the wanted direction within [start, start + span]."""
    end = start + span
    t = start
    while t < end:
        scan = bracket_forward(f, t, step, end - t)
        if not scan.found:
            break
        a, b = scan.bracket  # type: ignore[misc]
        if a == b:
            return EventResult(Status.FOUND, jd=a, kind=kind, times=(a,))
        if (f(a) < 0.0) == rising:
            res = bisect(f, a, b, tol=RISE_TOL_DAYS)
            if res.found:
                return EventResult(Status.FOUND, jd=res.x, kind=kind, times=(res.x,))
            log.debug("rise/transit bisection failed in [%.8f, %.8f]", a, b)
            return EventResult(Status.CONVERGENCE_FAILURE, jd=res.x, kind=kind)
        t = b
    return EventResult(Status.NOT_FOUND, kind=kind)


def _check_target(target: Target) -> Target:
    if isinstance(target, str):
        if not target.strip():
            raise InvalidArgument("star name must be a non-empty string", name=target)
        return target
    return validate_body(target)


def rise_transit_true_horizon(jd_start_ut: float, body: Target, flags: int, rsmi: int,
                              lat: float, lon: float, alt: float, pressure: float,
                              temperature: float, horizon_height: float,
                              ctx: Optional[EngineContext] = None) -> EventResult:
    """
    Next rise, set or transit after ``jd_start_ut`` against the local true
    horizon: ``horizon_height`` (degrees) lowered by the dip of the horizon
    seen from ``alt`` metres.  ``pressure = 0`` derives the pressure from
    ``alt``.  ``body`` may be a body id or a star name.
    """
    return _rise_search(jd_start_ut, body, flags, rsmi, lat, lon, alt, pressure,
                        temperature, horizon_height, True, ctx)


def _rise_search(jd_start_ut: float, body: Target, flags: int, rsmi: int, lat: float,
                 lon: float, alt: float, pressure: float, temperature: float,
                 horizon_height: float, with_dip: bool,
                 ctx: Optional[EngineContext]) -> EventResult:
    for name, v in (("jd_start_ut", jd_start_ut), ("pressure", pressure),
                    ("temperature", temperature), ("horizon_height", horizon_height)):
        if not isinstance(v, (int, float)) or not math.isfinite(v):
            raise InvalidArgument(f"{name} must be a finite number", **{name: v})
    event = rsmi & _EVENT_MASK
    if event not in (CALC_RISE, CALC_SET, CALC_MTRANSIT, CALC_ITRANSIT):
        raise InvalidArgument("rsmi must select exactly one of rise, set, upper or lower transit", rsmi=rsmi)
    target = _check_target(body)
    octx = (ctx or DEFAULT_CONTEXT).with_observer(lon, lat, alt)
    fetch = _equatorial_source(target, flags, rsmi, octx)

    step = _STEP_MOON if target == MOON else _STEP_DEFAULT

    if event in (CALC_MTRANSIT, CALC_ITRANSIT):
        meridian = 0.0 if event == CALC_MTRANSIT else 180.0

        def hour_angle(t: float) -> float:
            ra, _dec, _dist = fetch(t)
            return difference_degrees(sidereal_time(t) * 15.0 + lon - ra, meridian)

        return _find_crossing(hour_angle, jd_start_ut, step, RISE_SEARCH_DAYS, True, event)

    if pressure == 0.0:
        pressure = pressure_at_altitude(alt)
    no_refr = bool(rsmi & BIT_NO_REFRACTION)
    if with_dip:
        horizon_height += horizon_dip(alt, pressure, temperature, refract=not no_refr)
    refr = 0.0 if no_refr else horizon_refraction(pressure, temperature, horizon_height)
    use_disc = not isinstance(target, str) and not rsmi & BIT_DISC_CENTER

    def altitude_excess(t: float) -> float:
        ra, dec, dist = fetch(t)
        _az, true_alt = horizon_from_equatorial(sidereal_time(t) * 15.0 + lon, lat, ra, dec)
        target_alt = horizon_height - refr
        if use_disc:
            sd = semidiameter(target, dist)  # type: ignore[arg-type]
            target_alt += sd if rsmi & BIT_DISC_BOTTOM else -sd
        return true_alt - target_alt

    return _find_crossing(altitude_excess, jd_start_ut, step, RISE_SEARCH_DAYS, event == CALC_RISE, event)


def rise_transit(jd_start_ut: float, body: Target, flags: int, rsmi: int, lat: float, lon: float,
                 alt: float = 0.0, pressure: float = 0.0, temperature: float = 10.0,
                 horizon_height: float = 0.0, ctx: Optional[EngineContext] = None) -> EventResult:
    """
    Next rise, set or transit of a body or star against the sea-level
    horizon raised by ``horizon_height``; the observer height only moves the
    topocentric position and the default pressure.
    """
    return _rise_search(jd_start_ut, body, flags, rsmi, lat, lon, alt, pressure,
                        temperature, horizon_height, False, ctx)
