# astrokernel/core/coordinates.py
"""
Angle arithmetic and spherical rotations.

- normalize_degrees / normalize_radians / difference_degrees
- cotrans / cotrans_with_speed: rotation about the x-axis (ecliptic ⇄ equator)
- azimuth_altitude + refraction: equatorial/ecliptic → horizon
- split_degrees: d°m′s″ decomposition with rounding, zodiacal & nakshatra modes
"""
from __future__ import annotations

from typing import Tuple
import math

from .constants import (
    APP_TO_TRUE,
    EARTH_RADIUS_KM,
    ECL2HOR,
    EQU2HOR,
    SPLIT_DEG_KEEP_DEG,
    SPLIT_DEG_KEEP_SIGN,
    SPLIT_DEG_NAKSHATRA,
    SPLIT_DEG_ROUND_DEG,
    SPLIT_DEG_ROUND_MIN,
    SPLIT_DEG_ROUND_SEC,
    SPLIT_DEG_ZODIACAL,
    TRUE_TO_APP,
)
from .deltat import delta_t
from .errors import InvalidArgument
from .frames import true_obliquity
from .timescales import sidereal_time

__all__ = [
    "normalize_degrees",
    "normalize_radians",
    "difference_degrees",
    "cotrans",
    "cotrans_with_speed",
    "refraction",
    "pressure_at_altitude",
    "horizon_refraction",
    "horizon_dip",
    "horizon_from_equatorial",
    "azimuth_altitude",
    "split_degrees",
]

_TWO_PI = 2.0 * math.pi
_NAKSHATRA_DEG = 360.0 / 27.0
HORIZON_REFRACTION_FLOOR = -2.0  # degrees; Bennett diverges at -4.4


# ─────────────────────────────────────────────────────────────────────────────
# Angle helpers
# ─────────────────────────────────────────────────────────────────────────────
def normalize_degrees(x: float) -> float:
    v = math.fmod(x, 360.0)
    if v < 0.0:
        v += 360.0
    return 0.0 if v >= 360.0 else v


def normalize_radians(x: float) -> float:
    v = math.fmod(x, _TWO_PI)
    if v < 0.0:
        v += _TWO_PI
    return 0.0 if v >= _TWO_PI else v


def difference_degrees(a: float, b: float) -> float:
    """Signed a − b folded into [−180, 180)."""
    d = normalize_degrees(a - b)
    return d - 360.0 if d >= 180.0 else d


def _sind(a: float) -> float:
    return math.sin(math.radians(a))


def _cosd(a: float) -> float:
    return math.cos(math.radians(a))


# ─────────────────────────────────────────────────────────────────────────────
# Rotations
# ─────────────────────────────────────────────────────────────────────────────
def _rotate(x: float, y: float, z: float, eps: float) -> Tuple[float, float, float]:
    c, s = _cosd(eps), _sind(eps)
    return x, c * y + s * z, -s * y + c * z


def cotrans(lon: float, lat: float, dist: float, eps: float) -> Tuple[float, float, float]:
    """
    Rotate a spherical point about the x-axis by ``eps`` degrees.

    Positive eps takes equatorial (α, δ) to ecliptic (λ, β); negative eps goes
    back.  The distance is carried through unchanged.
    """
    cb = _cosd(lat)
    x, y, z = _rotate(cb * _cosd(lon), cb * _sind(lon), _sind(lat), eps)
    lon2 = normalize_degrees(math.degrees(math.atan2(y, x)))
    lat2 = math.degrees(math.asin(max(-1.0, min(1.0, z))))
    return lon2, lat2, dist


def cotrans_with_speed(eps: float, lon: float, lat: float, dist: float,
                       dlon: float, dlat: float, ddist: float) -> Tuple[float, ...]:
    """
    Same rotation as :func:`cotrans`, applied jointly to position and its
    time derivatives (deg/day in, deg/day out).  Distance and its rate are
    invariant under the rotation.
    """
    l, b = math.radians(lon), math.radians(lat)
    dl, db = math.radians(dlon), math.radians(dlat)
    cl, sl, cb, sb = math.cos(l), math.sin(l), math.cos(b), math.sin(b)

    # unit sphere: the angles do not depend on the radius
    x, y, z = cb * cl, cb * sl, sb
    dx = -sb * cl * db - cb * sl * dl
    dy = -sb * sl * db + cb * cl * dl
    dz = cb * db

    x, y, z = _rotate(x, y, z, eps)
    dx, dy, dz = _rotate(dx, dy, dz, eps)

    rxy2 = x * x + y * y
    lon2 = normalize_degrees(math.degrees(math.atan2(y, x)))
    lat2 = math.degrees(math.asin(max(-1.0, min(1.0, z))))
    if rxy2 > 1e-30:
        dlon2 = math.degrees((x * dy - y * dx) / rxy2)
        dlat2 = math.degrees((dz * rxy2 - z * (x * dx + y * dy)) / math.sqrt(rxy2))
    else:
        dlon2, dlat2 = 0.0, 0.0
    return lon2, lat2, dist, dlon2, dlat2, ddist


# ─────────────────────────────────────────────────────────────────────────────
# Refraction & horizon
# ─────────────────────────────────────────────────────────────────────────────
def pressure_at_altitude(alt_m: float) -> float:
    """Standard-atmosphere pressure (hPa) at a height in metres."""
    return 1013.25 * (1.0 - 0.0065 * alt_m / 288.0) ** 5.255


def refraction(alt: float, pressure: float = 1013.25, temperature: float = 10.0,
               direction: int = TRUE_TO_APP) -> float:
    """
    Atmospheric refraction (Sæmundsson true→apparent, Bennett apparent→true),
    scaled by pressure (hPa) and temperature (°C).  Below the visible limit
    the altitude is returned unchanged.
    """
    pt = pressure / 1010.0 * 283.0 / (273.0 + temperature)
    if direction == TRUE_TO_APP:
        if alt > 15.0:
            a = math.tan(math.radians(90.0 - alt))
            refr = (58.276 * a - 0.0824 * a ** 3) * pt / 3600.0
        elif alt > -5.0:
            a = alt + 10.3 / (alt + 5.11)
            refr = 0.0 if a + 1e-10 >= 90.0 else 1.02 / math.tan(math.radians(a)) * pt / 60.0
        else:
            refr = 0.0
        return alt + refr if alt + refr > 0.0 else alt
    if direction == APP_TO_TRUE:
        a = alt + 7.31 / (alt + 4.4)
        if a + 1e-10 >= 90.0:
            refr = 0.0
        else:
            refr = 1.0 / math.tan(math.radians(a))
            refr -= 0.06 * math.sin(math.radians(14.7 * refr + 13.0))
        refr *= pt / 60.0
        return alt - refr if alt - refr > 0.0 else alt
    raise InvalidArgument("direction must be TRUE_TO_APP or APP_TO_TRUE", direction=direction)


def horizon_refraction(pressure: float = 1013.25, temperature: float = 10.0,
                       app_alt: float = 0.0) -> float:
    """
    Refraction (degrees) at an apparent altitude near the horizon (Bennett).
    Altitudes below ``HORIZON_REFRACTION_FLOOR`` are evaluated at the floor.
    """
    app_alt = max(app_alt, HORIZON_REFRACTION_FLOOR)
    a = app_alt + 7.31 / (app_alt + 4.4)
    refr = 1.0 / math.tan(math.radians(a))
    refr -= 0.06 * math.sin(math.radians(14.7 * refr + 13.0))
    return refr * pressure / 1010.0 * 283.0 / (273.0 + temperature) / 60.0


def horizon_dip(alt_m: float, pressure: float = 1013.25, temperature: float = 10.0,
                refract: bool = True) -> float:
    """
    Dip of the sea-level horizon (degrees, <= 0) seen from ``alt_m`` metres.

    The geometric dip is ``acos(R / (R + h))``.  With ``refract`` it is
    reduced by terrestrial refraction (Thom's lapse-rate coefficient).
    """
    if alt_m <= 0.0:
        return 0.0
    r_m = EARTH_RADIUS_KM * 1000.0
    dip = -math.degrees(math.acos(1.0 / (1.0 + alt_m / r_m)))
    if not refract:
        return dip
    krefr = (0.0342 + 0.0065) / (0.154 * 0.0238)
    d = 1.0 - 1.8480 * krefr * pressure / (273.15 + temperature) ** 2
    return dip * math.sqrt(max(d, 0.0))


def horizon_from_equatorial(armc: float, lat: float, ra: float, dec: float) -> Tuple[float, float]:
    """(azimuth from south, westward; true altitude) for a local ARMC."""
    h = armc - ra
    sh, ch = _sind(h), _cosd(h)
    sp, cp = _sind(lat), _cosd(lat)
    sd, cd = _sind(dec), _cosd(dec)
    az = normalize_degrees(math.degrees(math.atan2(sh * cd, ch * cd * sp - sd * cp)))
    alt = math.degrees(math.asin(max(-1.0, min(1.0, sp * sd + cp * cd * ch))))
    return az, alt


def azimuth_altitude(jd_ut: float, frame: int, lon: float, lat: float, alt: float,
                     body_lon: float, body_lat: float, body_dist: float = 1.0,
                     pressure: float = 0.0, temperature: float = 10.0) -> Tuple[float, float, float]:
    """
    Horizontal coordinates of a body given in ecliptic-of-date (ECL2HOR) or
    equatorial-of-date (EQU2HOR) coordinates.

    Returns (azimuth, true_altitude, apparent_altitude); azimuth is measured
    from the south point, increasing westward.  ``pressure=0`` derives the
    pressure from the observer altitude.
    """
    if not -90.0 <= lat <= 90.0:
        raise InvalidArgument("latitude must be within [-90, 90]", lat=lat)
    if frame == ECL2HOR:
        eps = true_obliquity(jd_ut + delta_t(jd_ut))
        ra, dec, _ = cotrans(body_lon, body_lat, body_dist, -eps)
    elif frame == EQU2HOR:
        ra, dec = body_lon, body_lat
    else:
        raise InvalidArgument("frame must be ECL2HOR or EQU2HOR", frame=frame)

    armc = sidereal_time(jd_ut) * 15.0 + lon
    az, true_alt = horizon_from_equatorial(armc, lat, ra, dec)
    if pressure == 0.0:
        pressure = pressure_at_altitude(alt)
    app_alt = refraction(true_alt, pressure, temperature, TRUE_TO_APP)
    return az, true_alt, app_alt


# ─────────────────────────────────────────────────────────────────────────────
# Degree splitting
# ─────────────────────────────────────────────────────────────────────────────
def split_degrees(value: float, flags: int = 0) -> Tuple[int, int, int, float, int]:
    """
    Decompose an angle into (deg, min, sec, sec_fraction, sign).

    ``sign`` is ±1, or the zodiac sign index (0..11) with SPLIT_DEG_ZODIACAL,
    or the nakshatra index (0..26) with SPLIT_DEG_NAKSHATRA; in those modes
    ``deg`` is counted within the segment.
    """
    if not math.isfinite(value):
        raise InvalidArgument("value must be finite", value=value)
    sign = 1
    d = value
    if d < 0.0:
        sign = -1
        d = -d

    if flags & SPLIT_DEG_ROUND_DEG:
        dadd = 0.5
    elif flags & SPLIT_DEG_ROUND_MIN:
        dadd = 0.5 / 60.0
    elif flags & SPLIT_DEG_ROUND_SEC:
        dadd = 0.5 / 3600.0
    else:
        dadd = 0.0
    if flags & SPLIT_DEG_KEEP_DEG:
        if int(d + dadd) - int(d) > 0:
            dadd = 0.0
    elif flags & SPLIT_DEG_KEEP_SIGN:
        if math.fmod(d, 30.0) + dadd >= 30.0:
            dadd = 0.0
    d += dadd

    if flags & SPLIT_DEG_ZODIACAL:
        sign = int(d / 30.0)
        if sign == 12:
            sign = 0
        d = math.fmod(d, 30.0)
    elif flags & SPLIT_DEG_NAKSHATRA:
        d = normalize_degrees(d)
        sign = int(d / _NAKSHATRA_DEG)
        if sign == 27:
            sign = 0
        d -= sign * _NAKSHATRA_DEG

    ideg = int(d)
    d -= ideg
    imin = int(d * 60.0)
    d -= imin / 60.0
    isec = int(d * 3600.0)
    if flags & (SPLIT_DEG_ROUND_DEG | SPLIT_DEG_ROUND_MIN | SPLIT_DEG_ROUND_SEC):
        secfr = 0.0
        if flags & SPLIT_DEG_ROUND_DEG:
            imin = isec = 0
        elif flags & SPLIT_DEG_ROUND_MIN:
            isec = 0
    else:
        secfr = d * 3600.0 - isec
    return ideg, imin, isec, secfr, sign
