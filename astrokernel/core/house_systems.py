# astrokernel/core/house_systems.py
"""
House engines: angles (Asc, MC, Vertex, …) and the 12 cusps for every
supported system, from ARMC, geographic latitude and obliquity.

Geometry
- Asc1(x, f): ecliptic longitude where the great circle through the north/south
  horizon points with pole height f meets the ecliptic, for the equator point
  at right ascension x.  The ascendant is Asc1(ARMC + 90, φ); Regiomontanus,
  Campanus, Koch, Topocentric and Alcabitius reuse it with other (x, f).
- Placidus divides semi-arcs in time and has no closed form; each
  intermediate cusp is solved with the shared secant routine, seeded from
  Porphyry with equal-house backups.
- Sunshine needs the Sun's declination: its house circles pass through the
  horizon's north/south points and the trisection points of the Sun's
  diurnal and nocturnal arcs.

Cusp lists are 0-based (index 0 = house 1).  Policy (polar fallbacks,
sidereal shifts, validation) lives in houses.py.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional
import logging
import math
import os

import numpy as np

from .coordinates import cotrans, difference_degrees, normalize_degrees
from .errors import ConvergenceFailure, InvalidArgument, UndefinedAtLatitude
from .solvers import secant

log = logging.getLogger(__name__)

__all__ = [
    "angles",
    "asc1",
    "compute_cusps",
    "ENGINES",
    "PLACIDUS_MAX_ITERS",
    "PLACIDUS_TOL_F",
    "PLACIDUS_TOL_STEP",
]

VERY_SMALL = 1e-10

# Secant knobs (env-tunable for ops / testing)
PLACIDUS_MAX_ITERS = int(os.getenv("ASTRO_PLACIDUS_MAX_ITERS", "30"))
PLACIDUS_TOL_F = float(os.getenv("ASTRO_PLACIDUS_TOL_F", "1e-10"))       # residual (deg)
PLACIDUS_TOL_STEP = float(os.getenv("ASTRO_PLACIDUS_TOL_STEP", "1e-9"))  # last step (deg)


# --------------------------- angle helpers ---------------------------

def _sind(a: float) -> float: return math.sin(math.radians(a))
def _cosd(a: float) -> float: return math.cos(math.radians(a))
def _tand(a: float) -> float: return math.tan(math.radians(a))
def _atand(x: float) -> float: return math.degrees(math.atan(x))


def _asind(x: float) -> float:
    return math.degrees(math.asin(max(-1.0, min(1.0, x))))


def _midpoint_wrap(a: float, b: float) -> float:
    return normalize_degrees(a + normalize_degrees(b - a) / 2.0)


def _asc2(x: float, f: float, sine: float, cose: float) -> float:
    ass = -_tand(f) * sine + cose * _cosd(x)
    if abs(ass) < VERY_SMALL:
        ass = 0.0
    sinx = _sind(x)
    if abs(sinx) < VERY_SMALL:
        sinx = 0.0
    if sinx == 0.0:
        ass = -VERY_SMALL if ass < 0.0 else VERY_SMALL
    elif ass == 0.0:
        ass = -90.0 if sinx < 0.0 else 90.0
    else:
        ass = _atand(sinx / ass)
    if ass < 0.0:
        ass += 180.0
    return ass


def asc1(x: float, f: float, sine: float, cose: float) -> float:
    """Ecliptic point on the house circle of pole height ``f`` through RA ``x``."""
    x = normalize_degrees(x)
    n = int(x / 90.0) + 1
    if n == 1:
        ass = _asc2(x, f, sine, cose)
    elif n == 2:
        ass = 180.0 - _asc2(180.0 - x, -f, sine, cose)
    elif n == 3:
        ass = 180.0 + _asc2(x - 180.0, -f, sine, cose)
    else:
        ass = 360.0 - _asc2(360.0 - x, f, sine, cose)
    ass = normalize_degrees(ass)
    for snap in (90.0, 180.0, 270.0):
        if abs(ass - snap) < VERY_SMALL:
            ass = snap
    if abs(ass - 360.0) < VERY_SMALL:
        ass = 0.0
    return ass


def _mc(armc: float, eps: float) -> float:
    if abs(armc - 90.0) > VERY_SMALL and abs(armc - 270.0) > VERY_SMALL:
        mc = _atand(_tand(armc) / _cosd(eps))
        if 90.0 < armc <= 270.0:
            mc += 180.0
    else:
        mc = 90.0 if abs(armc - 90.0) <= VERY_SMALL else 270.0
    return normalize_degrees(mc)


def angles(armc: float, lat: float, eps: float) -> List[float]:
    """
    ascmc vector: [Asc, MC, ARMC, Vertex, equatorial Asc, co-Asc (Koch),
    co-Asc (Munkasey), polar Asc, 0, 0].
    """
    th = normalize_degrees(armc)
    sine, cose = _sind(eps), _cosd(eps)
    mc = _mc(th, eps)
    asc = asc1(th + 90.0, lat, sine, cose)

    f = 90.0 - lat if lat >= 0.0 else -90.0 - lat
    vertex = asc1(th - 90.0, f, sine, cose)
    # tropical latitudes: vertex may land on the MC side
    if abs(lat) <= eps and difference_degrees(vertex, mc) > 0.0:
        vertex = normalize_degrees(vertex + 180.0)

    equasc = asc1(th + 90.0, 0.0, sine, cose)
    coasc1 = normalize_degrees(asc1(th - 90.0, lat, sine, cose) + 180.0)
    coasc2 = asc1(th + 90.0, f, sine, cose)
    polasc = asc1(th - 90.0, lat, sine, cose)
    return [asc, mc, th, vertex, equasc, coasc1, coasc2, polasc, 0.0, 0.0]


# --------------------------- common cusp helpers ---------------------------

def _blank() -> List[Optional[float]]:
    return [None] * 12


def _fill_opposites(cusps: List[Optional[float]]) -> List[float]:
    """Fill opposing cusps by exact 180° where only one side was computed."""
    for a in range(6):
        b = a + 6
        if cusps[a] is not None and cusps[b] is None:
            cusps[b] = cusps[a] + 180.0
        elif cusps[b] is not None and cusps[a] is None:
            cusps[a] = cusps[b] + 180.0
    return [normalize_degrees(float(c)) for c in cusps]  # type: ignore[arg-type]


def _quadrant(asc: float, mc: float, c11: float, c12: float, c2: float, c3: float) -> List[float]:
    cusps = _blank()
    cusps[0], cusps[9] = asc, mc
    cusps[10], cusps[11] = c11, c12
    cusps[1], cusps[2] = c2, c3
    return _fill_opposites(cusps)


# --------------------------- closed-form engines ---------------------------

def _equal(asc: float) -> List[float]:
    return [normalize_degrees(asc + 30.0 * i) for i in range(12)]


def _whole(asc: float) -> List[float]:
    first = math.floor(asc / 30.0) * 30.0
    return [normalize_degrees(first + 30.0 * i) for i in range(12)]


def _vehlow_equal(asc: float) -> List[float]:
    start = normalize_degrees(asc - 15.0)
    return [normalize_degrees(start + 30.0 * i) for i in range(12)]


def _equal_from_mc(mc: float) -> List[float]:
    return [normalize_degrees(mc + 30.0 * (i + 3)) for i in range(12)]


def _natural_houses() -> List[float]:
    """Aries = 1st."""
    return [30.0 * i for i in range(12)]


def _porphyry(asc: float, mc: float) -> List[float]:
    acmc = difference_degrees(asc, mc)
    return _quadrant(
        asc, mc,
        mc + acmc / 3.0, mc + acmc / 3.0 * 2.0,
        asc + (180.0 - acmc) / 3.0, asc + (180.0 - acmc) / 3.0 * 2.0,
    )


def _sripati(asc: float, mc: float) -> List[float]:
    """Madhya Bhāva: midpoints of Porphyry boundaries."""
    por = _porphyry(asc, mc)
    return [_midpoint_wrap(por[(i - 1) % 12], por[i]) for i in range(12)]


def _regiomontanus(th: float, lat: float, sine: float, cose: float, asc: float, mc: float) -> List[float]:
    fh1 = _atand(_tand(lat) * 0.5)
    fh2 = _atand(_tand(lat) * _cosd(30.0))
    return _quadrant(
        asc, mc,
        asc1(th + 30.0, fh1, sine, cose), asc1(th + 60.0, fh2, sine, cose),
        asc1(th + 120.0, fh2, sine, cose), asc1(th + 150.0, fh1, sine, cose),
    )


def _topocentric(th: float, lat: float, sine: float, cose: float, asc: float, mc: float) -> List[float]:
    fh1 = _atand(_tand(lat) / 3.0)
    fh2 = _atand(_tand(lat) * 2.0 / 3.0)
    return _quadrant(
        asc, mc,
        asc1(th + 30.0, fh1, sine, cose), asc1(th + 60.0, fh2, sine, cose),
        asc1(th + 120.0, fh2, sine, cose), asc1(th + 150.0, fh1, sine, cose),
    )


def _campanus_cusps(th: float, lat: float, sine: float, cose: float) -> List[float]:
    fh1 = _asind(_sind(lat) / 2.0)
    fh2 = _asind(math.sqrt(3.0) / 2.0 * _sind(lat))
    cosfi = _cosd(lat)
    if abs(cosfi) < VERY_SMALL:
        xh1 = xh2 = 90.0 if lat > 0.0 else -90.0
    else:
        xh1 = _atand(math.sqrt(3.0) / cosfi)
        xh2 = _atand(1.0 / math.sqrt(3.0) / cosfi)
    return [
        asc1(th + 90.0 - xh1, fh1, sine, cose),
        asc1(th + 90.0 - xh2, fh2, sine, cose),
        asc1(th + 90.0 + xh2, fh2, sine, cose),
        asc1(th + 90.0 + xh1, fh1, sine, cose),
    ]


def _campanus(th: float, lat: float, sine: float, cose: float, asc: float, mc: float) -> List[float]:
    c11, c12, c2, c3 = _campanus_cusps(th, lat, sine, cose)
    return _quadrant(asc, mc, c11, c12, c2, c3)


def _horizontal(th: float, lat: float, sine: float, cose: float, asc: float, mc: float) -> List[float]:
    """Azimuthal houses: Campanus on the horizon instead of the prime vertical."""
    fi = 90.0 - lat if lat > 0.0 else -90.0 - lat
    if abs(abs(fi) - 90.0) < VERY_SMALL:
        fi = -90.0 + VERY_SMALL if fi < 0.0 else 90.0 - VERY_SMALL
    th2 = normalize_degrees(th + 180.0)
    c11, c12, c2, c3 = (c + 180.0 for c in _campanus_cusps(th2, fi, sine, cose))
    c1 = asc1(th2 + 90.0, fi, sine, cose) + 180.0
    return _quadrant(normalize_degrees(c1), mc, c11, c12, c2, c3)


def _koch(th: float, lat: float, sine: float, cose: float, asc: float, mc: float) -> List[float]:
    sina = _sind(mc) * sine / _cosd(lat)
    sina = max(-1.0, min(1.0, sina))
    cosa = math.sqrt(1.0 - sina * sina)
    c = _atand(_tand(lat) / cosa)
    ad3 = _asind(_sind(c) * sina) / 3.0
    return _quadrant(
        asc, mc,
        asc1(th + 30.0 - 2.0 * ad3, lat, sine, cose), asc1(th + 60.0 - ad3, lat, sine, cose),
        asc1(th + 120.0 + ad3, lat, sine, cose), asc1(th + 150.0 + 2.0 * ad3, lat, sine, cose),
    )


def _alcabitius(th: float, lat: float, sine: float, cose: float, asc: float, mc: float,
                warnings: List[str]) -> List[float]:
    dek = _asind(_sind(asc) * sine)
    r = -_tand(lat) * _tand(dek)
    if abs(r) > 1.0:
        warnings.append("alcabitius_semi_arc_clamped")
        r = max(-1.0, min(1.0, r))
    sda = math.degrees(math.acos(r))
    sna = 180.0 - sda
    sd3, sn3 = sda / 3.0, sna / 3.0
    return _quadrant(
        asc, mc,
        asc1(th + sd3, 0.0, sine, cose), asc1(th + 2.0 * sd3, 0.0, sine, cose),
        asc1(th + 180.0 - 2.0 * sn3, 0.0, sine, cose), asc1(th + 180.0 - sn3, 0.0, sine, cose),
    )


def _equator_division(th: float, cose: float, project: Callable[[float, float], float]) -> List[float]:
    # cusp i (1-based) sits at right ascension ARMC + 30·(i + 2)
    return [normalize_degrees(project(normalize_degrees(th + 30.0 * (i + 3)), cose)) for i in range(12)]


def _ra_to_ecliptic_along_meridian(a: float, cose: float) -> float:
    lam = _atand(_tand(a) / cose)
    return lam + 180.0 if 90.0 < a <= 270.0 else lam


def _ra_to_ecliptic_from_equator(a: float, cose: float) -> float:
    lam = _atand(_tand(a) * cose)
    return lam + 180.0 if 90.0 < a <= 270.0 else lam


# --------------------------- Placidus (semi-arc solver) ---------------------------

def _decl_of_lambda(lam: float, sine: float) -> float:
    return _asind(sine * _sind(lam))


def _ra_of_lambda(lam: float, cose: float) -> float:
    return normalize_degrees(math.degrees(math.atan2(_sind(lam) * cose, _cosd(lam))))


def _sda(dec: float, lat: float) -> float:
    t = -_tand(lat) * _tand(dec)
    if abs(t) > 1.0:
        raise UndefinedAtLatitude("ecliptic point is circumpolar", lat=lat, dec=dec)
    return math.degrees(math.acos(t))


def _placidus(th: float, lat: float, sine: float, cose: float, asc: float, mc: float,
              diag: Optional[Dict[str, dict]] = None) -> List[float]:
    """
    Cusp 11/12: RA − ARMC = SDA/3, 2·SDA/3 of the cusp's own declination;
    cusp 2/3: SDA + NSA/3, SDA + 2·NSA/3.
    """

    def eq_builder(arc_of: Callable[[float], float]) -> Callable[[float], float]:
        def f(lam: float) -> float:
            dra = difference_degrees(_ra_of_lambda(lam, cose), th)
            return dra - arc_of(_sda(_decl_of_lambda(lam, sine), lat))
        return f

    targets = {
        10: lambda sda: sda / 3.0,
        11: lambda sda: 2.0 * sda / 3.0,
        1: lambda sda: sda + (180.0 - sda) / 3.0,
        2: lambda sda: sda + 2.0 * (180.0 - sda) / 3.0,
    }
    por = _porphyry(asc, mc)
    eq = _equal(asc)
    solved: Dict[int, float] = {}
    for idx, arc_of in targets.items():
        f = eq_builder(arc_of)
        seeds = [por[idx], eq[idx], normalize_degrees(por[idx] + 5.0), normalize_degrees(por[idx] - 5.0)]
        for seed in seeds:
            res = secant(f, seed, seed + 1.0, tol_f=PLACIDUS_TOL_F, tol_step=PLACIDUS_TOL_STEP,
                         max_iter=PLACIDUS_MAX_ITERS, wrap=normalize_degrees)
            if res.found:
                solved[idx] = float(res.x)  # type: ignore[arg-type]
                if diag is not None:
                    diag[f"P:C{idx + 1}"] = {"iters": res.iterations, "residual_deg": abs(res.fx or 0.0),
                                             "seed_deg": seed}
                break
            log.debug("placidus cusp %d: seed %.6f did not converge", idx + 1, seed)
        else:
            raise ConvergenceFailure("Placidus cusp did not converge", cusp=idx + 1, lat=lat, armc=th)
    return _quadrant(asc, mc, solved[10], solved[11], solved[1], solved[2])


# --------------------------- Sunshine ---------------------------

def _sunshine(th: float, lat: float, eps: float, asc: float, mc: float, sun_dec: float) -> List[float]:
    if abs(lat) + abs(sun_dec) >= 90.0:
        raise UndefinedAtLatitude("Sun is circumpolar; Sunshine houses are undefined",
                                  lat=lat, sun_declination=sun_dec)
    sda = math.degrees(math.acos(-_tand(lat) * _tand(sun_dec)))
    nsa = 180.0 - sda

    # local equatorial frame: x → meridian (H = 0), y → east, z → celestial pole
    north = np.array([-_sind(lat), 0.0, _cosd(lat)])
    hk = th - 270.0
    pole_ecl = np.array([_sind(eps) * _cosd(hk), -_sind(eps) * _sind(hk), _cosd(eps)])

    def cusp(hour_angle: float, east: bool) -> float:
        p = np.array([_cosd(sun_dec) * _cosd(hour_angle), -_cosd(sun_dec) * _sind(hour_angle), _sind(sun_dec)])
        circle_pole = np.cross(north, p)
        d = np.cross(circle_pole, pole_ecl)
        d /= np.linalg.norm(d)
        if (d[1] > 0.0) != east:
            d = -d
        ha = math.degrees(math.atan2(-d[1], d[0]))
        dec = _asind(d[2])
        lon, _lat, _ = cotrans(th - ha, dec, 1.0, eps)
        return lon

    cusps: List[Optional[float]] = [
        asc,
        cusp(-(sda + nsa / 3.0), True),
        cusp(-(sda + 2.0 * nsa / 3.0), True),
        mc + 180.0,
        cusp(sda + 2.0 * nsa / 3.0, False),
        cusp(sda + nsa / 3.0, False),
        asc + 180.0,
        cusp(2.0 * sda / 3.0, False),
        cusp(sda / 3.0, False),
        mc,
        cusp(-sda / 3.0, True),
        cusp(-2.0 * sda / 3.0, True),
    ]
    return [normalize_degrees(float(c)) for c in cusps]  # type: ignore[arg-type]


# --------------------------- dispatch ---------------------------

ENGINES = frozenset("ABCDEHIKMNOPRSTVWX")


def compute_cusps(code: str, armc: float, lat: float, eps: float, ascmc: List[float],
                  sun_declination: Optional[float] = None, warnings: Optional[List[str]] = None,
                  diag: Optional[Dict[str, dict]] = None) -> List[float]:
    """12 cusps for ``code``; ``ascmc`` comes from :func:`angles`."""
    th = normalize_degrees(armc)
    sine, cose = _sind(eps), _cosd(eps)
    asc, mc = ascmc[0], ascmc[1]
    warns = warnings if warnings is not None else []

    if code in ("A", "E"):
        # the ascendant must be the eastern horizon point
        if difference_degrees(asc, mc) < 0.0:
            asc = normalize_degrees(asc + 180.0)
        return _equal(asc)
    if code == "D":
        return _equal_from_mc(mc)
    if code == "N":
        return _natural_houses()
    if code == "V":
        return _vehlow_equal(asc)
    if code == "W":
        return _whole(asc)
    if code == "O":
        return _porphyry(asc, mc)
    if code == "S":
        return _sripati(asc, mc)
    if code == "R":
        return _regiomontanus(th, lat, sine, cose, asc, mc)
    if code == "T":
        return _topocentric(th, lat, sine, cose, asc, mc)
    if code == "C":
        return _campanus(th, lat, sine, cose, asc, mc)
    if code == "H":
        return _horizontal(th, lat, sine, cose, asc, mc)
    if code == "K":
        return _koch(th, lat, sine, cose, asc, mc)
    if code == "B":
        return _alcabitius(th, lat, sine, cose, asc, mc, warns)
    if code == "M":
        return _equator_division(th, cose, _ra_to_ecliptic_from_equator)
    if code == "X":
        return _equator_division(th, cose, _ra_to_ecliptic_along_meridian)
    if code == "P":
        return _placidus(th, lat, sine, cose, asc, mc, diag)
    if code == "I":
        if sun_declination is None:
            raise InvalidArgument("Sunshine houses need the Sun's declination")
        return _sunshine(th, lat, eps, asc, mc, sun_declination)
    raise InvalidArgument("unsupported house engine", code=code)
