# astrokernel/core/series.py
"""
Built-in analytic ephemeris.

Sources
- Earth / Sun : erfa.epv00 (heliocentric + barycentric Earth)
- Mercury … Neptune : erfa.plan94 (Simon et al. 1994 mean elements + perturbations)
- Moon : erfa.moon98 (truncated ELP, geocentric)
- Pluto : Standish mean Keplerian elements (J2000 ecliptic, valid 1800–2050)
- Chiron, Pholus, Ceres, Pallas, Juno, Vesta : fixed osculating elements,
  two-body propagation (arcminute-level near the element epoch, degrading
  with distance from it; use a provider for precise work)
- Lunar nodes / apogees : mean polynomials (Meeus ch. 47) or the osculating
  geocentric lunar orbit

Every state is (pos, vel) in AU and AU/day on GCRS-aligned equatorial axes,
time argument TT.  Lunar points come back as geocentric position vectors on
the same axes.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Dict, Tuple
import logging
import math
import warnings

import erfa
import numpy as np

from .constants import (
    CERES,
    CHIRON,
    EARTH,
    EARTH_MOON_MRAT,
    GAUSS_K,
    J2000,
    JUNO,
    JUPITER,
    MARS,
    MEAN_APOG,
    MEAN_NODE,
    MERCURY,
    MOON,
    NEPTUNE,
    OSCU_APOG,
    PALLAS,
    PHOLUS,
    PLUTO,
    SATURN,
    SUN,
    TRUE_NODE,
    URANUS,
    VENUS,
    VESTA,
)
from .errors import UnknownBody
from .frames import EPS_J2000_DEG, from_spherical, mean_obliquity, rot_x, split_jd
from .kepler import elements_to_state, state_to_elements

log = logging.getLogger(__name__)

__all__ = [
    "State",
    "earth_heliocentric",
    "earth_barycentric",
    "sun_barycentric",
    "moon_geocentric",
    "emb_heliocentric",
    "heliocentric_state",
    "barycentric_state",
    "lunar_point",
    "ANALYTIC_BODIES",
    "MU_SUN",
    "MU_EARTH_MOON",
]

State = Tuple[np.ndarray, np.ndarray]

MU_SUN = GAUSS_K * GAUSS_K
# (Earth + Moon) in solar masses = 1 / 328900.56
MU_EARTH_MOON = MU_SUN / 328900.56

_MEAN_NODE_DIST = 0.0025695553      # mean Earth–Moon distance, AU
_MEAN_APOG_DIST = 0.0027106         # a(1 + e) of the mean lunar orbit, AU
_MOON_MEAN_INCL = 5.1453964

# erfa.plan94 planet numbers
_PLAN94_INDEX: Dict[int, int] = {
    MERCURY: 1, VENUS: 2, MARS: 4, JUPITER: 5, SATURN: 6, URANUS: 7, NEPTUNE: 8,
}

# J2000 ecliptic → GCRS-aligned equator
_ECL2000_TO_EQU = rot_x(-EPS_J2000_DEG)


def _pv(arr) -> State:
    """Unpack an ERFA pv array (structured 'p'/'v' or plain (2, 3))."""
    a = np.asarray(arr)
    if a.dtype.names:
        return np.array(a["p"], dtype=float), np.array(a["v"], dtype=float)
    a = a.reshape(2, 3)
    return np.array(a[0], dtype=float), np.array(a[1], dtype=float)


# ─────────────────────────────────────────────────────────────────────────────
# ERFA series
# ─────────────────────────────────────────────────────────────────────────────
@lru_cache(maxsize=2048)
def _epv00(jd_tt: float) -> Tuple[Tuple[float, ...], ...]:
    with warnings.catch_warnings():
        # outside 1900–2100 ERFA flags reduced accuracy; the series still applies
        warnings.simplefilter("ignore", erfa.ErfaWarning)
        pvh, pvb = erfa.epv00(*split_jd(jd_tt))
    hp, hv = _pv(pvh)
    bp, bv = _pv(pvb)
    return tuple(hp), tuple(hv), tuple(bp), tuple(bv)


def earth_heliocentric(jd_tt: float) -> State:
    hp, hv, _bp, _bv = _epv00(float(jd_tt))
    return np.array(hp), np.array(hv)


def earth_barycentric(jd_tt: float) -> State:
    _hp, _hv, bp, bv = _epv00(float(jd_tt))
    return np.array(bp), np.array(bv)


def sun_barycentric(jd_tt: float) -> State:
    hp, hv, bp, bv = _epv00(float(jd_tt))
    return np.array(bp) - np.array(hp), np.array(bv) - np.array(hv)


@lru_cache(maxsize=2048)
def _moon98(jd_tt: float) -> Tuple[Tuple[float, ...], Tuple[float, ...]]:
    p, v = _pv(erfa.moon98(*split_jd(jd_tt)))
    return tuple(p), tuple(v)


def moon_geocentric(jd_tt: float) -> State:
    p, v = _moon98(float(jd_tt))
    return np.array(p), np.array(v)


def _plan94(body: int, jd_tt: float) -> State:
    with warnings.catch_warnings():
        # outside 1000–3000 AD ERFA flags reduced accuracy
        warnings.simplefilter("ignore", erfa.ErfaWarning)
        pv = erfa.plan94(*split_jd(jd_tt), _PLAN94_INDEX[body])
    return _pv(pv)


def emb_heliocentric(jd_tt: float) -> State:
    """Earth–Moon barycentre, heliocentric."""
    ep, ev = earth_heliocentric(jd_tt)
    mp, mv = moon_geocentric(jd_tt)
    f = 1.0 / (1.0 + EARTH_MOON_MRAT)
    return ep + f * mp, ev + f * mv


# ─────────────────────────────────────────────────────────────────────────────
# Keplerian bodies
# ─────────────────────────────────────────────────────────────────────────────
# Pluto, Standish (JPL "Keplerian Elements for Approximate Positions"):
# (value at J2000, rate per Julian century) for a, e, I, L, ϖ, Ω
_PLUTO_ELEMENTS = (
    (39.48211675, -0.00031596),
    (0.24882730, 0.00005170),
    (17.14001206, 0.00004818),
    (238.92903833, 145.20780515),
    (224.06891629, -0.04062942),
    (110.30393684, -0.01183482),
)

# Osculating heliocentric elements, J2000 ecliptic:
# a [AU], e, i, Ω, ω [deg], time of perihelion [JD TT]
_MINOR_ELEMENTS: Dict[int, Tuple[float, float, float, float, float, float]] = {
    CHIRON: (13.692, 0.3789, 6.926, 209.30, 339.25, 2450128.0),
    PHOLUS: (20.30, 0.5727, 24.68, 119.29, 354.86, 2448520.0),
    CERES: (2.7672, 0.0789, 10.588, 80.255, 73.398, 2459921.0),
    PALLAS: (2.7704, 0.2298, 34.93, 172.89, 310.93, 2459783.0),
    JUNO: (2.6689, 0.2570, 12.99, 169.84, 247.95, 2459938.0),
    VESTA: (2.3615, 0.0887, 7.142, 103.71, 151.66, 2459575.0),
}


def _pluto_heliocentric(jd_tt: float) -> State:
    t = (jd_tt - J2000) / 36525.0
    a, e, incl, mean_lon, peri_lon, node = (v0 + rate * t for v0, rate in _PLUTO_ELEMENTS)
    p, v = elements_to_state(a, e, incl, node, peri_lon - node,
                             (mean_lon - peri_lon) % 360.0, MU_SUN)
    return _ECL2000_TO_EQU @ p, _ECL2000_TO_EQU @ v


def _minor_heliocentric(body: int, jd_tt: float) -> State:
    a, e, incl, node, peri, tp = _MINOR_ELEMENTS[body]
    n = math.degrees(math.sqrt(MU_SUN / a ** 3))
    mean_anom = (n * (jd_tt - tp)) % 360.0
    p, v = elements_to_state(a, e, incl, node, peri, mean_anom, MU_SUN)
    return _ECL2000_TO_EQU @ p, _ECL2000_TO_EQU @ v


ANALYTIC_BODIES = (SUN, MOON, EARTH, PLUTO) + tuple(_PLAN94_INDEX) + tuple(_MINOR_ELEMENTS)


# ─────────────────────────────────────────────────────────────────────────────
# Public state accessors
# ─────────────────────────────────────────────────────────────────────────────
def heliocentric_state(body: int, jd_tt: float) -> State:
    if body == SUN:
        return np.zeros(3), np.zeros(3)
    if body == EARTH:
        return earth_heliocentric(jd_tt)
    if body == MOON:
        ep, ev = earth_heliocentric(jd_tt)
        mp, mv = moon_geocentric(jd_tt)
        return ep + mp, ev + mv
    if body in _PLAN94_INDEX:
        return _plan94(body, jd_tt)
    if body == PLUTO:
        return _pluto_heliocentric(jd_tt)
    if body in _MINOR_ELEMENTS:
        return _minor_heliocentric(body, jd_tt)
    raise UnknownBody("body has no analytic model", body=body)


def barycentric_state(body: int, jd_tt: float) -> State:
    sp, sv = sun_barycentric(jd_tt)
    if body == SUN:
        return sp, sv
    hp, hv = heliocentric_state(body, jd_tt)
    return hp + sp, hv + sv


# ─────────────────────────────────────────────────────────────────────────────
# Lunar nodes & apogees
# ─────────────────────────────────────────────────────────────────────────────
def _mean_of_date_ecliptic(jd_tt: float) -> np.ndarray:
    """GCRS → mean ecliptic & equinox of date."""
    pmat = np.asarray(erfa.pmat06(*split_jd(jd_tt)))
    return rot_x(mean_obliquity(jd_tt)) @ pmat


def _mean_node_lon(t: float) -> float:
    return (125.0445479 - 1934.1362891 * t + 0.0020754 * t * t
            + t ** 3 / 467441.0 - t ** 4 / 60616000.0)


def _mean_perigee_lon(t: float) -> float:
    return (83.3532465 + 4069.0137287 * t - 0.0103200 * t * t
            - t ** 3 / 80053.0 + t ** 4 / 18999000.0)


def _mean_point(body: int, jd_tt: float) -> np.ndarray:
    t = (jd_tt - J2000) / 36525.0
    node = _mean_node_lon(t)
    if body == MEAN_NODE:
        vec = from_spherical(node, 0.0, _MEAN_NODE_DIST)
    else:
        # apogee lies on the inclined mean orbit: project from the orbit plane
        u = math.radians(_mean_perigee_lon(t) + 180.0 - node)
        ci, si = math.cos(math.radians(_MOON_MEAN_INCL)), math.sin(math.radians(_MOON_MEAN_INCL))
        lon = node + math.degrees(math.atan2(ci * math.sin(u), math.cos(u)))
        lat = math.degrees(math.asin(si * math.sin(u)))
        vec = from_spherical(lon, lat, _MEAN_APOG_DIST)
    return _mean_of_date_ecliptic(jd_tt).T @ vec


def _osculating_point(body: int, jd_tt: float, ecl_matrix: np.ndarray) -> np.ndarray:
    mp, mv = moon_geocentric(jd_tt)
    conic = state_to_elements(ecl_matrix @ mp, ecl_matrix @ mv, MU_EARTH_MOON)
    if body == TRUE_NODE:
        # ascending node sits at true anomaly −ω
        p = conic.a * (1.0 - conic.e * conic.e)
        dist = p / (1.0 + conic.e * math.cos(math.radians(conic.peri)))
        vec = from_spherical(conic.node, 0.0, dist)
    else:
        e_vec = np.asarray(conic.ecc_vector)
        vec = -e_vec / conic.e * conic.a * (1.0 + conic.e)
    return ecl_matrix.T @ vec


def lunar_point(body: int, jd_tt: float, ecl_matrix: np.ndarray) -> np.ndarray:
    """
    Geocentric vector (GCRS axes) of a lunar node or apogee.

    ``ecl_matrix`` maps GCRS onto the ecliptic the caller reports in; the
    osculating points are defined against that ecliptic, the mean points
    against the mean ecliptic of date.
    """
    if body in (MEAN_NODE, MEAN_APOG):
        return _mean_point(body, jd_tt)
    if body in (TRUE_NODE, OSCU_APOG):
        return _osculating_point(body, jd_tt, ecl_matrix)
    raise UnknownBody("not a lunar point", body=body)
