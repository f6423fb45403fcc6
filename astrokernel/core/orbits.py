# astrokernel/core/orbits.py
"""
Osculating orbital elements, and the nodes and apsides of planetary orbits.

orbital_elements
  Heliocentric state (Earth: Earth–Moon barycentre; Moon: geocentric) in the
  ecliptic and equinox of J2000, μ = k²(1 + m), then the classical elements
  and the derived periods.

nodes_apsides
  NODBIT_MEAN  mean elements of Mercury…Neptune (Meeus, table 31.A, mean
               equinox of date); other bodies use osculating elements.
  NODBIT_OSCU  osculating elements from the current state.
  The Moon's points come from the lunar node/apogee model.
"""
from __future__ import annotations

from dataclasses import astuple, dataclass
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple
import logging
import math

import erfa
import numpy as np

from . import series
from .constants import (
    EARTH,
    EARTH_MOON_MRAT,
    EPHE_MASK,
    FLG_HELCTR,
    GAUSS_K,
    J2000,
    JUPITER,
    LUNAR_POINTS,
    MARS,
    MEAN_APOG,
    MEAN_NODE,
    MERCURY,
    MOON,
    NEPTUNE,
    NODBIT_MEAN,
    NODBIT_OSCU,
    OSCU_APOG,
    PLUTO,
    SATURN,
    SUN,
    TRUE_NODE,
    URANUS,
    VENUS,
)
from .context import DEFAULT_CONTEXT, EngineContext
from .deltat import delta_t
from .ephemeris import PositionVector, Source, evaluate, position, to_output, validate_body
from .errors import InvalidArgument
from .frames import EPS_J2000_DEG, mean_obliquity, rot_x, split_jd
from .kepler import Conic, orbit_point, state_to_elements

log = logging.getLogger(__name__)

__all__ = ["OrbitalElements", "NodesApsides", "orbital_elements", "nodes_apsides"]

# inverse planetary masses (Sun / planet); EMB for the Earth
_INV_MASS: Dict[int, float] = {
    MERCURY: 6023600.0,
    VENUS: 408523.71,
    EARTH: 328900.56,
    MARS: 3098708.0,
    JUPITER: 1047.3486,
    SATURN: 3497.898,
    URANUS: 22902.98,
    NEPTUNE: 19412.24,
    PLUTO: 1.35e8,
}

_EARTH_SIDEREAL_DAYS = 365.256363004
_DAYS_PER_YEAR = 365.25
# general precession in longitude, degrees per day
_PRECESSION_RATE = 5028.796195 / 3600.0 / 36525.0
_MOON_MEAN_ECC = 0.054900489
_SPEED_STEP = 0.1

_ECL2000 = rot_x(EPS_J2000_DEG)


class OrbitalElements(NamedTuple):
    a: float
    e: float
    i: float
    node: float
    peri: float
    peri_longitude: float
    mean_anomaly: float
    true_anomaly: float
    eccentric_anomaly: float
    mean_longitude: float
    sidereal_period: float      # years
    daily_motion: float         # degrees / day
    tropical_period: float      # years
    synodic_period: float       # days
    perihelion_time: float      # JD (TT)
    perihelion_distance: float
    aphelion_distance: float

    def as_list(self) -> List[float]:
        return list(self)


@dataclass(frozen=True)
class NodesApsides:
    ascending: PositionVector
    descending: PositionVector
    perihelion: PositionVector
    aphelion: PositionVector

    def as_list(self) -> List[Tuple[float, ...]]:
        return [tuple(p) for p in astuple(self)]


# ─────────────────────────────────────────────────────────────────────────────
# Osculating elements
# ─────────────────────────────────────────────────────────────────────────────
def _mu(body: int) -> float:
    if body == MOON:
        return series.MU_EARTH_MOON
    inv = _INV_MASS.get(body)
    return GAUSS_K * GAUSS_K * (1.0 + (1.0 / inv if inv else 0.0))


def _central_state(body: int, jd_tt: float, source: Source) -> Tuple[np.ndarray, np.ndarray]:
    """GCRS state relative to the central body (Sun, or Earth for the Moon)."""
    if body == MOON:
        mp, mv = source.state(MOON, jd_tt)
        ep, ev = source.state(EARTH, jd_tt)
        return mp - ep, mv - ev
    sp, sv = source.state(SUN, jd_tt)
    p, v = source.state(body, jd_tt)
    if body == EARTH:
        mp, mv = source.state(MOON, jd_tt)
        p = p + (mp - p) / (1.0 + EARTH_MOON_MRAT)
        v = v + (mv - v) / (1.0 + EARTH_MOON_MRAT)
    return p - sp, v - sv


def _check_orbit_body(body: int) -> int:
    body = validate_body(body)
    if body == SUN or body in LUNAR_POINTS:
        raise InvalidArgument("orbital elements need an orbiting body", body=body)
    return body


def _synodic(period_days: float, body: int) -> float:
    if body == EARTH or not math.isfinite(period_days):
        return math.nan
    inv = abs(1.0 / period_days - 1.0 / _EARTH_SIDEREAL_DAYS)
    return 1.0 / inv if inv > 0.0 else math.inf


def _derive(conic: Conic, body: int, jd_et: float) -> OrbitalElements:
    e, a = conic.e, conic.a
    elliptic = e < 1.0
    n = conic.mean_motion
    if elliptic:
        period_days = 360.0 / n
        sidereal = period_days / _DAYS_PER_YEAR
        tropical = 360.0 / (n + _PRECESSION_RATE) / _DAYS_PER_YEAR
        synodic = _synodic(period_days, body)
        t_peri = jd_et - conic.mean_anomaly / n
        aphelion = a * (1.0 + e)
    else:
        sidereal = tropical = synodic = n = t_peri = aphelion = math.nan
    peri_lon = (conic.node + conic.peri) % 360.0
    return OrbitalElements(
        a=a,
        e=e,
        i=conic.i,
        node=conic.node,
        peri=conic.peri,
        peri_longitude=peri_lon,
        mean_anomaly=conic.mean_anomaly,
        true_anomaly=conic.true_anomaly,
        eccentric_anomaly=conic.eccentric_anomaly,
        mean_longitude=(peri_lon + conic.mean_anomaly) % 360.0 if elliptic else math.nan,
        sidereal_period=sidereal,
        daily_motion=n,
        tropical_period=tropical,
        synodic_period=synodic,
        perihelion_time=t_peri,
        perihelion_distance=a * (1.0 - e),
        aphelion_distance=aphelion,
    )


def orbital_elements(jd_et: float, body: int, flags: int = 0,
                     ctx: Optional[EngineContext] = None) -> OrbitalElements:
    """Osculating elements in the ecliptic and equinox of J2000 at an ET instant."""
    if not math.isfinite(jd_et):
        raise InvalidArgument("jd_et must be finite", jd=jd_et)
    body = _check_orbit_body(body)
    ctx = ctx or DEFAULT_CONTEXT
    source = Source(flags & EPHE_MASK, ctx)
    p, v = _central_state(body, jd_et, source)
    conic = state_to_elements(_ECL2000 @ p, _ECL2000 @ v, _mu(body))
    return _derive(conic, body, jd_et)


# ─────────────────────────────────────────────────────────────────────────────
# Mean elements (Meeus table 31.A, mean equinox of date)
# ─────────────────────────────────────────────────────────────────────────────
# a, e, i, Ω, ϖ as polynomials in Julian centuries from J2000
_MEAN_ELEMENTS: Dict[int, Dict[str, Tuple[float, ...]]] = {
    MERCURY: {
        "a": (0.387098310,),
        "e": (0.20563175, 0.000020407, -0.0000000283, -0.00000000018),
        "i": (7.004986, 0.0018215, -0.00001810, 0.000000056),
        "node": (48.330893, 1.1861883, 0.00017542, 0.000000215),
        "pi": (77.456119, 1.5564776, 0.00029544, 0.000000009),
    },
    VENUS: {
        "a": (0.723329820,),
        "e": (0.00677192, -0.000047765, 0.0000000981, 0.00000000046),
        "i": (3.394662, 0.0010037, -0.00000088, -0.000000007),
        "node": (76.679920, 0.9011206, 0.00040618, -0.000000093),
        "pi": (131.563703, 1.4022288, -0.00107618, -0.000005678),
    },
    EARTH: {
        "a": (1.000001018,),
        "e": (0.01670863, -0.000042037, -0.0000001267, 0.00000000014),
        "i": (0.0,),
        "node": (0.0,),
        "pi": (102.937348, 1.7195366, 0.00045688, -0.000000018),
    },
    MARS: {
        "a": (1.523679342,),
        "e": (0.09340065, 0.000090484, -0.0000000806, -0.00000000025),
        "i": (1.849726, -0.0006011, 0.00001276, -0.000000007),
        "node": (49.558093, 0.7720959, 0.00001557, 0.000002267),
        "pi": (336.060234, 1.8410449, 0.00013477, 0.000000536),
    },
    JUPITER: {
        "a": (5.202603209, 0.0000001913),
        "e": (0.04849793, 0.000163225, -0.0000004714, -0.00000000201),
        "i": (1.303267, -0.0054965, 0.00000466, -0.000000002),
        "node": (100.464407, 1.0209774, 0.00040315, 0.000000404),
        "pi": (14.331207, 1.6126352, 0.00103042, -0.000004464),
    },
    SATURN: {
        "a": (9.554909192, -0.0000021390, 0.000000004),
        "e": (0.05554814, -0.000346641, -0.0000006436, 0.00000000340),
        "i": (2.488879, -0.0037362, -0.00001519, 0.000000087),
        "node": (113.665503, 0.8770880, -0.00012176, -0.000002249),
        "pi": (93.057237, 1.9637613, 0.00083753, 0.000004928),
    },
    URANUS: {
        "a": (19.218446062, -0.0000000372, 0.00000000098),
        "e": (0.04638122, -0.000027293, 0.0000000789, 0.00000000024),
        "i": (0.773197, 0.0007744, 0.00003749, -0.000000092),
        "node": (74.005957, 0.5211278, 0.00133947, 0.000018484),
        "pi": (173.005291, 1.4863790, 0.00021406, 0.000000434),
    },
    NEPTUNE: {
        "a": (30.110386869, -0.0000001663, 0.00000000069),
        "e": (0.00945575, 0.000006033, 0.0, -0.00000000005),
        "i": (1.769953, -0.0093082, -0.00000708, 0.000000027),
        "node": (131.784057, 1.1022039, 0.00025952, -0.000000637),
        "pi": (48.120276, 1.4262957, 0.00003818, -0.000000074),
    },
}


def _poly(coeffs: Tuple[float, ...], t: float) -> float:
    return sum(c * t ** k for k, c in enumerate(coeffs))


def _mean_of_date_to_gcrs(jd_tt: float) -> np.ndarray:
    pmat = np.asarray(erfa.pmat06(*split_jd(jd_tt)))
    return (rot_x(mean_obliquity(jd_tt)) @ pmat).T


def _mean_orbit(body: int, jd_tt: float) -> Tuple[float, float, float, float, float, np.ndarray]:
    """(a, e, i, Ω, ω, frame→GCRS) of the mean orbit of date."""
    el = _MEAN_ELEMENTS[body]
    t = (jd_tt - J2000) / 36525.0
    node = _poly(el["node"], t)
    peri = _poly(el["pi"], t) - node
    return (_poly(el["a"], t), _poly(el["e"], t), _poly(el["i"], t), node, peri,
            _mean_of_date_to_gcrs(jd_tt))


def _osculating_orbit(body: int, jd_tt: float,
                      source: Source) -> Tuple[float, float, float, float, float, np.ndarray]:
    p, v = _central_state(body, jd_tt, source)
    conic = state_to_elements(_ECL2000 @ p, _ECL2000 @ v, _mu(body))
    return conic.a, conic.e, conic.i, conic.node, conic.peri, _ECL2000.T


# true anomaly of each point, from ω
_POINT_ANOMALY: Dict[str, Callable[[float], float]] = {
    "ascending": lambda peri: -peri,
    "descending": lambda peri: 180.0 - peri,
    "perihelion": lambda peri: 0.0,
    "aphelion": lambda peri: 180.0,
}


def _lunar_nodes_apsides(jd_ut: float, flags: int, method: int, ctx: EngineContext) -> NodesApsides:
    node_body, apog_body = (MEAN_NODE, MEAN_APOG) if method == NODBIT_MEAN else (TRUE_NODE, OSCU_APOG)
    asc = position(jd_ut, node_body, flags, ctx)
    apo = position(jd_ut, apog_body, flags, ctx)

    def opposite(p: PositionVector, scale: float) -> PositionVector:
        return PositionVector((p.lon + 180.0) % 360.0, -p.lat, p.dist * scale,
                              p.speed_lon, -p.speed_lat, p.speed_dist * scale)

    perigee_scale = (1.0 - _MOON_MEAN_ECC) / (1.0 + _MOON_MEAN_ECC)
    return NodesApsides(ascending=asc, descending=opposite(asc, 1.0),
                        perihelion=opposite(apo, perigee_scale), aphelion=apo)


def nodes_apsides(jd_ut: float, body: int, flags: int = 0, method: int = NODBIT_MEAN,
                  ctx: Optional[EngineContext] = None) -> NodesApsides:
    """
    Ascending and descending node, perihelion and aphelion of a body's orbit as
    positions (heliocentric with HELCTR, geocentric otherwise).
    """
    if not math.isfinite(jd_ut):
        raise InvalidArgument("jd_ut must be finite", jd=jd_ut)
    if method not in (NODBIT_MEAN, NODBIT_OSCU):
        raise InvalidArgument("method must be NODBIT_MEAN or NODBIT_OSCU", method=method)
    body = _check_orbit_body(body)
    ctx = ctx or DEFAULT_CONTEXT
    if body == MOON:
        return _lunar_nodes_apsides(jd_ut, flags, method, ctx)

    source = Source(flags, ctx)
    use_mean = method == NODBIT_MEAN and body in _MEAN_ELEMENTS
    if method == NODBIT_MEAN and not use_mean:
        log.debug("no mean elements for body %s; using osculating elements", body)

    def point_at(name: str) -> Callable[[float, float], np.ndarray]:
        def vector_at(t_tt: float, t_ut: float) -> np.ndarray:
            if use_mean:
                a, e, i, node, peri, to_gcrs = _mean_orbit(body, t_tt)
            else:
                a, e, i, node, peri, to_gcrs = _osculating_orbit(body, t_tt, source)
            vec = to_gcrs @ orbit_point(a, e, i, node, peri, _POINT_ANOMALY[name](peri))
            if not flags & FLG_HELCTR:
                sp, _ = source.state(SUN, t_tt)
                ep, _ = source.state(EARTH, t_tt)
                vec = vec + sp - ep
            return to_output(vec, t_tt, t_ut, flags, ctx)
        return vector_at

    jd_tt = jd_ut + delta_t(jd_ut)
    pts = {name: evaluate(jd_tt, jd_ut, flags, ctx, point_at(name), _SPEED_STEP) for name in _POINT_ANOMALY}
    return NodesApsides(**pts)
