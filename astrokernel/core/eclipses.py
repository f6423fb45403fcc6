# astrokernel/core/eclipses.py
"""
Global solar and lunar eclipse search.

Syzygies are stepped one lunation at a time from the mean-phase formula and
refined on the Sun–Moon elongation.  Syzygies with the Moon far from the
ecliptic are skipped; the rest are measured with shadow-cone geometry:

solar  the Moon's shadow axis is intersected with the fundamental plane
       (through the Earth's centre, normal to the axis); γ is the axis
       distance from the centre in Earth radii, and the umbral/penumbral
       radii follow from the Sun and Moon radii and distances.
lunar  the Moon's distance from the anti-solar axis is compared with the
       Earth's umbral and penumbral radii at the Moon, enlarged by 1/50 for
       the atmosphere.

The maximum comes from golden-section minimisation of the axis distance;
contacts are bisected on either side of it.  All instants are UT.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Tuple
import logging
import math
import os

import numpy as np

from .constants import (
    AU_KM,
    EARTH_RADIUS_KM,
    ECL_ANNULAR,
    ECL_ANNULAR_TOTAL,
    ECL_CENTRAL,
    ECL_NONCENTRAL,
    ECL_PARTIAL,
    ECL_PENUMBRAL,
    ECL_TOTAL,
    EPHE_MASK,
    FLG_EQUATORIAL,
    FLG_XYZ,
    MOON,
    MOON_RADIUS_KM,
    SUN,
    SUN_RADIUS_KM,
)
from .context import DEFAULT_CONTEXT, EngineContext
from .coordinates import difference_degrees
from .ephemeris import position
from .errors import InvalidArgument
from .solvers import EventResult, Status, bisect, golden_minimize, secant

log = logging.getLogger(__name__)

__all__ = [
    "solar_eclipse_when_global",
    "lunar_eclipse_when",
    "SolarGeometry",
    "LunarGeometry",
    "ECLIPSE_SEARCH_YEARS",
]

ECLIPSE_SEARCH_YEARS = float(os.getenv("ASTRO_ECLIPSE_SEARCH_YEARS", "30"))

SYNODIC_MONTH = 29.530588861
_NEW_MOON_EPOCH = 2451550.09766          # mean new Moon of 2000 Jan 6
_SOLAR_LAT_LIMIT = 1.6                   # |β| beyond which no solar eclipse occurs
_LUNAR_LAT_LIMIT = 1.8
_EARTH_FLATTENED = 0.99664719            # polar / equatorial radius
_ATMOSPHERE = 1.02
_HALF_WINDOW = 0.3                        # days around syzygy
_CONTACT_TOL = 1e-8
_MAX_TOL = 1e-7

_SOLAR_TYPES = ECL_TOTAL | ECL_ANNULAR | ECL_PARTIAL | ECL_ANNULAR_TOTAL
_LUNAR_TYPES = ECL_TOTAL | ECL_PARTIAL | ECL_PENUMBRAL
_CENTRALITY = ECL_CENTRAL | ECL_NONCENTRAL


# ─────────────────────────────────────────────────────────────────────────────
# Syzygies
# ─────────────────────────────────────────────────────────────────────────────
def _elongation(jd_ut: float, flags: int, ctx: EngineContext) -> Tuple[float, float]:
    """(Moon − Sun longitude, Moon latitude)."""
    sun = position(jd_ut, SUN, flags, ctx)
    moon = position(jd_ut, MOON, flags, ctx)
    return difference_degrees(moon.lon, sun.lon), moon.lat


def _syzygy(k: float, phase: float, flags: int, ctx: EngineContext) -> Optional[float]:
    """UT of the syzygy nearest mean lunation ``k`` (phase 0 new, 180 full)."""
    guess = _NEW_MOON_EPOCH + SYNODIC_MONTH * k

    def f(t: float) -> float:
        return difference_degrees(_elongation(t, flags, ctx)[0], phase)

    res = secant(f, guess, guess + 0.5, tol_f=1e-7, tol_step=1e-8)
    if not res.found:
        log.debug("syzygy refinement failed near %.3f", guess)
        return None
    return res.x


# ─────────────────────────────────────────────────────────────────────────────
# Geometry
# ─────────────────────────────────────────────────────────────────────────────
def _geocentric_km(jd_ut: float, body: int, flags: int, ctx: EngineContext) -> np.ndarray:
    return np.array(position(jd_ut, body, flags | FLG_XYZ | FLG_EQUATORIAL, ctx)[:3]) * AU_KM


@dataclass(frozen=True)
class SolarGeometry:
    gamma: float            # shadow axis distance from the Earth's centre, Earth radii
    penumbra: float         # penumbral radius in the fundamental plane, Earth radii
    umbra: float            # umbral radius there; negative for the antumbra
    umbra_surface: float    # umbral radius where the axis meets the surface

    def classify(self) -> int:
        if self.gamma >= 1.0 + self.penumbra:
            return 0
        if self.gamma < _EARTH_FLATTENED:
            centrality = ECL_CENTRAL
        elif self.gamma < _EARTH_FLATTENED + abs(self.umbra):
            centrality = ECL_NONCENTRAL
        else:
            return ECL_PARTIAL
        if self.umbra > 0.0:
            return ECL_TOTAL | centrality
        if centrality == ECL_CENTRAL and self.umbra_surface > 0.0:
            return ECL_ANNULAR_TOTAL | centrality
        return ECL_ANNULAR | centrality


def solar_geometry(jd_ut: float, flags: int, ctx: EngineContext) -> SolarGeometry:
    s = _geocentric_km(jd_ut, SUN, flags, ctx)
    m = _geocentric_km(jd_ut, MOON, flags, ctx)
    axis = m - s
    d_sm = float(np.linalg.norm(axis))
    d = axis / d_sm
    along = -float(m @ d)                          # Moon → fundamental plane
    gamma_vec = m + along * d
    gamma = float(np.linalg.norm(gamma_vec)) / EARTH_RADIUS_KM

    f1 = math.asin((SUN_RADIUS_KM + MOON_RADIUS_KM) / d_sm)
    f2 = math.asin((SUN_RADIUS_KM - MOON_RADIUS_KM) / d_sm)
    penumbra = (MOON_RADIUS_KM / math.cos(f1) + along * math.tan(f1)) / EARTH_RADIUS_KM
    umbra = (MOON_RADIUS_KM / math.cos(f2) - along * math.tan(f2)) / EARTH_RADIUS_KM
    depth = math.sqrt(max(0.0, 1.0 - gamma * gamma))
    umbra_surface = umbra + depth * math.tan(f2)
    return SolarGeometry(gamma=gamma, penumbra=penumbra, umbra=umbra, umbra_surface=umbra_surface)


@dataclass(frozen=True)
class LunarGeometry:
    offset: float           # Moon centre from the shadow axis, km
    umbra: float            # umbral radius at the Moon, km
    penumbra: float         # penumbral radius at the Moon, km

    def classify(self) -> int:
        if self.offset + MOON_RADIUS_KM < self.umbra:
            return ECL_TOTAL
        if self.offset - MOON_RADIUS_KM < self.umbra:
            return ECL_PARTIAL
        if self.offset - MOON_RADIUS_KM < self.penumbra:
            return ECL_PENUMBRAL
        return 0


def lunar_geometry(jd_ut: float, flags: int, ctx: EngineContext) -> LunarGeometry:
    s = _geocentric_km(jd_ut, SUN, flags, ctx)
    m = _geocentric_km(jd_ut, MOON, flags, ctx)
    d_es = float(np.linalg.norm(s))
    d = -s / d_es
    along = float(m @ d)
    offset = float(np.linalg.norm(m - along * d))
    f1 = math.asin((SUN_RADIUS_KM + EARTH_RADIUS_KM) / d_es)
    f2 = math.asin((SUN_RADIUS_KM - EARTH_RADIUS_KM) / d_es)
    umbra = (EARTH_RADIUS_KM / math.cos(f2) - along * math.tan(f2)) * _ATMOSPHERE
    penumbra = (EARTH_RADIUS_KM / math.cos(f1) + along * math.tan(f1)) * _ATMOSPHERE
    return LunarGeometry(offset=offset, umbra=umbra, penumbra=penumbra)


# ─────────────────────────────────────────────────────────────────────────────
# Search
# ─────────────────────────────────────────────────────────────────────────────
def _contacts(g: Callable[[float], float], t_max: float) -> Tuple[float, float]:
    """Instants where g crosses zero before and after the maximum; 0 if none."""
    if g(t_max) >= 0.0:
        return 0.0, 0.0
    out = []
    for edge in (t_max - _HALF_WINDOW, t_max + _HALF_WINDOW):
        res = bisect(g, edge, t_max, tol=_CONTACT_TOL)
        out.append(res.x if res.found else 0.0)
    return out[0], out[1]


def _wanted(kind: int, ecl_type: int, types: int) -> bool:
    if not kind:
        return False
    if ecl_type & types and not kind & ecl_type & types:
        return False
    if ecl_type & _CENTRALITY and not kind & ecl_type & _CENTRALITY:
        return False
    return True


def _check_search(jd_start_ut: float, flags: int, ecl_type: int, allowed: int) -> int:
    if not isinstance(jd_start_ut, (int, float)) or not math.isfinite(jd_start_ut):
        raise InvalidArgument("jd_start_ut must be finite", jd=jd_start_ut)
    if not isinstance(ecl_type, int) or ecl_type < 0 or ecl_type & ~allowed:
        raise InvalidArgument("unsupported eclipse type mask", ecl_type=ecl_type)
    return flags & EPHE_MASK


def _lunations(jd_start_ut: float, backward: bool, phase: float):
    offset = 0.5 if phase else 0.0
    k = math.floor((jd_start_ut - _NEW_MOON_EPOCH) / SYNODIC_MONTH) + offset
    count = int(ECLIPSE_SEARCH_YEARS * 365.25 / SYNODIC_MONTH) + 2
    step = -1 if backward else 1
    if backward:
        k += 1
    for i in range(count):
        yield k + step * i


def solar_eclipse_when_global(jd_start_ut: float, flags: int = 0, ecl_type: int = 0,
                              backward: bool = False,
                              ctx: Optional[EngineContext] = None) -> EventResult:
    """
    Next (or previous) solar eclipse anywhere on the Earth.

    times = (maximum, 0, first contact, last contact, totality begin,
    totality end, centre line begin, centre line end); absent phases are 0.
    """
    ctx = ctx or DEFAULT_CONTEXT
    fl = _check_search(jd_start_ut, flags, ecl_type, _SOLAR_TYPES | _CENTRALITY)
    for k in _lunations(jd_start_ut, backward, 0.0):
        t_nm = _syzygy(k, 0.0, fl, ctx)
        if t_nm is None:
            continue
        if abs(_elongation(t_nm, fl, ctx)[1]) > _SOLAR_LAT_LIMIT:
            continue

        def gamma(t: float) -> float:
            return solar_geometry(t, fl, ctx).gamma

        best = golden_minimize(gamma, t_nm - _HALF_WINDOW, t_nm + _HALF_WINDOW, tol=_MAX_TOL)
        if not best.found:
            return EventResult(Status.CONVERGENCE_FAILURE, jd=best.x)
        t_max = float(best.x)  # type: ignore[arg-type]
        if (t_max <= jd_start_ut) if not backward else (t_max >= jd_start_ut):
            continue
        geo = solar_geometry(t_max, fl, ctx)
        kind = geo.classify()
        if not _wanted(kind, ecl_type, _SOLAR_TYPES):
            continue

        def contact(edge: Callable[[SolarGeometry], float]) -> Tuple[float, float]:
            return _contacts(lambda t: edge(solar_geometry(t, fl, ctx)), t_max)

        first, last = contact(lambda g: g.gamma - 1.0 - g.penumbra)
        tot_begin = tot_end = centre_begin = centre_end = 0.0
        if kind & (ECL_TOTAL | ECL_ANNULAR | ECL_ANNULAR_TOTAL):
            tot_begin, tot_end = contact(lambda g: g.gamma - 1.0 - abs(g.umbra))
        if kind & ECL_CENTRAL:
            centre_begin, centre_end = contact(lambda g: g.gamma - 1.0)
        log.debug("solar eclipse kind=%d max=%.6f gamma=%.4f", kind, t_max, geo.gamma)
        return EventResult(
            Status.FOUND, jd=t_max, kind=kind,
            times=(t_max, 0.0, first, last, tot_begin, tot_end, centre_begin, centre_end),
        )
    return EventResult(Status.NOT_FOUND)


def lunar_eclipse_when(jd_start_ut: float, flags: int = 0, ecl_type: int = 0,
                       backward: bool = False,
                       ctx: Optional[EngineContext] = None) -> EventResult:
    """
    Next (or previous) lunar eclipse.

    times = (maximum, 0, partial begin, partial end, total begin, total end,
    penumbral begin, penumbral end); absent phases are 0.
    """
    ctx = ctx or DEFAULT_CONTEXT
    fl = _check_search(jd_start_ut, flags, ecl_type, _LUNAR_TYPES)
    for k in _lunations(jd_start_ut, backward, 180.0):
        t_fm = _syzygy(k, 180.0, fl, ctx)
        if t_fm is None:
            continue
        if abs(_elongation(t_fm, fl, ctx)[1]) > _LUNAR_LAT_LIMIT:
            continue

        def offset(t: float) -> float:
            return lunar_geometry(t, fl, ctx).offset

        best = golden_minimize(offset, t_fm - _HALF_WINDOW, t_fm + _HALF_WINDOW, tol=_MAX_TOL)
        if not best.found:
            return EventResult(Status.CONVERGENCE_FAILURE, jd=best.x)
        t_max = float(best.x)  # type: ignore[arg-type]
        if (t_max <= jd_start_ut) if not backward else (t_max >= jd_start_ut):
            continue
        kind = lunar_geometry(t_max, fl, ctx).classify()
        if not _wanted(kind, ecl_type, _LUNAR_TYPES):
            continue

        def contact(edge: Callable[[LunarGeometry], float]) -> Tuple[float, float]:
            return _contacts(lambda t: edge(lunar_geometry(t, fl, ctx)), t_max)

        pen_begin, pen_end = contact(lambda g: g.offset - MOON_RADIUS_KM - g.penumbra)
        par_begin = par_end = tot_begin = tot_end = 0.0
        if kind & (ECL_PARTIAL | ECL_TOTAL):
            par_begin, par_end = contact(lambda g: g.offset - MOON_RADIUS_KM - g.umbra)
        if kind & ECL_TOTAL:
            tot_begin, tot_end = contact(lambda g: g.offset + MOON_RADIUS_KM - g.umbra)
        log.debug("lunar eclipse kind=%d max=%.6f", kind, t_max)
        return EventResult(
            Status.FOUND, jd=t_max, kind=kind,
            times=(t_max, 0.0, par_begin, par_end, tot_begin, tot_end, pen_begin, pen_end),
        )
    return EventResult(Status.NOT_FOUND)
