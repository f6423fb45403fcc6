# astrokernel/core/ephemeris.py
"""
Body positions: source selection → observer → light-time → deflection &
aberration → frame → sidereal → output, with speeds by symmetric differencing
of the whole chain.

Sources
- MOSEPH: built-in analytic series (series.py)
- JPLEPH: the context's provider; failure raises EphemerisUnavailable
- SWIEPH or no source bit: provider when it loads, analytic otherwise
  (logged at WARNING once per data source, DEBUG after that)

Lunar nodes and apogees are always evaluated from the analytic lunar theory;
they are geocentric points, so HELCTR / BARYCTR are rejected for them and
TOPOCTR is ignored.
"""
from __future__ import annotations

from typing import Callable, NamedTuple, Optional, Tuple
import logging
import math
import os

import erfa
import numpy as np

from . import series
from ..utils.metrics import MET_PROVIDER_FALLBACKS
from .constants import (
    AU_KM,
    C_AU_PER_DAY,
    EARTH,
    FLG_BARYCTR,
    FLG_EQUATORIAL,
    FLG_HELCTR,
    FLG_JPLEPH,
    FLG_MOSEPH,
    FLG_NOABERR,
    FLG_NOGDEFL,
    FLG_RADIANS,
    FLG_SIDEREAL,
    FLG_SPEED,
    FLG_SPEED3,
    FLG_TOPOCTR,
    FLG_TRUEPOS,
    FLG_XYZ,
    LUNAR_POINTS,
    MEAN_APOG,
    MEAN_NODE,
    MERCURY,
    MOON,
    OSCU_APOG,
    SUN,
    SUPPORTED_BODIES,
    TRUE_NODE,
    VENUS,
)
from .context import DEFAULT_CONTEXT, EngineContext
from .coordinates import difference_degrees
from .deltat import delta_t
from .errors import EphemerisUnavailable, InvalidArgument, UnknownBody
from .frames import frame_matrix, obliquity_for_flags, rot_x, split_jd, to_spherical
from .sidereal import ayanamsa_extended
from .timescales import sidereal_time

log = logging.getLogger(__name__)

__all__ = [
    "PositionVector",
    "Source",
    "position",
    "position_et",
    "observer_state",
    "apparent_direction",
    "to_output",
    "evaluate",
    "validate_body",
]

LIGHT_TIME_MAX_ITERS = 10
LIGHT_TIME_TOL = 1e-12          # days

# Differencing steps (days)
_SPEED_STEP_MAP = {
    MOON: 0.02,
    TRUE_NODE: 0.02,
    OSCU_APOG: 0.01,
    MEAN_NODE: 0.5,
    MEAN_APOG: 0.1,
    MERCURY: 0.1,
    VENUS: 0.2,
    SUN: 0.2,
    EARTH: 0.2,
}
_SPEED_STEP_DEFAULT = float(os.getenv("ASTRO_SPEED_STEP_DEFAULT", "0.5"))
# diurnal parallax turns over once a day; keep the step well below that
_SPEED_STEP_TOPO = 0.005

# Earth rotation rate in radians per UT day
_EARTH_ROT_RAD_PER_DAY = 2.0 * math.pi * 1.00273781191135448


class PositionVector(NamedTuple):
    """lon, lat, dist and their rates; x, y, z, dx, dy, dz under XYZ."""
    lon: float
    lat: float
    dist: float
    speed_lon: float
    speed_lat: float
    speed_dist: float


# ─────────────────────────────────────────────────────────────────────────────
# Source selection
# ─────────────────────────────────────────────────────────────────────────────
class Source:
    """Barycentric states from the provider or the analytic model."""

    def __init__(self, flags: int, ctx: EngineContext):
        self.provider = None
        self.strict = False
        self.ctx = ctx
        if flags & FLG_MOSEPH:
            return
        if flags & FLG_JPLEPH:
            prov = ctx.provider()
            if prov is None:
                raise EphemerisUnavailable("JPLEPH requested but no ephemeris path is configured")
            self.provider = prov
            self.strict = True
            return
        # SWIEPH, and no source bit at all
        prov = ctx.provider()
        if prov is not None and prov.available():
            self.provider = prov
        else:
            self._fallback("ephemeris provider unavailable (path=%s); using the analytic model",
                           ctx.ephe_path)

    def _fallback(self, msg: str, *args) -> None:
        level = logging.WARNING if self.ctx.note_fallback() else logging.DEBUG
        log.log(level, msg, *args)

    @property
    def label(self) -> str:
        return "provider" if self.provider is not None else "analytic"

    def state(self, body: int, jd_tt: float) -> Tuple[np.ndarray, np.ndarray]:
        if self.provider is None:
            return series.barycentric_state(body, jd_tt)
        try:
            return self.provider.state(body, jd_tt)
        except EphemerisUnavailable as e:
            if self.strict:
                raise
            self._fallback("provider cannot serve body %s (%s); using the analytic model", body, e.message)
            MET_PROVIDER_FALLBACKS.labels(body=str(body)).inc()
            return series.barycentric_state(body, jd_tt)


def validate_body(body: int) -> int:
    if isinstance(body, bool) or not isinstance(body, (int, np.integer)) or int(body) not in SUPPORTED_BODIES:
        raise UnknownBody("unknown body id", body=body)
    return int(body)


def _check_flags(flags: int) -> int:
    if isinstance(flags, bool) or not isinstance(flags, (int, np.integer)) or flags < 0:
        raise InvalidArgument("flags must be a non-negative integer", flags=flags)
    return int(flags)


# ─────────────────────────────────────────────────────────────────────────────
# Observer
# ─────────────────────────────────────────────────────────────────────────────
def _topocentric_offset(jd_tt: float, jd_ut: float, ctx: EngineContext) -> Tuple[np.ndarray, np.ndarray]:
    obs = ctx.observer
    if obs is None:
        raise InvalidArgument("TOPOCTR requires an observer; call set_observer first")
    xyz_m = np.asarray(erfa.gd2gc(1, math.radians(obs.lon), math.radians(obs.lat), obs.alt))
    r_itrs = xyz_m / 1000.0 / AU_KM
    gast = math.radians(sidereal_time(jd_ut) * 15.0)
    c, s = math.cos(gast), math.sin(gast)
    spin = np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])
    r_tod = spin @ r_itrs
    v_tod = _EARTH_ROT_RAD_PER_DAY * np.array([-r_tod[1], r_tod[0], 0.0])
    npb_t = np.asarray(erfa.pnm06a(*split_jd(jd_tt))).T
    return npb_t @ r_tod, npb_t @ v_tod


def observer_state(jd_tt: float, jd_ut: float, flags: int, ctx: EngineContext,
                   source: Source) -> Tuple[np.ndarray, np.ndarray]:
    """Barycentric (pos, vel) of the point the position is referred to."""
    if flags & FLG_BARYCTR:
        return np.zeros(3), np.zeros(3)
    if flags & FLG_HELCTR:
        return source.state(SUN, jd_tt)
    p, v = source.state(EARTH, jd_tt)
    if flags & FLG_TOPOCTR:
        dp, dv = _topocentric_offset(jd_tt, jd_ut, ctx)
        p, v = p + dp, v + dv
    return p, v


def apparent_direction(u: np.ndarray, body_helio: Optional[np.ndarray], obs_p: np.ndarray,
                       obs_v: np.ndarray, sun_p: np.ndarray, flags: int) -> np.ndarray:
    """
    Apply light deflection by the Sun (erfa.ld / erfa.ldsun) and aberration
    (erfa.ab) to the unit vector ``u``.  ``body_helio`` is None for stars.
    """
    if flags & (FLG_TRUEPOS | FLG_HELCTR | FLG_BARYCTR):
        return u
    e_vec = obs_p - sun_p
    em = float(np.linalg.norm(e_vec))
    e_hat = e_vec / em
    if not flags & FLG_NOGDEFL:
        if body_helio is None:
            u = np.asarray(erfa.ldsun(u, e_hat, em))
        elif float(np.linalg.norm(body_helio)) > 0.0:
            q_hat = body_helio / np.linalg.norm(body_helio)
            u = np.asarray(erfa.ld(1.0, u, q_hat, e_hat, em, 1e-9))
    if not flags & FLG_NOABERR:
        vc = obs_v / C_AU_PER_DAY
        bm1 = math.sqrt(1.0 - float(vc @ vc))
        u = np.asarray(erfa.ab(u, vc, em, bm1))
    return u


# ─────────────────────────────────────────────────────────────────────────────
# Frame & output
# ─────────────────────────────────────────────────────────────────────────────
def _equator_to_output(jd_tt: float, flags: int) -> np.ndarray:
    m = frame_matrix(jd_tt, flags)
    if flags & FLG_EQUATORIAL:
        return m
    return rot_x(obliquity_for_flags(jd_tt, flags)) @ m


def to_output(vec_gcrs: np.ndarray, jd_tt: float, jd_ut: float, flags: int,
              ctx: EngineContext) -> np.ndarray:
    """Rotate a GCRS vector into the requested equator/ecliptic (and sidereal) frame."""
    v = _equator_to_output(jd_tt, flags) @ vec_gcrs
    if flags & FLG_SIDEREAL and not flags & FLG_EQUATORIAL:
        ayan = math.radians(ayanamsa_extended(jd_ut, flags, ctx.sidereal))
        c, s = math.cos(ayan), math.sin(ayan)
        v = np.array([c * v[0] + s * v[1], -s * v[0] + c * v[1], v[2]])
    return v


def _body_vector(jd_tt: float, jd_ut: float, body: int, flags: int, ctx: EngineContext,
                 source: Source) -> np.ndarray:
    """Output-frame cartesian vector of ``body`` at one instant."""
    if body in LUNAR_POINTS:
        vec = series.lunar_point(body, jd_tt, _equator_to_output(jd_tt, flags & ~FLG_EQUATORIAL))
        return to_output(vec, jd_tt, jd_ut, flags, ctx)

    obs_p, obs_v = observer_state(jd_tt, jd_ut, flags, ctx, source)
    if (body == EARTH and not flags & (FLG_HELCTR | FLG_BARYCTR)) or (body == SUN and flags & FLG_HELCTR):
        return np.zeros(3)

    tau = 0.0
    p, _v = source.state(body, jd_tt)
    rel = p - obs_p
    if not flags & FLG_TRUEPOS:
        for _ in range(LIGHT_TIME_MAX_ITERS):
            new_tau = float(np.linalg.norm(rel)) / C_AU_PER_DAY
            p, _v = source.state(body, jd_tt - new_tau)
            rel = p - obs_p
            if abs(new_tau - tau) < LIGHT_TIME_TOL:
                tau = new_tau
                break
            tau = new_tau
        else:
            log.debug("light-time iteration hit the cap for body %s at %.6f", body, jd_tt)

    dist = float(np.linalg.norm(rel))
    if dist == 0.0:
        return np.zeros(3)
    u = rel / dist
    if not flags & (FLG_TRUEPOS | FLG_HELCTR | FLG_BARYCTR):
        sun_emit, _ = source.state(SUN, jd_tt - tau)
        sun_now, _ = source.state(SUN, jd_tt)
        helio = None if body == SUN else p - sun_emit
        u = apparent_direction(u, helio, obs_p, obs_v, sun_now, flags | (FLG_NOGDEFL if body == SUN else 0))
    return to_output(u * dist, jd_tt, jd_ut, flags, ctx)


def _speed_step(body: int, flags: int) -> float:
    h = _SPEED_STEP_MAP.get(body, _SPEED_STEP_DEFAULT)
    if flags & FLG_TOPOCTR and body not in LUNAR_POINTS:
        h = min(h, _SPEED_STEP_TOPO)
    return h


def evaluate(jd_tt: float, jd_ut: float, flags: int, ctx: EngineContext,
             vector_at: Callable[[float, float], np.ndarray], step: float) -> PositionVector:
    """Run ``vector_at`` (output-frame cartesian) and format with optional speeds."""
    vec = vector_at(jd_tt, jd_ut)
    want_speed = bool(flags & (FLG_SPEED | FLG_SPEED3))
    if flags & FLG_XYZ:
        if want_speed:
            vp = vector_at(jd_tt + step, jd_ut + step)
            vm = vector_at(jd_tt - step, jd_ut - step)
            dv = (vp - vm) / (2.0 * step)
        else:
            dv = np.zeros(3)
        return PositionVector(*(float(x) for x in vec), *(float(x) for x in dv))

    lon, lat, dist = to_spherical(vec)
    dlon = dlat = ddist = 0.0
    if want_speed:
        lp, bp, rp = to_spherical(vector_at(jd_tt + step, jd_ut + step))
        lm, bm, rm = to_spherical(vector_at(jd_tt - step, jd_ut - step))
        dlon = difference_degrees(lp, lm) / (2.0 * step)
        dlat = (bp - bm) / (2.0 * step)
        ddist = (rp - rm) / (2.0 * step)
    if flags & FLG_RADIANS:
        lon, lat, dlon, dlat = (math.radians(x) for x in (lon, lat, dlon, dlat))
    return PositionVector(lon, lat, dist, dlon, dlat, ddist)


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────
def _position(jd_tt: float, jd_ut: float, body: int, flags: int, ctx: EngineContext) -> PositionVector:
    body = validate_body(body)
    flags = _check_flags(flags)
    if body in LUNAR_POINTS and flags & (FLG_HELCTR | FLG_BARYCTR):
        raise InvalidArgument("lunar nodes and apogees are geocentric only", body=body, flags=flags)
    source = Source(flags, ctx)

    def vector_at(t_tt: float, t_ut: float) -> np.ndarray:
        return _body_vector(t_tt, t_ut, body, flags, ctx, source)

    return evaluate(jd_tt, jd_ut, flags, ctx, vector_at, _speed_step(body, flags))


def position_et(jd_et: float, body: int, flags: int = 0,
                ctx: Optional[EngineContext] = None) -> PositionVector:
    """Position of ``body`` at an ET (TT) instant."""
    if not math.isfinite(jd_et):
        raise InvalidArgument("jd_et must be finite", jd=jd_et)
    ctx = ctx or DEFAULT_CONTEXT
    jd_ut = jd_et - delta_t(jd_et - delta_t(jd_et))
    return _position(jd_et, jd_ut, body, flags, ctx)


def position(jd_ut: float, body: int, flags: int = 0,
             ctx: Optional[EngineContext] = None) -> PositionVector:
    """Position of ``body`` at a UT instant."""
    if not math.isfinite(jd_ut):
        raise InvalidArgument("jd_ut must be finite", jd=jd_ut)
    ctx = ctx or DEFAULT_CONTEXT
    return _position(jd_ut + delta_t(jd_ut), jd_ut, body, flags, ctx)

