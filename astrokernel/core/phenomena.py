# astrokernel/core/phenomena.py
"""
Planetary phenomena and the equation of time.

Magnitudes follow the Astronomical Almanac (1984) expressions used by Meeus
(ch. 41); asteroids and centaurs use the IAU H,G system.  Saturn's ring
contribution is not modelled.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Optional, Tuple
import math

import numpy as np

from .constants import (
    AU_KM,
    CERES,
    CHIRON,
    EARTH,
    EARTH_RADIUS_KM,
    EPHE_MASK,
    FLG_EQUATORIAL,
    FLG_NOABERR,
    FLG_NOGDEFL,
    FLG_TOPOCTR,
    FLG_TRUEPOS,
    FLG_XYZ,
    J2000,
    JUNO,
    JUPITER,
    LUNAR_POINTS,
    MARS,
    MERCURY,
    MOON,
    MOON_RADIUS_KM,
    NEPTUNE,
    PALLAS,
    PHOLUS,
    PLUTO,
    SATURN,
    SUN,
    SUN_RADIUS_KM,
    URANUS,
    VENUS,
    VESTA,
)
from .context import DEFAULT_CONTEXT, EngineContext
from .coordinates import difference_degrees
from .deltat import delta_t
from .ephemeris import position, validate_body
from .errors import InvalidArgument
from .frames import nutation, true_obliquity

__all__ = ["Phenomena", "phenomena", "semidiameter", "equation_of_time", "RADIUS_KM"]

RADIUS_KM: Dict[int, float] = {
    SUN: SUN_RADIUS_KM,
    MOON: MOON_RADIUS_KM,
    MERCURY: 2439.7,
    VENUS: 6051.8,
    MARS: 3396.19,
    JUPITER: 71492.0,
    SATURN: 60268.0,
    URANUS: 25559.0,
    NEPTUNE: 24764.0,
    PLUTO: 1188.3,
    CHIRON: 105.0,
    PHOLUS: 95.0,
    CERES: 469.7,
    PALLAS: 256.0,
    JUNO: 123.0,
    VESTA: 262.7,
}

# V(1,0) and phase-angle polynomial coefficients (degrees)
_AA_MAGNITUDES: Dict[int, Tuple[float, ...]] = {
    MERCURY: (-0.42, 0.0380, -0.000273, 0.000002),
    VENUS: (-4.40, 0.0009, 0.000239, -0.00000065),
    MARS: (-1.52, 0.016),
    JUPITER: (-9.40, 0.005),
    SATURN: (-8.88,),
    URANUS: (-7.19,),
    NEPTUNE: (-6.87,),
    PLUTO: (-1.00,),
}

# H, G
_HG: Dict[int, Tuple[float, float]] = {
    CERES: (3.34, 0.12),
    PALLAS: (4.13, 0.11),
    JUNO: (5.33, 0.32),
    VESTA: (3.20, 0.32),
    CHIRON: (6.5, 0.15),
    PHOLUS: (7.0, 0.15),
}

_SUN_ABS_MAG = -26.74
_MOON_MEAN_DIST_AU = 384400.0 / AU_KM
_PASSTHROUGH = EPHE_MASK | FLG_TRUEPOS | FLG_NOABERR | FLG_NOGDEFL | FLG_TOPOCTR


@dataclass(frozen=True)
class Phenomena:
    phase_angle: float             # degrees
    phase: float                   # illuminated fraction
    elongation: float              # degrees
    diameter: float                # apparent diameter, degrees
    magnitude: float
    horizontal_parallax: float     # degrees

    def as_list(self) -> list:
        return [self.phase_angle, self.phase, self.elongation, self.diameter,
                self.magnitude, self.horizontal_parallax]

    def to_dict(self) -> dict:
        return asdict(self)


def semidiameter(body: int, dist_au: float) -> float:
    """Apparent angular radius in degrees; 0 for point sources."""
    radius = RADIUS_KM.get(body)
    if radius is None or dist_au <= 0.0:
        return 0.0
    return math.degrees(math.asin(min(1.0, radius / (dist_au * AU_KM))))


def _angle(a: np.ndarray, b: np.ndarray) -> float:
    c = float(a @ b) / (float(np.linalg.norm(a)) * float(np.linalg.norm(b)))
    return math.degrees(math.acos(max(-1.0, min(1.0, c))))


def _magnitude(body: int, r: float, delta: float, phase_angle: float) -> float:
    if body == SUN:
        return _SUN_ABS_MAG + 5.0 * math.log10(delta)
    if body == MOON:
        # full-Moon brightness at mean distance, phase law after Allen
        i = abs(phase_angle)
        return -12.73 + 0.026 * i + 4e-9 * i ** 4 + 5.0 * math.log10(delta / _MOON_MEAN_DIST_AU)
    base = 5.0 * math.log10(r * delta)
    if body in _AA_MAGNITUDES:
        coeffs = _AA_MAGNITUDES[body]
        return coeffs[0] + base + sum(c * phase_angle ** (k + 1) for k, c in enumerate(coeffs[1:]))
    h, g = _HG[body]
    t = math.tan(math.radians(phase_angle) / 2.0)
    phi1 = math.exp(-3.33 * t ** 0.63)
    phi2 = math.exp(-1.87 * t ** 1.22)
    return h + base - 2.5 * math.log10((1.0 - g) * phi1 + g * phi2)


def phenomena(jd_ut: float, body: int, flags: int = 0,
              ctx: Optional[EngineContext] = None) -> Phenomena:
    """Phase angle, illumination, elongation, diameter, magnitude and parallax."""
    body = validate_body(body)
    if body in LUNAR_POINTS or body == EARTH:
        raise InvalidArgument("phenomena are defined for physical bodies seen from the Earth", body=body)
    ctx = ctx or DEFAULT_CONTEXT
    fl = (flags & _PASSTHROUGH) | FLG_XYZ | FLG_EQUATORIAL
    sun = np.array(position(jd_ut, SUN, fl, ctx)[:3])
    geo = sun if body == SUN else np.array(position(jd_ut, body, fl, ctx)[:3])
    delta = float(np.linalg.norm(geo))

    if body == SUN:
        phase_angle, elongation, r = 0.0, 0.0, 0.0
    else:
        helio = geo - sun
        r = float(np.linalg.norm(helio))
        phase_angle = _angle(helio, geo)
        elongation = _angle(geo, sun)
    phase = (1.0 + math.cos(math.radians(phase_angle))) / 2.0
    diameter = 2.0 * semidiameter(body, delta)
    parallax = math.degrees(math.asin(min(1.0, EARTH_RADIUS_KM / (delta * AU_KM))))
    return Phenomena(
        phase_angle=phase_angle,
        phase=phase,
        elongation=elongation,
        diameter=diameter,
        magnitude=_magnitude(body, r, delta, phase_angle),
        horizontal_parallax=parallax,
    )


def equation_of_time(jd_ut: float, ctx: Optional[EngineContext] = None) -> float:
    """
    Apparent minus mean solar time, in days (Meeus 28.3):
    E = L0 − 0.0057183° − α + Δψ·cos ε.
    """
    if not math.isfinite(jd_ut):
        raise InvalidArgument("jd_ut must be finite", jd=jd_ut)
    ctx = ctx or DEFAULT_CONTEXT
    jd_tt = jd_ut + delta_t(jd_ut)
    tau = (jd_tt - J2000) / 365250.0
    l0 = (280.4664567 + 360007.6982779 * tau + 0.03032028 * tau ** 2
          + tau ** 3 / 49931.0 - tau ** 4 / 15300.0 - tau ** 5 / 2000000.0)
    alpha = position(jd_ut, SUN, FLG_EQUATORIAL, ctx).lon
    dpsi, _ = nutation(jd_tt)
    e = l0 - 0.0057183 - alpha + dpsi * math.cos(math.radians(true_obliquity(jd_tt)))
    return difference_degrees(e, 0.0) / 360.0
