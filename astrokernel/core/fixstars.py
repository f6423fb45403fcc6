# astrokernel/core/fixstars.py
"""
Fixed stars from a small built-in catalogue (Hipparcos new reduction, ICRS,
epoch J2000).

Lookup is case-insensitive over traditional names and Bayer designations:
exact match first, then the first prefix hit, then the first substring hit,
in catalogue order.  Stars are carried from J2000 with space motion and
parallax (erfa.pmpx), then go through the same deflection, aberration,
frame and sidereal steps as bodies.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging
import math

import erfa
import numpy as np

from .constants import FLG_TOPOCTR, J2000, SUN
from .context import DEFAULT_CONTEXT, EngineContext
from .deltat import delta_t
from .ephemeris import (
    PositionVector,
    Source,
    apparent_direction,
    evaluate,
    observer_state,
    to_output,
)
from .errors import InvalidArgument, UnknownBody

log = logging.getLogger(__name__)

__all__ = ["Star", "CATALOG", "find_star", "fixed_star", "fixed_star_magnitude"]

_MAS2RAD = math.radians(1.0 / 3600000.0)
_AU_PER_PARSEC = 206264.806247
_NO_PARALLAX_DIST_AU = 1.0e10
_SPEED_STEP = 1.0


@dataclass(frozen=True)
class Star:
    name: str
    bayer: str
    ra: Tuple[int, int, float]          # h, m, s
    dec: Tuple[int, int, float]         # d, m, s (sign on the first non-zero field)
    pm_ra: float                        # mas/yr, μα·cos δ
    pm_dec: float                       # mas/yr
    parallax: float                     # mas
    radial_velocity: float              # km/s
    magnitude: float                    # V

    @property
    def label(self) -> str:
        return f"{self.name},{self.bayer}"

    def ra_rad(self) -> float:
        h, m, s = self.ra
        return math.radians((h + m / 60.0 + s / 3600.0) * 15.0)

    def dec_rad(self) -> float:
        d, m, s = self.dec
        sign = -1.0 if (d < 0 or (d == 0 and (m < 0 or (m == 0 and s < 0)))) else 1.0
        return sign * math.radians(abs(d) + abs(m) / 60.0 + abs(s) / 3600.0)


CATALOG: List[Star] = [
    Star("Aldebaran", "alTau", (4, 35, 55.23907), (16, 30, 33.4885), 63.45, -188.94, 48.94, 54.26, 0.86),
    Star("Regulus", "alLeo", (10, 8, 22.31099), (11, 58, 1.9516), -248.73, 5.59, 41.13, 5.9, 1.40),
    Star("Spica", "alVir", (13, 25, 11.57937), (-11, 9, 40.7501), -42.35, -30.67, 13.06, 1.0, 0.97),
    Star("Antares", "alSco", (16, 29, 24.45970), (-26, 25, 55.2094), -12.11, -23.30, 5.89, -3.4, 1.06),
    Star("Sirius", "alCMa", (6, 45, 8.91728), (-16, 42, 58.0171), -546.01, -1223.07, 379.21, -5.50, -1.46),
    Star("Canopus", "alCar", (6, 23, 57.10988), (-52, 41, 44.3810), 19.93, 23.24, 10.55, 20.3, -0.74),
    Star("Arcturus", "alBoo", (14, 15, 39.67207), (19, 10, 56.6730), -1093.39, -2000.06, 88.83, -5.19, -0.05),
    Star("Vega", "alLyr", (18, 36, 56.33635), (38, 47, 1.2802), 200.94, 286.23, 130.23, -13.5, 0.03),
    Star("Capella", "alAur", (5, 16, 41.35871), (45, 59, 52.7693), 75.25, -426.89, 76.20, 29.19, 0.08),
    Star("Rigel", "beOri", (5, 14, 32.27210), (-8, 12, 5.8981), 1.31, 0.50, 3.78, 17.8, 0.13),
    Star("Procyon", "alCMi", (7, 39, 18.11950), (5, 13, 29.9552), -714.59, -1036.80, 284.56, -3.2, 0.37),
    Star("Betelgeuse", "alOri", (5, 55, 10.30536), (7, 24, 25.4304), 27.54, 11.30, 6.55, 21.91, 0.50),
    Star("Altair", "alAql", (19, 50, 47.00292), (8, 52, 5.9563), 536.23, 385.29, 194.95, -26.1, 0.76),
    Star("Pollux", "beGem", (7, 45, 18.94987), (28, 1, 34.3160), -626.55, -45.80, 96.54, 3.23, 1.14),
    Star("Castor", "alGem", (7, 34, 35.87319), (31, 53, 17.8160), -191.45, -145.19, 64.12, 5.4, 1.58),
    Star("Fomalhaut", "alPsA", (22, 57, 39.04625), (-29, 37, 20.0533), 328.95, -164.67, 129.81, 6.5, 1.16),
    Star("Deneb", "alCyg", (20, 41, 25.91514), (45, 16, 49.2197), 2.01, 1.85, 2.31, -4.5, 1.25),
    Star("Polaris", "alUMi", (2, 31, 49.09456), (89, 15, 50.7923), 44.48, -11.85, 7.54, -17.4, 1.98),
    Star("Achernar", "alEri", (1, 37, 42.84548), (-57, 14, 12.3101), 87.00, -38.24, 23.39, 16.0, 0.46),
    Star("Acrux", "alCru", (12, 26, 35.89522), (-63, 5, 56.7343), -35.83, -14.86, 10.13, -11.2, 0.76),
    Star("Algol", "bePer", (3, 8, 10.13245), (40, 57, 20.3280), 2.99, -1.66, 35.14, 4.0, 2.12),
    Star("Alcyone", "etTau", (3, 47, 29.07655), (24, 6, 18.4885), 19.34, -43.67, 8.09, 5.4, 2.87),
    Star("Markab", "alPeg", (23, 4, 45.65345), (15, 12, 18.9617), 60.40, -41.30, 24.46, -2.7, 2.49),
    Star("Denebola", "beLeo", (11, 49, 3.57834), (14, 34, 19.4090), -497.68, -114.67, 90.91, -0.2, 2.13),
    Star("Vindemiatrix", "epVir", (13, 2, 10.59785), (10, 57, 32.9415), -273.80, 19.96, 29.75, -14.3, 2.79),
    Star("Zubenelgenubi", "alLib", (14, 50, 52.71309), (-16, 2, 30.3955), -105.68, -68.40, 43.03, -23.0, 2.75),
    Star("Rasalhague", "alOph", (17, 34, 56.06945), (12, 33, 36.1346), 108.07, -221.57, 67.13, 12.0, 2.07),
]


def find_star(name: str) -> Star:
    """Resolve a star by traditional name or Bayer designation."""
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgument("star name must be a non-empty string", name=name)
    key = name.strip().lower()
    # "Aldebaran,alTau" and ",alTau" forms
    if "," in key:
        trad, _, bayer = key.partition(",")
        key = trad.strip() or bayer.strip()
    for star in CATALOG:
        if key in (star.name.lower(), star.bayer.lower()):
            return star
    for star in CATALOG:
        if star.name.lower().startswith(key) or star.bayer.lower().startswith(key):
            return star
    for star in CATALOG:
        if key in star.name.lower():
            return star
    raise UnknownBody("star not found", name=name)


def _star_vector(star: Star, jd_tt: float, jd_ut: float, flags: int, ctx: EngineContext,
                 source: Source) -> np.ndarray:
    obs_p, obs_v = observer_state(jd_tt, jd_ut, flags, ctx, source)
    dc = star.dec_rad()
    pr = star.pm_ra * _MAS2RAD / math.cos(dc)
    pd = star.pm_dec * _MAS2RAD
    px = star.parallax / 1000.0
    pmt = (jd_tt - J2000) / 365.25
    u = np.asarray(erfa.pmpx(star.ra_rad(), dc, pr, pd, px, star.radial_velocity, pmt, obs_p))
    sun_now, _ = source.state(SUN, jd_tt)
    u = apparent_direction(u, None, obs_p, obs_v, sun_now, flags)
    dist = _AU_PER_PARSEC / px if px > 0.0 else _NO_PARALLAX_DIST_AU
    return to_output(u * dist, jd_tt, jd_ut, flags, ctx)


def fixed_star(name: str, jd_ut: float, flags: int = 0,
               ctx: Optional[EngineContext] = None) -> Tuple[PositionVector, str]:
    """Apparent position of a catalogue star → (PositionVector, "Name,bayer")."""
    if not math.isfinite(jd_ut):
        raise InvalidArgument("jd_ut must be finite", jd=jd_ut)
    ctx = ctx or DEFAULT_CONTEXT
    star = find_star(name)
    source = Source(flags, ctx)

    def vector_at(t_tt: float, t_ut: float) -> np.ndarray:
        return _star_vector(star, t_tt, t_ut, flags, ctx, source)

    step = 0.005 if flags & FLG_TOPOCTR else _SPEED_STEP
    pos = evaluate(jd_ut + delta_t(jd_ut), jd_ut, flags, ctx, vector_at, step)
    return pos, star.label


def fixed_star_magnitude(name: str) -> float:
    return find_star(name).magnitude
