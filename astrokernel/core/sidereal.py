# astrokernel/core/sidereal.py
"""
Ayanamsa bookkeeping.

Each named mode is an anchor (t0, ayan_t0): the ayanamsa value at a reference
epoch.  The mean ayanamsa at t follows the IAU 2006 general precession in
longitude p_A (erfa.p06e):

    ayanamsa(t) = ayan_t0 + p_A(t) − p_A(t0)

The "extended" (true) value adds the nutation in longitude unless NONUT is
requested, which keeps sidereal longitudes consistent with the tropical ones
produced under the same flags.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Tuple
import math

import erfa

from .constants import (
    AYANAMSA_NAMES,
    B1950,
    FLG_NONUT,
    J1900,
    J2000,
    SIDM_FAGAN_BRADLEY,
    SIDM_USER,
)
from .deltat import delta_t
from .errors import InvalidArgument
from .frames import nutation, split_jd

__all__ = [
    "SiderealConfig",
    "SIDEREAL_MODES",
    "ayanamsa",
    "ayanamsa_extended",
    "ayanamsa_name",
]

# mode → (t0 [JD], ayanamsa at t0 [deg])
SIDEREAL_MODES: Dict[int, Tuple[float, float]] = {
    0: (2433282.42346, 24.042044444),
    1: (2435553.5, 23.250182778 - 0.004658035),
    2: (1721057.5, 0.0),
    3: (2415020.0, 360.0 - 338.98556),
    4: (2415020.0, 360.0 - 341.33904),
    5: (2415020.0, 360.0 - 337.636111),
    6: (2415020.0, 360.0 - 333.0369024),
    7: (2415020.0, 360.0 - 338.917778),
    8: (2415020.0, 360.0 - 338.634444),
    9: (1684532.5, -5.66667),
    10: (1684532.5, -4.26667),
    11: (1684532.5, -3.41667),
    12: (1684532.5, -4.46667),
    13: (1673941.0, -5.079167),
    14: (1684532.5, -4.44088389),
    15: (1674484.0, -9.33333),
    16: (1927135.8747793, 0.0),
    17: (1746443.513, 0.0),
    18: (J2000, 0.0),
    19: (J1900, 0.0),
    20: (B1950, 0.0),
}


@dataclass(frozen=True)
class SiderealConfig:
    mode: int = SIDM_FAGAN_BRADLEY
    t0: float = 0.0
    ayan_t0: float = 0.0

    def __post_init__(self) -> None:
        if self.mode != SIDM_USER and self.mode not in SIDEREAL_MODES:
            raise InvalidArgument("unknown sidereal mode", mode=self.mode)
        if not (math.isfinite(self.t0) and math.isfinite(self.ayan_t0)):
            raise InvalidArgument("t0 and ayan_t0 must be finite", t0=self.t0, ayan_t0=self.ayan_t0)

    def anchor(self) -> Tuple[float, float]:
        if self.mode == SIDM_USER:
            return self.t0, self.ayan_t0
        return SIDEREAL_MODES[self.mode]


@lru_cache(maxsize=1024)
def _general_precession(jd_tt: float) -> float:
    """IAU 2006 general precession in longitude p_A, degrees."""
    return math.degrees(float(erfa.p06e(*split_jd(jd_tt))[12]))


def _mean_ayanamsa_tt(jd_tt: float, config: SiderealConfig) -> float:
    t0, ayan_t0 = config.anchor()
    return ayan_t0 + _general_precession(float(jd_tt)) - _general_precession(float(t0))


def ayanamsa(jd_ut: float, config: SiderealConfig) -> float:
    """Mean ayanamsa (degrees) at a UT instant."""
    if not math.isfinite(jd_ut):
        raise InvalidArgument("jd_ut must be finite", jd=jd_ut)
    return _mean_ayanamsa_tt(jd_ut + delta_t(jd_ut), config)


def ayanamsa_extended(jd_ut: float, flags: int, config: SiderealConfig) -> float:
    """True ayanamsa: mean value plus Δψ, or the mean value under NONUT."""
    if not math.isfinite(jd_ut):
        raise InvalidArgument("jd_ut must be finite", jd=jd_ut)
    jd_tt = jd_ut + delta_t(jd_ut)
    value = _mean_ayanamsa_tt(jd_tt, config)
    if not flags & FLG_NONUT:
        value += nutation(jd_tt)[0]
    return value


def ayanamsa_name(mode: int) -> str:
    try:
        return AYANAMSA_NAMES[mode]
    except KeyError:
        raise InvalidArgument("unknown sidereal mode", mode=mode) from None
