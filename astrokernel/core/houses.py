# astrokernel/core/houses.py
"""
House policy façade.

- Validates the system code and latitude; unknown codes raise InvalidHouseSystem.
- Polar rule: Placidus and Koch are undefined where ecliptic points become
  circumpolar (|φ| ≥ 90° − ε).  Depending on ASTRO_POLAR_FALLBACK the result
  either falls back to Porphyry (warning code + log + counter) or raises
  UndefinedAtLatitude.
- Sidereal and radian output for houses_extended.

Engines live in house_systems.py.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import math
import os

from ..utils.metrics import MET_FALLBACKS, MET_WARNINGS
from .constants import FLG_EQUATORIAL, FLG_RADIANS, FLG_SIDEREAL, HOUSE_SYSTEM_NAMES, SUN
from .context import DEFAULT_CONTEXT, EngineContext
from .coordinates import normalize_degrees
from .deltat import delta_t
from .errors import InvalidArgument, InvalidHouseSystem, UndefinedAtLatitude
from .ephemeris import position
from .frames import true_obliquity
from .house_systems import angles, compute_cusps
from .sidereal import ayanamsa_extended
from .timescales import sidereal_time

log = logging.getLogger(__name__)

__all__ = [
    "HouseResult",
    "houses",
    "houses_extended",
    "houses_armc",
    "house_name",
    "POLAR_FALLBACK",
]

POLAR_FALLBACK = os.getenv("ASTRO_POLAR_FALLBACK", "porphyry").strip().lower()

_POLAR_SENSITIVE = frozenset({"P", "K"})
_FALLBACK_CODE = "O"
# ascmc slots that are ecliptic longitudes (ARMC and the reserved slots are not)
_ECLIPTIC_SLOTS = (0, 1, 3, 4, 5, 6, 7)


@dataclass(frozen=True)
class HouseResult:
    cusps: List[float]                   # index 0 = house 1
    ascmc: List[float]
    system: str
    requested: str
    warnings: List[str] = field(default_factory=list)

    @property
    def ascendant(self) -> float:
        return self.ascmc[0]

    @property
    def mc(self) -> float:
        return self.ascmc[1]

    @property
    def armc(self) -> float:
        return self.ascmc[2]

    @property
    def vertex(self) -> float:
        return self.ascmc[3]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "system": self.system,
            "requested": self.requested,
            "system_name": HOUSE_SYSTEM_NAMES[self.system],
            "cusps": list(self.cusps),
            "ascmc": list(self.ascmc),
            "warnings": list(self.warnings),
        }


def house_name(code: str) -> str:
    return HOUSE_SYSTEM_NAMES[_check_code(code)]


def _check_code(code: str) -> str:
    if not isinstance(code, str) or len(code.strip()) != 1:
        raise InvalidHouseSystem("house system must be a one-letter code", code=code)
    c = code.strip().upper()
    if c not in HOUSE_SYSTEM_NAMES:
        raise InvalidHouseSystem("unsupported house system", code=code,
                                 supported="".join(sorted(HOUSE_SYSTEM_NAMES)))
    return c


def _check_lat(lat: float) -> float:
    if not isinstance(lat, (int, float)) or not math.isfinite(lat):
        raise InvalidArgument("latitude must be a finite number", lat=lat)
    if not -90.0 <= lat <= 90.0:
        raise InvalidArgument("latitude must be within [-90, 90]", lat=lat)
    return float(lat)


def _polar_code(code: str, lat: float, eps: float, warnings: List[str]) -> str:
    if code not in _POLAR_SENSITIVE or abs(lat) < 90.0 - eps:
        return code
    if POLAR_FALLBACK == "error":
        raise UndefinedAtLatitude(f"{HOUSE_SYSTEM_NAMES[code]} houses are undefined at this latitude",
                                  code=code, lat=lat, limit=90.0 - eps)
    kind = f"polar_fallback_{HOUSE_SYSTEM_NAMES[_FALLBACK_CODE].lower()}"
    warnings.append(kind)
    log.warning("house system %s undefined at lat %.4f (limit %.4f); using %s",
                code, lat, 90.0 - eps, _FALLBACK_CODE)
    MET_FALLBACKS.labels(requested=HOUSE_SYSTEM_NAMES[code], fallback=HOUSE_SYSTEM_NAMES[_FALLBACK_CODE]).inc()
    MET_WARNINGS.labels(kind=kind).inc()
    return _FALLBACK_CODE


def houses_armc(armc: float, lat: float, eps: float, code: str,
                sun_declination: Optional[float] = None) -> HouseResult:
    """Cusps from ARMC, latitude and obliquity (all degrees)."""
    requested = _check_code(code)
    lat = _check_lat(lat)
    for name, v in (("armc", armc), ("eps", eps)):
        if not isinstance(v, (int, float)) or not math.isfinite(v):
            raise InvalidArgument(f"{name} must be a finite number", **{name: v})
    warnings: List[str] = []
    used = _polar_code(requested, lat, eps, warnings)
    ascmc = angles(armc, lat, eps)
    cusps = compute_cusps(used, armc, lat, eps, ascmc, sun_declination=sun_declination, warnings=warnings)
    return HouseResult(cusps=cusps, ascmc=ascmc, system=used, requested=requested, warnings=warnings)


def _houses_at(jd_ut: float, lat: float, lon: float, code: str, ctx: EngineContext) -> HouseResult:
    if not math.isfinite(jd_ut):
        raise InvalidArgument("jd_ut must be finite", jd=jd_ut)
    if not isinstance(lon, (int, float)) or not math.isfinite(lon):
        raise InvalidArgument("longitude must be a finite number", lon=lon)
    c = _check_code(code)
    jd_tt = jd_ut + delta_t(jd_ut)
    eps = true_obliquity(jd_tt)
    armc = normalize_degrees(sidereal_time(jd_ut) * 15.0 + lon)
    sun_dec = None
    if c == "I":
        sun_dec = position(jd_ut, SUN, FLG_EQUATORIAL, ctx).lat
    return houses_armc(armc, lat, eps, c, sun_declination=sun_dec)


def houses(jd_ut: float, lat: float, lon: float, code: str = "P",
           ctx: Optional[EngineContext] = None) -> HouseResult:
    """Tropical house cusps and angles for a UT instant and geographic place."""
    return _houses_at(jd_ut, lat, lon, code, ctx or DEFAULT_CONTEXT)


def houses_extended(jd_ut: float, flags: int, lat: float, lon: float, code: str = "P",
                    ctx: Optional[EngineContext] = None) -> HouseResult:
    """:func:`houses` with SIDEREAL (shift by the true ayanamsa) and RADIANS output."""
    ctx = ctx or DEFAULT_CONTEXT
    res = _houses_at(jd_ut, lat, lon, code, ctx)
    cusps, ascmc = list(res.cusps), list(res.ascmc)
    if flags & FLG_SIDEREAL:
        ayan = ayanamsa_extended(jd_ut, flags, ctx.sidereal)
        cusps = [normalize_degrees(c - ayan) for c in cusps]
        for i in _ECLIPTIC_SLOTS:
            ascmc[i] = normalize_degrees(ascmc[i] - ayan)
    if flags & FLG_RADIANS:
        cusps = [math.radians(c) for c in cusps]
        ascmc = [math.radians(a) for a in ascmc]
    return HouseResult(cusps=cusps, ascmc=ascmc, system=res.system, requested=res.requested,
                       warnings=list(res.warnings))
