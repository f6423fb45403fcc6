# astrokernel/core/deltat.py
"""
ΔT (TT − UT) and ΔAT (TAI − UTC) models.

ΔT follows the Espenak & Meeus (2006) piecewise polynomial fits, with the
Morrison & Stephenson long-term parabola outside −500 … +2150.  Segment joins
agree to well under a second across the telescopic era.

ΔAT resolves in order: env override → ERFA ``dat()`` → built-in step table.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
import json
import logging
import math
import os

import erfa  # PyERFA: has dat() for TAI-UTC

log = logging.getLogger(__name__)

__all__ = [
    "LeapInfo",
    "delta_at",
    "delta_t_seconds",
    "delta_t",
    "decimal_year",
]

_SECONDS_PER_DAY = 86400.0

# ─────────────────────────────────────────────────────────────────────────────
# ΔT (seconds) by decimal year
# ─────────────────────────────────────────────────────────────────────────────
def _poly(t: float, coeffs: Tuple[float, ...]) -> float:
    acc = 0.0
    for c in reversed(coeffs):
        acc = acc * t + c
    return acc


def _long_term(y: float) -> float:
    u = (y - 1820.0) / 100.0
    return -20.0 + 32.0 * u * u


def _seg_ancient(y: float) -> float:
    return _poly(y / 100.0, (10583.6, -1014.41, 33.78311, -5.952053,
                             -0.1798452, 0.022174192, 0.0090316521))


def _seg_medieval(y: float) -> float:
    return _poly((y - 1000.0) / 100.0, (1574.2, -556.01, 71.23472, 0.319781,
                                        -0.8503463, -0.005050998, 0.0083572073))


def _seg_1600(y: float) -> float:
    return _poly(y - 1600.0, (120.0, -0.9808, -0.01532, 1.0 / 7129.0))


def _seg_1700(y: float) -> float:
    return _poly(y - 1700.0, (8.83, 0.1603, -0.0059285, 0.00013336, -1.0 / 1174000.0))


def _seg_1800(y: float) -> float:
    return _poly(y - 1800.0, (13.72, -0.332447, 0.0068612, 0.0041116, -0.00037436,
                              0.0000121272, -0.0000001699, 0.000000000875))


def _seg_1860(y: float) -> float:
    return _poly(y - 1860.0, (7.62, 0.5737, -0.251754, 0.01680668,
                              -0.0004473624, 1.0 / 233174.0))


def _seg_1900(y: float) -> float:
    return _poly(y - 1900.0, (-2.79, 1.494119, -0.0598939, 0.0061966, -0.000197))


def _seg_1920(y: float) -> float:
    return _poly(y - 1920.0, (21.20, 0.84493, -0.076100, 0.0020936))


def _seg_1941(y: float) -> float:
    return _poly(y - 1950.0, (29.07, 0.407, -1.0 / 233.0, 1.0 / 2547.0))


def _seg_1961(y: float) -> float:
    return _poly(y - 1975.0, (45.45, 1.067, -1.0 / 260.0, -1.0 / 718.0))


def _seg_1986(y: float) -> float:
    return _poly(y - 2000.0, (63.86, 0.3345, -0.060374, 0.0017275,
                              0.000651814, 0.00002373599))


def _seg_2005(y: float) -> float:
    return _poly(y - 2000.0, (62.92, 0.32217, 0.005589))


def _seg_2050(y: float) -> float:
    return _long_term(y) - 0.5628 * (2150.0 - y)


# (start year inclusive, end year exclusive, fit)
_SEGMENTS: List[Tuple[float, float, Callable[[float], float]]] = [
    (-500.0, 500.0, _seg_ancient),
    (500.0, 1600.0, _seg_medieval),
    (1600.0, 1700.0, _seg_1600),
    (1700.0, 1800.0, _seg_1700),
    (1800.0, 1860.0, _seg_1800),
    (1860.0, 1900.0, _seg_1860),
    (1900.0, 1920.0, _seg_1900),
    (1920.0, 1941.0, _seg_1920),
    (1941.0, 1961.0, _seg_1941),
    (1961.0, 1986.0, _seg_1961),
    (1986.0, 2005.0, _seg_1986),
    (2005.0, 2050.0, _seg_2005),
    (2050.0, 2150.0, _seg_2050),
]

SEGMENT_BOUNDARIES: Tuple[float, ...] = tuple(s[0] for s in _SEGMENTS[1:])


def decimal_year(jd: float) -> float:
    return 2000.0 + (jd - 2451545.0) / 365.25


def delta_t_seconds(jd_ut: float) -> float:
    """ΔT in seconds at the given UT Julian Day."""
    if not math.isfinite(jd_ut):
        raise ValueError("jd_ut must be finite")
    y = decimal_year(jd_ut)
    for lo, hi, fit in _SEGMENTS:
        if lo <= y < hi:
            return fit(y)
    return _long_term(y)


def delta_t(jd_ut: float) -> float:
    """ΔT in days at the given UT Julian Day."""
    return delta_t_seconds(jd_ut) / _SECONDS_PER_DAY


# ─────────────────────────────────────────────────────────────────────────────
# ΔAT (TAI − UTC)
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class LeapInfo:
    delta_at: float                 # TAI-UTC seconds
    source: str                     # "erfa", "override", "builtin"
    status: str                     # "ok", "stale", "overridden", "erfa-dubious"
    last_known_mjd: float
    erfa_status_code: Optional[int]
    notes: Optional[str] = None


# (MJD, ΔAT seconds) effective from MJD at 00:00 UTC onward.
_BUILTIN_STEPS: List[Tuple[float, float]] = [
    (41317.0, 10.0), (41499.0, 11.0), (41683.0, 12.0), (42048.0, 13.0),
    (42413.0, 14.0), (42778.0, 15.0), (43144.0, 16.0), (43509.0, 17.0),
    (43874.0, 18.0), (44239.0, 19.0), (44786.0, 20.0), (45151.0, 21.0),
    (45516.0, 22.0), (46247.0, 23.0), (47161.0, 24.0), (47892.0, 25.0),
    (48257.0, 26.0), (48804.0, 27.0), (49169.0, 28.0), (49534.0, 29.0),
    (50083.0, 30.0), (50630.0, 31.0), (51179.0, 32.0), (53736.0, 33.0),
    (54832.0, 34.0), (56109.0, 35.0), (57204.0, 36.0), (57754.0, 37.0),
]
_BUILTIN_LAST_MJD = _BUILTIN_STEPS[-1][0]


def _load_override_table() -> Optional[List[Tuple[float, float]]]:
    # ASTRO_DELTA_AT_JSON=/path/leapseconds.json  [{"mjd": 57754.0, "delta_at": 37.0}, ...]
    path = os.getenv("ASTRO_DELTA_AT_JSON", "").strip()
    if not path:
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        steps = sorted((float(row["mjd"]), float(row["delta_at"])) for row in data)
    except (OSError, ValueError, KeyError, TypeError) as e:
        log.warning("ignoring unreadable ASTRO_DELTA_AT_JSON %s: %s", path, e)
        return None
    return steps or None


_OVERRIDE_TABLE = _load_override_table()


def _delta_at_from_steps(mjd: float, steps: List[Tuple[float, float]]) -> Tuple[float, float]:
    last_mjd = steps[0][0]
    delta = steps[0][1]
    for mjd_thr, value in steps:
        if mjd >= mjd_thr:
            last_mjd = mjd_thr
            delta = value
        else:
            break
    return delta, last_mjd


def delta_at(mjd_utc: float) -> LeapInfo:
    """
    Resolve TAI-UTC (ΔAT):
      1) override JSON table (ASTRO_DELTA_AT_JSON)   → source="override"
      2) ERFA dat()                                  → source="erfa"
      3) built-in table                              → source="builtin"
    """
    if _OVERRIDE_TABLE and mjd_utc >= _OVERRIDE_TABLE[0][0]:
        d, last_mjd = _delta_at_from_steps(mjd_utc, _OVERRIDE_TABLE)
        return LeapInfo(delta_at=d, source="override", status="overridden",
                        last_known_mjd=last_mjd, erfa_status_code=None,
                        notes="override JSON table in use")

    y, m, d_, frac = erfa.jd2cal(2400000.5, mjd_utc)
    try:
        dat = erfa.dat(int(y), int(m), int(d_), float(frac))
    except erfa.ErfaError as e:
        log.debug("erfa.dat rejected MJD %s: %s", mjd_utc, e)
    else:
        return LeapInfo(delta_at=float(dat), source="erfa", status="ok",
                        last_known_mjd=_BUILTIN_LAST_MJD, erfa_status_code=0)

    d, last_mjd = _delta_at_from_steps(mjd_utc, _BUILTIN_STEPS)
    stale = (mjd_utc - last_mjd) >= 183.0
    return LeapInfo(
        delta_at=d,
        source="builtin",
        status=("stale" if stale else "ok"),
        last_known_mjd=last_mjd,
        erfa_status_code=None,
        notes=("builtin table beyond next boundary" if stale else None),
    )
