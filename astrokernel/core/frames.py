# astrokernel/core/frames.py
"""
Reference-frame plumbing on top of ERFA (IAU 2006/2000A).

All vectors are numpy arrays of shape (3,).  "Equatorial J2000" below means
the GCRS/ICRS-aligned axes delivered by ``erfa.epv00`` / ``erfa.plan94`` /
``erfa.moon98``; the matrices returned here rotate those axes into the
requested equator/equinox.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Tuple
import math

import erfa
import numpy as np

from .constants import FLG_ICRS, FLG_J2000, FLG_NONUT

__all__ = [
    "split_jd",
    "mean_obliquity",
    "nutation",
    "true_obliquity",
    "obliquity_for_flags",
    "frame_matrix",
    "rot_x",
    "equatorial_to_ecliptic",
    "ecliptic_to_equatorial",
    "to_spherical",
    "from_spherical",
    "EPS_J2000_DEG",
]

_AS2DEG = 1.0 / 3600.0
EPS_J2000_DEG = 84381.406 * _AS2DEG


def split_jd(jd: float) -> Tuple[float, float]:
    d = math.floor(jd)
    return float(d), float(jd - d)


@lru_cache(maxsize=4096)
def _nut06a(jd_tt: float) -> Tuple[float, float]:
    dpsi, deps = erfa.nut06a(*split_jd(jd_tt))
    return math.degrees(float(dpsi)), math.degrees(float(deps))


def mean_obliquity(jd_tt: float) -> float:
    """Mean obliquity of the ecliptic (IAU 2006), degrees."""
    return math.degrees(float(erfa.obl06(*split_jd(jd_tt))))


def nutation(jd_tt: float) -> Tuple[float, float]:
    """(Δψ, Δε) in degrees, IAU 2000A adjusted to IAU 2006."""
    return _nut06a(float(jd_tt))


def true_obliquity(jd_tt: float) -> float:
    return mean_obliquity(jd_tt) + nutation(jd_tt)[1]


def obliquity_for_flags(jd_tt: float, flags: int) -> float:
    """Obliquity matching the equator selected by ``frame_matrix``."""
    if flags & (FLG_J2000 | FLG_ICRS):
        return EPS_J2000_DEG
    if flags & FLG_NONUT:
        return mean_obliquity(jd_tt)
    return true_obliquity(jd_tt)


def frame_matrix(jd_tt: float, flags: int) -> np.ndarray:
    """
    Rotation from GCRS-aligned axes to the equator selected by ``flags``:
      ICRS   → identity
      J2000  → frame bias only (mean J2000 dynamical equator)
      NONUT  → bias + precession (mean equator & equinox of date)
      else   → bias + precession + nutation (true equator & equinox of date)
    """
    if flags & FLG_ICRS:
        return np.identity(3)
    d1, d2 = split_jd(jd_tt)
    if flags & FLG_J2000:
        rb, _rp, _rbp = erfa.bp06(d1, d2)
        return np.asarray(rb)
    if flags & FLG_NONUT:
        return np.asarray(erfa.pmat06(d1, d2))
    return np.asarray(erfa.pnm06a(d1, d2))


def rot_x(angle_deg: float) -> np.ndarray:
    """Frame rotation about x by +angle (equator → ecliptic for angle = ε)."""
    c = math.cos(math.radians(angle_deg))
    s = math.sin(math.radians(angle_deg))
    return np.array([[1.0, 0.0, 0.0], [0.0, c, s], [0.0, -s, c]])


def equatorial_to_ecliptic(vec: np.ndarray, eps_deg: float) -> np.ndarray:
    return rot_x(eps_deg) @ vec


def ecliptic_to_equatorial(vec: np.ndarray, eps_deg: float) -> np.ndarray:
    return rot_x(-eps_deg) @ vec


def to_spherical(vec: np.ndarray) -> Tuple[float, float, float]:
    """Cartesian → (lon°, lat°, r); lon in [0, 360)."""
    x, y, z = (float(v) for v in vec)
    r = math.sqrt(x * x + y * y + z * z)
    if r == 0.0:
        return 0.0, 0.0, 0.0
    lon = math.degrees(math.atan2(y, x)) % 360.0
    lat = math.degrees(math.asin(max(-1.0, min(1.0, z / r))))
    return (0.0 if lon >= 360.0 else lon), lat, r


def from_spherical(lon: float, lat: float, r: float) -> np.ndarray:
    cl, sl = math.cos(math.radians(lon)), math.sin(math.radians(lon))
    cb, sb = math.cos(math.radians(lat)), math.sin(math.radians(lat))
    return np.array([r * cb * cl, r * cb * sl, r * sb])
