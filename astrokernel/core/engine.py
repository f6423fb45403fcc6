# astrokernel/core/engine.py
"""
Functional façade over the engine.

Every call takes an optional ``ctx=`` (EngineContext); without it the
process-wide DEFAULT_CONTEXT is used, so

    set_observer(-112.18, 45.45, 1524)
    position(jd, SUN, FLG_TOPOCTR)

behaves like the classic stateful API, while services can hold one context
per tenant.
"""
from __future__ import annotations

from typing import Optional
import logging

from astrokernel.version import VERSION

from .constants import BODY_NAMES
from .context import DEFAULT_CONTEXT, EngineContext
from .coordinates import (
    azimuth_altitude,
    cotrans,
    cotrans_with_speed,
    difference_degrees,
    normalize_degrees,
    normalize_radians,
    refraction,
    split_degrees,
)
from .deltat import delta_t
from .eclipses import lunar_eclipse_when, solar_eclipse_when_global
from .ephemeris import PositionVector, position, position_et
from .errors import UnknownBody
from .events import rise_transit, rise_transit_true_horizon
from .fixstars import fixed_star, fixed_star_magnitude
from .houses import HouseResult, house_name, houses, houses_armc, houses_extended
from .orbits import NodesApsides, OrbitalElements, nodes_apsides, orbital_elements
from .phenomena import Phenomena, equation_of_time, phenomena
from .sidereal import ayanamsa as _ayanamsa
from .sidereal import ayanamsa_extended as _ayanamsa_extended
from .sidereal import ayanamsa_name
from .timescales import (
    day_of_week,
    jd_et_to_utc,
    jd_to_utc,
    julian_day,
    reverse_julian_day,
    sidereal_time,
    sidereal_time0,
    utc_to_jd,
)

log = logging.getLogger(__name__)

__all__ = [
    # time
    "julian_day", "reverse_julian_day", "utc_to_jd", "jd_to_utc", "jd_et_to_utc",
    "delta_t", "day_of_week", "sidereal_time", "sidereal_time0", "equation_of_time",
    # configuration
    "set_ephemeris_path", "set_ephemeris_file", "set_observer", "set_sidereal_mode",
    "close", "describe",
    # positions
    "position", "position_et", "fixed_star", "fixed_star_magnitude", "ayanamsa",
    "ayanamsa_extended", "planet_name", "ayanamsa_name", "PositionVector",
    # houses
    "houses", "houses_extended", "houses_armc", "house_name", "HouseResult",
    # events
    "rise_transit", "rise_transit_true_horizon", "solar_eclipse_when_global",
    "lunar_eclipse_when",
    # geometry / misc
    "cotrans", "cotrans_with_speed", "azimuth_altitude", "refraction",
    "normalize_degrees", "normalize_radians", "difference_degrees", "split_degrees",
    "orbital_elements", "OrbitalElements", "nodes_apsides", "NodesApsides",
    "phenomena", "Phenomena", "version",
]


# ─── configuration ──────────────────────────────────────────────────────────
def set_ephemeris_path(path: Optional[str], ctx: Optional[EngineContext] = None) -> None:
    (ctx or DEFAULT_CONTEXT).set_ephemeris_path(path)


def set_ephemeris_file(name: str, ctx: Optional[EngineContext] = None) -> None:
    (ctx or DEFAULT_CONTEXT).set_ephemeris_file(name)


def set_observer(lon: float, lat: float, alt: float = 0.0, ctx: Optional[EngineContext] = None) -> None:
    (ctx or DEFAULT_CONTEXT).set_observer(lon, lat, alt)


def set_sidereal_mode(mode: int, t0: float = 0.0, ayan_t0: float = 0.0,
                      ctx: Optional[EngineContext] = None) -> None:
    (ctx or DEFAULT_CONTEXT).set_sidereal_mode(mode, t0, ayan_t0)


def close(ctx: Optional[EngineContext] = None) -> None:
    """Release file handles and reset the context to its defaults."""
    (ctx or DEFAULT_CONTEXT).close()


def describe(ctx: Optional[EngineContext] = None) -> dict:
    return {"version": VERSION, **(ctx or DEFAULT_CONTEXT).describe()}


# ─── positions ──────────────────────────────────────────────────────────────
def ayanamsa(jd_ut: float, ctx: Optional[EngineContext] = None) -> float:
    """Mean ayanamsa for the context's sidereal mode."""
    return _ayanamsa(jd_ut, (ctx or DEFAULT_CONTEXT).sidereal)


def ayanamsa_extended(jd_ut: float, flags: int = 0, ctx: Optional[EngineContext] = None) -> float:
    """True ayanamsa (with nutation unless NONUT) for the context's sidereal mode."""
    return _ayanamsa_extended(jd_ut, flags, (ctx or DEFAULT_CONTEXT).sidereal)


def planet_name(body: int) -> str:
    try:
        return BODY_NAMES[body]
    except (KeyError, TypeError):
        raise UnknownBody("unknown body id", body=body) from None


def version() -> str:
    return VERSION
