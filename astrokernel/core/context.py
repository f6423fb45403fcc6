# astrokernel/core/context.py
"""
Engine context: observer, sidereal mode and data source in one object.

Configuration values are frozen dataclasses swapped under a lock; readers
grab the current reference and never see a half-updated value.  A module
level DEFAULT_CONTEXT backs the functional façade; independent contexts can
be created for multi-tenant use.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging
import math
import os
import threading

from .errors import InvalidArgument
from .provider import DEFAULT_EPHE_FILE, EphemerisProvider, SkyfieldProvider
from .sidereal import SiderealConfig

log = logging.getLogger(__name__)

__all__ = [
    "GeoLocation",
    "SiderealConfig",
    "EngineContext",
    "DEFAULT_CONTEXT",
    "default_ephe_path",
]


def default_ephe_path() -> Optional[str]:
    path = os.getenv("ASTRO_EPHE_PATH") or os.getenv("SE_EPHE_PATH")
    return path.strip() if path and path.strip() else None


@dataclass(frozen=True)
class GeoLocation:
    lon: float
    lat: float
    alt: float = 0.0

    def __post_init__(self) -> None:
        for name in ("lon", "lat", "alt"):
            v = getattr(self, name)
            if not isinstance(v, (int, float)) or not math.isfinite(v):
                raise InvalidArgument(f"{name} must be a finite number", **{name: v})
        if not -90.0 <= self.lat <= 90.0:
            raise InvalidArgument("latitude must be within [-90, 90]", lat=self.lat)
        if not -180.0 <= self.lon <= 360.0:
            raise InvalidArgument("longitude must be within [-180, 360]", lon=self.lon)
        if not -1000.0 <= self.alt <= 100000.0:
            raise InvalidArgument("altitude must be within [-1000, 100000] m", alt=self.alt)


class EngineContext:
    def __init__(self, ephe_path: Optional[str] = None, ephe_file: str = DEFAULT_EPHE_FILE,
                 provider: Optional[EphemerisProvider] = None,
                 observer: Optional[GeoLocation] = None,
                 sidereal: Optional[SiderealConfig] = None):
        self._lock = threading.Lock()
        self._ephe_path = ephe_path
        self._ephe_file = ephe_file
        self._injected = provider
        self._provider: Optional[EphemerisProvider] = provider
        self._observer = observer
        self._sidereal = sidereal or SiderealConfig()
        self._fallback_noted = False

    # ─── readers ────────────────────────────────────────────────────────────
    @property
    def observer(self) -> Optional[GeoLocation]:
        return self._observer

    @property
    def sidereal(self) -> SiderealConfig:
        return self._sidereal

    @property
    def ephe_path(self) -> Optional[str]:
        return self._ephe_path

    @property
    def ephe_file(self) -> str:
        return self._ephe_file

    def provider(self) -> Optional[EphemerisProvider]:
        """The configured high-precision provider, built lazily; None without a path."""
        if self._provider is not None:
            return self._provider
        if not self._ephe_path:
            return None
        with self._lock:
            if self._provider is None and self._ephe_path:
                self._provider = SkyfieldProvider(self._ephe_path, self._ephe_file)
            return self._provider

    def note_fallback(self) -> bool:
        """True the first time the analytic fallback is taken for the current data source."""
        with self._lock:
            first, self._fallback_noted = not self._fallback_noted, True
        return first

    def describe(self) -> Dict[str, Any]:
        prov = self._provider
        return {
            "ephe_path": self._ephe_path,
            "ephe_file": self._ephe_file,
            "observer": None if self._observer is None else vars(self._observer).copy(),
            "sidereal_mode": self._sidereal.mode,
            "provider": prov.describe() if prov is not None else None,
        }

    def with_observer(self, lon: float, lat: float, alt: float = 0.0) -> "EngineContext":
        """Independent context sharing this one's data source, for another place."""
        return EngineContext(
            ephe_path=self._ephe_path,
            ephe_file=self._ephe_file,
            provider=self.provider(),
            observer=GeoLocation(lon=lon, lat=lat, alt=alt),
            sidereal=self._sidereal,
        )

    # ─── writers ────────────────────────────────────────────────────────────
    def _drop_provider(self) -> None:
        # caller holds the lock
        if self._provider is not None and self._provider is not self._injected:
            self._provider.close()
        self._provider = self._injected
        self._fallback_noted = False

    def set_ephemeris_path(self, path: Optional[str]) -> None:
        if path is not None and not isinstance(path, str):
            raise InvalidArgument("ephemeris path must be a string", path=path)
        with self._lock:
            self._drop_provider()
            self._ephe_path = path or None
        log.debug("ephemeris path set to %s", path)

    def set_ephemeris_file(self, name: str) -> None:
        if not isinstance(name, str) or not name.strip() or os.sep in name:
            raise InvalidArgument("ephemeris file must be a bare file name", name=name)
        with self._lock:
            self._drop_provider()
            self._ephe_file = name.strip()

    def set_provider(self, provider: Optional[EphemerisProvider]) -> None:
        """Inject a provider (tests, alternative data sources)."""
        with self._lock:
            self._drop_provider()
            self._injected = provider
            self._provider = provider

    def set_observer(self, lon: float, lat: float, alt: float = 0.0) -> None:
        loc = GeoLocation(lon=lon, lat=lat, alt=alt)
        with self._lock:
            self._observer = loc

    def set_sidereal_mode(self, mode: int, t0: float = 0.0, ayan_t0: float = 0.0) -> None:
        cfg = SiderealConfig(mode=int(mode), t0=float(t0), ayan_t0=float(ayan_t0))
        with self._lock:
            self._sidereal = cfg

    def close(self) -> None:
        """Release data-source handles and revert every setting to its default."""
        with self._lock:
            if self._provider is not None:
                self._provider.close()
            self._injected = None
            self._provider = None
            self._ephe_path = default_ephe_path()
            self._ephe_file = DEFAULT_EPHE_FILE
            self._observer = None
            self._sidereal = SiderealConfig()
            self._fallback_noted = False


DEFAULT_CONTEXT = EngineContext(ephe_path=default_ephe_path())
