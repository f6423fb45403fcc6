# astrokernel/utils/config.py
from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

import yaml

from astrokernel.core.context import EngineContext, GeoLocation, SiderealConfig, default_ephe_path
from astrokernel.core.errors import InvalidArgument
from astrokernel.core.provider import DEFAULT_EPHE_FILE

log = logging.getLogger(__name__)

__all__ = ["AttrDict", "load_config", "context_from_settings", "DEFAULT_CONFIG_PATH"]

DEFAULT_CONFIG_PATH = os.getenv("ASTRO_CONFIG", "config/defaults.yaml")


class AttrDict(dict):
    """Dict that also supports attribute access: cfg.sidereal and cfg['sidereal'] both work."""
    def __getattr__(self, item):
        try:
            return self[item]
        except KeyError as e:
            raise AttributeError(item) from e

    def __setattr__(self, key, value):
        self[key] = value


def _to_attr(obj):
    if isinstance(obj, dict):
        return AttrDict({k: _to_attr(v) for k, v in obj.items()})
    if isinstance(obj, list):
        return [_to_attr(x) for x in obj]
    return obj


def load_config(path: Optional[str] = None) -> AttrDict:
    """
    Load YAML settings from `path` (default: $ASTRO_CONFIG or config/defaults.yaml).
    Env overrides:
      - ASTRO_EPHE_PATH / SE_EPHE_PATH  (ephemeris.path)
      - ASTRO_EPHE_FILE                 (ephemeris.file)
    A missing file yields empty settings; a malformed one raises.
    """
    path = path or DEFAULT_CONFIG_PATH
    data: dict = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise InvalidArgument("settings file must hold a mapping", path=path)
    else:
        log.info("settings file %s not found; using defaults", path)

    eph = data.setdefault("ephemeris", {}) or {}
    data["ephemeris"] = eph
    env_path = default_ephe_path()
    if env_path:
        eph["path"] = env_path
    if os.getenv("ASTRO_EPHE_FILE"):
        eph["file"] = os.environ["ASTRO_EPHE_FILE"]
    return _to_attr(data)


def context_from_settings(settings: Mapping[str, Any]) -> EngineContext:
    """Build an EngineContext from loaded settings; every section is optional."""
    eph = settings.get("ephemeris") or {}
    obs = settings.get("observer") or None
    sid = settings.get("sidereal") or {}
    observer = None
    if obs:
        observer = GeoLocation(lon=float(obs["lon"]), lat=float(obs["lat"]), alt=float(obs.get("alt", 0.0)))
    sidereal = SiderealConfig(
        mode=int(sid.get("mode", 0)),
        t0=float(sid.get("t0", 0.0)),
        ayan_t0=float(sid.get("ayan_t0", 0.0)),
    )
    return EngineContext(
        ephe_path=eph.get("path") or None,
        ephe_file=eph.get("file") or DEFAULT_EPHE_FILE,
        observer=observer,
        sidereal=sidereal,
    )
