# astrokernel/core/provider.py
"""
High-precision data-source boundary.

The position model asks a provider for barycentric states and knows nothing
about file formats.  ``SkyfieldProvider`` reads a JPL SPK kernel (DE4xx) with
Skyfield; asteroid/centaur SPKs (JPL Horizons, type 21) go through SPICE
(spiceypy) when extra kernels are configured.

Contract for ``state(body, jd_tt)``:
  - barycentric, GCRS/ICRS-aligned equatorial axes, AU and AU/day
  - raises EphemerisUnavailable when the body/instant is not covered
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable
import logging
import os
import threading

import erfa
import numpy as np
import spiceypy as sp
from skyfield.api import load, load_file
from spiceypy.utils.exceptions import SpiceyError

from .constants import (
    AU_KM,
    BODY_NAMES,
    CERES,
    CHIRON,
    EARTH,
    JUNO,
    JUPITER,
    MARS,
    MERCURY,
    MOON,
    NEPTUNE,
    PALLAS,
    PHOLUS,
    PLUTO,
    SATURN,
    SUN,
    URANUS,
    VENUS,
    VESTA,
)
from .errors import EphemerisUnavailable
from .frames import split_jd

log = logging.getLogger(__name__)

__all__ = [
    "EphemerisProvider",
    "SkyfieldProvider",
    "DEFAULT_EPHE_FILE",
    "looks_like_lfs_pointer",
]

DEFAULT_EPHE_FILE = os.getenv("ASTRO_EPHE_FILE", "de421.bsp")

_SKYFIELD_KEYS: Dict[int, str] = {
    SUN: "sun",
    MOON: "moon",
    EARTH: "earth",
    MERCURY: "mercury",
    VENUS: "venus",
    MARS: "mars",
    JUPITER: "jupiter barycenter",
    SATURN: "saturn barycenter",
    URANUS: "uranus barycenter",
    NEPTUNE: "neptune barycenter",
    PLUTO: "pluto barycenter",
}

# NAIF ids of the small bodies (2000000 + MPC number)
_NAIF_SMALL: Dict[int, int] = {
    CERES: 2000001,
    PALLAS: 2000002,
    JUNO: 2000003,
    VESTA: 2000004,
    CHIRON: 2002060,
    PHOLUS: 2005145,
}

_SECONDS_PER_DAY = 86400.0

# SPICE keeps one kernel pool per process; providers share it by reference count
_SPICE_LOCK = threading.Lock()
_SPICE_REFS: Dict[str, int] = {}


def _spice_acquire(path: str) -> None:
    key = os.path.abspath(path)
    with _SPICE_LOCK:
        n = _SPICE_REFS.get(key, 0)
        if n == 0:
            sp.furnsh(key)
        _SPICE_REFS[key] = n + 1


def _spice_release(path: str) -> None:
    key = os.path.abspath(path)
    with _SPICE_LOCK:
        n = _SPICE_REFS.pop(key, 0)
        if n > 1:
            _SPICE_REFS[key] = n - 1
        elif n == 1:
            sp.unload(key)


@runtime_checkable
class EphemerisProvider(Protocol):
    def state(self, body: int, jd_tt: float) -> Tuple[np.ndarray, np.ndarray]: ...

    def available(self) -> bool: ...

    def describe(self) -> Dict[str, Any]: ...

    def close(self) -> None: ...


def looks_like_lfs_pointer(path: str) -> bool:
    try:
        if os.path.getsize(path) <= 512:
            with open(path, "rb") as f:
                head = f.read(128)
            return head.startswith(b"version https://git-lfs.github.com/spec/v1")
    except OSError:
        return False
    return False


def _extra_spk_paths(directory: str) -> List[str]:
    files = os.getenv("ASTRO_EXTRA_SPK_FILES")
    if files:
        out = [p.strip() for p in files.split(",") if p.strip()]
        return [p for p in out if os.path.isfile(p)]
    root = os.path.join(directory, "spk")
    if not os.path.isdir(root):
        return []
    return [os.path.join(root, fn) for fn in sorted(os.listdir(root)) if fn.lower().endswith(".bsp")]


class SkyfieldProvider:
    """
    Lazily loads ``<path>/<file_name>`` on first use (thread-safe) and serves
    barycentric states from it.  Small bodies need extra SPKs under
    ``<path>/spk`` or listed in ASTRO_EXTRA_SPK_FILES.
    """

    def __init__(self, path: str, file_name: str = DEFAULT_EPHE_FILE,
                 extra_spk: Optional[Sequence[str]] = None):
        self.path = path
        self.file_name = file_name
        self._extra_spk = list(extra_spk) if extra_spk is not None else None
        self._lock = threading.Lock()
        self._kernel = None
        self._ts = None
        self._spice_kernels: List[str] = []
        self._spice_ready = False

    @property
    def kernel_path(self) -> str:
        return os.path.join(self.path, self.file_name)

    # ─── kernel I/O ─────────────────────────────────────────────────────────
    def _get_kernel(self):
        if self._kernel is not None:
            return self._kernel, self._ts
        with self._lock:
            if self._kernel is not None:
                return self._kernel, self._ts
            path = self.kernel_path
            if not os.path.isfile(path):
                raise EphemerisUnavailable("ephemeris kernel not found", path=path)
            if looks_like_lfs_pointer(path):
                raise EphemerisUnavailable("kernel looks like a Git LFS pointer", path=path)
            try:
                kernel = load_file(path)
            except (OSError, ValueError) as e:
                raise EphemerisUnavailable(f"failed to load kernel: {e}", path=path) from e
            self._ts = load.timescale()
            self._kernel = kernel
            log.info("loaded ephemeris kernel %s", path)
        return self._kernel, self._ts

    def _spice_bootstrap(self) -> None:
        if self._spice_ready:
            return
        with self._lock:
            if self._spice_ready:
                return
            extras = self._extra_spk if self._extra_spk is not None else _extra_spk_paths(self.path)
            if not extras:
                raise EphemerisUnavailable("no small-body SPK configured", path=self.path)
            for p in extras:
                if looks_like_lfs_pointer(p):
                    log.warning("SPICE: %s looks like a Git LFS pointer", p)
                    continue
                try:
                    _spice_acquire(p)
                except SpiceyError as e:
                    log.warning("SPICE furnish failed %s: %s", p, e)
                    continue
                self._spice_kernels.append(p)
            if not self._spice_kernels:
                raise EphemerisUnavailable("no small-body SPK could be loaded", path=self.path)
            self._spice_ready = True

    # ─── protocol ───────────────────────────────────────────────────────────
    def state(self, body: int, jd_tt: float) -> Tuple[np.ndarray, np.ndarray]:
        if body in _NAIF_SMALL:
            return self._small_body_state(body, jd_tt)
        key = _SKYFIELD_KEYS.get(body)
        if key is None:
            raise EphemerisUnavailable("body not served by the kernel", body=body)
        kernel, ts = self._get_kernel()
        try:
            target = kernel[key]
            at = target.at(ts.tt_jd(jd_tt))
        except (KeyError, ValueError) as e:
            # ValueError: instant outside the kernel's segments
            raise EphemerisUnavailable(f"kernel cannot serve {BODY_NAMES.get(body, body)}: {e}",
                                       body=body, jd_tt=jd_tt) from e
        return np.array(at.position.au, dtype=float), np.array(at.velocity.au_per_d, dtype=float)

    def _small_body_state(self, body: int, jd_tt: float) -> Tuple[np.ndarray, np.ndarray]:
        self._spice_bootstrap()
        et = (float(jd_tt) - 2451545.0) * _SECONDS_PER_DAY
        try:
            st, _lt = sp.spkezr(str(_NAIF_SMALL[body]), et, "J2000", "NONE", "0")
        except SpiceyError as e:
            raise EphemerisUnavailable(f"SPICE cannot serve {BODY_NAMES[body]}: {e}",
                                       body=body, jd_tt=jd_tt) from e
        st = np.asarray(st, dtype=float)
        # SPICE "J2000" is the mean dynamical J2000 frame; undo the frame bias
        rb, _rp, _rbp = erfa.bp06(*split_jd(jd_tt))
        rbt = np.asarray(rb).T
        pos = rbt @ (st[:3] / AU_KM)
        vel = rbt @ (st[3:] * _SECONDS_PER_DAY / AU_KM)
        return pos, vel

    def available(self) -> bool:
        try:
            self._get_kernel()
        except EphemerisUnavailable as e:
            log.debug("provider unavailable: %s", e)
            return False
        return True

    def describe(self) -> Dict[str, Any]:
        return {
            "provider": "skyfield",
            "kernel": self.kernel_path,
            "loaded": self._kernel is not None,
            "small_body_kernels": [os.path.basename(p) for p in self._spice_kernels],
        }

    def close(self) -> None:
        with self._lock:
            if self._kernel is not None:
                self._kernel.close()
            self._kernel = None
            self._ts = None
            for p in self._spice_kernels:
                _spice_release(p)
            self._spice_kernels = []
            self._spice_ready = False
