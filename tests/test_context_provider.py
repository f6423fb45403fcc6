# tests/test_context_provider.py
from __future__ import annotations

import math

import pytest

from astrokernel.core import engine, provider
from astrokernel.core.constants import CERES, FLG_JPLEPH, FLG_MOSEPH, MARS, SIDM_LAHIRI, SUN
from astrokernel.core.context import EngineContext, GeoLocation
from astrokernel.core.ephemeris import position
from astrokernel.core.errors import (
    EphemerisUnavailable,
    InvalidArgument,
    InvalidHouseSystem,
    UnknownBody,
)
from astrokernel.core.provider import SkyfieldProvider, looks_like_lfs_pointer
from astrokernel.version import VERSION

JD_REF = 2444838.972916667

LFS_HEAD = b"version https://git-lfs.github.com/spec/v1\noid sha256:abc\nsize 17000000\n"


@pytest.fixture(autouse=True)
def _no_ephemeris_env(monkeypatch):
    for name in ("ASTRO_EPHE_PATH", "SE_EPHE_PATH", "ASTRO_EXTRA_SPK_FILES"):
        monkeypatch.delenv(name, raising=False)


# ─────────────────────────────────────────────────────────────────────────────
# Observer & sidereal settings
# ─────────────────────────────────────────────────────────────────────────────
@pytest.mark.parametrize("lon, lat, alt", [
    (0.0, 91.0, 0.0),
    (-181.0, 0.0, 0.0),
    (math.nan, 0.0, 0.0),
    (0.0, 0.0, 200000.0),
    ("10", 0.0, 0.0),
])
def test_geolocation_validation(lon, lat, alt) -> None:
    with pytest.raises(InvalidArgument):
        GeoLocation(lon=lon, lat=lat, alt=alt)


def test_bad_observer_keeps_previous(ctx) -> None:
    ctx.set_observer(10.0, 20.0, 30.0)
    with pytest.raises(InvalidArgument):
        ctx.set_observer(10.0, 120.0)
    assert ctx.observer == GeoLocation(10.0, 20.0, 30.0)


def test_sidereal_mode_setter(ctx) -> None:
    ctx.set_sidereal_mode(SIDM_LAHIRI)
    assert ctx.sidereal.mode == SIDM_LAHIRI
    with pytest.raises(InvalidArgument):
        ctx.set_sidereal_mode(77)
    assert ctx.sidereal.mode == SIDM_LAHIRI


def test_describe(ctx) -> None:
    ctx.set_observer(1.0, 2.0, 3.0)
    d = ctx.describe()
    assert d["observer"] == {"lon": 1.0, "lat": 2.0, "alt": 3.0}
    assert d["ephe_path"] is None and d["provider"] is None
    assert d["sidereal_mode"] == 0
    assert engine.describe(ctx)["version"] == VERSION


def test_contexts_are_independent() -> None:
    a, b = EngineContext(), EngineContext()
    a.set_sidereal_mode(SIDM_LAHIRI)
    a.set_observer(5.0, 6.0)
    assert b.sidereal.mode == 0 and b.observer is None


def test_with_observer_shares_provider(stub_ctx, stub_provider) -> None:
    other = stub_ctx.with_observer(-112.183333, 45.45, 1524.0)
    assert other.provider() is stub_provider
    assert other.observer == GeoLocation(-112.183333, 45.45, 1524.0)
    assert stub_ctx.observer is None


# ─────────────────────────────────────────────────────────────────────────────
# Provider lifecycle
# ─────────────────────────────────────────────────────────────────────────────
def test_close_resets_everything(stub_ctx, stub_provider) -> None:
    stub_ctx.set_observer(1.0, 2.0)
    stub_ctx.set_sidereal_mode(SIDM_LAHIRI)
    stub_ctx.close()
    assert stub_provider.closed
    assert stub_ctx.provider() is None
    assert stub_ctx.observer is None
    assert stub_ctx.sidereal.mode == 0
    with pytest.raises(EphemerisUnavailable):
        position(JD_REF, SUN, FLG_JPLEPH, stub_ctx)


def test_path_change_keeps_injected_provider(stub_ctx, stub_provider) -> None:
    stub_ctx.set_ephemeris_path("/nonexistent")
    assert not stub_provider.closed
    assert stub_ctx.provider() is stub_provider


def test_set_provider_swaps_source(ctx, stub_provider) -> None:
    ctx.set_provider(stub_provider)
    position(JD_REF, MARS, FLG_JPLEPH, ctx)
    assert stub_provider.calls
    ctx.set_provider(None)
    with pytest.raises(EphemerisUnavailable):
        position(JD_REF, MARS, FLG_JPLEPH, ctx)


@pytest.mark.parametrize("name", ["", "dir/de421.bsp", None])
def test_ephemeris_file_must_be_bare_name(ctx, name) -> None:
    with pytest.raises(InvalidArgument):
        ctx.set_ephemeris_file(name)


def test_ephemeris_file_setter(ctx) -> None:
    engine.set_ephemeris_file("de440s.bsp", ctx=ctx)
    assert ctx.ephe_file == "de440s.bsp"


def test_skyfield_provider_missing_kernel(tmp_path) -> None:
    prov = SkyfieldProvider(str(tmp_path), "de421.bsp")
    assert prov.available() is False
    with pytest.raises(EphemerisUnavailable):
        prov.state(SUN, 2451545.0)
    assert prov.describe()["loaded"] is False
    prov.close()


def test_skyfield_provider_rejects_lfs_pointer(tmp_path) -> None:
    (tmp_path / "de421.bsp").write_bytes(LFS_HEAD)
    prov = SkyfieldProvider(str(tmp_path), "de421.bsp")
    with pytest.raises(EphemerisUnavailable, match="LFS"):
        prov.state(MARS, 2451545.0)


def test_small_bodies_need_extra_kernels(tmp_path) -> None:
    prov = SkyfieldProvider(str(tmp_path), "de421.bsp")
    with pytest.raises(EphemerisUnavailable):
        prov.state(CERES, 2451545.0)


def test_shared_small_body_kernel_outlives_first_close(tmp_path, monkeypatch) -> None:
    spk = tmp_path / "ceres.bsp"
    spk.write_bytes(b"DAF/SPK " + b"\0" * 2048)
    calls = []
    monkeypatch.setattr(provider.sp, "furnsh", lambda p: calls.append(("furnsh", p)))
    monkeypatch.setattr(provider.sp, "unload", lambda p: calls.append(("unload", p)))
    a = SkyfieldProvider(str(tmp_path), extra_spk=[str(spk)])
    b = SkyfieldProvider(str(tmp_path), extra_spk=[str(spk)])
    a._spice_bootstrap()
    b._spice_bootstrap()
    assert calls == [("furnsh", str(spk))]
    a.close()
    assert calls == [("furnsh", str(spk))]
    b.close()
    assert calls == [("furnsh", str(spk)), ("unload", str(spk))]
    b.close()
    assert len(calls) == 2


def test_missing_kernel_falls_back_for_default_source(tmp_path, caplog) -> None:
    c = EngineContext(ephe_path=str(tmp_path))
    pos = position(JD_REF, SUN, 0, c)
    assert pos == position(JD_REF, SUN, FLG_MOSEPH, c)
    assert "analytic model" in caplog.text
    with pytest.raises(EphemerisUnavailable):
        position(JD_REF, SUN, FLG_JPLEPH, c)
    c.close()


def test_looks_like_lfs_pointer(tmp_path) -> None:
    ptr = tmp_path / "ptr.bsp"
    ptr.write_bytes(LFS_HEAD)
    real = tmp_path / "real.bsp"
    real.write_bytes(b"DAF/SPK " + b"\0" * 2048)
    assert looks_like_lfs_pointer(str(ptr))
    assert not looks_like_lfs_pointer(str(real))
    assert not looks_like_lfs_pointer(str(tmp_path / "missing.bsp"))


# ─────────────────────────────────────────────────────────────────────────────
# Façade & errors
# ─────────────────────────────────────────────────────────────────────────────
def test_planet_names() -> None:
    assert engine.planet_name(SUN) == "Sun"
    assert engine.planet_name(CERES) == "Ceres"
    with pytest.raises(UnknownBody):
        engine.planet_name(999)


def test_version() -> None:
    assert engine.version() == VERSION
    assert isinstance(VERSION, str) and VERSION


def test_error_payload() -> None:
    err = InvalidHouseSystem("unknown house system", code_given="Z")
    assert err.to_dict() == {
        "error": "invalid_house_system",
        "message": "unknown house system",
        "context": {"code_given": "Z"},
    }
    assert str(err).startswith("invalid_house_system")
    assert isinstance(InvalidArgument("x"), ValueError)
