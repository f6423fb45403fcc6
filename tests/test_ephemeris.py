# tests/test_ephemeris.py
from __future__ import annotations

import math

import pytest

from astrokernel.core import engine
from astrokernel.core.constants import (
    CERES,
    EARTH,
    FLG_BARYCTR,
    FLG_EQUATORIAL,
    FLG_HELCTR,
    FLG_JPLEPH,
    FLG_MOSEPH,
    FLG_RADIANS,
    FLG_SIDEREAL,
    FLG_SPEED,
    FLG_SWIEPH,
    FLG_TOPOCTR,
    FLG_TRUEPOS,
    FLG_XYZ,
    JUPITER,
    MARS,
    MEAN_NODE,
    MOON,
    SIDM_LAHIRI,
    SUN,
    SUPPORTED_BODIES,
    TRUE_NODE,
)
from astrokernel.core.ephemeris import PositionVector, position, position_et
from astrokernel.core.errors import EphemerisUnavailable, InvalidArgument, UnknownBody
from astrokernel.core.deltat import delta_t

JD_REF = 2444838.972916667
LAT_REF = 45.45
LON_REF = -112.183333
ALT_REF = 1524.0

LON_TOL = 3e-5      # degrees; analytic-theory residual is ~1.1e-5
AYAN_TOL = 2e-4     # degrees; named-mode anchor residual


def test_sun_apparent_reference(ctx) -> None:
    pos = position(JD_REF, SUN, FLG_MOSEPH, ctx)
    assert isinstance(pos, PositionVector)
    assert pos.lon == pytest.approx(149.265662, abs=LON_TOL)
    assert pos.lat == pytest.approx(-0.000121, rel=0.1)
    assert pos.dist == pytest.approx(1.011294, abs=1e-5)
    assert pos[3:] == (0.0, 0.0, 0.0)


def test_sun_speed_reference(ctx) -> None:
    pos = position(JD_REF, SUN, FLG_MOSEPH | FLG_SPEED, ctx)
    assert pos.speed_lon == pytest.approx(0.963605, rel=2e-5)
    assert pos.speed_lat == pytest.approx(0.000014, rel=0.2)
    assert pos.speed_dist == pytest.approx(-0.000203, abs=1e-5)


def test_sun_true_position_skips_aberration(ctx) -> None:
    pos = position(JD_REF, SUN, FLG_MOSEPH | FLG_TRUEPOS | FLG_SPEED, ctx)
    assert pos.lon == pytest.approx(149.271289, abs=LON_TOL)
    assert pos.dist == pytest.approx(1.011294, abs=1e-5)


def test_sun_topocentric_reference(ctx) -> None:
    ctx.set_observer(LON_REF, LAT_REF, ALT_REF)
    pos = position(JD_REF, SUN, FLG_MOSEPH | FLG_TRUEPOS | FLG_SPEED | FLG_TOPOCTR, ctx)
    assert pos.lon == pytest.approx(149.273280, abs=LON_TOL)
    assert pos.lat == pytest.approx(-0.001368, rel=0.02)
    assert pos.dist == pytest.approx(1.011304, abs=1e-5)
    assert pos.speed_lon == pytest.approx(0.968366, rel=1e-4)
    assert pos.speed_lat == pytest.approx(0.003744, rel=0.01)


def test_sun_sidereal_topocentric_reference(ctx) -> None:
    ctx.set_observer(LON_REF, LAT_REF, ALT_REF)
    ctx.set_sidereal_mode(SIDM_LAHIRI)
    flags = FLG_MOSEPH | FLG_TRUEPOS | FLG_SPEED | FLG_TOPOCTR
    pos = position(JD_REF, SUN, flags | FLG_SIDEREAL, ctx)
    assert pos.lon == pytest.approx(125.676605, abs=AYAN_TOL)
    assert pos.lat == pytest.approx(-0.001368, rel=0.02)
    tropical = position(JD_REF, SUN, flags, ctx)
    ayan = engine.ayanamsa_extended(JD_REF, flags, ctx=ctx)
    assert pos.lon == pytest.approx((tropical.lon - ayan) % 360.0, abs=1e-9)


def test_topocentric_requires_observer(ctx) -> None:
    with pytest.raises(InvalidArgument):
        position(JD_REF, SUN, FLG_MOSEPH | FLG_TOPOCTR, ctx)


def test_moon_is_fast_and_near(ctx) -> None:
    pos = position(JD_REF, MOON, FLG_MOSEPH | FLG_SPEED, ctx)
    assert 0.0023 < pos.dist < 0.0028
    assert 11.0 < pos.speed_lon < 15.5
    assert abs(pos.lat) < 5.4


@pytest.mark.parametrize("body", SUPPORTED_BODIES)
def test_every_supported_body_has_a_position(ctx, body: int) -> None:
    pos = position(JD_REF, body, FLG_MOSEPH | FLG_SPEED, ctx)
    assert all(math.isfinite(v) for v in pos)
    assert 0.0 <= pos.lon < 360.0
    if body == EARTH:
        assert pos.dist == 0.0


def test_heliocentric_earth_opposes_geocentric_sun(ctx) -> None:
    sun = position(JD_REF, SUN, FLG_MOSEPH | FLG_TRUEPOS, ctx)
    earth = position(JD_REF, EARTH, FLG_MOSEPH | FLG_HELCTR | FLG_TRUEPOS, ctx)
    assert (earth.lon - sun.lon) % 360.0 == pytest.approx(180.0, abs=1e-6)
    assert earth.dist == pytest.approx(sun.dist, rel=1e-9)


def test_heliocentric_sun_is_origin(ctx) -> None:
    assert position(JD_REF, SUN, FLG_MOSEPH | FLG_HELCTR, ctx)[:3] == (0.0, 0.0, 0.0)


def test_barycentric_sun_is_close_to_origin(ctx) -> None:
    assert position(JD_REF, SUN, FLG_MOSEPH | FLG_BARYCTR, ctx).dist < 0.011


def test_xyz_matches_spherical(ctx) -> None:
    sph = position(JD_REF, MARS, FLG_MOSEPH, ctx)
    x, y, z = position(JD_REF, MARS, FLG_MOSEPH | FLG_XYZ, ctx)[:3]
    lon = math.degrees(math.atan2(y, x)) % 360.0
    assert lon == pytest.approx(sph.lon, abs=1e-9)
    assert math.sqrt(x * x + y * y + z * z) == pytest.approx(sph.dist, rel=1e-12)


def test_radians_flag(ctx) -> None:
    deg = position(JD_REF, JUPITER, FLG_MOSEPH | FLG_SPEED, ctx)
    rad = position(JD_REF, JUPITER, FLG_MOSEPH | FLG_SPEED | FLG_RADIANS, ctx)
    assert rad.lon == pytest.approx(math.radians(deg.lon))
    assert rad.speed_lon == pytest.approx(math.radians(deg.speed_lon))
    assert rad.dist == deg.dist


def test_equatorial_flag_agrees_with_cotrans(ctx) -> None:
    from astrokernel.core.frames import true_obliquity

    ecl = position(JD_REF, MARS, FLG_MOSEPH, ctx)
    equ = position(JD_REF, MARS, FLG_MOSEPH | FLG_EQUATORIAL, ctx)
    eps = true_obliquity(JD_REF + delta_t(JD_REF))
    ra, dec, _ = engine.cotrans(ecl.lon, ecl.lat, ecl.dist, -eps)
    assert equ.lon == pytest.approx(ra, abs=1e-8)
    assert equ.lat == pytest.approx(dec, abs=1e-8)


def test_position_et_matches_position(ctx) -> None:
    jd_et = JD_REF + delta_t(JD_REF)
    a = position(JD_REF, MARS, FLG_MOSEPH, ctx)
    b = position_et(jd_et, MARS, FLG_MOSEPH, ctx)
    assert b.lon == pytest.approx(a.lon, abs=1e-7)


def test_identical_calls_are_repeatable(ctx) -> None:
    flags = FLG_MOSEPH | FLG_SPEED | FLG_TOPOCTR
    ctx.set_observer(LON_REF, LAT_REF, ALT_REF)
    a = position(JD_REF, MOON, flags, ctx)
    position(JD_REF + 1.0, MARS, FLG_MOSEPH, ctx)
    assert position(JD_REF, MOON, flags, ctx) == a


def test_lunar_points_are_geocentric_only(ctx) -> None:
    node = position(JD_REF, MEAN_NODE, FLG_MOSEPH, ctx)
    assert node.lat == pytest.approx(0.0, abs=1e-9)
    true_node = position(JD_REF, TRUE_NODE, FLG_MOSEPH, ctx)
    assert abs(engine.difference_degrees(true_node.lon, node.lon)) < 2.5
    with pytest.raises(InvalidArgument):
        position(JD_REF, MEAN_NODE, FLG_MOSEPH | FLG_HELCTR, ctx)


@pytest.mark.parametrize("body", [-1, 21, 9999, "sun", 1.5, True])
def test_unknown_body(ctx, body) -> None:
    with pytest.raises(UnknownBody):
        position(JD_REF, body, FLG_MOSEPH, ctx)


@pytest.mark.parametrize("flags", [-1, 1.5, True])
def test_invalid_flags(ctx, flags) -> None:
    with pytest.raises(InvalidArgument):
        position(JD_REF, SUN, flags, ctx)


def test_non_finite_date(ctx) -> None:
    with pytest.raises(InvalidArgument):
        position(float("nan"), SUN, FLG_MOSEPH, ctx)


def test_jpleph_without_path_is_unavailable(ctx) -> None:
    with pytest.raises(EphemerisUnavailable):
        position(JD_REF, SUN, FLG_JPLEPH, ctx)


def test_swieph_without_path_falls_back_to_analytic(ctx, caplog) -> None:
    a = position(JD_REF, SUN, FLG_SWIEPH, ctx)
    b = position(JD_REF, SUN, FLG_MOSEPH, ctx)
    assert a == b
    assert "analytic model" in caplog.text


# ─────────────────────────────────────────────────────────────────────────────
# Provider boundary
# ─────────────────────────────────────────────────────────────────────────────
def test_stub_provider_serves_jpleph(stub_ctx, stub_provider) -> None:
    pos = position(JD_REF, MARS, FLG_JPLEPH, stub_ctx)
    assert stub_provider.calls
    assert pos.lon == pytest.approx(position(JD_REF, MARS, FLG_MOSEPH, stub_ctx).lon, abs=1e-12)


def test_stub_provider_missing_body_strict(stub_ctx, stub_provider) -> None:
    stub_provider.missing.add(CERES)
    with pytest.raises(EphemerisUnavailable):
        position(JD_REF, CERES, FLG_JPLEPH, stub_ctx)


def test_stub_provider_missing_body_falls_back(stub_ctx, stub_provider, caplog) -> None:
    stub_provider.missing.add(CERES)
    pos = position(JD_REF, CERES, FLG_SWIEPH, stub_ctx)
    assert pos.lon == pytest.approx(position(JD_REF, CERES, FLG_MOSEPH, stub_ctx).lon, abs=1e-12)
    assert "using the analytic model" in caplog.text


def test_provider_down_uses_analytic(stub_ctx, stub_provider) -> None:
    stub_provider.up = False
    position(JD_REF, SUN, FLG_SWIEPH, stub_ctx)
    assert stub_provider.calls == []


def test_default_source_prefers_provider(stub_ctx, stub_provider) -> None:
    pos = position(JD_REF, MARS, 0, stub_ctx)
    assert stub_provider.calls
    assert pos == position(JD_REF, MARS, FLG_MOSEPH, stub_ctx)


def test_default_source_falls_back_when_provider_down(stub_ctx, stub_provider, caplog) -> None:
    stub_provider.up = False
    position(JD_REF, SUN, 0, stub_ctx)
    assert stub_provider.calls == []
    assert "using the analytic model" in caplog.text


def test_fallback_warns_once_per_source(ctx, caplog) -> None:
    def warnings() -> int:
        return sum(1 for r in caplog.records if r.levelname == "WARNING" and "analytic model" in r.getMessage())

    position(JD_REF, SUN, 0, ctx)
    position(JD_REF, MARS, FLG_SWIEPH, ctx)
    assert warnings() == 1
    ctx.set_ephemeris_path(None)
    position(JD_REF, SUN, 0, ctx)
    assert warnings() == 2
