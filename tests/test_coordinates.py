# tests/test_coordinates.py
from __future__ import annotations

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from astrokernel.core.constants import (
    APP_TO_TRUE,
    ECL2HOR,
    EQU2HOR,
    SPLIT_DEG_NAKSHATRA,
    SPLIT_DEG_ROUND_MIN,
    SPLIT_DEG_ROUND_SEC,
    SPLIT_DEG_ZODIACAL,
    TRUE_TO_APP,
)
from astrokernel.core.coordinates import (
    azimuth_altitude,
    cotrans,
    cotrans_with_speed,
    difference_degrees,
    horizon_dip,
    horizon_refraction,
    normalize_degrees,
    normalize_radians,
    refraction,
    split_degrees,
)
from astrokernel.core.errors import InvalidArgument

JD_REF = 2444838.972916667

finite = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False)


# ─────────────────────────────────────────────────────────────────────────────
# Normalisation
# ─────────────────────────────────────────────────────────────────────────────
def test_normalize_degrees_examples() -> None:
    assert normalize_degrees(30.0) == pytest.approx(30.0)
    assert normalize_degrees(390.0) == pytest.approx(30.0)
    assert normalize_degrees(-30.0) == pytest.approx(330.0)
    assert normalize_degrees(360.0) == 0.0


def test_normalize_radians_examples() -> None:
    assert normalize_radians(math.pi) == pytest.approx(math.pi)
    assert normalize_radians(3 * math.pi) == pytest.approx(math.pi)


@given(x=finite)
def test_normalize_degrees_idempotent(x: float) -> None:
    n = normalize_degrees(x)
    assert 0.0 <= n < 360.0
    assert normalize_degrees(n) == n


@given(a=finite, b=finite)
def test_difference_degrees_range(a: float, b: float) -> None:
    d = difference_degrees(a, b)
    assert -180.0 <= d < 180.0


def test_difference_degrees_wraps() -> None:
    assert difference_degrees(10.0, 350.0) == pytest.approx(20.0)
    assert difference_degrees(350.0, 10.0) == pytest.approx(-20.0)


# ─────────────────────────────────────────────────────────────────────────────
# Rotations
# ─────────────────────────────────────────────────────────────────────────────
def test_cotrans_reference() -> None:
    lon, lat, dist = cotrans(99.0, -8.0, 1.0, 90.0)
    assert lon == pytest.approx(221.936547, abs=1e-6)
    assert lat == pytest.approx(-77.980346, abs=1e-6)
    assert dist == 1.0


@given(
    lon=st.floats(min_value=0.0, max_value=359.9, allow_nan=False),
    lat=st.floats(min_value=-89.0, max_value=89.0, allow_nan=False),
    eps=st.floats(min_value=-60.0, max_value=60.0, allow_nan=False),
)
def test_cotrans_inverse(lon: float, lat: float, eps: float) -> None:
    l2, b2, _ = cotrans(*cotrans(lon, lat, 1.0, eps), -eps)
    assert difference_degrees(l2, lon) == pytest.approx(0.0, abs=1e-7)
    assert b2 == pytest.approx(lat, abs=1e-7)


def test_cotrans_with_speed_matches_finite_difference() -> None:
    eps, lon, lat, dlon, dlat = 23.44, 100.0, 5.0, 1.0, 0.1
    out = cotrans_with_speed(eps, lon, lat, 1.0, dlon, dlat, 0.0)
    assert len(out) == 6
    h = 1e-4
    a = cotrans(lon - dlon * h, lat - dlat * h, 1.0, eps)
    b = cotrans(lon + dlon * h, lat + dlat * h, 1.0, eps)
    assert out[3] == pytest.approx(difference_degrees(b[0], a[0]) / (2 * h), rel=1e-5)
    assert out[4] == pytest.approx((b[1] - a[1]) / (2 * h), rel=1e-5)
    assert out[:3] == pytest.approx(cotrans(lon, lat, 1.0, eps))


# ─────────────────────────────────────────────────────────────────────────────
# Horizon & refraction
# ─────────────────────────────────────────────────────────────────────────────
def test_azimuth_altitude_reference() -> None:
    az, true_alt, app_alt = azimuth_altitude(JD_REF, ECL2HOR, -149.894852, 61.2163129, 0.0,
                                             149.271, -0.00012, 1.0113)
    assert az == pytest.approx(199.962604, abs=1e-3)
    assert true_alt == pytest.approx(-15.418742, abs=1e-3)
    # below the visible limit the apparent altitude equals the true one
    assert app_alt == true_alt


def test_azimuth_altitude_equatorial_frame_agrees() -> None:
    from astrokernel.core.deltat import delta_t
    from astrokernel.core.frames import true_obliquity

    eps = true_obliquity(JD_REF + delta_t(JD_REF))
    ra, dec, _ = cotrans(149.271, -0.00012, 1.0, -eps)
    ecl = azimuth_altitude(JD_REF, ECL2HOR, 10.0, 40.0, 0.0, 149.271, -0.00012)
    equ = azimuth_altitude(JD_REF, EQU2HOR, 10.0, 40.0, 0.0, ra, dec)
    assert equ == pytest.approx(ecl, abs=1e-9)


def test_azimuth_altitude_rejects_bad_frame() -> None:
    with pytest.raises(InvalidArgument):
        azimuth_altitude(JD_REF, 7, 0.0, 0.0, 0.0, 0.0, 0.0)


def test_refraction_near_horizon() -> None:
    app = refraction(0.0, 1013.25, 10.0, TRUE_TO_APP)
    assert 0.45 < app < 0.6
    back = refraction(app, 1013.25, 10.0, APP_TO_TRUE)
    assert back == pytest.approx(0.0, abs=0.02)


def test_refraction_zero_pressure_is_identity() -> None:
    assert refraction(10.0, 0.0, 10.0, TRUE_TO_APP) == 10.0


def test_refraction_rejects_bad_direction() -> None:
    with pytest.raises(InvalidArgument):
        refraction(10.0, 1013.25, 10.0, 5)


def test_horizon_dip_from_height() -> None:
    assert horizon_dip(0.0) == 0.0
    assert horizon_dip(-10.0) == 0.0
    # 5000 ft: about 1.25 deg geometric, 1.08 deg once terrestrial refraction lifts it
    assert horizon_dip(1524.0, refract=False) == pytest.approx(-1.2524, abs=1e-3)
    assert horizon_dip(1524.0) == pytest.approx(-1.0778, abs=1e-3)
    assert horizon_dip(3000.0) < horizon_dip(1524.0) < 0.0


def test_horizon_refraction_below_floor_stays_finite() -> None:
    floor = horizon_refraction(1013.25, 10.0, -2.0)
    assert horizon_refraction(1013.25, 10.0, -4.4) == floor
    assert horizon_refraction(1013.25, 10.0, -30.0) == floor
    assert horizon_refraction(1013.25, 10.0, -1.0) < floor


# ─────────────────────────────────────────────────────────────────────────────
# split_degrees
# ─────────────────────────────────────────────────────────────────────────────
def test_split_degrees_plain() -> None:
    deg, mi, sec, _fr, sign = split_degrees(123.456, 0)
    assert (deg, mi, sec, sign) == (123, 27, 21, 1)


def test_split_degrees_negative_and_rounding() -> None:
    deg, mi, sec, fr, sign = split_degrees(-0.5, SPLIT_DEG_ROUND_SEC)
    assert (deg, mi, sec, fr, sign) == (0, 30, 0, 0.0, -1)
    deg, mi, sec, _fr, _sign = split_degrees(10.999, SPLIT_DEG_ROUND_MIN)
    assert (deg, mi, sec) == (11, 0, 0)


def test_split_degrees_zodiacal_and_nakshatra() -> None:
    deg, mi, _sec, _fr, sign = split_degrees(149.5, SPLIT_DEG_ZODIACAL)
    assert (sign, deg, mi) == (4, 29, 30)
    _deg, _mi, _sec, _fr, nak = split_degrees(20.0, SPLIT_DEG_NAKSHATRA)
    assert nak == 1
