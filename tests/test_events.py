# tests/test_events.py
from __future__ import annotations

import pytest

from astrokernel.core import events
from astrokernel.core.constants import (
    BIT_DISC_BOTTOM,
    BIT_HINDU_RISING,
    CALC_ITRANSIT,
    CALC_MTRANSIT,
    CALC_RISE,
    CALC_SET,
    FLG_MOSEPH,
    MOON,
    SUN,
)
from astrokernel.core.errors import ConvergenceFailure, InvalidArgument, NotFound, UnknownBody
from astrokernel.core.events import rise_transit, rise_transit_true_horizon
from astrokernel.core.solvers import Status

JD_REF = 2444838.972916667
LAT_REF = 45.45
LON_REF = -112.183333

# southern winter site used for the Hindu-rising references
LAT_SOUTH = -67.816667
LON_SOUTH = -134.55

EVENT_TOL = 2e-4    # days


def test_hindu_sunrise_reference(ctx) -> None:
    res = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE | BIT_HINDU_RISING, LAT_SOUTH, LON_SOUTH, ctx=ctx)
    assert res.status is Status.FOUND
    assert res.kind == CALC_RISE
    assert res.jd == pytest.approx(2444839.210049, abs=EVENT_TOL)
    assert res.times == (res.jd,)


def test_hindu_sunrise_true_horizon_reference(ctx) -> None:
    res = rise_transit_true_horizon(JD_REF, SUN, FLG_MOSEPH, CALC_RISE | BIT_HINDU_RISING,
                                    LAT_SOUTH, LON_SOUTH, 0.0, 0.0, 0.0, 1.0, ctx=ctx)
    assert res.unwrap() == pytest.approx(2444839.218877, abs=EVENT_TOL)


def test_rise_transit_set_order(ctx) -> None:
    rise = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, ctx=ctx).unwrap()
    transit = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_MTRANSIT, LAT_REF, LON_REF, ctx=ctx).unwrap()
    sett = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_SET, LAT_REF, LON_REF, ctx=ctx).unwrap()
    lower = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_ITRANSIT, LAT_REF, LON_REF, ctx=ctx).unwrap()
    assert JD_REF < rise < transit < sett < lower
    assert lower - transit == pytest.approx(0.5, abs=0.01)


def test_solar_transit_near_local_noon(ctx) -> None:
    transit = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_MTRANSIT, LAT_REF, LON_REF, ctx=ctx).unwrap()
    # local mean noon in UT; late August the equation of time is about -2.5 min
    mean_noon = 2444839.0 - LON_REF / 360.0
    assert abs(transit - mean_noon) * 1440.0 < 10.0


def test_lower_limb_rises_after_upper_limb(ctx) -> None:
    upper = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, ctx=ctx).unwrap()
    lower = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE | BIT_DISC_BOTTOM, LAT_REF, LON_REF, ctx=ctx).unwrap()
    assert 0.0 < (lower - upper) * 1440.0 < 10.0


def test_moon_rise_found(ctx) -> None:
    res = rise_transit(JD_REF, MOON, FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, ctx=ctx)
    assert res.found
    assert JD_REF < res.jd < JD_REF + 1.1


def test_star_rise_by_name(ctx) -> None:
    res = rise_transit(JD_REF, "Aldebaran", FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, ctx=ctx)
    assert res.found
    assert JD_REF < res.jd < JD_REF + 1.0


def test_circumpolar_sun_never_rises(ctx) -> None:
    res = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE, 85.0, LON_REF, ctx=ctx)
    assert res.status is Status.NOT_FOUND
    assert res.to_dict()["status"] == "not_found"
    with pytest.raises(NotFound):
        res.unwrap()


def test_search_does_not_touch_context_observer(ctx) -> None:
    rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, ctx=ctx)
    assert ctx.observer is None


@pytest.mark.parametrize("rsmi", [0, CALC_RISE | CALC_SET, CALC_MTRANSIT | CALC_ITRANSIT, 16])
def test_event_selector_must_be_single(ctx, rsmi: int) -> None:
    with pytest.raises(InvalidArgument):
        rise_transit(JD_REF, SUN, FLG_MOSEPH, rsmi, LAT_REF, LON_REF, ctx=ctx)


def test_bad_targets(ctx) -> None:
    with pytest.raises(InvalidArgument):
        rise_transit(JD_REF, "  ", FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, ctx=ctx)
    with pytest.raises(UnknownBody):
        rise_transit(JD_REF, -5, FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, ctx=ctx)


def test_bad_numeric_inputs(ctx) -> None:
    with pytest.raises(InvalidArgument):
        rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, pressure=float("nan"), ctx=ctx)
    with pytest.raises(InvalidArgument):
        rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE, 95.0, LON_REF, ctx=ctx)


def test_bisection_cap_is_reported_not_raised(ctx, monkeypatch) -> None:
    exact = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, ctx=ctx).unwrap()
    monkeypatch.setattr(events, "RISE_TOL_DAYS", 0.0)
    res = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, ctx=ctx)
    assert res.status is Status.CONVERGENCE_FAILURE
    assert not res.found
    # the last midpoint still lies next to the root
    assert res.jd == pytest.approx(exact, abs=1e-6)
    with pytest.raises(ConvergenceFailure):
        res.unwrap()


def test_true_horizon_at_sea_level_matches_plain_rise(ctx) -> None:
    plain = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, ctx=ctx).unwrap()
    true_hor = rise_transit_true_horizon(JD_REF, SUN, FLG_MOSEPH, CALC_RISE,
                                         LAT_REF, LON_REF, 0.0, 0.0, 10.0, 0.0, ctx=ctx).unwrap()
    assert true_hor == pytest.approx(plain, abs=1e-7)


def test_true_horizon_dip_brings_sunrise_forward(ctx) -> None:
    alt = 1524.0
    plain = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, alt=alt, ctx=ctx).unwrap()
    sea = rise_transit(JD_REF, SUN, FLG_MOSEPH, CALC_RISE, LAT_REF, LON_REF, ctx=ctx).unwrap()
    dipped = rise_transit_true_horizon(JD_REF, SUN, FLG_MOSEPH, CALC_RISE,
                                       LAT_REF, LON_REF, alt, 0.0, 10.0, 0.0, ctx=ctx).unwrap()
    # height alone only thins the air a little
    assert abs(plain - sea) * 1440.0 < 2.0
    # a horizon about one degree lower: several minutes earlier
    assert 3.0 < (plain - dipped) * 1440.0 < 20.0
