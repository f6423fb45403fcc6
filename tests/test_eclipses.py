# tests/test_eclipses.py
from __future__ import annotations

import pytest

from astrokernel.core.constants import (
    ECL_CENTRAL,
    ECL_PARTIAL,
    ECL_TOTAL,
    FLG_MOSEPH,
)
from astrokernel.core.eclipses import lunar_eclipse_when, solar_eclipse_when_global
from astrokernel.core.errors import InvalidArgument
from astrokernel.core.solvers import Status
from astrokernel.core.timescales import julian_day

pytestmark = pytest.mark.slow

JD_REF = 2444838.972916667
MAX_TOL = 0.01      # days


def test_next_lunar_eclipse(ctx) -> None:
    res = lunar_eclipse_when(JD_REF, FLG_MOSEPH, 0, ctx=ctx)
    assert res.status is Status.FOUND
    assert res.kind > 0 and res.kind & ECL_TOTAL
    # 1982 Jan 9, total
    assert res.jd == pytest.approx(2444979.33, abs=MAX_TOL)
    t = res.times
    assert len(t) == 8 and t[0] == res.jd
    assert t[6] < t[2] < t[4] < t[0] < t[5] < t[3] < t[7]


def test_next_solar_eclipse(ctx) -> None:
    res = solar_eclipse_when_global(JD_REF, FLG_MOSEPH, 0, ctx=ctx)
    assert res.found
    # 1982 Jan 25, partial
    assert res.kind & ECL_PARTIAL
    assert res.jd == pytest.approx(2444994.70, abs=MAX_TOL)
    t = res.times
    assert t[2] < t[0] < t[3]
    assert t[4] == t[5] == t[6] == t[7] == 0.0


def test_total_solar_eclipse_2017(ctx) -> None:
    res = solar_eclipse_when_global(julian_day(2017, 8, 1, 0.0), FLG_MOSEPH, 0, ctx=ctx)
    assert res.kind & ECL_TOTAL and res.kind & ECL_CENTRAL
    assert res.jd == pytest.approx(2457987.27, abs=MAX_TOL)
    t = res.times
    assert t[2] < t[4] < t[0] < t[5] < t[3]
    assert t[6] < t[0] < t[7]


def test_backward_search(ctx) -> None:
    solar = solar_eclipse_when_global(JD_REF, FLG_MOSEPH, 0, backward=True, ctx=ctx)
    # 1981 Jul 31, total
    assert solar.jd < JD_REF
    assert solar.jd == pytest.approx(2444816.66, abs=0.05)
    assert solar.kind & ECL_TOTAL
    lunar = lunar_eclipse_when(JD_REF, FLG_MOSEPH, 0, backward=True, ctx=ctx)
    # 1981 Jul 17, partial
    assert lunar.jd == pytest.approx(2444802.70, abs=0.05)
    assert lunar.kind & ECL_PARTIAL


def test_type_filter_skips_partial_eclipses(ctx) -> None:
    res = solar_eclipse_when_global(JD_REF, FLG_MOSEPH, ECL_TOTAL, ctx=ctx)
    # 1983 Jun 11
    assert res.kind & ECL_TOTAL
    assert res.jd == pytest.approx(2445496.7, abs=0.05)


@pytest.mark.parametrize("ecl_type", [-1, 1 << 10, ECL_CENTRAL])
def test_lunar_rejects_bad_type(ctx, ecl_type: int) -> None:
    with pytest.raises(InvalidArgument):
        lunar_eclipse_when(JD_REF, FLG_MOSEPH, ecl_type, ctx=ctx)


def test_non_finite_start(ctx) -> None:
    with pytest.raises(InvalidArgument):
        solar_eclipse_when_global(float("nan"), FLG_MOSEPH, 0, ctx=ctx)
