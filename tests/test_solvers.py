# tests/test_solvers.py
from __future__ import annotations

import pytest

from astrokernel.core.errors import ConvergenceFailure, NotFound
from astrokernel.core.solvers import (
    EventResult,
    Status,
    bisect,
    bracket_forward,
    golden_minimize,
    secant,
)


# ─────────────────────────────────────────────────────────────────────────────
# bisect
# ─────────────────────────────────────────────────────────────────────────────
def test_bisect_finds_root() -> None:
    res = bisect(lambda x: x - 0.3, 0.0, 1.0)
    assert res.status is Status.FOUND
    assert res.x == pytest.approx(0.3, abs=1e-8)


def test_bisect_without_sign_change_is_not_found() -> None:
    res = bisect(lambda x: x * x + 1.0, -1.0, 1.0)
    assert res.status is Status.NOT_FOUND
    assert res.bracket == (-1.0, 1.0)
    assert res.x is None


def test_bisect_iteration_cap() -> None:
    res = bisect(lambda x: x - 0.3, 0.0, 1.0, tol=0.0, max_iter=5)
    assert res.status is Status.CONVERGENCE_FAILURE
    assert res.iterations == 5
    assert 0.25 <= res.x <= 0.3125


# ─────────────────────────────────────────────────────────────────────────────
# secant
# ─────────────────────────────────────────────────────────────────────────────
def test_secant_finds_root() -> None:
    res = secant(lambda x: x ** 3 - 2.0, 1.0, 2.0)
    assert res.found
    assert res.x == pytest.approx(2.0 ** (1.0 / 3.0), abs=1e-9)


def test_secant_on_rootless_function_hits_the_cap() -> None:
    res = secant(lambda x: x * x + 1.0, 0.0, 1.0, tol_f=0.0, tol_step=0.0, max_iter=8)
    assert res.status is Status.CONVERGENCE_FAILURE
    assert res.iterations == 8
    assert not res.found


# ─────────────────────────────────────────────────────────────────────────────
# golden_minimize / bracket_forward
# ─────────────────────────────────────────────────────────────────────────────
def test_golden_minimize() -> None:
    res = golden_minimize(lambda x: (x - 1.0) ** 2, 3.0, 0.0)
    assert res.found
    assert res.x == pytest.approx(1.0, abs=1e-6)


def test_golden_minimize_iteration_cap() -> None:
    res = golden_minimize(lambda x: (x - 1.0) ** 2, 0.0, 3.0, tol=0.0, max_iter=10)
    assert res.status is Status.CONVERGENCE_FAILURE
    assert res.iterations == 10
    assert abs(res.x - 1.0) < 0.1


def test_bracket_forward_not_found() -> None:
    res = bracket_forward(lambda t: 1.0, 0.0, 0.25, 1.0)
    assert res.status is Status.NOT_FOUND
    assert res.iterations == 4


def test_bracket_backward_is_ordered_in_scan_direction() -> None:
    res = bracket_forward(lambda t: t + 0.55, 0.0, 0.1, 1.0, backward=True)
    assert res.found
    a, b = res.bracket
    assert a > b
    assert b <= -0.55 <= a


@pytest.mark.parametrize("step, span", [(0.0, 1.0), (0.1, -1.0)])
def test_bracket_rejects_bad_limits(step: float, span: float) -> None:
    with pytest.raises(ValueError):
        bracket_forward(lambda t: t, 0.0, step, span)


# ─────────────────────────────────────────────────────────────────────────────
# EventResult
# ─────────────────────────────────────────────────────────────────────────────
def test_event_result_unwrap() -> None:
    assert EventResult(Status.FOUND, jd=2451545.0).unwrap() == 2451545.0
    with pytest.raises(NotFound):
        EventResult(Status.NOT_FOUND, kind=1).unwrap()
    with pytest.raises(ConvergenceFailure) as exc:
        EventResult(Status.CONVERGENCE_FAILURE, jd=2451545.1, kind=1).unwrap()
    assert exc.value.code == "convergence_failure"
    assert exc.value.context == {"kind": 1}


def test_event_result_payload() -> None:
    d = EventResult(Status.CONVERGENCE_FAILURE, jd=1.5, kind=2, warnings=["w"]).to_dict()
    assert d == {"status": "convergence_failure", "jd": 1.5, "kind": 2, "times": [], "warnings": ["w"]}
