# astrokernel/core/solvers.py
"""
Root / extremum primitives shared by the house and event solvers.

Every routine is a pure function of a callable and explicit limits and
returns a tagged ``SolveResult`` instead of raising; callers decide whether
NOT_FOUND / CONVERGENCE_FAILURE is an error.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple
import logging
import math

from .errors import ConvergenceFailure, NotFound

log = logging.getLogger(__name__)

__all__ = [
    "Status",
    "SolveResult",
    "EventResult",
    "bracket_forward",
    "bisect",
    "secant",
    "golden_minimize",
]

BISECT_TOL = 1e-8
BISECT_MAX_ITERS = 100
SECANT_MAX_ITERS = 50
SECANT_TOL_F = 1e-10
SECANT_TOL_STEP = 1e-9
GOLDEN_TOL = 1e-7
GOLDEN_MAX_ITERS = 200
BRACKET_MAX_STEPS = 100000

_INVPHI = (math.sqrt(5.0) - 1.0) / 2.0


class Status(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    CONVERGENCE_FAILURE = "convergence_failure"


@dataclass(frozen=True)
class SolveResult:
    status: Status
    x: Optional[float] = None
    fx: Optional[float] = None
    iterations: int = 0
    bracket: Optional[Tuple[float, float]] = None

    @property
    def found(self) -> bool:
        return self.status is Status.FOUND


@dataclass(frozen=True)
class EventResult:
    """Outcome of an event search; ``times`` layout depends on the event."""
    status: Status
    jd: Optional[float] = None
    kind: int = 0
    times: Tuple[float, ...] = ()
    warnings: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.status is Status.FOUND

    def unwrap(self) -> float:
        if self.status is Status.FOUND and self.jd is not None:
            return self.jd
        if self.status is Status.CONVERGENCE_FAILURE:
            raise ConvergenceFailure("event solver did not converge", kind=self.kind)
        raise NotFound("no event in the search window", kind=self.kind)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "jd": self.jd,
            "kind": self.kind,
            "times": list(self.times),
            "warnings": list(self.warnings),
        }


def bracket_forward(f: Callable[[float], float], start: float, step: float, span: float,
                    *, backward: bool = False,
                    max_steps: int = BRACKET_MAX_STEPS) -> SolveResult:
    """
    Scan from ``start`` in fixed steps for the first sign change of f within
    ``span``.  The bracket is returned earliest-first in scan direction.
    """
    if step <= 0.0 or span <= 0.0:
        raise ValueError("step and span must be positive")
    direction = -1.0 if backward else 1.0
    t0 = start
    f0 = f(t0)
    n = min(int(math.ceil(span / step)), max_steps)
    for i in range(1, n + 1):
        t1 = start + direction * min(i * step, span)
        f1 = f(t1)
        if f0 == 0.0:
            return SolveResult(Status.FOUND, x=t0, fx=f0, iterations=i, bracket=(t0, t0))
        if (f0 < 0.0) != (f1 < 0.0):
            return SolveResult(Status.FOUND, x=None, iterations=i, bracket=(t0, t1))
        t0, f0 = t1, f1
    return SolveResult(Status.NOT_FOUND, iterations=n)


def bisect(f: Callable[[float], float], a: float, b: float, *, tol: float = BISECT_TOL,
           max_iter: int = BISECT_MAX_ITERS) -> SolveResult:
    """Bisection on a sign-changing bracket; the ends may come in either order."""
    fa, fb = f(a), f(b)
    if fa == 0.0:
        return SolveResult(Status.FOUND, x=a, fx=0.0)
    if fb == 0.0:
        return SolveResult(Status.FOUND, x=b, fx=0.0)
    if (fa < 0.0) == (fb < 0.0):
        return SolveResult(Status.NOT_FOUND, bracket=(a, b))
    for i in range(1, max_iter + 1):
        m = 0.5 * (a + b)
        fm = f(m)
        if fm == 0.0 or abs(b - a) < tol:
            return SolveResult(Status.FOUND, x=m, fx=fm, iterations=i)
        if (fm < 0.0) == (fa < 0.0):
            a, fa = m, fm
        else:
            b, fb = m, fm
    log.debug("bisection stopped at the iteration cap (|b-a|=%.3g)", abs(b - a))
    return SolveResult(Status.CONVERGENCE_FAILURE, x=0.5 * (a + b), iterations=max_iter)


def secant(f: Callable[[float], float], x0: float, x1: float, *, tol_f: float = SECANT_TOL_F,
           tol_step: float = SECANT_TOL_STEP, max_iter: int = SECANT_MAX_ITERS,
           wrap: Optional[Callable[[float], float]] = None) -> SolveResult:
    """
    Secant iteration; ``wrap`` folds iterates back into the domain (e.g. a
    longitude normaliser).  Stops on |f| < tol_f or |step| < tol_step.
    """
    norm = wrap or (lambda x: x)
    x0, x1 = norm(x0), norm(x1)
    f0, f1 = f(x0), f(x1)
    for i in range(1, max_iter + 1):
        denom = f1 - f0
        if abs(denom) < 1e-15:
            x1 = norm(x1 + 1e-7)
            f1 = f(x1)
            continue
        step = f1 * (x1 - x0) / denom
        x2 = norm(x1 - step)
        f2 = f(x2)
        if abs(f2) < tol_f or abs(step) < tol_step:
            return SolveResult(Status.FOUND, x=x2, fx=f2, iterations=i)
        x0, f0, x1, f1 = x1, f1, x2, f2
    log.debug("secant stopped at the iteration cap (|f|=%.3g)", abs(f1))
    return SolveResult(Status.CONVERGENCE_FAILURE, x=x1, fx=f1, iterations=max_iter)


def golden_minimize(f: Callable[[float], float], a: float, b: float, *, tol: float = GOLDEN_TOL,
                    max_iter: int = GOLDEN_MAX_ITERS) -> SolveResult:
    """Golden-section search for the minimum of a unimodal f on [a, b]."""
    if a > b:
        a, b = b, a
    c = b - _INVPHI * (b - a)
    d = a + _INVPHI * (b - a)
    fc, fd = f(c), f(d)
    for i in range(1, max_iter + 1):
        if b - a < tol:
            x = 0.5 * (a + b)
            return SolveResult(Status.FOUND, x=x, fx=f(x), iterations=i)
        if fc < fd:
            b, d, fd = d, c, fc
            c = b - _INVPHI * (b - a)
            fc = f(c)
        else:
            a, c, fc = c, d, fd
            d = a + _INVPHI * (b - a)
            fd = f(d)
    x = 0.5 * (a + b)
    return SolveResult(Status.CONVERGENCE_FAILURE, x=x, fx=f(x), iterations=max_iter)
