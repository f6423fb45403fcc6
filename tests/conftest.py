# tests/conftest.py
from __future__ import annotations

"""
Pytest configuration for the astrokernel suite.

- Registers Hypothesis profiles for local dev and CI.
- Freezes the process TZ to UTC.
- Provides isolated engine contexts (analytic model only) and a stub
  ephemeris provider that serves the analytic states through the provider
  boundary, so the provider code paths run without a kernel file.
- Adds a 'slow' marker for the eclipse and multi-day searches.
"""

import os
from typing import Any, Dict, List, Set, Tuple

import numpy as np
import pytest
from hypothesis import HealthCheck, settings

from astrokernel.core import series
from astrokernel.core.context import EngineContext
from astrokernel.core.errors import EphemerisUnavailable


# ──────────────────────────────────────────────────────────────────────────────
# Hypothesis profiles
# ──────────────────────────────────────────────────────────────────────────────
settings.register_profile(
    "dev",
    settings(
        deadline=None,
        max_examples=40,
        suppress_health_check=[HealthCheck.too_slow],
    ),
)
settings.register_profile(
    "ci",
    settings(
        deadline=None,
        max_examples=100,
        suppress_health_check=[HealthCheck.too_slow],
    ),
)

_profile = (
    "ci"
    if (os.getenv("CI") or os.getenv("GITHUB_ACTIONS"))
    else os.getenv("HYPOTHESIS_PROFILE", "dev")
)
settings.load_profile(_profile)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: mark test as slow")
    config.addinivalue_line("filterwarnings", "ignore::DeprecationWarning")


def pytest_report_header(config: pytest.Config) -> str:
    return f"Hypothesis profile: '{_profile}'"


# ──────────────────────────────────────────────────────────────────────────────
# Stub provider
# ──────────────────────────────────────────────────────────────────────────────
class StubProvider:
    """EphemerisProvider double backed by the analytic series."""

    def __init__(self, missing: Set[int] = frozenset(), up: bool = True):
        self.missing = set(missing)
        self.up = up
        self.calls: List[Tuple[int, float]] = []
        self.closed = False

    def state(self, body: int, jd_tt: float) -> Tuple[np.ndarray, np.ndarray]:
        self.calls.append((body, jd_tt))
        if body in self.missing:
            raise EphemerisUnavailable("body not in stub kernel", body=body)
        return series.barycentric_state(body, jd_tt)

    def available(self) -> bool:
        return self.up

    def describe(self) -> Dict[str, Any]:
        return {"kind": "stub", "missing": sorted(self.missing)}

    def close(self) -> None:
        self.closed = True


# ──────────────────────────────────────────────────────────────────────────────
# Global fixtures
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session", autouse=True)
def freeze_tz_env():
    prev = os.environ.get("TZ")
    os.environ["TZ"] = "UTC"
    try:
        yield
    finally:
        if prev is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = prev


@pytest.fixture()
def ctx() -> EngineContext:
    """Fresh context without an ephemeris path: analytic model only."""
    c = EngineContext(ephe_path=None)
    yield c
    c.close()


@pytest.fixture()
def stub_provider() -> StubProvider:
    return StubProvider()


@pytest.fixture()
def stub_ctx(stub_provider: StubProvider) -> EngineContext:
    c = EngineContext(ephe_path=None, provider=stub_provider)
    yield c
    c.close()


@pytest.fixture()
def app():
    from astrokernel.main import create_app
    application = create_app(settings={"ephemeris": {"path": None}, "sidereal": {"mode": 0}})
    application.testing = True
    return application


@pytest.fixture()
def client(app):
    return app.test_client()
