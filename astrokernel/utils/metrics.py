# astrokernel/utils/metrics.py
"""
Prometheus collectors shared by the engine and the HTTP layer.

Names are stable; dashboards key on them.
"""
from __future__ import annotations

from typing import Final

from prometheus_client import Counter, Gauge, Histogram

__all__ = [
    "MET_REQUESTS",
    "MET_FALLBACKS",
    "MET_WARNINGS",
    "MET_PROVIDER_FALLBACKS",
    "GAUGE_APP_UP",
    "REQ_LATENCY",
]

MET_REQUESTS: Final = Counter("astro_api_requests_total", "API requests", ["route"])
MET_FALLBACKS: Final = Counter(
    "astro_house_fallback_total", "House fallbacks at high latitude", ["requested", "fallback"]
)
MET_WARNINGS: Final = Counter("astro_warning_total", "Non-fatal warnings", ["kind"])
MET_PROVIDER_FALLBACKS: Final = Counter(
    "astro_provider_fallback_total", "Positions served by the analytic model instead of the kernel", ["body"]
)
GAUGE_APP_UP: Final = Gauge("astro_app_up", "1 if app is running")
REQ_LATENCY: Final = Histogram("astro_request_seconds", "API request latency", ["route"])
