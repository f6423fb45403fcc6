# astrokernel/main.py
from __future__ import annotations

import logging
import os
import traceback
from time import perf_counter
from typing import Any, Dict, Final, Mapping, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from astrokernel.api.routes import api as _routes_bp
from astrokernel.core.errors import AstroError
from astrokernel.utils.config import context_from_settings, load_config
from astrokernel.utils.metrics import (
    GAUGE_APP_UP,
    MET_FALLBACKS,
    MET_PROVIDER_FALLBACKS,
    MET_REQUESTS,
    MET_WARNINGS,
    REQ_LATENCY,
)
from astrokernel.version import VERSION

# ───────────────────────── error → HTTP status ─────────────────────────
ERROR_STATUS: Final[Dict[str, int]] = {
    "invalid_date": 400,
    "invalid_argument": 400,
    "invalid_house_system": 400,
    "unknown_body": 404,
    "not_found": 404,
    "undefined_at_latitude": 422,
    "convergence_failure": 500,
    "ephemeris_unavailable": 503,
}

_SEEDED_ROUTES: Final = (
    "/api/health", "/api/julday", "/api/position", "/api/houses", "/api/rise",
    "/api/eclipse/solar", "/api/eclipse/lunar", "/api/orbital-elements", "/metrics",
)


# ───────────────────────── helpers: logging & errors ─────────────────────────
def _configure_logging(app: Flask) -> None:
    gerr = logging.getLogger("gunicorn.error")
    if gerr.handlers:
        app.logger.handlers = gerr.handlers
        app.logger.setLevel(gerr.level)
    else:
        logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))


def _register_errors(app: Flask) -> None:
    @app.errorhandler(AstroError)
    def _astro(e: AstroError):
        status = ERROR_STATUS.get(e.code, 500)
        log_fn = app.logger.error if status >= 500 else app.logger.info
        log_fn("%s at %s %s: %s", e.code, request.method, request.path, e.message)
        body = e.to_dict()
        if "context" in body:
            body["context"] = {k: (v if isinstance(v, (int, float, str, bool, type(None))) else repr(v))
                               for k, v in body["context"].items()}
        return jsonify(ok=False, path=request.path, **body), status

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        app.logger.warning("HTTP %s at %s %s: %s", e.code, request.method, request.path, e.description)
        return jsonify(
            ok=False,
            error="http_error",
            code=e.code,
            name=e.name,
            message=e.description,
            path=request.path,
        ), e.code

    @app.errorhandler(Exception)
    def _any(e: Exception):
        tb = traceback.format_exc()
        app.logger.error("UNHANDLED %s at %s %s\n%s", type(e).__name__, request.method, request.path, tb)
        return jsonify(
            ok=False,
            error="internal_error",
            type=type(e).__name__,
            message=str(e),
            path=request.path,
        ), 500


def _metrics_auth_ok() -> bool:
    """Basic auth applies only when METRICS_USER and METRICS_PASS are both set."""
    user = os.getenv("METRICS_USER", "")
    pw = os.getenv("METRICS_PASS", "")
    if not (user and pw):
        return True
    auth = request.authorization
    return bool(auth and auth.type == "basic" and auth.username == user and auth.password == pw)


def _seed_metrics() -> None:
    for route in _SEEDED_ROUTES:
        MET_REQUESTS.labels(route=route).inc(0)
        REQ_LATENCY.labels(route=route).observe(0.0)
    MET_FALLBACKS.labels(requested="placidus", fallback="porphyry").inc(0)
    MET_WARNINGS.labels(kind="polar_fallback_porphyry").inc(0)
    MET_PROVIDER_FALLBACKS.labels(body="sun").inc(0)
    GAUGE_APP_UP.set(1.0)


# ───────────────────────── app factory ─────────────────────────
def create_app(settings: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Build the HTTP app.  ``settings`` defaults to the YAML file named by
    $ASTRO_CONFIG (see astrokernel.utils.config); the engine context built
    from it is kept in ``app.extensions["astrokernel"]``.
    """
    app = Flask(__name__)
    app.config["JSON_SORT_KEYS"] = False
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)  # type: ignore

    _configure_logging(app)

    app.cfg = load_config() if settings is None else settings  # type: ignore[attr-defined]
    app.extensions["astrokernel"] = context_from_settings(app.cfg)  # type: ignore[attr-defined]

    _seed_metrics()

    @app.before_request
    def _before():
        p = request.path or ""
        if p.startswith("/api/") or p == "/metrics":
            MET_REQUESTS.labels(route=p).inc()
            request._t0 = perf_counter()  # type: ignore[attr-defined]

    @app.after_request
    def _after(resp):
        p = request.path or ""
        if p.startswith("/api/") and hasattr(request, "_t0"):
            REQ_LATENCY.labels(route=p).observe(perf_counter() - request._t0)  # type: ignore[attr-defined]
        return resp

    _register_errors(app)
    app.register_blueprint(_routes_bp)

    @app.route("/metrics", methods=["GET"])
    def metrics_endpoint():
        if not _metrics_auth_ok():
            return Response("Unauthorized", 401, {"WWW-Authenticate": 'Basic realm="metrics"'})
        GAUGE_APP_UP.set(1.0)
        return Response(generate_latest(REGISTRY), mimetype=CONTENT_TYPE_LATEST)

    # CORS for browser UIs
    allowed_origin = os.environ.get("CORS_ALLOW_ORIGIN") or "*"
    CORS(
        app,
        resources={r"/.*": {"origins": allowed_origin}},
        supports_credentials=False,
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=600,
    )

    app.logger.info("astrokernel %s initialized; ephemeris=%s", VERSION,
                    app.extensions["astrokernel"].ephe_path or "analytic")
    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
