# astrokernel/api/routes.py
"""
astrokernel JSON API routes
- Time: /api/julday
- Positions: /api/position (bodies and fixed stars)
- Houses: /api/houses
- Events: /api/rise, /api/eclipse/solar, /api/eclipse/lunar
- Orbits: /api/orbital-elements
- Ops: /api/health

Notes:
- Every handler runs against the app's EngineContext; a request carrying
  "observer" or "sidereal" gets a private context for that call only.
- Engine errors (AstroError) propagate to the app-level handler, which maps
  their code to an HTTP status.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional, Union

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest

from astrokernel.core import engine
from astrokernel.core.constants import (
    BODY_NAMES,
    CALC_ITRANSIT,
    CALC_MTRANSIT,
    CALC_RISE,
    CALC_SET,
    GREG_CAL,
    JUL_CAL,
    NODBIT_MEAN,
    NODBIT_OSCU,
)
from astrokernel.core.context import EngineContext, GeoLocation, SiderealConfig
from astrokernel.core.deltat import delta_t
from astrokernel.version import VERSION

log = logging.getLogger(__name__)
api = Blueprint("api", __name__)

_BODY_BY_NAME: Dict[str, int] = {name.lower(): body for body, name in BODY_NAMES.items()}
_EVENTS: Dict[str, int] = {
    "rise": CALC_RISE,
    "set": CALC_SET,
    "transit": CALC_MTRANSIT,
    "upper_transit": CALC_MTRANSIT,
    "lower_transit": CALC_ITRANSIT,
}
_CALENDARS: Dict[str, int] = {"gregorian": GREG_CAL, "julian": JUL_CAL}
_NODE_METHODS: Dict[str, int] = {"mean": NODBIT_MEAN, "osculating": NODBIT_OSCU}


# ───────────────────────── helpers ─────────────────────────
def _body_json() -> Dict[str, Any]:
    data = request.get_json(force=True, silent=False)
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    return data


def _num(data: Dict[str, Any], key: str, default: Optional[float] = None) -> float:
    v = data.get(key, default)
    if v is None:
        raise BadRequest(f"'{key}' is required")
    if isinstance(v, bool) or not isinstance(v, (int, float, str)):
        raise BadRequest(f"'{key}' must be a number")
    try:
        f = float(v)
    except ValueError:
        raise BadRequest(f"'{key}' must be a number") from None
    if not math.isfinite(f):
        raise BadRequest(f"'{key}' must be finite")
    return f


def _int(data: Dict[str, Any], key: str, default: Optional[int] = None) -> int:
    v = data.get(key, default)
    if v is None:
        raise BadRequest(f"'{key}' is required")
    if isinstance(v, bool) or not isinstance(v, int):
        raise BadRequest(f"'{key}' must be an integer")
    return v


def _flag(data: Dict[str, Any], key: str, default: bool = False) -> bool:
    v = data.get(key, default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "f", "no", "n", "off"}:
        return False
    raise BadRequest(f"'{key}' must be a boolean")


def _body_id(value: Any) -> int:
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _BODY_BY_NAME:
            return _BODY_BY_NAME[key]
        raise BadRequest(f"unknown body name '{value}'")
    if isinstance(value, bool) or not isinstance(value, int):
        raise BadRequest("'body' must be a body id or name")
    return value


def _target(data: Dict[str, Any]) -> Union[int, str]:
    if data.get("star"):
        star = data["star"]
        if not isinstance(star, str):
            raise BadRequest("'star' must be a string")
        return star
    if "body" not in data:
        raise BadRequest("provide 'body' or 'star'")
    return _body_id(data["body"])


def _jd_ut(data: Dict[str, Any]) -> float:
    if "jd_ut" in data:
        return _num(data, "jd_ut")
    if "jd_et" in data:
        jd_et = _num(data, "jd_et")
        return jd_et - delta_t(jd_et - delta_t(jd_et))
    raise BadRequest("provide 'jd_ut' or 'jd_et'")


def _ctx(data: Dict[str, Any]) -> EngineContext:
    """App context, or a per-request copy carrying the request's observer/sidereal mode."""
    base: EngineContext = current_app.extensions["astrokernel"]
    obs, sid = data.get("observer"), data.get("sidereal")
    if obs is None and sid is None:
        return base
    if obs is not None and not isinstance(obs, dict):
        raise BadRequest("'observer' must be an object")
    if sid is not None and not isinstance(sid, dict):
        raise BadRequest("'sidereal' must be an object")
    observer = base.observer
    if obs is not None:
        observer = GeoLocation(lon=_num(obs, "lon"), lat=_num(obs, "lat"), alt=_num(obs, "alt", 0.0))
    sidereal = base.sidereal
    if sid is not None:
        sidereal = SiderealConfig(mode=_int(sid, "mode", 0), t0=_num(sid, "t0", 0.0),
                                  ayan_t0=_num(sid, "ayan_t0", 0.0))
    return EngineContext(ephe_path=base.ephe_path, ephe_file=base.ephe_file, provider=base.provider(),
                         observer=observer, sidereal=sidereal)


def _event_payload(res) -> Dict[str, Any]:
    return {"ok": True, **res.to_dict()}


# ───────────────────────── ops ─────────────────────────
@api.get("/api/health")
def health():
    base: EngineContext = current_app.extensions["astrokernel"]
    return jsonify({"ok": True, "status": "up", "version": VERSION, "engine": base.describe()}), 200


# ───────────────────────── time ─────────────────────────
@api.post("/api/julday")
def julday_endpoint():
    """Calendar date → JD (UT), or 'jd' → calendar date."""
    data = _body_json()
    cal_name = str(data.get("calendar", "gregorian")).lower()
    if cal_name not in _CALENDARS:
        raise BadRequest("calendar must be 'gregorian' or 'julian'")
    calendar = _CALENDARS[cal_name]

    if "jd" in data:
        jd = _num(data, "jd")
        year, month, day, hour = engine.reverse_julian_day(jd, calendar)
        return jsonify({"ok": True, "jd": jd, "year": year, "month": month, "day": day, "hour": hour,
                        "day_of_week": engine.day_of_week(jd)}), 200

    jd = engine.julian_day(_int(data, "year"), _int(data, "month"), _int(data, "day"),
                           _num(data, "hour", 0.0), calendar)
    dt = engine.delta_t(jd)
    return jsonify({
        "ok": True,
        "jd": jd,
        "jd_et": jd + dt,
        "delta_t_seconds": dt * 86400.0,
        "day_of_week": engine.day_of_week(jd),
        "sidereal_time": engine.sidereal_time(jd),
    }), 200


# ───────────────────────── positions ─────────────────────────
@api.post("/api/position")
def position_endpoint():
    data = _body_json()
    ctx = _ctx(data)
    jd_ut = _jd_ut(data)
    flags = _int(data, "flags", 0)
    target = _target(data)
    if isinstance(target, str):
        pos, label = engine.fixed_star(target, jd_ut, flags, ctx=ctx)
        name = label
    else:
        pos = engine.position(jd_ut, target, flags, ctx=ctx)
        name = engine.planet_name(target)
    return jsonify({
        "ok": True,
        "name": name,
        "jd_ut": jd_ut,
        "flags": flags,
        "position": list(pos),
        "fields": list(pos._fields),
    }), 200


# ───────────────────────── houses ─────────────────────────
@api.post("/api/houses")
def houses_endpoint():
    data = _body_json()
    ctx = _ctx(data)
    system = data.get("system", "P")
    res = engine.houses_extended(_jd_ut(data), _int(data, "flags", 0), _num(data, "lat"), _num(data, "lon"),
                                 system, ctx=ctx)
    return jsonify({"ok": True, **res.to_dict()}), 200


# ───────────────────────── events ─────────────────────────
@api.post("/api/rise")
def rise_endpoint():
    data = _body_json()
    ctx = _ctx(data)
    event = data.get("event", "rise")
    if isinstance(event, str):
        if event.lower() not in _EVENTS:
            raise BadRequest(f"event must be one of {sorted(_EVENTS)}")
        rsmi = _EVENTS[event.lower()]
    else:
        rsmi = _int(data, "event")
    rsmi |= _int(data, "modifiers", 0)
    args = (_jd_ut(data), _target(data), _int(data, "flags", 0), rsmi,
            _num(data, "lat"), _num(data, "lon"), _num(data, "alt", 0.0),
            _num(data, "pressure", 0.0), _num(data, "temperature", 10.0))
    # an explicit horizon height selects the local true horizon
    if "horizon_height" in data:
        res = engine.rise_transit_true_horizon(*args, _num(data, "horizon_height"), ctx=ctx)
    else:
        res = engine.rise_transit(*args, ctx=ctx)
    return jsonify(_event_payload(res)), 200


@api.post("/api/eclipse/solar")
def solar_eclipse_endpoint():
    data = _body_json()
    res = engine.solar_eclipse_when_global(_jd_ut(data), _int(data, "flags", 0), _int(data, "ecl_type", 0),
                                           _flag(data, "backward"), ctx=_ctx(data))
    return jsonify(_event_payload(res)), 200


@api.post("/api/eclipse/lunar")
def lunar_eclipse_endpoint():
    data = _body_json()
    res = engine.lunar_eclipse_when(_jd_ut(data), _int(data, "flags", 0), _int(data, "ecl_type", 0),
                                    _flag(data, "backward"), ctx=_ctx(data))
    return jsonify(_event_payload(res)), 200


# ───────────────────────── orbits ─────────────────────────
@api.post("/api/orbital-elements")
def orbital_elements_endpoint():
    data = _body_json()
    ctx = _ctx(data)
    body = _body_id(data.get("body"))
    flags = _int(data, "flags", 0)
    jd_et = _num(data, "jd_et") if "jd_et" in data else _jd_ut(data) + delta_t(_jd_ut(data))
    el = engine.orbital_elements(jd_et, body, flags, ctx=ctx)
    out: Dict[str, Any] = {
        "ok": True,
        "name": engine.planet_name(body),
        "jd_et": jd_et,
        # NaN is not valid JSON
        "elements": {k: (None if isinstance(v, float) and not math.isfinite(v) else v)
                     for k, v in el._asdict().items()},
    }
    method = data.get("nodes")
    if method is not None:
        if method not in _NODE_METHODS:
            raise BadRequest("nodes must be 'mean' or 'osculating'")
        na = engine.nodes_apsides(jd_et - delta_t(jd_et), body, flags, _NODE_METHODS[method], ctx=ctx)
        out["nodes_apsides"] = {k: list(v) for k, v in vars(na).items()}
    return jsonify(out), 200
