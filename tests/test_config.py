# tests/test_config.py
from __future__ import annotations

import pytest

from astrokernel.core.constants import SIDM_LAHIRI, SIDM_USER
from astrokernel.core.errors import InvalidArgument
from astrokernel.utils.config import AttrDict, context_from_settings, load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("ASTRO_EPHE_PATH", "SE_EPHE_PATH", "ASTRO_EPHE_FILE"):
        monkeypatch.delenv(name, raising=False)


def test_missing_file_gives_defaults(tmp_path) -> None:
    cfg = load_config(str(tmp_path / "nope.yaml"))
    assert isinstance(cfg, AttrDict)
    assert cfg.ephemeris == {}
    ctx = context_from_settings(cfg)
    assert ctx.ephe_path is None and ctx.observer is None
    assert ctx.sidereal.mode == 0


def test_yaml_settings(tmp_path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(
        "ephemeris:\n  path: /data/ephe\n  file: de440s.bsp\n"
        "observer: {lon: -112.183333, lat: 45.45, alt: 1524}\n"
        "sidereal:\n  mode: 1\n",
        encoding="utf-8",
    )
    cfg = load_config(str(path))
    assert cfg.ephemeris.file == "de440s.bsp"
    assert cfg["observer"]["alt"] == 1524
    ctx = context_from_settings(cfg)
    assert ctx.ephe_path == "/data/ephe"
    assert ctx.ephe_file == "de440s.bsp"
    assert ctx.observer.lat == 45.45
    assert ctx.sidereal.mode == SIDM_LAHIRI


def test_env_overrides_file(tmp_path, monkeypatch) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("ephemeris:\n  path: /from/file\n", encoding="utf-8")
    monkeypatch.setenv("SE_EPHE_PATH", "/from/env")
    monkeypatch.setenv("ASTRO_EPHE_FILE", "de430.bsp")
    cfg = load_config(str(path))
    assert cfg.ephemeris.path == "/from/env"
    assert cfg.ephemeris.file == "de430.bsp"


def test_non_mapping_file_rejected(tmp_path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(InvalidArgument):
        load_config(str(path))


def test_user_sidereal_settings() -> None:
    ctx = context_from_settings({"sidereal": {"mode": SIDM_USER, "t0": 2415020.5, "ayan_t0": 22.46}})
    assert ctx.sidereal.mode == SIDM_USER
    assert ctx.sidereal.ayan_t0 == 22.46


@pytest.mark.parametrize("settings", [
    {"sidereal": {"mode": 300}},
    {"observer": {"lon": 0.0, "lat": 100.0}},
])
def test_invalid_settings_rejected(settings) -> None:
    with pytest.raises(InvalidArgument):
        context_from_settings(settings)


def test_attrdict_attribute_access() -> None:
    d = AttrDict(a=1)
    d.b = 2
    assert d["b"] == 2 and d.a == 1
    with pytest.raises(AttributeError):
        d.missing
