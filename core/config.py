# -*- coding: utf-8 -*-

from __future__ import annotations

import datetime as dt
import logging
import os
import tomllib
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from domain.errors import InvalidInput

logger = logging.getLogger(__name__)

ENV_PREFIX = "MISSIONS_"

_DEFAULTS: Dict[str, Any] = {
    "db_path": "missions.db",
    "tz": "UTC",
    "user_id": "local",
    "stats_default_start": "2025-11-30",  # product launch
    "stats_window_days": None,
    "log_level": "WARNING",
}


@dataclass(frozen=True)
class Settings:
    db_path: str = _DEFAULTS["db_path"]
    tz: str = _DEFAULTS["tz"]
    user_id: str = _DEFAULTS["user_id"]
    stats_default_start: dt.date = dt.date(2025, 11, 30)
    stats_window_days: Optional[int] = None
    log_level: str = _DEFAULTS["log_level"]


def _read_toml(path: str) -> Dict[str, Any]:
    if not path or not os.path.exists(path):
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise InvalidInput(f"Cannot read config {path}: {e}")


def _config_paths(environ: Mapping[str, str]) -> List[str]:
    paths: List[str] = []

    explicit = environ.get(ENV_PREFIX + "CONFIG")
    if explicit:
        paths.append(os.path.abspath(os.path.expanduser(explicit)))

    xdg = environ.get("XDG_CONFIG_HOME")
    if xdg:
        paths.append(os.path.join(xdg, "missions", "config.toml"))
    paths.append(os.path.expanduser("~/.config/missions/config.toml"))
    paths.append(os.path.abspath("missions.toml"))

    out: List[str] = []
    for p in paths:
        if p not in out:
            out.append(p)
    return out


def _normalize_keys(d: Mapping[str, Any]) -> Dict[str, Any]:
    # allow keys in any case
    return {str(k).strip().lower(): v for k, v in (d or {}).items()}


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    out = {}
    for key in _DEFAULTS:
        v = environ.get(ENV_PREFIX + key.upper())
        if v is not None and v != "":
            out[key] = v
    return out


def _coerce(cfg: Dict[str, Any]) -> Settings:
    start_raw = cfg.get("stats_default_start") or _DEFAULTS["stats_default_start"]
    if isinstance(start_raw, dt.date):
        start = start_raw
    else:
        try:
            start = dt.date.fromisoformat(str(start_raw).strip())
        except ValueError:
            raise InvalidInput(f"stats_default_start must be YYYY-MM-DD, got {start_raw!r}")

    window_raw = cfg.get("stats_window_days")
    window: Optional[int] = None
    if window_raw not in (None, ""):
        try:
            window = int(window_raw)
        except (TypeError, ValueError):
            raise InvalidInput(f"stats_window_days must be an integer, got {window_raw!r}")
        if window < 1:
            raise InvalidInput("stats_window_days must be at least 1")

    level = str(cfg.get("log_level") or _DEFAULTS["log_level"]).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise InvalidInput(f"Unknown log_level: {level}")

    return Settings(
        db_path=str(cfg.get("db_path") or _DEFAULTS["db_path"]),
        tz=str(cfg.get("tz") or _DEFAULTS["tz"]),
        user_id=str(cfg.get("user_id") or _DEFAULTS["user_id"]).strip(),
        stats_default_start=start,
        stats_window_days=window,
        log_level=level,
    )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Defaults, then the first TOML file found, then MISSIONS_* environment
    variables.
    """
    environ = os.environ if environ is None else environ
    cfg = dict(_DEFAULTS)

    for path in _config_paths(environ):
        data = _read_toml(path)
        if data:
            cfg.update(_normalize_keys(data))
            logger.debug("Using config: %s", path)
            break

    cfg.update(_env_overrides(environ))
    return _coerce(cfg)
