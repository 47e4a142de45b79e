"""
goal: configuration loader for the scanner. loads settings from a JSON file and environment
      variables, with sensible defaults. handles PyInstaller frozen executables by detecting
      the base directory correctly. returns a frozen Config dataclass with the paths, timeouts
      and webhook settings the scan pipeline and reporting sink need.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from agent.setup_log import default_log_path

log = logging.getLogger("dmasentry.config")

ENV_PREFIX = "DMASENTRY_"


# figure out where the app is running from (handles PyInstaller bundles)
def _resolve_base_dir() -> Path:
    import sys

    # if we are frozen (PyInstaller), use the executable's directory
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    # otherwise, go up one level from this file (app/config.py -> project root)
    return Path(__file__).resolve().parents[1]


# frozen dataclass to hold all config values (immutable once created)
@dataclass(frozen=True)
class Config:
    base_dir: Path  # root directory of the project
    signatures_path: Path  # optional JSON overrides for vendor ids / keywords / whitelist
    setup_log_path: Path  # setupapi.dev.log location
    webhook_url: str  # where to relay the summary; empty disables the webhook
    webhook_timeout: float  # seconds to wait for the webhook POST
    ps_timeout: float  # seconds allowed per PowerShell query
    event_max: int  # newest N events read per event-log query
    log_level: str  # root logging level name

    @property
    def webhook_enabled(self) -> bool:
        return bool(self.webhook_url.strip())


# coerce a raw env or JSON value to the type of its default; anything unusable gives the default
def _coerce(value, default):
    # bool before int, bool is a subclass of int
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError, OverflowError):
            return default
    if isinstance(default, float):
        try:
            return float(value)
        except (TypeError, ValueError):
            return default
    # strings (paths, urls, level names) must already be strings
    return value if isinstance(value, str) else default


# get a config value with priority: environment variable > JSON file > default
def _get(obj: dict, key: str, default):
    # check for environment variable first (DMASENTRY_* prefix)
    env = os.getenv(f"{ENV_PREFIX}{key.upper()}")
    if env is not None:
        return _coerce(env, default)
    # fall back to JSON file value, or default if not found
    if key not in obj:
        return default
    return _coerce(obj[key], default)


# load configuration from JSON file and environment variables
def load_config() -> Config:
    # base directory can be overridden by env var, otherwise auto-detect
    base = Path(os.getenv(f"{ENV_PREFIX}BASE_DIR") or _resolve_base_dir())
    # config file lives in data/config.json
    cfg_file = base / "data" / "config.json"
    obj: dict = {}
    # try to load the JSON config file if it exists
    if cfg_file.exists():
        try:
            obj = json.loads(cfg_file.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            # if JSON is broken, just use empty dict (all defaults)
            log.warning("ignoring unreadable %s: %s", cfg_file, exc)
            obj = {}
        if not isinstance(obj, dict):
            obj = {}

    # each value checks: env var > JSON file > default
    return Config(
        base_dir=base,
        signatures_path=base / _get(obj, "signatures_path", "data/signatures.json"),
        # absolute paths win over the base dir when joined
        setup_log_path=base / _get(obj, "setup_log_path", default_log_path()),
        webhook_url=str(_get(obj, "webhook_url", "") or ""),
        webhook_timeout=float(_get(obj, "webhook_timeout", 8.0)),
        ps_timeout=float(_get(obj, "ps_timeout", 20.0)),
        event_max=int(_get(obj, "event_max", 500)),
        log_level=str(_get(obj, "log_level", "WARNING")).upper(),
    )
