"""
Configuration and environment loading for the Coach's Challenge service.

- Loads settings.yml (YAML) from repo root if present; falls back to environment variables
  (a .env file is loaded first via python-dotenv).
- Exposes SETTINGS with the knobs used by the session server and CLI.
"""
from dataclasses import dataclass
import logging
import os
from typing import Any, Callable

import yaml
from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger("config")


def _repo_root() -> str:
    # this file: src/coach_challenge/config.py → repo root is two levels up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        log.warning("Ignoring %s: expected a mapping at the top level", path)
        return {}
    return data


_cfg = _load_yaml(os.environ.get("COACH_SETTINGS_FILE") or os.path.join(_repo_root(), "settings.yml"))


def _optional_int(val: Any) -> int | None:
    if val is None or str(val).strip() == "":
        return None
    return int(val)


def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
    if name in _cfg:
        val = _cfg[name]
        return cast(val) if cast else val
    env = os.environ.get(name)
    if env is not None:
        return cast(env) if cast else env
    return default


@dataclass(frozen=True)
class Settings:
    # Session service
    session_ttl_s: float
    # Bot randomness; None gives every session a fresh seed
    bot_seed: int | None
    # Optional YAML file with extra challenge definitions
    challenges_file: str
    log_level: str


SETTINGS = Settings(
    session_ttl_s=float(_get("COACH_SESSION_TTL_S", 3600.0, cast=float)),
    bot_seed=_get("COACH_BOT_SEED", None, cast=_optional_int),
    challenges_file=str(_get("COACH_CHALLENGES_FILE", "") or ""),
    log_level=str(_get("COACH_LOG_LEVEL", "INFO")).upper(),
)
