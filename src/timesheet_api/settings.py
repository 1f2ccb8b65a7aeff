from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables (and a .env file).

    Env vars:
    - PERSISTENCE_BACKEND: 'json' (default) or 'memory'
    - TIMESHEETS_FILE: path to the timesheets JSON document. Default './data/timesheets.json'
    - USERS_FILE: path to the users JSON document. Default './data/users.json'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - TOKEN_TTL_MINUTES: lifetime of issued access tokens (default: 10080, one week)
    - ELEVATED_ROLE: role allowed to read every user's timesheets (default: admin)
    - STRICT_PERSISTENCE: 'true' to answer 503 when a write cannot be saved (default: false)
    - LOG_LEVEL: logging level name (default: INFO)
    - HOST / PORT: bind address for `python -m timesheet_api` (default: 0.0.0.0:5000)
    """

    persistence_backend: str
    timesheets_file: str
    users_file: str
    cors_allow_origins: List[str]
    token_ttl_minutes: int
    elevated_role: str
    strict_persistence: bool
    log_level: str
    host: str
    port: int


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    load_dotenv(override=False)

    backend = _get_env("PERSISTENCE_BACKEND", "json").strip().lower()
    if backend not in {"json", "memory"}:
        backend = "json"

    return Settings(
        persistence_backend=backend,
        timesheets_file=_get_env("TIMESHEETS_FILE", "./data/timesheets.json").strip(),
        users_file=_get_env("USERS_FILE", "./data/users.json").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        token_ttl_minutes=max(_parse_int(_get_env("TOKEN_TTL_MINUTES", "10080"), 10080), 1),
        elevated_role=_get_env("ELEVATED_ROLE", "admin").strip(),
        strict_persistence=_parse_bool(_get_env("STRICT_PERSISTENCE", "false"), False),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_int(_get_env("PORT", "5000"), 5000),
    )
