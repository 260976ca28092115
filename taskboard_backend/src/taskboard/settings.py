from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/taskboard.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - SESSION_COOKIE_NAME: name of the session cookie (default: 'session_token')
    - SESSION_COOKIE_SECURE: 'true' to mark the session cookie Secure (default: false)
    - BCRYPT_ROUNDS: bcrypt cost factor, 4..31 (default: 10)
    - LOG_LEVEL: root log level for the service (default: 'INFO')
    """

    persistence_backend: str
    sqlite_db_path: str
    cors_allow_origins: List[str]
    session_cookie_name: str
    session_cookie_secure: bool
    bcrypt_rounds: int
    log_level: str


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


def _parse_rounds(value: str, default: int = 10) -> int:
    try:
        rounds = int(value.strip())
    except ValueError:
        return default
    # bcrypt rejects cost factors outside 4..31
    return min(max(rounds, 4), 31)


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
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        backend = "memory"

    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/taskboard.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        session_cookie_name=_get_env("SESSION_COOKIE_NAME", "session_token").strip(),
        session_cookie_secure=_parse_bool(_get_env("SESSION_COOKIE_SECURE", "false"), False),
        bcrypt_rounds=_parse_rounds(_get_env("BCRYPT_ROUNDS", "10")),
        log_level=log_level,
    )
