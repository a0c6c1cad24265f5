from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

# Values already present in the environment win over the .env file
load_dotenv()


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - DATABASE_PATH: path to the SQLite database file. Default './data/tasks.db'
    - DB_CONNECTION_LIMIT: maximum number of pooled connections. Default 10
    - DB_ACQUIRE_TIMEOUT: seconds to wait for a free pooled connection. Default 60
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins, or '*'
    - LOG_LEVEL: level name for the application logger. Default 'INFO'
    - LOG_FILE: optional path of a log file written in addition to stderr
    """

    database_path: str
    db_connection_limit: int
    db_acquire_timeout: float
    cors_allow_origins: List[str]
    log_level: str
    log_file: Optional[str]


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int, minimum: int = 1) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


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
    log_file = os.getenv("LOG_FILE")
    return Settings(
        database_path=_get_env("DATABASE_PATH", "./data/tasks.db").strip(),
        db_connection_limit=_parse_int(_get_env("DB_CONNECTION_LIMIT", "10"), 10),
        db_acquire_timeout=_parse_float(_get_env("DB_ACQUIRE_TIMEOUT", "60"), 60.0),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "http://localhost:3000")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        log_file=log_file.strip() if log_file and log_file.strip() else None,
    )
