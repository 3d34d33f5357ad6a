"""
Environment-driven database configuration.

``.env`` then ``.env.local`` are merged under the process environment
(real variables win), then the connection URL and pool settings are read.

URL lookup order
----------------
METRICS_DATABASE_URL   -> dedicated metrics database
DATABASE_URL           -> shared application database
CLOUD_DATABASE_URL     -> only when ENVIRONMENT is prod/production/staging/cloud
LOCAL_DATABASE_URL     -> developer fallback

Any ``postgres``/``postgresql`` scheme is rewritten to the psycopg 3 driver.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILES: tuple[str, ...] = (".env", ".env.local")

_CLOUD_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})
_PSYCOPG_SCHEME = "postgresql+psycopg"
_POSTGRES_SCHEMES = frozenset({"postgres", "postgresql"})


def parse_env_file(path: Path) -> dict[str, str]:
    """KEY=VALUE pairs of one env file; comments, blanks and bare words are skipped."""
    pairs: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        key, sep, value = raw_line.strip().partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#"):
            continue
        pairs[key] = value.strip().strip("\"'")
    return pairs


def load_env_files(root: Path | None = None) -> None:
    """Fill unset variables from the env files under *root* (the project root by default)."""
    base = root or PROJECT_ROOT
    for name in ENV_FILES:
        path = base / name
        if path.is_file():
            for key, value in parse_env_file(path).items():
                os.environ.setdefault(key, value)


def normalize_postgres_url(url: str) -> str:
    scheme, sep, rest = url.partition("://")
    if sep and scheme in _POSTGRES_SCHEMES:
        return f"{_PSYCOPG_SCHEME}://{rest}"
    return url


def _url_candidates() -> list[str]:
    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    names = ["METRICS_DATABASE_URL", "DATABASE_URL"]
    if environment in _CLOUD_ENVIRONMENTS:
        names.append("CLOUD_DATABASE_URL")
    names.append("LOCAL_DATABASE_URL")
    return names


def resolve_database_url() -> str:
    """First configured URL in lookup order; RuntimeError when none is set."""
    load_env_files()
    names = _url_candidates()
    for name in names:
        value = os.getenv(name, "").strip()
        if value:
            return normalize_postgres_url(value)
    raise RuntimeError(
        "No metrics database configured; set one of " + ", ".join(names) + "."
    )


@dataclass(frozen=True)
class EngineSettings:
    """
    Connection pool settings for the shared engine.
    """

    url: str
    echo: bool = False
    pool_recycle: int = 1800
    pool_size: int = 5
    max_overflow: int = 10


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


def get_engine_settings() -> EngineSettings:
    """
    Resolve engine settings; raises RuntimeError when no URL is configured.
    """

    url = resolve_database_url()
    return EngineSettings(
        url=url,
        echo=_env_flag("SQL_ECHO", False),
        pool_recycle=_env_int("DB_POOL_RECYCLE", 1800),
        pool_size=_env_int("DB_POOL_SIZE", 5),
        max_overflow=_env_int("DB_MAX_OVERFLOW", 10),
    )
