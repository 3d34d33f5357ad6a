"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_list_env(name: str) -> tuple[str, ...]:
    """
    Read a comma-separated list, dropping blanks.
    """

    _load_env_once()
    raw_value = os.getenv(name, "")
    return tuple(token.strip() for token in raw_value.split(",") if token.strip())


@dataclass(frozen=True)
class MetricsSettings:
    """
    Tunables of the metrics engine and member scoring heuristics.

    ``declining_payment_ratio`` / ``declining_payment_min_count`` and
    ``default_lifespan_months`` are heuristic constants carried over from
    the original dashboard without a stated derivation.
    """

    cache_ttl_seconds: int = 3600
    default_lifespan_months: float = 12.0
    declining_payment_ratio: float = 0.7
    declining_payment_min_count: int = 4
    scoring_workers: int = 1
    cohorts_count: int = 6
    member_growth_months: int = 12
    benchmark_max_retries: int = 3


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Periodic recompute job settings.
    """

    enabled: bool = True
    companies: tuple[str, ...] = ()
    analytics_hour: int = 2
    analytics_minute: int = 0


@lru_cache(maxsize=1)
def get_metrics_settings() -> MetricsSettings:
    """
    Return cached metrics engine settings from environment variables.
    """

    return MetricsSettings(
        cache_ttl_seconds=max(0, _get_int_env("METRICS_CACHE_TTL_SECONDS", 3600)),
        default_lifespan_months=max(0.0, _get_float_env("METRICS_DEFAULT_LIFESPAN_MONTHS", 12.0)),
        declining_payment_ratio=max(0.0, _get_float_env("SCORING_DECLINING_PAYMENT_RATIO", 0.7)),
        declining_payment_min_count=max(2, _get_int_env("SCORING_DECLINING_PAYMENT_MIN_COUNT", 4)),
        scoring_workers=max(1, _get_int_env("SCORING_WORKERS", 1)),
        cohorts_count=max(1, _get_int_env("METRICS_COHORTS_COUNT", 6)),
        member_growth_months=max(1, _get_int_env("METRICS_MEMBER_GROWTH_MONTHS", 12)),
        benchmark_max_retries=max(1, _get_int_env("BENCHMARK_MAX_RETRIES", 3)),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cached scheduler settings from environment variables.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        companies=_get_list_env("SCHEDULER_COMPANIES"),
        analytics_hour=min(23, max(0, _get_int_env("SCHEDULER_ANALYTICS_HOUR", 2))),
        analytics_minute=min(59, max(0, _get_int_env("SCHEDULER_ANALYTICS_MINUTE", 0))),
    )
