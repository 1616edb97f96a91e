from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    rate_limit: str
    rate_limit_enabled: bool
    trust_x_forwarded_for: bool
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    cors_allow_credentials: bool
    analytics_enabled: bool
    analytics_db_path: str
    analytics_retention_days: int
    analysis_cache_ttl_s: float
    cache_purge_interval_s: int
    oracle_enabled: bool
    oracle_timeout_s: float


settings = Settings(
    api_key=_get_env("API_KEY"),
    rate_limit=_get_env("RATE_LIMIT", "60/minute") or "60/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    trust_x_forwarded_for=_get_env_bool("TRUST_X_FORWARDED_FOR", False),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX"),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", False),
    analytics_enabled=_get_env_bool("ANALYTICS_ENABLED", True),
    analytics_db_path=_get_env("ANALYTICS_DB_PATH", "data/analytics.db") or "data/analytics.db",
    analytics_retention_days=_get_env_int("ANALYTICS_RETENTION_DAYS", 90),
    analysis_cache_ttl_s=_get_env_float("ANALYSIS_CACHE_TTL_S", 3600.0),
    cache_purge_interval_s=_get_env_int("CACHE_PURGE_INTERVAL_S", 3600),
    oracle_enabled=_get_env_bool("ORACLE_ENABLED", True),
    oracle_timeout_s=_get_env_float("ORACLE_TIMEOUT_S", 30.0),
)

if settings.analysis_cache_ttl_s <= 0:
    raise RuntimeError("ANALYSIS_CACHE_TTL_S must be a positive number of seconds.")

if settings.oracle_timeout_s <= 0:
    raise RuntimeError("ORACLE_TIMEOUT_S must be a positive number of seconds.")
