"""Environment configuration for the inbox read API."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from functools import lru_cache
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import find_dotenv, load_dotenv
from sqlalchemy.engine import URL


@dataclass(frozen=True)
class Settings:
    database_url: str
    pool_size: int
    pool_timeout: float
    timezone: str
    host: str
    port: int
    log_level: str
    cors_origins: Tuple[str, ...]


def _get_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def _get_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def _build_database_url() -> str:
    explicit = os.environ.get("INBOX_DATABASE_URL")
    if explicit:
        return explicit

    driver = os.environ.get("INBOX_DB_DRIVER", "mysql+pymysql")
    url = URL.create(
        driver,
        username=os.environ.get("INBOX_DB_USER", "root"),
        password=os.environ.get("INBOX_DB_PASSWORD") or None,
        host=os.environ.get("INBOX_DB_HOST", "localhost"),
        port=_get_int("INBOX_DB_PORT", 3306),
        database=os.environ.get("INBOX_DB_NAME", "whatsapp"),
        query={"charset": "utf8mb4"} if driver.startswith("mysql") else {},
    )
    return url.render_as_string(hide_password=False)


def resolve_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise RuntimeError(f"INBOX_TIMEZONE {name!r} is not a known time zone") from exc


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Read settings from the environment. Raises RuntimeError on bad values.

    Variables from a `.env` file (the given path, or the nearest one above the
    working directory) are loaded first; variables already set in the process
    environment take precedence.
    """

    load_dotenv(env_file or find_dotenv(usecwd=True))

    tz_name = os.environ.get("INBOX_TIMEZONE", "UTC")
    resolve_timezone(tz_name)

    origins = os.environ.get("INBOX_CORS_ORIGINS", "*")
    return Settings(
        database_url=_build_database_url(),
        pool_size=_get_int("INBOX_POOL_SIZE", 10),
        pool_timeout=_get_float("INBOX_POOL_TIMEOUT", 30.0),
        timezone=tz_name,
        host=os.environ.get("INBOX_HOST", "0.0.0.0"),
        port=_get_int("INBOX_PORT", 3000),
        log_level=os.environ.get("INBOX_LOG_LEVEL", "INFO").upper(),
        cors_origins=tuple(origin.strip() for origin in origins.split(",") if origin.strip()),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def current_date(settings: Settings) -> date:
    """Today's calendar date in the store's configured time zone."""

    return datetime.now(resolve_timezone(settings.timezone)).date()
