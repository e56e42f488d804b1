"""Environment-driven settings for the Swiggy insights server."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

import pytz
from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.swiggy.com"
DEFAULT_HTTP_TIMEOUT = 20.0
DEFAULT_MAX_PAGES = 300
DEFAULT_TIMEZONE = "UTC"
DEFAULT_PORT = 5002


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = str(env.get(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default
    return value if value > 0 else default


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = str(env.get(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-integer %s=%r; using %s", name, raw, default)
        return default
    return value if value > 0 else default


def _env_timezone(env: Mapping[str, str], name: str) -> str:
    candidate = str(env.get(name, "") or "").strip() or DEFAULT_TIMEZONE
    try:
        return pytz.timezone(candidate).zone
    except pytz.UnknownTimeZoneError:
        LOGGER.warning("Unknown timezone %s=%r; falling back to %s", name, candidate, DEFAULT_TIMEZONE)
        return DEFAULT_TIMEZONE


@dataclass(frozen=True)
class AppConfig:
    base_url: str = DEFAULT_BASE_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    max_pages: int = DEFAULT_MAX_PAGES
    timezone: str = DEFAULT_TIMEZONE
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Build the configuration from ``env`` (``os.environ`` after loading ``.env``)."""

        if env is None:
            load_dotenv()
            env = os.environ
        base_url = str(env.get("SWIGGY_BASE_URL", "") or "").strip().rstrip("/")
        return cls(
            base_url=base_url or DEFAULT_BASE_URL,
            http_timeout=_env_float(env, "SWIGGY_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
            max_pages=_env_int(env, "SWIGGY_MAX_PAGES", DEFAULT_MAX_PAGES),
            timezone=_env_timezone(env, "SWIGGY_TIMEZONE"),
            port=_env_int(env, "SWIGGY_INSIGHTS_PORT", DEFAULT_PORT),
        )
