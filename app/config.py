"""
app/config.py

Application-level configuration helpers for the scrape orchestration core.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from db.config import load_env_files

DEFAULT_USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:120.0) Gecko/20100101 Firefox/120.0",
)


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


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_list_env(name: str, default: tuple[str, ...], separator: str = "||") -> tuple[str, ...]:
    """
    Read a separator-delimited list. User agents contain commas, hence `||`.
    """

    raw_value = _get_optional_str_env(name)
    if raw_value is None:
        return default
    items = tuple(item.strip() for item in raw_value.split(separator) if item.strip())
    return items or default


@dataclass(frozen=True)
class ScrapeSettings:
    """
    Runtime settings for the queue workers and the extraction pipeline.
    """

    delay_min_ms: int = 2000
    delay_max_ms: int = 10000
    max_concurrent: int = 2
    retry_attempts: int = 3
    backoff_base_seconds: float = 5.0
    navigation_attempts: int = 3
    navigation_timeout_ms: int = 30000
    user_agents: tuple[str, ...] = DEFAULT_USER_AGENTS
    viewport_width: int = 1920
    viewport_height: int = 1080
    viewport_jitter: int = 100
    headless: bool = True
    screenshot_dir: str = "logs/screenshots"
    simulate_human: bool = True


@dataclass(frozen=True)
class ProxySettings:
    """
    Optional upstream proxy for browser sessions.
    """

    url: str | None = None
    username: str | None = None
    password: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)


@dataclass(frozen=True)
class ScheduleSettings:
    """
    Cron expressions and batch-spreading windows for the sweep rules.
    """

    full_sweep_cron: str = "0 0 * * 0"
    priority_sweep_cron: str = "0 2 * * *"
    health_sweep_cron: str = "0 * * * *"
    timezone: str = "UTC"
    full_sweep_jitter_seconds: float = 60.0
    priority_sweep_jitter_seconds: float = 30.0
    failed_retry_jitter_seconds: float = 120.0
    stale_jitter_seconds: float = 180.0
    manual_retry_jitter_seconds: float = 60.0
    priority_sweep_limit: int = 50
    failed_window_hours: int = 24
    stale_after_days: int = 14
    misfire_grace_seconds: int = 3600
    enabled: bool = True


@dataclass(frozen=True)
class AppSettings:
    """
    Aggregated settings handed to the orchestrator at startup.
    """

    scrape: ScrapeSettings = field(default_factory=ScrapeSettings)
    proxy: ProxySettings = field(default_factory=ProxySettings)
    schedule: ScheduleSettings = field(default_factory=ScheduleSettings)


@lru_cache(maxsize=1)
def get_scrape_settings() -> ScrapeSettings:
    """
    Return cached scrape settings from environment variables.
    """

    delay_min = max(0, _get_int_env("SCRAPE_DELAY_MIN", 2000))
    return ScrapeSettings(
        delay_min_ms=delay_min,
        delay_max_ms=max(delay_min, _get_int_env("SCRAPE_DELAY_MAX", 10000)),
        max_concurrent=max(1, _get_int_env("MAX_CONCURRENT_SCRAPES", 2)),
        retry_attempts=max(1, _get_int_env("SCRAPE_RETRY_ATTEMPTS", 3)),
        backoff_base_seconds=max(0.0, _get_float_env("SCRAPE_BACKOFF_BASE_SECONDS", 5.0)),
        navigation_attempts=max(1, _get_int_env("SCRAPE_NAVIGATION_ATTEMPTS", 3)),
        navigation_timeout_ms=max(1000, _get_int_env("SCRAPE_NAVIGATION_TIMEOUT_MS", 30000)),
        user_agents=_get_list_env("SCRAPE_USER_AGENTS", DEFAULT_USER_AGENTS),
        viewport_width=max(320, _get_int_env("SCRAPE_VIEWPORT_WIDTH", 1920)),
        viewport_height=max(240, _get_int_env("SCRAPE_VIEWPORT_HEIGHT", 1080)),
        viewport_jitter=max(0, _get_int_env("SCRAPE_VIEWPORT_JITTER", 100)),
        headless=_get_bool_env("SCRAPE_HEADLESS", True),
        screenshot_dir=_get_str_env("SCRAPE_SCREENSHOT_DIR", "logs/screenshots"),
        simulate_human=_get_bool_env("SCRAPE_SIMULATE_HUMAN", True),
    )


@lru_cache(maxsize=1)
def get_proxy_settings() -> ProxySettings:
    """
    Return cached proxy settings; all fields stay None when no proxy is set.
    """

    return ProxySettings(
        url=_get_optional_str_env("PROXY_URL"),
        username=_get_optional_str_env("PROXY_USERNAME"),
        password=_get_optional_str_env("PROXY_PASSWORD"),
    )


@lru_cache(maxsize=1)
def get_schedule_settings() -> ScheduleSettings:
    """
    Return cached sweep schedule settings from environment variables.
    """

    return ScheduleSettings(
        full_sweep_cron=_get_str_env("SCRAPE_SCHEDULE", "0 0 * * 0"),
        priority_sweep_cron=_get_str_env("PRIORITY_SCRAPE_SCHEDULE", "0 2 * * *"),
        health_sweep_cron=_get_str_env("HEALTH_CHECK_SCHEDULE", "0 * * * *"),
        timezone=_get_str_env("SCHEDULER_TIMEZONE", "UTC"),
        full_sweep_jitter_seconds=max(0.0, _get_float_env("FULL_SWEEP_JITTER_SECONDS", 60.0)),
        priority_sweep_jitter_seconds=max(
            0.0, _get_float_env("PRIORITY_SWEEP_JITTER_SECONDS", 30.0)
        ),
        failed_retry_jitter_seconds=max(
            0.0, _get_float_env("FAILED_RETRY_JITTER_SECONDS", 120.0)
        ),
        stale_jitter_seconds=max(0.0, _get_float_env("STALE_SWEEP_JITTER_SECONDS", 180.0)),
        manual_retry_jitter_seconds=max(
            0.0, _get_float_env("MANUAL_RETRY_JITTER_SECONDS", 60.0)
        ),
        priority_sweep_limit=max(1, _get_int_env("PRIORITY_SWEEP_LIMIT", 50)),
        failed_window_hours=max(1, _get_int_env("FAILED_RETRY_WINDOW_HOURS", 24)),
        stale_after_days=max(1, _get_int_env("STALE_AFTER_DAYS", 14)),
        misfire_grace_seconds=max(1, _get_int_env("SCHEDULER_MISFIRE_GRACE_SECONDS", 3600)),
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
    )


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """
    Return the aggregated settings bundle.
    """

    return AppSettings(
        scrape=get_scrape_settings(),
        proxy=get_proxy_settings(),
        schedule=get_schedule_settings(),
    )
