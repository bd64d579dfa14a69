"""
config.py
---------
Runtime settings for the coverage dashboard and its market-data adapter.

Every setting can be overridden with an environment variable prefixed with
``BTCCOV_`` (e.g. ``BTCCOV_LOG_LEVEL=DEBUG``, ``BTCCOV_REFRESH_INTERVAL=120``).
Reference data (instrument catalogs, default assumptions) is not configured
here; see model/catalog.py.
"""

import logging
import os
from datetime import date
from typing import Any


ENV_PREFIX = "BTCCOV_"


def _get_env(key: str, default: Any, value_type: type = str) -> Any:
    """Read BTCCOV_<KEY>, converting to value_type; bad values fall back to default."""
    raw = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
    if raw is None:
        return default

    try:
        if value_type is bool:
            return raw.strip().lower() in ("true", "1", "yes", "on")
        if value_type is int:
            return int(raw)
        if value_type is float:
            return float(raw)
        return raw
    except (TypeError, ValueError):
        return default


class Settings:
    """Settings loaded from the environment at construction time."""

    def __init__(self) -> None:
        # ---- Logging ----
        self.log_level: str  = _get_env("LOG_LEVEL", "INFO")
        self.log_format: str = _get_env(
            "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

        # ---- Polling (seconds) ----
        self.refresh_interval: float = _get_env("REFRESH_INTERVAL", 60.0, float)
        self.dedupe_window: float    = _get_env("DEDUPE_WINDOW",    10.0, float)
        self.retry_count: int        = _get_env("RETRY_COUNT",      3,    int)
        self.retry_backoff: float    = _get_env("RETRY_BACKOFF",    5.0,  float)
        self.http_timeout: float     = _get_env("HTTP_TIMEOUT",     10.0, float)

        # ---- Model ----
        self.perpetual_duration: float = _get_env("PERPETUAL_DURATION", 30.0, float)
        self.current_year: int         = _get_env("CURRENT_YEAR", date.today().year, int)

        # ---- Upstream endpoints ----
        self.mstr_api_url: str = _get_env("MSTR_API_URL", "https://api.microstrategy.com")
        self.coingecko_api_url: str = _get_env(
            "COINGECKO_API_URL", "https://api.coingecko.com/api/v3"
        )

    @property
    def log_level_int(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.INFO)

    def configure_logging(self) -> None:
        """Set up the root logger and quiet the chattier third-party loggers."""
        logging.basicConfig(level=self.log_level_int, format=self.log_format)
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("yfinance").setLevel(logging.WARNING)

    def __repr__(self) -> str:
        return (f"Settings(log_level={self.log_level!r}, "
                f"refresh_interval={self.refresh_interval}, "
                f"current_year={self.current_year})")


settings = Settings()
