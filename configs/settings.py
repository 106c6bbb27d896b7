from __future__ import annotations

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv


load_dotenv()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """
    Central configuration for URL Monitor.

    Values are loaded once from environment variables (with sensible defaults)
    and then exposed via typed properties.
    """

    def __init__(self) -> None:
        # Change log storage
        self._log_file = Path(os.getenv("URL_MONITOR_LOG_FILE", "changes.log"))
        self._retention_days = _env_int("URL_MONITOR_RETENTION_DAYS", 30)
        if self._retention_days <= 0:
            self._retention_days = 30
        self._fsync = _env_bool("URL_MONITOR_FSYNC", True)

        # Outbound HTTP (fetch proxy + notification providers)
        self._fetch_timeout = _env_float("URL_MONITOR_FETCH_TIMEOUT", 10.0)
        self._user_agent = os.getenv("URL_MONITOR_USER_AGENT", "URL-Monitor/1.0")

        # Notification sender identity
        self._from_email = os.getenv(
            "URL_MONITOR_FROM_EMAIL",
            "notifications@urlmonitor.vercel.app",
        )
        self._from_name = os.getenv("URL_MONITOR_FROM_NAME", "URL Monitor")

        # Logging + HTTP surface
        self._log_level = os.getenv("URL_MONITOR_LOG_LEVEL", "INFO").upper()
        self._cors_origins = [
            origin.strip()
            for origin in os.getenv("URL_MONITOR_CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    @property
    def log_file(self) -> Path:
        return self._log_file

    @property
    def retention_days(self) -> int:
        return self._retention_days

    @property
    def fsync(self) -> bool:
        return self._fsync

    # ------------------------------------------------------------------
    # Outbound HTTP
    # ------------------------------------------------------------------

    @property
    def fetch_timeout(self) -> float:
        return self._fetch_timeout

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @property
    def from_email(self) -> str:
        return self._from_email

    @property
    def from_name(self) -> str:
        return self._from_name

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    @property
    def log_level(self) -> str:
        return self._log_level

    @property
    def cors_origins(self) -> List[str]:
        return list(self._cors_origins) or ["*"]


settings = Settings()
