from __future__ import annotations

import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)
    """Application runtime configuration."""

    app_name: str = "Worktime"
    environment: str = "development"
    host: str = os.getenv("WT_HOST", "127.0.0.1")
    port: int = int(os.getenv("WT_PORT", "8080"))
    log_level: str = os.getenv("WT_LOG_LEVEL", "INFO")

    sqlite_path: Path = Path(os.getenv("WT_SQLITE_PATH", "./data/worktime.db"))
    timezone: str = os.getenv("TZ", "UTC")

    target_hours_per_working_day: float = float(os.getenv("WT_TARGET_HOURS_PER_WORKING_DAY", "8"))
    excluded_weekday: str = os.getenv("WT_EXCLUDED_WEEKDAY", "friday")
    behind_threshold_minutes: int = int(os.getenv("WT_BEHIND_THRESHOLD_MINUTES", "600"))

    ssm_base_url: str = os.getenv("WT_SSM_BASE_URL", "https://screenshotmonitor.com/api/v2")
    ssm_timeout_seconds: float = float(os.getenv("WT_SSM_TIMEOUT", "10"))
    # The vendor endpoint has historically failed strict certificate checks.
    ssm_verify_tls: bool = os.getenv("WT_SSM_VERIFY_TLS", "false").lower() == "true"

    online_cache_ttl_seconds: int = int(os.getenv("WT_ONLINE_CACHE_TTL", "1800"))
    online_cache_max_entries: int = int(os.getenv("WT_ONLINE_CACHE_MAX_ENTRIES", "1024"))

    @field_validator("excluded_weekday", mode="before")
    @classmethod
    def _normalize_weekday(cls, value: str | int) -> str:
        if isinstance(value, int):
            return str(value)
        return str(value).strip().lower()

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return str(value).strip().upper() or "INFO"


settings = Settings()

settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
