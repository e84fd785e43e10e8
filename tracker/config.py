"""Tracker configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class TrackerSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///tracker.db"
    echo_sql: bool = False
    app_title: str = "Services Opportunity Tracker"

    log_level: str = ""
    log_json: bool | None = None

    # Acting-user identity arrives out of band; authentication lives upstream.
    user_header: str = "X-User-Id"

    # Client defaults (draft sessions, CLI)
    api_base_url: str = "http://localhost:8030"
    api_timeout_seconds: float = 30.0

    model_config = {"env_prefix": "TRACKER_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.database_url

    @property
    def effective_log_level(self) -> str:
        if self.log_level.strip():
            return self.log_level.strip().upper()
        return "INFO" if self.is_production else "DEBUG"

    @property
    def effective_log_json(self) -> bool:
        if self.log_json is None:
            return self.is_production
        return self.log_json


settings = TrackerSettings()
