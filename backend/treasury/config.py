"""Treasury Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - Every setting can be overridden with a TREASURY_-prefixed env var
    - get_settings() is cached (lru_cache) - single instance per process
    - Policy overrides (delay, history, affordability) must stay positive

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - JSON files are the default store: works out-of-the-box for one scheduled job
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Treasury settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TREASURY_", env_file=".env", case_sensitive=False,
    )

    # Storage
    store_backend: Literal["json", "sql"] = "json"
    data_dir: Path = Path("data")
    database_url: str = "sqlite:///data/treasury.db"

    # Clock - month keys and timers follow the owner's timezone
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone '{v}'")
        return v

    # Policy
    auto_unlock_hours: int = Field(48, gt=0)
    history_limit: int = Field(365, gt=0)
    affordability_months: int = Field(3, gt=0)

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"
    audit_log_file: Path | None = Path("data/logs/audit.log")


@lru_cache
def get_settings() -> Settings:
    return Settings()
