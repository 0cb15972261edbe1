"""Process configuration loaded from environment variables."""

from __future__ import annotations

import logging
import sys
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class HabitCycleSettings(BaseSettings):
    """All process settings come from ``HABITCYCLE_*`` env vars (or .env file)."""

    app_name: str = "habitcycle"
    log_level: str = "INFO"

    # Override for the bundled cycle_config.yaml
    cycle_config_path: Path | None = None

    model_config = SettingsConfigDict(
        env_prefix="HABITCYCLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> HabitCycleSettings:
    return HabitCycleSettings()


def configure_logging(level: str | None = None) -> None:
    """Install the root handler used when habitcycle runs inside a host process."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
