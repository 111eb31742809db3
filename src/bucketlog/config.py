"""Configuration loading and strict validation for bucketlog."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CONFIG_PATH = "config/config.yaml"
CONFIG_ENV_VAR = "BUCKETLOG_CONFIG"


class StrictModel(BaseModel):
    """Base model that rejects unknown keys and forbids mutation."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class WriterConfig(StrictModel):
    high_water_mark: int = Field(default=16 * 1024, gt=0)
    avoid_duplicates: bool = False
    verbose: bool = True


class DashboardConfig(StrictModel):
    host: str = "127.0.0.1"
    port: int = 9000
    recent_event_limit: int = Field(default=100, ge=1)


class AppConfig(StrictModel):
    token: str = Field(min_length=1)
    log_path: Path = Field(alias="logPath")
    file_storage_path: Path = Field(alias="fileStoragePath")
    history_path: Path | None = Field(default=None, alias="historyPath")
    writer: WriterConfig = Field(default_factory=WriterConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)

    @field_validator("log_path", "file_storage_path")
    @classmethod
    def _must_be_directory(cls, value: Path) -> Path:
        if not value.is_dir():
            raise ValueError(f"must be a directory: {value}")
        return value


def load_config(config_path: str | Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load and strictly validate a YAML (or JSON) config file."""
    path = Path(config_path)
    with path.open("r", encoding="utf-8") as f:
        raw: dict[str, Any] = yaml.safe_load(f) or {}
    return AppConfig.model_validate(raw)


def default_config_path() -> str:
    return os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load default config once and cache it."""
    return load_config(default_config_path())
