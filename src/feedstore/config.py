from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from feedstore.storage.sqlite_store import JOURNAL_MODES

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class StoreConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = "data/storage/feed_cache.db"
    schema_path: str | None = None
    timeout_seconds: float = Field(default=5.0, gt=0.0)
    journal_mode: str = "DELETE"

    @field_validator("path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("store.path must not be empty")
        return normalized

    @field_validator("journal_mode")
    @classmethod
    def validate_journal_mode(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in JOURNAL_MODES:
            allowed = ", ".join(sorted(JOURNAL_MODES))
            raise ValueError(f"store.journal_mode must be one of: {allowed}")
        return normalized


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    store: StoreConfig = Field(default_factory=StoreConfig)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return normalized

    def logging_level(self) -> int:
        return logging.getLevelName(self.log_level)


def load_config(path: str | Path) -> AppConfig:
    raw = Path(path).read_text(encoding="utf-8")
    payload = _parse_yaml_or_json(raw)
    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


def _parse_yaml_or_json(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        parsed = _parse_yaml(raw)
    if not isinstance(parsed, dict):
        raise ValueError("Configuration root must be an object.")
    return parsed


def _parse_yaml(raw: str) -> dict[str, Any]:
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid configuration syntax: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Configuration root must be an object.")
    return parsed
