from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or validated."""


class PairlistConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Entries are validated one by one when the manager loads them.
    pairlist_filters: list[dict[str, Any]] = Field(default_factory=list)
    refresh_period: int | None = Field(default=None, ge=1)


class ProducerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_url: str | None = Field(default=None)
    pairs_path: str = Field(default="/api/v1/pairlist")
    timeout_s: float = Field(default=10, gt=0)
    max_retries: int = Field(default=3, ge=0)
    backoff_base_s: float = Field(default=0.5, ge=0)
    backoff_max_s: float = Field(default=8, ge=0)
    max_rps: float = Field(default=2.0, gt=0)

    @field_validator("pairs_path")
    @classmethod
    def _validate_pairs_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("pairs_path must start with '/'")
        return value


class ObsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    log_jsonl: bool = Field(default=True)
    log_level: str = Field(default="INFO")
    instance_id: str = Field(default="pairlist")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log_level: {value}")
        return level


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pairlist: PairlistConfig = Field(default_factory=PairlistConfig)
    producer: ProducerConfig = Field(default_factory=ProducerConfig)
    obs: ObsConfig = Field(default_factory=ObsConfig)


@dataclass(frozen=True)
class LoadedConfig:
    config: AppConfig
    raw: dict[str, Any]


def load_config(path: Path) -> LoadedConfig:
    if not path.exists():
        raise ConfigError(f"Config not found: {path}")

    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError("Config root must be a mapping")

    try:
        config = AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    return LoadedConfig(config=config, raw=payload)
