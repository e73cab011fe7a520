"""
scribeline.config - YAML config loading, validation, credential lookup.

Handles loading scribeline.yaml, applying defaults, and validating all
pipeline parameters. The API key is never stored in the YAML file; it is
read from the environment variable named by ``api_key_env``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from scribeline.exceptions import ConfigError

CONFIG_FILENAME = "scribeline.yaml"

# 15 MB raw keeps a base64-inflated payload under the backend request limit.
DEFAULT_MAX_CHUNK_BYTES = 15 * 1024 * 1024

# 30 minutes of 16 kHz mono 64 kbps MP3 is ~14.4 MB, inside the byte ceiling.
DEFAULT_CHUNK_DURATION_SECONDS = 30 * 60

PLACEHOLDER_API_KEYS = {"", "your_api_key_here"}


class ScribelineConfig(BaseModel):
    """Resolved configuration for the transcription pipeline."""

    backend: str = "upload"
    model: str = "gemini-2.5-flash"
    api_key_env: str = "GEMINI_API_KEY"
    language: str | None = None
    prompts_dir: Path | None = None

    split_policy: str = "size"
    max_chunk_bytes: int = Field(default=DEFAULT_MAX_CHUNK_BYTES, gt=0)
    chunk_duration_seconds: float = Field(default=DEFAULT_CHUNK_DURATION_SECONDS, gt=0.0)
    sample_rate: int = Field(default=16000, gt=0)
    bitrate: str = "64k"

    max_attempts: int = Field(default=10, ge=1)
    retry_delay: float = Field(default=15.0, ge=0.0)

    readiness_strategy: str = "poll"
    poll_attempts: int = Field(default=60, ge=1)
    poll_interval: float = Field(default=5.0, ge=0.0)
    grace_period: float = Field(default=30.0, ge=0.0)

    request_timeout: float = Field(default=300.0, gt=0.0)
    max_output_tokens: int = Field(default=65536, gt=0)
    thinking_budget: int | None = Field(default=0, ge=0)
    deadline_seconds: float | None = Field(default=None, gt=0.0)

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        valid = {"inline", "upload"}
        if v not in valid:
            raise ValueError(f"backend must be one of: {valid}")
        return v

    @field_validator("split_policy")
    @classmethod
    def validate_split_policy(cls, v: str) -> str:
        valid = {"size", "duration"}
        if v not in valid:
            raise ValueError(f"split_policy must be one of: {valid}")
        return v

    @field_validator("readiness_strategy")
    @classmethod
    def validate_readiness_strategy(cls, v: str) -> str:
        valid = {"poll", "grace"}
        if v not in valid:
            raise ValueError(f"readiness_strategy must be one of: {valid}")
        return v


def load_config(path: Path | None = None, overrides: dict[str, Any] | None = None) -> ScribelineConfig:
    """Load and validate configuration.

    Args:
        path: Path to a scribeline.yaml file. If None, built-in defaults are used
        overrides: Values that take precedence over the file (e.g. CLI flags).
            Keys with a None value are ignored.

    Returns:
        Validated ScribelineConfig

    Raises:
        ConfigError: If the file is missing, unreadable, or has invalid values
    """
    raw_config: dict[str, Any] = {}
    if path is not None:
        if not path.exists():
            raise ConfigError(f"No {CONFIG_FILENAME} found at {path}")
        try:
            with open(path) as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(raw_config, dict):
            raise ConfigError(f"{path} must contain a mapping of settings")

    merged = merge_config(raw_config, overrides or {})

    try:
        return ScribelineConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def merge_config(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Merge overrides into a base config. Overrides take precedence unless None."""
    merged = base.copy()
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def find_config_file(start: Path | None = None) -> Path | None:
    """Find scribeline.yaml by walking up from ``start`` (default: cwd)."""
    current = (start or Path.cwd()).resolve()
    while current != current.parent:
        candidate = current / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        current = current.parent
    return None


def resolve_api_key(config: ScribelineConfig) -> str:
    """Read the API key once from the configured environment variable.

    Raises:
        ConfigError: If the variable is unset or still holds a placeholder
    """
    api_key = os.environ.get(config.api_key_env, "").strip()
    if api_key in PLACEHOLDER_API_KEYS:
        raise ConfigError(f"{config.api_key_env} is not set")
    return api_key


def create_default_config() -> dict[str, Any]:
    """Create a default config dict suitable for writing to scribeline.yaml."""
    defaults = ScribelineConfig().model_dump()
    defaults.pop("deadline_seconds")
    defaults.pop("language")
    defaults.pop("prompts_dir")
    return defaults


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
