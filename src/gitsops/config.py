# src/gitsops/config.py: Pydantic models for configuration.
# This module defines the schema of the optional git-sops settings file using
# Pydantic models. Every field has a default, so a missing file yields a fully
# working configuration; a present file is loaded, validated and merged over
# those defaults.

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .util.errors import ConfigError
from .util.paths import get_settings_path


class RetryPolicy(BaseModel):
    attempts: int = Field(3, ge=1)
    backoff_sec: float = Field(1.0, ge=0)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_format: bool = Field(False, alias="json")

    model_config = {"populate_by_name": True}


class Settings(BaseModel):
    """Root configuration model."""
    version: int = 1
    filter_name: str = "crypt"
    encryption_marker: str = "ENC[AES256"
    sops_binary: str = "sops"
    sops_config: str = ".sops.yaml"
    batch_size: int = Field(50, ge=1)
    detect_content_type: bool = False
    commit_message: str = "Update sops keys"
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("filter_name")
    @classmethod
    def _filter_name_is_a_config_key(cls, value: str) -> str:
        if not value or any(c in value for c in ". \t\n"):
            raise ValueError("filter_name must be a non-empty git config subsection")
        return value

    def sops_config_path(self, root: Path) -> Path:
        """The recipient/key config, relative to the repository root."""
        return root / self.sops_config


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load and validate the settings file, falling back to defaults if absent.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    config_path = path or get_settings_path()
    if not config_path.is_file():
        return Settings()

    try:
        raw = yaml.safe_load(config_path.read_bytes()) or {}
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file '{config_path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse configuration file '{config_path}': {e}") from e

    try:
        return Settings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed:\n{e}") from e
