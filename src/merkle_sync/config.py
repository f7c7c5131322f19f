"""Configuration management for merkle-sync."""

import json
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from . import CONFIG_FILE, MSYNC_DIR

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class SyncConfig(BaseModel):
    """Configuration for merkle-sync."""

    version: int = 1
    label_length: int = Field(default=16, ge=4, le=64)
    canonical_order: bool = False
    log_level: LogLevel = "WARNING"
    sample_size: int = Field(default=4, ge=1, le=26)


def get_msync_dir(project_root: Path) -> Path:
    """Get the .merkle-sync directory path."""
    return project_root / MSYNC_DIR


def get_config_path(project_root: Path) -> Path:
    """Get the config file path."""
    return get_msync_dir(project_root) / CONFIG_FILE


def load_config(project_root: Path) -> SyncConfig:
    """Load configuration from the project's config file.

    Falls back to defaults if file doesn't exist.
    Environment variables can override config values.
    """
    config_path = get_config_path(project_root)

    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)
        config = SyncConfig.model_validate(data)
    else:
        config = SyncConfig()

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    return config


def save_config(config: SyncConfig, project_root: Path) -> None:
    """Save configuration to the project's config file."""
    config_path = get_config_path(project_root)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config.model_dump(), f, indent=2)


def create_default_config(canonical_order: bool = False) -> SyncConfig:
    """Create a default configuration, optionally with key-sorted leaves."""
    return SyncConfig(canonical_order=canonical_order)


def _apply_env_overrides(config: SyncConfig) -> SyncConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    # MSYNC_CANONICAL_ORDER
    if canonical := os.environ.get("MSYNC_CANONICAL_ORDER"):
        data["canonical_order"] = canonical.strip().lower() in ("1", "true", "yes")

    # MSYNC_LABEL_LENGTH
    if label_length := os.environ.get("MSYNC_LABEL_LENGTH"):
        data["label_length"] = label_length

    # MSYNC_LOG_LEVEL
    if log_level := os.environ.get("MSYNC_LOG_LEVEL"):
        data["log_level"] = log_level.upper()

    return SyncConfig.model_validate(data)
