"""
Vault configuration, loaded from ``<home>/config/config.yaml``.

A missing or broken config file never stops the vault: it falls back to
defaults and says so in the log.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, field_validator

from . import VAULT_HOME
from .models import normalize_identity

logger = logging.getLogger("skvault.config")

CONFIG_RELPATH = Path("config") / "config.yaml"


class VaultConfig(BaseModel):
    """Persistent settings for one vault home."""

    vault_name: str = "sovereign-vault"
    event_log: bool = True
    log_level: str = "WARNING"
    default_caller: Optional[str] = None

    @field_validator("default_caller")
    @classmethod
    def _check_caller(cls, value: Optional[str]) -> Optional[str]:
        return normalize_identity(value) if value else None

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value}")
        return level


def resolve_home(home: Optional[Path] = None) -> Path:
    """Expand the vault home, honouring SKVAULT_HOME."""
    return Path(home or VAULT_HOME).expanduser()


def load_config(home: Path) -> VaultConfig:
    """Load config.yaml from a vault home.

    Returns:
        VaultConfig: Parsed settings, or defaults if the file is absent or invalid.
    """
    config_file = home / CONFIG_RELPATH
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text()) or {}
            return VaultConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config, using defaults: %s", exc)
    return VaultConfig()


def save_config(home: Path, config: VaultConfig) -> Path:
    """Write config.yaml and return its path."""
    config_file = home / CONFIG_RELPATH
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(
        yaml.safe_dump(config.model_dump(exclude_none=True), default_flow_style=False)
    )
    return config_file
