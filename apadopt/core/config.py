"""
Configuration system for the adoption assistant.

Provides YAML-based configuration with:
- Environment variable substitution and overrides
- Pydantic validation
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "APADOPT_"


# ============================================================================
# Typed Configuration Models
# ============================================================================


class SystemConfig(BaseModel):
    """Top-level system configuration."""

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level '{v}'")
        return level


class SetupApiConfig(BaseModel):
    """Setup-code service that turns codes into sites."""

    base_url: str = "https://ubiquitywizard.onrender.com"
    timeout_seconds: float = Field(default=10.0, gt=0.0)


class HostBridgeConfig(BaseModel):
    """Privileged helper that scans and adopts on our behalf."""

    url: str = "http://127.0.0.1:9541"
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class AdoptionConfig(BaseModel):
    """How devices are adopted."""

    backend: str = "ssh"  # ssh | bridge
    username: str = "ubnt"
    default_password: str = "ubnt"
    port: int = Field(default=22, ge=1, le=65535)
    connect_timeout_seconds: int = Field(default=10, ge=1, le=120)

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        if v not in ("ssh", "bridge"):
            raise ValueError(f"Backend must be 'ssh' or 'bridge', got '{v}'")
        return v


class AssistantConfig(BaseModel):
    """Local web UI served to the user."""

    host: str = "127.0.0.1"
    port: int = Field(default=9540, ge=1, le=65535)
    code_prefix: str = "VS-"
    complete_grace_seconds: float = Field(default=10.0, ge=0.0)


class AppConfig(BaseModel):
    """Complete assistant configuration."""

    system: SystemConfig = Field(default_factory=SystemConfig)
    setup_api: SetupApiConfig = Field(default_factory=SetupApiConfig)
    host_bridge: HostBridgeConfig = Field(default_factory=HostBridgeConfig)
    adoption: AdoptionConfig = Field(default_factory=AdoptionConfig)
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)


SECTIONS = tuple(AppConfig.model_fields.keys())


# ============================================================================
# Configuration Loader
# ============================================================================


class ConfigLoader:
    """Loads configuration from YAML files and the environment."""

    # Pattern for environment variable references: ${VAR} or ${VAR:-default}
    ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

    def load_yaml(self, path: Path) -> dict[str, Any]:
        """Load single YAML file with env var substitution."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        content = path.read_text()
        content = self._substitute_env_vars(content)

        return yaml.safe_load(content) or {}

    def _substitute_env_vars(self, content: str) -> str:
        """Replace ${VAR} and ${VAR:-default} with environment values."""

        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            default = match.group(2)
            value = os.environ.get(var_name)

            if value is not None:
                return value
            elif default is not None:
                return default
            else:
                return match.group(0)  # Keep original if no value and no default

        return self.ENV_PATTERN.sub(replacer, content)

    def apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        """
        Apply environment variable overrides.

        APADOPT_SETUP_API_BASE_URL=http://x -> setup_api.base_url = "http://x"

        Values stay strings; pydantic coerces them to each field's type.
        """
        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            path = self._env_key_to_path(key[len(ENV_PREFIX):].lower())
            if path is None:
                continue
            section, field_name = path
            config.setdefault(section, {})
            if not isinstance(config[section], dict):
                continue
            config[section][field_name] = value

        return config

    def _env_key_to_path(self, key: str) -> tuple[str, str] | None:
        """Split "setup_api_base_url" into ("setup_api", "base_url")."""
        # Longest section first so "setup_api" wins over a shorter prefix
        for section in sorted(SECTIONS, key=len, reverse=True):
            if key.startswith(section + "_"):
                field_name = key[len(section) + 1:]
                if field_name:
                    return section, field_name
        return None


# ============================================================================
# Main Configuration Class
# ============================================================================


class Config:
    """
    Main configuration container.

    Usage:
        config = Config.load(Path("~/.config/apadopt/config.yaml"))
        port = config.assistant.port
    """

    def __init__(self, data: dict[str, Any], source_path: Path | None = None):
        self._data = data
        self._source_path = source_path

        # Parse into typed config
        self._typed = AppConfig.model_validate(data)

    @classmethod
    def load(cls, path: Path) -> Config:
        """Load configuration from YAML file."""
        loader = ConfigLoader()
        data = loader.load_yaml(path)
        data = loader.apply_env_overrides(data)
        return cls(data, source_path=path)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create configuration from dictionary."""
        return cls(data)

    @classmethod
    def default(cls) -> Config:
        """Create configuration with defaults plus environment overrides."""
        return cls(ConfigLoader().apply_env_overrides({}))

    @property
    def source_path(self) -> Path | None:
        return self._source_path

    def set(self, path: str, value: Any) -> None:
        """Set config value in memory and re-validate."""
        keys = path.split(".")
        obj = self._data

        for key in keys[:-1]:
            if key not in obj:
                obj[key] = {}
            obj = obj[key]

        obj[keys[-1]] = value

        # Re-validate typed config
        self._typed = AppConfig.model_validate(self._data)

    # ========================================================================
    # Typed Accessors
    # ========================================================================

    @property
    def system(self) -> SystemConfig:
        return self._typed.system

    @property
    def setup_api(self) -> SetupApiConfig:
        return self._typed.setup_api

    @property
    def host_bridge(self) -> HostBridgeConfig:
        return self._typed.host_bridge

    @property
    def adoption(self) -> AdoptionConfig:
        return self._typed.adoption

    @property
    def assistant(self) -> AssistantConfig:
        return self._typed.assistant
