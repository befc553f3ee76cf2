"""Configuration management for freshgit."""

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from freshgit.exceptions import ConfigurationInvalidError
from freshgit.models.config import MirrorConfig

YAML_SUFFIXES = (".yaml", ".yml")

# Environment variable -> config key
ENV_OVERRIDES = {
    "FRESHGIT_MAX_WORKERS": "max_workers",
    "FRESHGIT_TIMEOUT_SECONDS": "timeout_seconds",
    "FRESHGIT_LOG_LEVEL": "log_level",
    "FRESHGIT_GIT_USERNAME": "git_username",
    "FRESHGIT_GIT_PASSWORD": "git_password",
    "FRESHGIT_SSH_ASKPASS": "ssh_askpass",
}


class ConfigManager:
    """Loads the mirror configuration from a JSON (or YAML) file with environment overrides."""

    def __init__(self, config_path: Path) -> None:
        """Initialize configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path).expanduser()

    def load(self) -> MirrorConfig:
        """Load and validate the configuration.

        Relative paths inside the file are resolved against the directory that
        contains the configuration file.

        Returns:
            Immutable configuration

        Raises:
            ConfigurationInvalidError: If the file is missing, unparsable or invalid
        """
        config_data = self._read_file()
        config_data = self._apply_env_overrides(config_data)

        try:
            config = MirrorConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationInvalidError("config.invalid", path=self.config_path, error=_format_errors(e)) from e

        return config.resolve_relative_to(self.config_path.resolve().parent)

    def _read_file(self) -> dict[str, Any]:
        if not self.config_path.is_file():
            raise ConfigurationInvalidError("config.not_found", path=self.config_path)

        try:
            with open(self.config_path, encoding="utf-8") as f:
                if self.config_path.suffix.lower() in YAML_SUFFIXES:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except OSError as e:
            raise ConfigurationInvalidError("config.unreadable", path=self.config_path, error=e) from e
        except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
            raise ConfigurationInvalidError("config.malformed", path=self.config_path, error=e) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationInvalidError(
                "config.malformed", path=self.config_path, error="top-level value must be an object"
            )
        return data

    def _apply_env_overrides(self, config_data: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides.

        Environment variables use the format: FRESHGIT_<KEY>
        Examples:
            - FRESHGIT_MAX_WORKERS=4
            - FRESHGIT_GIT_PASSWORD=secret
        """
        data = dict(config_data)
        for env_name, key in ENV_OVERRIDES.items():
            if value := os.getenv(env_name):
                data[key] = value
        return data


def _format_errors(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def load_config(config_path: Path) -> MirrorConfig:
    """Load configuration from ``config_path``."""
    return ConfigManager(config_path).load()
