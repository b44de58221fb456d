"""Configuration types with environment variable support.

All settings can be configured via environment variables with the HOSTSERVE_
prefix. Example: HOSTSERVE_STATE_FILE=/var/lib/hostserve/serve.json.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a YAML or TOML file.

    Args:
        path: Path to the configuration file (.yaml, .yml, or .toml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file has encoding errors, invalid syntax, or unsupported format
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file encoding error in {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif path.suffix == ".toml":
            data = tomllib.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def flatten_config(config: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in config.items():
        full_key = f"{prefix}_{key}" if prefix else key
        if isinstance(value, dict):
            result.update(flatten_config(value, full_key))
        else:
            result[full_key] = value
    return result


class ServeSettings(BaseSettings):
    """Settings for the serve command.

    Example:
        settings = get_settings()
        print(settings.state_file)
    """

    model_config = SettingsConfigDict(
        env_prefix="HOSTSERVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    store: Literal["file", "localapi"] = Field(
        default="file",
        description="Where the serve config lives: a local JSON file or the local control daemon.",
    )
    state_file: str = Field(
        default="serve.json",
        description="Path of the serve config document when store is 'file'.",
    )
    localapi_url: str = Field(
        default="http://127.0.0.1:41112",
        description="Base URL of the local control daemon.",
    )
    localapi_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Timeout in seconds for local control daemon requests.",
    )
    dns_name: str | None = Field(
        default=None,
        description="This node's DNS name. Defaults to the daemon's answer or the host FQDN.",
    )
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="warning",
        description="Log level for structured logs.",
    )

    def to_display_dict(self) -> dict[str, Any]:
        """Export current settings as a dictionary for display."""
        return {
            "store": self.store,
            "state_file": self.state_file,
            "localapi_url": self.localapi_url,
            "localapi_timeout": self.localapi_timeout,
            "dns_name": self.dns_name,
            "log_level": self.log_level,
        }


_settings: ServeSettings | None = None


def get_settings() -> ServeSettings:
    """Get the global settings instance.

    The instance is created once from the environment and cached for the
    lifetime of the process. Call clear_settings() to reload (e.g., in tests).
    """
    global _settings
    if _settings is None:
        _settings = ServeSettings()
    return _settings


def clear_settings() -> None:
    """Clear the cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
