# src/mapflow/core/config.py
"""Configuration schema and loading for mapflow.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: LogLevel = Field(default="INFO", description="Root log level")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept level names in any case."""
        if isinstance(v, str):
            return v.upper()
        return v


class ServiceSettings(BaseModel):
    """An HTTP collaborator endpoint (schema provider or persistence).

    Example YAML:
        persistence:
          url: https://api.example.com/mappings
          timeout_seconds: 15
          token: ${MAPFLOW_TOKEN}
    """

    model_config = {"frozen": True, "extra": "forbid"}

    url: str = Field(description="Base URL of the service")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-request timeout")
    token: str | None = Field(default=None, description="Bearer token; falls back to MAPFLOW_TOKEN")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"url must start with http:// or https://, got {v!r}")
        return v.rstrip("/")


class MapflowSettings(BaseModel):
    """Top-level mapflow settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    connect_debounce_ms: int = Field(
        default=100,
        ge=0,
        description="Repeats of an accepted connect within this window are ignored",
    )
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    schema_provider: ServiceSettings | None = Field(default=None, description="Record-store schema endpoint")
    persistence: ServiceSettings | None = Field(default=None, description="Mapping persistence endpoint")

    @property
    def connect_debounce_seconds(self) -> float:
        return self.connect_debounce_ms / 1000.0


# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Unset variables without a default are left as-is so validation reports them.
    """

    def replacer(match: re.Match[str]) -> str:
        env_value = os.environ.get(match.group(1))
        if env_value is not None:
            return env_value
        if match.group(2) is not None:
            return match.group(2)
        return match.group(0)

    def expand(value: Any) -> Any:
        if isinstance(value, str):
            return _ENV_VAR_PATTERN.sub(replacer, value)
        if isinstance(value, dict):
            return {k: expand(v) for k, v in value.items()}
        if isinstance(value, list):
            return [expand(item) for item in value]
        return value

    return {k: expand(v) for k, v in config.items()}


def _lowercase_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lowercase_keys(v) for k, v in value.items()}
    return value


def load_settings(config_path: Path | None = None) -> MapflowSettings:
    """Load settings from a YAML file with environment variable overrides.

    Precedence, highest first:
    1. Environment variables (MAPFLOW_*, nested keys as MAPFLOW_LOGGING__LEVEL)
    2. Config file
    3. Defaults from the Pydantic models

    Args:
        config_path: Path to a YAML settings file, or None for env/defaults only

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config_path is given but doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="MAPFLOW",
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lowercase_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    # MAPFLOW_TOKEN is the CLI's credential fallback, not a setting
    raw_config.pop("token", None)
    raw_config = _expand_env_vars(raw_config)

    return MapflowSettings(**raw_config)


def redacted(settings: MapflowSettings) -> dict[str, Any]:
    """Settings as plain data with bearer tokens masked, for logging."""
    data = settings.model_dump(mode="json")
    for service in ("schema_provider", "persistence"):
        if data[service] is not None and data[service]["token"] is not None:
            data[service]["token"] = "***"
    return data
