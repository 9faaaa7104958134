"""Configuration models and environment variable parsing for the Bitrise provider."""

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

# Load environment variables from .env file if it exists
load_dotenv()

DEFAULT_ENDPOINT = "https://api.bitrise.io"
DEFAULT_TIMEOUT_SECONDS = 30.0


def normalize_endpoint(value: str | None) -> str:
    """Clean up an endpoint value as users tend to write it.

    Strips whitespace and surrounding quotes, adds ``https://`` when no scheme
    is given and drops trailing slashes. Empty input yields an empty string.
    """
    if value is None:
        return ""
    cleaned = value.strip().strip('"').strip("'").strip()
    if not cleaned:
        return ""
    if "://" not in cleaned:
        cleaned = f"https://{cleaned}"
    return cleaned.rstrip("/")


class ProviderConfig(BaseModel):
    """Resolved provider configuration, immutable once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    endpoint: str = Field(
        default=DEFAULT_ENDPOINT, description="Base URL of the Bitrise API"
    )
    token: SecretStr = Field(
        default=SecretStr(""), description="API token sent in the Authorization header"
    )
    timeout_seconds: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        gt=0,
        le=600,
        description="Per-request timeout in seconds",
    )
    user_agent: str | None = Field(default=None, description="Custom User-Agent header")

    @field_validator("endpoint", mode="before")
    @classmethod
    def validate_endpoint(cls, v: Any) -> Any:
        """Normalize the endpoint, falling back to the production URL."""
        if v is not None and not isinstance(v, str):
            return v
        return normalize_endpoint(v) or DEFAULT_ENDPOINT

    @field_validator("token", mode="before")
    @classmethod
    def validate_token(cls, v: Any) -> Any:
        """Strip quotes and whitespace; an empty token is allowed."""
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip().strip('"').strip()
        return v

    @property
    def has_token(self) -> bool:
        """Whether a non-empty token is configured."""
        return bool(self.token.get_secret_value())

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        """Create configuration from environment variables.

        Missing variables are not an error: the endpoint falls back to the
        production URL and the token stays empty.
        """
        timeout = os.getenv("BITRISE_TIMEOUT_SECONDS")
        return cls(
            endpoint=os.getenv("BITRISE_ENDPOINT", ""),
            token=os.getenv("BITRISE_TOKEN", ""),
            timeout_seconds=timeout or DEFAULT_TIMEOUT_SECONDS,
        )

    @classmethod
    def resolve(cls, raw: Mapping[str, Any] | None = None) -> "ProviderConfig":
        """Overlay a declared provider block on top of the environment defaults.

        Args:
            raw: Provider block as declared by the user. ``None`` or empty
                values defer to the environment.

        Returns:
            Resolved ProviderConfig.
        """
        base = cls.from_env()
        overrides = {
            key: value
            for key, value in (raw or {}).items()
            if value is not None and value != ""
        }
        if not overrides:
            return base

        data: dict[str, Any] = {
            "endpoint": base.endpoint,
            "token": base.token,
            "timeout_seconds": base.timeout_seconds,
            "user_agent": base.user_agent,
        }
        data.update(overrides)
        return cls(**data)


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format (json or text)")

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(sorted(valid_levels))}")
        return v.upper()

    @field_validator("format")
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v.lower() not in {"json", "text"}:
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class CliConfig(BaseModel):
    """Configuration file layout used by the command-line interface."""

    provider: dict[str, Any] = Field(
        default_factory=dict, description="Provider block (endpoint, token, ...)"
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "CliConfig":
        """Create configuration from a YAML or JSON file.

        Args:
            config_path: Path to the configuration file

        Returns:
            CliConfig instance populated from the file

        Raises:
            FileNotFoundError: If the configuration file doesn't exist
            ValueError: If the file format is unsupported or its content is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        file_extension = config_path.suffix.lower()
        try:
            with open(config_path) as f:
                if file_extension == ".json":
                    config_data = json.load(f)
                elif file_extension in [".yaml", ".yml"]:
                    config_data = yaml.safe_load(f)
                else:
                    raise ValueError(
                        f"Unsupported configuration file format: {file_extension}. "
                        "Supported formats: .json, .yaml, .yml"
                    )
            return cls(**(config_data or {}))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}") from e
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

    def provider_config(self) -> ProviderConfig:
        """Resolve the provider block against the environment."""
        return ProviderConfig.resolve(self.provider)
