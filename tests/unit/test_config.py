"""Unit tests for configuration module."""

import json

import pytest
from pydantic import ValidationError

from bitrise_provider.config import (
    DEFAULT_ENDPOINT,
    DEFAULT_TIMEOUT_SECONDS,
    CliConfig,
    LoggingConfig,
    ProviderConfig,
    normalize_endpoint,
)


class TestNormalizeEndpoint:
    """Test endpoint normalization."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("https://api.bitrise.io", "https://api.bitrise.io"),
            ("https://api.bitrise.io/", "https://api.bitrise.io"),
            ("api.bitrise.io", "https://api.bitrise.io"),
            ('  "https://api.bitrise.io"  ', "https://api.bitrise.io"),
            ("http://localhost:8080/", "http://localhost:8080"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalize(self, raw, expected):
        """Test quotes, whitespace, scheme and trailing slash handling."""
        assert normalize_endpoint(raw) == expected


class TestProviderConfig:
    """Test provider configuration."""

    def test_defaults(self):
        """Test default configuration values."""
        config = ProviderConfig()
        assert config.endpoint == DEFAULT_ENDPOINT
        assert config.token.get_secret_value() == ""
        assert config.timeout_seconds == DEFAULT_TIMEOUT_SECONDS
        assert not config.has_token

    def test_empty_endpoint_falls_back(self):
        """Test that an empty endpoint uses the production URL."""
        assert ProviderConfig(endpoint="  ").endpoint == DEFAULT_ENDPOINT

    def test_token_is_secret(self):
        """Test that the token is not exposed in repr."""
        config = ProviderConfig(token='"abc123"')
        assert config.token.get_secret_value() == "abc123"
        assert "abc123" not in repr(config)
        assert config.has_token

    def test_frozen(self):
        """Test that configuration cannot be mutated."""
        config = ProviderConfig()
        with pytest.raises(ValidationError):
            config.endpoint = "https://other.example.com"

    def test_timeout_bounds(self):
        """Test timeout validation bounds."""
        with pytest.raises(ValidationError):
            ProviderConfig(timeout_seconds=0)
        with pytest.raises(ValidationError):
            ProviderConfig(timeout_seconds=601)

    def test_unknown_field_rejected(self):
        """Test that unknown provider attributes are rejected."""
        with pytest.raises(ValidationError):
            ProviderConfig(endpoint="https://api.bitrise.io", tokn="typo")

    def test_from_env(self, clean_env):
        """Test configuration from environment variables."""
        clean_env.setenv("BITRISE_ENDPOINT", "bitrise.example.com/")
        clean_env.setenv("BITRISE_TOKEN", "env-token")
        clean_env.setenv("BITRISE_TIMEOUT_SECONDS", "12.5")

        config = ProviderConfig.from_env()

        assert config.endpoint == "https://bitrise.example.com"
        assert config.token.get_secret_value() == "env-token"
        assert config.timeout_seconds == 12.5

    def test_from_env_missing_is_not_an_error(self, clean_env):
        """Test that missing environment variables produce defaults."""
        config = ProviderConfig.from_env()
        assert config.endpoint == DEFAULT_ENDPOINT
        assert not config.has_token

    def test_resolve_overlays_block_on_env(self, clean_env):
        """Test that declared values win over the environment."""
        clean_env.setenv("BITRISE_ENDPOINT", "https://env.example.com")
        clean_env.setenv("BITRISE_TOKEN", "env-token")

        config = ProviderConfig.resolve({"endpoint": "https://block.example.com"})

        assert config.endpoint == "https://block.example.com"
        assert config.token.get_secret_value() == "env-token"

    def test_resolve_empty_values_defer_to_env(self, clean_env):
        """Test that empty or null values fall back to the environment."""
        clean_env.setenv("BITRISE_TOKEN", "env-token")

        config = ProviderConfig.resolve({"endpoint": "", "token": None})

        assert config.endpoint == DEFAULT_ENDPOINT
        assert config.token.get_secret_value() == "env-token"

    def test_resolve_none(self, clean_env):
        """Test resolving without a provider block."""
        assert ProviderConfig.resolve(None) == ProviderConfig.from_env()


class TestLoggingConfig:
    """Test logging configuration."""

    def test_normalizes_case(self):
        """Test that level and format are normalized."""
        config = LoggingConfig(level="debug", format="JSON")
        assert config.level == "DEBUG"
        assert config.format == "json"

    def test_invalid_level(self):
        """Test that an invalid level is rejected."""
        with pytest.raises(ValueError, match="Log level must be one of"):
            LoggingConfig(level="LOUD")

    def test_invalid_format(self):
        """Test that an invalid format is rejected."""
        with pytest.raises(ValueError, match="Log format must be"):
            LoggingConfig(format="xml")


class TestCliConfig:
    """Test configuration file loading."""

    def test_from_yaml_file(self, tmp_path, clean_env):
        """Test loading a YAML configuration file."""
        config_file = tmp_path / "provider.yaml"
        config_file.write_text(
            "provider:\n"
            "  endpoint: https://api.test.bitrise.io\n"
            "  token: file-token\n"
            "logging:\n"
            "  level: debug\n"
        )

        config = CliConfig.from_file(config_file)
        provider = config.provider_config()

        assert provider.endpoint == "https://api.test.bitrise.io"
        assert provider.token.get_secret_value() == "file-token"
        assert config.logging.level == "DEBUG"

    def test_from_json_file(self, tmp_path):
        """Test loading a JSON configuration file."""
        config_file = tmp_path / "provider.json"
        config_file.write_text(json.dumps({"provider": {"token": "json-token"}}))

        config = CliConfig.from_file(config_file)

        assert config.provider == {"token": "json-token"}
        assert config.logging.format == "text"

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            CliConfig.from_file(tmp_path / "missing.yaml")

    def test_unsupported_format(self, tmp_path):
        """Test that unknown extensions are rejected."""
        config_file = tmp_path / "provider.toml"
        config_file.write_text("[provider]\n")
        with pytest.raises(ValueError, match="Unsupported configuration file format"):
            CliConfig.from_file(config_file)

    def test_invalid_yaml(self, tmp_path):
        """Test that malformed YAML raises ValueError."""
        config_file = tmp_path / "provider.yaml"
        config_file.write_text("provider: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            CliConfig.from_file(config_file)
