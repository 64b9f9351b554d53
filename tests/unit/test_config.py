"""
Unit tests for PolicyCraft configuration loading.
"""

from pathlib import Path

import pytest

from policycraft.config.defaults import (
    get_default_config,
    get_production_config,
    get_test_config,
)
from policycraft.config.loader import ConfigLoader, load_config
from policycraft.config.schema import ApprovalConfig, MappingConfig, PolicyConfig
from policycraft.exceptions import ConfigurationError


class TestConfigSchema:
    """Tests for configuration dataclass validation."""

    def test_defaults(self) -> None:
        """Test default values."""
        config = get_default_config()
        assert config.environment == "development"
        assert config.mapping.inclusion_threshold == 0.3
        assert config.policy.initial_version == "1.0"
        assert config.approval.notification_channels == ["log"]

    def test_presets(self) -> None:
        """Test environment presets."""
        assert get_production_config().logging.json_format is True
        assert get_test_config().approval.notifications_enabled is False

    def test_mapping_thresholds_must_be_ordered(self) -> None:
        """Test status thresholds must increase."""
        with pytest.raises(ValueError):
            MappingConfig(planned_threshold=0.6, partial_threshold=0.5)

    def test_mapping_threshold_range(self) -> None:
        """Test thresholds must lie in [0, 1]."""
        with pytest.raises(ValueError):
            MappingConfig(inclusion_threshold=1.5)

    def test_webhook_channel_requires_url(self) -> None:
        """Test the webhook channel needs a URL."""
        with pytest.raises(ValueError):
            ApprovalConfig(notification_channels=["webhook"])

    def test_invalid_initial_version(self) -> None:
        """Test the initial version must be major.minor."""
        with pytest.raises(ValueError):
            PolicyConfig(initial_version="v1")


class TestConfigLoader:
    """Tests for ConfigLoader."""

    def test_load_without_file(self) -> None:
        """Test loading defaults only."""
        config = ConfigLoader().load()
        assert config.server.port == 8080

    def test_load_yaml(self, tmp_path: Path) -> None:
        """Test values from a YAML file override defaults."""
        path = tmp_path / "policycraft.yaml"
        path.write_text(
            "mapping:\n"
            "  inclusion_threshold: 0.4\n"
            "server:\n"
            "  port: 9090\n"
        )
        config = load_config(path)
        assert config.mapping.inclusion_threshold == 0.4
        assert config.server.port == 9090
        assert config.mapping.implemented_threshold == 0.8

    def test_environment_preset(self) -> None:
        """Test selecting an environment preset."""
        config = ConfigLoader().load(environment="test")
        assert config.environment == "test"
        assert config.approval.notifications_enabled is False

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader().load(tmp_path / "missing.yaml")
        assert "not found" in exc_info.value.message

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test invalid YAML is a configuration error."""
        path = tmp_path / "bad.yaml"
        path.write_text("mapping: [unclosed\n")
        with pytest.raises(ConfigurationError):
            ConfigLoader().load(path)

    def test_unknown_section(self, tmp_path: Path) -> None:
        """Test unknown sections are rejected."""
        path = tmp_path / "typo.yaml"
        path.write_text("mappings:\n  inclusion_threshold: 0.4\n")
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader().load(path)
        assert exc_info.value.details["sections"] == ["mappings"]

    def test_unknown_key(self, tmp_path: Path) -> None:
        """Test unknown keys within a section are rejected."""
        path = tmp_path / "typo.yaml"
        path.write_text("mapping:\n  threshold: 0.4\n")
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader().load(path)
        assert exc_info.value.details["keys"] == ["threshold"]

    def test_invalid_value(self, tmp_path: Path) -> None:
        """Test section validation runs on file values."""
        path = tmp_path / "bad.yaml"
        path.write_text("server:\n  port: 70000\n")
        with pytest.raises(ConfigurationError):
            ConfigLoader().load(path)

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test environment variables override file and defaults."""
        monkeypatch.setenv("POLICYCRAFT_MAPPING_THRESHOLD", "0.45")
        monkeypatch.setenv("POLICYCRAFT_SERVER_PORT", "8181")
        config = ConfigLoader().load()
        assert config.mapping.inclusion_threshold == 0.45
        assert config.server.port == 8181

    def test_env_override_invalid(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test unparseable environment values are configuration errors."""
        monkeypatch.setenv("POLICYCRAFT_SERVER_PORT", "eighty")
        with pytest.raises(ConfigurationError):
            ConfigLoader().load()

    def test_env_override_validated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test environment values are validated like file values."""
        monkeypatch.setenv("POLICYCRAFT_MAPPING_THRESHOLD", "2.0")
        with pytest.raises(ConfigurationError):
            ConfigLoader().load()

    def test_config_property_before_load(self) -> None:
        """Test accessing config before load raises."""
        with pytest.raises(ConfigurationError):
            _ = ConfigLoader().config


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test JSON log records are written to stderr."""
        import json
        import logging

        from policycraft.config.logging_setup import configure_logging
        from policycraft.config.schema import LoggingConfig

        logger = configure_logging(LoggingConfig(level="INFO", json_format=True))
        try:
            logging.getLogger("policycraft.engine").info("generated policy")
            record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
            assert record["logger"] == "policycraft.engine"
            assert record["message"] == "generated policy"
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)

    def test_repeated_calls_replace_handlers(self) -> None:
        """Test reconfiguring does not duplicate handlers."""
        from policycraft.config.logging_setup import configure_logging
        from policycraft.config.schema import LoggingConfig

        configure_logging(LoggingConfig())
        logger = configure_logging(LoggingConfig(level="DEBUG"))
        try:
            assert len(logger.handlers) == 1
            assert logger.level == 10
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
