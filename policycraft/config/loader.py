"""
Configuration loader for PolicyCraft.

This module provides the ConfigLoader class for loading configuration
from YAML files with environment variable overrides.
"""

import os
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Callable

import yaml

from policycraft.config.defaults import (
    get_default_config,
    get_development_config,
    get_production_config,
    get_test_config,
)
from policycraft.config.schema import PolicyCraftConfig
from policycraft.exceptions import ConfigurationError


class ConfigLoader:
    """
    Loads and validates PolicyCraft configuration.

    Configuration sources are applied in order, with later sources
    overriding earlier ones:

    1. Default values for the selected environment
    2. A YAML configuration file
    3. Environment variables (POLICYCRAFT_ prefix)

    Example:
        Loading configuration::

            loader = ConfigLoader()
            config = loader.load("config/policycraft.yaml", environment="production")
    """

    ENV_PREFIX = "POLICYCRAFT_"

    SECTIONS = ("logging", "policy", "mapping", "approval", "library", "server")

    def __init__(self) -> None:
        """Initialize the configuration loader."""
        self._config: PolicyCraftConfig | None = None

    def load(
        self,
        config_path: str | Path | None = None,
        environment: str | None = None,
    ) -> PolicyCraftConfig:
        """
        Load configuration from file and environment.

        Args:
            config_path: Path to a YAML configuration file. If None,
                only defaults and environment variables are used.
            environment: Environment profile to use. Overrides any
                environment setting in the config file.

        Returns:
            A validated PolicyCraftConfig object.

        Raises:
            ConfigurationError: If configuration is invalid or file not found.
        """
        if environment:
            config = self._get_environment_defaults(environment)
        else:
            config = get_default_config()

        if config_path:
            file_config = self._load_yaml(config_path)
            config = self._merge_config(config, file_config)

        config = self._apply_env_overrides(config)

        if environment:
            config.environment = environment

        self._validate(config)

        self._config = config
        return config

    def _get_environment_defaults(self, environment: str) -> PolicyCraftConfig:
        """Get default configuration for an environment."""
        env_lower = environment.lower()
        if env_lower == "production":
            return get_production_config()
        elif env_lower == "development":
            return get_development_config()
        elif env_lower == "test":
            return get_test_config()
        else:
            config = get_default_config()
            config.environment = environment
            return config

    def _load_yaml(self, path: str | Path) -> dict[str, Any]:
        """
        Load configuration from a YAML file.

        Raises:
            ConfigurationError: If file not found or invalid YAML.
        """
        path = Path(path)

        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                details={"path": str(path)},
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}",
                details={"path": str(path)},
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read configuration file: {e}",
                details={"path": str(path)},
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping",
                details={"path": str(path)},
            )
        return data

    def _merge_config(
        self,
        base: PolicyCraftConfig,
        override: dict[str, Any],
    ) -> PolicyCraftConfig:
        """
        Merge file configuration into base configuration.

        Unknown sections and unknown keys within a section are rejected so
        that typos do not silently fall back to defaults.
        """
        if not override:
            return base

        unknown = sorted(set(override) - set(self.SECTIONS) - {"environment"})
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration sections: {', '.join(unknown)}",
                details={"sections": unknown},
            )

        if "environment" in override:
            base.environment = str(override["environment"])

        for section in self.SECTIONS:
            if section in override:
                setattr(
                    base,
                    section,
                    self._merge_section(section, getattr(base, section), override[section]),
                )

        return base

    def _merge_section(self, name: str, base: Any, override: Any) -> Any:
        """Merge one configuration section, re-running its validation."""
        if override is None:
            return base
        if not isinstance(override, dict):
            raise ConfigurationError(
                f"Configuration section '{name}' must be a mapping",
                details={"section": name},
            )
        allowed = {f.name for f in fields(base)}
        unknown = sorted(set(override) - allowed)
        if unknown:
            raise ConfigurationError(
                f"Unknown keys in '{name}': {', '.join(unknown)}",
                details={"section": name, "keys": unknown},
            )
        try:
            return replace(base, **override)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid '{name}' configuration: {e}",
                details={"section": name},
            ) from e

    def _apply_env_overrides(self, config: PolicyCraftConfig) -> PolicyCraftConfig:
        """
        Apply environment variable overrides to configuration.

        For example:
        - POLICYCRAFT_LOG_LEVEL=DEBUG
        - POLICYCRAFT_MAPPING_THRESHOLD=0.4
        - POLICYCRAFT_CATALOG_PATH=/etc/policycraft/catalog.yaml
        """
        env_mapping: dict[str, tuple[str, Callable[[str], Any]]] = {
            "POLICYCRAFT_ENVIRONMENT": ("environment", str),
            # Logging
            "POLICYCRAFT_LOG_LEVEL": ("logging.level", str),
            "POLICYCRAFT_LOG_FORMAT": ("logging.format", str),
            "POLICYCRAFT_LOG_FILE": ("logging.output_path", str),
            "POLICYCRAFT_LOG_JSON": ("logging.json_format", self._parse_bool),
            # Policy
            "POLICYCRAFT_REVIEW_CYCLE_MONTHS": (
                "policy.default_review_cycle_months",
                int,
            ),
            # Mapping
            "POLICYCRAFT_MAPPING_THRESHOLD": ("mapping.inclusion_threshold", float),
            # Approval
            "POLICYCRAFT_ESCALATION_DAYS": ("approval.default_escalation_days", int),
            "POLICYCRAFT_WEBHOOK_URL": ("approval.webhook_url", str),
            # Library
            "POLICYCRAFT_LIBRARY_PATH": ("library.library_path", str),
            "POLICYCRAFT_CATALOG_PATH": ("library.catalog_path", str),
            # Server
            "POLICYCRAFT_SERVER_HOST": ("server.host", str),
            "POLICYCRAFT_SERVER_PORT": ("server.port", int),
        }

        for env_var, (path, converter) in env_mapping.items():
            value = os.environ.get(env_var)
            if value is not None:
                try:
                    converted = converter(value)
                    self._set_nested_attr(config, path, converted)
                except (ValueError, TypeError) as e:
                    raise ConfigurationError(
                        f"Invalid value for {env_var}: {e}",
                        details={"env_var": env_var, "value": value},
                    ) from e

        return config

    def _set_nested_attr(self, obj: Any, path: str, value: Any) -> None:
        """Set a nested attribute using dot notation."""
        parts = path.split(".")
        for part in parts[:-1]:
            obj = getattr(obj, part)
        setattr(obj, parts[-1], value)

    def _parse_bool(self, value: str) -> bool:
        """Parse a string to boolean."""
        if value.lower() in ("true", "1", "yes", "on"):
            return True
        elif value.lower() in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"Cannot parse '{value}' as boolean")

    def _validate(self, config: PolicyCraftConfig) -> None:
        """
        Validate the complete configuration.

        Environment overrides bypass dataclass validation, so every section
        is rebuilt here to trigger its __post_init__ checks.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        errors: list[str] = []

        for section in self.SECTIONS:
            try:
                replace(getattr(config, section))
            except ValueError as e:
                errors.append(f"{section}: {e}")

        try:
            PolicyCraftConfig(environment=config.environment)
        except ValueError as e:
            errors.append(f"environment: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                details={"errors": errors},
            )

    @property
    def config(self) -> PolicyCraftConfig:
        """Get the currently loaded configuration."""
        if self._config is None:
            raise ConfigurationError("Configuration not loaded. Call load() first.")
        return self._config


def load_config(
    config_path: str | Path | None = None,
    environment: str | None = None,
) -> PolicyCraftConfig:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to a YAML configuration file.
        environment: Environment profile to use.

    Returns:
        A validated PolicyCraftConfig object.
    """
    loader = ConfigLoader()
    return loader.load(config_path, environment)
