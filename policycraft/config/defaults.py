"""
Default configuration values for PolicyCraft.

These defaults can be overridden by YAML configuration files and/or
environment variables.
"""

from policycraft.config.schema import (
    ApprovalConfig,
    LoggingConfig,
    MappingConfig,
    PolicyCraftConfig,
)


def get_default_config() -> PolicyCraftConfig:
    """
    Get the default configuration.

    Returns:
        A new PolicyCraftConfig with default values.
    """
    return PolicyCraftConfig()


def get_production_config() -> PolicyCraftConfig:
    """
    Get a production configuration preset.

    Logs are emitted as JSON at WARNING level for log shipping.

    Returns:
        A new PolicyCraftConfig tuned for production.
    """
    return PolicyCraftConfig(
        environment="production",
        logging=LoggingConfig(level="WARNING", json_format=True),
    )


def get_development_config() -> PolicyCraftConfig:
    """
    Get a development configuration preset with verbose logging.

    Returns:
        A new PolicyCraftConfig tuned for local development.
    """
    return PolicyCraftConfig(
        environment="development",
        logging=LoggingConfig(level="DEBUG"),
    )


def get_test_config() -> PolicyCraftConfig:
    """
    Get a configuration preset for automated tests.

    Notifications are disabled so tests never touch the network.

    Returns:
        A new PolicyCraftConfig tuned for tests.
    """
    return PolicyCraftConfig(
        environment="test",
        logging=LoggingConfig(level="WARNING"),
        mapping=MappingConfig(),
        approval=ApprovalConfig(notifications_enabled=False),
    )
