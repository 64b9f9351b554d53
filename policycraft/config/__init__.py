"""
Configuration system for PolicyCraft.

This module provides configuration loading, validation, and logging setup
for PolicyCraft. Configuration can be loaded from YAML files with
environment variable overrides.
"""

from policycraft.config.loader import ConfigLoader, load_config
from policycraft.config.logging_setup import configure_logging
from policycraft.config.schema import (
    ApprovalConfig,
    LibraryConfig,
    LoggingConfig,
    MappingConfig,
    PolicyConfig,
    PolicyCraftConfig,
    ServerConfig,
)

__all__ = [
    "ConfigLoader",
    "load_config",
    "configure_logging",
    "PolicyCraftConfig",
    "ApprovalConfig",
    "LibraryConfig",
    "LoggingConfig",
    "MappingConfig",
    "PolicyConfig",
    "ServerConfig",
]
