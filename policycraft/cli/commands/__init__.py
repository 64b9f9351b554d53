"""
CLI command modules for PolicyCraft.

Each module registers one or more top-level commands.

Modules:
    policy: Template listing, policy generation and redlines
    mapping: Document mapping onto compliance frameworks
    serve: HTTP API server
"""

from policycraft.cli.commands import mapping, policy, serve

__all__ = ["policy", "mapping", "serve"]
