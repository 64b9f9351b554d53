"""
API handlers for PolicyCraft server.

This package contains handler modules for each API resource type.

Modules:
    health_handlers: Health check
    policy_handlers: Templates, policy generation and redlines
    approval_handlers: Approval workflow endpoints
    mapping_handlers: Document mapping and framework updates
"""

from policycraft.server.handlers import (
    approval_handlers,
    health_handlers,
    mapping_handlers,
    policy_handlers,
)

__all__ = [
    "health_handlers",
    "policy_handlers",
    "approval_handlers",
    "mapping_handlers",
]
