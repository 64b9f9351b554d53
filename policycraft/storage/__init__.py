"""
Storage interfaces for PolicyCraft.

The engines depend on the abstract repositories; in-memory
implementations are provided for the CLI, the API server and tests.
"""

from policycraft.storage.repositories import (
    ApprovalRepository,
    InMemoryApprovalRepository,
    InMemoryPolicyRepository,
    PolicyRepository,
)

__all__ = [
    "ApprovalRepository",
    "InMemoryApprovalRepository",
    "InMemoryPolicyRepository",
    "PolicyRepository",
]
