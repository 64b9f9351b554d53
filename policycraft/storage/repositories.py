"""
Repository interfaces for PolicyCraft data access.

The engines depend on these interfaces only. Callers supply the
implementation: the in-memory repositories below back the CLI, the API
server and the tests, and a database-backed implementation can be
plugged in without touching the engines.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from policycraft.models.approval import PolicyApproval
from policycraft.models.policy import Policy


class PolicyRepository(ABC):
    """
    Abstract storage for Policy documents.

    Policies are never deleted; save() inserts or replaces by id.
    """

    @abstractmethod
    def get(self, policy_id: str) -> Policy | None:
        """
        Get a policy by id.

        Args:
            policy_id: The policy id.

        Returns:
            The policy, or None if not found.
        """
        pass

    @abstractmethod
    def save(self, policy: Policy) -> None:
        """Insert or replace a policy."""
        pass

    @abstractmethod
    def list(self, org_id: str | None = None) -> list[Policy]:
        """
        List policies in creation order.

        Args:
            org_id: If set, only policies of this organization.
        """
        pass

    @abstractmethod
    def find_by_framework(self, framework_id: str) -> list[Policy]:
        """Policies whose compliance frameworks include framework_id."""
        pass


class ApprovalRepository(ABC):
    """Abstract storage for PolicyApproval records."""

    @abstractmethod
    def get(self, approval_id: str) -> PolicyApproval | None:
        """Get an approval record by id, or None if not found."""
        pass

    @abstractmethod
    def save(self, approval: PolicyApproval) -> None:
        """Insert or replace an approval record."""
        pass

    @abstractmethod
    def find_by_policy(self, policy_id: str) -> list[PolicyApproval]:
        """Approval records of a policy, oldest first."""
        pass


class InMemoryPolicyRepository(PolicyRepository):
    """Thread-safe, process-local PolicyRepository."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._policies: dict[str, Policy] = {}

    def get(self, policy_id: str) -> Policy | None:
        with self._lock:
            return self._policies.get(policy_id)

    def save(self, policy: Policy) -> None:
        with self._lock:
            self._policies[policy.id] = policy

    def list(self, org_id: str | None = None) -> list[Policy]:
        with self._lock:
            policies = list(self._policies.values())
        if org_id is not None:
            policies = [p for p in policies if p.org_id == org_id]
        return policies

    def find_by_framework(self, framework_id: str) -> list[Policy]:
        return [p for p in self.list() if framework_id in p.compliance_frameworks]


class InMemoryApprovalRepository(ApprovalRepository):
    """Thread-safe, process-local ApprovalRepository."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._approvals: dict[str, PolicyApproval] = {}

    def get(self, approval_id: str) -> PolicyApproval | None:
        with self._lock:
            return self._approvals.get(approval_id)

    def save(self, approval: PolicyApproval) -> None:
        with self._lock:
            self._approvals[approval.id] = approval

    def find_by_policy(self, policy_id: str) -> list[PolicyApproval]:
        with self._lock:
            return [a for a in self._approvals.values() if a.policy_id == policy_id]
