"""
Approval workflow data models for PolicyCraft.

This module defines approver roles and actions, the per-role approval
records that make up a policy's approval trail, and the per-template
workflow definitions (required approvers, escalation rules, notification
settings) that the approval engine drives them with.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, ClassVar

from policycraft.models.base import generate_uuid, model_to_dict, utc_now


class ApproverRole(Enum):
    """
    Fixed set of roles that can sign off on a policy.
    """

    SUPERINTENDENT = "superintendent"
    PROVOST = "provost"
    COUNSEL = "counsel"
    CIO = "cio"
    CTO = "cto"
    ACADEMIC_LEAD = "academic_lead"
    PRIVACY_OFFICER = "privacy_officer"


class ApprovalAction(Enum):
    """
    Actions an approver can take on a policy.
    """

    APPROVE = "approve"
    """Sign off on the policy for this role."""

    REJECT = "reject"
    """Reject the policy. A single rejection rejects the whole round."""

    REQUEST_CHANGES = "request_changes"
    """Ask for changes; the policy stays in review."""


@dataclass(frozen=True)
class ApprovalComment:
    """
    One entry in an approval record's comment thread.

    Attributes:
        author_role: Role of the commenter.
        author_name: Display name of the commenter.
        comment: Comment text.
        response_to_id: Id of the comment this replies to, if any.
        is_resolved: Whether the comment has been addressed.
    """

    author_role: ApproverRole
    author_name: str
    comment: str
    response_to_id: str | None = None
    is_resolved: bool = False
    id: str = field(default_factory=generate_uuid)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the comment to a dictionary."""
        return model_to_dict(self, exclude_none)


@dataclass(frozen=True)
class ApprovalDecision:
    """
    A recorded approval action with its electronic signature.

    Attributes:
        action: The action taken.
        approver: Name or email of the person acting for the role.
        signature: Electronic signature supplied with the action.
        comment_id: Id of the comment recorded with the action.
    """

    action: ApprovalAction
    approver: str
    signature: str | None = None
    comment_id: str | None = None
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the decision to a dictionary."""
        return model_to_dict(self, exclude_none)


@dataclass
class PolicyApproval:
    """
    Approval record for one required role in one approval round.

    Comments and decisions are append-only. The latest decision is the
    role's current action. The revision counter increases with every
    processed action and is used to detect concurrent edits.

    Attributes:
        policy_id: Policy under approval.
        approver_role: Role this record belongs to.
        required_approvals: Every role required in this round.
        current_approvals: Roles whose latest action in this round is approve.
        order: Position of the role in an ordered workflow.
        round: Approval round number within the policy.
        comments: Append-only comment thread.
        decisions: Append-only list of recorded actions.
        revision: Monotonic revision counter.
    """

    policy_id: str
    approver_role: ApproverRole
    required_approvals: frozenset[ApproverRole] = frozenset()
    current_approvals: set[ApproverRole] = field(default_factory=set)
    order: int = 1
    round: int = 1
    comments: list[ApprovalComment] = field(default_factory=list)
    decisions: list[ApprovalDecision] = field(default_factory=list)
    revision: int = 0
    id: str = field(default_factory=generate_uuid)
    created_at: datetime = field(default_factory=utc_now)

    @property
    def action(self) -> ApprovalAction | None:
        """The latest recorded action, or None while pending."""
        if not self.decisions:
            return None
        return self.decisions[-1].action

    @property
    def is_pending(self) -> bool:
        """True while the role has not approved or rejected."""
        return self.action not in (ApprovalAction.APPROVE, ApprovalAction.REJECT)

    @property
    def is_complete(self) -> bool:
        """True if every required role appears in the current approvals."""
        return self.required_approvals <= self.current_approvals

    def last_activity(self) -> datetime:
        """Timestamp of the latest decision, or creation if none."""
        if self.decisions:
            return self.decisions[-1].timestamp
        return self.created_at

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the approval record to a dictionary."""
        data = model_to_dict(self, exclude_none)
        data["action"] = self.action.value if self.action else None
        data["is_complete"] = self.is_complete
        return data


# =============================================================================
# Workflow definitions
# =============================================================================


@dataclass(frozen=True)
class RequiredApprover:
    """
    An approver role required by a workflow definition.

    Attributes:
        role: The approver role.
        order: Position in an ordered workflow (1 is first).
        name: Display name of the person holding the role.
        email: Contact address for notifications.
    """

    role: ApproverRole
    order: int = 1
    name: str = ""
    email: str = ""


@dataclass(frozen=True)
class EscalationRule:
    """
    Base class for escalation rules.

    Escalation produces a notification; it never alters which roles are
    required in a round.
    """

    kind: ClassVar[str] = ""

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the rule to a dictionary."""
        data = model_to_dict(self, exclude_none)
        data["kind"] = self.kind
        return data


@dataclass(frozen=True)
class NoResponseRule(EscalationRule):
    """
    Escalate a pending approval once it has been waiting too long.

    Attributes:
        days: Days without a response before escalating.
        escalate_to: Role that receives the escalation.
    """

    kind: ClassVar[str] = "no_response"

    days: int = 5
    escalate_to: ApproverRole = ApproverRole.SUPERINTENDENT

    def is_due(self, pending_since: datetime, now: datetime) -> bool:
        """Return True if an approval pending since the given time is overdue."""
        return now - pending_since > timedelta(days=self.days)


@dataclass(frozen=True)
class RejectionCountRule(EscalationRule):
    """
    Escalate a policy that keeps getting rejected.

    Attributes:
        threshold: Number of rejections that must be exceeded.
        action: Follow-up action named in the escalation.
    """

    kind: ClassVar[str] = "rejection_count"

    threshold: int = 1
    action: str = "require_legal_review"

    def is_due(self, rejection_count: int) -> bool:
        """Return True if rejections exceed the threshold."""
        return rejection_count > self.threshold


@dataclass(frozen=True)
class NotificationSettings:
    """Which workflow events send notifications."""

    on_request: bool = True
    on_approval: bool = True
    on_rejection: bool = True
    on_escalation: bool = True


@dataclass(frozen=True)
class WorkflowDefinition:
    """
    Approval workflow registered for a policy template.

    Attributes:
        template_id: Template the workflow applies to.
        approvers: Required approvers.
        parallel: If False, roles must approve in ascending order.
        escalation_rules: Rules evaluated by escalation checks.
        notifications: Notification settings.
    """

    template_id: str
    approvers: tuple[RequiredApprover, ...]
    parallel: bool = False
    escalation_rules: tuple[EscalationRule, ...] = ()
    notifications: NotificationSettings = field(default_factory=NotificationSettings)

    @property
    def required_roles(self) -> frozenset[ApproverRole]:
        """Every role required by the workflow."""
        return frozenset(a.role for a in self.approvers)

    def approver_for(self, role: ApproverRole) -> RequiredApprover | None:
        """Return the approver entry for a role, if required."""
        for approver in self.approvers:
            if approver.role == role:
                return approver
        return None


@dataclass(frozen=True)
class Escalation:
    """
    An escalation raised by an escalation check.

    Attributes:
        policy_id: Policy the escalation concerns.
        rule: Kind of rule that fired.
        reason: Human-readable reason.
        escalate_to: Role notified, if the rule names one.
        approval_id: Pending approval that triggered it, if any.
        action: Follow-up action named by the rule, if any.
    """

    policy_id: str
    rule: str
    reason: str
    escalate_to: ApproverRole | None = None
    approval_id: str | None = None
    action: str | None = None
    raised_at: datetime = field(default_factory=utc_now)

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the escalation to a dictionary."""
        return model_to_dict(self, exclude_none)
