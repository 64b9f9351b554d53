"""
Approval workflow engine for PolicyCraft.

Drives a policy through the multi-role sign-off state machine::

    draft -> review -> approved | rejected
              ^  |
              +--+  request_changes

Initiating a workflow opens a new approval round with one PolicyApproval
record per required role. Every processed action appends to the record's
comment thread and decision list; nothing in the approval trail is ever
rewritten. Invalid requests are rejected before any state is touched.
"""

import logging
import threading
from datetime import datetime

from policycraft.exceptions import (
    NotFoundError,
    RevisionConflictError,
    ValidationError,
)
from policycraft.library.reference import ReferenceLibrary
from policycraft.models.approval import (
    ApprovalAction,
    ApprovalComment,
    ApprovalDecision,
    Escalation,
    NoResponseRule,
    PolicyApproval,
    RejectionCountRule,
    WorkflowDefinition,
)
from policycraft.models.base import utc_now
from policycraft.models.policy import Policy, PolicyStatus
from policycraft.notifications import NotificationManager, NotificationType
from policycraft.storage.repositories import ApprovalRepository, PolicyRepository

logger = logging.getLogger("policycraft.engine.approval")

COMMENT_REQUIRED = (ApprovalAction.REJECT, ApprovalAction.REQUEST_CHANGES)


class ApprovalEngine:
    """
    Manages approval rounds for policies.

    The ApprovalEngine handles:
    - Opening approval rounds from per-template workflow definitions
    - Ordered and parallel sign-off
    - Optimistic concurrency on approval records
    - Escalation checks and workflow notifications

    Example:
        Running an approval round::

            engine = ApprovalEngine(library, policies, approvals)
            records = engine.initiate(policy)
            engine.process_approval(
                policy.id,
                records[0].id,
                "approve",
                comment="Looks good",
                approver="dr.smith@district.org",
            )
    """

    def __init__(
        self,
        library: ReferenceLibrary,
        policies: PolicyRepository,
        approvals: ApprovalRepository,
        notifier: NotificationManager | None = None,
    ) -> None:
        """
        Initialize the approval engine.

        Args:
            library: Reference library holding the workflow definitions.
            policies: Policy storage.
            approvals: Approval record storage.
            notifier: Notification manager; a log-only manager if None.
        """
        self._library = library
        self._policies = policies
        self._approvals = approvals
        self._notifier = notifier or NotificationManager()
        self._lock = threading.RLock()

    @property
    def notifier(self) -> NotificationManager:
        """The notification manager used for workflow events."""
        return self._notifier

    # -------------------------------------------------------------------------
    # Initiation
    # -------------------------------------------------------------------------

    def initiate(self, policy: Policy) -> list[PolicyApproval]:
        """
        Open a new approval round for a policy.

        Args:
            policy: The policy to submit for approval.

        Returns:
            The approval records of the new round, in approver order.

        Raises:
            NoApprovalWorkflowDefinedError: If the policy's template has no
                registered workflow.
            ValidationError: If the policy is already under review.
        """
        workflow = self._library.get_workflow(policy.template_id)

        with self._lock:
            if policy.status == PolicyStatus.REVIEW:
                raise ValidationError(
                    "Policy is already under review",
                    {"policy_id": policy.id, "approval_round": policy.approval_round},
                )

            policy.approval_round += 1
            required = workflow.required_roles
            records = [
                PolicyApproval(
                    policy_id=policy.id,
                    approver_role=approver.role,
                    required_approvals=required,
                    order=approver.order,
                    round=policy.approval_round,
                )
                for approver in sorted(workflow.approvers, key=lambda a: a.order)
            ]
            previous = policy.status
            policy.approvals.extend(records)
            policy.status = PolicyStatus.REVIEW
            policy.updated_at = utc_now()
            self._save(policy, records)

        logger.info(
            f"Initiated approval round {policy.approval_round} for policy {policy.id} "
            f"({previous.value} -> review, {len(records)} approvers)"
        )

        if workflow.notifications.on_request:
            for record in self._actionable(policy, workflow):
                self._notify(NotificationType.APPROVAL_REQUESTED, policy, workflow, record)

        return records

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    def process_approval(
        self,
        policy_id: str,
        approval_id: str,
        action: ApprovalAction | str,
        comment: str,
        approver: str,
        signature: str | None = None,
        expected_revision: int | None = None,
    ) -> PolicyApproval:
        """
        Record an approver's action.

        Args:
            policy_id: Policy under approval.
            approval_id: Approval record the action belongs to.
            action: approve, reject or request_changes.
            comment: Comment text; required for reject and request_changes.
            approver: Name or email of the person acting.
            signature: Optional electronic signature.
            expected_revision: If set, the record revision the caller saw.

        Returns:
            The updated approval record.

        Raises:
            ValidationError: If the action, comment or approver is invalid,
                the policy is not under review, the record belongs to a
                closed round, or an ordered workflow is out of turn.
            NotFoundError: If the policy or approval record does not exist.
            RevisionConflictError: If expected_revision is stale.
        """
        action = _parse_action(action)
        if not isinstance(comment, str):
            raise ValidationError("Comment must be a string", {"approval_id": approval_id})
        if action in COMMENT_REQUIRED and not comment.strip():
            raise ValidationError(
                f"A comment is required to {action.value.replace('_', ' ')}",
                {"approval_id": approval_id, "action": action.value},
            )
        if not isinstance(approver, str) or not approver.strip():
            raise ValidationError("Approver is required", {"approval_id": approval_id})

        with self._lock:
            policy = self._get_policy(policy_id)
            record = self._approvals.get(approval_id)
            if record is None or record.policy_id != policy_id:
                raise NotFoundError(
                    f"Approval {approval_id} not found for policy {policy_id}",
                    {"policy_id": policy_id, "approval_id": approval_id},
                )
            if policy.status != PolicyStatus.REVIEW:
                raise ValidationError(
                    f"Policy is {policy.status.value}, not under review",
                    {"policy_id": policy_id, "status": policy.status.value},
                )
            if record.round != policy.approval_round:
                raise ValidationError(
                    "Approval belongs to a closed approval round",
                    {"approval_round": record.round, "current_round": policy.approval_round},
                )

            workflow = self._library.get_workflow(policy.template_id)
            round_records = [
                record if r.id == record.id else r for r in self._round_records(policy)
            ]
            if not workflow.parallel and action != ApprovalAction.REJECT:
                waiting_on = [
                    r.approver_role.value
                    for r in round_records
                    if r.order < record.order and r.action != ApprovalAction.APPROVE
                ]
                if waiting_on:
                    raise ValidationError(
                        "Approval out of order: earlier approvers have not approved",
                        {"role": record.approver_role.value, "waiting_on": waiting_on},
                    )

            if expected_revision is not None and expected_revision != record.revision:
                raise RevisionConflictError(
                    f"Approval {approval_id} was modified concurrently",
                    expected=expected_revision,
                    actual=record.revision,
                    details={"approval_id": approval_id},
                )

            entry = ApprovalComment(
                author_role=record.approver_role,
                author_name=approver,
                comment=comment,
            )
            record.comments.append(entry)
            record.decisions.append(
                ApprovalDecision(
                    action=action,
                    approver=approver,
                    signature=signature,
                    comment_id=entry.id,
                )
            )
            record.revision += 1

            approved = {r.approver_role for r in round_records if r.action == ApprovalAction.APPROVE}
            for r in round_records:
                r.current_approvals = set(approved)

            previous = policy.status
            if action == ApprovalAction.REJECT:
                policy.status = PolicyStatus.REJECTED
                policy.rejection_count += 1
            elif record.is_complete:
                policy.status = PolicyStatus.APPROVED
            policy.updated_at = utc_now()
            self._save(policy, round_records)

        logger.info(
            f"Processed {action.value} by {approver} ({record.approver_role.value}) "
            f"on policy {policy_id}"
        )
        if policy.status != previous:
            logger.info(
                f"Policy {policy_id} transitioned {previous.value} -> {policy.status.value}"
            )

        self._notify_decision(policy, workflow, record, action, approver, comment)
        return record

    # -------------------------------------------------------------------------
    # Escalation
    # -------------------------------------------------------------------------

    def check_escalations(
        self, policy_id: str, now: datetime | None = None
    ) -> list[Escalation]:
        """
        Evaluate a policy's escalation rules.

        No-response rules fire for every approval that is waiting on its
        role for longer than the rule allows. In ordered workflows an
        approval only starts waiting once every earlier role approved.
        Rejection-count rules fire when the policy's rejections across all
        rounds exceed the threshold.

        Args:
            policy_id: Policy to check.
            now: Reference time; the current time if None.

        Returns:
            The escalations raised, each also sent as a notification.

        Raises:
            NotFoundError: If the policy does not exist.
        """
        now = now or utc_now()
        policy = self._get_policy(policy_id)
        workflow = self._library.get_workflow(policy.template_id)
        escalations: list[Escalation] = []

        for rule in workflow.escalation_rules:
            if isinstance(rule, NoResponseRule) and policy.status == PolicyStatus.REVIEW:
                for record in self._actionable(policy, workflow):
                    since = self._pending_since(policy, workflow, record)
                    if rule.is_due(since, now):
                        escalations.append(
                            Escalation(
                                policy_id=policy.id,
                                rule=rule.kind,
                                reason=(
                                    f"No response from {record.approver_role.value} "
                                    f"in {rule.days} days"
                                ),
                                escalate_to=rule.escalate_to,
                                approval_id=record.id,
                            )
                        )
            elif isinstance(rule, RejectionCountRule) and rule.is_due(policy.rejection_count):
                escalations.append(
                    Escalation(
                        policy_id=policy.id,
                        rule=rule.kind,
                        reason=(
                            f"Policy rejected {policy.rejection_count} times "
                            f"(threshold {rule.threshold})"
                        ),
                        action=rule.action,
                    )
                )

        for escalation in escalations:
            logger.warning(f"Escalation on policy {policy.id}: {escalation.reason}")
            if workflow.notifications.on_escalation:
                recipient = (
                    escalation.escalate_to.value
                    if escalation.escalate_to
                    else policy.responsible_party
                )
                self._notifier.notify(
                    NotificationType.ESCALATION,
                    recipient,
                    {
                        "policy_id": policy.id,
                        "policy_title": policy.title,
                        "reason": escalation.reason,
                        "action": escalation.action or "",
                    },
                )

        return escalations

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _get_policy(self, policy_id: str) -> Policy:
        policy = self._policies.get(policy_id)
        if policy is None:
            raise NotFoundError(f"Policy {policy_id} not found", {"policy_id": policy_id})
        return policy

    def _round_records(self, policy: Policy) -> list[PolicyApproval]:
        return [
            r
            for r in self._approvals.find_by_policy(policy.id)
            if r.round == policy.approval_round
        ]

    def _save(self, policy: Policy, records: list[PolicyApproval]) -> None:
        for record in records:
            self._approvals.save(record)
        self._policies.save(policy)

    def _actionable(
        self, policy: Policy, workflow: WorkflowDefinition
    ) -> list[PolicyApproval]:
        """Records of the current round that are waiting on their role."""
        pending = [r for r in policy.current_round() if r.action != ApprovalAction.APPROVE]
        if workflow.parallel or not pending:
            return pending
        first = min(r.order for r in pending)
        return [r for r in pending if r.order == first]

    def _pending_since(
        self, policy: Policy, workflow: WorkflowDefinition, record: PolicyApproval
    ) -> datetime:
        since = record.last_activity()
        if not workflow.parallel:
            for earlier in policy.current_round():
                if earlier.order < record.order:
                    since = max(since, earlier.last_activity())
        return since

    def _notify(
        self,
        notification_type: NotificationType,
        policy: Policy,
        workflow: WorkflowDefinition,
        record: PolicyApproval,
        approver: str = "",
        comment: str = "",
    ) -> None:
        required = workflow.approver_for(record.approver_role)
        if notification_type == NotificationType.APPROVAL_REQUESTED:
            recipient = (required.email if required else "") or record.approver_role.value
        else:
            recipient = policy.created_by
        self._notifier.notify(
            notification_type,
            recipient,
            {
                "policy_id": policy.id,
                "policy_title": policy.title,
                "version": policy.version,
                "role": record.approver_role.value,
                "approver": approver,
                "comment": comment,
            },
        )

    def _notify_decision(
        self,
        policy: Policy,
        workflow: WorkflowDefinition,
        record: PolicyApproval,
        action: ApprovalAction,
        approver: str,
        comment: str,
    ) -> None:
        settings = workflow.notifications
        if action == ApprovalAction.REJECT:
            if settings.on_rejection:
                self._notify(
                    NotificationType.POLICY_REJECTED, policy, workflow, record, approver, comment
                )
        elif action == ApprovalAction.REQUEST_CHANGES:
            if settings.on_rejection:
                self._notify(
                    NotificationType.CHANGES_REQUESTED, policy, workflow, record, approver, comment
                )
        elif policy.status == PolicyStatus.APPROVED:
            if settings.on_approval:
                self._notify(
                    NotificationType.POLICY_APPROVED, policy, workflow, record, approver, comment
                )
        else:
            if settings.on_approval:
                self._notify(
                    NotificationType.APPROVAL_RECEIVED, policy, workflow, record, approver, comment
                )
            if settings.on_request and not workflow.parallel:
                for nxt in self._actionable(policy, workflow):
                    if nxt.order > record.order:
                        self._notify(NotificationType.APPROVAL_REQUESTED, policy, workflow, nxt)


def _parse_action(action: ApprovalAction | str) -> ApprovalAction:
    if isinstance(action, ApprovalAction):
        return action
    try:
        return ApprovalAction(action)
    except ValueError as e:
        raise ValidationError(
            f"Unknown approval action: {action}",
            {"allowed": [a.value for a in ApprovalAction]},
        ) from e
