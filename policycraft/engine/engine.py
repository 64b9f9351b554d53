"""
Policy engine facade for PolicyCraft.

The PolicyEngine wires the clause selector, assembler, redline differ and
approval engine to the reference library, configuration and storage, and
exposes the policy operations used by the API server and the CLI.
"""

import calendar
import logging
import threading
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any

from policycraft.config.defaults import get_default_config
from policycraft.config.schema import PolicyCraftConfig
from policycraft.engine.approval import ApprovalEngine
from policycraft.engine.assembler import PolicyAssembler, extract_placeholders
from policycraft.engine.differ import RedlineDiffer, next_version
from policycraft.engine.selector import ClauseSelector
from policycraft.engine.updates import record_framework_update
from policycraft.exceptions import NotFoundError, ValidationError
from policycraft.library.clause_store import ClauseStore
from policycraft.library.loader import LibraryLoader
from policycraft.library.reference import ReferenceLibrary
from policycraft.models.approval import ApprovalAction, Escalation, PolicyApproval
from policycraft.models.base import utc_now
from policycraft.models.framework import FrameworkUpdate, PolicyUpdateResult, UpdateStatus
from policycraft.models.organization import OrganizationProfile
from policycraft.models.policy import Policy, PolicyDiff, PolicyStatus, PolicyTemplate
from policycraft.notifications import NotificationManager
from policycraft.storage.repositories import (
    ApprovalRepository,
    InMemoryApprovalRepository,
    InMemoryPolicyRepository,
    PolicyRepository,
)

logger = logging.getLogger("policycraft.engine")

FEDERAL = "federal"


@dataclass(frozen=True)
class PolicyGenerationOptions:
    """
    Options for generate_policy.

    Attributes:
        org_id: Owning organization id.
        created_by: Who generates the policy.
        responsible_party: Accountable role; the configured default if None.
        auto_update_enabled: Whether framework updates apply automatically.
        initiate_approval: Start the approval workflow right away.
    """

    org_id: str = "default"
    created_by: str = "system"
    responsible_party: str | None = None
    auto_update_enabled: bool = False
    initiate_approval: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PolicyGenerationOptions":
        """
        Create options from a dictionary such as a request body.

        Raises:
            ValidationError: If the dictionary has unknown keys.
        """
        data = data or {}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(
                "Unknown policy generation options",
                {"options": unknown, "allowed": sorted(known)},
            )
        return cls(**data)


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class PolicyEngine:
    """
    Generates, revises and approves policies.

    Example:
        Generating and approving a policy::

            engine = PolicyEngine.from_defaults()
            policy = engine.generate_policy(
                "ai-acceptable-use",
                OrganizationProfile(
                    organization_name="Springfield USD",
                    organization_type=OrganizationType.K12,
                    student_age_min=10,
                ),
            )
            engine.initiate_approval_workflow(policy.id)
    """

    def __init__(
        self,
        library: ReferenceLibrary,
        config: PolicyCraftConfig | None = None,
        policies: PolicyRepository | None = None,
        approvals: ApprovalRepository | None = None,
        notifier: NotificationManager | None = None,
    ) -> None:
        """
        Initialize the policy engine.

        Args:
            library: Reference library of templates, clauses and workflows.
            config: Configuration; defaults if None.
            policies: Policy storage; in-memory if None.
            approvals: Approval record storage; in-memory if None.
            notifier: Notification manager; built from config if None.
        """
        self.config = config or get_default_config()
        self.clauses = ClauseStore(library)
        self.policies = policies or InMemoryPolicyRepository()
        self._assembler = PolicyAssembler()
        self._differ = RedlineDiffer(self.config.policy.approval_keywords)
        self._approval = ApprovalEngine(
            library,
            self.policies,
            approvals or InMemoryApprovalRepository(),
            notifier or NotificationManager(self.config.approval),
        )
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: PolicyCraftConfig, **kwargs: Any) -> "PolicyEngine":
        """
        Create an engine with the reference library named by the config.

        Raises:
            ConfigurationError: If the library file is invalid.
        """
        loader = LibraryLoader(config.approval.default_escalation_days)
        library = loader.load_library(config.library.library_path or None)
        return cls(library, config, **kwargs)

    @classmethod
    def from_defaults(cls) -> "PolicyEngine":
        """Create an engine with the packaged library and default config."""
        return cls.from_config(get_default_config())

    @property
    def library(self) -> ReferenceLibrary:
        """Current reference library snapshot."""
        return self.clauses.snapshot()

    @property
    def notifier(self) -> NotificationManager:
        """The notification manager used for workflow events."""
        return self._approval.notifier

    def list_templates(self) -> list[PolicyTemplate]:
        """Templates in library order."""
        return list(self.library.templates.values())

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def generate_policy(
        self,
        template_id: str,
        profile: OrganizationProfile | dict[str, Any],
        jurisdiction: list[str] | tuple[str, ...] | None = None,
        options: PolicyGenerationOptions | None = None,
    ) -> Policy:
        """
        Generate a draft policy for an organization.

        Args:
            template_id: Template to assemble.
            profile: Organization profile, or its dictionary form.
            jurisdiction: Jurisdictions the policy applies in; the
                configured default if None.
            options: Generation options.

        Returns:
            The stored draft policy (in review if options ask for it).

        Raises:
            TemplateNotFoundError: If the template does not exist.
            CyclicDependencyError: If the selected clauses form a cycle.
            ValidationError: If the profile dictionary is invalid.
        """
        if isinstance(profile, dict):
            profile = OrganizationProfile.from_dict(profile)
        options = options or PolicyGenerationOptions()
        library = self.library
        template = library.get_template(template_id)
        if options.initiate_approval:
            library.get_workflow(template.id)

        clauses = ClauseSelector(library).select(template, profile)
        assembled = self._assembler.assemble(template, clauses, profile)

        jurisdictions = tuple(jurisdiction or self.config.policy.default_jurisdiction)
        months = template.review_cycle_months or self.config.policy.default_review_cycle_months
        now = utc_now()

        policy = Policy(
            org_id=options.org_id,
            template_id=template.id,
            title=assembled.title,
            content=assembled.content,
            version=self.config.policy.initial_version,
            fillable_fields=dict(assembled.fillable_fields),
            compliance_frameworks=template.compliance_frameworks,
            jurisdiction=jurisdictions,
            state_requirements=tuple(j for j in jurisdictions if j.lower() != FEDERAL),
            responsible_party=(
                options.responsible_party or self.config.policy.default_responsible_party
            ),
            created_by=options.created_by,
            auto_update_enabled=options.auto_update_enabled,
            next_review_date=add_months(now, months),
            created_at=now,
            updated_at=now,
        )
        self.policies.save(policy)

        logger.info(
            f"Generated policy {policy.id} from template {template.id} "
            f"with {len(clauses)} clauses, {len(policy.fillable_fields)} fillable fields"
        )

        if options.initiate_approval:
            self._approval.initiate(policy)
        return policy

    def get_policy(self, policy_id: str) -> Policy:
        """
        Return a stored policy.

        Raises:
            NotFoundError: If the policy does not exist.
        """
        policy = self.policies.get(policy_id)
        if policy is None:
            raise NotFoundError(f"Policy {policy_id} not found", {"policy_id": policy_id})
        return policy

    def list_policies(self, org_id: str | None = None) -> list[Policy]:
        """Stored policies, optionally for one organization."""
        return self.policies.list(org_id)

    # -------------------------------------------------------------------------
    # Redlines
    # -------------------------------------------------------------------------

    def generate_redlines(
        self,
        original: Policy,
        updated_content: str,
        reason: str,
        author: str = "system",
        justification: str | None = None,
    ) -> list[PolicyDiff]:
        """
        Compute redlines between a policy and edited content.

        The policy is not modified.

        Args:
            original: The policy as it stands.
            updated_content: The edited content.
            reason: Rationale recorded on every diff.
            author: Who made the edit.
            justification: Source justification; derived per diff if None.

        Returns:
            Diffs labelled with the policy's next version.
        """
        diffs = self._differ.diff(
            original.content,
            updated_content,
            version=next_version(original.version),
            reason=reason,
            author=author,
            justification=justification,
        )
        logger.info(
            f"Generated {len(diffs)} redlines for policy {original.id} "
            f"({sum(d.approval_required for d in diffs)} require approval)"
        )
        return diffs

    def revise_policy(
        self,
        policy_id: str,
        updated_content: str,
        reason: str,
        author: str = "system",
        justification: str | None = None,
    ) -> list[PolicyDiff]:
        """
        Apply edited content to a policy.

        The redlines are appended to the diff history, the content is
        replaced and the version bumped. Identical content is a no-op.

        Returns:
            The diffs applied.

        Raises:
            NotFoundError: If the policy does not exist.
        """
        with self._lock:
            policy = self.get_policy(policy_id)
            diffs = self.generate_redlines(
                policy, updated_content, reason, author, justification
            )
            if diffs:
                policy.record_revision(diffs, updated_content, diffs[0].version)
                policy.fillable_fields = _refresh_fields(
                    policy.fillable_fields, updated_content
                )
                self.policies.save(policy)
                logger.info(f"Policy {policy.id} revised to version {policy.version}")
        return diffs

    def fill_fields(
        self,
        policy_id: str,
        values: dict[str, str],
        author: str = "system",
    ) -> list[PolicyDiff]:
        """
        Supply values for a policy's fillable fields.

        Raises:
            NotFoundError: If the policy does not exist.
            ValidationError: If a value is empty or names no unresolved
                placeholder.
        """
        with self._lock:
            policy = self.get_policy(policy_id)
            content = self._assembler.fill(policy.content, values)
            diffs = self.revise_policy(
                policy_id,
                content,
                reason=f"Filled fields: {', '.join(sorted(values))}",
                author=author,
            )
            policy.fillable_fields.update({k: str(v) for k, v in values.items()})
            self.policies.save(policy)
        return diffs

    # -------------------------------------------------------------------------
    # Approval
    # -------------------------------------------------------------------------

    def initiate_approval_workflow(self, policy: Policy | str) -> list[PolicyApproval]:
        """
        Submit a policy for approval.

        Raises:
            NoApprovalWorkflowDefinedError: If the template has no workflow.
            ValidationError: If the policy is already under review.
        """
        if isinstance(policy, str):
            policy = self.get_policy(policy)
        return self._approval.initiate(policy)

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
        """Record an approver's action; see ApprovalEngine.process_approval."""
        return self._approval.process_approval(
            policy_id,
            approval_id,
            action,
            comment,
            approver,
            signature=signature,
            expected_revision=expected_revision,
        )

    def check_escalations(
        self, policy_id: str, now: datetime | None = None
    ) -> list[Escalation]:
        """Evaluate escalation rules; see ApprovalEngine.check_escalations."""
        return self._approval.check_escalations(policy_id, now)

    # -------------------------------------------------------------------------
    # Framework updates
    # -------------------------------------------------------------------------

    def auto_update_policies_from_framework(
        self, update: FrameworkUpdate
    ) -> list[PolicyUpdateResult]:
        """
        Apply a framework update to every auto-updating policy that follows
        the framework.

        Each policy is processed independently. A failure is reported as a
        failed result and processing continues with the next policy.
        Policies that already record the framework version produce no
        result.

        Args:
            update: The framework update event.

        Returns:
            One result per updated or failed policy.
        """
        results: list[PolicyUpdateResult] = []
        for policy in self.policies.find_by_framework(update.framework_id):
            if not policy.auto_update_enabled:
                continue
            try:
                result = self._apply_framework_update(policy, update)
            except Exception as e:
                logger.warning(
                    f"Framework update {update.framework_id} {update.version} "
                    f"failed for policy {policy.id}: {e}"
                )
                result = PolicyUpdateResult(
                    policy_id=policy.id,
                    status=UpdateStatus.FAILED,
                    error=str(e),
                )
            if result is not None:
                results.append(result)

        failed = sum(r.status == UpdateStatus.FAILED for r in results)
        logger.info(
            f"Applied framework update {update.framework_id} {update.version} "
            f"to {len(results)} policies ({failed} failed)"
        )
        return results

    def _apply_framework_update(
        self, policy: Policy, update: FrameworkUpdate
    ) -> PolicyUpdateResult | None:
        content = record_framework_update(policy.content, update)
        if content == policy.content:
            return None

        reason = f"Framework update: {update.description}"
        preview = self.generate_redlines(policy, content, reason)
        requires_approval = any(d.approval_required for d in preview)
        needs_round = requires_approval and policy.status != PolicyStatus.REVIEW
        if needs_round:
            self.library.get_workflow(policy.template_id)

        diffs = self.revise_policy(policy.id, content, reason, author="system")
        if needs_round:
            self._approval.initiate(policy)

        return PolicyUpdateResult(
            policy_id=policy.id,
            status=(
                UpdateStatus.PENDING_REVIEW if requires_approval else UpdateStatus.APPROVED
            ),
            diffs_generated=len(diffs),
            requires_approval=requires_approval,
        )


def _refresh_fields(current: dict[str, str], content: str) -> dict[str, str]:
    """Keep resolved values, track placeholders still in the content."""
    refreshed = {k: v for k, v in current.items() if v}
    for token in extract_placeholders(content):
        refreshed.setdefault(token, "")
    return refreshed
