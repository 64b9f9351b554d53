"""
Policy data models for PolicyCraft.

This module defines the reference data policies are assembled from
(templates, clauses and their selection rules) and the mutable Policy
document together with its append-only diff history.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from policycraft.exceptions import ConfigurationError
from policycraft.models.approval import PolicyApproval
from policycraft.models.base import generate_uuid, model_to_dict, utc_now
from policycraft.models.organization import OrganizationProfile, ProfileField


class PolicyStatus(Enum):
    """
    Lifecycle status of a Policy.

    Policies move draft -> review -> approved | rejected. A change request
    keeps the policy in review.
    """

    DRAFT = "draft"
    """Assembled but not yet submitted for approval."""

    REVIEW = "review"
    """An approval round is open."""

    APPROVED = "approved"
    """Every required role approved the current round."""

    REJECTED = "rejected"
    """A required role rejected the current round."""


class ChangeType(Enum):
    """Classification of a section-level redline."""

    ADDITION = "addition"
    DELETION = "deletion"
    MODIFICATION = "modification"


class RiskLevel(Enum):
    """Risk level assigned to a policy template."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# =============================================================================
# Clause selection rules
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class ClauseSelectionRule:
    """
    Base class for clause selection rules.

    Rules are a closed set of variants, one per operator. Each variant
    tests a single ProfileField of an OrganizationProfile.

    Attributes:
        field: The profile field the rule tests.
    """

    operator: ClassVar[str] = ""

    field: ProfileField

    def matches(self, profile: OrganizationProfile) -> bool:
        """Return True if the profile satisfies this rule."""
        raise NotImplementedError

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the rule to a dictionary."""
        data = model_to_dict(self, exclude_none)
        data["operator"] = self.operator
        return data


@dataclass(frozen=True)
class Equals(ClauseSelectionRule):
    """Passes when the profile value equals the rule value exactly."""

    operator: ClassVar[str] = "equals"

    value: Any = None

    def matches(self, profile: OrganizationProfile) -> bool:
        return profile.get(self.field) == self.value


@dataclass(frozen=True)
class In(ClauseSelectionRule):
    """Passes when the profile value is one of the rule values."""

    operator: ClassVar[str] = "in"

    values: tuple[Any, ...] = ()

    def matches(self, profile: OrganizationProfile) -> bool:
        return profile.get(self.field) in self.values


@dataclass(frozen=True)
class LessThan(ClauseSelectionRule):
    """Passes when the profile value is numeric and below the rule value."""

    operator: ClassVar[str] = "less_than"

    value: float = 0

    def matches(self, profile: OrganizationProfile) -> bool:
        actual = profile.get(self.field)
        return _is_number(actual) and actual < self.value


@dataclass(frozen=True)
class GreaterThan(ClauseSelectionRule):
    """Passes when the profile value is numeric and above the rule value."""

    operator: ClassVar[str] = "greater_than"

    value: float = 0

    def matches(self, profile: OrganizationProfile) -> bool:
        actual = profile.get(self.field)
        return _is_number(actual) and actual > self.value


RULE_TYPES: dict[str, type[ClauseSelectionRule]] = {
    rule_type.operator: rule_type for rule_type in (Equals, In, LessThan, GreaterThan)
}


def rule_from_dict(data: dict[str, Any]) -> ClauseSelectionRule:
    """
    Build a selection rule from its dictionary form.

    Expected keys are ``field``, ``operator`` and ``value``. For ``in``
    rules the value must be a list.

    Raises:
        ConfigurationError: If the field, operator or value is invalid.
    """
    operator = data.get("operator")
    rule_type = RULE_TYPES.get(operator or "")
    if rule_type is None:
        raise ConfigurationError(
            f"Unknown selection rule operator: {operator}",
            {"allowed": sorted(RULE_TYPES)},
        )
    try:
        profile_field = ProfileField(data.get("field"))
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown selection rule field: {data.get('field')}",
            {"allowed": [f.value for f in ProfileField]},
        ) from e

    value = data.get("value")
    if rule_type is In:
        if not isinstance(value, (list, tuple)):
            raise ConfigurationError(
                "Selection rule 'in' requires a list value",
                {"field": profile_field.value},
            )
        return In(field=profile_field, values=tuple(value))
    if rule_type in (LessThan, GreaterThan) and not _is_number(value):
        raise ConfigurationError(
            f"Selection rule '{operator}' requires a numeric value",
            {"field": profile_field.value, "value": value},
        )
    return rule_type(field=profile_field, value=value)


# =============================================================================
# Reference data
# =============================================================================


@dataclass(frozen=True)
class PolicyClause:
    """
    A reusable, conditionally included fragment of policy text.

    Attributes:
        id: Unique clause id; also the placeholder token in template content.
        title: Human-readable title.
        content: Body text, possibly containing organization placeholders.
        category: Grouping such as definitions, compliance or privacy.
        priority: Ordering key; lower values are placed earlier.
        rules: Selection rules; the clause is included only if all pass.
        dependencies: Clause ids that must be placed before this clause.
        revision: Revision counter maintained by the clause store.
    """

    id: str
    title: str
    content: str
    category: str = "general"
    priority: int = 100
    rules: tuple[ClauseSelectionRule, ...] = ()
    dependencies: tuple[str, ...] = ()
    revision: int = 1

    def is_applicable(self, profile: OrganizationProfile) -> bool:
        """Return True if every selection rule passes for the profile."""
        return all(rule.matches(profile) for rule in self.rules)

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the clause to a dictionary."""
        data = model_to_dict(self, exclude_none)
        data["rules"] = [rule.to_dict(exclude_none) for rule in self.rules]
        return data


@dataclass(frozen=True)
class PolicyTemplate:
    """
    Template a policy is assembled from.

    Attributes:
        id: Unique template id.
        title: Title, possibly containing organization placeholders.
        content: Base content with ``{{clause-id}}`` placeholders.
        available_clauses: Clause ids the template may include.
        compliance_frameworks: Framework ids the policy references.
        risk_level: Risk classification of the policy area.
        review_cycle_months: Months between scheduled reviews.
        description: Short summary for listings.
    """

    id: str
    title: str
    content: str
    available_clauses: tuple[str, ...] = ()
    compliance_frameworks: tuple[str, ...] = ()
    risk_level: RiskLevel = RiskLevel.MEDIUM
    review_cycle_months: int | None = None
    description: str = ""

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the template to a dictionary."""
        return model_to_dict(self, exclude_none)


# =============================================================================
# Policy documents
# =============================================================================


@dataclass(frozen=True)
class PolicyDiff:
    """
    A section-level, classified change between two policy revisions.

    Diffs are immutable once created and form the append-only diff history
    of a Policy.

    Attributes:
        id: Unique diff id.
        version: Policy version the change produces.
        change_type: Addition, deletion or modification.
        section_id: Slug of the affected section header.
        original_text: Section text before the change; empty for additions.
        new_text: Section text after the change; empty for deletions.
        rationale: Caller-supplied reason for the change.
        source_justification: Where the change comes from.
        approval_required: Whether the change needs sign-off.
        changed_by: Author of the change.
        position: Index of the section in the updated document, or in the
            original document for deletions.
        timestamp: When the diff was computed.
    """

    version: str
    change_type: ChangeType
    section_id: str
    original_text: str
    new_text: str
    rationale: str
    source_justification: str
    approval_required: bool
    changed_by: str = "system"
    position: int = 0
    id: str = field(default_factory=generate_uuid)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the diff to a dictionary."""
        return model_to_dict(self, exclude_none)


@dataclass
class Policy:
    """
    A generated policy document.

    Policies are never deleted. Their diff history and approval trail are
    only ever appended to; content changes go through redlines so that
    every revision is accounted for.

    Attributes:
        id: Unique policy id.
        org_id: Owning organization id.
        template_id: Template the policy was assembled from.
        title: Interpolated policy title.
        content: Assembled content, starting with the legal disclaimer.
        status: Lifecycle status.
        version: Current version string, "major.minor".
        fillable_fields: Placeholder tokens left for the caller to supply,
            mapped to their values ("" while unresolved).
        diffs: Append-only diff history.
        approvals: Append-only approval trail across all rounds.
        compliance_frameworks: Framework ids the policy references.
        jurisdiction: Jurisdictions the policy applies in.
        state_requirements: Jurisdictions other than federal.
        responsible_party: Role accountable for the policy.
        created_by: Who generated the policy.
        auto_update_enabled: Whether framework updates apply automatically.
        approval_round: Number of approval rounds opened so far.
        rejection_count: Number of rejections across all rounds.
        next_review_date: When the policy is next due for review.
    """

    org_id: str
    template_id: str
    title: str
    content: str
    status: PolicyStatus = PolicyStatus.DRAFT
    version: str = "1.0"
    fillable_fields: dict[str, str] = field(default_factory=dict)
    diffs: list[PolicyDiff] = field(default_factory=list)
    approvals: list[PolicyApproval] = field(default_factory=list)
    compliance_frameworks: tuple[str, ...] = ()
    jurisdiction: tuple[str, ...] = ("federal",)
    state_requirements: tuple[str, ...] = ()
    responsible_party: str = "Privacy Officer"
    created_by: str = "system"
    auto_update_enabled: bool = False
    approval_round: int = 0
    rejection_count: int = 0
    next_review_date: datetime | None = None
    id: str = field(default_factory=generate_uuid)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def current_round(self) -> list[PolicyApproval]:
        """Return the approval records of the latest approval round."""
        return [a for a in self.approvals if a.round == self.approval_round]

    def record_revision(
        self, diffs: list[PolicyDiff], content: str, version: str
    ) -> None:
        """
        Append diffs to the history and move to the revised content.

        Args:
            diffs: Diffs between the current and the revised content.
            content: The revised content.
            version: The version the diffs produce.
        """
        if not diffs:
            return
        self.diffs.extend(diffs)
        self.content = content
        self.version = version
        self.updated_at = utc_now()

    @property
    def unresolved_fields(self) -> list[str]:
        """Placeholder tokens that still have no value."""
        return [k for k, v in self.fillable_fields.items() if not v]

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the policy to a dictionary."""
        data = model_to_dict(self, exclude_none)
        data["approvals"] = [a.to_dict(exclude_none) for a in self.approvals]
        data["unresolved_fields"] = self.unresolved_fields
        return data
