"""
Framework mapping data models for PolicyCraft.

This module defines compliance-control catalogs (controls and their
extraction rules), the documents mapped against them, and the derived
results of a mapping request: control mappings, coverage, gaps and
recommendations. It also holds the framework update events that drive
automatic policy updates.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from policycraft.exceptions import ValidationError
from policycraft.models.base import generate_uuid, model_to_dict, utc_now


class RuleType(Enum):
    """
    Scoring strategy of an extraction rule.
    """

    KEYWORD = "keyword"
    """Fraction of pipe-separated keywords present in the text."""

    PATTERN = "pattern"
    """Regular expression match count, saturating at a fixed count."""

    SECTION_HEADER = "section_header"
    """Whether a markdown header line contains the pattern."""

    SEMANTIC = "semantic"
    """Fraction of the pattern's terms present in the text."""


class MappingStatus(Enum):
    """Implementation status of a control, derived from confidence."""

    IMPLEMENTED = "implemented"
    PARTIALLY_IMPLEMENTED = "partially_implemented"
    PLANNED = "planned"
    NOT_IMPLEMENTED = "not_implemented"


class GapPriority(Enum):
    """
    Priority of a compliance gap.

    Gap lists are sorted by descending weight.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        """Sort weight, critical=4 down to low=1."""
        return _PRIORITY_WEIGHTS[self]


_PRIORITY_WEIGHTS = {
    GapPriority.CRITICAL: 4,
    GapPriority.HIGH: 3,
    GapPriority.MEDIUM: 2,
    GapPriority.LOW: 1,
}


class RecommendationType(Enum):
    """Kind of framework recommendation."""

    IMMEDIATE_ACTION = "immediate_action"
    POLICY_UPDATE = "policy_update"


class UpdateStatus(Enum):
    """Outcome of applying a framework update to one policy."""

    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    FAILED = "failed"


# =============================================================================
# Reference data
# =============================================================================


@dataclass(frozen=True)
class ExtractionRule:
    """
    A rule scoring how strongly text evidences a control.

    Attributes:
        id: Unique rule id.
        rule_type: Scoring strategy.
        pattern: Keyword list, regex, header text or term list.
        weight: Multiplier applied to the rule's score, in (0, 1].
        context: Keywords of which at least one must be present, else the
            score is reduced.
        exclusions: Keywords whose presence reduces the score.
    """

    id: str
    rule_type: RuleType
    pattern: str
    weight: float = 1.0
    context: tuple[str, ...] = ()
    exclusions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not 0 < self.weight <= 1:
            raise ValueError(f"Rule weight must be in (0, 1], got {self.weight}")

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the rule to a dictionary."""
        return model_to_dict(self, exclude_none)


@dataclass(frozen=True)
class FrameworkControl:
    """
    A single control defined by a compliance framework.

    Attributes:
        id: Control id unique within the framework.
        framework: Framework id, e.g. NIST_AI_RMF.
        title: Control title.
        description: Control description.
        requirements: Individual requirements of the control.
        evidence: Canonical evidence examples.
        category: Optional grouping within the framework.
    """

    id: str
    framework: str
    title: str
    description: str = ""
    requirements: tuple[str, ...] = ()
    evidence: tuple[str, ...] = ()
    category: str = ""

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the control to a dictionary."""
        return model_to_dict(self, exclude_none)


# =============================================================================
# Mapping input and results
# =============================================================================


@dataclass(frozen=True)
class Document:
    """
    A document with already-extracted plain text.

    Attributes:
        id: Document id.
        text: Extracted plain text.
        title: Document title.
        pii_flags: PII categories detected upstream.
        framework_tags: If set, only these base frameworks are evaluated.
        state_tags: States the document is known to apply to.
    """

    id: str
    text: str
    title: str = ""
    pii_flags: tuple[str, ...] = ()
    framework_tags: tuple[str, ...] = ()
    state_tags: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        """Create a document from a dictionary such as a request body."""
        return cls(
            id=str(data.get("id") or generate_uuid()),
            text=data.get("text") or "",
            title=data.get("title", ""),
            pii_flags=tuple(data.get("pii_flags", ())),
            framework_tags=tuple(data.get("framework_tags", ())),
            state_tags=tuple(s.upper() for s in data.get("state_tags", ())),
        )


@dataclass(frozen=True)
class ControlMapping:
    """
    Confidence-scored mapping of a document onto one control.

    Mappings are query results, recomputed per request.

    Attributes:
        document_id: Mapped document.
        framework: Framework id.
        control_id: Control id.
        confidence: Aggregated confidence in [0, 1].
        status: Implementation status derived from confidence.
        evidence: Evidence strings supporting the mapping.
        gaps: Requirements with no supporting evidence.
        recommendations: Suggested follow-ups for the control.
    """

    document_id: str
    framework: str
    control_id: str
    confidence: float
    status: MappingStatus
    evidence: tuple[str, ...] = ()
    gaps: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the mapping to a dictionary."""
        return model_to_dict(self, exclude_none)


@dataclass(frozen=True)
class FrameworkCoverage:
    """
    Coverage of one framework by a document's mappings.

    Attributes:
        framework: Framework id.
        total_controls: Controls in the framework catalog.
        mapped_controls: Controls with a retained mapping.
        implemented_controls: Mapped controls implemented or partially so.
        coverage_percentage: mapped / total * 100.
        implementation_percentage: implemented / total * 100.
        average_confidence: Mean confidence of the framework's mappings.
    """

    framework: str
    total_controls: int
    mapped_controls: int
    implemented_controls: int
    coverage_percentage: float
    implementation_percentage: float
    average_confidence: float

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the coverage to a dictionary."""
        return model_to_dict(self, exclude_none)


@dataclass(frozen=True)
class FrameworkGap:
    """
    A catalog control with no supporting mapping.

    Attributes:
        framework: Framework id.
        control_id: Control id.
        title: Control title.
        priority: Heuristic priority.
        description: Gap description.
        risk_level: Risk level, equal to the priority.
        recommendations: Suggested remediation steps.
    """

    framework: str
    control_id: str
    title: str
    priority: GapPriority
    description: str
    risk_level: GapPriority
    recommendations: tuple[str, ...] = ()

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the gap to a dictionary."""
        return model_to_dict(self, exclude_none)


@dataclass(frozen=True)
class FrameworkRecommendation:
    """
    An actionable, framework-grouped recommendation.

    Attributes:
        id: Stable id built from framework and type.
        framework: Framework id.
        recommendation_type: Immediate action or policy update.
        priority: Priority of the gaps it addresses.
        title: Short title.
        description: What needs attention.
        action_items: Concrete steps.
        effort: Estimated effort (Low, Medium, High).
        timeline: Suggested timeline.
        impact: Expected impact.
    """

    id: str
    framework: str
    recommendation_type: RecommendationType
    priority: GapPriority
    title: str
    description: str
    action_items: tuple[str, ...]
    effort: str
    timeline: str
    impact: str

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the recommendation to a dictionary."""
        return model_to_dict(self, exclude_none)


@dataclass(frozen=True)
class FrameworkMappingResult:
    """
    Result of mapping a document onto frameworks.

    Attributes:
        document_id: Mapped document.
        detected_states: States whose regulations were evaluated, or
            ("Federal",) when none were detected.
        mappings: Retained control mappings.
        coverage: Coverage per evaluated framework.
        gaps: Gaps sorted by descending priority weight.
        recommendations: Framework-grouped recommendations.
        confidence_score: Mean confidence of the retained mappings.
    """

    document_id: str
    detected_states: tuple[str, ...]
    mappings: tuple[ControlMapping, ...]
    coverage: dict[str, FrameworkCoverage]
    gaps: tuple[FrameworkGap, ...]
    recommendations: tuple[FrameworkRecommendation, ...]
    confidence_score: float
    mapped_at: datetime = field(default_factory=utc_now)

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the result to a dictionary."""
        return model_to_dict(self, exclude_none)


# =============================================================================
# Framework updates
# =============================================================================


@dataclass(frozen=True)
class FrameworkUpdate:
    """
    A change to a compliance framework reported by a regulation watcher.

    Attributes:
        framework_id: Framework that changed.
        version: New framework version.
        description: What changed.
        affected_controls: Control ids touched by the change.
    """

    framework_id: str
    version: str
    description: str
    affected_controls: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FrameworkUpdate":
        """
        Create an update from a dictionary such as a request body.

        Raises:
            ValidationError: If framework_id or version is missing.
        """
        missing = [k for k in ("framework_id", "version") if not data.get(k)]
        if missing:
            raise ValidationError(
                "Framework update is missing required fields",
                {"fields": missing},
            )
        return cls(
            framework_id=data["framework_id"],
            version=str(data["version"]),
            description=data.get("description", ""),
            affected_controls=tuple(data.get("affected_controls", ())),
        )


@dataclass(frozen=True)
class PolicyUpdateResult:
    """
    Outcome of applying a framework update to one policy.

    Attributes:
        policy_id: Updated policy.
        status: Pending review, approved or failed.
        diffs_generated: Number of redlines produced.
        requires_approval: Whether any redline needs sign-off.
        error: Error message when the update failed.
        update_type: Kind of update, always "framework_sync".
    """

    policy_id: str
    status: UpdateStatus
    diffs_generated: int = 0
    requires_approval: bool = False
    error: str | None = None
    update_type: str = "framework_sync"
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the result to a dictionary."""
        return model_to_dict(self, exclude_none)
