"""
Data models for PolicyCraft.

This module exports all data model classes used throughout PolicyCraft.
Models are implemented as dataclasses with full type annotations.
"""

from policycraft.models.approval import (
    ApprovalAction,
    ApprovalComment,
    ApprovalDecision,
    ApproverRole,
    Escalation,
    EscalationRule,
    NoResponseRule,
    NotificationSettings,
    PolicyApproval,
    RejectionCountRule,
    RequiredApprover,
    WorkflowDefinition,
)
from policycraft.models.framework import (
    ControlMapping,
    Document,
    ExtractionRule,
    FrameworkControl,
    FrameworkCoverage,
    FrameworkGap,
    FrameworkMappingResult,
    FrameworkRecommendation,
    FrameworkUpdate,
    GapPriority,
    MappingStatus,
    PolicyUpdateResult,
    RecommendationType,
    RuleType,
    UpdateStatus,
)
from policycraft.models.organization import (
    OrganizationProfile,
    OrganizationType,
    ProfileField,
)
from policycraft.models.policy import (
    ChangeType,
    ClauseSelectionRule,
    Equals,
    GreaterThan,
    In,
    LessThan,
    Policy,
    PolicyClause,
    PolicyDiff,
    PolicyStatus,
    PolicyTemplate,
    RiskLevel,
)

__all__ = [
    # Organization
    "OrganizationProfile",
    "OrganizationType",
    "ProfileField",
    # Policy
    "ChangeType",
    "ClauseSelectionRule",
    "Equals",
    "In",
    "LessThan",
    "GreaterThan",
    "Policy",
    "PolicyClause",
    "PolicyDiff",
    "PolicyStatus",
    "PolicyTemplate",
    "RiskLevel",
    # Approval
    "ApprovalAction",
    "ApprovalComment",
    "ApprovalDecision",
    "ApproverRole",
    "Escalation",
    "EscalationRule",
    "NoResponseRule",
    "NotificationSettings",
    "PolicyApproval",
    "RejectionCountRule",
    "RequiredApprover",
    "WorkflowDefinition",
    # Framework
    "ControlMapping",
    "Document",
    "ExtractionRule",
    "FrameworkControl",
    "FrameworkCoverage",
    "FrameworkGap",
    "FrameworkMappingResult",
    "FrameworkRecommendation",
    "FrameworkUpdate",
    "GapPriority",
    "MappingStatus",
    "PolicyUpdateResult",
    "RecommendationType",
    "RuleType",
    "UpdateStatus",
]
