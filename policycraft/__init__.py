"""
PolicyCraft: AI governance policy generation and framework mapping.

PolicyCraft assembles AI governance policies from a clause library, tracks
section-level redlines between policy revisions, drives policies through a
multi-role approval workflow, and maps free-text documents onto external
compliance-control catalogs with confidence-scored evidence.

Example:
    Generating a policy for a K-12 district::

        from policycraft.engine import PolicyEngine
        from policycraft.models import OrganizationProfile, OrganizationType

        engine = PolicyEngine.from_defaults()
        profile = OrganizationProfile(
            organization_name="Springfield USD",
            organization_type=OrganizationType.K12,
            student_age_min=5,
        )
        policy = engine.generate_policy("ai-acceptable-use", profile)
        print(policy.content)

Public API:
    Version:
        __version__: The package version string

    Exceptions:
        PolicyCraftError: Base exception for all PolicyCraft errors
        ConfigurationError: Configuration-related errors
        TemplateNotFoundError: Unknown policy template
        NoApprovalWorkflowDefinedError: Template without a workflow definition
        ValidationError: Recoverable input validation errors
        RevisionConflictError: Stale revision on save
        CyclicDependencyError: Cycle among clause dependencies
        NotFoundError: Unknown policy, approval or clause
        MappingError: Unusable document for framework mapping

    Disclaimer:
        LEGAL_DISCLAIMER: Banner carried by every generated policy
"""

from policycraft.exceptions import (
    LEGAL_DISCLAIMER,
    ConfigurationError,
    CyclicDependencyError,
    MappingError,
    NoApprovalWorkflowDefinedError,
    NotFoundError,
    PolicyCraftError,
    RevisionConflictError,
    TemplateNotFoundError,
    ValidationError,
)
from policycraft.version import __version__

__all__ = [
    # Version
    "__version__",
    # Disclaimer
    "LEGAL_DISCLAIMER",
    # Exceptions
    "PolicyCraftError",
    "ConfigurationError",
    "TemplateNotFoundError",
    "NoApprovalWorkflowDefinedError",
    "ValidationError",
    "RevisionConflictError",
    "CyclicDependencyError",
    "NotFoundError",
    "MappingError",
]
