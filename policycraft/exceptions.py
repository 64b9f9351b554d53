"""
Exception classes for PolicyCraft.

This module defines the exception hierarchy used throughout PolicyCraft.
All custom exceptions inherit from PolicyCraftError to allow for easy
catching of any PolicyCraft-specific exception.

It also holds the standing legal disclaimer. Every generated policy
document carries LEGAL_DISCLAIMER at the front of its content, and every
error surfaced to an end user is wrapped with it via error_response().
"""

from typing import Any

LEGAL_DISCLAIMER = (
    "**IMPORTANT LEGAL NOTICE**\n"
    "This document is a policy template generated by automated systems and AI tools. \n"
    "It is NOT legal advice and should be reviewed by qualified legal counsel before \n"
    "implementation. The organization assumes full responsibility for compliance with \n"
    "applicable laws and regulations.\n"
    "\n"
    "---\n"
    "\n"
)

SHORT_DISCLAIMER = (
    "PolicyCraft provides automated assistance only. "
    "Its output is not legal advice and must be reviewed by qualified legal counsel."
)


class PolicyCraftError(Exception):
    """
    Base exception for all PolicyCraft errors.

    All custom exceptions in PolicyCraft inherit from this class,
    allowing callers to catch any PolicyCraft-specific exception
    with a single except clause.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class ConfigurationError(PolicyCraftError):
    """
    Raised when there is an error in PolicyCraft configuration.

    Configuration errors are fatal to the single request that triggered
    them. They cover both the configuration files themselves and the
    reference data a request depends on.

    Examples:
        - Invalid YAML syntax in configuration
        - Configuration value out of allowed range
        - Malformed clause library or control catalog file
    """

    pass


class TemplateNotFoundError(ConfigurationError):
    """
    Raised when a policy is requested from an unknown template id.

    Examples:
        - generate_policy("no-such-template", profile)
    """

    pass


class NoApprovalWorkflowDefinedError(ConfigurationError):
    """
    Raised when an approval workflow is initiated for a template that has
    no registered workflow definition.

    Examples:
        - Initiating approval for a policy built from a custom template
          that was loaded without an accompanying workflow
    """

    pass


class ValidationError(PolicyCraftError):
    """
    Raised when validation of input data fails.

    Validation errors are recoverable: the request is rejected with a
    descriptive message and no state is changed.

    Examples:
        - Empty clause body on save
        - Unresolved required placeholder
        - Approval action for an already-rejected policy
        - Unknown approval action value
        - Approval out of order in an ordered workflow
    """

    pass


class RevisionConflictError(ValidationError):
    """
    Raised when a save is attempted against a stale revision.

    Clause and approval records carry a monotonically increasing revision
    counter. A save whose base revision does not match the current one is
    rejected rather than silently overwriting a concurrent edit.

    Attributes:
        expected: The revision the caller based its edit on.
        actual: The current revision of the record.
    """

    def __init__(
        self,
        message: str,
        expected: int,
        actual: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        merged = {"expected_revision": expected, "current_revision": actual}
        merged.update(details or {})
        super().__init__(message, merged)
        self.expected = expected
        self.actual = actual


class CyclicDependencyError(PolicyCraftError):
    """
    Raised when selected clauses depend on each other in a cycle.

    Attributes:
        cycle: Clause ids participating in the cycle, in dependency order.
    """

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(
            f"Cyclic clause dependency: {' -> '.join(cycle)}",
            {"cycle": cycle},
        )
        self.cycle = cycle


class NotFoundError(PolicyCraftError):
    """
    Raised when a referenced record does not exist.

    Examples:
        - Unknown policy id
        - Approval id that does not belong to the policy
        - Unknown clause id in the clause store
    """

    pass


class MappingError(PolicyCraftError):
    """
    Raised when a document cannot be mapped onto frameworks.

    Malformed extraction rules never raise this error; they degrade to a
    zero score for the affected rule only.

    Examples:
        - Document without extracted text
        - Unknown framework tag on the document
    """

    pass


def error_response(
    error: Exception,
    request_id: str | None = None,
) -> dict[str, Any]:
    """
    Build the caller-facing error payload for an exception.

    The payload always includes the standing disclaimer.

    Args:
        error: The exception to describe.
        request_id: Optional request identifier for correlation.

    Returns:
        Dictionary with an "error" object and a "disclaimer" string.
    """
    if isinstance(error, PolicyCraftError):
        body: dict[str, Any] = {
            "type": type(error).__name__,
            "message": error.message,
            "details": error.details,
        }
    else:
        body = {
            "type": "InternalError",
            "message": "An internal error occurred",
            "details": {},
        }
    if request_id is not None:
        body["request_id"] = request_id
    return {"error": body, "disclaimer": SHORT_DISCLAIMER}
