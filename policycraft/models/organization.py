"""
Organization profile models for PolicyCraft.

An OrganizationProfile is supplied by an external intake or assessment
workflow. Clause selection rules are evaluated against it through the
closed ProfileField enumeration rather than free-form attribute names.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from policycraft.exceptions import ValidationError
from policycraft.models.base import model_to_dict


class OrganizationType(Enum):
    """
    Enumeration of organization types that policies are generated for.

    The value doubles as the suffix of conditional template blocks, so
    ``{{#if_k12}}...{{/if_k12}}`` is kept only for K12 organizations.
    """

    K12 = "K12"
    """Primary and secondary school districts."""

    HIGHER_ED = "HigherEd"
    """Colleges and universities."""

    NONPROFIT = "Nonprofit"
    """Non-profit organizations."""

    GOVERNMENT = "Government"
    """Public agencies."""

    CORPORATE = "Corporate"
    """Private companies."""


class ProfileField(Enum):
    """
    Fields of an OrganizationProfile that selection rules may test.
    """

    ORGANIZATION_NAME = "organization_name"
    ORGANIZATION_TYPE = "organization_type"
    STATE = "state"
    STUDENT_AGE_MIN = "student_age_min"
    STUDENT_AGE_MAX = "student_age_max"
    HAS_PRIVACY_OFFICER = "has_privacy_officer"
    STUDENT_COUNT = "student_count"


@dataclass(frozen=True)
class OrganizationProfile:
    """
    Describes the organization a policy is generated for.

    Attributes:
        organization_name: Display name interpolated into policy text.
        organization_type: Kind of organization; drives clause selection and
            conditional template blocks.
        state: Two-letter state code of the organization's primary
            jurisdiction, if known.
        student_age_min: Youngest student age served, if applicable.
        student_age_max: Oldest student age served, if applicable.
        has_privacy_officer: Whether a designated privacy officer exists.
        student_count: Approximate number of students served.
    """

    organization_name: str | None = None
    organization_type: OrganizationType | None = None
    state: str | None = None
    student_age_min: int | None = None
    student_age_max: int | None = None
    has_privacy_officer: bool = False
    student_count: int | None = None

    def get(self, profile_field: ProfileField) -> Any:
        """
        Return the value of a profile field for rule evaluation.

        Enum-valued fields are returned as their string value so rules can
        compare them against literals loaded from YAML.
        """
        value = getattr(self, profile_field.value)
        if isinstance(value, Enum):
            return value.value
        return value

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert the profile to a dictionary."""
        return model_to_dict(self, exclude_none)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrganizationProfile":
        """
        Create a profile from a dictionary such as a request body.

        Both snake_case keys and the camelCase keys used by intake forms
        (``organizationName``, ``studentAgeMin``) are accepted.

        Raises:
            ValidationError: If the organization type is unknown or an age
                bound is not an integer.
        """
        aliases = {
            "organizationName": "organization_name",
            "organizationType": "organization_type",
            "studentAgeMin": "student_age_min",
            "studentAgeMax": "student_age_max",
            "hasPrivacyOfficer": "has_privacy_officer",
            "studentCount": "student_count",
        }
        normalized = {aliases.get(k, k): v for k, v in data.items()}
        known = {f.value for f in ProfileField}
        unknown = sorted(set(normalized) - known)
        if unknown:
            raise ValidationError(
                "Unknown organization profile fields",
                {"fields": unknown},
            )

        org_type = normalized.get("organization_type")
        if org_type is not None and not isinstance(org_type, OrganizationType):
            try:
                org_type = OrganizationType(org_type)
            except ValueError as e:
                raise ValidationError(
                    f"Unknown organization type: {org_type}",
                    {"allowed": [t.value for t in OrganizationType]},
                ) from e

        ints: dict[str, int | None] = {}
        for name in ("student_age_min", "student_age_max", "student_count"):
            raw = normalized.get(name)
            if raw is None:
                ints[name] = None
                continue
            try:
                ints[name] = int(raw)
            except (TypeError, ValueError) as e:
                raise ValidationError(
                    f"Profile field '{name}' must be an integer",
                    {"value": raw},
                ) from e

        has_officer = normalized.get("has_privacy_officer")
        if has_officer is None:
            has_officer = False
        elif not isinstance(has_officer, bool):
            raise ValidationError(
                "Profile field 'has_privacy_officer' must be a boolean",
                {"value": has_officer},
            )

        state = normalized.get("state")
        return cls(
            organization_name=normalized.get("organization_name"),
            organization_type=org_type,
            state=state.upper() if isinstance(state, str) else None,
            has_privacy_officer=has_officer,
            **ints,
        )
