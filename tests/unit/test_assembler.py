"""
Unit tests for PolicyCraft policy assembly.
"""

import pytest

from policycraft.engine.assembler import (
    PolicyAssembler,
    extract_placeholders,
    interpolate,
    resolve_conditionals,
)
from policycraft.engine.selector import ClauseSelector
from policycraft.exceptions import LEGAL_DISCLAIMER, ValidationError
from policycraft.library.reference import ReferenceLibrary
from policycraft.models.organization import OrganizationProfile, OrganizationType
from policycraft.models.policy import PolicyClause, PolicyTemplate


def assemble(library: ReferenceLibrary, template_id: str, profile: OrganizationProfile):
    """Select and assemble a template from the packaged library."""
    template = library.get_template(template_id)
    clauses = ClauseSelector(library).select(template, profile)
    return PolicyAssembler().assemble(template, clauses, profile)


class TestInterpolation:
    """Tests for placeholder and conditional block handling."""

    def test_conditional_kept_for_matching_type(self) -> None:
        """Test blocks for the organization type are kept."""
        profile = OrganizationProfile(organization_type=OrganizationType.K12)
        text = "a{{#if_k12}} k12{{/if_k12}}{{#if_highered}} uni{{/if_highered}}"
        assert resolve_conditionals(text, profile) == "a k12"

    def test_conditional_dropped_without_type(self) -> None:
        """Test every block is dropped when the type is unknown."""
        text = "a{{#if_k12}} k12{{/if_k12}}"
        assert resolve_conditionals(text, OrganizationProfile()) == "a"

    def test_default_organization_values(self) -> None:
        """Test missing profile values fall back to neutral defaults."""
        text = "{{organization_name}} is an {{organization_type}}"
        assert interpolate(text, OrganizationProfile()) == (
            "[Organization Name] is an Educational Institution"
        )

    def test_unknown_placeholders_left(self) -> None:
        """Test placeholders the profile cannot supply stay in the text."""
        profile = OrganizationProfile(organization_name="Acme")
        assert interpolate("{{organization_name}} {{owner}}", profile) == "Acme {{owner}}"

    def test_extract_placeholders_in_order(self) -> None:
        """Test placeholders are listed once, in order of first appearance."""
        assert extract_placeholders("{{b}} {{a}} {{ b }}") == ["b", "a"]


class TestPolicyAssembler:
    """Tests for PolicyAssembler."""

    def test_disclaimer_first(
        self, library: ReferenceLibrary, k12_profile: OrganizationProfile
    ) -> None:
        """Test the legal disclaimer opens every policy."""
        assembled = assemble(library, "ai-acceptable-use", k12_profile)
        assert assembled.content.startswith(LEGAL_DISCLAIMER)
        assert assembled.content.count("IMPORTANT LEGAL NOTICE") == 1

    def test_title_and_name_interpolated(
        self, library: ReferenceLibrary, k12_profile: OrganizationProfile
    ) -> None:
        """Test the organization name is substituted everywhere."""
        assembled = assemble(library, "ai-acceptable-use", k12_profile)
        assert assembled.title == "Springfield USD Artificial Intelligence Acceptable Use Policy"
        assert "{{organization_name}}" not in assembled.content
        assert "within Springfield USD." in assembled.content

    def test_k12_content(
        self, library: ReferenceLibrary, k12_profile: OrganizationProfile
    ) -> None:
        """Test K12 blocks and clauses appear and others do not."""
        assembled = assemble(library, "ai-acceptable-use", k12_profile)
        assert "Children's Online Privacy Protection" in assembled.content
        assert "pre-approved by the Privacy Officer" in assembled.content
        assert "age-appropriate instruction" in assembled.content
        assert "Faculty define in each syllabus" not in assembled.content
        assert "{{#if_k12}}" not in assembled.content
        assert "{{academic-integrity-clause}}" not in assembled.content

    def test_fillable_fields(
        self, library: ReferenceLibrary, k12_profile: OrganizationProfile
    ) -> None:
        """Test unresolved placeholders become fillable fields."""
        assembled = assemble(library, "ai-acceptable-use", k12_profile)
        assert assembled.fillable_fields == {"policy_owner": "", "effective_date": ""}
        assert "{{policy_owner}}" in assembled.content

    def test_state_placeholder(self, library: ReferenceLibrary) -> None:
        """Test the state is substituted when known and fillable otherwise."""
        with_state = assemble(
            library,
            "data-privacy",
            OrganizationProfile(organization_type=OrganizationType.K12, state="TX"),
        )
        assert "TX law" in with_state.content
        assert "state" not in with_state.fillable_fields

        without_state = assemble(
            library, "data-privacy", OrganizationProfile(organization_type=OrganizationType.K12)
        )
        assert "state" in without_state.fillable_fields

    def test_deterministic(
        self, library: ReferenceLibrary, k12_profile: OrganizationProfile
    ) -> None:
        """Test identical inputs produce identical bytes."""
        first = assemble(library, "ai-acceptable-use", k12_profile)
        second = assemble(library, "ai-acceptable-use", k12_profile)
        assert first.content == second.content
        assert first.clause_ids == second.clause_ids

    def test_no_excess_blank_lines(
        self, library: ReferenceLibrary, highered_profile: OrganizationProfile
    ) -> None:
        """Test removed placeholders do not leave runs of blank lines."""
        assembled = assemble(library, "ai-acceptable-use", highered_profile)
        body = assembled.content[len(LEGAL_DISCLAIMER):]
        assert "\n\n\n" not in body
        assert body.endswith("\n")

    def test_unplaced_clause_appended(self) -> None:
        """Test a clause without a placeholder is appended under its title."""
        template = PolicyTemplate(
            id="t",
            title="Policy",
            content="## Scope\n{{a}}\n",
            available_clauses=("a", "b"),
        )
        clauses = [
            PolicyClause(id="a", title="A", content="Alpha."),
            PolicyClause(id="b", title="Bravo Terms", content="Bravo."),
        ]
        assembled = PolicyAssembler().assemble(template, clauses, OrganizationProfile())
        body = assembled.content[len(LEGAL_DISCLAIMER):]
        assert body == "## Scope\nAlpha.\n\n### Bravo Terms\n\nBravo.\n"


class TestFill:
    """Tests for PolicyAssembler.fill."""

    def test_fill_values(self) -> None:
        """Test supplied values replace their placeholders."""
        content = "Owner: {{policy_owner}}. Date: {{effective_date}}."
        filled = PolicyAssembler().fill(content, {"policy_owner": "CIO"})
        assert filled == "Owner: CIO. Date: {{effective_date}}."

    def test_empty_value_rejected(self) -> None:
        """Test an empty value for a required placeholder is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            PolicyAssembler().fill("{{policy_owner}}", {"policy_owner": "  "})
        assert exc_info.value.message == "Unresolved required placeholder"

    def test_unknown_placeholder_rejected(self) -> None:
        """Test values for absent placeholders are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            PolicyAssembler().fill("{{policy_owner}}", {"budget_owner": "CFO"})
        assert exc_info.value.details["fields"] == ["budget_owner"]
