"""
Unit tests for PolicyCraft clause selection and ordering.
"""

import pytest

from policycraft.engine.selector import ClauseSelector, order_clauses
from policycraft.exceptions import CyclicDependencyError
from policycraft.library.reference import ReferenceLibrary
from policycraft.models.organization import OrganizationProfile, OrganizationType
from policycraft.models.policy import PolicyClause


def clause(clause_id: str, priority: int = 100, deps: tuple[str, ...] = ()) -> PolicyClause:
    """Build a minimal clause."""
    return PolicyClause(
        id=clause_id,
        title=clause_id.title(),
        content=f"{clause_id} body",
        priority=priority,
        dependencies=deps,
    )


class TestClauseSelector:
    """Tests for ClauseSelector against the packaged library."""

    def test_k12_selection(
        self, library: ReferenceLibrary, k12_profile: OrganizationProfile
    ) -> None:
        """Test a K12 district under 13 gets COPPA but not academic integrity."""
        template = library.get_template("ai-acceptable-use")
        ids = [c.id for c in ClauseSelector(library).select(template, k12_profile)]

        assert "coppa-compliance-clause" in ids
        assert "academic-integrity-clause" not in ids
        assert ids == [
            "ai-definition-clause",
            "data-collection-clause",
            "coppa-compliance-clause",
            "prohibited-uses-clause",
            "data-privacy-clause",
            "ferpa-compliance-clause",
            "monitoring-clause",
            "training-requirements-clause",
        ]

    def test_highered_selection(
        self, library: ReferenceLibrary, highered_profile: OrganizationProfile
    ) -> None:
        """Test a university gets academic integrity but not COPPA."""
        template = library.get_template("ai-acceptable-use")
        ids = [c.id for c in ClauseSelector(library).select(template, highered_profile)]

        assert "academic-integrity-clause" in ids
        assert "coppa-compliance-clause" not in ids

    def test_older_students_skip_coppa(self, library: ReferenceLibrary) -> None:
        """Test COPPA is not selected when the youngest student is 13 or older."""
        profile = OrganizationProfile(
            organization_type=OrganizationType.K12, student_age_min=13
        )
        template = library.get_template("ai-acceptable-use")
        ids = [c.id for c in ClauseSelector(library).select(template, profile)]
        assert "coppa-compliance-clause" not in ids

    def test_corporate_selection(self, library: ReferenceLibrary) -> None:
        """Test education-only clauses are excluded for other organizations."""
        profile = OrganizationProfile(organization_type=OrganizationType.CORPORATE)
        template = library.get_template("ai-acceptable-use")
        ids = [c.id for c in ClauseSelector(library).select(template, profile)]

        assert "ai-definition-clause" not in ids
        assert "ferpa-compliance-clause" not in ids
        assert "monitoring-clause" in ids

    def test_dependencies_precede_dependents(
        self, library: ReferenceLibrary, k12_profile: OrganizationProfile
    ) -> None:
        """Test every selected dependency is placed before its dependent."""
        template = library.get_template("ai-acceptable-use")
        selected = ClauseSelector(library).select(template, k12_profile)
        position = {c.id: i for i, c in enumerate(selected)}

        for c in selected:
            for dep in c.dependencies:
                if dep in position:
                    assert position[dep] < position[c.id]


class TestOrderClauses:
    """Tests for order_clauses."""

    def test_orders_by_priority(self) -> None:
        """Test clauses without dependencies sort by priority."""
        ordered = order_clauses([clause("c", 3), clause("a", 1), clause("b", 2)])
        assert [c.id for c in ordered] == ["a", "b", "c"]

    def test_ties_keep_input_order(self) -> None:
        """Test equal priorities keep the given order."""
        ordered = order_clauses([clause("y", 1), clause("x", 1)])
        assert [c.id for c in ordered] == ["y", "x"]

    def test_dependency_overrides_priority(self) -> None:
        """Test a dependency is placed first even with a higher priority value."""
        ordered = order_clauses([clause("a", 1, deps=("b",)), clause("b", 9)])
        assert [c.id for c in ordered] == ["b", "a"]

    def test_unselected_dependencies_ignored(self) -> None:
        """Test dependencies outside the selection do not block placement."""
        ordered = order_clauses([clause("a", 1, deps=("missing",))])
        assert [c.id for c in ordered] == ["a"]

    def test_cycle_detected(self) -> None:
        """Test a dependency cycle raises CyclicDependencyError."""
        clauses = [
            clause("a", deps=("b",)),
            clause("b", deps=("c",)),
            clause("c", deps=("a",)),
            clause("d"),
        ]
        with pytest.raises(CyclicDependencyError) as exc_info:
            order_clauses(clauses)

        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}
        assert "d" not in exc_info.value.details["cycle"]

    def test_self_dependency(self) -> None:
        """Test a clause depending on itself is a cycle."""
        with pytest.raises(CyclicDependencyError):
            order_clauses([clause("a", deps=("a",))])
