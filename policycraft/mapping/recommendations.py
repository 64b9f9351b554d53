"""
Recommendation generation for PolicyCraft.

Gaps are grouped by framework. A framework with critical gaps gets an
immediate-action recommendation; one with high-priority gaps gets a
policy-update recommendation. Effort and timeline follow from gap counts.
"""

from policycraft.models.framework import (
    FrameworkGap,
    FrameworkRecommendation,
    GapPriority,
    RecommendationType,
)


def estimate_effort(gap_count: int) -> str:
    """Effort estimate for a number of gaps."""
    if gap_count >= 5:
        return "High"
    if gap_count >= 2:
        return "Medium"
    return "Low"


def estimate_timeline(recommendation_type: RecommendationType, gap_count: int) -> str:
    """Suggested timeline for a recommendation."""
    if recommendation_type == RecommendationType.IMMEDIATE_ACTION:
        return "30 days" if gap_count <= 2 else "60 days"
    return "60 days" if gap_count <= 3 else "90 days"


class RecommendationGenerator:
    """Turns prioritized gaps into framework-grouped recommendations."""

    def generate(self, gaps: list[FrameworkGap]) -> list[FrameworkRecommendation]:
        """
        Build recommendations from a gap list.

        Frameworks appear in order of their first gap.

        Args:
            gaps: Gaps, typically sorted by priority.

        Returns:
            Recommendations, immediate action before policy update within
            each framework.
        """
        by_framework: dict[str, list[FrameworkGap]] = {}
        for gap in gaps:
            by_framework.setdefault(gap.framework, []).append(gap)

        recommendations: list[FrameworkRecommendation] = []
        for framework, framework_gaps in by_framework.items():
            critical = [g for g in framework_gaps if g.priority == GapPriority.CRITICAL]
            high = [g for g in framework_gaps if g.priority == GapPriority.HIGH]

            if critical:
                kind = RecommendationType.IMMEDIATE_ACTION
                recommendations.append(
                    FrameworkRecommendation(
                        id=f"{framework}-{kind.value}",
                        framework=framework,
                        recommendation_type=kind,
                        priority=GapPriority.CRITICAL,
                        title=f"Address Critical {framework} Compliance Gaps",
                        description=(
                            f"{len(critical)} critical controls require immediate "
                            f"attention, starting with {critical[0].title}"
                        ),
                        action_items=tuple(f"Implement {g.title}" for g in critical),
                        effort=estimate_effort(len(critical)),
                        timeline=estimate_timeline(kind, len(critical)),
                        impact="Regulatory compliance and risk reduction",
                    )
                )

            if high:
                kind = RecommendationType.POLICY_UPDATE
                recommendations.append(
                    FrameworkRecommendation(
                        id=f"{framework}-{kind.value}",
                        framework=framework,
                        recommendation_type=kind,
                        priority=GapPriority.HIGH,
                        title=f"Update Policies for {framework} Compliance",
                        description=(
                            f"{len(high)} high-priority controls need policy documentation"
                        ),
                        action_items=tuple(f"Document {g.title}" for g in high),
                        effort=estimate_effort(len(high)),
                        timeline=estimate_timeline(kind, len(high)),
                        impact="Improved compliance posture",
                    )
                )

        return recommendations
