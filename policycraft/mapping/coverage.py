"""
Coverage and gap analysis for PolicyCraft.
"""

from policycraft.library.reference import ControlCatalog
from policycraft.models.framework import (
    ControlMapping,
    FrameworkControl,
    FrameworkCoverage,
    FrameworkGap,
    GapPriority,
    MappingStatus,
)

IMPLEMENTED_STATUSES = (MappingStatus.IMPLEMENTED, MappingStatus.PARTIALLY_IMPLEMENTED)

CRITICAL_KEYWORDS = ("privacy", "security")
HIGH_KEYWORDS = ("risk", "governance")


def gap_priority(control: FrameworkControl) -> GapPriority:
    """Heuristic priority of an unmapped control, from its title."""
    title = control.title.lower()
    if any(k in title for k in CRITICAL_KEYWORDS):
        return GapPriority.CRITICAL
    if any(k in title for k in HIGH_KEYWORDS):
        return GapPriority.HIGH
    return GapPriority.MEDIUM


class CoverageAnalyzer:
    """
    Rolls control mappings up into per-framework coverage and gaps.

    Example:
        Analyzing mappings::

            analyzer = CoverageAnalyzer(catalog)
            coverage = analyzer.coverage(mappings, ["NIST_AI_RMF"])
            gaps = analyzer.gaps(mappings, ["NIST_AI_RMF"])
    """

    def __init__(self, catalog: ControlCatalog) -> None:
        self._catalog = catalog

    def coverage(
        self, mappings: list[ControlMapping], frameworks: list[str]
    ) -> dict[str, FrameworkCoverage]:
        """
        Coverage of each framework.

        Frameworks without any mapping are reported with zero coverage.

        Args:
            mappings: Retained mappings.
            frameworks: Frameworks that were evaluated.
        """
        result: dict[str, FrameworkCoverage] = {}
        for framework in frameworks:
            total = len(self._catalog.controls(framework))
            mapped = [m for m in mappings if m.framework == framework]
            implemented = [m for m in mapped if m.status in IMPLEMENTED_STATUSES]
            average = sum(m.confidence for m in mapped) / len(mapped) if mapped else 0.0
            result[framework] = FrameworkCoverage(
                framework=framework,
                total_controls=total,
                mapped_controls=len(mapped),
                implemented_controls=len(implemented),
                coverage_percentage=len(mapped) / total * 100 if total else 0.0,
                implementation_percentage=len(implemented) / total * 100 if total else 0.0,
                average_confidence=average,
            )
        return result

    def gaps(
        self, mappings: list[ControlMapping], frameworks: list[str]
    ) -> list[FrameworkGap]:
        """
        Controls of the evaluated frameworks that have no mapping.

        Sorted by descending priority weight; ties keep catalog order.
        """
        mapped = {(m.framework, m.control_id) for m in mappings}
        gaps: list[FrameworkGap] = []
        for framework in frameworks:
            for control in self._catalog.controls(framework):
                if (framework, control.id) in mapped:
                    continue
                priority = gap_priority(control)
                gaps.append(
                    FrameworkGap(
                        framework=framework,
                        control_id=control.id,
                        title=control.title,
                        priority=priority,
                        description=f"Missing implementation evidence for {control.title}",
                        risk_level=priority,
                        recommendations=(
                            f"Review and implement {control.title}",
                            "Document implementation evidence",
                            f"Assign responsible party for {control.id}",
                        ),
                    )
                )
        return sorted(gaps, key=lambda g: g.priority.weight, reverse=True)
