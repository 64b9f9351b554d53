"""
Framework control mapping for PolicyCraft.

Scores documents against compliance-control catalogs and reports
coverage, prioritized gaps and recommendations.
"""

from policycraft.mapping.coverage import CoverageAnalyzer, gap_priority
from policycraft.mapping.framework_mapper import FrameworkMapper
from policycraft.mapping.mapper import ControlMapper
from policycraft.mapping.recommendations import RecommendationGenerator
from policycraft.mapping.rules import CompiledPattern, RuleEvaluator

__all__ = [
    "CompiledPattern",
    "ControlMapper",
    "CoverageAnalyzer",
    "FrameworkMapper",
    "RecommendationGenerator",
    "RuleEvaluator",
    "gap_priority",
]
