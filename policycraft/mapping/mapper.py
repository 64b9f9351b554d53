"""
Control mapping for PolicyCraft.

The ControlMapper turns extraction-rule scores into a confidence-scored
ControlMapping per catalog control, with an implementation status,
evidence, per-requirement gaps and follow-up recommendations.
"""

import logging

from policycraft.config.schema import MappingConfig
from policycraft.library.reference import ControlCatalog
from policycraft.mapping.rules import RuleEvaluator
from policycraft.models.framework import (
    ControlMapping,
    Document,
    FrameworkControl,
    MappingStatus,
)

logger = logging.getLogger("policycraft.mapping.mapper")

BASIC_MATCH_EVIDENCE = "Basic keyword match"
MIN_KEYWORD_LENGTH = 4
REQUIREMENT_PREFIX_LENGTH = 20


class ControlMapper:
    """
    Maps documents onto the controls of a catalog.

    For a control with extraction rules, confidence is the mean of
    ``score * weight`` over the rules that scored above zero. A control
    without rules falls back to keyword overlap with its title,
    description and requirements. Confidence is clamped to [0, 1].

    Example:
        Mapping a document onto one framework::

            mapper = ControlMapper(catalog)
            mappings = mapper.map_framework(document, "NIST_AI_RMF")
    """

    def __init__(
        self,
        catalog: ControlCatalog,
        config: MappingConfig | None = None,
        evaluator: RuleEvaluator | None = None,
    ) -> None:
        """
        Initialize the mapper.

        Args:
            catalog: Control catalog with extraction rules.
            config: Mapping thresholds.
            evaluator: Rule evaluator; one built from config if None.
        """
        self._catalog = catalog
        self._config = config or MappingConfig()
        self._evaluator = evaluator or RuleEvaluator(self._config)

    def map_framework(self, document: Document, framework_id: str) -> list[ControlMapping]:
        """
        Map a document onto every control of a framework.

        Only mappings with confidence above the inclusion threshold are
        returned.
        """
        content = document.text.lower()
        retained: list[ControlMapping] = []
        for control in self._catalog.controls(framework_id):
            mapping = self.map_control(document.id, content, control)
            if mapping.confidence > self._config.inclusion_threshold:
                retained.append(mapping)
            else:
                logger.debug(
                    f"Dropped {framework_id}/{control.id} at confidence {mapping.confidence:.3f}"
                )
        return retained

    def map_control(
        self, document_id: str, content: str, control: FrameworkControl
    ) -> ControlMapping:
        """
        Evaluate one control against document text.

        Args:
            document_id: Id recorded on the mapping.
            content: Document text.
            control: The control to evaluate.

        Returns:
            The mapping, whatever its confidence.
        """
        content = content.lower()
        rules = self._catalog.rules_for(control.framework, control.id)
        evidence: list[str] = []
        total = 0.0
        matched = 0

        if rules:
            for rule in rules:
                score = self._evaluator.evaluate(content, rule)
                if score > 0:
                    total += score * rule.weight
                    matched += 1
                    evidence.append(f"Found: {rule.pattern}")
        else:
            total = basic_keyword_score(content, control)
            if total > 0:
                matched = 1
                evidence.append(BASIC_MATCH_EVIDENCE)

        confidence = min(max(total / matched, 0.0), 1.0) if matched else 0.0

        return ControlMapping(
            document_id=document_id,
            framework=control.framework,
            control_id=control.id,
            confidence=confidence,
            status=self.status_for(confidence),
            evidence=tuple(evidence),
            gaps=tuple(requirement_gaps(control, evidence)),
            recommendations=tuple(control_recommendations(control, confidence)),
        )

    def status_for(self, confidence: float) -> MappingStatus:
        """Implementation status for a confidence value."""
        if confidence >= self._config.implemented_threshold:
            return MappingStatus.IMPLEMENTED
        if confidence >= self._config.partial_threshold:
            return MappingStatus.PARTIALLY_IMPLEMENTED
        if confidence >= self._config.planned_threshold:
            return MappingStatus.PLANNED
        return MappingStatus.NOT_IMPLEMENTED


def basic_keyword_score(content: str, control: FrameworkControl) -> float:
    """Fraction of the control's distinct longer words found in the content."""
    words = " ".join(
        [control.title, control.description, " ".join(control.requirements)]
    ).lower().split()
    keywords = list(dict.fromkeys(w for w in words if len(w) >= MIN_KEYWORD_LENGTH))
    if not keywords:
        return 0.0
    return sum(1 for k in keywords if k in content) / len(keywords)


def requirement_gaps(control: FrameworkControl, evidence: list[str]) -> list[str]:
    """Requirements that no evidence string mentions."""
    gaps = []
    for requirement in control.requirements:
        prefix = requirement.lower()[:REQUIREMENT_PREFIX_LENGTH]
        if not any(prefix in e.lower() for e in evidence):
            gaps.append(f"Missing evidence for: {requirement}")
    return gaps


def control_recommendations(control: FrameworkControl, confidence: float) -> list[str]:
    """Follow-ups for a mapped control."""
    recommendations = []
    if confidence < 0.5:
        recommendations.append(f"Develop policy documentation for {control.title}")
    if confidence < 0.7:
        recommendations.append(f"Implement missing requirements for {control.id}")
    if control.requirements:
        recommendations.append(f"Ensure evidence collection for {control.title}")
    return recommendations
