"""
Framework mapping facade for PolicyCraft.

The FrameworkMapper maps a document onto every applicable framework of
the control catalog: the base frameworks (or those the document is tagged
with) plus the state regulations for the states the document applies to.
"""

import logging
from typing import Any

from policycraft.config.schema import MappingConfig, PolicyCraftConfig
from policycraft.exceptions import MappingError
from policycraft.library.loader import LibraryLoader
from policycraft.library.reference import ControlCatalog
from policycraft.mapping.coverage import CoverageAnalyzer
from policycraft.mapping.mapper import ControlMapper
from policycraft.mapping.recommendations import RecommendationGenerator
from policycraft.models.framework import ControlMapping, Document, FrameworkMappingResult

logger = logging.getLogger("policycraft.mapping")

FEDERAL = "Federal"


class FrameworkMapper:
    """
    Maps documents onto compliance frameworks.

    Example:
        Mapping a policy document::

            mapper = FrameworkMapper.from_defaults()
            result = mapper.map_document_to_frameworks(
                Document(id="doc-1", text=policy.content)
            )
            for gap in result.gaps:
                print(gap.priority.value, gap.title)
    """

    def __init__(self, catalog: ControlCatalog, config: MappingConfig | None = None) -> None:
        """
        Initialize the mapper.

        Args:
            catalog: Control catalog to map against.
            config: Mapping thresholds and scoring factors.
        """
        self.catalog = catalog
        self._config = config or MappingConfig()
        self._mapper = ControlMapper(catalog, self._config)
        self._analyzer = CoverageAnalyzer(catalog)
        self._recommender = RecommendationGenerator()

    @classmethod
    def from_config(cls, config: PolicyCraftConfig) -> "FrameworkMapper":
        """
        Create a mapper over the catalog named by the config.

        Raises:
            ConfigurationError: If the catalog file is invalid.
        """
        catalog = LibraryLoader().load_catalog(config.library.catalog_path or None)
        return cls(catalog, config.mapping)

    @classmethod
    def from_defaults(cls, catalog_path: str | None = None) -> "FrameworkMapper":
        """Create a mapper over the packaged (or given) catalog."""
        return cls(LibraryLoader().load_catalog(catalog_path))

    def detect_states(self, document: Document) -> list[str]:
        """
        States a document applies to.

        States whose indicator phrases appear in the text come first, in
        catalog order, followed by the document's own state tags.
        """
        content = document.text.lower()
        states = [
            state
            for state, phrases in self.catalog.state_indicators.items()
            if any(phrase in content for phrase in phrases)
        ]
        for state in document.state_tags:
            if state.upper() not in states:
                states.append(state.upper())
        return states

    def select_frameworks(self, document: Document, states: list[str]) -> list[str]:
        """
        Frameworks to evaluate for a document.

        Raises:
            MappingError: If the document is tagged with an unknown framework.
        """
        if document.framework_tags:
            unknown = [t for t in document.framework_tags if t not in self.catalog.frameworks]
            if unknown:
                raise MappingError(
                    "Document is tagged with unknown frameworks",
                    {"unknown": unknown, "available": list(self.catalog.frameworks)},
                )
            frameworks = [f for f in self.catalog.frameworks if f in document.framework_tags]
        else:
            frameworks = self.catalog.base_frameworks()

        for state in states:
            framework_id = self.catalog.state_framework(state)
            if framework_id and framework_id not in frameworks:
                frameworks.append(framework_id)
        return frameworks

    def map_document_to_frameworks(
        self, document: Document | dict[str, Any]
    ) -> FrameworkMappingResult:
        """
        Map a document onto every applicable framework.

        Args:
            document: The document, or its dictionary form.

        Returns:
            Mappings, per-framework coverage, prioritized gaps,
            recommendations and the overall confidence score.

        Raises:
            MappingError: If the document has no text or carries unknown
                framework tags.
        """
        if isinstance(document, dict):
            document = Document.from_dict(document)
        if not document.text or not document.text.strip():
            raise MappingError(
                "Document has no extracted text", {"document_id": document.id}
            )

        states = self.detect_states(document)
        frameworks = self.select_frameworks(document, states)

        mappings: list[ControlMapping] = []
        for framework_id in frameworks:
            mappings.extend(self._mapper.map_framework(document, framework_id))

        gaps = self._analyzer.gaps(mappings, frameworks)
        confidence = (
            sum(m.confidence for m in mappings) / len(mappings) if mappings else 0.0
        )

        result = FrameworkMappingResult(
            document_id=document.id,
            detected_states=tuple(states) or (FEDERAL,),
            mappings=tuple(mappings),
            coverage=self._analyzer.coverage(mappings, frameworks),
            gaps=tuple(gaps),
            recommendations=tuple(self._recommender.generate(gaps)),
            confidence_score=confidence,
        )
        logger.info(
            f"Mapped document {document.id} onto {len(frameworks)} frameworks: "
            f"{len(mappings)} mappings, {len(gaps)} gaps, confidence {confidence:.2f}"
        )
        return result
