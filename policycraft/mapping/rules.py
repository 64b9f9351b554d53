"""
Extraction rule evaluation for PolicyCraft.

Each ExtractionRule scores how strongly a document's text evidences a
control, as a value in [0, 1]. Rule patterns come from catalog files and
may be malformed; such a rule scores 0 instead of failing the mapping.
"""

import logging
import re
from dataclasses import dataclass

from policycraft.config.schema import MappingConfig
from policycraft.models.framework import ExtractionRule, RuleType

logger = logging.getLogger("policycraft.mapping.rules")


@dataclass(frozen=True)
class CompiledPattern:
    """
    Result of compiling an externally supplied regular expression.

    Exactly one of regex and error is set.

    Attributes:
        source: The pattern as written.
        regex: The compiled pattern on success.
        error: The compilation error message on failure.
    """

    source: str
    regex: re.Pattern[str] | None = None
    error: str | None = None

    @classmethod
    def compile(cls, pattern: str, flags: int = 0) -> "CompiledPattern":
        """Compile a pattern, capturing any error instead of raising."""
        try:
            return cls(source=pattern, regex=re.compile(pattern, flags))
        except (re.error, RecursionError) as e:
            return cls(source=pattern, error=str(e))

    @property
    def ok(self) -> bool:
        """Whether the pattern compiled."""
        return self.regex is not None

    def count(self, text: str) -> int:
        """Number of non-overlapping matches; 0 for a failed pattern."""
        if self.regex is None:
            return 0
        return sum(1 for _ in self.regex.finditer(text))

    def search(self, text: str) -> bool:
        """Whether the pattern matches anywhere; False for a failed pattern."""
        return self.regex is not None and self.regex.search(text) is not None


def header_pattern(pattern: str) -> str:
    """Regex matching a level one to three markdown header containing pattern."""
    return rf"^#{{1,3}}\s+.*(?:{pattern}).*$"


class RuleEvaluator:
    """
    Scores document text against extraction rules.

    Scoring by rule type:

    - keyword: fraction of the pipe-separated keywords found in the text.
    - pattern: regex match count divided by the saturation count, capped
      at 1.
    - section_header: 1 if a markdown header line contains the pattern.
    - semantic: fraction of the pattern's terms that appear as words in
      the text.

    A non-zero score is then reduced when none of the rule's context
    keywords is present, and reduced further when any exclusion keyword
    is present. All matching is case-insensitive.
    """

    def __init__(self, config: MappingConfig | None = None) -> None:
        """
        Initialize the evaluator.

        Args:
            config: Mapping configuration holding saturation and factors.
        """
        self._config = config or MappingConfig()

    def evaluate(self, text: str, rule: ExtractionRule) -> float:
        """
        Score text against one rule.

        Args:
            text: Document text.
            rule: The extraction rule.

        Returns:
            A score in [0, 1].
        """
        content = text.lower()
        if rule.rule_type == RuleType.KEYWORD:
            score = self._keyword_score(content, rule.pattern)
        elif rule.rule_type == RuleType.PATTERN:
            score = self._pattern_score(content, rule)
        elif rule.rule_type == RuleType.SECTION_HEADER:
            score = self._header_score(content, rule)
        else:
            score = semantic_overlap(content, rule.pattern)

        if score > 0:
            if rule.context and not any(c.lower() in content for c in rule.context):
                score *= self._config.missing_context_factor
            if rule.exclusions and any(x.lower() in content for x in rule.exclusions):
                score *= self._config.exclusion_factor

        logger.debug(f"Rule {rule.id} ({rule.rule_type.value}) scored {score:.3f}")
        return score

    def _keyword_score(self, content: str, pattern: str) -> float:
        keywords = [k.strip().lower() for k in pattern.split("|") if k.strip()]
        if not keywords:
            return 0.0
        return sum(1 for k in keywords if k in content) / len(keywords)

    def _pattern_score(self, content: str, rule: ExtractionRule) -> float:
        compiled = self._compile(rule, rule.pattern, re.IGNORECASE)
        matches = compiled.count(content)
        return min(matches / self._config.pattern_match_saturation, 1.0)

    def _header_score(self, content: str, rule: ExtractionRule) -> float:
        compiled = self._compile(
            rule, header_pattern(rule.pattern), re.IGNORECASE | re.MULTILINE
        )
        return 1.0 if compiled.search(content) else 0.0

    def _compile(self, rule: ExtractionRule, pattern: str, flags: int) -> CompiledPattern:
        compiled = CompiledPattern.compile(pattern, flags)
        if not compiled.ok:
            logger.warning(
                f"Malformed pattern in extraction rule {rule.id}: {compiled.error}"
            )
        return compiled


def semantic_overlap(content: str, pattern: str) -> float:
    """Fraction of the pattern's terms present as words of the content."""
    terms = pattern.lower().split()
    if not terms:
        return 0.0
    words = set(content.lower().split())
    return sum(1 for t in terms if t in words) / len(terms)
