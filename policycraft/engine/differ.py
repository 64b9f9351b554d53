"""
Section-level redlining for PolicyCraft.

Policy content is split into sections at level-two markdown headers
(``## Title``). Each section runs from its header line up to the next
header, so concatenating the sections reproduces the document exactly.
Text before the first header forms a preamble section. Two revisions are
compared section by section and every difference becomes a classified
PolicyDiff; diffs can be replayed onto the original to rebuild the
revision.
"""

import logging
import re
from dataclasses import dataclass

from policycraft.exceptions import ValidationError
from policycraft.models.policy import ChangeType, PolicyDiff

logger = logging.getLogger("policycraft.engine.differ")

HEADER_PATTERN = re.compile(r"^##[ \t]+(.+)$", re.MULTILINE)
PREAMBLE_ID = "_preamble"

DEFAULT_APPROVAL_KEYWORDS = ("compliance", "privacy", "security", "definitions")


@dataclass(frozen=True)
class Section:
    """
    A section of policy content.

    Attributes:
        id: Slug of the header title, unique within the document.
        title: Header title, empty for the preamble.
        text: Raw text from the header line up to the next header.
    """

    id: str
    title: str
    text: str


def slugify(title: str) -> str:
    """
    Turn a header title into a section id.

    Lowercases, drops punctuation, and joins words with single dashes.
    """
    slug = title.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_-]+", "-", slug)
    return slug.strip("-")


def parse_sections(content: str) -> list[Section]:
    """
    Split content into sections.

    Repeated titles get numeric suffixes (``scope``, ``scope-2``) so that
    ids stay unique.
    """
    sections: list[Section] = []
    matches = list(HEADER_PATTERN.finditer(content))

    first_start = matches[0].start() if matches else len(content)
    if first_start > 0:
        sections.append(Section(PREAMBLE_ID, "", content[:first_start]))

    used: set[str] = set()
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(content)
        title = match.group(1).strip()
        base = slugify(title) or "section"
        section_id, n = base, 1
        while section_id in used:
            n += 1
            section_id = f"{base}-{n}"
        used.add(section_id)
        sections.append(Section(section_id, title, content[match.start():end]))

    return sections


def next_version(version: str) -> str:
    """
    Increment the minor part of a "major.minor" version.

    Raises:
        ValidationError: If the version is not "major.minor".
    """
    parts = version.split(".")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValidationError(f"Invalid policy version: {version}")
    return f"{parts[0]}.{int(parts[1]) + 1}"


def source_justification(change_type: ChangeType, text: str) -> str:
    """Describe where a change most likely comes from."""
    if change_type == ChangeType.ADDITION:
        return "New requirement added"
    if change_type == ChangeType.DELETION:
        return "Requirement removed or superseded"
    lowered = text.lower()
    if "nist" in lowered:
        return "NIST AI RMF update"
    if "ferpa" in lowered:
        return "FERPA compliance update"
    if "coppa" in lowered:
        return "COPPA compliance update"
    return "Best practice update"


class RedlineDiffer:
    """
    Computes section-level diffs between two policy revisions.

    A change requires approval when its section id contains one of the
    approval keywords, and always when it is a deletion.

    Example:
        Redlining an edit::

            differ = RedlineDiffer()
            diffs = differ.diff(
                policy.content,
                edited,
                version="1.1",
                reason="Clarify vendor terms",
                author="jdoe",
            )
    """

    def __init__(self, approval_keywords: tuple[str, ...] | list[str] | None = None) -> None:
        """
        Initialize the differ.

        Args:
            approval_keywords: Section id fragments that make a change
                require approval.
        """
        self.approval_keywords = tuple(
            k.lower() for k in (approval_keywords or DEFAULT_APPROVAL_KEYWORDS)
        )

    def requires_approval(self, section_id: str, change_type: ChangeType) -> bool:
        """Whether a change to a section needs sign-off."""
        if change_type == ChangeType.DELETION:
            return True
        return any(keyword in section_id for keyword in self.approval_keywords)

    def diff(
        self,
        original: str,
        updated: str,
        version: str,
        reason: str,
        author: str = "system",
        justification: str | None = None,
    ) -> list[PolicyDiff]:
        """
        Compare two revisions.

        Diffs for sections present in the updated content come first, in
        updated order; deletions follow in original order. Identical
        sections produce no diff.

        Args:
            original: Content before the change.
            updated: Content after the change.
            version: Version the change produces.
            reason: Rationale recorded on every diff.
            author: Author recorded on every diff.
            justification: Source justification; derived per diff if None.

        Returns:
            The list of diffs, empty when the revisions are identical.
        """
        before = {s.id: s for s in parse_sections(original)}
        after_sections = parse_sections(updated)
        after_ids = {s.id for s in after_sections}

        diffs: list[PolicyDiff] = []
        for position, section in enumerate(after_sections):
            previous = before.get(section.id)
            if previous is None:
                diffs.append(
                    self._make(
                        ChangeType.ADDITION, section.id, "", section.text,
                        position, version, reason, author, justification,
                    )
                )
            elif previous.text != section.text:
                diffs.append(
                    self._make(
                        ChangeType.MODIFICATION, section.id, previous.text, section.text,
                        position, version, reason, author, justification,
                    )
                )

        for position, section in enumerate(before.values()):
            if section.id not in after_ids:
                diffs.append(
                    self._make(
                        ChangeType.DELETION, section.id, section.text, "",
                        position, version, reason, author, justification,
                    )
                )

        logger.debug(f"Computed {len(diffs)} section diffs for version {version}")
        return diffs

    def _make(
        self,
        change_type: ChangeType,
        section_id: str,
        original_text: str,
        new_text: str,
        position: int,
        version: str,
        reason: str,
        author: str,
        justification: str | None,
    ) -> PolicyDiff:
        return PolicyDiff(
            version=version,
            change_type=change_type,
            section_id=section_id,
            original_text=original_text,
            new_text=new_text,
            rationale=reason,
            source_justification=justification
            or source_justification(change_type, new_text or original_text),
            approval_required=self.requires_approval(section_id, change_type),
            changed_by=author,
            position=position,
        )


def apply_diffs(content: str, diffs: list[PolicyDiff]) -> str:
    """
    Replay diffs onto the revision they were computed from.

    Deletions and modifications are matched by section id and must find
    the exact original text. Additions are inserted at their recorded
    position in the updated document. Replaying reproduces the updated
    revision as long as the sections shared by both revisions kept their
    relative order.

    Raises:
        ValidationError: If a diff does not fit the content.
    """
    sections = [(s.id, s.text) for s in parse_sections(content)]
    index = {section_id: i for i, (section_id, _) in enumerate(sections)}

    removed: set[str] = set()
    replaced: dict[str, str] = {}
    for diff in diffs:
        if diff.change_type == ChangeType.ADDITION:
            continue
        i = index.get(diff.section_id)
        if i is None or sections[i][1] != diff.original_text:
            raise ValidationError(
                f"Diff does not apply to section '{diff.section_id}'",
                {"diff_id": diff.id, "change_type": diff.change_type.value},
            )
        if diff.change_type == ChangeType.DELETION:
            removed.add(diff.section_id)
        else:
            replaced[diff.section_id] = diff.new_text

    result = [
        (section_id, replaced.get(section_id, text))
        for section_id, text in sections
        if section_id not in removed
    ]

    additions = sorted(
        (d for d in diffs if d.change_type == ChangeType.ADDITION),
        key=lambda d: d.position,
    )
    for diff in additions:
        result.insert(min(diff.position, len(result)), (diff.section_id, diff.new_text))

    return "".join(text for _, text in result)
