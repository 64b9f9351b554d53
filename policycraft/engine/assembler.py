"""
Policy assembly for PolicyCraft.

The PolicyAssembler turns a template, its selected clauses and an
organization profile into policy text: clause placeholders are replaced
with interpolated clause bodies, organization placeholders and
conditional blocks are resolved, and the legal disclaimer is placed at
the front. Assembly is deterministic; the same inputs always produce the
same bytes.
"""

import re
from dataclasses import dataclass, field

from policycraft.exceptions import LEGAL_DISCLAIMER, ValidationError
from policycraft.models.organization import OrganizationProfile
from policycraft.models.policy import PolicyClause, PolicyTemplate

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^}]+)\}\}")
CONDITIONAL_PATTERN = re.compile(
    r"\{\{#if_([a-z0-9_]+)\}\}(.*?)\{\{/if_\1\}\}", re.DOTALL | re.IGNORECASE
)
EXCESS_BLANK_LINES = re.compile(r"\n{3,}")

DEFAULT_ORGANIZATION_NAME = "[Organization Name]"
DEFAULT_ORGANIZATION_TYPE = "Educational Institution"


@dataclass(frozen=True)
class AssembledPolicy:
    """
    Output of policy assembly.

    Attributes:
        title: Interpolated title.
        content: Assembled content, disclaimer first.
        fillable_fields: Unresolved placeholder tokens mapped to "" in order
            of first appearance.
        clause_ids: Ids of the clauses placed, in placement order.
    """

    title: str
    content: str
    fillable_fields: dict[str, str] = field(default_factory=dict)
    clause_ids: tuple[str, ...] = ()


def organization_values(profile: OrganizationProfile) -> dict[str, str]:
    """Placeholder values the profile can supply."""
    values = {
        "organization_name": profile.organization_name or DEFAULT_ORGANIZATION_NAME,
        "organization_type": (
            profile.organization_type.value
            if profile.organization_type
            else DEFAULT_ORGANIZATION_TYPE
        ),
    }
    if profile.state:
        values["state"] = profile.state
    return values


def resolve_conditionals(text: str, profile: OrganizationProfile) -> str:
    """Keep conditional blocks matching the organization type, drop the rest."""
    org_type = (
        profile.organization_type.value.lower() if profile.organization_type else ""
    )

    def replace_block(match: re.Match[str]) -> str:
        return match.group(2) if match.group(1).lower() == org_type else ""

    return CONDITIONAL_PATTERN.sub(replace_block, text)


def substitute(text: str, values: dict[str, str]) -> str:
    """Replace ``{{token}}`` placeholders that have a value, leave the rest."""

    def replace_token(match: re.Match[str]) -> str:
        token = match.group(1).strip()
        return values.get(token, match.group(0))

    return PLACEHOLDER_PATTERN.sub(replace_token, text)


def extract_placeholders(text: str) -> list[str]:
    """Placeholder tokens in order of first appearance."""
    return list(dict.fromkeys(m.strip() for m in PLACEHOLDER_PATTERN.findall(text)))


def interpolate(text: str, profile: OrganizationProfile) -> str:
    """Resolve conditional blocks and organization placeholders."""
    return substitute(resolve_conditionals(text, profile), organization_values(profile))


class PolicyAssembler:
    """
    Assembles policy content from a template and ordered clauses.

    Clauses whose placeholder does not appear in the template content are
    appended at the end, in the given order, under their own titles.
    Placeholders of template clauses that were not selected are removed.
    Any other placeholder the profile cannot resolve is left in the text
    and reported as a fillable field.
    """

    def assemble(
        self,
        template: PolicyTemplate,
        clauses: list[PolicyClause],
        profile: OrganizationProfile,
    ) -> AssembledPolicy:
        """
        Assemble a policy.

        Args:
            template: The template to assemble.
            clauses: Selected clauses in placement order.
            profile: Organization profile for interpolation.

        Returns:
            The assembled policy text and its fillable fields.
        """
        content = template.content
        placed: set[str] = set()
        appended: list[str] = []

        for clause in clauses:
            body = interpolate(clause.content, profile).strip()
            token = f"{{{{{clause.id}}}}}"
            if token in content:
                content = content.replace(token, body)
            else:
                appended.append(f"### {clause.title}\n\n{body}")
            placed.add(clause.id)

        for clause_id in template.available_clauses:
            if clause_id not in placed:
                content = _remove_placeholder(content, clause_id)

        if appended:
            content = content.rstrip("\n") + "\n\n" + "\n\n".join(appended) + "\n"

        content = interpolate(content, profile)
        content = EXCESS_BLANK_LINES.sub("\n\n", content).strip("\n") + "\n"
        title = interpolate(template.title, profile)

        fillable = {token: "" for token in extract_placeholders(content)}
        return AssembledPolicy(
            title=title,
            content=LEGAL_DISCLAIMER + content,
            fillable_fields=fillable,
            clause_ids=tuple(c.id for c in clauses),
        )

    def fill(self, content: str, values: dict[str, str]) -> str:
        """
        Substitute caller-supplied values for fillable fields.

        Raises:
            ValidationError: If a value is empty or names no placeholder
                in the content.
        """
        present = set(extract_placeholders(content))
        empty = sorted(k for k, v in values.items() if not str(v).strip())
        if empty:
            raise ValidationError(
                "Unresolved required placeholder",
                {"fields": empty},
            )
        unknown = sorted(set(values) - present)
        if unknown:
            raise ValidationError(
                "No such placeholder in policy content",
                {"fields": unknown},
            )
        return substitute(content, {k: str(v) for k, v in values.items()})


def _remove_placeholder(content: str, clause_id: str) -> str:
    token = re.escape(f"{{{{{clause_id}}}}}")
    content = re.sub(rf"^[ \t]*{token}[ \t]*\n", "", content, flags=re.MULTILINE)
    return re.sub(token, "", content)
