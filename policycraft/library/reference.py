"""
Immutable reference data for PolicyCraft.

The clause/template library and the control catalog are loaded once at
process start and passed explicitly to each component. Neither structure
is ever mutated in place; edits produce a new instance.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping

from policycraft.exceptions import (
    NoApprovalWorkflowDefinedError,
    NotFoundError,
    TemplateNotFoundError,
)
from policycraft.models.approval import WorkflowDefinition
from policycraft.models.framework import ExtractionRule, FrameworkControl
from policycraft.models.policy import PolicyClause, PolicyTemplate

STATE_FRAMEWORK_PREFIX = "STATE_"


def _freeze(mapping: Mapping | None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ReferenceLibrary:
    """
    Policy templates, clauses and approval workflow definitions.

    Attributes:
        templates: Templates keyed by id.
        clauses: Clauses keyed by id.
        workflows: Workflow definitions keyed by template id.
    """

    templates: Mapping[str, PolicyTemplate] = field(default_factory=dict)
    clauses: Mapping[str, PolicyClause] = field(default_factory=dict)
    workflows: Mapping[str, WorkflowDefinition] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "templates", _freeze(self.templates))
        object.__setattr__(self, "clauses", _freeze(self.clauses))
        object.__setattr__(self, "workflows", _freeze(self.workflows))

    def get_template(self, template_id: str) -> PolicyTemplate:
        """
        Return a template by id.

        Raises:
            TemplateNotFoundError: If no template has the id.
        """
        template = self.templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(
                f"Unknown policy template: {template_id}",
                {"template_id": template_id, "available": sorted(self.templates)},
            )
        return template

    def get_clause(self, clause_id: str) -> PolicyClause:
        """
        Return a clause by id.

        Raises:
            NotFoundError: If no clause has the id.
        """
        clause = self.clauses.get(clause_id)
        if clause is None:
            raise NotFoundError(
                f"Unknown clause: {clause_id}", {"clause_id": clause_id}
            )
        return clause

    def get_workflow(self, template_id: str) -> WorkflowDefinition:
        """
        Return the approval workflow registered for a template.

        Raises:
            NoApprovalWorkflowDefinedError: If the template has no workflow.
        """
        workflow = self.workflows.get(template_id)
        if workflow is None:
            raise NoApprovalWorkflowDefinedError(
                f"No approval workflow defined for template: {template_id}",
                {"template_id": template_id},
            )
        return workflow

    def with_clause(self, clause: PolicyClause) -> "ReferenceLibrary":
        """Return a copy of the library with one clause replaced or added."""
        clauses = dict(self.clauses)
        clauses[clause.id] = clause
        return replace(self, clauses=clauses)


@dataclass(frozen=True)
class FrameworkInfo:
    """
    A compliance framework and its controls.

    Attributes:
        id: Framework id, e.g. NIST_AI_RMF or STATE_CA.
        name: Display name.
        controls: Controls in catalog order.
        state: Two-letter state code for state regulations.
    """

    id: str
    name: str
    controls: tuple[FrameworkControl, ...] = ()
    state: str | None = None


@dataclass(frozen=True)
class ControlCatalog:
    """
    Per-framework control definitions plus their extraction rules.

    Attributes:
        frameworks: Frameworks keyed by id, in catalog order.
        rules: Extraction rules keyed by (framework id, control id).
        state_indicators: Phrases that reveal a document applies to a
            state, keyed by state code.
    """

    frameworks: Mapping[str, FrameworkInfo] = field(default_factory=dict)
    rules: Mapping[tuple[str, str], tuple[ExtractionRule, ...]] = field(
        default_factory=dict
    )
    state_indicators: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "frameworks", _freeze(self.frameworks))
        object.__setattr__(self, "rules", _freeze(self.rules))
        object.__setattr__(self, "state_indicators", _freeze(self.state_indicators))

    def controls(self, framework_id: str) -> tuple[FrameworkControl, ...]:
        """Controls of a framework; empty for unknown frameworks."""
        info = self.frameworks.get(framework_id)
        return info.controls if info else ()

    def rules_for(self, framework_id: str, control_id: str) -> tuple[ExtractionRule, ...]:
        """Extraction rules registered for a control."""
        return self.rules.get((framework_id, control_id), ())

    def base_frameworks(self) -> list[str]:
        """Ids of frameworks that are not state regulations."""
        return [fid for fid, info in self.frameworks.items() if info.state is None]

    def state_framework(self, state: str) -> str | None:
        """Id of the framework regulating a state, if the catalog has one."""
        framework_id = f"{STATE_FRAMEWORK_PREFIX}{state.upper()}"
        return framework_id if framework_id in self.frameworks else None
