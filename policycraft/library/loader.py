"""
Reference data loader for PolicyCraft.

This module parses the YAML files that define the clause/template
library and the control catalog. The files shipped in ``policycraft.data``
are used unless a path is given. All problems found in a file are
collected and reported together in a single ConfigurationError.
"""

import logging
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from policycraft.exceptions import ConfigurationError
from policycraft.library.reference import (
    ControlCatalog,
    FrameworkInfo,
    ReferenceLibrary,
)
from policycraft.models.approval import (
    ApproverRole,
    EscalationRule,
    NoResponseRule,
    NotificationSettings,
    RejectionCountRule,
    RequiredApprover,
    WorkflowDefinition,
)
from policycraft.models.framework import ExtractionRule, FrameworkControl, RuleType
from policycraft.models.policy import (
    PolicyClause,
    PolicyTemplate,
    RiskLevel,
    rule_from_dict,
)

logger = logging.getLogger("policycraft.library")

DATA_PACKAGE = "policycraft.data"
LIBRARY_FILE = "library.yaml"
CATALOG_FILE = "catalog.yaml"


def _read_yaml(path: str | Path | None, default_name: str) -> tuple[dict[str, Any], str]:
    """
    Read a YAML mapping from a path or from the packaged data.

    Returns:
        The parsed mapping and a source label for error messages.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping.
    """
    try:
        if path:
            source = str(path)
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        else:
            source = f"{DATA_PACKAGE}/{default_name}"
            text = resources.files(DATA_PACKAGE).joinpath(default_name).read_text(
                encoding="utf-8"
            )
            data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        line = 0
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            line = mark.line + 1
        raise ConfigurationError(
            f"YAML syntax error in {path or default_name}: {e}",
            {"source": str(path or default_name), "line": line},
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read reference data: {e}",
            {"source": str(path or default_name)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Reference data file must be a YAML mapping", {"source": source}
        )
    return data, source


def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


class LibraryLoader:
    """
    Builds ReferenceLibrary and ControlCatalog objects from YAML.

    Example:
        Loading the packaged reference data::

            loader = LibraryLoader()
            library = loader.load_library()
            catalog = loader.load_catalog()
    """

    def __init__(self, default_escalation_days: int = 5) -> None:
        """
        Initialize the loader.

        Args:
            default_escalation_days: Days used by no_response escalation
                rules that do not set their own.
        """
        self._default_escalation_days = default_escalation_days
        self._errors: list[str] = []

    # -------------------------------------------------------------------------
    # Library
    # -------------------------------------------------------------------------

    def load_library(self, path: str | Path | None = None) -> ReferenceLibrary:
        """
        Load templates, clauses and workflows.

        Args:
            path: YAML file to load; the packaged library if None.

        Raises:
            ConfigurationError: If the file is invalid.
        """
        data, source = _read_yaml(path, LIBRARY_FILE)
        return self.parse_library(data, source)

    def parse_library(
        self, data: dict[str, Any], source: str = "<memory>"
    ) -> ReferenceLibrary:
        """
        Build a ReferenceLibrary from already-parsed YAML data.

        Raises:
            ConfigurationError: Listing every problem found.
        """
        self._errors = []

        templates: dict[str, PolicyTemplate] = {}
        for i, item in enumerate(data.get("templates") or []):
            template = self._guard(f"template {i + 1}", self._parse_template, item)
            if template is not None:
                templates[template.id] = template

        clauses: dict[str, PolicyClause] = {}
        for i, item in enumerate(data.get("clauses") or []):
            clause = self._guard(f"clause {i + 1}", self._parse_clause, item)
            if clause is not None:
                if clause.id in clauses:
                    self._errors.append(f"duplicate clause id '{clause.id}'")
                clauses[clause.id] = clause

        workflows: dict[str, WorkflowDefinition] = {}
        for i, item in enumerate(data.get("workflows") or []):
            workflow = self._guard(f"workflow {i + 1}", self._parse_workflow, item)
            if workflow is not None:
                workflows[workflow.template_id] = workflow

        for template in templates.values():
            for clause_id in template.available_clauses:
                if clause_id not in clauses:
                    self._errors.append(
                        f"template '{template.id}' references unknown clause '{clause_id}'"
                    )
        for clause in clauses.values():
            for dep in clause.dependencies:
                if dep not in clauses:
                    self._errors.append(
                        f"clause '{clause.id}' depends on unknown clause '{dep}'"
                    )
        for template_id in workflows:
            if template_id not in templates:
                self._errors.append(
                    f"workflow defined for unknown template '{template_id}'"
                )

        self._raise_if_errors(source)
        logger.debug(
            f"Loaded library from {source}: {len(templates)} templates, "
            f"{len(clauses)} clauses, {len(workflows)} workflows"
        )
        return ReferenceLibrary(templates=templates, clauses=clauses, workflows=workflows)

    def _parse_template(self, data: dict[str, Any]) -> PolicyTemplate:
        self._require(data, "id", "title", "content")
        review_cycle = data.get("review_cycle_months")
        return PolicyTemplate(
            id=str(data["id"]),
            title=str(data["title"]),
            content=str(data["content"]),
            available_clauses=tuple(str(c) for c in _as_tuple(data.get("available_clauses"))),
            compliance_frameworks=tuple(
                str(f) for f in _as_tuple(data.get("compliance_frameworks"))
            ),
            risk_level=RiskLevel(data.get("risk_level", "medium")),
            review_cycle_months=int(review_cycle) if review_cycle is not None else None,
            description=str(data.get("description", "")),
        )

    def _parse_clause(self, data: dict[str, Any]) -> PolicyClause:
        self._require(data, "id", "title", "content")
        if not str(data["content"]).strip():
            raise ValueError(f"clause '{data['id']}' has an empty body")
        return PolicyClause(
            id=str(data["id"]),
            title=str(data["title"]),
            content=str(data["content"]),
            category=str(data.get("category", "general")),
            priority=int(data.get("priority", 100)),
            rules=tuple(rule_from_dict(r) for r in _as_tuple(data.get("rules"))),
            dependencies=tuple(str(d) for d in _as_tuple(data.get("dependencies"))),
        )

    def _parse_workflow(self, data: dict[str, Any]) -> WorkflowDefinition:
        self._require(data, "template_id", "approvers")
        approvers = tuple(
            RequiredApprover(
                role=ApproverRole(a["role"]),
                order=int(a.get("order", 1)),
                name=str(a.get("name", "")),
                email=str(a.get("email", "")),
            )
            for a in _as_tuple(data["approvers"])
        )
        if not approvers:
            raise ValueError("workflow needs at least one approver")
        roles = [a.role for a in approvers]
        if len(set(roles)) != len(roles):
            raise ValueError("workflow lists an approver role twice")

        notifications = data.get("notifications") or {}
        return WorkflowDefinition(
            template_id=str(data["template_id"]),
            approvers=approvers,
            parallel=bool(data.get("parallel", False)),
            escalation_rules=tuple(
                self._parse_escalation(r) for r in _as_tuple(data.get("escalation_rules"))
            ),
            notifications=NotificationSettings(
                on_request=bool(notifications.get("on_request", True)),
                on_approval=bool(notifications.get("on_approval", True)),
                on_rejection=bool(notifications.get("on_rejection", True)),
                on_escalation=bool(notifications.get("on_escalation", True)),
            ),
        )

    def _parse_escalation(self, data: dict[str, Any]) -> EscalationRule:
        kind = data.get("kind")
        if kind == NoResponseRule.kind:
            return NoResponseRule(
                days=int(data.get("days", self._default_escalation_days)),
                escalate_to=ApproverRole(data.get("escalate_to", "superintendent")),
            )
        if kind == RejectionCountRule.kind:
            return RejectionCountRule(
                threshold=int(data.get("threshold", 1)),
                action=str(data.get("action", "require_legal_review")),
            )
        raise ValueError(f"unknown escalation rule kind '{kind}'")

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    def load_catalog(self, path: str | Path | None = None) -> ControlCatalog:
        """
        Load frameworks, controls, extraction rules and state indicators.

        Args:
            path: YAML file to load; the packaged catalog if None.

        Raises:
            ConfigurationError: If the file is invalid.
        """
        data, source = _read_yaml(path, CATALOG_FILE)
        return self.parse_catalog(data, source)

    def parse_catalog(
        self, data: dict[str, Any], source: str = "<memory>"
    ) -> ControlCatalog:
        """
        Build a ControlCatalog from already-parsed YAML data.

        Raises:
            ConfigurationError: Listing every problem found.
        """
        self._errors = []
        frameworks: dict[str, FrameworkInfo] = {}
        rules: dict[tuple[str, str], tuple[ExtractionRule, ...]] = {}

        for i, item in enumerate(data.get("frameworks") or []):
            parsed = self._guard(f"framework {i + 1}", self._parse_framework, item)
            if parsed is None:
                continue
            info, framework_rules = parsed
            frameworks[info.id] = info
            rules.update(framework_rules)

        indicators: dict[str, tuple[str, ...]] = {}
        for state, phrases in (data.get("state_indicators") or {}).items():
            indicators[str(state).upper()] = tuple(str(p).lower() for p in _as_tuple(phrases))

        self._raise_if_errors(source)
        logger.debug(
            f"Loaded catalog from {source}: {len(frameworks)} frameworks, "
            f"{sum(len(f.controls) for f in frameworks.values())} controls"
        )
        return ControlCatalog(
            frameworks=frameworks, rules=rules, state_indicators=indicators
        )

    def _parse_framework(
        self, data: dict[str, Any]
    ) -> tuple[FrameworkInfo, dict[tuple[str, str], tuple[ExtractionRule, ...]]]:
        self._require(data, "id")
        framework_id = str(data["id"])
        controls: list[FrameworkControl] = []
        rules: dict[tuple[str, str], tuple[ExtractionRule, ...]] = {}

        for item in _as_tuple(data.get("controls")):
            self._require(item, "id", "title")
            control = FrameworkControl(
                id=str(item["id"]),
                framework=framework_id,
                title=str(item["title"]),
                description=str(item.get("description", "")),
                requirements=tuple(str(r) for r in _as_tuple(item.get("requirements"))),
                evidence=tuple(str(e) for e in _as_tuple(item.get("evidence"))),
                category=str(item.get("category", "")),
            )
            controls.append(control)
            control_rules = tuple(
                ExtractionRule(
                    id=str(r["id"]),
                    rule_type=RuleType(r["rule_type"]),
                    pattern=str(r["pattern"]),
                    weight=float(r.get("weight", 1.0)),
                    context=tuple(str(c).lower() for c in _as_tuple(r.get("context"))),
                    exclusions=tuple(
                        str(x).lower() for x in _as_tuple(r.get("exclusions"))
                    ),
                )
                for r in _as_tuple(item.get("rules"))
            )
            if control_rules:
                rules[(framework_id, control.id)] = control_rules

        state = data.get("state")
        info = FrameworkInfo(
            id=framework_id,
            name=str(data.get("name", framework_id)),
            controls=tuple(controls),
            state=str(state).upper() if state else None,
        )
        return info, rules

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require(self, data: Any, *keys: str) -> None:
        if not isinstance(data, dict):
            raise ValueError("entry must be a mapping")
        missing = [k for k in keys if data.get(k) in (None, "")]
        if missing:
            raise ValueError(f"missing required keys: {', '.join(missing)}")

    def _guard(self, label: str, parse: Any, item: Any) -> Any:
        """Run a parse step, recording failures instead of raising."""
        try:
            return parse(item)
        except ConfigurationError as e:
            self._errors.append(f"{label}: {e.message}")
            return None
        except (KeyError, TypeError, ValueError) as e:
            self._errors.append(f"{label}: {e}")
            return None

    def _raise_if_errors(self, source: str) -> None:
        if self._errors:
            errors, self._errors = self._errors, []
            raise ConfigurationError(
                f"Invalid reference data in {source}: {'; '.join(errors)}",
                {"source": source, "errors": errors},
            )
