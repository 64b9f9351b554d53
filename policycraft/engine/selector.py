"""
Clause selection for PolicyCraft.

The ClauseSelector filters a template's available clauses down to the
ones whose selection rules all pass for an organization profile, then
orders them by priority while keeping every selected dependency ahead of
the clauses that depend on it.
"""

import heapq
import logging

from policycraft.exceptions import CyclicDependencyError
from policycraft.library.reference import ReferenceLibrary
from policycraft.models.organization import OrganizationProfile
from policycraft.models.policy import PolicyClause, PolicyTemplate

logger = logging.getLogger("policycraft.engine.selector")


class ClauseSelector:
    """
    Selects and orders clauses for an organization profile.

    Ordering is a topological sort of the selected clauses' dependency
    graph. Among clauses whose dependencies are already placed, the one
    with the lowest priority value goes first; ties keep the template's
    clause order.

    Example:
        Selecting clauses::

            selector = ClauseSelector(library)
            clauses = selector.select(template, profile)
    """

    def __init__(self, library: ReferenceLibrary) -> None:
        """
        Initialize the selector.

        Args:
            library: Reference library to resolve clause ids against.
        """
        self._library = library

    def select(
        self,
        template: PolicyTemplate,
        profile: OrganizationProfile,
    ) -> list[PolicyClause]:
        """
        Return the applicable clauses of a template in placement order.

        Args:
            template: Template whose available clauses are considered.
            profile: Organization profile the rules are evaluated against.

        Returns:
            Selected clauses, dependencies first.

        Raises:
            NotFoundError: If the template references an unknown clause.
            CyclicDependencyError: If selected clauses depend on each other
                in a cycle.
        """
        selected: list[PolicyClause] = []
        for clause_id in template.available_clauses:
            clause = self._library.get_clause(clause_id)
            if clause.is_applicable(profile):
                selected.append(clause)
            else:
                logger.debug(f"Clause {clause_id} excluded for template {template.id}")

        return order_clauses(selected)


def order_clauses(clauses: list[PolicyClause]) -> list[PolicyClause]:
    """
    Order clauses by priority, dependencies first.

    Dependencies on clauses outside the given list are ignored.

    Raises:
        CyclicDependencyError: If the dependency graph has a cycle.
    """
    by_id = {clause.id: clause for clause in clauses}
    position = {clause.id: i for i, clause in enumerate(clauses)}
    pending: dict[str, int] = {}
    dependents: dict[str, list[str]] = {clause.id: [] for clause in clauses}

    for clause in clauses:
        deps = [d for d in dict.fromkeys(clause.dependencies) if d in by_id]
        pending[clause.id] = len(deps)
        for dep in deps:
            dependents[dep].append(clause.id)

    ready = [
        (by_id[cid].priority, position[cid], cid)
        for cid, count in pending.items()
        if count == 0
    ]
    heapq.heapify(ready)

    ordered: list[PolicyClause] = []
    while ready:
        _, _, clause_id = heapq.heappop(ready)
        ordered.append(by_id[clause_id])
        for dependent in dependents[clause_id]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                heapq.heappush(
                    ready, (by_id[dependent].priority, position[dependent], dependent)
                )

    if len(ordered) != len(clauses):
        remaining = {cid for cid, count in pending.items() if count > 0}
        raise CyclicDependencyError(_find_cycle(remaining, by_id))

    return ordered


def _find_cycle(remaining: set[str], by_id: dict[str, PolicyClause]) -> list[str]:
    """Walk dependency edges among unplaced clauses until a clause repeats."""
    start = min(remaining)
    path: list[str] = []
    seen: dict[str, int] = {}
    current = start
    while current not in seen:
        seen[current] = len(path)
        path.append(current)
        current = next(
            d for d in by_id[current].dependencies if d in remaining
        )
    return path[seen[current]:] + [current]
