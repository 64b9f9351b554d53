"""
Revisioned clause store for PolicyCraft.

The store holds the current ReferenceLibrary snapshot and accepts clause
edits under optimistic concurrency: every save names the revision it was
based on, and a save against a stale revision is rejected instead of
overwriting a concurrent edit. Each accepted save publishes a new,
immutable library snapshot.
"""

import logging
import threading
from dataclasses import replace

from policycraft.exceptions import RevisionConflictError, ValidationError
from policycraft.library.reference import ReferenceLibrary
from policycraft.models.policy import PolicyClause

logger = logging.getLogger("policycraft.library.clauses")


class ClauseStore:
    """
    Thread-safe store of clause revisions.

    Example:
        Editing a clause::

            store = ClauseStore(library)
            clause = store.get("monitoring-clause")
            edited = dataclasses.replace(clause, content="New text")
            saved = store.save(edited, base_revision=clause.revision)
            engine_library = store.snapshot()
    """

    def __init__(self, library: ReferenceLibrary) -> None:
        """
        Initialize the store.

        Args:
            library: Library whose clauses seed the store.
        """
        self._lock = threading.Lock()
        self._library = library
        self._history: dict[str, list[PolicyClause]] = {
            clause_id: [clause] for clause_id, clause in library.clauses.items()
        }

    def snapshot(self) -> ReferenceLibrary:
        """Return the current immutable library snapshot."""
        with self._lock:
            return self._library

    def get(self, clause_id: str) -> PolicyClause:
        """
        Return the current revision of a clause.

        Raises:
            NotFoundError: If the clause does not exist.
        """
        return self.snapshot().get_clause(clause_id)

    def history(self, clause_id: str) -> list[PolicyClause]:
        """Return every saved revision of a clause, oldest first."""
        with self._lock:
            return list(self._history.get(clause_id, []))

    def save(self, clause: PolicyClause, base_revision: int) -> PolicyClause:
        """
        Save a clause edit.

        New clauses are saved with base revision 0.

        Args:
            clause: The edited clause.
            base_revision: Revision the edit was based on.

        Returns:
            The stored clause with its new revision number.

        Raises:
            ValidationError: If the clause body is empty.
            RevisionConflictError: If base_revision is not the current revision.
        """
        if not clause.content or not clause.content.strip():
            raise ValidationError(
                f"Clause '{clause.id}' has an empty body",
                {"clause_id": clause.id},
            )

        with self._lock:
            current = self._library.clauses.get(clause.id)
            current_revision = current.revision if current else 0
            if base_revision != current_revision:
                logger.warning(
                    f"Rejected stale save of clause {clause.id}: "
                    f"base revision {base_revision}, current {current_revision}"
                )
                raise RevisionConflictError(
                    f"Clause '{clause.id}' was modified concurrently",
                    expected=base_revision,
                    actual=current_revision,
                    details={"clause_id": clause.id},
                )

            stored = replace(clause, revision=current_revision + 1)
            self._library = self._library.with_clause(stored)
            self._history.setdefault(clause.id, []).append(stored)

        logger.info(f"Saved clause {stored.id} at revision {stored.revision}")
        return stored
