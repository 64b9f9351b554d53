"""
Reference data for PolicyCraft.

Templates, clauses, approval workflows and the compliance-control catalog
are loaded once from YAML and passed explicitly to the components that
use them.
"""

from policycraft.library.clause_store import ClauseStore
from policycraft.library.loader import LibraryLoader
from policycraft.library.reference import (
    ControlCatalog,
    FrameworkInfo,
    ReferenceLibrary,
)

__all__ = [
    "ClauseStore",
    "ControlCatalog",
    "FrameworkInfo",
    "LibraryLoader",
    "ReferenceLibrary",
]
