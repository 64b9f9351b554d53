"""
Policy engine for PolicyCraft.

Selection, assembly, redlining and approval of policy documents, plus
automatic application of compliance framework updates.
"""

from policycraft.engine.approval import ApprovalEngine
from policycraft.engine.assembler import AssembledPolicy, PolicyAssembler
from policycraft.engine.differ import (
    RedlineDiffer,
    Section,
    apply_diffs,
    next_version,
    parse_sections,
)
from policycraft.engine.engine import PolicyEngine, PolicyGenerationOptions
from policycraft.engine.selector import ClauseSelector, order_clauses
from policycraft.engine.updates import record_framework_update

__all__ = [
    "ApprovalEngine",
    "AssembledPolicy",
    "ClauseSelector",
    "PolicyAssembler",
    "PolicyEngine",
    "PolicyGenerationOptions",
    "RedlineDiffer",
    "Section",
    "apply_diffs",
    "next_version",
    "order_clauses",
    "parse_sections",
    "record_framework_update",
]
