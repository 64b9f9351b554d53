"""
PolicyCraft Command Line Interface.

Commands:
    templates: List policy templates
    generate: Generate a policy for an organization
    diff: Show redlines between two policy revisions
    map: Map a document onto compliance frameworks
    serve: Run the HTTP API server

Usage:
    policycraft --help
    policycraft generate ai-acceptable-use --org-name "Springfield USD" --org-type K12
    policycraft -f json map district-policy.md
"""

from policycraft.cli.main import main

__all__ = ["main"]
