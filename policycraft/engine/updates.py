"""
Framework update records for policy content.

A policy that follows a compliance framework keeps a running log of the
framework versions it has been brought in line with, in its own section.
"""

import re

from policycraft.models.framework import FrameworkUpdate

UPDATES_TITLE = "Compliance Framework Updates"
UPDATES_HEADER = f"## {UPDATES_TITLE}"

_SECTION_PATTERN = re.compile(
    rf"^{re.escape(UPDATES_HEADER)}[ \t]*\n(.*?)(?=^##[ \t]|\Z)",
    re.MULTILINE | re.DOTALL,
)


def update_entry(update: FrameworkUpdate) -> str:
    """Bullet line recording one framework update."""
    line = f"- {update.framework_id} {update.version}: {update.description}"
    if update.affected_controls:
        line += f" (controls: {', '.join(update.affected_controls)})"
    return line


def is_recorded(content: str, update: FrameworkUpdate) -> bool:
    """Whether the framework version is already in the update log."""
    match = _SECTION_PATTERN.search(content)
    if match is None:
        return False
    prefix = f"- {update.framework_id} {update.version}:"
    return any(line.startswith(prefix) for line in match.group(1).splitlines())


def record_framework_update(content: str, update: FrameworkUpdate) -> str:
    """
    Add a framework update to the policy's update log.

    The log section is created at the end of the content on first use,
    without touching the text of the section before it. Recording a
    version that is already logged returns the content unchanged.
    """
    if is_recorded(content, update):
        return content

    entry = update_entry(update)
    match = _SECTION_PATTERN.search(content)
    if match is None:
        if content and not content.endswith("\n"):
            content += "\n"
        return f"{content}{UPDATES_HEADER}\n{entry}\n"

    body = match.group(1)
    kept = body.rstrip("\n")
    trailing = body[len(kept):] or "\n"
    lines = f"{kept}\n{entry}" if kept else entry
    return content[: match.start(1)] + lines + trailing + content[match.end(1):]
