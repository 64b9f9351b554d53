"""
Framework mapping and framework update handlers for PolicyCraft server.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

from policycraft.exceptions import ValidationError
from policycraft.models.framework import FrameworkUpdate
from policycraft.server.handlers.common import read_json, respond

logger = logging.getLogger("policycraft.server.handlers.mapping")


async def map_document(request: "web.Request") -> "web.Response":
    """
    Map a document onto compliance frameworks.

    Request body:
        id: Optional document id.
        text: Extracted plain text.
        title: Optional title.
        framework_tags: Optional base frameworks to restrict to.
        state_tags: Optional states the document applies to.

    Returns:
        JSON response with mappings, coverage, gaps, recommendations and
        the confidence score.
    """
    body = await read_json(request)
    if not isinstance(body.get("text", ""), str):
        raise ValidationError("text must be a string")
    for key in ("framework_tags", "state_tags", "pii_flags"):
        if not isinstance(body.get(key, []), list):
            raise ValidationError(f"{key} must be a list")

    mapper = request.app["mapper"]
    result = mapper.map_document_to_frameworks(body)
    return respond({"result": result})


async def apply_framework_update(request: "web.Request") -> "web.Response":
    """
    Apply a framework update to every auto-updating policy that follows
    the framework.

    Request body:
        framework_id: Framework that changed.
        version: New framework version.
        description: What changed.
        affected_controls: Control ids touched by the change.

    Returns:
        JSON response with one result per updated or failed policy.
    """
    body = await read_json(request, required=("framework_id", "version"))
    update = FrameworkUpdate.from_dict(body)

    engine = request.app["engine"]
    results = engine.auto_update_policies_from_framework(update)

    return respond({
        "framework_id": update.framework_id,
        "version": update.version,
        "results": results,
        "total": len(results),
    })
