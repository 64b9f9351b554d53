"""
Policy handlers for PolicyCraft server.

This module provides handlers for template listing, policy generation,
retrieval and redlines.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

from policycraft.engine.engine import PolicyGenerationOptions
from policycraft.exceptions import ValidationError
from policycraft.server.handlers.common import read_json, respond

logger = logging.getLogger("policycraft.server.handlers.policy")


async def list_templates(request: "web.Request") -> "web.Response":
    """
    List the policy templates of the reference library.

    Returns:
        JSON response with the templates and whether each has an approval
        workflow.
    """
    engine = request.app["engine"]
    library = engine.library

    templates = []
    for template in engine.list_templates():
        summary = template.to_dict()
        summary["has_workflow"] = template.id in library.workflows
        templates.append(summary)

    return respond({"templates": templates, "total": len(templates)})


async def list_policies(request: "web.Request") -> "web.Response":
    """
    List stored policies.

    Query parameters:
        org_id: Only policies of this organization.

    Returns:
        JSON response with policy summaries.
    """
    engine = request.app["engine"]
    policies = engine.list_policies(request.query.get("org_id"))

    return respond({
        "policies": [
            {
                "id": p.id,
                "org_id": p.org_id,
                "template_id": p.template_id,
                "title": p.title,
                "status": p.status,
                "version": p.version,
                "updated_at": p.updated_at,
            }
            for p in policies
        ],
        "total": len(policies),
    })


async def generate_policy(request: "web.Request") -> "web.Response":
    """
    Generate a draft policy.

    Request body:
        template_id: Template to assemble.
        profile: Organization profile.
        jurisdiction: Optional list of jurisdictions.
        options: Optional generation options.

    Returns:
        JSON response with the generated policy (201).
    """
    body = await read_json(request, required=("template_id", "profile"))
    if not isinstance(body["profile"], dict):
        raise ValidationError("profile must be a JSON object")
    jurisdiction = body.get("jurisdiction")
    if jurisdiction is not None and not isinstance(jurisdiction, list):
        raise ValidationError("jurisdiction must be a list")

    engine = request.app["engine"]
    policy = engine.generate_policy(
        body["template_id"],
        body["profile"],
        jurisdiction=jurisdiction,
        options=PolicyGenerationOptions.from_dict(body.get("options")),
    )
    return respond({"policy": policy}, status=201)


async def get_policy(request: "web.Request") -> "web.Response":
    """
    Get a policy with its diff history and approval trail.

    Returns:
        JSON response with the policy.
    """
    engine = request.app["engine"]
    policy = engine.get_policy(request.match_info["policy_id"])
    return respond({"policy": policy})


async def generate_redlines(request: "web.Request") -> "web.Response":
    """
    Preview or apply redlines against a policy.

    Request body:
        updated_content: The edited policy content.
        reason: Rationale recorded on every diff.
        author: Who made the edit (default "api").
        justification: Optional source justification.
        apply: Apply the revision instead of previewing it.

    Returns:
        JSON response with the diffs and the resulting version.
    """
    body = await read_json(request, required=("updated_content", "reason"))
    engine = request.app["engine"]
    policy_id = request.match_info["policy_id"]
    author = body.get("author") or "api"

    if body.get("apply"):
        diffs = engine.revise_policy(
            policy_id,
            body["updated_content"],
            body["reason"],
            author=author,
            justification=body.get("justification"),
        )
    else:
        diffs = engine.generate_redlines(
            engine.get_policy(policy_id),
            body["updated_content"],
            body["reason"],
            author=author,
            justification=body.get("justification"),
        )

    policy = engine.get_policy(policy_id)
    return respond({
        "policy_id": policy_id,
        "applied": bool(body.get("apply")),
        "version": policy.version,
        "diffs": diffs,
        "requires_approval": any(d.approval_required for d in diffs),
    })


async def fill_fields(request: "web.Request") -> "web.Response":
    """
    Supply values for a policy's fillable fields.

    Request body:
        values: Mapping of placeholder token to value.
        author: Who supplied the values (default "api").

    Returns:
        JSON response with the diffs and the updated policy.
    """
    body = await read_json(request, required=("values",))
    if not isinstance(body["values"], dict):
        raise ValidationError("values must be a JSON object")

    engine = request.app["engine"]
    policy_id = request.match_info["policy_id"]
    diffs = engine.fill_fields(policy_id, body["values"], author=body.get("author") or "api")
    return respond({"diffs": diffs, "policy": engine.get_policy(policy_id)})
