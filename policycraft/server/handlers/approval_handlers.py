"""
Approval workflow handlers for PolicyCraft server.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

from policycraft.exceptions import ValidationError
from policycraft.models.base import parse_datetime
from policycraft.server.handlers.common import read_json, respond

logger = logging.getLogger("policycraft.server.handlers.approval")


async def initiate_approval(request: "web.Request") -> "web.Response":
    """
    Submit a policy for approval.

    Opens a new approval round with one record per required approver of
    the template's workflow.

    Returns:
        JSON response with the approval records of the round (201).
    """
    engine = request.app["engine"]
    policy_id = request.match_info["policy_id"]
    approvals = engine.initiate_approval_workflow(policy_id)
    policy = engine.get_policy(policy_id)

    return respond(
        {
            "policy_id": policy_id,
            "status": policy.status,
            "approval_round": policy.approval_round,
            "approvals": approvals,
        },
        status=201,
    )


async def process_approval(request: "web.Request") -> "web.Response":
    """
    Record an approver's action.

    Request body:
        action: approve, reject or request_changes.
        comment: Comment text (required for reject and request_changes).
        approver: Name of the person acting.
        signature: Optional signature.
        expected_revision: Optional revision the caller based its action on.

    Returns:
        JSON response with the updated approval record and policy status.
    """
    body = await read_json(request, required=("action", "approver"))
    expected = body.get("expected_revision")
    if expected is not None and (isinstance(expected, bool) or not isinstance(expected, int)):
        raise ValidationError("expected_revision must be an integer")

    engine = request.app["engine"]
    policy_id = request.match_info["policy_id"]
    approval = engine.process_approval(
        policy_id,
        request.match_info["approval_id"],
        body["action"],
        body.get("comment", ""),
        body["approver"],
        signature=body.get("signature"),
        expected_revision=expected,
    )
    policy = engine.get_policy(policy_id)

    return respond({
        "approval": approval,
        "policy_status": policy.status,
        "is_complete": approval.is_complete,
    })


async def check_escalations(request: "web.Request") -> "web.Response":
    """
    Evaluate a policy's escalation rules.

    Request body (optional):
        now: ISO-8601 timestamp to evaluate at instead of the current time.

    Returns:
        JSON response with the escalations raised.
    """
    body = await read_json(request, optional=True)
    try:
        now = parse_datetime(body.get("now"))
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp: {body.get('now')}") from e

    engine = request.app["engine"]
    policy_id = request.match_info["policy_id"]
    escalations = engine.check_escalations(policy_id, now)

    return respond({
        "policy_id": policy_id,
        "escalations": escalations,
        "total": len(escalations),
    })
