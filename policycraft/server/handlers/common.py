"""
Request and response helpers shared by the API handlers.
"""

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aiohttp import web

from policycraft.exceptions import SHORT_DISCLAIMER, ValidationError
from policycraft.server.middleware import json_dumps


async def read_json(
    request: "web.Request",
    required: tuple[str, ...] = (),
    optional: bool = False,
) -> dict[str, Any]:
    """
    Read a JSON object request body.

    Args:
        request: The incoming request.
        required: Keys that must be present and non-empty.
        optional: Treat an empty body as an empty object.

    Raises:
        ValidationError: If the body is not a JSON object or lacks a
            required key.
    """
    if optional and not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e

    if body is None and optional:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    missing = [k for k in required if body.get(k) in (None, "")]
    if missing:
        raise ValidationError(f"Missing fields: {missing}", {"fields": missing})
    return body


def respond(data: dict[str, Any], status: int = 200) -> "web.Response":
    """JSON response carrying the standing disclaimer."""
    from aiohttp import web

    payload = dict(data)
    payload["disclaimer"] = SHORT_DISCLAIMER
    return web.json_response(payload, status=status, dumps=json_dumps)
