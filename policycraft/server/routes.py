"""
API route definitions for PolicyCraft server.

Routes are organized by resource type (templates, policies, approvals,
documents, frameworks).
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web


def setup_routes(app: "web.Application") -> None:
    """
    Set up all API routes on the application.

    Args:
        app: The aiohttp application instance.
    """
    from policycraft.server.handlers import (
        approval_handlers,
        health_handlers,
        mapping_handlers,
        policy_handlers,
    )

    app.router.add_get("/v1/health", health_handlers.health_check, name="health")

    # Templates and policies
    app.router.add_get("/v1/templates", policy_handlers.list_templates, name="templates_list")
    app.router.add_get("/v1/policies", policy_handlers.list_policies, name="policies_list")
    app.router.add_post("/v1/policies", policy_handlers.generate_policy, name="policies_generate")
    app.router.add_get(
        "/v1/policies/{policy_id}", policy_handlers.get_policy, name="policies_get"
    )
    app.router.add_post(
        "/v1/policies/{policy_id}/redlines",
        policy_handlers.generate_redlines,
        name="policies_redlines",
    )
    app.router.add_post(
        "/v1/policies/{policy_id}/fields",
        policy_handlers.fill_fields,
        name="policies_fields",
    )

    # Approval workflow
    app.router.add_post(
        "/v1/policies/{policy_id}/approvals",
        approval_handlers.initiate_approval,
        name="approvals_initiate",
    )
    app.router.add_post(
        "/v1/policies/{policy_id}/approvals/{approval_id}",
        approval_handlers.process_approval,
        name="approvals_process",
    )
    app.router.add_post(
        "/v1/policies/{policy_id}/escalations",
        approval_handlers.check_escalations,
        name="approvals_escalations",
    )

    # Framework mapping
    app.router.add_post("/v1/documents/map", mapping_handlers.map_document, name="documents_map")
    app.router.add_post(
        "/v1/frameworks/updates",
        mapping_handlers.apply_framework_update,
        name="frameworks_updates",
    )
