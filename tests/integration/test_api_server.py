"""
Integration tests for the HTTP API server.

This module tests the complete HTTP API including:
- Template listing and policy generation
- Redlines and field filling
- The approval workflow and escalations
- Document mapping and framework updates
- Error responses and the standing disclaimer
"""

from datetime import timedelta
from typing import Any

import pytest

from policycraft.exceptions import LEGAL_DISCLAIMER, SHORT_DISCLAIMER
from policycraft.models.base import utc_now

pytestmark = pytest.mark.integration

K12_PROFILE = {
    "organizationName": "Springfield USD",
    "organizationType": "K12",
    "state": "CA",
    "studentAgeMin": 10,
}


@pytest.fixture
async def client(aiohttp_client: Any, server_app: Any) -> Any:
    """Create a test client for the API."""
    return await aiohttp_client(server_app)


async def create_policy(client: Any, **extra: Any) -> dict[str, Any]:
    """Generate an AI acceptable use policy through the API."""
    body = {"template_id": "ai-acceptable-use", "profile": K12_PROFILE, **extra}
    resp = await client.post("/v1/policies", json=body)
    assert resp.status == 201
    return (await resp.json())["policy"]


# =============================================================================
# Health and Template Tests
# =============================================================================


class TestHealthAndTemplates:
    """Tests for health and template endpoints."""

    async def test_health(self, client: Any) -> None:
        """Test the health endpoint reports loaded reference data."""
        resp = await client.get("/v1/health")
        assert resp.status == 200
        data = await resp.json()
        assert data["status"] == "healthy"
        assert data["templates"] == 2
        assert data["frameworks"] == 4
        assert "X-Request-ID" in resp.headers

    async def test_request_id_echoed(self, client: Any) -> None:
        """Test a caller-supplied request id is echoed back."""
        resp = await client.get("/v1/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"

    async def test_list_templates(self, client: Any) -> None:
        """Test templates are listed with workflow availability."""
        resp = await client.get("/v1/templates")
        assert resp.status == 200
        data = await resp.json()
        assert data["total"] == 2
        assert [t["id"] for t in data["templates"]] == ["ai-acceptable-use", "data-privacy"]
        assert all(t["has_workflow"] for t in data["templates"])
        assert data["disclaimer"] == SHORT_DISCLAIMER


# =============================================================================
# Policy Tests
# =============================================================================


class TestPolicies:
    """Tests for policy endpoints."""

    async def test_generate_policy(self, client: Any) -> None:
        """Test generating a policy returns the stored draft."""
        resp = await client.post(
            "/v1/policies",
            json={
                "template_id": "ai-acceptable-use",
                "profile": K12_PROFILE,
                "jurisdiction": ["federal", "CA"],
                "options": {"org_id": "district-42"},
            },
        )
        assert resp.status == 201
        data = await resp.json()
        policy = data["policy"]
        assert policy["status"] == "draft"
        assert policy["version"] == "1.0"
        assert policy["org_id"] == "district-42"
        assert policy["state_requirements"] == ["CA"]
        assert set(policy["unresolved_fields"]) == {"policy_owner", "effective_date"}
        assert policy["content"].startswith(LEGAL_DISCLAIMER)
        assert data["disclaimer"] == SHORT_DISCLAIMER

    async def test_get_and_list(self, client: Any) -> None:
        """Test stored policies can be fetched and listed."""
        policy = await create_policy(client, options={"org_id": "a"})
        await create_policy(client, options={"org_id": "b"})

        resp = await client.get(f"/v1/policies/{policy['id']}")
        assert resp.status == 200
        assert (await resp.json())["policy"]["id"] == policy["id"]

        resp = await client.get("/v1/policies", params={"org_id": "a"})
        data = await resp.json()
        assert data["total"] == 1
        assert data["policies"][0]["id"] == policy["id"]

    async def test_unknown_policy(self, client: Any) -> None:
        """Test unknown policies return 404 with the disclaimer."""
        resp = await client.get("/v1/policies/missing")
        assert resp.status == 404
        data = await resp.json()
        assert data["error"]["type"] == "NotFoundError"
        assert data["error"]["request_id"]
        assert data["disclaimer"] == SHORT_DISCLAIMER

    async def test_unknown_template(self, client: Any) -> None:
        """Test unknown templates return 422."""
        resp = await client.post(
            "/v1/policies", json={"template_id": "nope", "profile": K12_PROFILE}
        )
        assert resp.status == 422
        data = await resp.json()
        assert data["error"]["type"] == "TemplateNotFoundError"
        assert "ai-acceptable-use" in data["error"]["details"]["available"]

    async def test_invalid_json(self, client: Any) -> None:
        """Test malformed bodies return 400."""
        resp = await client.post(
            "/v1/policies", data="{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status == 400
        assert (await resp.json())["error"]["type"] == "ValidationError"

    async def test_missing_fields(self, client: Any) -> None:
        """Test required fields are enforced."""
        resp = await client.post("/v1/policies", json={"template_id": "ai-acceptable-use"})
        assert resp.status == 400
        assert (await resp.json())["error"]["details"]["fields"] == ["profile"]

    async def test_invalid_profile(self, client: Any) -> None:
        """Test unknown organization types return 400."""
        resp = await client.post(
            "/v1/policies",
            json={"template_id": "ai-acceptable-use", "profile": {"organizationType": "Club"}},
        )
        assert resp.status == 400

    async def test_redline_preview_and_apply(self, client: Any) -> None:
        """Test redlines can be previewed and then applied."""
        policy = await create_policy(client)
        updated = policy["content"] + "## Appendix\nExtra guidance.\n"
        body = {"updated_content": updated, "reason": "Add appendix", "author": "jdoe"}

        resp = await client.post(f"/v1/policies/{policy['id']}/redlines", json=body)
        assert resp.status == 200
        data = await resp.json()
        assert data["applied"] is False
        assert data["version"] == "1.0"
        assert [d["change_type"] for d in data["diffs"]] == ["addition"]
        assert data["diffs"][0]["changed_by"] == "jdoe"

        resp = await client.post(
            f"/v1/policies/{policy['id']}/redlines", json={**body, "apply": True}
        )
        data = await resp.json()
        assert data["applied"] is True
        assert data["version"] == "1.1"

    async def test_fill_fields(self, client: Any) -> None:
        """Test fillable fields can be supplied."""
        policy = await create_policy(client)
        resp = await client.post(
            f"/v1/policies/{policy['id']}/fields",
            json={"values": {"policy_owner": "CIO", "effective_date": "2026-08-01"}},
        )
        assert resp.status == 200
        data = await resp.json()
        assert data["policy"]["unresolved_fields"] == []
        assert data["policy"]["version"] == "1.1"

    async def test_fill_unknown_field(self, client: Any) -> None:
        """Test unknown fields are rejected."""
        policy = await create_policy(client)
        resp = await client.post(
            f"/v1/policies/{policy['id']}/fields", json={"values": {"budget_owner": "CFO"}}
        )
        assert resp.status == 400


# =============================================================================
# Approval Workflow Tests
# =============================================================================


class TestApprovalWorkflow:
    """Tests for the approval workflow endpoints."""

    async def test_full_approval(self, client: Any) -> None:
        """Test a policy is approved once every role signs off in order."""
        policy = await create_policy(client)
        resp = await client.post(f"/v1/policies/{policy['id']}/approvals")
        assert resp.status == 201
        data = await resp.json()
        assert data["status"] == "review"
        approvals = data["approvals"]
        assert [a["approver_role"] for a in approvals] == [
            "superintendent",
            "counsel",
            "cio",
            "privacy_officer",
        ]

        for approval in approvals:
            resp = await client.post(
                f"/v1/policies/{policy['id']}/approvals/{approval['id']}",
                json={"action": "approve", "approver": approval["approver_role"]},
            )
            assert resp.status == 200

        data = await resp.json()
        assert data["policy_status"] == "approved"
        assert data["is_complete"] is True

    async def test_out_of_order(self, client: Any) -> None:
        """Test acting out of order returns 400."""
        policy = await create_policy(client)
        resp = await client.post(f"/v1/policies/{policy['id']}/approvals")
        approvals = (await resp.json())["approvals"]

        resp = await client.post(
            f"/v1/policies/{policy['id']}/approvals/{approvals[1]['id']}",
            json={"action": "approve", "approver": "counsel"},
        )
        assert resp.status == 400
        assert (await resp.json())["error"]["details"]["waiting_on"] == ["superintendent"]

    async def test_reject(self, client: Any) -> None:
        """Test a rejection rejects the policy."""
        policy = await create_policy(client)
        resp = await client.post(f"/v1/policies/{policy['id']}/approvals")
        approvals = (await resp.json())["approvals"]

        resp = await client.post(
            f"/v1/policies/{policy['id']}/approvals/{approvals[0]['id']}",
            json={"action": "reject", "approver": "superintendent", "comment": "Too broad"},
        )
        data = await resp.json()
        assert data["policy_status"] == "rejected"
        assert data["approval"]["action"] == "reject"

    async def test_revision_conflict(self, client: Any) -> None:
        """Test a stale expected revision returns 409."""
        policy = await create_policy(client)
        resp = await client.post(f"/v1/policies/{policy['id']}/approvals")
        approval = (await resp.json())["approvals"][0]
        url = f"/v1/policies/{policy['id']}/approvals/{approval['id']}"

        resp = await client.post(
            url,
            json={
                "action": "request_changes",
                "approver": "superintendent",
                "comment": "Clarify scope",
                "expected_revision": 0,
            },
        )
        assert resp.status == 200

        resp = await client.post(
            url,
            json={"action": "approve", "approver": "superintendent", "expected_revision": 0},
        )
        assert resp.status == 409
        assert (await resp.json())["error"]["type"] == "RevisionConflictError"

    async def test_double_initiate(self, client: Any) -> None:
        """Test submitting a policy under review returns 400."""
        policy = await create_policy(client)
        await client.post(f"/v1/policies/{policy['id']}/approvals")
        resp = await client.post(f"/v1/policies/{policy['id']}/approvals")
        assert resp.status == 400

    async def test_escalations(self, client: Any) -> None:
        """Test overdue approvals escalate."""
        policy = await create_policy(client, options={"initiate_approval": True})

        resp = await client.post(f"/v1/policies/{policy['id']}/escalations")
        assert (await resp.json())["total"] == 0

        later = (utc_now() + timedelta(days=6)).isoformat()
        resp = await client.post(
            f"/v1/policies/{policy['id']}/escalations", json={"now": later}
        )
        data = await resp.json()
        assert data["total"] == 1
        assert data["escalations"][0]["rule"] == "no_response"
        assert data["escalations"][0]["escalate_to"] == "superintendent"

    async def test_invalid_escalation_time(self, client: Any) -> None:
        """Test malformed timestamps return 400."""
        policy = await create_policy(client)
        resp = await client.post(
            f"/v1/policies/{policy['id']}/escalations", json={"now": "yesterday"}
        )
        assert resp.status == 400


# =============================================================================
# Mapping Tests
# =============================================================================


class TestMapping:
    """Tests for document mapping and framework updates."""

    async def test_map_document(self, client: Any) -> None:
        """Test a document is mapped onto the applicable frameworks."""
        resp = await client.post(
            "/v1/documents/map",
            json={
                "id": "doc-1",
                "text": (
                    "## Legal and Compliance\n"
                    "Staff must follow every legal and regulatory requirement.\n"
                    "This policy ensures FERPA protection of student privacy.\n"
                ),
                "state_tags": ["ca"],
            },
        )
        assert resp.status == 200
        result = (await resp.json())["result"]
        assert result["document_id"] == "doc-1"
        assert result["detected_states"] == ["CA"]
        assert set(result["coverage"]) == {"NIST_AI_RMF", "ED_GUIDANCE", "STATE_CA"}
        assert [m["control_id"] for m in result["mappings"]] == ["GOVERN-1.1", "ED-AI-1"]
        assert result["gaps"][0]["control_id"] == "CA-AB2273-1"
        assert result["recommendations"][0]["id"] == "STATE_CA-immediate_action"

    async def test_map_empty_document(self, client: Any) -> None:
        """Test documents without text return 400."""
        resp = await client.post("/v1/documents/map", json={"id": "doc-1", "text": ""})
        assert resp.status == 400
        assert (await resp.json())["error"]["type"] == "MappingError"

    async def test_map_unknown_framework(self, client: Any) -> None:
        """Test unknown framework tags return 400."""
        resp = await client.post(
            "/v1/documents/map", json={"text": "policy", "framework_tags": ["ISO_42001"]}
        )
        assert resp.status == 400

    async def test_framework_update(self, client: Any) -> None:
        """Test framework updates revise auto-updating policies."""
        policy = await create_policy(client, options={"auto_update_enabled": True})
        body = {
            "framework_id": "NIST_AI_RMF",
            "version": "1.1",
            "description": "Generative AI profile",
            "affected_controls": ["GOVERN-1.1"],
        }

        resp = await client.post("/v1/frameworks/updates", json=body)
        assert resp.status == 200
        data = await resp.json()
        assert data["total"] == 1
        assert data["results"][0]["policy_id"] == policy["id"]
        assert data["results"][0]["status"] == "pending_review"

        resp = await client.post("/v1/frameworks/updates", json=body)
        assert (await resp.json())["total"] == 0

        resp = await client.get(f"/v1/policies/{policy['id']}")
        updated = (await resp.json())["policy"]
        assert updated["status"] == "review"
        assert updated["version"] == "1.1"

    async def test_framework_update_missing_version(self, client: Any) -> None:
        """Test framework updates need a version."""
        resp = await client.post("/v1/frameworks/updates", json={"framework_id": "NIST_AI_RMF"})
        assert resp.status == 400
