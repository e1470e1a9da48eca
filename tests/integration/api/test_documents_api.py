"""
Integration Tests for Documents API
Tests for sharegate/api/v1/documents.py and grants.py endpoints
"""

import uuid

import pytest
from httpx import AsyncClient


async def create_document(client: AsyncClient, headers: dict, classification: str = "private", title: str = "Plan"):
    response = await client.post(
        "/api/v1/documents",
        headers=headers,
        json={"title": title, "classification": classification},
    )
    assert response.status_code == 201
    return response.json()


async def upload(client: AsyncClient, headers: dict, document_id: str, pdf: bytes):
    return await client.post(
        f"/api/v1/documents/{document_id}/versions",
        headers=headers,
        files={"file": ("plan.pdf", pdf, "application/pdf")},
    )


class TestDocumentLifecycleAPI:
    """Create, read, update, reclassify and delete"""

    async def test_create_and_get(self, client, owner, headers_for):
        created = await create_document(client, headers_for(owner))

        assert created["classification"] == "private"
        assert created["restricted_password"] is None

        response = await client.get(f"/api/v1/documents/{created['document_id']}", headers=headers_for(owner))
        assert response.status_code == 200
        assert response.json()["access_level"] == "owner"

    async def test_create_restricted_returns_password_once(self, client, owner, headers_for):
        created = await create_document(client, headers_for(owner), classification="restricted")

        assert created["restricted_password"]
        response = await client.get(f"/api/v1/documents/{created['document_id']}", headers=headers_for(owner))
        assert "restricted_password" not in response.json()

    async def test_list_owned(self, client, owner, alice, headers_for):
        await create_document(client, headers_for(owner), title="One")
        await create_document(client, headers_for(owner), title="Two")

        response = await client.get("/api/v1/documents", headers=headers_for(owner))
        assert response.json()["total"] == 2

        response = await client.get("/api/v1/documents", headers=headers_for(alice))
        assert response.json()["total"] == 0

    async def test_stranger_is_forbidden(self, client, owner, alice, headers_for):
        created = await create_document(client, headers_for(owner))

        response = await client.get(f"/api/v1/documents/{created['document_id']}", headers=headers_for(alice))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "authorization_error"

    async def test_update(self, client, owner, headers_for):
        created = await create_document(client, headers_for(owner))

        response = await client.patch(
            f"/api/v1/documents/{created['document_id']}",
            headers=headers_for(owner),
            json={"description": "Quarterly numbers"},
        )

        assert response.status_code == 200
        assert response.json()["description"] == "Quarterly numbers"

    async def test_reclassify_to_public(self, client, owner, headers_for):
        created = await create_document(client, headers_for(owner))

        response = await client.post(
            f"/api/v1/documents/{created['document_id']}/classification",
            headers=headers_for(owner),
            json={"classification": "public"},
        )

        result = response.json()
        assert response.status_code == 200
        assert result["previous_classification"] == "private"
        assert result["public_token"]

        token = await client.get(
            f"/api/v1/documents/{created['document_id']}/public-token", headers=headers_for(owner)
        )
        assert token.json()["data"]["public_token"] == result["public_token"]

    async def test_delete(self, client, owner, headers_for):
        created = await create_document(client, headers_for(owner))

        response = await client.delete(f"/api/v1/documents/{created['document_id']}", headers=headers_for(owner))
        assert response.status_code == 200
        assert response.json()["data"] == {"document_id": created["document_id"]}

        response = await client.get(f"/api/v1/documents/{created['document_id']}", headers=headers_for(owner))
        assert response.status_code == 404


class TestVersionsAndContentAPI:

    async def test_upload_and_fetch_content(self, client, owner, headers_for, sample_pdf):
        created = await create_document(client, headers_for(owner))

        response = await upload(client, headers_for(owner), created["document_id"], sample_pdf)
        assert response.status_code == 201
        version = response.json()
        assert version["version_num"] == 1
        assert version["size_bytes"] == len(sample_pdf)

        response = await client.post(
            f"/api/v1/documents/{created['document_id']}/content",
            headers=headers_for(owner),
            json={"action": "download"},
        )
        content = response.json()
        assert response.status_code == 200
        assert content["url"].startswith("https://storage.test/")
        assert content["refresh_after_seconds"] == 270

    async def test_upload_rejects_non_pdf(self, client, owner, headers_for):
        created = await create_document(client, headers_for(owner))

        response = await client.post(
            f"/api/v1/documents/{created['document_id']}/versions",
            headers=headers_for(owner),
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    async def test_restricted_content_flow(self, client, owner, headers_for, sample_pdf):
        created = await create_document(client, headers_for(owner), classification="restricted")
        document_id = created["document_id"]
        await upload(client, headers_for(owner), document_id, sample_pdf)

        response = await client.post(
            f"/api/v1/documents/{document_id}/content", headers=headers_for(owner), json={"action": "view"}
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "restricted_gate_required"

        response = await client.post(
            f"/api/v1/documents/{document_id}/unlock", headers=headers_for(owner), json={"password": "wrong"}
        )
        assert response.json()["error"]["code"] == "secret_mismatch"

        response = await client.post(
            f"/api/v1/documents/{document_id}/unlock",
            headers=headers_for(owner),
            json={"password": created["restricted_password"]},
        )
        assert response.status_code == 200

        response = await client.post(
            f"/api/v1/documents/{document_id}/content", headers=headers_for(owner), json={"action": "view"}
        )
        assert response.status_code == 200

    async def test_logout_clears_gate_passes(self, client, owner, headers_for, sample_pdf):
        created = await create_document(client, headers_for(owner), classification="restricted")
        document_id = created["document_id"]
        await upload(client, headers_for(owner), document_id, sample_pdf)
        await client.post(
            f"/api/v1/documents/{document_id}/unlock",
            headers=headers_for(owner),
            json={"password": created["restricted_password"]},
        )

        response = await client.post("/api/v1/session/logout", headers=headers_for(owner))
        assert response.json()["data"]["gate_passes_cleared"] == 1

        response = await client.post(
            f"/api/v1/documents/{document_id}/content", headers=headers_for(owner), json={"action": "view"}
        )
        assert response.status_code == 403

    async def test_public_endpoint_needs_no_auth(self, client, owner, headers_for, sample_pdf):
        created = await create_document(client, headers_for(owner), classification="public")
        await upload(client, headers_for(owner), created["document_id"], sample_pdf)

        response = await client.get(f"/api/v1/public/{created['public_token']}")

        assert response.status_code == 200
        assert response.json()["document_id"] == created["document_id"]

    async def test_unknown_public_token(self, client):
        response = await client.get("/api/v1/public/does-not-exist")
        assert response.status_code == 404


class TestGrantsAPI:

    async def test_grant_list_and_revoke(self, client, owner, alice, headers_for):
        created = await create_document(client, headers_for(owner))
        document_id = created["document_id"]

        response = await client.post(
            f"/api/v1/documents/{document_id}/grants",
            headers=headers_for(owner),
            json={"grantee_id": str(alice.id), "can_view": True, "can_download": True},
        )
        assert response.status_code == 201
        assert response.json()["can_download"] is True

        shared = await client.get("/api/v1/documents/shared-with-me", headers=headers_for(alice))
        assert [d["document_id"] for d in shared.json()["results"]] == [document_id]
        assert shared.json()["results"][0]["access_level"] == "download"

        listing = await client.get(f"/api/v1/documents/{document_id}/grants", headers=headers_for(owner))
        assert listing.json()["total"] == 1

        response = await client.delete(
            f"/api/v1/documents/{document_id}/grants/{alice.id}", headers=headers_for(owner)
        )
        assert response.json() == {"revoked": 1}

        response = await client.get(f"/api/v1/documents/{document_id}", headers=headers_for(alice))
        assert response.status_code == 403

    async def test_grant_without_view_is_policy_violation(self, client, owner, alice, headers_for):
        created = await create_document(client, headers_for(owner))

        response = await client.post(
            f"/api/v1/documents/{created['document_id']}/grants",
            headers=headers_for(owner),
            json={"grantee_id": str(alice.id), "can_download": True},
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "policy_violation"

    async def test_non_owner_cannot_list_grants(self, client, owner, alice, headers_for):
        created = await create_document(client, headers_for(owner))

        response = await client.get(
            f"/api/v1/documents/{created['document_id']}/grants", headers=headers_for(alice)
        )

        assert response.status_code == 403

    async def test_invalid_grantee_id(self, client, owner, headers_for):
        created = await create_document(client, headers_for(owner))

        response = await client.delete(
            f"/api/v1/documents/{created['document_id']}/grants/not-a-uuid", headers=headers_for(owner)
        )

        assert response.status_code == 400
