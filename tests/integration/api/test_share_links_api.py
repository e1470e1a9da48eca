"""
Integration Tests for Share Links API
Tests for sharegate/api/v1/share_links.py endpoints
"""

import pytest
from httpx import AsyncClient


@pytest.fixture
async def document_id(client: AsyncClient, owner, headers_for) -> str:
    response = await client.post(
        "/api/v1/documents",
        headers=headers_for(owner),
        json={"title": "Roadmap", "classification": "private"},
    )
    return response.json()["document_id"]


async def create_link(client, headers, document_id, **body):
    response = await client.post(f"/api/v1/documents/{document_id}/share-links", headers=headers, json=body)
    assert response.status_code == 201
    return response.json()


class TestShareLinksAPI:

    async def test_full_flow(self, client, owner, alice, headers_for, document_id):
        link = await create_link(client, headers_for(owner), document_id, expires_in_minutes=60, max_uses=1)

        response = await client.put(
            f"/api/v1/share-links/{link['link_id']}/recipients",
            headers=headers_for(owner),
            json={"email": "A@X.com", "can_view": True},
        )
        assert response.status_code == 200
        assert response.json()["email"] == "a@x.com"

        response = await client.post(
            "/api/v1/share-links/activate", headers=headers_for(alice), json={"token": link["token"]}
        )
        assert response.status_code == 200
        assert response.json()["document_id"] == document_id

        response = await client.get(f"/api/v1/documents/{document_id}", headers=headers_for(alice))
        assert response.json()["access_level"] == "view"

        response = await client.post(
            "/api/v1/share-links/activate", headers=headers_for(alice), json={"token": link["token"]}
        )
        assert response.status_code == 410
        assert response.json()["error"]["code"] == "link_exhausted"

    async def test_wrong_recipient(self, client, owner, bob, headers_for, document_id):
        link = await create_link(client, headers_for(owner), document_id, expires_in_minutes=60)
        await client.put(
            f"/api/v1/share-links/{link['link_id']}/recipients",
            headers=headers_for(owner),
            json={"email": "a@x.com", "can_view": True},
        )

        response = await client.post(
            "/api/v1/share-links/activate", headers=headers_for(bob), json={"token": link["token"]}
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "email_not_authorized"

    async def test_unknown_token(self, client, alice, headers_for):
        response = await client.post(
            "/api/v1/share-links/activate", headers=headers_for(alice), json={"token": "nope"}
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "link_not_found"

    async def test_recipient_without_view(self, client, owner, headers_for, document_id):
        link = await create_link(client, headers_for(owner), document_id, expires_in_minutes=60)

        response = await client.put(
            f"/api/v1/share-links/{link['link_id']}/recipients",
            headers=headers_for(owner),
            json={"email": "a@x.com", "can_download": True},
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "policy_violation"

    async def test_revoke_cascades(self, client, owner, bob, headers_for, document_id):
        link = await create_link(client, headers_for(owner), document_id, expires_in_minutes=60)
        await client.put(
            f"/api/v1/share-links/{link['link_id']}/recipients",
            headers=headers_for(owner),
            json={"email": "b@y.com", "can_view": True},
        )
        await client.post("/api/v1/share-links/activate", headers=headers_for(bob), json={"token": link["token"]})

        response = await client.delete(f"/api/v1/share-links/{link['link_id']}", headers=headers_for(owner))
        assert response.json()["grants_revoked"] == 1

        response = await client.get(f"/api/v1/documents/{document_id}", headers=headers_for(bob))
        assert response.status_code == 403

        response = await client.get(f"/api/v1/share-links/{link['link_id']}", headers=headers_for(owner))
        assert response.json()["state"] == "revoked"

    async def test_recipient_revoke(self, client, owner, alice, headers_for, document_id):
        link = await create_link(client, headers_for(owner), document_id, expires_in_minutes=60)
        recipient = await client.put(
            f"/api/v1/share-links/{link['link_id']}/recipients",
            headers=headers_for(owner),
            json={"email": "a@x.com", "can_view": True},
        )
        await client.post("/api/v1/share-links/activate", headers=headers_for(alice), json={"token": link["token"]})

        response = await client.delete(
            f"/api/v1/share-links/recipients/{recipient.json()['recipient_id']}", headers=headers_for(owner)
        )
        assert response.json()["grants_revoked"] == 1

        listing = await client.get(f"/api/v1/share-links/{link['link_id']}/recipients", headers=headers_for(owner))
        assert listing.json()["results"][0]["revoked_at"] is not None

    async def test_list_links(self, client, owner, headers_for, document_id):
        await create_link(client, headers_for(owner), document_id, expires_in_minutes=60)
        await create_link(client, headers_for(owner), document_id, expires_in_minutes=120, max_uses=5)

        response = await client.get(f"/api/v1/documents/{document_id}/share-links", headers=headers_for(owner))

        assert response.json()["total"] == 2
        assert {link["state"] for link in response.json()["results"]} == {"active"}
        assert all("token" not in link for link in response.json()["results"])

    async def test_invalid_expiry(self, client, owner, headers_for, document_id):
        response = await client.post(
            f"/api/v1/documents/{document_id}/share-links",
            headers=headers_for(owner),
            json={"expires_in_minutes": 1},
        )

        assert response.status_code == 400

    async def test_restricted_document(self, client, owner, headers_for):
        created = await client.post(
            "/api/v1/documents",
            headers=headers_for(owner),
            json={"title": "Secret", "classification": "restricted"},
        )

        response = await client.post(
            f"/api/v1/documents/{created.json()['document_id']}/share-links",
            headers=headers_for(owner),
            json={"expires_in_minutes": 60},
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "policy_violation"
