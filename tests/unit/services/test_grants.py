"""
Unit Tests for the Grant Store
Runs against a per-test SQLite database
"""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from sqlalchemy import select

from sharegate.core.clock import utcnow
from sharegate.core.exceptions import PolicyViolationException
from sharegate.db.models import AuditEvent, Grant
from sharegate.models.enums import AuditAction, Classification, GrantSource
from sharegate.models.permission import PermissionSet
from sharegate.services.access_control import GrantStore

VIEW = PermissionSet(can_view=True)
VIEW_DOWNLOAD = PermissionSet(can_view=True, can_download=True)


@pytest.fixture
async def document(services, owner):
    created = await services.documents.create_document(owner, "Plan", None, Classification.PRIVATE)
    return created.document


async def audit_actions(session_maker):
    async with session_maker() as session:
        result = await session.execute(select(AuditEvent.action).order_by(AuditEvent.occurred_at))
        return [a for a in result.scalars().all()]


class TestIsActive:
    """Active means unrevoked and unexpired"""

    def test_live_grant(self):
        grant = SimpleNamespace(revoked_at=None, expires_at=None)
        assert GrantStore.is_active(grant)

    @pytest.mark.parametrize("revoked", [None, "revoked"])
    def test_expired_is_inactive_regardless_of_revocation(self, revoked):
        now = utcnow()
        grant = SimpleNamespace(
            revoked_at=now if revoked else None,
            expires_at=now - timedelta(seconds=1),
        )
        assert not GrantStore.is_active(grant, now)

    def test_expiry_boundary_is_inactive(self):
        now = utcnow()
        assert not GrantStore.is_active(SimpleNamespace(revoked_at=None, expires_at=now), now)


class TestUpsertGrant:

    async def test_upsert_creates_grant(self, services, document, owner, alice):
        grant = await services.grants.upsert_grant(document.id, alice.id, VIEW, granted_by=owner.id)

        assert grant.can_view and not grant.can_download
        assert grant.source == GrantSource.DIRECT
        active = await services.grants.get_active(document.id, alice.id)
        assert active.id == grant.id

    async def test_upsert_overwrites_live_grant(self, services, document, owner, alice):
        first = await services.grants.upsert_grant(document.id, alice.id, VIEW, granted_by=owner.id)
        second = await services.grants.upsert_grant(document.id, alice.id, VIEW_DOWNLOAD, granted_by=owner.id)

        assert first.id == second.id
        active = await services.grants.get_active(document.id, alice.id)
        assert active.can_download

    async def test_upsert_after_revoke_inserts_new_row(self, services, document, owner, alice, session_maker):
        first = await services.grants.upsert_grant(document.id, alice.id, VIEW, granted_by=owner.id)
        await services.grants.revoke(document.id, alice.id, actor_id=owner.id)
        second = await services.grants.upsert_grant(document.id, alice.id, VIEW, granted_by=owner.id)

        assert second.id != first.id
        async with session_maker() as session:
            old = await session.get(Grant, first.id)
            assert old.revoked_at is not None

    async def test_view_dependency_enforced(self, services, document, owner, alice):
        with pytest.raises(PolicyViolationException):
            await services.grants.upsert_grant(
                document.id, alice.id, PermissionSet(can_edit=True), granted_by=owner.id
            )

    async def test_upsert_is_audited(self, services, document, owner, alice, session_maker):
        await services.grants.upsert_grant(document.id, alice.id, VIEW, granted_by=owner.id)
        assert AuditAction.ACCESS_GRANTED in await audit_actions(session_maker)


class TestUpsertFromLink:
    """Link grants never rewrite an active grant of another origin"""

    @pytest.fixture
    async def link(self, services, owner, document):
        return await services.links.create(owner, document.id, expires_in_minutes=60)

    async def test_merges_into_direct_grant(self, services, document, owner, alice, link):
        direct = await services.grants.upsert_grant(document.id, alice.id, VIEW, granted_by=owner.id)

        merged = await services.grants.upsert_grant(
            document.id,
            alice.id,
            VIEW_DOWNLOAD,
            granted_by=owner.id,
            expires_at=link.expires_at,
            link_id=link.link_id,
        )

        assert merged.id == direct.id
        assert merged.can_download
        assert merged.source == GrantSource.DIRECT
        assert merged.link_id is None
        assert merged.expires_at is None

    async def test_merge_keeps_later_expiry(self, services, document, owner, alice, link):
        await services.grants.upsert_grant(
            document.id,
            alice.id,
            VIEW,
            granted_by=owner.id,
            expires_at=utcnow() + timedelta(minutes=5),
        )

        merged = await services.grants.upsert_grant(
            document.id, alice.id, VIEW, granted_by=owner.id, expires_at=link.expires_at, link_id=link.link_id
        )

        assert merged.expires_at == link.expires_at
        assert merged.source == GrantSource.DIRECT

    async def test_merge_never_drops_permissions(self, services, document, owner, alice, link):
        await services.grants.upsert_grant(document.id, alice.id, PermissionSet.full(), granted_by=owner.id)

        merged = await services.grants.upsert_grant(
            document.id, alice.id, VIEW, granted_by=owner.id, expires_at=link.expires_at, link_id=link.link_id
        )

        assert PermissionSet.from_row(merged) == PermissionSet.full()

    async def test_expired_direct_grant_is_replaced(self, services, document, owner, alice, link):
        await services.grants.upsert_grant(
            document.id,
            alice.id,
            VIEW_DOWNLOAD,
            granted_by=owner.id,
            expires_at=utcnow() - timedelta(minutes=1),
        )

        grant = await services.grants.upsert_grant(
            document.id, alice.id, VIEW, granted_by=owner.id, expires_at=link.expires_at, link_id=link.link_id
        )

        assert grant.source == GrantSource.LINK
        assert grant.link_id == link.link_id
        assert not grant.can_download

    async def test_direct_grant_overwrites_link_grant(self, services, document, owner, alice, link):
        await services.grants.upsert_grant(
            document.id,
            alice.id,
            VIEW_DOWNLOAD,
            granted_by=owner.id,
            expires_at=link.expires_at,
            link_id=link.link_id,
        )

        grant = await services.grants.upsert_grant(document.id, alice.id, VIEW, granted_by=owner.id)

        assert grant.source == GrantSource.DIRECT
        assert grant.link_id is None
        assert grant.expires_at is None
        assert not grant.can_download


class TestConcurrentInsert:

    async def test_lost_insert_falls_back_to_live_row(self, services, document, owner, alice, session_maker):
        existing = await services.grants.upsert_grant(document.id, alice.id, VIEW, granted_by=owner.id)
        live_grant = GrantStore._live_grant
        calls = []

        async def stale_first_read(session, document_id, grantee_id):
            # The first read misses the row another transaction just committed
            calls.append(document_id)
            if len(calls) == 1:
                return None
            return await live_grant(session, document_id, grantee_id)

        with patch.object(GrantStore, "_live_grant", side_effect=stale_first_read):
            grant = await services.grants.upsert_grant(
                document.id, alice.id, VIEW_DOWNLOAD, granted_by=owner.id
            )

        assert len(calls) == 2
        assert grant.id == existing.id
        assert grant.can_download
        async with session_maker() as session:
            result = await session.execute(
                select(Grant).where(Grant.document_id == document.id, Grant.revoked_at.is_(None))
            )
            assert len(result.scalars().all()) == 1


class TestRevoke:

    async def test_revoke(self, services, document, owner, alice):
        await services.grants.upsert_grant(document.id, alice.id, VIEW, granted_by=owner.id)

        assert await services.grants.revoke(document.id, alice.id, actor_id=owner.id) is True
        assert await services.grants.get_active(document.id, alice.id) is None

    async def test_revoke_is_idempotent(self, services, document, owner, alice):
        await services.grants.upsert_grant(document.id, alice.id, VIEW, granted_by=owner.id)
        await services.grants.revoke(document.id, alice.id, actor_id=owner.id)

        assert await services.grants.revoke(document.id, alice.id, actor_id=owner.id) is False

    async def test_revoke_all(self, services, document, owner, alice, bob):
        await services.grants.upsert_grant(document.id, alice.id, VIEW, granted_by=owner.id)
        await services.grants.upsert_grant(document.id, bob.id, VIEW, granted_by=owner.id)

        assert await services.grants.revoke_all(document.id, actor_id=owner.id) == 2
        assert await services.grants.list_for_document(document.id) == []
        assert len(await services.grants.list_for_document(document.id, include_inactive=True)) == 2

    async def test_expired_grant_not_active(self, services, document, owner, alice):
        await services.grants.upsert_grant(
            document.id,
            alice.id,
            VIEW_DOWNLOAD,
            granted_by=owner.id,
            expires_at=utcnow() - timedelta(minutes=1),
        )
        assert await services.grants.get_active(document.id, alice.id) is None
