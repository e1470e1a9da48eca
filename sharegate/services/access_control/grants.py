"""
Grant Store
Per (document, grantee) capability records with expiry and revocation
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sharegate.core.clock import utcnow
from sharegate.core.exceptions import ConflictException
from sharegate.core.logging import get_logger
from sharegate.db.models import Grant
from sharegate.models.enums import AuditAction, GrantSource, ObjectType
from sharegate.models.permission import PermissionSet, check_view_dependency
from sharegate.services.access_control.audit import AuditSink

logger = get_logger(__name__)


class GrantStore:
    """
    Upsert and revoke grants

    Revoked rows are kept as history and never modified again. The public
    methods run in their own transaction and audit; the ``*_in`` variants
    join a caller's transaction and leave auditing to the caller.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        audit: AuditSink,
    ):
        self._session_maker = session_maker
        self._audit = audit

    @staticmethod
    def is_active(grant: Grant, now: Optional[datetime] = None) -> bool:
        """A grant counts only while unrevoked and unexpired"""
        now = now or utcnow()
        if grant.revoked_at is not None:
            return False
        return grant.expires_at is None or grant.expires_at > now

    @asynccontextmanager
    async def _session(self, session: Optional[AsyncSession]) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            return
        async with self._session_maker() as own:
            yield own

    @staticmethod
    async def _live_grant(
        session: AsyncSession,
        document_id: uuid.UUID,
        grantee_id: uuid.UUID,
    ) -> Optional[Grant]:
        result = await session.execute(
            select(Grant).where(
                Grant.document_id == document_id,
                Grant.grantee_id == grantee_id,
                Grant.revoked_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def get_active(
        self,
        document_id: uuid.UUID,
        grantee_id: uuid.UUID,
        session: Optional[AsyncSession] = None,
    ) -> Optional[Grant]:
        """Return the grant only if it is active right now"""
        async with self._session(session) as s:
            grant = await self._live_grant(s, document_id, grantee_id)
        if grant is None or not self.is_active(grant):
            return None
        return grant

    async def upsert_in(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
        grantee_id: uuid.UUID,
        permissions: PermissionSet,
        granted_by: uuid.UUID,
        expires_at: Optional[datetime] = None,
        link_id: Optional[uuid.UUID] = None,
    ) -> Grant:
        """
        Write the live grant of grantee on document

        A direct grant overwrites whatever is live. A link grant overwrites
        only a dead row or one from the same link; an active grant of any
        other origin keeps its provenance and absorbs the link's
        permissions, so revoking the link never takes that access away.
        """
        check_view_dependency(permissions)

        grant = await self._live_grant(session, document_id, grantee_id)
        if grant is None:
            grant = await self._insert_in(
                session, document_id, grantee_id, permissions, granted_by, expires_at, link_id
            )
            if grant is not None:
                return grant
            # Lost the race for the live slot; the winner's row is visible now
            grant = await self._live_grant(session, document_id, grantee_id)
            if grant is None:
                raise ConflictException(
                    message="Grant was changed concurrently, please retry",
                    details={"document_id": str(document_id)},
                )

        if link_id is not None and grant.link_id != link_id and self.is_active(grant):
            self._merge(grant, permissions, expires_at)
        else:
            self._assign(grant, permissions, granted_by, expires_at, link_id)
        await session.flush()
        return grant

    @staticmethod
    def _assign(
        grant: Grant,
        permissions: PermissionSet,
        granted_by: uuid.UUID,
        expires_at: Optional[datetime],
        link_id: Optional[uuid.UUID],
    ) -> None:
        for column, value in permissions.as_columns().items():
            setattr(grant, column, value)
        grant.expires_at = expires_at
        grant.granted_by = granted_by
        grant.source = GrantSource.LINK if link_id else GrantSource.DIRECT
        grant.link_id = link_id

    @staticmethod
    def _merge(grant: Grant, permissions: PermissionSet, expires_at: Optional[datetime]) -> None:
        for column, value in permissions.as_columns().items():
            if value:
                setattr(grant, column, True)
        if grant.expires_at is not None:
            grant.expires_at = None if expires_at is None else max(grant.expires_at, expires_at)

    async def _insert_in(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
        grantee_id: uuid.UUID,
        permissions: PermissionSet,
        granted_by: uuid.UUID,
        expires_at: Optional[datetime],
        link_id: Optional[uuid.UUID],
    ) -> Optional[Grant]:
        """Insert under a savepoint; None if the live unique index rejected it"""
        grant = Grant(id=uuid.uuid4(), document_id=document_id, grantee_id=grantee_id)
        self._assign(grant, permissions, granted_by, expires_at, link_id)
        try:
            async with session.begin_nested():
                session.add(grant)
        except IntegrityError:
            logger.warning(f"Concurrent grant insert on document {document_id} for {grantee_id}")
            return None
        return grant

    async def upsert_grant(
        self,
        document_id: uuid.UUID,
        grantee_id: uuid.UUID,
        permissions: PermissionSet,
        granted_by: uuid.UUID,
        expires_at: Optional[datetime] = None,
        link_id: Optional[uuid.UUID] = None,
    ) -> Grant:
        """Create or update the grant of grantee on document"""
        async with self._session_maker() as session:
            grant = await self.upsert_in(
                session,
                document_id,
                grantee_id,
                permissions,
                granted_by,
                expires_at=expires_at,
                link_id=link_id,
            )
            await session.commit()

        logger.info(f"Granted {permissions.access_level()} on document {document_id} to {grantee_id}")
        await self._audit.record(
            AuditAction.ACCESS_GRANTED,
            ObjectType.GRANT,
            grant.id,
            actor_id=granted_by,
            metadata={
                "document_id": str(document_id),
                "grantee_id": str(grantee_id),
                "permissions": permissions.as_columns(),
                "source": grant.source.value,
            },
        )
        return grant

    async def revoke(
        self,
        document_id: uuid.UUID,
        grantee_id: uuid.UUID,
        actor_id: uuid.UUID,
    ) -> bool:
        """
        Revoke the live grant of grantee on document

        Returns:
            False if there was nothing to revoke
        """
        async with self._session_maker() as session:
            result = await session.execute(
                update(Grant)
                .where(
                    Grant.document_id == document_id,
                    Grant.grantee_id == grantee_id,
                    Grant.revoked_at.is_(None),
                )
                .values(revoked_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            await session.commit()

        revoked = result.rowcount > 0
        if revoked:
            logger.info(f"Revoked grant on document {document_id} from {grantee_id}")
            await self._audit.record(
                AuditAction.ACCESS_REVOKED,
                ObjectType.DOCUMENT,
                document_id,
                actor_id=actor_id,
                metadata={"grantee_id": str(grantee_id)},
            )
        return revoked

    @staticmethod
    async def revoke_all_in(session: AsyncSession, document_id: uuid.UUID) -> int:
        result = await session.execute(
            update(Grant)
            .where(Grant.document_id == document_id, Grant.revoked_at.is_(None))
            .values(revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def revoke_all(self, document_id: uuid.UUID, actor_id: uuid.UUID) -> int:
        """
        Revoke every live grant of a document in one statement

        Database errors propagate; the transaction is rolled back as a whole.
        """
        async with self._session_maker() as session:
            count = await self.revoke_all_in(session, document_id)
            await session.commit()

        logger.info(f"Revoked {count} grants on document {document_id}")
        await self._audit.record(
            AuditAction.ACCESS_REVOKED,
            ObjectType.DOCUMENT,
            document_id,
            actor_id=actor_id,
            metadata={"scope": "all", "count": count},
        )
        return count

    @staticmethod
    async def revoke_by_link_in(
        session: AsyncSession,
        link_id: uuid.UUID,
        grantee_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Revoke grants produced by a share link, optionally for one grantee"""
        stmt = update(Grant).where(Grant.link_id == link_id, Grant.revoked_at.is_(None))
        if grantee_id is not None:
            stmt = stmt.where(Grant.grantee_id == grantee_id)
        result = await session.execute(
            stmt.values(revoked_at=utcnow()).execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def list_for_document(
        self,
        document_id: uuid.UUID,
        include_inactive: bool = False,
    ) -> List[Grant]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(Grant)
                .where(Grant.document_id == document_id)
                .order_by(Grant.created_at.desc())
            )
            grants = list(result.scalars().all())
        if include_inactive:
            return grants
        now = utcnow()
        return [g for g in grants if self.is_active(g, now)]
