"""
Restricted-Document Gate
Password check required before restricted content is served
"""

import uuid
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sharegate.core.cache import CacheManager
from sharegate.core.config import settings
from sharegate.core.exceptions import (
    ConflictException,
    NotFoundException,
    PolicyViolationException,
    SecretMismatchException,
)
from sharegate.core.logging import get_logger
from sharegate.core.rate_limit import RateLimiter
from sharegate.core.security import generate_strong_password, get_password_hash, verify_password
from sharegate.db.models import Document, RestrictedSecret
from sharegate.models.auth import Principal
from sharegate.models.enums import AuditAction, ObjectType
from sharegate.services.access_control.audit import AuditSink
from sharegate.services.access_control.classification import ClassificationPolicy

logger = get_logger(__name__)


class RestrictedGate:
    """
    Owns restricted-document secrets and per-session gate passes

    A gate pass is single use and lives only in this process's memory,
    keyed by login session. Every content access needs a fresh one.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        audit: AuditSink,
        passes: Optional[CacheManager] = None,
        limiter: Optional[RateLimiter] = None,
    ):
        self._session_maker = session_maker
        self._audit = audit
        self._passes = passes or CacheManager()
        self._limiter = limiter or RateLimiter(
            max_requests=settings.RESTRICTED_VERIFY_MAX_ATTEMPTS,
            window_seconds=settings.RESTRICTED_VERIFY_WINDOW_SECONDS,
            name="restricted_verify",
        )

    @staticmethod
    def _pass_key(session_id: str, document_id: uuid.UUID) -> str:
        return f"{session_id}:{document_id}"

    async def set_secret_in(self, session: AsyncSession, document_id: uuid.UUID) -> str:
        """
        Generate and store the document password

        Returns:
            The plaintext password; it is not retrievable afterwards
        """
        existing = await session.get(RestrictedSecret, document_id)
        if existing is not None:
            raise ConflictException(
                message="Restricted document already has a password",
                details={"document_id": str(document_id)},
            )

        password = generate_strong_password()
        session.add(
            RestrictedSecret(
                document_id=document_id,
                password_hash=get_password_hash(password),
            )
        )
        await session.flush()
        return password

    async def set_secret(self, document_id: uuid.UUID, actor_id: Optional[uuid.UUID] = None) -> str:
        async with self._session_maker() as session:
            password = await self.set_secret_in(session, document_id)
            await session.commit()

        logger.info(f"Restricted password set for document {document_id}")
        await self._audit.record(
            AuditAction.RESTRICTED_SECRET_SET,
            ObjectType.DOCUMENT,
            document_id,
            actor_id=actor_id,
        )
        return password

    @staticmethod
    async def remove_secret_in(session: AsyncSession, document_id: uuid.UUID) -> None:
        await session.execute(
            delete(RestrictedSecret).where(RestrictedSecret.document_id == document_id)
        )

    async def verify(
        self,
        document_id: uuid.UUID,
        supplied_password: str,
        principal: Optional[Principal] = None,
    ) -> bool:
        """
        Check a password against the stored hash

        Attempts are throttled per (principal, document) when a principal
        is given.
        """
        if principal is not None:
            await self._limiter.check(f"{principal.id}:{document_id}")

        async with self._session_maker() as session:
            secret = await session.get(RestrictedSecret, document_id)
        if secret is None:
            raise NotFoundException("Restricted document password")

        return verify_password(supplied_password or "", secret.password_hash)

    async def unlock(
        self,
        principal: Principal,
        document: Document,
        supplied_password: str,
    ) -> None:
        """Verify the password and issue a single-use gate pass for this session"""
        if not ClassificationPolicy.requires_secondary_auth(document.classification):
            raise PolicyViolationException(
                message="Document does not require password verification",
            )

        ok = await self.verify(document.id, supplied_password, principal=principal)
        if not ok:
            logger.warning(f"Restricted password rejected for document {document.id}")
            await self._audit.record(
                AuditAction.RESTRICTED_ACCESS_DENIED,
                ObjectType.DOCUMENT,
                document.id,
                actor_id=principal.id,
            )
            raise SecretMismatchException()

        await self._passes.set(
            self._pass_key(principal.session_id, document.id),
            str(principal.id),
            ttl=settings.RESTRICTED_GATE_PASS_TTL_SECONDS,
        )
        await self._audit.record(
            AuditAction.RESTRICTED_ACCESS_VERIFIED,
            ObjectType.DOCUMENT,
            document.id,
            actor_id=principal.id,
        )

    async def consume_pass(self, principal: Principal, document_id: uuid.UUID) -> bool:
        """Use up the gate pass; False if there was none"""
        holder = await self._passes.pop(self._pass_key(principal.session_id, document_id))
        return holder == str(principal.id)

    async def clear_session(self, session_id: str) -> int:
        """Drop every gate pass of a login session"""
        count = await self._passes.delete_prefix(f"{session_id}:")
        logger.debug(f"Cleared {count} gate passes for session")
        return count
