"""
Share Link Engine
Issues time and usage bounded links and turns activations into grants
"""

import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sharegate.core.clock import utcnow
from sharegate.core.config import settings
from sharegate.core.exceptions import (
    AuthorizationException,
    EmailNotAuthorizedException,
    LinkExhaustedException,
    LinkExpiredException,
    LinkRevokedException,
    NotFoundException,
    PolicyViolationException,
    RecipientExhaustedException,
    TokenNotFoundException,
    ValidationException,
)
from sharegate.core.logging import get_logger
from sharegate.core.rate_limit import RateLimiter
from sharegate.core.security import generate_share_token, hash_token
from sharegate.db.models import Document, ShareLink, ShareLinkRecipient
from sharegate.db.queries import get_document
from sharegate.models.auth import Principal
from sharegate.models.enums import AuditAction, Classification, LinkState, ObjectType
from sharegate.models.permission import PermissionSet, check_view_dependency
from sharegate.services.access_control.audit import AuditSink
from sharegate.services.access_control.evaluator import AccessEvaluator
from sharegate.services.access_control.grants import GrantStore
from sharegate.services.access_control.models import (
    ActivationResult,
    RevocationResult,
    ShareLinkCreated,
)

logger = get_logger(__name__)

MAX_TOKEN_LENGTH = 500


def normalize_email(email: str) -> str:
    """Validate an email address and return it trimmed and lower-cased"""
    candidate = (email or "").strip()
    if not candidate:
        raise ValidationException(message="recipient_email is required")
    try:
        validated = validate_email(candidate, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationException(message="Invalid email format", details={"error": str(e)})
    return validated.normalized.lower()


class ShareLinkEngine:
    """
    Share link lifecycle: Active -> Exhausted | Expired | Revoked

    Terminal states are never left. Usage counters are only ever moved by
    conditional UPDATEs, so concurrent activations cannot overshoot a cap.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        grants: GrantStore,
        evaluator: AccessEvaluator,
        audit: AuditSink,
        limiter: Optional[RateLimiter] = None,
    ):
        self._session_maker = session_maker
        self._grants = grants
        self._evaluator = evaluator
        self._audit = audit
        self._limiter = limiter

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @staticmethod
    def state(link: ShareLink, now: Optional[datetime] = None) -> LinkState:
        """Current lifecycle state; revoked beats expired beats exhausted"""
        now = now or utcnow()
        if link.revoked_at is not None:
            return LinkState.REVOKED
        if link.expires_at <= now:
            return LinkState.EXPIRED
        if link.max_uses is not None and link.uses_count >= link.max_uses:
            return LinkState.EXHAUSTED
        return LinkState.ACTIVE

    @classmethod
    def ensure_active(cls, link: ShareLink, now: Optional[datetime] = None) -> None:
        """Raise the lifecycle error matching a terminal link"""
        state = cls.state(link, now)
        details = {"link_id": str(link.id)}
        if state == LinkState.REVOKED:
            raise LinkRevokedException(details=details)
        if state == LinkState.EXPIRED:
            raise LinkExpiredException(details=details)
        if state == LinkState.EXHAUSTED:
            raise LinkExhaustedException(details=details)

    @staticmethod
    def _validate_limits(expires_in_minutes: int, max_uses: Optional[int]) -> None:
        if not (settings.SHARE_LINK_MIN_MINUTES <= expires_in_minutes <= settings.SHARE_LINK_MAX_MINUTES):
            raise ValidationException(
                message="Invalid link expiration",
                details={
                    "expires_in_minutes": expires_in_minutes,
                    "min": settings.SHARE_LINK_MIN_MINUTES,
                    "max": settings.SHARE_LINK_MAX_MINUTES,
                },
            )
        if max_uses is not None and not (1 <= max_uses <= settings.SHARE_LINK_MAX_USES_LIMIT):
            raise ValidationException(
                message="Invalid max uses",
                details={"max_uses": max_uses, "min": 1, "max": settings.SHARE_LINK_MAX_USES_LIMIT},
            )

    @staticmethod
    async def _get_link(session: AsyncSession, link_id: uuid.UUID) -> ShareLink:
        link = await session.get(ShareLink, link_id, populate_existing=True)
        if link is None:
            raise NotFoundException("Share link")
        return link

    @staticmethod
    def _ensure_manager(principal: Principal, link: ShareLink, document: Document) -> None:
        if principal.id not in (link.created_by, document.owner_id):
            raise AuthorizationException(
                message="Only the link creator or document owner can manage this link",
                details={"link_id": str(link.id)},
            )

    # ------------------------------------------------------------------
    # Create / recipients
    # ------------------------------------------------------------------

    async def create(
        self,
        principal: Principal,
        document_id: uuid.UUID,
        expires_in_minutes: int,
        max_uses: Optional[int] = None,
    ) -> ShareLinkCreated:
        """Issue a new share link for a document"""
        self._validate_limits(expires_in_minutes, max_uses)

        token = generate_share_token()
        async with self._session_maker() as session:
            document = await get_document(session, document_id)
            await self._evaluator.require_share(principal, document, session=session)

            link = ShareLink(
                id=uuid.uuid4(),
                document_id=document.id,
                created_by=principal.id,
                token_hash=hash_token(token),
                expires_at=utcnow() + timedelta(minutes=expires_in_minutes),
                max_uses=max_uses,
                uses_count=0,
            )
            session.add(link)
            await session.commit()

        logger.info(f"Share link {link.id} created for document {document_id} by {principal.id}")
        await self._audit.record(
            AuditAction.SHARE_LINK_CREATED,
            ObjectType.SHARE_LINK,
            link.id,
            actor_id=principal.id,
            metadata={
                "document_id": str(document_id),
                "expires_at": link.expires_at.isoformat(),
                "max_uses": max_uses,
            },
        )
        return ShareLinkCreated(
            link_id=link.id,
            token=token,
            expires_at=link.expires_at,
            max_uses=max_uses,
        )

    async def add_recipient(
        self,
        principal: Principal,
        link_id: uuid.UUID,
        email: str,
        permissions: PermissionSet,
        max_uses: Optional[int] = None,
    ) -> ShareLinkRecipient:
        """
        Attach (or update) an email-scoped permission template

        Re-adding an email overwrites its permissions and cap; a recipient
        that had been revoked is restored.
        """
        check_view_dependency(permissions)
        if not permissions.any():
            raise ValidationException(message="At least one permission must be enabled")
        if max_uses is None:
            max_uses = settings.SHARE_RECIPIENT_DEFAULT_MAX_USES
        if not (1 <= max_uses <= settings.SHARE_LINK_MAX_USES_LIMIT):
            raise ValidationException(
                message="Invalid max uses",
                details={"max_uses": max_uses, "min": 1, "max": settings.SHARE_LINK_MAX_USES_LIMIT},
            )
        email = normalize_email(email)

        async with self._session_maker() as session:
            link = await self._get_link(session, link_id)
            document = await get_document(session, link.document_id)
            self._ensure_manager(principal, link, document)
            self.ensure_active(link)

            # Bounded by the authority of whoever issued the link
            grantable = await self._evaluator.grantable_permissions(
                link.created_by, document, session=session
            )
            if not permissions.issubset(grantable):
                raise PolicyViolationException(
                    message="Recipient permissions exceed what the link creator may grant",
                    details={
                        "requested": permissions.as_columns(),
                        "grantable": grantable.as_columns(),
                    },
                )

            result = await session.execute(
                select(ShareLinkRecipient).where(
                    ShareLinkRecipient.link_id == link.id,
                    ShareLinkRecipient.recipient_email == email,
                )
            )
            recipient = result.scalar_one_or_none()
            if recipient is None:
                recipient = ShareLinkRecipient(
                    id=uuid.uuid4(),
                    link_id=link.id,
                    recipient_email=email,
                    uses_count=0,
                )
                session.add(recipient)

            for column, value in permissions.as_columns().items():
                setattr(recipient, column, value)
            recipient.max_uses = max_uses
            recipient.revoked_at = None
            await session.commit()

        await self._audit.record(
            AuditAction.SHARE_LINK_RECIPIENT_UPSERTED,
            ObjectType.RECIPIENT,
            recipient.id,
            actor_id=principal.id,
            metadata={
                "link_id": str(link_id),
                "permissions": permissions.as_columns(),
                "max_uses": max_uses,
            },
        )
        return recipient

    async def revoke_recipient(
        self,
        principal: Principal,
        recipient_id: uuid.UUID,
    ) -> RevocationResult:
        """Revoke one recipient and the grant it obtained through the link"""
        async with self._session_maker() as session:
            recipient = await session.get(ShareLinkRecipient, recipient_id, populate_existing=True)
            if recipient is None:
                raise NotFoundException("Share link recipient")
            link = await self._get_link(session, recipient.link_id)
            document = await get_document(session, link.document_id, include_deleted=True)
            self._ensure_manager(principal, link, document)

            already_revoked = recipient.revoked_at is not None
            if not already_revoked:
                recipient.revoked_at = utcnow()

            grants_revoked = 0
            if recipient.recipient_user_id is not None:
                grants_revoked = await self._grants.revoke_by_link_in(
                    session, link.id, grantee_id=recipient.recipient_user_id
                )
            await session.commit()

        if not already_revoked:
            await self._audit.record(
                AuditAction.SHARE_LINK_RECIPIENT_REVOKED,
                ObjectType.RECIPIENT,
                recipient_id,
                actor_id=principal.id,
                metadata={"link_id": str(link.id), "grants_revoked": grants_revoked},
            )
        return RevocationResult(
            object_id=recipient_id,
            already_revoked=already_revoked,
            grants_revoked=grants_revoked,
        )

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    async def activate(self, token: str, principal: Principal) -> ActivationResult:
        """
        Redeem a share link for the authenticated principal

        Raises one of TokenNotFound, LinkRevoked, LinkExpired, LinkExhausted,
        EmailNotAuthorized or RecipientExhausted; never a generic denial.
        """
        token = (token or "").strip()
        if not token or len(token) > MAX_TOKEN_LENGTH:
            raise ValidationException(message="Token is required")
        if self._limiter is not None:
            await self._limiter.check(f"activate:{principal.id}")

        now = utcnow()
        async with self._session_maker() as session:
            result = await session.execute(
                select(ShareLink).where(ShareLink.token_hash == hash_token(token))
            )
            link = result.scalar_one_or_none()
            if link is None:
                raise TokenNotFoundException()
            self.ensure_active(link, now)

            result = await session.execute(
                select(ShareLinkRecipient).where(
                    ShareLinkRecipient.link_id == link.id,
                    func.lower(ShareLinkRecipient.recipient_email) == principal.email,
                    ShareLinkRecipient.revoked_at.is_(None),
                )
            )
            recipient = result.scalar_one_or_none()
            if recipient is None:
                raise EmailNotAuthorizedException()
            if recipient.max_uses is not None and recipient.uses_count >= recipient.max_uses:
                raise RecipientExhaustedException()

            document = await get_document(session, link.document_id)
            if document.classification == Classification.RESTRICTED:
                raise PolicyViolationException(message="Restricted documents cannot be shared")

            permissions = PermissionSet.from_row(recipient)

            # Compare-and-set on both counters; either failing aborts the unit
            link_cas = await session.execute(
                update(ShareLink)
                .where(
                    ShareLink.id == link.id,
                    ShareLink.revoked_at.is_(None),
                    ShareLink.expires_at > now,
                    or_(ShareLink.max_uses.is_(None), ShareLink.uses_count < ShareLink.max_uses),
                )
                .values(uses_count=ShareLink.uses_count + 1)
                .execution_options(synchronize_session=False)
            )
            if link_cas.rowcount != 1:
                await session.rollback()
                await self._raise_link_failure(session, link.id, now)

            recipient_cas = await session.execute(
                update(ShareLinkRecipient)
                .where(
                    ShareLinkRecipient.id == recipient.id,
                    ShareLinkRecipient.revoked_at.is_(None),
                    or_(
                        ShareLinkRecipient.max_uses.is_(None),
                        ShareLinkRecipient.uses_count < ShareLinkRecipient.max_uses,
                    ),
                )
                .values(
                    uses_count=ShareLinkRecipient.uses_count + 1,
                    recipient_user_id=principal.id,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if recipient_cas.rowcount != 1:
                await session.rollback()
                await self._raise_recipient_failure(session, recipient.id)

            grant = await self._grants.upsert_in(
                session,
                document.id,
                principal.id,
                permissions,
                granted_by=link.created_by,
                expires_at=link.expires_at,
                link_id=link.id,
            )
            await session.commit()

        logger.info(f"Share link {link.id} activated by {principal.id} for document {document.id}")
        await self._audit.record(
            AuditAction.SHARE_LINK_ACTIVATED,
            ObjectType.SHARE_LINK,
            link.id,
            actor_id=principal.id,
            metadata={"document_id": str(document.id), "recipient_id": str(recipient.id)},
        )
        await self._audit.record(
            AuditAction.ACCESS_GRANTED,
            ObjectType.GRANT,
            grant.id,
            actor_id=link.created_by,
            metadata={
                "document_id": str(document.id),
                "grantee_id": str(principal.id),
                "permissions": permissions.as_columns(),
                "source": grant.source.value,
                "link_id": str(link.id),
                "merged": grant.link_id != link.id,
            },
        )
        return ActivationResult(
            document_id=document.id,
            grant_id=grant.id,
            link_id=link.id,
            expires_at=grant.expires_at,
        )

    async def _raise_link_failure(self, session: AsyncSession, link_id: uuid.UUID, now: datetime) -> None:
        link = await self._get_link(session, link_id)
        self.ensure_active(link, now)
        # Lost the race for the last use
        raise LinkExhaustedException(details={"link_id": str(link_id)})

    @staticmethod
    async def _raise_recipient_failure(session: AsyncSession, recipient_id: uuid.UUID) -> None:
        recipient = await session.get(ShareLinkRecipient, recipient_id, populate_existing=True)
        if recipient is None or recipient.revoked_at is not None:
            raise EmailNotAuthorizedException()
        raise RecipientExhaustedException()

    # ------------------------------------------------------------------
    # Revocation / listing
    # ------------------------------------------------------------------

    async def revoke(self, principal: Principal, link_id: uuid.UUID) -> RevocationResult:
        """Revoke a link and every grant it produced"""
        async with self._session_maker() as session:
            link = await self._get_link(session, link_id)
            document = await get_document(session, link.document_id, include_deleted=True)
            self._ensure_manager(principal, link, document)

            result = await session.execute(
                update(ShareLink)
                .where(ShareLink.id == link.id, ShareLink.revoked_at.is_(None))
                .values(revoked_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            already_revoked = result.rowcount == 0
            grants_revoked = await self._grants.revoke_by_link_in(session, link.id)
            await session.commit()

        if not already_revoked:
            logger.info(f"Share link {link_id} revoked, {grants_revoked} grants cascaded")
            await self._audit.record(
                AuditAction.SHARE_LINK_REVOKED,
                ObjectType.SHARE_LINK,
                link_id,
                actor_id=principal.id,
                metadata={"document_id": str(document.id), "grants_revoked": grants_revoked},
            )
        return RevocationResult(
            object_id=link_id,
            already_revoked=already_revoked,
            grants_revoked=grants_revoked,
        )

    @staticmethod
    async def revoke_all_for_document_in(session: AsyncSession, document_id: uuid.UUID) -> int:
        result = await session.execute(
            update(ShareLink)
            .where(ShareLink.document_id == document_id, ShareLink.revoked_at.is_(None))
            .values(revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def get_link(self, principal: Principal, link_id: uuid.UUID) -> ShareLink:
        async with self._session_maker() as session:
            link = await self._get_link(session, link_id)
            document = await get_document(session, link.document_id, include_deleted=True)
            self._ensure_manager(principal, link, document)
            return link

    async def list_links(self, principal: Principal, document_id: uuid.UUID) -> List[ShareLink]:
        """All links of the document for its owner, own links for anyone else"""
        async with self._session_maker() as session:
            document = await get_document(session, document_id)
            stmt = select(ShareLink).where(ShareLink.document_id == document.id)
            if principal.id != document.owner_id:
                stmt = stmt.where(ShareLink.created_by == principal.id)
            result = await session.execute(stmt.order_by(ShareLink.created_at.desc()))
            return list(result.scalars().all())

    async def list_recipients(self, principal: Principal, link_id: uuid.UUID) -> List[ShareLinkRecipient]:
        async with self._session_maker() as session:
            link = await self._get_link(session, link_id)
            document = await get_document(session, link.document_id, include_deleted=True)
            self._ensure_manager(principal, link, document)
            result = await session.execute(
                select(ShareLinkRecipient)
                .where(ShareLinkRecipient.link_id == link.id)
                .order_by(ShareLinkRecipient.created_at.desc())
            )
            return list(result.scalars().all())
