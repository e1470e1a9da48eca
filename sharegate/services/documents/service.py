"""
Document Service
Document lifecycle, file versions and content access
"""

import re
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sharegate.core.clock import utcnow
from sharegate.core.config import settings
from sharegate.core.exceptions import (
    AppException,
    AuthorizationException,
    ConflictException,
    NotFoundException,
    PolicyViolationException,
    StorageException,
    ValidationException,
)
from sharegate.core.logging import get_logger
from sharegate.core.security import generate_share_token, sha256_hex
from sharegate.db.models import Document, DocumentVersion, Grant, PublicLink
from sharegate.db.queries import get_document, get_latest_version
from sharegate.models.auth import Principal
from sharegate.models.enums import Action, AuditAction, Classification, ObjectType
from sharegate.models.permission import PermissionSet, check_view_dependency
from sharegate.services.access_control import (
    AccessEvaluator,
    AuditSink,
    ClassificationPolicy,
    GrantStore,
    RestrictedGate,
    ShareLinkEngine,
)
from sharegate.services.documents.models import (
    ContentUrl,
    CreatedDocument,
    ReclassifiedDocument,
    SharedDocument,
)
from sharegate.storage.client import ObjectStorage
from sharegate.storage.transform import FileTransform

logger = get_logger(__name__)

FILENAME_PATTERN = re.compile(r"^[\w\s.-]+$")
MIME_PATTERN = re.compile(
    r"^[a-zA-Z0-9][a-zA-Z0-9!#$&\-\^_+.]*/[a-zA-Z0-9][a-zA-Z0-9!#$&\-\^_+.]*$"
)
TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 2000


class DocumentService:
    """
    Owns documents and their file versions

    Every read or write of content goes through the access evaluator.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        evaluator: AccessEvaluator,
        grants: GrantStore,
        links: ShareLinkEngine,
        gate: RestrictedGate,
        audit: AuditSink,
        storage: ObjectStorage,
        transform: Optional[FileTransform] = None,
    ):
        self._session_maker = session_maker
        self._evaluator = evaluator
        self._grants = grants
        self._links = links
        self._gate = gate
        self._audit = audit
        self._storage = storage
        self._transform = transform

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_title(title: str) -> str:
        title = (title or "").strip()
        if not title:
            raise ValidationException(message="Title is required")
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationException(
                message=f"Title cannot exceed {TITLE_MAX_LENGTH} characters",
            )
        return title

    @staticmethod
    def _clean_description(description: Optional[str]) -> Optional[str]:
        if description is None:
            return None
        if len(description) > DESCRIPTION_MAX_LENGTH:
            raise ValidationException(
                message=f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters",
            )
        return description

    @staticmethod
    def _validate_file(filename: str, mime_type: str, data: bytes) -> None:
        if not filename or len(filename) > 255 or not FILENAME_PATTERN.match(filename):
            raise ValidationException(message="Invalid filename format", details={"filename": filename})
        if not MIME_PATTERN.match(mime_type or ""):
            raise ValidationException(message="Invalid MIME type", details={"mime_type": mime_type})
        if mime_type not in settings.ALLOWED_CONTENT_TYPES:
            raise ValidationException(
                message="Invalid file type",
                details={"content_type": mime_type, "expected": settings.ALLOWED_CONTENT_TYPES},
            )
        if not data:
            raise ValidationException(message="File cannot be empty")
        if len(data) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
            raise ValidationException(
                message="File too large",
                details={"max_size_mb": settings.MAX_UPLOAD_SIZE_MB},
            )

    @staticmethod
    def _ensure_owner(principal: Principal, document: Document) -> None:
        if principal.id != document.owner_id:
            raise AuthorizationException(
                message="Only the document owner can perform this action",
                details={"document_id": str(document.id)},
            )

    @staticmethod
    async def _create_public_link_in(session: AsyncSession, document_id: uuid.UUID) -> str:
        token = generate_share_token()
        session.add(PublicLink(document_id=document_id, token=token))
        await session.flush()
        return token

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_document(
        self,
        principal: Principal,
        title: str,
        description: Optional[str],
        classification: Classification,
    ) -> CreatedDocument:
        """Create a document; restricted ones get their password in the same transaction"""
        title = self._clean_title(title)
        description = self._clean_description(description)

        async with self._session_maker() as session:
            document = Document(
                id=uuid.uuid4(),
                owner_id=principal.id,
                title=title,
                description=description,
                classification=classification,
                is_deleted=False,
            )
            session.add(document)
            await session.flush()

            password = None
            public_token = None
            if ClassificationPolicy.requires_secondary_auth(classification):
                password = await self._gate.set_secret_in(session, document.id)
            if ClassificationPolicy.has_public_link(classification):
                public_token = await self._create_public_link_in(session, document.id)
            await session.commit()

        logger.info(f"Document {document.id} ({classification.value}) created by {principal.id}")
        await self._audit.record(
            AuditAction.DOCUMENT_CREATED,
            ObjectType.DOCUMENT,
            document.id,
            actor_id=principal.id,
            metadata={"classification": classification.value},
        )
        if password is not None:
            await self._audit.record(
                AuditAction.RESTRICTED_SECRET_SET,
                ObjectType.DOCUMENT,
                document.id,
                actor_id=principal.id,
            )
        return CreatedDocument(document=document, restricted_password=password, public_token=public_token)

    async def update_document(
        self,
        principal: Principal,
        document_id: uuid.UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Document:
        """Edit title or description; needs edit"""
        async with self._session_maker() as session:
            document = await get_document(session, document_id)
            await self._evaluator.require(principal, document, Action.EDIT, session=session)
            if title is not None:
                document.title = self._clean_title(title)
            if description is not None:
                document.description = self._clean_description(description)
            await session.commit()

        await self._audit.record(
            AuditAction.DOCUMENT_UPDATED,
            ObjectType.DOCUMENT,
            document_id,
            actor_id=principal.id,
        )
        return document

    async def reclassify(
        self,
        principal: Principal,
        document_id: uuid.UUID,
        classification: Classification,
    ) -> ReclassifiedDocument:
        """
        Change a document's classification (owner only)

        Moving into restricted revokes every grant and link and issues the
        password; moving out of restricted drops it.
        """
        async with self._session_maker() as session:
            document = await get_document(session, document_id, for_update=True)
            self._ensure_owner(principal, document)

            previous = document.classification
            result = ReclassifiedDocument(document=document, previous_classification=previous.value)
            if previous == classification:
                return result

            if classification == Classification.RESTRICTED:
                result.grants_revoked = await self._grants.revoke_all_in(session, document.id)
                result.links_revoked = await self._links.revoke_all_for_document_in(session, document.id)
                result.restricted_password = await self._gate.set_secret_in(session, document.id)
            if previous == Classification.RESTRICTED:
                await self._gate.remove_secret_in(session, document.id)

            if classification == Classification.PUBLIC:
                result.public_token = await self._create_public_link_in(session, document.id)
            if previous == Classification.PUBLIC:
                await session.execute(delete(PublicLink).where(PublicLink.document_id == document.id))

            document.classification = classification
            await session.commit()

        logger.info(
            f"Document {document_id} reclassified {previous.value} -> {classification.value}"
        )
        await self._audit.record(
            AuditAction.DOCUMENT_RECLASSIFIED,
            ObjectType.DOCUMENT,
            document_id,
            actor_id=principal.id,
            metadata={
                "from": previous.value,
                "to": classification.value,
                "grants_revoked": result.grants_revoked,
                "links_revoked": result.links_revoked,
            },
        )
        return result

    async def delete_document(self, principal: Principal, document_id: uuid.UUID) -> None:
        """Soft delete; all grants and links are revoked with it"""
        async with self._session_maker() as session:
            document = await get_document(session, document_id)
            self._ensure_owner(principal, document)

            grants_revoked = await self._grants.revoke_all_in(session, document.id)
            links_revoked = await self._links.revoke_all_for_document_in(session, document.id)
            await session.execute(delete(PublicLink).where(PublicLink.document_id == document.id))
            document.is_deleted = True
            await session.commit()

        await self._audit.record(
            AuditAction.DOCUMENT_DELETED,
            ObjectType.DOCUMENT,
            document_id,
            actor_id=principal.id,
            metadata={"grants_revoked": grants_revoked, "links_revoked": links_revoked},
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_document(self, principal: Principal, document_id: uuid.UUID) -> Document:
        """Document metadata for anyone holding some capability on it"""
        async with self._session_maker() as session:
            document = await get_document(session, document_id)
            level = await self._evaluator.access_level(principal, document, session=session)
        if level == "none":
            raise AuthorizationException(
                message="Access denied",
                details={"document_id": str(document_id)},
            )
        return document

    async def access_level(self, principal: Principal, document: Document) -> str:
        async with self._session_maker() as session:
            return await self._evaluator.access_level(principal, document, session=session)

    async def list_owned(self, principal: Principal) -> List[Document]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(Document)
                .where(Document.owner_id == principal.id, Document.is_deleted.is_(False))
                .order_by(Document.updated_at.desc())
            )
            return list(result.scalars().all())

    async def list_shared_with_me(self, principal: Principal) -> List[SharedDocument]:
        """Documents reachable through active grants (never restricted ones)"""
        now = utcnow()
        async with self._session_maker() as session:
            result = await session.execute(
                select(Grant, Document)
                .join(Document, Document.id == Grant.document_id)
                .where(
                    Grant.grantee_id == principal.id,
                    Grant.revoked_at.is_(None),
                    or_(Grant.expires_at.is_(None), Grant.expires_at > now),
                    Document.is_deleted.is_(False),
                    Document.classification != Classification.RESTRICTED,
                )
                .order_by(Grant.created_at.desc())
            )
            return [SharedDocument(document=doc, grant=grant) for grant, doc in result.all()]

    async def list_versions(self, principal: Principal, document_id: uuid.UUID) -> List[DocumentVersion]:
        async with self._session_maker() as session:
            document = await get_document(session, document_id)
            level = await self._evaluator.access_level(principal, document, session=session)
            if level == "none":
                raise AuthorizationException(
                    message="Access denied",
                    details={"document_id": str(document_id)},
                )
            result = await session.execute(
                select(DocumentVersion)
                .where(DocumentVersion.document_id == document.id)
                .order_by(DocumentVersion.version_num.desc())
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def upload_version(
        self,
        principal: Principal,
        document_id: uuid.UUID,
        filename: str,
        mime_type: str,
        data: bytes,
    ) -> DocumentVersion:
        """
        Store a new file version

        Confidential documents are watermarked first; the recorded size and
        SHA-256 describe the bytes actually stored.
        """
        self._validate_file(filename, mime_type, data)

        async with self._session_maker() as session:
            document = await get_document(session, document_id)
            await self._evaluator.require(principal, document, Action.EDIT, session=session)

            payload = data
            watermarked = False
            if ClassificationPolicy.requires_watermark(document.classification):
                if self._transform is None:
                    raise AppException(
                        message="No watermark transform configured for confidential uploads",
                        code="transform_unavailable",
                    )
                payload = await self._transform.apply(
                    data, mime_type, label=f"{settings.WATERMARK_LABEL} · {principal.email}"
                )
                watermarked = True

            result = await session.execute(
                select(func.coalesce(func.max(DocumentVersion.version_num), 0)).where(
                    DocumentVersion.document_id == document.id
                )
            )
            version_num = result.scalar_one() + 1
            version_id = uuid.uuid4()
            storage_path = f"{document.id}/{version_id}/{filename}"

            await self._storage.put_object(storage_path, payload, mime_type)

            version = DocumentVersion(
                id=version_id,
                document_id=document.id,
                version_num=version_num,
                filename=filename,
                mime_type=mime_type,
                storage_path=storage_path,
                size_bytes=len(payload),
                sha256=sha256_hex(payload),
                watermarked=watermarked,
                created_by=principal.id,
            )
            session.add(version)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                await self._discard_object(storage_path)
                raise ConflictException(
                    message="Another version was uploaded concurrently, please retry",
                    details={"document_id": str(document_id)},
                )
            except Exception:
                await session.rollback()
                await self._discard_object(storage_path)
                raise

        logger.info(f"Version {version_num} of document {document_id} uploaded by {principal.id}")
        await self._audit.record(
            AuditAction.FILE_UPLOADED,
            ObjectType.FILE,
            version.id,
            actor_id=principal.id,
            metadata={
                "document_id": str(document_id),
                "version_num": version_num,
                "size_bytes": version.size_bytes,
                "watermarked": watermarked,
            },
        )
        return version

    async def _discard_object(self, storage_path: str) -> None:
        """Remove an object whose version row never committed"""
        try:
            await self._storage.remove_object(storage_path)
        except StorageException:
            logger.error(f"Orphaned object left in storage: {storage_path}")

    async def _signed(self, document_id: uuid.UUID, version: DocumentVersion) -> ContentUrl:
        ttl = settings.SIGNED_URL_TTL_SECONDS
        url = await self._storage.get_signed_url(version.storage_path, ttl)
        return ContentUrl(
            document_id=document_id,
            version=version,
            url=url,
            expires_at=utcnow() + timedelta(seconds=ttl),
            refresh_after_seconds=max(5, ttl - settings.SIGNED_URL_REFRESH_MARGIN_SECONDS),
        )

    async def unlock(self, principal: Principal, document_id: uuid.UUID, password: str) -> None:
        """Pass the restricted gate for one content access in this session"""
        async with self._session_maker() as session:
            document = await get_document(session, document_id)
        self._ensure_owner(principal, document)
        await self._gate.unlock(principal, document, password)

    async def get_content_url(
        self,
        principal: Principal,
        document_id: uuid.UUID,
        action: Action = Action.VIEW,
        password: Optional[str] = None,
    ) -> ContentUrl:
        """
        Signed URL for the latest version

        For restricted documents pass the password here or unlock first.
        """
        if action not in (Action.VIEW, Action.DOWNLOAD):
            raise ValidationException(
                message="Content access is only defined for view and download",
                details={"action": action.value},
            )
        if password is not None:
            await self.unlock(principal, document_id, password)

        async with self._session_maker() as session:
            document = await get_document(session, document_id)
            await self._evaluator.require(principal, document, action, session=session)
            version = await get_latest_version(session, document.id)
        if version is None:
            raise NotFoundException("Document version")

        content = await self._signed(document.id, version)
        if action == Action.DOWNLOAD:
            await self._audit.record(
                AuditAction.FILE_DOWNLOADED,
                ObjectType.FILE,
                version.id,
                actor_id=principal.id,
                metadata={"document_id": str(document.id), "version_num": version.version_num},
            )
        return content

    async def resolve_public_token(self, token: str) -> ContentUrl:
        """Unauthenticated access to a public document's latest version"""
        token = (token or "").strip()
        if not token:
            raise ValidationException(message="Token is required")

        async with self._session_maker() as session:
            result = await session.execute(select(PublicLink).where(PublicLink.token == token))
            public_link = result.scalar_one_or_none()
            if public_link is None:
                raise NotFoundException("Public link")
            document = await get_document(session, public_link.document_id)
            if not ClassificationPolicy.has_public_link(document.classification):
                raise NotFoundException("Public link")
            version = await get_latest_version(session, document.id)
        if version is None:
            raise NotFoundException("Document version")

        return await self._signed(document.id, version)

    async def get_public_token(self, principal: Principal, document_id: uuid.UUID) -> Optional[str]:
        """Owner lookup of a public document's permanent token"""
        async with self._session_maker() as session:
            document = await get_document(session, document_id)
            self._ensure_owner(principal, document)
            public_link = await session.get(PublicLink, document.id)
            return public_link.token if public_link else None

    # ------------------------------------------------------------------
    # Direct grants
    # ------------------------------------------------------------------

    async def grant_access(
        self,
        principal: Principal,
        document_id: uuid.UUID,
        grantee_id: uuid.UUID,
        permissions: PermissionSet,
        expires_at: Optional[datetime] = None,
    ) -> Grant:
        """
        Grant a user direct access

        The grantor must be able to share the document and can hand on no
        more than they hold themselves.
        """
        check_view_dependency(permissions)
        if not permissions.any():
            raise ValidationException(message="At least one permission must be enabled")
        if grantee_id == principal.id:
            raise ValidationException(message="Cannot grant access to yourself")
        if expires_at is not None and expires_at <= utcnow():
            raise ValidationException(message="Expiry must be in the future")

        # Check and write under the document row lock that reclassify also takes
        async with self._session_maker() as session:
            document = await get_document(session, document_id, for_update=True)
            if grantee_id == document.owner_id:
                raise ValidationException(message="The owner already holds every permission")
            grantable = await self._evaluator.require_share(principal, document, session=session)
            if not permissions.issubset(grantable):
                raise PolicyViolationException(
                    message="Requested permissions exceed what you may grant",
                    details={
                        "requested": permissions.as_columns(),
                        "grantable": grantable.as_columns(),
                    },
                )
            grant = await self._grants.upsert_in(
                session,
                document.id,
                grantee_id,
                permissions,
                granted_by=principal.id,
                expires_at=expires_at,
            )
            await session.commit()

        logger.info(f"Granted {permissions.access_level()} on document {document_id} to {grantee_id}")
        await self._audit.record(
            AuditAction.ACCESS_GRANTED,
            ObjectType.GRANT,
            grant.id,
            actor_id=principal.id,
            metadata={
                "document_id": str(document_id),
                "grantee_id": str(grantee_id),
                "permissions": permissions.as_columns(),
                "source": grant.source.value,
            },
        )
        return grant

    async def revoke_access(
        self,
        principal: Principal,
        document_id: uuid.UUID,
        grantee_id: uuid.UUID,
    ) -> bool:
        """Owner revokes one user's grant; False if none was live"""
        async with self._session_maker() as session:
            document = await get_document(session, document_id, include_deleted=True)
        self._ensure_owner(principal, document)
        return await self._grants.revoke(document_id, grantee_id, actor_id=principal.id)

    async def revoke_all_access(self, principal: Principal, document_id: uuid.UUID) -> int:
        async with self._session_maker() as session:
            document = await get_document(session, document_id, include_deleted=True)
        self._ensure_owner(principal, document)
        return await self._grants.revoke_all(document_id, actor_id=principal.id)

    async def list_grants(
        self,
        principal: Principal,
        document_id: uuid.UUID,
        include_inactive: bool = False,
    ) -> List[Grant]:
        async with self._session_maker() as session:
            document = await get_document(session, document_id, include_deleted=True)
        self._ensure_owner(principal, document)
        return await self._grants.list_for_document(document_id, include_inactive=include_inactive)
