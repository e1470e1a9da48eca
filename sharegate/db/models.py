"""
SQLAlchemy Database Models
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sharegate.core.clock import utcnow
from sharegate.db.base import Base, TimestampMixin, UUIDMixin
from sharegate.models.enums import AuditAction, Classification, GrantSource, ObjectType


def _enum(enum_cls, length: int = 40) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class Document(UUIDMixin, TimestampMixin, Base):
    """Document SQLAlchemy model"""

    __tablename__ = "documents"

    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    classification: Mapped[Classification] = mapped_column(
        _enum(Classification, 20), nullable=False, default=Classification.PRIVATE
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    versions: Mapped[List["DocumentVersion"]] = relationship(
        "DocumentVersion",
        back_populates="document",
        order_by="DocumentVersion.version_num",
        cascade="all, delete-orphan",
    )


class DocumentVersion(UUIDMixin, Base):
    """Uploaded file version of a document"""

    __tablename__ = "document_versions"
    __table_args__ = (
        UniqueConstraint("document_id", "version_num", name="uq_document_versions_num"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), nullable=False, index=True
    )
    version_num: Mapped[int] = mapped_column(Integer, nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(512), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    sha256: Mapped[str] = mapped_column(String(64), nullable=False)
    watermarked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    document: Mapped["Document"] = relationship("Document", back_populates="versions")


class Grant(UUIDMixin, TimestampMixin, Base):
    """Per (document, grantee) permission record; rows are never deleted"""

    __tablename__ = "document_grants"
    __table_args__ = (
        # At most one live grant per (document, grantee)
        Index(
            "uq_document_grants_live",
            "document_id",
            "grantee_id",
            unique=True,
            postgresql_where=text("revoked_at IS NULL"),
            sqlite_where=text("revoked_at IS NULL"),
        ),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), nullable=False, index=True
    )
    grantee_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    can_view: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_download: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_edit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_share: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    granted_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    source: Mapped[GrantSource] = mapped_column(
        _enum(GrantSource, 10), nullable=False, default=GrantSource.DIRECT
    )
    link_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("share_links.id"), nullable=True, index=True
    )


class ShareLink(UUIDMixin, Base):
    """Token-bearing, time and usage bounded share link"""

    __tablename__ = "share_links"

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), nullable=False, index=True
    )
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    max_uses: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    uses_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    recipients: Mapped[List["ShareLinkRecipient"]] = relationship(
        "ShareLinkRecipient",
        back_populates="link",
        order_by="ShareLinkRecipient.created_at",
    )


class ShareLinkRecipient(UUIDMixin, TimestampMixin, Base):
    """Email-scoped permission template attached to a share link"""

    __tablename__ = "share_link_recipients"
    __table_args__ = (
        UniqueConstraint("link_id", "recipient_email", name="uq_share_link_recipients_email"),
    )

    link_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("share_links.id"), nullable=False, index=True
    )
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    can_view: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_download: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_edit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_share: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_uses: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    uses_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    link: Mapped["ShareLink"] = relationship("ShareLink", back_populates="recipients")


class RestrictedSecret(Base):
    """Hashed password guarding a restricted document"""

    __tablename__ = "restricted_secrets"

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), primary_key=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class PublicLink(Base):
    """Permanent unauthenticated link of a public document"""

    __tablename__ = "public_document_links"

    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), primary_key=True
    )
    token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class AuditEvent(UUIDMixin, Base):
    """Append-only audit log entry"""

    __tablename__ = "audit_events"

    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    action: Mapped[AuditAction] = mapped_column(_enum(AuditAction), nullable=False, index=True)
    object_type: Mapped[ObjectType] = mapped_column(_enum(ObjectType, 20), nullable=False)
    object_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    event_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
