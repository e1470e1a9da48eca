"""
Domain Enumerations
Closed vocabularies shared by database models, services and API schemas
"""

from enum import Enum


class Classification(str, Enum):
    """Document sensitivity tag"""

    PUBLIC = "public"
    PRIVATE = "private"
    CONFIDENTIAL = "confidential"
    RESTRICTED = "restricted"


class Action(str, Enum):
    """Capability a principal may exercise on a document"""

    VIEW = "view"
    DOWNLOAD = "download"
    EDIT = "edit"
    SHARE = "share"

    @property
    def column(self) -> str:
        """Grant column holding this capability"""
        return f"can_{self.value}"


class GrantSource(str, Enum):
    """How a grant came to exist"""

    DIRECT = "direct"
    LINK = "link"


class LinkState(str, Enum):
    """Share link lifecycle state"""

    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    EXPIRED = "expired"
    REVOKED = "revoked"


class AuditAction(str, Enum):
    """Closed set of audited actions"""

    DOCUMENT_CREATED = "document_created"
    DOCUMENT_UPDATED = "document_updated"
    DOCUMENT_DELETED = "document_deleted"
    DOCUMENT_RECLASSIFIED = "document_reclassified"
    ACCESS_GRANTED = "access_granted"
    ACCESS_REVOKED = "access_revoked"
    SHARE_LINK_CREATED = "share_link_created"
    SHARE_LINK_ACTIVATED = "share_link_activated"
    SHARE_LINK_REVOKED = "share_link_revoked"
    SHARE_LINK_RECIPIENT_UPSERTED = "share_link_recipient_upserted"
    SHARE_LINK_RECIPIENT_REVOKED = "share_link_recipient_revoked"
    RESTRICTED_SECRET_SET = "restricted_secret_set"
    RESTRICTED_ACCESS_VERIFIED = "restricted_access_verified"
    RESTRICTED_ACCESS_DENIED = "restricted_access_denied"
    FILE_UPLOADED = "file_uploaded"
    FILE_DOWNLOADED = "file_downloaded"


class ObjectType(str, Enum):
    """Kind of object an audit event refers to"""

    DOCUMENT = "document"
    SHARE_LINK = "share_link"
    RECIPIENT = "recipient"
    GRANT = "grant"
    FILE = "file"
