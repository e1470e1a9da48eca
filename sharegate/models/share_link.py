"""
Share Link Pydantic Models
Request/response schemas for share link endpoints
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from sharegate.core.config import settings
from sharegate.db.models import ShareLink as ShareLinkSQLModel
from sharegate.db.models import ShareLinkRecipient as RecipientSQLModel
from sharegate.models.enums import LinkState
from sharegate.models.permission import PermissionSet


class ShareLinkCreateRequest(BaseModel):
    """
    Share link creation request

    max_uses omitted means unlimited activations until expiry.
    """
    expires_in_minutes: int = Field(60, description="Minutes until the link expires")
    max_uses: Optional[int] = Field(None, description="Total activations allowed")


class ShareLinkCreatedResponse(BaseModel):
    """The token is shown once and never stored in clear"""
    link_id: str
    token: str
    expires_at: datetime
    max_uses: Optional[int]


class ShareLinkResponse(BaseModel):
    link_id: str
    document_id: str
    created_by: str
    state: LinkState
    expires_at: datetime
    max_uses: Optional[int]
    uses_count: int
    revoked_at: Optional[datetime]
    created_at: datetime

    @classmethod
    def from_db_model(cls, link: ShareLinkSQLModel, state: LinkState) -> "ShareLinkResponse":
        return cls(
            link_id=str(link.id),
            document_id=str(link.document_id),
            created_by=str(link.created_by),
            state=state,
            expires_at=link.expires_at,
            max_uses=link.max_uses,
            uses_count=link.uses_count,
            revoked_at=link.revoked_at,
            created_at=link.created_at,
        )


class ShareLinkListResponse(BaseModel):
    total: int
    results: List[ShareLinkResponse]


class RecipientRequest(PermissionSet):
    """Recipient upsert request; one use unless max_uses says otherwise"""
    email: str = Field(..., min_length=3, max_length=255)
    max_uses: Optional[int] = Field(None, ge=1, le=settings.SHARE_LINK_MAX_USES_LIMIT)

    model_config = {"frozen": False}

    def permissions(self) -> PermissionSet:
        return PermissionSet(
            can_view=self.can_view,
            can_download=self.can_download,
            can_edit=self.can_edit,
            can_share=self.can_share,
        )


class RecipientResponse(BaseModel):
    recipient_id: str
    link_id: str
    email: str
    can_view: bool
    can_download: bool
    can_edit: bool
    can_share: bool
    max_uses: Optional[int]
    uses_count: int
    activated_by: Optional[str]
    revoked_at: Optional[datetime]

    @classmethod
    def from_db_model(cls, recipient: RecipientSQLModel) -> "RecipientResponse":
        return cls(
            recipient_id=str(recipient.id),
            link_id=str(recipient.link_id),
            email=recipient.recipient_email,
            can_view=recipient.can_view,
            can_download=recipient.can_download,
            can_edit=recipient.can_edit,
            can_share=recipient.can_share,
            max_uses=recipient.max_uses,
            uses_count=recipient.uses_count,
            activated_by=str(recipient.recipient_user_id) if recipient.recipient_user_id else None,
            revoked_at=recipient.revoked_at,
        )


class RecipientListResponse(BaseModel):
    total: int
    results: List[RecipientResponse]


class ActivateRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=500)


class ActivateResponse(BaseModel):
    document_id: str
    grant_id: str
    link_id: str
    expires_at: Optional[datetime]


class RevocationResponse(BaseModel):
    object_id: str
    already_revoked: bool
    grants_revoked: int
