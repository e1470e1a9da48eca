"""
Grant Pydantic Models
Request/response schemas for direct grant endpoints
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from sharegate.db.models import Grant as GrantSQLModel
from sharegate.models.enums import GrantSource
from sharegate.models.permission import PermissionSet


class GrantRequest(PermissionSet):
    """Grant request schema"""
    grantee_id: uuid.UUID
    expires_at: Optional[datetime] = None

    model_config = {"frozen": False}

    def permissions(self) -> PermissionSet:
        return PermissionSet(
            can_view=self.can_view,
            can_download=self.can_download,
            can_edit=self.can_edit,
            can_share=self.can_share,
        )


class GrantResponse(BaseModel):
    grant_id: str
    document_id: str
    grantee_id: str
    can_view: bool
    can_download: bool
    can_edit: bool
    can_share: bool
    source: GrantSource
    link_id: Optional[str]
    granted_by: str
    expires_at: Optional[datetime]
    revoked_at: Optional[datetime]
    created_at: datetime

    @classmethod
    def from_db_model(cls, grant: GrantSQLModel) -> "GrantResponse":
        return cls(
            grant_id=str(grant.id),
            document_id=str(grant.document_id),
            grantee_id=str(grant.grantee_id),
            can_view=grant.can_view,
            can_download=grant.can_download,
            can_edit=grant.can_edit,
            can_share=grant.can_share,
            source=grant.source,
            link_id=str(grant.link_id) if grant.link_id else None,
            granted_by=str(grant.granted_by),
            expires_at=grant.expires_at,
            revoked_at=grant.revoked_at,
            created_at=grant.created_at,
        )


class GrantListResponse(BaseModel):
    total: int
    results: List[GrantResponse]


class RevokeResponse(BaseModel):
    revoked: int
