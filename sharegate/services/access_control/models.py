"""
Access Control Service Models
Results returned by the share link engine
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ShareLinkCreated(BaseModel):
    """Outcome of creating a share link; the token is only ever shown here"""

    link_id: uuid.UUID
    token: str
    expires_at: datetime
    max_uses: Optional[int] = None


class ActivationResult(BaseModel):
    """Outcome of a successful activation"""

    document_id: uuid.UUID
    grant_id: uuid.UUID
    link_id: uuid.UUID
    expires_at: Optional[datetime] = None


class RevocationResult(BaseModel):
    """Outcome of revoking a link or recipient"""

    object_id: uuid.UUID
    already_revoked: bool = False
    grants_revoked: int = Field(0, ge=0)
