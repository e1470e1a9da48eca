"""
Document Service Models
Results returned by the document service
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sharegate.db.models import Document, DocumentVersion, Grant


@dataclass
class CreatedDocument:
    """New document; the password is only ever available here"""

    document: Document
    restricted_password: Optional[str] = None
    public_token: Optional[str] = None


@dataclass
class ReclassifiedDocument:
    document: Document
    previous_classification: str
    restricted_password: Optional[str] = None
    public_token: Optional[str] = None
    grants_revoked: int = 0
    links_revoked: int = 0


@dataclass
class SharedDocument:
    """A document reachable through an active grant"""

    document: Document
    grant: Grant


@dataclass
class ContentUrl:
    """Short-lived URL for a file version; refresh before expires_at"""

    document_id: uuid.UUID
    version: DocumentVersion
    url: str
    expires_at: datetime
    refresh_after_seconds: int
