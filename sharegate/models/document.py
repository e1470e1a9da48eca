"""
Document Pydantic Models
Request/response schemas for document endpoints
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from sharegate.db.models import Document as DocumentSQLModel
from sharegate.db.models import DocumentVersion as DocumentVersionSQLModel
from sharegate.models.enums import Action, Classification
from sharegate.services.documents.models import ContentUrl


class DocumentCreateRequest(BaseModel):
    """Document creation request schema"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    classification: Classification = Classification.PRIVATE

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v


class DocumentUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)


class ReclassifyRequest(BaseModel):
    classification: Classification


class UnlockRequest(BaseModel):
    """Restricted document password"""
    password: str = Field(..., min_length=1, max_length=256)


class DocumentResponse(BaseModel):
    """Document response schema"""
    document_id: str
    owner_id: str
    title: str
    description: Optional[str]
    classification: Classification
    access_level: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db_model(cls, doc: DocumentSQLModel, access_level: Optional[str] = None) -> "DocumentResponse":
        """Create DocumentResponse from database model"""
        return cls(
            document_id=str(doc.id),
            owner_id=str(doc.owner_id),
            title=doc.title,
            description=doc.description,
            classification=doc.classification,
            access_level=access_level,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        )


class DocumentCreatedResponse(DocumentResponse):
    """
    Creation response

    restricted_password is returned exactly once; it cannot be recovered.
    """
    restricted_password: Optional[str] = None
    public_token: Optional[str] = None


class ReclassifyResponse(DocumentResponse):
    previous_classification: Classification
    restricted_password: Optional[str] = None
    public_token: Optional[str] = None
    grants_revoked: int = 0
    links_revoked: int = 0


class DocumentListResponse(BaseModel):
    """Document list response schema"""
    total: int
    results: List[DocumentResponse]


class SharedDocumentResponse(DocumentResponse):
    grant_expires_at: Optional[datetime] = None
    can_view: bool
    can_download: bool
    can_edit: bool
    can_share: bool


class SharedDocumentListResponse(BaseModel):
    total: int
    results: List[SharedDocumentResponse]


class DocumentVersionResponse(BaseModel):
    """File version metadata"""
    version_id: str
    document_id: str
    version_num: int
    filename: str
    mime_type: str
    size_bytes: int
    sha256: str
    watermarked: bool
    created_by: str
    created_at: datetime

    @classmethod
    def from_db_model(cls, version: DocumentVersionSQLModel) -> "DocumentVersionResponse":
        return cls(
            version_id=str(version.id),
            document_id=str(version.document_id),
            version_num=version.version_num,
            filename=version.filename,
            mime_type=version.mime_type,
            size_bytes=version.size_bytes,
            sha256=version.sha256,
            watermarked=version.watermarked,
            created_by=str(version.created_by),
            created_at=version.created_at,
        )


class ContentRequest(BaseModel):
    """Content URL request; password is only needed for restricted documents"""
    action: Action = Action.VIEW
    password: Optional[str] = Field(None, min_length=1, max_length=256)


class ContentUrlResponse(BaseModel):
    """Signed content URL; clients should refresh after refresh_after_seconds"""
    document_id: str
    version_num: int
    filename: str
    url: str
    expires_at: datetime
    refresh_after_seconds: int

    @classmethod
    def from_result(cls, content: ContentUrl) -> "ContentUrlResponse":
        return cls(
            document_id=str(content.document_id),
            version_num=content.version.version_num,
            filename=content.version.filename,
            url=content.url,
            expires_at=content.expires_at,
            refresh_after_seconds=content.refresh_after_seconds,
        )
