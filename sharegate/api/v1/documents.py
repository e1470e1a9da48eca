"""
Documents API Routes
Document lifecycle, file versions and content access
"""

from fastapi import APIRouter, Depends, File, UploadFile, status

from sharegate.api.dependencies import get_current_principal, get_services, parse_uuid
from sharegate.core.logging import get_logger
from sharegate.models.auth import Principal
from sharegate.models.common import SuccessResponse
from sharegate.models.document import (
    ContentRequest,
    ContentUrlResponse,
    DocumentCreatedResponse,
    DocumentCreateRequest,
    DocumentListResponse,
    DocumentResponse,
    DocumentUpdateRequest,
    DocumentVersionResponse,
    ReclassifyRequest,
    ReclassifyResponse,
    SharedDocumentListResponse,
    SharedDocumentResponse,
    UnlockRequest,
)
from sharegate.models.permission import PermissionSet
from sharegate.services.container import Services

logger = get_logger(__name__)
router = APIRouter()


@router.post("", response_model=DocumentCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    request: DocumentCreateRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """
    Create a document

    - **classification**: public, private, confidential or restricted
    - restricted documents return their password once in this response
    """
    created = await services.documents.create_document(
        principal,
        title=request.title,
        description=request.description,
        classification=request.classification,
    )
    base = DocumentResponse.from_db_model(created.document, access_level="owner")
    return DocumentCreatedResponse(
        **base.model_dump(),
        restricted_password=created.restricted_password,
        public_token=created.public_token,
    )


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """List documents owned by the current user"""
    documents = await services.documents.list_owned(principal)
    return DocumentListResponse(
        total=len(documents),
        results=[DocumentResponse.from_db_model(d, access_level="owner") for d in documents],
    )


@router.get("/shared-with-me", response_model=SharedDocumentListResponse)
async def list_shared_with_me(
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """List documents shared with the current user through active grants"""
    shared = await services.documents.list_shared_with_me(principal)
    results = []
    for item in shared:
        base = DocumentResponse.from_db_model(item.document)
        results.append(
            SharedDocumentResponse(
                **base.model_dump(exclude={"access_level"}),
                access_level=_grant_level(item.grant),
                grant_expires_at=item.grant.expires_at,
                can_view=item.grant.can_view,
                can_download=item.grant.can_download,
                can_edit=item.grant.can_edit,
                can_share=item.grant.can_share,
            )
        )
    return SharedDocumentListResponse(total=len(results), results=results)


def _grant_level(grant) -> str:
    return PermissionSet.from_row(grant).access_level()


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Get document details"""
    doc_uuid = parse_uuid(document_id, "document_id")
    document = await services.documents.get_document(principal, doc_uuid)
    level = await services.documents.access_level(principal, document)
    return DocumentResponse.from_db_model(document, access_level=level)


@router.patch("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: str,
    request: DocumentUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Edit title or description (requires edit)"""
    doc_uuid = parse_uuid(document_id, "document_id")
    document = await services.documents.update_document(
        principal, doc_uuid, title=request.title, description=request.description
    )
    level = await services.documents.access_level(principal, document)
    return DocumentResponse.from_db_model(document, access_level=level)


@router.post("/{document_id}/classification", response_model=ReclassifyResponse)
async def reclassify_document(
    document_id: str,
    request: ReclassifyRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """
    Change classification (owner only)

    Moving to restricted revokes every grant and link and returns a new password.
    """
    doc_uuid = parse_uuid(document_id, "document_id")
    result = await services.documents.reclassify(principal, doc_uuid, request.classification)
    base = DocumentResponse.from_db_model(result.document, access_level="owner")
    return ReclassifyResponse(
        **base.model_dump(),
        previous_classification=result.previous_classification,
        restricted_password=result.restricted_password,
        public_token=result.public_token,
        grants_revoked=result.grants_revoked,
        links_revoked=result.links_revoked,
    )


@router.delete("/{document_id}", response_model=SuccessResponse)
async def delete_document(
    document_id: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Soft delete a document (owner only)"""
    doc_uuid = parse_uuid(document_id, "document_id")
    await services.documents.delete_document(principal, doc_uuid)
    logger.info(f"Document deleted: {doc_uuid} by {principal.id}")
    return SuccessResponse(message="Document deleted successfully", data={"document_id": str(doc_uuid)})


@router.get("/{document_id}/public-token", response_model=SuccessResponse)
async def get_public_token(
    document_id: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Permanent public token of a public document (owner only)"""
    doc_uuid = parse_uuid(document_id, "document_id")
    token = await services.documents.get_public_token(principal, doc_uuid)
    return SuccessResponse(message="Public token", data={"public_token": token})


@router.post(
    "/{document_id}/versions",
    response_model=DocumentVersionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_version(
    document_id: str,
    file: UploadFile = File(...),
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """
    Upload a new file version (requires edit)

    - **file**: PDF file (max MAX_UPLOAD_SIZE_MB)
    - confidential documents are watermarked before storage
    """
    doc_uuid = parse_uuid(document_id, "document_id")
    content = await file.read()
    version = await services.documents.upload_version(
        principal,
        doc_uuid,
        filename=file.filename or "",
        mime_type=file.content_type or "",
        data=content,
    )
    return DocumentVersionResponse.from_db_model(version)


@router.get("/{document_id}/versions", response_model=list[DocumentVersionResponse])
async def list_versions(
    document_id: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    doc_uuid = parse_uuid(document_id, "document_id")
    versions = await services.documents.list_versions(principal, doc_uuid)
    return [DocumentVersionResponse.from_db_model(v) for v in versions]


@router.post("/{document_id}/unlock", response_model=SuccessResponse)
async def unlock_document(
    document_id: str,
    request: UnlockRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Verify a restricted document's password for one content access"""
    doc_uuid = parse_uuid(document_id, "document_id")
    await services.documents.unlock(principal, doc_uuid, request.password)
    return SuccessResponse(message="Document unlocked", data={"document_id": str(doc_uuid)})


@router.post("/{document_id}/content", response_model=ContentUrlResponse)
async def get_content(
    document_id: str,
    request: ContentRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Short-lived signed URL for the latest version (view or download)"""
    doc_uuid = parse_uuid(document_id, "document_id")
    content = await services.documents.get_content_url(
        principal, doc_uuid, action=request.action, password=request.password
    )
    return ContentUrlResponse.from_result(content)
