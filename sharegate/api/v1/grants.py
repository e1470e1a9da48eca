"""
Grants API Routes
Direct per-user grants on a document
"""

from fastapi import APIRouter, Depends, Query, status

from sharegate.api.dependencies import get_current_principal, get_services, parse_uuid
from sharegate.models.auth import Principal
from sharegate.models.grant import GrantListResponse, GrantRequest, GrantResponse, RevokeResponse
from sharegate.services.container import Services

router = APIRouter()


@router.post(
    "/{document_id}/grants",
    response_model=GrantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def grant_access(
    document_id: str,
    request: GrantRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """
    Grant or update a user's direct access

    Permissions beyond view require view; a grantor can hand on no more
    than they hold.
    """
    doc_uuid = parse_uuid(document_id, "document_id")
    grant = await services.documents.grant_access(
        principal,
        doc_uuid,
        grantee_id=request.grantee_id,
        permissions=request.permissions(),
        expires_at=request.expires_at,
    )
    return GrantResponse.from_db_model(grant)


@router.get("/{document_id}/grants", response_model=GrantListResponse)
async def list_grants(
    document_id: str,
    include_inactive: bool = Query(False, description="Include revoked and expired grants"),
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """List a document's grants (owner only)"""
    doc_uuid = parse_uuid(document_id, "document_id")
    grants = await services.documents.list_grants(principal, doc_uuid, include_inactive=include_inactive)
    return GrantListResponse(
        total=len(grants),
        results=[GrantResponse.from_db_model(g) for g in grants],
    )


@router.delete("/{document_id}/grants/{grantee_id}", response_model=RevokeResponse)
async def revoke_access(
    document_id: str,
    grantee_id: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Revoke one user's grant (owner only); revoking twice is harmless"""
    doc_uuid = parse_uuid(document_id, "document_id")
    grantee_uuid = parse_uuid(grantee_id, "grantee_id")
    revoked = await services.documents.revoke_access(principal, doc_uuid, grantee_uuid)
    return RevokeResponse(revoked=1 if revoked else 0)


@router.delete("/{document_id}/grants", response_model=RevokeResponse)
async def revoke_all_access(
    document_id: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    doc_uuid = parse_uuid(document_id, "document_id")
    count = await services.documents.revoke_all_access(principal, doc_uuid)
    return RevokeResponse(revoked=count)
