"""
Share Links API Routes
Issue, manage and redeem share links
"""

from fastapi import APIRouter, Depends, status

from sharegate.api.dependencies import get_current_principal, get_services, parse_uuid
from sharegate.core.logging import get_logger
from sharegate.models.auth import Principal
from sharegate.models.share_link import (
    ActivateRequest,
    ActivateResponse,
    RecipientListResponse,
    RecipientRequest,
    RecipientResponse,
    RevocationResponse,
    ShareLinkCreatedResponse,
    ShareLinkCreateRequest,
    ShareLinkListResponse,
    ShareLinkResponse,
)
from sharegate.services.access_control import ShareLinkEngine
from sharegate.services.container import Services

logger = get_logger(__name__)

# Mounted under /documents
document_router = APIRouter()
# Mounted under /share-links
router = APIRouter()


@document_router.post(
    "/{document_id}/share-links",
    response_model=ShareLinkCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_share_link(
    document_id: str,
    request: ShareLinkCreateRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """
    Create a share link

    - **expires_in_minutes**: lifetime of the link
    - **max_uses**: total activations, omitted for unlimited
    """
    doc_uuid = parse_uuid(document_id, "document_id")
    created = await services.links.create(
        principal,
        doc_uuid,
        expires_in_minutes=request.expires_in_minutes,
        max_uses=request.max_uses,
    )
    return ShareLinkCreatedResponse(
        link_id=str(created.link_id),
        token=created.token,
        expires_at=created.expires_at,
        max_uses=created.max_uses,
    )


@document_router.get("/{document_id}/share-links", response_model=ShareLinkListResponse)
async def list_share_links(
    document_id: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    doc_uuid = parse_uuid(document_id, "document_id")
    links = await services.links.list_links(principal, doc_uuid)
    return ShareLinkListResponse(
        total=len(links),
        results=[ShareLinkResponse.from_db_model(link, ShareLinkEngine.state(link)) for link in links],
    )


@router.post("/activate", response_model=ActivateResponse)
async def activate_share_link(
    request: ActivateRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Redeem a share link token for the signed-in user"""
    result = await services.links.activate(request.token, principal)
    return ActivateResponse(
        document_id=str(result.document_id),
        grant_id=str(result.grant_id),
        link_id=str(result.link_id),
        expires_at=result.expires_at,
    )


@router.get("/{link_id}", response_model=ShareLinkResponse)
async def get_share_link(
    link_id: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    link_uuid = parse_uuid(link_id, "link_id")
    link = await services.links.get_link(principal, link_uuid)
    return ShareLinkResponse.from_db_model(link, ShareLinkEngine.state(link))


@router.delete("/{link_id}", response_model=RevocationResponse)
async def revoke_share_link(
    link_id: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Revoke a link and every grant it produced"""
    link_uuid = parse_uuid(link_id, "link_id")
    result = await services.links.revoke(principal, link_uuid)
    return RevocationResponse(
        object_id=str(result.object_id),
        already_revoked=result.already_revoked,
        grants_revoked=result.grants_revoked,
    )


@router.put("/{link_id}/recipients", response_model=RecipientResponse)
async def upsert_recipient(
    link_id: str,
    request: RecipientRequest,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Add a recipient, or overwrite the permissions of an existing one"""
    link_uuid = parse_uuid(link_id, "link_id")
    recipient = await services.links.add_recipient(
        principal,
        link_uuid,
        email=request.email,
        permissions=request.permissions(),
        max_uses=request.max_uses,
    )
    return RecipientResponse.from_db_model(recipient)


@router.get("/{link_id}/recipients", response_model=RecipientListResponse)
async def list_recipients(
    link_id: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    link_uuid = parse_uuid(link_id, "link_id")
    recipients = await services.links.list_recipients(principal, link_uuid)
    return RecipientListResponse(
        total=len(recipients),
        results=[RecipientResponse.from_db_model(r) for r in recipients],
    )


@router.delete("/recipients/{recipient_id}", response_model=RevocationResponse)
async def revoke_recipient(
    recipient_id: str,
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Revoke a recipient and the grant it obtained"""
    recipient_uuid = parse_uuid(recipient_id, "recipient_id")
    result = await services.links.revoke_recipient(principal, recipient_uuid)
    return RevocationResponse(
        object_id=str(result.object_id),
        already_revoked=result.already_revoked,
        grants_revoked=result.grants_revoked,
    )
