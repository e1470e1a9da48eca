"""
Public API Routes
Unauthenticated access to public documents
"""

from fastapi import APIRouter, Depends

from sharegate.api.dependencies import get_services
from sharegate.models.document import ContentUrlResponse
from sharegate.services.container import Services

router = APIRouter()


@router.get("/{token}", response_model=ContentUrlResponse)
async def resolve_public_token(
    token: str,
    services: Services = Depends(get_services),
):
    """Signed URL for the latest version of a public document"""
    content = await services.documents.resolve_public_token(token)
    return ContentUrlResponse.from_result(content)
