# API v1 routes
from fastapi import APIRouter

from sharegate.api.v1 import documents, grants, public, session, share_links
from sharegate.models.common import ErrorResponse

router = APIRouter(
    responses={
        status_code: {"model": ErrorResponse}
        for status_code in (400, 401, 403, 404, 409, 410, 429)
    }
)

router.include_router(documents.router, prefix="/documents", tags=["Documents"])
router.include_router(grants.router, prefix="/documents", tags=["Grants"])
router.include_router(share_links.document_router, prefix="/documents", tags=["Share Links"])
router.include_router(share_links.router, prefix="/share-links", tags=["Share Links"])
router.include_router(public.router, prefix="/public", tags=["Public"])
router.include_router(session.router, prefix="/session", tags=["Session"])
