"""
Session API Routes
Login-session scoped state held by this service
"""

from fastapi import APIRouter, Depends

from sharegate.api.dependencies import get_current_principal, get_services
from sharegate.core.logging import get_logger
from sharegate.models.auth import Principal
from sharegate.models.common import SuccessResponse
from sharegate.services.container import Services

logger = get_logger(__name__)
router = APIRouter()


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    principal: Principal = Depends(get_current_principal),
    services: Services = Depends(get_services),
):
    """Drop every restricted-document gate pass of the current session"""
    cleared = await services.gate.clear_session(principal.session_id)
    logger.info(f"Session ended for {principal.id}")
    return SuccessResponse(message="Logged out", data={"gate_passes_cleared": cleared})
