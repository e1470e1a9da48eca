"""
Common Pydantic Models
Error envelope, acknowledgements and health status shared by all routes
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class ErrorBody(BaseModel):
    code: str = Field(..., description="Machine-readable error code, e.g. link_expired")
    message: str
    details: Optional[Dict[str, Any]] = Field(None, description="Only populated when DEBUG is on")
    timestamp: Optional[str] = None


class ErrorResponse(BaseModel):
    """Body of every non-2xx response"""
    error: ErrorBody

    @classmethod
    def build(cls, code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return cls(error=ErrorBody(code=code, message=message, details=details)).model_dump()


class SuccessResponse(BaseModel):
    """Acknowledgement for commands without a resource body"""
    message: str
    data: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded"]
    version: str
    environment: str
    services: Dict[str, str] = Field(default_factory=dict)
