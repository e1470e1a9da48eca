"""
API Dependencies
Common dependencies for API routes
"""

import uuid
from typing import Optional

from fastapi import Header, Request
from pydantic import ValidationError as PydanticValidationError

from sharegate.core.exceptions import AppException, AuthenticationException, ValidationException
from sharegate.core.security import hash_token, verify_access_token
from sharegate.models.auth import Principal
from sharegate.services.container import Services


def get_services(request: Request) -> Services:
    """Services built at startup and stored on the application"""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise AppException(message="Services not initialized", code="service_unavailable", status_code=503)
    return services


async def get_current_principal(
    authorization: Optional[str] = Header(None),
) -> Principal:
    """
    Dependency to get the authenticated principal from the bearer token

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        Principal carrying the verified id, email and login session

    Raises:
        AuthenticationException: If the token is missing or invalid
    """
    # Extract token
    if not authorization:
        raise AuthenticationException(message="Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise AuthenticationException(message="Invalid authorization header format")

    token = authorization.split(" ", 1)[1].strip()

    # Verify token
    payload = verify_access_token(token)

    try:
        principal_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise AuthenticationException(message="Invalid subject claim")

    # Tokens without a session claim form a session of their own
    session_id = payload.get("sid") or hash_token(token)[:32]

    try:
        return Principal(id=principal_id, email=payload["email"], session_id=str(session_id))
    except PydanticValidationError:
        raise AuthenticationException(message="Invalid identity claims")


def parse_uuid(value: str, field: str) -> uuid.UUID:
    """Validate a path parameter as a UUID"""
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValidationException(
            message=f"Invalid {field} format",
            details={field: value, "expected_format": "UUID"},
        )
