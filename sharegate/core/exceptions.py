"""
Custom Exceptions
Application-specific exception classes
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class AppException(Exception):
    """Base application exception"""

    def __init__(
        self,
        message: str,
        code: str = "app_error",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_response(self, include_details: bool = False) -> Dict[str, Any]:
        """Render the user-safe error envelope"""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details if include_details else None,
                "timestamp": self.timestamp,
            }
        }


class ValidationException(AppException):
    """Validation error exception"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="validation_error",
            status_code=400,
            details=details,
        )


class AuthenticationException(AppException):
    """Authentication error exception"""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="authentication_error",
            status_code=401,
            details=details,
        )


class AuthorizationException(AppException):
    """Authorization error exception"""

    def __init__(
        self,
        message: str = "You don't have permission to perform this action",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="authorization_error",
            status_code=403,
            details=details,
        )


class PolicyViolationException(AppException):
    """Classification or permission-coherence policy violated"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="policy_violation",
            status_code=403,
            details=details,
        )


class SecretMismatchException(AppException):
    """Wrong password for a restricted document"""

    def __init__(
        self,
        message: str = "Incorrect password for restricted document",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="secret_mismatch",
            status_code=403,
            details=details,
        )


class RestrictedGateRequiredException(AppException):
    """Restricted document content requested without a gate pass"""

    def __init__(
        self,
        message: str = "Password verification required for restricted document",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="restricted_gate_required",
            status_code=403,
            details=details,
        )


class NotFoundException(AppException):
    """Resource not found exception"""

    def __init__(
        self,
        resource: str = "Resource",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=f"{resource} not found",
            code="not_found",
            status_code=404,
            details=details,
        )


class ConflictException(AppException):
    """Resource conflict exception"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="conflict",
            status_code=409,
            details=details,
        )


class RateLimitException(AppException):
    """Rate limit exceeded exception"""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if retry_after is not None:
            details["retry_after"] = retry_after
        super().__init__(
            message=message,
            code="rate_limit_exceeded",
            status_code=429,
            details=details,
        )


class ShareLinkException(AppException):
    """Base for share link activation failures"""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=status_code,
            details=details,
        )


class TokenNotFoundException(ShareLinkException):
    """No share link matches the token"""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Share link not found",
            code="link_not_found",
            status_code=404,
            details=details,
        )


class LinkRevokedException(ShareLinkException):
    """Share link was revoked by its owner"""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="This share link has been revoked. Ask the owner for a new link",
            code="link_revoked",
            status_code=410,
            details=details,
        )


class LinkExpiredException(ShareLinkException):
    """Share link passed its expiry time"""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="This share link has expired. Ask the owner for a new link",
            code="link_expired",
            status_code=410,
            details=details,
        )


class LinkExhaustedException(ShareLinkException):
    """Share link reached its maximum number of uses"""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="This share link has no uses left. Ask the owner for a new link",
            code="link_exhausted",
            status_code=410,
            details=details,
        )


class EmailNotAuthorizedException(ShareLinkException):
    """Authenticated email is not a recipient of the link"""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="This link was not shared with your email. Sign in with the invited email",
            code="email_not_authorized",
            status_code=403,
            details=details,
        )


class RecipientExhaustedException(ShareLinkException):
    """Recipient used up their own activations"""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="You have already used this link the maximum number of times",
            code="recipient_exhausted",
            status_code=410,
            details=details,
        )


class StorageException(AppException):
    """Object storage error exception"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="storage_error",
            status_code=502,
            details=details,
        )
