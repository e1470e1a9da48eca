"""
Security Utilities
Identity token decoding, secret hashing and random token generation
"""

import hashlib
import secrets
import string
from datetime import timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from sharegate.core.clock import utcnow
from sharegate.core.config import settings
from sharegate.core.exceptions import AuthenticationException

# Restricted-document password hashing context
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

PASSWORD_UPPER = string.ascii_uppercase
PASSWORD_LOWER = string.ascii_lowercase
PASSWORD_DIGITS = string.digits
PASSWORD_SPECIAL = "!@#$%^&*()-_=+[]{};:,.<>?"

_sysrand = secrets.SystemRandom()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def generate_strong_password(length: Optional[int] = None) -> str:
    """
    Generate a random password containing at least one uppercase,
    lowercase, digit and special character
    """
    length = length or settings.RESTRICTED_PASSWORD_LENGTH
    classes = [PASSWORD_UPPER, PASSWORD_LOWER, PASSWORD_DIGITS, PASSWORD_SPECIAL]
    if length < len(classes):
        raise ValueError(f"Password length must be at least {len(classes)}")

    alphabet = "".join(classes)
    chars = [secrets.choice(c) for c in classes]
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(classes)))
    _sysrand.shuffle(chars)
    return "".join(chars)


def generate_share_token(nbytes: Optional[int] = None) -> str:
    """Generate an unguessable URL-safe share token"""
    return secrets.token_urlsafe(nbytes or settings.SHARE_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Hash a share token for storage and lookup"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def sha256_hex(data: bytes) -> str:
    """Content-integrity digest of a file version"""
    return hashlib.sha256(data).hexdigest()


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create an identity token

    Tokens are normally minted by the identity provider; this helper
    exists for tooling and tests that share the same signing key.
    """
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and verify a JWT token"""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
        return payload
    except JWTError as e:
        raise AuthenticationException(
            message="Invalid token",
            details={"error": str(e)},
        )


def verify_access_token(token: str) -> Dict[str, Any]:
    """Verify an access token and return its payload"""
    payload = decode_token(token)

    if payload.get("type") != "access":
        raise AuthenticationException(
            message="Invalid token type",
            details={"expected": "access", "got": payload.get("type")},
        )

    for claim in ("sub", "email"):
        if not payload.get(claim):
            raise AuthenticationException(
                message="Token is missing identity claims",
                details={"missing": claim},
            )

    return payload
