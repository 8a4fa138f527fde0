# ==============================================================================
# SECURITY MODULE - Authentication & Authorization
# ==============================================================================
# JWT Token Management, Password Hashing
# ==============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from jose import JWTError, jwt
from passlib.context import CryptContext

from agricsmart.core.settings import settings
from agricsmart.core.exceptions import (
    InvalidTokenError,
    TokenExpiredError,
)


# ==============================================================================
# PASSWORD HASHING
# ==============================================================================

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def hash_password(password: str) -> str:
    """
    Hash a plaintext password using bcrypt.

    Example:
        >>> hashed = hash_password("my_secure_password")
        >>> verify_password("my_secure_password", hashed)
        True
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against its stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ==============================================================================
# JWT TOKEN MANAGEMENT
# ==============================================================================

class TokenType:
    """Token type constants."""
    ACCESS = "access"
    REFRESH = "refresh"


def _encode(claims: Dict[str, Any], expire: datetime) -> str:
    to_encode = dict(claims)
    to_encode["exp"] = expire
    to_encode["iat"] = datetime.now(timezone.utc)
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a short-lived JWT access token.

    Args:
        subject: Token subject (the user id)
        expires_delta: Custom expiration time (default from settings)
        additional_claims: Extra claims, e.g. the user's role

    Returns:
        Encoded JWT access token string
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims: Dict[str, Any] = {"sub": str(subject), "type": TokenType.ACCESS}
    if additional_claims:
        claims.update(additional_claims)
    return _encode(claims, expire)


def create_refresh_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a long-lived JWT refresh token."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    )
    return _encode({"sub": str(subject), "type": TokenType.REFRESH}, expire)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        TokenExpiredError: If token has expired
        InvalidTokenError: If token is invalid or malformed
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError as e:
        raise InvalidTokenError(message=f"Invalid token: {str(e)}")


def verify_access_token(token: str) -> Dict[str, Any]:
    """Decode a token and require it to be an access token."""
    payload = decode_token(token)

    if payload.get("type") != TokenType.ACCESS:
        raise InvalidTokenError(message="Invalid token type: expected access token")

    return payload


def verify_refresh_token(token: str) -> Dict[str, Any]:
    """Decode a token and require it to be a refresh token."""
    payload = decode_token(token)

    if payload.get("type") != TokenType.REFRESH:
        raise InvalidTokenError(message="Invalid token type: expected refresh token")

    return payload


# ==============================================================================
# TOKEN RESPONSE HELPERS
# ==============================================================================

def create_token_pair(
    subject: Union[str, Any],
    additional_claims: Optional[Dict[str, Any]] = None,
) -> Dict[str, str]:
    """
    Create both access and refresh tokens.

    Returns:
        Dictionary with access_token, refresh_token, and token_type
    """
    return {
        "access_token": create_access_token(
            subject=subject,
            additional_claims=additional_claims,
        ),
        "refresh_token": create_refresh_token(subject=subject),
        "token_type": "bearer",
    }
