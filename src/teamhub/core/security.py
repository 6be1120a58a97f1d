# src/teamhub/core/security.py

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
from jose import jwt, JWTError

from teamhub.core.config import settings

# ------------------------------------------------------------------------------
# JSON Web Token (JWT) Management
#    - Tokens are issued by the identity provider; this service only needs to
#      verify them. create_access_token exists for tooling and tests.
# ------------------------------------------------------------------------------

def create_access_token(subject: Union[str, Any], email: Optional[str] = None, expires_delta: timedelta = None) -> str:
    """
    Creates a new JWT access token.

    :param subject: The user id, encoded in the 'sub' claim.
    :param email: The user's email, encoded in the 'email' claim.
    :param expires_delta: Optional timedelta for token expiration. If None, uses default from settings.
    :return: The encoded JWT string.
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {
        "exp": expire,
        "sub": str(subject)
    }
    if email is not None:
        to_encode["email"] = email

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decodes and verifies a JWT access token.

    :param token: The JWT string to decode.
    :return: The decoded payload.
    :raises JWTError: for expired or tampered tokens; the caller maps it to a 401.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


__all__ = ["create_access_token", "decode_token", "JWTError"]
