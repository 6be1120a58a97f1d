# src/teamhub/api/dependencies/authentication.py

import logging
from fastapi import HTTPException, status, Request

from teamhub.core.context import AuthContext, CurrentUser
from teamhub.core.security import decode_token, JWTError

logger = logging.getLogger(__name__)

def get_auth_context_from_token(token: str) -> AuthContext:
    """
    Decodes a JWT and builds an AuthContext from its claims.
    The identity provider owns the user records, so 'sub' and 'email' are trusted as-is.
    """
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    email = payload.get("email")
    if not user_id or not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    return AuthContext(user=CurrentUser(id=user_id, email=email), token=token)

# --- [主依赖项] ---
async def get_auth(request: Request) -> AuthContext:
    """
    The single entry point for authentication.
    Reads the credential placed on request.state by AuthenticationMiddleware.
    """
    token = getattr(request.state, "token", None)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials were not provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return get_auth_context_from_token(token)
