"""
Bearer-token issuance and verification.

Tokens are HS256 JWTs carrying the user id and username. They carry no
`exp` claim unless JWT_EXPIRES_MINUTES is set to a positive value.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import config
from utils.logger import get_logger

logger = get_logger("auth")

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Verified caller of a protected endpoint."""
    id: int
    username: str


def create_access_token(user_id: int, username: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {"id": user_id, "username": username, "iat": now}
    if config.JWT_EXPIRES_MINUTES > 0:
        payload["exp"] = now + timedelta(minutes=config.JWT_EXPIRES_MINUTES)
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Identity:
    """Verify the signature and claims of `token`.

    Raises:
        HTTPException(403) for a bad signature, malformed or expired token.
    """
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected token: %s", type(e).__name__)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token")

    user_id = payload.get("id")
    username = payload.get("username")
    if not isinstance(user_id, int) or not isinstance(username, str):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token")
    return Identity(id=user_id, username=username)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """FastAPI dependency for protected routes.

    No bearer token -> 401, token that fails verification -> 403.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return decode_access_token(credentials.credentials)
