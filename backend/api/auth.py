"""Authentication dependencies.

User accounts live in a separate service; this API only verifies the
bearer tokens it issues. The token subject (``sub``) is the user id, an
optional ``name`` claim carries the display name and ``role == "admin"``
grants moderation rights.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from config import settings

logger = logging.getLogger(__name__)

# auto_error=False so missing credentials return 401 (not 403)
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    name: Optional[str] = None
    is_admin: bool = False


def create_access_token(
    user_id: str,
    name: Optional[str] = None,
    role: Optional[str] = None,
    expires_delta: timedelta = timedelta(days=30),
) -> str:
    """Issue a signed token (used by tests and local tooling)."""
    claims = {"sub": user_id, "exp": datetime.now(timezone.utc) + expires_delta}
    if name:
        claims["name"] = name
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.AUTH_SECRET_KEY, algorithm=settings.AUTH_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate a token. Returns None if invalid or expired."""
    if not settings.AUTH_SECRET_KEY:
        logger.warning("AUTH_SECRET_KEY is not configured; rejecting bearer token")
        return None
    try:
        return jwt.decode(token, settings.AUTH_SECRET_KEY, algorithms=[settings.AUTH_ALGORITHM])
    except JWTError:
        return None


def _user_from_credentials(
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[AuthenticatedUser]:
    if not credentials:
        return None
    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        return None
    return AuthenticatedUser(
        id=str(payload["sub"]),
        name=payload.get("name"),
        is_admin=payload.get("role") == "admin",
    )


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthenticatedUser]:
    """The authenticated user if a valid token is present, else None."""
    return _user_from_credentials(credentials)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    """The authenticated user. Raises 401 without a valid token."""
    user = _user_from_credentials(credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    """The authenticated user, who must be an admin. Raises 403 otherwise."""
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
