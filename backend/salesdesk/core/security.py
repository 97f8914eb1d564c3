# salesdesk/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from salesdesk.core.config import settings

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "invalid_token", "message": "Invalid or expired token."},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _normalize_token(token: Optional[str]) -> str:
    """
    Tolerate copy-paste noise: whitespace, surrounding quotes and a
    duplicated 'Bearer ' prefix.
    """
    if token is None:
        return ""

    t = token.strip()
    if len(t) >= 2 and t[0] == t[-1] and t[0] in {'"', "'"}:
        t = t[1:-1].strip()
    if t.lower().startswith("bearer "):
        t = t[7:].strip()
    return t


def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    # Login lives elsewhere; this is for tooling and tests.
    issued = datetime.now(timezone.utc)
    expires = issued + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims: dict[str, Any] = {
        "sub": str(user_id),
        "exp": int(expires.timestamp()),
        "iat": int(issued.timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: Optional[str]) -> str:
    """User id carried in `sub`, or 401."""
    token = _normalize_token(token)
    if not token:
        raise _unauthorized()

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError:
        raise _unauthorized()

    sub = payload.get("sub")
    if not sub:
        raise _unauthorized()
    return str(sub)
