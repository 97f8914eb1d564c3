# salesdesk/api/deps/context.py
from __future__ import annotations

from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from salesdesk.core.roles import UserRole
from salesdesk.core.security import bearer_scheme, decode_access_token
from salesdesk.crud.records import RecordWriter
from salesdesk.crud.snapshot import load_snapshot
from salesdesk.db.session import get_db
from salesdesk.schemas.records import UserRecord
from salesdesk.schemas.snapshot import Snapshot


async def get_snapshot(db: AsyncSession = Depends(get_db)) -> Snapshot:
    """Fresh snapshot per request; nothing is cached between requests."""
    return await load_snapshot(db)


async def get_writer(db: AsyncSession = Depends(get_db)) -> RecordWriter:
    return RecordWriter(db)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    snapshot: Snapshot = Depends(get_snapshot),
) -> UserRecord:
    """
    Dependency for protected endpoints: `sub` must name a user of the
    current snapshot that is not blocked.
    """
    user_id = decode_access_token(credentials.credentials if credentials else None)

    user = snapshot.user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "user_not_found", "message": "User not found."},
        )
    if user.is_blocked:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "user_blocked", "message": "This account is blocked."},
        )
    return user


def require_roles(*roles: UserRole) -> Callable:
    """Gate a route on the caller's role."""
    allowed = frozenset(roles)

    async def _checker(user: UserRecord = Depends(get_current_user)) -> UserRecord:
        if user.user_role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "role_forbidden",
                    "message": "You do not have permission to perform this action.",
                    "required": sorted(r.value for r in allowed),
                    "role": user.role,
                },
            )
        return user

    return _checker
