"""Shared admin dependencies — require_admin guard."""

from fastapi import Depends, HTTPException, status

from jewelshot.db import User, UserRole
from jewelshot.api.auth import get_current_user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """FastAPI dependency: reject non-admin users with 403."""
    if getattr(current_user, "role", None) != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
