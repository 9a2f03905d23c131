"""
Wine Stock — Shared route dependencies
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from winestock.core.errors import AuthenticationError, PermissionDeniedError
from winestock.db.database import get_db
from winestock.models.user import User


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    """The acting user, re-read from the DB so deleted or disabled accounts lose access."""
    claims = getattr(request.state, "user", None)
    if not claims or not claims.get("sub"):
        raise AuthenticationError("Not authenticated")

    user = await db.get(User, claims["sub"])
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or disabled")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise PermissionDeniedError("Insufficient permission: administrator access required")
    return user
