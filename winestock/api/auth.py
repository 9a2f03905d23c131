"""
Wine Stock — Auth API routes
"""
import logging

from jose import JWTError
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from winestock.api.deps import get_current_user, require_admin
from winestock.core.config import get_settings
from winestock.core.errors import (
    AuthenticationError,
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    WineStockError,
)
from winestock.core.security import (
    verify_password,
    hash_password,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from winestock.db.database import get_db
from winestock.models.user import User
from winestock.schemas.auth import (
    LoginRequest,
    TokenResponse,
    RefreshRequest,
    VerifyResponse,
    ChangePasswordRequest,
    UserCreateRequest,
    UserCreatedResponse,
    UserDeletedResponse,
    UserOut,
)
from winestock.schemas.common import MessageResponse

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix=f"{settings.API_PREFIX}/auth", tags=["auth"])


def _issue_tokens(user: User) -> TokenResponse:
    token_data = {"sub": user.id, "username": user.username, "is_admin": user.is_admin}
    return TokenResponse(
        access_token=create_access_token(token_data),
        refresh_token=create_refresh_token({"sub": user.id}),
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserOut.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Validate credentials and issue JWT tokens."""
    result = await db.execute(select(User).where(User.username == payload.username))
    user: User | None = result.scalar_one_or_none()

    if not user or not verify_password(payload.password, user.hashed_password):
        raise AuthenticationError("Invalid username or password")

    if not user.is_active:
        raise PermissionDeniedError("Account is disabled")

    logger.info("login user=%s", user.username)
    return _issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(payload: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Issue new access token from valid refresh token."""
    try:
        claims = decode_token(payload.refresh_token)
        if claims.get("type") != "refresh" or not claims.get("sub"):
            raise ValueError("Wrong token type")
    except (JWTError, ValueError):
        raise AuthenticationError("Invalid or expired refresh token")

    user = await db.get(User, claims.get("sub"))
    if not user or not user.is_active:
        raise AuthenticationError("User not found")

    return _issue_tokens(user)


@router.get("/verify", response_model=VerifyResponse)
async def verify(user: User = Depends(get_current_user)):
    return VerifyResponse(user=UserOut.model_validate(user))


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Change the caller's password after verifying the current one."""
    if len(payload.new_password) < settings.MIN_PASSWORD_LENGTH:
        raise WineStockError(
            f"New password must be at least {settings.MIN_PASSWORD_LENGTH} characters"
        )
    if not verify_password(payload.current_password, user.hashed_password):
        raise BusinessRuleError("Current password is incorrect")

    user.hashed_password = hash_password(payload.new_password)
    await db.commit()
    return MessageResponse(message="Password changed")


# ─── User management (administrators) ─────────────────────────────────────────

@router.post("/create-user", response_model=UserCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreateRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Create an operator account. Without a password the configured default is used."""
    existing = await db.execute(select(User).where(User.username == payload.username))
    if existing.scalar_one_or_none():
        raise ConflictError("Username already exists")

    password = payload.password or settings.DEFAULT_USER_PASSWORD
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise WineStockError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")

    user = User(
        username=payload.username,
        hashed_password=hash_password(password),
        is_admin=payload.is_admin,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("user created username=%s by=%s", user.username, admin.username)
    return UserCreatedResponse(message="User created", user=UserOut.model_validate(user))


@router.get("/users", response_model=list[UserOut])
async def list_users(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return [UserOut.model_validate(u) for u in result.scalars().all()]


@router.delete("/users/{user_id}", response_model=UserDeletedResponse)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.id == admin.id:
        raise BusinessRuleError("You cannot delete the account you are logged in with")
    if user.is_admin:
        raise BusinessRuleError("Administrator accounts cannot be deleted")

    deleted = UserOut.model_validate(user)
    await db.delete(user)
    await db.commit()

    logger.info("user deleted username=%s by=%s", deleted.username, admin.username)
    return UserDeletedResponse(message="User deleted", deleted_user=deleted)
