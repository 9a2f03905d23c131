"""
Wine Stock — Auth Pydantic schemas
"""
from datetime import datetime

from pydantic import ConfigDict, Field

from winestock.schemas.common import CamelModel


class LoginRequest(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=1, max_length=64, examples=["admin"])
    password: str = Field(..., min_length=1, max_length=128)


class UserOut(CamelModel):
    id: str
    username: str
    is_admin: bool
    is_active: bool
    created_at: datetime


class TokenResponse(CamelModel):
    message: str = "Login successful"
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserOut


class RefreshRequest(CamelModel):
    refresh_token: str


class VerifyResponse(CamelModel):
    message: str = "Token is valid"
    user: UserOut


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., max_length=128)


class UserCreateRequest(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=3, max_length=64)
    password: str | None = Field(None, max_length=128)
    is_admin: bool = False


class UserCreatedResponse(CamelModel):
    message: str
    user: UserOut


class UserDeletedResponse(CamelModel):
    message: str
    deleted_user: UserOut
