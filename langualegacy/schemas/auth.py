"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, Field

from langualegacy.core.security import (
    EMAIL_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)


class RegisterRequest(BaseModel):
    """New local account."""

    username: str = Field(
        ..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN, description="Username"
    )
    email: str = Field(..., min_length=3, max_length=EMAIL_MAX_LEN, description="Email address")
    password: str = Field(
        ..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN, description="Password"
    )
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    """Credentials for local login. Password length is not checked here so every bad password gets the same 401."""

    username_or_email: str = Field(
        ..., min_length=1, max_length=EMAIL_MAX_LEN, description="Username or email"
    )
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class GoogleLoginRequest(BaseModel):
    """Firebase/Google ID token obtained by the client."""

    id_token: str = Field(..., min_length=1, description="Provider-issued ID token")


class FederatedIdentity(BaseModel):
    """Claims of a provider token that has already been verified."""

    subject_id: str = Field(..., min_length=1)
    email: str | None = None
    email_verified: bool = False
    display_name: str | None = None
    avatar_url: str | None = None


class CurrentUser(BaseModel):
    """Authenticated user attached to the request by the session gate."""

    id: str
    email: str | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None
    auth_provider: str

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str


class UserListItem(BaseModel):
    """User entry for admin list (no password)."""

    id: str
    email: str | None = None
    username: str | None = None
    auth_provider: str

    class Config:
        from_attributes = True


class UsersListResponse(BaseModel):
    """Response for GET /users (admin only)."""

    users: list[UserListItem]
