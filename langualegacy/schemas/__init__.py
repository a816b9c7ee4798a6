"""Pydantic request/response schemas."""

from langualegacy.schemas.auth import (
    CurrentUser,
    FederatedIdentity,
    GoogleLoginRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserListItem,
    UsersListResponse,
)
from langualegacy.schemas.health import HealthResponse

__all__ = [
    "CurrentUser",
    "FederatedIdentity",
    "GoogleLoginRequest",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "RegisterRequest",
    "UserListItem",
    "UsersListResponse",
]
