"""Session login/logout routes and auth dependencies (get_current_user, require_admin)."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from langualegacy.core.config import Settings, get_settings
from langualegacy.core.database import get_db
from langualegacy.models.user import User
from langualegacy.schemas.auth import (
    CurrentUser,
    GoogleLoginRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserListItem,
    UsersListResponse,
)
from langualegacy.services import identity, sessions
from langualegacy.services.errors import (
    AuthError,
    ForbiddenError,
    InternalAuthError,
    UnauthorizedError,
)
from langualegacy.services.federated import FirebaseTokenVerifier, build_identity_verifier

logger = logging.getLogger(__name__)
router = APIRouter()

PLATFORM_USER_ID_HEADER = "X-Replit-User-Id"
PLATFORM_USER_NAME_HEADER = "X-Replit-User-Name"


def _http_error(exc: AuthError) -> HTTPException:
    """Translate a service-level failure into the HTTP response the client sees."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)


def _set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    is_production = settings.APP_ENV == "prod"
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_TTL_HOURS * 3600,
        path="/",
        httponly=True,
        secure=is_production,
        samesite="none" if is_production else "lax",
    )


def _clear_session_cookie(response: Response, settings: Settings) -> None:
    is_production = settings.APP_ENV == "prod"
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=is_production,
        samesite="none" if is_production else "lax",
    )


def _start_session(
    request: Request,
    response: Response,
    db: Session,
    user: User,
    settings: Settings,
) -> CurrentUser:
    """Regenerate the session for user, persist it, and set the cookie. Runs before any success response."""
    old_token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    token = sessions.regenerate_session(db, old_token, user.id, settings)
    _set_session_cookie(response, token, settings)
    current = CurrentUser.model_validate(user)
    request.state.user = current
    return current


def get_identity_verifier(
    settings: Annotated[Settings, Depends(get_settings)],
) -> FirebaseTokenVerifier:
    """Dependency: Firebase ID token verifier for the configured project. Raises 503 if not configured."""
    try:
        return build_identity_verifier(settings)
    except AuthError as e:
        raise _http_error(e) from e


@router.post("/register", response_model=CurrentUser, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """Create a local account and log it in."""
    try:
        user = identity.register(
            db,
            username=body.username,
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
        )
        return _start_session(request, response, db, user, settings)
    except AuthError as e:
        raise _http_error(e) from e


@router.post("/login", response_model=CurrentUser)
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """
    Authenticate with username or email and password; the session cookie is replaced
    with a new one bound to the user.
    """
    try:
        user = identity.resolve_local(db, body.username_or_email, body.password)
        return _start_session(request, response, db, user, settings)
    except AuthError as e:
        raise _http_error(e) from e


@router.post("/google", response_model=CurrentUser)
def login_google(
    body: GoogleLoginRequest,
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    verifier: Annotated[FirebaseTokenVerifier, Depends(get_identity_verifier)],
) -> CurrentUser:
    """Log in with a Google (Firebase) ID token; creates or refreshes the account keyed by the token subject."""
    try:
        federated = verifier.verify(body.id_token)
        user = identity.resolve_federated(db, federated)
        return _start_session(request, response, db, user, settings)
    except AuthError as e:
        raise _http_error(e) from e


@router.get("/platform", response_model=CurrentUser)
def login_platform(
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    platform_user_id: Annotated[str | None, Header(alias=PLATFORM_USER_ID_HEADER)] = None,
    platform_user_name: Annotated[str | None, Header(alias=PLATFORM_USER_NAME_HEADER)] = None,
) -> CurrentUser:
    """Log in with the identity headers the hosting platform's proxy injects (only when enabled)."""
    if not settings.PLATFORM_AUTH_ENABLED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    if not platform_user_id or not platform_user_name:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No platform user found",
        )
    try:
        user = identity.resolve_platform(db, platform_user_id, platform_user_name)
        return _start_session(request, response, db, user, settings)
    except AuthError as e:
        raise _http_error(e) from e


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageResponse:
    """Destroy the server-side session and tell the client to drop its cookie."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    try:
        sessions.destroy_session(db, token, settings)
    except AuthError as e:
        raise _http_error(e) from e
    _clear_session_cookie(response, settings)
    return MessageResponse(message="Logged out successfully")


def get_current_user(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """Dependency: require a live session bound to an existing user. Raises 401 otherwise."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    try:
        user = sessions.resolve_session_user(db, token, settings)
    except SQLAlchemyError as e:
        logger.exception("Session lookup failed")
        raise _http_error(InternalAuthError()) from e
    if user is None:
        raise _http_error(UnauthorizedError())
    current = CurrentUser.model_validate(user)
    request.state.user = current
    return current


def is_admin(user: CurrentUser, settings: Settings) -> bool:
    """The single configured privileged identity; unset ADMIN_EMAIL means nobody."""
    return settings.ADMIN_EMAIL is not None and user.email == settings.ADMIN_EMAIL


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """Dependency: require the authenticated user to be the configured admin. Raises 403 otherwise."""
    if not is_admin(current_user, settings):
        raise _http_error(ForbiddenError())
    return current_user


@router.get("/user", response_model=CurrentUser)
def read_current_user(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Return the user bound to the current session."""
    return current_user


@router.get("/users", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all users (admin only)."""
    users = db.query(User).order_by(User.created_at, User.id).all()
    return UsersListResponse(users=[UserListItem.model_validate(u) for u in users])
