"""Identity resolution: turn local credentials or verified federated identities into User rows."""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from langualegacy.core.security import burn_password_check, hash_password, verify_password
from langualegacy.models.user import (
    AUTH_PROVIDER_GOOGLE,
    AUTH_PROVIDER_LOCAL,
    AUTH_PROVIDER_PLATFORM,
    User,
)
from langualegacy.schemas.auth import FederatedIdentity
from langualegacy.services.errors import (
    CredentialStoreError,
    EmailTakenError,
    FederatedIdentityError,
    InvalidCredentialsError,
    PasswordHashingError,
    UsernameTakenError,
)

logger = logging.getLogger(__name__)

PLATFORM_USER_ID_PREFIX = "replit-"
PLATFORM_EMAIL_DOMAIN = "replit.user"

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def find_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def find_by_username(db: Session, username: str) -> User | None:
    return db.execute(select(User).where(User.username == username)).scalar_one_or_none()


def find_by_id(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def _conflict_error(
    db: Session, email: str | None, username: str | None, exclude_id: str | None = None
) -> EmailTakenError | UsernameTakenError | None:
    """Work out which unique column a failed write collided with."""
    if email is not None:
        existing = find_by_email(db, email)
        if existing is not None and existing.id != exclude_id:
            return EmailTakenError()
    if username is not None:
        existing = find_by_username(db, username)
        if existing is not None and existing.id != exclude_id:
            return UsernameTakenError()
    return None


def create_user(db: Session, **fields: Any) -> User:
    """Insert a new user and commit. Unique collisions raise EmailTakenError/UsernameTakenError."""
    user = User(**fields)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        conflict = _conflict_error(db, fields.get("email"), fields.get("username"))
        if conflict is not None:
            raise conflict from e
        logger.exception("User insert failed")
        raise CredentialStoreError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("User insert failed")
        raise CredentialStoreError() from e
    db.refresh(user)
    return user


def upsert_user(db: Session, user_id: str, **fields: Any) -> User:
    """
    Insert or update the user keyed by id in a single statement.

    Only the given fields are written on update; updated_at is refreshed.
    A collision on email/username with another row raises the matching typed error.
    """
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        logger.error("User upsert is not supported for dialect %s", dialect)
        raise CredentialStoreError()
    stmt = insert(User).values(id=user_id, **fields)
    stmt = stmt.on_conflict_do_update(
        index_elements=["id"],
        set_={**fields, "updated_at": func.now()},
    )
    try:
        db.execute(stmt)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        conflict = _conflict_error(
            db, fields.get("email"), fields.get("username"), exclude_id=user_id
        )
        if conflict is not None:
            raise conflict from e
        logger.exception("User upsert failed", extra={"user_id": user_id})
        raise CredentialStoreError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("User upsert failed", extra={"user_id": user_id})
        raise CredentialStoreError() from e
    user = db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    ).scalar_one()
    return user


def resolve_local(db: Session, username_or_email: str, password: str) -> User:
    """
    Authenticate with username or email and password.

    Looks up by email first, then by username. Unknown identifiers, accounts without a
    password and wrong passwords all raise the same InvalidCredentialsError.
    """
    try:
        user = find_by_email(db, username_or_email)
        if user is None:
            user = find_by_username(db, username_or_email)
    except SQLAlchemyError as e:
        logger.exception("Credential lookup failed")
        raise CredentialStoreError() from e

    if user is None or not user.password_hash:
        burn_password_check(password)
        logger.info("Local login rejected", extra={"reason": "unknown_or_passwordless"})
        raise InvalidCredentialsError()
    if not verify_password(password, user.password_hash):
        logger.info("Local login rejected", extra={"reason": "password_mismatch", "user_id": user.id})
        raise InvalidCredentialsError()
    return user


def register(
    db: Session,
    username: str,
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    """Create a local account after checking email and username are free."""
    try:
        if find_by_email(db, email) is not None:
            raise EmailTakenError()
        if find_by_username(db, username) is not None:
            raise UsernameTakenError()
    except SQLAlchemyError as e:
        logger.exception("Credential lookup failed")
        raise CredentialStoreError() from e

    try:
        password_hash = hash_password(password)
    except (ValueError, TypeError, RuntimeError) as e:
        logger.exception("Password hashing failed")
        raise PasswordHashingError() from e

    user = create_user(
        db,
        username=username,
        email=email,
        password_hash=password_hash,
        first_name=first_name or None,
        last_name=last_name or None,
        auth_provider=AUTH_PROVIDER_LOCAL,
    )
    logger.info("User registered", extra={"user_id": user.id, "auth_provider": AUTH_PROVIDER_LOCAL})
    return user


def split_display_name(display_name: str | None) -> tuple[str | None, str | None]:
    """Split 'First Middle Last' into ('First', 'Middle Last')."""
    parts = (display_name or "").split()
    if not parts:
        return None, None
    first = parts[0]
    last = " ".join(parts[1:]) or None
    return first, last


def resolve_federated(db: Session, identity: FederatedIdentity) -> User:
    """Upsert the user for an already-verified Google identity. Idempotent per subject id."""
    if not identity.email or not identity.email_verified:
        raise FederatedIdentityError("Email not verified")
    first_name, last_name = split_display_name(identity.display_name)
    user = upsert_user(
        db,
        identity.subject_id,
        email=identity.email,
        first_name=first_name,
        last_name=last_name,
        profile_image_url=identity.avatar_url,
        auth_provider=AUTH_PROVIDER_GOOGLE,
    )
    logger.info("Federated login resolved", extra={"user_id": user.id, "auth_provider": AUTH_PROVIDER_GOOGLE})
    return user


def resolve_platform(db: Session, platform_user_id: str, platform_user_name: str) -> User:
    """Upsert the user for identity headers injected by the hosting platform's proxy."""
    user = upsert_user(
        db,
        f"{PLATFORM_USER_ID_PREFIX}{platform_user_id}",
        email=f"{platform_user_name}@{PLATFORM_EMAIL_DOMAIN}",
        username=platform_user_name,
        auth_provider=AUTH_PROVIDER_PLATFORM,
    )
    logger.info("Platform login resolved", extra={"user_id": user.id, "auth_provider": AUTH_PROVIDER_PLATFORM})
    return user
