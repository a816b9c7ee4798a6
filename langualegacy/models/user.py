"""ORM model for application users (local, Google and platform accounts)."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, String, func

from langualegacy.models.base import Base

AUTH_PROVIDER_LOCAL = "local"
AUTH_PROVIDER_GOOGLE = "google"
AUTH_PROVIDER_PLATFORM = "replit"


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    User account resolved by the session gate.

    id is a generated UUID for local accounts and the provider subject id for
    federated ones, so repeated federated logins upsert the same row.
    auth_provider: 'local', 'google' or 'replit'
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "email IS NOT NULL OR username IS NOT NULL",
            name="ck_users_email_or_username",
        ),
        CheckConstraint(
            "password_hash IS NULL OR auth_provider = 'local'",
            name="ck_users_password_local_only",
        ),
    )

    id = Column(String(255), primary_key=True, default=_new_user_id)
    username = Column(String(255), nullable=True, unique=True, index=True)
    email = Column(String(320), nullable=True, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    profile_image_url = Column(String(2048), nullable=True)
    auth_provider = Column(String(32), nullable=False, default=AUTH_PROVIDER_LOCAL)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
