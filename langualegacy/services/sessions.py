"""
Server-side session lifecycle: create, load, regenerate on login, destroy on logout.

Clients hold an opaque token; rows are keyed by its HMAC. Every read ignores rows past
their expiry, so an expired session behaves exactly like an anonymous one.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from langualegacy.core.security import new_session_token, session_id_for
from langualegacy.models import SessionRecord, User
from langualegacy.services.errors import SessionStoreError

if TYPE_CHECKING:
    from langualegacy.core.config import Settings

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "userId"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _expiry(settings: "Settings", now: datetime) -> datetime:
    return now + timedelta(hours=settings.SESSION_TTL_HOURS)


def create_session(
    db: Session, settings: "Settings", data: dict[str, Any] | None = None
) -> str:
    """Persist a new session (anonymous unless data carries userId) and return its client token."""
    token = new_session_token()
    now = _now()
    db.add(
        SessionRecord(
            sid=session_id_for(token, settings.session_secret()),
            sess=dict(data or {}),
            expire=_expiry(settings, now),
        )
    )
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Session create failed")
        raise SessionStoreError() from e
    return token


def load_session(db: Session, token: str | None, settings: "Settings") -> dict[str, Any] | None:
    """Return the data of a live session, or None for a missing, unknown or expired token."""
    if not token:
        return None
    sid = session_id_for(token, settings.session_secret())
    row = db.execute(
        select(SessionRecord.sess).where(
            SessionRecord.sid == sid,
            SessionRecord.expire > _now(),
        )
    ).first()
    if row is None:
        return None
    return dict(row.sess or {})


def regenerate_session(
    db: Session, old_token: str | None, user_id: str, settings: "Settings"
) -> str:
    """
    Bind user_id to a brand-new session token, discarding the old one.

    The old row is locked, its data carried over, and deleted in the same transaction
    that inserts the new row; the commit happens before this returns. Raises
    SessionStoreError if anything fails, in which case nothing changed.
    """
    secret = settings.session_secret()
    now = _now()
    carried: dict[str, Any] = {}
    try:
        if old_token:
            old_sid = session_id_for(old_token, secret)
            row = db.execute(
                select(SessionRecord.sess)
                .where(SessionRecord.sid == old_sid, SessionRecord.expire > now)
                .with_for_update()
            ).first()
            if row is not None:
                carried = dict(row.sess or {})
            db.execute(delete(SessionRecord).where(SessionRecord.sid == old_sid))

        token = new_session_token()
        carried[SESSION_USER_KEY] = user_id
        db.add(
            SessionRecord(
                sid=session_id_for(token, secret),
                sess=carried,
                expire=_expiry(settings, now),
            )
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Session regenerate failed", extra={"user_id": user_id})
        raise SessionStoreError() from e
    logger.info(
        "Session bound to user",
        extra={"user_id": user_id, "replaced_existing": bool(old_token)},
    )
    return token


def destroy_session(db: Session, token: str | None, settings: "Settings") -> bool:
    """Delete the session row for token. Returns True if a row was removed."""
    if not token:
        return False
    sid = session_id_for(token, settings.session_secret())
    try:
        result = db.execute(delete(SessionRecord).where(SessionRecord.sid == sid))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Session destroy failed")
        raise SessionStoreError("Failed to logout") from e
    return (result.rowcount or 0) > 0


def resolve_session_user(db: Session, token: str | None, settings: "Settings") -> User | None:
    """Follow token -> live session -> userId -> User. Read-only; None when any link is missing."""
    data = load_session(db, token, settings)
    if not data:
        return None
    user_id = data.get(SESSION_USER_KEY)
    if not user_id:
        return None
    return db.get(User, user_id)
