"""Session retention: delete expired session rows in bounded batches."""

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from langualegacy.models import SessionRecord

if TYPE_CHECKING:
    from langualegacy.core.config import Settings

logger = logging.getLogger(__name__)


def purge_expired_sessions(session: Session, settings: "Settings") -> int:
    """
    Delete sessions whose expiry has passed, SESSION_PURGE_BATCH_SIZE rows per transaction.

    Returns the number of rows deleted. Idempotent: safe to run repeatedly.
    """
    if not settings.SESSION_PURGE_ENABLED:
        logger.info("Session purge is disabled (SESSION_PURGE_ENABLED=false); skipping.")
        return 0

    cutoff = datetime.now(timezone.utc)
    batch_size = settings.SESSION_PURGE_BATCH_SIZE
    deleted_total = 0
    while True:
        sids = list(
            session.execute(
                select(SessionRecord.sid)
                .where(SessionRecord.expire < cutoff)
                .limit(batch_size)
            ).scalars()
        )
        if not sids:
            break
        session.execute(
            delete(SessionRecord).where(SessionRecord.sid.in_(sids))
        )
        session.commit()
        deleted_total += len(sids)
        if len(sids) < batch_size:
            break

    if deleted_total > 0:
        logger.info(
            "Session purge run: cutoff=%s, sessions_deleted=%s",
            cutoff.isoformat(),
            deleted_total,
        )
    return deleted_total
