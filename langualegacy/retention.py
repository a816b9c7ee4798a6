"""
CLI entrypoint for the expired-session sweep. Run from cron, e.g.:

  python -m langualegacy.retention

Or hourly: 0 * * * * cd /path/to/langualegacy && .venv/bin/python -m langualegacy.retention
"""

import logging
import sys

from langualegacy.core.config import get_settings
from langualegacy.core.database import session_scope
from langualegacy.services.retention import purge_expired_sessions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Run the sweep: delete sessions past their expiry."""
    settings = get_settings()
    try:
        with session_scope() as db:
            sessions_deleted = purge_expired_sessions(db, settings)
        logger.info("Session purge completed: sessions_deleted=%s", sessions_deleted)
        return 0
    except Exception as e:
        logger.exception("Session purge failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
