"""
CLI entrypoint for the session retention job. Run from cron, e.g.:

  python -m app.retention

Or daily: 0 3 * * * cd /path/to/wardline && .venv/bin/python -m app.retention
"""

import logging
import sys

from app.core.config import get_settings
from app.core.database import session_scope
from app.services.retention import run_retention

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Run retention: purge invalidated sessions older than SESSION_RETENTION_HOURS."""
    settings = get_settings()
    try:
        with session_scope() as db:
            sessions_deleted = run_retention(db, settings)
        logger.info("Retention completed: sessions_deleted=%s", sessions_deleted)
        return 0
    except Exception as e:
        logger.exception("Retention job failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
