"""Session retention: purge invalidated sessions older than SESSION_RETENTION_HOURS."""

import logging
from datetime import datetime, timezone, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.models import UserSession

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def run_retention(session: Session, settings: "Settings") -> int:
    """
    Delete invalidated sessions whose invalidation is older than the cutoff.

    Valid sessions are never touched. Returns the number of rows deleted.
    Idempotent: safe to run repeatedly.
    """
    if not settings.SESSION_RETENTION_ENABLED:
        logger.info("Retention is disabled (SESSION_RETENTION_ENABLED=false); skipping.")
        return 0

    cutoff = datetime.now(timezone.utc) - timedelta(hours=settings.SESSION_RETENTION_HOURS)
    deleted_count = (
        session.query(UserSession)
        .filter(UserSession.valid.is_(False), UserSession.invalidated_at < cutoff)
        .delete(synchronize_session=False)
    )
    session.commit()

    if deleted_count > 0:
        logger.info(
            "Retention run: cutoff=%s, sessions_deleted=%s",
            cutoff.isoformat(),
            deleted_count,
        )
    return deleted_count
