"""Unit and integration tests for session retention: delete-only run_retention."""

import unittest
from datetime import datetime, timezone, timedelta
from unittest.mock import MagicMock

from app.models import UserSession
from app.services.retention import run_retention
from support import make_sessionmaker, make_user


class TestRetentionDisabled(unittest.TestCase):
    """When SESSION_RETENTION_ENABLED is False, run_retention does nothing."""

    def test_returns_zero_and_does_not_query(self) -> None:
        settings = MagicMock()
        settings.SESSION_RETENTION_ENABLED = False
        settings.SESSION_RETENTION_HOURS = 48
        session = MagicMock()
        self.assertEqual(run_retention(session, settings), 0)
        session.query.assert_not_called()


class TestRetentionNoOldSessions(unittest.TestCase):
    def test_returns_zero(self) -> None:
        settings = MagicMock()
        settings.SESSION_RETENTION_ENABLED = True
        settings.SESSION_RETENTION_HOURS = 48
        session = MagicMock()
        session.query.return_value.filter.return_value.delete.return_value = 0
        self.assertEqual(run_retention(session, settings), 0)
        session.commit.assert_called_once()


class TestRetentionDeletesOldSessions(unittest.TestCase):
    def test_deletes_old_sessions(self) -> None:
        settings = MagicMock()
        settings.SESSION_RETENTION_ENABLED = True
        settings.SESSION_RETENTION_HOURS = 48
        session = MagicMock()
        session.query.return_value.filter.return_value.delete.return_value = 2
        self.assertEqual(run_retention(session, settings), 2)
        session.add.assert_not_called()
        session.commit.assert_called_once()


class TestRetentionAgainstDatabase(unittest.TestCase):
    """Old invalidated rows go; recent invalidated rows and valid rows stay."""

    def test_only_old_invalidated_sessions_deleted(self) -> None:
        db = make_sessionmaker()()
        try:
            settings = MagicMock()
            settings.SESSION_RETENTION_ENABLED = True
            settings.SESSION_RETENTION_HOURS = 48
            now = datetime.now(timezone.utc)
            alice = db.merge(make_user(email="alice@example.com"))
            bob = db.merge(make_user(email="bob@example.com"))
            db.commit()
            db.add_all(
                [
                    UserSession(
                        id="old", user_id=alice.id, valid=False,
                        invalidated_at=now - timedelta(hours=72),
                    ),
                    UserSession(
                        id="recent", user_id=alice.id, valid=False,
                        invalidated_at=now - timedelta(hours=1),
                    ),
                    UserSession(id="current", user_id=alice.id, valid=True),
                    UserSession(id="bob", user_id=bob.id, valid=True),
                ]
            )
            db.commit()

            self.assertEqual(run_retention(db, settings), 1)

            remaining = sorted(s.id for s in db.query(UserSession).all())
            self.assertEqual(remaining, ["bob", "current", "recent"])
            self.assertEqual(run_retention(db, settings), 0)
        finally:
            db.close()


if __name__ == "__main__":
    unittest.main()
