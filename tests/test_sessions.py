"""Tests for SessionPolicy: one valid session per user, logout, revocation."""

import unittest
from datetime import timedelta

from sqlalchemy.exc import IntegrityError

from app.core.exceptions import NotFoundError
from app.models import UserSession
from app.services.sessions import SessionPolicy
from app.services.user_store import SqlAlchemyUserStore
from support import FIXED_NOW, make_sessionmaker, make_user


class SessionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_sessionmaker()()
        self.store = SqlAlchemyUserStore(self.db)
        self.policy = SessionPolicy(self.db, clock=lambda: FIXED_NOW)
        self.alice = self.store.save(make_user(email="alice@example.com"))
        self.bob = self.store.save(make_user(email="bob@example.com"))

    def tearDown(self) -> None:
        self.db.close()

    def _valid_sessions(self, user_id: int) -> list[UserSession]:
        return (
            self.db.query(UserSession)
            .filter(UserSession.user_id == user_id, UserSession.valid.is_(True))
            .all()
        )


class TestLogin(SessionTestCase):
    def test_login_creates_valid_session(self) -> None:
        record = self.policy.login(self.alice)
        self.assertTrue(record.valid)
        self.assertEqual(record.user_id, self.alice.id)
        self.assertIsNone(record.invalidated_at)
        self.assertTrue(self.policy.is_valid(record.id))

    def test_second_login_supersedes_first(self) -> None:
        first = self.policy.login(self.alice)
        second = self.policy.login(self.alice)
        self.assertNotEqual(first.id, second.id)
        self.assertEqual([s.id for s in self._valid_sessions(self.alice.id)], [second.id])
        self.assertFalse(self.policy.is_valid(first.id))
        self.assertIsNotNone(self.policy.get(first.id).invalidated_at)

    def test_other_users_sessions_untouched(self) -> None:
        bob_session = self.policy.login(self.bob)
        self.policy.login(self.alice)
        self.policy.login(self.alice)
        self.assertTrue(self.policy.is_valid(bob_session.id))

    def test_many_logins_leave_exactly_one_valid(self) -> None:
        for _ in range(5):
            last = self.policy.login(self.alice)
        self.assertEqual(len(self._valid_sessions(self.alice.id)), 1)
        self.assertEqual(self.policy.active_session_for(self.alice.id).id, last.id)
        self.assertEqual(
            self.db.query(UserSession).filter(UserSession.user_id == self.alice.id).count(), 5
        )

    def test_login_for_missing_user(self) -> None:
        ghost = make_user(user_id=999, email="ghost@example.com")
        with self.assertRaises(NotFoundError):
            self.policy.login(ghost)

    def test_database_rejects_second_valid_row(self) -> None:
        self.policy.login(self.alice)
        self.db.add(UserSession(id="manual", user_id=self.alice.id, valid=True))
        with self.assertRaises(IntegrityError):
            self.db.commit()
        self.db.rollback()


class TestLogout(SessionTestCase):
    def test_logout_invalidates_only_that_session(self) -> None:
        alice_session = self.policy.login(self.alice)
        bob_session = self.policy.login(self.bob)
        self.policy.logout(alice_session.id)
        self.assertFalse(self.policy.is_valid(alice_session.id))
        self.assertTrue(self.policy.is_valid(bob_session.id))
        self.assertIsNone(self.policy.active_session_for(self.alice.id))

    def test_logout_of_superseded_session_keeps_current(self) -> None:
        old = self.policy.login(self.alice)
        current = self.policy.login(self.alice)
        self.policy.logout(old.id)
        self.assertTrue(self.policy.is_valid(current.id))

    def test_logout_twice_is_harmless(self) -> None:
        record = self.policy.login(self.alice)
        self.policy.logout(record.id)
        self.assertFalse(self.policy.logout(record.id).valid)

    def test_logout_unknown_session(self) -> None:
        with self.assertRaises(NotFoundError):
            self.policy.logout("no-such-session")

    def test_is_valid_unknown_session(self) -> None:
        self.assertFalse(self.policy.is_valid("no-such-session"))


class TestInvalidateAll(SessionTestCase):
    def test_revokes_current_session(self) -> None:
        record = self.policy.login(self.alice)
        self.assertEqual(self.policy.invalidate_all_for(self.alice.id), 1)
        self.assertFalse(self.policy.is_valid(record.id))

    def test_nothing_to_revoke(self) -> None:
        self.assertEqual(self.policy.invalidate_all_for(self.alice.id), 0)

    def test_uncommitted_revocation_rolls_back_with_caller(self) -> None:
        record = self.policy.login(self.alice)
        self.assertEqual(self.policy.invalidate_all_for(self.alice.id, commit=False), 1)
        self.db.rollback()
        self.assertTrue(self.policy.is_valid(record.id))

    def test_uncommitted_revocation_commits_with_caller(self) -> None:
        record = self.policy.login(self.alice)
        self.policy.invalidate_all_for(self.alice.id, commit=False)
        self.alice.enabled = False
        self.db.commit()
        self.assertFalse(self.policy.is_valid(record.id))
        self.assertFalse(self.store.find_by_id(self.alice.id).enabled)

    def test_login_after_revocation(self) -> None:
        self.policy.login(self.alice)
        self.policy.invalidate_all_for(self.alice.id)
        later = SessionPolicy(self.db, clock=lambda: FIXED_NOW + timedelta(minutes=5))
        record = later.login(self.alice)
        self.assertTrue(self.policy.is_valid(record.id))


if __name__ == "__main__":
    unittest.main()
