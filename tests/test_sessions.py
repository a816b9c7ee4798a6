"""Tests for langualegacy.services.sessions: create, load, regenerate, destroy, resolve."""

import unittest
from datetime import timedelta
from unittest.mock import MagicMock

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from db_support import insert_session, make_session_factory, make_settings
from langualegacy.core.security import session_id_for
from langualegacy.models import SessionRecord
from langualegacy.services import identity, sessions
from langualegacy.services.errors import SessionStoreError


class SessionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = make_settings()
        self.factory = make_session_factory()
        self.db = self.factory()

    def tearDown(self) -> None:
        self.db.close()

    def _row_count(self) -> int:
        return self.db.execute(select(func.count()).select_from(SessionRecord)).scalar_one()


class TestCreateAndLoad(SessionTestCase):
    def test_created_session_loads_with_data(self) -> None:
        token = sessions.create_session(self.db, self.settings, {"returnTo": "/learn"})
        self.assertEqual(sessions.load_session(self.db, token, self.settings), {"returnTo": "/learn"})

    def test_stored_sid_is_not_the_token(self) -> None:
        token = sessions.create_session(self.db, self.settings)
        row = self.db.execute(select(SessionRecord)).scalar_one()
        self.assertNotEqual(row.sid, token)
        self.assertEqual(row.sid, session_id_for(token, self.settings.session_secret()))

    def test_missing_or_unknown_token_is_none(self) -> None:
        self.assertIsNone(sessions.load_session(self.db, None, self.settings))
        self.assertIsNone(sessions.load_session(self.db, "", self.settings))
        self.assertIsNone(sessions.load_session(self.db, "not-a-session", self.settings))

    def test_other_secret_cannot_load(self) -> None:
        token = sessions.create_session(self.db, self.settings, {"k": "v"})
        other = make_settings(SESSION_SECRET="another-secret")
        self.assertIsNone(sessions.load_session(self.db, token, other))

    def test_expired_session_is_absent_even_if_row_exists(self) -> None:
        token = insert_session(
            self.factory, self.settings, {"userId": "u1"}, expires_in=timedelta(minutes=-1)
        )
        self.assertEqual(self._row_count(), 1)
        self.assertIsNone(sessions.load_session(self.db, token, self.settings))


class TestRegenerate(SessionTestCase):
    """regenerate_session replaces the token, carries data over and binds userId."""

    def test_new_token_replaces_old(self) -> None:
        old = sessions.create_session(self.db, self.settings, {"returnTo": "/learn"})
        new = sessions.regenerate_session(self.db, old, "user-1", self.settings)
        self.assertNotEqual(new, old)
        self.assertIsNone(sessions.load_session(self.db, old, self.settings))
        self.assertEqual(
            sessions.load_session(self.db, new, self.settings),
            {"returnTo": "/learn", "userId": "user-1"},
        )
        self.assertEqual(self._row_count(), 1)

    def test_without_previous_session(self) -> None:
        token = sessions.regenerate_session(self.db, None, "user-1", self.settings)
        self.assertEqual(sessions.load_session(self.db, token, self.settings), {"userId": "user-1"})

    def test_unknown_old_token_is_ignored(self) -> None:
        token = sessions.regenerate_session(self.db, "forged-token", "user-1", self.settings)
        self.assertEqual(sessions.load_session(self.db, token, self.settings), {"userId": "user-1"})
        self.assertEqual(self._row_count(), 1)

    def test_expired_old_session_data_not_carried(self) -> None:
        old = insert_session(
            self.factory, self.settings, {"returnTo": "/old"}, expires_in=timedelta(minutes=-5)
        )
        new = sessions.regenerate_session(self.db, old, "user-1", self.settings)
        self.assertEqual(sessions.load_session(self.db, new, self.settings), {"userId": "user-1"})
        self.assertEqual(self._row_count(), 1)

    def test_relogin_as_other_user_rebinds(self) -> None:
        first = sessions.regenerate_session(self.db, None, "user-1", self.settings)
        second = sessions.regenerate_session(self.db, first, "user-2", self.settings)
        self.assertIsNone(sessions.load_session(self.db, first, self.settings))
        self.assertEqual(sessions.load_session(self.db, second, self.settings)["userId"], "user-2")

    def test_commit_failure_raises_session_store_error(self) -> None:
        db = MagicMock()
        db.commit.side_effect = OperationalError("INSERT", {}, Exception("connection reset"))
        with self.assertRaises(SessionStoreError) as ctx:
            sessions.regenerate_session(db, None, "user-1", self.settings)
        db.rollback.assert_called_once()
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertNotIn("connection reset", ctx.exception.message)


class TestDestroy(SessionTestCase):
    def test_destroy_removes_row_and_is_idempotent(self) -> None:
        token = sessions.regenerate_session(self.db, None, "user-1", self.settings)
        self.assertTrue(sessions.destroy_session(self.db, token, self.settings))
        self.assertIsNone(sessions.load_session(self.db, token, self.settings))
        self.assertFalse(sessions.destroy_session(self.db, token, self.settings))
        self.assertFalse(sessions.destroy_session(self.db, None, self.settings))

    def test_commit_failure_raises_session_store_error(self) -> None:
        db = MagicMock()
        db.commit.side_effect = OperationalError("DELETE", {}, Exception("connection reset"))
        with self.assertRaises(SessionStoreError) as ctx:
            sessions.destroy_session(db, "some-token", self.settings)
        db.rollback.assert_called_once()
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.message, "Failed to logout")


class TestResolveSessionUser(SessionTestCase):
    def test_bound_session_resolves_user(self) -> None:
        user = identity.register(self.db, "amara", "amara@x.org", "correct-horse-1")
        token = sessions.regenerate_session(self.db, None, user.id, self.settings)
        resolved = sessions.resolve_session_user(self.db, token, self.settings)
        self.assertIsNotNone(resolved)
        self.assertEqual(resolved.id, user.id)

    def test_anonymous_session_resolves_nothing(self) -> None:
        token = sessions.create_session(self.db, self.settings, {"returnTo": "/"})
        self.assertIsNone(sessions.resolve_session_user(self.db, token, self.settings))

    def test_session_for_missing_user_resolves_nothing(self) -> None:
        token = sessions.regenerate_session(self.db, None, "ghost", self.settings)
        self.assertIsNone(sessions.resolve_session_user(self.db, token, self.settings))


if __name__ == "__main__":
    unittest.main()
