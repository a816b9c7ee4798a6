"""Tests for langualegacy.services.identity against an in-memory SQLite credential store."""

import unittest
from unittest.mock import MagicMock, patch

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from db_support import make_session_factory
from langualegacy.models import User
from langualegacy.schemas.auth import FederatedIdentity
from langualegacy.services import identity
from langualegacy.services.errors import (
    CredentialStoreError,
    EmailTakenError,
    FederatedIdentityError,
    InvalidCredentialsError,
    PasswordHashingError,
    UsernameTakenError,
)


def _google(
    subject_id: str = "uid-42",
    email: str | None = "a@b.com",
    email_verified: bool = True,
    display_name: str | None = "Amara Diallo",
    avatar_url: str | None = None,
) -> FederatedIdentity:
    return FederatedIdentity(
        subject_id=subject_id,
        email=email,
        email_verified=email_verified,
        display_name=display_name,
        avatar_url=avatar_url,
    )


class IdentityTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = make_session_factory()
        self.db = self.factory()

    def tearDown(self) -> None:
        self.db.close()

    def _user_count(self) -> int:
        return self.db.execute(select(func.count()).select_from(User)).scalar_one()


class TestRegisterAndLocalLogin(IdentityTestCase):
    """register stores a bcrypt hash; resolve_local accepts username or email."""

    def setUp(self) -> None:
        super().setUp()
        self.user = identity.register(
            self.db,
            username="amara",
            email="amara@x.org",
            password="correct-horse-1",
            first_name="Amara",
        )

    def test_register_persists_local_account(self) -> None:
        self.assertEqual(self.user.username, "amara")
        self.assertEqual(self.user.auth_provider, "local")
        self.assertEqual(self.user.first_name, "Amara")
        self.assertIsNone(self.user.last_name)
        self.assertNotEqual(self.user.password_hash, "correct-horse-1")
        self.assertTrue(self.user.id)

    def test_login_by_username(self) -> None:
        user = identity.resolve_local(self.db, "amara", "correct-horse-1")
        self.assertEqual(user.id, self.user.id)

    def test_login_by_email(self) -> None:
        user = identity.resolve_local(self.db, "amara@x.org", "correct-horse-1")
        self.assertEqual(user.id, self.user.id)

    def test_wrong_password_and_unknown_user_fail_identically(self) -> None:
        with self.assertRaises(InvalidCredentialsError) as wrong:
            identity.resolve_local(self.db, "amara", "wrong")
        with self.assertRaises(InvalidCredentialsError) as unknown:
            identity.resolve_local(self.db, "nobody", "whatever-password")
        self.assertEqual(wrong.exception.message, unknown.exception.message)
        self.assertEqual(wrong.exception.status_code, unknown.exception.status_code)

    def test_lookup_does_not_normalize_case(self) -> None:
        with self.assertRaises(InvalidCredentialsError):
            identity.resolve_local(self.db, "AMARA", "correct-horse-1")

    def test_duplicate_email_rejected(self) -> None:
        with self.assertRaises(EmailTakenError):
            identity.register(self.db, "other", "amara@x.org", "correct-horse-2")
        self.assertEqual(self._user_count(), 1)

    def test_duplicate_username_rejected(self) -> None:
        with self.assertRaises(UsernameTakenError):
            identity.register(self.db, "amara", "other@x.org", "correct-horse-2")
        self.assertEqual(self._user_count(), 1)


class TestFederatedLogin(IdentityTestCase):
    """resolve_federated upserts by subject id and requires a verified email."""

    def test_same_subject_twice_yields_one_user(self) -> None:
        first = identity.resolve_federated(self.db, _google())
        second = identity.resolve_federated(self.db, _google())
        self.assertEqual(first.id, "uid-42")
        self.assertEqual(second.id, first.id)
        self.assertEqual(self._user_count(), 1)

    def test_profile_fields_refreshed_on_relogin(self) -> None:
        identity.resolve_federated(self.db, _google())
        user = identity.resolve_federated(
            self.db,
            _google(display_name="Amara N. Diallo", avatar_url="https://img.example/a.png"),
        )
        self.assertEqual(user.first_name, "Amara")
        self.assertEqual(user.last_name, "N. Diallo")
        self.assertEqual(user.profile_image_url, "https://img.example/a.png")
        self.assertEqual(user.auth_provider, "google")
        self.assertIsNone(user.password_hash)

    def test_unverified_email_rejected(self) -> None:
        with self.assertRaises(FederatedIdentityError) as ctx:
            identity.resolve_federated(self.db, _google(email_verified=False))
        self.assertEqual(ctx.exception.message, "Email not verified")
        self.assertEqual(self._user_count(), 0)

    def test_missing_email_rejected(self) -> None:
        with self.assertRaises(FederatedIdentityError):
            identity.resolve_federated(self.db, _google(email=None))

    def test_email_owned_by_local_account_rejected(self) -> None:
        identity.register(self.db, "amara", "a@b.com", "correct-horse-1")
        with self.assertRaises(EmailTakenError):
            identity.resolve_federated(self.db, _google())
        self.assertEqual(self._user_count(), 1)

    def test_federated_account_cannot_password_login(self) -> None:
        identity.resolve_federated(self.db, _google())
        with self.assertRaises(InvalidCredentialsError):
            identity.resolve_local(self.db, "a@b.com", "any-password")


class TestPlatformLogin(IdentityTestCase):
    def test_platform_user_upserted_with_prefixed_id(self) -> None:
        user = identity.resolve_platform(self.db, "42", "amara")
        again = identity.resolve_platform(self.db, "42", "amara")
        self.assertEqual(user.id, "replit-42")
        self.assertEqual(user.email, "amara@replit.user")
        self.assertEqual(user.username, "amara")
        self.assertEqual(user.auth_provider, "replit")
        self.assertEqual(again.id, user.id)
        self.assertEqual(self._user_count(), 1)

    def test_platform_username_collision(self) -> None:
        identity.register(self.db, "amara", "amara@x.org", "correct-horse-1")
        with self.assertRaises(UsernameTakenError):
            identity.resolve_platform(self.db, "42", "amara")


class TestSplitDisplayName(unittest.TestCase):
    def test_cases(self) -> None:
        self.assertEqual(identity.split_display_name("Amara Diallo"), ("Amara", "Diallo"))
        self.assertEqual(identity.split_display_name("Amara"), ("Amara", None))
        self.assertEqual(identity.split_display_name("  "), (None, None))
        self.assertEqual(identity.split_display_name(None), (None, None))
        self.assertEqual(identity.split_display_name("A B C"), ("A", "B C"))


class TestStoreFailures(unittest.TestCase):
    """Persistence errors surface as CredentialStoreError, never as raw driver errors."""

    def test_lookup_failure(self) -> None:
        db = MagicMock()
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))
        with self.assertRaises(CredentialStoreError) as ctx:
            identity.resolve_local(db, "amara", "correct-horse-1")
        self.assertEqual(ctx.exception.message, "Authentication error")
        self.assertNotIn("connection lost", ctx.exception.message)

    def test_insert_failure_rolls_back(self) -> None:
        db = MagicMock()
        db.commit.side_effect = OperationalError("INSERT", {}, Exception("disk full"))
        with self.assertRaises(CredentialStoreError):
            identity.create_user(db, username="amara", email="amara@x.org")
        db.rollback.assert_called_once()

    def test_hashing_failure_is_internal_error(self) -> None:
        db = make_session_factory()()
        try:
            with patch(
                "langualegacy.core.security.bcrypt.hashpw",
                side_effect=RuntimeError("rng exhausted"),
            ):
                with self.assertLogs("langualegacy.services.identity", level="ERROR"):
                    with self.assertRaises(PasswordHashingError) as ctx:
                        identity.register(db, "amara", "amara@x.org", "correct-horse-1")
            self.assertEqual(ctx.exception.status_code, 500)
            self.assertEqual(ctx.exception.message, "Authentication error")
            self.assertEqual(db.execute(select(func.count()).select_from(User)).scalar_one(), 0)
        finally:
            db.close()


if __name__ == "__main__":
    unittest.main()
