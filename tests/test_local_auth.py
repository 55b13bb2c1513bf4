"""Tests for the local authentication strategy and registration (SQLite)."""

import unittest

from support import PASSWORD, add_user, make_session_factory

from app.models import User
from app.services.errors import (
    AccountInactiveError,
    InvalidCredentialsError,
    PendingApprovalError,
    UserConflictError,
    WeakPasswordError,
)
from app.services.local_auth import authenticate_local, register_local_user


class LocalAuthTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()

    def tearDown(self) -> None:
        self.db.close()


class TestAuthenticateLocal(LocalAuthTestCase):
    def test_active_user_with_correct_password(self) -> None:
        add_user(self.db, "alice")
        user = authenticate_local(self.db, "alice", PASSWORD)
        self.assertEqual(user.username, "alice")

    def test_unknown_user_is_invalid_credentials(self) -> None:
        with self.assertRaises(InvalidCredentialsError):
            authenticate_local(self.db, "nobody", PASSWORD)

    def test_username_match_is_case_sensitive(self) -> None:
        add_user(self.db, "alice")
        with self.assertRaises(InvalidCredentialsError):
            authenticate_local(self.db, "Alice", PASSWORD)

    def test_wrong_password_is_invalid_credentials(self) -> None:
        add_user(self.db, "alice")
        with self.assertRaises(InvalidCredentialsError):
            authenticate_local(self.db, "alice", PASSWORD + "x")

    def test_directory_user_is_invalid_credentials_not_a_crash(self) -> None:
        add_user(self.db, "dave", auth_source="ldap")
        with self.assertRaises(InvalidCredentialsError):
            authenticate_local(self.db, "dave", PASSWORD)
        with self.assertRaises(InvalidCredentialsError):
            authenticate_local(self.db, "dave", "")

    def test_pending_user_with_correct_password(self) -> None:
        add_user(self.db, "bob", status="pending")
        with self.assertRaises(PendingApprovalError) as ctx:
            authenticate_local(self.db, "bob", PASSWORD)
        self.assertEqual(ctx.exception.kind, "pending_approval")
        self.assertEqual(ctx.exception.context["status"], "pending")

    def test_pending_user_with_wrong_password_does_not_reveal_status(self) -> None:
        add_user(self.db, "bob", status="pending")
        with self.assertRaises(InvalidCredentialsError):
            authenticate_local(self.db, "bob", "wrong")

    def test_suspended_user_is_inactive(self) -> None:
        add_user(self.db, "carol", status="suspended")
        with self.assertRaises(AccountInactiveError) as ctx:
            authenticate_local(self.db, "carol", PASSWORD)
        self.assertEqual(ctx.exception.context["status"], "suspended")


class TestRegisterLocalUser(LocalAuthTestCase):
    def test_registration_creates_pending_analyst(self) -> None:
        user = register_local_user(
            self.db, username="alice", password=PASSWORD, email="alice@example.com"
        )
        self.assertEqual(user.status, "pending")
        self.assertEqual(user.role, "analyst")
        self.assertEqual(user.auth_source, "local")
        self.assertNotEqual(user.password_hash, PASSWORD)
        with self.assertRaises(PendingApprovalError):
            authenticate_local(self.db, "alice", PASSWORD)

    def test_duplicate_username_conflicts(self) -> None:
        add_user(self.db, "alice")
        with self.assertRaises(UserConflictError):
            register_local_user(self.db, username="alice", password=PASSWORD)

    def test_duplicate_email_conflicts(self) -> None:
        add_user(self.db, "alice", email="shared@example.com")
        with self.assertRaises(UserConflictError):
            register_local_user(
                self.db, username="alice2", password=PASSWORD, email="shared@example.com"
            )

    def test_weak_password_rejected_without_insert(self) -> None:
        with self.assertRaises(WeakPasswordError) as ctx:
            register_local_user(self.db, username="weak", password="short")
        self.assertTrue(ctx.exception.errors)
        self.assertEqual(self.db.query(User).count(), 0)


if __name__ == "__main__":
    unittest.main()
