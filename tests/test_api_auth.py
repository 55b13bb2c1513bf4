"""API tests for login, logout, registration, the authorization gate, and directory login."""

import unittest
from unittest.mock import MagicMock

from support import PASSWORD, ApiTestCase

from app.core.config import settings
from app.main import app
from app.services.directory import DirectoryUser
from app.services.errors import (
    DirectoryConfigurationError,
    DirectoryUnavailableError,
    InvalidCredentialsError,
    UserNotFoundError,
)

COOKIE = settings.SESSION_COOKIE_NAME


class TestRegistrationApprovalScenario(ApiTestCase):
    """register alice -> pending -> login refused -> admin approves -> login succeeds."""

    def test_full_flow(self) -> None:
        anon = self.client()
        response = anon.post(
            "/api/register",
            json={
                "username": "alice",
                "password": PASSWORD,
                "first_name": "Alice",
                "last_name": "Liddell",
                "email": "alice@example.com",
            },
        )
        self.assertEqual(response.status_code, 201, response.text)
        self.assertEqual(response.json()["status"], "pending")
        self.assertNotIn(COOKIE, response.cookies)

        response = anon.post("/api/login", json={"username": "alice", "password": PASSWORD})
        self.assertEqual(response.status_code, 403)
        detail = response.json()["detail"]
        self.assertEqual(detail["kind"], "pending_approval")
        self.assertEqual(detail["status"], "pending")

        self.seed_user("root", role="admin")
        admin = self.login("root")
        pending = admin.get("/api/admin/pending-users").json()
        self.assertEqual([u["username"] for u in pending], ["alice"])
        response = admin.post(f"/api/admin/users/{pending[0]['id']}/approve")
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["status"], "active")

        alice = self.client()
        response = alice.post("/api/login", json={"username": "alice", "password": PASSWORD})
        self.assertEqual(response.status_code, 200, response.text)
        self.assertIn(COOKIE, response.cookies)
        self.assertNotIn("password_hash", response.json())
        me = alice.get("/api/user")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["username"], "alice")

    def test_duplicate_registration_conflicts(self) -> None:
        self.seed_user("alice")
        response = self.client().post("/api/register", json={"username": "alice", "password": PASSWORD})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"]["kind"], "conflict")

    def test_weak_password_rejected(self) -> None:
        response = self.client().post("/api/register", json={"username": "weak", "password": "abc"})
        self.assertEqual(response.status_code, 400)
        detail = response.json()["detail"]
        self.assertEqual(detail["kind"], "validation_error")
        self.assertTrue(detail["errors"])


class TestLocalLogin(ApiTestCase):
    def test_wrong_password_and_unknown_user_look_the_same(self) -> None:
        self.seed_user("alice")
        wrong = self.client().post("/api/login", json={"username": "alice", "password": "nope"})
        unknown = self.client().post("/api/login", json={"username": "zed", "password": "nope"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json(), unknown.json())
        self.assertEqual(wrong.json()["detail"]["kind"], "invalid_credentials")

    def test_directory_account_cannot_use_local_login(self) -> None:
        self.seed_user("dave", auth_source="ldap")
        response = self.client().post("/api/login", json={"username": "dave", "password": PASSWORD})
        self.assertEqual(response.status_code, 401)

    def test_suspended_user_refused(self) -> None:
        self.seed_user("carol", status="suspended")
        response = self.client().post("/api/login", json={"username": "carol", "password": PASSWORD})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"]["kind"], "account_inactive")
        self.assertEqual(response.json()["detail"]["status"], "suspended")

    def test_empty_body_is_validation_error(self) -> None:
        response = self.client().post("/api/login", json={"username": "", "password": ""})
        self.assertEqual(response.status_code, 422)

    def test_relogin_rotates_session(self) -> None:
        self.seed_user("alice")
        client = self.login("alice")
        first = client.cookies.get(COOKIE)
        client.post("/api/login", json={"username": "alice", "password": PASSWORD})
        second = client.cookies.get(COOKIE)
        self.assertNotEqual(first, second)
        self.assertIsNone(self.store.get(first))
        self.assertEqual(len(self.store), 1)

    def test_logout_destroys_session(self) -> None:
        self.seed_user("alice")
        client = self.login("alice")
        sid = client.cookies.get(COOKIE)
        self.assertEqual(client.post("/api/logout").status_code, 200)
        self.assertIsNone(self.store.get(sid))
        client.cookies.set(COOKIE, sid)
        self.assertEqual(client.get("/api/user").status_code, 401)


class TestGate(ApiTestCase):
    """The gate: 401 without a live session, 403 for non-active users whatever their role."""

    def test_no_cookie_is_unauthenticated(self) -> None:
        for path in ("/api/user", "/api/findings", "/api/users", "/api/reports", "/api/stats"):
            with self.subTest(path=path):
                response = self.client().get(path)
                self.assertEqual(response.status_code, 401)
                self.assertEqual(response.json()["detail"]["kind"], "unauthenticated")

    def test_unknown_session_id_is_unauthenticated(self) -> None:
        client = self.client()
        client.cookies.set(COOKIE, "forged-session-id")
        self.assertEqual(client.get("/api/user").status_code, 401)

    def test_non_active_status_is_forbidden_regardless_of_role(self) -> None:
        for status, kind in (("pending", "pending_approval"), ("suspended", "forbidden")):
            user = self.seed_user(f"admin-{status}", role="admin", status=status)
            record = self.store.create(user)
            client = self.client()
            client.cookies.set(COOKIE, record.session_id)
            with self.subTest(status=status):
                response = client.get("/api/admin/users")
                self.assertEqual(response.status_code, 403)
                self.assertEqual(response.json()["detail"]["kind"], kind)
                self.assertEqual(response.json()["detail"]["status"], status)

    def test_suspension_ends_live_sessions(self) -> None:
        alice = self.seed_user("alice")
        self.seed_user("root", role="admin")
        alice_client = self.login("alice")
        admin = self.login("root")
        response = admin.patch(f"/api/admin/users/{alice.id}/status", json={"status": "suspended"})
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(alice_client.get("/api/user").status_code, 401)

    def test_health_is_public_and_reveals_no_session_state(self) -> None:
        self.seed_user("alice")
        self.login("alice")
        response = self.client().get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")
        self.assertEqual(response.json()["database"], "connected")
        self.assertNotIn("active_sessions", response.json())

    def test_health_detail_is_admin_only(self) -> None:
        directory = MagicMock()
        directory.config.enabled = True
        directory.config.missing_keys.return_value = ["LDAP_URL"]
        app.state.directory = directory
        self.seed_user("alice")
        self.seed_user("root", role="admin")
        alice = self.login("alice")
        admin = self.login("root")

        self.assertEqual(self.client().get("/api/admin/health").status_code, 401)
        self.assertEqual(alice.get("/api/admin/health").status_code, 403)
        response = admin.get("/api/admin/health")
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["active_sessions"], 2)
        self.assertEqual(response.json()["directory"], "unconfigured")


class TestDirectoryLogin(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.directory = MagicMock()
        self.directory.authenticate.return_value = DirectoryUser(
            dn="CN=jdoe,OU=Users,DC=example,DC=com",
            username="jdoe",
            first_name="Jane",
            last_name="Doe",
            email="jdoe@example.com",
            groups=("CN=SecureTeam-Admins,OU=Groups,DC=example,DC=com",),
        )
        self.directory.role_for.return_value = "admin"
        app.state.directory = self.directory

    def test_first_login_provisions_and_starts_session(self) -> None:
        client = self.client()
        response = client.post("/api/auth/ldap/login", json={"username": "jdoe", "password": "pw"})
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["id"], "ad_jdoe")
        self.assertEqual(body["auth_source"], "ldap")
        self.assertEqual(body["role"], "admin")
        self.assertEqual(body["status"], "active")
        self.assertEqual(client.get("/api/user").json()["id"], "ad_jdoe")
        self.assertIsNone(self.fetch_user("ad_jdoe").password_hash)

    def test_failure_kinds(self) -> None:
        cases = (
            (InvalidCredentialsError(), 401, "invalid_credentials"),
            (UserNotFoundError("User not found in directory."), 401, "invalid_credentials"),
            (DirectoryUnavailableError("Directory is unreachable or timed out."), 503, "directory_unavailable"),
            (DirectoryConfigurationError("not configured", missing=["LDAP_URL"]), 503, "configuration_error"),
        )
        for error, status, kind in cases:
            self.directory.authenticate.side_effect = error
            with self.subTest(kind=error.kind):
                response = self.client().post(
                    "/api/auth/ldap/login", json={"username": "jdoe", "password": "pw"}
                )
                self.assertEqual(response.status_code, status)
                self.assertEqual(response.json()["detail"]["kind"], kind)
        self.assertIsNone(self.fetch_user("ad_jdoe"))

    def test_connection_test_is_admin_only(self) -> None:
        self.directory.config.missing_keys.return_value = ["LDAP_BIND_PASSWORD"]
        self.directory.test_connection.return_value = False
        self.seed_user("analyst1")
        self.seed_user("root", role="admin")
        self.assertEqual(self.login("analyst1").get("/api/auth/ldap/test").status_code, 403)
        response = self.login("root").get("/api/auth/ldap/test")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertFalse(body["connected"])
        self.assertEqual(body["missing"], ["LDAP_BIND_PASSWORD"])
        self.assertEqual(body["configuration"]["LDAP_BIND_PASSWORD"], "missing")
        self.assertEqual(body["configuration"]["LDAP_URL"], "configured")


if __name__ == "__main__":
    unittest.main()
