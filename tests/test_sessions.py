"""Unit tests for the in-memory session store."""

import threading
import time
import unittest
from dataclasses import dataclass
from datetime import timedelta

from app.core.sessions import InMemorySessionStore


@dataclass
class FakeUser:
    id: str
    username: str | None = "alice"
    role: str = "analyst"
    status: str = "active"
    auth_source: str = "local"


class TestSessionLifecycle(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemorySessionStore(timedelta(minutes=5))

    def test_create_then_get_returns_snapshot(self) -> None:
        record = self.store.create(FakeUser("u1"))
        got = self.store.get(record.session_id)
        self.assertEqual(got, record)
        self.assertEqual(got.user_id, "u1")
        self.assertEqual(got.role, "analyst")
        self.assertGreaterEqual(len(record.session_id), 40)

    def test_session_ids_are_unique(self) -> None:
        ids = {self.store.create(FakeUser("u1")).session_id for _ in range(50)}
        self.assertEqual(len(ids), 50)
        self.assertEqual(len(self.store), 50)

    def test_unknown_or_empty_id_returns_none(self) -> None:
        self.assertIsNone(self.store.get(None))
        self.assertIsNone(self.store.get(""))
        self.assertIsNone(self.store.get("nope"))

    def test_destroy(self) -> None:
        record = self.store.create(FakeUser("u1"))
        self.assertTrue(self.store.destroy(record.session_id))
        self.assertFalse(self.store.destroy(record.session_id))
        self.assertIsNone(self.store.get(record.session_id))

    def test_destroy_for_user_only_touches_that_user(self) -> None:
        a1 = self.store.create(FakeUser("a"))
        a2 = self.store.create(FakeUser("a"))
        b = self.store.create(FakeUser("b"))
        self.assertEqual(self.store.destroy_for_user("a"), 2)
        self.assertIsNone(self.store.get(a1.session_id))
        self.assertIsNone(self.store.get(a2.session_id))
        self.assertIsNotNone(self.store.get(b.session_id))

    def test_refresh_user_updates_role_and_status(self) -> None:
        record = self.store.create(FakeUser("u1"))
        changed = self.store.refresh_user(FakeUser("u1", role="team_lead"))
        self.assertEqual(changed, 1)
        self.assertEqual(self.store.get(record.session_id).role, "team_lead")
        self.assertEqual(self.store.refresh_user(FakeUser("u1", role="team_lead")), 0)


class TestSessionExpiry(unittest.TestCase):
    """Expired sessions are never returned and are purged."""

    def test_expired_session_is_not_returned(self) -> None:
        store = InMemorySessionStore(timedelta(milliseconds=1))
        record = store.create(FakeUser("u1"))
        time.sleep(0.01)
        self.assertTrue(record.is_expired(record.expires_at))
        self.assertIsNone(store.get(record.session_id))
        self.assertEqual(len(store), 0)

    def test_purge_expired(self) -> None:
        store = InMemorySessionStore(timedelta(minutes=5))
        record = store.create(FakeUser("u1"))
        self.assertEqual(store.purge_expired(), 0)
        self.assertFalse(record.is_expired())
        self.assertTrue(record.is_expired(record.expires_at + timedelta(seconds=1)))

    def test_non_positive_ttl_rejected(self) -> None:
        with self.assertRaises(ValueError):
            InMemorySessionStore(timedelta(0))


class TestSessionConcurrency(unittest.TestCase):
    def test_parallel_create_and_destroy(self) -> None:
        store = InMemorySessionStore(timedelta(minutes=5))
        created: list[str] = []
        lock = threading.Lock()

        def worker(n: int) -> None:
            for _ in range(100):
                record = store.create(FakeUser(f"user{n}"))
                store.get(record.session_id)
                with lock:
                    created.append(record.session_id)
            store.destroy_for_user(f"user{n % 2}")

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(set(created)), 800)
        for sid in created:
            record = store.get(sid)
            if record is not None:
                self.assertNotIn(record.user_id, ("user0", "user1"))


if __name__ == "__main__":
    unittest.main()
