"""Server-side session store: random session ids mapped to user snapshots, in memory."""

import secrets
import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Protocol

# 32 random bytes, url-safe base64 (~43 chars) for the cookie value.
SESSION_ID_BYTES = 32


class SessionUser(Protocol):
    """Fields of a user that a session snapshots (satisfied by the User ORM model)."""

    id: str
    username: str | None
    role: str
    status: str
    auth_source: str


@dataclass(frozen=True)
class SessionRecord:
    """Snapshot of an authenticated user held for the lifetime of a login."""

    session_id: str
    user_id: str
    username: str | None
    role: str
    status: str
    auth_source: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at


class InMemorySessionStore:
    """
    Thread-safe session map. Records are lost on process restart.

    Sync endpoints run on FastAPI's worker threads, so every access takes the lock.
    """

    def __init__(self, ttl: timedelta) -> None:
        if ttl <= timedelta(0):
            raise ValueError("Session TTL must be positive")
        self.ttl = ttl
        self._records: dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def create(self, user: SessionUser) -> SessionRecord:
        """Create a session for user and return it. Expired records are pruned first."""
        now = datetime.now(UTC)
        record = SessionRecord(
            session_id=secrets.token_urlsafe(SESSION_ID_BYTES),
            user_id=user.id,
            username=user.username,
            role=user.role,
            status=user.status,
            auth_source=user.auth_source,
            created_at=now,
            expires_at=now + self.ttl,
        )
        with self._lock:
            self._purge_expired_locked(now)
            self._records[record.session_id] = record
        return record

    def get(self, session_id: str | None) -> SessionRecord | None:
        """Return the live session for session_id, or None if unknown or expired."""
        if not session_id:
            return None
        with self._lock:
            record = self._records.get(session_id)
            if record is None:
                return None
            if record.is_expired():
                del self._records[session_id]
                return None
            return record

    def destroy(self, session_id: str | None) -> bool:
        """Remove a session. Returns True if it existed."""
        if not session_id:
            return False
        with self._lock:
            return self._records.pop(session_id, None) is not None

    def destroy_for_user(self, user_id: str) -> int:
        """Remove every session belonging to user_id; returns how many were removed."""
        with self._lock:
            doomed = [sid for sid, r in self._records.items() if r.user_id == user_id]
            for sid in doomed:
                del self._records[sid]
            return len(doomed)

    def refresh_user(self, user: SessionUser) -> int:
        """Update role/status/username in every session of user; returns how many changed."""
        changed = 0
        with self._lock:
            for sid, record in list(self._records.items()):
                if record.user_id != user.id:
                    continue
                updated = replace(
                    record,
                    username=user.username,
                    role=user.role,
                    status=user.status,
                    auth_source=user.auth_source,
                )
                if updated != record:
                    self._records[sid] = updated
                    changed += 1
        return changed

    def purge_expired(self) -> int:
        """Drop expired records; returns how many were removed."""
        with self._lock:
            return self._purge_expired_locked(datetime.now(UTC))

    def _purge_expired_locked(self, now: datetime) -> int:
        expired = [sid for sid, r in self._records.items() if r.is_expired(now)]
        for sid in expired:
            del self._records[sid]
        return len(expired)
