"""Shared fixtures for tests: in-memory SQLite, seeded users, and an API client with fresh sessions."""

import os

# Settings are read at import time; point the app at SQLite before anything imports it.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import unittest
import uuid
from collections.abc import Generator
from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.core.security import hash_password
from app.core.sessions import InMemorySessionStore
from app.main import app
from app.models import Base, User
from app.models.user import AUTH_SOURCE_LOCAL, ROLE_ANALYST, STATUS_ACTIVE

PASSWORD = "Correct-Horse-9-Battery"

# scrypt is deliberately slow; hash the shared test password once.
_PASSWORD_HASH = hash_password(PASSWORD)


def make_session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def add_user(
    db: Session,
    username: str,
    *,
    role: str = ROLE_ANALYST,
    status: str = STATUS_ACTIVE,
    auth_source: str = AUTH_SOURCE_LOCAL,
    user_id: str | None = None,
    email: str | None = None,
) -> User:
    local = auth_source == AUTH_SOURCE_LOCAL
    user = User(
        id=user_id or (str(uuid.uuid4()) if local else f"ad_{username}"),
        username=username,
        password_hash=_PASSWORD_HASH if local else None,
        first_name=username.capitalize(),
        last_name="Tester",
        email=email,
        role=role,
        status=status,
        auth_source=auth_source,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


class ApiTestCase(unittest.TestCase):
    """Runs the FastAPI app against a private SQLite database and session store."""

    def setUp(self) -> None:
        self.SessionLocal = make_session_factory()

        def override_get_db() -> Generator[Session, None, None]:
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self._saved_store = app.state.session_store
        self._saved_directory = app.state.directory
        self.store = InMemorySessionStore(timedelta(minutes=30))
        app.state.session_store = self.store

    def tearDown(self) -> None:
        app.dependency_overrides.pop(get_db, None)
        app.state.session_store = self._saved_store
        app.state.directory = self._saved_directory

    def client(self) -> TestClient:
        return TestClient(app)

    def seed_user(self, username: str, **kwargs) -> User:
        with self.SessionLocal() as db:
            user = add_user(db, username, **kwargs)
            db.expunge(user)
            return user

    def fetch_user(self, user_id: str) -> User | None:
        with self.SessionLocal() as db:
            return db.get(User, user_id)

    def login(self, username: str, password: str = PASSWORD) -> TestClient:
        """Return a client holding a session cookie for username."""
        client = self.client()
        response = client.post("/api/login", json={"username": username, "password": password})
        self.assertEqual(response.status_code, 200, response.text)
        return client
