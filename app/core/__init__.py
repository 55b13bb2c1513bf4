"""Core app configuration, database and sessions."""

from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.sessions import InMemorySessionStore, SessionRecord

__all__ = ["get_settings", "settings", "get_db", "InMemorySessionStore", "SessionRecord"]
