"""ORM model for application users (local and directory accounts)."""

from sqlalchemy import Column, DateTime, String, func

from app.models.base import Base

ROLE_ADMIN = "admin"
ROLE_TEAM_LEAD = "team_lead"
ROLE_ANALYST = "analyst"
ROLES: tuple[str, ...] = (ROLE_ADMIN, ROLE_TEAM_LEAD, ROLE_ANALYST)

STATUS_PENDING = "pending"
STATUS_ACTIVE = "active"
STATUS_SUSPENDED = "suspended"
STATUSES: tuple[str, ...] = (STATUS_PENDING, STATUS_ACTIVE, STATUS_SUSPENDED)

AUTH_SOURCE_LOCAL = "local"
AUTH_SOURCE_LDAP = "ldap"


class User(Base):
    """
    User account for session authentication and role-based access control.

    role: admin, team_lead or analyst. status: pending, active or suspended.
    Directory (auth_source='ldap') accounts never carry a password hash.
    """

    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    username = Column(String(255), nullable=True, unique=True, index=True)
    password_hash = Column(String(255), nullable=True)
    email = Column(String(320), nullable=True, unique=True)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    role = Column(String(32), nullable=False, default=ROLE_ANALYST)
    status = Column(String(32), nullable=False, default=STATUS_PENDING, index=True)
    auth_source = Column(String(32), nullable=False, default=AUTH_SOURCE_LOCAL)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or (self.username or self.id)
