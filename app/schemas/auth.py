"""Request/response schemas for auth and user endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.core.security import PASSWORD_MAX_LEN, USERNAME_MAX_LEN, USERNAME_MIN_LEN

RoleName = Literal["admin", "team_lead", "analyst"]
StatusName = Literal["pending", "active", "suspended"]

# Legacy spellings accepted on input and normalized to the canonical enums.
ROLE_ALIASES: dict[str, str] = {"lead": "team_lead", "teamlead": "team_lead"}
STATUS_ALIASES: dict[str, str] = {"approved": "active"}


def normalize_role(value: str) -> str:
    v = (value or "").strip().lower()
    return ROLE_ALIASES.get(v, v)


def normalize_status(value: str) -> str:
    v = (value or "").strip().lower()
    return STATUS_ALIASES.get(v, v)


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


class LoginRequest(BaseModel):
    """Credentials for login (local or directory)."""

    username: str = Field(
        ..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN, description="Username"
    )
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class RegisterRequest(BaseModel):
    """Self-service registration; the account starts pending admin approval."""

    username: str = Field(..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    first_name: str = Field(default="", max_length=255)
    last_name: str = Field(default="", max_length=255)
    email: EmailStr | None = None

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username must be non-empty")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, v: str | None) -> str | None:
        return _blank_to_none(v)


class RegisterResponse(BaseModel):
    message: str
    status: StatusName = "pending"


class UserPublic(BaseModel):
    """User fields safe to return to clients (never the password hash)."""

    model_config = {"from_attributes": True}

    id: str
    username: str | None
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    role: str
    status: str
    auth_source: str


class UserDetail(UserPublic):
    """User entry for admin views."""

    created_at: datetime | None = None
    updated_at: datetime | None = None


class CurrentUser(BaseModel):
    """Authenticated, active user attached to a request by the authorization gate."""

    model_config = {"from_attributes": True}

    id: str
    username: str | None
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    role: str
    status: str
    auth_source: str


class UsersListResponse(BaseModel):
    users: list[UserPublic]


class AdminUserCreate(BaseModel):
    """Admin-created local account; active immediately."""

    username: str = Field(..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    role: RoleName = "analyst"

    @field_validator("role", mode="before")
    @classmethod
    def canonical_role(cls, v: str) -> str:
        return normalize_role(v)


class RoleUpdate(BaseModel):
    role: RoleName

    @field_validator("role", mode="before")
    @classmethod
    def canonical_role(cls, v: str) -> str:
        return normalize_role(v)


class StatusUpdate(BaseModel):
    status: StatusName

    @field_validator("status", mode="before")
    @classmethod
    def canonical_status(cls, v: str) -> str:
        return normalize_status(v)


class ProfileUpdate(BaseModel):
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, v: str | None) -> str | None:
        return _blank_to_none(v)


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class PasswordReset(BaseModel):
    new_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class MessageResponse(BaseModel):
    message: str


class DirectoryTestResponse(BaseModel):
    """Result of the admin directory connectivity check."""

    connected: bool
    missing: list[str] = Field(default_factory=list, description="Required LDAP_* keys that are not set")
    configuration: dict[str, Literal["configured", "missing"]]
