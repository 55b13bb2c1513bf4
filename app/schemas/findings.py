"""Pydantic schemas for findings, comments and attachments."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from app.schemas.auth import UserPublic

# Reusable severity levels for validation and type safety across schemas.
SeverityLevel = Literal["critical", "high", "medium", "low"]
SEVERITY_VALUES: tuple[str, ...] = ("critical", "high", "medium", "low")

FindingStatus = Literal["open", "in_progress", "resolved", "verified"]

FindingCategory = Literal[
    "web_application",
    "network",
    "infrastructure",
    "social_engineering",
    "indicator_of_compromise",
    "malware",
    "domain",
    "network_traffic",
]

TITLE_MAX_LENGTH = 500
DESCRIPTION_MAX_LENGTH = 50_000
COMMENT_MAX_LENGTH = 10_000


def _lower(value: Any) -> Any:
    """Case-insensitive enums: 'Critical' and 'critical' are the same severity."""
    if isinstance(value, str):
        return value.strip().lower().replace("-", "_").replace(" ", "_")
    return value


def _validate_cvss(value: str | None) -> str | None:
    """Ensure CVSS score parses as a number in [0, 10] when present."""
    if value is None or not str(value).strip():
        return None
    try:
        score = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError("cvss_score must be a number between 0 and 10") from e
    if not 0 <= score <= 10:
        raise ValueError("cvss_score must be between 0 and 10")
    return str(value).strip()


class FindingBase(BaseModel):
    model_config = {"extra": "ignore"}

    cvss_score: str | None = Field(default=None, description="CVSS score in range 0.0-10.0.")
    affected_url: str | None = Field(default=None, max_length=4096)
    payload: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    evidence: list[str] | None = Field(default=None, description="Evidence references (paths or URLs).")
    network_topology: dict[str, Any] | None = None
    exploitation_flow: dict[str, Any] | list[Any] | None = None
    mitre_attack: dict[str, Any] | list[Any] | None = None
    assigned_to: list[str] | None = Field(default=None, description="Assignee user ids.")

    @field_validator("cvss_score", mode="before")
    @classmethod
    def validate_cvss_if_present(cls, v: Any) -> str | None:
        return _validate_cvss(None if v is None else str(v))


class FindingCreate(FindingBase):
    """Payload to create a finding; the reporter is the current user."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    severity: SeverityLevel
    category: FindingCategory = "web_application"
    status: FindingStatus = "open"

    @field_validator("severity", "category", "status", mode="before")
    @classmethod
    def normalize_enums(cls, v: Any) -> Any:
        return _lower(v)


class FindingUpdate(FindingBase):
    """Partial update; only fields present in the body are changed."""

    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    severity: SeverityLevel | None = None
    category: FindingCategory | None = None
    status: FindingStatus | None = None

    @field_validator("severity", "category", "status", mode="before")
    @classmethod
    def normalize_enums(cls, v: Any) -> Any:
        return _lower(v)


class FindingOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    title: str
    description: str
    severity: str
    category: str
    status: str
    cvss_score: str | None = None
    affected_url: str | None = None
    payload: str | None = None
    evidence: list[Any] = Field(default_factory=list)
    network_topology: Any = None
    exploitation_flow: Any = None
    mitre_attack: Any = None
    reported_by_id: str
    reported_by: UserPublic | None = None
    assigned_to: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class FindingStats(BaseModel):
    total: int
    critical: int
    high: int
    resolved: int


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=COMMENT_MAX_LENGTH)


class CommentOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    finding_id: int
    user_id: str
    user: UserPublic | None = None
    content: str
    created_at: datetime | None = None


class AttachmentOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    finding_id: int
    filename: str
    original_name: str
    file_size: int
    mime_type: str
    uploaded_by_id: str
    uploaded_by: UserPublic | None = None
    created_at: datetime | None = None
