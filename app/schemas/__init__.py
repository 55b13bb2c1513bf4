"""Pydantic request/response schemas."""

from app.schemas.auth import (
    CurrentUser,
    DirectoryTestResponse,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    UserPublic,
)
from app.schemas.findings import (
    CommentCreate,
    CommentOut,
    FindingCreate,
    FindingOut,
    FindingUpdate,
    SeverityLevel,
)
from app.schemas.health import HealthDetailResponse, HealthResponse
from app.schemas.messages import MessageCreate, MessageOut
from app.schemas.reports import ReportCreate, ReportOut

__all__ = [
    "CommentCreate",
    "CommentOut",
    "CurrentUser",
    "DirectoryTestResponse",
    "FindingCreate",
    "FindingOut",
    "FindingUpdate",
    "HealthDetailResponse",
    "HealthResponse",
    "LoginRequest",
    "MessageCreate",
    "MessageOut",
    "RegisterRequest",
    "RegisterResponse",
    "ReportCreate",
    "ReportOut",
    "SeverityLevel",
    "UserPublic",
]
