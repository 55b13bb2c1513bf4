"""Pydantic schemas for report generation requests and stored report metadata."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

ReportFormat = Literal["pdf", "html"]

# Upper bound on findings per report to keep rendering time bounded.
MAX_FINDINGS_PER_REPORT = 1_000


class ReportCreate(BaseModel):
    """Generate a report over the given finding ids."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=20_000)
    findings: list[int] = Field(
        default_factory=list,
        max_length=MAX_FINDINGS_PER_REPORT,
        description="Finding ids to include; unknown ids are skipped.",
    )
    format: ReportFormat = "pdf"

    @field_validator("format", mode="before")
    @classmethod
    def lower_format(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("findings")
    @classmethod
    def dedupe_findings(cls, v: list[int]) -> list[int]:
        return list(dict.fromkeys(v))


class ReportOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    title: str
    description: str | None = None
    findings: list[int] = Field(default_factory=list)
    generated_by_id: str
    format: str
    filename: str | None = None
    created_at: datetime | None = None
