"""ORM model for generated report metadata (the file itself lives in REPORTS_DIR)."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func

from app.models.base import Base, JSONType


class Report(Base):
    """
    A generated report. findings holds the finding ids it was built from.

    format is the format actually produced (pdf, or html after a PDF fallback).
    """

    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    findings = Column(JSONType, nullable=False, default=list)
    generated_by_id = Column(String(255), ForeignKey("users.id"), nullable=False)
    format = Column(String(16), nullable=False, default="pdf")
    filename = Column(String(512), nullable=True)
    file_path = Column(String(2048), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
