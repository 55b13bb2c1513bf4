"""ORM model for evidence files attached to findings."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class Attachment(Base):
    """
    Evidence file stored on disk under a generated filename.

    original_name is the client's filename, used as the download name.
    """

    __tablename__ = "attachments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    finding_id = Column(
        Integer,
        ForeignKey("findings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    filename = Column(String(255), nullable=False)
    original_name = Column(String(1024), nullable=False)
    file_path = Column(String(2048), nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(255), nullable=False)
    uploaded_by_id = Column(String(255), ForeignKey("users.id"), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    finding = relationship("Finding", back_populates="attachments")
    uploaded_by = relationship("User", lazy="joined")
