"""ORM model for findings recorded during an engagement."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from app.models.base import Base, JSONType


class Finding(Base):
    """
    A security finding reported by a user, optionally assigned to others.

    assigned_to holds user ids; comments and attachments are deleted with the finding.
    """

    __tablename__ = "findings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    severity = Column(String(32), nullable=False, index=True)
    category = Column(String(64), nullable=False, default="web_application")
    status = Column(String(32), nullable=False, default="open", index=True)
    cvss_score = Column(String(16), nullable=True)
    affected_url = Column(Text, nullable=True)
    payload = Column(Text, nullable=True)
    evidence = Column(JSONType, nullable=False, default=list)
    network_topology = Column(JSONType, nullable=True)
    exploitation_flow = Column(JSONType, nullable=True)
    mitre_attack = Column(JSONType, nullable=True)
    reported_by_id = Column(
        String(255), ForeignKey("users.id"), nullable=False, index=True
    )
    assigned_to = Column(JSONType, nullable=False, default=list)
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

    reported_by = relationship("User", lazy="joined")
    comments = relationship(
        "Comment",
        back_populates="finding",
        cascade="all, delete-orphan",
    )
    attachments = relationship(
        "Attachment",
        back_populates="finding",
        cascade="all, delete-orphan",
    )
