"""SQLAlchemy ORM models."""

from app.models.attachment import Attachment
from app.models.base import Base
from app.models.comment import Comment
from app.models.finding import Finding
from app.models.message import Message
from app.models.report import Report
from app.models.user import User

__all__ = ["Attachment", "Base", "Comment", "Finding", "Message", "Report", "User"]
