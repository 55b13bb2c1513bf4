"""Evidence attachment download and deletion. Files live under UPLOADS_DIR."""

import logging
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, raise_http_for
from app.core.config import settings
from app.core.database import get_db
from app.models import Attachment
from app.schemas.auth import CurrentUser, MessageResponse
from app.services.authorization import ensure_can_delete_attachment
from app.services.errors import ServiceError
from app.services.storage import remove_stored_files, resolve_stored_path

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_attachment_or_404(db: Session, attachment_id: int) -> Attachment:
    attachment = db.get(Attachment, attachment_id)
    if attachment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
    return attachment


def stored_path(attachment: Attachment) -> Path:
    """Resolve the stored file, refusing paths that escape UPLOADS_DIR."""
    path = resolve_stored_path(attachment.file_path, settings.UPLOADS_DIR)
    if path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return path


@router.get("/attachments/{attachment_id}/download")
def download_attachment(
    attachment_id: int,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> FileResponse:
    """Serve the stored file under its original filename."""
    attachment = _get_attachment_or_404(db, attachment_id)
    path = stored_path(attachment)
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(
        path,
        media_type=attachment.mime_type or "application/octet-stream",
        filename=attachment.original_name,
    )


@router.delete("/attachments/{attachment_id}", response_model=MessageResponse)
def delete_attachment(
    attachment_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    attachment = _get_attachment_or_404(db, attachment_id)
    try:
        ensure_can_delete_attachment(current_user, attachment)
    except ServiceError as e:
        raise_http_for(e)
    file_path = attachment.file_path
    db.delete(attachment)
    db.commit()
    remove_stored_files([file_path], settings.UPLOADS_DIR)
    logger.info("Attachment deleted", extra={"attachment_id": attachment_id, "actor_id": current_user.id})
    return MessageResponse(message="Attachment deleted successfully")
