"""Findings CRUD with per-resource permissions, comments, attachment listing, and stats."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, raise_http_for
from app.core.config import settings
from app.core.database import get_db
from app.models import Attachment, Comment, Finding
from app.schemas.auth import CurrentUser, MessageResponse
from app.schemas.findings import (
    AttachmentOut,
    CommentCreate,
    CommentOut,
    FindingCreate,
    FindingOut,
    FindingStats,
    FindingUpdate,
)
from app.services.authorization import ensure_can_delete_finding, ensure_can_update_finding
from app.services.errors import ServiceError
from app.services.storage import remove_stored_files

router = APIRouter()


def get_finding_or_404(db: Session, finding_id: int) -> Finding:
    finding = db.get(Finding, finding_id)
    if finding is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Finding not found")
    return finding


@router.post("/findings", response_model=FindingOut, status_code=status.HTTP_201_CREATED)
def create_finding(
    body: FindingCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> FindingOut:
    data = body.model_dump()
    data["evidence"] = data.get("evidence") or []
    data["assigned_to"] = data.get("assigned_to") or []
    finding = Finding(**data, reported_by_id=current_user.id)
    db.add(finding)
    db.commit()
    db.refresh(finding)
    return FindingOut.model_validate(finding)


@router.get("/findings", response_model=list[FindingOut])
def list_findings(
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    severity: Annotated[list[str] | None, Query()] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    category: str | None = None,
    search: str | None = None,
) -> list[FindingOut]:
    """Filter by severity (repeatable), status, category, and a title/description substring."""
    q = db.query(Finding)
    if severity:
        q = q.filter(Finding.severity.in_([s.lower() for s in severity]))
    if status_filter:
        q = q.filter(Finding.status == status_filter.lower())
    if category:
        q = q.filter(Finding.category == category.lower())
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(Finding.title.ilike(pattern), Finding.description.ilike(pattern)))
    findings = q.order_by(Finding.created_at.desc(), Finding.id.desc()).all()
    return [FindingOut.model_validate(f) for f in findings]


@router.get("/findings/{finding_id}", response_model=FindingOut)
def get_finding(
    finding_id: int,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> FindingOut:
    return FindingOut.model_validate(get_finding_or_404(db, finding_id))


@router.patch("/findings/{finding_id}", response_model=FindingOut)
def update_finding(
    finding_id: int,
    body: FindingUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> FindingOut:
    """Admins, team leads, the reporter, and assignees may edit. Last write wins."""
    finding = get_finding_or_404(db, finding_id)
    try:
        ensure_can_update_finding(current_user, finding)
    except ServiceError as e:
        raise_http_for(e)
    for field, value in body.model_dump(exclude_unset=True).items():
        if field in ("evidence", "assigned_to") and value is None:
            value = []
        setattr(finding, field, value)
    db.commit()
    db.refresh(finding)
    return FindingOut.model_validate(finding)


@router.delete("/findings/{finding_id}", response_model=MessageResponse)
def delete_finding(
    finding_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Deletes the finding with its comments, attachment records and stored files."""
    finding = get_finding_or_404(db, finding_id)
    try:
        ensure_can_delete_finding(current_user, finding)
    except ServiceError as e:
        raise_http_for(e)
    file_paths = [a.file_path for a in finding.attachments]
    db.delete(finding)
    db.commit()
    remove_stored_files(file_paths, settings.UPLOADS_DIR)
    return MessageResponse(message="Finding deleted successfully")


@router.post(
    "/findings/{finding_id}/comments",
    response_model=CommentOut,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    finding_id: int,
    body: CommentCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> CommentOut:
    get_finding_or_404(db, finding_id)
    comment = Comment(finding_id=finding_id, user_id=current_user.id, content=body.content)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return CommentOut.model_validate(comment)


@router.get("/findings/{finding_id}/comments", response_model=list[CommentOut])
def list_comments(
    finding_id: int,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> list[CommentOut]:
    get_finding_or_404(db, finding_id)
    comments = (
        db.query(Comment)
        .filter(Comment.finding_id == finding_id)
        .order_by(Comment.created_at, Comment.id)
        .all()
    )
    return [CommentOut.model_validate(c) for c in comments]


@router.get("/findings/{finding_id}/attachments", response_model=list[AttachmentOut])
def list_attachments(
    finding_id: int,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> list[AttachmentOut]:
    get_finding_or_404(db, finding_id)
    attachments = (
        db.query(Attachment)
        .filter(Attachment.finding_id == finding_id)
        .order_by(Attachment.created_at, Attachment.id)
        .all()
    )
    return [AttachmentOut.model_validate(a) for a in attachments]


@router.get("/stats", response_model=FindingStats)
def get_stats(
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> FindingStats:
    """Dashboard counters: total findings, critical, high, and resolved."""
    total = db.query(func.count(Finding.id)).scalar() or 0
    by_severity = dict(
        db.query(Finding.severity, func.count(Finding.id)).group_by(Finding.severity).all()
    )
    resolved = (
        db.query(func.count(Finding.id)).filter(Finding.status == "resolved").scalar() or 0
    )
    return FindingStats(
        total=total,
        critical=by_severity.get("critical", 0),
        high=by_severity.get("high", 0),
        resolved=resolved,
    )
