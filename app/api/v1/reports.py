"""Report endpoints: generate (HTML or PDF with HTML fallback), list, fetch, download, delete."""

import logging
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, raise_http_for
from app.core.config import settings
from app.core.database import get_db
from app.models import Finding, Report, User
from app.schemas.auth import CurrentUser, MessageResponse
from app.schemas.reports import ReportCreate, ReportOut
from app.services.authorization import ensure_can_delete_report
from app.services.errors import ServiceError
from app.services.report_generator import (
    MEDIA_TYPES,
    GeneratedReport,
    generate_report,
    save_report,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_report_or_404(db: Session, report_id: int) -> Report:
    report = db.get(Report, report_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    return report


def _report_file(report: Report) -> Path | None:
    if not report.file_path:
        return None
    root = Path(settings.REPORTS_DIR).resolve()
    path = Path(report.file_path).resolve()
    if not path.is_relative_to(root):
        return None
    return path


def _load_report_inputs(db: Session, finding_ids: list[int], user_id: str) -> tuple[list[Finding], str]:
    """Selected findings in request order (unknown ids skipped) and the author's display name."""
    findings: list[Finding] = []
    if finding_ids:
        rows = db.query(Finding).filter(Finding.id.in_(finding_ids)).all()
        by_id = {f.id: f for f in rows}
        findings = [by_id[i] for i in finding_ids if i in by_id]
    author = db.get(User, user_id)
    return findings, author.display_name if author else user_id


def _store_report(
    db: Session,
    body: ReportCreate,
    user_id: str,
    findings: list[Finding],
    generated: GeneratedReport,
) -> ReportOut:
    path = save_report(generated, settings.REPORTS_DIR)
    report = Report(
        title=body.title,
        description=body.description,
        findings=[f.id for f in findings],
        generated_by_id=user_id,
        format=generated.format,
        filename=generated.filename,
        file_path=str(path),
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    logger.info(
        "Report generated",
        extra={
            "report_id": report.id,
            "requested_format": body.format,
            "produced_format": generated.format,
            "finding_count": len(findings),
        },
    )
    return ReportOut.model_validate(report)


@router.post("/reports", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
async def create_report(
    body: ReportCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> ReportOut:
    """
    Render the selected findings and store the file under REPORTS_DIR.

    Unknown finding ids are skipped. If PDF rendering fails the stored report is HTML,
    and the returned format says so. Database and file work runs in the thread pool;
    only rendering runs on the event loop.
    """
    findings, author_name = await run_in_threadpool(
        _load_report_inputs, db, body.findings, current_user.id
    )
    generated = await generate_report(
        body.title,
        findings,
        settings,
        description=body.description,
        generated_by=author_name,
        fmt=body.format,
    )
    return await run_in_threadpool(_store_report, db, body, current_user.id, findings, generated)


@router.get("/reports", response_model=list[ReportOut])
def list_reports(
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> list[ReportOut]:
    reports = db.query(Report).order_by(Report.created_at.desc(), Report.id.desc()).all()
    return [ReportOut.model_validate(r) for r in reports]


@router.get("/reports/{report_id}", response_model=ReportOut)
def get_report(
    report_id: int,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> ReportOut:
    return ReportOut.model_validate(_get_report_or_404(db, report_id))


@router.get("/reports/{report_id}/download")
def download_report(
    report_id: int,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> FileResponse:
    report = _get_report_or_404(db, report_id)
    path = _report_file(report)
    if path is None or not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report file not found")
    return FileResponse(
        path,
        media_type=MEDIA_TYPES.get(report.format, "application/octet-stream"),
        filename=report.filename or path.name,
    )


@router.delete("/reports/{report_id}", response_model=MessageResponse)
def delete_report(
    report_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Admins, team leads and the report's creator may delete it; the file goes too."""
    report = _get_report_or_404(db, report_id)
    try:
        ensure_can_delete_report(current_user, report)
    except ServiceError as e:
        raise_http_for(e)
    path = _report_file(report)
    db.delete(report)
    db.commit()
    if path is not None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(
                "Report file could not be removed",
                extra={"report_id": report_id, "error": str(e)},
            )
    return MessageResponse(message="Report deleted successfully")
