"""Health endpoints: public liveness with database connectivity, and an admin-only detail view."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.auth import get_directory, get_session_store, require_admin
from app.core.config import settings
from app.core.database import check_db_connected, get_db
from app.core.sessions import InMemorySessionStore
from app.schemas.auth import CurrentUser
from app.schemas.health import HealthDetailResponse, HealthResponse
from app.services.directory import DirectoryAuthenticator

router = APIRouter()


def _db_status(db: Session) -> str:
    return "connected" if check_db_connected(db) else "disconnected"


@router.get("/health", response_model=HealthResponse)
def get_health(db: Annotated[Session, Depends(get_db)]) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring. Unauthenticated, so it carries nothing
    about users or sessions.
    """
    return HealthResponse(status="ok", environment=settings.APP_ENV, database=_db_status(db))


@router.get("/admin/health", response_model=HealthDetailResponse)
def get_health_detail(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    store: Annotated[InMemorySessionStore, Depends(get_session_store)],
    directory: Annotated[DirectoryAuthenticator, Depends(get_directory)],
) -> HealthDetailResponse:
    """Admin-only: live session count (expired ones purged first) and directory configuration state."""
    store.purge_expired()
    if not directory.config.enabled:
        directory_state = "disabled"
    elif directory.config.missing_keys():
        directory_state = "unconfigured"
    else:
        directory_state = "enabled"
    return HealthDetailResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=_db_status(db),
        active_sessions=len(store),
        directory=directory_state,
    )
