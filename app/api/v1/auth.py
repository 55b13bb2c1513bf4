"""Session login/logout/registration, directory login, and auth dependencies (gate and role guards)."""

import logging
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import APIKeyCookie
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.sessions import InMemorySessionStore
from app.models.user import ROLE_ADMIN, STATUS_ACTIVE, STATUS_PENDING, User
from app.schemas.auth import (
    CurrentUser,
    DirectoryTestResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    UserPublic,
)
from app.services.directory import REQUIRED_KEYS, DirectoryAuthenticator
from app.services.errors import ServiceError
from app.services.local_auth import authenticate_local, register_local_user
from app.services.users import upsert_directory_user

logger = logging.getLogger(__name__)

router = APIRouter()
session_cookie = APIKeyCookie(name=settings.SESSION_COOKIE_NAME, auto_error=False)

STATUS_BY_KIND = {
    "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
    "user_not_found": status.HTTP_401_UNAUTHORIZED,
    "unauthenticated": status.HTTP_401_UNAUTHORIZED,
    "pending_approval": status.HTTP_403_FORBIDDEN,
    "account_inactive": status.HTTP_403_FORBIDDEN,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "self_protection": status.HTTP_400_BAD_REQUEST,
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "directory_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "configuration_error": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def raise_http_for(exc: ServiceError) -> NoReturn:
    """Translate a service error into an HTTPException with a {message, kind, ...} detail."""
    kind = exc.kind
    message = exc.message
    if kind == "user_not_found":
        # Directory misses look like a bad password to the caller.
        kind, message = "invalid_credentials", "Invalid username or password."
    detail = {"message": message, "kind": kind, **exc.context}
    raise HTTPException(
        status_code=STATUS_BY_KIND.get(kind, status.HTTP_400_BAD_REQUEST),
        detail=detail,
    ) from exc


def _unauthenticated(message: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": message, "kind": "unauthenticated"},
    )


def get_session_store(request: Request) -> InMemorySessionStore:
    return request.app.state.session_store


def get_directory(request: Request) -> DirectoryAuthenticator:
    return request.app.state.directory


def get_current_user(
    session_id: Annotated[str | None, Depends(session_cookie)],
    store: Annotated[InMemorySessionStore, Depends(get_session_store)],
    db: Annotated[Session, Depends(get_db)],
) -> CurrentUser:
    """
    Dependency: the authorization gate.

    401 unless the cookie names a live session whose user still exists; 403 unless
    that user is active (pending_approval for pending accounts, forbidden otherwise),
    with the current status in the detail. The session snapshot is refreshed from the row.
    """
    record = store.get(session_id)
    if record is None:
        raise _unauthenticated()
    user = db.get(User, record.user_id)
    if user is None:
        store.destroy(session_id)
        raise _unauthenticated("Session user no longer exists")
    if user.status != STATUS_ACTIVE:
        pending = user.status == STATUS_PENDING
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": "Account pending approval" if pending else "Account is not active",
                "kind": "pending_approval" if pending else "forbidden",
                "status": user.status,
            },
        )
    store.refresh_user(user)
    return CurrentUser.model_validate(user)


def _forbidden(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"message": message, "kind": "forbidden"},
    )


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require role 'admin'. Raises 403 otherwise."""
    if current_user.role != ROLE_ADMIN:
        raise _forbidden("Admin access required")
    return current_user


def _start_session(
    response: Response,
    store: InMemorySessionStore,
    user: User,
    previous_session_id: str | None,
) -> None:
    # A fresh id on every login; any session id the client arrived with is dropped.
    store.destroy(previous_session_id)
    record = store.create(user)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=record.session_id,
        max_age=int(store.ttl.total_seconds()),
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite=settings.SESSION_COOKIE_SAMESITE,
        path="/",
    )


@router.post("/login", response_model=UserPublic)
def login(
    body: LoginRequest,
    response: Response,
    session_id: Annotated[str | None, Depends(session_cookie)],
    store: Annotated[InMemorySessionStore, Depends(get_session_store)],
    db: Annotated[Session, Depends(get_db)],
) -> UserPublic:
    """
    Authenticate a local account and start a session (cookie).

    401 invalid_credentials, 403 pending_approval or account_inactive (with status).
    """
    try:
        user = authenticate_local(db, body.username, body.password)
    except ServiceError as e:
        raise_http_for(e)
    _start_session(response, store, user, session_id)
    return UserPublic.model_validate(user)


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    session_id: Annotated[str | None, Depends(session_cookie)],
    store: Annotated[InMemorySessionStore, Depends(get_session_store)],
) -> MessageResponse:
    store.destroy(session_id)
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")
    return MessageResponse(message="Logged out successfully")


@router.get("/user", response_model=CurrentUser)
def read_current_user(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    return current_user


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> RegisterResponse:
    """Create a pending analyst account. No session is granted until an admin approves it."""
    try:
        register_local_user(
            db,
            username=body.username,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
            email=body.email,
        )
    except ServiceError as e:
        raise_http_for(e)
    return RegisterResponse(
        message="Registration successful. Your account is pending admin approval.",
        status=STATUS_PENDING,
    )


@router.post("/auth/ldap/login", response_model=UserPublic)
def ldap_login(
    body: LoginRequest,
    response: Response,
    session_id: Annotated[str | None, Depends(session_cookie)],
    store: Annotated[InMemorySessionStore, Depends(get_session_store)],
    directory: Annotated[DirectoryAuthenticator, Depends(get_directory)],
    db: Annotated[Session, Depends(get_db)],
) -> UserPublic:
    """
    Authenticate against LDAP/AD, provision or refresh the local record, start a session.

    503 directory_unavailable or configuration_error when the directory cannot be used.
    """
    try:
        directory_user = directory.authenticate(body.username, body.password)
        role = directory.role_for(directory_user)
        user = upsert_directory_user(db, directory_user, role)
    except ServiceError as e:
        logger.info(
            "Directory login failed",
            extra={"username": body.username, "auth_source": "ldap", "reason": e.kind},
        )
        raise_http_for(e)
    _start_session(response, store, user, session_id)
    logger.info(
        "Directory login succeeded",
        extra={"user_id": user.id, "auth_source": "ldap", "role": user.role},
    )
    return UserPublic.model_validate(user)


@router.get("/auth/ldap/test", response_model=DirectoryTestResponse)
def ldap_test(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    directory: Annotated[DirectoryAuthenticator, Depends(get_directory)],
) -> DirectoryTestResponse:
    """Admin-only: whether the service account can bind, and which LDAP_* keys are unset."""
    missing = directory.config.missing_keys()
    return DirectoryTestResponse(
        connected=directory.test_connection(),
        missing=missing,
        configuration={key: "missing" if key in missing else "configured" for key in REQUIRED_KEYS},
    )
