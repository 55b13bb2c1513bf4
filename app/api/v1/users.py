"""User directory for assignment pickers, self-service profile, and admin user management."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, get_session_store, raise_http_for, require_admin
from app.core.database import get_db
from app.core.sessions import InMemorySessionStore
from app.schemas.auth import (
    AdminUserCreate,
    CurrentUser,
    MessageResponse,
    PasswordChange,
    PasswordReset,
    ProfileUpdate,
    RoleUpdate,
    StatusUpdate,
    UserDetail,
    UserPublic,
    UsersListResponse,
)
from app.services import users as user_service
from app.services.errors import ServiceError

router = APIRouter()


@router.get("/users", response_model=UsersListResponse)
def list_users(
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    users = user_service.list_users(db)
    return UsersListResponse(users=[UserPublic.model_validate(u) for u in users])


@router.patch("/users/me", response_model=UserPublic)
def update_my_profile(
    body: ProfileUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserPublic:
    try:
        user = user_service.update_profile(
            db,
            current_user.id,
            first_name=body.first_name,
            last_name=body.last_name,
            email=body.email,
        )
    except ServiceError as e:
        raise_http_for(e)
    return UserPublic.model_validate(user)


@router.patch("/users/me/password", response_model=MessageResponse)
def change_my_password(
    body: PasswordChange,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Local accounts only; the current password must be supplied."""
    try:
        user_service.change_own_password(
            db, current_user.id, body.current_password, body.new_password
        )
    except ServiceError as e:
        raise_http_for(e)
    return MessageResponse(message="Password changed successfully")


@router.get("/admin/users", response_model=list[UserDetail])
def admin_list_users(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> list[UserDetail]:
    return [UserDetail.model_validate(u) for u in user_service.list_users(db)]


@router.get("/admin/pending-users", response_model=list[UserDetail])
def admin_list_pending(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> list[UserDetail]:
    return [UserDetail.model_validate(u) for u in user_service.list_pending_users(db)]


@router.post("/admin/users", response_model=UserDetail, status_code=status.HTTP_201_CREATED)
def admin_create_user(
    body: AdminUserCreate,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UserDetail:
    """Create an active local account (no approval step)."""
    try:
        user = user_service.create_user_as_admin(
            db,
            username=body.username,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
            email=body.email,
            role=body.role,
        )
    except ServiceError as e:
        raise_http_for(e)
    return UserDetail.model_validate(user)


@router.post("/admin/users/{user_id}/approve", response_model=UserDetail)
def admin_approve_user(
    user_id: str,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    store: Annotated[InMemorySessionStore, Depends(get_session_store)],
    db: Annotated[Session, Depends(get_db)],
) -> UserDetail:
    try:
        user = user_service.approve_user(db, store, user_id)
    except ServiceError as e:
        raise_http_for(e)
    return UserDetail.model_validate(user)


@router.patch("/admin/users/{user_id}/role", response_model=UserDetail)
def admin_set_role(
    user_id: str,
    body: RoleUpdate,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    store: Annotated[InMemorySessionStore, Depends(get_session_store)],
    db: Annotated[Session, Depends(get_db)],
) -> UserDetail:
    """400 self_protection when an admin would drop their own admin role."""
    try:
        user = user_service.set_role(db, store, admin, user_id, body.role)
    except ServiceError as e:
        raise_http_for(e)
    return UserDetail.model_validate(user)


@router.patch("/admin/users/{user_id}/status", response_model=UserDetail)
def admin_set_status(
    user_id: str,
    body: StatusUpdate,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    store: Annotated[InMemorySessionStore, Depends(get_session_store)],
    db: Annotated[Session, Depends(get_db)],
) -> UserDetail:
    try:
        user = user_service.set_status(db, store, admin, user_id, body.status)
    except ServiceError as e:
        raise_http_for(e)
    return UserDetail.model_validate(user)


@router.patch("/admin/users/{user_id}/reset-password", response_model=MessageResponse)
def admin_reset_password(
    user_id: str,
    body: PasswordReset,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    try:
        user_service.reset_password(db, user_id, body.new_password)
    except ServiceError as e:
        raise_http_for(e)
    return MessageResponse(message="Password reset successfully")


@router.delete("/admin/users/{user_id}", response_model=MessageResponse)
def admin_delete_user(
    user_id: str,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    store: Annotated[InMemorySessionStore, Depends(get_session_store)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """400 self_protection when an admin targets their own account; nothing is changed."""
    try:
        user_service.delete_user(db, store, admin, user_id)
    except ServiceError as e:
        raise_http_for(e)
    return MessageResponse(message="User deleted successfully")
