"""User administration: directory provisioning, approval, role/status changes, deletion, passwords.

Every mutation that changes who a user is (role, status, existence) also updates or
drops that user's live sessions so the change takes effect on the next request.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import hash_password, validate_password_strength, verify_password
from app.core.sessions import InMemorySessionStore
from app.models import Attachment, Comment, Finding, Message, Report, User
from app.models.user import (
    AUTH_SOURCE_LDAP,
    AUTH_SOURCE_LOCAL,
    STATUS_ACTIVE,
    STATUS_PENDING,
)
from app.services.authorization import (
    Actor,
    ensure_not_self_deactivation,
    ensure_not_self_deletion,
    ensure_not_self_demotion,
)
from app.services.directory import DirectoryUser
from app.services.errors import (
    AccountInactiveError,
    DirectoryAccountError,
    InvalidCredentialsError,
    NotFoundError,
    UserConflictError,
    WeakPasswordError,
)
from app.services.local_auth import create_local_user, ensure_unique_identity
from app.services.storage import remove_stored_files

logger = logging.getLogger(__name__)

DIRECTORY_ID_PREFIX = "ad_"


def directory_user_id(username: str) -> str:
    return f"{DIRECTORY_ID_PREFIX}{username}"


def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.created_at.desc(), User.id).all()


def list_pending_users(db: Session) -> list[User]:
    return (
        db.query(User)
        .filter(User.status == STATUS_PENDING)
        .order_by(User.created_at, User.id)
        .all()
    )


def upsert_directory_user(db: Session, directory_user: DirectoryUser, role: str) -> User:
    """
    Create or refresh the local record for a directory-authenticated identity.

    First login creates an active account with id ad_<username> and no password.
    Later logins refresh names, e-mail and role. A suspended directory account stays
    suspended and raises AccountInactiveError; a local account already holding the
    username raises UserConflictError.
    """
    user_id = directory_user_id(directory_user.username)
    user = db.get(User, user_id)
    email = directory_user.email or None
    if email:
        taken = db.query(User).filter(User.email == email, User.id != user_id).first()
        if taken is not None:
            logger.warning(
                "Directory e-mail already used by another account; not stored",
                extra={"user_id": user_id, "other_user_id": taken.id},
            )
            email = None

    if user is None:
        clash = db.query(User).filter(User.username == directory_user.username).first()
        if clash is not None:
            raise UserConflictError("Username already belongs to a local account")
        user = User(
            id=user_id,
            username=directory_user.username,
            password_hash=None,
            first_name=directory_user.first_name,
            last_name=directory_user.last_name,
            email=email,
            role=role,
            status=STATUS_ACTIVE,
            auth_source=AUTH_SOURCE_LDAP,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(
            "Directory user provisioned",
            extra={"user_id": user_id, "role": role, "auth_source": AUTH_SOURCE_LDAP},
        )
        return user

    if user.status != STATUS_ACTIVE:
        raise AccountInactiveError(status=user.status)

    previous_role = user.role
    user.first_name = directory_user.first_name or user.first_name
    user.last_name = directory_user.last_name or user.last_name
    if email:
        user.email = email
    user.role = role
    db.commit()
    db.refresh(user)
    if previous_role != role:
        logger.info(
            "Directory user role changed",
            extra={"user_id": user_id, "old_role": previous_role, "role": role},
        )
    return user


def create_user_as_admin(
    db: Session,
    *,
    username: str,
    password: str,
    first_name: str,
    last_name: str,
    email: str,
    role: str,
) -> User:
    """Admin-created local accounts skip the approval queue."""
    return create_local_user(
        db,
        username=username,
        password=password,
        first_name=first_name,
        last_name=last_name,
        email=email,
        role=role,
        status=STATUS_ACTIVE,
    )


def approve_user(db: Session, sessions: InMemorySessionStore, user_id: str) -> User:
    user = get_user(db, user_id)
    user.status = STATUS_ACTIVE
    db.commit()
    db.refresh(user)
    sessions.refresh_user(user)
    logger.info("User approved", extra={"user_id": user_id})
    return user


def set_role(
    db: Session,
    sessions: InMemorySessionStore,
    actor: Actor,
    user_id: str,
    role: str,
) -> User:
    ensure_not_self_demotion(actor, user_id, role)
    user = get_user(db, user_id)
    user.role = role
    db.commit()
    db.refresh(user)
    sessions.refresh_user(user)
    logger.info("User role updated", extra={"user_id": user_id, "role": role, "actor_id": actor.id})
    return user


def set_status(
    db: Session,
    sessions: InMemorySessionStore,
    actor: Actor,
    user_id: str,
    status: str,
) -> User:
    ensure_not_self_deactivation(actor, user_id, status)
    user = get_user(db, user_id)
    user.status = status
    db.commit()
    db.refresh(user)
    if status == STATUS_ACTIVE:
        sessions.refresh_user(user)
    else:
        sessions.destroy_for_user(user_id)
    logger.info(
        "User status updated",
        extra={"user_id": user_id, "status": status, "actor_id": actor.id},
    )
    return user


def delete_user(
    db: Session,
    sessions: InMemorySessionStore,
    actor: Actor,
    user_id: str,
) -> None:
    """
    Delete a user. Their findings and reports are reassigned to the acting admin and
    they are dropped from every finding's assignees; their comments, messages, uploaded
    attachment records and the stored attachment files are removed.
    """
    ensure_not_self_deletion(actor, user_id)
    user = get_user(db, user_id)
    for finding in db.query(Finding).all():
        if user_id in (finding.assigned_to or []):
            finding.assigned_to = [i for i in finding.assigned_to if i != user_id]
    db.flush()
    db.query(Finding).filter(Finding.reported_by_id == user_id).update(
        {Finding.reported_by_id: actor.id}, synchronize_session=False
    )
    db.query(Report).filter(Report.generated_by_id == user_id).update(
        {Report.generated_by_id: actor.id}, synchronize_session=False
    )
    file_paths = [
        path
        for (path,) in db.query(Attachment.file_path).filter(Attachment.uploaded_by_id == user_id)
    ]
    db.query(Attachment).filter(Attachment.uploaded_by_id == user_id).delete(
        synchronize_session=False
    )
    db.query(Comment).filter(Comment.user_id == user_id).delete(synchronize_session=False)
    authored = select(Message.id).where(Message.user_id == user_id)
    db.query(Message).filter(Message.reply_to.in_(authored)).update(
        {Message.reply_to: None}, synchronize_session=False
    )
    db.query(Message).filter(Message.user_id == user_id).delete(synchronize_session=False)
    db.delete(user)
    db.commit()
    remove_stored_files(file_paths, settings.UPLOADS_DIR)
    sessions.destroy_for_user(user_id)
    logger.info("User deleted", extra={"user_id": user_id, "actor_id": actor.id})


def _check_new_password(password: str) -> None:
    problems = validate_password_strength(password)
    if problems:
        raise WeakPasswordError(problems)


def reset_password(db: Session, user_id: str, new_password: str) -> User:
    """Admin reset of a local account's password."""
    user = get_user(db, user_id)
    if user.auth_source != AUTH_SOURCE_LOCAL:
        raise DirectoryAccountError("Cannot reset password for directory users")
    _check_new_password(new_password)
    user.password_hash = hash_password(new_password)
    db.commit()
    db.refresh(user)
    logger.info("Password reset by admin", extra={"user_id": user_id})
    return user


def change_own_password(
    db: Session,
    user_id: str,
    current_password: str,
    new_password: str,
) -> User:
    user = get_user(db, user_id)
    if user.auth_source != AUTH_SOURCE_LOCAL or not user.password_hash:
        raise DirectoryAccountError("Directory accounts change their password in the directory")
    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentialsError("Current password is incorrect")
    _check_new_password(new_password)
    user.password_hash = hash_password(new_password)
    db.commit()
    db.refresh(user)
    logger.info("Password changed", extra={"user_id": user_id})
    return user


def update_profile(
    db: Session,
    user_id: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    email: str | None = None,
) -> User:
    user = get_user(db, user_id)
    if email and email != user.email:
        ensure_unique_identity(db, None, email, exclude_user_id=user_id)
        user.email = email
    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name
    db.commit()
    db.refresh(user)
    return user
