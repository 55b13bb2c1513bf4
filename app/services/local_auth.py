"""Local (username/password) authentication strategy and self-service registration."""

import logging
import uuid
from functools import lru_cache

from sqlalchemy.orm import Session

from app.core.security import hash_password, validate_password_strength, verify_password
from app.models.user import (
    AUTH_SOURCE_LOCAL,
    ROLE_ANALYST,
    STATUS_ACTIVE,
    STATUS_PENDING,
    User,
)
from app.services.errors import (
    AccountInactiveError,
    InvalidCredentialsError,
    PendingApprovalError,
    UserConflictError,
    WeakPasswordError,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    """Hash checked against when the user is unknown, so timing does not reveal usernames."""
    return hash_password(uuid.uuid4().hex)


def authenticate_local(db: Session, username: str, password: str) -> User:
    """
    Verify username/password against the users table and return the user.

    Username match is exact and case-sensitive. Raises InvalidCredentialsError for an
    unknown user, a directory account (no local password) or a wrong password;
    PendingApprovalError when the account awaits approval; AccountInactiveError for
    any other non-active status. The credential check runs before the status check,
    so status is only revealed to callers who know the password.
    """
    user = db.query(User).filter(User.username == username).first()
    if user is None or not user.password_hash:
        verify_password(password, _dummy_hash())
        logger.info(
            "Local login rejected",
            extra={"username": username, "reason": "unknown_user_or_no_password"},
        )
        raise InvalidCredentialsError()
    if not verify_password(password, user.password_hash):
        logger.info(
            "Local login rejected",
            extra={"username": username, "reason": "bad_password"},
        )
        raise InvalidCredentialsError()
    if user.status == STATUS_PENDING:
        raise PendingApprovalError(status=user.status)
    if user.status != STATUS_ACTIVE:
        raise AccountInactiveError(status=user.status)
    logger.info("Local login succeeded", extra={"username": username, "user_id": user.id})
    return user


def ensure_unique_identity(
    db: Session,
    username: str | None,
    email: str | None,
    exclude_user_id: str | None = None,
) -> None:
    """Raise UserConflictError if username or email already belongs to another account."""
    if username:
        q = db.query(User).filter(User.username == username)
        if exclude_user_id:
            q = q.filter(User.id != exclude_user_id)
        if q.first() is not None:
            raise UserConflictError("Username already exists")
    if email:
        q = db.query(User).filter(User.email == email)
        if exclude_user_id:
            q = q.filter(User.id != exclude_user_id)
        if q.first() is not None:
            raise UserConflictError("Email already in use")


def create_local_user(
    db: Session,
    *,
    username: str,
    password: str,
    first_name: str = "",
    last_name: str = "",
    email: str | None = None,
    role: str = ROLE_ANALYST,
    status: str = STATUS_PENDING,
) -> User:
    """Create and commit a local account after policy and uniqueness checks."""
    problems = validate_password_strength(password)
    if problems:
        raise WeakPasswordError(problems)
    ensure_unique_identity(db, username, email)
    user = User(
        id=str(uuid.uuid4()),
        username=username,
        password_hash=hash_password(password),
        first_name=first_name or "",
        last_name=last_name or "",
        email=email or None,
        role=role,
        status=status,
        auth_source=AUTH_SOURCE_LOCAL,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(
        "Local user created",
        extra={"user_id": user.id, "username": username, "role": role, "status": status},
    )
    return user


def register_local_user(
    db: Session,
    *,
    username: str,
    password: str,
    first_name: str = "",
    last_name: str = "",
    email: str | None = None,
) -> User:
    """Self-service registration: a pending analyst account, no session granted."""
    return create_local_user(
        db,
        username=username,
        password=password,
        first_name=first_name,
        last_name=last_name,
        email=email,
        role=ROLE_ANALYST,
        status=STATUS_PENDING,
    )
