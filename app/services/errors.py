"""Service-layer errors. Each carries a human message and a machine-readable kind.

Routes translate these into HTTP responses; see app.api.v1.auth.raise_http_for.
"""


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    kind = "error"

    def __init__(self, message: str, **context: object) -> None:
        self.message = message
        self.context = context
        super().__init__(message)


class InvalidCredentialsError(ServiceError):
    """Unknown user, wrong password, or an account with no local password."""

    kind = "invalid_credentials"

    def __init__(self, message: str = "Invalid username or password.") -> None:
        super().__init__(message)


class PendingApprovalError(ServiceError):
    """Credentials are valid but an administrator has not approved the account yet."""

    kind = "pending_approval"

    def __init__(
        self,
        message: str = "Your account is pending admin approval. Please wait for approval before logging in.",
        status: str = "pending",
    ) -> None:
        super().__init__(message, status=status)


class AccountInactiveError(ServiceError):
    """The account exists but is not active (e.g. suspended)."""

    kind = "account_inactive"

    def __init__(
        self,
        message: str = "Your account is not active. Please contact an administrator.",
        status: str = "suspended",
    ) -> None:
        super().__init__(message, status=status)


class UserNotFoundError(ServiceError):
    """The directory search matched no entry (or more than one) for the login name."""

    kind = "user_not_found"


class DirectoryUnavailableError(ServiceError):
    """The directory could not be reached, timed out, or rejected the service account."""

    kind = "directory_unavailable"


class DirectoryConfigurationError(ServiceError):
    """Required directory settings are missing; raised before any network call."""

    kind = "configuration_error"

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message, missing=list(missing or []))


class ForbiddenError(ServiceError):
    """Authenticated but not allowed to perform this operation."""

    kind = "forbidden"


class SelfProtectionError(ServiceError):
    """An admin tried to demote, suspend or delete their own account."""

    kind = "self_protection"


class NotFoundError(ServiceError):
    kind = "not_found"


class UserConflictError(ServiceError):
    """Username or email already belongs to another account."""

    kind = "conflict"


class WeakPasswordError(ServiceError):
    """A new password does not meet the strength policy."""

    kind = "validation_error"

    def __init__(self, errors: list[str]) -> None:
        super().__init__("Password does not meet security requirements", errors=errors)
        self.errors = errors


class DirectoryAccountError(ServiceError):
    """Password operations on an account whose password lives in the directory."""

    kind = "validation_error"
