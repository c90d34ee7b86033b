from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    SESSION_ALREADY_ACTIVE = ErrorDefinition(
        "SESSION_ALREADY_ACTIVE",
        "A session is already active",
        status.HTTP_409_CONFLICT,
    )
    SESSION_NOT_FOUND = ErrorDefinition(
        "SESSION_NOT_FOUND",
        "Session not found",
        status.HTTP_404_NOT_FOUND,
    )
    TRANSACTION_NOT_FOUND = ErrorDefinition(
        "TRANSACTION_NOT_FOUND",
        "Transaction not found",
        status.HTTP_404_NOT_FOUND,
    )
    NO_ACTIVE_SESSION = ErrorDefinition(
        "NO_ACTIVE_SESSION",
        "Cannot process payment without an active session",
        status.HTTP_409_CONFLICT,
    )
    STORE_ERROR = ErrorDefinition(
        "STORE_ERROR",
        "Persistent store failure",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD = ErrorDefinition(
        "IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD",
        "Idempotency key reused with different payload",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REQUEST_IN_PROGRESS = ErrorDefinition(
        "IDEMPOTENCY_REQUEST_IN_PROGRESS",
        "Idempotency request already in progress",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REPLAY = ErrorDefinition(
        "IDEMPOTENCY_REPLAY",
        "Idempotent replay",
        status.HTTP_200_OK,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)


class ConflictError(AppError):
    """Raised when a session is started while another one is active."""

    def __init__(self, details: object | None = None) -> None:
        super().__init__(ErrorCatalog.SESSION_ALREADY_ACTIVE, details)


class NotFoundError(AppError):
    """Raised when a session or transaction does not exist."""

    def __init__(self, error: ErrorDefinition = ErrorCatalog.SESSION_NOT_FOUND, details: object | None = None) -> None:
        super().__init__(error, details)


class NoActiveSessionError(AppError):
    """Raised when a payment is recorded with no active session."""

    def __init__(self, details: object | None = None) -> None:
        super().__init__(ErrorCatalog.NO_ACTIVE_SESSION, details)


class ValidationError(AppError):
    def __init__(self, message: str, **details: object) -> None:
        super().__init__(ErrorCatalog.VALIDATION_ERROR, {"message": message, **details})


class StoreError(AppError):
    """Raised for any failure of the underlying database."""

    def __init__(self, details: object | None = None, *, lock_timeout: bool = False) -> None:
        error = ErrorCatalog.LOCK_TIMEOUT if lock_timeout else ErrorCatalog.STORE_ERROR
        super().__init__(error, details)
