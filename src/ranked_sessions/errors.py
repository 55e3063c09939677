"""Application error taxonomy."""

from datetime import UTC, datetime
from typing import Literal

Severity = Literal["error", "warning"]


class ErrorCodes:
    """Stable error codes shared with API clients."""

    VALIDATION_ERROR = "VAL_001"
    RATE_LIMIT_EXCEEDED = "RATE_001"
    NOT_FOUND = "NOT_FOUND_001"
    SESSION_NOT_FOUND = "SESSION_001"
    SESSION_NOT_ACTIVE = "SESSION_004"
    CONFLICT = "CONFLICT_001"
    INTERNAL_ERROR = "INT_001"
    INTERNAL_DB_ERROR = "INT_002"
    FEATURE_DISABLED = "FEATURE_001"
    FORBIDDEN = "AUTH_006"


class AppError(Exception):
    """Base error carrying a code, an HTTP status and log context."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        *,
        severity: Severity | None = None,
        metadata: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.severity: Severity = severity or (
            "error" if status_code >= 500 else "warning"  # noqa: PLR2004
        )
        self.metadata = metadata or {}
        self.timestamp = datetime.now(tz=UTC)

    def to_dict(self) -> dict[str, object]:
        """Return the client-facing representation of the error."""
        return {"code": self.code, "message": self.message}


class ValidationError(AppError):
    """Caller-supplied state violates a precondition."""

    def __init__(self, message: str, metadata: dict[str, object] | None = None):
        super().__init__(ErrorCodes.VALIDATION_ERROR, message, 400, metadata=metadata)


class RateLimitError(AppError):
    """Abuse guard tripped; the caller may retry after the cooldown."""

    def __init__(
        self,
        message: str = "Too many requests",
        metadata: dict[str, object] | None = None,
    ) -> None:
        super().__init__(
            ErrorCodes.RATE_LIMIT_EXCEEDED, message, 429, metadata=metadata
        )


class NotFoundError(AppError):
    """An expected row is absent."""

    def __init__(
        self,
        resource: str,
        identifier: object | None = None,
        code: str = ErrorCodes.NOT_FOUND,
    ) -> None:
        message = (
            f"{resource} not found: {identifier}"
            if identifier is not None
            else f"{resource} not found"
        )
        super().__init__(code, message, 404, metadata={"resource": resource})


class SessionNotActiveError(AppError):
    """The session is not in a state that accepts ranked results."""

    def __init__(self, message: str, metadata: dict[str, object] | None = None):
        super().__init__(
            ErrorCodes.SESSION_NOT_ACTIVE, message, 400, metadata=metadata
        )


class ConflictError(AppError):
    """The write conflicts with state that already exists."""

    def __init__(self, message: str, metadata: dict[str, object] | None = None):
        super().__init__(ErrorCodes.CONFLICT, message, 409, metadata=metadata)


class FeatureDisabledError(AppError):
    """The requested subsystem is switched off."""

    def __init__(self, feature: str) -> None:
        super().__init__(
            ErrorCodes.FEATURE_DISABLED,
            f"{feature} is not enabled",
            404,
            metadata={"feature": feature},
        )


class ForbiddenError(AppError):
    """The caller may not perform this action on the resource."""

    def __init__(self, message: str, metadata: dict[str, object] | None = None):
        super().__init__(ErrorCodes.FORBIDDEN, message, 403, metadata=metadata)


class StorageError(AppError):
    """A storage operation failed; safe to retry on the next cycle."""

    def __init__(self, message: str, metadata: dict[str, object] | None = None):
        super().__init__(
            ErrorCodes.INTERNAL_DB_ERROR, message, 500, metadata=metadata
        )

    def to_dict(self) -> dict[str, object]:
        """Hide storage internals from clients."""
        return {"code": self.code, "message": "Internal server error"}


class RepositoryError(RuntimeError):
    """Raised by storage adapters when a query or write fails."""


class RepositoryConflictError(RepositoryError):
    """Raised when a write is rejected because the stored state moved on."""
