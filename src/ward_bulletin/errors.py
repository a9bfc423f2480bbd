# ABOUTME: Error taxonomy and local error reporting for the bulletin workflow.
# ABOUTME: Maps failures to user-facing notices, retry policy, and structured log entries.

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

import structlog
from sqlalchemy.exc import OperationalError, SQLAlchemyError

log = structlog.get_logger()


class AppError(Exception):
    """Base class for errors raised by the bulletin core."""

    code = "UNKNOWN_ERROR"
    default_context = "general"
    user_friendly = False
    retryable = False

    def __init__(self, message: str = "", context: str | None = None) -> None:
        super().__init__(message or ERROR_MESSAGES[self.code])
        self.message = message or ERROR_MESSAGES[self.code]
        self.context = context or self.default_context


class NetworkError(AppError):
    """Transient connectivity failure. Safe to retry."""

    code = "NETWORK_ERROR"
    default_context = "network"
    user_friendly = True
    retryable = True


class ValidationError(AppError):
    """User input rejected. Not retryable, correctable by the user."""

    code = "VALIDATION_ERROR"
    default_context = "validation"
    user_friendly = True


class AuthenticationError(AppError):
    """Session missing, invalid, or expired. Requires re-authentication."""

    code = "AUTH_ERROR"
    default_context = "auth"
    user_friendly = True


class DatabaseError(AppError):
    """Backend read or write failure. Retryable with backoff."""

    code = "DATABASE_ERROR"
    default_context = "database"
    retryable = True


class RateLimitError(AppError):
    """Caller exceeded its request budget and must wait."""

    code = "RATE_LIMIT_EXCEEDED"
    default_context = "rate_limit"
    user_friendly = True


class OperationTimeoutError(AppError):
    """A bounded operation did not finish in time."""

    code = "TIMEOUT_ERROR"
    default_context = "timeout"


class NotFoundError(AppError):
    """Requested record does not exist."""

    code = "NOT_FOUND"
    default_context = "database"
    user_friendly = True


ERROR_MESSAGES: dict[str, str] = {
    "NETWORK_ERROR": "Connection failed. Please check your internet connection and try again.",
    "TIMEOUT_ERROR": "Operation timed out",
    "AUTH_ERROR": "Please sign in again to continue.",
    "SESSION_EXPIRED": "Your session has expired. Please sign in again.",
    "VALIDATION_ERROR": "Please check your input and try again.",
    "DATABASE_ERROR": "Unable to save your data. Please try again.",
    "NOT_FOUND": "The requested item was not found.",
    "RATE_LIMIT_EXCEEDED": "Too many requests. Please wait a moment and try again.",
    "SERVICE_UNAVAILABLE": "The service is temporarily unavailable. Please try again later.",
    "UNKNOWN_ERROR": "An unexpected error occurred. Please try again.",
}


class ErrorSeverity(str, Enum):
    """How loudly an error is surfaced."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Seconds before a notice dismisses itself; None means it stays until acknowledged.
AUTO_CLOSE_SECONDS: dict[ErrorSeverity, int | None] = {
    ErrorSeverity.LOW: 3,
    ErrorSeverity.MEDIUM: 5,
    ErrorSeverity.HIGH: 8,
    ErrorSeverity.CRITICAL: None,
}


@dataclass(frozen=True)
class Notice:
    """A user-visible notification produced by the workflow."""

    level: str  # "success", "info", "warning", "error"
    message: str
    auto_close_seconds: int | None = 5

    @property
    def persistent(self) -> bool:
        return self.auto_close_seconds is None


@dataclass
class ErrorEntry:
    """One locally logged error."""

    code: str
    message: str
    context: str
    component: str
    action: str
    severity: ErrorSeverity
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


def translate_db_error(error: SQLAlchemyError, context: str = "database") -> AppError:
    """Map a SQLAlchemy failure onto the error taxonomy."""
    if isinstance(error, OperationalError):
        return NetworkError(str(error.orig or error), context=context)
    return DatabaseError(str(error), context=context)


def user_friendly_message(error: BaseException) -> str:
    """Message safe to show to the user for any error."""
    if isinstance(error, AppError):
        if error.user_friendly:
            return error.message
        return ERROR_MESSAGES.get(error.code, ERROR_MESSAGES["UNKNOWN_ERROR"])
    return ERROR_MESSAGES["UNKNOWN_ERROR"]


_RETRYABLE_MESSAGES = ("Network Error", "Failed to fetch", "Connection timeout", "Service Unavailable")


def is_retryable(error: BaseException) -> bool:
    """Whether an operation that raised this error may be attempted again."""
    if isinstance(error, AppError):
        return error.retryable
    return any(marker in str(error) for marker in _RETRYABLE_MESSAGES)


class ErrorReporter:
    """Logs errors with context and turns them into user notices.

    Keeps a bounded in-memory log. ``forward`` is called for every handled
    error and does nothing unless an external tracker is plugged in.
    """

    def __init__(
        self,
        max_entries: int = 100,
        forward: Callable[[ErrorEntry], None] | None = None,
    ) -> None:
        self.max_entries = max_entries
        self.forward = forward or (lambda entry: None)
        self._entries: list[ErrorEntry] = []

    def handle(
        self,
        error: BaseException,
        component: str = "unknown",
        action: str = "unknown",
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    ) -> Notice:
        """Record ``error`` and return the notice to show the user."""
        code = error.code if isinstance(error, AppError) else "UNKNOWN_ERROR"
        context = error.context if isinstance(error, AppError) else "general"
        entry = ErrorEntry(
            code=code,
            message=str(error),
            context=context,
            component=component,
            action=action,
            severity=severity,
        )
        self._entries.append(entry)
        if len(self._entries) > self.max_entries:
            self._entries = self._entries[-self.max_entries :]

        log.error(
            "error_handled",
            code=code,
            error=str(error),
            context=context,
            component=component,
            action=action,
            severity=severity.value,
        )
        self.forward(entry)

        auto_close = AUTO_CLOSE_SECONDS[severity]
        if isinstance(error, AuthenticationError):
            auto_close = None
        return Notice(level="error", message=user_friendly_message(error), auto_close_seconds=auto_close)

    @property
    def entries(self) -> list[ErrorEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries = []
