# ABOUTME: Tests for the error taxonomy, retry policy, and local error reporter.
# ABOUTME: Covers notice severity, message mapping, and SQLAlchemy error translation.

from sqlalchemy.exc import IntegrityError, OperationalError

from ward_bulletin.errors import (
    ERROR_MESSAGES,
    AuthenticationError,
    DatabaseError,
    ErrorReporter,
    ErrorSeverity,
    NetworkError,
    OperationTimeoutError,
    ValidationError,
    is_retryable,
    translate_db_error,
    user_friendly_message,
)


class TestRetryPolicy:
    def test_retryable_kinds(self) -> None:
        assert is_retryable(NetworkError())
        assert is_retryable(DatabaseError())
        assert not is_retryable(ValidationError())
        assert not is_retryable(AuthenticationError())

    def test_plain_exception_by_message(self) -> None:
        assert is_retryable(RuntimeError("Failed to fetch"))
        assert not is_retryable(RuntimeError("boom"))


class TestMessages:
    def test_user_friendly_errors_keep_their_message(self) -> None:
        assert user_friendly_message(ValidationError("Slug taken")) == "Slug taken"

    def test_internal_errors_use_generic_message(self) -> None:
        message = user_friendly_message(DatabaseError("duplicate key value violates ..."))

        assert message == ERROR_MESSAGES["DATABASE_ERROR"]

    def test_unknown_exception(self) -> None:
        assert user_friendly_message(KeyError("x")) == ERROR_MESSAGES["UNKNOWN_ERROR"]

    def test_timeout_default_message(self) -> None:
        assert OperationTimeoutError().message == "Operation timed out"


class TestTranslateDbError:
    def test_operational_is_network(self) -> None:
        error = OperationalError("SELECT 1", {}, ConnectionRefusedError("refused"))

        translated = translate_db_error(error, context="records")

        assert isinstance(translated, NetworkError)
        assert translated.context == "records"

    def test_other_is_database(self) -> None:
        error = IntegrityError("INSERT", {}, Exception("unique"))

        assert isinstance(translate_db_error(error), DatabaseError)


class TestErrorReporter:
    """Tests for ErrorReporter."""

    def test_notice_auto_close_follows_severity(self) -> None:
        reporter = ErrorReporter()

        low = reporter.handle(NetworkError(), severity=ErrorSeverity.LOW)
        critical = reporter.handle(NetworkError(), severity=ErrorSeverity.CRITICAL)

        assert low.auto_close_seconds == 3
        assert critical.persistent

    def test_auth_errors_are_persistent(self) -> None:
        notice = ErrorReporter().handle(AuthenticationError(), severity=ErrorSeverity.LOW)

        assert notice.persistent
        assert notice.level == "error"

    def test_entries_are_bounded(self) -> None:
        reporter = ErrorReporter(max_entries=3)

        for i in range(5):
            reporter.handle(ValidationError(f"bad {i}"), component="form", action="submit")

        assert [entry.message for entry in reporter.entries] == ["bad 2", "bad 3", "bad 4"]

    def test_forward_receives_entries(self) -> None:
        seen = []
        reporter = ErrorReporter(forward=seen.append)

        reporter.handle(DatabaseError("write failed"), component="editor", action="save")

        assert seen[0].code == "DATABASE_ERROR"
        assert seen[0].component == "editor"

    def test_clear(self) -> None:
        reporter = ErrorReporter()
        reporter.handle(NetworkError())

        reporter.clear()

        assert reporter.entries == []
