"""Unit tests for the store result model."""

import pytest

from identity.ports import (
    SUCCESS,
    DuplicateRecordError,
    Err,
    ErrorKind,
    IdentityError,
    IdentityErrorCode,
    IdentityStoreError,
    InvalidArgumentError,
    Ok,
    RecordNotFoundError,
    StaleRecordError,
    StoreDatabaseError,
)


class TestOk:
    """Tests for successful results."""

    def test_unwrap_returns_value(self):
        """unwrap() hands back the carried value."""
        assert Ok(42).unwrap() == 42
        assert Ok(42).succeeded is True

    def test_success_constant_carries_none(self):
        """SUCCESS is the shared result of commands."""
        assert SUCCESS == Ok(None)
        assert SUCCESS.unwrap() is None


class TestErr:
    """Tests for failed results."""

    def test_of_builds_error(self):
        """Err.of is shorthand for wrapping an IdentityError."""
        result = Err.of(ErrorKind.CONFLICT, IdentityErrorCode.DUPLICATE_USER, "taken")

        assert result.succeeded is False
        assert result.error == IdentityError(
            code="DuplicateUser", description="taken", kind=ErrorKind.CONFLICT
        )

    @pytest.mark.parametrize(
        ("kind", "exception"),
        [
            (ErrorKind.PRECONDITION, InvalidArgumentError),
            (ErrorKind.NOT_FOUND, RecordNotFoundError),
            (ErrorKind.CONFLICT, DuplicateRecordError),
            (ErrorKind.STALE, StaleRecordError),
            (ErrorKind.DATABASE, StoreDatabaseError),
        ],
    )
    def test_unwrap_raises_exception_for_kind(self, kind, exception):
        """Each error kind unwraps to its own exception type."""
        result = Err.of(kind, "Code", "Something went wrong.")

        with pytest.raises(exception) as exc_info:
            result.unwrap()

        assert isinstance(exc_info.value, IdentityStoreError)
        assert exc_info.value.error is result.error
        assert exc_info.value.code == "Code"
        assert str(exc_info.value) == "Code: Something went wrong."

    def test_results_support_pattern_matching(self):
        """Callers can branch on results with match."""

        def describe(result):
            match result:
                case Ok(value=None):
                    return "missing"
                case Ok(value=value):
                    return f"found {value}"
                case Err(error=error):
                    return error.code

        assert describe(Ok(None)) == "missing"
        assert describe(Ok("x")) == "found x"
        assert describe(Err.of(ErrorKind.STALE, "RoleNotFound", "gone")) == (
            "RoleNotFound"
        )


class TestErrorCodes:
    """Tests for error code values."""

    def test_codes_are_plain_strings(self):
        """Codes compare equal to their wire names."""
        assert IdentityErrorCode.INVALID_ROLE_NAME == "InvalidRoleName"
        assert IdentityErrorCode.USER_NOT_EXIST == "UserNotExist"
        assert IdentityErrorCode.DELETE_FAILED == "DeleteFailed"
