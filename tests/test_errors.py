"""
Tests for error mapping.
"""
import asyncpg
import pytest

from core.errors import (
    ErrorCode, PlatformError, business_error, file_upload_error, forbidden, handle_db_error,
    not_found, validation_error, with_error_handling,
)


class TestHandleDbError:
    """Tests for handle_db_error."""

    def test_unique_violation(self):
        err = handle_db_error(asyncpg.UniqueViolationError("duplicate key"))
        assert err.code == ErrorCode.UNIQUE_CONSTRAINT_VIOLATION
        assert err.status_code == 409

    def test_foreign_key_violation(self):
        err = handle_db_error(asyncpg.ForeignKeyViolationError("missing parent"))
        assert err.code == ErrorCode.FOREIGN_KEY_VIOLATION
        assert err.status_code == 400

    def test_bad_input_value(self):
        """A malformed id the driver cannot encode is the caller's mistake."""
        err = handle_db_error(asyncpg.DataError("invalid input for query argument $1: 'abc'"))
        assert err.code == ErrorCode.INVALID_INPUT
        assert err.status_code == 400

    def test_invalid_text_representation(self):
        err = handle_db_error(asyncpg.InvalidTextRepresentationError("invalid input syntax for type uuid"))
        assert err.status_code == 400

    def test_other_postgres_error(self):
        err = handle_db_error(asyncpg.PostgresError("boom"))
        assert err.code == ErrorCode.DATABASE_ERROR
        assert err.status_code == 500

    def test_unknown_error(self):
        err = handle_db_error(ValueError("boom"))
        assert err.code == ErrorCode.INTERNAL_ERROR
        assert err.message == "An unexpected error occurred"

    def test_platform_error_passes_through(self):
        original = not_found("Campaign")
        assert handle_db_error(original) is original


class TestHelpers:
    """Tests for the error constructors."""

    def test_to_dict_shape(self):
        body = validation_error("amount", "Amount must be positive").to_dict()
        assert body == {
            "success": False,
            "error": "amount: Amount must be positive",
            "code": "VALIDATION_ERROR",
            "details": {"field": "amount"},
        }

    def test_to_dict_without_details(self):
        assert "details" not in forbidden().to_dict()

    def test_not_found_message(self):
        err = not_found("Charity")
        assert (err.message, err.status_code) == ("Charity not found", 404)

    def test_file_errors(self):
        assert file_upload_error("size").status_code == 413
        assert file_upload_error("type").code == ErrorCode.INVALID_FILE_TYPE
        assert file_upload_error("disk").code == ErrorCode.UPLOAD_FAILED

    def test_business_errors(self):
        assert business_error("insufficient_funds").code == ErrorCode.INSUFFICIENT_FUNDS
        assert business_error("something_else").code == ErrorCode.INTERNAL_ERROR


class TestWithErrorHandling:
    """Tests for the service decorator."""

    @pytest.mark.asyncio
    async def test_wraps_unexpected_errors(self):
        @with_error_handling
        async def broken():
            raise RuntimeError("connection reset")

        with pytest.raises(PlatformError) as exc:
            await broken()
        assert exc.value.code == ErrorCode.INTERNAL_ERROR
        assert isinstance(exc.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_keeps_platform_errors(self):
        @with_error_handling
        async def refused():
            raise forbidden("Only admins can do that")

        with pytest.raises(PlatformError) as exc:
            await refused()
        assert exc.value.message == "Only admins can do that"

    @pytest.mark.asyncio
    async def test_returns_value(self):
        @with_error_handling
        async def ok():
            return 42

        assert await ok() == 42
