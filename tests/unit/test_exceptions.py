"""Tests for exception classes."""

import pytest

from tenant_cutover.exceptions import (
    BatchCommitError,
    ConfigurationError,
    CutoverError,
    InvalidIdentifierError,
    PreconditionFailedError,
    StoreError,
    UnsafeRetirementError,
    ValidationError,
)


class TestHierarchy:
    """Every library error derives from CutoverError."""

    @pytest.mark.parametrize(
        "exc",
        [
            ConfigurationError("x", "y"),
            ValidationError("f", "v", "r"),
            InvalidIdentifierError("f", "v", "r"),
            PreconditionFailedError(),
            BatchCommitError("c", 1, 0),
            UnsafeRetirementError(),
        ],
    )
    def test_is_cutover_error(self, exc):
        assert isinstance(exc, CutoverError)

    def test_store_errors(self):
        assert issubclass(PreconditionFailedError, StoreError)
        assert issubclass(BatchCommitError, StoreError)

    def test_invalid_identifier_is_validation_error(self):
        assert issubclass(InvalidIdentifierError, ValidationError)


class TestMessages:
    """Error messages and attributes."""

    def test_configuration_error(self):
        exc = ConfigurationError("FF_X", "must be 'true' or 'false'")
        assert exc.setting == "FF_X"
        assert str(exc) == "Invalid configuration for FF_X: must be 'true' or 'false'"

    def test_precondition_failed_with_path(self):
        exc = PreconditionFailedError("a/b")
        assert exc.path == "a/b"
        assert "a/b" in str(exc)

    def test_precondition_failed_without_path(self):
        assert str(PreconditionFailedError()) == "Precondition failed"

    def test_batch_commit_error(self):
        exc = BatchCommitError("organisations/orgA/trainingRecords", 3, 200)
        assert exc.batch_number == 3
        assert exc.committed_count == 200
        assert "after 200 documents were committed" in str(exc)

    def test_unsafe_retirement_message(self):
        assert str(UnsafeRetirementError()) == (
            "Refusing to delete legacy docs without --force. Use --archive-only or --force."
        )
