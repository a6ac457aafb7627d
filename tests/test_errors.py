"""Tests for record_spine.errors."""

from __future__ import annotations

import pytest

from record_spine.errors import (
    ConfigError,
    ConflictError,
    ErrorCategory,
    ErrorContext,
    ImmutableField,
    InvalidAttribute,
    NotFoundError,
    RecordSpineError,
    StorageError,
    TypeMismatch,
    UnknownAttribute,
    ValidationError,
    is_retryable,
)


class TestErrorContext:
    def test_empty_context_dict(self):
        assert ErrorContext().to_dict() == {}

    def test_only_set_fields_serialized(self):
        ctx = ErrorContext(record_type="User", identity=7)
        assert ctx.to_dict() == {"record_type": "User", "identity": 7}


class TestRecordSpineError:
    def test_defaults(self):
        error = RecordSpineError("boom")
        assert error.message == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert str(error) == "boom"

    def test_cause_is_chained(self):
        cause = OSError("disk")
        error = RecordSpineError("failed", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "disk"

    def test_with_context(self):
        error = NotFoundError("missing").with_context(record_type="User", shard="eu")
        assert error.context.record_type == "User"
        assert error.context.metadata == {"shard": "eu"}

    def test_to_dict(self):
        data = ConflictError("row changed", identity=3).to_dict()
        assert data["error_type"] == "ConflictError"
        assert data["category"] == "STORAGE"
        assert data["retryable"] is True
        assert data["context"] == {"identity": 3}

    def test_repr(self):
        assert repr(ConfigError("bad url")) == "ConfigError('bad url', category=CONFIG)"


class TestValidationErrors:
    @pytest.mark.parametrize(
        "error",
        [
            InvalidAttribute("nickname", "User"),
            TypeMismatch("age", "int | None", "old"),
            UnknownAttribute("nickname", "User"),
            ImmutableField("id"),
        ],
    )
    def test_hierarchy(self, error):
        assert isinstance(error, ValidationError)
        assert error.category == ErrorCategory.VALIDATION
        assert error.retryable is False
        assert is_retryable(error) is False

    def test_invalid_attribute_message(self):
        error = InvalidAttribute("nickname", "User")
        assert "nickname" in error.message
        assert "User" in error.message
        assert error.to_dict()["field"] == "nickname"

    def test_type_mismatch_records_value(self):
        data = TypeMismatch("age", "int", "old").to_dict()
        assert data["value"] == "'old'"
        assert data["constraint"] == "int"


class TestStorageErrors:
    def test_not_found(self):
        error = NotFoundError(identity=5)
        assert isinstance(error, StorageError)
        assert error.message == "Record not found"
        assert error.context.identity == 5
        assert is_retryable(error) is False

    def test_conflict_is_retryable(self):
        assert is_retryable(ConflictError()) is True

    def test_plain_exceptions_are_not_retryable(self):
        assert is_retryable(ValueError("x")) is False
