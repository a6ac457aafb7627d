"""
Structured error types for record-spine.

Every error raised by the data-access layer carries a category, a retry
flag and structured context, so callers can route and log failures without
parsing messages.

Manifesto:
    - **Fail fast:** Input errors surface when a predicate or patch is built,
      never later when storage is touched
    - **Typed hierarchy:** One class per failure the caller can act on
    - **Explicit retry semantics:** Only storage conflicts are retryable, and
      the core never retries them itself
    - **Error chaining:** Collaborator exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                    RecordSpineError                          │
        │  (category, retryable, context, cause)                       │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ValidationError (VALIDATION)      StorageError (STORAGE)    │
        │       │                                 │                    │
        │  InvalidAttribute                  NotFoundError             │
        │  TypeMismatch                      ConflictError (retryable) │
        │  UnknownAttribute                                            │
        │  ImmutableField                                              │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ConflictError("row changed underneath us")
    >>> error.retryable
    True
    >>> UnknownAttribute("nickname").to_dict()["category"]
    'VALIDATION'

Tags:
    error-handling, exception-hierarchy, retry-logic, record-spine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    VALIDATION = "VALIDATION"     # Caller input: attributes, types, patches
    STORAGE = "STORAGE"           # Collaborator outcomes: not found, conflict
    CONFIG = "CONFIG"             # Missing or invalid settings
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error for logging."""

    record_type: str | None = None
    attribute: str | None = None
    identity: Any = None
    operation: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Only the fields that were set, flattened with metadata."""
        result = {}
        for key in ["record_type", "attribute", "identity", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RecordSpineError(Exception):
    """
    Base exception for all record-spine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so the
    common cases need only a message.

    Examples:
        >>> error = RecordSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(operation="update").context.operation
        'update'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RecordSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise NotFoundError("no user").with_context(identity=42)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Structured form used by the logging processors and ``Err.to_dict``."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS (caller input, never retryable)
# =============================================================================


class ValidationError(RecordSpineError):
    """
    Caller-input error detected before any I/O.

    Never retryable - the request must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.constraint = constraint

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        if self.constraint:
            result["constraint"] = self.constraint
        return result


class InvalidAttribute(ValidationError):
    """A predicate referenced an attribute the record type does not have."""

    def __init__(self, attribute: str, record_type: str | None = None, **kwargs: Any):
        where = f" on {record_type}" if record_type else ""
        super().__init__(
            f"Unknown attribute {attribute!r}{where}",
            field=attribute,
            constraint="known_attribute",
            **kwargs,
        )
        self.context.attribute = attribute
        self.context.record_type = record_type


class TypeMismatch(ValidationError):
    """A literal or patch value is incompatible with the attribute's declared type."""

    def __init__(self, attribute: str, expected: str, value: Any, **kwargs: Any):
        super().__init__(
            f"Attribute {attribute!r} expects {expected}, got {type(value).__name__}",
            field=attribute,
            value=value,
            constraint=expected,
            **kwargs,
        )
        self.context.attribute = attribute


class UnknownAttribute(ValidationError):
    """A patch named an attribute outside the record's schema."""

    def __init__(self, attribute: str, record_type: str | None = None, **kwargs: Any):
        where = f" on {record_type}" if record_type else ""
        super().__init__(
            f"Patch names unknown attribute {attribute!r}{where}",
            field=attribute,
            constraint="known_attribute",
            **kwargs,
        )
        self.context.attribute = attribute
        self.context.record_type = record_type


class ImmutableField(ValidationError):
    """A patch tried to change the identity attribute."""

    def __init__(self, attribute: str, **kwargs: Any):
        super().__init__(
            f"Attribute {attribute!r} is the record identity and cannot be patched",
            field=attribute,
            constraint="immutable",
            **kwargs,
        )
        self.context.attribute = attribute


# =============================================================================
# STORAGE OUTCOMES
# =============================================================================


class StorageError(RecordSpineError):
    """Outcome signalled by the storage collaborator."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


class NotFoundError(StorageError):
    """No record matched. Returned inside ``Err``, not raised by the repository."""

    def __init__(self, message: str = "Record not found", *, identity: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.context.identity = identity


class ConflictError(StorageError):
    """Concurrent modification detected while persisting. Retry is the caller's choice."""

    default_retryable = True

    def __init__(self, message: str = "Concurrent modification", *, identity: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.context.identity = identity


class ConfigError(RecordSpineError):
    """Missing or invalid configuration."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """True only for library errors that declare themselves retryable (conflicts)."""
    if isinstance(error, RecordSpineError):
        return error.retryable
    return False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RecordSpineError",
    "ValidationError",
    "InvalidAttribute",
    "TypeMismatch",
    "UnknownAttribute",
    "ImmutableField",
    "StorageError",
    "NotFoundError",
    "ConflictError",
    "ConfigError",
    "is_retryable",
]
