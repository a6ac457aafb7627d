"""
Result envelope for expected outcomes.

Lookups that may legitimately find nothing return ``Ok[T]`` or ``Err[T]``
instead of raising, so "not found" is an outcome callers check explicitly
rather than an exception they might forget to catch.

Examples:
    >>> from record_spine.result import Ok, Err
    >>> match repo.get(42):
    ...     case Ok(user):
    ...         print(user.email)
    ...     case Err(error):
    ...         print(error.message)

    >>> Ok(10).map(lambda x: x * 2).unwrap()
    20
    >>> Err(ValueError("oops")).unwrap_or(0)
    0

Tags:
    result-pattern, error-handling, record-spine
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, overload

from record_spine.errors import RecordSpineError


T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """The found record (or other value)."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_or_else(self, f: Callable[[Exception], T]) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Apply *f* to the value, e.g. ``repo.get(1).map(attrgetter("email"))``."""
        return Ok(f(self.value))

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """Chain another lookup that may itself come back ``Err``."""
        return f(self.value)

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        return self

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form for handlers that echo outcomes back to callers."""
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result carrying the error that explains it."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the carried error (usually :class:`NotFoundError`)."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_or_else(self, f: Callable[[Exception], T]) -> T:
        return f(self.error)

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        """Replace the carried error, e.g. to translate it for an API layer."""
        return Err(f(self.error))

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, RecordSpineError):
            return {"ok": False, "error": self.error.to_dict()}
        return {
            "ok": False,
            "error": {
                "error_type": type(self.error).__name__,
                "message": str(self.error),
            },
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


@overload
def from_optional(value: T, error: Exception) -> Ok[T]: ...

@overload
def from_optional(value: None, error: Exception) -> Err[T]: ...

def from_optional(value: T | None, error: Exception) -> Result[T]:
    """
    Convert an optional value to a Result.

    Storage collaborators signal "not found" with ``None``; this turns that
    signal into an explicit ``Err``.

    >>> from_optional(None, NotFoundError(identity=7)).is_err()
    True
    """
    if value is None:
        return Err(error)
    return Ok(value)


__all__ = [
    "Result",
    "Ok",
    "Err",
    "from_optional",
]
