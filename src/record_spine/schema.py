"""
Record schemas derived from dataclasses.

A :class:`Schema` describes one record type: which attribute is the
identity, which scalar attributes exist, their declared Python types and
whether ``None`` is allowed. Predicates and patches validate against it at
construction time, so malformed requests fail before storage is touched.

Architecture:
    ::

        @dataclass(frozen=True)          Schema.from_dataclass(User, identity="id")
        class User:                            │
            id: int | None        ─────►  AttributeSpec("id", int, nullable=True)
            username: str         ─────►  AttributeSpec("username", str, nullable=False)
            email: str | None     ─────►  AttributeSpec("email", str, nullable=True)

Supported attribute types: ``str``, ``int``, ``float``, ``bool``,
``decimal.Decimal``, ``datetime.datetime``, ``datetime.date``, each
optionally wrapped in ``X | None`` / ``Optional[X]``.

Examples:
    >>> users = Schema.from_dataclass(User, identity="id")
    >>> users.attribute("email").nullable
    True
    >>> users.attr("username").eq("johndoe")
    Leaf(attribute='username', operator=<Operator.EQUALS: 'equals'>, value='johndoe')

Tags:
    schema, dataclass, validation, record-spine
"""

from __future__ import annotations

import dataclasses
import datetime
import types
import typing
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Generic, Iterator, Mapping, TypeVar

from record_spine.errors import InvalidAttribute, TypeMismatch

if TYPE_CHECKING:
    from record_spine.predicate import Attribute

R = TypeVar("R")

SUPPORTED_TYPES: tuple[type, ...] = (
    str,
    int,
    float,
    bool,
    Decimal,
    datetime.datetime,
    datetime.date,
)


@dataclass(frozen=True, slots=True)
class AttributeSpec:
    """Name, declared type and nullability of one record attribute."""

    name: str
    type: type
    nullable: bool = False

    @property
    def orderable(self) -> bool:
        """Whether ``greater_than`` / ``less_than`` make sense for this attribute."""
        return self.type is not bool

    @property
    def type_name(self) -> str:
        name = self.type.__name__
        return f"{name} | None" if self.nullable else name

    def accepts(self, value: Any) -> bool:
        """Check a non-None value against the declared type.

        ``bool`` never stands in for a number, ``int`` widens to ``float`` and
        ``Decimal``, and a ``datetime`` is not accepted where a ``date`` is
        declared because the two do not compare.
        """
        declared = self.type
        if declared is bool:
            return isinstance(value, bool)
        if isinstance(value, bool):
            return False
        if declared is float:
            return isinstance(value, (int, float))
        if declared is Decimal:
            return isinstance(value, (int, Decimal))
        if declared is datetime.date:
            return isinstance(value, datetime.date) and not isinstance(value, datetime.datetime)
        return isinstance(value, declared)

    def check(self, value: Any, *, allow_none: bool) -> None:
        """Raise :class:`TypeMismatch` unless *value* fits this attribute."""
        if value is None:
            if allow_none and self.nullable:
                return
            raise TypeMismatch(self.name, self.type_name, value)
        if not self.accepts(value):
            raise TypeMismatch(self.name, self.type_name, value)


def _resolve(annotation: Any) -> tuple[type, bool]:
    """Split ``X | None`` into ``(X, True)``; plain ``X`` into ``(X, False)``."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        nullable = len(args) != len(typing.get_args(annotation))
        if len(args) != 1:
            raise TypeError(f"Unsupported union annotation {annotation!r}")
        return args[0], nullable
    return annotation, False


class Schema(Generic[R]):
    """Describes a record type for predicate and patch validation.

    Parameters:
        record_type: The dataclass whose instances are the records.
        identity: Name of the identity attribute.
        attributes: Attribute specs in declaration order.
    """

    def __init__(
        self,
        record_type: type[R],
        identity: str,
        attributes: Mapping[str, AttributeSpec],
    ) -> None:
        if identity not in attributes:
            raise InvalidAttribute(identity, record_type.__name__)
        self.record_type = record_type
        self.identity = identity
        self._attributes = dict(attributes)

    @classmethod
    def from_dataclass(cls, record_type: type[R], identity: str = "id") -> Schema[R]:
        """Build a schema from a dataclass's resolved type hints."""
        if not dataclasses.is_dataclass(record_type) or not isinstance(record_type, type):
            raise TypeError(f"{record_type!r} is not a dataclass type")

        hints = typing.get_type_hints(record_type)
        attributes: dict[str, AttributeSpec] = {}
        for f in dataclasses.fields(record_type):
            declared, nullable = _resolve(hints[f.name])
            if declared not in SUPPORTED_TYPES:
                raise TypeError(
                    f"{record_type.__name__}.{f.name}: unsupported attribute type {declared!r}"
                )
            attributes[f.name] = AttributeSpec(f.name, declared, nullable)
        return cls(record_type, identity, attributes)

    # -- Introspection -----------------------------------------------------

    @property
    def name(self) -> str:
        return self.record_type.__name__

    @property
    def names(self) -> tuple[str, ...]:
        """Attribute names in declaration order."""
        return tuple(self._attributes)

    def attribute(self, name: str) -> AttributeSpec:
        """Look up an attribute, raising :class:`InvalidAttribute` if unknown."""
        try:
            return self._attributes[name]
        except KeyError:
            raise InvalidAttribute(name, self.name) from None

    def attr(self, name: str) -> Attribute:
        """Fluent predicate builder for one attribute."""
        from record_spine.predicate import Attribute

        return Attribute(self, name)

    def __contains__(self, name: object) -> bool:
        return name in self._attributes

    def __iter__(self) -> Iterator[AttributeSpec]:
        return iter(self._attributes.values())

    def __repr__(self) -> str:
        return f"Schema({self.name}, identity={self.identity!r})"

    # -- Records -----------------------------------------------------------

    def identity_of(self, record: R) -> Any:
        return getattr(record, self.identity)

    def build(self, values: Mapping[str, Any]) -> R:
        """Create a record from a mapping of attribute values (e.g. a DB row)."""
        return self.record_type(**{name: values[name] for name in self._attributes})

    def dump(self, record: R) -> dict[str, Any]:
        """Record to a plain dict in declaration order."""
        return {name: getattr(record, name) for name in self._attributes}


__all__ = [
    "AttributeSpec",
    "Schema",
    "SUPPORTED_TYPES",
]
