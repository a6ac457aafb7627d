"""
Partial updates: presence-tagged patches and the pure merge.

A :class:`Patch` records, per attribute, whether the caller wants it
changed. Each attribute is either :data:`Absent` (leave it alone) or
``Present(value)`` (overwrite, where ``value`` may be ``None`` to clear a
nullable field). The two states never collapse into one another, which is
what lets a caller clear a field without also clearing every field they
did not mention.

Architecture:
    ::

        existing  User(id=1, first_name="John", last_name="Doe", email="j@x.com")
        patch     {email: Present("new@x.com"), last_name: Present(None)}
                                    │
                                 merge()
                                    ▼
        merged    User(id=1, first_name="John", last_name=None, email="new@x.com")

Examples:
    >>> patch = Patch.of(users, email="new@x.com")
    >>> patch.state("email")
    Present('new@x.com')
    >>> patch.state("first_name")
    Absent
    >>> merge(john, patch).email
    'new@x.com'

    From a request model, where an explicit ``null`` clears and an omitted
    field is untouched:

    >>> body = UserUpdate.model_validate({"last_name": None})
    >>> Patch.from_model(users, body).state("last_name")
    Present(None)

Tags:
    patch, partial-update, merge, optional, record-spine
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final, Generic, TypeVar

from record_spine.errors import ImmutableField, UnknownAttribute

if TYPE_CHECKING:
    from pydantic import BaseModel

    from record_spine.schema import Schema

T = TypeVar("T")
R = TypeVar("R")


class _AbsentType:
    """Marker for "this attribute is not part of the update"."""

    _instance: _AbsentType | None = None

    def __new__(cls) -> _AbsentType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Absent"

    def __reduce__(self) -> str:
        return "Absent"


Absent: Final = _AbsentType()


@dataclass(frozen=True, slots=True)
class Present(Generic[T]):
    """Marker for "set this attribute to ``value``" (``None`` included)."""

    value: T

    def __repr__(self) -> str:
        return f"Present({self.value!r})"


FieldState = Present[Any] | _AbsentType


class Patch(Mapping[str, Present[Any]]):
    """Immutable, validated update intent for one record type.

    Iterating a patch yields only the ``Present`` attribute names; use
    :meth:`state` to ask about any schema attribute.

    Parameters:
        schema: Schema the patch is validated against.
        values: Attribute name to raw value, ``Present(value)`` or ``Absent``.
            Raw values are treated as present.

    Raises:
        UnknownAttribute: a name is not in *schema*.
        ImmutableField: a name is the identity attribute.
        TypeMismatch: a value does not fit the attribute's declared type,
            or is ``None`` for a non-nullable attribute.
    """

    __slots__ = ("schema", "_fields")

    def __init__(self, schema: Schema[Any], values: Mapping[str, Any] | None = None) -> None:
        fields: dict[str, Present[Any]] = {}
        for name, raw in (values or {}).items():
            if name not in schema:
                raise UnknownAttribute(name, schema.name)
            if name == schema.identity:
                raise ImmutableField(name)
            if raw is Absent:
                continue
            state = raw if isinstance(raw, Present) else Present(raw)
            schema.attribute(name).check(state.value, allow_none=True)
            fields[name] = state
        self.schema = schema
        self._fields = MappingProxyType(fields)

    @classmethod
    def of(cls, schema: Schema[Any], **values: Any) -> Patch:
        return cls(schema, values)

    @classmethod
    def from_model(cls, schema: Schema[Any], model: BaseModel) -> Patch:
        """Build a patch from the fields a pydantic model was explicitly given.

        Only ``model_fields_set`` becomes ``Present``; defaults the caller
        never sent stay ``Absent``.
        """
        return cls(schema, {name: getattr(model, name) for name in model.model_fields_set})

    # -- Mapping -----------------------------------------------------------

    def __getitem__(self, name: str) -> Present[Any]:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Patch):
            return NotImplemented
        return self.schema.record_type is other.schema.record_type and dict(self._fields) == dict(other._fields)

    def __hash__(self) -> int:
        return hash((self.schema.record_type, frozenset(self._fields.items())))

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self._fields.items())
        return f"Patch({self.schema.name}: {inner})"

    # -- Queries -----------------------------------------------------------

    def state(self, name: str) -> FieldState:
        """``Present(value)`` or ``Absent`` for any attribute of the schema."""
        if name not in self.schema:
            raise UnknownAttribute(name, self.schema.name)
        return self._fields.get(name, Absent)

    def changes(self, existing: Any) -> dict[str, tuple[Any, Any]]:
        """Attributes whose value merging onto *existing* would change, as ``(old, new)``."""
        out: dict[str, tuple[Any, Any]] = {}
        for name, state in self._fields.items():
            old = getattr(existing, name)
            if old != state.value:
                out[name] = (old, state.value)
        return out


def merge(existing: R, patch: Patch) -> R:
    """Return a new record with the patch's present attributes applied.

    Pure: *existing* is never mutated, and every attribute the patch does not
    mention keeps its current value.

    Raises:
        TypeError: *patch* is not a :class:`Patch` (e.g. a plain dict).
        UnknownAttribute: the patch names an attribute *existing* does not have
            (a patch built for another record type).
    """
    if not isinstance(patch, Patch):
        raise TypeError(
            f"merge() expects a Patch, got {type(patch).__name__}; "
            "build one with Patch(schema, {...}) or Patch.of(schema, ...)"
        )
    known = {f.name for f in dataclasses.fields(existing)}
    for name in patch:
        if name not in known:
            raise UnknownAttribute(name, type(existing).__name__)
    return dataclasses.replace(existing, **{name: state.value for name, state in patch.items()})


__all__ = [
    "Absent",
    "Present",
    "FieldState",
    "Patch",
    "merge",
]
