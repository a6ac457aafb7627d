"""In-process storage collaborator.

``InMemoryStore`` keeps records in insertion order behind a re-entrant
lock. With ``translate=True`` (the default) it accepts predicates pushed
down as a nested-tuple filter form and evaluates that form itself, the way
a remote store would evaluate its own query language:

    ("cmp", "email", "starts_with", "admin")
    ("and", <filter>, <filter>)
    ("or",  <filter>, <filter>)
    ("not", <filter>)

With ``translate=False`` it offers no translator, so the repository takes
the eager path and filters fetched records in memory.
"""

from __future__ import annotations

import dataclasses
import operator as _op
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

from record_spine.errors import ConflictError
from record_spine.logging import get_logger
from record_spine.predicate import Operator
from record_spine.schema import Schema

R = TypeVar("R")

Filter = tuple[Any, ...]

logger = get_logger(__name__)

_COMPARATORS = {
    "equals": _op.eq,
    "not_equals": _op.ne,
    "starts_with": lambda actual, prefix: actual[: len(prefix)] == prefix,
    "greater_than": _op.gt,
    "less_than": _op.lt,
}


class FilterTranslator:
    """Predicate visitor producing the store's nested-tuple filter form."""

    def visit_leaf(self, attribute: str, operator: Operator, value: Any) -> Filter:
        return ("cmp", attribute, operator.value, value)

    def visit_and(self, left: Filter, right: Filter) -> Filter:
        return ("and", left, right)

    def visit_or(self, left: Filter, right: Filter) -> Filter:
        return ("or", left, right)

    def visit_not(self, operand: Filter) -> Filter:
        return ("not", operand)


def evaluate_remote(translated: Filter, record: Any) -> bool:
    """Evaluate a translated filter against one record.

    A comparison against a ``None`` attribute value is ``False``.
    """
    kind = translated[0]
    if kind == "cmp":
        _, attribute, op_name, literal = translated
        actual = getattr(record, attribute)
        if actual is None:
            return False
        return bool(_COMPARATORS[op_name](actual, literal))
    if kind == "and":
        return evaluate_remote(translated[1], record) and evaluate_remote(translated[2], record)
    if kind == "or":
        return evaluate_remote(translated[1], record) or evaluate_remote(translated[2], record)
    if kind == "not":
        return not evaluate_remote(translated[1], record)
    raise ValueError(f"Unknown filter node {kind!r}")


class InMemoryStore(Generic[R]):
    """Thread-safe, insertion-ordered record store.

    Integer identities are assigned on insert when the record's identity
    is ``None``. ``persist`` raises :class:`ConflictError` when the record
    was deleted since it was fetched.
    """

    def __init__(self, schema: Schema[R], *, translate: bool = True) -> None:
        self.schema = schema
        self._translate = translate
        self._rows: dict[Any, R] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def insert(self, record: R) -> Any:
        with self._lock:
            identity = self.schema.identity_of(record)
            if identity is None:
                while self._next_id in self._rows:
                    self._next_id += 1
                identity = self._next_id
                self._next_id += 1
                record = dataclasses.replace(record, **{self.schema.identity: identity})
            elif identity in self._rows:
                raise ConflictError(
                    f"{self.schema.name} {identity!r} already exists", identity=identity
                )
            self._rows[identity] = record
            return identity

    def fetch_by_identity(self, identity: Any) -> R | None:
        with self._lock:
            return self._rows.get(identity)

    def fetch_where(self, translated: Filter | None, *, limit: int | None = None) -> list[R]:
        with self._lock:
            rows = list(self._rows.values())
        if translated is not None:
            rows = [r for r in rows if evaluate_remote(translated, r)]
        return rows if limit is None else rows[:limit]

    def persist(self, record: R) -> None:
        identity = self.schema.identity_of(record)
        with self._lock:
            if identity not in self._rows:
                raise ConflictError(
                    f"{self.schema.name} {identity!r} was removed concurrently", identity=identity
                )
            self._rows[identity] = record

    def delete(self, identity: Any) -> bool:
        with self._lock:
            return self._rows.pop(identity, None) is not None

    def translator(self) -> FilterTranslator | None:
        return FilterTranslator() if self._translate else None

    @contextmanager
    def transaction(self) -> Iterator[InMemoryStore[R]]:
        """Hold the store lock for the whole scope; roll back on exception."""
        with self._lock:
            snapshot = dict(self._rows)
            next_id = self._next_id
            try:
                yield self
            except BaseException:
                self._rows = snapshot
                self._next_id = next_id
                logger.debug("transaction.rolled_back", record_type=self.schema.name)
                raise

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


__all__ = [
    "FilterTranslator",
    "InMemoryStore",
    "evaluate_remote",
]
