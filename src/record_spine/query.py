"""
Query results: lazy handles and materialized snapshots.

:class:`Query` is an immutable description of work to do. Composing more
predicates onto it with :meth:`Query.where` only extends the description;
nothing runs until one of the explicit materialization points
(:meth:`Query.all`, :meth:`Query.first`, :meth:`Query.count`) is called,
at which point the whole predicate is translated and executed once.

:class:`Materialized` is what ``all()`` returns: an ordered snapshot taken
at call time. Composing onto it filters in memory and never touches
storage again.

Architecture:
    ::

        repo.find_many(p)                      Query(p)            (nothing run)
            .where(q)                          Query(p AND q)      (nothing run)
            .all()                      ──►    collaborator.fetch_where(translate(p AND q))
                                               Materialized([...])
            .where(r)                   ──►    Materialized([... if r.evaluate(rec)])

        Deferred path: collaborator.translator() returns a visitor
        Eager path:    translator() is None → fetch everything, evaluate locally

Tags:
    query, lazy-evaluation, materialization, record-spine
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar, overload

from record_spine.logging import get_logger
from record_spine.predicate import Predicate, and_, require_predicate

if TYPE_CHECKING:
    from record_spine.protocols import StorageCollaborator
    from record_spine.schema import Schema

R = TypeVar("R")

logger = get_logger(__name__)


class Query(Generic[R]):
    """Lazy, immutable, composable query handle."""

    __slots__ = ("_store", "_schema", "_predicate", "_limit")

    def __init__(
        self,
        store: StorageCollaborator,
        schema: Schema[R],
        predicate: Predicate | None = None,
        limit: int | None = None,
    ) -> None:
        if predicate is not None:
            require_predicate(predicate)
        self._store = store
        self._schema = schema
        self._predicate = predicate
        self._limit = limit

    @property
    def predicate(self) -> Predicate | None:
        return self._predicate

    def where(self, predicate: Predicate) -> Query[R]:
        """New handle whose predicate is ``current AND predicate``."""
        require_predicate(predicate)
        combined = predicate if self._predicate is None else and_(self._predicate, predicate)
        return Query(self._store, self._schema, combined, self._limit)

    def limit(self, count: int) -> Query[R]:
        if count < 0:
            raise ValueError("limit must be non-negative")
        return Query(self._store, self._schema, self._predicate, count)

    # -- Materialization ---------------------------------------------------

    def all(self) -> Materialized[R]:
        """Execute now and return an ordered snapshot."""
        return Materialized(self._execute(self._limit))

    def first(self) -> R | None:
        """First match in the collaborator's natural order, or None."""
        limit = 1 if self._limit is None else min(1, self._limit)
        rows = self._execute(limit)
        return rows[0] if rows else None

    def count(self) -> int:
        return len(self._execute(self._limit))

    def _execute(self, limit: int | None) -> list[R]:
        visitor = self._store.translator()
        rendered = str(self._predicate) if self._predicate is not None else None

        if self._predicate is None or visitor is not None:
            translated = self._predicate.translate(visitor) if self._predicate is not None else None
            rows = list(self._store.fetch_where(translated, limit=limit))
            path = "deferred"
        else:
            rows = [r for r in self._store.fetch_where(None) if self._predicate.evaluate(r)]
            if limit is not None:
                rows = rows[:limit]
            path = "eager"

        logger.debug(
            "query.executed",
            record_type=self._schema.name,
            predicate=rendered,
            path=path,
            limit=limit,
            rows=len(rows),
        )
        return rows

    def __repr__(self) -> str:
        return f"Query({self._schema.name}, where={self._predicate}, limit={self._limit})"


class Materialized(Sequence[R]):
    """Ordered, already-executed snapshot of records."""

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[R]) -> None:
        self._records: tuple[R, ...] = tuple(records)

    def where(self, predicate: Predicate) -> Materialized[R]:
        """Filter this snapshot in memory."""
        require_predicate(predicate)
        return Materialized(r for r in self._records if predicate.evaluate(r))

    def first(self) -> R | None:
        return self._records[0] if self._records else None

    @overload
    def __getitem__(self, index: int) -> R: ...

    @overload
    def __getitem__(self, index: slice) -> Materialized[R]: ...

    def __getitem__(self, index: Any) -> Any:
        if isinstance(index, slice):
            return Materialized(self._records[index])
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[R]:
        return iter(self._records)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Materialized):
            return self._records == other._records
        if isinstance(other, (list, tuple)):
            return list(self._records) == list(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Materialized({list(self._records)!r})"


__all__ = [
    "Query",
    "Materialized",
]
