"""
Canonical protocol definitions for record-spine.

The repository never talks to a database directly. Everything it needs from
persistence goes through :class:`StorageCollaborator`, and every predicate
push-down goes through :class:`PredicateVisitor`. Any object with the right
shape satisfies these contracts; no inheritance or registration is needed.

Architecture:
    ::

        protocols.py
        ├── PredicateVisitor[N]   builds a collaborator's native filter form N
        └── StorageCollaborator   insert / fetch / persist / translate / transaction

        Implementations:
        ┌───────────────────────────────────────────────────────────┐
        │ adapters.memory.InMemoryStore        nested-tuple filters  │
        │ adapters.sql.SQLAlchemyStore         SQLAlchemy Core exprs │
        └───────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Hand the repository a callable to filter with
    ✅ DO: Return a PredicateVisitor from ``translator()`` (or ``None`` for eager-only)

    ❌ DON'T: Retry conflicts inside ``persist``
    ✅ DO: Raise ConflictError and let the caller decide

Tags:
    protocol, storage, visitor, record-spine, contracts
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from record_spine.predicate import Operator

N = TypeVar("N")


@runtime_checkable
class PredicateVisitor(Protocol[N]):
    """
    Builds a storage collaborator's native query form from a predicate tree.

    ``Predicate.translate`` calls these hooks depth-first: both children of a
    node are translated (left first) before the node's own hook receives
    their results.
    """

    def visit_leaf(self, attribute: str, operator: Operator, value: Any) -> N:
        """Translate ``attribute <operator> value``."""
        ...

    def visit_and(self, left: N, right: N) -> N:
        ...

    def visit_or(self, left: N, right: N) -> N:
        ...

    def visit_not(self, operand: N) -> N:
        ...


@runtime_checkable
class StorageCollaborator(Protocol):
    """
    The external persistence engine the repository delegates to.

    Contract:
        insert(record)                     → identity (assigned if record's is None)
        fetch_by_identity(identity)        → record | None   (None = not found)
        fetch_where(translated, limit=)    → list of records, natural order;
                                             translated=None means no filter
        persist(record)                    → None, or raises ConflictError
        translator()                       → PredicateVisitor | None (eager-only)
        transaction()                      → scoped transaction context manager
    """

    def insert(self, record: Any) -> Any:
        ...

    def fetch_by_identity(self, identity: Any) -> Any | None:
        ...

    def fetch_where(self, translated: Any | None, *, limit: int | None = None) -> list[Any]:
        ...

    def persist(self, record: Any) -> None:
        ...

    def translator(self) -> PredicateVisitor[Any] | None:
        ...

    def transaction(self) -> AbstractContextManager[Any]:
        ...


__all__ = [
    "PredicateVisitor",
    "StorageCollaborator",
]
