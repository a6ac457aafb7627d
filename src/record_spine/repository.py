"""
Repository facade over a storage collaborator.

:class:`Repository` is what HTTP handlers, CLIs and jobs call. It turns
predicates into queries, turns "no such record" into an explicit ``Err``,
and runs partial updates as a linear fetch → merge → persist sequence.

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────────┐
        │                         Repository                              │
        │                                                                 │
        │   store: StorageCollaborator    schema: Schema                  │
        │                                                                 │
        │   find_one(p)          → Ok(record) | Err(NotFoundError)        │
        │   find_many(p)         → Query (lazy) | Materialized            │
        │   get(identity)        → Ok(record) | Err(NotFoundError)        │
        │   insert(record)       → identity                               │
        │   update(identity, p)  → Ok(changed) | Err(NotFoundError)       │
        │   transaction()        → collaborator's scoped transaction      │
        └────────────────────────────────────────────────────────────────┘

        update():  Fetching ──► Merging ──► Persisting ──► Done
                      │                         │
                  not found                ConflictError
                  → Err, no write          → propagates unchanged

Atomicity of ``update`` across its three states is the collaborator's
job. Callers that need strict read-modify-write semantics wrap the call::

    with repo.transaction():
        repo.update(user_id, patch)

Examples:
    >>> repo = Repository(InMemoryStore(users), users)
    >>> uid = repo.insert(User(id=None, username="johndoe", email="j@x.com"))
    >>> repo.update(uid, Patch.of(users, email="new@x.com"))
    Ok(True)
    >>> repo.update(uid, Patch.of(users))
    Ok(False)
    >>> repo.update(999, Patch.of(users, email="x@x.com")).is_err()
    True

Tags:
    repository, facade, partial-update, record-spine
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from enum import Enum
from typing import Any, Generic, Literal, TypeVar, overload

from record_spine.errors import ConflictError, NotFoundError, UnknownAttribute
from record_spine.logging import get_logger
from record_spine.patch import Patch, merge
from record_spine.predicate import Predicate, require_predicate
from record_spine.protocols import StorageCollaborator
from record_spine.query import Materialized, Query
from record_spine.result import Err, Ok, Result, from_optional
from record_spine.schema import Schema

R = TypeVar("R")

logger = get_logger(__name__)


class UpdateState(str, Enum):
    """Stages of :meth:`Repository.update`, in order."""

    FETCHING = "fetching"
    MERGING = "merging"
    PERSISTING = "persisting"
    DONE = "done"


class Repository(Generic[R]):
    """Data-access facade for one record type.

    Parameters:
        store: Any object satisfying :class:`StorageCollaborator`.
        schema: Schema of the records *store* holds.
    """

    def __init__(self, store: StorageCollaborator, schema: Schema[R]) -> None:
        self.store = store
        self.schema = schema

    # -- Reads -------------------------------------------------------------

    def find_one(self, predicate: Predicate) -> Result[R]:
        """First record in the collaborator's natural order matching *predicate*.

        Several matches are not an error; the first one wins.
        """
        require_predicate(predicate)
        record = Query(self.store, self.schema, predicate).first()
        return from_optional(
            record,
            NotFoundError(f"No {self.schema.name} matches {predicate}"),
        )

    @overload
    def find_many(self, predicate: Predicate | None = ..., *, materialize: Literal[False] = ...) -> Query[R]: ...

    @overload
    def find_many(self, predicate: Predicate | None = ..., *, materialize: Literal[True]) -> Materialized[R]: ...

    def find_many(
        self, predicate: Predicate | None = None, *, materialize: bool = False
    ) -> Query[R] | Materialized[R]:
        """Lazy query by default; an ordered snapshot when ``materialize=True``."""
        query = Query(self.store, self.schema, predicate)
        return query.all() if materialize else query

    def get(self, identity: Any) -> Result[R]:
        record = self.store.fetch_by_identity(identity)
        return from_optional(
            record,
            NotFoundError(f"{self.schema.name} {identity!r} not found", identity=identity),
        )

    # -- Writes ------------------------------------------------------------

    def insert(self, record: R) -> Any:
        identity = self.store.insert(record)
        logger.info("record.inserted", record_type=self.schema.name, identity=identity)
        return identity

    def update(self, identity: Any, patch: Patch) -> Result[bool]:
        """Apply *patch* to the record with *identity*.

        Returns:
            ``Ok(True)`` if any attribute changed value, ``Ok(False)`` if the
            patch matched what was already stored, ``Err(NotFoundError)`` if
            there is no such record (nothing is written).

        Raises:
            TypeError: *patch* is not a :class:`Patch`.
            UnknownAttribute: *patch* names attributes outside this schema.
            ConflictError: the collaborator detected a concurrent
                modification; propagated unchanged, never retried here.
        """
        if not isinstance(patch, Patch):
            raise TypeError(f"update() expects a Patch, got {type(patch).__name__}")
        for name in patch:
            if name not in self.schema:
                raise UnknownAttribute(name, self.schema.name)

        log = logger.bind(record_type=self.schema.name, identity=identity)

        log.debug("update.state", state=UpdateState.FETCHING.value)
        current = self.store.fetch_by_identity(identity)
        if current is None:
            log.info("update.not_found")
            return Err(NotFoundError(f"{self.schema.name} {identity!r} not found", identity=identity))

        log.debug("update.state", state=UpdateState.MERGING.value, attributes=sorted(patch))
        changed = patch.changes(current)
        merged = merge(current, patch)

        log.debug("update.state", state=UpdateState.PERSISTING.value)
        try:
            self.store.persist(merged)
        except ConflictError as e:
            log.warning("update.conflict", error=e)
            raise

        log.debug("update.state", state=UpdateState.DONE.value)
        if changed:
            log.info("update.applied", changed=sorted(changed))
        else:
            log.info("update.noop")
        return Ok(bool(changed))

    def transaction(self) -> AbstractContextManager[Any]:
        """The collaborator's transaction scope, released on every exit path."""
        return self.store.transaction()


__all__ = [
    "Repository",
    "UpdateState",
]
