"""Test doubles for the storage collaborator contract."""

from __future__ import annotations

from typing import Any

from record_spine.adapters.memory import InMemoryStore
from record_spine.errors import ConflictError


class SpyStore:
    """Forwards to a real store and records every contract call."""

    def __init__(self, inner: Any) -> None:
        self.inner = inner
        self.calls: list[tuple[str, Any]] = []

    def insert(self, record: Any) -> Any:
        self.calls.append(("insert", record))
        return self.inner.insert(record)

    def fetch_by_identity(self, identity: Any) -> Any:
        self.calls.append(("fetch_by_identity", identity))
        return self.inner.fetch_by_identity(identity)

    def fetch_where(self, translated: Any, *, limit: int | None = None) -> list[Any]:
        self.calls.append(("fetch_where", translated))
        return self.inner.fetch_where(translated, limit=limit)

    def persist(self, record: Any) -> None:
        self.calls.append(("persist", record))
        self.inner.persist(record)

    def translator(self) -> Any:
        return self.inner.translator()

    def transaction(self) -> Any:
        return self.inner.transaction()

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


class ConflictingStore(InMemoryStore):
    """In-memory store whose writes always lose a race."""

    def persist(self, record: Any) -> None:
        raise ConflictError("row version changed", identity=self.schema.identity_of(record))
