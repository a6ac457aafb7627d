"""record-spine -- storage-agnostic data access with inspectable predicates and partial updates.

Manifesto:
    Filter conditions are data, not closures, so the same condition can run
    in memory or be pushed down to a database. Updates are presence-tagged
    patches, so "clear this field" and "leave this field alone" never get
    confused. Everything about actually storing records belongs to a
    collaborator behind a small protocol.

Architecture::

    Layer 1 -- Types & Errors
        errors.py          Typed error hierarchy (ValidationError, ConflictError, ...)
        result.py          Ok / Err envelope for expected outcomes
        schema.py          Schema + AttributeSpec derived from dataclasses
        protocols.py       StorageCollaborator, PredicateVisitor

    Layer 2 -- Core
        predicate.py       Leaf / And / Or / Not trees; evaluate + translate
        patch.py           Absent / Present / Patch; pure merge()
        query.py           Query (lazy) and Materialized (snapshot)
        repository.py      Repository facade: find_one / find_many / update

    Layer 3 -- Plumbing
        adapters/          InMemoryStore, SQLAlchemyStore
        logging.py         structlog configuration
        settings.py        pydantic-settings configuration

Examples:
    >>> @dataclass(frozen=True)
    ... class User:
    ...     id: int | None
    ...     username: str
    ...     email: str | None = None
    >>> users = Schema.from_dataclass(User, identity="id")
    >>> repo = Repository(InMemoryStore(users), users)
    >>> uid = repo.insert(User(id=None, username="johndoe", email="j@x.com"))
    >>> repo.find_one(users.attr("username").eq("johndoe")).unwrap().id
    1
"""

from record_spine.adapters import InMemoryStore, SQLAlchemyStore, create_store_engine
from record_spine.errors import (
    ConflictError,
    ImmutableField,
    InvalidAttribute,
    NotFoundError,
    RecordSpineError,
    TypeMismatch,
    UnknownAttribute,
    ValidationError,
)
from record_spine.patch import Absent, Patch, Present, merge
from record_spine.predicate import (
    Operator,
    Predicate,
    all_of,
    and_,
    any_of,
    leaf,
    not_,
    or_,
)
from record_spine.protocols import PredicateVisitor, StorageCollaborator
from record_spine.query import Materialized, Query
from record_spine.repository import Repository
from record_spine.result import Err, Ok, Result
from record_spine.schema import Schema
from record_spine.settings import RecordSpineSettings

__version__ = "0.1.0"

__all__ = [
    # Schema & predicates
    "Schema",
    "Operator",
    "Predicate",
    "leaf",
    "and_",
    "or_",
    "not_",
    "all_of",
    "any_of",
    # Patches
    "Absent",
    "Present",
    "Patch",
    "merge",
    # Queries & repository
    "Query",
    "Materialized",
    "Repository",
    "StorageCollaborator",
    "PredicateVisitor",
    # Stores
    "InMemoryStore",
    "SQLAlchemyStore",
    "create_store_engine",
    # Results & errors
    "Ok",
    "Err",
    "Result",
    "RecordSpineError",
    "ValidationError",
    "InvalidAttribute",
    "TypeMismatch",
    "UnknownAttribute",
    "ImmutableField",
    "NotFoundError",
    "ConflictError",
    # Config
    "RecordSpineSettings",
]
