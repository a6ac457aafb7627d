"""Reference storage collaborators.

Modules
-------
memory          In-process store; translating or eager-only
sql             SQLAlchemy Core store with predicate push-down

Both satisfy :class:`record_spine.protocols.StorageCollaborator`. They are
plumbing around the core, not part of it: any object with the same shape
can back a :class:`~record_spine.repository.Repository`.
"""

from record_spine.adapters.memory import FilterTranslator, InMemoryStore, evaluate_remote
from record_spine.adapters.sql import (
    SQLAlchemyStore,
    SQLAlchemyTranslator,
    build_table,
    create_store_engine,
    engine_from_settings,
)

__all__ = [
    "FilterTranslator",
    "InMemoryStore",
    "evaluate_remote",
    "SQLAlchemyStore",
    "SQLAlchemyTranslator",
    "build_table",
    "create_store_engine",
    "engine_from_settings",
]
