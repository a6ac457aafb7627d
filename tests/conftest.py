"""
Shared pytest fixtures for record-spine tests.

This module provides:
- Schemas for the record types in ``records.py``
- In-memory stores (translating and eager-only) and repositories over them
- A SQLite-backed SQLAlchemy store
- A spy over the in-memory store
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from record_spine.adapters.memory import InMemoryStore
from record_spine.adapters.sql import SQLAlchemyStore, create_store_engine
from record_spine.repository import Repository
from record_spine.schema import Schema

from doubles import SpyStore
from records import Product, Release, User


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark SQL-engine tests as integration, everything else as unit."""
    for item in items:
        test_path = item.path.name
        if test_path.startswith("test_sql"):
            item.add_marker(pytest.mark.integration)
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Schemas & records
# =============================================================================


@pytest.fixture
def users() -> Schema[User]:
    return Schema.from_dataclass(User, identity="id")


@pytest.fixture
def products() -> Schema[Product]:
    return Schema.from_dataclass(Product, identity="sku")


@pytest.fixture
def releases() -> Schema[Release]:
    return Schema.from_dataclass(Release, identity="sku")


@pytest.fixture
def people() -> list[User]:
    """A small population with duplicates and NULLs to exercise edge cases."""
    return [
        User(id=None, username="johndoe", first_name="John", last_name="Doe", email="j@x.com", age=34),
        User(id=None, username="admin", first_name="Ada", email="admin@x.com", age=41),
        User(id=None, username="johndoe", first_name="Johnny", email="Admin@y.com", age=19),
        User(id=None, username="ghost", email=None, age=None, active=False),
        User(id=None, username="zed", first_name="Zed", email="zed@x.com", age=30),
    ]


# =============================================================================
# Stores & repositories
# =============================================================================


@pytest.fixture
def store(users: Schema[User], people: list[User]) -> InMemoryStore[User]:
    s = InMemoryStore(users)
    for person in people:
        s.insert(person)
    return s


@pytest.fixture
def eager_store(users: Schema[User], people: list[User]) -> InMemoryStore[User]:
    s = InMemoryStore(users, translate=False)
    for person in people:
        s.insert(person)
    return s


@pytest.fixture
def spy(store: InMemoryStore[User]) -> SpyStore:
    return SpyStore(store)


@pytest.fixture
def repo(store: InMemoryStore[User], users: Schema[User]) -> Repository[User]:
    return Repository(store, users)


@pytest.fixture
def sql_store(users: Schema[User], people: list[User]) -> Iterator[SQLAlchemyStore[User]]:
    engine = create_store_engine("sqlite:///:memory:")
    s = SQLAlchemyStore(engine, users)
    s.create_all()
    for person in people:
        s.insert(person)
    yield s
    engine.dispose()
