"""SQLAlchemy Core storage collaborator.

Maps a :class:`~record_spine.schema.Schema` onto a SQLAlchemy ``Table`` and
pushes predicates down as SQLAlchemy column expressions, so filtering runs
in the database.

Translation keeps the in-memory semantics exactly:

* Every leaf is guarded with ``col IS NOT NULL`` so a comparison against
  NULL is FALSE (never UNKNOWN), and ``NOT`` over it is TRUE, just as
  ``Predicate.evaluate`` behaves.
* ``starts_with`` compares ``substr(col, 1, len(prefix))`` with the prefix,
  which is case-sensitive on every backend (``LIKE`` is not on SQLite).

Natural order is identity ascending.

SQLite has no exact decimal storage (``NUMERIC`` values become floats), so a
schema with ``Decimal`` attributes is refused there with :class:`ConfigError`
rather than silently filtering on rounded values.

An in-memory SQLite database lives on a single shared connection. The store
serializes access to such an engine: while one thread is inside
``transaction()`` every other thread's calls wait for it to finish.

Examples:
    >>> engine = create_store_engine("sqlite:///:memory:")
    >>> store = SQLAlchemyStore(engine, users)
    >>> store.create_all()
    >>> repo = Repository(store, users)
"""

from __future__ import annotations

import datetime
import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Generic, TypeVar

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    MetaData,
    Numeric,
    Table,
    Text,
    and_,
    event,
    func,
    not_,
    or_,
    select,
)
from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql.elements import ColumnElement

from record_spine.errors import ConfigError, ConflictError
from record_spine.logging import get_logger
from record_spine.predicate import Operator
from record_spine.schema import Schema
from record_spine.settings import RecordSpineSettings

R = TypeVar("R")

logger = get_logger(__name__)

_COLUMN_TYPES: dict[type, Any] = {
    str: Text,
    int: Integer,
    float: Float,
    bool: Boolean,
    Decimal: lambda: Numeric(asdecimal=True),
    datetime.datetime: DateTime,
    datetime.date: Date,
}


def _create(url: str, **kwargs: Any) -> Engine:
    try:
        return _sa_create_engine(url, **kwargs)
    except sa_exc.ArgumentError as e:
        raise ConfigError(f"Invalid database URL {url!r}: {e}", cause=e) from e


def create_store_engine(
    url: str = "sqlite:///:memory:",
    *,
    echo: bool = False,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    SQLite gets WAL journaling and foreign keys; an in-memory SQLite URL gets
    a single shared connection so every checkout sees the same database.

    Raises:
        ConfigError: *url* is not a usable SQLAlchemy URL (unparseable, or
            naming a dialect that is not installed).
    """
    if not url.startswith("sqlite"):
        return _create(url, echo=echo, **kwargs)

    kwargs.setdefault("connect_args", {"check_same_thread": False})
    if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
        kwargs.setdefault("poolclass", StaticPool)

    engine = _create(url, echo=echo, **kwargs)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def engine_from_settings(settings: RecordSpineSettings) -> Engine:
    """Engine for ``settings.database_url`` honouring ``settings.echo_sql``."""
    return create_store_engine(settings.database_url, echo=settings.echo_sql)


def build_table(schema: Schema[Any], metadata: MetaData, table_name: str | None = None) -> Table:
    """Derive a ``Table`` from *schema*; the identity attribute is the primary key."""
    columns = []
    for spec in schema:
        is_identity = spec.name == schema.identity
        column_type = _COLUMN_TYPES[spec.type]()
        columns.append(
            Column(
                spec.name,
                column_type,
                primary_key=is_identity,
                autoincrement=is_identity and spec.type is int,
                nullable=spec.nullable and not is_identity,
            )
        )
    return Table(table_name or schema.name.lower(), metadata, *columns)


_ENGINE_LOCKS: weakref.WeakKeyDictionary[Engine, threading.RLock] = weakref.WeakKeyDictionary()
_ENGINE_LOCKS_GUARD = threading.Lock()


def _shared_connection_lock(engine: Engine) -> threading.RLock | None:
    """Lock shared by every store on a ``StaticPool`` engine, else None.

    A ``StaticPool`` hands the same DBAPI connection to every checkout, so two
    threads would otherwise interleave statements inside one transaction.
    """
    if not isinstance(engine.pool, StaticPool):
        return None
    with _ENGINE_LOCKS_GUARD:
        lock = _ENGINE_LOCKS.get(engine)
        if lock is None:
            lock = _ENGINE_LOCKS[engine] = threading.RLock()
        return lock


class SQLAlchemyTranslator:
    """Predicate visitor producing SQLAlchemy boolean column expressions."""

    def __init__(self, table: Table) -> None:
        self.table = table

    def visit_leaf(self, attribute: str, operator: Operator, value: Any) -> ColumnElement[bool]:
        col = self.table.c[attribute]
        if operator is Operator.EQUALS:
            test = col == value
        elif operator is Operator.NOT_EQUALS:
            test = col != value
        elif operator is Operator.STARTS_WITH:
            test = func.substr(col, 1, len(value)) == value
        elif operator is Operator.GREATER_THAN:
            test = col > value
        elif operator is Operator.LESS_THAN:
            test = col < value
        else:
            raise ValueError(f"No SQL translation for {operator!r}")
        return and_(col.is_not(None), test)

    def visit_and(self, left: ColumnElement[bool], right: ColumnElement[bool]) -> ColumnElement[bool]:
        return and_(left, right)

    def visit_or(self, left: ColumnElement[bool], right: ColumnElement[bool]) -> ColumnElement[bool]:
        return or_(left, right)

    def visit_not(self, operand: ColumnElement[bool]) -> ColumnElement[bool]:
        return not_(operand)


class SQLAlchemyStore(Generic[R]):
    """Storage collaborator backed by one SQLAlchemy Core table.

    Parameters:
        engine: SQLAlchemy engine (see :func:`create_store_engine`).
        schema: Record schema; determines the table's columns.
        table_name: Defaults to the lower-cased record type name.
        metadata: Shared ``MetaData``; a private one is created if omitted.
    """

    def __init__(
        self,
        engine: Engine,
        schema: Schema[R],
        *,
        table_name: str | None = None,
        metadata: MetaData | None = None,
    ) -> None:
        if engine.dialect.name == "sqlite":
            exact = [spec.name for spec in schema if spec.type is Decimal]
            if exact:
                raise ConfigError(
                    f"SQLite cannot store Decimal attributes exactly: {', '.join(exact)}; "
                    "use a backend with a native NUMERIC type"
                ).with_context(record_type=schema.name)
        self.engine = engine
        self.schema = schema
        self.metadata = metadata or MetaData()
        self.table = build_table(schema, self.metadata, table_name)
        self._pk = self.table.c[schema.identity]
        self._local = threading.local()
        self._shared_lock = _shared_connection_lock(engine)

    def create_all(self) -> None:
        with self._turn():
            self.metadata.create_all(self.engine)
        logger.debug("table.ensured", table=self.table.name, dialect=self.engine.dialect.name)

    # -- Connection scope --------------------------------------------------

    @contextmanager
    def _turn(self) -> Iterator[None]:
        if self._shared_lock is None:
            yield
            return
        with self._shared_lock:
            yield

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            yield conn
            return
        with self._turn(), self.engine.begin() as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Iterator[SQLAlchemyStore[R]]:
        """One database transaction for every call made on this thread inside the scope."""
        if getattr(self._local, "conn", None) is not None:
            yield self
            return
        with self._turn(), self.engine.begin() as conn:
            self._local.conn = conn
            try:
                yield self
            finally:
                self._local.conn = None

    # -- Contract ----------------------------------------------------------

    def insert(self, record: R) -> Any:
        values = self.schema.dump(record)
        if values[self.schema.identity] is None:
            del values[self.schema.identity]
        try:
            with self._connect() as conn:
                result = conn.execute(self.table.insert().values(**values))
        except sa_exc.IntegrityError as e:
            raise ConflictError(
                f"{self.schema.name} insert violated a constraint",
                identity=values.get(self.schema.identity),
                cause=e,
            ) from e
        return result.inserted_primary_key[0]

    def fetch_by_identity(self, identity: Any) -> R | None:
        with self._connect() as conn:
            row = conn.execute(select(self.table).where(self._pk == identity)).first()
        return self.schema.build(row._mapping) if row is not None else None

    def fetch_where(
        self, translated: ColumnElement[bool] | None, *, limit: int | None = None
    ) -> list[R]:
        stmt = select(self.table).order_by(self._pk)
        if translated is not None:
            stmt = stmt.where(translated)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._connect() as conn:
            rows = conn.execute(stmt).all()
        return [self.schema.build(row._mapping) for row in rows]

    def persist(self, record: R) -> None:
        values = self.schema.dump(record)
        identity = values.pop(self.schema.identity)
        stmt = self.table.update().where(self._pk == identity).values(**values)
        with self._connect() as conn:
            result = conn.execute(stmt)
        if result.rowcount == 0:
            raise ConflictError(
                f"{self.schema.name} {identity!r} was removed concurrently", identity=identity
            )

    def delete(self, identity: Any) -> bool:
        with self._connect() as conn:
            result = conn.execute(self.table.delete().where(self._pk == identity))
        return result.rowcount > 0

    def translator(self) -> SQLAlchemyTranslator:
        return SQLAlchemyTranslator(self.table)


__all__ = [
    "SQLAlchemyStore",
    "SQLAlchemyTranslator",
    "build_table",
    "create_store_engine",
    "engine_from_settings",
]
