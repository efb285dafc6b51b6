"""SQLAlchemy-backed storage handle for the policy store.

``Database`` wraps a SQLAlchemy engine and exposes the small surface the
policy components need: ``execute``/``query`` over string triples, a
``transaction`` scope, and schema helpers. A handle is created by the caller
and passed explicitly to ``RoleRegistry`` and ``PolicyStore``::

    with Database.open("sqlite:///policies.db") as db:
        db.setup()
        store = PolicyStore(db)
        store.load_file("policies.json")
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from .exceptions import DatabaseConnectionError, StorageError

logger = logging.getLogger(__name__)

ROLES_TABLE = "roles"
POLICIES_TABLE = "policies"

_SCHEMA_STATEMENTS = (
    "create table if not exists policies (role varchar, control_column varchar, value varchar)",
    "create table if not exists roles (role varchar unique)",
)
_RESET_STATEMENTS = (
    "delete from policies",
    "delete from roles",
)


class Database:
    """Storage handle with an ``open -> use -> close`` lifecycle."""

    def __init__(self, url: str = "sqlite:///:memory:") -> None:
        self.url = url
        self._engine: Optional[Engine] = None
        self._active: Optional[Connection] = None

    @classmethod
    def open(cls, url: str = "sqlite:///:memory:") -> "Database":
        """Create the engine and verify connectivity."""
        db = cls(url)
        db.connect()
        return db

    def connect(self) -> None:
        if self._engine is not None:
            return
        try:
            self._ensure_parent_dir()
            self._engine = create_engine(self.url)
            self.ping()
        except (SQLAlchemyError, OSError) as exc:
            self._engine = None
            raise DatabaseConnectionError(
                f"Could not open database {self.url}: {exc}",
                url=self.url,
            ) from exc
        logger.debug("Opened database %s", self.url)

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        logger.debug("Closed database %s", self.url)

    @property
    def closed(self) -> bool:
        return self._engine is None

    def __enter__(self) -> "Database":
        self.connect()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _ensure_parent_dir(self) -> None:
        if self.url.startswith("sqlite:///") and ":memory:" not in self.url:
            db_path = Path(self.url.replace("sqlite:///", "", 1).split("?", 1)[0])
            if db_path.name:
                db_path.parent.mkdir(parents=True, exist_ok=True)

    def _require_engine(self) -> Engine:
        if self._engine is None:
            raise StorageError(f"Database {self.url} is closed", url=self.url)
        return self._engine

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        if self._active is not None:
            yield self._active
            return
        with self._require_engine().begin() as conn:
            yield conn

    # ---- Transactions -------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Run the enclosed statements in one transaction.

        Commits on normal exit and rolls back when the block raises.
        A nested ``transaction()`` joins the enclosing one.
        """
        if self._active is not None:
            yield self
            return
        engine = self._require_engine()
        try:
            with engine.begin() as conn:
                self._active = conn
                try:
                    yield self
                finally:
                    self._active = None
        except SQLAlchemyError as exc:
            raise StorageError(f"Transaction failed: {exc}", step="commit") from exc

    # ---- Statements ---------------------------------------------------------

    def execute(self, statement: str, params: Optional[Mapping[str, Any]] = None) -> int:
        """Execute a statement and return the number of affected rows."""
        try:
            with self._connection() as conn:
                result = conn.execute(text(statement), dict(params or {}))
                return result.rowcount
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Statement failed: {exc}",
                statement=statement,
                params=dict(params or {}),
            ) from exc

    def query(self, statement: str, params: Optional[Mapping[str, Any]] = None) -> list[tuple]:
        """Run a query and return its rows as positional tuples."""
        try:
            with self._connection() as conn:
                return [tuple(row) for row in conn.execute(text(statement), dict(params or {}))]
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Query failed: {exc}",
                statement=statement,
                params=dict(params or {}),
            ) from exc

    def ping(self) -> None:
        """Raise if the database cannot answer a trivial query."""
        with self._require_engine().connect() as conn:
            conn.execute(text("select 1"))

    # ---- Schema -------------------------------------------------------------

    def list_tables(self) -> list[str]:
        try:
            return inspect(self._require_engine()).get_table_names()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not list tables: {exc}", step="list_tables") from exc

    def setup(self, reset: bool = True) -> None:
        """Create the roles and policies relations.

        With ``reset`` (the default) every existing row is deleted, so the
        store starts empty.
        """
        with self.transaction():
            for statement in _SCHEMA_STATEMENTS:
                self.execute(statement)
            if reset:
                for statement in _RESET_STATEMENTS:
                    self.execute(statement)
        logger.info("Policy store tables ready at %s (reset=%s)", self.url, reset)

    def is_initialized(self) -> bool:
        """Return True if both relations exist.

        Advisory only: storage failures are logged and reported as False.
        """
        try:
            tables = set(self.list_tables())
        except StorageError as exc:
            logger.warning("Could not inspect %s: %s", self.url, exc.message)
            return False
        return {ROLES_TABLE, POLICIES_TABLE} <= tables


__all__ = [
    "Database",
    "POLICIES_TABLE",
    "ROLES_TABLE",
]
