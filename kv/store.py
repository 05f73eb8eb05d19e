"""
kv/store.py -- Ordered key-value store on SQLAlchemy Core.

Both persisted stores (credentials and audit log) are one KVStore each: a
single two-column table whose primary key is the string key and whose value
is a JSON document. SQLite compares TEXT keys byte-wise (BINARY collation),
so an ORDER BY on the key column gives the lexicographic order that the
audit-log range scans depend on.

Pattern: Repository. Callers never touch SQL; they get, put, delete, list
keys, and scan inclusive key ranges forward or in reverse.

Errors:
  KeyNotFoundError -- a lookup miss. A normal outcome, not a fault.
  StorageError     -- any failure of the underlying database. Every
                      SQLAlchemyError is re-raised as this type so callers
                      have a single fault type to catch.

Usage:
    store = KVStore.open(Path("db/user.db"))
    store.put("alice", "9f2c...")
    store.get("alice")                                  # "9f2c..."
    store.scan("a-2026", "a-2027", reverse=True, limit=11)
    store.close()

Layer rule: no imports from api/, web/, auth/, or audit/.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, delete, event, select, text
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("authlog.kv")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_entries = Table(
    "entries",
    _metadata,
    Column("key", String, primary_key=True),
    Column("value", Text, nullable=False),  # JSON document
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StorageError(Exception):
    """The underlying store failed (I/O, locking, corrupt file...)."""


class KeyNotFoundError(KeyError):
    """No entry exists under the requested key."""


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so scans do not block behind writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class KVStore:
    """String-keyed store with JSON values and ordered range scans."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not initialise store at {db_url}") from exc

    @classmethod
    def open(cls, path: Path) -> KVStore:
        """Open (creating if absent) the SQLite store file at path."""
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Opening store %s", path)
        return cls(f"sqlite:///{path}")

    # ------------------------------------------------------------------
    # Point operations
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any:
        """Return the value stored under key. Raises KeyNotFoundError on a miss."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(_entries.c.value).where(_entries.c.key == key)).fetchone()
        except SQLAlchemyError as exc:
            raise StorageError(f"get failed for key {key!r}") from exc
        if row is None:
            raise KeyNotFoundError(key)
        return json.loads(row[0])

    def put(self, key: str, value: Any) -> None:
        """Store value under key, replacing any existing entry."""
        stmt = sqlite_insert(_entries).values(key=key, value=json.dumps(value))
        stmt = stmt.on_conflict_do_update(index_elements=[_entries.c.key], set_={"value": stmt.excluded.value})
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError(f"put failed for key {key!r}") from exc

    def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is a no-op."""
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(_entries).where(_entries.c.key == key))
        except SQLAlchemyError as exc:
            raise StorageError(f"delete failed for key {key!r}") from exc

    # ------------------------------------------------------------------
    # Ordered reads
    # ------------------------------------------------------------------

    def keys(self) -> list[str]:
        """Return every key in ascending key order."""
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(select(_entries.c.key).order_by(_entries.c.key)).fetchall()
        except SQLAlchemyError as exc:
            raise StorageError("key enumeration failed") from exc
        return [row[0] for row in rows]

    def scan(
        self,
        gte: str,
        lte: str,
        reverse: bool = False,
        limit: int | None = None,
    ) -> list[tuple[str, Any]]:
        """Return (key, value) pairs with gte <= key <= lte.

        Ascending key order by default; reverse=True walks from lte down.
        limit caps the number of pairs read.
        """
        order = _entries.c.key.desc() if reverse else _entries.c.key.asc()
        query = (
            select(_entries.c.key, _entries.c.value)
            .where(_entries.c.key >= gte, _entries.c.key <= lte)
            .order_by(order)
        )
        if limit is not None:
            query = query.limit(limit)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        except SQLAlchemyError as exc:
            raise StorageError(f"scan failed for range [{gte!r}, {lte!r}]") from exc
        return [(row[0], json.loads(row[1])) for row in rows]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Store ping failed", exc_info=True)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()
