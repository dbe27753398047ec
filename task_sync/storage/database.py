"""SQLite handle shared by the data access objects."""

import contextlib
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence, Union

from ..core.exceptions import MalformedPayloadError, StorageError

SCHEMA = """
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    remote_id INTEGER NOT NULL DEFAULT 0,
    title TEXT NOT NULL DEFAULT '',
    modification_date INTEGER NOT NULL DEFAULT 0,
    last_sync INTEGER NOT NULL DEFAULT 0,
    completion_date INTEGER NOT NULL DEFAULT 0,
    deletion_date INTEGER NOT NULL DEFAULT 0,
    payload TEXT NOT NULL DEFAULT '{}'
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_remote_id
    ON tasks (remote_id) WHERE remote_id > 0;

CREATE TABLE IF NOT EXISTS metadata (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task INTEGER NOT NULL REFERENCES tasks (id) ON DELETE CASCADE,
    kind TEXT NOT NULL,
    provider TEXT,
    value TEXT NOT NULL DEFAULT '',
    payload TEXT NOT NULL DEFAULT '{}',
    created_at INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_metadata_task_kind ON metadata (task, kind);

CREATE TABLE IF NOT EXISTS tagdata (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    remote_id INTEGER NOT NULL DEFAULT 0,
    name TEXT NOT NULL COLLATE NOCASE UNIQUE,
    member_count INTEGER NOT NULL DEFAULT 0,
    payload TEXT NOT NULL DEFAULT '{}'
);
"""


def dump_payload(values: Any, owner: str) -> str:
    """Serialise an opaque values/payload dict for a TEXT column."""
    try:
        return json.dumps(values, sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise MalformedPayloadError(f"{owner} has a value that cannot be stored: {exc}") from exc


class Database:
    """Owns one SQLite connection and hands out transactions on it.

    The connection runs in autocommit mode; `transaction()` issues explicit
    BEGIN/COMMIT/ROLLBACK. Nested `transaction()` blocks join the outermost
    one, so a failure anywhere rolls back everything since the outer BEGIN.
    """

    def __init__(self, path: Union[str, Path] = ":memory:",
                 logger: Optional[logging.Logger] = None):
        self.path = str(path)
        self.logger = logger or logging.getLogger(__name__)
        self._depth = 0

        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self.conn = sqlite3.connect(self.path, isolation_level=None, timeout=5.0)
        except sqlite3.Error as exc:
            raise StorageError(f"Could not open task database {self.path}: {exc}") from exc

        try:
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys=ON")
            if self.path != ":memory:":
                self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.executescript(SCHEMA)
        except sqlite3.Error as exc:
            self.conn.close()
            raise StorageError(f"Could not open task database {self.path}: {exc}") from exc

        self.logger.debug(f"Opened task database at {self.path}")

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed block atomically.

        sqlite3 errors are re-raised as StorageError after rollback; any other
        exception rolls back and propagates unchanged.
        """
        if self._depth > 0:
            self._depth += 1
            try:
                yield self.conn
            finally:
                self._depth -= 1
            return

        try:
            self.conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as exc:
            raise StorageError(f"Could not begin transaction: {exc}") from exc

        self._depth = 1
        try:
            yield self.conn
            self.conn.execute("COMMIT")
        except Exception as exc:
            self.logger.debug(f"Transaction failed, rolling back: {exc}")
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
            if isinstance(exc, sqlite3.Error):
                raise StorageError(f"Transaction rolled back: {exc}") from exc
            raise
        finally:
            self._depth = 0

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, tuple(params))
        except (sqlite3.Error, OverflowError) as exc:
            raise StorageError(f"{exc} (while running: {sql.split()[0]} ...)") from exc

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list:
        return self.execute(sql, params).fetchall()

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        return self.execute(sql, params).fetchone()

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
