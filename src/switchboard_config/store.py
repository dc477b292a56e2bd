"""Key-value entity stores holding one serialized document per key.

The MCP store only talks to the EntityStore protocol, so whether servers
live as files in a directory or as rows in a SQLite database is a choice of
the application wiring, not of the merge and sync logic.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Protocol

from .exceptions import AlreadyExistsError
from .exceptions import ConfigFileError
from .exceptions import NotFoundError
from .files import read_text
from .files import write_text

logger = logging.getLogger(__name__)


class EntityStore(Protocol):
    """Storage of text documents keyed by entity name."""

    kind: str

    def exists(self, key: str) -> bool: ...

    def read(self, key: str) -> str | None:
        """Return the stored document, or None when the key is absent."""
        ...

    def write(self, key: str, content: str) -> None: ...

    def delete(self, key: str) -> None:
        """Remove a key.

        Raises:
            NotFoundError: If the key is absent
        """
        ...

    def rename(self, old: str, new: str) -> None:
        """Move a document to a new key without copying it.

        Raises:
            NotFoundError: If old is absent
            AlreadyExistsError: If new is taken
        """
        ...

    def keys(self) -> list[str]:
        """All keys, sorted."""
        ...


class DirectoryEntityStore:
    """One ``<key><suffix>`` file per entity inside a directory.

    File existence is the source of truth for entity existence.
    """

    def __init__(self, directory: Path, *, suffix: str = ".json", kind: str = "Entity"):
        self.directory = directory
        self.suffix = suffix
        self.kind = kind

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}{self.suffix}"

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def read(self, key: str) -> str | None:
        return read_text(self._path(key))

    def write(self, key: str, content: str) -> None:
        write_text(self._path(key), content)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError(self.kind, key)
        try:
            path.unlink()
        except OSError as e:
            raise ConfigFileError(f"Failed to delete {path}: {e}") from e

    def rename(self, old: str, new: str) -> None:
        source = self._path(old)
        destination = self._path(new)
        if not source.is_file():
            raise NotFoundError(self.kind, old)
        if destination.exists():
            raise AlreadyExistsError(self.kind, new)
        try:
            source.rename(destination)
        except OSError as e:
            raise ConfigFileError(f"Failed to rename {source} to {destination}: {e}") from e

    def keys(self) -> list[str]:
        if not self.directory.is_dir():
            return []
        return sorted(path.stem for path in self.directory.glob(f"*{self.suffix}") if path.is_file())


def _connect(db_path: Path) -> sqlite3.Connection:
    # isolation_level=None puts sqlite3 in autocommit mode
    conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None, timeout=30.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA busy_timeout = 30000")
    return conn


class SqliteEntityStore:
    """One row per entity in an embedded SQLite database."""

    def __init__(self, db_path: Path, *, table: str = "entities", kind: str = "Entity"):
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table}")
        self.db_path = db_path
        self.table = table
        self.kind = kind
        self._lock = threading.Lock()
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = _connect(self.db_path)
            self._init_schema()
        except (OSError, sqlite3.Error) as e:
            raise ConfigFileError(f"Failed to open {self.db_path}: {e}") from e

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _init_schema(self) -> None:
        with self._lock:
            self._conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    key TEXT PRIMARY KEY,
                    content TEXT NOT NULL
                )
                """
            )

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            with self._lock:
                return self._conn.execute(sql, params)
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as e:
            raise ConfigFileError(f"SQLite error on {self.db_path}: {e}") from e

    def exists(self, key: str) -> bool:
        row = self._execute(f"SELECT 1 FROM {self.table} WHERE key = ?", (key,)).fetchone()
        return row is not None

    def read(self, key: str) -> str | None:
        row = self._execute(f"SELECT content FROM {self.table} WHERE key = ?", (key,)).fetchone()
        return None if row is None else row["content"]

    def write(self, key: str, content: str) -> None:
        self._execute(
            f"INSERT INTO {self.table} (key, content) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET content = excluded.content",
            (key, content),
        )

    def delete(self, key: str) -> None:
        cursor = self._execute(f"DELETE FROM {self.table} WHERE key = ?", (key,))
        if cursor.rowcount == 0:
            raise NotFoundError(self.kind, key)

    def rename(self, old: str, new: str) -> None:
        if not self.exists(old):
            raise NotFoundError(self.kind, old)
        try:
            self._execute(f"UPDATE {self.table} SET key = ? WHERE key = ?", (new, old))
        except sqlite3.IntegrityError as e:
            raise AlreadyExistsError(self.kind, new) from e

    def keys(self) -> list[str]:
        rows = self._execute(f"SELECT key FROM {self.table} ORDER BY key").fetchall()
        return [row["key"] for row in rows]
