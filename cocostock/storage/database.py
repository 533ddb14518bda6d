# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""SQLite key/value document store.

Tables:
- symbols: registered tickers (the owning entities)
- symbol_meta: JSON documents keyed by (symbol, meta_key), with a version counter
- options: process-wide named values (buffer queue, processing flag, settings, cron log)

Each call opens its own connection (busy timeout = bounded storage wait).
mutate_meta / mutate_option run read-modify-write inside BEGIN IMMEDIATE so
concurrent writers serialize on the database write lock instead of losing updates.
All sqlite3 errors surface as StorageError.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from cocostock.core.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 10.0

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS symbols (
        symbol TEXT PRIMARY KEY,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS symbol_meta (
        symbol TEXT NOT NULL,
        meta_key TEXT NOT NULL,
        meta_value TEXT NOT NULL,
        version INTEGER NOT NULL DEFAULT 1,
        updated_at TEXT NOT NULL,
        PRIMARY KEY (symbol, meta_key)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS options (
        option_name TEXT PRIMARY KEY,
        option_value TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_symbol_meta_symbol ON symbol_meta(symbol)",
)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _escape_like(prefix: str) -> str:
    return prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class MetaStore:
    """Key/value backend keyed by (owning symbol, string key), plus named options."""

    def __init__(self, db_path: Union[str, Path], timeout_sec: float = DEFAULT_TIMEOUT_SEC) -> None:
        self._db_path = Path(db_path)
        self._timeout = timeout_sec

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self._db_path), timeout=self._timeout, isolation_level=None)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self._db_path}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            raise StorageError(f"Database error: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """BEGIN IMMEDIATE ... COMMIT; rollback on any exception."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            try:
                yield cursor
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    def init_schema(self) -> None:
        """Create tables if missing (idempotent)."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            cursor = conn.cursor()
            for stmt in _SCHEMA:
                cursor.execute(stmt)
        logger.debug("[STORE] schema ready at %s", self._db_path)

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def insert_symbol(self, symbol: str, created_at: str) -> bool:
        """Insert a symbol row. False if it already exists."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT OR IGNORE INTO symbols (symbol, created_at) VALUES (?, ?)",
                (symbol, created_at),
            )
            return cursor.rowcount > 0

    def get_symbol_row(self, symbol: str) -> Optional[Tuple[str, str]]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT symbol, created_at FROM symbols WHERE symbol = ?", (symbol,))
            row = cursor.fetchone()
        return (row[0], row[1]) if row else None

    def list_symbol_rows(self) -> List[Tuple[str, str]]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT symbol, created_at FROM symbols ORDER BY symbol ASC")
            return [(r[0], r[1]) for r in cursor.fetchall()]

    def delete_symbol(self, symbol: str) -> bool:
        """Delete a symbol and all of its meta documents."""
        with self._transaction() as cursor:
            cursor.execute("DELETE FROM symbol_meta WHERE symbol = ?", (symbol,))
            cursor.execute("DELETE FROM symbols WHERE symbol = ?", (symbol,))
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Per-symbol documents
    # ------------------------------------------------------------------

    def get_meta(self, symbol: str, meta_key: str) -> Optional[Any]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT meta_value FROM symbol_meta WHERE symbol = ? AND meta_key = ?",
                (symbol, meta_key),
            )
            row = cursor.fetchone()
        return self._decode(row[0]) if row else None

    def get_meta_version(self, symbol: str, meta_key: str) -> int:
        """Current version counter (0 when absent)."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT version FROM symbol_meta WHERE symbol = ? AND meta_key = ?",
                (symbol, meta_key),
            )
            row = cursor.fetchone()
        return int(row[0]) if row else 0

    def list_meta_keys(self, symbol: str, prefix: str = "") -> List[str]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT meta_key FROM symbol_meta WHERE symbol = ? AND meta_key LIKE ? ESCAPE '\\' ORDER BY meta_key",
                (symbol, _escape_like(prefix) + "%"),
            )
            return [r[0] for r in cursor.fetchall()]

    def list_meta(self, symbol: str, prefix: str = "") -> Dict[str, Any]:
        """All documents for symbol whose key starts with prefix, in key order."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT meta_key, meta_value FROM symbol_meta WHERE symbol = ? AND meta_key LIKE ? ESCAPE '\\' ORDER BY meta_key",
                (symbol, _escape_like(prefix) + "%"),
            )
            rows = cursor.fetchall()
        return {k: self._decode(v) for k, v in rows}

    def update_meta(self, symbol: str, meta_key: str, value: Any) -> None:
        """Blind write (insert or replace). Prefer mutate_meta for read-modify-write."""
        with self._connect() as conn:
            conn.cursor().execute(
                """
                INSERT INTO symbol_meta (symbol, meta_key, meta_value, version, updated_at)
                VALUES (?, ?, ?, 1, ?)
                ON CONFLICT(symbol, meta_key) DO UPDATE SET
                    meta_value = excluded.meta_value,
                    version = symbol_meta.version + 1,
                    updated_at = excluded.updated_at
                """,
                (symbol, meta_key, self._encode(value), _utc_now_iso()),
            )

    def delete_meta(self, symbol: str, meta_key: str) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM symbol_meta WHERE symbol = ? AND meta_key = ?", (symbol, meta_key))
            return cursor.rowcount > 0

    def mutate_meta(
        self,
        symbol: str,
        meta_key: str,
        fn: Callable[[Optional[Any]], Optional[Any]],
    ) -> Optional[Any]:
        """
        Atomic read-modify-write of one document.

        fn receives the current value (None if absent) and returns the new value;
        returning None deletes the key. Returns the new value.
        """
        with self._transaction() as cursor:
            cursor.execute(
                "SELECT meta_value FROM symbol_meta WHERE symbol = ? AND meta_key = ?",
                (symbol, meta_key),
            )
            row = cursor.fetchone()
            current = self._decode(row[0]) if row else None
            new_value = fn(current)
            if new_value is None:
                if row:
                    cursor.execute("DELETE FROM symbol_meta WHERE symbol = ? AND meta_key = ?", (symbol, meta_key))
                return None
            cursor.execute(
                """
                INSERT INTO symbol_meta (symbol, meta_key, meta_value, version, updated_at)
                VALUES (?, ?, ?, 1, ?)
                ON CONFLICT(symbol, meta_key) DO UPDATE SET
                    meta_value = excluded.meta_value,
                    version = symbol_meta.version + 1,
                    updated_at = excluded.updated_at
                """,
                (symbol, meta_key, self._encode(new_value), _utc_now_iso()),
            )
            return new_value

    # ------------------------------------------------------------------
    # Named options
    # ------------------------------------------------------------------

    def get_option(self, name: str, default: Any = None) -> Any:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT option_value FROM options WHERE option_name = ?", (name,))
            row = cursor.fetchone()
        return self._decode(row[0]) if row else default

    def update_option(self, name: str, value: Any) -> None:
        with self._connect() as conn:
            conn.cursor().execute(
                """
                INSERT INTO options (option_name, option_value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(option_name) DO UPDATE SET
                    option_value = excluded.option_value,
                    updated_at = excluded.updated_at
                """,
                (name, self._encode(value), _utc_now_iso()),
            )

    def add_option(self, name: str, value: Any) -> bool:
        """Insert only when absent. True if inserted."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT OR IGNORE INTO options (option_name, option_value, updated_at) VALUES (?, ?, ?)",
                (name, self._encode(value), _utc_now_iso()),
            )
            return cursor.rowcount > 0

    def delete_option(self, name: str) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM options WHERE option_name = ?", (name,))
            return cursor.rowcount > 0

    def mutate_option(self, name: str, fn: Callable[[Any], Any], default: Any = None) -> Any:
        """Atomic read-modify-write of a named option. Returning None deletes it."""
        with self._transaction() as cursor:
            cursor.execute("SELECT option_value FROM options WHERE option_name = ?", (name,))
            row = cursor.fetchone()
            current = self._decode(row[0]) if row else default
            new_value = fn(current)
            if new_value is None:
                cursor.execute("DELETE FROM options WHERE option_name = ?", (name,))
                return None
            cursor.execute(
                """
                INSERT INTO options (option_name, option_value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(option_name) DO UPDATE SET
                    option_value = excluded.option_value,
                    updated_at = excluded.updated_at
                """,
                (name, self._encode(new_value), _utc_now_iso()),
            )
            return new_value

    # ------------------------------------------------------------------

    @staticmethod
    def _encode(value: Any) -> str:
        try:
            return json.dumps(value, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value is not JSON-serializable: {e}") from e

    @staticmethod
    def _decode(text: str) -> Any:
        try:
            return json.loads(text)
        except (TypeError, json.JSONDecodeError) as e:
            logger.warning("[STORE] undecodable value: %s", e)
            return None


__all__ = ["DEFAULT_TIMEOUT_SEC", "MetaStore"]
