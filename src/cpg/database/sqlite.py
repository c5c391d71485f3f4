# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Persistence SQLite implementation for libraries and sessions."""

import json
import logging
import sqlite3

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from cpg.errors import PersistenceError

logger = logging.getLogger(__name__)


class SQLiteKeyValueStore:
    """Persist JSON values by key in a SQLite database."""

    def __init__(self, db_path: Path) -> None:
        """Initialize persistence backend.

        Args:
            db_path: SQLite database file path.
        """
        self._db_path = db_path

    def get(self, key: str, default: Any = None) -> Any:
        """Read the value stored under a key.

        Args:
            key: Storage key.
            default: Value returned when the key is absent.

        Returns:
            Decoded JSON value or ``default``.

        Raises:
            PersistenceError: If the database cannot be read or the stored
                value is not valid JSON.
        """
        connection = sqlite3.connect(self._db_path)
        try:
            self._ensure_schema(connection=connection)
            row = connection.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.DatabaseError as exc:
            logger.warning(
                f"SQLite read failed (db_path={self._db_path} key={key} error={exc})"
            )
            raise PersistenceError(str(exc)) from exc
        finally:
            connection.close()

        if row is None:
            return default
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as exc:
            logger.warning(
                f"Stored value is not valid JSON (db_path={self._db_path} key={key})"
            )
            raise PersistenceError(f"Stored value for {key!r} is corrupt: {exc}") from exc

    def put(self, key: str, value: Any) -> None:
        """Write a value under a key atomically, replacing any previous value.

        Args:
            key: Storage key.
            value: JSON-serializable value.

        Raises:
            PersistenceError: If the value cannot be encoded or written.
        """
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Value for {key!r} is not JSON-serializable: {exc}") from exc

        updated_at = datetime.now(tz=timezone.utc).isoformat()
        connection = sqlite3.connect(self._db_path)
        try:
            self._ensure_schema(connection=connection)
            connection.execute("BEGIN")
            connection.execute(
                "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET "
                "value = excluded.value, updated_at = excluded.updated_at",
                (key, payload, updated_at),
            )
            connection.commit()
        except sqlite3.DatabaseError as exc:
            connection.rollback()
            logger.warning(
                f"SQLite persistence failed (db_path={self._db_path} key={key} error={exc})"
            )
            raise PersistenceError(str(exc)) from exc
        finally:
            connection.close()

    def _ensure_schema(self, connection: sqlite3.Connection) -> None:
        """Create the key-value table when missing.

        Args:
            connection: Open SQLite connection.
        """
        connection.execute(
            "CREATE TABLE IF NOT EXISTS kv_store ("
            "key TEXT PRIMARY KEY, "
            "value TEXT NOT NULL, "
            "updated_at TEXT NOT NULL"
            ")"
        )
