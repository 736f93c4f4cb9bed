"""Persistencia SQLite clave/valor para el documento de salud."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from health_tracker.backends.base import (
    StorageBackend,
    StorageQuotaError,
    StorageUnavailableError,
)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class SQLiteBackend(StorageBackend):
    """Key/value table in a local SQLite file."""

    def __init__(self, db_path: Path, *, max_value_bytes: int | None = None) -> None:
        """Create backend and ensure schema exists.

        Raises:
            StorageUnavailableError: If the database cannot be created.
        """
        self._db_path = db_path
        self._max_value_bytes = max_value_bytes
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_schema()
        except (OSError, sqlite3.Error) as exc:
            raise StorageUnavailableError(f"{db_path}: {exc}") from exc

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def get(self, key: str) -> str | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageUnavailableError(str(exc)) from exc
        if row is None:
            return None
        return str(row["value"])

    def set(self, key: str, value: str) -> None:
        if (
            self._max_value_bytes is not None
            and len(value.encode("utf-8")) > self._max_value_bytes
        ):
            raise StorageQuotaError(
                f"value of {len(value)} chars exceeds {self._max_value_bytes} bytes"
            )
        updated_at = datetime.now().isoformat(timespec="seconds")
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO kv_store(key, value, updated_at) VALUES(?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value=excluded.value,
                        updated_at=excluded.updated_at
                    """,
                    (key, value, updated_at),
                )
                conn.commit()
        except sqlite3.OperationalError as exc:
            if "full" in str(exc).lower():
                raise StorageQuotaError(str(exc)) from exc
            raise StorageUnavailableError(str(exc)) from exc
        except sqlite3.Error as exc:
            raise StorageUnavailableError(str(exc)) from exc

    def remove(self, key: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as exc:
            raise StorageUnavailableError(str(exc)) from exc

