"""
tierdata/storage/sqlite.py

File-backed Local Mirror.

Storage:
- One row per mirror key in `mirror_entries` (key, JSON text, updated_at).
- Schema is created non-destructively (CREATE TABLE IF NOT EXISTS).
- A connection is opened per operation; writes commit before returning.
"""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator, List, Optional

from .base import MirrorStore


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def ensure_schema(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS mirror_entries (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.commit()


class SqliteMirrorStore(MirrorStore):
    def __init__(self, db_path: str) -> None:
        if db_path == ":memory:":
            # Each operation opens its own connection, so :memory: would forget everything.
            raise ValueError("SqliteMirrorStore needs a file path; use InMemoryMirrorStore instead")
        self.db_path = db_path
        parent = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(parent, exist_ok=True)
        with self._conn() as conn:
            ensure_schema(conn)

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def get_raw(self, key: str) -> Optional[str]:
        with self._conn() as conn:
            row = conn.execute("SELECT value FROM mirror_entries WHERE key = ?", (key,)).fetchone()
        return None if row is None else str(row["value"])

    def set_raw(self, key: str, value: str) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO mirror_entries (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, _utc_now_iso()),
            )
            conn.commit()

    def remove_many(self, keys: Iterable[str]) -> None:
        ks = [(k,) for k in keys]
        if not ks:
            return
        with self._conn() as conn:
            try:
                conn.executemany("DELETE FROM mirror_entries WHERE key = ?", ks)
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

    def keys(self) -> List[str]:
        with self._conn() as conn:
            rows = conn.execute("SELECT key FROM mirror_entries ORDER BY key").fetchall()
        return [str(r["key"]) for r in rows]
