"""
SQLite-backed key/value persistence for client-side state (chat sessions).

Values are stored as JSON text. The store enforces a byte quota across all
keys, the same way browser local storage does, and raises
StorageQuotaExceeded when a write would exceed it.
"""
from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator, Optional

from config import STORE_PATH, STORE_QUOTA_BYTES


class StorageQuotaExceeded(RuntimeError):
    """Raised when a write would push the store past its byte quota."""


_CREATE_KV_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    size_bytes  INTEGER NOT NULL,
    updated_at  TEXT NOT NULL
);
"""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class KeyValueStore:
    def __init__(self, db_path: Optional[str] = None, quota_bytes: Optional[int] = None) -> None:
        self.db_path = db_path or STORE_PATH
        self.quota_bytes = STORE_QUOTA_BYTES if quota_bytes is None else quota_bytes
        self.init_db()

    # ─── Connection helper ────────────────────────────────────────────────────

    @contextmanager
    def _db(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager that yields a configured SQLite connection."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        with self._db() as conn:
            conn.executescript(_CREATE_KV_SQL)

    # ─── CRUD ─────────────────────────────────────────────────────────────────

    def save(self, key: str, value: Any) -> None:
        encoded = json.dumps(value, ensure_ascii=False)
        size = len(encoded.encode("utf-8"))
        with self._db() as conn:
            row = conn.execute(
                "SELECT COALESCE(SUM(size_bytes), 0) AS used FROM kv_store WHERE key != ?",
                (key,),
            ).fetchone()
            used = int(row["used"])
            if used + size > self.quota_bytes:
                raise StorageQuotaExceeded(
                    f"Writing {size} bytes to '{key}' exceeds quota "
                    f"({used} of {self.quota_bytes} bytes used by other keys)"
                )
            conn.execute(
                """
                INSERT INTO kv_store(key, value, size_bytes, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    size_bytes=excluded.size_bytes,
                    updated_at=excluded.updated_at
                """,
                (key, encoded, size, _now_iso()),
            )

    def load(self, key: str) -> Optional[Any]:
        with self._db() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key=?", (key,)).fetchone()
        if row is None:
            return None
        return json.loads(row["value"])

    def delete(self, key: str) -> bool:
        with self._db() as conn:
            cur = conn.execute("DELETE FROM kv_store WHERE key=?", (key,))
        return cur.rowcount > 0

    def usage(self) -> int:
        with self._db() as conn:
            row = conn.execute("SELECT COALESCE(SUM(size_bytes), 0) AS used FROM kv_store").fetchone()
        return int(row["used"])
