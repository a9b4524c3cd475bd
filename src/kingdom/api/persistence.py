"""
SQLite-backed save slots for kingdoms.

Each kingdom is one row: metadata columns for fast listing, the GameConfig
as JSON, and the latest snapshot as a zlib-compressed JSON blob.

Persistence failures are logged as warnings and never crash the app;
the host degrades to in-memory-only operation.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import zlib
from datetime import datetime, timezone
from typing import Any

from kingdom.core.config import GameConfig

logger = logging.getLogger(__name__)


def compress_state(state: dict[str, Any]) -> bytes:
    """Serialize a snapshot dict to zlib-compressed JSON bytes."""
    json_bytes = json.dumps(state).encode("utf-8")
    return zlib.compress(json_bytes, level=6)


def decompress_state(blob: bytes | None) -> dict[str, Any] | None:
    """Decompress and parse a snapshot blob; None if it is unreadable."""
    if not blob:
        return None
    try:
        return json.loads(zlib.decompress(blob).decode("utf-8"))
    except (zlib.error, UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("Discarding unreadable save blob", exc_info=True)
        return None


_SCHEMA = """
CREATE TABLE IF NOT EXISTS kingdoms (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    preset TEXT NOT NULL DEFAULT 'default',
    saved_at INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    config_json TEXT NOT NULL,
    state_blob BLOB
);
"""


class SaveStore:
    """SQLite-backed storage for kingdom saves.

    Uses ``check_same_thread=False`` so FastAPI's thread pool can share
    the connection; writes are serialized by SQLite's internal locking.
    """

    def __init__(self, db_path: str = "data/kingdom.db"):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._init_db()

    def _init_db(self) -> None:
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error:
            logger.warning(
                "Failed to open SQLite database at %s, saves stay in memory",
                self.db_path,
                exc_info=True,
            )
            self._conn = None

    @property
    def available(self) -> bool:
        return self._conn is not None

    # ---- Write operations ----

    def save_kingdom(
        self,
        kingdom_id: str,
        name: str,
        config: GameConfig,
        snapshot: dict[str, Any],
    ) -> bool:
        """Insert or replace a kingdom's save. Returns False on failure."""
        if not self.available:
            return False
        now = datetime.now(timezone.utc).isoformat()
        try:
            self._conn.execute(  # type: ignore[union-attr]
                """
                INSERT INTO kingdoms
                    (id, name, preset, saved_at, created_at, updated_at,
                     config_json, state_blob)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    preset = excluded.preset,
                    saved_at = excluded.saved_at,
                    updated_at = excluded.updated_at,
                    config_json = excluded.config_json,
                    state_blob = excluded.state_blob
                """,
                (
                    kingdom_id, name, config.preset_name,
                    int(snapshot.get("timestamp", 0)),
                    now, now,
                    config.to_json(),
                    compress_state(snapshot),
                ),
            )
            self._conn.commit()  # type: ignore[union-attr]
            return True
        except (sqlite3.Error, TypeError, ValueError):
            logger.warning("Failed to save kingdom %s", kingdom_id, exc_info=True)
            return False

    def delete_kingdom(self, kingdom_id: str) -> None:
        if not self.available:
            return
        try:
            self._conn.execute(  # type: ignore[union-attr]
                "DELETE FROM kingdoms WHERE id = ?", (kingdom_id,),
            )
            self._conn.commit()  # type: ignore[union-attr]
        except sqlite3.Error:
            logger.warning("Failed to delete kingdom %s", kingdom_id, exc_info=True)

    # ---- Read operations ----

    def list_kingdoms(self) -> list[dict[str, Any]]:
        """Return metadata for all saved kingdoms (no state blob)."""
        if not self.available:
            return []
        try:
            cur = self._conn.execute(  # type: ignore[union-attr]
                """
                SELECT id, name, preset, saved_at, created_at, updated_at
                FROM kingdoms
                ORDER BY created_at DESC
                """,
            )
            return [
                {
                    "id": r[0],
                    "name": r[1],
                    "preset": r[2],
                    "saved_at": r[3],
                    "created_at": r[4],
                    "updated_at": r[5],
                }
                for r in cur.fetchall()
            ]
        except sqlite3.Error:
            logger.warning("Failed to list kingdoms", exc_info=True)
            return []

    def load_kingdom(self, kingdom_id: str) -> dict[str, Any] | None:
        """Load a kingdom record with its parsed config and snapshot.

        Returns ``None`` if not found or on error. ``snapshot`` is None when
        the blob is unreadable; the caller then starts the kingdom fresh.
        """
        if not self.available:
            return None
        try:
            cur = self._conn.execute(  # type: ignore[union-attr]
                "SELECT id, name, config_json, state_blob FROM kingdoms WHERE id = ?",
                (kingdom_id,),
            )
            row = cur.fetchone()
        except sqlite3.Error:
            logger.warning("Failed to load kingdom %s", kingdom_id, exc_info=True)
            return None
        if row is None:
            return None
        try:
            config = GameConfig.from_json(row[2])
        except (json.JSONDecodeError, TypeError):
            logger.warning("Kingdom %s has an unreadable config, using defaults",
                           kingdom_id, exc_info=True)
            config = GameConfig()
        return {
            "id": row[0],
            "name": row[1],
            "config": config,
            "snapshot": decompress_state(row[3]),
        }

    def has_kingdom(self, kingdom_id: str) -> bool:
        if not self.available:
            return False
        try:
            cur = self._conn.execute(  # type: ignore[union-attr]
                "SELECT 1 FROM kingdoms WHERE id = ?", (kingdom_id,),
            )
            return cur.fetchone() is not None
        except sqlite3.Error:
            return False

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
