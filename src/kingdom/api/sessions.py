"""
Session manager for kingdoms with SQLite persistence.

Each session wraps one KingdomGame. Every command first advances the game
to the request time, applies the command, and then saves the snapshot.
On startup only metadata is loaded; a kingdom is restored lazily, with
offline catch-up, on first access.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from kingdom.core.config import GameConfig
from kingdom.core.game import KingdomGame
from kingdom.core.presets import get_preset

logger = logging.getLogger(__name__)

T = TypeVar("T")


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class KingdomSession:
    """A kingdom held in memory."""

    id: str
    name: str
    game: KingdomGame

    @property
    def config(self) -> GameConfig:
        return self.game.config


class KingdomSessionManager:
    """Manages kingdoms with optional SQLite persistence.

    Parameters
    ----------
    db_path : str | None
        Path to the SQLite database file. ``None`` disables persistence
        (pure in-memory mode).
    clock : callable | None
        Millisecond clock used when a request carries no ``now``.
    offline_threshold_ms : int
        Gaps longer than this are skipped with offline replay rather than
        ticked through.
    """

    def __init__(self, db_path: str | None = "data/kingdom.db",
                 clock: Callable[[], int] | None = None,
                 offline_threshold_ms: int = 5 * 60 * 1000):
        self.sessions: dict[str, KingdomSession] = {}
        # Kingdoms saved in the database but not yet loaded into memory
        self._index: dict[str, dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._clock = clock or wall_clock_ms
        self.offline_threshold_ms = offline_threshold_ms

        self._store = None
        if db_path is not None:
            from kingdom.api.persistence import SaveStore
            self._store = SaveStore(db_path)
            self._load_index()

    def _load_index(self) -> None:
        if self._store is None or not self._store.available:
            return
        for row in self._store.list_kingdoms():
            if row["id"] not in self.sessions:
                self._index[row["id"]] = row

    def resolve_now(self, now: int | None) -> int:
        return self._clock() if now is None else int(now)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def _persist(self, session: KingdomSession) -> None:
        """Save a kingdom to the database (best-effort)."""
        if self._store is None or not self._store.available:
            return
        snapshot = session.game.snapshot(session.game.clock)
        if self._store.save_kingdom(session.id, session.name, session.config, snapshot):
            self._index.pop(session.id, None)

    def _bring_to(self, game: KingdomGame, now: int) -> None:
        if now - game.clock > self.offline_threshold_ms:
            game.catch_up(now)
        game.advance(now)

    def _load_from_db(self, kingdom_id: str, now: int) -> KingdomSession | None:
        if self._store is None or not self._store.available:
            return None
        record = self._store.load_kingdom(kingdom_id)
        if record is None:
            return None
        game = KingdomGame.load(record["snapshot"], now, config=record["config"])
        session = KingdomSession(id=record["id"], name=record["name"], game=game)
        logger.info("Restored kingdom %s", kingdom_id)
        return session

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def create_kingdom(
        self,
        name: str | None = None,
        preset: str | None = None,
        config: dict[str, Any] | None = None,
        now: int | None = None,
    ) -> KingdomSession:
        """Start a new kingdom from a preset, optionally overridden.

        Raises KeyError for an unknown preset and TypeError for unknown
        config keys.
        """
        base = get_preset(preset or "default")
        if config:
            base = GameConfig.from_dict({**base.to_dict(), **config})
        now = self.resolve_now(now)
        kingdom_id = uuid.uuid4().hex[:12]
        session = KingdomSession(
            id=kingdom_id,
            name=name or f"Kingdom {kingdom_id[:6]}",
            game=KingdomGame(config=base, now=now),
        )
        with self._lock:
            self.sessions[kingdom_id] = session
            self._persist(session)
        return session

    def get_kingdom(self, kingdom_id: str, now: int | None = None) -> KingdomSession:
        """Return the kingdom, loading it if needed. Raises KeyError."""
        with self._lock:
            session = self.sessions.get(kingdom_id)
            if session is not None:
                return session
            session = self._load_from_db(kingdom_id, self.resolve_now(now))
            if session is None:
                raise KeyError(kingdom_id)
            self.sessions[kingdom_id] = session
            self._index.pop(kingdom_id, None)
            return session

    def list_kingdoms(self) -> list[dict[str, Any]]:
        with self._lock:
            rows = [
                {
                    "id": s.id,
                    "name": s.name,
                    "preset": s.config.preset_name,
                    "saved_at": s.game.clock,
                }
                for s in self.sessions.values()
            ]
            for row in self._index.values():
                rows.append({k: row[k] for k in ("id", "name", "preset", "saved_at")})
            return rows

    def delete_kingdom(self, kingdom_id: str) -> None:
        with self._lock:
            in_memory = self.sessions.pop(kingdom_id, None) is not None
            indexed = self._index.pop(kingdom_id, None) is not None
            if not in_memory and not indexed:
                raise KeyError(kingdom_id)
            if self._store is not None:
                self._store.delete_kingdom(kingdom_id)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def execute(
        self,
        kingdom_id: str,
        command: Callable[[KingdomGame, int], T],
        now: int | None = None,
    ) -> T:
        """Advance the kingdom to ``now``, run ``command`` and save.

        Raises KeyError if the kingdom does not exist.
        """
        now = self.resolve_now(now)
        with self._lock:
            session = self.get_kingdom(kingdom_id, now)
            self._bring_to(session.game, now)
            result = command(session.game, now)
            self._persist(session)
            return result

    def query(
        self,
        kingdom_id: str,
        query: Callable[[KingdomGame, int], T],
        now: int | None = None,
    ) -> T:
        """Advance the kingdom to ``now`` and read from it without saving."""
        now = self.resolve_now(now)
        with self._lock:
            session = self.get_kingdom(kingdom_id, now)
            self._bring_to(session.game, now)
            return query(session.game, now)
