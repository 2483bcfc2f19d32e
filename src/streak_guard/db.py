"""SQLite store for streak-guard state and the protection event log."""

import json
import logging
import sqlite3
from pathlib import Path

from streak_guard.protection import DEFAULT_MAX_SHIELDS, ProtectionEvent
from streak_guard.streaks import StreakState

_LOGGER = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".streak-guard" / "data.db"
STATE_KEY = "streak_state"


class Database:
    """SQLite database manager with WAL mode."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path or DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.init_db()

    def init_db(self) -> None:
        """Create tables if they do not exist."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS state (
                key TEXT PRIMARY KEY,
                value TEXT
            );

            CREATE TABLE IF NOT EXISTS protection_events (
                id TEXT PRIMARY KEY,
                type TEXT NOT NULL,
                at_ms INTEGER NOT NULL,
                covered_days INTEGER DEFAULT 0,
                used_free INTEGER DEFAULT 0,
                used_shields INTEGER DEFAULT 0
            );
        """)
        self.conn.commit()

    def get_value(self, key: str) -> str | None:
        """Get a raw state value by key."""
        row = self.conn.execute(
            "SELECT value FROM state WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def set_value(self, key: str, value: str) -> None:
        """Set a raw state value (upsert)."""
        self._upsert_value(key, value)
        self.conn.commit()

    def _upsert_value(self, key: str, value: str) -> None:
        self.conn.execute(
            "INSERT INTO state (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, str(value)),
        )

    def _insert_event(self, event: ProtectionEvent) -> None:
        self.conn.execute(
            "INSERT OR IGNORE INTO protection_events "
            "(id, type, at_ms, covered_days, used_free, used_shields) VALUES (?, ?, ?, ?, ?, ?)",
            (event.id, event.type.value, event.at_ms, event.covered_days, event.used_free, event.used_shields),
        )

    def load_state(self, max_shields: int = DEFAULT_MAX_SHIELDS) -> StreakState:
        """Load the streak state. Missing or corrupt data yields a fresh state."""
        raw = self.get_value(STATE_KEY)
        if raw is None:
            return StreakState()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            _LOGGER.warning("Stored streak state is not valid JSON, starting fresh")
            return StreakState()
        return StreakState.from_dict(data, max_shields=max_shields)

    def save_state(self, state: StreakState) -> None:
        """Persist the state and log its latest event in one transaction."""
        with self.conn:
            self._upsert_value(STATE_KEY, json.dumps(state.to_dict()))
            if state.inventory.last_event is not None:
                self._insert_event(state.inventory.last_event)

    def get_events(self, limit: int = 20) -> list[ProtectionEvent]:
        """Return the most recent protection events, newest first."""
        rows = self.conn.execute(
            "SELECT * FROM protection_events ORDER BY at_ms DESC, id LIMIT ?", (limit,)
        ).fetchall()
        events = [ProtectionEvent.from_dict(dict(row)) for row in rows]
        return [e for e in events if e is not None]

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()
