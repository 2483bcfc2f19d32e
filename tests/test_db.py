"""Tests for the SQLite store."""

from dataclasses import replace

import pytest

from streak_guard.db import STATE_KEY, Database
from streak_guard.protection import ProtectionEvent, ProtectionEventType, default_inventory
from streak_guard.streaks import StreakState


@pytest.fixture
def db(tmp_path):
    """Create a temporary database for testing."""
    db_path = tmp_path / "test.db"
    database = Database(db_path=db_path)
    yield database
    database.close()


def _event(at_ms: int, covered_days: int = 1) -> ProtectionEvent:
    return ProtectionEvent.create(
        ProtectionEventType.FREEZE_USED, at_ms=at_ms, covered_days=covered_days, used_free=1,
    )


class TestDatabaseCreation:
    def test_creates_db_file(self, tmp_path):
        db_path = tmp_path / "sub" / "test.db"
        database = Database(db_path=db_path)
        assert db_path.exists()
        database.close()

    def test_tables_exist(self, db):
        cursor = db.conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        tables = sorted(row["name"] for row in cursor.fetchall())
        assert "state" in tables
        assert "protection_events" in tables

    def test_wal_mode_enabled(self, db):
        result = db.conn.execute("PRAGMA journal_mode").fetchone()
        assert result[0] == "wal"


class TestValues:
    def test_get_nonexistent_key(self, db):
        assert db.get_value("nonexistent") is None

    def test_upsert_overwrites(self, db):
        db.set_value("k", "1")
        db.set_value("k", "2")
        assert db.get_value("k") == "2"


class TestState:
    def test_empty_db_loads_fresh_state(self, db):
        assert db.load_state() == StreakState()

    def test_save_and_load(self, db):
        state = StreakState(
            last_show_up_date_key="2026-01-04",
            last_streak_date_key="2026-01-04",
            current_streak=5,
            current_covered_streak=6,
            longest_streak=9,
            inventory=replace(default_inventory(), shields_available=2, last_free_refill_week_key="2026-W01"),
        )
        db.save_state(state)
        assert db.load_state() == state

    def test_corrupt_json_loads_fresh_state(self, db):
        db.set_value(STATE_KEY, "{not json")
        assert db.load_state() == StreakState()

    def test_load_clamps_to_max_shields(self, db):
        db.save_state(StreakState(inventory=replace(default_inventory(), shields_available=3)))
        assert db.load_state(max_shields=1).inventory.shields_available == 1

    def test_state_survives_reopen(self, tmp_path):
        path = tmp_path / "data.db"
        first = Database(db_path=path)
        first.save_state(StreakState(current_streak=4, longest_streak=4))
        first.close()
        second = Database(db_path=path)
        assert second.load_state().current_streak == 4
        second.close()


class TestEvents:
    def test_save_logs_last_event(self, db):
        event = _event(1000)
        db.save_state(StreakState(inventory=replace(default_inventory(), last_event=event)))
        assert db.get_events() == [event]

    def test_same_event_logged_once(self, db):
        state = StreakState(inventory=replace(default_inventory(), last_event=_event(1000)))
        db.save_state(state)
        db.save_state(state)
        assert len(db.get_events()) == 1

    def test_newest_first_with_limit(self, db):
        for at_ms in (1000, 3000, 2000):
            db.save_state(StreakState(inventory=replace(default_inventory(), last_event=_event(at_ms))))
        events = db.get_events(limit=2)
        assert [e.at_ms for e in events] == [3000, 2000]

    def test_no_event_no_log(self, db):
        db.save_state(StreakState())
        assert db.get_events() == []
