"""MCP server for streak-guard.

Exposes streak status, evaluation and repair as MCP tools.
Run via: python3 -m streak_guard.mcp_server
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from mcp.server.fastmcp import FastMCP

mcp = FastMCP(name="streak-guard")


def _get_db():
    from streak_guard.db import Database
    return Database()


def _settings() -> tuple[bool, int]:
    from streak_guard.config import get_is_pro, get_max_shields
    return get_is_pro(), get_max_shields()


@mcp.tool()
def get_streak_status() -> dict[str, Any]:
    """Get current streak, free freeze, shields, and any pending repair offer."""
    from streak_guard.cli import build_status
    is_pro, max_shields = _settings()
    db = _get_db()
    try:
        state = db.load_state(max_shields)
        if state.last_show_up_date_key is None and not state.break_state.is_broken:
            return {"error": "No streak yet. Run streak-guard checkin first."}
        return build_status(state, datetime.now(), is_pro, max_shields)
    finally:
        db.close()


@mcp.tool()
def evaluate_streak() -> dict[str, Any]:
    """Spend protection on missed days through yesterday and report what happened."""
    from streak_guard.streaks import evaluate_on_foreground
    is_pro, max_shields = _settings()
    db = _get_db()
    try:
        state = db.load_state(max_shields)
        next_state, result = evaluate_on_foreground(
            state, now=datetime.now(), is_pro=is_pro, max_shields=max_shields,
        )
        db.save_state(next_state)
        return {
            "reason": result.reason,
            "broke": result.broke,
            "covered_days": result.covered_days,
            "used_free": result.used_free,
            "used_shields": result.used_shields,
            "awarded_shields": result.awarded_shields,
            "current_streak": next_state.current_streak,
            "broken_at_date_key": next_state.break_state.broken_at_date_key,
        }
    finally:
        db.close()


@mcp.tool()
def repair_streak() -> dict[str, Any]:
    """Spend 2 shields to restore a broken streak while the repair window is open."""
    from streak_guard.streaks import apply_repair
    is_pro, max_shields = _settings()
    db = _get_db()
    try:
        state = db.load_state(max_shields)
        next_state, result = apply_repair(state, now=datetime.now(), is_pro=is_pro)
        if not result.repaired:
            return {"repaired": False, "reason": result.reason}
        db.save_state(next_state)
        return {
            "repaired": True,
            "restored_streak": result.restored_streak,
            "shields_available": next_state.inventory.shields_available,
        }
    finally:
        db.close()


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
