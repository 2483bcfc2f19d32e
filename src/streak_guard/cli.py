"""CLI commands for streak-guard."""

from __future__ import annotations

import argparse
import logging
from datetime import datetime
from pathlib import Path

from streak_guard.config import get_is_pro, get_max_shields, load_config, set_max_shields, set_pro
from streak_guard.db import Database
from streak_guard.display import (
    console,
    print_config,
    print_evaluation_result,
    print_history,
    print_no_data_message,
    print_repair_result,
    print_show_up_result,
    print_status,
)
from streak_guard.repair import can_offer_repair
from streak_guard.streaks import StreakState, apply_repair, evaluate_on_foreground, record_show_up


def _parse_now(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"invalid ISO datetime: {value!r}") from err


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="streak-guard",
        description="Protect your daily streak with freezes and shields",
    )
    parser.add_argument("--now", type=_parse_now, default=None, help="Override the clock (ISO datetime)")
    parser.add_argument("--db", default=None, help="Path to the SQLite database")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log ledger decisions")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("status", help="Show streak and protection inventory")
    subparsers.add_parser("evaluate", help="Spend protection on missed days through yesterday")
    subparsers.add_parser("checkin", help="Record today's show-up")
    subparsers.add_parser("repair", help="Spend 2 shields to restore a broken streak")
    history_parser = subparsers.add_parser("history", help="Show recent protection events")
    history_parser.add_argument("--limit", "-n", type=int, default=20, help="Number of events to show")
    config_parser = subparsers.add_parser("config", help="Show or change settings")
    pro_group = config_parser.add_mutually_exclusive_group()
    pro_group.add_argument("--pro", dest="pro", action="store_true", default=None, help="Enable Pro")
    pro_group.add_argument("--no-pro", dest="pro", action="store_false", help="Disable Pro")
    config_parser.add_argument("--max-shields", type=int, default=None, help="Shield inventory cap")
    return parser


def main() -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args()
    command = args.command or "status"
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    db = Database(Path(args.db).expanduser() if args.db else None)

    try:
        if command == "status":
            do_status(db, now=args.now)
        elif command == "evaluate":
            do_evaluate(db, now=args.now)
        elif command == "checkin":
            do_checkin(db, now=args.now)
        elif command == "repair":
            do_repair(db, now=args.now)
        elif command == "history":
            do_history(db, limit=args.limit)
        elif command == "config":
            do_config(pro=args.pro, max_shields=args.max_shields)
    finally:
        db.close()


def build_status(state: StreakState, now: datetime, is_pro: bool, max_shields: int) -> dict:
    """Flatten a StreakState into the dict shown by status views."""
    inventory = state.inventory
    break_state = state.break_state
    return {
        "current_streak": state.current_streak,
        "current_covered_streak": state.current_covered_streak,
        "longest_streak": state.longest_streak,
        "last_show_up_date_key": state.last_show_up_date_key,
        "last_streak_date_key": state.last_streak_date_key,
        "free_freeze_available": inventory.free_freeze_available,
        "shields_available": inventory.shields_available,
        "max_shields": max_shields,
        "is_pro": is_pro,
        "last_evaluated_through_date_key": inventory.last_evaluated_through_date_key,
        "last_event": inventory.last_event.to_dict() if inventory.last_event else None,
        "broken_at_date_key": break_state.broken_at_date_key,
        "broken_streak_length": break_state.broken_streak_length,
        "eligible_repair_until_ms": break_state.eligible_repair_until_ms,
        "can_repair": can_offer_repair(
            now=now, is_pro=is_pro, inventory=inventory, break_state=break_state
        ),
    }


def do_status(db: Database, now: datetime | None = None, config_path: Path | None = None) -> dict:
    """Show the current streak, inventory and break state. Read-only."""
    now = now or datetime.now()
    is_pro = get_is_pro(config_path)
    max_shields = get_max_shields(config_path)
    state = db.load_state(max_shields)

    if state.last_show_up_date_key is None and not state.break_state.is_broken:
        print_no_data_message()
        return {"ok": False, "reason": "no_data"}

    data = build_status(state, now, is_pro, max_shields)
    print_status(data)
    return {"ok": True, **data}


def _evaluate(db: Database, now: datetime, is_pro: bool, max_shields: int) -> tuple[StreakState, dict]:
    state = db.load_state(max_shields)
    next_state, result = evaluate_on_foreground(state, now=now, is_pro=is_pro, max_shields=max_shields)
    summary = {
        "reason": result.reason,
        "used_free": result.used_free,
        "used_shields": result.used_shields,
        "covered_days": result.covered_days,
        "awarded_shields": result.awarded_shields,
        "broke": result.broke,
        "current_streak": next_state.current_streak,
        "broken_at_date_key": next_state.break_state.broken_at_date_key,
        "can_repair": can_offer_repair(
            now=now, is_pro=is_pro, inventory=next_state.inventory, break_state=next_state.break_state
        ),
    }
    return next_state, summary


def do_evaluate(db: Database, now: datetime | None = None, config_path: Path | None = None) -> dict:
    """Run the foreground evaluation and persist the result.

    Returns a dict with evaluation results (useful for testing).
    """
    now = now or datetime.now()
    is_pro = get_is_pro(config_path)
    max_shields = get_max_shields(config_path)

    next_state, summary = _evaluate(db, now, is_pro, max_shields)
    db.save_state(next_state)

    result = {"ok": True, **summary}
    print_evaluation_result(result)
    return result


def do_checkin(db: Database, now: datetime | None = None, config_path: Path | None = None) -> dict:
    """Settle missed days, then count today as a show-up. Saved as one write."""
    now = now or datetime.now()
    is_pro = get_is_pro(config_path)
    max_shields = get_max_shields(config_path)

    evaluated, summary = _evaluate(db, now, is_pro, max_shields)
    next_state, show_up = record_show_up(evaluated, now=now, is_pro=is_pro, max_shields=max_shields)
    db.save_state(next_state)

    if summary["covered_days"] > 0 or summary["broke"]:
        print_evaluation_result(summary)

    result = {
        "ok": True,
        "counted": show_up.counted,
        "current_streak": show_up.current_streak,
        "shield_awarded": show_up.shield_awarded,
        "cleared_break": show_up.cleared_break,
        "evaluation": summary,
    }
    print_show_up_result(result)
    return result


def do_repair(db: Database, now: datetime | None = None, config_path: Path | None = None) -> dict:
    """Spend shields to restore a broken streak while the repair window is open."""
    now = now or datetime.now()
    is_pro = get_is_pro(config_path)
    max_shields = get_max_shields(config_path)
    state = db.load_state(max_shields)

    next_state, repair = apply_repair(state, now=now, is_pro=is_pro)
    if repair.repaired:
        db.save_state(next_state)

    result = {
        "ok": repair.repaired,
        "repaired": repair.repaired,
        "reason": repair.reason,
        "restored_streak": repair.restored_streak,
        "shields_available": next_state.inventory.shields_available,
    }
    print_repair_result(result)
    return result


def do_history(db: Database, limit: int = 20) -> dict:
    """Show recent protection events."""
    events = [e.to_dict() for e in db.get_events(limit=limit)]
    print_history(events)
    return {"ok": True, "events": events, "count": len(events)}


def do_config(
    pro: bool | None = None, max_shields: int | None = None, config_path: Path | None = None
) -> dict:
    """Update settings when given, then show them."""
    if pro is not None:
        set_pro(pro, config_path)
    if max_shields is not None:
        if max_shields < 0:
            console.print("[red]--max-shields must be 0 or more[/]")
            return {"ok": False, "reason": "invalid_max_shields"}
        set_max_shields(max_shields, config_path)

    data = {
        "is_pro": get_is_pro(config_path),
        "max_shields": get_max_shields(config_path),
        "raw": load_config(config_path),
    }
    print_config(data)
    return {"ok": True, **data}
