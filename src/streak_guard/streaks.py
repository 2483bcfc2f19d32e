"""Streak state and the host-side transitions that drive the protection ledger.

Each transition takes the whole persisted StreakState and returns a new one, so
the caller can save it in a single write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from streak_guard.dates import diff_local_days, local_date_key, parse_local_date_key
from streak_guard.protection import (
    DEFAULT_MAX_SHIELDS,
    BreakState,
    EvaluationResult,
    ProtectionInventory,
    as_count,
    default_break_state,
    evaluate_missed_days_through_yesterday,
    maybe_award_weekly_shield,
)
from streak_guard.repair import RepairResult, repair_streak

_LOGGER = logging.getLogger(__name__)


@dataclass
class StreakState:
    last_show_up_date_key: str | None = None  # YYYY-MM-DD
    last_streak_date_key: str | None = None  # last covered day, show-up or protected
    current_streak: int = 0
    current_covered_streak: int = 0
    longest_streak: int = 0
    inventory: ProtectionInventory = field(default_factory=ProtectionInventory)
    break_state: BreakState = field(default_factory=BreakState)

    def to_dict(self) -> dict:
        return {
            "last_show_up_date_key": self.last_show_up_date_key,
            "last_streak_date_key": self.last_streak_date_key,
            "current_streak": self.current_streak,
            "current_covered_streak": self.current_covered_streak,
            "longest_streak": self.longest_streak,
            "inventory": self.inventory.to_dict(),
            "break_state": self.break_state.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any, max_shields: int = DEFAULT_MAX_SHIELDS) -> StreakState:
        if not isinstance(data, dict):
            return cls()

        def day_key(name: str) -> str | None:
            value = data.get(name)
            return value if parse_local_date_key(value) is not None else None

        current = as_count(data.get("current_streak"))
        return cls(
            last_show_up_date_key=day_key("last_show_up_date_key"),
            last_streak_date_key=day_key("last_streak_date_key"),
            current_streak=current,
            current_covered_streak=as_count(data.get("current_covered_streak")),
            longest_streak=max(current, as_count(data.get("longest_streak"))),
            inventory=ProtectionInventory.from_dict(data.get("inventory"), max_shields=max_shields),
            break_state=BreakState.from_dict(data.get("break_state")),
        )


@dataclass
class ShowUpResult:
    counted: bool
    current_streak: int
    shield_awarded: bool = False
    cleared_break: bool = False


def evaluate_on_foreground(
    state: StreakState,
    *,
    now: datetime,
    is_pro: bool,
    max_shields: int = DEFAULT_MAX_SHIELDS,
) -> tuple[StreakState, EvaluationResult]:
    """Run missed-day evaluation and fold the result back into the state."""
    result = evaluate_missed_days_through_yesterday(
        now=now,
        is_pro=is_pro,
        last_streak_date_key=state.last_streak_date_key,
        last_show_up_date_key=state.last_show_up_date_key,
        current_streak=state.current_streak,
        current_covered_streak=state.current_covered_streak,
        inventory=state.inventory,
        break_state=state.break_state,
        max_shields=max_shields,
    )
    _LOGGER.debug("Foreground evaluation finished: %s", result.reason)
    next_state = replace(
        state,
        last_streak_date_key=result.last_streak_date_key,
        current_streak=result.current_streak,
        current_covered_streak=result.current_covered_streak,
        inventory=result.inventory,
        break_state=result.break_state,
    )
    return next_state, result


def record_show_up(
    state: StreakState,
    *,
    now: datetime,
    is_pro: bool,
    max_shields: int = DEFAULT_MAX_SHIELDS,
) -> tuple[StreakState, ShowUpResult]:
    """Count today as a show-up.

    Rules:
    - Already counted today: nothing changes
    - Last covered day was yesterday: both streak counters grow by one
    - Anything else (gap, broken streak, no history): counters restart at 1
    - A show-up clears any pending break, including an unused repair offer

    Hosts should run evaluate_on_foreground first so missed days are settled
    before today's show-up lands.
    """
    today_key = local_date_key(now)
    if state.last_show_up_date_key == today_key:
        return state, ShowUpResult(counted=False, current_streak=state.current_streak)

    last_covered = state.last_streak_date_key or state.last_show_up_date_key
    gap = diff_local_days(last_covered, today_key)
    if state.break_state.is_broken or gap is None or gap < 0 or gap > 1:
        current, covered = 1, 1
    elif gap == 1:
        current, covered = state.current_streak + 1, state.current_covered_streak + 1
    else:
        current, covered = max(1, state.current_streak), max(1, state.current_covered_streak)

    award = maybe_award_weekly_shield(
        now=now,
        is_pro=is_pro,
        inventory=state.inventory,
        covered_streak=covered,
        streak_is_broken=False,
        max_shields=max_shields,
    )
    cleared = state.break_state.is_broken
    if cleared:
        _LOGGER.info("Show-up on %s cleared break from %s", today_key, state.break_state.broken_at_date_key)

    next_state = replace(
        state,
        last_show_up_date_key=today_key,
        last_streak_date_key=today_key,
        current_streak=current,
        current_covered_streak=covered,
        longest_streak=max(state.longest_streak, current),
        inventory=award.inventory,
        break_state=default_break_state() if cleared else state.break_state,
    )
    return next_state, ShowUpResult(
        counted=True,
        current_streak=current,
        shield_awarded=award.awarded,
        cleared_break=cleared,
    )


def apply_repair(state: StreakState, *, now: datetime, is_pro: bool) -> tuple[StreakState, RepairResult]:
    """Repair a broken streak and restore its pre-break length."""
    result = repair_streak(
        now=now,
        is_pro=is_pro,
        inventory=state.inventory,
        break_state=state.break_state,
    )
    if not result.repaired:
        return state, result
    next_state = replace(
        state,
        last_streak_date_key=result.last_streak_date_key,
        current_streak=result.restored_streak,
        current_covered_streak=result.restored_covered_streak,
        longest_streak=max(state.longest_streak, result.restored_streak),
        inventory=result.inventory,
        break_state=result.break_state,
    )
    return next_state, result
