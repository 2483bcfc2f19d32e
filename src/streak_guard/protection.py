"""Streak protection ledger: free freezes, Pro shields, and missed-day evaluation.

Everything here is a pure transformation. The host owns persistence and must
apply an evaluation result as a single state transition.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from streak_guard.dates import (
    add_local_days_key,
    diff_local_days,
    epoch_ms,
    get_iso_week_key,
    local_date_key,
    parse_local_date_key,
)

_LOGGER = logging.getLogger(__name__)

REPAIR_WINDOW_MS = 48 * 60 * 60 * 1000
REPAIR_SHIELD_COST = 2
DEFAULT_MAX_SHIELDS = 3
SHIELD_EARN_INTERVAL_DAYS = 7

# Evaluation exits
REASON_INVALID_NOW = "invalid_now"
REASON_ALREADY_EVALUATED = "already_evaluated"
REASON_ALREADY_BROKEN = "already_broken"
REASON_NO_HISTORY = "no_history"
REASON_NO_GAP = "no_gap"
REASON_COVERED = "covered"
REASON_BROKE = "broke"


def as_count(value: Any, default: int = 0) -> int:
    """Coerce a persisted number to a non-negative int."""
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default


def _as_key(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _as_ms(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


class ProtectionEventType(str, Enum):
    FREEZE_USED = "freeze_used"
    STREAK_REPAIRED = "streak_repaired"


@dataclass(frozen=True)
class ProtectionEvent:
    id: str
    type: ProtectionEventType
    at_ms: int
    covered_days: int
    used_free: int
    used_shields: int

    @classmethod
    def create(
        cls,
        event_type: ProtectionEventType,
        at_ms: int,
        covered_days: int = 0,
        used_free: int = 0,
        used_shields: int = 0,
    ) -> ProtectionEvent:
        """Build an event whose id is a hash of its content."""
        payload = f"{event_type.value}:{at_ms}:{covered_days}:{used_free}:{used_shields}"
        digest = hashlib.sha1(payload.encode("utf-8")).hexdigest()[:12]
        return cls(
            id=f"{event_type.value}-{digest}",
            type=event_type,
            at_ms=at_ms,
            covered_days=covered_days,
            used_free=used_free,
            used_shields=used_shields,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "at_ms": self.at_ms,
            "covered_days": self.covered_days,
            "used_free": self.used_free,
            "used_shields": self.used_shields,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ProtectionEvent | None:
        """Rebuild an event; returns None for anything unrecognisable."""
        if not isinstance(data, dict):
            return None
        try:
            event_type = ProtectionEventType(data.get("type"))
        except ValueError:
            return None
        event_id = _as_key(data.get("id"))
        at_ms = _as_ms(data.get("at_ms"))
        if event_id is None or at_ms is None:
            return None
        return cls(
            id=event_id,
            type=event_type,
            at_ms=at_ms,
            covered_days=as_count(data.get("covered_days")),
            used_free=as_count(data.get("used_free")),
            used_shields=as_count(data.get("used_shields")),
        )


@dataclass
class ProtectionInventory:
    free_freeze_available: int = 1  # 0 or 1
    shields_available: int = 0  # Pro only, capped at max_shields
    last_free_refill_week_key: str | None = None  # YYYY-Www
    last_shield_earned_week_key: str | None = None  # YYYY-Www
    last_evaluated_through_date_key: str | None = None  # YYYY-MM-DD
    last_event: ProtectionEvent | None = None

    def to_dict(self) -> dict:
        return {
            "free_freeze_available": self.free_freeze_available,
            "shields_available": self.shields_available,
            "last_free_refill_week_key": self.last_free_refill_week_key,
            "last_shield_earned_week_key": self.last_shield_earned_week_key,
            "last_evaluated_through_date_key": self.last_evaluated_through_date_key,
            "last_event": self.last_event.to_dict() if self.last_event else None,
        }

    @classmethod
    def from_dict(cls, data: Any, max_shields: int = DEFAULT_MAX_SHIELDS) -> ProtectionInventory:
        """Load an inventory, clamping counts into range and dropping bad fields."""
        if not isinstance(data, dict):
            return default_inventory()
        return cls(
            free_freeze_available=1 if as_count(data.get("free_freeze_available"), default=1) else 0,
            shields_available=min(as_count(data.get("shields_available")), max(0, max_shields)),
            last_free_refill_week_key=_as_key(data.get("last_free_refill_week_key")),
            last_shield_earned_week_key=_as_key(data.get("last_shield_earned_week_key")),
            last_evaluated_through_date_key=_as_key(data.get("last_evaluated_through_date_key")),
            last_event=ProtectionEvent.from_dict(data.get("last_event")),
        )


@dataclass
class BreakState:
    broken_at_date_key: str | None = None
    broken_streak_length: int | None = None
    broken_covered_streak: int | None = None  # covered length before the break
    eligible_repair_until_ms: int | None = None
    repaired_at_ms: int | None = None

    @property
    def is_broken(self) -> bool:
        return self.broken_at_date_key is not None

    def to_dict(self) -> dict:
        return {
            "broken_at_date_key": self.broken_at_date_key,
            "broken_streak_length": self.broken_streak_length,
            "broken_covered_streak": self.broken_covered_streak,
            "eligible_repair_until_ms": self.eligible_repair_until_ms,
            "repaired_at_ms": self.repaired_at_ms,
        }

    @classmethod
    def from_dict(cls, data: Any) -> BreakState:
        """Load a break state.

        A break with an unparseable date key is dropped; a break with no deadline
        keeps the break but treats its repair window as already closed.
        """
        if not isinstance(data, dict):
            return default_break_state()
        repaired_at_ms = _as_ms(data.get("repaired_at_ms"))
        broken_at = _as_key(data.get("broken_at_date_key"))
        if broken_at is None or parse_local_date_key(broken_at) is None:
            return cls(repaired_at_ms=repaired_at_ms)
        deadline = _as_ms(data.get("eligible_repair_until_ms"))
        covered = data.get("broken_covered_streak")
        return cls(
            broken_at_date_key=broken_at,
            broken_streak_length=as_count(data.get("broken_streak_length")),
            broken_covered_streak=as_count(covered) if covered is not None else None,
            eligible_repair_until_ms=deadline if deadline is not None else 0,
            repaired_at_ms=repaired_at_ms,
        )


def default_inventory() -> ProtectionInventory:
    return ProtectionInventory()


def default_break_state() -> BreakState:
    return BreakState()


def apply_weekly_free_refill(inventory: ProtectionInventory, now: datetime) -> ProtectionInventory:
    """Refill the free freeze slot once per ISO week.

    Returns the same inventory object when it was already refilled this week.
    """
    current_week_key = get_iso_week_key(now)
    if inventory.last_free_refill_week_key == current_week_key:
        return inventory
    _LOGGER.debug("Refilling free freeze for week %s", current_week_key)
    return replace(inventory, free_freeze_available=1, last_free_refill_week_key=current_week_key)


@dataclass
class ShieldAward:
    inventory: ProtectionInventory
    awarded: bool


def maybe_award_weekly_shield(
    *,
    now: datetime,
    is_pro: bool,
    inventory: ProtectionInventory,
    covered_streak: int,
    streak_is_broken: bool,
    max_shields: int = DEFAULT_MAX_SHIELDS,
) -> ShieldAward:
    """Award one shield on every 7th covered day, at most once per ISO week.

    covered_streak is the covered length *after* the day being evaluated, so
    freeze- and shield-covered days count towards the next award.
    """
    if max_shields < 0:
        raise ValueError(f"max_shields must be >= 0, got {max_shields}")
    unchanged = ShieldAward(inventory=inventory, awarded=False)
    if not is_pro or streak_is_broken:
        return unchanged
    covered = as_count(covered_streak)
    if covered <= 0 or covered % SHIELD_EARN_INTERVAL_DAYS != 0:
        return unchanged
    current_week_key = get_iso_week_key(now)
    if inventory.last_shield_earned_week_key == current_week_key:
        return unchanged
    current_shields = as_count(inventory.shields_available)
    if current_shields >= max_shields:
        return unchanged

    _LOGGER.debug("Awarding shield at covered streak %d (week %s)", covered, current_week_key)
    return ShieldAward(
        inventory=replace(
            inventory,
            shields_available=min(max_shields, current_shields + 1),
            last_shield_earned_week_key=current_week_key,
        ),
        awarded=True,
    )


@dataclass
class EvaluationResult:
    last_streak_date_key: str | None
    current_streak: int
    current_covered_streak: int
    inventory: ProtectionInventory
    break_state: BreakState
    used_free: int = 0
    used_shields: int = 0
    covered_days: int = 0
    awarded_shields: int = 0
    broke: bool = False
    reason: str = REASON_NO_GAP


def _freeze_event(now: datetime, covered_days: int, used_free: int, used_shields: int) -> ProtectionEvent:
    return ProtectionEvent.create(
        ProtectionEventType.FREEZE_USED,
        at_ms=epoch_ms(now),
        covered_days=covered_days,
        used_free=used_free,
        used_shields=used_shields,
    )


def evaluate_missed_days_through_yesterday(
    *,
    now: datetime,
    is_pro: bool,
    last_streak_date_key: str | None,
    last_show_up_date_key: str | None,
    current_streak: int,
    current_covered_streak: int,
    inventory: ProtectionInventory,
    break_state: BreakState,
    max_shields: int = DEFAULT_MAX_SHIELDS,
) -> EvaluationResult:
    """Spend protection on every missed day from the last covered day through yesterday.

    Protection is spent because a day was missed, not because the user came
    back. Each missed day takes exactly one token, the free freeze first and
    then (Pro only) shields; the first day with nothing left breaks the streak
    and evaluation stops there.

    The evaluation marker makes repeated calls for the same "yesterday" a
    no-op, so foregrounding the app several times a day never double-spends.
    """
    if not isinstance(now, datetime):
        raise TypeError(f"now must be a datetime, got {type(now).__name__}")
    covered_streak = as_count(current_covered_streak)

    def unchanged(inv: ProtectionInventory, reason: str, last_streak: str | None = last_streak_date_key) -> EvaluationResult:
        return EvaluationResult(
            last_streak_date_key=last_streak,
            current_streak=current_streak,
            current_covered_streak=covered_streak,
            inventory=inv,
            break_state=break_state,
            reason=reason,
        )

    yesterday_key = add_local_days_key(local_date_key(now), -1)
    if yesterday_key is None:
        return unchanged(inventory, REASON_INVALID_NOW)

    inventory = apply_weekly_free_refill(inventory, now)

    marker_lag = diff_local_days(inventory.last_evaluated_through_date_key, yesterday_key)
    if marker_lag is not None and marker_lag <= 0:
        # Never move the marker backwards, e.g. after a clock change.
        return unchanged(inventory, REASON_ALREADY_EVALUATED)

    marked = replace(inventory, last_evaluated_through_date_key=yesterday_key)

    if break_state.broken_at_date_key:
        return unchanged(marked, REASON_ALREADY_BROKEN)

    last_covered = last_streak_date_key or last_show_up_date_key
    if not last_covered:
        return unchanged(marked, REASON_NO_HISTORY)

    gap = diff_local_days(last_covered, yesterday_key)
    if gap is None or gap <= 0:
        return unchanged(marked, REASON_NO_GAP, last_streak=last_streak_date_key or last_covered)

    _LOGGER.debug("Evaluating %d missed day(s) after %s", gap, last_covered)
    working = inventory
    last_streak = last_streak_date_key or last_covered
    used_free = used_shields = covered_days = awarded_shields = 0

    for step in range(1, gap + 1):
        day_key = add_local_days_key(last_covered, step)
        if day_key is None:
            continue

        if working.free_freeze_available == 1:
            working = replace(working, free_freeze_available=0)
            used_free += 1
        elif is_pro and working.shields_available > 0:
            working = replace(working, shields_available=working.shields_available - 1)
            used_shields += 1
        else:
            _LOGGER.info(
                "Streak of %d broke on %s after %d protected day(s)",
                current_streak, day_key, covered_days,
            )
            return EvaluationResult(
                last_streak_date_key=None,
                current_streak=0,
                current_covered_streak=0,
                inventory=replace(
                    working,
                    last_evaluated_through_date_key=yesterday_key,
                    last_event=(
                        _freeze_event(now, covered_days, used_free, used_shields)
                        if covered_days > 0
                        else working.last_event
                    ),
                ),
                break_state=BreakState(
                    broken_at_date_key=day_key,
                    broken_streak_length=as_count(current_streak),
                    broken_covered_streak=covered_streak,
                    eligible_repair_until_ms=epoch_ms(now) + REPAIR_WINDOW_MS,
                    repaired_at_ms=None,
                ),
                used_free=used_free,
                used_shields=used_shields,
                covered_days=covered_days,
                awarded_shields=awarded_shields,
                broke=True,
                reason=REASON_BROKE,
            )

        covered_days += 1
        covered_streak += 1
        last_streak = day_key
        award = maybe_award_weekly_shield(
            now=now,
            is_pro=is_pro,
            inventory=working,
            covered_streak=covered_streak,
            streak_is_broken=False,
            max_shields=max_shields,
        )
        working = award.inventory
        if award.awarded:
            awarded_shields += 1

    return EvaluationResult(
        last_streak_date_key=last_streak,
        current_streak=current_streak,
        current_covered_streak=covered_streak,
        inventory=replace(
            working,
            last_evaluated_through_date_key=yesterday_key,
            last_event=(
                _freeze_event(now, covered_days, used_free, used_shields)
                if covered_days > 0
                else working.last_event
            ),
        ),
        break_state=break_state,
        used_free=used_free,
        used_shields=used_shields,
        covered_days=covered_days,
        awarded_shields=awarded_shields,
        broke=False,
        reason=REASON_COVERED,
    )
