"""Streak repair: spend shields to restore a broken streak inside the repair window."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from streak_guard.dates import add_local_days_key, diff_local_days, epoch_ms, local_date_key
from streak_guard.protection import (
    REPAIR_SHIELD_COST,
    BreakState,
    ProtectionEvent,
    ProtectionEventType,
    ProtectionInventory,
)

_LOGGER = logging.getLogger(__name__)

REASON_NOT_BROKEN = "not_broken"
REASON_WINDOW_EXPIRED = "window_expired"
REASON_NOT_PRO = "not_pro"
REASON_INSUFFICIENT_SHIELDS = "insufficient_shields"


@dataclass
class RepairResult:
    repaired: bool
    inventory: ProtectionInventory
    break_state: BreakState
    restored_streak: int = 0
    restored_covered_streak: int = 0
    last_streak_date_key: str | None = None
    reason: str | None = None


def repair_block_reason(
    *, now: datetime, is_pro: bool, inventory: ProtectionInventory, break_state: BreakState
) -> str | None:
    """Return why a repair can't happen right now, or None if it can."""
    if not break_state.is_broken:
        return REASON_NOT_BROKEN
    deadline = break_state.eligible_repair_until_ms
    if deadline is None or epoch_ms(now) > deadline:
        return REASON_WINDOW_EXPIRED
    if not is_pro:
        return REASON_NOT_PRO
    if inventory.shields_available < REPAIR_SHIELD_COST:
        return REASON_INSUFFICIENT_SHIELDS
    return None


def can_offer_repair(
    *, now: datetime, is_pro: bool, inventory: ProtectionInventory, break_state: BreakState
) -> bool:
    return repair_block_reason(now=now, is_pro=is_pro, inventory=inventory, break_state=break_state) is None


def repair_streak(
    *, now: datetime, is_pro: bool, inventory: ProtectionInventory, break_state: BreakState
) -> RepairResult:
    """Spend REPAIR_SHIELD_COST shields to restore the pre-break streak.

    The repaired streak counts as covered through yesterday: the covered length
    resumes from its pre-break value plus the repaired days. The evaluation
    marker moves to yesterday so the gap is not evaluated again. Repairing an
    already repaired (or never broken) streak is a no-op.
    """
    reason = repair_block_reason(now=now, is_pro=is_pro, inventory=inventory, break_state=break_state)
    if reason is not None:
        _LOGGER.debug("Repair refused: %s", reason)
        return RepairResult(repaired=False, inventory=inventory, break_state=break_state, reason=reason)

    now_ms = epoch_ms(now)
    yesterday_key = add_local_days_key(local_date_key(now), -1)
    restored = break_state.broken_streak_length or 0
    # Days from the break through yesterday that the repair papers over
    gap = diff_local_days(break_state.broken_at_date_key, yesterday_key)
    covered_days = gap + 1 if gap is not None and gap >= 0 else 0
    pre_break_covered = break_state.broken_covered_streak
    if pre_break_covered is None:
        pre_break_covered = restored
    event = ProtectionEvent.create(
        ProtectionEventType.STREAK_REPAIRED,
        at_ms=now_ms,
        covered_days=covered_days,
        used_shields=REPAIR_SHIELD_COST,
    )
    _LOGGER.info("Repaired streak of %d broken on %s", restored, break_state.broken_at_date_key)
    return RepairResult(
        repaired=True,
        inventory=replace(
            inventory,
            shields_available=inventory.shields_available - REPAIR_SHIELD_COST,
            last_evaluated_through_date_key=yesterday_key,
            last_event=event,
        ),
        break_state=BreakState(repaired_at_ms=now_ms),
        restored_streak=restored,
        restored_covered_streak=pre_break_covered + covered_days,
        last_streak_date_key=yesterday_key,
    )
