#!/usr/bin/env python3
"""Foreground hook: settle missed days through yesterday."""
from __future__ import annotations

import sys
from pathlib import Path

_PLUGIN_ROOT = Path(__file__).parent.parent
_SRC = _PLUGIN_ROOT / "src"
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))


def main() -> None:
    try:
        from datetime import datetime

        from streak_guard.config import get_is_pro, get_max_shields
        from streak_guard.db import Database
        from streak_guard.streaks import evaluate_on_foreground

        max_shields = get_max_shields()
        db = Database()
        try:
            state = db.load_state(max_shields)
            next_state, _ = evaluate_on_foreground(
                state, now=datetime.now(), is_pro=get_is_pro(), max_shields=max_shields,
            )
            db.save_state(next_state)
        finally:
            db.close()
    except Exception:
        pass
    sys.exit(0)


if __name__ == "__main__":
    main()
