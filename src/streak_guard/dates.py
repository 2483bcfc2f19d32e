"""Local calendar day keys and ISO week keys for streak-guard.

Day keys are plain `YYYY-MM-DD` strings built from the wall-clock fields of the
datetime the caller passes in. A naive datetime is taken as host-local time,
an aware one is read in its own zone; nothing is converted to UTC.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta


def local_date_key(dt: date | datetime) -> str:
    """Format the local year/month/day of dt as YYYY-MM-DD."""
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


def parse_local_date_key(key: str | None) -> date | None:
    """Parse a YYYY-MM-DD key. Returns None for anything that isn't a real date."""
    if not isinstance(key, str):
        return None
    parts = key.split("-")
    if len(parts) != 3:
        return None
    try:
        y, m, d = (int(p) for p in parts)
        return date(y, m, d)
    except ValueError:
        return None


def add_local_days_key(key: str | None, days: int) -> str | None:
    """Advance a day key by `days` calendar days (negative goes back)."""
    parsed = parse_local_date_key(key)
    if parsed is None:
        return None
    try:
        return local_date_key(parsed + timedelta(days=days))
    except OverflowError:
        return None


def diff_local_days(from_key: str | None, to_key: str | None) -> int | None:
    """Signed number of calendar days from from_key to to_key."""
    start = parse_local_date_key(from_key)
    end = parse_local_date_key(to_key)
    if start is None or end is None:
        return None
    return (end - start).days


def epoch_ms(dt: datetime) -> int:
    """Milliseconds since the Unix epoch (naive datetimes are host-local)."""
    return round(dt.timestamp() * 1000)


def get_iso_week_key(dt: date | datetime) -> str:
    """ISO-8601 week key (YYYY-Www).

    The year is the ISO year, i.e. the year of the Thursday in dt's week, so
    2027-01-01 (a Friday) belongs to 2026-W53.
    """
    iso_year, iso_week, _ = date(dt.year, dt.month, dt.day).isocalendar()
    return f"{iso_year}-W{iso_week:02d}"
