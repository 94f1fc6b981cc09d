"""
Date helpers shared by services and models.

All persisted timestamps are naive UTC: SQLite drops tzinfo on the way back,
so aware datetimes would not compare with what is read from the database.
"""
import re
from datetime import datetime, timezone

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_iso() -> str:
    """Current UTC calendar date as YYYY-MM-DD."""
    return utcnow().date().isoformat()


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def is_valid_date(value: str) -> bool:
    """YYYY-MM-DD and an existing calendar day."""
    if not DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def is_valid_month(value: str) -> bool:
    if not MONTH_RE.match(value):
        return False
    return 1 <= int(value[5:7]) <= 12


def month_bounds(month: str) -> tuple[str, str]:
    """
    Inclusive date-string range for a YYYY-MM key.

    The upper bound is always day 31. Dates are compared as fixed-width
    strings, so a nonexistent "2026-02-31" still bounds February correctly.
    """
    return f"{month}-01", f"{month}-31"
