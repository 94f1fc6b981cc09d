"""
Session domain rules - lifetime parsing and state

A session is ACTIVE while not revoked and not past expires_at. REVOKED and
EXPIRED are terminal; EXPIRED is derived from the clock, not stored.
"""
import re
from datetime import datetime, timedelta

ACTIVE = "ACTIVE"
REVOKED = "REVOKED"
EXPIRED = "EXPIRED"

DEFAULT_REFRESH_LIFETIME = timedelta(days=7)

_DURATION_RE = re.compile(r"^(\d+)([smhd])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str, default: timedelta = DEFAULT_REFRESH_LIFETIME) -> timedelta:
    """
    Parse an operator-supplied duration string ("30s", "15m", "1h", "7d")

    Args:
        value: duration string matching ^\\d+[smhd]$
        default: returned when the value does not parse

    Example:
        >>> parse_duration("15m")
        datetime.timedelta(seconds=900)
        >>> parse_duration("soon")
        datetime.timedelta(days=7)
    """
    match = _DURATION_RE.match(value or "")
    if not match:
        return default
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])


def session_state(is_revoked: bool, expires_at: datetime, now: datetime) -> str:
    if is_revoked:
        return REVOKED
    if expires_at <= now:
        return EXPIRED
    return ACTIVE


def is_active(is_revoked: bool, expires_at: datetime, now: datetime) -> bool:
    return session_state(is_revoked, expires_at, now) == ACTIVE
