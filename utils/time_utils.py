import time
from datetime import datetime, timezone

def utcnow() -> datetime:
    """Returns the current time in UTC, timezone aware."""
    return datetime.now(timezone.utc)

def epoch_millis(clock=time.time) -> int:
    """Milliseconds since the epoch, the unit used for `timeSent`."""
    return int(clock() * 1000)

def format_long_date(dt: datetime) -> str:
    """Formats a date like 'Oct 9, 2026'."""
    return f"{dt:%b} {dt.day}, {dt.year}"
