from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from croniter import croniter

from models.subscription import Frequency
from utils.time_utils import utcnow

EVERY_FRIDAY_AT_7AM = "0 7 * * 5"
FIRST_OF_EVERY_MONTH_AT_7AM = "0 7 1 * *"

_CRON_BY_FREQUENCY = {
    Frequency.WEEKLY: EVERY_FRIDAY_AT_7AM,
    Frequency.MONTHLY: FIRST_OF_EVERY_MONTH_AT_7AM,
}


def cron_for(frequency: Frequency) -> str:
    return _CRON_BY_FREQUENCY[Frequency(frequency)]


def next_run(cron_expression: str, tz: str = "UTC", base_time: Optional[datetime] = None) -> datetime:
    """Next fire time of `cron_expression` after `base_time`, evaluated in `tz`."""
    base = base_time or utcnow()
    return croniter(cron_expression, base.astimezone(ZoneInfo(tz))).get_next(datetime)
