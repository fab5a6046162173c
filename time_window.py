from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Optional
from zoneinfo import ZoneInfo

try:
    from .config import USER_TIMEZONE  # type: ignore[attr-defined]
except ImportError:
    from config import USER_TIMEZONE  # type: ignore


@dataclass(frozen=True)
class TimeWindow:
    """A single completed hour, as queried from the air-quality endpoint."""

    date: date
    hour: int

    def as_query_params(self) -> Dict[str, str]:
        day = self.date.isoformat()
        hour = str(self.hour)
        return {
            "date_from": day,
            "date_to": day,
            "time_from": hour,
            "time_to": hour,
        }


def resolve_time_window(now: Optional[datetime] = None, tz_name: str = USER_TIMEZONE) -> TimeWindow:
    """Return the hour immediately preceding ``now``.

    At midnight this rolls back to 23:00 of the previous calendar day. Date and
    hour come from the same local clock.
    """
    if now is None:
        now = datetime.now(ZoneInfo(tz_name))
    previous = now.replace(minute=0, second=0, microsecond=0) - timedelta(hours=1)
    return TimeWindow(date=previous.date(), hour=previous.hour)
