"""UTC clock and billing-period helpers"""

from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def period_label(moment: datetime) -> str:
    """Monthly period label in YYYY-MM form, always computed in UTC"""
    return moment.astimezone(timezone.utc).strftime("%Y-%m")


def next_period_start(moment: datetime) -> datetime:
    """First instant of the next calendar month (UTC)"""
    moment = moment.astimezone(timezone.utc)
    if moment.month == 12:
        return datetime(moment.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(moment.year, moment.month + 1, 1, tzinfo=timezone.utc)


def to_datetime(value: Any) -> Optional[datetime]:
    """Normalize a stored timestamp (datetime from psycopg2, ISO text from SQLite)"""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
