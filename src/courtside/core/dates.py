from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

# The app's calendar is China Standard Time; the stats API keys games by US Eastern date.
CHINA_TZ = ZoneInfo("Asia/Shanghai")
US_EASTERN_TZ = ZoneInfo("America/New_York")
_UTC_PLUS_8 = timezone(timedelta(hours=8))


def format_date_for_api(value: date) -> str:
    """
    Convert a calendar date into the `YYYYMMDD` token of the games-by-date endpoint.

    The date is read as midnight at a fixed UTC+8 offset, that instant is re-expressed
    in US Eastern time (DST-aware), and the Eastern calendar date is formatted.

    2026-01-15 -> 2026-01-15T00:00+08:00 -> 2026-01-14T11:00-05:00 -> "20260114"
    """
    if isinstance(value, datetime):
        value = value.date()

    china_midnight = datetime.combine(value, time(0, 0), tzinfo=_UTC_PLUS_8)
    eastern = china_midnight.astimezone(US_EASTERN_TZ)
    return eastern.strftime("%Y%m%d")


def current_china_date(now: datetime | None = None) -> date:
    """Today's calendar date in Asia/Shanghai."""
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(CHINA_TZ).date()


def parse_date_token(value: str) -> date:
    """Parse `YYYY-MM-DD` or `YYYYMMDD` into a date."""
    v = value.strip()
    if len(v) == 8 and v.isdigit():
        return date(int(v[:4]), int(v[4:6]), int(v[6:]))
    try:
        return date.fromisoformat(v)
    except ValueError as e:
        raise ValueError(f"Invalid date {value!r}; expected YYYY-MM-DD or YYYYMMDD") from e
