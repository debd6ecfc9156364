"""
Time-of-day helpers.

Times are integer minutes since midnight everywhere inside the engine; the
``HH:MM`` text form only exists at the API edge.
"""
import re
from datetime import date, datetime, timedelta

from sqlalchemy import and_

from roomkeeper.utils.errors import ValidationError

MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r'^([01]?[0-9]|2[0-3]):([0-5][0-9])$')

WEEKDAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']


def to_minutes(value: str) -> int:
    """Parse ``HH:MM`` into minutes since midnight."""
    if not isinstance(value, str):
        raise ValidationError(f"Invalid time value: {value!r}", 'invalid_time')
    match = _HHMM.match(value.strip())
    if not match:
        raise ValidationError(f"Invalid time value: {value!r}", 'invalid_time')
    return int(match.group(1)) * 60 + int(match.group(2))


def to_hhmm(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def parse_date(value) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date value: {value!r}", 'invalid_date')


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Half-open interval overlap: touching intervals do not overlap."""
    return max(a_start, b_start) < min(a_end, b_end)


def overlap_filter(start_col, end_col, start, end):
    """SQL form of ``overlaps`` for a stored interval against ``[start, end)``."""
    # max(s1, s2) < min(e1, e2)  <=>  s1 < e2 and s2 < e1
    return and_(start_col < end, end_col > start)


def round_up(minutes: int, step: int) -> int:
    return -(-minutes // step) * step


def day_of_week(on_date: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (on_date.weekday() + 1) % 7


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def combine(on_date: date, minutes: int, tz) -> datetime:
    """Localized datetime for ``minutes`` past midnight on ``on_date``."""
    naive = datetime.combine(on_date, datetime.min.time()) + timedelta(minutes=minutes)
    return tz.localize(naive)


def day_label(day_offset: int, on_date: date) -> str:
    if day_offset == 0:
        return 'Today'
    if day_offset == 1:
        return 'Tomorrow'
    return WEEKDAY_NAMES[day_of_week(on_date)]
