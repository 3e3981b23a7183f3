from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

from ..common.datetime_utils import coerce_date, parse_hhmm, start_of_week
from ..core.enums import ViewMode
from ..core.exceptions import ValidationError


def _minutes(value: str) -> int:
    t = parse_hhmm(str(value)[:8])
    return t.hour * 60 + t.minute


def calculate_duration(
    start_time: str,
    end_time: str,
    start_date: Optional[Any] = None,
    end_date: Optional[Any] = None,
) -> float:
    """Shift length in hours, rounded to 2 decimals.

    With two different explicit dates the full datetime difference is used;
    otherwise an end before the start is taken to fall on the next day.
    """
    minutes = _minutes(end_time) - _minutes(start_time)

    first, last = coerce_date(start_date), coerce_date(end_date)
    if first and last and first != last:
        start = datetime.combine(first, parse_hhmm(str(start_time)[:8]))
        end = datetime.combine(last, parse_hhmm(str(end_time)[:8]))
        minutes = (end - start).total_seconds() / 60
    elif minutes < 0:
        minutes += 24 * 60

    return round(minutes / 60, 2)


def format_time(value: str) -> str:
    """``HH:MM:SS`` -> ``HH:MM``."""
    return str(value)[:5]


def format_duration(hours: float) -> str:
    return f"{hours:g}h"


def generate_week_days(current: date) -> list[date]:
    monday = start_of_week(current)
    return [monday + timedelta(days=i) for i in range(7)]


def _month_bounds(current: date) -> tuple[date, date]:
    first = current.replace(day=1)
    last = current.replace(day=calendar.monthrange(current.year, current.month)[1])
    return start_of_week(first), start_of_week(last) + timedelta(days=6)


def generate_month_days(current: date) -> list[date]:
    """Every day of the month, padded to whole Monday-start weeks."""
    start, end = _month_bounds(current)
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def get_date_range(current: date, view_mode: Union[ViewMode, str]) -> tuple[date, date]:
    try:
        mode = ViewMode(view_mode)
    except ValueError:
        raise ValidationError(f"Unknown view mode {view_mode!r}") from None

    if mode == ViewMode.DAY:
        return current, current
    if mode == ViewMode.WEEK:
        monday = start_of_week(current)
        return monday, monday + timedelta(days=6)
    return _month_bounds(current)


def days_for(current: date, view_mode: Union[ViewMode, str]) -> list[date]:
    start, end = get_date_range(current, view_mode)
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]
