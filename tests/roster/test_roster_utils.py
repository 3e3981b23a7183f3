from __future__ import annotations

from datetime import date

import pytest

from src.care_office.care_office.core.exceptions import ValidationError
from src.care_office.care_office.roster.utils import (
    calculate_duration,
    days_for,
    format_duration,
    format_time,
    generate_month_days,
    generate_week_days,
    get_date_range,
)


def test_same_day_duration():
    assert calculate_duration("09:00", "17:30") == 8.5


def test_iso_string_dates_are_accepted():
    assert calculate_duration("09:00", "17:30", "2024-01-01", "2024-01-01") == 8.5
    assert calculate_duration("22:00", "06:00", "2024-01-01", "2024-01-02") == 8.0


def test_overnight_shift_wraps_to_next_day():
    assert calculate_duration("22:00", "06:00") == 8.0
    assert calculate_duration("22:00:00", "06:00:00", date(2024, 3, 1), date(2024, 3, 1)) == 8.0


def test_explicit_end_date_uses_full_difference():
    assert calculate_duration("20:00", "08:00", date(2024, 3, 1), date(2024, 3, 3)) == 36.0


def test_zero_length_shift():
    assert calculate_duration("09:00", "09:00") == 0.0


def test_formatting():
    assert format_time("09:05:00") == "09:05"
    assert format_duration(8.5) == "8.5h"
    assert format_duration(8.0) == "8h"


def test_week_starts_on_monday():
    days = generate_week_days(date(2024, 5, 15))
    assert days[0] == date(2024, 5, 13)
    assert days[-1] == date(2024, 5, 19)


def test_month_is_padded_to_whole_weeks():
    days = generate_month_days(date(2024, 2, 10))

    assert days[0] == date(2024, 1, 29)
    assert days[-1] == date(2024, 3, 3)
    assert len(days) % 7 == 0
    assert date(2024, 2, 29) in days


def test_date_range_per_view_mode():
    day = date(2024, 5, 15)
    assert get_date_range(day, "day") == (day, day)
    assert get_date_range(day, "week") == (date(2024, 5, 13), date(2024, 5, 19))
    assert get_date_range(day, "month") == (date(2024, 4, 29), date(2024, 6, 2))
    assert len(days_for(day, "week")) == 7


def test_unknown_view_mode():
    with pytest.raises(ValidationError):
        get_date_range(date(2024, 5, 15), "year")
