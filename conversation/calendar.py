from __future__ import annotations

from datetime import date, timedelta

DEFAULT_BOOKING_WINDOW_DAYS = 7
DEFAULT_TIME_SLOTS = ("08:00", "09:00", "10:00", "11:00", "13:00", "14:00", "15:00", "16:00")


def first_bookable_date(today: date) -> date:
    return today + timedelta(days=1)


def booking_dates(window_start: date, days: int = DEFAULT_BOOKING_WINDOW_DAYS) -> tuple[date, ...]:
    return tuple(window_start + timedelta(days=offset) for offset in range(max(1, int(days))))
