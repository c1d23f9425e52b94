"""Weekly delivery-day schedules.

Routes store their schedule as weekday names ("tuesday", "fri", ...). These
helpers turn them into ``date.weekday()`` numbers and find the next date a
route runs.
"""

from collections.abc import Iterable
from datetime import date, timedelta

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def parse_weekdays(names: Iterable[str]) -> frozenset[int]:
    """Map weekday names (full or three-letter) to weekday numbers.

    Raises ``ValueError`` for an unknown name or an empty schedule.
    """
    days = set()
    for name in names:
        key = str(name).strip().lower()
        matches = [i for i, day in enumerate(WEEKDAYS) if day == key or (len(key) == 3 and day.startswith(key))]
        if not matches:
            raise ValueError(f"Unknown weekday: {name!r}")
        days.add(matches[0])
    if not days:
        raise ValueError("A delivery schedule needs at least one weekday")
    return frozenset(days)


def next_delivery_date(delivery_days: Iterable[int], on_or_after: date) -> date:
    """First date on or after ``on_or_after`` whose weekday is scheduled."""
    days = frozenset(delivery_days)
    if not days:
        raise ValueError("A delivery schedule needs at least one weekday")
    for offset in range(7):
        candidate = on_or_after + timedelta(days=offset)
        if candidate.weekday() in days:
            return candidate
    raise ValueError(f"Invalid weekday numbers: {sorted(days)}")


def is_delivery_day(delivery_days: Iterable[int], day: date) -> bool:
    return day.weekday() in frozenset(delivery_days)
