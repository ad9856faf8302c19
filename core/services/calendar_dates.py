from __future__ import annotations

from datetime import date, timedelta

MONDAY = 1


def day_of_week(d: date) -> int:
    """1=Monday ... 7=Sunday."""
    return d.isoweekday()


def monday_of(d: date) -> date:
    """Monday of the calendar week containing ``d``."""
    dow = d.isoweekday() % 7  # Sunday=0 ... Saturday=6
    back = 6 if dow == 0 else dow - 1
    return d - timedelta(days=back)


def next_monday(d: date) -> date:
    """``d`` itself when it is a Monday, otherwise the soonest following Monday."""
    dow = d.isoweekday() % 7
    if dow == 1:
        return d
    if dow == 0:
        return d + timedelta(days=1)
    return d + timedelta(days=8 - dow)


def is_monday(d: date) -> bool:
    return d.isoweekday() == MONDAY


def week_dates(week_start: date) -> list[date]:
    return [week_start + timedelta(days=offset) for offset in range(7)]


def add_years(d: date, years: int) -> date:
    try:
        return d.replace(year=d.year + years)
    except ValueError:
        # Feb 29 -> Feb 28 in a non-leap target year
        return d.replace(year=d.year + years, day=28)
