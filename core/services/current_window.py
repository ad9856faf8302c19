"""Three-week viewing window projected out of a larger plan.

The output is a read-only projection: weeks are renumbered 1..3 for display
and the stored number travels along as ``original_week_number``. Nothing here
writes back to the store.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Optional, Sequence

from core.services.calendar_dates import MONDAY
from core.services.materialization import DayNode, WeekNode

WINDOW_SIZE = 3


@dataclass(frozen=True)
class WindowWeek:
    id: int
    plan_id: int
    week_number: int
    original_week_number: int
    days: tuple[DayNode, ...]


def week_span(week: WeekNode) -> Optional[tuple[date, date]]:
    if not week.days:
        return None
    ordered = sorted(d.date for d in week.days)
    return ordered[0], ordered[-1]


def find_anchor(weeks: Sequence[WeekNode], today: date) -> Optional[WeekNode]:
    """Week whose day span contains ``today``, else the one whose Monday is nearest."""
    for week in weeks:
        span = week_span(week)
        if span and span[0] <= today <= span[1]:
            return week

    best: Optional[WeekNode] = None
    best_distance: Optional[int] = None
    for week in weeks:
        monday = next((d.date for d in week.days if d.day_of_week == MONDAY), None)
        if monday is None:
            continue
        distance = abs((monday - today).days)
        if best_distance is None or distance < best_distance:
            best, best_distance = week, distance
    return best


def select_current_window(weeks: Sequence[WeekNode], today: date) -> list[WindowWeek]:
    if not weeks:
        return []

    anchor = find_anchor(weeks, today)
    chosen: list[WeekNode] = []
    if anchor is not None:
        targets = {anchor.week_number - 1, anchor.week_number, anchor.week_number + 1}
        chosen = [w for w in weeks if w.week_number in targets]
    if len(chosen) < WINDOW_SIZE:
        chosen = sorted(weeks, key=lambda w: w.week_number)[:WINDOW_SIZE]

    window: list[WindowWeek] = []
    for position, week in enumerate(sorted(chosen, key=lambda w: w.week_number), start=1):
        window.append(
            WindowWeek(
                id=week.id,
                plan_id=week.plan_id,
                week_number=position,
                original_week_number=week.week_number,
                days=tuple(replace(d, week_number=position) for d in sorted(week.days, key=lambda d: d.date)),
            )
        )
    return window
