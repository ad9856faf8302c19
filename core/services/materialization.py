"""Idempotent week/day scaffolding for a plan recipe, plus the plan-tree read-back.

Everything here is an upsert keyed on the store's uniqueness constraints:
plans on (owner_id, kind, zone), weeks on (plan_id, week_number) and days on
(owner_id, date, zone). Running ``materialize`` twice yields the same ids.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.models import Plan, PlanDay, PlanWeek
from core.services.calendar_dates import monday_of
from core.services.periods import PeriodStore
from core.services.plan_kinds import LAZY_KINDS, PlanKind, PlanRecipe

logger = logging.getLogger(__name__)

DateRange = tuple[date, date]


@dataclass(frozen=True)
class DayNode:
    id: int
    date: date
    zone: str
    day_of_week: int
    week_number: int
    week_id: Optional[int]
    period_id: int
    weather: str
    feeling_status: str
    notes: str


@dataclass(frozen=True)
class WeekNode:
    id: int
    plan_id: int
    week_number: int
    days: tuple[DayNode, ...]


@dataclass(frozen=True)
class PlanTree:
    id: int
    owner_id: str
    kind: PlanKind
    zone: str
    name: str
    start_date: date
    end_date: date
    created_at: datetime
    weeks: tuple[WeekNode, ...]
    # Lazy kinds: logged days in the plan's zone that hang off none of its weeks.
    loose_days: tuple[DayNode, ...] = ()

    @property
    def total_days(self) -> int:
        return sum(len(w.days) for w in self.weeks)


def find_plan(session: Session, owner_id: str, kind: PlanKind, zone: str) -> Optional[Plan]:
    stmt = select(Plan).where(Plan.owner_id == owner_id, Plan.kind == kind.value, Plan.zone == zone)
    return session.execute(stmt).scalar_one_or_none()


def stored_week_count(session: Session, plan: Plan) -> int:
    stmt = select(func.max(PlanWeek.week_number)).where(PlanWeek.plan_id == plan.id)
    return session.execute(stmt).scalar() or 0


def scaffold_range(recipe: PlanRecipe) -> Optional[DateRange]:
    """Dates covered by the eager week/day scaffold, or None for lazy recipes."""
    if recipe.is_lazy:
        return None
    return recipe.start_date, recipe.start_date + timedelta(days=recipe.week_count * 7 - 1)


def _get_or_create_plan(session: Session, owner_id: str, recipe: PlanRecipe) -> Plan:
    plan = find_plan(session, owner_id, recipe.kind, recipe.zone)
    if plan is not None:
        plan.rolling = recipe.rolling
        plan.name = recipe.name
        return plan
    plan = Plan(
        owner_id=owner_id,
        kind=recipe.kind.value,
        zone=recipe.zone,
        name=recipe.name,
        start_date=monday_of(recipe.start_date),
        end_date=recipe.end_date,
        rolling=recipe.rolling,
    )
    try:
        with session.begin_nested():
            session.add(plan)
    except IntegrityError:
        # A concurrent caller created it first; theirs wins.
        plan = find_plan(session, owner_id, recipe.kind, recipe.zone)
        if plan is None:
            raise
        logger.info("plan_create_race_resolved", extra={"owner_id": owner_id, "kind": recipe.kind.value, "plan_id": plan.id})
        return plan
    logger.info(
        "plan_created",
        extra={"owner_id": owner_id, "kind": recipe.kind.value, "zone": recipe.zone, "plan_id": plan.id},
    )
    return plan


def _roll_plan(session: Session, plan: Plan, recipe: PlanRecipe, window: DateRange) -> int:
    """Move a rolling plan onto ``recipe``'s dates, keeping its id and its weeks.

    Days that fall out of the new window are detached from the plan's weeks,
    never deleted. Returns how many were detached.
    """
    old_start = plan.start_date
    plan.start_date = recipe.start_date
    plan.end_date = recipe.end_date
    week_ids = select(PlanWeek.id).where(PlanWeek.plan_id == plan.id)
    result = session.execute(
        update(PlanDay)
        .where(
            PlanDay.week_id.in_(week_ids),
            (PlanDay.date < window[0]) | (PlanDay.date > window[1]),
        )
        .values(week_id=None)
        .execution_options(synchronize_session=False)
    )
    detached = result.rowcount or 0
    logger.info(
        "plan_rolled",
        extra={
            "owner_id": plan.owner_id,
            "plan_id": plan.id,
            "kind": recipe.kind.value,
            "old_start": old_start,
            "new_start": recipe.start_date,
            "days_detached": detached,
        },
    )
    return detached


def _upsert_week(session: Session, plan: Plan, week_number: int, existing: dict[int, PlanWeek]) -> PlanWeek:
    week = existing.get(week_number)
    if week is not None:
        return week
    week = PlanWeek(plan_id=plan.id, week_number=week_number)
    try:
        with session.begin_nested():
            session.add(week)
    except IntegrityError:
        stmt = select(PlanWeek).where(PlanWeek.plan_id == plan.id, PlanWeek.week_number == week_number)
        week = session.execute(stmt).scalar_one()
    existing[week_number] = week
    return week


def _insert_day(session: Session, day: PlanDay) -> PlanDay:
    try:
        with session.begin_nested():
            session.add(day)
    except IntegrityError:
        stmt = select(PlanDay).where(
            PlanDay.owner_id == day.owner_id, PlanDay.date == day.date, PlanDay.zone == day.zone
        )
        winner = session.execute(stmt).scalar_one()
        logger.debug("plan_day_insert_race", extra={"owner_id": day.owner_id, "date": day.date, "zone": day.zone})
        return winner
    return day


def _existing_days(session: Session, owner_id: str, zone: str, window: DateRange) -> dict[date, PlanDay]:
    stmt = select(PlanDay).where(
        PlanDay.owner_id == owner_id,
        PlanDay.zone == zone,
        PlanDay.date >= window[0],
        PlanDay.date <= window[1],
    )
    return {d.date: d for d in session.execute(stmt).scalars()}


def materialize(
    session: Session,
    owner_id: str,
    recipe: PlanRecipe,
    date_range: Optional[DateRange] = None,
) -> PlanTree:
    """Create or refresh the plan, its weeks, and its days for ``recipe``.

    ``date_range`` narrows the returned days; eager recipes default to the
    window they just scaffolded. A rolling plan whose stored start no longer
    matches ``recipe`` is moved onto the recipe's dates first.
    """
    plan = _get_or_create_plan(session, owner_id, recipe)
    window = scaffold_range(recipe)
    created_days = 0
    if window is not None:
        if plan.rolling and plan.start_date != recipe.start_date:
            _roll_plan(session, plan, recipe, window)
        weeks = {w.week_number: w for w in session.execute(select(PlanWeek).where(PlanWeek.plan_id == plan.id)).scalars()}
        period = PeriodStore(session).ensure_default(owner_id)
        days = _existing_days(session, owner_id, recipe.zone, window)
        for i in range(recipe.week_count):
            week = _upsert_week(session, plan, i + 1, weeks)
            for offset in range(7):
                day_date = recipe.start_date + timedelta(days=i * 7 + offset)
                day = days.get(day_date)
                if day is None:
                    day = _insert_day(
                        session,
                        PlanDay(
                            owner_id=owner_id,
                            date=day_date,
                            zone=recipe.zone,
                            day_of_week=offset + 1,
                            week_number=i + 1,
                            week_id=week.id,
                            period_id=period.id,
                            weather="",
                            feeling_status="5",
                            notes="",
                        ),
                    )
                    created_days += 1
                day.week_id = week.id
                day.week_number = i + 1
                day.day_of_week = offset + 1
                day.period_id = period.id
                day.zone = recipe.zone
        session.flush()
    logger.info(
        "plan_materialized",
        extra={
            "owner_id": owner_id,
            "plan_id": plan.id,
            "kind": recipe.kind.value,
            "zone": recipe.zone,
            "week_count": recipe.week_count,
            "days_created": created_days,
        },
    )
    return load_plan_tree(session, plan, date_range if date_range is not None else window)


def load_plan_tree(session: Session, plan: Plan, date_range: Optional[DateRange] = None) -> PlanTree:
    """Plan -> weeks -> days, keeping only days in the plan's own zone."""
    weeks = list(
        session.execute(select(PlanWeek).where(PlanWeek.plan_id == plan.id).order_by(PlanWeek.week_number)).scalars()
    )
    by_week: dict[int, list[DayNode]] = {w.id: [] for w in weeks}
    if weeks:
        stmt = select(PlanDay).where(
            PlanDay.owner_id == plan.owner_id,
            PlanDay.zone == plan.zone,
            PlanDay.week_id.in_(list(by_week)),
        )
        if date_range is not None:
            stmt = stmt.where(PlanDay.date >= date_range[0], PlanDay.date <= date_range[1])
        for row in session.execute(stmt.order_by(PlanDay.date)).scalars():
            by_week[row.week_id].append(_day_node(row))
    loose: tuple[DayNode, ...] = ()
    kind = PlanKind(plan.kind)
    if kind in LAZY_KINDS:
        lo, hi = date_range if date_range is not None else (plan.start_date, plan.end_date)
        stmt = select(PlanDay).where(
            PlanDay.owner_id == plan.owner_id,
            PlanDay.zone == plan.zone,
            PlanDay.date >= lo,
            PlanDay.date <= hi,
        )
        if by_week:
            stmt = stmt.where((PlanDay.week_id.is_(None)) | (PlanDay.week_id.not_in(list(by_week))))
        loose = tuple(_day_node(row) for row in session.execute(stmt.order_by(PlanDay.date)).scalars())
    return PlanTree(
        id=plan.id,
        owner_id=plan.owner_id,
        kind=kind,
        zone=plan.zone,
        name=plan.name,
        start_date=plan.start_date,
        end_date=plan.end_date,
        created_at=plan.created_at,
        weeks=tuple(WeekNode(id=w.id, plan_id=plan.id, week_number=w.week_number, days=tuple(by_week[w.id])) for w in weeks),
        loose_days=loose,
    )


def _day_node(row: PlanDay) -> DayNode:
    return DayNode(
        id=row.id,
        date=row.date,
        zone=row.zone,
        day_of_week=row.day_of_week,
        week_number=row.week_number,
        week_id=row.week_id,
        period_id=row.period_id,
        weather=row.weather,
        feeling_status=row.feeling_status,
        notes=row.notes,
    )
