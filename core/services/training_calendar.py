"""Calendar operations exposed to the calling layer.

``get_plan`` and ``create_plan`` are the two primary entry points; the yearly,
completed-log, delete, and reset operations round out plan lifecycle
management. All of them take an open SQLAlchemy session and leave
commit/rollback to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from core.config import get_settings
from core.models import Plan, utcnow
from core.services.calendar_dates import monday_of
from core.services.current_window import WindowWeek, select_current_window
from core.services.materialization import (
    DateRange,
    PlanTree,
    find_plan,
    materialize,
    scaffold_range,
    stored_week_count,
)
from core.services.plan_guard import RebuildReport, delete_plan_rows, ensure_healthy
from core.services.plan_kinds import (
    YEARLY_WEEK_COUNT,
    PlanKind,
    PlanRecipe,
    is_legacy_alias,
    parse_kind,
    recipe_for_range,
    resolve,
    zone_for,
)
from core.validators import (
    CompletedPlanCreateInput,
    PlanCreateInput,
    PlanDeleteInput,
    PlanQueryInput,
    PlanResetInput,
    YearlyPlanCreateInput,
)

logger = logging.getLogger(__name__)


class CalendarError(Exception):
    """Base class for calendar operation failures."""


class InvalidPlanRequest(CalendarError):
    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class PlanNotFound(CalendarError):
    pass


@dataclass
class PlanView:
    plan: PlanTree
    window: Optional[list[WindowWeek]] = None
    rebuilt: bool = False
    rebuild_reason: str = "healthy"
    defects: tuple[str, ...] = ()
    report: Optional[RebuildReport] = None


@dataclass
class YearlyPlanCreation:
    plan: PlanTree
    done_plan_id: int
    replaced_plan_ids: list[int]


def _validated(model: type[BaseModel], **data: Any) -> Any:
    try:
        return model(**data)
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False, include_input=False)
        raise InvalidPlanRequest("; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in errors), errors) from exc


def read_range(recipe: PlanRecipe, today: date) -> Optional[DateRange]:
    """Days a Get returns for ``recipe``: past days only for the done log."""
    if recipe.kind is PlanKind.WORKOUTS_DONE and recipe.is_lazy:
        return recipe.start_date, today
    if recipe.is_lazy:
        return recipe.start_date, recipe.end_date
    return scaffold_range(recipe)


def _effective_recipe(session: Session, owner_id: str, recipe: PlanRecipe) -> PlanRecipe:
    """The recipe a Get materializes against.

    Lazy recipes, and recipes for plans that don't exist yet or were created
    rolling, are used as resolved. An existing pinned eager plan keeps the
    start, week count, and name it was created with.
    """
    if recipe.is_lazy:
        return recipe
    plan = find_plan(session, owner_id, recipe.kind, recipe.zone)
    if plan is None or plan.rolling:
        return recipe
    weeks = stored_week_count(session, plan) or recipe.week_count
    return recipe_for_range(recipe.kind, plan.start_date, weeks, recipe.zone, plan.name)


def get_plan(
    session: Session,
    owner_id: str,
    kind: str = "CURRENT_WEEKS",
    zone_hint: Optional[str] = None,
    force_recreate: Union[bool, str] = False,
    window: Optional[str] = None,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> PlanView:
    """Load or materialize the owner's plan for ``kind`` and repair it if needed.

    ``today`` and ``now`` (naive UTC) default to the wall clock; pass them to
    evaluate the calendar at a fixed instant.
    """
    query = _validated(
        PlanQueryInput,
        owner_id=owner_id,
        type=kind,
        section=zone_hint,
        force_recreate=force_recreate,
        window=window,
    )
    today = today or date.today()
    now = now or utcnow()
    recipe = _effective_recipe(session, query.owner_id, resolve(parse_kind(query.type), query.section, today))
    days_range = read_range(recipe, today)

    tree = materialize(session, query.owner_id, recipe, date_range=days_range)
    guard = ensure_healthy(
        session,
        tree,
        recipe,
        query.force_recreate,
        now,
        debounce_seconds=get_settings().rebuild_debounce_seconds,
        date_range=days_range,
    )

    use_window = query.window == "current" or (query.window is None and is_legacy_alias(query.type))
    view = PlanView(
        plan=guard.plan,
        window=select_current_window(guard.plan.weeks, today) if use_window else None,
        rebuilt=guard.rebuilt,
        rebuild_reason=guard.decision.reason,
        defects=guard.defects_remaining,
        report=guard.report,
    )
    logger.info(
        "plan_fetched",
        extra={
            "owner_id": query.owner_id,
            "plan_id": view.plan.id,
            "kind": recipe.kind.value,
            "zone": recipe.zone,
            "rebuilt": view.rebuilt,
            "rebuild_reason": view.rebuild_reason,
        },
    )
    return view


def create_plan(
    session: Session,
    owner_id: str,
    kind: str,
    start_date: date,
    number_of_weeks: int,
    zone_hint: Optional[str] = None,
    name: Optional[str] = None,
) -> PlanTree:
    """Explicit plan creation with a Monday-aligned custom start and week count.

    An existing plan of the same kind and zone with a different start or a
    different week count is replaced; an identical one is refreshed in place.
    The created plan is pinned: later Gets keep its dates.
    """
    body = _validated(
        PlanCreateInput,
        owner_id=owner_id,
        type=kind,
        start_date=start_date,
        number_of_weeks=number_of_weeks,
        section=zone_hint,
        name=name,
    )
    recipe = recipe_for_range(parse_kind(body.type), body.start_date, body.number_of_weeks, body.section, body.name)
    existing = find_plan(session, body.owner_id, recipe.kind, recipe.zone)
    if existing is not None and (
        existing.start_date != recipe.start_date or stored_week_count(session, existing) != recipe.week_count
    ):
        report = delete_plan_rows(session, existing.id)
        logger.info(
            "plan_replaced",
            extra={"owner_id": body.owner_id, "old_plan_id": existing.id, "kind": recipe.kind.value, **asdict(report)},
        )
    return materialize(session, body.owner_id, recipe)


def _replace_plan(session: Session, owner_id: str, recipe: PlanRecipe) -> tuple[PlanTree, Optional[int]]:
    existing = find_plan(session, owner_id, recipe.kind, recipe.zone)
    replaced = None
    if existing is not None:
        replaced = existing.id
        delete_plan_rows(session, existing.id)
    return materialize(session, owner_id, recipe), replaced


def create_yearly_plan(session: Session, owner_id: str, start_date: date) -> YearlyPlanCreation:
    """Replace the yearly plan and its companion done log, 52 scaffolded weeks each."""
    body = _validated(YearlyPlanCreateInput, owner_id=owner_id, start_date=start_date)
    yearly = recipe_for_range(PlanKind.YEARLY_PLAN, body.start_date, YEARLY_WEEK_COUNT)
    done = recipe_for_range(PlanKind.WORKOUTS_DONE, body.start_date, YEARLY_WEEK_COUNT)

    plan, replaced_yearly = _replace_plan(session, body.owner_id, yearly)
    done_plan, replaced_done = _replace_plan(session, body.owner_id, done)
    replaced = [plan_id for plan_id in (replaced_yearly, replaced_done) if plan_id is not None]
    logger.info(
        "yearly_plan_created",
        extra={
            "owner_id": body.owner_id,
            "plan_id": plan.id,
            "done_plan_id": done_plan.id,
            "start_date": yearly.start_date,
            "replaced_plan_ids": replaced,
        },
    )
    return YearlyPlanCreation(plan=plan, done_plan_id=done_plan.id, replaced_plan_ids=replaced)


def create_completed_plan(
    session: Session,
    owner_id: str,
    start_date: Optional[date] = None,
    today: Optional[date] = None,
) -> PlanTree:
    """Replace the done log with 52 scaffolded weeks in its zone.

    Without ``start_date`` the log lines up with the owner's yearly plan, or
    with the current week when there is none.
    """
    body = _validated(CompletedPlanCreateInput, owner_id=owner_id, start_date=start_date)
    start = body.start_date
    if start is None:
        yearly = find_plan(session, body.owner_id, PlanKind.YEARLY_PLAN, zone_for(PlanKind.YEARLY_PLAN))
        start = yearly.start_date if yearly is not None else monday_of(today or date.today())
    recipe = recipe_for_range(PlanKind.WORKOUTS_DONE, start, YEARLY_WEEK_COUNT)
    plan, replaced = _replace_plan(session, body.owner_id, recipe)
    logger.info(
        "completed_plan_created",
        extra={
            "owner_id": body.owner_id,
            "plan_id": plan.id,
            "start_date": recipe.start_date,
            "replaced_plan_id": replaced,
            "total_days": plan.total_days,
        },
    )
    return plan


def delete_plan(session: Session, owner_id: str, kind: str = "CURRENT_WEEKS", zone_hint: Optional[str] = None) -> int:
    body = _validated(PlanDeleteInput, owner_id=owner_id, type=kind, section=zone_hint)
    plan_kind = parse_kind(body.type)
    plan = find_plan(session, body.owner_id, plan_kind, zone_for(plan_kind, body.section))
    if plan is None:
        raise PlanNotFound(f"no {plan_kind.value} plan for owner")
    plan_id = plan.id
    report = delete_plan_rows(session, plan_id)
    logger.info("plan_deleted", extra={"owner_id": body.owner_id, "plan_id": plan_id, **asdict(report)})
    return plan_id


def reset_plans(session: Session, owner_id: str, kind: Optional[str] = None) -> int:
    """Delete every plan of ``kind`` (or of any kind) so the next Get rebuilds it."""
    body = _validated(PlanResetInput, owner_id=owner_id, type=kind)
    stmt = select(Plan.id).where(Plan.owner_id == body.owner_id)
    if body.type is not None:
        stmt = stmt.where(Plan.kind == parse_kind(body.type).value)
    plan_ids = list(session.execute(stmt.order_by(Plan.id)).scalars())
    total = RebuildReport()
    for plan_id in plan_ids:
        report = delete_plan_rows(session, plan_id)
        total.days_deleted += report.days_deleted
        total.weeks_deleted += report.weeks_deleted
        total.plans_deleted += report.plans_deleted
        total.days_detached += report.days_detached
    logger.info("plans_reset", extra={"owner_id": body.owner_id, "kind": body.type or "ALL", **asdict(total)})
    return total.plans_deleted
