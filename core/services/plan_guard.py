"""Plan integrity checks and the delete-and-rematerialize repair path.

The rebuild decision is advisory. A plan younger than the debounce window is
left alone so two near-simultaneous callers don't both rebuild it, but this is
a time fence, not a lock: two callers that both observe the plan as defective
before either write lands can still both rebuild. Correctness rests on the
uniqueness constraints the upserts in ``materialization`` are keyed on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from core.models import Plan, PlanDay, PlanWeek
from core.services.calendar_dates import is_monday
from core.services.materialization import DateRange, PlanTree, materialize
from core.services.plan_kinds import PROTECTED_KINDS, PlanKind, PlanRecipe

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 5.0

DEFECT_NO_WEEKS = "no_weeks"
DEFECT_NO_DAYS = "no_days"
DEFECT_MISALIGNED_START = "start_not_monday"


@dataclass(frozen=True)
class RebuildDecision:
    rebuild: bool
    reason: str
    defects: tuple[str, ...] = ()


@dataclass
class RebuildReport:
    days_deleted: int = 0
    weeks_deleted: int = 0
    plans_deleted: int = 0
    days_detached: int = 0


@dataclass
class GuardResult:
    plan: PlanTree
    decision: RebuildDecision
    report: Optional[RebuildReport] = None
    defects_remaining: tuple[str, ...] = field(default_factory=tuple)

    @property
    def rebuilt(self) -> bool:
        return self.report is not None


def find_defects(plan: PlanTree, expects_scaffold: bool = True) -> tuple[str, ...]:
    """Structural defects of ``plan``.

    Empty weeks/days only count when the plan is expected to carry an eager
    scaffold; lazy plans legitimately start empty.
    """
    defects: list[str] = []
    if expects_scaffold:
        if not plan.weeks:
            defects.append(DEFECT_NO_WEEKS)
        elif plan.total_days == 0:
            defects.append(DEFECT_NO_DAYS)
    if not is_monday(plan.start_date):
        defects.append(DEFECT_MISALIGNED_START)
    return tuple(defects)


def decide_rebuild(
    plan: PlanTree,
    defects: tuple[str, ...],
    force_recreate: bool,
    now: datetime,
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
) -> RebuildDecision:
    age = (now - plan.created_at).total_seconds()
    if age < debounce_seconds:
        return RebuildDecision(False, "debounced", defects)
    if force_recreate:
        return RebuildDecision(True, "forced", defects)
    if plan.kind in PROTECTED_KINDS:
        return RebuildDecision(False, "protected_kind" if defects else "healthy", defects)
    if defects:
        return RebuildDecision(True, "defective", defects)
    return RebuildDecision(False, "healthy", defects)


def cleanup_range(recipe: PlanRecipe) -> DateRange:
    """Days a rebuild deletes; days of the plan outside it are detached."""
    if recipe.kind is PlanKind.TEMPLATE_WEEKS:
        # One spare week past the scaffold.
        return recipe.start_date, recipe.start_date + timedelta(days=recipe.week_count * 7 + 6)
    if recipe.kind is PlanKind.YEARLY_PLAN:
        return recipe.start_date, recipe.start_date + timedelta(days=400)
    return recipe.start_date, recipe.end_date


def delete_plan_rows(session: Session, plan_id: int, day_range: Optional[DateRange] = None) -> RebuildReport:
    """Delete a plan, its weeks, and its days in its own zone.

    With ``day_range`` only days inside the range are deleted; days outside it
    that point at the plan's weeks are detached instead.
    """
    session.flush()
    plan = session.get(Plan, plan_id)
    report = RebuildReport()
    if plan is None:
        return report
    week_ids = list(session.execute(select(PlanWeek.id).where(PlanWeek.plan_id == plan.id)).scalars())

    day_filter = [PlanDay.owner_id == plan.owner_id, PlanDay.zone == plan.zone]
    if day_range is not None:
        day_filter += [PlanDay.date >= day_range[0], PlanDay.date <= day_range[1]]
    elif week_ids:
        day_filter.append(PlanDay.week_id.in_(week_ids))
    else:
        # Lazy plans have no weeks; their logged days are found by date.
        day_filter += [PlanDay.date >= plan.start_date, PlanDay.date <= plan.end_date]

    result = session.execute(delete(PlanDay).where(*day_filter).execution_options(synchronize_session=False))
    report.days_deleted = result.rowcount or 0
    if week_ids:
        result = session.execute(
            update(PlanDay)
            .where(PlanDay.week_id.in_(week_ids))
            .values(week_id=None)
            .execution_options(synchronize_session=False)
        )
        report.days_detached = result.rowcount or 0
        result = session.execute(
            delete(PlanWeek).where(PlanWeek.plan_id == plan.id).execution_options(synchronize_session=False)
        )
        report.weeks_deleted = result.rowcount or 0
    result = session.execute(delete(Plan).where(Plan.id == plan.id).execution_options(synchronize_session=False))
    report.plans_deleted = result.rowcount or 0
    session.expunge_all()
    return report


def rebuild(
    session: Session,
    plan: PlanTree,
    recipe: PlanRecipe,
    date_range: Optional[DateRange] = None,
) -> tuple[PlanTree, RebuildReport]:
    day_range = cleanup_range(recipe)
    report = delete_plan_rows(session, plan.id, day_range)
    logger.info(
        "plan_rebuilt",
        extra={
            "owner_id": plan.owner_id,
            "old_plan_id": plan.id,
            "kind": plan.kind.value,
            "zone": plan.zone,
            "cleanup_start": day_range[0],
            "cleanup_end": day_range[1],
            "days_deleted": report.days_deleted,
            "days_detached": report.days_detached,
            "weeks_deleted": report.weeks_deleted,
            "plans_deleted": report.plans_deleted,
        },
    )
    return materialize(session, plan.owner_id, recipe, date_range=date_range), report


def ensure_healthy(
    session: Session,
    plan: PlanTree,
    recipe: PlanRecipe,
    force_recreate: bool,
    now: datetime,
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    date_range: Optional[DateRange] = None,
) -> GuardResult:
    """Check ``plan`` and rebuild it from ``recipe`` when the decision rule says so."""
    defects = find_defects(plan, expects_scaffold=not recipe.is_lazy)
    decision = decide_rebuild(plan, defects, force_recreate, now, debounce_seconds)
    if not decision.rebuild:
        if defects:
            logger.warning(
                "plan_rebuild_skipped",
                extra={"plan_id": plan.id, "kind": plan.kind.value, "reason": decision.reason, "defects": list(defects)},
            )
        return GuardResult(plan=plan, decision=decision, defects_remaining=defects)
    rebuilt, report = rebuild(session, plan, recipe, date_range)
    return GuardResult(
        plan=rebuilt,
        decision=decision,
        report=report,
        defects_remaining=find_defects(rebuilt, expects_scaffold=not recipe.is_lazy),
    )
