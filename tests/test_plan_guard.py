from datetime import date, datetime, timedelta

from sqlalchemy import func, select, update

from core.models import Plan, PlanDay, PlanWeek
from core.services.materialization import PlanTree, find_plan, load_plan_tree, materialize
from core.services.plan_guard import (
    DEFECT_MISALIGNED_START,
    DEFECT_NO_DAYS,
    DEFECT_NO_WEEKS,
    cleanup_range,
    decide_rebuild,
    delete_plan_rows,
    ensure_healthy,
    find_defects,
)
from core.services.plan_kinds import PlanKind, recipe_for_range, resolve
from core.services.training_calendar import create_completed_plan

TODAY = date(2024, 6, 12)
OWNER = "owner-1"
CREATED = datetime(2024, 6, 12, 8, 0, 0)


def _tree(kind, start=date(2024, 6, 3), weeks=()):
    return PlanTree(
        id=1,
        owner_id=OWNER,
        kind=kind,
        zone="A",
        name="x",
        start_date=start,
        end_date=start + timedelta(days=20),
        created_at=CREATED,
        weeks=weeks,
    )


def test_find_defects_only_flags_empty_structure_for_eager_plans():
    assert find_defects(_tree(PlanKind.TEMPLATE_WEEKS)) == (DEFECT_NO_WEEKS,)
    assert find_defects(_tree(PlanKind.ARCHIVE), expects_scaffold=False) == ()
    tuesday = date(2024, 6, 4)
    assert find_defects(_tree(PlanKind.ARCHIVE, start=tuesday), expects_scaffold=False) == (DEFECT_MISALIGNED_START,)


def test_debounce_wins_over_force():
    plan = _tree(PlanKind.ARCHIVE, start=date(2024, 6, 4))
    decision = decide_rebuild(plan, (DEFECT_MISALIGNED_START,), True, CREATED + timedelta(seconds=4.9))
    assert decision.rebuild is False
    assert decision.reason == "debounced"


def test_protected_kinds_only_rebuild_when_forced():
    for kind in (PlanKind.TEMPLATE_WEEKS, PlanKind.YEARLY_PLAN):
        plan = _tree(kind)
        later = CREATED + timedelta(seconds=6)
        assert decide_rebuild(plan, (DEFECT_NO_DAYS,), False, later).reason == "protected_kind"
        assert decide_rebuild(plan, (), False, later).reason == "healthy"
        assert decide_rebuild(plan, (), True, later).rebuild is True


def test_lazy_kinds_rebuild_when_defective():
    plan = _tree(PlanKind.WORKOUTS_DONE, start=date(2024, 6, 4))
    decision = decide_rebuild(plan, (DEFECT_MISALIGNED_START,), False, CREATED + timedelta(seconds=5))
    assert decision.rebuild is True
    assert decision.reason == "defective"


def test_debounce_is_tunable():
    plan = _tree(PlanKind.ARCHIVE)
    assert decide_rebuild(plan, (), True, CREATED + timedelta(seconds=2), debounce_seconds=1.0).rebuild is True


def test_cleanup_ranges_per_kind():
    template = resolve(PlanKind.TEMPLATE_WEEKS, None, TODAY)
    assert cleanup_range(template) == (date(2024, 6, 3), date(2024, 6, 30))
    yearly = resolve(PlanKind.YEARLY_PLAN, None, TODAY)
    assert cleanup_range(yearly) == (date(2024, 6, 3), date(2024, 6, 3) + timedelta(days=400))
    archive = resolve(PlanKind.ARCHIVE, None, TODAY)
    assert cleanup_range(archive) == (archive.start_date, archive.end_date)
    pinned = recipe_for_range(PlanKind.TEMPLATE_WEEKS, date(2024, 7, 3), 8)
    assert cleanup_range(pinned) == (date(2024, 7, 1), date(2024, 7, 1) + timedelta(days=62))


def test_misaligned_archive_is_rebuilt_with_monday_start(db_session):
    recipe = resolve(PlanKind.ARCHIVE, None, TODAY)
    tree = materialize(db_session, OWNER, recipe)
    db_session.execute(update(Plan).where(Plan.id == tree.id).values(start_date=date(2022, 6, 14)))
    db_session.expire_all()
    stale = materialize(db_session, OWNER, recipe)
    assert stale.start_date == date(2022, 6, 14)

    result = ensure_healthy(db_session, stale, recipe, False, stale.created_at + timedelta(seconds=10))

    assert result.rebuilt
    assert result.decision.reason == "defective"
    assert result.plan.id != stale.id
    assert result.plan.start_date == date(2022, 6, 6)
    assert result.report.plans_deleted == 1
    assert result.defects_remaining == ()


def test_misaligned_template_is_kept_without_force(db_session):
    recipe = resolve(PlanKind.TEMPLATE_WEEKS, None, TODAY)
    tree = materialize(db_session, OWNER, recipe)
    db_session.execute(update(Plan).where(Plan.id == tree.id).values(start_date=date(2024, 6, 4)))
    db_session.expire_all()
    stale = load_plan_tree(db_session, db_session.get(Plan, tree.id))

    result = ensure_healthy(db_session, stale, recipe, False, stale.created_at + timedelta(seconds=10))

    assert not result.rebuilt
    assert result.decision.reason == "protected_kind"
    assert result.plan.id == tree.id
    assert result.defects_remaining == (DEFECT_MISALIGNED_START,)


def test_forced_rebuild_replaces_template_rows(db_session):
    recipe = resolve(PlanKind.TEMPLATE_WEEKS, None, TODAY)
    tree = materialize(db_session, OWNER, recipe)
    old_day_ids = {d.id for w in tree.weeks for d in w.days}

    result = ensure_healthy(db_session, tree, recipe, True, tree.created_at + timedelta(seconds=6))

    assert result.rebuilt
    assert result.decision.reason == "forced"
    assert result.report.days_deleted == 21
    assert result.report.weeks_deleted == 3
    assert result.plan.total_days == 21
    assert not old_day_ids & {d.id for w in result.plan.weeks for d in w.days}
    assert db_session.execute(select(func.count()).select_from(Plan)).scalar_one() == 1


def test_forced_rebuild_inside_debounce_is_skipped(db_session):
    recipe = resolve(PlanKind.TEMPLATE_WEEKS, None, TODAY)
    tree = materialize(db_session, OWNER, recipe)

    result = ensure_healthy(db_session, tree, recipe, True, tree.created_at + timedelta(seconds=1))

    assert not result.rebuilt
    assert result.plan.id == tree.id


def test_forced_rebuild_detaches_days_outside_cleanup_range(db_session):
    create_completed_plan(db_session, OWNER, start_date=date(2024, 1, 1))
    tree = load_plan_tree(db_session, find_plan(db_session, OWNER, PlanKind.WORKOUTS_DONE, "C"))
    assert tree.total_days == 364
    recipe = resolve(PlanKind.WORKOUTS_DONE, None, TODAY)

    result = ensure_healthy(db_session, tree, recipe, True, tree.created_at + timedelta(seconds=10))

    assert result.rebuilt
    # Cleanup covers [2023-06-13, 2024-06-12]: Jan 1 through Jun 12 go, the rest of the year is kept.
    assert result.report.days_deleted == 164
    assert result.report.days_detached == 200
    assert result.report.weeks_deleted == 52
    kept = db_session.execute(select(PlanDay.date, PlanDay.week_id).where(PlanDay.zone == "C")).all()
    assert len(kept) == 200
    assert all(week_id is None for _, week_id in kept)
    assert min(d for d, _ in kept) == date(2024, 6, 13)


def test_delete_plan_rows_leaves_other_zones(db_session):
    zone_a = materialize(db_session, OWNER, resolve(PlanKind.TEMPLATE_WEEKS, "A", TODAY))
    materialize(db_session, OWNER, resolve(PlanKind.YEARLY_PLAN, None, TODAY))

    report = delete_plan_rows(db_session, zone_a.id)

    assert report.days_deleted == 21
    assert report.weeks_deleted == 3
    assert report.plans_deleted == 1
    zones = set(db_session.execute(select(PlanDay.zone)).scalars())
    assert zones == {"B"}
    assert db_session.execute(select(func.count()).select_from(PlanWeek)).scalar_one() == 52
