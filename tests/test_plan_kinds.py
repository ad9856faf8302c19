from datetime import date, timedelta

import pytest

from core.services.plan_kinds import (
    KIND_NAMES,
    PlanKind,
    is_legacy_alias,
    parse_kind,
    recipe_for_range,
    resolve,
    zone_for,
)

TODAY = date(2024, 6, 12)  # Wednesday


def test_template_weeks_recipe_starts_previous_monday():
    recipe = resolve(PlanKind.TEMPLATE_WEEKS, None, TODAY)
    assert recipe.start_date == date(2024, 6, 3)
    assert recipe.end_date == date(2024, 6, 23)
    assert recipe.week_count == 3
    assert recipe.zone == "A"
    assert recipe.name == "Current 3 Weeks"


def test_yearly_recipe_spans_52_weeks_in_zone_b():
    recipe = resolve(PlanKind.YEARLY_PLAN, None, TODAY)
    assert recipe.start_date == date(2024, 6, 3)
    assert recipe.end_date == date(2024, 6, 3) + timedelta(days=364)
    assert recipe.week_count == 52
    assert recipe.zone == "B"


def test_lazy_recipes_have_no_weeks():
    done = resolve(PlanKind.WORKOUTS_DONE, None, TODAY)
    assert done.is_lazy
    assert (done.start_date, done.end_date) == (TODAY - timedelta(days=365), TODAY)
    assert done.zone == "C"

    archive = resolve(PlanKind.ARCHIVE, "B", TODAY)
    assert archive.is_lazy
    assert (archive.start_date, archive.end_date) == (date(2022, 6, 12), date(2025, 6, 12))
    assert archive.zone == "D"


def test_zone_table_is_fixed_except_for_template_weeks():
    assert zone_for(PlanKind.YEARLY_PLAN, "A") == "B"
    assert zone_for(PlanKind.WORKOUTS_DONE, "A") == "C"
    assert zone_for(PlanKind.ARCHIVE) == "D"
    assert zone_for(PlanKind.TEMPLATE_WEEKS) == "A"
    assert zone_for(PlanKind.TEMPLATE_WEEKS, "c") == "C"


def test_parse_kind_accepts_legacy_alias():
    assert parse_kind("CURRENT_WEEKS") is PlanKind.TEMPLATE_WEEKS
    assert parse_kind(" yearly_plan ") is PlanKind.YEARLY_PLAN
    assert is_legacy_alias("current_weeks")
    assert not is_legacy_alias("TEMPLATE_WEEKS")


def test_parse_kind_rejects_unknown_values():
    with pytest.raises(ValueError):
        parse_kind("FORTNIGHT")
    with pytest.raises(ValueError):
        parse_kind("")


def test_recipe_for_range_aligns_to_monday():
    recipe = recipe_for_range(PlanKind.TEMPLATE_WEEKS, date(2024, 6, 13), 4, "C", name="Block")
    assert recipe.start_date == date(2024, 6, 10)
    assert recipe.end_date == date(2024, 7, 8)
    assert recipe.zone == "C"
    assert recipe.name == "Block"
    assert recipe_for_range(PlanKind.ARCHIVE, TODAY, 1).name == KIND_NAMES[PlanKind.ARCHIVE]
