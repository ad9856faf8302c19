"""Plan kind resolution: which dates, how many weeks, and which zone a view needs.

Every other module looks zones up through ``zone_for`` / ``KIND_ZONES`` rather
than re-deriving them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional

from core.services.calendar_dates import add_years, monday_of


class PlanKind(str, Enum):
    TEMPLATE_WEEKS = "TEMPLATE_WEEKS"
    YEARLY_PLAN = "YEARLY_PLAN"
    WORKOUTS_DONE = "WORKOUTS_DONE"
    ARCHIVE = "ARCHIVE"


LEGACY_KIND_ALIASES: dict[str, PlanKind] = {"CURRENT_WEEKS": PlanKind.TEMPLATE_WEEKS}

# None means the zone is supplied by the caller's section hint.
KIND_ZONES: dict[PlanKind, Optional[str]] = {
    PlanKind.TEMPLATE_WEEKS: None,
    PlanKind.YEARLY_PLAN: "B",
    PlanKind.WORKOUTS_DONE: "C",
    PlanKind.ARCHIVE: "D",
}

KIND_NAMES: dict[PlanKind, str] = {
    PlanKind.TEMPLATE_WEEKS: "Current 3 Weeks",
    PlanKind.YEARLY_PLAN: "Yearly Plan",
    PlanKind.WORKOUTS_DONE: "Workouts Done",
    PlanKind.ARCHIVE: "Archive",
}

PROTECTED_KINDS = frozenset({PlanKind.TEMPLATE_WEEKS, PlanKind.YEARLY_PLAN})
LAZY_KINDS = frozenset({PlanKind.WORKOUTS_DONE, PlanKind.ARCHIVE})

TEMPLATE_WEEK_COUNT = 3
YEARLY_WEEK_COUNT = 52
DEFAULT_TEMPLATE_ZONE = "A"


@dataclass(frozen=True)
class PlanRecipe:
    kind: PlanKind
    zone: str
    start_date: date
    end_date: date
    week_count: int
    name: str
    # Rolling recipes follow "today"; pinned ones keep the dates they were created with.
    rolling: bool = False

    @property
    def is_lazy(self) -> bool:
        return self.week_count == 0


def parse_kind(value: str) -> PlanKind:
    """Map a wire value (including legacy aliases) to a PlanKind.

    Raises ValueError for anything unrecognized.
    """
    key = str(value or "").strip().upper()
    if key in LEGACY_KIND_ALIASES:
        return LEGACY_KIND_ALIASES[key]
    return PlanKind(key)


def is_legacy_alias(value: str) -> bool:
    return str(value or "").strip().upper() in LEGACY_KIND_ALIASES


def zone_for(kind: PlanKind, section_hint: Optional[str] = None) -> str:
    fixed = KIND_ZONES[kind]
    if fixed is not None:
        return fixed
    return (section_hint or DEFAULT_TEMPLATE_ZONE).upper()


def resolve(kind: PlanKind, section_hint: Optional[str], today: date) -> PlanRecipe:
    """Recipe for ``kind`` evaluated relative to ``today``."""
    zone = zone_for(kind, section_hint)
    name = KIND_NAMES[kind]
    if kind is PlanKind.TEMPLATE_WEEKS:
        start = monday_of(today) - timedelta(days=7)
        return PlanRecipe(kind, zone, start, start + timedelta(days=20), TEMPLATE_WEEK_COUNT, name, rolling=True)
    if kind is PlanKind.YEARLY_PLAN:
        start = monday_of(today) - timedelta(days=7)
        return PlanRecipe(kind, zone, start, start + timedelta(days=364), YEARLY_WEEK_COUNT, name)
    if kind is PlanKind.WORKOUTS_DONE:
        return PlanRecipe(kind, zone, today - timedelta(days=365), today, 0, name)
    if kind is PlanKind.ARCHIVE:
        return PlanRecipe(kind, zone, add_years(today, -2), add_years(today, 1), 0, name)
    raise ValueError(f"unsupported plan kind: {kind!r}")


def recipe_for_range(
    kind: PlanKind,
    requested_start: date,
    week_count: int,
    section_hint: Optional[str] = None,
    name: Optional[str] = None,
) -> PlanRecipe:
    """Explicit recipe for user-initiated creation: Monday-aligned start, ``week_count`` weeks."""
    start = monday_of(requested_start)
    end = start + timedelta(days=week_count * 7)
    return PlanRecipe(kind, zone_for(kind, section_hint), start, end, week_count, name or KIND_NAMES[kind])
