from __future__ import annotations

from datetime import date as dt_date
from datetime import datetime as dt_datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from core.services.plan_kinds import PlanKind


class DayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: dt_date
    zone: str
    day_of_week: int
    week_number: int
    week_id: Optional[int] = None
    period_id: int
    weather: str
    feeling_status: str
    notes: str


class WeekOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plan_id: int
    week_number: int
    days: list[DayOut]


class WindowWeekOut(WeekOut):
    original_week_number: int


class PlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    kind: PlanKind
    zone: str
    name: str
    start_date: dt_date
    end_date: dt_date
    created_at: dt_datetime
    weeks: list[WeekOut]
    loose_days: list[DayOut] = Field(default_factory=list)


class RebuildReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    days_deleted: int
    weeks_deleted: int
    plans_deleted: int
    days_detached: int


class PlanViewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plan: PlanOut
    window: Optional[list[WindowWeekOut]] = None
    rebuilt: bool
    rebuild_reason: str
    defects: list[str]
    report: Optional[RebuildReportOut] = None


class PlanCreateBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    start_date: dt_date = Field(alias="startDate")
    number_of_weeks: int = Field(alias="numberOfWeeks")
    section: Optional[str] = None
    name: Optional[str] = None


class YearlyPlanBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: dt_date = Field(alias="startDate")


class CompletedPlanBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: Optional[dt_date] = Field(default=None, alias="startDate")


class YearlyPlanOut(BaseModel):
    plan: PlanOut
    done_plan_id: int
    replaced_plan_ids: list[int]


class DeletedPlanOut(BaseModel):
    deleted_plan_id: int


class ResetOut(BaseModel):
    plans_deleted: int


class QueryStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    slow: int
    p50_ms: float
    p95_ms: float


class HealthOut(BaseModel):
    status: str
    app_env: str
    queries: QueryStatsOut
