import logging
from typing import Optional

from fastapi import APIRouter, Query, Request, Response, status
from pydantic import TypeAdapter, ValidationError

from api.deps import CurrentOwner, DbSession, Today
from api.observability import plan_view_log_fields
from api.ratelimit import limiter, recreate_limit
from api.schemas import (
    CompletedPlanBody,
    DeletedPlanOut,
    HealthOut,
    PlanCreateBody,
    PlanOut,
    PlanViewOut,
    QueryStatsOut,
    ResetOut,
    YearlyPlanBody,
    YearlyPlanOut,
)
from core.config import get_settings
from core.db import get_query_stats
from core.services import training_calendar

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1")
_flag = TypeAdapter(bool)


@router.get("/health", response_model=HealthOut, tags=["ops"])
def health():
    return HealthOut(
        status="ok",
        app_env=get_settings().app_env,
        queries=QueryStatsOut.model_validate(get_query_stats()),
    )


def _is_forced(value: str) -> bool:
    # Unparseable values are rejected by the service with a 422.
    try:
        return _flag.validate_python(value)
    except ValidationError:
        return False


@limiter.limit(recreate_limit)
def _recreate_gate(request: Request, response: Response) -> None:
    """Applies the mutating routes' limit to forced rebuilds."""
    del request, response


@router.get("/plans", response_model=PlanViewOut, tags=["plans"])
def get_plan(
    request: Request,
    response: Response,
    owner: CurrentOwner,
    db: DbSession,
    today: Today,
    plan_type: str = Query("CURRENT_WEEKS", alias="type"),
    section: Optional[str] = Query(None),
    force_recreate: str = Query("false", alias="forceRecreate"),
    window: Optional[str] = Query(None),
):
    if _is_forced(force_recreate):
        _recreate_gate(request=request, response=response)
    view = training_calendar.get_plan(
        db,
        owner.owner_id,
        kind=plan_type,
        zone_hint=section,
        force_recreate=force_recreate,
        window=window,
        today=today,
    )
    logger.info("plan_served", extra=plan_view_log_fields(view))
    return PlanViewOut.model_validate(view)


@router.post("/plans", response_model=PlanOut, status_code=status.HTTP_201_CREATED, tags=["plans"])
@limiter.limit(recreate_limit)
def create_plan(request: Request, response: Response, body: PlanCreateBody, owner: CurrentOwner, db: DbSession):
    del request, response
    tree = training_calendar.create_plan(
        db,
        owner.owner_id,
        body.type,
        body.start_date,
        body.number_of_weeks,
        zone_hint=body.section,
        name=body.name,
    )
    return PlanOut.model_validate(tree)


@router.post("/plans/yearly", response_model=YearlyPlanOut, status_code=status.HTTP_201_CREATED, tags=["plans"])
@limiter.limit(recreate_limit)
def create_yearly_plan(request: Request, response: Response, body: YearlyPlanBody, owner: CurrentOwner, db: DbSession):
    del request, response
    created = training_calendar.create_yearly_plan(db, owner.owner_id, body.start_date)
    return YearlyPlanOut(
        plan=PlanOut.model_validate(created.plan),
        done_plan_id=created.done_plan_id,
        replaced_plan_ids=created.replaced_plan_ids,
    )


@router.post("/plans/completed", response_model=PlanOut, status_code=status.HTTP_201_CREATED, tags=["plans"])
@limiter.limit(recreate_limit)
def create_completed_plan(
    request: Request,
    response: Response,
    body: CompletedPlanBody,
    owner: CurrentOwner,
    db: DbSession,
    today: Today,
):
    del request, response
    tree = training_calendar.create_completed_plan(db, owner.owner_id, start_date=body.start_date, today=today)
    return PlanOut.model_validate(tree)


@router.delete("/plans/reset", response_model=ResetOut, tags=["plans"])
@limiter.limit(recreate_limit)
def reset_plans(
    request: Request,
    response: Response,
    owner: CurrentOwner,
    db: DbSession,
    plan_type: Optional[str] = Query(None, alias="type"),
):
    del request, response
    return ResetOut(plans_deleted=training_calendar.reset_plans(db, owner.owner_id, kind=plan_type))


@router.delete("/plans", response_model=DeletedPlanOut, tags=["plans"])
@limiter.limit(recreate_limit)
def delete_plan(
    request: Request,
    response: Response,
    owner: CurrentOwner,
    db: DbSession,
    plan_type: str = Query("CURRENT_WEEKS", alias="type"),
    section: Optional[str] = Query(None),
):
    del request, response
    plan_id = training_calendar.delete_plan(db, owner.owner_id, kind=plan_type, zone_hint=section)
    return DeletedPlanOut(deleted_plan_id=plan_id)
