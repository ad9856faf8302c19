"""Pydantic validation models for every caller-facing calendar operation."""

from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from core.config import get_settings
from core.services.plan_kinds import parse_kind


def normalize_kind(v: str) -> str:
    try:
        parse_kind(v)
    except ValueError:
        raise ValueError(f"unknown plan type {v!r}")
    return str(v).strip().upper()


def normalize_section(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    zone = str(v).strip().upper()
    allowed = get_settings().template_zones
    if zone not in allowed:
        raise ValueError(f"section must be one of {list(allowed)}")
    return zone


class PlanQueryInput(BaseModel):
    owner_id: str = Field(min_length=1, max_length=64)
    type: str = "CURRENT_WEEKS"
    section: Optional[str] = None
    force_recreate: bool = False
    window: Optional[Literal["current", "full"]] = None

    @field_validator("type")
    @classmethod
    def valid_type(cls, v):
        return normalize_kind(v)

    @field_validator("section")
    @classmethod
    def valid_section(cls, v):
        return normalize_section(v)


class PlanCreateInput(BaseModel):
    owner_id: str = Field(min_length=1, max_length=64)
    type: str
    start_date: date
    number_of_weeks: int = Field(ge=1, le=104)
    section: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)

    @field_validator("type")
    @classmethod
    def valid_type(cls, v):
        return normalize_kind(v)

    @field_validator("section")
    @classmethod
    def valid_section(cls, v):
        return normalize_section(v)


class YearlyPlanCreateInput(BaseModel):
    owner_id: str = Field(min_length=1, max_length=64)
    start_date: date


class CompletedPlanCreateInput(BaseModel):
    owner_id: str = Field(min_length=1, max_length=64)
    start_date: Optional[date] = None


class PlanDeleteInput(BaseModel):
    owner_id: str = Field(min_length=1, max_length=64)
    type: str = "CURRENT_WEEKS"
    section: Optional[str] = None

    @field_validator("type")
    @classmethod
    def valid_type(cls, v):
        return normalize_kind(v)

    @field_validator("section")
    @classmethod
    def valid_section(cls, v):
        return normalize_section(v)


class PlanResetInput(BaseModel):
    owner_id: str = Field(min_length=1, max_length=64)
    type: Optional[str] = None

    @field_validator("type")
    @classmethod
    def valid_type(cls, v):
        if v is None or v == "":
            return None
        return normalize_kind(v)
