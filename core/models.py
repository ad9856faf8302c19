from __future__ import annotations

import datetime as dt

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class Period(Base):
    __tablename__ = "periods"
    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(120))
    description: Mapped[str] = mapped_column(Text, default="")
    color: Mapped[str] = mapped_column(String(16))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)


class Plan(Base):
    __tablename__ = "plans"
    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)
    kind: Mapped[str] = mapped_column(String(20))
    zone: Mapped[str] = mapped_column(String(1))
    name: Mapped[str] = mapped_column(String(120))
    start_date: Mapped[dt.date] = mapped_column(Date)
    end_date: Mapped[dt.date] = mapped_column(Date)
    rolling: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)

    weeks: Mapped[list["PlanWeek"]] = relationship(
        back_populates="plan", order_by="PlanWeek.week_number", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "kind", "zone", name="uq_plan_owner_kind_zone"),
        {"sqlite_autoincrement": True},
    )


class PlanWeek(Base):
    __tablename__ = "plan_weeks"
    id: Mapped[int] = mapped_column(primary_key=True)
    plan_id: Mapped[int] = mapped_column(ForeignKey("plans.id"), index=True)
    week_number: Mapped[int] = mapped_column(Integer)

    plan: Mapped[Plan] = relationship(back_populates="weeks")

    __table_args__ = (
        UniqueConstraint("plan_id", "week_number", name="uq_plan_week_number"),
        CheckConstraint("week_number >= 1", name="ck_plan_week_number_positive"),
        {"sqlite_autoincrement": True},
    )


class PlanDay(Base):
    __tablename__ = "plan_days"
    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    zone: Mapped[str] = mapped_column(String(1))
    day_of_week: Mapped[int] = mapped_column(Integer)
    week_number: Mapped[int] = mapped_column(Integer)
    week_id: Mapped[int | None] = mapped_column(ForeignKey("plan_weeks.id"), index=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("periods.id"))
    weather: Mapped[str] = mapped_column(String(120), default="")
    feeling_status: Mapped[str] = mapped_column(String(8), default="5")
    notes: Mapped[str] = mapped_column(Text, default="")

    __table_args__ = (
        UniqueConstraint("owner_id", "date", "zone", name="uq_plan_day_owner_date_zone"),
        CheckConstraint("day_of_week between 1 and 7", name="ck_plan_day_of_week"),
        {"sqlite_autoincrement": True},
    )
