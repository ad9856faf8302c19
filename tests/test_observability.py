"""Tests for JSON logging and request context."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime

from api.observability import (
    JsonFormatter,
    bind_request,
    plan_view_log_fields,
    request_log_fields,
    unbind,
)
from core.services.materialization import PlanTree
from core.services.plan_kinds import PlanKind
from core.services.training_calendar import PlanView


def _record(msg="plan_materialized", **extra):
    record = logging.LogRecord(name="core.services.materialization", level=logging.INFO, pathname="x.py", lineno=1, msg=msg, args=(), exc_info=None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    parsed = json.loads(JsonFormatter().format(_record(plan_id=7, zone="B", start_date=date(2024, 6, 3))))
    assert parsed["event"] == "plan_materialized"
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "core.services.materialization"
    assert parsed["plan_id"] == 7
    assert parsed["start_date"] == "2024-06-03"


def test_json_formatter_includes_request_context():
    token = bind_request("req-42", owner_id="owner-9")
    try:
        parsed = json.loads(JsonFormatter().format(_record()))
        explicit = json.loads(JsonFormatter().format(_record(owner_id="owner-1")))
    finally:
        unbind(token)
    assert parsed["request_id"] == "req-42"
    assert parsed["owner_id"] == "owner-9"
    assert explicit["owner_id"] == "owner-1"

    outside = json.loads(JsonFormatter().format(_record()))
    assert "request_id" not in outside
    assert "owner_id" not in outside


def test_json_formatter_serializes_domain_values():
    parsed = json.loads(JsonFormatter().format(_record(kind=PlanKind.YEARLY_PLAN, defects=("no_days",), zones=frozenset({"B"}))))
    assert parsed["kind"] == "YEARLY_PLAN"
    assert parsed["defects"] == ["no_days"]
    assert parsed["zones"] == ["B"]


def test_request_log_fields_rounds_duration():
    fields = request_log_fields(method="GET", path="/api/v1/plans", status_code=200, duration_ms=12.3456, client_ip=None)
    assert fields["duration_ms"] == 12.35
    assert fields["client_ip"] == ""


def test_plan_view_log_fields():
    tree = PlanTree(
        id=3,
        owner_id="o1",
        kind=PlanKind.ARCHIVE,
        zone="D",
        name="Archive",
        start_date=date(2022, 6, 6),
        end_date=date(2025, 6, 12),
        created_at=datetime(2024, 6, 12),
        weeks=(),
    )
    fields = plan_view_log_fields(PlanView(plan=tree, rebuild_reason="defective", defects=("start_not_monday",)))
    assert fields["kind"] == "ARCHIVE"
    assert fields["days"] == 0
    assert fields["windowed"] is False
    assert fields["defects"] == ("start_not_monday",)
