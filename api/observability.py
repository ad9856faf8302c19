"""Structured JSON logs for calendar requests.

Each line is one event: the log message is the event name and the ``extra``
fields passed by the services become top-level keys. The middleware binds a
``RequestContext`` so every event logged while serving a request carries its
request id and, when the caller authenticated, the owner it acted for.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4


@dataclass(frozen=True)
class RequestContext:
    request_id: Optional[str] = None
    owner_id: Optional[str] = None


_context_var: contextvars.ContextVar[RequestContext] = contextvars.ContextVar("request_context", default=RequestContext())
_configured = False
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}
_QUIET_LOGGERS = {"sqlalchemy.engine": logging.WARNING, "alembic": logging.WARNING}


def current_context() -> RequestContext:
    return _context_var.get()


def bind_request(request_id: str, owner_id: Optional[str] = None) -> contextvars.Token:
    return _context_var.set(RequestContext(request_id=request_id, owner_id=owner_id))


def unbind(token: contextvars.Token) -> None:
    _context_var.reset(token)


def new_request_id() -> str:
    return uuid4().hex


def _json_default(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per record; service ``extra`` fields win over context."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        event.update({k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS and not k.startswith("_")})
        ctx = current_context()
        if ctx.request_id:
            event.setdefault("request_id", ctx.request_id)
        if ctx.owner_id:
            event.setdefault("owner_id", ctx.owner_id)
        if record.exc_info:
            event["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(event, default=_json_default, separators=(",", ":"))


def configure_logging(level: str = "INFO") -> None:
    global _configured
    if _configured:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers.clear()
        logging.getLogger(name).propagate = True
    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
    _configured = True


def request_log_fields(*, method: str, path: str, status_code: int, duration_ms: float, client_ip: Optional[str]) -> dict[str, object]:
    return {
        "method": method,
        "path": path,
        "status_code": int(status_code),
        "duration_ms": round(float(duration_ms), 2),
        "client_ip": client_ip or "",
    }


def plan_view_log_fields(view) -> dict[str, object]:
    """Flatten a ``PlanView`` into the fields logged once per served plan."""
    plan = view.plan
    fields: dict[str, object] = {
        "owner_id": plan.owner_id,
        "plan_id": plan.id,
        "kind": plan.kind,
        "zone": plan.zone,
        "weeks": len(plan.weeks),
        "days": plan.total_days + len(plan.loose_days),
        "windowed": view.window is not None,
        "rebuilt": bool(view.rebuilt),
        "rebuild_reason": view.rebuild_reason,
    }
    if view.defects:
        fields["defects"] = view.defects
    if view.report is not None:
        fields["days_deleted"] = view.report.days_deleted
        fields["days_detached"] = view.report.days_detached
    return fields


def monotonic_ms() -> float:
    return time.perf_counter() * 1000.0
