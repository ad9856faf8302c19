from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from api.auth import owner_from_authorization
from api.observability import (
    bind_request,
    configure_logging,
    monotonic_ms,
    new_request_id,
    request_log_fields,
    unbind,
)
from api.ratelimit import limiter, rate_limit_exceeded_handler
from api.routes import router
from core.config import get_settings
from core.services.training_calendar import InvalidPlanRequest, PlanNotFound

logger = logging.getLogger(__name__)


def invalid_plan_request_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = getattr(exc, "errors", [])
    logger.info("invalid_plan_request", extra={"path": request.url.path, "error_count": len(errors)})
    return JSONResponse(
        status_code=422,
        content={"detail": {"code": "INVALID_PLAN_REQUEST", "message": str(exc), "errors": errors}},
    )


def plan_not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": {"code": "PLAN_NOT_FOUND", "message": str(exc)}})


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Training Calendar API", version="1.0.0")
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(InvalidPlanRequest, invalid_plan_request_handler)
    app.add_exception_handler(PlanNotFound, plan_not_found_handler)
    app.include_router(router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_and_logging(request: Request, call_next: Callable) -> Response:
        header_name = settings.request_id_header_name or "X-Request-ID"
        request_id = (request.headers.get(header_name) or "").strip() or new_request_id()
        token = bind_request(request_id, owner_from_authorization(request.headers.get("Authorization")))
        started_ms = monotonic_ms()
        client_ip = getattr(request.client, "host", None)
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = monotonic_ms() - started_ms
            logger.exception(
                "http_request_error",
                extra=request_log_fields(
                    method=request.method,
                    path=request.url.path,
                    status_code=500,
                    duration_ms=duration_ms,
                    client_ip=client_ip,
                ),
            )
            raise
        else:
            response.headers[header_name] = request_id
            duration_ms = monotonic_ms() - started_ms
            logger.info(
                "http_request",
                extra=request_log_fields(
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                    client_ip=client_ip,
                ),
            )
            return response
        finally:
            unbind(token)

    return app


app = create_app()
