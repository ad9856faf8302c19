"""Per-owner throttling of the routes that delete or rebuild plan structure.

Requests are keyed on the bearer token's owner so one owner's rebuild storm
can't exhaust another's budget behind the same proxy; unauthenticated calls
fall back to the client address.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from api.auth import owner_from_authorization
from core.config import get_settings


def owner_or_remote_address(request: Request) -> str:
    owner_id = owner_from_authorization(request.headers.get("Authorization"))
    if owner_id:
        return f"owner:{owner_id}"
    return get_remote_address(request)


def recreate_limit() -> str:
    return get_settings().recreate_rate_limit


def _limiter_enabled() -> bool:
    # Tests opt in explicitly; every other profile follows RATE_LIMIT_ENABLED.
    settings = get_settings()
    if str(settings.app_env).lower() == "test" and not settings.rate_limit_enabled:
        return False
    return bool(settings.rate_limit_enabled)


limiter = Limiter(
    key_func=owner_or_remote_address,
    storage_uri=get_settings().rate_limit_storage_uri,
    enabled=_limiter_enabled(),
    headers_enabled=True,
)


def rate_limit_exceeded_handler(request: Request, exc: Exception) -> JSONResponse:
    limit = str(getattr(exc, "detail", "") or recreate_limit())
    headers = {}
    retry_after = getattr(exc, "retry_after", None) if isinstance(exc, RateLimitExceeded) else None
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(
        status_code=429,
        content={
            "detail": {
                "code": "RATE_LIMITED",
                "message": f"Too many plan rebuilds for {owner_or_remote_address(request)}: limit {limit}",
            }
        },
        headers=headers,
    )
