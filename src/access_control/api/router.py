"""Access-control service API.

Exposes the core as a standalone service:
- POST /api/v1/access/rate-limit/check - CheckRateLimit(identity, endpoint, role)
- POST /api/v1/access/roles/resolve - ResolveRole(identity)
- POST /api/v1/access/security-events - fire-and-forget event ingestion

Components come from src.access_control.dependencies singletons.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.access_control.auth.enums import Role
from src.access_control.auth.roles import RoleResolution
from src.access_control.dependencies import (
    get_rate_limiter,
    get_role_resolver,
    get_security_monitor,
)
from src.access_control.errors import RateLimitExceeded
from src.access_control.logging_utils import (
    redact_pii,
    redact_sensitive_fields,
    sanitize_for_log,
)
from src.access_control.rate_limit import RateLimitResult, get_rate_limit_headers
from src.access_control.security import SecurityEvent
from src.access_control.security.models import Severity

logger = logging.getLogger(__name__)

access_router = APIRouter(prefix="/api/v1/access", tags=["access-control"])


class RateLimitCheckRequest(BaseModel):
    """Request body for POST /api/v1/access/rate-limit/check."""

    identity: str | None = None
    endpoint: str = Field(..., min_length=1, max_length=128)
    role: Role = Role.USER
    # When true, an exceeded quota returns 429 instead of allowed=false
    enforce: bool = False


class RoleResolveRequest(BaseModel):
    """Request body for POST /api/v1/access/roles/resolve."""

    identity: str | None = None


class SecurityEventRequest(BaseModel):
    """Request body for POST /api/v1/access/security-events."""

    severity: Severity
    reason: str = Field(..., min_length=1, max_length=200)
    metadata: dict = Field(default_factory=dict)


@access_router.post("/rate-limit/check", response_model=RateLimitResult)
async def check_rate_limit(body: RateLimitCheckRequest) -> JSONResponse:
    limiter = get_rate_limiter()
    if body.enforce:
        result = await limiter.enforce_limit(body.identity, body.endpoint, body.role)
    else:
        result = await limiter.check_limit(body.identity, body.endpoint, body.role)
    return JSONResponse(
        content=result.model_dump(),
        headers=get_rate_limit_headers(result),
    )


@access_router.post("/roles/resolve", response_model=RoleResolution)
async def resolve_role(body: RoleResolveRequest) -> RoleResolution:
    return await get_role_resolver().resolve_role(body.identity)


@access_router.post("/security-events", status_code=202)
async def ingest_security_event(
    body: SecurityEventRequest, background_tasks: BackgroundTasks
) -> dict:
    event = SecurityEvent(
        severity=body.severity,
        reason=redact_pii(body.reason, max_length=200),
        metadata=redact_sensitive_fields(body.metadata),
    )
    # SecurityMonitor.emit never raises; sink failures are logged there
    background_tasks.add_task(get_security_monitor().emit, event)
    return {"accepted": True, "event_id": event.event_id}


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    logger.info(
        "Rate limited request rejected",
        extra={
            "path": sanitize_for_log(request.url.path),
            "endpoint": sanitize_for_log(exc.endpoint, max_length=64),
            "limit": exc.limit,
        },
    )
    return JSONResponse(
        status_code=429,
        content={"detail": exc.message, "endpoint": exc.endpoint, "limit": exc.limit},
        headers={
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": "0",
            "Retry-After": str(exc.retry_after),
        },
    )


def create_app() -> FastAPI:
    """Build the access-control service app."""
    app = FastAPI(title="Access Control Service")
    app.include_router(access_router)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    return app
