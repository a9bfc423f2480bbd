# ABOUTME: Public bulletin lookup by profile handle.
# ABOUTME: Rate limited, validated before any backend call, and cacheable at the edge.

import structlog
from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from ward_bulletin.config import Settings
from ward_bulletin.errors import (
    AppError,
    NotFoundError,
    OperationTimeoutError,
    RateLimitError,
)
from ward_bulletin.security import log_security_event, validate_profile_slug
from ward_bulletin.web.dependencies import AppSettings, ClientId, Limiters, Records

router = APIRouter(prefix="/api", tags=["public"])
log = structlog.get_logger()


def _respond(settings: Settings, status_code: int, content: dict) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers={
            "Cache-Control": settings.public_cache_control,
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.get("/bulletin")
async def public_bulletin(
    settings: AppSettings,
    limiters: Limiters,
    records: Records,
    client_id: ClientId,
    profile_slug: str | None = Query(None, alias="profileSlug"),
):
    """Bulletin shown at a profile's share link."""
    try:
        limiters.lenient.check(client_id)
    except RateLimitError as e:
        log_security_event(
            "rate_limit_exceeded",
            "Rate limit exceeded",
            identifier=client_id,
            endpoint="public_bulletin",
        )
        return _respond(settings, 429, {"error": e.message})

    if not profile_slug:
        return _respond(settings, 400, {"error": "Missing profileSlug"})
    if not validate_profile_slug(profile_slug):
        return _respond(settings, 400, {"error": "Invalid profileSlug"})

    if records is None:
        log.error("public_bulletin_unconfigured")
        return _respond(settings, 500, {"error": "Database not configured"})

    try:
        bulletin = await records.resolve_public_bulletin(profile_slug)
    except NotFoundError as e:
        return _respond(settings, 404, {"error": e.message})
    except OperationTimeoutError as e:
        return _respond(settings, 500, {"error": e.message})
    except AppError as e:
        log.error("public_bulletin_failed", profile_slug=profile_slug, code=e.code, error=e.message)
        return _respond(settings, 500, {"error": "Internal server error"})

    log.info("public_bulletin_served", profile_slug=profile_slug, bulletin_id=bulletin.id)
    return _respond(settings, 200, bulletin.model_dump(mode="json"))
