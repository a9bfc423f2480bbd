# ABOUTME: FastAPI dependency injection for settings, rate limiters, and services.
# ABOUTME: Everything is read from app state set up by the application factory.

from typing import Annotated

from fastapi import Depends, Request

from ward_bulletin.config import Settings
from ward_bulletin.ratelimit import RateLimiters
from ward_bulletin.services.records import RemoteRecordService


def get_app_settings(request: Request) -> Settings:
    """Get settings from app state."""
    return request.app.state.settings


AppSettings = Annotated[Settings, Depends(get_app_settings)]


def get_rate_limiters(request: Request) -> RateLimiters:
    return request.app.state.limiters


Limiters = Annotated[RateLimiters, Depends(get_rate_limiters)]


def get_record_service(request: Request) -> RemoteRecordService | None:
    """Record service, or None when no database is configured."""
    return request.app.state.records


Records = Annotated[RemoteRecordService | None, Depends(get_record_service)]


def client_identifier(request: Request) -> str:
    """Rate limit key for the caller: the peer address.

    Forwarded headers are only honoured through uvicorn's proxy handling,
    which rewrites the peer address for trusted proxies.
    """
    return request.client.host if request.client else "unknown"


ClientId = Annotated[str, Depends(client_identifier)]
