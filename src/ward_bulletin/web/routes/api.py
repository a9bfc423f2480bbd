# ABOUTME: Service API routes.
# ABOUTME: Health check for the load balancer.

from fastapi import APIRouter
from pydantic import BaseModel

from ward_bulletin.web.dependencies import Records

router = APIRouter(prefix="/api", tags=["api"])


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str
    version: str = "0.1.0"
    database: bool = False


@router.get("/health", response_model=HealthResponse)
async def health_check(records: Records):
    """Health check endpoint for load balancer."""
    return HealthResponse(status="healthy", database=records is not None)
