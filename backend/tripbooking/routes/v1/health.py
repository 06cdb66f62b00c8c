# backend/tripbooking/routes/v1/health.py
"""
Health check endpoint for monitoring and load balancer probes.

Reports ``degraded`` when the database could not be reached at startup or
after a reconnect; the service keeps answering either way.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Response, status

from ...api.dependencies import get_persistence
from ...core.config import settings
from ...core.constants import BRAND_NAME
from ...database.gateway import PersistenceGateway
from ...schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    response: Response,
    persistence: PersistenceGateway = Depends(get_persistence),
) -> HealthResponse:
    reachable = await asyncio.to_thread(persistence.ping)
    if reachable:
        persistence.degraded = False
    degraded = persistence.degraded or not reachable
    if degraded:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(
        status="degraded" if degraded else "healthy",
        service=f"{BRAND_NAME.lower()}-api",
        environment=settings.environment,
        database="connected" if reachable else "unreachable",
        degraded=degraded,
    )
