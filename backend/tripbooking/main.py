# backend/tripbooking/main.py
"""
FastAPI application entry point.

Mounts the v1 routers, the Prometheus endpoint and the error envelope
handlers. Startup retries the database with backoff and starts in
degraded mode rather than refusing to serve.
"""

import asyncio
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import is_running_tests, settings
from .core.constants import BRAND_NAME
from .database.gateway import get_persistence_gateway
from .errors import register_error_handlers
from .routes import prometheus
from .routes.v1 import bookings as bookings_v1, health as health_v1, payments as payments_v1

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    persistence = get_persistence_gateway()
    connected = await asyncio.to_thread(persistence.connect_with_backoff)
    if not connected:
        logger.error("Starting without a database connection; /health reports degraded")

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")
    persistence.engine.dispose()


app = FastAPI(
    title=f"{BRAND_NAME} API",
    description="Trip booking and payment settlement",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

register_error_handlers(app)

# Create API v1 router
api_v1 = APIRouter(prefix=settings.api_v1_prefix)
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(payments_v1.router, prefix="/payments")

app.include_router(api_v1)
app.include_router(health_v1.router)
app.include_router(prometheus.router)
