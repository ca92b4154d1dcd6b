"""Main FastAPI application for the Courtboard assignment engine."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from courtboard.config import ENVIRONMENT
from courtboard.rate_limit import limiter
from courtboard.routers import assignments, board, health, wet_courts
from courtboard.services.registry import registry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if not registry.is_configured:
        registry.register_api_backend()
    await registry.start()
    logger.info("Courtboard engine started (%s)", ENVIRONMENT)
    try:
        yield
    finally:
        await registry.stop()
        logger.info("Courtboard engine stopped")


app = FastAPI(
    title="Courtboard Engine API",
    description="Court availability, waitlist estimates and court assignment",
    version=health.VERSION,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(health.router)
app.include_router(board.router)
app.include_router(assignments.router)
app.include_router(wet_courts.router)
