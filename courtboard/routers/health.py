"""
Liveness plus board freshness.

``status`` is ``degraded`` while no board has been loaded or while the
poller keeps failing; the kiosk keeps serving the last board either way.
"""

from datetime import UTC, datetime

from fastapi import APIRouter

from courtboard.models import HealthResponse
from courtboard.services.registry import registry

router = APIRouter(prefix="/api", tags=["health"])

VERSION = "0.1.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Service and board freshness",
)
async def get_health() -> HealthResponse:
    if not registry.is_configured:
        return HealthResponse(
            status="degraded", version=VERSION, timestamp=datetime.now(UTC), board_loaded=False
        )

    store = registry.board
    failures = registry.poll_failures
    return HealthResponse(
        status="ok" if store.is_populated and not failures else "degraded",
        version=VERSION,
        timestamp=datetime.now(UTC),
        board_loaded=store.is_populated,
        last_board_refresh=store.last_refresh,
        poll_failures=failures,
    )
