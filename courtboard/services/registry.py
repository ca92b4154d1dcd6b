"""
Service registry – holds the backend, board store and wet-courts controller.

Provides a single place for the routers to reach the long-lived services.
Initialized once at application startup.

The board store is kept fresh by a background poller so request handlers
always read a complete snapshot instead of hitting the backend per request.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from courtboard.config import BOARD_POLL_INTERVAL
from courtboard.services.api.client import BackendApiClient
from courtboard.services.api.service import ApiCourtBackend
from courtboard.services.backend import CourtBackend
from courtboard.services.board import BoardPoller, BoardStore
from courtboard.services.events import EventChannel
from courtboard.services.orchestrator import InFlightCommands
from courtboard.services.wet_courts import WetCourtsController


class ServiceRegistry:
    """
    Registry of the engine's long-lived services.

    ``register_api_backend`` wires the HTTP backend; tests call
    ``register_backend`` with an in-memory fake instead.
    """

    def __init__(self) -> None:
        self._backend: CourtBackend | None = None
        self._client: BackendApiClient | None = None
        self._board: BoardStore | None = None
        self._poller: BoardPoller | None = None
        self._wet_courts: WetCourtsController | None = None
        self.events = EventChannel()
        self.in_flight = InFlightCommands()

    def register_backend(
        self,
        backend: CourtBackend,
        *,
        poll_interval: float = BOARD_POLL_INTERVAL,
    ) -> None:
        self._backend = backend
        self._board = BoardStore(backend)
        self._poller = BoardPoller(self._board, interval=poll_interval)
        self._wet_courts = WetCourtsController(backend, self.events, self._board)

    def register_api_backend(self) -> None:
        """Initialize and register the HTTP backend integration."""
        self._client = BackendApiClient()
        self.register_backend(ApiCourtBackend(self._client))

    async def start(self) -> None:
        """Fetch the first board and start polling."""
        if self._poller is not None:
            await self._poller.start()

    async def stop(self) -> None:
        """Stop background tasks and close the HTTP client."""
        if self._poller is not None:
            await self._poller.stop()
        if self._client is not None:
            await self._client.close()
            self._client = None

    def request_refresh(self) -> bool:
        """Pull the board on the next poller iteration instead of waiting."""
        if self._poller is None or not self._poller.is_running:
            return False
        self._poller.wake()
        return True

    @property
    def is_configured(self) -> bool:
        return self._backend is not None

    @property
    def poll_failures(self) -> int:
        return self._poller.consecutive_failures if self._poller is not None else 0

    def _require(self, service: object, name: str) -> object:
        if service is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"{name} is not configured",
            )
        return service

    @property
    def backend(self) -> CourtBackend:
        return self._require(self._backend, "Backend")  # type: ignore[return-value]

    @property
    def board(self) -> BoardStore:
        return self._require(self._board, "Board")  # type: ignore[return-value]

    @property
    def wet_courts(self) -> WetCourtsController:
        return self._require(self._wet_courts, "Wet courts")  # type: ignore[return-value]


# ── Singleton instance ────────────────────────────────────────────────────
registry = ServiceRegistry()
