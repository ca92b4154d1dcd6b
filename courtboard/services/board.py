"""
In-memory board state fed by the backend.

The board arrives either pushed (``apply``) or pulled (``refresh``, and
the BoardPoller on a fixed interval).  Each snapshot replaces the
previous one atomically so readers never see a partially-updated board.

Usage::

    store  = BoardStore(backend)
    poller = BoardPoller(store, interval=5)
    await poller.start()        # initial fetch + starts background loop
    ...
    await poller.stop()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from courtboard.models import BoardSnapshot, Court
from courtboard.services.backend import CourtBackend
from courtboard.services.background import BackgroundWorker

logger = logging.getLogger(__name__)

BoardListener = Callable[[BoardSnapshot], None]


class BoardStore:
    def __init__(self, backend: CourtBackend) -> None:
        self._backend = backend
        self._snapshot = BoardSnapshot()
        self._last_refresh: datetime | None = None
        self._listeners: list[BoardListener] = []

    # ── Write ──────────────────────────────────────────────────────────

    def apply(self, snapshot: BoardSnapshot) -> None:
        """Atomically replace the board and notify subscribers."""
        self._snapshot = snapshot
        self._last_refresh = datetime.now(UTC)
        logger.debug(
            "Board updated: %d courts, %d blocks, %d waiting",
            len(snapshot.courts),
            len(snapshot.blocks),
            len(snapshot.waitlist),
        )
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Board listener failed")

    async def refresh(self) -> BoardSnapshot:
        """Fetch the board from the backend and apply it."""
        snapshot = await self._backend.get_board()
        self.apply(snapshot)
        return snapshot

    # ── Subscriptions ──────────────────────────────────────────────────

    def subscribe(self, listener: BoardListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Read ───────────────────────────────────────────────────────────

    @property
    def snapshot(self) -> BoardSnapshot:
        return self._snapshot

    @property
    def is_populated(self) -> bool:
        return self._last_refresh is not None

    @property
    def last_refresh(self) -> datetime | None:
        return self._last_refresh

    def court(self, number: int) -> Court | None:
        return self._snapshot.court(number)


class BoardPoller(BackgroundWorker):
    """Re-fetches the board on a fixed interval (the poll half of push/poll)."""

    def __init__(self, store: BoardStore, *, interval: float) -> None:
        super().__init__(interval=interval, name="board-poller")
        self._store = store

    async def _on_start(self) -> None:
        try:
            await self._store.refresh()
        except Exception:
            logger.exception("Initial board fetch failed, polling will retry")

    async def _tick(self) -> None:
        await self._store.refresh()
