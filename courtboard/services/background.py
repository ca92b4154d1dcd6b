from __future__ import annotations

import asyncio
import contextlib
import logging

logger = logging.getLogger(__name__)


class BackgroundWorker:
    """
    Periodic asyncio loop with an out-of-band wake-up.

    Subclasses implement ``_tick``.  ``wake()`` runs the next tick
    immediately instead of waiting for the interval, so a push signal and
    the regular poll share one code path.
    """

    def __init__(self, *, interval: float, name: str) -> None:
        self._interval = interval
        self._name = name
        self._task: asyncio.Task[None] | None = None
        self._wakeup = asyncio.Event()
        self.consecutive_failures = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        await self._on_start()
        self._task = asyncio.create_task(self._loop(), name=self._name)
        logger.info("%s started (every %ss)", self._name, self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("%s stopped", self._name)

    def wake(self) -> None:
        self._wakeup.set()

    async def _on_start(self) -> None:
        pass

    async def _tick(self) -> None:
        raise NotImplementedError

    async def _wait(self) -> None:
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._wakeup.wait(), timeout=self._interval)
        self._wakeup.clear()

    async def _loop(self) -> None:
        while True:
            await self._wait()
            try:
                await self._tick()
            except Exception:
                self.consecutive_failures += 1
                # Full traceback once per outage; later failures are one line.
                if self.consecutive_failures == 1:
                    logger.exception("%s tick failed, will retry", self._name)
                else:
                    logger.warning(
                        "%s still failing (%d in a row)", self._name, self.consecutive_failures
                    )
            else:
                if self.consecutive_failures:
                    logger.info(
                        "%s recovered after %d failure(s)", self._name, self.consecutive_failures
                    )
                self.consecutive_failures = 0
