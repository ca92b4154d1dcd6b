"""
In-process publish/subscribe for board data changes.

Components that change backend data (wet-court actions, assignments)
publish a DataUpdate so that anything caching derived views can refresh.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataUpdate:
    key: str
    data: Any = None


Listener = Callable[[DataUpdate], None]


class EventChannel:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: DataUpdate) -> None:
        logger.debug("Publishing %s to %d listener(s)", event.key, len(self._listeners))
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener failed for %s", event.key)
