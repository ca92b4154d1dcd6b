"""
Low-level HTTP client for the court booking backend.

Handles request construction and JSON ↔ Pydantic parsing.
Stateless – a single instance is shared across the app lifetime.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from courtboard.config import DEVICE_ID, IS_MOBILE
from courtboard.services.api.api_models import (
    CommandResponse,
    GetBoardResponse,
    JoinWaitlistResponse,
    WetCourtsResponse,
)
from courtboard.services.api.config import (
    ASSIGN_COURT_PATH,
    ASSIGN_FROM_WAITLIST_PATH,
    BASE_URL,
    CLEAR_WET_COURTS_PATH,
    DEFAULT_HEADERS,
    GET_BOARD_PATH,
    JOIN_WAITLIST_PATH,
    MARK_WET_COURTS_PATH,
    TIMEOUT,
    auth_headers,
)
from courtboard.services.backend import BackendError

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


def _is_result_body(resp: httpx.Response) -> bool:
    try:
        body = resp.json()
    except ValueError:
        return False
    return isinstance(body, dict) and "ok" in body


class BackendApiClient:
    """Async HTTP client for the backend's JSON endpoints."""

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = TIMEOUT,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        *,
        device_id: str = DEVICE_ID,
        device_type: str = "mobile" if IS_MOBILE else "kiosk",
    ) -> None:
        self._device = {"device_id": device_id, "device_type": device_type}
        key_headers = auth_headers() if api_key is None else auth_headers(api_key)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={**DEFAULT_HEADERS, **key_headers},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        response_model: type[ResponseT],
        payload: dict[str, Any] | None = None,
    ) -> ResponseT:
        if method == "POST":
            # Every command carries the calling device.
            payload = {**self._device, **(payload or {})}
        logger.debug("%s %s payload=%s", method, path, payload)
        try:
            resp = await self._client.request(method, path, json=payload)
            if resp.is_client_error and _is_result_body(resp):
                # Business rejections (court taken, not authorized) arrive as
                # 4xx with an ``ok: false`` body; surface them as results.
                logger.info("%s %s rejected with HTTP %s", method, path, resp.status_code)
                return response_model.model_validate(resp.json())
            resp.raise_for_status()
            return response_model.model_validate(resp.json())
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                f"{method} {path} failed with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"{method} {path} failed: {exc}") from exc
        except (ValidationError, ValueError) as exc:
            raise BackendError(f"{method} {path} returned an unexpected payload") from exc

    # ── Commands ──────────────────────────────────────────────────────

    async def assign_court(self, payload: dict[str, Any]) -> CommandResponse:
        return await self._send("POST", ASSIGN_COURT_PATH, CommandResponse, payload)

    async def assign_from_waitlist(self, payload: dict[str, Any]) -> CommandResponse:
        return await self._send("POST", ASSIGN_FROM_WAITLIST_PATH, CommandResponse, payload)

    async def join_waitlist(self, payload: dict[str, Any]) -> JoinWaitlistResponse:
        return await self._send("POST", JOIN_WAITLIST_PATH, JoinWaitlistResponse, payload)

    # ── Queries ───────────────────────────────────────────────────────

    async def get_board(self) -> GetBoardResponse:
        return await self._send("GET", GET_BOARD_PATH, GetBoardResponse)

    # ── Admin ─────────────────────────────────────────────────────────

    async def mark_wet_courts(self, payload: dict[str, Any]) -> WetCourtsResponse:
        return await self._send("POST", MARK_WET_COURTS_PATH, WetCourtsResponse, payload)

    async def clear_wet_courts(self, payload: dict[str, Any]) -> WetCourtsResponse:
        return await self._send("POST", CLEAR_WET_COURTS_PATH, WetCourtsResponse, payload)
