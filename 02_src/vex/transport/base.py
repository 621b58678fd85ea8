"""Shared HTTP plumbing for the ingest and verify transports."""

import asyncio
import json
from typing import Any

import httpx

from ..casing import to_snake_case
from ..logging_config import get_logger
from ..models import ExecutionEvent

logger = get_logger(__name__)

MAX_ATTEMPTS = 3
RETRY_BASE_DELAY = 0.1  # seconds; doubles per attempt

# Failures where the request may never have been answered. Retried.
TRANSPORT_ERRORS = (httpx.TransportError, asyncio.TimeoutError)


def backoff_delay(attempt: int, base: float = RETRY_BASE_DELAY) -> float:
    """Delay after the ``attempt``-th failure (0-based): base, 2*base, ..."""
    return base * 2**attempt


def to_wire(event: ExecutionEvent) -> dict[str, Any]:
    """Event as a JSON-ready mapping with every key in wire casing."""
    return to_snake_case(event.to_dict())


class HttpTransport:
    """Base for transports that POST JSON to the Vex API."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout_ms: int,
        client: httpx.AsyncClient | None = None,
        retry_delay: float = RETRY_BASE_DELAY,
        log_event_ids: bool = False,
    ):
        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._timeout_ms = timeout_ms
        self._retry_delay = retry_delay
        self._log_event_ids = log_event_ids
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient()

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Vex-Key": self._api_key,
        }

    async def _post(
        self, path: str, payload: dict[str, Any], timeout_ms: int
    ) -> httpx.Response:
        """One POST attempt, abandoned once ``timeout_ms`` elapses."""
        timeout = timeout_ms / 1000
        body = json.dumps(payload, default=str)
        return await asyncio.wait_for(
            self._client.post(
                f"{self._api_url}{path}",
                content=body,
                headers=self._headers,
                timeout=timeout,
            ),
            timeout=timeout,
        )

    async def _backoff(self, attempt: int) -> None:
        """Sleep before the next attempt; no sleep after the last one."""
        if attempt < MAX_ATTEMPTS - 1:
            await asyncio.sleep(backoff_delay(attempt, self._retry_delay))

    async def aclose(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
