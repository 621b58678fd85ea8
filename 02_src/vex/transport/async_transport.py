"""AsyncTransport: buffered, batched, best-effort event delivery."""

import asyncio
import json
from typing import Protocol

import httpx

from ..errors import IngestionError
from ..logging_config import get_logger
from ..models import ExecutionEvent
from .base import (
    MAX_ATTEMPTS,
    RETRY_BASE_DELAY,
    TRANSPORT_ERRORS,
    HttpTransport,
    to_wire,
)

logger = get_logger(__name__)

INGEST_PATH = "/v1/ingest/batch"


class IAsyncTransport(Protocol):
    """Fire-and-forget delivery to the batch ingest endpoint."""

    def enqueue(self, event: ExecutionEvent) -> None:
        """Buffer an event for the next flush. Never blocks."""
        ...

    async def flush(self) -> None:
        """Ship everything buffered as one batch."""
        ...

    async def close(self) -> None:
        """Drain the buffer and release the HTTP client."""
        ...


class AsyncTransport(HttpTransport):
    """Bounded in-memory buffer shipped to /v1/ingest/batch.

    Flushes are serialised: a flush requested while another is in flight waits
    for it and then ships whatever has been buffered since. Batches that fail
    with a 5xx or a transport error after all attempts go back to the head of
    the buffer, ahead of anything enqueued meanwhile. A 4xx drops the batch.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        flush_batch_size: int = 50,
        timeout_ms: int = 2_000,
        max_buffer_size: int = 10_000,
        client: httpx.AsyncClient | None = None,
        retry_delay: float = RETRY_BASE_DELAY,
        log_event_ids: bool = False,
    ):
        super().__init__(
            api_url,
            api_key,
            timeout_ms,
            client=client,
            retry_delay=retry_delay,
            log_event_ids=log_event_ids,
        )
        self._flush_batch_size = flush_batch_size
        self._max_buffer_size = max_buffer_size
        self._buffer: list[ExecutionEvent] = []
        self._dropped = 0
        self._closed = False
        self._flush_lock = asyncio.Lock()
        self._batch_ready = asyncio.Event()

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def dropped_count(self) -> int:
        return self._dropped

    def enqueue(self, event: ExecutionEvent) -> None:
        """Append to the buffer, or drop and count the event when full."""
        if self._closed:
            self._dropped += 1
            logger.warning(
                "Transport closed; dropping event %s (total dropped: %d)",
                event.execution_id,
                self._dropped,
            )
            return

        if len(self._buffer) >= self._max_buffer_size:
            self._dropped += 1
            if self._dropped % 100 == 1:
                logger.warning(
                    "Buffer full (%d events), dropping event (total dropped: %d)",
                    self._max_buffer_size,
                    self._dropped,
                )
            return

        self._buffer.append(event)
        if self._log_event_ids:
            logger.info(
                "Event enqueued",
                extra={"context": {"execution_id": event.execution_id}},
            )
        if len(self._buffer) >= self._flush_batch_size:
            self._batch_ready.set()

    async def wait_for_batch(self, timeout: float) -> None:
        """Return once a full batch is buffered or ``timeout`` seconds pass."""
        try:
            await asyncio.wait_for(self._batch_ready.wait(), timeout)
        except asyncio.TimeoutError:
            pass

    async def flush(self) -> None:
        """Ship the buffered events as one batch. No-op when empty."""
        async with self._flush_lock:
            await self._flush_locked()

    async def _flush_locked(self) -> None:
        if not self._buffer:
            return

        # Snapshot and swap: enqueues during the POST land in the fresh buffer
        snapshot = self._buffer
        self._buffer = []
        self._batch_ready.clear()

        batch, wire_events = self._encode(snapshot)
        if not batch:
            return
        payload = {"events": wire_events}

        try:
            delivered = await self._send_batch(payload, len(batch))
        except asyncio.CancelledError:
            # Abandoned mid-flight (e.g. the periodic flusher was stopped)
            self._requeue(batch)
            raise

        if delivered:
            self._log_delivered(batch)
        elif delivered is None:
            self._requeue(batch)
            logger.warning(
                "Flush failed after %d attempts; events returned to buffer",
                MAX_ATTEMPTS,
            )

    def _encode(
        self, events: list[ExecutionEvent]
    ) -> tuple[list[ExecutionEvent], list[dict]]:
        """Wire form of each event; events that cannot be serialised are dropped."""
        kept: list[ExecutionEvent] = []
        wire_events: list[dict] = []
        for event in events:
            try:
                wire = to_wire(event)
                json.dumps(wire, default=str)
            except (TypeError, ValueError, RecursionError) as e:
                self._dropped += 1
                logger.warning(
                    "Dropping unserialisable event %s: %r (total dropped: %d)",
                    event.execution_id,
                    e,
                    self._dropped,
                )
                continue
            kept.append(event)
            wire_events.append(wire)
        return kept, wire_events

    async def _send_batch(self, payload: dict, count: int) -> bool | None:
        """POST one batch with retries.

        Returns True when delivered, False when rejected with a 4xx (dropped),
        None when every attempt failed with a 5xx or a transport error.
        """
        for attempt in range(MAX_ATTEMPTS):
            try:
                response = await self._post(INGEST_PATH, payload, self._timeout_ms)
                if response.is_success:
                    return True
                if response.status_code < 500:
                    logger.warning(
                        "Client error %d on flush; dropping %d events",
                        response.status_code,
                        count,
                    )
                    return False
                raise IngestionError(
                    f"Server error {response.status_code} on flush",
                    status_code=response.status_code,
                )
            except (IngestionError, *TRANSPORT_ERRORS) as e:
                logger.debug(
                    "Flush attempt %d/%d failed: %r", attempt + 1, MAX_ATTEMPTS, e
                )
                await self._backoff(attempt)
        return None

    def _requeue(self, batch: list[ExecutionEvent]) -> None:
        """Put an undelivered batch back at the head, within capacity."""
        available = max(0, self._max_buffer_size - len(self._buffer))
        retry = batch[:available]
        overflow = len(batch) - len(retry)
        if overflow > 0:
            self._dropped += overflow
            logger.warning(
                "Dropped %d events due to buffer overflow on retry", overflow
            )
        self._buffer[:0] = retry

    def _log_delivered(self, batch: list[ExecutionEvent]) -> None:
        if self._log_event_ids:
            logger.info(
                "Delivered batch of %d events",
                len(batch),
                extra={"context": {"execution_ids": [e.execution_id for e in batch]}},
            )
        else:
            logger.debug("Delivered batch of %d events", len(batch))

    async def close(self) -> None:
        """Refuse new events, make one final flush, release the client."""
        self._closed = True
        try:
            await self.flush()
            if self._buffer:
                logger.warning("%d events undelivered at close", len(self._buffer))
        finally:
            await self.aclose()
