"""SyncTransport: inline verification of a single event."""

from typing import Protocol

import httpx
from pydantic import ValidationError

from ..casing import to_snake_case
from ..errors import VerificationError
from ..logging_config import get_logger
from ..models import ExecutionEvent, ThresholdConfig, VerifyResponse
from .base import (
    MAX_ATTEMPTS,
    RETRY_BASE_DELAY,
    TRANSPORT_ERRORS,
    HttpTransport,
    to_wire,
)

logger = get_logger(__name__)

VERIFY_PATH = "/v1/verify"


class ISyncTransport(Protocol):
    """Blocking verification against /v1/verify."""

    async def verify(
        self,
        event: ExecutionEvent,
        thresholds: ThresholdConfig | None = None,
        correction: str | None = None,
        transparency: str | None = None,
    ) -> VerifyResponse:
        """Return the verifier's verdict for ``event``."""
        ...

    async def aclose(self) -> None:
        """Release the HTTP client."""
        ...


class SyncTransport(HttpTransport):
    """Verifies one event per call.

    Only transport failures (connect/read errors, timeouts) are retried. Any
    HTTP response that is not 2xx raises VerificationError immediately.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout_ms: int = 30_000,
        correction_timeout_ms: int | None = None,
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
        self._correction_timeout_ms = (
            correction_timeout_ms
            if correction_timeout_ms is not None
            else timeout_ms * 3
        )

    @staticmethod
    def build_payload(
        event: ExecutionEvent,
        thresholds: ThresholdConfig | None = None,
        correction: str | None = None,
        transparency: str | None = None,
    ) -> dict:
        """Wire event with thresholds and correction options in its metadata."""
        payload = to_wire(event)
        metadata = payload.get("metadata")
        if not isinstance(metadata, dict):
            metadata = payload["metadata"] = {}

        if thresholds is not None:
            metadata["thresholds"] = thresholds.to_wire()

        if correction and correction != "none":
            metadata["correction"] = correction
            metadata["transparency"] = transparency or "opaque"

        return payload

    async def verify(
        self,
        event: ExecutionEvent,
        thresholds: ThresholdConfig | None = None,
        correction: str | None = None,
        transparency: str | None = None,
    ) -> VerifyResponse:
        """POST the event to /v1/verify and return the parsed verdict.

        Raises:
            VerificationError: the endpoint answered with a non-2xx status or an
                unreadable body.
            httpx.TransportError | asyncio.TimeoutError: the last transport
                failure, once all attempts are used up.
        """
        payload = self.build_payload(event, thresholds, correction, transparency)
        use_correction = bool(correction) and correction != "none"
        timeout_ms = self._correction_timeout_ms if use_correction else self._timeout_ms

        last_error: BaseException | None = None
        for attempt in range(MAX_ATTEMPTS):
            try:
                response = await self._post(VERIFY_PATH, payload, timeout_ms)
            except TRANSPORT_ERRORS as e:
                last_error = e
                logger.debug(
                    "Verify attempt %d/%d failed: %r", attempt + 1, MAX_ATTEMPTS, e
                )
                await self._backoff(attempt)
                continue

            if not response.is_success:
                raise VerificationError(
                    f"Verification failed with status {response.status_code}: "
                    f"{response.text}",
                    status_code=response.status_code,
                    body=response.text,
                )

            verdict = self._parse(response)
            if self._log_event_ids:
                logger.info(
                    "Verified event",
                    extra={
                        "context": {
                            "execution_id": event.execution_id,
                            "action": verdict.action,
                        }
                    },
                )
            return verdict

        raise last_error

    @staticmethod
    def _parse(response: httpx.Response) -> VerifyResponse:
        try:
            raw = response.json()
        except ValueError as e:
            raise VerificationError(
                "Verification response is not valid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from e

        try:
            return VerifyResponse.model_validate(to_snake_case(raw))
        except ValidationError as e:
            raise VerificationError(
                f"Malformed verification response: {e}",
                status_code=response.status_code,
                body=raw,
            ) from e
