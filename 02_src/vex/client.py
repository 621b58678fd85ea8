"""Vex client: owns the transports, the flush loop and the verdict policy."""

import asyncio
from typing import Any, Protocol

import httpx

from .config import ConfigInput, VexConfig, resolve_api_key, resolve_config
from .errors import VexBlockError
from .logging_config import get_logger
from .models import ExecutionEvent, VerifyResponse, VexResult
from .session import Session
from .trace import TraceCallback, TraceContext, run_callback
from .transport import AsyncTransport, SyncTransport

logger = get_logger(__name__)


class IVex(Protocol):
    """Trace agent executions and deliver them for verification."""

    async def trace(
        self,
        fn: TraceCallback,
        agent_id: str,
        input: Any = None,
        task: str | None = None,
    ) -> VexResult:
        """Run ``fn`` under observation and return the (possibly verified) result."""
        ...

    def session(
        self,
        agent_id: str,
        session_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Session:
        """Open a multi-turn session bound to this client."""
        ...

    async def close(self) -> None:
        """Stop the flush loop and drain pending events."""
        ...


class Vex:
    """Client entry point.

    In ``async`` mode events are buffered and shipped in the background and
    every trace returns a pass-through result. In ``sync`` mode each event is
    verified inline: ``block`` raises VexBlockError, ``flag`` logs a warning,
    and any verification failure degrades to a pass-through result.
    """

    def __init__(
        self,
        api_key: str | None = None,
        config: ConfigInput = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._config = resolve_config(config)
        self._api_key = resolve_api_key(api_key, self._config)

        self._owns_client = http_client is None
        self._client = http_client if http_client is not None else httpx.AsyncClient()

        self._async_transport = AsyncTransport(
            api_url=self._config.api_url,
            api_key=self._api_key,
            flush_batch_size=self._config.flush_batch_size,
            timeout_ms=self._config.timeout_ms,
            max_buffer_size=self._config.max_buffer_size,
            client=self._client,
            log_event_ids=self._config.log_event_ids,
        )
        self._sync_transport: SyncTransport | None = None
        if self._config.mode == "sync":
            self._sync_transport = SyncTransport(
                api_url=self._config.api_url,
                api_key=self._api_key,
                timeout_ms=self._config.timeout_ms,
                correction_timeout_ms=self._config.correction_timeout_ms,
                client=self._client,
                log_event_ids=self._config.log_event_ids,
            )

        self._flush_task: asyncio.Task | None = None
        self._closed = False
        self._start_flush_loop()

    @property
    def config(self) -> VexConfig:
        return self._config

    async def __aenter__(self) -> "Vex":
        self._start_flush_loop()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _start_flush_loop(self) -> None:
        """Start the periodic flusher once an event loop is running."""
        if self._flush_task is not None or self._closed:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # started by the first trace()
        self._flush_task = loop.create_task(self._flush_loop())

    async def _flush_loop(self) -> None:
        """Background flush every flush_interval_ms, or earlier on a full batch."""
        interval = self._config.flush_interval_ms / 1000
        while True:
            try:
                await self._async_transport.wait_for_batch(interval)
                await self._async_transport.flush()
            except asyncio.CancelledError:
                break
            except Exception as e:
                # Delivery is retried on the next tick or at close()
                logger.debug("Periodic flush failed: %s", e)

    async def trace(
        self,
        fn: TraceCallback,
        agent_id: str,
        input: Any = None,
        task: str | None = None,
    ) -> VexResult:
        """Run ``fn`` with a fresh TraceContext and dispatch the resulting event."""
        self._start_flush_loop()
        ctx = TraceContext(agent_id=agent_id, task=task, input=input)
        await run_callback(fn, ctx)
        return await self._process_trace_context(ctx)

    def session(
        self,
        agent_id: str,
        session_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Session:
        """Open a multi-turn session bound to this client."""
        return Session(self, agent_id, session_id=session_id, metadata=metadata)

    async def _process_trace_context(self, ctx: TraceContext) -> VexResult:
        self._start_flush_loop()
        return await self._process_event(ctx.build_event())

    async def _process_event(self, event: ExecutionEvent) -> VexResult:
        if self._config.log_event_ids:
            logger.info(
                "Trace completed",
                extra={
                    "context": {
                        "execution_id": event.execution_id,
                        "mode": self._config.mode,
                    }
                },
            )

        if self._sync_transport is not None:
            return await self._verify(event)

        self._async_transport.enqueue(event)
        return VexResult.pass_through(event.execution_id, event.output)

    async def _verify(self, event: ExecutionEvent) -> VexResult:
        try:
            response = await self._sync_transport.verify(
                event,
                thresholds=self._config.threshold,
                correction=self._config.correction,
                transparency=self._config.transparency,
            )
        except Exception as e:
            # Fail open: only an explicit block verdict may stop the agent
            logger.warning(
                "Sync verification failed; returning pass-through result: %r", e
            )
            return VexResult.pass_through(event.execution_id, event.output)

        result = self._to_result(event, response)
        if result.action == "block":
            raise VexBlockError(result)
        if result.action == "flag":
            logger.warning(
                "Agent output flagged (confidence=%s)",
                result.confidence,
                extra={"context": {"execution_id": result.execution_id}},
            )
        return result

    def _to_result(self, event: ExecutionEvent, response: VerifyResponse) -> VexResult:
        # The pre-correction output is only revealed in transparent mode
        reveal_original = (
            response.corrected and self._config.transparency == "transparent"
        )
        corrections = (
            response.correction_attempts
            if response.correction_attempts is not None
            else response.corrections
        )
        return VexResult(
            execution_id=response.execution_id or event.execution_id,
            action=response.action or "pass",
            output=response.output if response.output is not None else event.output,
            confidence=response.confidence,
            corrections=corrections,
            verification=response.checks,
            corrected=response.corrected,
            original_output=response.original_output if reveal_original else None,
        )

    async def close(self) -> None:
        """Stop the flush loop, drain the buffer, release the HTTP client.

        Idempotent.
        """
        if self._closed:
            return
        self._closed = True

        try:
            if self._flush_task is not None:
                self._flush_task.cancel()
                try:
                    await self._flush_task
                except asyncio.CancelledError:
                    pass
                self._flush_task = None

            await self._async_transport.close()
            if self._sync_transport is not None:
                await self._sync_transport.aclose()
        finally:
            if self._owns_client:
                await self._client.aclose()
