"""TraceContext: accumulates one execution and freezes it into an event."""

import inspect
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Union

from ..models import ConversationTurn, ExecutionEvent, StepRecord


class TraceContext:
    """Per-execution builder handed to the traced callback.

    Setters overwrite (last write wins). Getters return copies, so callers never
    observe or cause mutation of the accumulated state.
    """

    def __init__(
        self,
        agent_id: str,
        task: str | None = None,
        input: Any = None,
        session_id: str | None = None,
        sequence_number: int | None = None,
        parent_execution_id: str | None = None,
        conversation_history: list[ConversationTurn] | None = None,
        execution_id: str | None = None,
    ):
        self._agent_id = agent_id
        self._task = task
        self._input = input
        self._session_id = session_id
        self._sequence_number = sequence_number
        self._parent_execution_id = parent_execution_id
        self._conversation_history = (
            list(conversation_history) if conversation_history is not None else None
        )
        self._execution_id = execution_id or str(uuid.uuid4())
        self._timestamp = datetime.now(timezone.utc)
        self._start = time.perf_counter()

        self._output: Any = None
        self._ground_truth: Any = None
        self._schema: dict | None = None
        self._token_count: int | None = None
        self._cost_estimate: float | None = None
        self._steps: list[StepRecord] = []
        self._metadata: dict[str, Any] = {}

    @property
    def execution_id(self) -> str:
        return self._execution_id

    @property
    def agent_id(self) -> str:
        return self._agent_id

    def record(self, output: Any) -> None:
        """Set the execution's output."""
        self._output = output

    def set_ground_truth(self, data: Any) -> None:
        self._ground_truth = data

    def set_schema(self, schema: dict) -> None:
        self._schema = schema

    def set_token_count(self, count: int) -> None:
        self._token_count = count

    def set_cost_estimate(self, cost: float) -> None:
        self._cost_estimate = cost

    def set_metadata(self, key: str, value: Any) -> None:
        self._metadata[key] = value

    def step(
        self,
        type: str,
        name: str,
        input: Any = None,
        output: Any = None,
        duration_ms: float | None = None,
    ) -> None:
        """Append a ``<type>:<name>`` step record."""
        self._steps.append(
            StepRecord.create(
                type=type,
                name=name,
                input=input,
                output=output,
                duration_ms=duration_ms,
            )
        )

    def get_output(self) -> Any:
        return self._output

    def get_ground_truth(self) -> Any:
        return self._ground_truth

    def get_schema(self) -> dict | None:
        return self._schema

    def get_token_count(self) -> int | None:
        return self._token_count

    def get_cost_estimate(self) -> float | None:
        return self._cost_estimate

    def get_steps(self) -> list[StepRecord]:
        return list(self._steps)

    def get_metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    def build_event(self) -> ExecutionEvent:
        """Freeze the accumulated state into an ExecutionEvent.

        Safe to call repeatedly: latency is recomputed, everything else
        (including the execution id) is reused.
        """
        return ExecutionEvent(
            execution_id=self._execution_id,
            agent_id=self._agent_id,
            task=self._task,
            input=self._input,
            output=self._output,
            session_id=self._session_id,
            sequence_number=self._sequence_number,
            parent_execution_id=self._parent_execution_id,
            conversation_history=(
                list(self._conversation_history)
                if self._conversation_history is not None
                else None
            ),
            steps=list(self._steps),
            metadata=dict(self._metadata),
            timestamp=self._timestamp,
            token_count=self._token_count,
            cost_estimate=self._cost_estimate,
            latency_ms=(time.perf_counter() - self._start) * 1000,
            ground_truth=self._ground_truth,
            schema_definition=self._schema,
        )


TraceCallback = Callable[[TraceContext], Union[Awaitable[None], None]]


async def run_callback(fn: TraceCallback, ctx: TraceContext) -> None:
    """Invoke a traced callback, awaiting it when it is a coroutine."""
    outcome = fn(ctx)
    if inspect.isawaitable(outcome):
        await outcome
