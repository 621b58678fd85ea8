"""Session: multi-turn conversation state fed into each trace."""

import asyncio
import uuid
from typing import TYPE_CHECKING, Any

from ..errors import VexBlockError
from ..models import ConversationTurn, VexResult
from ..trace import TraceCallback, TraceContext, run_callback

if TYPE_CHECKING:
    from ..client import Vex


class Session:
    """A sequence of related traces sharing a sliding window of history.

    Sequence numbers start at 0 and are contiguous. Turn N sees the most recent
    ``min(N, conversation_window_size)`` prior turns, oldest first.
    """

    def __init__(
        self,
        vex: "Vex",
        agent_id: str,
        session_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        self._vex = vex
        self._agent_id = agent_id
        self._session_id = session_id or str(uuid.uuid4())
        self._metadata = dict(metadata or {})
        self._sequence = 0
        self._history: list[ConversationTurn] = []
        # Turns are taken one at a time so sequence numbers stay contiguous
        self._lock = asyncio.Lock()

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def agent_id(self) -> str:
        return self._agent_id

    @property
    def sequence(self) -> int:
        """Number of completed turns; also the index of the next one."""
        return self._sequence

    @property
    def history(self) -> list[ConversationTurn]:
        return list(self._history)

    async def trace(
        self,
        fn: TraceCallback,
        input: Any = None,
        task: str | None = None,
        parent_execution_id: str | None = None,
    ) -> VexResult:
        """Run one turn of the conversation under observation.

        A blocked turn still consumes its sequence number and enters history
        before VexBlockError propagates. If ``fn`` raises, no event was
        produced and nothing is consumed.
        """
        async with self._lock:
            current_seq = self._sequence
            window = self._vex.config.conversation_window_size
            history = self._history[-window:] if self._history else None

            ctx = TraceContext(
                agent_id=self._agent_id,
                task=task,
                input=input,
                session_id=self._session_id,
                sequence_number=current_seq,
                parent_execution_id=parent_execution_id,
                conversation_history=history,
            )
            for key, value in self._metadata.items():
                ctx.set_metadata(key, value)

            await run_callback(fn, ctx)

            try:
                result = await self._vex._process_trace_context(ctx)
            except VexBlockError:
                self._complete_turn(current_seq, input, ctx.get_output(), task)
                raise

            self._complete_turn(current_seq, input, ctx.get_output(), task)
            return result

    def _complete_turn(
        self, sequence_number: int, input: Any, output: Any, task: str | None
    ) -> None:
        self._history.append(
            ConversationTurn(
                sequence_number=sequence_number,
                input=input,
                output=output,
                task=task,
            )
        )
        self._sequence += 1

        window = self._vex.config.conversation_window_size
        if len(self._history) > window:
            self._history = self._history[-window:]
