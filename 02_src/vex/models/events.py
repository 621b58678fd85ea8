"""Execution event data models."""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from .conversation import ConversationTurn


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_step_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps("" if value is None else value, default=str)
    except (ValueError, RecursionError):
        # Circular structures
        return repr(value)


@dataclass(frozen=True)
class StepRecord:
    """A named sub-operation captured inside one execution."""

    step_name: str  # "<type>:<name>"
    input: str
    output: str
    timestamp: datetime = field(default_factory=_utcnow)
    duration_ms: float | None = None

    @classmethod
    def create(
        cls,
        type: str,
        name: str,
        input: Any = None,
        output: Any = None,
        duration_ms: float | None = None,
    ) -> "StepRecord":
        """Build a step, serialising non-string input/output to JSON text."""
        return cls(
            step_name=f"{type}:{name}",
            input=_as_step_text(input),
            output=_as_step_text(output),
            duration_ms=duration_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "step_name": self.step_name,
            "input": self.input,
            "output": self.output,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.duration_ms is not None:
            data["duration_ms"] = self.duration_ms
        return data


# Optional fields are left off the wire when unset
_OPTIONAL_FIELDS = (
    "session_id",
    "sequence_number",
    "parent_execution_id",
    "task",
    "token_count",
    "cost_estimate",
    "latency_ms",
    "ground_truth",
    "schema_definition",
)


@dataclass(frozen=True)
class ExecutionEvent:
    """Frozen record of one agent execution, ready for transmission."""

    agent_id: str
    input: Any = None
    output: Any = None
    execution_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    steps: tuple[StepRecord, ...] = field(default_factory=tuple)
    metadata: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)
    session_id: str | None = None
    sequence_number: int | None = None
    parent_execution_id: str | None = None
    conversation_history: tuple[ConversationTurn, ...] | None = None
    task: str | None = None
    token_count: int | None = None
    cost_estimate: float | None = None
    latency_ms: float | None = None
    ground_truth: Any = None
    schema_definition: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        # Collections are frozen too; callers may pass lists and dicts
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        if self.conversation_history is not None:
            object.__setattr__(
                self, "conversation_history", tuple(self.conversation_history)
            )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping in the client's naming convention."""
        data: dict[str, Any] = {
            "execution_id": self.execution_id,
            "agent_id": self.agent_id,
            "input": self.input,
            "output": self.output,
            "steps": [step.to_dict() for step in self.steps],
            "metadata": dict(self.metadata),
            "timestamp": self.timestamp.isoformat(),
        }
        for name in _OPTIONAL_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if self.conversation_history is not None:
            data["conversation_history"] = [
                turn.to_dict() for turn in self.conversation_history
            ]
        return data
