"""Conversation-related data models."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ConversationTurn:
    """Snapshot of one completed turn of a session."""

    sequence_number: int
    input: Any = None
    output: Any = None
    task: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "sequence_number": self.sequence_number,
            "input": self.input,
            "output": self.output,
        }
        if self.task is not None:
            data["task"] = self.task
        return data
