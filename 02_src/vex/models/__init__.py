"""Core data models for the Vex client."""

from .conversation import ConversationTurn
from .events import ExecutionEvent, StepRecord
from .verification import Action, ThresholdConfig, VerifyResponse, VexResult

__all__ = [
    # Events
    "ExecutionEvent",
    "StepRecord",
    # Conversation
    "ConversationTurn",
    # Verification
    "Action",
    "ThresholdConfig",
    "VerifyResponse",
    "VexResult",
]
