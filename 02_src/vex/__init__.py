"""Vex client: trace agent executions and deliver them for verification."""

from .client import IVex, Vex
from .config import VexConfig, resolve_config
from .errors import (
    ConfigurationError,
    IngestionError,
    VerificationError,
    VexBlockError,
    VexError,
)
from .models import (
    ConversationTurn,
    ExecutionEvent,
    StepRecord,
    ThresholdConfig,
    VexResult,
)
from .session import Session
from .trace import TraceContext

__all__ = [
    # Client
    "Vex",
    "IVex",
    "Session",
    "TraceContext",
    # Configuration
    "VexConfig",
    "resolve_config",
    # Models
    "ExecutionEvent",
    "StepRecord",
    "ConversationTurn",
    "ThresholdConfig",
    "VexResult",
    # Errors
    "VexError",
    "ConfigurationError",
    "IngestionError",
    "VerificationError",
    "VexBlockError",
]
