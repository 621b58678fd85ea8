"""Error types raised by the Vex client."""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import VexResult


class VexError(Exception):
    """Base class for every error raised by the client."""


class ConfigurationError(VexError):
    """Invalid API key or configuration. Raised at construction, never retried."""


class IngestionError(VexError):
    """Batch delivery was rejected by the ingest endpoint with a server error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class VerificationError(VexError):
    """The verify endpoint was reached but answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class VexBlockError(VexError):
    """The verifier returned a ``block`` verdict for the traced output."""

    def __init__(self, result: "VexResult"):
        super().__init__(f"Output blocked (confidence={result.confidence})")
        self.result = result
