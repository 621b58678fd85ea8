"""Transport module."""

from .async_transport import INGEST_PATH, AsyncTransport, IAsyncTransport
from .base import MAX_ATTEMPTS, backoff_delay, to_wire
from .sync_transport import VERIFY_PATH, ISyncTransport, SyncTransport

__all__ = [
    "AsyncTransport",
    "IAsyncTransport",
    "SyncTransport",
    "ISyncTransport",
    "INGEST_PATH",
    "VERIFY_PATH",
    "MAX_ATTEMPTS",
    "backoff_delay",
    "to_wire",
]
