"""Trace module."""

from .context import TraceCallback, TraceContext, run_callback

__all__ = ["TraceCallback", "TraceContext", "run_callback"]
