"""Trace orchestration module."""

from .orchestrator import (
    InvalidTraceRequestError,
    SunRayTraceSession,
    TraceGroup,
    run_trace,
    sun_marker_position,
)

__all__ = [
    "InvalidTraceRequestError",
    "SunRayTraceSession",
    "TraceGroup",
    "run_trace",
    "sun_marker_position",
]
