"""Observability module for Prometheus metrics."""

from voxmenu.observability.metrics import (
    ACTIVE_CALLS,
    AUDIO_WINDOWS_SENT,
    CALL_DURATION,
    CALL_REJECTED,
    CALL_TERMINATIONS,
    CALL_TOTAL,
    DTMF_ACCEPTED,
    DTMF_SUPPRESSED,
    EXTERNAL_FAILURES,
    EXTERNAL_LATENCY,
    record_call_metrics,
    record_external_call,
)

__all__ = [
    "CALL_TOTAL",
    "CALL_REJECTED",
    "CALL_DURATION",
    "CALL_TERMINATIONS",
    "ACTIVE_CALLS",
    "AUDIO_WINDOWS_SENT",
    "DTMF_ACCEPTED",
    "DTMF_SUPPRESSED",
    "EXTERNAL_FAILURES",
    "EXTERNAL_LATENCY",
    "record_call_metrics",
    "record_external_call",
]
