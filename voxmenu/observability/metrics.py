"""Prometheus metrics for the IVR endpoint.

Provides metrics for monitoring call handling, DTMF input, pacing and
external service latency.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

# =============================================================================
# Counters
# =============================================================================

CALL_TOTAL = Counter(
    "voxmenu_call_total",
    "Total calls handled",
    ["outcome"],
)

CALL_REJECTED = Counter(
    "voxmenu_call_rejected_total",
    "Incoming-call notifications not admitted",
    ["reason"],
)

DTMF_ACCEPTED = Counter(
    "voxmenu_dtmf_accepted_total",
    "DTMF digits accepted after debouncing",
    ["source"],
)

DTMF_SUPPRESSED = Counter(
    "voxmenu_dtmf_suppressed_total",
    "DTMF reports dropped as duplicates",
    ["source"],
)

CALL_TERMINATIONS = Counter(
    "voxmenu_call_terminations_total",
    "Reasons a call left the menu loop",
    ["reason"],
)

AUDIO_WINDOWS_SENT = Counter(
    "voxmenu_audio_windows_sent_total",
    "20ms audio windows transmitted",
    ["kind"],
)

EXTERNAL_FAILURES = Counter(
    "voxmenu_external_failures_total",
    "Failed calls to external services (replaced by fallback phrases)",
    ["service"],
)

# =============================================================================
# Gauges
# =============================================================================

ACTIVE_CALLS = Gauge(
    "voxmenu_active_calls",
    "Currently active calls",
)

# =============================================================================
# Histograms
# =============================================================================

CALL_DURATION = Histogram(
    "voxmenu_call_duration_seconds",
    "Call duration in seconds",
    buckets=[5, 10, 30, 60, 120, 300, 600, 1800],
)

EXTERNAL_LATENCY = Histogram(
    "voxmenu_external_latency_seconds",
    "Latency of external service calls",
    ["service"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 3.0, 5.0, 10.0, 20.0],
)

# =============================================================================
# Helper Functions
# =============================================================================


def record_call_metrics(outcome: str, duration_seconds: float) -> None:
    """Record metrics for a completed call.

    Args:
        outcome: Call outcome (completed, error, shutdown)
        duration_seconds: Total call duration
    """
    CALL_TOTAL.labels(outcome=outcome).inc()
    CALL_DURATION.observe(duration_seconds)


def record_external_call(service: str, latency_ms: float, *, ok: bool = True) -> None:
    """Record latency (and failure) of an external service call."""
    EXTERNAL_LATENCY.labels(service=service).observe(latency_ms / 1000)
    if not ok:
        EXTERNAL_FAILURES.labels(service=service).inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output.

    Returns:
        Metrics in Prometheus text exposition format.
    """
    return generate_latest()


def get_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
