"""Prometheus metrics for conversation synchronization.

Counts poll ticks, merges, push events, sends and voice requests.
"""

from prometheus_client import Counter

# Polling metrics
POLL_TICKS = Counter(
    "convsync_poll_ticks_total",
    "Poll ticks that issued a fetch",
    labelnames=["cadence", "outcome"],
)

POLL_TICKS_SKIPPED = Counter(
    "convsync_poll_ticks_skipped_total",
    "Poll ticks skipped because the previous fetch was still in flight",
    labelnames=["cadence"],
)

# Reconciliation metrics
MERGES = Counter(
    "convsync_merges_total",
    "Snapshots merged into the displayed sequence",
    labelnames=["source"],
)

STALE_SNAPSHOTS = Counter(
    "convsync_stale_snapshots_total",
    "Snapshots dropped because a newer one was already applied",
    labelnames=["source"],
)

# Push metrics
PUSH_EVENTS = Counter(
    "convsync_push_events_total",
    "Push frames received",
    labelnames=["event_type"],
)

# Write metrics
OPTIMISTIC_SENDS = Counter(
    "convsync_optimistic_sends_total",
    "Optimistic message submissions",
    labelnames=["outcome"],
)

# Voice metrics
SESSION_REGISTRATIONS = Counter(
    "convsync_session_registrations_total",
    "Voice session registration attempts",
    labelnames=["outcome"],
)

REQUEST_RETRIES = Counter(
    "convsync_request_retries_total",
    "Voice requests retried after a transient failure",
    labelnames=["operation"],
)
