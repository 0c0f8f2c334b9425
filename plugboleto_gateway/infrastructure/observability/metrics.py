"""Prometheus metrics for polling behaviour, transport health and normalized actions"""

from prometheus_client import Counter, Histogram

# Polling metrics
poll_attempts_histogram = Histogram(
    "plugboleto_poll_attempts",
    "Status queries needed before an asynchronous operation settled",
    ["flow"],  # issuance | print | return_file
    buckets=[1, 2, 3, 5, 10, 20, 40, 70],
)

poll_exhausted_counter = Counter(
    "plugboleto_poll_exhausted_total",
    "Operations still processing when the polling budget ran out",
    ["flow"],
)

# Transport metrics
transport_failures_counter = Counter(
    "plugboleto_transport_failures_total",
    "Failed PlugBoleto API calls",
)

# Return file metrics
normalized_action_counter = Counter(
    "plugboleto_normalized_actions_total",
    "Occurrences translated into normalized actions",
    ["bank", "action"],
)

# Issuance metrics
issuance_title_counter = Counter(
    "plugboleto_issuance_titles_total",
    "Titles by issuance outcome",
    ["outcome"],  # success | error | unresolved
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_issuance(success: int, errors: int, unresolved: int) -> None:
    """Record per-title issuance outcomes"""
    issuance_title_counter.labels(outcome="success").inc(success)
    issuance_title_counter.labels(outcome="error").inc(errors)
    issuance_title_counter.labels(outcome="unresolved").inc(unresolved)


def record_poll(flow: str, attempts: int, exhausted: bool) -> None:
    """Record how long an asynchronous operation took to settle"""
    poll_attempts_histogram.labels(flow=flow).observe(attempts)
    if exhausted:
        poll_exhausted_counter.labels(flow=flow).inc()
