"""Prometheus metrics for the Spigot faucet.

Metrics:
- spigot_requests_total: Counter of funding requests by asset and outcome
- spigot_amount_distributed_total: Counter of amounts dispatched per asset
- spigot_rate_limited_total: Counter of requests denied by the admission gate
- spigot_next_sequence: Gauge of the next nonce the sequencer will issue
- spigot_sequence_gaps: Gauge of unresolved sequence gaps
- spigot_request_duration_seconds: Histogram of funding request duration
- spigot_confirmation_duration_seconds: Histogram of confirmation waits
"""

from prometheus_client import Counter, Gauge, Histogram

# Counters
REQUESTS = Counter(
    "spigot_requests_total",
    "Total number of funding requests",
    ["asset", "status"],
)

AMOUNT_DISTRIBUTED = Counter(
    "spigot_amount_distributed_total",
    "Total amount dispatched, in whole asset units",
    ["asset"],
)

RATE_LIMITED = Counter(
    "spigot_rate_limited_total",
    "Requests rejected by the admission gate",
)

# Gauges
NEXT_SEQUENCE = Gauge(
    "spigot_next_sequence",
    "Next nonce the faucet account will use",
)

SEQUENCE_GAPS = Gauge(
    "spigot_sequence_gaps",
    "Issued nonces that never reached the network",
)

# Histograms
REQUEST_DURATION = Histogram(
    "spigot_request_duration_seconds",
    "Funding request processing duration",
    ["asset"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

CONFIRMATION_DURATION = Histogram(
    "spigot_confirmation_duration_seconds",
    "Time spent waiting for a transaction receipt",
    ["outcome"],
    buckets=(1.0, 2.5, 5.0, 10.0, 15.0, 30.0, 60.0),
)
