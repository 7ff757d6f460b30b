"""Observability module for the Spigot faucet."""

from .health import (
    HealthCheck,
    HealthStatus,
    LedgerCheck,
    SequenceCheck,
    add_health_routes,
    check_readiness,
)
from .logging import clear_request_id, configure_logging, get_logger, set_request_id
from .metrics import (
    AMOUNT_DISTRIBUTED,
    CONFIRMATION_DURATION,
    NEXT_SEQUENCE,
    RATE_LIMITED,
    REQUEST_DURATION,
    REQUESTS,
    SEQUENCE_GAPS,
)

__all__ = [
    # Health
    "HealthCheck",
    "HealthStatus",
    "LedgerCheck",
    "SequenceCheck",
    "add_health_routes",
    "check_readiness",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_logger",
    "set_request_id",
    # Metrics
    "AMOUNT_DISTRIBUTED",
    "CONFIRMATION_DURATION",
    "NEXT_SEQUENCE",
    "RATE_LIMITED",
    "REQUEST_DURATION",
    "REQUESTS",
    "SEQUENCE_GAPS",
]
