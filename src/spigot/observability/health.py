"""Health checks for the Spigot faucet.

Endpoints served by the faucet application:
- /health: Liveness probe (200 if process is alive)
- /ready: Readiness probe (200 if the faucet can dispatch)
- /metrics: Prometheus metrics endpoint
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health check status values."""

    OK = "ok"
    ERROR = "error"
    NOT_READY = "not_ready"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str | None = None


@dataclass
class HealthResult:
    """Combined health check result."""

    status: HealthStatus
    checks: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        result = {"status": self.status.value}
        if self.checks:
            result["checks"] = self.checks
        return result


class HealthCheck(ABC):
    """Abstract base class for readiness checks."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the health check."""
        ...

    @abstractmethod
    async def check(self) -> CheckResult:
        """Perform the health check."""
        ...


class LedgerCheck(HealthCheck):
    """Ready while the ledger RPC endpoint answers."""

    def __init__(self, ledger):
        self._ledger = ledger

    @property
    def name(self) -> str:
        return "ledger"

    async def check(self) -> CheckResult:
        if await self._ledger.is_connected():
            return CheckResult(name=self.name, status=HealthStatus.OK)
        return CheckResult(
            name=self.name,
            status=HealthStatus.ERROR,
            message="RPC endpoint unreachable",
        )


class SequenceCheck(HealthCheck):
    """Ready while the sequencer is seeded and has no unresolved gaps.

    A gap means every later transaction from the faucet account is stuck, so
    the instance should stop receiving traffic until an operator fills it.
    Each check reconciles recorded gaps against the ledger, so a gap filled
    by another process clears readiness once it confirms.
    """

    def __init__(self, sequencer):
        self._sequencer = sequencer

    @property
    def name(self) -> str:
        return "sequence"

    async def check(self) -> CheckResult:
        if not self._sequencer.initialized:
            return CheckResult(
                name=self.name,
                status=HealthStatus.NOT_READY,
                message="sequencer not initialized",
            )
        gaps = await self._sequencer.reconcile()
        if gaps:
            return CheckResult(
                name=self.name,
                status=HealthStatus.ERROR,
                message=f"unfilled sequence gaps: {', '.join(str(g) for g in gaps)}",
            )
        return CheckResult(name=self.name, status=HealthStatus.OK)


async def check_readiness(checks: Iterable[HealthCheck]) -> HealthResult:
    """Run all readiness checks.

    Returns
    -------
    HealthResult
        Combined result of all checks.
    """
    results: dict[str, str] = {}
    all_ok = True

    for check in checks:
        try:
            result = await check.check()
        except Exception as e:
            logger.exception("Health check failed", extra={"check": check.name})
            results[check.name] = f"error: {type(e).__name__}: {e}"
            all_ok = False
            continue
        if result.status == HealthStatus.OK:
            results[result.name] = "ok"
        else:
            results[result.name] = result.message or result.status.value
            all_ok = False

    return HealthResult(
        status=HealthStatus.OK if all_ok else HealthStatus.NOT_READY,
        checks=results,
    )


def add_health_routes(app: web.Application, checks: list[HealthCheck]) -> None:
    """Register /health, /ready and /metrics on ``app``."""

    async def handle_health(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def handle_ready(_request: web.Request) -> web.Response:
        result = await check_readiness(checks)
        status_code = 200 if result.status == HealthStatus.OK else 503
        return web.json_response(result.to_dict(), status=status_code)

    async def handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(REGISTRY),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )

    app.router.add_get("/health", handle_health, name="health")
    app.router.add_get("/ready", handle_ready, name="ready")
    app.router.add_get("/metrics", handle_metrics, name="metrics")
