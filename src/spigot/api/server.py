"""HTTP server for the Spigot faucet.

Endpoints:
- GET  /ping: liveness ping with server timestamp
- POST /fund: native currency transfer
- POST /fund-<symbol>: one route per configured token
- GET  /health, /ready, /metrics: probes and Prometheus metrics
"""

import json
import logging
from datetime import datetime, timezone

from aiohttp import web

from spigot.chain.networks import NetworkInfo
from spigot.dispatch.errors import DispatchError, ValidationError
from spigot.dispatch.models import Asset, OutcomeStatus, TransactionOutcome
from spigot.dispatch.rate_limiter import AdmissionGate
from spigot.dispatch.service import Dispatcher
from spigot.observability.health import HealthCheck, add_health_routes

from .middleware import (
    JSON_BODY_KEY,
    error_middleware,
    make_admission_middleware,
    make_cors_middleware,
    request_id_middleware,
    track_prepared_response,
)

logger = logging.getLogger(__name__)

# Apache "combined" format for aiohttp's access logger
COMBINED_LOG_FORMAT = '%a %t "%r" %s %b "%{Referer}i" "%{User-Agent}i"'

MAX_BODY_BYTES = 16 * 1024

NATIVE_ROUTE = "fund_native"


def token_route_name(asset: Asset) -> str:
    return f"fund_token_{asset.symbol.lower()}"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FaucetServer:
    """HTTP front end of the dispatch pipeline.

    Parameters
    ----------
    dispatcher : Dispatcher
        The dispatch service.
    gate : AdmissionGate
        Shared admission gate for all funding routes.
    host : str
        Host to bind to.
    port : int
        Port to bind to.
    checks : list[HealthCheck] | None
        Readiness checks for ``/ready``.
    cors_origins : list[str] | None
        Allowed CORS origins, ``["*"]`` for any.
    trusted_proxy_hops : int
        Reverse proxies trusted for ``X-Forwarded-For``.
    network : NetworkInfo | None
        Used for explorer links in responses.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        gate: AdmissionGate,
        host: str = "0.0.0.0",  # noqa: S104
        port: int = 3000,
        checks: list[HealthCheck] | None = None,
        cors_origins: list[str] | None = None,
        trusted_proxy_hops: int = 0,
        network: NetworkInfo | None = None,
    ):
        self._dispatcher = dispatcher
        self._gate = gate
        self._host = host
        self._port = port
        self._checks = list(checks or [])
        self._cors_origins = cors_origins if cors_origins is not None else ["*"]
        self._trusted_proxy_hops = trusted_proxy_hops
        self._network = network
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def build_app(self) -> web.Application:
        """Create the aiohttp application with all routes and middlewares."""
        gated = frozenset(
            [NATIVE_ROUTE, *(token_route_name(t) for t in self._dispatcher.tokens)]
        )
        app = web.Application(
            middlewares=[
                request_id_middleware,
                error_middleware,
                make_cors_middleware(self._cors_origins),
                make_admission_middleware(self._gate, gated, self._trusted_proxy_hops),
            ],
            client_max_size=MAX_BODY_BYTES,
        )
        app.on_response_prepare.append(track_prepared_response)

        app.router.add_get("/ping", self._handle_ping, name="ping")
        app.router.add_post(
            "/fund", self._fund_handler(self._dispatcher.native), name=NATIVE_ROUTE
        )
        for token in self._dispatcher.tokens:
            app.router.add_post(
                f"/fund-{token.symbol.lower()}",
                self._fund_handler(token),
                name=token_route_name(token),
            )
        add_health_routes(app, self._checks)
        return app

    async def start(self) -> None:
        """Start serving."""
        self._runner = web.AppRunner(self.build_app(), access_log_format=COMBINED_LOG_FORMAT)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()

        logger.info(
            "Faucet server running",
            extra={"host": self._host, "port": self._port},
        )

    async def stop(self) -> None:
        """Stop serving."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            logger.info("Faucet server stopped")

    async def _handle_ping(self, _request: web.Request) -> web.Response:
        """Handle /ping."""
        return web.json_response({"message": "pong", "timestamp": _utc_timestamp()})

    def _fund_handler(self, asset: Asset):
        async def handle(request: web.Request) -> web.Response:
            return await self._handle_fund(request, asset)

        return handle

    async def _handle_fund(self, request: web.Request, asset: Asset) -> web.Response:
        """Handle a funding route; every DispatchError becomes a JSON reply."""
        try:
            body = await request.json() if request.can_read_body else {}
        except (json.JSONDecodeError, UnicodeDecodeError):
            return web.json_response({"error": "Invalid JSON body."}, status=400)
        if not isinstance(body, dict):
            body = {}
        request[JSON_BODY_KEY] = body

        try:
            outcome = await self._dispatcher.fund(asset, body)
        except ValidationError as e:
            return web.json_response({"error": e.message}, status=e.status)
        except DispatchError as e:
            return self._failure_response(asset, e)

        return self._outcome_response(outcome)

    def _failure_response(self, asset: Asset, error: DispatchError) -> web.Response:
        prefix = "Transaction failed" if asset.is_native else f"{asset.label} transaction failed"
        logger.error(
            f"{asset.label} transfer failed",
            extra={"code": error.code, "error": error.message, "sequence": error.sequence},
        )
        body = {"error": f"{prefix}: {error.message}", "code": error.code}
        if error.tx_hash:
            body["txHash"] = error.tx_hash
        if error.sequence is not None:
            body["sequence"] = error.sequence
        return web.json_response(body, status=error.status)

    def _outcome_response(self, outcome: TransactionOutcome) -> web.Response:
        label = outcome.request.asset.label
        body = {"txHash": outcome.tx_hash, "status": outcome.status.value}
        status = 200

        if outcome.status == OutcomeStatus.CONFIRMED:
            body["message"] = f"{label} transfer successful"
            body["blockNumber"] = outcome.confirmation.block_number
        elif outcome.status == OutcomeStatus.SUBMITTED:
            body["message"] = f"{label} transfer submitted"
        else:
            body["message"] = f"{label} transfer submitted, confirmation pending"
            status = 202

        if self._network and (url := self._network.tx_url(outcome.tx_hash)):
            body["explorerUrl"] = url
        return web.json_response(body, status=status)
