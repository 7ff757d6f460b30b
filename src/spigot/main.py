#!/usr/bin/env python3
"""Spigot - HTTP faucet for EVM ledgers.

Entry point for the Spigot service.
"""

import asyncio
import signal
import sys

from spigot.api.server import FaucetServer
from spigot.bootstrap import ChainMismatchError, build_pipeline
from spigot.chain.client import LedgerClient
from spigot.cli import create_parser, run_cli
from spigot.config import SpigotConfig
from spigot.core.signer import Signer
from spigot.dispatch.rate_limiter import AdmissionGate
from spigot.observability.health import LedgerCheck, SequenceCheck
from spigot.observability.logging import configure_logging, get_logger


def parse_args(argv: list[str] | None = None):
    """Parse command line arguments."""
    return create_parser().parse_args(argv)


async def run_service() -> None:
    """Run the Spigot faucet (long-running mode).

    Wires up and starts all service components:
    - Signer and ledger client
    - Nonce sequencer seeded from the chain
    - Admission gate (Redis or in-memory)
    - Dispatcher and the HTTP server with health routes
    """
    config = SpigotConfig()
    configure_logging(level=config.log_level, log_format=config.log_format)

    logger = get_logger(__name__)
    logger.info("Spigot starting", rpc=config.rpc_endpoint)

    try:
        signer = Signer.from_settings(config.private_key, config.private_key_file)
    except (ValueError, FileNotFoundError) as e:
        logger.error("Signing key unavailable", error=str(e))
        sys.exit(1)

    ledger = LedgerClient(config.rpc_endpoint)
    try:
        pipeline = await build_pipeline(config, signer, ledger)
    except ChainMismatchError as e:
        logger.error("Chain id mismatch", error=str(e))
        await ledger.close()
        sys.exit(1)
    except Exception as e:
        logger.error("Could not reach ledger", error=str(e), error_type=type(e).__name__)
        await ledger.close()
        sys.exit(1)

    gate = AdmissionGate(
        limit=config.max_requests,
        window_seconds=config.rate_window_seconds,
        redis_url=config.redis_url,
    )

    server = FaucetServer(
        pipeline.dispatcher,
        gate,
        host=config.host,
        port=config.port,
        checks=[LedgerCheck(ledger), SequenceCheck(pipeline.sequencer)],
        cors_origins=config.cors_origins,
        trusted_proxy_hops=config.trusted_proxy_hops,
        network=pipeline.network,
    )

    # Create shutdown event
    shutdown_event = asyncio.Event()

    # Use asyncio signal handlers for event-loop-safe signal handling
    loop = asyncio.get_running_loop()

    def on_shutdown_signal(sig_name: str) -> None:
        logger.info("Received signal, initiating shutdown", signal=sig_name)
        shutdown_event.set()

    loop.add_signal_handler(signal.SIGTERM, lambda: on_shutdown_signal("SIGTERM"))
    loop.add_signal_handler(signal.SIGINT, lambda: on_shutdown_signal("SIGINT"))

    await gate.connect()
    await server.start()
    logger.info(
        "Faucet listening",
        port=config.port,
        faucet_address=signer.address,
        chain_id=pipeline.network.chain_id,
        next_sequence=pipeline.sequencer.peek(),
        tokens=[token.symbol for token in pipeline.dispatcher.tokens],
    )

    # Wait for shutdown signal
    await shutdown_event.wait()

    # Graceful shutdown
    logger.info("Spigot shutting down...")
    await server.stop()
    await gate.close()
    await ledger.close()
    logger.info("Spigot shutdown complete")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for Spigot."""
    args = parse_args(argv)

    # CLI subcommands run their own short-lived event loops
    if args.command and args.command != "run":
        sys.exit(run_cli(args))

    # No subcommand or "run" - start service
    asyncio.run(run_service())


def run() -> None:
    """Console script entry point."""
    main()


if __name__ == "__main__":
    run()
