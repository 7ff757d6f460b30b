"""Component wiring shared by the service and the CLI."""

import logging
from dataclasses import dataclass

from spigot.chain.client import LedgerClient
from spigot.chain.networks import NetworkInfo
from spigot.chain.tokens import TokenContract
from spigot.config import SpigotConfig
from spigot.core.signer import Signer
from spigot.dispatch.broadcaster import Broadcaster
from spigot.dispatch.builder import TransactionBuilder
from spigot.dispatch.models import Asset
from spigot.dispatch.sequencer import NonceSequencer
from spigot.dispatch.service import Dispatcher

logger = logging.getLogger(__name__)


class ChainMismatchError(RuntimeError):
    """The RPC endpoint serves a different chain than configured."""


@dataclass
class Pipeline:
    """A fully wired dispatch pipeline."""

    dispatcher: Dispatcher
    sequencer: NonceSequencer
    network: NetworkInfo


def build_assets(config: SpigotConfig) -> tuple[Asset, list[Asset]]:
    """Create the native asset and the configured tokens.

    Raises
    ------
    ValueError
        If a token contract address is invalid.
    """
    native = Asset.native(
        symbol=config.native_symbol,
        decimals=config.native_decimals,
        gas_limit=config.native_gas_limit,
        max_amount=config.max_native_amount,
    )
    tokens = [
        Asset.token(
            TokenContract.create(token.symbol, token.address, token.decimals),
            gas_limit=token.gas_limit,
            max_amount=token.max_amount,
            confirmation_mode=token.confirmation_mode,
        )
        for token in config.tokens
    ]
    return native, tokens


async def resolve_chain_id(config: SpigotConfig, ledger: LedgerClient) -> int:
    """Read the chain id from the RPC and check it against configuration.

    Raises
    ------
    ChainMismatchError
        If ``SPIGOT_CHAIN_ID`` is set and differs from the RPC's chain id.
    """
    chain_id = await ledger.get_chain_id()
    if config.chain_id is not None and config.chain_id != chain_id:
        raise ChainMismatchError(
            f"RPC endpoint serves chain {chain_id}, expected {config.chain_id}"
        )
    return chain_id


async def build_pipeline(
    config: SpigotConfig,
    signer: Signer,
    ledger: LedgerClient,
) -> Pipeline:
    """Wire the dispatch pipeline and seed the nonce sequencer."""
    chain_id = await resolve_chain_id(config, ledger)
    logger.info("Connected to chain", extra={"chain_id": chain_id})

    native, tokens = build_assets(config)
    sequencer = NonceSequencer(ledger, signer.address)
    await sequencer.initialize()

    dispatcher = Dispatcher(
        native=native,
        tokens=tokens,
        sequencer=sequencer,
        builder=TransactionBuilder(ledger, native_gas_limit=config.native_gas_limit),
        signer=signer,
        broadcaster=Broadcaster(ledger, poll_interval=config.receipt_poll_interval_seconds),
        chain_id=chain_id,
        confirmation_mode=config.confirmation_mode,
        confirmation_timeout=config.confirmation_timeout_seconds,
        fill_gaps=config.fill_sequence_gaps,
    )
    network = NetworkInfo(chain_id=chain_id, block_explorer_url=config.block_explorer_url)
    return Pipeline(dispatcher=dispatcher, sequencer=sequencer, network=network)
