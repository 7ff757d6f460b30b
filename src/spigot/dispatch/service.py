"""Dispatch service for Spigot.

Runs one funding request through the pipeline:
- Request validation
- Nonce sequencing
- Transaction building
- Signing
- Broadcast, then confirmation wait in ``wait`` mode
"""

import logging
import time
from collections.abc import Mapping
from typing import Any

from spigot.config import ConfirmationMode
from spigot.observability.metrics import AMOUNT_DISTRIBUTED, REQUEST_DURATION, REQUESTS

from .broadcaster import Broadcaster
from .builder import TransactionBuilder
from .errors import (
    BroadcastError,
    BuildError,
    ConfirmationTimeout,
    DispatchError,
    SequenceGapError,
    SigningError,
    TransactionRevertedError,
)
from .models import Asset, OutcomeStatus, TransactionOutcome
from .sequencer import NonceSequencer
from .validator import validate_funding_request

logger = logging.getLogger(__name__)


class Dispatcher:
    """Main dispatch service orchestrating the pipeline components.

    Parameters
    ----------
    native : Asset
        The chain's native asset.
    tokens : list[Asset]
        Supported fungible tokens.
    sequencer : NonceSequencer
        Owner of the faucet account nonce.
    builder : TransactionBuilder
        Unsigned transaction builder.
    signer : Signer
        Holder of the faucet key.
    broadcaster : Broadcaster
        Submission and confirmation.
    chain_id : int
        Chain id bound into every signature.
    confirmation_mode : ConfirmationMode
        Default mode for assets without an override.
    confirmation_timeout : float
        Seconds to wait for a receipt in ``wait`` mode.
    fill_gaps : bool
        Plug nonces left unused by a failed request with a no-op transfer.
    """

    def __init__(
        self,
        native: Asset,
        tokens: list[Asset],
        sequencer: NonceSequencer,
        builder: TransactionBuilder,
        signer,
        broadcaster: Broadcaster,
        chain_id: int,
        confirmation_mode: ConfirmationMode = ConfirmationMode.WAIT,
        confirmation_timeout: float = 30.0,
        fill_gaps: bool = True,
    ):
        self._native = native
        self._assets: dict[str, Asset] = {native.symbol.lower(): native}
        for token in tokens:
            self._assets[token.symbol.lower()] = token
        self._tokens = list(tokens)
        self._sequencer = sequencer
        self._builder = builder
        self._signer = signer
        self._broadcaster = broadcaster
        self._chain_id = chain_id
        self._confirmation_mode = confirmation_mode
        self._confirmation_timeout = confirmation_timeout
        self._fill_gaps = fill_gaps

    @property
    def native(self) -> Asset:
        return self._native

    @property
    def tokens(self) -> list[Asset]:
        return list(self._tokens)

    @property
    def sequencer(self) -> NonceSequencer:
        return self._sequencer

    @property
    def faucet_address(self) -> str:
        return self._signer.address

    def get_asset(self, symbol: str) -> Asset:
        """Look up a served asset by symbol (case-insensitive).

        Raises
        ------
        KeyError
            If the asset is not served.
        """
        return self._assets[symbol.lower()]

    def mode_for(self, asset: Asset) -> ConfirmationMode:
        return asset.confirmation_mode or self._confirmation_mode

    async def fund(
        self,
        asset: Asset,
        payload: Mapping[str, Any],
        mode: ConfirmationMode | None = None,
    ) -> TransactionOutcome:
        """Handle a funding request end to end.

        Parameters
        ----------
        asset : Asset
            Asset served by the route.
        payload : Mapping[str, Any]
            Raw request body (``address``, ``amount``).
        mode : ConfirmationMode | None
            Overrides the configured mode for this call.

        Returns
        -------
        TransactionOutcome
            ``confirmed``, ``submitted`` or ``pending`` outcome.

        Raises
        ------
        DispatchError
            On validation, build, signing, broadcast failure or revert.
        """
        started = time.monotonic()
        try:
            outcome = await self._fund(asset, payload, mode or self.mode_for(asset))
        except DispatchError as e:
            REQUESTS.labels(asset=asset.symbol, status=e.code.lower()).inc()
            raise
        finally:
            REQUEST_DURATION.labels(asset=asset.symbol).observe(time.monotonic() - started)

        REQUESTS.labels(asset=asset.symbol, status=outcome.status.value).inc()
        AMOUNT_DISTRIBUTED.labels(asset=asset.symbol).inc(float(outcome.request.amount))
        return outcome

    async def _fund(
        self,
        asset: Asset,
        payload: Mapping[str, Any],
        mode: ConfirmationMode,
    ) -> TransactionOutcome:
        request = validate_funding_request(payload, asset)

        logger.info(
            "Processing transfer",
            extra={
                "asset": asset.symbol,
                "recipient": request.recipient,
                "amount": str(request.amount),
            },
        )

        sequence = await self._sequencer.next()
        try:
            unsigned = await self._builder.build(request, sequence, self._signer.address)
            signed = self._signer.sign(unsigned, self._chain_id)
            tx_hash = await self._broadcaster.submit(signed)
        except (BuildError, SigningError, BroadcastError) as e:
            await self._handle_unused_sequence(sequence, e)
            raise
        except Exception as e:
            logger.error(
                "Unexpected failure before broadcast",
                extra={"sequence": sequence, "error": str(e), "error_type": type(e).__name__},
                exc_info=True,
            )
            error = BuildError(f"Could not build transaction: {e}", sequence=sequence)
            await self._handle_unused_sequence(sequence, error)
            raise error from e

        if mode == ConfirmationMode.SUBMIT:
            return TransactionOutcome(
                tx_hash=tx_hash,
                status=OutcomeStatus.SUBMITTED,
                request=request,
                sequence=sequence,
            )

        try:
            record = await self._broadcaster.await_confirmation(
                tx_hash, self._confirmation_timeout
            )
        except ConfirmationTimeout:
            return TransactionOutcome(
                tx_hash=tx_hash,
                status=OutcomeStatus.PENDING,
                request=request,
                sequence=sequence,
            )

        if not record.success:
            raise TransactionRevertedError(
                f"Transaction reverted in block {record.block_number}",
                tx_hash=tx_hash,
                sequence=sequence,
            )

        logger.info(
            "Transfer successful",
            extra={"asset": asset.symbol, "tx_hash": tx_hash, "block": record.block_number},
        )
        return TransactionOutcome(
            tx_hash=tx_hash,
            status=OutcomeStatus.CONFIRMED,
            request=request,
            sequence=sequence,
            confirmation=record,
        )

    async def _handle_unused_sequence(self, sequence: int, error: DispatchError) -> None:
        """Deal with a nonce that was issued but never broadcast.

        Returns normally when the gap was filled, so the caller re-raises the
        original error. Raises SequenceGapError when the gap stays open.
        """
        if self._fill_gaps:
            try:
                tx_hash = await self.fill_gap(sequence)
            except DispatchError as fill_error:
                logger.error(
                    "Sequence gap filler failed",
                    extra={"sequence": sequence, "error": fill_error.message},
                )
            else:
                logger.warning(
                    "Sequence gap filled with no-op transfer",
                    extra={"sequence": sequence, "tx_hash": tx_hash},
                )
                return

        self._sequencer.record_gap(sequence)
        raise SequenceGapError(
            f"{error.message} (sequence {sequence} left unused)",
            sequence=sequence,
        ) from error

    async def fill_gap(self, sequence: int) -> str:
        """Occupy ``sequence`` with a zero-value transfer to the faucet itself.

        Returns
        -------
        str
            Hash of the filler transaction.

        Raises
        ------
        DispatchError
            If the filler could not be built, signed or broadcast.
        """
        unsigned = await self._builder.build_noop(sequence, self._signer.address, self._native)
        signed = self._signer.sign(unsigned, self._chain_id)
        tx_hash = await self._broadcaster.submit(signed)
        self._sequencer.resolve_gap(sequence)
        return tx_hash
