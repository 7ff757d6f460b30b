"""Broadcast and confirmation of signed transactions."""

import asyncio
import logging
import time

from spigot.observability.metrics import CONFIRMATION_DURATION

from .errors import BroadcastError, ConfirmationTimeout
from .models import ConfirmationRecord, SignedTransaction

logger = logging.getLogger(__name__)


class Broadcaster:
    """Submits signed transactions and optionally waits for their receipts.

    Submission only guarantees acceptance into the pending pool. The
    confirmation wait polls for a receipt until one appears or the timeout
    elapses; an elapsed timeout abandons the wait but never the transaction,
    which the ledger may still include later.

    Parameters
    ----------
    ledger : LedgerClient
        Ledger collaborator.
    poll_interval : float
        Seconds between receipt lookups.
    """

    def __init__(self, ledger, poll_interval: float = 1.0):
        self._ledger = ledger
        self._poll_interval = poll_interval

    async def submit(self, signed: SignedTransaction) -> str:
        """Broadcast a signed transaction.

        Returns
        -------
        str
            The transaction hash reported by the ledger.

        Raises
        ------
        BroadcastError
            If the ledger rejects the transaction (e.g. insufficient funds).
        """
        try:
            tx_hash = await self._ledger.submit_signed_transaction(signed.raw)
        except Exception as e:
            logger.error(
                "Transaction submission failed",
                extra={"sequence": signed.sequence, "error": str(e)},
            )
            raise BroadcastError(
                f"Transaction rejected: {e}", sequence=signed.sequence
            ) from e

        if tx_hash.lower() != signed.tx_hash.lower():
            logger.warning(
                "Ledger returned an unexpected transaction hash",
                extra={"expected": signed.tx_hash, "tx_hash": tx_hash},
            )
        logger.info(
            "Transaction submitted",
            extra={
                "tx_hash": tx_hash,
                "sequence": signed.sequence,
                "to": signed.unsigned.recipient,
                "asset": signed.unsigned.asset.symbol,
            },
        )
        return tx_hash

    async def await_confirmation(self, tx_hash: str, timeout: float) -> ConfirmationRecord:
        """Wait for the receipt of ``tx_hash``.

        Parameters
        ----------
        tx_hash : str
            Hash returned by ``submit``.
        timeout : float
            Maximum seconds to wait.

        Returns
        -------
        ConfirmationRecord
            Receipt summary, including execution success.

        Raises
        ------
        ConfirmationTimeout
            If no receipt appeared in time. The transaction is still pending.
        """
        started = time.monotonic()
        try:
            record = await asyncio.wait_for(self._poll_receipt(tx_hash), timeout)
        except asyncio.TimeoutError:
            CONFIRMATION_DURATION.labels(outcome="timeout").observe(time.monotonic() - started)
            logger.warning(
                "Confirmation timed out, transaction still pending",
                extra={"tx_hash": tx_hash, "timeout": timeout},
            )
            raise ConfirmationTimeout(tx_hash, timeout) from None

        outcome = "success" if record.success else "reverted"
        CONFIRMATION_DURATION.labels(outcome=outcome).observe(time.monotonic() - started)
        logger.info(
            "Transaction confirmed",
            extra={
                "tx_hash": tx_hash,
                "block_number": record.block_number,
                "success": record.success,
            },
        )
        return record

    async def _poll_receipt(self, tx_hash: str) -> ConfirmationRecord:
        while True:
            try:
                receipt = await self._ledger.get_receipt(tx_hash)
            except Exception as e:
                # Lookup failures are retried until the timeout decides
                logger.warning(
                    "Receipt lookup failed",
                    extra={"tx_hash": tx_hash, "error": str(e)},
                )
                receipt = None
            if receipt is not None:
                return ConfirmationRecord.from_receipt(receipt)
            await asyncio.sleep(self._poll_interval)
