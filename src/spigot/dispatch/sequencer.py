"""Nonce sequencer for the faucet signing account.

The faucet signs everything with one key, so every transaction it sends must
carry the next account nonce exactly once. The sequencer owns that counter:
it is seeded from the ledger at startup and afterwards only moves forward
under an asyncio lock.
"""

import asyncio
import logging

from spigot.observability.metrics import NEXT_SEQUENCE, SEQUENCE_GAPS

logger = logging.getLogger(__name__)


class NonceSequencer:
    """Hands out strictly increasing nonces for a single account.

    The lock guards only the read-increment-return step. Callers do their
    network I/O after ``next()`` returns, so concurrent requests never queue
    behind each other's RPC latency.

    Parameters
    ----------
    ledger : LedgerClient
        Ledger collaborator used to seed the counter.
    address : str
        The faucet account address.
    """

    def __init__(self, ledger, address: str):
        self._ledger = ledger
        self._address = address
        self._lock = asyncio.Lock()
        self._next: int | None = None
        self._gaps: set[int] = set()

    @property
    def address(self) -> str:
        return self._address

    @property
    def initialized(self) -> bool:
        return self._next is not None

    @property
    def gaps(self) -> list[int]:
        """Issued sequence numbers known to be missing on chain, ascending."""
        return sorted(self._gaps)

    async def initialize(self) -> int:
        """Seed the counter from the account's confirmed transaction count.

        Transactions still pending from a previous process are not
        reconciled; a stale seed produces "nonce too low" rejections until
        they confirm.

        Returns
        -------
        int
            The first sequence number this process will issue.
        """
        async with self._lock:
            if self._next is None:
                self._next = await self._ledger.get_account_sequence(self._address)
                NEXT_SEQUENCE.set(self._next)
                logger.info(
                    "Nonce sequencer seeded",
                    extra={"address": self._address, "sequence": self._next},
                )
            return self._next

    async def next(self) -> int:
        """Issue the next sequence number.

        Raises
        ------
        RuntimeError
            If ``initialize()`` has not completed.
        """
        async with self._lock:
            if self._next is None:
                raise RuntimeError("Nonce sequencer used before initialize()")
            sequence = self._next
            self._next += 1
        NEXT_SEQUENCE.set(sequence + 1)
        return sequence

    def peek(self) -> int | None:
        """The number ``next()`` would return, without consuming it."""
        return self._next

    def record_gap(self, sequence: int) -> None:
        """Remember an issued number that never reached the network."""
        self._gaps.add(sequence)
        SEQUENCE_GAPS.set(len(self._gaps))
        logger.error(
            "Sequence gap recorded; later transactions will stall until it is filled",
            extra={"address": self._address, "sequence": sequence},
        )

    def resolve_gap(self, sequence: int) -> None:
        """Forget a gap once a transaction occupies that number."""
        self._gaps.discard(sequence)
        SEQUENCE_GAPS.set(len(self._gaps))

    async def reconcile(self) -> list[int]:
        """Drop recorded gaps that the ledger shows as occupied.

        A gap filled elsewhere (``spigot fill-gap`` runs in its own process)
        is detected once the account's confirmed count moves past it.

        Returns
        -------
        list[int]
            Gaps still unresolved, ascending.
        """
        if not self._gaps:
            return []
        confirmed = await self._ledger.get_account_sequence(self._address, "latest")
        for sequence in self.gaps:
            if sequence < confirmed:
                self.resolve_gap(sequence)
                logger.info(
                    "Sequence gap occupied on chain",
                    extra={"address": self._address, "sequence": sequence},
                )
        return self.gaps
