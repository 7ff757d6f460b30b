"""Ledger RPC client wrapper for Spigot dispatch operations."""

import logging
from typing import Any

from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

logger = logging.getLogger(__name__)


class LedgerClient:
    """Wrapper around web3.py's async client for faucet dispatch.

    Exposes the handful of JSON-RPC calls the dispatch pipeline needs and
    nothing else. Every method is a single network round trip.

    Parameters
    ----------
    rpc_endpoint : str
        The ledger JSON-RPC endpoint URL.
    """

    def __init__(self, rpc_endpoint: str):
        self._rpc_endpoint = rpc_endpoint
        self._w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_endpoint))

    @property
    def rpc_endpoint(self) -> str:
        """The configured RPC endpoint URL."""
        return self._rpc_endpoint

    async def is_connected(self) -> bool:
        """Check if the RPC endpoint answers.

        Returns
        -------
        bool
            True if connected, False otherwise.
        """
        return await self._w3.is_connected()

    async def get_chain_id(self) -> int:
        """Get the chain ID from the connected network.

        Returns
        -------
        int
            The chain ID.
        """
        return await self._w3.eth.chain_id

    async def get_fee_price(self) -> int:
        """Get the current gas price in wei.

        Always queried fresh; callers must not cache it.

        Returns
        -------
        int
            Gas price in wei.
        """
        return await self._w3.eth.gas_price

    async def estimate_compute_limit(self, tx: dict[str, Any]) -> int:
        """Estimate the gas a transaction skeleton would consume.

        Parameters
        ----------
        tx : dict[str, Any]
            Transaction fields (``from``, ``to``, ``data``, ``value``).

        Returns
        -------
        int
            Estimated gas units.
        """
        return await self._w3.eth.estimate_gas(tx)

    async def get_account_sequence(self, address: str, block: str = "latest") -> int:
        """Get the transaction count (nonce) of an account.

        Parameters
        ----------
        address : str
            The account address.
        block : str, optional
            Block identifier, ``"latest"`` (confirmed) or ``"pending"``.

        Returns
        -------
        int
            Number of transactions sent from the account.
        """
        checksum_address = Web3.to_checksum_address(address)
        return await self._w3.eth.get_transaction_count(checksum_address, block)

    async def submit_signed_transaction(self, raw: bytes) -> str:
        """Broadcast a signed transaction.

        Parameters
        ----------
        raw : bytes
            The serialized signed transaction.

        Returns
        -------
        str
            The 0x-prefixed transaction hash.
        """
        tx_hash = await self._w3.eth.send_raw_transaction(raw)
        return Web3.to_hex(tx_hash)

    async def get_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        """Look up a transaction receipt.

        Parameters
        ----------
        tx_hash : str
            The transaction hash.

        Returns
        -------
        dict[str, Any] | None
            The receipt, or None while the transaction is not yet mined.
        """
        try:
            receipt = await self._w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        return dict(receipt)

    async def get_balance(self, address: str) -> int:
        """Get the native balance of an address in wei."""
        checksum_address = Web3.to_checksum_address(address)
        return await self._w3.eth.get_balance(checksum_address)

    async def call(self, to: str, data: bytes) -> bytes:
        """Execute a read-only contract call against the latest block."""
        result = await self._w3.eth.call({"to": Web3.to_checksum_address(to), "data": data})
        return bytes(result)

    async def close(self) -> None:
        """Release the HTTP session held by the provider."""
        await self._w3.provider.disconnect()
        logger.debug("Ledger client closed", extra={"rpc": self._rpc_endpoint})
