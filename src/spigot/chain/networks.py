"""Network information for explorer links.

The explorer URL comes from configuration; the chain id is discovered from
the RPC endpoint at startup.
"""

from dataclasses import dataclass


@dataclass
class NetworkInfo:
    """Network identity of the connected ledger.

    Attributes
    ----------
    chain_id : int
        The chain ID (discovered from RPC).
    block_explorer_url : str | None
        Optional block explorer base URL.
    """

    chain_id: int
    block_explorer_url: str | None = None

    def tx_url(self, tx_hash: str) -> str | None:
        """Explorer link for a transaction, or None without an explorer."""
        if not self.block_explorer_url:
            return None
        return f"{self.block_explorer_url.rstrip('/')}/tx/{tx_hash}"

    def address_url(self, address: str) -> str | None:
        """Explorer link for an address, or None without an explorer."""
        if not self.block_explorer_url:
            return None
        return f"{self.block_explorer_url.rstrip('/')}/address/{address}"
