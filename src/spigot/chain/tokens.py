"""Minimal ERC-20 contract interface for token transfers.

Only the two calls the faucet needs are encoded here:
- transfer(address,uint256) for distribution
- balanceOf(address) for operator balance checks
"""

from dataclasses import dataclass

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from web3 import Web3

TRANSFER_SELECTOR = Web3.keccak(text="transfer(address,uint256)")[:4]
BALANCE_OF_SELECTOR = Web3.keccak(text="balanceOf(address)")[:4]


@dataclass(frozen=True)
class TokenContract:
    """A fixed-decimals fungible token deployed at a known address.

    Attributes
    ----------
    symbol : str
        Lower-case token symbol, also used in the route name.
    address : str
        Checksummed contract address.
    decimals : int
        Declared decimal precision of the token.
    """

    symbol: str
    address: str
    decimals: int

    @classmethod
    def create(cls, symbol: str, address: str, decimals: int) -> "TokenContract":
        """Build a contract reference, checksumming the address.

        Raises
        ------
        ValueError
            If ``address`` is not a valid address.
        """
        if not Web3.is_address(address):
            raise ValueError(f"Invalid contract address for {symbol}: {address}")
        return cls(
            symbol=symbol.lower(),
            address=Web3.to_checksum_address(address),
            decimals=decimals,
        )

    def encode_transfer_call(self, recipient: str, amount: int) -> bytes:
        """Encode call data for ``transfer(recipient, amount)``.

        Parameters
        ----------
        recipient : str
            Recipient address.
        amount : int
            Amount in the token's smallest unit.

        Returns
        -------
        bytes
            Selector followed by the ABI-encoded arguments.
        """
        if amount < 0:
            raise ValueError("Token amount must not be negative")
        args = abi_encode(["address", "uint256"], [Web3.to_checksum_address(recipient), amount])
        return bytes(TRANSFER_SELECTOR) + args

    def encode_balance_of_call(self, owner: str) -> bytes:
        """Encode call data for ``balanceOf(owner)``."""
        return bytes(BALANCE_OF_SELECTOR) + abi_encode(
            ["address"], [Web3.to_checksum_address(owner)]
        )

    @staticmethod
    def decode_uint256(data: bytes) -> int:
        """Decode a single ``uint256`` return value."""
        (value,) = abi_decode(["uint256"], data)
        return value
