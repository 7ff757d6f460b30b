"""Data model of the dispatch pipeline."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from spigot.chain.tokens import TokenContract
from spigot.config import ConfirmationMode


# Largest value an EVM uint256 (wei amounts, ERC-20 balances) can hold
MAX_UINT256 = 2**256 - 1


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Convert a decimal amount into the asset's smallest integer unit.

    The conversion is exact integer arithmetic on the digits of ``amount``,
    independent of the active decimal context.

    Parameters
    ----------
    amount : Decimal
        Amount in whole units (e.g. ``Decimal("0.1")`` ETH).
    decimals : int
        Declared precision of the asset.

    Returns
    -------
    int
        Amount in smallest units.

    Raises
    ------
    ValueError
        If the amount is not finite or has more fractional digits than
        ``decimals``.
    """
    sign, digits, exponent = amount.as_tuple()
    if not isinstance(exponent, int):
        raise ValueError(f"{amount} is not a finite amount")

    coefficient = int("".join(str(d) for d in digits))
    if coefficient == 0:
        return 0
    while coefficient % 10 == 0:
        coefficient //= 10
        exponent += 1

    shift = exponent + decimals
    if shift < 0:
        raise ValueError(f"{amount} has more than {decimals} decimal places")
    units = coefficient * 10**shift
    return -units if sign else units


class AssetKind(str, Enum):
    """How value moves for an asset."""

    NATIVE = "native"
    TOKEN = "token"


class OutcomeStatus(str, Enum):
    """State of a transaction when the response is sent."""

    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    PENDING = "pending"


@dataclass(frozen=True)
class Asset:
    """A fundable asset and its dispatch parameters.

    Attributes
    ----------
    symbol : str
        Display symbol (``ETH``, ``usdc``).
    kind : AssetKind
        Native value transfer or token-contract call.
    decimals : int
        Declared decimal precision.
    contract : TokenContract | None
        Token contract, None for the native asset.
    gas_limit : int | None
        Fixed compute limit. None means estimate per transaction.
    max_amount : Decimal | None
        Per-request cap, None for uncapped.
    confirmation_mode : ConfirmationMode | None
        Per-asset mode override, None to use the dispatcher default.
    """

    symbol: str
    kind: AssetKind
    decimals: int
    contract: TokenContract | None = None
    gas_limit: int | None = None
    max_amount: Decimal | None = None
    confirmation_mode: ConfirmationMode | None = None

    @classmethod
    def native(
        cls,
        symbol: str = "ETH",
        decimals: int = 18,
        gas_limit: int = 21000,
        max_amount: Decimal | None = None,
    ) -> "Asset":
        return cls(
            symbol=symbol,
            kind=AssetKind.NATIVE,
            decimals=decimals,
            gas_limit=gas_limit,
            max_amount=max_amount,
        )

    @classmethod
    def token(
        cls,
        contract: TokenContract,
        gas_limit: int | None = None,
        max_amount: Decimal | None = None,
        confirmation_mode: ConfirmationMode | None = None,
    ) -> "Asset":
        return cls(
            symbol=contract.symbol,
            kind=AssetKind.TOKEN,
            decimals=contract.decimals,
            contract=contract,
            gas_limit=gas_limit,
            max_amount=max_amount,
            confirmation_mode=confirmation_mode,
        )

    @property
    def is_native(self) -> bool:
        return self.kind == AssetKind.NATIVE

    @property
    def label(self) -> str:
        """Name used in response messages."""
        return "Native" if self.is_native else self.symbol.upper()


@dataclass(frozen=True)
class FundingRequest:
    """A validated, normalized funding request."""

    recipient: str  # checksummed
    amount: Decimal
    asset: Asset


@dataclass(frozen=True)
class UnsignedTransaction:
    """Transaction fields ready for signing.

    ``amount_units`` is the transfer amount in the asset's smallest unit;
    ``value`` is the native value carried by the transaction itself, which is
    zero for token transfers (value moves through ``payload``).
    """

    recipient: str
    amount: Decimal
    amount_units: int
    sequence: int
    fee_price: int
    gas_limit: int
    destination: str
    value: int
    payload: bytes
    asset: Asset

    def to_tx_params(self, chain_id: int) -> dict[str, Any]:
        """Legacy transaction dict accepted by ``eth_account``."""
        return {
            "to": self.destination,
            "value": self.value,
            "gas": self.gas_limit,
            "gasPrice": self.fee_price,
            "nonce": self.sequence,
            "chainId": chain_id,
            "data": self.payload,
        }


@dataclass(frozen=True)
class SignedTransaction:
    """A signed, broadcast-ready transaction."""

    unsigned: UnsignedTransaction
    chain_id: int
    raw: bytes
    tx_hash: str
    v: int
    r: int
    s: int

    @property
    def sequence(self) -> int:
        return self.unsigned.sequence


@dataclass(frozen=True)
class ConfirmationRecord:
    """Receipt summary of a mined transaction."""

    block_number: int
    block_hash: str | None
    success: bool
    gas_used: int | None = None

    @classmethod
    def from_receipt(cls, receipt: dict[str, Any]) -> "ConfirmationRecord":
        block_hash = receipt.get("blockHash")
        if isinstance(block_hash, bytes):
            block_hash = "0x" + block_hash.hex().removeprefix("0x")
        return cls(
            block_number=int(receipt["blockNumber"]),
            block_hash=block_hash,
            success=int(receipt.get("status", 1)) == 1,
            gas_used=receipt.get("gasUsed"),
        )


@dataclass
class TransactionOutcome:
    """What a funding request produced."""

    tx_hash: str
    status: OutcomeStatus
    request: FundingRequest
    sequence: int
    confirmation: ConfirmationRecord | None = None
