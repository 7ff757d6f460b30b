"""Transaction builder for native and token transfers.

Native transfers:
- destination is the recipient, payload is empty
- value is the amount in the native smallest unit
- compute limit is the fixed native transfer cost

Token transfers:
- destination is the token contract, native value is zero
- payload is the encoded ``transfer(recipient, amount)`` call
- compute limit is estimated per transaction unless configured
"""

import logging
from decimal import Decimal

from .errors import BuildError
from .models import MAX_UINT256, Asset, FundingRequest, UnsignedTransaction, to_base_units

logger = logging.getLogger(__name__)

NATIVE_TRANSFER_GAS = 21000


class TransactionBuilder:
    """Builds unsigned transactions from validated requests.

    The fee price is fetched from the ledger on every build. A cached price
    can fall below the market and leave the transaction stuck in the pool.

    Parameters
    ----------
    ledger : LedgerClient
        Ledger collaborator for fee price and compute estimates.
    native_gas_limit : int
        Fixed compute limit for native transfers.
    """

    def __init__(self, ledger, native_gas_limit: int = NATIVE_TRANSFER_GAS):
        self._ledger = ledger
        self._native_gas_limit = native_gas_limit

    async def build(
        self,
        request: FundingRequest,
        sequence: int,
        account: str,
    ) -> UnsignedTransaction:
        """Build the unsigned transaction for a funding request.

        Parameters
        ----------
        request : FundingRequest
            Validated request.
        sequence : int
            Nonce issued by the sequencer.
        account : str
            Faucet account address (transaction sender).

        Returns
        -------
        UnsignedTransaction
            Transaction ready for signing.

        Raises
        ------
        BuildError
            If a ledger lookup fails or the amount cannot be encoded.
        """
        asset = request.asset
        try:
            amount_units = to_base_units(request.amount, asset.decimals)
            if amount_units > MAX_UINT256:
                raise ValueError(f"{request.amount} {asset.label} exceeds the uint256 range")
            destination, value, payload = self._transfer_fields(request, amount_units)
        except Exception as e:
            logger.error(
                "Transfer encoding failed",
                extra={"asset": asset.symbol, "sequence": sequence, "error": str(e)},
            )
            raise BuildError(f"Could not encode transfer: {e}", sequence=sequence) from e

        try:
            fee_price = await self._ledger.get_fee_price()
            gas_limit = await self._compute_limit(asset, account, destination, value, payload)
        except Exception as e:
            logger.error(
                "Transaction build failed",
                extra={"asset": asset.symbol, "sequence": sequence, "error": str(e)},
            )
            raise BuildError(f"Could not build transaction: {e}", sequence=sequence) from e

        return UnsignedTransaction(
            recipient=request.recipient,
            amount=request.amount,
            amount_units=amount_units,
            sequence=sequence,
            fee_price=fee_price,
            gas_limit=gas_limit,
            destination=destination,
            value=value,
            payload=payload,
            asset=asset,
        )

    async def build_noop(self, sequence: int, account: str, asset: Asset) -> UnsignedTransaction:
        """Build a zero-value self-transfer that occupies ``sequence``.

        Used to plug a nonce that was issued but never broadcast.
        """
        try:
            fee_price = await self._ledger.get_fee_price()
        except Exception as e:
            raise BuildError(f"Could not build filler transaction: {e}", sequence=sequence) from e

        return UnsignedTransaction(
            recipient=account,
            amount=Decimal(0),
            amount_units=0,
            sequence=sequence,
            fee_price=fee_price,
            gas_limit=self._native_gas_limit,
            destination=account,
            value=0,
            payload=b"",
            asset=asset,
        )

    def _transfer_fields(
        self, request: FundingRequest, amount_units: int
    ) -> tuple[str, int, bytes]:
        """Destination, native value and payload of a transfer."""
        asset = request.asset
        if asset.is_native:
            return request.recipient, amount_units, b""
        payload = asset.contract.encode_transfer_call(request.recipient, amount_units)
        return asset.contract.address, 0, payload

    async def _compute_limit(
        self,
        asset: Asset,
        account: str,
        destination: str,
        value: int,
        payload: bytes,
    ) -> int:
        if asset.gas_limit is not None:
            return asset.gas_limit
        if asset.is_native:
            return self._native_gas_limit
        return await self._ledger.estimate_compute_limit(
            {"from": account, "to": destination, "value": value, "data": payload}
        )
