"""Request validation for funding routes.

Checks run in a fixed order and the first failure wins:
1. address and amount present
2. address normalized with the ``0x`` prefix
3. address format / checksum
4. amount is a finite decimal > 0
5. amount fits the asset's precision, the uint256 range and the per-request cap
"""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from web3 import Web3

from .errors import ValidationError
from .models import MAX_UINT256, Asset, FundingRequest, to_base_units

ADDRESS_PREFIX = "0x"

MISSING_FIELDS = "Address and amount are required."
INVALID_ADDRESS = "Invalid Ethereum address."
INVALID_AMOUNT = "Amount must be > 0."

# Decimal exponent of the largest uint256 value
MAX_UINT256_DIGITS = len(str(MAX_UINT256)) - 1


def _is_absent(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def normalize_address(address: Any) -> str:
    """Prefix a bare hex address with ``0x``.

    Raises
    ------
    ValidationError
        If the address is not a string or fails the format/checksum check.
    """
    if not isinstance(address, str):
        raise ValidationError(INVALID_ADDRESS)

    normalized = address.strip()
    if not normalized.startswith(ADDRESS_PREFIX):
        normalized = f"{ADDRESS_PREFIX}{normalized}"

    # Accepts all-lower/all-upper hex, or mixed case with a valid EIP-55 checksum
    if not Web3.is_address(normalized):
        raise ValidationError(INVALID_ADDRESS)
    return Web3.to_checksum_address(normalized)


def parse_amount(amount: Any) -> Decimal:
    """Parse a JSON number or numeric string into a positive Decimal.

    Raises
    ------
    ValidationError
        If the amount is not numeric, not finite, or not greater than zero.
    """
    if isinstance(amount, bool):
        raise ValidationError(INVALID_AMOUNT)
    try:
        parsed = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(INVALID_AMOUNT) from None
    if not parsed.is_finite() or parsed <= 0:
        raise ValidationError(INVALID_AMOUNT)
    return parsed


def _check_asset_limits(amount: Decimal, asset: Asset) -> None:
    # Checked on the exponent before the amount is expanded to an integer
    if amount.adjusted() + asset.decimals > MAX_UINT256_DIGITS:
        raise ValidationError(f"Amount is too large for {asset.label}.")
    try:
        units = to_base_units(amount, asset.decimals)
    except ValueError:
        raise ValidationError(
            f"Amount supports at most {asset.decimals} decimal places for {asset.label}."
        ) from None
    if units > MAX_UINT256:
        raise ValidationError(f"Amount is too large for {asset.label}.")
    if asset.max_amount is not None and amount > asset.max_amount:
        raise ValidationError(f"Amount must not exceed {asset.max_amount} {asset.label}.")


def validate_funding_request(raw: Mapping[str, Any], asset: Asset) -> FundingRequest:
    """Validate a raw request body for the given asset.

    Parameters
    ----------
    raw : Mapping[str, Any]
        Decoded JSON body with ``address`` and ``amount``.
    asset : Asset
        Asset served by the route.

    Returns
    -------
    FundingRequest
        The normalized request.

    Raises
    ------
    ValidationError
        On the first failed check. Nothing downstream runs.
    """
    address = raw.get("address")
    amount = raw.get("amount")

    if _is_absent(address) or _is_absent(amount):
        raise ValidationError(MISSING_FIELDS)

    recipient = normalize_address(address)
    parsed_amount = parse_amount(amount)
    _check_asset_limits(parsed_amount, asset)

    return FundingRequest(recipient=recipient, amount=parsed_amount, asset=asset)
