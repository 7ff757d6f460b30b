"""Tests for the token contract interface."""

import pytest
from eth_abi import decode as abi_decode
from web3 import Web3

from spigot.chain.tokens import BALANCE_OF_SELECTOR, TRANSFER_SELECTOR, TokenContract
from spigot.config import USDC_MAINNET_ADDRESS

RECIPIENT = "0x" + "11" * 20


class TestSelectors:
    """Tests for function selectors."""

    def test_transfer_selector(self):
        """transfer(address,uint256) has the standard selector."""
        assert bytes(TRANSFER_SELECTOR).hex() == "a9059cbb"

    def test_balance_of_selector(self):
        """balanceOf(address) has the standard selector."""
        assert bytes(BALANCE_OF_SELECTOR).hex() == "70a08231"


class TestTokenContract:
    """Tests for TokenContract."""

    def test_create_checksums(self):
        """create() checksums the address and lowercases the symbol."""
        token = TokenContract.create("USDC", USDC_MAINNET_ADDRESS.lower(), 6)

        assert token.symbol == "usdc"
        assert token.address == USDC_MAINNET_ADDRESS
        assert token.decimals == 6

    def test_create_rejects_invalid_address(self):
        """Invalid contract addresses are rejected."""
        with pytest.raises(ValueError, match="Invalid contract address"):
            TokenContract.create("usdc", "0x1234", 6)

    def test_encode_transfer_call(self):
        """Transfer call data is selector plus two 32-byte words."""
        token = TokenContract.create("usdc", USDC_MAINNET_ADDRESS, 6)

        data = token.encode_transfer_call(RECIPIENT, 100_000_000)

        assert len(data) == 4 + 64
        assert data[:4] == bytes.fromhex("a9059cbb")
        recipient, amount = abi_decode(["address", "uint256"], data[4:])
        assert Web3.to_checksum_address(recipient) == Web3.to_checksum_address(RECIPIENT)
        assert amount == 100_000_000

    def test_encode_transfer_rejects_negative(self):
        """Negative amounts cannot be encoded."""
        token = TokenContract.create("usdc", USDC_MAINNET_ADDRESS, 6)

        with pytest.raises(ValueError):
            token.encode_transfer_call(RECIPIENT, -1)

    def test_balance_of_roundtrip(self):
        """balanceOf call data and return decoding."""
        token = TokenContract.create("usdc", USDC_MAINNET_ADDRESS, 6)

        data = token.encode_balance_of_call(RECIPIENT)

        assert data[:4] == bytes.fromhex("70a08231")
        assert len(data) == 36
        assert TokenContract.decode_uint256((1234).to_bytes(32, "big")) == 1234
