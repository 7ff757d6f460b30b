"""Pytest configuration and fixtures for Spigot tests."""

import os

import pytest
from pydantic import SecretStr
from web3 import Web3

from spigot.chain.tokens import TokenContract
from spigot.config import USDC_MAINNET_ADDRESS
from spigot.core.signer import Signer
from spigot.dispatch.models import Asset

# Throwaway key used only by the test suite
TEST_PRIVATE_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
RECIPIENT = "0x" + "11" * 20
CHAIN_ID = 1337


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clear Spigot-related environment variables before each test."""
    env_prefixes = ("SPIGOT_", "REDIS_")
    for key in list(os.environ.keys()):
        if key.startswith(env_prefixes):
            monkeypatch.delenv(key, raising=False)


class FakeLedger:
    """In-process ledger collaborator.

    Accepts every raw transaction, hashes it like the network would and
    mines it on the next receipt lookup unless told otherwise.
    """

    def __init__(self, sequence: int = 0, fee_price: int = 10**9, chain_id: int = CHAIN_ID):
        self.sequence = sequence
        self.pending_sequence = sequence
        self.fee_price = fee_price
        self.chain_id = chain_id
        self.connected = True
        self.compute_estimate = 52000
        self.mine = True
        self.receipt_status = 1
        self.submit_error: Exception | None = None
        self.fee_error: Exception | None = None
        self.balance = 10**18
        self.call_result = (0).to_bytes(32, "big")
        self.submitted: list[bytes] = []
        self.estimates: list[dict] = []
        self.fee_calls = 0
        self.closed = False

    async def is_connected(self) -> bool:
        return self.connected

    async def get_chain_id(self) -> int:
        return self.chain_id

    async def get_fee_price(self) -> int:
        self.fee_calls += 1
        if self.fee_error is not None:
            raise self.fee_error
        return self.fee_price

    async def estimate_compute_limit(self, tx: dict) -> int:
        self.estimates.append(tx)
        return self.compute_estimate

    async def get_account_sequence(self, address: str, block: str = "latest") -> int:
        return self.pending_sequence if block == "pending" else self.sequence

    async def submit_signed_transaction(self, raw: bytes) -> str:
        if self.submit_error is not None:
            error, self.submit_error = self.submit_error, None
            raise error
        self.submitted.append(raw)
        return Web3.to_hex(Web3.keccak(raw))

    async def get_receipt(self, tx_hash: str) -> dict | None:
        if not self.mine:
            return None
        return {
            "transactionHash": tx_hash,
            "blockNumber": 42,
            "blockHash": "0x" + "ab" * 32,
            "status": self.receipt_status,
            "gasUsed": 21000,
        }

    async def get_balance(self, address: str) -> int:
        return self.balance

    async def call(self, to: str, data: bytes) -> bytes:
        return self.call_result

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def ledger():
    """Fresh fake ledger."""
    return FakeLedger(sequence=5)


@pytest.fixture
def signer():
    """Signer holding the test key."""
    return Signer.from_key(SecretStr(TEST_PRIVATE_KEY))


@pytest.fixture
def native_asset():
    """Native asset with 18 decimals."""
    return Asset.native(symbol="ETH", decimals=18)


@pytest.fixture
def usdc_asset():
    """USDC token asset with 6 decimals and a fixed compute limit."""
    contract = TokenContract.create("usdc", USDC_MAINNET_ADDRESS, 6)
    return Asset.token(contract, gas_limit=65000)