"""Ledger integration for Spigot."""

from .client import LedgerClient
from .networks import NetworkInfo
from .tokens import TokenContract

__all__ = ["LedgerClient", "NetworkInfo", "TokenContract"]
