"""Spigot - HTTP faucet for EVM ledgers."""

__version__ = "0.1.0"
