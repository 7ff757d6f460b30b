"""Core Spigot components."""

from .signer import Signer, generate_key_file

__all__ = ["Signer", "generate_key_file"]
