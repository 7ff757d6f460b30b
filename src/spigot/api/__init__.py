"""HTTP surface for Spigot."""

from .middleware import client_identity
from .server import FaucetServer

__all__ = ["FaucetServer", "client_identity"]
