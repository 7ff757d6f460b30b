"""Faucet signing key and transaction signing."""

import logging
import os
import tempfile
from pathlib import Path

from eth_account import Account
from eth_account.signers.local import LocalAccount
from pydantic import SecretStr
from web3 import Web3

from spigot.dispatch.errors import SigningError
from spigot.dispatch.models import SignedTransaction, UnsignedTransaction

logger = logging.getLogger(__name__)


def generate_key_file(output_path: str) -> str:
    """Generate a new faucet key and save it to a file.

    The file is written atomically and is only readable by its owner.

    Parameters
    ----------
    output_path : str
        Path to save the private key file.

    Returns
    -------
    str
        Address of the new account.
    """
    account = Account.create()

    # Temp file in the same directory so the rename stays on one filesystem
    key_path = Path(output_path).expanduser()
    key_path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(dir=key_path.parent, prefix=".spigot-key-")
    fd_closed = False
    try:
        os.fchmod(fd, 0o600)  # Set permissions before writing
        os.write(fd, account.key.hex().encode())
        os.close(fd)
        fd_closed = True
        os.rename(temp_path, key_path)
    except Exception:
        if not fd_closed:
            os.close(fd)
        Path(temp_path).unlink(missing_ok=True)
        raise

    return account.address


class Signer:
    """Holds the faucet private key and signs transactions with it.

    The key is loaded once, kept in memory only and never logged. Signatures
    follow EIP-155, binding the chain id so a signed transaction cannot be
    replayed on another chain.

    Parameters
    ----------
    account : LocalAccount
        The account holding the signing key.
    """

    def __init__(self, account: LocalAccount):
        self._account = account

    @classmethod
    def from_key(cls, private_key: SecretStr) -> "Signer":
        """Load the signing key from a secret value."""
        return cls(Account.from_key(private_key.get_secret_value().strip()))

    @classmethod
    def from_key_file(cls, private_key_file: str) -> "Signer":
        """Load the signing key from a file.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        """
        # Expand ~ to user home directory
        key_path = Path(private_key_file).expanduser()
        if not key_path.exists():
            raise FileNotFoundError(f"Private key file not found: {private_key_file}")
        return cls(Account.from_key(key_path.read_text().strip()))

    @classmethod
    def from_settings(
        cls,
        private_key: SecretStr | None = None,
        private_key_file: str | None = None,
    ) -> "Signer":
        """Load the signing key from configuration, preferring the env value.

        Raises
        ------
        ValueError
            If neither source is configured.
        """
        if private_key is not None:
            if private_key_file:
                logger.warning(
                    "Both SPIGOT_PRIVATE_KEY and SPIGOT_PRIVATE_KEY_FILE set; "
                    "using SPIGOT_PRIVATE_KEY"
                )
            return cls.from_key(private_key)
        if private_key_file:
            return cls.from_key_file(private_key_file)
        raise ValueError(
            "No signing key configured. Set SPIGOT_PRIVATE_KEY or SPIGOT_PRIVATE_KEY_FILE"
        )

    @property
    def address(self) -> str:
        """The checksummed faucet address."""
        return self._account.address

    def sign(self, unsigned: UnsignedTransaction, chain_id: int) -> SignedTransaction:
        """Sign a transaction for ``chain_id``.

        Deterministic: the same transaction, key and chain id always yield
        the same bytes.

        Raises
        ------
        SigningError
            If the transaction fields cannot be signed.
        """
        try:
            signed = self._account.sign_transaction(unsigned.to_tx_params(chain_id))
        except Exception as e:
            raise SigningError(
                f"Could not sign transaction: {e}", sequence=unsigned.sequence
            ) from e

        return SignedTransaction(
            unsigned=unsigned,
            chain_id=chain_id,
            raw=bytes(signed.raw_transaction),
            tx_hash=Web3.to_hex(signed.hash),
            v=signed.v,
            r=signed.r,
            s=signed.s,
        )

    def __repr__(self) -> str:
        return f"Signer(address={self.address})"
