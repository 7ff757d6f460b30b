"""Error taxonomy for the dispatch pipeline.

Each error carries the HTTP status and machine-readable code it maps to at
the request boundary.
"""


class DispatchError(Exception):
    """Base class for failures that end a funding request.

    Parameters
    ----------
    message : str
        Human-readable failure description.
    tx_hash : str | None
        Transaction hash, when the transaction reached the network.
    sequence : int | None
        Sequence number consumed by the request, when one was issued.
    """

    status = 500
    code = "DISPATCH_FAILED"

    def __init__(
        self,
        message: str,
        *,
        tx_hash: str | None = None,
        sequence: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.tx_hash = tx_hash
        self.sequence = sequence


class ValidationError(DispatchError):
    """Malformed address or amount. No network call was made."""

    status = 400
    code = "INVALID_REQUEST"


class RateLimitError(DispatchError):
    """Client identity exceeded its request quota for the current window."""

    status = 429
    code = "RATE_LIMITED"

    def __init__(self, message: str, *, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after


class BuildError(DispatchError):
    """Fee price or compute limit lookup failed."""

    code = "BUILD_FAILED"


class SigningError(DispatchError):
    """The transaction could not be signed."""

    code = "SIGNING_FAILED"


class BroadcastError(DispatchError):
    """The ledger rejected the signed transaction."""

    code = "BROADCAST_FAILED"


class SequenceGapError(DispatchError):
    """A consumed sequence number was never broadcast and could not be filled.

    Every later transaction from the faucet account stalls until an operator
    fills the gap (``spigot fill-gap <sequence>``).
    """

    code = "SEQUENCE_GAP"


class TransactionRevertedError(DispatchError):
    """The transaction was mined but its execution failed."""

    code = "TRANSACTION_REVERTED"


class ConfirmationTimeout(Exception):
    """No receipt was observed within the confirmation timeout.

    Not a failure: the transaction may still confirm later.
    """

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(f"No receipt for {tx_hash} after {timeout:g}s")
        self.tx_hash = tx_hash
        self.timeout = timeout
