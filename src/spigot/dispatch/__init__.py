"""Dispatch pipeline components for Spigot."""

from .broadcaster import Broadcaster
from .builder import TransactionBuilder
from .errors import (
    BroadcastError,
    BuildError,
    ConfirmationTimeout,
    DispatchError,
    RateLimitError,
    SequenceGapError,
    SigningError,
    TransactionRevertedError,
    ValidationError,
)
from .models import (
    MAX_UINT256,
    Asset,
    AssetKind,
    ConfirmationRecord,
    FundingRequest,
    OutcomeStatus,
    SignedTransaction,
    TransactionOutcome,
    UnsignedTransaction,
    to_base_units,
)
from .rate_limiter import AdmissionGate, AdmissionResult
from .sequencer import NonceSequencer
from .service import Dispatcher
from .validator import validate_funding_request

__all__ = [
    "MAX_UINT256",
    "AdmissionGate",
    "AdmissionResult",
    "Asset",
    "AssetKind",
    "Broadcaster",
    "BroadcastError",
    "BuildError",
    "ConfirmationRecord",
    "ConfirmationTimeout",
    "DispatchError",
    "Dispatcher",
    "FundingRequest",
    "NonceSequencer",
    "OutcomeStatus",
    "RateLimitError",
    "SequenceGapError",
    "SignedTransaction",
    "SigningError",
    "TransactionBuilder",
    "TransactionOutcome",
    "TransactionRevertedError",
    "UnsignedTransaction",
    "ValidationError",
    "to_base_units",
    "validate_funding_request",
]
