"""Shared exception hierarchy for dotstarter services."""


class DotStarterError(Exception):
    """Base exception for every error raised by the SDK."""


class SdkNotConnectedError(DotStarterError):
    """A service accessor was used before connect()."""


# ── Chain ─────────────────────────────────────────────────────────────────────


class ChainClientError(DotStarterError):
    """Base exception for chain client errors."""


class RPCError(ChainClientError):
    """RPC call failed."""


class ChainConnectionError(ChainClientError):
    """Cannot connect to RPC endpoint."""


class StorageNotFoundError(ChainClientError):
    """Pallet or storage item does not exist in this runtime."""


# ── Amounts & requests ────────────────────────────────────────────────────────


class InvalidAmountError(DotStarterError, ValueError):
    """Amount is negative, non-finite or unparsable."""


class InvalidRequestError(DotStarterError, ValueError):
    """Transaction request arguments are invalid."""


class SignerNotFoundError(DotStarterError):
    """No signing capability is registered for the address."""


# ── Decoding ──────────────────────────────────────────────────────────────────


class DecodeError(DotStarterError):
    """A chain value could not be parsed against its expected schema."""


class DispatchErrorDecodeError(DecodeError):
    """Module error indices are unknown to the metadata registry."""


class ProposalDecodeError(DecodeError):
    """Referendum entry does not match its governance schema."""


class LedgerDecodeError(DecodeError):
    """Staking ledger is malformed."""


class StatusDecodeError(DecodeError):
    """Transaction status notification has an unknown shape."""


# ── Transactions ──────────────────────────────────────────────────────────────


class TransactionError(DotStarterError):
    """Base exception for unsuccessful transaction outcomes."""

    def __init__(self, message: str, outcome: object = None):
        super().__init__(message)
        self.outcome = outcome


class DispatchFailure(TransactionError):
    """Extrinsic was included but failed at dispatch."""


class RejectedBeforeInclusion(TransactionError):
    """Extrinsic was dropped or declared invalid before inclusion."""


class TransportFailure(TransactionError):
    """The status subscription itself failed."""


class TrackingCancelledError(DotStarterError):
    """Tracking was abandoned by the caller; no outcome exists."""
