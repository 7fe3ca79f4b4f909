"""Terminal outcomes of a tracked submission.

Exactly one of these is produced per request. ``raise_for_outcome`` lets
callers that prefer exceptions convert a failed outcome into one.
"""

from dataclasses import dataclass, field

from dotstarter.services.errors import (
    DispatchFailure,
    RejectedBeforeInclusion,
    TransportFailure,
)

TRANSPORT_ERROR_STATE = "TransportError"


@dataclass(frozen=True)
class Included:
    extrinsic_hash: str | None
    block_hash: str
    events: tuple[dict[str, object], ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return True

    def raise_for_outcome(self) -> None:
        return None


@dataclass(frozen=True)
class Failed:
    reason: str
    extrinsic_hash: str | None = None
    block_hash: str | None = None

    @property
    def success(self) -> bool:
        return False

    def raise_for_outcome(self) -> None:
        raise DispatchFailure(self.reason, outcome=self)


@dataclass(frozen=True)
class Rejected:
    reason: str
    detail: str | None = None

    @property
    def success(self) -> bool:
        return False

    def raise_for_outcome(self) -> None:
        message: str = f"Transaction failed with status: {self.reason}"
        if self.detail:
            message = f"{message} ({self.detail})"
        if self.reason == TRANSPORT_ERROR_STATE:
            raise TransportFailure(message, outcome=self)
        raise RejectedBeforeInclusion(message, outcome=self)


TransactionOutcome = Included | Failed | Rejected
