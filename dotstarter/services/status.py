"""Classification of raw transaction status notifications.

A node reports the progress of a watched extrinsic as a stream of
``TransactionStatus`` values. The transport hands each one over as a mapping:

    {"status": "ready"}
    {"status": {"inBlock": "0xabc..."}, "events": [...], "extrinsic_hash": "0x..."}
    {"error": {"code": -32000, "message": "..."}}

For a single submission the classified signals are non-decreasing in
finality: any number of ``PENDING``, at most one ``IN_BLOCK`` per inclusion,
then one terminal signal after which nothing else is delivered.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from dotstarter.services._helpers import to_hex, variant_of
from dotstarter.services.errors import StatusDecodeError


class SignalKind(str, Enum):
    """Lifecycle signal classes."""

    PENDING = "Pending"
    IN_BLOCK = "InBlock"
    FINALIZED = "Finalized"
    DROPPED = "Dropped"
    INVALID = "Invalid"
    TRANSPORT_ERROR = "TransportError"


TERMINAL_KINDS = frozenset(
    {
        SignalKind.FINALIZED,
        SignalKind.DROPPED,
        SignalKind.INVALID,
        SignalKind.TRANSPORT_ERROR,
    }
)

# lowercased status name -> (signal kind, canonical state name)
_STATES: dict[str, tuple[SignalKind, str]] = {
    "future": (SignalKind.PENDING, "Future"),
    "ready": (SignalKind.PENDING, "Ready"),
    "broadcast": (SignalKind.PENDING, "Broadcast"),
    "retracted": (SignalKind.PENDING, "Retracted"),
    "inblock": (SignalKind.IN_BLOCK, "InBlock"),
    "finalized": (SignalKind.FINALIZED, "Finalized"),
    "dropped": (SignalKind.DROPPED, "Dropped"),
    "usurped": (SignalKind.DROPPED, "Usurped"),
    "finalitytimeout": (SignalKind.DROPPED, "FinalityTimeout"),
    "invalid": (SignalKind.INVALID, "Invalid"),
}


@dataclass(frozen=True)
class LifecycleSignal:
    kind: SignalKind
    state: str
    block_hash: str | None = None
    dispatch_error: object = None
    events: tuple[Mapping[str, object], ...] = field(default_factory=tuple)
    extrinsic_hash: str | None = None
    detail: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS


def _event_body(event: Mapping[str, object]) -> Mapping[str, object]:
    if "module_id" not in event and isinstance(event.get("event"), Mapping):
        return event["event"]  # type: ignore[return-value]
    return event


def extract_dispatch_error(events: Sequence[Mapping[str, object]]) -> object:
    """Return the dispatch error of a ``System.ExtrinsicFailed`` event, if any."""
    for event in events:
        if not isinstance(event, Mapping):
            continue
        body: Mapping[str, object] = _event_body(event)
        if body.get("module_id") != "System" or body.get("event_id") != "ExtrinsicFailed":
            continue
        attributes: object = body.get("attributes")
        if isinstance(attributes, Mapping):
            return attributes.get("dispatch_error")
        # Backwards compatibility: positional (dispatch_error, dispatch_info)
        if isinstance(attributes, (list, tuple)) and attributes:
            return attributes[0]
        return {"Other": None}
    return None


def _error_detail(error: object) -> str:
    if isinstance(error, Mapping):
        return str(error.get("message") or error)
    return str(error)


def classify_status(update: Mapping[str, object]) -> LifecycleSignal:
    """Map one raw status notification onto a ``LifecycleSignal``."""
    if not isinstance(update, Mapping):
        raise StatusDecodeError(f"Status update must be a mapping, got {type(update).__name__}")

    extrinsic_hash: object = update.get("extrinsic_hash")
    extrinsic_hash = to_hex(extrinsic_hash) if extrinsic_hash else None

    if update.get("error") is not None:
        return LifecycleSignal(
            kind=SignalKind.TRANSPORT_ERROR,
            state=SignalKind.TRANSPORT_ERROR.value,
            extrinsic_hash=extrinsic_hash,
            detail=_error_detail(update["error"]),
        )

    if "status" not in update:
        raise StatusDecodeError(f"Status update without status: {update!r}")

    try:
        name, payload = variant_of(update["status"])
    except ValueError as e:
        raise StatusDecodeError(str(e)) from e

    entry: tuple[SignalKind, str] | None = _STATES.get(name.replace("_", "").lower())
    if entry is None:
        raise StatusDecodeError(f"Unknown transaction status {name!r}")
    kind, state = entry

    if kind in (SignalKind.IN_BLOCK, SignalKind.FINALIZED):
        events: tuple[Mapping[str, object], ...] = tuple(update.get("events") or ())
        dispatch_error: object = update.get("dispatch_error")
        if dispatch_error is None:
            dispatch_error = extract_dispatch_error(events)
        return LifecycleSignal(
            kind=kind,
            state=state,
            block_hash=to_hex(payload) if payload is not None else None,
            dispatch_error=dispatch_error,
            events=events,
            extrinsic_hash=extrinsic_hash,
        )

    return LifecycleSignal(kind=kind, state=state, extrinsic_hash=extrinsic_hash)
