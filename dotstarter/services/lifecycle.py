"""Lifecycle tracking for one submitted extrinsic.

The tracker owns the status subscription of a single submission and resolves
it exactly once:

  - at the first ``InBlock`` (``Failed`` when the dispatch reported an error,
    otherwise ``Included``). Resolution happens at inclusion, not
    at finalization;
  - at ``Dropped`` / ``Invalid`` / ``TransportError`` seen before inclusion
    (``Rejected`` carrying the state name).

The subscription is released on every resolution path and on cancel(). A
cancelled tracker never produces an outcome.

Callbacks for one subscription must be delivered in order and never
concurrently; the tracker is not synchronized against re-entrant delivery.
"""

from collections.abc import Mapping
from concurrent.futures import Future
from typing import Any

import structlog

from dotstarter.services.dispatch_errors import describe_dispatch_error
from dotstarter.services.errors import (
    ChainClientError,
    StatusDecodeError,
    TrackingCancelledError,
)
from dotstarter.services.interfaces import ChainRpc, MetadataRegistry, Subscription
from dotstarter.services.schemas.chain import TransactionRequest
from dotstarter.services.schemas.results import (
    TRANSPORT_ERROR_STATE,
    Failed,
    Included,
    Rejected,
    TransactionOutcome,
)
from dotstarter.services.status import LifecycleSignal, SignalKind, classify_status

logger = structlog.get_logger(__name__)


class ExtrinsicLifecycleTracker:
    """Turns a stream of status updates into a single TransactionOutcome."""

    def __init__(
        self,
        chain: ChainRpc,
        registry: MetadataRegistry,
        request: TransactionRequest | None = None,
    ):
        self.chain = chain
        self.registry = registry
        self.request = request
        self._future: Future[TransactionOutcome] = Future()
        self._subscription: Subscription | None = None
        self._started = False
        self._resolved = False
        self._cancelled = False
        self._released = False
        self.last_signal: LifecycleSignal | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def resolved(self) -> bool:
        return self._resolved

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def released(self) -> bool:
        return self._released

    @property
    def outcome(self) -> TransactionOutcome | None:
        return self._future.result() if self._resolved else None

    @property
    def future(self) -> "Future[TransactionOutcome]":
        return self._future

    def result(self, timeout: float | None = None) -> TransactionOutcome:
        """Block until resolution. No timeout is applied unless given."""
        if self._cancelled and not self._resolved:
            raise TrackingCancelledError("Tracking was cancelled before resolution")
        return self._future.result(timeout)

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def start(self, signed_call: object) -> "ExtrinsicLifecycleTracker":
        """Submit the signed call and begin consuming status updates."""
        if self._started:
            raise RuntimeError("Tracker already started")
        self._started = True

        try:
            subscription: Subscription = self.chain.submit(signed_call, self._on_status)
        except ChainClientError as e:
            logger.warning("Extrinsic submission failed", error=str(e))
            self._resolve(Rejected(reason=TRANSPORT_ERROR_STATE, detail=str(e)))
            return self

        self._subscription = subscription
        # Synchronous transports may have resolved us before handing back the handle.
        if self._resolved or self._cancelled:
            self._release()
        return self

    def cancel(self) -> bool:
        """Abandon tracking. Returns False when already resolved."""
        if self._resolved:
            return False
        self._cancelled = True
        logger.info("Extrinsic tracking cancelled")
        self._release()
        return True

    def _on_status(self, update: Mapping[str, Any]) -> bool:
        if self._resolved or self._cancelled:
            logger.debug("Ignoring status update after resolution")
            return True

        try:
            signal: LifecycleSignal = classify_status(update)
        except StatusDecodeError as e:
            logger.warning("Ignoring undecodable status update", error=str(e))
            return False

        self.last_signal = signal

        if signal.kind is SignalKind.PENDING:
            logger.debug("Extrinsic pending", state=signal.state)
            return False

        if signal.kind in (SignalKind.IN_BLOCK, SignalKind.FINALIZED):
            self._resolve(self._inclusion_outcome(signal))
        else:
            self._resolve(Rejected(reason=signal.state, detail=signal.detail))
        return True

    def _inclusion_outcome(self, signal: LifecycleSignal) -> TransactionOutcome:
        if signal.dispatch_error is not None:
            return Failed(
                reason=describe_dispatch_error(signal.dispatch_error, self.registry),
                extrinsic_hash=signal.extrinsic_hash,
                block_hash=signal.block_hash,
            )
        return Included(
            extrinsic_hash=signal.extrinsic_hash,
            block_hash=signal.block_hash or "",
            events=tuple(dict(event) for event in signal.events),
        )

    def _resolve(self, outcome: TransactionOutcome) -> None:
        if self._resolved:
            return
        self._resolved = True
        try:
            logger.info(
                "Extrinsic resolved",
                outcome=type(outcome).__name__,
                success=outcome.success,
            )
            self._future.set_result(outcome)
        finally:
            self._release()

    def _release(self) -> None:
        if self._subscription is None or self._released:
            return
        self._released = True
        try:
            self._subscription.unsubscribe()
        except ChainClientError as e:
            logger.warning("Failed to release status subscription", error=str(e))
