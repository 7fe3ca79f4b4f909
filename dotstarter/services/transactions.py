"""Signing, submission and tracking of transaction requests."""

import structlog

from dotstarter.services._helpers import short
from dotstarter.services.amounts import Amount, to_chain_amount
from dotstarter.services.interfaces import ChainRpc, MetadataRegistry, SignerProvider
from dotstarter.services.lifecycle import ExtrinsicLifecycleTracker
from dotstarter.services.schemas.chain import CallDescriptor, TransactionRequest
from dotstarter.services.schemas.results import TransactionOutcome

logger = structlog.get_logger(__name__)


def build_transfer_request(
    sender: str,
    dest: str,
    amount: Amount,
    decimals: int,
    tip: Amount | None = None,
) -> TransactionRequest:
    """``Balances.transfer_keep_alive``; amounts go through the converter."""
    call = CallDescriptor(
        "Balances",
        "transfer_keep_alive",
        {"dest": dest, "value": to_chain_amount(amount, decimals)},
    )
    return TransactionRequest(
        signer_address=sender,
        call=call,
        tip=to_chain_amount(tip, decimals) if tip is not None else None,
    )


class TransactionService:
    """Signs requests through the signer provider and tracks them to an outcome."""

    def __init__(
        self,
        chain: ChainRpc,
        signer: SignerProvider,
        registry: MetadataRegistry,
        decimals: int,
    ):
        self.chain = chain
        self.signer = signer
        self.registry = registry
        self.decimals = decimals

    def track(self, request: TransactionRequest) -> ExtrinsicLifecycleTracker:
        """Sign and submit; the returned tracker may still be pending."""
        signed: object = self.signer.sign(request.signer_address, request)
        logger.info(
            "Submitting extrinsic",
            signer=short(request.signer_address),
            call=f"{request.call.pallet}.{request.call.method}",
        )
        tracker = ExtrinsicLifecycleTracker(self.chain, self.registry, request)
        return tracker.start(signed)

    def submit_and_track(
        self, request: TransactionRequest, timeout: float | None = None
    ) -> TransactionOutcome:
        return self.track(request).result(timeout)

    def transfer(
        self,
        sender: str,
        dest: str,
        amount: Amount,
        tip: Amount | None = None,
    ) -> TransactionOutcome:
        request = build_transfer_request(sender, dest, amount, self.decimals, tip)
        return self.submit_and_track(request)
