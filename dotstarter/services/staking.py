"""Staking ledger views and staking request builders."""

from collections.abc import Mapping, Sequence

import structlog

from dotstarter.services._helpers import as_int, short
from dotstarter.services.amounts import Amount, to_chain_amount
from dotstarter.services.errors import InvalidRequestError, LedgerDecodeError
from dotstarter.services.interfaces import ChainRpc
from dotstarter.services.schemas.chain import (
    CallDescriptor,
    StakingLedgerView,
    TransactionRequest,
    UnbondingChunk,
    ValidatorPrefs,
)

logger = structlog.get_logger(__name__)


def _nomination_targets(raw_nominations: object) -> tuple[str, ...] | None:
    if raw_nominations is None:
        return None
    if not isinstance(raw_nominations, Mapping):
        raise LedgerDecodeError(f"Nominations must be a record, got {type(raw_nominations).__name__}")
    return tuple(str(target) for target in raw_nominations.get("targets") or ())


def build_staking_view(
    raw_ledger: Mapping[str, object] | None,
    current_era: int,
    raw_nominations: Mapping[str, object] | None = None,
) -> StakingLedgerView:
    """Derive bonded / unbonding / redeemable figures for ``current_era``.

    ``redeemable_amount`` is the exact sum of chunks whose era is
    ``<= current_era``. It depends on the era, so it is rebuilt on every call.
    Without a ledger the account is unbonded and any nominations are ignored.
    """
    if raw_ledger is None:
        return StakingLedgerView(bonded_amount=0, unbonding_chunks=(), redeemable_amount=0)

    nominations = _nomination_targets(raw_nominations)

    try:
        bonded: int = as_int(raw_ledger["active"])
        unlocking: Sequence[Mapping[str, object]] = raw_ledger.get("unlocking") or ()
        chunks: tuple[UnbondingChunk, ...] = tuple(
            UnbondingChunk(amount=as_int(chunk["value"]), era=as_int(chunk["era"]))
            for chunk in unlocking
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise LedgerDecodeError(f"Malformed staking ledger: {e}") from e

    redeemable: int = sum((c.amount for c in chunks if c.era <= current_era), 0)
    return StakingLedgerView(
        bonded_amount=bonded,
        unbonding_chunks=chunks,
        redeemable_amount=redeemable,
        nomination_targets=nominations,
    )


class StakingService:
    """Staking queries and request builders for one chain."""

    def __init__(self, chain: ChainRpc, decimals: int):
        self.chain = chain
        self.decimals = decimals

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_current_era(self) -> int:
        era: object = self.chain.query("Staking", "CurrentEra")
        return as_int(era) if era is not None else 0

    def get_staking_info(self, address: str) -> StakingLedgerView:
        ledger: Mapping[str, object] | None = self.chain.query("Staking", "Ledger", [address])
        nominations: Mapping[str, object] | None = self.chain.query(
            "Staking", "Nominators", [address]
        )
        # The era only matters when there is something unbonding.
        current_era: int = self.get_current_era() if ledger is not None else 0
        logger.debug(
            "Building staking view",
            address=short(address),
            has_ledger=ledger is not None,
            current_era=current_era,
        )
        return build_staking_view(ledger, current_era, nominations)

    def get_validators(self) -> list[str]:
        validators: object = self.chain.query("Session", "Validators")
        return [str(v) for v in validators or ()]

    def get_validator_prefs(self, validator_address: str) -> ValidatorPrefs:
        prefs: object = self.chain.query("Staking", "Validators", [validator_address])
        if not isinstance(prefs, Mapping):
            return ValidatorPrefs(commission=0, blocked=False)
        return ValidatorPrefs(
            commission=as_int(prefs.get("commission") or 0),
            blocked=bool(prefs.get("blocked")),
        )

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def build_bond_request(
        self, stash: str, amount: Amount, payee: object = "Staked"
    ) -> TransactionRequest:
        call = CallDescriptor(
            "Staking", "bond", {"value": to_chain_amount(amount, self.decimals), "payee": payee}
        )
        return TransactionRequest(signer_address=stash, call=call)

    def build_bond_extra_request(self, stash: str, amount: Amount) -> TransactionRequest:
        call = CallDescriptor(
            "Staking", "bond_extra", {"max_additional": to_chain_amount(amount, self.decimals)}
        )
        return TransactionRequest(signer_address=stash, call=call)

    def build_nominate_request(self, controller: str, validators: Sequence[str]) -> TransactionRequest:
        if not validators:
            raise InvalidRequestError("At least one validator is required to nominate")
        call = CallDescriptor("Staking", "nominate", {"targets": list(validators)})
        return TransactionRequest(signer_address=controller, call=call)

    def build_unbond_request(self, controller: str, amount: Amount) -> TransactionRequest:
        call = CallDescriptor(
            "Staking", "unbond", {"value": to_chain_amount(amount, self.decimals)}
        )
        return TransactionRequest(signer_address=controller, call=call)

    def build_withdraw_unbonded_request(
        self, stash: str, num_slashing_spans: int = 0
    ) -> TransactionRequest:
        if num_slashing_spans < 0:
            raise InvalidRequestError("num_slashing_spans must be non-negative")
        call = CallDescriptor(
            "Staking", "withdraw_unbonded", {"num_slashing_spans": num_slashing_spans}
        )
        return TransactionRequest(signer_address=stash, call=call)
