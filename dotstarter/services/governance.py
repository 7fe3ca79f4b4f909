"""Governance reads across the OpenGov and legacy Democracy schemas.

Chains expose referenda through one of two mutually exclusive storage layouts:

  - CURRENT: ``Referenda.ReferendumInfoFor`` (OpenGov)
  - LEGACY:  ``Democracy.ReferendumInfoOf``

The schema is picked by a storage capability check, never by inspecting
entry fields. Legacy is consulted only when the current layout is absent from
the runtime; an empty current map is still the current schema.
"""

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from dotstarter.services._helpers import as_int, variant_of
from dotstarter.services._types import TreasuryProposalDict
from dotstarter.services.amounts import Amount, to_chain_amount
from dotstarter.services.errors import (
    ChainClientError,
    InvalidRequestError,
    ProposalDecodeError,
)
from dotstarter.services.interfaces import ChainRpc
from dotstarter.services.schemas.chain import CallDescriptor, ProposalView, TransactionRequest

logger = structlog.get_logger(__name__)

ACTIVE_STATUS = "Active"
CONVICTIONS = ("None", "Locked1x", "Locked2x", "Locked3x", "Locked4x", "Locked5x", "Locked6x")


class GovernanceSchema(str, Enum):
    """On-chain referendum layout."""

    CURRENT = "current"
    LEGACY = "legacy"


# ------------------------------------------------------------------
# Normalization
# ------------------------------------------------------------------


def _ongoing(raw: object) -> Mapping[str, Any] | None:
    """Payload of an ``Ongoing`` ReferendumInfo; None for any finished state."""
    if raw is None:
        raise ProposalDecodeError("Empty referendum info")
    try:
        name, payload = variant_of(raw)
    except ValueError as e:
        raise ProposalDecodeError(str(e)) from e
    if name != "Ongoing":
        return None
    if not isinstance(payload, Mapping):
        raise ProposalDecodeError(f"Ongoing referendum without status: {payload!r}")
    return payload


def normalize_current_referendum(
    index: int, raw: object, identifier_hash: str
) -> ProposalView | None:
    ongoing = _ongoing(raw)
    if ongoing is None:
        return None
    try:
        track: int = as_int(ongoing.get("track") or 0)
        deposit_info: object = ongoing.get("submission_deposit") or {}
        if not isinstance(deposit_info, Mapping):
            raise ValueError(f"submission_deposit is {type(deposit_info).__name__}")
        deciding: object = ongoing.get("deciding")
        voting_end: int | None = None
        if isinstance(deciding, Mapping) and deciding.get("since") is not None:
            voting_end = as_int(deciding["since"])
        return ProposalView(
            index=index,
            identifier_hash=identifier_hash,
            author=str(deposit_info.get("who") or "Unknown"),
            deposit=as_int(deposit_info.get("amount") or 0),
            status=ACTIVE_STATUS,
            title=f"Track {track} - Referendum {index}",
            description="OpenGov Referendum",
            voting_end_block=voting_end,
        )
    except (TypeError, ValueError) as e:
        raise ProposalDecodeError(f"Referendum {index}: {e}") from e


def normalize_legacy_referendum(
    index: int, raw: object, identifier_hash: str
) -> ProposalView | None:
    ongoing = _ongoing(raw)
    if ongoing is None:
        return None
    try:
        end: object = ongoing.get("end")
        return ProposalView(
            index=index,
            identifier_hash=identifier_hash,
            author="Democracy",
            deposit=0,
            status=ACTIVE_STATUS,
            title=f"Democracy Referendum {index}",
            description="Legacy Democracy Referendum",
            voting_end_block=as_int(end) if end is not None else None,
        )
    except (TypeError, ValueError) as e:
        raise ProposalDecodeError(f"Referendum {index}: {e}") from e


@dataclass(frozen=True)
class _SchemaLayout:
    module: str
    storage_function: str
    normalize: Callable[[int, object, str], ProposalView | None]


_LAYOUTS: dict[GovernanceSchema, _SchemaLayout] = {
    GovernanceSchema.CURRENT: _SchemaLayout(
        "Referenda", "ReferendumInfoFor", normalize_current_referendum
    ),
    GovernanceSchema.LEGACY: _SchemaLayout(
        "Democracy", "ReferendumInfoOf", normalize_legacy_referendum
    ),
}


def _entry_index(key: object) -> int:
    if isinstance(key, (list, tuple)):
        if not key:
            raise ValueError("Empty storage key")
        key = key[0]
    return as_int(key)


# ------------------------------------------------------------------
# Resolver
# ------------------------------------------------------------------


class SchemaResolver:
    """Read-only governance queries normalized into ProposalView."""

    def __init__(self, chain: ChainRpc):
        self.chain = chain

    def resolve_schema(self) -> GovernanceSchema | None:
        """Check the runtime storage; CURRENT wins whenever it is present."""
        for schema in (GovernanceSchema.CURRENT, GovernanceSchema.LEGACY):
            layout: _SchemaLayout = _LAYOUTS[schema]
            if self.chain.has_storage(layout.module, layout.storage_function):
                return schema
        return None

    def _decode_entry(self, layout: _SchemaLayout, key: object, raw: object) -> ProposalView | None:
        try:
            index: int = _entry_index(key)
        except (TypeError, ValueError) as e:
            logger.warning("Skipping referendum with undecodable key", key=repr(key)[:80], error=str(e))
            return None
        try:
            identifier: str = self.chain.storage_key(layout.module, layout.storage_function, [index])
        except ChainClientError as e:
            logger.warning("Skipping referendum without storage key", index=index, error=str(e))
            return None
        try:
            return layout.normalize(index, raw, identifier)
        except ProposalDecodeError as e:
            logger.warning("Skipping undecodable referendum", index=index, error=str(e))
            return None

    def iter_active_proposals(self) -> Iterator[ProposalView]:
        """Lazily yield ongoing referenda; undecodable entries are skipped."""
        schema = self.resolve_schema()
        if schema is None:
            logger.info("No governance pallet on this chain")
            return
        layout: _SchemaLayout = _LAYOUTS[schema]
        logger.debug("Listing referenda", schema=schema.value)
        for key, raw in self.chain.query_entries(layout.module, layout.storage_function):
            view = self._decode_entry(layout, key, raw)
            if view is not None:
                yield view

    def list_active_proposals(self) -> list[ProposalView]:
        try:
            return list(self.iter_active_proposals())
        except ChainClientError as e:
            logger.warning("Error fetching governance proposals", error=str(e))
            return []

    def get_referendum_details(self, index: int) -> ProposalView | None:
        """Single-index lookup; absent, finished or undecodable yields None."""
        try:
            schema = self.resolve_schema()
            if schema is None:
                return None
            layout: _SchemaLayout = _LAYOUTS[schema]
            raw: object = self.chain.query(layout.module, layout.storage_function, [index])
            if raw is None:
                return None
            identifier: str = self.chain.storage_key(layout.module, layout.storage_function, [index])
            return layout.normalize(index, raw, identifier)
        except ProposalDecodeError as e:
            logger.warning("Undecodable referendum", index=index, error=str(e))
            return None
        except ChainClientError as e:
            logger.warning("Error fetching referendum details", index=index, error=str(e))
            return None

    def get_voting_info(self, account: str, track: int = 0) -> Any:
        """Raw voting record of an account, from whichever voting pallet exists."""
        try:
            if self.chain.has_storage("ConvictionVoting", "VotingFor"):
                return self.chain.query("ConvictionVoting", "VotingFor", [account, track])
            if self.chain.has_storage("Democracy", "VotingOf"):
                return self.chain.query("Democracy", "VotingOf", [account])
            return None
        except ChainClientError as e:
            logger.warning("Error fetching voting info", error=str(e))
            return None

    def get_treasury_proposals(self) -> list[TreasuryProposalDict]:
        try:
            if not self.chain.has_storage("Treasury", "Proposals"):
                return []
            return [
                TreasuryProposalDict(index=_entry_index(key), proposal=value)
                for key, value in self.chain.query_entries("Treasury", "Proposals")
            ]
        except (ChainClientError, TypeError, ValueError) as e:
            logger.warning("Error fetching treasury proposals", error=str(e))
            return []


class GovernanceService(SchemaResolver):
    """Schema-aware governance reads plus vote / treasury request builders."""

    def __init__(self, chain: ChainRpc, decimals: int):
        super().__init__(chain)
        self.decimals = decimals

    def build_vote_request(
        self,
        account: str,
        referendum_index: int,
        vote: str,
        conviction: int,
        amount: Amount,
    ) -> TransactionRequest:
        if vote not in ("aye", "nay"):
            raise InvalidRequestError(f"vote must be 'aye' or 'nay', got {vote!r}")
        if isinstance(conviction, bool) or not 0 <= conviction < len(CONVICTIONS):
            raise InvalidRequestError(f"conviction must be 0-6, got {conviction!r}")

        account_vote: dict[str, object] = {
            "Standard": {
                "vote": {"aye": vote == "aye", "conviction": CONVICTIONS[conviction]},
                "balance": to_chain_amount(amount, self.decimals),
            }
        }
        if self.chain.has_call("ConvictionVoting", "vote"):
            call = CallDescriptor(
                "ConvictionVoting", "vote", {"poll_index": referendum_index, "vote": account_vote}
            )
        else:
            call = CallDescriptor(
                "Democracy", "vote", {"ref_index": referendum_index, "vote": account_vote}
            )
        return TransactionRequest(signer_address=account, call=call)

    def build_treasury_proposal_request(
        self, account: str, value: Amount, beneficiary: str
    ) -> TransactionRequest:
        call = CallDescriptor(
            "Treasury",
            "propose_spend",
            {"value": to_chain_amount(value, self.decimals), "beneficiary": beneficiary},
        )
        return TransactionRequest(signer_address=account, call=call)
