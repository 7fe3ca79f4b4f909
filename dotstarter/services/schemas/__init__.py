"""Shared dataclasses for dotstarter services."""

from dotstarter.services.schemas.chain import (
    Balance,
    CallDescriptor,
    ChainInfo,
    ModuleErrorInfo,
    ProposalView,
    StakingLedgerView,
    TransactionRequest,
    UnbondingChunk,
    ValidatorPrefs,
)
from dotstarter.services.schemas.results import (
    Failed,
    Included,
    Rejected,
    TransactionOutcome,
)

__all__ = [
    # Chain schemas
    "Balance",
    "CallDescriptor",
    "ChainInfo",
    "ModuleErrorInfo",
    "ProposalView",
    "StakingLedgerView",
    "TransactionRequest",
    "UnbondingChunk",
    "ValidatorPrefs",
    # Outcome schemas
    "Failed",
    "Included",
    "Rejected",
    "TransactionOutcome",
]
