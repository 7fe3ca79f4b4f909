"""Chain-related value objects."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CallDescriptor:
    pallet: str
    method: str
    args: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class TransactionRequest:
    signer_address: str
    call: CallDescriptor
    tip: int | None = None


@dataclass(frozen=True)
class ModuleErrorInfo:
    pallet: str
    name: str
    docs: str


@dataclass(frozen=True)
class Balance:
    free: int
    reserved: int
    frozen: int
    total: int
    formatted: str
    unit: str


@dataclass(frozen=True)
class UnbondingChunk:
    amount: int
    era: int


@dataclass(frozen=True)
class StakingLedgerView:
    bonded_amount: int
    unbonding_chunks: tuple[UnbondingChunk, ...]
    redeemable_amount: int
    nomination_targets: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ProposalView:
    index: int
    identifier_hash: str
    author: str
    deposit: int
    status: str
    title: str
    description: str
    voting_end_block: int | None = None


@dataclass(frozen=True)
class ValidatorPrefs:
    commission: int
    blocked: bool


@dataclass(frozen=True)
class ChainInfo:
    name: str
    version: str
    ss58_format: int
    token_decimals: tuple[int, ...]
    token_symbols: tuple[str, ...]
