"""Typed dicts for service-layer return values.

Keeps facade-facing methods explicit about their shape instead of returning bare dicts.
"""

from typing import TypedDict

# -- Events ----------------------------------------------------------------


class ProcessedEventDict(TypedDict):
    phase: object
    event: dict[str, object]
    topics: list[str]


# -- Governance ------------------------------------------------------------


class TreasuryProposalDict(TypedDict):
    index: int
    proposal: object


# -- Chain -----------------------------------------------------------------


class TokenPropertiesDict(TypedDict):
    decimals: int
    symbol: str
