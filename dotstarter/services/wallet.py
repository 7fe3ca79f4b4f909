"""Account balance reads."""

from collections.abc import Mapping

import structlog

from dotstarter.services._helpers import as_int, short
from dotstarter.services.amounts import format_amount
from dotstarter.services.errors import DecodeError
from dotstarter.services.interfaces import ChainRpc
from dotstarter.services.schemas.chain import Balance

logger = structlog.get_logger(__name__)


class WalletService:
    """Reads System.Account and renders it with the chain's token properties."""

    def __init__(self, chain: ChainRpc, decimals: int, unit: str):
        self.chain = chain
        self.decimals = decimals
        self.unit = unit

    def get_balance(self, address: str) -> Balance:
        account: object = self.chain.query("System", "Account", [address])
        data: object = account.get("data") if isinstance(account, Mapping) else None
        if data is None:
            logger.debug("No account data, reporting zero balance", address=short(address))
            data = {}
        if not isinstance(data, Mapping):
            raise DecodeError(f"Unexpected account data for {address}")

        try:
            free: int = as_int(data.get("free") or 0)
            reserved: int = as_int(data.get("reserved") or 0)
            # Pre-v9420 runtimes split frozen into misc_frozen / fee_frozen.
            frozen: int = as_int(data.get("frozen") or data.get("misc_frozen") or 0)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Unexpected account data for {address}: {e}") from e

        return Balance(
            free=free,
            reserved=reserved,
            frozen=frozen,
            total=free + reserved,
            formatted=format_amount(free, self.decimals, self.unit),
            unit=self.unit,
        )
