"""DotStarter SDK facade.

Wires the chain client, signer provider and services together for one network.
Service accessors raise SdkNotConnectedError until connect() has run.
"""

import structlog

from config import Settings, get_settings
from dotstarter.services.amounts import Amount, format_amount, to_chain_amount
from dotstarter.services.chain_client import KeypairSignerProvider, SubstrateChainClient
from dotstarter.services.errors import ChainClientError, SdkNotConnectedError
from dotstarter.services.governance import GovernanceService
from dotstarter.services.interfaces import EventsCallback, SignerProvider, Subscription
from dotstarter.services.networks import WELL_KNOWN_ENDPOINTS, is_valid_network
from dotstarter.services.schemas.chain import ChainInfo
from dotstarter.services.staking import StakingService
from dotstarter.services.transactions import TransactionService
from dotstarter.services.wallet import WalletService

logger = structlog.get_logger(__name__)


class EventsApi:
    """Block and event helpers."""

    def __init__(self, chain_client: SubstrateChainClient):
        self.chain_client = chain_client

    def subscribe(self, callback: EventsCallback) -> Subscription:
        """Deliver each block's System.Events to ``callback``.

        Blocks the calling thread until ``callback`` returns a truthy value; the
        handle returned afterwards is already closed.
        """
        return self.chain_client.subscribe_system_events(callback)

    def get_current_block_number(self) -> int:
        return self.chain_client.get_current_block_number()

    def get_block_hash(self, block_number: int | None = None) -> str:
        return self.chain_client.get_block_hash(block_number)


class DotStarter:
    """Unified interface for interacting with Polkadot/Substrate chains."""

    def __init__(
        self,
        settings: Settings | None = None,
        chain_client: SubstrateChainClient | None = None,
        signer: SignerProvider | None = None,
    ):
        self.settings = settings or get_settings()
        chain = self.settings.chain
        self.chain_client = chain_client or SubstrateChainClient(
            rpc_url=chain.endpoint,
            timeout=chain.rpc_timeout,
            retry_attempts=chain.retry_attempts,
            retry_delay=chain.retry_delay,
            ss58_format=chain.resolved_ss58_format,
        )
        self.signer = signer or KeypairSignerProvider(self.chain_client)
        self.decimals: int = chain.default_decimals
        self.unit: str = chain.default_unit
        self._wallet: WalletService | None = None
        self._tx: TransactionService | None = None
        self._staking: StakingService | None = None
        self._governance: GovernanceService | None = None
        self._events: EventsApi | None = None

    def connect(self) -> None:
        """Connect to the chain and initialize all services."""
        self.chain_client.connect()

        try:
            properties = self.chain_client.token_properties()
            self.decimals = properties["decimals"]
            self.unit = properties["symbol"]
        except ChainClientError as e:
            logger.warning(
                "Falling back to network token defaults",
                decimals=self.decimals,
                unit=self.unit,
                error=str(e),
            )

        self._wallet = WalletService(self.chain_client, self.decimals, self.unit)
        self._tx = TransactionService(self.chain_client, self.signer, self.chain_client, self.decimals)
        self._staking = StakingService(self.chain_client, self.decimals)
        self._governance = GovernanceService(self.chain_client, self.decimals)
        self._events = EventsApi(self.chain_client)
        logger.info("SDK connected", network=self.settings.chain.network.value, unit=self.unit)

    def disconnect(self) -> None:
        self.chain_client.disconnect()
        self._wallet = self._tx = self._staking = self._governance = self._events = None

    def is_connected(self) -> bool:
        return self.chain_client.is_connected()

    def get_chain_info(self) -> ChainInfo:
        return self.chain_client.get_chain_info()

    def to_chain_amount(self, value: Amount) -> int:
        """Base units for ``value`` using the connected chain's decimals."""
        return to_chain_amount(value, self.decimals)

    def format_amount(self, magnitude: int) -> str:
        return format_amount(magnitude, self.decimals, self.unit)

    @staticmethod
    def _require(service):
        if service is None:
            raise SdkNotConnectedError("SDK not connected. Call connect() first.")
        return service

    @property
    def wallet(self) -> WalletService:
        return self._require(self._wallet)

    @property
    def tx(self) -> TransactionService:
        return self._require(self._tx)

    @property
    def staking(self) -> StakingService:
        return self._require(self._staking)

    @property
    def governance(self) -> GovernanceService:
        return self._require(self._governance)

    @property
    def events(self) -> EventsApi:
        return self._require(self._events)

    @staticmethod
    def well_known_endpoints() -> dict[str, str]:
        return {name.value: url for name, url in WELL_KNOWN_ENDPOINTS.items()}

    @staticmethod
    def is_valid_network(network: str) -> bool:
        return is_valid_network(network)
