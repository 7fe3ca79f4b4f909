"""Chain RPC client backed by substrate-interface.

Implements the ChainRpc, MetadataRegistry and SignerProvider interfaces for a
live node. Subscriptions follow substrate-interface semantics: delivery is
synchronous on the calling thread, in arrival order, and ends once the
callback returns a truthy value or the handle is unsubscribed.
"""

import time
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import structlog
from substrateinterface import ExtrinsicReceipt, Keypair, SubstrateInterface
from substrateinterface.exceptions import StorageFunctionNotFound, SubstrateRequestException
from websocket import WebSocketException

from config import get_settings
from dotstarter.services._helpers import variant_of
from dotstarter.services._types import ProcessedEventDict, TokenPropertiesDict
from dotstarter.services.errors import (
    ChainClientError,
    ChainConnectionError,
    DispatchErrorDecodeError,
    InvalidRequestError,
    RPCError,
    SignerNotFoundError,
    StorageNotFoundError,
)
from dotstarter.services.interfaces import EventsCallback, StatusCallback
from dotstarter.services.schemas.chain import ChainInfo, ModuleErrorInfo, TransactionRequest

logger = structlog.get_logger(__name__)


class _Subscription:
    """Handle for a callback-driven node subscription."""

    def __init__(self, substrate: SubstrateInterface, unwatch_method: str | None = None):
        self._substrate = substrate
        self._unwatch_method = unwatch_method
        self.subscription_id: str | None = None
        self.closed = False

    def unsubscribe(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._unwatch_method is None or self.subscription_id is None:
            return
        try:
            self._substrate.rpc_request(self._unwatch_method, [self.subscription_id])
        except SubstrateRequestException as e:
            raise RPCError(f"{self._unwatch_method} failed: {e}") from e
        except (WebSocketException, OSError) as e:
            raise ChainConnectionError(f"{self._unwatch_method} failed: {e}") from e


class SubstrateChainClient:
    """Client for interacting with a Substrate chain via its websocket RPC."""

    def __init__(
        self,
        rpc_url: str | None = None,
        timeout: int | None = None,
        retry_attempts: int | None = None,
        retry_delay: float | None = None,
        ss58_format: int | None = None,
    ):
        settings = get_settings()
        self.rpc_url = rpc_url or settings.chain.endpoint
        self.timeout = timeout or settings.chain.rpc_timeout
        self.retry_attempts = retry_attempts or settings.chain.retry_attempts
        self.retry_delay = retry_delay or settings.chain.retry_delay
        self.ss58_format = ss58_format if ss58_format is not None else settings.chain.resolved_ss58_format
        self.default_decimals = settings.chain.default_decimals
        self.default_unit = settings.chain.default_unit
        self._substrate: SubstrateInterface | None = None
        self._connected = False

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def connect(self) -> bool:
        """Connect to the chain. Raises ChainConnectionError on failure."""
        if self.is_connected():
            return True
        try:
            self._substrate = SubstrateInterface(
                url=self.rpc_url,
                ss58_format=self.ss58_format,
                auto_discover=True,
                auto_reconnect=True,
                ws_options={"timeout": self.timeout},
            )
            self._connected = True
            logger.info("Connected to chain", rpc_url=self.rpc_url[:50])
            return True
        except Exception as e:
            raise ChainConnectionError(f"Failed to connect to {self.rpc_url}: {e}") from e

    def disconnect(self) -> None:
        if self._substrate:
            try:
                self._substrate.close()
            except Exception as e:
                logger.debug("Error closing websocket", error=str(e))
        self._substrate = None
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected and self._substrate is not None

    def _require_connection(self) -> SubstrateInterface:
        if not self.is_connected():
            raise ChainConnectionError("Not connected, call connect() first")
        return self._substrate

    def _retry_call(self, func: callable, *args, **kwargs) -> Any:
        last_error = None
        for attempt in range(self.retry_attempts):
            try:
                return func(*args, **kwargs)
            except ChainClientError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    "RPC call failed, retrying",
                    attempt=attempt + 1,
                    error=str(e)[:100],
                )
                if attempt < self.retry_attempts - 1:
                    time.sleep(self.retry_delay * (attempt + 1))
        raise RPCError(f"RPC call failed after {self.retry_attempts} attempts: {last_error}")

    # ------------------------------------------------------------------
    # Chain info
    # ------------------------------------------------------------------

    def get_chain_info(self) -> ChainInfo:
        substrate = self._require_connection()

        def _fetch() -> ChainInfo:
            properties: Mapping[str, Any] = substrate.properties or {}
            decimals = properties.get("tokenDecimals")
            symbols = properties.get("tokenSymbol")
            ss58 = properties.get("ss58Format", properties.get("SS58Prefix"))
            return ChainInfo(
                name=str(substrate.chain),
                version=str(substrate.version),
                ss58_format=int(ss58) if ss58 is not None else 42,
                token_decimals=tuple(_as_list(decimals, self.default_decimals)),
                token_symbols=tuple(str(s) for s in _as_list(symbols, self.default_unit)),
            )

        return self._retry_call(_fetch)

    def token_properties(self) -> TokenPropertiesDict:
        info: ChainInfo = self.get_chain_info()
        return TokenPropertiesDict(
            decimals=int(info.token_decimals[0]) if info.token_decimals else self.default_decimals,
            symbol=info.token_symbols[0] if info.token_symbols else self.default_unit,
        )

    def get_current_block_number(self) -> int:
        substrate = self._require_connection()

        def _fetch() -> int:
            header = substrate.get_block_header()
            return header["header"]["number"]

        return self._retry_call(_fetch)

    def get_block_hash(self, block_number: int | None = None) -> str:
        """Hash of ``block_number``, or the finalized head when omitted."""
        substrate = self._require_connection()

        def _fetch() -> str:
            if block_number is None:
                return substrate.get_chain_finalised_head()
            return substrate.get_block_hash(block_number)

        return self._retry_call(_fetch)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def query(
        self, module: str, storage_function: str, params: Sequence[object] | None = None
    ) -> Any:
        substrate = self._require_connection()

        def _fetch() -> Any:
            try:
                result = substrate.query(
                    module=module,
                    storage_function=storage_function,
                    params=list(params or []),
                )
            except StorageFunctionNotFound as e:
                raise StorageNotFoundError(str(e)) from e
            return result.value if result is not None else None

        return self._retry_call(_fetch)

    def query_entries(self, module: str, storage_function: str) -> list[tuple[Any, Any]]:
        substrate = self._require_connection()

        def _fetch() -> list[tuple[Any, Any]]:
            try:
                result = substrate.query_map(module=module, storage_function=storage_function)
            except StorageFunctionNotFound as e:
                raise StorageNotFoundError(str(e)) from e
            return [
                (getattr(key, "value", key), getattr(value, "value", value))
                for key, value in result
            ]

        return self._retry_call(_fetch)

    def has_storage(self, module: str, storage_function: str) -> bool:
        substrate = self._require_connection()
        return self._retry_call(
            lambda: substrate.get_metadata_storage_function(module, storage_function) is not None
        )

    def has_call(self, module: str, call_function: str) -> bool:
        substrate = self._require_connection()
        return self._retry_call(
            lambda: substrate.get_metadata_call_function(module, call_function) is not None
        )

    def storage_key(
        self, module: str, storage_function: str, params: Sequence[object] | None = None
    ) -> str:
        substrate = self._require_connection()
        try:
            return substrate.create_storage_key(module, storage_function, list(params or [])).to_hex()
        except StorageFunctionNotFound as e:
            raise StorageNotFoundError(str(e)) from e

    # ------------------------------------------------------------------
    # Metadata registry
    # ------------------------------------------------------------------

    def resolve_module_error(self, module_index: int, error_index: int) -> ModuleErrorInfo:
        substrate = self._require_connection()
        try:
            substrate.init_runtime()
            metadata = substrate.metadata
            module_error = metadata.get_module_error(
                module_index=module_index, error_index=error_index
            )
            pallet_name = next(
                (p.name for p in metadata.pallets if p.value["index"] == module_index), None
            )
        except Exception as e:
            raise DispatchErrorDecodeError(
                f"Cannot resolve module error {module_index}/{error_index}: {e}"
            ) from e

        if module_error is None or pallet_name is None:
            raise DispatchErrorDecodeError(f"Unknown module error {module_index}/{error_index}")

        docs = module_error.docs
        if isinstance(docs, (list, tuple)):
            docs = " ".join(str(d).strip() for d in docs)
        return ModuleErrorInfo(pallet=pallet_name, name=module_error.name, docs=str(docs))

    # ------------------------------------------------------------------
    # Extrinsics
    # ------------------------------------------------------------------

    def create_signed_extrinsic(self, request: TransactionRequest, keypair: Keypair) -> Any:
        substrate = self._require_connection()
        try:
            call = substrate.compose_call(
                call_module=request.call.pallet,
                call_function=request.call.method,
                call_params=dict(request.call.args),
            )
            return substrate.create_signed_extrinsic(
                call=call, keypair=keypair, tip=request.tip or 0
            )
        except (TypeError, ValueError) as e:
            raise InvalidRequestError(
                f"Cannot encode {request.call.pallet}.{request.call.method}: {e}"
            ) from e
        except SubstrateRequestException as e:
            raise RPCError(f"Signing failed: {e}") from e

    def _extrinsic_events(self, extrinsic_hash: str | None, block_hash: str) -> list[dict]:
        try:
            receipt = ExtrinsicReceipt(
                substrate=self._substrate, extrinsic_hash=extrinsic_hash, block_hash=block_hash
            )
            return [event.value for event in receipt.triggered_events]
        except Exception as e:
            logger.warning("Could not fetch extrinsic events", block_hash=block_hash, error=str(e))
            return []

    def _status_update(self, status: object, extrinsic_hash: str | None) -> dict[str, Any]:
        update: dict[str, Any] = {"status": status, "extrinsic_hash": extrinsic_hash}
        try:
            name, payload = variant_of(status)
        except ValueError:
            return update
        if name.lower() in ("inblock", "finalized") and payload:
            update["events"] = self._extrinsic_events(extrinsic_hash, str(payload))
        return update

    def submit(self, signed_call: Any, on_status: StatusCallback) -> _Subscription:
        """Submit and watch an extrinsic; blocks until ``on_status`` stops the watch."""
        substrate = self._require_connection()
        subscription = _Subscription(substrate, "author_unwatchExtrinsic")
        extrinsic_hash: str | None = (
            f"0x{signed_call.extrinsic_hash.hex()}"
            if getattr(signed_call, "extrinsic_hash", None)
            else None
        )

        def result_handler(message, update_nr, subscription_id):
            subscription.subscription_id = subscription_id
            if subscription.closed:
                return {"extrinsic_hash": extrinsic_hash}

            if "error" in message:
                update: dict[str, Any] = {"error": message["error"], "extrinsic_hash": extrinsic_hash}
            else:
                update = self._status_update(message["params"]["result"], extrinsic_hash)

            if on_status(update):
                subscription.unsubscribe()
                return {"extrinsic_hash": extrinsic_hash}
            return None

        try:
            substrate.rpc_request(
                "author_submitAndWatchExtrinsic",
                [str(signed_call.data)],
                result_handler=result_handler,
            )
        except SubstrateRequestException as e:
            raise RPCError(f"Extrinsic submission failed: {e}") from e
        except (WebSocketException, OSError) as e:
            raise ChainConnectionError(f"Connection lost while watching extrinsic: {e}") from e
        return subscription

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe_system_events(self, callback: EventsCallback) -> _Subscription:
        """Stream System.Events; blocks until ``callback`` returns a truthy value.

        Delivery is synchronous, so the returned handle is already closed when it
        comes back.
        """
        substrate = self._require_connection()
        subscription = _Subscription(substrate)

        def subscription_handler(obj, update_nr, subscription_id):
            subscription.subscription_id = subscription_id
            if subscription.closed:
                return True
            events: list[ProcessedEventDict] = [
                _process_event(record) for record in (obj.value or [])
            ]
            if callback(events):
                subscription.closed = True
                return True
            return None

        try:
            substrate.query("System", "Events", subscription_handler=subscription_handler)
        except SubstrateRequestException as e:
            raise RPCError(f"Event subscription failed: {e}") from e
        except (WebSocketException, OSError) as e:
            raise ChainConnectionError(f"Connection lost while streaming events: {e}") from e
        return subscription


def _as_list(value: object, default: object) -> list:
    if value is None:
        return [default]
    if isinstance(value, (list, tuple)):
        return list(value) or [default]
    return [value]


def _process_event(record: Mapping[str, Any]) -> ProcessedEventDict:
    return ProcessedEventDict(
        phase=record.get("phase"),
        event={
            "module_id": record.get("module_id"),
            "event_id": record.get("event_id"),
            "attributes": record.get("attributes"),
        },
        topics=[str(t) for t in record.get("topics") or []],
    )


class KeypairSignerProvider:
    """Signs requests with locally held sr25519/ed25519 keypairs."""

    def __init__(self, chain: SubstrateChainClient, keypairs: Iterable[Keypair] = ()):
        self.chain = chain
        self._keypairs: dict[str, Keypair] = {}
        for keypair in keypairs:
            self.add_keypair(keypair)

    def add_keypair(self, keypair: Keypair) -> str:
        self._keypairs[keypair.ss58_address] = keypair
        return keypair.ss58_address

    def add_uri(self, suri: str) -> str:
        """Register a keypair from a secret URI such as ``//Alice``."""
        return self.add_keypair(Keypair.create_from_uri(suri, ss58_format=self.chain.ss58_format))

    def addresses(self) -> list[str]:
        return list(self._keypairs)

    def sign(self, address: str, request: TransactionRequest) -> Any:
        keypair: Keypair | None = self._keypairs.get(address)
        if keypair is None:
            raise SignerNotFoundError(f"Account {address} not found or has no signer")
        return self.chain.create_signed_extrinsic(request, keypair)
