"""Interfaces of the external collaborators the services consume.

The services only depend on these protocols; ``chain_client.SubstrateChainClient``
and ``chain_client.KeypairSignerProvider`` are the bundled implementations.
"""

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Protocol

from dotstarter.services.schemas.chain import ModuleErrorInfo, TransactionRequest

# A status callback returns a truthy value once it wants no further updates,
# mirroring substrate-interface's subscription handler convention.
StatusCallback = Callable[[Mapping[str, Any]], object]
EventsCallback = Callable[[Sequence[Mapping[str, Any]]], object]


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


class ChainRpc(Protocol):
    """Query/subscribe/submit surface of a chain RPC client."""

    def submit(self, signed_call: object, on_status: StatusCallback) -> Subscription: ...

    def query(
        self, module: str, storage_function: str, params: Sequence[object] | None = None
    ) -> Any: ...

    def query_entries(self, module: str, storage_function: str) -> Iterable[tuple[Any, Any]]: ...

    def has_storage(self, module: str, storage_function: str) -> bool: ...

    def has_call(self, module: str, call_function: str) -> bool: ...

    def storage_key(
        self, module: str, storage_function: str, params: Sequence[object] | None = None
    ) -> str: ...

    def subscribe_system_events(self, callback: EventsCallback) -> Subscription:
        """Delivery may block until ``callback`` returns a truthy value."""
        ...


class SignerProvider(Protocol):
    """Produces a signed call the ChainRpc can submit."""

    def sign(self, address: str, request: TransactionRequest) -> object: ...


class MetadataRegistry(Protocol):
    def resolve_module_error(self, module_index: int, error_index: int) -> ModuleErrorInfo:
        """Raises DispatchErrorDecodeError when the indices are unknown."""
        ...
