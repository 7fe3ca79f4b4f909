"""Human-readable messages for failed dispatches."""

from collections.abc import Mapping
from dataclasses import dataclass

import structlog

from dotstarter.services._helpers import as_int, variant_of
from dotstarter.services.errors import DecodeError, DispatchErrorDecodeError
from dotstarter.services.interfaces import MetadataRegistry
from dotstarter.services.schemas.chain import ModuleErrorInfo

logger = structlog.get_logger(__name__)

GENERIC_DISPATCH_FAILURE = "Dispatch failed"


@dataclass(frozen=True)
class ModuleErrorDescriptor:
    module_index: int
    error_index: int


def _error_index(raw: object) -> int:
    # Newer runtimes encode the error as [u8; 4]; the index is the first byte.
    if isinstance(raw, str) and raw.startswith("0x"):
        return int(raw[2:4], 16)
    if isinstance(raw, (bytes, bytearray)):
        return raw[0]
    if isinstance(raw, (list, tuple)):
        return as_int(raw[0])
    return as_int(raw)


def parse_module_error(payload: object) -> ModuleErrorDescriptor:
    """Read the payload of a ``DispatchError::Module`` variant."""
    try:
        if isinstance(payload, Mapping):
            module_index, error = payload["index"], payload["error"]
        elif isinstance(payload, (list, tuple)) and len(payload) >= 2:
            module_index, error = payload[0], payload[1]
        else:
            raise DispatchErrorDecodeError(f"Unrecognised module error {payload!r}")
        return ModuleErrorDescriptor(as_int(module_index), _error_index(error))
    except (KeyError, IndexError, ValueError) as e:
        raise DispatchErrorDecodeError(f"Unrecognised module error {payload!r}") from e


def decode_module_error(descriptor: ModuleErrorDescriptor, registry: MetadataRegistry) -> str:
    """Format a module error as ``<pallet>.<name>: <docs>``."""
    info: ModuleErrorInfo | None = registry.resolve_module_error(
        descriptor.module_index, descriptor.error_index
    )
    if info is None:
        raise DispatchErrorDecodeError(
            f"Unknown module error {descriptor.module_index}/{descriptor.error_index}"
        )
    return f"{info.pallet}.{info.name}: {info.docs}"


def describe_dispatch_error(dispatch_error: object, registry: MetadataRegistry) -> str:
    """Best-effort description of any ``DispatchError`` variant. Never raises."""
    try:
        name, payload = variant_of(dispatch_error)
    except ValueError:
        logger.warning("Unrecognised dispatch error", dispatch_error=repr(dispatch_error)[:200])
        return GENERIC_DISPATCH_FAILURE

    if name != "Module":
        return f"{GENERIC_DISPATCH_FAILURE}: {name}"

    try:
        return decode_module_error(parse_module_error(payload), registry)
    except DecodeError as e:
        logger.warning("Could not decode module error", error=str(e))
        return GENERIC_DISPATCH_FAILURE
