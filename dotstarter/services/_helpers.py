"""Shared utilities for the service layer."""

from collections.abc import Mapping

# Decoded SCALE enums arrive either as a bare variant name ("Ready") or as a
# single-key mapping ({"InBlock": "0x..."}).
EnumValue = str | Mapping[str, object]


def variant_of(value: object) -> tuple[str, object]:
    """Split a decoded enum into (variant name, payload)."""
    if isinstance(value, str):
        return value, None
    if isinstance(value, Mapping) and len(value) == 1:
        name, payload = next(iter(value.items()))
        return str(name), payload
    raise ValueError(f"Not an enum value: {value!r}")


def as_int(value: object) -> int:
    """Coerce a decoded integer (int, decimal string or 0x hex) to int."""
    if isinstance(value, bool):
        raise ValueError(f"Not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        raw: str = value.strip().replace(",", "")
        if raw.lower().startswith("0x"):
            return int(raw, 16)
        return int(raw)
    raise ValueError(f"Not an integer: {value!r}")


def to_hex(value: object) -> str:
    """Render bytes or an existing hex string as 0x-prefixed hex."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    raw: str = str(value)
    return raw if raw.startswith("0x") else f"0x{raw}"


def short(address: str, size: int = 16) -> str:
    """Truncate an address for log output."""
    return address[:size]
