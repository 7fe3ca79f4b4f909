"""Conversion between human decimal amounts and chain base units.

Two input paths:

  - ``str``: an already-scaled base-unit integer literal, parsed exactly.
  - numbers (``int``, ``float``, ``Decimal``): a human-scale amount, scaled by
    ``10**decimals`` and floored. Fractional base units are discarded, never
    rounded up, so a signed amount can never exceed what the caller asked for.

All scaling is integer arithmetic over the decimal digits; floats are read
through their shortest decimal repr and never multiplied in binary.
"""

import math
import re
from decimal import Decimal

from dotstarter.services.errors import InvalidAmountError

Amount = str | int | float | Decimal

_BASE_UNITS = re.compile(r"^\d+$")
_DISPLAY = re.compile(r"^\d+(\.\d+)?$")


def _check_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise InvalidAmountError(f"decimals must be a non-negative integer, got {decimals!r}")


def _scale_floor(value: Decimal, decimals: int) -> int:
    _sign, digits, exponent = value.as_tuple()
    coefficient: int = int("".join(str(d) for d in digits) or "0")
    shift: int = exponent + decimals
    if shift >= 0:
        return coefficient * 10**shift
    return coefficient // 10**-shift


def to_chain_amount(value: Amount, decimals: int) -> int:
    """Convert an amount to an exact base-unit integer."""
    _check_decimals(decimals)

    if isinstance(value, str):
        raw: str = value.strip()
        if not _BASE_UNITS.match(raw):
            raise InvalidAmountError(f"Invalid base-unit amount {value!r}")
        return int(raw)

    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount {value!r}")

    if isinstance(value, int):
        if value < 0:
            raise InvalidAmountError(f"Amount must be non-negative, got {value}")
        return value * 10**decimals

    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidAmountError(f"Amount must be finite, got {value}")
        value = Decimal(repr(value))

    if isinstance(value, Decimal):
        if not value.is_finite():
            raise InvalidAmountError(f"Amount must be finite, got {value}")
        if value < 0:
            raise InvalidAmountError(f"Amount must be non-negative, got {value}")
        return _scale_floor(value, decimals)

    raise InvalidAmountError(f"Unsupported amount type {type(value).__name__}")


def format_amount(magnitude: int, decimals: int, unit: str | None = None) -> str:
    """Render base units as a grouped decimal string, e.g. ``1,234.5 DOT``."""
    _check_decimals(decimals)
    if isinstance(magnitude, bool) or not isinstance(magnitude, int) or magnitude < 0:
        raise InvalidAmountError(f"Invalid magnitude {magnitude!r}")

    whole, fraction = divmod(magnitude, 10**decimals)
    text: str = f"{whole:,}"
    if decimals:
        digits: str = str(fraction).rjust(decimals, "0").rstrip("0")
        if digits:
            text = f"{text}.{digits}"
    return f"{text} {unit}" if unit else text


def parse_amount(display: str, decimals: int) -> int:
    """Parse a ``format_amount`` string back into base units."""
    _check_decimals(decimals)
    tokens: list[str] = display.strip().split()
    if not tokens:
        raise InvalidAmountError("Empty amount")

    number: str = tokens[0].replace(",", "")
    if not _DISPLAY.match(number):
        raise InvalidAmountError(f"Invalid display amount {display!r}")

    whole, _, fraction = number.partition(".")
    if len(fraction) > decimals:
        raise InvalidAmountError(
            f"{display!r} has more than {decimals} fractional digits"
        )
    return int(whole) * 10**decimals + int(fraction.ljust(decimals, "0") or "0")
