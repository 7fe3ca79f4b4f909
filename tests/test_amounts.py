"""Tests for amount conversion and display formatting."""

from decimal import ROUND_FLOOR, Decimal, localcontext

import pytest

from dotstarter.services.amounts import format_amount, parse_amount, to_chain_amount
from dotstarter.services.errors import InvalidAmountError


def _reference_floor(value: Decimal, decimals: int) -> int:
    with localcontext() as ctx:
        ctx.prec = 200
        return int((value * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_FLOOR))


class TestToChainAmount:
    def test_string_is_exact_base_units(self) -> None:
        assert to_chain_amount("123456789012", 10) == 123456789012

    def test_string_is_not_scaled(self) -> None:
        assert to_chain_amount("1", 18) == 1

    def test_huge_string_keeps_every_digit(self) -> None:
        raw: str = "340282366920938463463374607431768211455"
        assert to_chain_amount(raw, 12) == int(raw)

    def test_int_is_scaled(self) -> None:
        assert to_chain_amount(2, 10) == 20_000_000_000

    def test_float_is_scaled_exactly(self) -> None:
        assert to_chain_amount(1.5, 10) == 15_000_000_000
        assert to_chain_amount(0.3, 10) == 3_000_000_000
        assert to_chain_amount(0.1, 18) == 100_000_000_000_000_000

    def test_decimal_with_eighteen_places(self) -> None:
        value: Decimal = Decimal("1234567.891234567891234567")
        assert to_chain_amount(value, 18) == 1234567891234567891234567

    def test_sub_unit_remainder_is_floored(self) -> None:
        assert to_chain_amount(Decimal("0.00000000019"), 10) == 1
        assert to_chain_amount(Decimal("0.000000000099"), 10) == 0

    def test_zero(self) -> None:
        assert to_chain_amount(0, 12) == 0
        assert to_chain_amount("0", 12) == 0
        assert to_chain_amount(Decimal("0.0"), 12) == 0

    def test_exponent_notation(self) -> None:
        assert to_chain_amount(Decimal("1E+3"), 2) == 100_000
        assert to_chain_amount(1e-5, 10) == 100_000

    @pytest.mark.parametrize("decimals", range(0, 19))
    def test_matches_arbitrary_precision_floor(self, decimals: int) -> None:
        for text in ("0", "1", "0.5", "0.000000000000000001", "98765.4321", "1234567.891234567891234567"):
            value: Decimal = Decimal(text)
            assert to_chain_amount(value, decimals) == _reference_floor(value, decimals)

    @pytest.mark.parametrize("decimals", [0, 6, 10, 12, 18])
    def test_floats_match_their_decimal_repr(self, decimals: int) -> None:
        for value in (0.1, 0.2, 1.25, 3.14159, 12345.6789):
            expected: int = _reference_floor(Decimal(repr(value)), decimals)
            assert to_chain_amount(value, decimals) == expected

    @pytest.mark.parametrize(
        "value",
        [-1, -0.5, Decimal("-1"), "-5", "1.5", "abc", "", float("nan"), float("inf"), Decimal("NaN"), True],
    )
    def test_invalid_values_rejected(self, value: object) -> None:
        with pytest.raises(InvalidAmountError):
            to_chain_amount(value, 10)  # type: ignore[arg-type]

    def test_unsupported_type_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            to_chain_amount([1], 10)  # type: ignore[arg-type]

    @pytest.mark.parametrize("decimals", [-1, 1.5, True])
    def test_invalid_decimals_rejected(self, decimals: object) -> None:
        with pytest.raises(InvalidAmountError):
            to_chain_amount(1, decimals)  # type: ignore[arg-type]

    def test_invalid_amount_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            to_chain_amount(-1, 10)


class TestFormatAmount:
    def test_fraction_is_trimmed(self) -> None:
        assert format_amount(123456789012, 10, "DOT") == "12.3456789012 DOT"
        assert format_amount(15_000_000_000, 10, "DOT") == "1.5 DOT"

    def test_whole_part_is_grouped(self) -> None:
        assert format_amount(10**22, 10, "DOT") == "1,000,000,000,000 DOT"

    def test_zero_and_no_unit(self) -> None:
        assert format_amount(0, 10, "DOT") == "0 DOT"
        assert format_amount(5, 0) == "5"

    def test_smallest_unit(self) -> None:
        assert format_amount(1, 18, "ETH") == "0.000000000000000001 ETH"

    def test_negative_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            format_amount(-1, 10)


class TestParseAmount:
    def test_parses_formatted_text(self) -> None:
        assert parse_amount("1,234.5 DOT", 10) == 12_345_000_000_000

    def test_integral_text(self) -> None:
        assert parse_amount("7", 3) == 7000

    def test_round_trips_through_format(self) -> None:
        for magnitude in (0, 1, 123456789012, 10**22 + 7):
            display: str = format_amount(magnitude, 10, "DOT")
            assert parse_amount(display, 10) == magnitude

    def test_display_round_trip_through_base_unit_string(self) -> None:
        magnitude: int = to_chain_amount("123456789012", 10)
        display: str = format_amount(magnitude, 10, "DOT")
        assert to_chain_amount(str(parse_amount(display, 10)), 10) == magnitude

    def test_excess_precision_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            parse_amount("0.001", 2)

    @pytest.mark.parametrize("display", ["", "   ", "abc DOT", "-1 DOT", "1.2.3"])
    def test_garbage_rejected(self, display: str) -> None:
        with pytest.raises(InvalidAmountError):
            parse_amount(display, 10)
