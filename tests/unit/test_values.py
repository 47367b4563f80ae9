"""
Unit tests for Decimal helpers and the Money value object.

Verifies:
- Float constructor prohibition
- Zero-safe division and unit ceiling
- Rounding determinism
- Money construction and currency-precision rounding
"""

from decimal import Decimal

import pytest

from importcost_kernel.domain.values import (
    Currency,
    Money,
    ceil_units,
    floor_to,
    is_close,
    percent_of,
    quantize_half_up,
    safe_div,
    to_decimal,
)


class TestToDecimal:
    def test_str_and_int(self):
        assert to_decimal("100.50") == Decimal("100.50")
        assert to_decimal(7) == Decimal("7")

    def test_decimal_passthrough(self):
        value = Decimal("1.23")
        assert to_decimal(value) is value

    def test_float_rejected(self):
        with pytest.raises(ValueError, match="Refusing to coerce float"):
            to_decimal(0.1)

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            to_decimal(True)

    def test_unparsable_rejected(self):
        with pytest.raises(ValueError, match="Invalid decimal value"):
            to_decimal("not a number")

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError, match="finite"):
            to_decimal("Infinity")
        with pytest.raises(ValueError, match="finite"):
            to_decimal(Decimal("NaN"))


class TestArithmeticHelpers:
    def test_safe_div_by_zero_is_zero(self):
        assert safe_div(Decimal("10"), Decimal("0")) == Decimal("0")

    def test_safe_div(self):
        assert safe_div(Decimal("10"), Decimal("4")) == Decimal("2.5")

    def test_percent_of(self):
        assert percent_of(Decimal("3200"), Decimal("5")) == Decimal("160")

    def test_ceil_units_rounds_up(self):
        assert ceil_units(Decimal("9100"), Decimal("3200")) == 3
        assert ceil_units(Decimal("6400"), Decimal("3200")) == 2

    def test_ceil_units_zero_price_or_amount(self):
        assert ceil_units(Decimal("100"), Decimal("0")) == 0
        assert ceil_units(Decimal("0"), Decimal("10")) == 0
        assert ceil_units(Decimal("-5"), Decimal("10")) == 0

    def test_floor_to(self):
        assert floor_to(Decimal("73.19625"), 2) == Decimal("73.19")
        assert floor_to(Decimal("-1.001"), 2) == Decimal("-1.01")

    def test_quantize_half_up(self):
        assert quantize_half_up(Decimal("2.345")) == Decimal("2.35")
        assert quantize_half_up(Decimal("2.344")) == Decimal("2.34")
        assert quantize_half_up(Decimal("75.4153"), 4) == Decimal("75.4153")

    def test_is_close(self):
        assert is_close(Decimal("100.004"), Decimal("100"))
        assert not is_close(Decimal("100.02"), Decimal("100"))


class TestCurrency:
    def test_normalized(self):
        assert Currency(" usd ").code == "USD"

    def test_unknown_rejected(self):
        with pytest.raises(ValueError, match="Unsupported ISO 4217"):
            Currency("XYZ")

    def test_wrong_length_rejected(self):
        with pytest.raises(ValueError, match="3 characters"):
            Currency("US")

    def test_decimal_places(self):
        assert Currency("CUP").decimal_places == 2
        assert Currency("JPY").decimal_places == 0


class TestMoney:
    def test_of_and_str(self):
        assert str(Money.of("10.50", "CUP")) == "10.50 CUP"

    def test_round_uses_currency_precision(self):
        assert Money.of("1.005", "CUP").round().amount == Decimal("1.01")
        assert Money.of("1.5", "JPY").round().amount == Decimal("2")

    def test_float_amount_rejected(self):
        with pytest.raises(ValueError):
            Money(amount=1.5, currency="CUP")

    def test_bad_currency_type(self):
        with pytest.raises(TypeError):
            Money(amount=Decimal("1"), currency=840)
