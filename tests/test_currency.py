"""
Tests for the Money type and currency formatting
"""

import pytest
from decimal import Decimal

from loan_accounting.currency import (
    Money, Currency, DEFAULT_CURRENCY, sum_money, format_indian, parse_currency
)


class TestMoney:
    """Test Money construction and arithmetic"""

    def test_default_currency_is_inr(self):
        assert DEFAULT_CURRENCY == Currency.INR
        assert Money(Decimal("10")).currency == Currency.INR

    def test_rounds_to_currency_precision(self):
        assert Money(Decimal("10.005")).amount == Decimal("10.01")
        assert Money(Decimal("10.004")).amount == Decimal("10.00")
        assert Money(Decimal("99.5"), Currency.JPY).amount == Decimal("100")

    def test_exact_decimal_addition(self):
        total = Money(Decimal("0.10")) + Money(Decimal("0.20"))
        assert total == Money(Decimal("0.30"))

    def test_currency_mismatch_rejected(self):
        with pytest.raises(ValueError):
            Money(Decimal("1"), Currency.INR) + Money(Decimal("1"), Currency.USD)

    def test_adding_non_money_rejected(self):
        with pytest.raises(TypeError):
            Money(Decimal("1")) + Decimal("1")

    def test_multiply_by_rate(self):
        interest = Money(Decimal("15000")) * (Decimal("3.0") / Decimal("100"))
        assert interest == Money(Decimal("450.00"))

    def test_bool_is_not_an_amount(self):
        with pytest.raises(TypeError):
            Money(True)

    def test_non_finite_amounts_are_kept(self):
        nan = Money(Decimal("NaN"))
        assert not nan.is_finite()
        assert not nan.is_negative()
        assert not Money(Decimal("Infinity")).is_finite()

    def test_sign_checks(self):
        assert Money(Decimal("-1")).is_negative()
        assert Money(Decimal("0")).is_zero()
        assert Money(Decimal("0.01")).is_positive()


class TestRawConversion:
    """Test conversion of raw store values"""

    def test_from_string(self):
        assert Money.from_raw("1200.5") == Money(Decimal("1200.50"))

    def test_from_float_uses_shortest_repr(self):
        assert Money.from_raw(0.1).amount == Decimal("0.10")

    def test_from_int(self):
        assert Money.from_raw(933).amount == Decimal("933.00")

    def test_unparseable_becomes_nan(self):
        assert not Money.from_raw("abc").is_finite()
        assert not Money.from_raw(None).is_finite()
        assert not Money.from_raw([1, 2]).is_finite()

    def test_too_large_for_precision_becomes_nan(self):
        assert not Money.from_raw("1e27").is_finite()
        assert not Money.from_raw(Decimal("1e27")).is_finite()

    def test_to_raw(self):
        assert Money(Decimal("450")).to_raw() == "450.00"


class TestFormatting:
    """Test display formatting"""

    @pytest.mark.parametrize("amount,expected", [
        ("0", "0.00"),
        ("999", "999.00"),
        ("1000", "1,000.00"),
        ("123456", "1,23,456.00"),
        ("1234567.89", "12,34,567.89"),
        ("-1000", "-1,000.00"),
    ])
    def test_indian_grouping(self, amount, expected):
        assert format_indian(Decimal(amount)) == expected

    def test_indian_grouping_without_fraction(self):
        assert format_indian(Decimal("1234567"), 0) == "12,34,567"

    def test_inr_display(self):
        assert Money(Decimal("123456")).to_display() == "₹1,23,456.00"

    def test_usd_display(self):
        assert Money(Decimal("1234.5"), Currency.USD).to_display() == "$1,234.50"

    def test_to_string(self):
        assert Money(Decimal("1234.5"), Currency.USD).to_string() == "USD 1,234.50"


class TestHelpers:

    def test_sum_money(self):
        amounts = [Money(Decimal("933.33"))] * 3
        assert sum_money(amounts) == Money(Decimal("2799.99"))

    def test_sum_money_empty(self):
        assert sum_money([], Currency.USD) == Money.zero(Currency.USD)

    def test_parse_currency(self):
        assert parse_currency(None) == Currency.INR
        assert parse_currency("usd") == Currency.USD
        with pytest.raises(ValueError):
            parse_currency("XYZ")
