"""
Tests for amount parsing and display formatting
"""

import pytest
from decimal import Decimal

from bankpro.currency import amount_to_string, format_currency, parse_positive_amount, to_decimal
from bankpro.errors import InvalidInput


class TestToDecimal:
    """Conversion of caller-supplied amounts"""

    def test_accepted_types(self):
        assert to_decimal(5000) == Decimal("5000")
        assert to_decimal(Decimal("1.25")) == Decimal("1.25")
        assert to_decimal(" 99.90 ") == Decimal("99.90")

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", [None, True, "", "ten", "NaN", "-Infinity", [], object()])
    def test_rejected(self, value):
        with pytest.raises(InvalidInput):
            to_decimal(value)

    def test_negative_allowed_by_to_decimal(self):
        assert to_decimal("-3") == Decimal("-3")

    @pytest.mark.parametrize("value", [0, "-1", Decimal("0.00")])
    def test_positive_required(self, value):
        with pytest.raises(InvalidInput, match="greater than zero"):
            parse_positive_amount(value)


class TestFormatting:
    """Display strings"""

    def test_amount_to_string_avoids_exponent(self):
        assert amount_to_string(Decimal("5E+3")) == "5000"
        assert amount_to_string(Decimal("12.50")) == "12.50"

    @pytest.mark.parametrize("amount,expected", [
        (0, "₹0"),
        (999, "₹999"),
        (1000, "₹1,000"),
        (50000, "₹50,000"),
        (123456, "₹1,23,456"),
        (12345678, "₹1,23,45,678"),
        (Decimal("1234.5"), "₹1,234.5"),
        (-20000, "-₹20,000"),
    ])
    def test_indian_grouping(self, amount, expected):
        assert format_currency(amount) == expected

    def test_custom_symbol(self):
        assert format_currency(1500, symbol="Rs ") == "Rs 1,500"
