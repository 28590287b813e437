"""
Tests for the decimal arithmetic helpers.
"""

from decimal import Decimal

import pytest

from back_office.exceptions import InvalidInputError
from back_office.money import (
    divide,
    is_positive,
    is_zero,
    money,
    multiply,
    percentage,
    quantity,
    subtract,
    to_decimal,
    total,
)


class TestConversion:

    def test_accepts_strings_ints_and_decimals(self):
        assert to_decimal("12.50") == Decimal("12.50")
        assert to_decimal(3) == Decimal("3")
        assert to_decimal(Decimal("0.1")) == Decimal("0.1")

    @pytest.mark.parametrize("value", [0.1, True, "abc", None, "NaN", "Infinity"])
    def test_rejects_inexact_or_garbage(self, value):
        with pytest.raises(InvalidInputError):
            to_decimal(value)


class TestRounding:

    def test_half_up(self):
        assert money("2.345") == Decimal("2.35")
        assert money("-2.345") == Decimal("-2.35")
        assert quantity("1.00005") == Decimal("1.0001")

    def test_tenths_add_up_exactly(self):
        assert total(["0.1"] * 10) == Decimal("1.00")
        assert subtract("0.3", "0.1") == Decimal("0.20")


class TestOperations:

    def test_multiply_and_percentage(self):
        assert multiply("3", "19.99") == Decimal("59.97")
        assert percentage("150.00", "20") == Decimal("30.00")
        assert percentage("33.33", "18") == Decimal("6.00")

    def test_divide_by_zero_yields_zero(self):
        assert divide("10", "0") == Decimal("0.00")
        assert divide("10", "3") == Decimal("3.33")

    def test_predicates(self):
        assert is_positive("0.01") is True
        assert is_positive("0") is False
        assert is_zero("0.0000") is True
