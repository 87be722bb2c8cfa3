"""Тесты арифметических фильтров."""

from decimal import Decimal

import pytest

from lq.errors import FilterError, FilterErrorKind
from lq.values import DecimalValue, IntegerValue, to_output_string


class TestArithmetic:
    """Сложение, вычитание, умножение."""

    def test_integers_stay_integers(self, apply_filter):
        assert apply_filter("plus", 1, 2) == IntegerValue(3)
        assert apply_filter("minus", 1, 2) == IntegerValue(-1)
        assert apply_filter("times", 3, 4) == IntegerValue(12)

    def test_decimal_operand_gives_decimal(self, apply_filter):
        result = apply_filter("plus", 1, "2.5")

        assert isinstance(result, DecimalValue)
        assert result.value == Decimal("3.5")

    def test_decimal_is_exact(self, apply_filter):
        assert to_output_string(apply_filter("plus", 0.1, 0.2)) == "0.3"

    def test_times_keeps_scale(self, apply_filter):
        assert to_output_string(apply_filter("times", 1.5, 2)) == "3.0"

    def test_numeric_strings(self, apply_filter):
        assert apply_filter("plus", "3", "4") == IntegerValue(7)

    def test_non_numbers_are_zero(self, apply_filter):
        assert apply_filter("plus", "abc", 1) == IntegerValue(1)
        assert apply_filter("times", None, 5) == IntegerValue(0)

    def test_large_integers(self, apply_filter):
        assert apply_filter("times", 10 ** 20, 10 ** 20) == IntegerValue(10 ** 40)


class TestDivision:
    """Деление и остаток."""

    def test_integer_division_floors(self, apply_filter):
        assert apply_filter("divided_by", 7, 2) == IntegerValue(3)
        assert apply_filter("divided_by", -7, 2) == IntegerValue(-4)

    def test_decimal_division(self, apply_filter):
        assert apply_filter("divided_by", 7, 2.0) == DecimalValue(Decimal("3.5"))

    def test_division_by_zero(self, apply_filter):
        with pytest.raises(FilterError) as exc_info:
            apply_filter("divided_by", 1, 0)

        assert exc_info.value.kind == FilterErrorKind.INVALID_ARGUMENT

    def test_modulo_sign_of_divisor(self, apply_filter):
        assert apply_filter("modulo", 7, 3) == IntegerValue(1)
        assert apply_filter("modulo", -7, 3) == IntegerValue(2)
        assert apply_filter("modulo", 7, -3) == IntegerValue(-2)

    def test_decimal_modulo(self, apply_filter):
        assert apply_filter("modulo", 5.5, 2) == DecimalValue(Decimal("1.5"))

    def test_modulo_by_zero(self, apply_filter):
        with pytest.raises(FilterError):
            apply_filter("modulo", 5, 0)


class TestRounding:
    """Округление и границы."""

    def test_round_half_up(self, apply_filter):
        assert apply_filter("round", 2.5) == IntegerValue(3)
        assert apply_filter("round", 2.4) == IntegerValue(2)

    def test_round_precision(self, apply_filter):
        result = apply_filter("round", 3.14159, 2)

        assert isinstance(result, DecimalValue)
        assert to_output_string(result) == "3.14"

    def test_round_negative_precision(self, apply_filter):
        assert apply_filter("round", 1250, -2) == IntegerValue(1300)

    def test_round_integer_unchanged(self, apply_filter):
        assert apply_filter("round", 5, 2) == IntegerValue(5)

    def test_ceil_floor(self, apply_filter):
        assert apply_filter("ceil", 1.2) == IntegerValue(2)
        assert apply_filter("floor", -1.2) == IntegerValue(-2)
        assert apply_filter("ceil", "3.5") == IntegerValue(4)
        assert apply_filter("floor", 7) == IntegerValue(7)

    def test_abs(self, apply_filter):
        assert apply_filter("abs", -3) == IntegerValue(3)
        assert apply_filter("abs", "-1.5") == DecimalValue(Decimal("1.5"))

    def test_at_least_at_most(self, apply_filter):
        assert apply_filter("at_least", 3, 5) == IntegerValue(5)
        assert apply_filter("at_least", 8, 5) == IntegerValue(8)
        assert apply_filter("at_most", 3, 5) == IntegerValue(3)
        assert apply_filter("at_most", 8, 5) == IntegerValue(5)


class TestNaN:
    """NaN из данных хоста не роняет фильтры."""

    def test_bounds_keep_nan(self, apply_filter):
        assert apply_filter("at_least", float("nan"), 5).value.is_nan()
        assert apply_filter("at_most", 5, float("nan")) == IntegerValue(5)

    def test_ceil_floor_of_nan(self, apply_filter):
        assert apply_filter("ceil", float("nan")) == IntegerValue(0)
        assert apply_filter("floor", float("nan")) == IntegerValue(0)
