"""
Арифметические фильтры.

Операнды приводятся к числу по общему правилу (coerce_number): строки
разбираются, всё нечисловое становится 0. Результат остаётся Integer,
только если оба операнда Integer; иначе получается точный Decimal.
"""

from __future__ import annotations

import decimal
import operator
from decimal import Decimal
from typing import Callable, List, Optional, Union

from .base import Filter, FunctionFilter, integer_argument
from ..errors import FilterError, FilterErrorKind
from ..values import Value, IntegerValue, DecimalValue, coerce_number, compare_values, number_value

Number = Union[int, Decimal]


def _as_decimal(value: Value) -> Decimal:
    return Decimal(value.value)


def _arithmetic(value: Value, other: Value, op: Callable[[Number, Number], Number]) -> Value:
    left = coerce_number(value)
    right = coerce_number(other)
    if isinstance(left, IntegerValue) and isinstance(right, IntegerValue):
        return number_value(op(left.value, right.value))
    return number_value(op(_as_decimal(left), _as_decimal(right)))


def plus(value: Value, other: Value) -> Value:
    return _arithmetic(value, other, operator.add)


def minus(value: Value, other: Value) -> Value:
    return _arithmetic(value, other, operator.sub)


def times(value: Value, other: Value) -> Value:
    return _arithmetic(value, other, operator.mul)


def _nonzero_divisor(other: Value, filter_name: str) -> Value:
    divisor = coerce_number(other)
    if divisor.value == 0:
        raise FilterError(f"'{filter_name}' called with 0 as the divisor", FilterErrorKind.INVALID_ARGUMENT)
    return divisor


def divided_by(value: Value, other: Value) -> Value:
    """Деление: целочисленное с округлением вниз для двух Integer, иначе точное."""
    divisor = _nonzero_divisor(other, "divided_by")
    dividend = coerce_number(value)
    if isinstance(dividend, IntegerValue) and isinstance(divisor, IntegerValue):
        return IntegerValue(dividend.value // divisor.value)
    return DecimalValue(_as_decimal(dividend) / _as_decimal(divisor))


def modulo(value: Value, other: Value) -> Value:
    """Остаток со знаком делителя."""
    divisor = _nonzero_divisor(other, "modulo")
    dividend = coerce_number(value)
    if isinstance(dividend, IntegerValue) and isinstance(divisor, IntegerValue):
        return IntegerValue(dividend.value % divisor.value)

    a, b = _as_decimal(dividend), _as_decimal(divisor)
    quotient = (a / b).to_integral_value(rounding=decimal.ROUND_FLOOR)
    return DecimalValue(a - b * quotient)


def abs_(value: Value) -> Value:
    number = coerce_number(value)
    return number_value(abs(number.value))


def ceil(value: Value) -> Value:
    number = coerce_number(value)
    if isinstance(number, IntegerValue):
        return number
    if not number.value.is_finite():
        return IntegerValue(0)
    return IntegerValue(int(number.value.to_integral_value(rounding=decimal.ROUND_CEILING)))


def floor(value: Value) -> Value:
    number = coerce_number(value)
    if isinstance(number, IntegerValue):
        return number
    if not number.value.is_finite():
        return IntegerValue(0)
    return IntegerValue(int(number.value.to_integral_value(rounding=decimal.ROUND_FLOOR)))


def round_(value: Value, precision: Optional[Value] = None) -> Value:
    """
    Округление половины вверх до precision знаков.

    precision 0 даёт Integer, положительная - Decimal, отрицательная
    округляет до десятков, сотен и т.д.
    """
    digits = integer_argument(precision, "round", default=0)
    number = coerce_number(value)

    if isinstance(number, IntegerValue):
        if digits >= 0:
            return number
        quantum = Decimal(1).scaleb(-digits)
        return IntegerValue(int(Decimal(number.value).quantize(quantum, rounding=decimal.ROUND_HALF_UP)))

    if not number.value.is_finite():
        return IntegerValue(0)

    quantum = Decimal(1).scaleb(-digits)
    rounded = number.value.quantize(quantum, rounding=decimal.ROUND_HALF_UP)
    if digits > 0:
        return DecimalValue(rounded)
    return IntegerValue(int(rounded))


def at_least(value: Value, bound: Value) -> Value:
    number = coerce_number(value)
    minimum = coerce_number(bound)
    return minimum if compare_values(minimum, number) == 1 else number


def at_most(value: Value, bound: Value) -> Value:
    number = coerce_number(value)
    maximum = coerce_number(bound)
    return maximum if compare_values(maximum, number) == -1 else number


FILTERS: List[Filter] = [
    FunctionFilter("plus", plus, 1, 1),
    FunctionFilter("minus", minus, 1, 1),
    FunctionFilter("times", times, 1, 1),
    FunctionFilter("divided_by", divided_by, 1, 1),
    FunctionFilter("modulo", modulo, 1, 1),
    FunctionFilter("abs", abs_, 0, 0),
    FunctionFilter("ceil", ceil, 0, 0),
    FunctionFilter("floor", floor, 0, 0),
    FunctionFilter("round", round_, 0, 1),
    FunctionFilter("at_least", at_least, 1, 1),
    FunctionFilter("at_most", at_most, 1, 1),
]


__all__ = ["FILTERS"]
