"""
Прочие фильтры: default и date.
"""

from __future__ import annotations

import datetime as _dt
from decimal import Decimal
from typing import List, Optional

from .base import Filter, FunctionFilter, text, string_of
from ..values import (
    Value, NilValue, BoolValue, IntegerValue, DecimalValue, StringValue,
    ArrayValue, DictionaryValue, is_truthy, parse_number,
)

# Дополнительные форматы помимо ISO 8601
_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%a, %d %b %Y %H:%M:%S %z",
)


def _is_empty(value: Value) -> bool:
    if isinstance(value, NilValue):
        return True
    if isinstance(value, StringValue):
        return value.value == ""
    if isinstance(value, ArrayValue):
        return not value.items
    if isinstance(value, DictionaryValue):
        return not value.items
    return False


def default(value: Value, fallback: Value, allow_false: Optional[Value] = None) -> Value:
    """
    Подставляет fallback для Nil, false и пустых строк и коллекций.

    При истинном allow_false значение false сохраняется.
    """
    if _is_empty(value):
        return fallback
    if isinstance(value, BoolValue) and not value.value:
        if allow_false is not None and is_truthy(allow_false):
            return value
        return fallback
    return value


def _from_timestamp(seconds: Decimal) -> _dt.datetime:
    return _dt.datetime.fromtimestamp(float(seconds), tz=_dt.timezone.utc)


def to_datetime(value: Value) -> Optional[_dt.datetime]:
    """
    Разбирает значение как момент времени.

    Числа - секунды Unix-времени (UTC), строки - "now"/"today",
    числовая строка, ISO 8601 или один из распространённых форматов.
    """
    if isinstance(value, (IntegerValue, DecimalValue)):
        return _from_timestamp(Decimal(value.value))
    if not isinstance(value, StringValue):
        return None

    source = value.value.strip()
    if source.lower() in ("now", "today"):
        return _dt.datetime.now()

    number = parse_number(source)
    if number is not None:
        return _from_timestamp(Decimal(number.value))

    iso = source[:-1] + "+00:00" if source.endswith("Z") else source
    try:
        return _dt.datetime.fromisoformat(iso)
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return _dt.datetime.strptime(source, fmt)
        except ValueError:
            continue
    return None


def date(value: Value, fmt: Value) -> Value:
    """Форматирует дату по strftime; неразбираемый вход возвращается как есть."""
    pattern = text(fmt)
    if not pattern:
        return value
    moment = to_datetime(value)
    if moment is None:
        return value
    return string_of(moment.strftime(pattern))


FILTERS: List[Filter] = [
    FunctionFilter("default", default, 1, 2),
    FunctionFilter("date", date, 1, 1),
]


__all__ = ["FILTERS", "to_datetime"]
