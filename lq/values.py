"""
Модель значений шаблонизатора.

Закрытое размеченное объединение значений времени выполнения и общие
правила истинности, строкового представления и разбора чисел, которые
используют парсер, вычислитель и (по желанию) внешние фильтры.
"""

from __future__ import annotations

import datetime as _dt
import decimal
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class ValueKind(Enum):
    """Варианты значений."""
    NIL = "nil"
    BOOL = "bool"
    INTEGER = "integer"
    DECIMAL = "decimal"
    STRING = "string"
    ARRAY = "array"
    DICTIONARY = "dictionary"
    RANGE = "range"


@dataclass(frozen=True)
class Value(ABC):
    """Базовый абстрактный класс для всех значений."""

    @abstractmethod
    def get_kind(self) -> ValueKind:
        """Возвращает вариант значения."""
        pass

    def __str__(self) -> str:
        return to_output_string(self)


@dataclass(frozen=True)
class NilValue(Value):
    """Отсутствие значения. Ложно."""

    def get_kind(self) -> ValueKind:
        return ValueKind.NIL


@dataclass(frozen=True)
class BoolValue(Value):
    value: bool

    def get_kind(self) -> ValueKind:
        return ValueKind.BOOL


@dataclass(frozen=True)
class IntegerValue(Value):
    """Целое произвольной точности."""
    value: int

    def get_kind(self) -> ValueKind:
        return ValueKind.INTEGER


@dataclass(frozen=True)
class DecimalValue(Value):
    """
    Точное десятичное число.

    Никогда не хранит двоичный float: всё, что приходит извне как float,
    переводится через строковое представление.
    """
    value: decimal.Decimal

    def get_kind(self) -> ValueKind:
        return ValueKind.DECIMAL


@dataclass(frozen=True)
class StringValue(Value):
    value: str

    def get_kind(self) -> ValueKind:
        return ValueKind.STRING


@dataclass(frozen=True)
class ArrayValue(Value):
    items: Tuple[Value, ...] = ()

    def get_kind(self) -> ValueKind:
        return ValueKind.ARRAY


@dataclass(frozen=True)
class DictionaryValue(Value):
    """
    Словарь String -> Value.

    Порядок вставки не является частью семантики, но сохраняется
    при итерации ради предсказуемого вывода.
    """
    items: Dict[str, Value] = field(default_factory=dict)

    def get_kind(self) -> ValueKind:
        return ValueKind.DICTIONARY


@dataclass(frozen=True)
class RangeValue(Value):
    """Замкнутый целочисленный интервал start..stop (пуст, если stop < start)."""
    start: int
    stop: int

    def get_kind(self) -> ValueKind:
        return ValueKind.RANGE

    def __len__(self) -> int:
        return max(0, self.stop - self.start + 1)


# Объединенный тип для всех значений
AnyValue = Union[
    NilValue,
    BoolValue,
    IntegerValue,
    DecimalValue,
    StringValue,
    ArrayValue,
    DictionaryValue,
    RangeValue,
]

NIL = NilValue()
TRUE = BoolValue(True)
FALSE = BoolValue(False)

_INTEGER_RE = re.compile(r'-?\d+\Z')
_DECIMAL_RE = re.compile(r'-?(?:\d+\.\d*|\.\d+)\Z')


# --------------------------------------------------------------------------- #
# Преобразование из/в Python
# --------------------------------------------------------------------------- #

def to_value(obj: Any) -> Value:
    """
    Переводит данные хост-приложения в модель значений.

    Args:
        obj: Произвольное значение Python

    Returns:
        Соответствующее значение модели (объекты неизвестных типов
        становятся строками)
    """
    if isinstance(obj, Value):
        return obj
    if obj is None:
        return NIL
    # bool проверяем раньше int: bool - подкласс int
    if isinstance(obj, bool):
        return TRUE if obj else FALSE
    if isinstance(obj, int):
        return IntegerValue(obj)
    if isinstance(obj, float):
        return DecimalValue(decimal.Decimal(repr(obj)))
    if isinstance(obj, decimal.Decimal):
        return DecimalValue(obj)
    if isinstance(obj, str):
        return StringValue(obj)
    if isinstance(obj, range):
        if obj.step == 1:
            return RangeValue(obj.start, obj.stop - 1)
        return ArrayValue(tuple(IntegerValue(i) for i in obj))
    if isinstance(obj, Mapping):
        return DictionaryValue({str(k): to_value(v) for k, v in obj.items()})
    if isinstance(obj, (list, tuple)):
        return ArrayValue(tuple(to_value(item) for item in obj))
    if isinstance(obj, (_dt.date, _dt.datetime)):
        return StringValue(obj.isoformat())
    return StringValue(str(obj))


def to_python(value: Value) -> Any:
    """Обратное преобразование значения модели в данные Python."""
    if isinstance(value, NilValue):
        return None
    if isinstance(value, (BoolValue, IntegerValue, DecimalValue, StringValue)):
        return value.value
    if isinstance(value, ArrayValue):
        return [to_python(item) for item in value.items]
    if isinstance(value, DictionaryValue):
        return {key: to_python(item) for key, item in value.items.items()}
    if isinstance(value, RangeValue):
        return list(range(value.start, value.stop + 1))
    raise TypeError(f"Unknown value variant: {type(value).__name__}")


# --------------------------------------------------------------------------- #
# Истинность и строковое представление
# --------------------------------------------------------------------------- #

def is_truthy(value: Value) -> bool:
    """Ложны только Nil и Bool(false); 0, "" и пустые коллекции истинны."""
    if isinstance(value, NilValue):
        return False
    if isinstance(value, BoolValue):
        return value.value
    return True


def format_decimal(number: decimal.Decimal) -> str:
    """Каноническая запись десятичного числа без экспоненты."""
    return format(number, "f")


def to_output_string(value: Value) -> str:
    """
    Каноническое строковое представление значения для вывода.

    Единое для всего движка: вывод {{ }}, capture, join и т.п.
    """
    if isinstance(value, NilValue):
        return ""
    if isinstance(value, BoolValue):
        return "true" if value.value else "false"
    if isinstance(value, IntegerValue):
        return str(value.value)
    if isinstance(value, DecimalValue):
        return format_decimal(value.value)
    if isinstance(value, StringValue):
        return value.value
    if isinstance(value, ArrayValue):
        return "".join(to_output_string(item) for item in value.items)
    if isinstance(value, RangeValue):
        return f"{value.start}..{value.stop}"
    if isinstance(value, DictionaryValue):
        return ""
    raise TypeError(f"Unknown value variant: {type(value).__name__}")


# --------------------------------------------------------------------------- #
# Числа
# --------------------------------------------------------------------------- #

def parse_number(text: str) -> Optional[Value]:
    """
    Канонический разбор числа из строки.

    Returns:
        IntegerValue, DecimalValue или None, если строка не является числом
    """
    text = text.strip()
    if _INTEGER_RE.match(text):
        return IntegerValue(int(text))
    if _DECIMAL_RE.match(text):
        return DecimalValue(decimal.Decimal(text))
    return None


def to_number(value: Value) -> Optional[Value]:
    """
    Приводит значение к числу по единому правилу.

    Integer и Decimal возвращаются как есть, строки разбираются через
    parse_number, всё остальное - не число (None).
    """
    if isinstance(value, (IntegerValue, DecimalValue)):
        return value
    if isinstance(value, StringValue):
        return parse_number(value.value)
    return None


def coerce_number(value: Value) -> Value:
    """Как to_number, но «не число» превращается в Integer(0)."""
    number = to_number(value)
    return number if number is not None else IntegerValue(0)


def to_integer(value: Value) -> Optional[int]:
    """Целая часть числового значения (Decimal усекается к нулю)."""
    number = to_number(value)
    if isinstance(number, IntegerValue):
        return number.value
    if isinstance(number, DecimalValue):
        if not number.value.is_finite():
            return None
        return int(number.value)
    return None


def number_value(number: Union[int, decimal.Decimal]) -> Value:
    """Упаковывает результат арифметики, сохраняя вариант."""
    if isinstance(number, decimal.Decimal):
        return DecimalValue(number)
    return IntegerValue(number)


def is_nan(value: Value) -> bool:
    """Decimal NaN не упорядочивается и не равен ничему, включая себя."""
    return isinstance(value, DecimalValue) and value.value.is_nan()


# --------------------------------------------------------------------------- #
# Сравнение
# --------------------------------------------------------------------------- #

def values_equal(left: Value, right: Value) -> bool:
    """
    Равенство по варианту и содержимому.

    Integer и Decimal сравниваются численно, коллекции - поэлементно.
    Разные варианты в остальных случаях не равны.
    """
    if isinstance(left, (IntegerValue, DecimalValue)) and isinstance(right, (IntegerValue, DecimalValue)):
        if is_nan(left) or is_nan(right):
            return False
        return left.value == right.value
    if type(left) is not type(right):
        return False
    if isinstance(left, ArrayValue):
        return len(left.items) == len(right.items) and all(
            values_equal(a, b) for a, b in zip(left.items, right.items)
        )
    if isinstance(left, DictionaryValue):
        if left.items.keys() != right.items.keys():
            return False
        return all(values_equal(item, right.items[key]) for key, item in left.items.items())
    return left == right


def compare_values(left: Value, right: Value) -> Optional[int]:
    """
    Упорядочивающее сравнение.

    Определено только для пар Integer/Decimal и пар String;
    NaN не сравнивается ни с чем.

    Returns:
        -1, 0, 1 или None, если сравнение не определено
    """
    if isinstance(left, (IntegerValue, DecimalValue)) and isinstance(right, (IntegerValue, DecimalValue)):
        if is_nan(left) or is_nan(right):
            return None
        a, b = left.value, right.value
    elif isinstance(left, StringValue) and isinstance(right, StringValue):
        a, b = left.value, right.value
    else:
        return None
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def contains_value(container: Value, needle: Value) -> bool:
    """Оператор contains: подстрока для строк, членство для массивов."""
    if isinstance(container, StringValue):
        if isinstance(needle, StringValue):
            return needle.value in container.value
        if isinstance(needle, (IntegerValue, DecimalValue)):
            return to_output_string(needle) in container.value
        return False
    if isinstance(container, ArrayValue):
        return any(values_equal(item, needle) for item in container.items)
    return False


# --------------------------------------------------------------------------- #
# Коллекции
# --------------------------------------------------------------------------- #

def value_size(value: Value) -> int:
    """Размер: длина строки, число элементов коллекции, длина диапазона."""
    if isinstance(value, StringValue):
        return len(value.value)
    if isinstance(value, ArrayValue):
        return len(value.items)
    if isinstance(value, DictionaryValue):
        return len(value.items)
    if isinstance(value, RangeValue):
        return len(value)
    return 0


def iterate_value(value: Value, offset: int = 0, limit: Optional[int] = None) -> List[Value]:
    """
    Материализует значение в последовательность для итерации.

    Словарь отдаёт пары [ключ, значение], прочие варианты считаются пустыми.
    offset и limit применяются до материализации, поэтому диапазон
    разворачивается только в пределах среза.
    """
    start = max(0, offset)
    stop = None if limit is None else start + max(0, limit)

    if isinstance(value, ArrayValue):
        return list(value.items[start:stop])
    if isinstance(value, RangeValue):
        return [IntegerValue(i) for i in range(value.start, value.stop + 1)[start:stop]]
    if isinstance(value, DictionaryValue):
        pairs = list(value.items.items())[start:stop]
        return [ArrayValue((StringValue(key), item)) for key, item in pairs]
    return []


def get_property(value: Value, name: str) -> Value:
    """
    Доступ к свойству по имени (сегмент пути через точку).

    Ключ словаря имеет приоритет над псевдосвойствами size/first/last.
    """
    if isinstance(value, DictionaryValue):
        if name in value.items:
            return value.items[name]
        if name == "size":
            return IntegerValue(len(value.items))
        return NIL
    if name == "size" and isinstance(value, (StringValue, ArrayValue, RangeValue)):
        return IntegerValue(value_size(value))
    if name == "first":
        return get_index(value, 0)
    if name == "last":
        return get_index(value, -1)
    return NIL


def get_index(value: Value, index: int) -> Value:
    """Доступ по индексу; отрицательный индекс считается с конца, выход за границы - Nil."""
    if isinstance(value, ArrayValue):
        items = value.items
    elif isinstance(value, RangeValue):
        # Элемент диапазона вычисляется без разворачивания
        items = range(value.start, value.stop + 1)
    else:
        return NIL
    if not -len(items) <= index < len(items):
        return NIL
    item = items[index]
    return IntegerValue(item) if isinstance(value, RangeValue) else item


def get_item(value: Value, key: Value) -> Value:
    """Доступ через квадратные скобки вычисленным ключом."""
    if isinstance(key, IntegerValue):
        return get_index(value, key.value)
    if isinstance(key, StringValue):
        return get_property(value, key.value)
    return NIL


__all__ = [
    "ValueKind",
    "Value",
    "NilValue",
    "BoolValue",
    "IntegerValue",
    "DecimalValue",
    "StringValue",
    "ArrayValue",
    "DictionaryValue",
    "RangeValue",
    "AnyValue",
    "NIL",
    "TRUE",
    "FALSE",
    "to_value",
    "to_python",
    "is_truthy",
    "format_decimal",
    "to_output_string",
    "parse_number",
    "to_number",
    "coerce_number",
    "to_integer",
    "number_value",
    "is_nan",
    "values_equal",
    "compare_values",
    "contains_value",
    "value_size",
    "iterate_value",
    "get_property",
    "get_index",
    "get_item",
]
