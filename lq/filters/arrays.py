"""
Фильтры для массивов.

Диапазоны обрабатываются как массивы целых. Элементы-словари
адресуются по имени свойства (map, where, sort: "key" и т.д.).
"""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from .base import Filter, FunctionFilter, text, array_of, sequence_items
from ..errors import FilterError, FilterErrorKind
from ..values import (
    Value, NIL, NilValue, IntegerValue, DecimalValue, StringValue,
    get_index, get_property, is_nan, is_truthy, values_equal,
)


def _items(value: Value) -> List[Value]:
    """Элементы коллекции; Nil - пустой массив, скаляр - массив из одного элемента."""
    items = sequence_items(value)
    if items is not None:
        return items
    if isinstance(value, NilValue):
        return []
    return [value]


def _property(item: Value, key: Optional[Value]) -> Value:
    if key is None:
        return item
    return get_property(item, text(key))


def join(value: Value, separator: Optional[Value] = None) -> Value:
    sep = " " if separator is None else text(separator)
    items = sequence_items(value)
    if items is None:
        return StringValue(text(value))
    return StringValue(sep.join(text(item) for item in items))


def first(value: Value) -> Value:
    return get_index(value, 0)


def last(value: Value) -> Value:
    return get_index(value, -1)


def reverse(value: Value) -> Value:
    items = sequence_items(value)
    if items is None:
        return value
    return array_of(items[::-1])


def _sort_key(item: Value) -> Tuple[int, Any]:
    """
    Ключ сортировки: числа, затем NaN, строки, прочее; Nil в конце.

    Сравнение внутри группы совпадает с упорядочивающим сравнением движка.
    """
    if is_nan(item):
        return 1, 0
    if isinstance(item, (IntegerValue, DecimalValue)):
        return 0, item.value
    if isinstance(item, StringValue):
        return 2, item.value
    if isinstance(item, NilValue):
        return 4, 0
    return 3, 0


def sort(value: Value, key: Optional[Value] = None) -> Value:
    items = _items(value)
    return array_of(sorted(items, key=lambda item: _sort_key(_property(item, key))))


def sort_natural(value: Value, key: Optional[Value] = None) -> Value:
    """Сортировка без учёта регистра по строковому представлению; Nil в конце."""
    def natural_key(item: Value) -> Tuple[int, str]:
        target = _property(item, key)
        if isinstance(target, NilValue):
            return 1, ""
        return 0, text(target).casefold()

    return array_of(sorted(_items(value), key=natural_key))


def uniq(value: Value, key: Optional[Value] = None) -> Value:
    """Убирает повторы, сохраняя первое вхождение."""
    seen: List[Value] = []
    result: List[Value] = []
    for item in _items(value):
        marker = _property(item, key)
        if any(values_equal(marker, other) for other in seen):
            continue
        seen.append(marker)
        result.append(item)
    return array_of(result)


def compact(value: Value, key: Optional[Value] = None) -> Value:
    return array_of([item for item in _items(value) if not isinstance(_property(item, key), NilValue)])


def concat(value: Value, other: Value) -> Value:
    extra = sequence_items(other)
    if extra is None:
        raise FilterError("'concat' expects an array argument", FilterErrorKind.WRONG_ARGUMENT_TYPE)
    return array_of(_items(value) + extra)


def map_(value: Value, key: Value) -> Value:
    return array_of([_property(item, key) for item in _items(value)])


def _matches(item: Value, key: Value, target: Optional[Value]) -> bool:
    candidate = _property(item, key)
    if target is None:
        return is_truthy(candidate)
    return values_equal(candidate, target)


def where(value: Value, key: Value, target: Optional[Value] = None) -> Value:
    """Элементы, у которых свойство равно target (или истинно, если target не задан)."""
    return array_of([item for item in _items(value) if _matches(item, key, target)])


def reject(value: Value, key: Value, target: Optional[Value] = None) -> Value:
    return array_of([item for item in _items(value) if not _matches(item, key, target)])


def find(value: Value, key: Value, target: Optional[Value] = None) -> Value:
    for item in _items(value):
        if _matches(item, key, target):
            return item
    return NIL


def find_index(value: Value, key: Value, target: Optional[Value] = None) -> Value:
    for index, item in enumerate(_items(value)):
        if _matches(item, key, target):
            return IntegerValue(index)
    return NIL


FILTERS: List[Filter] = [
    FunctionFilter("join", join, 0, 1),
    FunctionFilter("first", first, 0, 0),
    FunctionFilter("last", last, 0, 0),
    FunctionFilter("reverse", reverse, 0, 0),
    FunctionFilter("sort", sort, 0, 1),
    FunctionFilter("sort_natural", sort_natural, 0, 1),
    FunctionFilter("uniq", uniq, 0, 1),
    FunctionFilter("compact", compact, 0, 1),
    FunctionFilter("concat", concat, 1, 1),
    FunctionFilter("map", map_, 1, 1),
    FunctionFilter("where", where, 1, 2),
    FunctionFilter("reject", reject, 1, 2),
    FunctionFilter("find", find, 1, 2),
    FunctionFilter("find_index", find_index, 1, 2),
]


__all__ = ["FILTERS"]
