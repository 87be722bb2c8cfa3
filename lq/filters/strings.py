"""
Строковые фильтры.

Вход приводится к строке по общему правилу движка (Nil даёт пустую
строку), поэтому фильтры не падают на значениях другого варианта.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .base import Filter, FunctionFilter, text, string_of, array_of, integer_argument
from ..values import (
    Value, IntegerValue, StringValue, ArrayValue, RangeValue,
    iterate_value, to_integer, value_size,
)

_NEWLINE_RE = re.compile(r'\r?\n')
_HTML_BLOCK_RE = re.compile(r'<script.*?</script>|<style.*?</style>|<!--.*?-->', re.IGNORECASE | re.DOTALL)
_HTML_TAG_RE = re.compile(r'<.*?>', re.DOTALL)


def append(value: Value, suffix: Value) -> Value:
    return string_of(text(value) + text(suffix))


def prepend(value: Value, prefix: Value) -> Value:
    return string_of(text(prefix) + text(value))


def capitalize(value: Value) -> Value:
    """Первая буква в верхнем регистре, остальные в нижнем."""
    source = text(value)
    return string_of(source[:1].upper() + source[1:].lower())


def downcase(value: Value) -> Value:
    return string_of(text(value).lower())


def upcase(value: Value) -> Value:
    return string_of(text(value).upper())


def strip(value: Value) -> Value:
    return string_of(text(value).strip())


def lstrip(value: Value) -> Value:
    return string_of(text(value).lstrip())


def rstrip(value: Value) -> Value:
    return string_of(text(value).rstrip())


def strip_newlines(value: Value) -> Value:
    return string_of(_NEWLINE_RE.sub("", text(value)))


def newline_to_br(value: Value) -> Value:
    return string_of(_NEWLINE_RE.sub("<br />\n", text(value)))


def strip_html(value: Value) -> Value:
    """Удаляет теги, а также содержимое script, style и HTML-комментариев."""
    return string_of(_HTML_TAG_RE.sub("", _HTML_BLOCK_RE.sub("", text(value))))


def remove(value: Value, needle: Value) -> Value:
    return string_of(text(value).replace(text(needle), ""))


def remove_first(value: Value, needle: Value) -> Value:
    return string_of(text(value).replace(text(needle), "", 1))


def remove_last(value: Value, needle: Value) -> Value:
    return string_of(_replace_last(text(value), text(needle), ""))


def replace(value: Value, needle: Value, replacement: Optional[Value] = None) -> Value:
    new = text(replacement) if replacement is not None else ""
    return string_of(text(value).replace(text(needle), new))


def replace_first(value: Value, needle: Value, replacement: Optional[Value] = None) -> Value:
    new = text(replacement) if replacement is not None else ""
    return string_of(text(value).replace(text(needle), new, 1))


def replace_last(value: Value, needle: Value, replacement: Optional[Value] = None) -> Value:
    new = text(replacement) if replacement is not None else ""
    return string_of(_replace_last(text(value), text(needle), new))


def _replace_last(source: str, needle: str, replacement: str) -> str:
    if not needle:
        return source
    head, found, tail = source.rpartition(needle)
    if not found:
        return source
    return head + replacement + tail


def split(value: Value, separator: Value) -> Value:
    """
    Разбивает строку в массив.

    Пустой разделитель разбивает на символы, одиночный пробел - по любым
    пробельным символам; хвостовые пустые элементы отбрасываются.
    """
    source = text(value)
    sep = text(separator)
    if not source:
        return array_of([])

    if sep == " ":
        parts: List[str] = source.split()
    elif sep:
        parts = source.split(sep)
    else:
        parts = list(source)

    while parts and parts[-1] == "":
        parts.pop()
    return array_of([StringValue(part) for part in parts])


def truncate(value: Value, length: Optional[Value] = None, ellipsis: Optional[Value] = None) -> Value:
    """
    Укорачивает строку до length символов, включая многоточие.

    Неразбираемая длина заменяется значением по умолчанию (50).
    """
    source = text(value)
    limit = to_integer(length) if length is not None else None
    if limit is None:
        limit = 50
    suffix = "..." if ellipsis is None else text(ellipsis)

    if len(source) <= limit:
        return string_of(source)
    keep = max(0, limit - len(suffix))
    return string_of(source[:keep] + suffix)


def truncatewords(value: Value, words: Optional[Value] = None, ellipsis: Optional[Value] = None) -> Value:
    source = text(value)
    limit = to_integer(words) if words is not None else None
    if limit is None:
        limit = 15
    limit = max(1, limit)
    suffix = "..." if ellipsis is None else text(ellipsis)

    parts = source.split()
    if len(parts) <= limit:
        return string_of(source)
    return string_of(" ".join(parts[:limit]) + suffix)


def slice_(value: Value, start: Value, length: Optional[Value] = None) -> Value:
    """
    Подстрока или подмассив начиная с start (отрицательный считается с конца).

    Без length берётся один элемент.
    """
    offset = integer_argument(start, "slice")
    count = integer_argument(length, "slice", default=1)

    is_sequence = isinstance(value, (ArrayValue, RangeValue))
    total = value_size(value) if is_sequence else len(text(value))

    if offset < 0:
        offset += total
    if offset < 0 or offset >= total or count <= 0:
        return array_of([]) if is_sequence else string_of("")

    if is_sequence:
        return array_of(iterate_value(value, offset, count))
    return string_of(text(value)[offset:offset + count])


def size(value: Value) -> Value:
    return IntegerValue(value_size(value))


FILTERS: List[Filter] = [
    FunctionFilter("append", append, 1, 1),
    FunctionFilter("prepend", prepend, 1, 1),
    FunctionFilter("capitalize", capitalize, 0, 0),
    FunctionFilter("downcase", downcase, 0, 0),
    FunctionFilter("upcase", upcase, 0, 0),
    FunctionFilter("strip", strip, 0, 0),
    FunctionFilter("lstrip", lstrip, 0, 0),
    FunctionFilter("rstrip", rstrip, 0, 0),
    FunctionFilter("strip_newlines", strip_newlines, 0, 0),
    FunctionFilter("newline_to_br", newline_to_br, 0, 0),
    FunctionFilter("strip_html", strip_html, 0, 0),
    FunctionFilter("remove", remove, 1, 1),
    FunctionFilter("remove_first", remove_first, 1, 1),
    FunctionFilter("remove_last", remove_last, 1, 1),
    FunctionFilter("replace", replace, 1, 2),
    FunctionFilter("replace_first", replace_first, 1, 2),
    FunctionFilter("replace_last", replace_last, 1, 2),
    FunctionFilter("split", split, 1, 1),
    FunctionFilter("truncate", truncate, 0, 2),
    FunctionFilter("truncatewords", truncatewords, 0, 2),
    FunctionFilter("slice", slice_, 1, 2),
    FunctionFilter("size", size, 0, 0),
]


__all__ = ["FILTERS"]
