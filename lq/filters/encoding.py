"""
Фильтры экранирования и кодирования: HTML, URL, Base64.
"""

from __future__ import annotations

import base64
import binascii
import html
import re
from typing import List
from urllib.parse import quote_plus, unquote_plus

from .base import Filter, FunctionFilter, text, string_of
from ..values import Value, NIL

_HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
}
_ESCAPE_RE = re.compile(r'[&<>"\']')
# Амперсанд, не начинающий уже готовую сущность
_ESCAPE_ONCE_RE = re.compile(r'&(?!(?:[A-Za-z][A-Za-z0-9]*|#[0-9]+|#[xX][0-9A-Fa-f]+);)|[<>"\']')


def escape(value: Value) -> Value:
    return string_of(_ESCAPE_RE.sub(lambda m: _HTML_ESCAPES[m.group(0)], text(value)))


def escape_once(value: Value) -> Value:
    """Экранирует, не трогая уже экранированные сущности."""
    return string_of(_ESCAPE_ONCE_RE.sub(lambda m: _HTML_ESCAPES[m.group(0)], text(value)))


def unescape(value: Value) -> Value:
    return string_of(html.unescape(text(value)))


def url_encode(value: Value) -> Value:
    return string_of(quote_plus(text(value)))


def url_decode(value: Value) -> Value:
    return string_of(unquote_plus(text(value)))


def base64_encode(value: Value) -> Value:
    return string_of(base64.b64encode(text(value).encode("utf-8")).decode("ascii"))


def base64_decode(value: Value) -> Value:
    """Некорректный Base64 или не-UTF-8 содержимое дают Nil."""
    return _decode(text(value), url_safe=False)


def base64_url_safe_encode(value: Value) -> Value:
    """URL-безопасный алфавит без выравнивающих '='."""
    encoded = base64.urlsafe_b64encode(text(value).encode("utf-8")).decode("ascii")
    return string_of(encoded.rstrip("="))


def base64_url_safe_decode(value: Value) -> Value:
    return _decode(text(value), url_safe=True)


def _decode(source: str, url_safe: bool) -> Value:
    source = source.strip()
    padded = source + "=" * (-len(source) % 4)
    try:
        if url_safe:
            raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        else:
            raw = base64.b64decode(padded.encode("ascii"), validate=True)
        return string_of(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError):
        return NIL


FILTERS: List[Filter] = [
    FunctionFilter("escape", escape, 0, 0),
    FunctionFilter("escape_once", escape_once, 0, 0),
    FunctionFilter("unescape", unescape, 0, 0),
    FunctionFilter("url_encode", url_encode, 0, 0),
    FunctionFilter("url_decode", url_decode, 0, 0),
    FunctionFilter("base64_encode", base64_encode, 0, 0),
    FunctionFilter("base64_decode", base64_decode, 0, 0),
    FunctionFilter("base64_url_safe_encode", base64_url_safe_encode, 0, 0),
    FunctionFilter("base64_url_safe_decode", base64_url_safe_decode, 0, 0),
]


__all__ = ["FILTERS"]
