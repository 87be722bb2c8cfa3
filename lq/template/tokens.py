"""
Лексические типы.

Определяет типы токенов шаблона и сам токен с позиционной информацией.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from ..values import Value


class TokenType(enum.Enum):
    """Типы токенов в шаблоне."""

    # Текстовый контент
    TEXT = "TEXT"

    # Разделители вывода {{ }}
    OUTPUT_OPEN = "OUTPUT_OPEN"
    OUTPUT_CLOSE = "OUTPUT_CLOSE"

    # Разделители тегов {% %}
    TAG_OPEN = "TAG_OPEN"
    TAG_CLOSE = "TAG_CLOSE"

    # Содержимое разметки
    IDENTIFIER = "IDENTIFIER"
    LITERAL = "LITERAL"          # строка или число, значение в Token.literal
    OPERATOR = "OPERATOR"        # == != <> < > <= >= and or contains
    PIPE = "PIPE"                # |
    COLON = "COLON"              # :
    COMMA = "COMMA"              # ,
    DOT = "DOT"                  # .
    DOTDOT = "DOTDOT"            # ..
    LBRACKET = "LBRACKET"        # [
    RBRACKET = "RBRACKET"        # ]
    LPAREN = "LPAREN"            # (
    RPAREN = "RPAREN"            # )
    ASSIGN = "ASSIGN"            # =

    EOF = "EOF"


# Открывающие и закрывающие разделители разметки
OPEN_DELIMITERS = frozenset({TokenType.OUTPUT_OPEN, TokenType.TAG_OPEN})
CLOSE_DELIMITERS = frozenset({TokenType.OUTPUT_CLOSE, TokenType.TAG_CLOSE})


@dataclass(frozen=True)
class Token:
    """
    Токен с позиционной информацией для точной диагностики ошибок.
    """
    type: TokenType
    value: str
    position: int        # Позиция в исходном тексте
    line: int            # Номер строки (начиная с 1)
    column: int          # Номер колонки (начиная с 1)
    trim: bool = False   # Маркер '-' у разделителя
    literal: Optional[Value] = None

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


__all__ = [
    "TokenType",
    "Token",
    "OPEN_DELIMITERS",
    "CLOSE_DELIMITERS",
]
