from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, List, Optional, Type

from .nodes import TemplateNode
from .tokens import Token, TokenType
from ..errors import TemplateSyntaxError, SyntaxErrorKind


class Signal(enum.Enum):
    """
    Сигнал управления потоком, возвращаемый выполнением тела блока.

    Циклы поглощают BREAK/CONTINUE, остальные блоки передают их наверх.
    """
    NORMAL = "normal"
    BREAK = "break"
    CONTINUE = "continue"


@dataclass
class ProcessorRule:
    """
    Правило обработки узлов AST.
    """
    node_type: Type[TemplateNode]  # Тип узла, который обрабатывает правило
    processor_func: Callable[[TemplateNode, List[str]], Signal]  # Функция обработки (node, output)


class ParsingContext:
    """
    Контекст для парсинга токенов.

    Предоставляет методы для навигации по токенам и управления позицией
    в процессе синтаксического анализа.
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0
        self.length = len(tokens)

    def current(self) -> Token:
        """Возвращает текущий токен."""
        if self.position >= self.length:
            return self._eof()
        return self.tokens[self.position]

    def peek(self, offset: int = 1) -> Token:
        """Возвращает токен на указанном смещении от текущей позиции."""
        pos = self.position + offset
        if pos >= self.length:
            return self._eof()
        return self.tokens[pos]

    def advance(self) -> Token:
        """Продвигается к следующему токену и возвращает предыдущий."""
        current = self.current()
        if self.position < self.length:
            self.position += 1
        return current

    def is_at_end(self) -> bool:
        """Проверяет, достигнут ли конец токенов."""
        return self.position >= self.length or self.current().type == TokenType.EOF

    def match(self, *token_types: TokenType) -> bool:
        """Проверяет, соответствует ли текущий токен одному из указанных типов."""
        return self.current().type in token_types

    def match_word(self, word: str) -> bool:
        """Проверяет, является ли текущий токен идентификатором word."""
        current = self.current()
        return current.type == TokenType.IDENTIFIER and current.value == word

    def consume(self, expected_type: TokenType, what: str = "") -> Token:
        """
        Потребляет токен ожидаемого типа.

        Raises:
            TemplateSyntaxError: Если токен не соответствует ожидаемому типу
        """
        current = self.current()
        if current.type != expected_type:
            raise self.error(
                f"Expected {what or expected_type.name}, got {describe_token(current)}",
                SyntaxErrorKind.UNEXPECTED_TOKEN,
            )
        return self.advance()

    def error(self, message: str, kind: SyntaxErrorKind, token: Optional[Token] = None) -> TemplateSyntaxError:
        """Строит ошибку с позицией текущего (или указанного) токена."""
        token = token or self.current()
        return TemplateSyntaxError(message, kind, token.line, token.column, token.position)

    def _eof(self) -> Token:
        if self.tokens:
            last = self.tokens[-1]
            return Token(TokenType.EOF, "", last.position + len(last.value), last.line, last.column + len(last.value))
        return Token(TokenType.EOF, "", 0, 1, 1)


def describe_token(token: Token) -> str:
    """Человекочитаемое описание токена для сообщений об ошибках."""
    if token.type == TokenType.EOF:
        return "end of input"
    return f"{token.type.name} '{token.value}'"


__all__ = ["Signal", "ProcessorRule", "ParsingContext", "describe_token"]
